"""
ProjectionHash - p-stable random projection hash functions.

Each function is composed of k "atoms". An atom projects a vector onto a random
Gaussian direction, shifts it by a random offset and quantizes the result into
buckets of width w:

    h_i(v) = floor((a_i . v + b_i) / w)

The hash key of a vector is the ordered tuple of its k atom outputs, so two
vectors share a bucket only if every atom agrees.
"""

import math
from typing import Optional, Union

import numpy as np

from lshsearch.errors import ConfigurationError, DataError

HashKey = tuple[int, ...]

SeedLike = Union[None, int, np.random.Generator]


def validate_hash_params(dimension: int, bandwidth: float, hash_size: int) -> None:
    """
    Check the parameters of a projection hash function.

    Raises:
        ConfigurationError: If dimension or hash_size is not a positive integer,
            or bandwidth is not a positive finite number.
    """
    if isinstance(dimension, bool) or not isinstance(dimension, (int, np.integer)) or dimension <= 0:
        raise ConfigurationError(f"Dimension must be a positive integer, got {dimension!r}")
    if isinstance(hash_size, bool) or not isinstance(hash_size, (int, np.integer)) or hash_size <= 0:
        raise ConfigurationError(f"hash_size must be a positive integer, got {hash_size!r}")
    try:
        width = float(bandwidth)
    except (TypeError, ValueError):
        raise ConfigurationError(f"bandwidth must be a number, got {bandwidth!r}") from None
    if not math.isfinite(width) or width <= 0:
        raise ConfigurationError(f"bandwidth must be positive and finite, got {bandwidth!r}")


class ProjectionHash:
    """
    A locality-sensitive hash function built from k random projections.

    The projections and offsets are sampled once and stored in read-only
    arrays, so calling the function twice on the same vector always returns
    the same key.

    Example:
        >>> h = ProjectionHash.sample(dimension=3, bandwidth=4.0, hash_size=2, rng=0)
        >>> key = h(np.array([1.0, 2.0, 3.0]))
        >>> len(key)
        2
    """

    def __init__(self, projections: np.ndarray, offsets: np.ndarray, bandwidth: float):
        """
        Create a hash function from existing projection state.

        Args:
            projections: Array of shape (hash_size, dimension).
            offsets: Array of shape (hash_size,), each value in [0, bandwidth).
            bandwidth: Bucket width w.

        Raises:
            ConfigurationError: If the shapes or bandwidth are invalid.
        """
        projections = np.array(projections, dtype=np.float64)
        offsets = np.array(offsets, dtype=np.float64)
        if projections.ndim != 2:
            raise ConfigurationError(
                f"Projections must be 2D array, got shape {projections.shape}"
            )
        hash_size, dimension = projections.shape
        validate_hash_params(dimension, bandwidth, hash_size)
        if offsets.shape != (hash_size,):
            raise ConfigurationError(
                f"Offsets shape {offsets.shape} does not match hash_size {hash_size}"
            )

        projections.setflags(write=False)
        offsets.setflags(write=False)
        self._projections = projections
        self._offsets = offsets
        self._bandwidth = float(bandwidth)

    @classmethod
    def sample(
        cls,
        dimension: int,
        bandwidth: float,
        hash_size: int,
        rng: SeedLike = None,
    ) -> "ProjectionHash":
        """
        Sample a new hash function.

        Args:
            dimension: Dimension d of the vectors to hash.
            bandwidth: Bucket width w.
            hash_size: Number of projections k.
            rng: A numpy Generator, an integer seed, or None for fresh entropy.

        Returns:
            A new ProjectionHash.
        """
        validate_hash_params(dimension, bandwidth, hash_size)
        rng = np.random.default_rng(rng)
        projections = rng.standard_normal(size=(hash_size, dimension))
        offsets = rng.uniform(0.0, float(bandwidth), size=hash_size)
        return cls(projections, offsets, bandwidth)

    @property
    def projections(self) -> np.ndarray:
        return self._projections

    @property
    def offsets(self) -> np.ndarray:
        return self._offsets

    @property
    def bandwidth(self) -> float:
        return self._bandwidth

    @property
    def dimension(self) -> int:
        return self._projections.shape[1]

    @property
    def hash_size(self) -> int:
        return self._projections.shape[0]

    def hash_batch(self, vectors: np.ndarray) -> np.ndarray:
        """
        Compute the bucket coordinates of many vectors at once.

        Args:
            vectors: 2D array of shape (n, dimension).

        Returns:
            int64 array of shape (n, hash_size). Row i is the key of vectors[i].
        """
        vectors = np.asarray(vectors, dtype=np.float64)
        if vectors.ndim != 2:
            raise DataError(f"Vectors must be 2D array, got shape {vectors.shape}")
        if vectors.shape[1] != self.dimension:
            raise DataError(
                f"Vector dimension {vectors.shape[1]} "
                f"does not match hash dimension {self.dimension}"
            )
        projected = vectors @ self._projections.T
        return np.floor((projected + self._offsets) / self._bandwidth).astype(np.int64)

    def __call__(self, vector: np.ndarray) -> HashKey:
        """Hash a single 1D vector to its composite key."""
        vector = np.asarray(vector, dtype=np.float64)
        if vector.ndim != 1:
            raise DataError(f"Vector must be 1D array, got shape {vector.shape}")
        coords = self.hash_batch(vector.reshape(1, -1))[0]
        return tuple(coords.tolist())

    def __repr__(self) -> str:
        return (
            f"ProjectionHash(dimension={self.dimension}, "
            f"hash_size={self.hash_size}, bandwidth={self.bandwidth})"
        )
