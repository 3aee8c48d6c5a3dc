"""
LSHIndex - multi-table locality-sensitive hash index over a fixed corpus.

The index owns L independently sampled ProjectionHash functions and L hash
tables. Table j maps a key of function j to the set of corpus row indices
hashed there. The index references points by row index only; it keeps no copy
of the corpus, so the corpus must stay unchanged while the index is in use.
"""

import logging
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any, Union

import numpy as np

from lshsearch.errors import ConfigurationError, DataError
from lshsearch.hashing import HashKey, ProjectionHash, SeedLike, validate_hash_params

logger = logging.getLogger(__name__)


def as_vector(vector: Union[np.ndarray, Sequence]) -> np.ndarray:
    """Flatten a vector, keeping floating dtypes and casting anything else to float64."""
    vector = np.asarray(vector).flatten()
    if not np.issubdtype(vector.dtype, np.floating):
        vector = vector.astype(np.float64)
    return vector


def as_corpus(corpus: Union[np.ndarray, Sequence]) -> np.ndarray:
    """
    Coerce a corpus to a 2D array of shape (n_points, dimension).

    Floating arrays are used as they are, so distances and hashes see the
    caller's exact values. Any other input is converted to float64.

    Args:
        corpus: 2D array, or a sequence of equal-length point sequences.

    Returns:
        The corpus as a numpy array (the same object for a floating 2D array).

    Raises:
        ConfigurationError: If the corpus is empty or has dimension 0.
        DataError: If points have inconsistent dimensions or the corpus is not 2D.
    """
    if len(corpus) == 0:
        raise ConfigurationError("Corpus must contain at least one point")

    if not isinstance(corpus, np.ndarray):
        if any(np.ndim(point) != 1 for point in corpus):
            raise DataError("Corpus must be 2D array, every point a 1D sequence")
        dimensions = {len(point) for point in corpus}
        if len(dimensions) > 1:
            raise DataError(
                f"All points must have the same dimension, got dimensions {sorted(dimensions)}"
            )

    corpus = np.asarray(corpus)
    if corpus.ndim != 2:
        raise DataError(f"Corpus must be 2D array, got shape {corpus.shape}")
    if corpus.shape[1] == 0:
        raise ConfigurationError("Corpus points must have dimension > 0")
    if not np.issubdtype(corpus.dtype, np.floating):
        corpus = corpus.astype(np.float64)
    return corpus


class LSHIndex:
    """
    A read-only LSH index of L (hash function, hash table) pairs.

    Build it with LSHIndex.build(); query it with
    lshsearch.query.nearest_neighbors().

    Example:
        >>> corpus = np.random.default_rng(0).random((1000, 30))
        >>> index = LSHIndex.build(corpus, n_tables=50, bandwidth=4.0, hash_size=13)
        >>> index.n_tables
        50
    """

    def __init__(
        self,
        hash_functions: Sequence[ProjectionHash],
        tables: Sequence[dict[HashKey, set[int]]],
        n_points: int,
    ):
        """
        Assemble an index from hash functions and already populated tables.

        Most callers want LSHIndex.build() instead. This constructor is used when
        restoring a persisted index.

        Args:
            hash_functions: The L hash functions, position j pairs with tables[j].
            tables: The L tables mapping hash keys to sets of point indices.
            n_points: Number of points in the corpus the tables were built over.

        Raises:
            ConfigurationError: If there are no tables or the counts disagree.
            DataError: If hash functions have different dimensions.
        """
        if len(hash_functions) == 0:
            raise ConfigurationError("Index needs at least one hash table")
        if len(hash_functions) != len(tables):
            raise ConfigurationError(
                f"Number of hash functions ({len(hash_functions)}) must match "
                f"number of tables ({len(tables)})"
            )
        dimensions = {func.dimension for func in hash_functions}
        if len(dimensions) > 1:
            raise DataError(f"Hash functions disagree on dimension: {sorted(dimensions)}")

        self._hash_functions = tuple(hash_functions)
        self._tables = list(tables)
        self._dimension = dimensions.pop()
        self._n_points = int(n_points)

    @classmethod
    def build(
        cls,
        corpus: Union[np.ndarray, Sequence],
        n_tables: int,
        bandwidth: float,
        hash_size: int,
        seed: SeedLike = None,
    ) -> "LSHIndex":
        """
        Build an index over a corpus.

        Args:
            corpus: 2D array of shape (n_points, dimension), one point per row.
            n_tables: Number of hash tables L (more = better recall, more memory).
            bandwidth: Bucket width w (larger = more collisions, more candidates).
            hash_size: Projections per hash function k (more = narrower buckets).
            seed: Integer seed or numpy Generator for reproducible builds.

        Returns:
            A new LSHIndex.

        Raises:
            ConfigurationError: If n_tables, bandwidth or hash_size is invalid,
                or the corpus is empty.
            DataError: If the corpus points have inconsistent dimensions.
        """
        if isinstance(n_tables, bool) or not isinstance(n_tables, (int, np.integer)) or n_tables <= 0:
            raise ConfigurationError(f"n_tables must be a positive integer, got {n_tables!r}")
        corpus = as_corpus(corpus)
        n_points, dimension = corpus.shape
        validate_hash_params(dimension, bandwidth, hash_size)

        rng = np.random.default_rng(seed)
        hash_functions = [
            ProjectionHash.sample(dimension, bandwidth, hash_size, rng=rng)
            for _ in range(n_tables)
        ]

        logger.debug(
            "Building LSH index on %d points of dimension %d "
            "(n_tables=%d, hash_size=%d, bandwidth=%s)",
            n_points, dimension, n_tables, hash_size, bandwidth,
        )

        tables = []
        for func in hash_functions:
            table: dict[HashKey, set[int]] = {}
            for point_id, coords in enumerate(func.hash_batch(corpus).tolist()):
                table.setdefault(tuple(coords), set()).add(point_id)
            tables.append(table)

        index = cls(hash_functions, tables, n_points)
        if logger.isEnabledFor(logging.DEBUG):
            for table_id, stats in enumerate(index.bucket_stats()):
                logger.debug(
                    "Table %d: %d buckets, mean size %.1f, max size %d",
                    table_id, stats["n_buckets"], stats["mean_size"], stats["max_size"],
                )
        return index

    @property
    def hash_functions(self) -> tuple[ProjectionHash, ...]:
        return self._hash_functions

    @property
    def tables(self) -> tuple[Mapping[HashKey, set[int]], ...]:
        """
        Read-only views of the L tables.

        The bucket sets inside are shared with the index and must not be modified.
        """
        return tuple(MappingProxyType(table) for table in self._tables)

    @property
    def n_tables(self) -> int:
        return len(self._tables)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def n_points(self) -> int:
        return self._n_points

    def __len__(self) -> int:
        return self.n_tables

    def query_keys(self, vector: np.ndarray) -> list[HashKey]:
        """Hash a vector with every function, one key per table."""
        vector = as_vector(vector)
        if vector.shape[0] != self._dimension:
            raise DataError(
                f"Query vector dimension {vector.shape[0]} "
                f"does not match index dimension {self._dimension}"
            )
        return [func(vector) for func in self._hash_functions]

    def bucket(self, table_id: int, key: HashKey) -> frozenset[int]:
        """Return the point indices stored under key in a table (empty if none)."""
        return frozenset(self._tables[table_id].get(key, ()))

    def bucket_stats(self) -> list[dict[str, Any]]:
        """
        Summarize bucket occupancy of each table.

        Returns:
            One dict per table with n_buckets, mean_size and max_size.
        """
        stats = []
        for table in self._tables:
            sizes = [len(bucket) for bucket in table.values()]
            stats.append({
                "n_buckets": len(sizes),
                "mean_size": float(np.mean(sizes)) if sizes else 0.0,
                "max_size": max(sizes) if sizes else 0,
            })
        return stats

    def __repr__(self) -> str:
        return (
            f"LSHIndex(n_tables={self.n_tables}, dimension={self.dimension}, "
            f"n_points={self.n_points})"
        )


def check_corpus_matches(corpus: np.ndarray, index: LSHIndex) -> None:
    """Raise DataError if a corpus does not have the shape the index was built over."""
    n_points, dimension = corpus.shape
    if dimension != index.dimension:
        raise DataError(
            f"Corpus dimension {dimension} does not match index dimension {index.dimension}"
        )
    if n_points != index.n_points:
        raise DataError(
            f"Corpus has {n_points} points but the index was built over {index.n_points}"
        )


