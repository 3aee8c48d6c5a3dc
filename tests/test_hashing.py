"""
Tests for ProjectionHash.
"""

import numpy as np
import pytest

from lshsearch import ConfigurationError, DataError, ProjectionHash


@pytest.fixture
def vectors():
    """Random vectors for hashing."""
    rng = np.random.default_rng(7)
    return rng.standard_normal(size=(50, 16))


class TestProjectionHashSampling:
    """Test sampling of new hash functions."""

    def test_shapes(self):
        """Test that sampled state has the requested shapes."""
        h = ProjectionHash.sample(dimension=16, bandwidth=4.0, hash_size=5, rng=0)
        assert h.projections.shape == (5, 16)
        assert h.offsets.shape == (5,)
        assert h.dimension == 16
        assert h.hash_size == 5
        assert h.bandwidth == 4.0

    def test_offsets_within_bandwidth(self):
        """Test that offsets are drawn from [0, w)."""
        h = ProjectionHash.sample(dimension=4, bandwidth=2.5, hash_size=200, rng=1)
        assert np.all(h.offsets >= 0.0)
        assert np.all(h.offsets < 2.5)

    def test_same_seed_same_function(self, vectors):
        """Test that an integer seed makes sampling reproducible."""
        h1 = ProjectionHash.sample(dimension=16, bandwidth=4.0, hash_size=5, rng=42)
        h2 = ProjectionHash.sample(dimension=16, bandwidth=4.0, hash_size=5, rng=42)
        assert np.array_equal(h1.projections, h2.projections)
        assert np.array_equal(h1.offsets, h2.offsets)
        assert [h1(v) for v in vectors] == [h2(v) for v in vectors]

    def test_shared_generator_gives_independent_functions(self):
        """Test that consecutive draws from one generator differ."""
        rng = np.random.default_rng(3)
        h1 = ProjectionHash.sample(dimension=8, bandwidth=1.0, hash_size=3, rng=rng)
        h2 = ProjectionHash.sample(dimension=8, bandwidth=1.0, hash_size=3, rng=rng)
        assert not np.array_equal(h1.projections, h2.projections)

    @pytest.mark.parametrize("dimension", [0, -3])
    def test_invalid_dimension(self, dimension):
        with pytest.raises(ConfigurationError, match="Dimension must be a positive integer"):
            ProjectionHash.sample(dimension=dimension, bandwidth=1.0, hash_size=2)

    @pytest.mark.parametrize("hash_size", [0, -1])
    def test_invalid_hash_size(self, hash_size):
        with pytest.raises(ConfigurationError, match="hash_size must be a positive integer"):
            ProjectionHash.sample(dimension=3, bandwidth=1.0, hash_size=hash_size)

    @pytest.mark.parametrize("bandwidth", [0, -1.0, float("inf"), float("nan")])
    def test_invalid_bandwidth(self, bandwidth):
        with pytest.raises(ConfigurationError, match="bandwidth must be positive"):
            ProjectionHash.sample(dimension=3, bandwidth=bandwidth, hash_size=2)

    def test_configuration_error_is_value_error(self):
        """Test that configuration errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            ProjectionHash.sample(dimension=3, bandwidth=0.0, hash_size=2)


class TestProjectionHashKeys:
    """Test the keys computed by a hash function."""

    def test_key_formula(self):
        """Test floor((a . v + b) / w) for hand-picked projections."""
        h = ProjectionHash(
            projections=[[1.0, 0.0], [0.0, 1.0]],
            offsets=[0.5, 0.0],
            bandwidth=2.0,
        )
        # atom 0: floor((3 + 0.5) / 2) = 1, atom 1: floor((-1 + 0) / 2) = -1
        assert h(np.array([3.0, -1.0])) == (1, -1)
        assert h(np.array([0.0, 0.0])) == (0, 0)

    def test_keys_are_int_tuples(self, vectors):
        h = ProjectionHash.sample(dimension=16, bandwidth=4.0, hash_size=4, rng=0)
        key = h(vectors[0])
        assert isinstance(key, tuple)
        assert len(key) == 4
        assert all(isinstance(coord, int) for coord in key)

    def test_deterministic_after_construction(self, vectors):
        """Test that hashing the same vector twice gives the same key."""
        h = ProjectionHash.sample(dimension=16, bandwidth=1.0, hash_size=8)
        for v in vectors:
            assert h(v) == h(v)

    def test_collision_requires_all_atoms(self):
        """Test that points differing in one atom land in different buckets."""
        h = ProjectionHash(
            projections=[[1.0, 0.0], [0.0, 1.0]],
            offsets=[0.0, 0.0],
            bandwidth=2.0,
        )
        # Same first coordinate, second coordinate in a different bucket
        assert h(np.array([0.1, 0.5]))[0] == h(np.array([0.1, 5.0]))[0]
        assert h(np.array([0.1, 0.5])) != h(np.array([0.1, 5.0]))

    def test_hash_batch_matches_single(self, vectors):
        h = ProjectionHash.sample(dimension=16, bandwidth=2.0, hash_size=6, rng=5)
        batch = h.hash_batch(vectors)
        assert batch.shape == (50, 6)
        assert batch.dtype == np.int64
        for row, v in zip(batch, vectors):
            assert tuple(row.tolist()) == h(v)

    def test_state_is_read_only(self):
        """Test that projections and offsets cannot be modified in place."""
        h = ProjectionHash.sample(dimension=4, bandwidth=1.0, hash_size=2, rng=0)
        with pytest.raises(ValueError):
            h.projections[0, 0] = 1.0
        with pytest.raises(ValueError):
            h.offsets[0] = 0.5

    def test_construction_copies_input(self):
        """Test that mutating the source arrays does not change the function."""
        projections = np.array([[1.0, 2.0]])
        h = ProjectionHash(projections, [0.0], 1.0)
        before = h(np.array([1.0, 1.0]))
        projections[0, 0] = -100.0
        assert h(np.array([1.0, 1.0])) == before


class TestProjectionHashValidation:
    """Test input validation."""

    def test_dimension_mismatch(self):
        h = ProjectionHash.sample(dimension=4, bandwidth=1.0, hash_size=2, rng=0)
        with pytest.raises(DataError, match="does not match hash dimension"):
            h(np.zeros(3))

    def test_batch_must_be_2d(self):
        h = ProjectionHash.sample(dimension=4, bandwidth=1.0, hash_size=2, rng=0)
        with pytest.raises(DataError, match="must be 2D array"):
            h.hash_batch(np.zeros(4))

    def test_offsets_shape_mismatch(self):
        with pytest.raises(ConfigurationError, match="does not match hash_size"):
            ProjectionHash(np.zeros((3, 2)), np.zeros(2), 1.0)

    def test_projections_must_be_2d(self):
        with pytest.raises(ConfigurationError, match="must be 2D array"):
            ProjectionHash(np.zeros(3), np.zeros(3), 1.0)
