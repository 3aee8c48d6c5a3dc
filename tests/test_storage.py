"""
Tests for IndexStore persistence.
"""

import os
import sqlite3
import tempfile

import numpy as np
import pytest

from lshsearch import DataError, IndexStore, LSHIndex, euclidean, nearest_neighbors
from lshsearch.storage.sqlite import decode_key, encode_key


@pytest.fixture
def temp_db():
    """Create a temporary database file."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    try:
        os.unlink(path)
    except OSError:
        pass


@pytest.fixture
def corpus():
    rng = np.random.default_rng(0)
    return rng.random((80, 6), dtype=np.float32)


@pytest.fixture
def index(corpus):
    return LSHIndex.build(corpus, n_tables=5, bandwidth=0.8, hash_size=3, seed=11)


class TestHashKeyEncoding:
    """Test text encoding of hash keys."""

    def test_encode(self):
        assert encode_key((3, -1, 0)) == "3,-1,0"

    def test_decode(self):
        assert decode_key("3,-1,0") == (3, -1, 0)
        assert decode_key("7") == (7,)


class TestIndexStoreRoundTrip:
    """Test saving and loading an index."""

    def test_empty_store(self, temp_db):
        with IndexStore(db_path=temp_db) as store:
            assert store.is_empty()
            assert store.load() is None

    def test_save_and_load(self, index, temp_db):
        with IndexStore(db_path=temp_db) as store:
            store.save(index)
            assert not store.is_empty()
            restored = store.load()

        assert restored.n_tables == index.n_tables
        assert restored.dimension == index.dimension
        assert restored.n_points == index.n_points
        assert [dict(t) for t in restored.tables] == [dict(t) for t in index.tables]
        for original, loaded in zip(index.hash_functions, restored.hash_functions):
            assert np.array_equal(original.projections, loaded.projections)
            assert np.array_equal(original.offsets, loaded.offsets)
            assert original.bandwidth == loaded.bandwidth

    def test_loaded_index_gives_same_results(self, corpus, index, temp_db):
        with IndexStore(db_path=temp_db) as store:
            restored = store.save(index).load()

        for q in range(0, len(corpus), 8):
            expected = nearest_neighbors(corpus, index, euclidean, q, max_neighbors=5, ordered=True)
            assert nearest_neighbors(corpus, restored, euclidean, q, max_neighbors=5, ordered=True) == expected

    def test_data_persists(self, index, temp_db):
        """Test that the index survives closing the store."""
        store1 = IndexStore(db_path=temp_db)
        store1.save(index)
        store1.close()

        store2 = IndexStore(db_path=temp_db)
        restored = store2.load()
        store2.close()

        assert restored is not None
        assert [dict(t) for t in restored.tables] == [dict(t) for t in index.tables]

    def test_save_replaces_previous_index(self, corpus, index, temp_db):
        other = LSHIndex.build(corpus, n_tables=2, bandwidth=2.0, hash_size=1, seed=3)
        with IndexStore(db_path=temp_db) as store:
            store.save(index)
            store.save(other)
            restored = store.load()

        assert restored.n_tables == 2
        assert [dict(t) for t in restored.tables] == [dict(t) for t in other.tables]

    def test_clear(self, index, temp_db):
        with IndexStore(db_path=temp_db) as store:
            store.save(index)
            store.clear()
            assert store.is_empty()
            assert store.load() is None


class TestIndexStoreValidation:
    """Test detection of inconsistent stored state."""

    def test_missing_hash_functions(self, index, temp_db):
        with IndexStore(db_path=temp_db) as store:
            store.save(index)

        conn = sqlite3.connect(temp_db)
        conn.execute("DELETE FROM hash_functions WHERE table_id = 0")
        conn.commit()
        conn.close()

        with IndexStore(db_path=temp_db) as store:
            with pytest.raises(DataError, match="hash functions were found"):
                store.load()

    def test_unknown_table_in_buckets(self, index, temp_db):
        with IndexStore(db_path=temp_db) as store:
            store.save(index)

        conn = sqlite3.connect(temp_db)
        conn.execute("INSERT INTO lsh_buckets (table_id, hash_key, point_id) VALUES (99, '0,0,0', 1)")
        conn.commit()
        conn.close()

        with IndexStore(db_path=temp_db) as store:
            with pytest.raises(DataError, match="unknown table"):
                store.load()
