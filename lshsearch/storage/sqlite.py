"""
IndexStore - Persist a built LSHIndex in a SQLite database.

The hash functions (projection matrices and offsets) are stored as pickled
numpy arrays and the bucket contents as (table_id, hash_key, point_id) rows.
The corpus itself is not stored: like the in-memory index, the stored index
only refers to points by row index.
"""

import logging
import pickle
import sqlite3
import threading
from typing import Optional

from lshsearch.errors import DataError
from lshsearch.hashing import HashKey, ProjectionHash
from lshsearch.index import LSHIndex

logger = logging.getLogger(__name__)


def encode_key(key: HashKey) -> str:
    """Encode a hash key as text, e.g. (3, -1, 0) -> '3,-1,0'."""
    return ",".join(str(coord) for coord in key)


def decode_key(text: str) -> HashKey:
    """Decode a hash key produced by encode_key()."""
    return tuple(int(coord) for coord in text.split(","))


class IndexStore:
    """
    A SQLite file holding at most one LSHIndex.

    API:
    - __init__(db_path="lshsearch_index.db")
    - save(index) - Store an index, replacing any stored one
    - load() - Restore the stored index (None if empty)
    - is_empty(), clear(), close()

    Example:
        >>> index = LSHIndex.build(corpus, n_tables=10, bandwidth=4.0, hash_size=8)
        >>> with IndexStore("index.db") as store:
        ...     store.save(index)
        >>> with IndexStore("index.db") as store:
        ...     restored = store.load()
    """

    def __init__(self, db_path: str = "lshsearch_index.db"):
        """
        Open (or create) the store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._local = threading.local()
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "conn"):
            self._local.conn = sqlite3.connect(self.db_path)
            self._local.conn.row_factory = sqlite3.Row
        return self._local.conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        conn = self._get_conn()
        cursor = conn.cursor()

        # Index-level parameters
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS metadata (
                key TEXT PRIMARY KEY,
                value BLOB
            )
        """)

        # One row per hash function, paired with its table by table_id
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS hash_functions (
                table_id INTEGER PRIMARY KEY,
                bandwidth REAL NOT NULL,
                projections BLOB NOT NULL,
                offsets BLOB NOT NULL
            )
        """)

        # Bucket contents
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS lsh_buckets (
                table_id INTEGER NOT NULL,
                hash_key TEXT NOT NULL,
                point_id INTEGER NOT NULL,
                PRIMARY KEY (table_id, hash_key, point_id)
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_lsh_lookup ON lsh_buckets (table_id, hash_key)")

        conn.commit()

    def is_empty(self) -> bool:
        """Check if no index is stored."""
        conn = self._get_conn()
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) as count FROM hash_functions")
        row = cursor.fetchone()
        return row["count"] == 0

    def save(self, index: LSHIndex) -> "IndexStore":
        """
        Store an index, replacing whatever the store held before.

        Args:
            index: The index to persist.

        Returns:
            self for method chaining.
        """
        conn = self._get_conn()
        cursor = conn.cursor()
        try:
            self._delete_all(cursor)

            for key, value in (
                ("dimension", index.dimension),
                ("n_points", index.n_points),
                ("n_tables", index.n_tables),
            ):
                cursor.execute(
                    "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                    (key, pickle.dumps(value))
                )

            for table_id, (func, table) in enumerate(zip(index.hash_functions, index.tables)):
                cursor.execute(
                    "INSERT INTO hash_functions (table_id, bandwidth, projections, offsets) "
                    "VALUES (?, ?, ?, ?)",
                    (table_id, func.bandwidth, pickle.dumps(func.projections), pickle.dumps(func.offsets))
                )
                cursor.executemany(
                    "INSERT INTO lsh_buckets (table_id, hash_key, point_id) VALUES (?, ?, ?)",
                    [
                        (table_id, encode_key(key), point_id)
                        for key, bucket in table.items()
                        for point_id in bucket
                    ]
                )
            conn.commit()
        except Exception:
            conn.rollback()
            raise

        logger.info("Saved LSH index (%d tables) to %s", index.n_tables, self.db_path)
        return self

    def load(self) -> Optional[LSHIndex]:
        """
        Restore the stored index.

        Returns:
            The stored LSHIndex, or None if the store is empty.

        Raises:
            DataError: If the stored state is inconsistent.
        """
        conn = self._get_conn()
        cursor = conn.cursor()

        cursor.execute("SELECT key, value FROM metadata")
        metadata = {row["key"]: pickle.loads(row["value"]) for row in cursor.fetchall()}
        if not metadata:
            return None

        cursor.execute(
            "SELECT table_id, bandwidth, projections, offsets FROM hash_functions ORDER BY table_id"
        )
        hash_functions = [
            ProjectionHash(pickle.loads(row["projections"]), pickle.loads(row["offsets"]), row["bandwidth"])
            for row in cursor.fetchall()
        ]

        n_tables = metadata.get("n_tables")
        if len(hash_functions) != n_tables:
            raise DataError(
                f"Stored index declares {n_tables} tables "
                f"but {len(hash_functions)} hash functions were found"
            )
        if hash_functions[0].dimension != metadata.get("dimension"):
            raise DataError(
                f"Stored hash dimension {hash_functions[0].dimension} "
                f"does not match index dimension {metadata.get('dimension')}"
            )

        tables: list[dict[HashKey, set[int]]] = [{} for _ in range(n_tables)]
        cursor.execute("SELECT table_id, hash_key, point_id FROM lsh_buckets")
        for row in cursor.fetchall():
            if not 0 <= row["table_id"] < n_tables:
                raise DataError(f"Bucket row refers to unknown table {row['table_id']}")
            tables[row["table_id"]].setdefault(decode_key(row["hash_key"]), set()).add(row["point_id"])

        logger.info("Loaded LSH index (%d tables) from %s", n_tables, self.db_path)
        return LSHIndex(hash_functions, tables, metadata["n_points"])

    def _delete_all(self, cursor: sqlite3.Cursor) -> None:
        cursor.execute("DELETE FROM lsh_buckets")
        cursor.execute("DELETE FROM hash_functions")
        cursor.execute("DELETE FROM metadata")

    def clear(self) -> "IndexStore":
        """
        Remove the stored index.

        Returns:
            self for method chaining.
        """
        conn = self._get_conn()
        self._delete_all(conn.cursor())
        conn.commit()
        return self

    def close(self) -> None:
        """Close the database connection."""
        if hasattr(self._local, "conn"):
            self._local.conn.close()
            delattr(self._local, "conn")

    def __enter__(self) -> "IndexStore":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
