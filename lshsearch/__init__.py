"""
lshsearch - Approximate nearest-neighbor search with locality-sensitive hashing.

lshsearch builds multi-table p-stable LSH indexes (random Gaussian projections
quantized into buckets of width w) over a fixed corpus of vectors, and answers
radius and count limited neighbor queries with an exact distance check.
Built indexes can be persisted to SQLite.
"""

from lshsearch.__version__ import __version__
from lshsearch.baseline import brute_force_neighbors, pairwise_distances
from lshsearch.errors import ConfigurationError, DataError, LSHError
from lshsearch.hashing import ProjectionHash
from lshsearch.index import LSHIndex
from lshsearch.metrics import METRICS, cosine, euclidean, get_metric, manhattan
from lshsearch.query import nearest_neighbors, neighbors_of_vector
from lshsearch.storage import IndexStore

__all__ = [
    "ConfigurationError",
    "DataError",
    "IndexStore",
    "LSHError",
    "LSHIndex",
    "METRICS",
    "ProjectionHash",
    "brute_force_neighbors",
    "cosine",
    "euclidean",
    "get_metric",
    "manhattan",
    "nearest_neighbors",
    "neighbors_of_vector",
    "pairwise_distances",
    "__version__",
]
