"""
Neighbor queries against an LSHIndex.

Tables are walked in order. Every candidate in the query's bucket is checked
with the exact metric, and the scan stops as soon as max_neighbors points
within max_distance have been found. Fewer results than requested (or none)
is a normal outcome of approximate search, not an error.
"""

import logging
import math
from collections.abc import Iterable
from typing import Optional, Union

import numpy as np

from lshsearch.errors import ConfigurationError, DataError
from lshsearch.index import LSHIndex, as_corpus, as_vector, check_corpus_matches
from lshsearch.metrics import Metric, get_metric

logger = logging.getLogger(__name__)


def _validate_limits(max_neighbors: Optional[float], max_distance: float) -> float:
    """Check query limits and return max_neighbors as a number (inf when unbounded)."""
    if max_neighbors is None:
        max_neighbors = math.inf
    elif isinstance(max_neighbors, bool) or not isinstance(max_neighbors, (int, float, np.integer)):
        raise ConfigurationError(f"max_neighbors must be a positive integer, got {max_neighbors!r}")
    elif max_neighbors != math.inf and (max_neighbors <= 0 or int(max_neighbors) != max_neighbors):
        raise ConfigurationError(f"max_neighbors must be a positive integer, got {max_neighbors!r}")

    if math.isnan(max_distance) or max_distance < 0:
        raise ConfigurationError(f"max_distance must be non-negative, got {max_distance!r}")
    return max_neighbors


def _query_corpus(corpus: np.ndarray, index: LSHIndex) -> np.ndarray:
    """Check a corpus against the index; only non-array input is converted."""
    if isinstance(corpus, np.ndarray):
        if corpus.ndim != 2:
            raise DataError(f"Corpus must be 2D array, got shape {corpus.shape}")
    else:
        corpus = as_corpus(corpus)
    check_corpus_matches(corpus, index)
    return corpus


def _scan(
    corpus: np.ndarray,
    index: LSHIndex,
    metric: Metric,
    vector: np.ndarray,
    max_neighbors: float,
    max_distance: float,
    ordered: bool,
    exclude: Optional[int],
) -> set[int]:
    query_keys = index.query_keys(vector)

    neighbors: set[int] = set()
    examined = 0
    for table_id, (table, key) in enumerate(zip(index.tables, query_keys)):
        bucket = table.get(key)
        if bucket is None:
            continue

        candidates: Iterable[int] = sorted(bucket) if ordered else bucket
        for candidate in candidates:
            if candidate == exclude or candidate in neighbors:
                continue
            examined += 1
            if metric(corpus[candidate], vector) < max_distance:
                neighbors.add(candidate)
                if len(neighbors) >= max_neighbors:
                    logger.debug(
                        "Found %d neighbors after %d of %d tables (%d candidates examined)",
                        len(neighbors), table_id + 1, index.n_tables, examined,
                    )
                    return neighbors

    logger.debug(
        "Scanned all %d tables: %d neighbors from %d candidates",
        index.n_tables, len(neighbors), examined,
    )
    return neighbors


def nearest_neighbors(
    corpus: np.ndarray,
    index: LSHIndex,
    metric: Union[str, Metric],
    query_index: int,
    max_neighbors: Optional[float] = None,
    max_distance: float = math.inf,
    ordered: bool = False,
) -> set[int]:
    """
    Find approximate neighbors of a corpus point.

    Args:
        corpus: The corpus the index was built over, shape (n_points, dimension).
        index: An LSHIndex built over corpus.
        metric: Distance callable (a, b) -> float, or a name from METRICS.
        query_index: Row of the query point in corpus. It is never returned.
        max_neighbors: Stop once this many neighbors are found. None or
            math.inf means no cap.
        max_distance: Only points with distance strictly below this are
            returned. Pass math.inf to rely on max_neighbors alone.
        ordered: Scan each bucket in ascending point index, so the result is
            reproducible for a given index. Otherwise bucket order is arbitrary
            and a capped result may differ between runs.

    Returns:
        Set of point indices, unordered and possibly smaller than max_neighbors.

    Raises:
        ConfigurationError: If max_neighbors or max_distance is invalid, or the
            metric name is unknown.
        DataError: If query_index is out of range or corpus does not match index.
    """
    metric = get_metric(metric)
    max_neighbors = _validate_limits(max_neighbors, max_distance)
    corpus = _query_corpus(corpus, index)

    if (
        isinstance(query_index, bool)
        or not isinstance(query_index, (int, np.integer))
        or not 0 <= query_index < len(corpus)
    ):
        raise DataError(
            f"Query index {query_index!r} is out of range for corpus of {len(corpus)} points"
        )
    query_index = int(query_index)

    return _scan(
        corpus, index, metric, corpus[query_index],
        max_neighbors, max_distance, ordered, exclude=query_index,
    )


def neighbors_of_vector(
    corpus: np.ndarray,
    index: LSHIndex,
    metric: Union[str, Metric],
    vector: np.ndarray,
    max_neighbors: Optional[float] = None,
    max_distance: float = math.inf,
    ordered: bool = False,
    exclude: Optional[int] = None,
) -> set[int]:
    """
    Find approximate neighbors of an arbitrary vector.

    Same search as nearest_neighbors(), but the query does not have to be a
    corpus member. Pass exclude to skip one point index (e.g. when the vector
    is a copy of a corpus point).

    Raises:
        DataError: If the vector dimension does not match the index.
    """
    metric = get_metric(metric)
    max_neighbors = _validate_limits(max_neighbors, max_distance)
    corpus = _query_corpus(corpus, index)

    vector = as_vector(vector)
    if vector.shape[0] != index.dimension:
        raise DataError(
            f"Query vector dimension {vector.shape[0]} "
            f"does not match index dimension {index.dimension}"
        )

    return _scan(
        corpus, index, metric, vector,
        max_neighbors, max_distance, ordered, exclude=exclude,
    )
