"""
Exact neighbor search by full scan, used to check LSH results.
"""

import math
from typing import Optional, Union

import numpy as np

from lshsearch.errors import DataError
from lshsearch.index import as_corpus
from lshsearch.metrics import Metric, euclidean, get_metric


def pairwise_distances(corpus: np.ndarray, metric: Union[str, Metric] = euclidean) -> np.ndarray:
    """
    Compute the full (n_points, n_points) distance matrix.

    Euclidean distances are computed in one vectorized pass; other metrics are
    called once per pair.
    """
    metric = get_metric(metric)
    corpus = as_corpus(corpus)
    n_points = len(corpus)

    if metric is euclidean:
        # |a - b|^2 = |a|^2 + |b|^2 - 2 a.b, clipped at 0 against rounding
        points = corpus.astype(np.float64)
        squared_norms = np.einsum("ij,ij->i", points, points)
        squared = squared_norms[:, None] + squared_norms[None, :] - 2.0 * (points @ points.T)
        np.maximum(squared, 0.0, out=squared)
        np.fill_diagonal(squared, 0.0)
        return np.sqrt(squared)

    distances = np.zeros((n_points, n_points), dtype=np.float64)
    for i in range(n_points):
        for j in range(i + 1, n_points):
            distances[i, j] = distances[j, i] = metric(corpus[i], corpus[j])
    return distances


def brute_force_neighbors(
    corpus: np.ndarray,
    metric: Union[str, Metric],
    query_index: int,
    max_distance: float = math.inf,
    max_neighbors: Optional[int] = None,
) -> list[int]:
    """
    Return every point within max_distance of a corpus point.

    Args:
        corpus: 2D array of shape (n_points, dimension).
        metric: Distance callable or metric name.
        query_index: Row of the query point; it is excluded from the result.
        max_distance: Strict upper bound on the distance.
        max_neighbors: Keep only the closest max_neighbors points.

    Returns:
        Point indices sorted by distance, ties broken by index.
    """
    metric = get_metric(metric)
    corpus = as_corpus(corpus)
    if not 0 <= query_index < len(corpus):
        raise DataError(
            f"Query index {query_index!r} is out of range for corpus of {len(corpus)} points"
        )

    query = corpus[query_index]
    scored = []
    for point_id, point in enumerate(corpus):
        if point_id == query_index:
            continue
        distance = metric(point, query)
        if distance < max_distance:
            scored.append((distance, point_id))

    scored.sort()
    neighbors = [point_id for _, point_id in scored]
    if max_neighbors is not None:
        neighbors = neighbors[:max_neighbors]
    return neighbors
