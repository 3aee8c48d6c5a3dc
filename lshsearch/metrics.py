"""
Distance metrics for neighbor queries.

A metric is any callable taking two 1D vectors and returning a non-negative
float. The functions below are registered by name in METRICS so that queries
can accept either a callable or a string.
"""

from typing import Callable, Union

import numpy as np

from lshsearch.errors import ConfigurationError

Metric = Callable[[np.ndarray, np.ndarray], float]


def euclidean(a: np.ndarray, b: np.ndarray) -> float:
    """L2 distance between two vectors."""
    return float(np.linalg.norm(np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)))


def manhattan(a: np.ndarray, b: np.ndarray) -> float:
    """L1 distance between two vectors."""
    return float(np.sum(np.abs(np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64))))


def cosine(a: np.ndarray, b: np.ndarray) -> float:
    """
    Cosine distance (1 - cosine similarity).

    A zero vector has similarity 0.0 with everything, so its distance is 1.0.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 1.0
    similarity = float(np.dot(a, b) / (norm_a * norm_b))
    # Rounding can push the similarity slightly outside [-1, 1]
    return max(0.0, 1.0 - similarity)


# Metric registry, looked up by name in get_metric()
METRICS = {
    'euclidean': euclidean,
    'l2': euclidean,
    'manhattan': manhattan,
    'l1': manhattan,
    'cosine': cosine,
}


def get_metric(metric: Union[str, Metric]) -> Metric:
    """
    Resolve a metric given by name or as a callable.

    Args:
        metric: A registered metric name (see METRICS) or a callable.

    Returns:
        The metric callable.

    Raises:
        ConfigurationError: If the name is unknown or the value is not callable.
    """
    if isinstance(metric, str):
        try:
            return METRICS[metric.lower()]
        except KeyError:
            raise ConfigurationError(
                f"Unknown metric '{metric}'. Available: {', '.join(sorted(METRICS))}"
            ) from None
    if not callable(metric):
        raise ConfigurationError(f"Metric must be a name or a callable, got {type(metric).__name__}")
    return metric
