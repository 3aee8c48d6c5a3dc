"""
Exceptions raised by lshsearch.

Both concrete errors subclass ValueError, so callers that already catch
ValueError for bad input keep working.
"""


class LSHError(Exception):
    """Base class for errors raised by lshsearch."""


class ConfigurationError(LSHError, ValueError):
    """Invalid index or query parameters (L, w, k, d, empty corpus, limits)."""


class DataError(LSHError, ValueError):
    """Input data that does not fit the index (dimensions, indices, stored state)."""
