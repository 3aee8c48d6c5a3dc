"""
Index persistence using SQLite.

This module stores a built LSHIndex (hash functions and buckets) in a SQLite
database file so it can be reused without rebuilding.
"""

from lshsearch.storage.sqlite import IndexStore

__all__ = ["IndexStore"]
