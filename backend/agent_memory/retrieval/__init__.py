"""Retrieval components: hybrid ranking and the search index."""

from .base import SearchIndex
from .hybrid import bm25_rank, normalize_score
from .search import SQLiteSearchIndex
from .vector_index import VectorIndex

__all__ = [
    "SearchIndex",
    "SQLiteSearchIndex",
    "VectorIndex",
    "bm25_rank",
    "normalize_score",
]
