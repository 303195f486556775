"""Similarity search over book-summary embeddings."""

from bookvec.search.similarity import SearchConfig, query

__all__ = ["SearchConfig", "query"]
