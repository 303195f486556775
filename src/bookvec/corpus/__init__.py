"""Corpus traversal and record extraction."""

from bookvec.corpus.extractor import book_id_from_filename, extract, normalize_summary
from bookvec.corpus.walker import CorpusWalker, WalkResult

__all__ = [
    "CorpusWalker",
    "WalkResult",
    "book_id_from_filename",
    "extract",
    "normalize_summary",
]
