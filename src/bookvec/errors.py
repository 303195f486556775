"""Exception hierarchy for the bookvec pipeline.

Per-item errors (bad record, failed inference, rejected row) are collected
and reported; the run carries on. Resource errors (store, model handle,
corpus root) abort the run.
"""

from __future__ import annotations

from pathlib import Path


class BookvecError(Exception):
    """Base class for all bookvec errors."""


# ---------------------------------------------------------------------------
# Corpus traversal
# ---------------------------------------------------------------------------


class WalkError(BookvecError):
    """A single corpus item could not be turned into metadata."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class ExtractionError(WalkError):
    """A record file could not be converted into BookMetadata."""


class InvalidId(ExtractionError):
    """The file name does not encode a positive integer book id."""


class MalformedRecord(ExtractionError):
    """The record bytes could not be parsed as RDF/XML."""


class WalkIoError(WalkError):
    """A directory listing or file read failed."""


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class StoreUnavailable(BookvecError):
    """The store cannot be opened or a required statement failed."""


class RowWriteFailed(BookvecError):
    """A single insert was rejected (duplicate id, bad vector, ...)."""

    def __init__(self, book_id: int, cause: BaseException) -> None:
        super().__init__(f"Could not store row for book {book_id}: {cause}")
        self.book_id = book_id
        self.cause = cause


class NoEmbeddingsError(BookvecError):
    """No vector table exists for the requested embedding model."""


# ---------------------------------------------------------------------------
# Embedding
# ---------------------------------------------------------------------------


class OracleUnavailable(BookvecError):
    """An embedding handle could not be constructed."""


class InferenceFailed(BookvecError):
    """The embedding oracle failed for one book summary."""

    def __init__(self, book_id: int, cause: BaseException) -> None:
        super().__init__(f"Embedding failed for book {book_id}: {cause}")
        self.book_id = book_id
        self.cause = cause
