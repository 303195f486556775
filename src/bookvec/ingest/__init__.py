"""bookvec ingest pipeline — incremental metadata and embedding loader."""

from bookvec.ingest.loader import IncrementalLoader, LoadReport

__all__ = ["IncrementalLoader", "LoadReport"]
