"""Lazy traversal of a two-level corpus tree.

Layout::

    root/
      42/pg42.rdf
      1342/pg1342.rdf

The walker keeps a queue of pending book directories plus a cursor into the
listing of the directory being read. Each advance either yields one
WalkResult or moves to the next directory; when both are empty the walker
is exhausted. Directories are visited in listing order, not id order.
"""

from __future__ import annotations

import logging
import os
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from bookvec.corpus.extractor import DEFAULT_METADATA_DIR, extract
from bookvec.db.models import BookMetadata
from bookvec.errors import ExtractionError, WalkError, WalkIoError

logger = logging.getLogger(__name__)

IdRange = tuple[int, int]


@dataclass(frozen=True)
class WalkResult:
    """One walker item: either metadata or the error that replaced it."""

    path: Path
    metadata: BookMetadata | None = None
    error: WalkError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def in_range(book_id: int, id_range: IdRange | None) -> bool:
    """Inclusive range test; ``None`` accepts every id."""
    if id_range is None:
        return True
    start, end = id_range
    return start <= book_id <= end


class CorpusWalker:
    """Iterate over every record file under *root* as WalkResult items.

    Args:
        root: Corpus root holding one numeric subdirectory per book.
        id_range: Optional inclusive ``(start, end)`` filter on directory ids.
        extension: Record file extension (without the dot).
        write_metadata: Write a YAML snapshot for each extracted record.
        metadata_dir: Where snapshots go.

    Raises:
        WalkIoError: If *root* cannot be listed.
    """

    def __init__(
        self,
        root: Path | str,
        id_range: IdRange | None = None,
        *,
        extension: str = "rdf",
        write_metadata: bool = False,
        metadata_dir: Path | str = DEFAULT_METADATA_DIR,
    ) -> None:
        self.root = Path(root)
        self.id_range = id_range
        self.suffix = "." + extension.lstrip(".")
        self.write_metadata = write_metadata
        self.metadata_dir = Path(metadata_dir)

        self.pending: deque[Path] = deque(self._discover())
        self._current: Iterator[os.DirEntry[str]] | None = None
        self.exhausted = not self.pending

    def _discover(self) -> list[Path]:
        try:
            with os.scandir(self.root) as entries:
                found = []
                for entry in entries:
                    if not entry.name.isascii() or not entry.name.isdigit():
                        continue
                    if not entry.is_dir():
                        continue
                    if in_range(int(entry.name), self.id_range):
                        found.append(Path(entry.path))
        except OSError as exc:
            raise WalkIoError(f"Cannot list corpus root '{self.root}': {exc}", self.root) from exc
        return found

    def __iter__(self) -> Iterator[WalkResult]:
        return self

    def __next__(self) -> WalkResult:
        while not self.exhausted:
            if self._current is None:
                if not self.pending:
                    self.exhausted = True
                    break
                failure = self._open_next_dir()
                if failure is not None:
                    return failure
                continue

            entry = next(self._current, None)
            if entry is None:
                self._current = None
                continue
            if Path(entry.name).suffix != self.suffix or not entry.is_file():
                continue
            return self._read(Path(entry.path))

        raise StopIteration

    def _open_next_dir(self) -> WalkResult | None:
        directory = self.pending.popleft()
        try:
            # Listing is materialized so no directory handle stays open between advances.
            with os.scandir(directory) as entries:
                self._current = iter(list(entries))
        except OSError as exc:
            logger.warning("Cannot list %s: %s", directory, exc)
            return WalkResult(
                path=directory,
                error=WalkIoError(f"Cannot list '{directory}': {exc}", directory),
            )
        return None

    def _read(self, path: Path) -> WalkResult:
        logger.debug("Processing file: %s", path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            return WalkResult(path=path, error=WalkIoError(f"Cannot read '{path}': {exc}", path))
        try:
            metadata = extract(
                data,
                path.name,
                write_metadata=self.write_metadata,
                metadata_dir=self.metadata_dir,
            )
        except ExtractionError as exc:
            logger.warning("Failed to process record file %s: %s", path, exc)
            return WalkResult(path=path, error=exc)
        return WalkResult(path=path, metadata=metadata)
