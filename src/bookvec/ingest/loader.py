"""Incremental, resumable loading of metadata and embeddings.

Per record:  UNSEEN → CHECKED_PRESENT (skip)
             UNSEEN → CHECKED_ABSENT → EMBEDDED → STORED

Every id is checked against the vector table before any embedding work, so
re-running over the same corpus computes nothing for books already stored.
An interrupted run leaves only complete rows behind; the next run picks up
whatever is missing. The table's primary key settles races between
concurrent runs: the losing insert is reported and dropped.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from bookvec.corpus.extractor import DEFAULT_METADATA_DIR
from bookvec.corpus.walker import CorpusWalker, IdRange
from bookvec.db.models import BookMetadata, EmbeddingRecord
from bookvec.db.repository import Repository
from bookvec.embedding.oracle import OracleFactory
from bookvec.embedding.pool import DEFAULT_BATCH_SIZE, EmbeddingWorkerPool, batched
from bookvec.errors import BookvecError, OracleUnavailable, RowWriteFailed, StoreUnavailable

logger = logging.getLogger(__name__)


@dataclass
class LoadReport:
    """Outcome of one loader run.

    Attributes:
        scanned: Records produced by the walker (successful extractions).
        already_present: Records skipped because their row already existed.
        duplicates: Records skipped because their id was already queued this run.
        embedded: Vectors computed in this run.
        stored: Rows inserted in this run.
        failures: Per-item errors (walk, inference, row write), in encounter order.
    """

    scanned: int = 0
    already_present: int = 0
    duplicates: int = 0
    embedded: int = 0
    stored: int = 0
    failures: list[BookvecError] = field(default_factory=list)


class IncrementalLoader:
    """Drive corpus records through existence checks, embedding and storage.

    Args:
        repo: Open Repository (schema initialised, vector table created).
        vec_table: Vector table for the embedding model in use.
        oracle_factory: Builds one embedding handle per worker thread.
        batch_size: Records per embedding batch.
        workers: Worker threads (None = CPU count).
        extension: Record file extension.
        metadata_dir: Where YAML snapshots go when ``write_metadata`` is set.
        on_batch: Called as ``on_batch(done, total)`` after each batch is stored.
    """

    def __init__(
        self,
        repo: Repository,
        vec_table: str,
        oracle_factory: OracleFactory,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        workers: int | None = None,
        extension: str = "rdf",
        metadata_dir: Path | str = DEFAULT_METADATA_DIR,
        on_batch: Callable[[int, int], None] | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._repo = repo
        self._vec_table = vec_table
        self._factory = oracle_factory
        self._batch_size = batch_size
        self._workers = workers
        self._extension = extension
        self._metadata_dir = Path(metadata_dir)
        self._on_batch = on_batch

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------

    def load(
        self,
        root: Path | str,
        id_range: IdRange | None = None,
        *,
        write_metadata: bool = False,
    ) -> LoadReport:
        """Embed and store every book under *root* that has no vector yet.

        Raises:
            WalkIoError: *root* cannot be listed.
            StoreUnavailable: An existence check failed.
            OracleUnavailable: No worker could build an embedding handle.
        """
        report = LoadReport()
        backlog = self.backlog(self._walker(root, id_range, write_metadata), report)
        logger.info(
            "%d records scanned, %d already embedded, %d to embed",
            report.scanned, report.already_present, len(backlog),
        )
        if not backlog:
            return report

        done = 0
        with EmbeddingWorkerPool(self._factory, self._workers) as pool:
            for batch in batched(backlog, self._batch_size):
                result = pool.embed_batch(batch)
                if result.handles_unavailable:
                    raise OracleUnavailable(
                        f"No embedding handle could be built: {result.failures[0]}"
                    )
                report.failures.extend(result.failures)
                report.embedded += len(result.records)
                for record in result.records:
                    self._store_embedding(record, report)
                done += len(batch)
                logger.info("Completed batch of %d items", len(batch))
                if self._on_batch is not None:
                    self._on_batch(done, len(backlog))
        return report

    def backlog(self, walker: CorpusWalker, report: LoadReport) -> list[BookMetadata]:
        """Collect walker records whose id has no vector row yet.

        Each id is queued at most once per run; later records with the same
        id are logged and counted as duplicates.
        """
        pending: list[BookMetadata] = []
        seen: set[int] = set()
        for item in walker:
            if not item.ok:
                report.failures.append(item.error)
                continue
            report.scanned += 1
            book = item.metadata
            if book.id in seen:
                logger.warning("Book %d already queued this run, skipping %s", book.id, item.path)
                report.duplicates += 1
                continue
            seen.add(book.id)
            if self._exists(book.id):
                logger.info("Already embedded book %d", book.id)
                report.already_present += 1
                continue
            pending.append(book)
        return pending

    def _exists(self, book_id: int) -> bool:
        try:
            return self._repo.has_embedding(self._vec_table, book_id)
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Existence check failed for book {book_id}: {exc}") from exc

    def _store_embedding(self, record: EmbeddingRecord, report: LoadReport) -> None:
        try:
            self._repo.add_embedding(self._vec_table, record.id, record.vector)
        except sqlite3.Error as exc:
            self._repo.conn.rollback()
            failure = RowWriteFailed(record.id, exc)
            logger.warning("%s", failure)
            report.failures.append(failure)
            return
        report.stored += 1

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def load_metadata(
        self,
        root: Path | str,
        id_range: IdRange | None = None,
        *,
        write_metadata: bool = False,
    ) -> LoadReport:
        """Insert a metadata row for every book under *root*.

        No existence pre-check: a row that already exists is rejected by the
        primary key, reported and skipped.
        """
        report = LoadReport()
        for item in self._walker(root, id_range, write_metadata):
            if not item.ok:
                report.failures.append(item.error)
                continue
            report.scanned += 1
            book = item.metadata
            try:
                self._repo.add_metadata(book)
            except sqlite3.Error as exc:
                self._repo.conn.rollback()
                failure = RowWriteFailed(book.id, exc)
                logger.warning("%s", failure)
                report.failures.append(failure)
                continue
            report.stored += 1
        return report

    def _walker(
        self, root: Path | str, id_range: IdRange | None, write_metadata: bool
    ) -> CorpusWalker:
        return CorpusWalker(
            root,
            id_range,
            extension=self._extension,
            write_metadata=write_metadata,
            metadata_dir=self._metadata_dir,
        )
