"""Parallel embedding of book summaries with per-thread model handles.

The pool owns N long-lived worker threads. Each thread builds its own
embedding handle on first use and keeps it for the life of the pool;
handles are never shared or passed between threads. One failing record
never aborts its batch: its error is collected and the other records
still produce vectors.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from itertools import islice
from typing import TypeVar

from bookvec.db.models import BookMetadata, EmbeddingRecord
from bookvec.embedding.oracle import EmbeddingOracle, OracleFactory
from bookvec.errors import BookvecError, InferenceFailed, OracleUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 100


def batched(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive lists of at most *size* items."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    it = iter(items)
    while chunk := list(islice(it, size)):
        yield chunk


@dataclass
class BatchResult:
    """Vectors produced for one batch plus the per-item failures."""

    records: list[EmbeddingRecord] = field(default_factory=list)
    failures: list[BookvecError] = field(default_factory=list)

    @property
    def handles_unavailable(self) -> bool:
        """True when nothing succeeded and every failure was a handle build failure."""
        return (
            not self.records
            and bool(self.failures)
            and all(isinstance(f, OracleUnavailable) for f in self.failures)
        )


class EmbeddingWorkerPool:
    """Bounded thread pool computing one embedding per BookMetadata summary.

    Use as a context manager so the threads (and their handles) are released::

        with EmbeddingWorkerPool(factory) as pool:
            result = pool.embed_batch(records)

    Args:
        oracle_factory: Zero-argument callable returning a new handle.
        workers: Thread count. Defaults to ``os.cpu_count()``.
    """

    def __init__(self, oracle_factory: OracleFactory, workers: int | None = None) -> None:
        self._factory = oracle_factory
        self.workers = workers or os.cpu_count() or 1
        self._local = threading.local()
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()
        self.handles_built = 0

    def __enter__(self) -> EmbeddingWorkerPool:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def start(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.workers, thread_name_prefix="bookvec-embed"
            )
        return self._executor

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Batch processing
    # ------------------------------------------------------------------

    def embed_batch(self, records: Sequence[BookMetadata]) -> BatchResult:
        """Embed every record's summary; completion order, not input order."""
        executor = self.start()
        result = BatchResult()
        futures: list[Future[EmbeddingRecord]] = [
            executor.submit(self._embed_one, record) for record in records
        ]
        for future in as_completed(futures):
            try:
                result.records.append(future.result())
            except (InferenceFailed, OracleUnavailable) as exc:
                logger.warning("%s", exc)
                result.failures.append(exc)
        return result

    def _embed_one(self, record: BookMetadata) -> EmbeddingRecord:
        handle = self._handle()
        try:
            vectors = handle.embed([record.summary])
            vector = [float(x) for x in vectors[0]]
        except Exception as exc:  # the oracle is a black box; any failure drops this item
            raise InferenceFailed(record.id, exc) from exc
        return EmbeddingRecord(id=record.id, vector=vector)

    def _handle(self) -> EmbeddingOracle:
        """Return this thread's handle, building it on first use."""
        handle = getattr(self._local, "handle", None)
        if handle is None:
            try:
                handle = self._factory()
            except OracleUnavailable:
                raise
            except Exception as exc:
                raise OracleUnavailable(f"Cannot build embedding handle: {exc}") from exc
            self._local.handle = handle
            with self._lock:
                self.handles_built += 1
            logger.debug("Embedding handle ready in %s", threading.current_thread().name)
        return handle
