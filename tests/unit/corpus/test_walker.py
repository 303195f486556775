"""Tests for bookvec.corpus.walker."""

from __future__ import annotations

from pathlib import Path

import pytest

from bookvec.corpus.walker import CorpusWalker, in_range
from bookvec.errors import MalformedRecord, WalkIoError


def _ids(results) -> set[int]:
    return {r.metadata.id for r in results if r.ok}


# ---------------------------------------------------------------------------
# in_range
# ---------------------------------------------------------------------------


def test_in_range_none_accepts_all() -> None:
    assert in_range(0, None)
    assert in_range(10**9, None)


def test_in_range_inclusive_bounds() -> None:
    assert in_range(1, (1, 5))
    assert in_range(5, (1, 5))
    assert not in_range(0, (1, 5))
    assert not in_range(6, (1, 5))


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def test_walk_yields_every_record(corpus: Path, write_book) -> None:
    for book_id in (1, 2, 3):
        write_book(corpus, book_id)
    results = list(CorpusWalker(corpus))
    assert len(results) == 3
    assert _ids(results) == {1, 2, 3}
    assert all(r.ok for r in results)


def test_walk_range_filter(corpus: Path, write_book) -> None:
    for book_id in (1, 5, 10, 11):
        write_book(corpus, book_id)
    assert _ids(CorpusWalker(corpus, (5, 10))) == {5, 10}


def test_walk_skips_non_numeric_directories(corpus: Path, write_book) -> None:
    write_book(corpus, 4)
    other = corpus / "cache"
    other.mkdir()
    (other / "pg99.rdf").write_bytes(b"ignored")
    assert _ids(CorpusWalker(corpus)) == {4}


def test_walk_skips_files_at_root(corpus: Path, write_book) -> None:
    write_book(corpus, 4)
    (corpus / "12").write_text("a file named like an id", encoding="utf-8")
    results = list(CorpusWalker(corpus))
    assert _ids(results) == {4}
    assert len(results) == 1


def test_walk_skips_other_extensions(corpus: Path, write_book) -> None:
    path = write_book(corpus, 8)
    (path.parent / "pg8.txt").write_text("plain text", encoding="utf-8")
    (path.parent / "cover.jpg").write_bytes(b"\xff\xd8")
    results = list(CorpusWalker(corpus))
    assert len(results) == 1
    assert results[0].path == path


def test_walk_custom_extension(corpus: Path, record_bytes) -> None:
    directory = corpus / "6"
    directory.mkdir()
    (directory / "pg6.xml").write_bytes(record_bytes(6))
    assert _ids(CorpusWalker(corpus, extension="xml")) == {6}
    assert _ids(CorpusWalker(corpus)) == set()


def test_walk_bad_record_reported_and_walk_continues(corpus: Path, write_book) -> None:
    write_book(corpus, 1)
    bad = write_book(corpus, 2, content=b"<<< broken")
    write_book(corpus, 3)

    results = list(CorpusWalker(corpus))
    assert len(results) == 3
    failures = [r for r in results if not r.ok]
    assert len(failures) == 1
    assert failures[0].path == bad
    assert isinstance(failures[0].error, MalformedRecord)
    assert _ids(results) == {1, 3}


def test_walk_empty_root(corpus: Path) -> None:
    walker = CorpusWalker(corpus)
    assert walker.exhausted
    assert list(walker) == []


def test_walk_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(WalkIoError):
        CorpusWalker(tmp_path / "does-not-exist")


def test_walk_is_lazy(corpus: Path, write_book) -> None:
    for book_id in (1, 2):
        write_book(corpus, book_id)
    walker = CorpusWalker(corpus)
    first = next(walker)
    assert first.ok
    assert not walker.exhausted
    rest = list(walker)
    assert len(rest) == 1
    assert walker.exhausted


def test_walk_exhausted_stays_exhausted(corpus: Path, write_book) -> None:
    write_book(corpus, 1)
    walker = CorpusWalker(corpus)
    list(walker)
    with pytest.raises(StopIteration):
        next(walker)


def test_walk_writes_snapshots(tmp_path: Path, corpus: Path, write_book) -> None:
    write_book(corpus, 11)
    meta_dir = tmp_path / "meta"
    list(CorpusWalker(corpus, write_metadata=True, metadata_dir=meta_dir))
    assert (meta_dir / "book_metadata_11.yaml").exists()
