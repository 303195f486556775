"""Shared pytest fixtures."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from bookvec.db.connection import Database
from bookvec.db.schema import initialize


_RECORD_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<rdf:RDF xml:base="http://www.gutenberg.org/"
  xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
  xmlns:dcterms="http://purl.org/dc/terms/"
  xmlns:pgterms="http://www.gutenberg.org/2009/pgterms/">
  <pgterms:ebook rdf:about="ebooks/{id}">
    <dcterms:title>{title}</dcterms:title>
    <pgterms:marc520>{summary}</pgterms:marc520>
    <dcterms:creator>
      <pgterms:agent rdf:about="2009/agents/{id}">
        <pgterms:name>{author}</pgterms:name>
        <pgterms:birthdate rdf:datatype="http://www.w3.org/2001/XMLSchema#integer">{birth}</pgterms:birthdate>
        <pgterms:deathdate rdf:datatype="http://www.w3.org/2001/XMLSchema#integer">{death}</pgterms:deathdate>
      </pgterms:agent>
    </dcterms:creator>
  </pgterms:ebook>
</rdf:RDF>
"""


def make_record(
    book_id: int,
    *,
    title: str = "A Title",
    author: str = "Doe, Jane",
    birth: int = 1800,
    death: int = 1870,
    summary: str = "A short summary.",
) -> bytes:
    """Return RDF/XML bytes for one book record."""
    return _RECORD_TEMPLATE.format(
        id=book_id, title=title, author=author, birth=birth, death=death, summary=summary
    ).encode("utf-8")


def write_record(root: Path, book_id: int, content: bytes | None = None, **fields) -> Path:
    """Write ``root/<id>/pg<id>.rdf`` and return its path."""
    directory = root / str(book_id)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"pg{book_id}.rdf"
    path.write_bytes(content if content is not None else make_record(book_id, **fields))
    return path


class FakeOracle:
    """Deterministic embedder: the vector is derived from the text length."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: list[str] = []

    def embed(self, texts):
        out = []
        for text in texts:
            self.calls.append(text)
            if self.fail_on is not None and self.fail_on in text:
                raise RuntimeError(f"cannot embed {text!r}")
            n = float(len(text) % 7 + 1)
            out.append([n, 1.0, 0.5, 0.25])
        return out


class CountingFactory:
    """Oracle factory that records how many handles were built and by which threads."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.built: list[FakeOracle] = []
        self.threads: list[str] = []
        self._lock = threading.Lock()

    def __call__(self) -> FakeOracle:
        oracle = FakeOracle(self.fail_on)
        with self._lock:
            self.built.append(oracle)
            self.threads.append(threading.current_thread().name)
        return oracle

    @property
    def inference_calls(self) -> int:
        return sum(len(o.calls) for o in self.built)


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".bookvec.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def corpus(tmp_path: Path) -> Path:
    """Empty corpus root directory."""
    root = tmp_path / "corpus"
    root.mkdir()
    return root


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run with cwd = tmp_path, no global config and no BOOKVEC_* env vars."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("bookvec.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    for var in (
        "BOOKVEC_DB",
        "BOOKVEC_CORPUS_ROOT",
        "BOOKVEC_EMBEDDING_MODEL",
        "BOOKVEC_MODEL_PATH",
        "BOOKVEC_TOKENIZER_PATH",
    ):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def record_bytes():
    """``record_bytes(id, **fields)`` → RDF/XML bytes for one book."""
    return make_record


@pytest.fixture
def write_book():
    """``write_book(root, id, content=None, **fields)`` → path of the written record."""
    return write_record


@pytest.fixture
def make_factory():
    """``make_factory(fail_on=None)`` → a CountingFactory of FakeOracle handles."""
    return CountingFactory


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle()
