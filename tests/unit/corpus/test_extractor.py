"""Tests for bookvec.corpus.extractor."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import yaml

from bookvec.corpus.extractor import (
    BOILERPLATE,
    book_id_from_filename,
    extract,
    normalize_summary,
    write_snapshot,
)
from bookvec.db.models import BookMetadata
from bookvec.errors import ExtractionError, InvalidId, MalformedRecord

_TITLE_ONLY = b"""<?xml version="1.0" encoding="utf-8"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
  xmlns:dcterms="http://purl.org/dc/terms/">
  <rdf:Description rdf:about="http://www.gutenberg.org/ebooks/7">
    <dcterms:title>Only a Title</dcterms:title>
  </rdf:Description>
</rdf:RDF>
"""

_CREATOR_AND_ILLUSTRATOR = b"""<?xml version="1.0" encoding="utf-8"?>
<rdf:RDF xml:base="http://www.gutenberg.org/"
  xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
  xmlns:dcterms="http://purl.org/dc/terms/"
  xmlns:marcrel="http://id.loc.gov/vocabulary/relators/"
  xmlns:pgterms="http://www.gutenberg.org/2009/pgterms/">
  <pgterms:ebook rdf:about="ebooks/42">
    <dcterms:title>Sample</dcterms:title>
    <marcrel:ill>
      <pgterms:agent rdf:about="2009/agents/2">
        <pgterms:name>Drawer, B.</pgterms:name>
        <pgterms:birthdate rdf:datatype="http://www.w3.org/2001/XMLSchema#integer">1900</pgterms:birthdate>
        <pgterms:deathdate rdf:datatype="http://www.w3.org/2001/XMLSchema#integer">1950</pgterms:deathdate>
      </pgterms:agent>
    </marcrel:ill>
    <dcterms:creator>
      <pgterms:agent rdf:about="2009/agents/1">
        <pgterms:name>Writer, A.</pgterms:name>
        <pgterms:birthdate rdf:datatype="http://www.w3.org/2001/XMLSchema#integer">1800</pgterms:birthdate>
        <pgterms:deathdate rdf:datatype="http://www.w3.org/2001/XMLSchema#integer">1850</pgterms:deathdate>
      </pgterms:agent>
    </dcterms:creator>
  </pgterms:ebook>
</rdf:RDF>
"""

_TWO_CREATORS = b"""<?xml version="1.0" encoding="utf-8"?>
<rdf:RDF xml:base="http://www.gutenberg.org/"
  xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
  xmlns:dcterms="http://purl.org/dc/terms/"
  xmlns:pgterms="http://www.gutenberg.org/2009/pgterms/">
  <pgterms:ebook rdf:about="ebooks/42">
    <dcterms:title>Joint Work</dcterms:title>
    <dcterms:creator>
      <pgterms:agent rdf:about="2009/agents/9">
        <pgterms:name>Zulu, Z.</pgterms:name>
        <pgterms:birthdate rdf:datatype="http://www.w3.org/2001/XMLSchema#integer">1650</pgterms:birthdate>
        <pgterms:deathdate rdf:datatype="http://www.w3.org/2001/XMLSchema#integer">1900</pgterms:deathdate>
      </pgterms:agent>
    </dcterms:creator>
    <dcterms:creator>
      <pgterms:agent rdf:about="2009/agents/3">
        <pgterms:name>Alpha, A.</pgterms:name>
        <pgterms:birthdate rdf:datatype="http://www.w3.org/2001/XMLSchema#integer">1700</pgterms:birthdate>
        <pgterms:deathdate rdf:datatype="http://www.w3.org/2001/XMLSchema#integer">1760</pgterms:deathdate>
      </pgterms:agent>
    </dcterms:creator>
  </pgterms:ebook>
</rdf:RDF>
"""


# ---------------------------------------------------------------------------
# book_id_from_filename
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("pg42.rdf", 42),
        ("pg1342.rdf", 1342),
        ("pg42", 42),
        (Path("/corpus/42/pg42.rdf"), 42),
    ],
)
def test_book_id_from_filename(name, expected) -> None:
    assert book_id_from_filename(name) == expected


@pytest.mark.parametrize("name", ["book42.rdf", "pg.rdf", "pgabc.rdf", "pg0.rdf", "pg-3.rdf", "42.rdf"])
def test_book_id_from_filename_rejects(name) -> None:
    with pytest.raises(InvalidId):
        book_id_from_filename(name)


# ---------------------------------------------------------------------------
# normalize_summary
# ---------------------------------------------------------------------------


def test_normalize_summary_removes_quotes_and_boilerplate() -> None:
    raw = f'  "A tale of two cities." {BOILERPLATE}  '
    assert normalize_summary(raw) == "A tale of two cities."


def test_normalize_summary_backslash_becomes_quote() -> None:
    assert normalize_summary("He said \\hi\\ twice") == 'He said "hi" twice'


def test_normalize_summary_empty() -> None:
    assert normalize_summary("") == ""


# ---------------------------------------------------------------------------
# extract
# ---------------------------------------------------------------------------


def test_extract_full_record(record_bytes) -> None:
    data = record_bytes(
        42,
        title="Pride and Prejudice",
        author="Austen, Jane",
        birth=1775,
        death=1817,
        summary=f"A novel of manners. {BOILERPLATE}",
    )
    meta = extract(data, "pg42.rdf")

    assert meta == BookMetadata(
        id=42,
        title="Pride and Prejudice",
        author="Austen, Jane",
        birthdate="1775",
        deathdate="1817",
        summary="A novel of manners.",
    )
    assert meta.birthyear == 1775
    assert meta.deathyear == 1817


def test_extract_end_to_end_example(record_bytes) -> None:
    data = record_bytes(
        42,
        title="Sample",
        author="A. Writer",
        birth=1800,
        death=1850,
        summary=f'"A tale. {BOILERPLATE}"',
    )
    meta = extract(data, "pg42")
    assert (meta.id, meta.title, meta.author, meta.summary) == (42, "Sample", "A. Writer", "A tale.")
    assert (meta.birthyear, meta.deathyear) == (1800, 1850)


def test_extract_author_comes_from_creator_not_illustrator() -> None:
    meta = extract(_CREATOR_AND_ILLUSTRATOR, "pg42.rdf")
    assert (meta.author, meta.birthyear, meta.deathyear) == ("Writer, A.", 1800, 1850)
    assert meta.title == "Sample"


def test_extract_several_creators_picks_one_agent_consistently() -> None:
    first = extract(_TWO_CREATORS, "pg42.rdf")
    again = extract(_TWO_CREATORS, "pg42.rdf")
    assert first == again
    # name and dates always come from the same agent
    assert (first.author, first.birthyear, first.deathyear) == ("Alpha, A.", 1700, 1760)


def test_extract_negative_birth_year(record_bytes) -> None:
    meta = extract(record_bytes(5, birth=-500, death=-430), "pg5.rdf")
    assert meta.birthdate == "-500"
    assert meta.birthyear == -500


def test_extract_strips_quotes_from_title_and_author(record_bytes) -> None:
    meta = extract(record_bytes(3, title='The "Best" Book', author='"Anon"'), "pg3.rdf")
    assert meta.title == "The Best Book"
    assert meta.author == "Anon"


def test_extract_missing_fields_default_to_empty() -> None:
    meta = extract(_TITLE_ONLY, "pg7.rdf")
    assert meta.id == 7
    assert meta.title == "Only a Title"
    assert meta.author == ""
    assert meta.summary == ""
    assert meta.birthyear is None
    assert meta.deathyear is None


def test_extract_malformed_bytes() -> None:
    with pytest.raises(MalformedRecord) as exc_info:
        extract(b"<rdf:RDF this is not xml", "pg9.rdf")
    assert isinstance(exc_info.value, ExtractionError)
    assert exc_info.value.path == Path("pg9.rdf")


def test_extract_invalid_identifier_checked_before_parsing() -> None:
    with pytest.raises(InvalidId):
        extract(b"not even xml", "readme.rdf")


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


def test_extract_writes_snapshot(tmp_path: Path, record_bytes) -> None:
    meta_dir = tmp_path / "meta"
    extract(record_bytes(42, title="T"), "pg42.rdf", write_metadata=True, metadata_dir=meta_dir)

    path = meta_dir / "book_metadata_42.yaml"
    assert path.exists()
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert data["id"] == 42
    assert data["title"] == "T"
    assert data["birthyear"] == "1800"


def test_extract_no_snapshot_by_default(tmp_path: Path, record_bytes, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    extract(record_bytes(42), "pg42.rdf")
    assert not (tmp_path / "data").exists()


def test_extract_snapshot_failure_is_logged_not_raised(
    tmp_path: Path, record_bytes, caplog: pytest.LogCaptureFixture
) -> None:
    blocker = tmp_path / "meta"
    blocker.write_text("not a directory", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="bookvec.corpus.extractor"):
        meta = extract(record_bytes(42), "pg42.rdf", write_metadata=True, metadata_dir=blocker)

    assert meta.id == 42
    assert "Could not write metadata snapshot" in caplog.text


def test_write_snapshot_creates_directory(tmp_path: Path) -> None:
    path = write_snapshot(BookMetadata(id=1, title="X"), tmp_path / "a" / "b")
    assert path == tmp_path / "a" / "b" / "book_metadata_1.yaml"
    assert path.exists()
