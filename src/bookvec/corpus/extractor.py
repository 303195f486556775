"""Metadata extraction from per-book RDF/XML records.

A record file ``pg<ID>.rdf`` is parsed with rdflib and five Gutenberg
predicates are mapped onto BookMetadata fields; everything else in the
graph is ignored. Date literals are kept as raw strings here; integer
parsing happens when rows are written.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import rdflib
import yaml

from bookvec.db.models import BookMetadata
from bookvec.errors import InvalidId, MalformedRecord

logger = logging.getLogger(__name__)

PGTERMS = "http://www.gutenberg.org/2009/pgterms/"
DCTERMS = "http://purl.org/dc/terms/"

AUTHOR = rdflib.URIRef(PGTERMS + "name")
TITLE = rdflib.URIRef(DCTERMS + "title")
BIRTHDATE = rdflib.URIRef(PGTERMS + "birthdate")
DEATHDATE = rdflib.URIRef(PGTERMS + "deathdate")
SUMMARY = rdflib.URIRef(PGTERMS + "marc520")
CREATOR = rdflib.URIRef(DCTERMS + "creator")
EBOOK = rdflib.URIRef(PGTERMS + "ebook")

BOILERPLATE = "(This is an automatically generated summary.)"
FILENAME_PREFIX = "pg"
DEFAULT_METADATA_DIR = Path("data/metadata")

# Relative rdf:about values in Gutenberg records resolve against this base.
_PUBLIC_ID = "http://www.gutenberg.org/"

_DIGITS_RE = re.compile(r"[0-9]+")


def book_id_from_filename(name: str | Path) -> int:
    """Derive the book id from a record file name: ``pg42.rdf`` -> 42.

    Raises:
        InvalidId: If the stem lacks the ``pg`` prefix or the rest is not a
            positive decimal integer.
    """
    stem = Path(name).stem
    if not stem.startswith(FILENAME_PREFIX):
        raise InvalidId(f"File name '{name}' does not start with '{FILENAME_PREFIX}'", name)
    digits = stem[len(FILENAME_PREFIX):]
    if not _DIGITS_RE.fullmatch(digits) or int(digits) == 0:
        raise InvalidId(f"File name '{name}' does not encode a positive book id", name)
    return int(digits)


def normalize_summary(text: str) -> str:
    """Clean a raw summary literal.

    Double quotes are dropped, backslashes become double quotes, the
    auto-summary boilerplate is removed and surrounding whitespace trimmed.
    """
    return (
        text.replace('"', "")
        .replace("\\", '"')
        .replace(BOILERPLATE, "")
        .strip()
    )


def raw_date(term: rdflib.term.Node) -> str:
    """Render a date literal without its datatype: ``"1800"^^<xsd:int>`` -> ``1800``."""
    return term.n3().split("^^", 1)[0].replace('"', "")


def _first_object(
    graph: rdflib.Graph, subject: rdflib.term.Node, predicate: rdflib.URIRef
) -> rdflib.term.Node | None:
    """Smallest object of (subject, predicate, ?) by lexical form, or None."""
    return min(graph.objects(subject, predicate), key=str, default=None)


def _book_node(graph: rdflib.Graph) -> rdflib.term.Node | None:
    """The record's ebook node.

    Records without an ``rdf:type pgterms:ebook`` node fall back to any
    subject carrying a title or summary.
    """
    candidates = set(graph.subjects(rdflib.RDF.type, EBOOK))
    if not candidates:
        candidates = set(graph.subjects(TITLE, None)) | set(graph.subjects(SUMMARY, None))
    return min(candidates, key=lambda node: _node_key(graph, node, (TITLE, SUMMARY)), default=None)


def _author_node(
    graph: rdflib.Graph, book: rdflib.term.Node | None
) -> rdflib.term.Node | None:
    """The agent whose name and dates become the book's author fields.

    Only the ebook's ``dcterms:creator`` agents are considered, so
    illustrators, translators and editors never leak into the author
    fields. A record with no creator link falls back to every named agent.
    Ties between several agents resolve on their literal values, never on
    graph iteration order.
    """
    candidates: set[rdflib.term.Node] = set()
    if book is not None:
        candidates = {
            agent
            for agent in graph.objects(book, CREATOR)
            if (agent, AUTHOR, None) in graph
        }
    if not candidates:
        candidates = set(graph.subjects(AUTHOR, None))
    return min(
        candidates,
        key=lambda node: _node_key(graph, node, (AUTHOR, BIRTHDATE, DEATHDATE)),
        default=None,
    )


def _node_key(
    graph: rdflib.Graph, node: rdflib.term.Node, predicates: tuple[rdflib.URIRef, ...]
) -> tuple[str, ...]:
    # Blank node labels change per parse; only IRIs are stable enough to sort on.
    label = "" if isinstance(node, rdflib.BNode) else str(node)
    values = []
    for predicate in predicates:
        obj = _first_object(graph, node, predicate)
        values.append("" if obj is None else str(obj))
    return (*values, label)


def extract(
    file_bytes: bytes,
    file_identifier: str | Path,
    *,
    write_metadata: bool = False,
    metadata_dir: Path | str = DEFAULT_METADATA_DIR,
) -> BookMetadata:
    """Parse one record file into BookMetadata.

    Args:
        file_bytes: Raw RDF/XML content.
        file_identifier: The record's file name (``pg<ID>.rdf``) or stem.
        write_metadata: Also write a YAML snapshot to *metadata_dir*.
        metadata_dir: Snapshot directory (created if missing).

    Raises:
        InvalidId: The identifier does not encode a book id.
        MalformedRecord: The bytes are not valid RDF/XML.
    """
    book_id = book_id_from_filename(file_identifier)

    graph = rdflib.Graph()
    try:
        graph.parse(data=file_bytes, format="xml", publicID=_PUBLIC_ID)
    except Exception as exc:  # rdflib surfaces SAX, XML and plugin errors alike
        raise MalformedRecord(
            f"Cannot parse record '{file_identifier}': {exc}", file_identifier
        ) from exc

    fields: dict[str, str] = {}
    book = _book_node(graph)
    if book is not None:
        title = _first_object(graph, book, TITLE)
        if title is not None:
            fields["title"] = str(title).replace('"', "")
        summary = _first_object(graph, book, SUMMARY)
        if summary is not None:
            fields["summary"] = normalize_summary(str(summary))

    agent = _author_node(graph, book)
    if agent is not None:
        name = _first_object(graph, agent, AUTHOR)
        birth = _first_object(graph, agent, BIRTHDATE)
        death = _first_object(graph, agent, DEATHDATE)
        if name is not None:
            fields["author"] = str(name).replace('"', "")
        if birth is not None:
            fields["birthdate"] = raw_date(birth)
        if death is not None:
            fields["deathdate"] = raw_date(death)

    metadata = BookMetadata(id=book_id, **fields)

    if write_metadata:
        try:
            path = write_snapshot(metadata, metadata_dir)
        except OSError as exc:
            logger.warning("Could not write metadata snapshot for book %d: %s", book_id, exc)
        else:
            logger.debug("Metadata written to %s", path)

    return metadata


def write_snapshot(metadata: BookMetadata, metadata_dir: Path | str) -> Path:
    """Write *metadata* as ``book_metadata_<id>.yaml`` under *metadata_dir*."""
    directory = Path(metadata_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"book_metadata_{metadata.id}.yaml"
    data = {
        "id": metadata.id,
        "title": metadata.title,
        "author": metadata.author,
        "birthyear": metadata.birthdate,
        "deathyear": metadata.deathdate,
        "summary": metadata.summary,
    }
    path.write_text(
        yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8"
    )
    return path
