"""Domain models for the bookvec database layer."""

from __future__ import annotations

import re
from dataclasses import dataclass

_YEAR_RE = re.compile(r"[+-]?[0-9]+")


def parse_year(raw: str | None) -> int | None:
    """Return *raw* as an integer year, or None when it is not a plain integer."""
    if raw is None:
        return None
    if not _YEAR_RE.fullmatch(raw):
        return None
    return int(raw)


@dataclass(frozen=True)
class BookMetadata:
    """Metadata extracted from one record file.

    ``birthdate`` and ``deathdate`` keep the raw literal text from the record;
    ``birthyear`` and ``deathyear`` are their integer views.
    """

    id: int
    title: str = ""
    author: str = ""
    birthdate: str = ""
    deathdate: str = ""
    summary: str = ""

    @property
    def birthyear(self) -> int | None:
        return parse_year(self.birthdate)

    @property
    def deathyear(self) -> int | None:
        return parse_year(self.deathdate)


@dataclass(frozen=True)
class EmbeddingRecord:
    id: int
    vector: list[float]


@dataclass
class ScoredBook:
    """A similarity-query hit. Lower distance = closer."""

    book: BookMetadata
    distance: float
