"""Repository pattern for all bookvec database operations.

Single interface for: book metadata rows, vector rows, existence checks and
nearest-neighbour search. Vector tables are model-managed (ensure_vec_table);
the repository handles read + write.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Sequence

from bookvec.db.models import BookMetadata, ScoredBook


class Repository:
    """Data access layer for metadata and embedding rows.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use. sqlite3 errors propagate; the loader decides
    which of them are per-row and which are fatal.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see bookvec.db.schema.initialize).
        """
        self._conn = conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # Book metadata
    # ------------------------------------------------------------------

    def add_metadata(self, book: BookMetadata) -> None:
        """Insert one metadata row. A duplicate id raises sqlite3.IntegrityError."""
        self._conn.execute(
            """
            INSERT INTO book_metadata (id, title, author, birthyear, deathyear, summary)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                book.id,
                book.title,
                book.author,
                book.birthyear,
                book.deathyear,
                book.summary,
            ),
        )
        self._conn.commit()

    def get_metadata(self, book_id: int) -> BookMetadata | None:
        """Return the metadata row for *book_id*, or None if not found."""
        row = self._conn.execute(
            "SELECT id, title, author, birthyear, deathyear, summary FROM book_metadata WHERE id = ?",
            (book_id,),
        ).fetchone()
        return _row_to_metadata(row) if row else None

    def count_metadata(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM book_metadata").fetchone()[0]

    # ------------------------------------------------------------------
    # Vector rows
    # ------------------------------------------------------------------

    def has_embedding(self, table: str, book_id: int) -> bool:
        """Existence check keyed by book id."""
        row = self._conn.execute(
            f"SELECT EXISTS(SELECT 1 FROM {table} WHERE rowid = ?)", (book_id,)
        ).fetchone()
        return bool(row[0])

    def add_embedding(self, table: str, book_id: int, embedding: Sequence[float]) -> None:
        """Insert an embedding with rowid = book id. A duplicate id raises."""
        self._conn.execute(
            f"INSERT INTO {table}(rowid, embedding) VALUES (?, ?)",
            (book_id, json.dumps([float(x) for x in embedding])),
        )
        self._conn.commit()

    def count_embeddings(self, table: str) -> int:
        return self._conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]

    def search_vec(
        self, table: str, embedding: Sequence[float], limit: int = 3
    ) -> list[ScoredBook]:
        """Nearest-neighbour search joined to metadata, nearest first.

        Hits with no metadata row are dropped.
        """
        vec_rows = self._conn.execute(
            f"SELECT rowid, distance FROM {table} WHERE embedding MATCH ? AND k = ? ORDER BY distance",
            (json.dumps([float(x) for x in embedding]), limit),
        ).fetchall()

        results: list[ScoredBook] = []
        for vec_row in vec_rows:
            book = self.get_metadata(vec_row["rowid"])
            if book is not None:
                results.append(ScoredBook(book=book, distance=vec_row["distance"]))
        return results

    # ------------------------------------------------------------------
    # Embedding model registry
    # ------------------------------------------------------------------

    def list_embedding_models(self) -> list[tuple[str, str, int]]:
        """Return [(slug, model, dimensions), ...] ordered by registration time."""
        rows = self._conn.execute(
            "SELECT slug, model, dimensions FROM embedding_models ORDER BY created_at, slug"
        ).fetchall()
        return [(r["slug"], r["model"], r["dimensions"]) for r in rows]


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_metadata(row: sqlite3.Row) -> BookMetadata:
    return BookMetadata(
        id=row["id"],
        title=row["title"],
        author=row["author"],
        birthdate="" if row["birthyear"] is None else str(row["birthyear"]),
        deathdate="" if row["deathyear"] is None else str(row["deathyear"]),
        summary=row["summary"] or "",
    )
