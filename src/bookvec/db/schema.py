"""Schema initialization: relational tables plus the per-model vector table."""

from __future__ import annotations

import sqlite3

from bookvec.db.migrations import run_migrations
from bookvec.db.vectors import ensure_vec_table
from bookvec.errors import StoreUnavailable

METADATA_TABLE = "book_metadata"


def initialize(conn: sqlite3.Connection) -> None:
    """Create the relational schema via the migration runner (idempotent).

    Raises:
        StoreUnavailable: If any DDL statement fails.
    """
    try:
        run_migrations(conn)
    except sqlite3.Error as exc:
        raise StoreUnavailable(f"Schema setup failed: {exc}") from exc


def prepare_store(conn: sqlite3.Connection, model: str, dimensions: int) -> str:
    """Initialize the schema and the vector table for *model*. Returns the table name.

    Every statement uses "if not exists" semantics, so repeated runs are safe.
    """
    initialize(conn)
    try:
        return ensure_vec_table(conn, model, dimensions)
    except sqlite3.Error as exc:
        raise StoreUnavailable(f"Vector table setup failed: {exc}") from exc
