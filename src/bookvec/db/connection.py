"""SQLite connection layer with sqlite-vec extension."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import sqlite_vec

from bookvec.errors import StoreUnavailable

_SQLITE_URL_PREFIXES = ("sqlite:///", "sqlite://")


def db_path_from_url(url: Path | str) -> Path:
    """Turn a store connection string into a database file path.

    Accepts plain paths and ``sqlite:///path`` URLs.
    """
    text = str(url)
    for prefix in _SQLITE_URL_PREFIXES:
        if text.startswith(prefix):
            text = text[len(prefix):]
            break
    if not text:
        raise StoreUnavailable(f"Empty database location: {url!r}")
    return Path(text)


class Database:
    """SQLite store with sqlite-vec vector search support."""

    def __init__(self, db_path: Path | str) -> None:
        """Store the database location. Call connect() to open the connection.

        Args:
            db_path: Path or ``sqlite:///`` URL of the database (created if missing).
        """
        self.db_path = db_path_from_url(db_path)

    def connect(self) -> sqlite3.Connection:
        """Open a connection, load sqlite-vec, and return the connection.

        Raises:
            StoreUnavailable: If the file cannot be opened or sqlite-vec fails to load.
        """
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            conn.enable_load_extension(True)
            sqlite_vec.load(conn)
            conn.enable_load_extension(False)
            conn.execute("PRAGMA journal_mode = WAL")
        except (sqlite3.Error, AttributeError) as exc:
            raise StoreUnavailable(f"Cannot open database '{self.db_path}': {exc}") from exc
        return conn
