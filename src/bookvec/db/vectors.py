"""Per-model sqlite-vec virtual table management.

Each embedding model gets its own ``book_vectors_<slug>`` table whose rowid is
the book id. The model string and its dimensions are recorded in
``embedding_models`` so queries never mix vectors from different models.
"""

from __future__ import annotations

import re
import sqlite3


def model_to_slug(model: str) -> str:
    """Convert a provider/model string to a valid table name suffix.

    Examples:
        "onnx/qwen3-embedding-0.6b"     -> "onnx_qwen3_embedding_0_6b"
        "openai/text-embedding-3-small" -> "openai_text_embedding_3_small"
    """
    return re.sub(r"[^a-z0-9]", "_", model.lower())


def vec_table_name(model_slug: str) -> str:
    """Return the full vector table name for a model slug."""
    return f"book_vectors_{model_slug}"


def registered_dimensions(conn: sqlite3.Connection, model_slug: str) -> int | None:
    """Return the dimensions recorded for *model_slug*, or None if unregistered."""
    row = conn.execute(
        "SELECT dimensions FROM embedding_models WHERE slug = ?", (model_slug,)
    ).fetchone()
    return row[0] if row else None


def vec_table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()
    return row is not None


def ensure_vec_table(conn: sqlite3.Connection, model: str, dimensions: int) -> str:
    """Create book_vectors_{slug} for *model* if it doesn't already exist.

    Args:
        conn: Active database connection (sqlite-vec loaded, migrations applied).
        model: Embedding model identifier, e.g. "onnx/qwen3-embedding-0.6b".
        dimensions: Embedding vector dimensions (e.g. 1024).

    Returns:
        The table name (book_vectors_{slug}).

    Raises:
        ValueError: If *dimensions* is invalid or differs from the dimensions
            already registered for *model*.
    """
    if dimensions < 1:
        raise ValueError(f"dimensions must be >= 1, got {dimensions}")

    slug = model_to_slug(model)
    if not slug.strip("_"):
        raise ValueError(f"Invalid embedding model name '{model}'")

    known = registered_dimensions(conn, slug)
    if known is not None and known != dimensions:
        raise ValueError(
            f"Model '{model}' is registered with {known} dimensions, not {dimensions}."
        )

    table = vec_table_name(slug)
    conn.execute(
        f"CREATE VIRTUAL TABLE IF NOT EXISTS {table} "
        f"USING vec0(embedding float[{dimensions}] distance_metric=cosine)"
    )
    conn.execute(
        "INSERT OR IGNORE INTO embedding_models (slug, model, dimensions) VALUES (?, ?, ?)",
        (slug, model, dimensions),
    )
    conn.commit()
    return table
