"""bookvec database layer."""

from bookvec.db.connection import Database
from bookvec.db.migrations import MIGRATIONS, run_migrations
from bookvec.db.repository import Repository
from bookvec.db.schema import initialize, prepare_store
from bookvec.db.vectors import ensure_vec_table, model_to_slug, vec_table_name

__all__ = [
    "Database",
    "Repository",
    "initialize",
    "prepare_store",
    "run_migrations",
    "MIGRATIONS",
    "ensure_vec_table",
    "model_to_slug",
    "vec_table_name",
]
