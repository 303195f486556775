"""Free-text similarity query over stored book-summary vectors.

The query text is embedded with the same model tag that populated the
store; the vector table is named after that tag, so a query configured for
a different model finds no table instead of comparing unrelated vectors.
Results come back nearest-first in the store's cosine distance, without
re-ranking.
"""

from __future__ import annotations

from dataclasses import dataclass

from bookvec.db.models import ScoredBook
from bookvec.db.repository import Repository
from bookvec.db.vectors import model_to_slug, registered_dimensions, vec_table_exists, vec_table_name
from bookvec.embedding.oracle import EmbeddingOracle
from bookvec.errors import NoEmbeddingsError

DEFAULT_TOP_K = 3


@dataclass
class SearchConfig:
    """Configuration for similarity queries.

    Attributes:
        embedding_model: Model tag used at ingest time.
        top_k: Number of nearest books to return.
    """

    embedding_model: str = "onnx/qwen3-embedding-0.6b"
    top_k: int = DEFAULT_TOP_K


def query(
    text: str,
    repo: Repository,
    config: SearchConfig,
    oracle: EmbeddingOracle,
) -> list[ScoredBook]:
    """Return the ``config.top_k`` books nearest to *text*, nearest first.

    Raises:
        NoEmbeddingsError: If no vector table exists for the configured model.
        ValueError: If *text* is blank or the oracle returns a vector of the
            wrong length.
    """
    if not text.strip():
        raise ValueError("Query text must not be empty")

    slug = model_to_slug(config.embedding_model)
    table = vec_table_name(slug)
    if not vec_table_exists(repo.conn, table):
        raise NoEmbeddingsError(
            f"No embeddings found for model '{config.embedding_model}'. "
            "Run 'bookvec ingest' first to populate the vector index."
        )

    vector = oracle.embed([text])[0]
    expected = registered_dimensions(repo.conn, slug)
    if expected is not None and len(vector) != expected:
        raise ValueError(
            f"Query vector has {len(vector)} dimensions; "
            f"'{config.embedding_model}' vectors have {expected}."
        )
    return repo.search_vec(table, vector, limit=config.top_k)
