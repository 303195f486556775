"""Embedding oracles and the per-thread worker pool."""

from bookvec.embedding.oracle import (
    EmbeddingOracle,
    LiteLLMEmbedder,
    make_oracle,
    oracle_factory,
)
from bookvec.embedding.pool import BatchResult, EmbeddingWorkerPool, batched

__all__ = [
    "BatchResult",
    "EmbeddingOracle",
    "EmbeddingWorkerPool",
    "LiteLLMEmbedder",
    "batched",
    "make_oracle",
    "oracle_factory",
]
