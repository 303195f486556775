"""Embedding oracle interface and backend selection.

An oracle turns a batch of texts into one fixed-length vector per text, in
input order. Two backends exist:

  onnx     local ONNX model + tokenizer.json (OnnxEmbedder)
  litellm  API-hosted embedding model via LiteLLM (LiteLLMEmbedder)
"""

from __future__ import annotations

import functools
import os
from collections.abc import Callable, Sequence
from typing import Protocol

import litellm

from bookvec.config import EmbeddingCfg
from bookvec.errors import OracleUnavailable

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "cohere": "COHERE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "azure": "AZURE_API_KEY",
    "ollama": None,  # Local, no key required
}


class EmbeddingOracle(Protocol):
    def embed(self, texts: Sequence[str]) -> list[list[float]]: ...


OracleFactory = Callable[[], EmbeddingOracle]


class LiteLLMEmbedder:
    """Text → vector through ``litellm.embedding()``.

    Args:
        model: LiteLLM model string in provider/model form.

    Raises:
        OracleUnavailable: If the provider's API key env var is not set.
    """

    def __init__(self, model: str) -> None:
        self.model = model
        provider = model.split("/")[0].lower() if "/" in model else ""
        env_var = _PROVIDER_ENV.get(provider)
        if env_var and not os.environ.get(env_var):
            raise OracleUnavailable(
                f"No API key found for provider '{provider}'. "
                f"Set the {env_var} environment variable."
            )

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        response = litellm.embedding(model=self.model, input=list(texts))
        return [list(item["embedding"]) for item in response.data]


def make_oracle(cfg: EmbeddingCfg) -> EmbeddingOracle:
    """Build one embedding handle from the ``embedding:`` config section.

    Raises:
        OracleUnavailable: Unknown backend, missing artifacts, or missing API key.
    """
    if cfg.backend == "onnx":
        if not cfg.model_path or not cfg.tokenizer_path:
            raise OracleUnavailable(
                "The onnx backend needs embedding.model_path and embedding.tokenizer_path."
            )
        # Imported here so the litellm backend works without onnxruntime loaded.
        from bookvec.embedding.onnx import OnnxEmbedder

        return OnnxEmbedder(
            cfg.model_path,
            cfg.tokenizer_path,
            intra_threads=cfg.intra_threads,
            max_length=cfg.max_length,
        )
    if cfg.backend == "litellm":
        return LiteLLMEmbedder(cfg.model)
    raise OracleUnavailable(f"Unknown embedding backend '{cfg.backend}' (use onnx or litellm).")


def oracle_factory(cfg: EmbeddingCfg) -> OracleFactory:
    """Return a zero-argument callable that builds a fresh handle per call."""
    return functools.partial(make_oracle, cfg)
