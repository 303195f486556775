"""bookvec configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (BOOKVEC_DB, BOOKVEC_CORPUS_ROOT, BOOKVEC_EMBEDDING_MODEL,
                             BOOKVEC_MODEL_PATH, BOOKVEC_TOKENIZER_PATH)
  3. Per-project bookvec.yaml
  4. Global ~/.bookvec/config.yaml  (defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".bookvec"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "bookvec.yaml"

# Fields that suggest an API key; forbidden in global config.
# Does NOT match legitimate config keys like max_length or batch_size.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # github_token, access_token, auth_token (suffix)
    r"|^token$"                  # exactly "token" (standalone)
    r"|_secret$"                 # my_secret, client_secret (suffix)
    r"|^secret$"                 # exactly "secret" (standalone)
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

# Known top-level sections. Unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["store", "corpus", "embedding", "search"])

_BACKENDS: frozenset[str] = frozenset(["onnx", "litellm"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StoreCfg:
    """Store location (bookvec.yaml: store:). Path or sqlite:/// URL."""

    url: str = ".bookvec.db"


@dataclass
class CorpusCfg:
    """Corpus traversal configuration (bookvec.yaml: corpus:).

    Attributes:
        root: Directory holding one numeric subdirectory per book.
        extension: Record file extension.
        id_range: Optional inclusive ``(start, end)`` book id filter.
        write_metadata: Write a YAML snapshot per extracted book.
        metadata_dir: Snapshot directory.
    """

    root: str = "data/cache/epub"
    extension: str = "rdf"
    id_range: tuple[int, int] | None = None
    write_metadata: bool = False
    metadata_dir: str = "data/metadata"


@dataclass
class EmbeddingCfg:
    """Embedding oracle configuration (bookvec.yaml: embedding:).

    Attributes:
        backend: 'onnx' (local model + tokenizer) or 'litellm' (hosted model).
        model: Model tag. Names the vector table, so ingest and query must agree.
        model_path: ONNX model file (onnx backend).
        tokenizer_path: tokenizer.json file (onnx backend).
        dimensions: Vector length produced by the model.
        batch_size: Records per worker-pool batch.
        workers: Worker threads (None = CPU count).
        intra_threads: ONNX Runtime intra-op threads per handle.
        max_length: Token truncation length (None = model limit).
    """

    backend: str = "onnx"
    model: str = "onnx/qwen3-embedding-0.6b"
    model_path: str | None = None
    tokenizer_path: str | None = None
    dimensions: int = 1024
    batch_size: int = 100
    workers: int | None = None
    intra_threads: int = 1
    max_length: int | None = None


@dataclass
class SearchCfg:
    """Similarity query configuration (bookvec.yaml: search:)."""

    top_k: int = 3


@dataclass
class BookvecConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    store: StoreCfg = field(default_factory=StoreCfg)
    corpus: CorpusCfg = field(default_factory=CorpusCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    search: SearchCfg = field(default_factory=SearchCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def parse_id_range(raw: Any) -> tuple[int, int] | None:
    """Validate an id range given as ``[start, end]`` (or None).

    Raises:
        ConfigError: Not two non-negative integers with start <= end.
    """
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ConfigError(f"corpus.id_range must be [start, end], got {raw!r}")
    try:
        start, end = int(raw[0]), int(raw[1])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"corpus.id_range values must be integers, got {raw!r}") from exc
    if start < 0 or end < start:
        raise ConfigError(f"corpus.id_range must satisfy 0 <= start <= end, got {raw!r}")
    return (start, end)


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> BookvecConfig:
    """Build a *BookvecConfig* from a merged raw YAML dict."""
    cfg = BookvecConfig()

    if "store" in data:
        s = data["store"] or {}
        cfg.store = StoreCfg(url=str(s.get("url", cfg.store.url)))

    if "corpus" in data:
        c = data["corpus"] or {}
        cfg.corpus = CorpusCfg(
            root=str(c.get("root", cfg.corpus.root)),
            extension=str(c.get("extension", cfg.corpus.extension)),
            id_range=parse_id_range(c.get("id_range")),
            write_metadata=bool(c.get("write_metadata", cfg.corpus.write_metadata)),
            metadata_dir=str(c.get("metadata_dir", cfg.corpus.metadata_dir)),
        )

    if "embedding" in data:
        e = data["embedding"] or {}
        d = cfg.embedding
        cfg.embedding = EmbeddingCfg(
            backend=str(e.get("backend", d.backend)),
            model=str(e.get("model", d.model)),
            model_path=e.get("model_path", d.model_path),
            tokenizer_path=e.get("tokenizer_path", d.tokenizer_path),
            dimensions=int(e.get("dimensions", d.dimensions)),
            batch_size=int(e.get("batch_size", d.batch_size)),
            workers=_optional_int(e.get("workers", d.workers)),
            intra_threads=int(e.get("intra_threads", d.intra_threads)),
            max_length=_optional_int(e.get("max_length", d.max_length)),
        )
        if cfg.embedding.backend not in _BACKENDS:
            raise ConfigError(
                f"embedding.backend must be one of {sorted(_BACKENDS)}, "
                f"got '{cfg.embedding.backend}'"
            )
        if cfg.embedding.batch_size < 1:
            raise ConfigError("embedding.batch_size must be >= 1")

    if "search" in data:
        q = data["search"] or {}
        cfg.search = SearchCfg(top_k=int(q.get("top_k", cfg.search.top_k)))

    return cfg


def _apply_env_overrides(cfg: BookvecConfig) -> BookvecConfig:
    """Apply BOOKVEC_* environment variable overrides."""
    if url := os.environ.get("BOOKVEC_DB"):
        cfg.store.url = url
    if root := os.environ.get("BOOKVEC_CORPUS_ROOT"):
        cfg.corpus.root = root
    if model := os.environ.get("BOOKVEC_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if path := os.environ.get("BOOKVEC_MODEL_PATH"):
        cfg.embedding.model_path = path
    if path := os.environ.get("BOOKVEC_TOKENIZER_PATH"):
        cfg.embedding.tokenizer_path = path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> BookvecConfig:
    """Load and return a merged *BookvecConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *bookvec.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, or a value
            is invalid.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    return _apply_env_overrides(cfg)
