"""bookvec rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from bookvec.cli.errors import err_no_db
    console.print(err_no_db(".bookvec.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_db(db_path: str = ".bookvec.db") -> str:
    """No database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  bookvec init"
    )


def err_store_unavailable(detail: str) -> str:
    """Database could not be opened or prepared."""
    return (
        f"[red]Error:[/] Store unavailable: {detail}\n"
        "  Check the store location (store.url in bookvec.yaml or BOOKVEC_DB)."
    )


def err_corpus_root(root: str, detail: str = "") -> str:
    """Corpus root missing or unreadable."""
    suffix = f"\n  {detail}" if detail else ""
    return (
        f"[red]Error:[/] Cannot read corpus root '{root}'.{suffix}\n"
        "  Pass --root PATH or set corpus.root in bookvec.yaml (or BOOKVEC_CORPUS_ROOT)."
    )


def err_oracle_unavailable(detail: str) -> str:
    """No embedding handle could be built."""
    return (
        f"[red]Error:[/] Embedding model unavailable: {detail}\n"
        "  For the onnx backend set embedding.model_path and embedding.tokenizer_path\n"
        "  (or BOOKVEC_MODEL_PATH / BOOKVEC_TOKENIZER_PATH)."
    )


def err_no_embeddings(model: str) -> str:
    """No vector table for the configured model."""
    return (
        f"[red]Error:[/] No embeddings stored for model '{model}'.\n"
        "  Run:  bookvec ingest\n"
        "  Or set embedding.model to the model used at ingest time."
    )


def err_embedding_dimension_mismatch(model: str, detail: str) -> str:
    """Configured dimensions differ from the stored vectors."""
    return (
        f"[red]Error:[/] Embedding dimension mismatch for '{model}'.\n"
        f"  {detail}\n"
        "  Update embedding.dimensions to match the database, or use a new model tag."
    )


def err_config(detail: str) -> str:
    """Invalid configuration value."""
    return f"[red]Error:[/] Invalid configuration.\n  {detail}"
