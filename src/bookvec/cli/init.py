"""bookvec init — create the store and a starter bookvec.yaml.

Creates:
  .bookvec.db    — metadata table, model registry, and the vector table for
                   the configured embedding model
  bookvec.yaml   — project config template (skipped if it already exists)

Safe to run again: every table is created only if missing.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from bookvec.cli.common import console, load_config_or_exit, open_store
from bookvec.cli.errors import err_embedding_dimension_mismatch, err_store_unavailable
from bookvec.db.schema import prepare_store
from bookvec.errors import StoreUnavailable

_CONFIG_TEMPLATE = """\
# bookvec project configuration.
# API keys belong in environment variables, never in this file.

store:
  url: {db}

corpus:
  root: data/cache/epub
  extension: rdf
  # id_range: [1, 1000]
  write_metadata: false
  metadata_dir: data/metadata

embedding:
  backend: onnx
  model: {model}
  model_path: models/model.onnx
  tokenizer_path: models/tokenizer.json
  dimensions: {dimensions}
  batch_size: 100

search:
  top_k: 3
"""


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory for bookvec.yaml. Defaults to current directory."),
    ] = Path("."),
    db: Annotated[
        str | None,
        typer.Option("--db", help="Store path or sqlite:/// URL (created if missing)."),
    ] = None,
) -> None:
    """Create the store tables and a starter bookvec.yaml."""
    cfg = load_config_or_exit()
    url = db or cfg.store.url
    emb = cfg.embedding

    conn = open_store(url)
    try:
        table = prepare_store(conn, emb.model, emb.dimensions)
    except ValueError as exc:
        console.print(err_embedding_dimension_mismatch(emb.model, str(exc)))
        raise typer.Exit(1) from exc
    except StoreUnavailable as exc:
        console.print(err_store_unavailable(str(exc)))
        raise typer.Exit(1) from exc
    finally:
        conn.close()
    console.print(f"  [green]✓[/] {url}  [dim](vector table {table})[/]")

    project_dir.mkdir(parents=True, exist_ok=True)
    config_path = project_dir / "bookvec.yaml"
    if config_path.exists():
        console.print(f"  [dim]↷ {config_path} exists — left unchanged[/]")
    else:
        config_path.write_text(
            _CONFIG_TEMPLATE.format(db=url, model=emb.model, dimensions=emb.dimensions),
            encoding="utf-8",
        )
        console.print(f"  [green]✓[/] {config_path}")
