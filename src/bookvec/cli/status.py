"""bookvec status command.

Shows the store location, metadata row count, and one line per embedding
model with its vector count.
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from bookvec.cli.common import console, load_config_or_exit, open_store
from bookvec.db.connection import db_path_from_url
from bookvec.db.repository import Repository
from bookvec.db.schema import initialize
from bookvec.db.vectors import vec_table_exists, vec_table_name


def status_cmd(
    db: Annotated[
        str | None,
        typer.Option("--db", help="Store path or sqlite:/// URL."),
    ] = None,
) -> None:
    """Show store contents: metadata rows and vectors per embedding model."""
    cfg = load_config_or_exit()
    url = db or cfg.store.url
    path = db_path_from_url(url)

    if not path.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n"
                "  Run:  bookvec init",
                title="[bold]Store[/]",
                expand=False,
            )
        )
        return

    conn = open_store(url)
    try:
        initialize(conn)
        repo = Repository(conn)
        size_mb = path.stat().st_size / (1024 * 1024)
        lines = [
            f"Database:  {path} ({size_mb:.1f} MB)",
            f"Books:     [bold]{repo.count_metadata():,}[/]",
            f"Model:     {cfg.embedding.model} [dim](configured)[/]",
        ]
        console.print(Panel("\n".join(lines), title="[bold]Store[/]", expand=False))

        table = Table(show_header=True, box=None, padding=(0, 1))
        table.add_column("Model")
        table.add_column("Dims", justify="right", style="dim")
        table.add_column("Vectors", justify="right")
        models = repo.list_embedding_models()
        for slug, model, dims in models:
            vec_table = vec_table_name(slug)
            count = repo.count_embeddings(vec_table) if vec_table_exists(conn, vec_table) else 0
            marker = " [green]✓[/]" if model == cfg.embedding.model else ""
            table.add_row(f"{model}{marker}", str(dims), f"{count:,}")
        if models:
            console.print(Panel(table, title="[bold]Embeddings[/]", expand=False))
        else:
            console.print("[dim]No embeddings stored yet.[/]")
    finally:
        conn.close()
