"""bookvec query — find the books whose summaries are nearest to a text."""

from __future__ import annotations

import sqlite3
from typing import Annotated

import typer
from rich.table import Table

from bookvec.cli.common import console, load_config_or_exit, open_store
from bookvec.cli.errors import (
    err_no_db,
    err_no_embeddings,
    err_oracle_unavailable,
    err_store_unavailable,
)
from bookvec.db.connection import db_path_from_url
from bookvec.db.models import ScoredBook
from bookvec.db.repository import Repository
from bookvec.embedding.oracle import make_oracle
from bookvec.errors import NoEmbeddingsError, OracleUnavailable
from bookvec.search.similarity import SearchConfig, query


def query_cmd(
    text: Annotated[str, typer.Argument(help="Free-text description of the book you want.")],
    top_k: Annotated[
        int | None,
        typer.Option("--top-k", "-k", min=1, help="Number of results (default 3)."),
    ] = None,
    db: Annotated[
        str | None,
        typer.Option("--db", help="Store path or sqlite:/// URL."),
    ] = None,
) -> None:
    """Show the stored books nearest to TEXT, nearest first."""
    cfg = load_config_or_exit()
    url = db or cfg.store.url
    if not db_path_from_url(url).exists():
        console.print(err_no_db(url))
        raise typer.Exit(1)

    search_cfg = SearchConfig(
        embedding_model=cfg.embedding.model,
        top_k=top_k if top_k is not None else cfg.search.top_k,
    )

    conn = open_store(url)
    try:
        repo = Repository(conn)
        try:
            oracle = make_oracle(cfg.embedding)
            hits = query(text, repo, search_cfg, oracle)
        except OracleUnavailable as exc:
            console.print(err_oracle_unavailable(str(exc)))
            raise typer.Exit(1) from exc
        except NoEmbeddingsError as exc:
            console.print(err_no_embeddings(cfg.embedding.model))
            raise typer.Exit(1) from exc
        except ValueError as exc:
            console.print(f"[red]Error:[/] {exc}")
            raise typer.Exit(1) from exc
        except sqlite3.Error as exc:
            console.print(err_store_unavailable(str(exc)))
            raise typer.Exit(1) from exc
    finally:
        conn.close()

    if not hits:
        console.print("[yellow]No matching books.[/]")
        return
    console.print(_render(hits))


def _render(hits: list[ScoredBook]) -> Table:
    table = Table(title="Nearest books")
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Years", style="dim")
    table.add_column("Distance", justify="right")
    for rank, hit in enumerate(hits, start=1):
        book = hit.book
        table.add_row(
            str(rank),
            str(book.id),
            book.title,
            book.author,
            _years(book.birthyear, book.deathyear),
            f"{hit.distance:.4f}",
        )
    return table


def _years(birth: int | None, death: int | None) -> str:
    if birth is None and death is None:
        return ""
    return f"{birth if birth is not None else '?'}–{death if death is not None else '?'}"

