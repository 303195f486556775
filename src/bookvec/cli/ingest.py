"""bookvec ingest — load book metadata and summary embeddings into the store.

Two passes over the corpus, each optional:
  --metadata     insert one book_metadata row per record (duplicates reported)
  --embeddings   embed every book without a vector row, in parallel batches

Both passes are safe to repeat: already-stored books cost one lookup each.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from bookvec.cli.common import console, load_config_or_exit, open_store
from bookvec.cli.errors import (
    err_config,
    err_corpus_root,
    err_embedding_dimension_mismatch,
    err_oracle_unavailable,
    err_store_unavailable,
)
from bookvec.config import ConfigError, parse_id_range
from bookvec.db.repository import Repository
from bookvec.db.schema import prepare_store
from bookvec.embedding.oracle import oracle_factory
from bookvec.errors import OracleUnavailable, StoreUnavailable, WalkIoError
from bookvec.ingest.loader import IncrementalLoader, LoadReport

_MAX_LISTED_FAILURES = 10


def ingest_cmd(
    root: Annotated[
        Path | None,
        typer.Option("--root", "-r", help="Corpus root (one numeric directory per book)."),
    ] = None,
    start: Annotated[
        int | None,
        typer.Option("--start", min=0, help="Lowest book id to include (inclusive)."),
    ] = None,
    end: Annotated[
        int | None,
        typer.Option("--end", min=0, help="Highest book id to include (inclusive)."),
    ] = None,
    metadata: Annotated[
        bool,
        typer.Option("--metadata/--no-metadata", help="Insert book metadata rows."),
    ] = True,
    embeddings: Annotated[
        bool,
        typer.Option("--embeddings/--no-embeddings", help="Compute and store summary embeddings."),
    ] = True,
    write_metadata: Annotated[
        bool,
        typer.Option("--write-metadata", help="Also write a YAML snapshot per book."),
    ] = False,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", min=1, help="Records per embedding batch."),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", min=1, help="Embedding worker threads (default: CPU count)."),
    ] = None,
    db: Annotated[
        str | None,
        typer.Option("--db", help="Store path or sqlite:/// URL (created if missing)."),
    ] = None,
) -> None:
    """Ingest the corpus: metadata rows, then embeddings for books not yet embedded."""
    cfg = load_config_or_exit()

    corpus_root = root if root is not None else Path(cfg.corpus.root)
    try:
        id_range = _resolve_id_range(start, end, cfg.corpus.id_range)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    emb = cfg.embedding
    if batch_size is not None:
        emb.batch_size = batch_size
    if workers is not None:
        emb.workers = workers

    conn = open_store(db or cfg.store.url)
    try:
        try:
            vec_table = prepare_store(conn, emb.model, emb.dimensions)
        except ValueError as exc:
            console.print(err_embedding_dimension_mismatch(emb.model, str(exc)))
            raise typer.Exit(1) from exc
        except StoreUnavailable as exc:
            console.print(err_store_unavailable(str(exc)))
            raise typer.Exit(1) from exc

        repo = Repository(conn)
        write_flag = write_metadata or cfg.corpus.write_metadata

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            transient=True,
            console=console,
        ) as prog:
            task = prog.add_task("Embedding…", total=None, visible=False)

            def _on_batch(done: int, total: int) -> None:
                prog.update(task, completed=done, total=total, visible=True)

            loader = IncrementalLoader(
                repo,
                vec_table,
                oracle_factory(emb),
                batch_size=emb.batch_size,
                workers=emb.workers,
                extension=cfg.corpus.extension,
                metadata_dir=cfg.corpus.metadata_dir,
                on_batch=_on_batch,
            )

            try:
                if metadata:
                    report = loader.load_metadata(corpus_root, id_range, write_metadata=write_flag)
                    _print_report("Metadata", report)
                if embeddings:
                    report = loader.load(corpus_root, id_range, write_metadata=write_flag)
                    _print_report("Embeddings", report)
            except WalkIoError as exc:
                console.print(err_corpus_root(str(corpus_root), str(exc)))
                raise typer.Exit(1) from exc
            except OracleUnavailable as exc:
                console.print(err_oracle_unavailable(str(exc)))
                raise typer.Exit(1) from exc
            except StoreUnavailable as exc:
                console.print(err_store_unavailable(str(exc)))
                raise typer.Exit(1) from exc
    finally:
        conn.close()


def _resolve_id_range(
    start: int | None, end: int | None, configured: tuple[int, int] | None
) -> tuple[int, int] | None:
    """CLI bounds win over the configured range; a missing bound is open."""
    if start is None and end is None:
        return configured
    return parse_id_range((start or 0, sys.maxsize if end is None else end))


def _print_report(label: str, report: LoadReport) -> None:
    console.print(
        f"[bold]{label}:[/] [green]✓[/] {report.stored} stored · "
        f"{report.already_present} already present · "
        f"{len(report.failures)} failed  [dim]({report.scanned} records scanned)[/]"
    )
    if report.duplicates:
        console.print(f"  [yellow]![/] {report.duplicates} repeated book ids ignored")
    for failure in report.failures[:_MAX_LISTED_FAILURES]:
        console.print(f"  [yellow]✗[/] {failure}")
    hidden = len(report.failures) - _MAX_LISTED_FAILURES
    if hidden > 0:
        console.print(f"  [dim]… and {hidden} more[/]")
