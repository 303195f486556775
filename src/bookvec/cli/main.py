"""bookvec CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from bookvec.cli.ingest import ingest_cmd
from bookvec.cli.init import init_cmd
from bookvec.cli.model import model_info_cmd
from bookvec.cli.query import query_cmd
from bookvec.cli.status import status_cmd


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"bookvec {_installed_version()}")
        raise typer.Exit()


def _installed_version() -> str:
    try:
        return importlib.metadata.version("bookvec")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


app = typer.Typer(
    name="bookvec",
    help=(
        "bookvec — semantic search over book metadata records.\n\n"
        "  bookvec ingest  Load metadata and summary embeddings (incremental).\n"
        "  bookvec query   Find the books nearest to a free-text description."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log per-record detail."),
    ] = False,
) -> None:
    """bookvec — semantic search over book metadata records."""
    _configure_logging(verbose)


app.command("init")(init_cmd)
app.command("ingest")(ingest_cmd)
app.command("query")(query_cmd)
app.command("status")(status_cmd)
app.command("model-info")(model_info_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed bookvec version."""
    typer.echo(f"bookvec {_installed_version()}")


if __name__ == "__main__":
    app()
