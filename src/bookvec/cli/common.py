"""Helpers shared by bookvec CLI commands."""

from __future__ import annotations

import sqlite3

import typer
from rich.console import Console

from bookvec.cli.errors import err_config, err_store_unavailable
from bookvec.config import BookvecConfig, ConfigError, load_config
from bookvec.db.connection import Database
from bookvec.errors import StoreUnavailable

console = Console()


def load_config_or_exit() -> BookvecConfig:
    """Load the merged config; print an actionable error and exit 1 on failure."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc


def open_store(url: str) -> sqlite3.Connection:
    """Open the store at *url*; print an actionable error and exit 1 on failure."""
    try:
        return Database(url).connect()
    except StoreUnavailable as exc:
        console.print(err_store_unavailable(str(exc)))
        raise typer.Exit(1) from exc
