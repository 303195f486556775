"""bookvec model-info — print the configured ONNX model's signature."""

from __future__ import annotations

import typer
from rich.table import Table

from bookvec.cli.common import console, load_config_or_exit
from bookvec.cli.errors import err_oracle_unavailable
from bookvec.embedding.oracle import make_oracle
from bookvec.errors import OracleUnavailable


def model_info_cmd() -> None:
    """Show name, producer, inputs and outputs of the configured ONNX model."""
    cfg = load_config_or_exit()
    if cfg.embedding.backend != "onnx":
        console.print(
            f"[yellow]Backend '{cfg.embedding.backend}' has no local model to inspect.[/]"
        )
        return

    try:
        oracle = make_oracle(cfg.embedding)
    except OracleUnavailable as exc:
        console.print(err_oracle_unavailable(str(exc)))
        raise typer.Exit(1) from exc

    info = oracle.describe()
    console.print(f"Name:        [bold]{info['name']}[/]")
    console.print(f"Description: {info['description']}")
    console.print(f"Produced by: {info['producer']}")

    for title, rows in (("Inputs", info["inputs"]), ("Outputs", info["outputs"])):
        table = Table(title=title, show_header=True, box=None, padding=(0, 1))
        table.add_column("#", justify="right", style="dim")
        table.add_column("Name", style="bold")
        table.add_column("Type")
        table.add_column("Shape", style="dim")
        for i, (name, kind, shape) in enumerate(rows):
            table.add_row(str(i), name, kind, str(shape))
        console.print(table)
