from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alerts, render_evaluation, render_ingestion


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the field alerts service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("evaluate")
def evaluate_command(ctx: typer.Context) -> None:
    """Evaluate the last hour of readings and create alerts."""
    state = _get_state(ctx)
    typer.echo(f"Requesting alert evaluation from {state.config.base_url} ...")
    payload = state.client.evaluate_alerts()
    render_evaluation(payload)
    if not payload.get("success"):
        raise typer.Exit(code=1)


@app.command("alerts")
def alerts_command(
    ctx: typer.Context,
    farm_id: str = typer.Argument(..., help="Farm whose alerts should be listed."),
    active_only: bool = typer.Option(
        False,
        "--active-only/--all",
        help="Only list alerts that are still active.",
    ),
) -> None:
    """List alerts raised for a farm."""
    state = _get_state(ctx)
    alerts = state.client.list_alerts(farm_id, active_only=active_only)
    render_alerts(farm_id, alerts)


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Path to a JSON file of readings."
    ),
    parallel: bool = typer.Option(
        False,
        "--parallel/--sequential",
        help="Use the parallel batch ingestion endpoint.",
    ),
) -> None:
    """Ingest a batch of sensor readings from a JSON file."""
    state = _get_state(ctx)
    mode = "parallel" if parallel else "sequential"
    typer.echo(f"Ingesting {file} ({mode}) to {state.config.base_url} ...")
    payload = state.client.ingest_file(file, parallel=parallel)
    render_ingestion(payload)
    if not payload.get("success"):
        raise typer.Exit(code=1)
