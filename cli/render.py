from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def echo_errors(errors: List[str]) -> None:
    typer.echo()
    echo_heading("Errors")
    if errors:
        for error in errors:
            typer.echo(f"  - {error}")
    else:
        typer.echo("No errors recorded.")


def render_evaluation(payload: Dict[str, Any]) -> None:
    echo_heading("Alert Evaluation")
    echo_key_values(
        [
            ("success", payload.get("success")),
            ("alerts_created", payload.get("alerts_created")),
            ("fields_processed", payload.get("fields_processed")),
            ("elapsed_ms", payload.get("elapsed_ms")),
        ]
    )
    echo_errors(payload.get("errors") or [])


def render_ingestion(payload: Dict[str, Any]) -> None:
    echo_heading("Ingestion Result")
    echo_key_values(
        [
            ("success", payload.get("success")),
            ("processed_count", payload.get("processed_count")),
            ("failed_count", payload.get("failed_count")),
            ("processing_ms", payload.get("processing_ms")),
        ]
    )
    echo_errors(payload.get("errors") or [])


def render_alerts(farm_id: str, alerts: List[Dict[str, Any]]) -> None:
    echo_heading(f"Alerts for farm {farm_id}")
    if not alerts:
        typer.echo("No alerts recorded.")
        return
    for alert in alerts:
        state = "active" if alert.get("is_active") else "inactive"
        typer.echo(
            f"  - [{alert.get('status')}] field {alert.get('field_id')} "
            f"({state}, {alert.get('created_at')}): {alert.get('message')}"
        )
