from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the field alerts service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.request_timeout)

    def close(self) -> None:
        self._client.close()

    def evaluate_alerts(self) -> Dict[str, Any]:
        response = self._client.post("/alerts/evaluate")
        if response.status_code == 500 and "alerts_created" in _safe_json(response):
            # A failed run still reports its summary.
            return response.json()
        self._raise_for_status(response)
        return response.json()

    def list_alerts(self, farm_id: str, active_only: bool = False) -> List[Dict[str, Any]]:
        response = self._client.get(
            f"/farms/{farm_id}/alerts",
            params={"active_only": str(active_only).lower()},
        )
        self._raise_for_status(response)
        return response.json()

    def ingest_file(self, path: Path, parallel: bool = False) -> Dict[str, Any]:
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"{path} is not valid JSON: {exc}") from exc
        payload = {"readings": data} if isinstance(data, list) else data
        if not isinstance(payload, dict) or "readings" not in payload:
            raise typer.BadParameter(
                f"{path} must contain a list of readings or an object with a 'readings' key."
            )

        route = "/ingestion/batch/parallel" if parallel else "/ingestion/batch"
        response = self._client.post(route, json=payload)
        detail = _safe_json(response).get("detail")
        if response.status_code == 400 and isinstance(detail, dict):
            return detail
        self._raise_for_status(response)
        return response.json()

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = _safe_json(exc.response).get("detail") or exc.response.text.strip()
            message = (
                f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
            )
            typer.secho(message, fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)


def _safe_json(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
