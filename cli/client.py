from __future__ import annotations

from typing import Any, Dict, List, Sequence

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the temperature monitor service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def push_temperatures(self, temperatures: Sequence[str]) -> int:
        try:
            response = self._client.post(
                "/api/temperatures", json={"temperatures": list(temperatures)}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            self._handle_transport_error(exc)
        payload = response.json()
        count = payload.get("count")
        if not isinstance(count, int):
            raise typer.BadParameter("Unexpected response payload when updating temperatures.")
        return count

    def get_temperatures(self) -> List[str]:
        try:
            response = self._client.get("/api/temperatures")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            self._handle_transport_error(exc)
        payload: Dict[str, Any] = response.json()
        return list(payload.get("temperatures") or [])

    def _handle_transport_error(self, exc: httpx.TransportError) -> None:
        typer.secho(
            f"Could not reach {self._config.base_url}: {exc}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        hint: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("error") or data.get("detail")
            hint = data.get("hint")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        if hint:
            typer.secho(hint, fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)
