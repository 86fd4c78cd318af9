from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_raw_lines, render_readings
from services.reader import load_readings
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the temperature monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:3001).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("push", context_settings={"ignore_unknown_options": True})
def push_command(
    ctx: typer.Context,
    temperatures: List[str] = typer.Argument(..., help="Readings such as 32C or 100F."),
) -> None:
    """Replace the watched file with the given readings."""
    state = _get_state(ctx)
    count = state.client.push_temperatures(temperatures)
    typer.secho(f"Stored {count} of {len(temperatures)} temperatures.", fg=typer.colors.GREEN)


@app.command("show")
def show_command(ctx: typer.Context) -> None:
    """Print the raw lines currently stored in the watched file."""
    state = _get_state(ctx)
    render_raw_lines(state.client.get_temperatures())


@app.command("parse")
def parse_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to a temperature file."),
) -> None:
    """Parse a local temperature file and print both units."""
    render_readings(load_readings(file))


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to HOST env)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (defaults to PORT env)."),
) -> None:
    """Run the monitor service."""
    settings = get_settings()
    bind_host = host or settings.host
    bind_port = port or settings.port
    typer.echo(f"Serving on http://{bind_host}:{bind_port}, monitoring {settings.temperature_file}")
    uvicorn.run("app.main:app", host=bind_host, port=bind_port, log_config=None)
