from __future__ import annotations

from typing import Iterable, Sequence

import typer

from models.records import Reading


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def render_raw_lines(lines: Sequence[str]) -> None:
    echo_heading("Temperatures")
    if not lines:
        typer.echo("No temperatures stored.")
        return
    for line in lines:
        typer.echo(f"  - {line}")


def render_readings(readings: Iterable[Reading]) -> None:
    rows = list(readings)
    echo_heading("Readings")
    if not rows:
        typer.echo("No readings available.")
        return
    width = max(len("original"), *(len(reading.original) for reading in rows))
    typer.echo(f"{'original':<{width}}  {'celsius':>9}  {'fahrenheit':>10}")
    for reading in rows:
        typer.echo(
            f"{reading.original:<{width}}  {reading.celsius:>9.2f}  {reading.fahrenheit:>10.2f}"
        )
