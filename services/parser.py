"""Temperature token grammar and Celsius/Fahrenheit conversion."""

from __future__ import annotations

import logging
import math
import re
from typing import List, Optional

from models.records import Reading

logger = logging.getLogger(__name__)

TEMPERATURE_PATTERN = re.compile(r"(-?[0-9]+(?:\.[0-9]+)?)([CF])", re.IGNORECASE)
FORMAT_HINT = "Format: 32C or 100F"


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def fahrenheit_to_celsius(fahrenheit: float) -> float:
    return (fahrenheit - 32) * 5 / 9


def round_half_away(value: float, digits: int = 2) -> float:
    """Round to ``digits`` decimals, resolving ties away from zero.

    The value is scaled, rounded and scaled back, so binary representation
    artifacts of the scaled value are not corrected.
    """
    scale = 10**digits
    scaled = abs(value) * scale
    if not math.isfinite(scaled):
        return value
    rounded = math.floor(scaled + 0.5) / scale
    return math.copysign(rounded, value) if rounded else 0.0


def is_valid_temperature(token: str) -> bool:
    """Structural check only; no conversion is performed."""
    return TEMPERATURE_PATTERN.fullmatch(token.strip()) is not None


def parse_temperature(token: str) -> Optional[Reading]:
    """Parse a single token such as ``"32C"`` or ``" -5.5f "``.

    Returns ``None`` when the trimmed token does not match the grammar or
    when either unit overflows to a non-finite float.
    """
    original = token.strip()
    match = TEMPERATURE_PATTERN.fullmatch(original)
    if match is None:
        return None

    value = float(match.group(1))
    if match.group(2).upper() == "C":
        celsius = value
        fahrenheit = celsius_to_fahrenheit(value)
    else:
        fahrenheit = value
        celsius = fahrenheit_to_celsius(value)

    if not (math.isfinite(celsius) and math.isfinite(fahrenheit)):
        return None

    return Reading(
        original=original,
        celsius=round_half_away(celsius),
        fahrenheit=round_half_away(fahrenheit),
    )


def parse_temperature_file(
    content: str, log: Optional[logging.Logger] = None
) -> List[Reading]:
    """Parse file content into readings, in line order.

    Blank lines are skipped silently; lines that fail the grammar are skipped
    with a warning. Duplicates are kept.
    """
    log = log or logger
    readings: List[Reading] = []
    for line_number, line in enumerate(content.split("\n"), start=1):
        if not line.strip():
            continue
        reading = parse_temperature(line)
        if reading is None:
            log.warning(
                "Invalid temperature format",
                extra={"line_number": line_number, "invalid_value": line.strip()},
            )
            continue
        readings.append(reading)
    return readings
