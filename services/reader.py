"""Loading the watched temperature file."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from models.records import Reading
from services.parser import parse_temperature_file

logger = logging.getLogger(__name__)


def load_readings(path: Path, log: Optional[logging.Logger] = None) -> List[Reading]:
    """Read and parse ``path``; any read failure degrades to an empty list."""
    log = log or logger
    try:
        content = path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log.error(
            "Error reading temperature file",
            extra={"path": str(path), "reason": str(exc)},
        )
        return []
    return parse_temperature_file(content, log=log)


async def read_and_parse(path: Path, log: Optional[logging.Logger] = None) -> List[Reading]:
    return await asyncio.to_thread(load_readings, path, log)


def read_raw_temperatures(path: Path) -> List[str]:
    """Return the non-blank lines of the file without parsing them.

    Raises ``OSError`` when the file cannot be read.
    """
    content = path.read_text(encoding="utf-8")
    return [line for line in content.strip().split("\n") if line.strip()]
