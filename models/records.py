"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Union


@dataclass(frozen=True, slots=True)
class Reading:
    """A single temperature token with both unit representations."""

    original: str
    celsius: float
    fahrenheit: float

    def to_payload(self) -> Dict[str, Union[str, float]]:
        return {
            "original": self.original,
            "celsius": self.celsius,
            "fahrenheit": self.fahrenheit,
        }


class WatchEventKind(str, Enum):
    """Settled change notifications emitted by the watcher."""

    created = "created"
    modified = "modified"
    removed = "removed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class WatchEvent:
    kind: WatchEventKind
    path: Path
    observed_at: datetime = field(default_factory=_utcnow)
