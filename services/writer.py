"""Validated overwrite of the temperature file."""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from services.parser import FORMAT_HINT, is_valid_temperature

logger = logging.getLogger(__name__)


class TemperatureValidationError(ValueError):
    """Raised when a submission contains no valid temperature."""

    def __init__(self, message: str = "No valid temperatures provided", hint: str = FORMAT_HINT) -> None:
        super().__init__(message)
        self.hint = hint


@dataclass
class SubmitResult:
    accepted: List[str] = field(default_factory=list)
    rejected_count: int = 0

    @property
    def count(self) -> int:
        return len(self.accepted)


class TemperatureWriter:
    """Replaces the file content with the valid subset of a submission.

    The writer never notifies subscribers itself; the resulting file change
    reaches them through the watcher.
    """

    def __init__(self, path: Path, log: Optional[logging.Logger] = None) -> None:
        self.path = Path(path)
        self._log = log or logger

    def submit(self, candidates: Sequence[str]) -> SubmitResult:
        accepted = [
            candidate.strip() for candidate in candidates if is_valid_temperature(candidate)
        ]
        result = SubmitResult(accepted=accepted, rejected_count=len(candidates) - len(accepted))
        if not accepted:
            self._log.warning(
                "Rejected temperature update",
                extra={"rejected_count": result.rejected_count, "reason": "no valid entries"},
            )
            raise TemperatureValidationError()

        content = "\n".join(accepted) + "\n"
        self._replace_contents(content.encode("utf-8"))
        self._log.info(
            "Updated temperature file",
            extra={
                "path": str(self.path),
                "accepted_count": result.count,
                "rejected_count": result.rejected_count,
            },
        )
        return result

    def _replace_contents(self, payload: bytes) -> None:
        """Write ``payload`` beside the target, then swap it into place.

        Readers see either the previous content or the new one. On failure the
        temporary file is removed and the target is left untouched.
        """
        try:
            mode = self.path.stat().st_mode & 0o777
        except OSError:
            mode = 0o644

        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, self.path)
        except BaseException:
            with suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise
