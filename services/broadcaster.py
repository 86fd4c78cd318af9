"""Fan-out of reading lists to connected real-time subscribers."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple
from uuid import uuid4

from models.records import Reading, WatchEvent, WatchEventKind
from services.reader import read_and_parse

logger = logging.getLogger(__name__)

UPDATE_EVENT = "temperatures-update"
REQUEST_EVENT = "request-data"


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class SessionRegistry:
    """Set of currently connected sessions keyed by an opaque identifier."""

    def __init__(self) -> None:
        self._sessions: Dict[str, Subscriber] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def add(self, session: Subscriber) -> str:
        session_id = str(uuid4())
        with self._lock:
            self._sessions[session_id] = session
        return session_id

    def discard(self, session_id: str) -> Optional[Subscriber]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def snapshot(self) -> List[Tuple[str, Subscriber]]:
        with self._lock:
            return list(self._sessions.items())

    async def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            try:
                await session.close()
            except Exception as exc:  # noqa: BLE001 - session already gone
                logger.debug("Session close failed", extra={"reason": str(exc)})


def build_update_message(readings: Sequence[Reading]) -> Dict[str, Any]:
    return {"event": UPDATE_EVENT, "data": [reading.to_payload() for reading in readings]}


class Broadcaster:
    """Pushes the complete current reading list to every registered session."""

    def __init__(self, registry: SessionRegistry, log: Optional[logging.Logger] = None) -> None:
        self.registry = registry
        self._log = log or logger

    async def publish(self, readings: Sequence[Reading]) -> int:
        """Send ``readings`` to all sessions; return how many received them."""
        message = build_update_message(readings)
        delivered = 0
        for session_id, session in self.registry.snapshot():
            if await self.send(session_id, session, message):
                delivered += 1
        self._log.info(
            "Emitted temperatures to clients",
            extra={"reading_count": len(readings), "event": UPDATE_EVENT},
        )
        return delivered

    async def send(self, session_id: str, session: Subscriber, message: Dict[str, Any]) -> bool:
        try:
            await session.send_json(message)
        except Exception as exc:  # noqa: BLE001 - fire and forget, drop the session
            self.registry.discard(session_id)
            self._log.info(
                "Dropped unreachable session",
                extra={"session_id": session_id, "reason": str(exc) or type(exc).__name__},
            )
            return False
        return True

    async def on_settled_change(
        self,
        event: WatchEvent,
        is_stopped: Optional[Callable[[], bool]] = None,
    ) -> List[Reading]:
        """Re-read the file for ``event`` and publish the full reading list.

        When ``is_stopped`` reports true once the read completes, the result is
        discarded instead of published.
        """
        if event.kind is WatchEventKind.removed:
            readings: List[Reading] = []
        else:
            readings = await read_and_parse(event.path, log=self._log)
        if is_stopped is not None and is_stopped():
            self._log.debug("Discarding readings after stop", extra={"path": str(event.path)})
            return readings
        await self.publish(readings)
        return readings
