"""Watcher → reader → parser → broadcaster pipeline and its runtime context."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from models.records import Reading
from services.broadcaster import Broadcaster, SessionRegistry, Subscriber, build_update_message
from services.reader import read_and_parse
from services.watcher import ChangeWatcher, filesystem_changes
from services.writer import TemperatureWriter
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


class MonitorContext:
    """Everything request handlers need: watcher, sessions, broadcaster and writer.

    Built once per application and handed to handlers explicitly.
    """

    def __init__(
        self,
        path: Path,
        watcher: ChangeWatcher,
        registry: SessionRegistry,
        broadcaster: Broadcaster,
        writer: TemperatureWriter,
        snapshot_on_connect: bool = False,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.path = Path(path)
        self.watcher = watcher
        self.registry = registry
        self.broadcaster = broadcaster
        self.writer = writer
        self.snapshot_on_connect = snapshot_on_connect
        self._log = log or logger
        self._pipeline_task: Optional[asyncio.Task[None]] = None
        # Held for a whole read + send cycle, by the pipeline and by snapshots alike.
        self._cycle_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._pipeline_task is not None and not self._pipeline_task.done()

    async def start(self) -> None:
        if self._pipeline_task is not None:
            return
        await self.watcher.start()
        self._pipeline_task = asyncio.create_task(self._run(), name="temperature-pipeline")

    async def stop(self) -> None:
        """Stop watching first, then let the pipeline drain, then close sessions."""
        await self.watcher.stop()
        if self._pipeline_task is not None:
            await self._pipeline_task
        await self.registry.close_all()

    async def connect(self, session: Subscriber) -> str:
        """Register ``session``; with snapshots enabled, send it the current list first.

        The snapshot shares the pipeline's cycle lock, so a broadcast for a
        later change always reaches the new session after its snapshot.
        """
        async with self._cycle_lock:
            session_id = self.registry.add(session)
            self._log.info("Client connected", extra={"session_id": session_id})
            if self.snapshot_on_connect:
                readings = await read_and_parse(self.path, log=self._log)
                await self.broadcaster.send(session_id, session, build_update_message(readings))
        return session_id

    def disconnect(self, session_id: str) -> None:
        if self.registry.discard(session_id) is not None:
            self._log.info("Client disconnected", extra={"session_id": session_id})

    async def current_readings(self) -> List[Reading]:
        return await read_and_parse(self.path, log=self._log)

    async def _run(self) -> None:
        async for event in self.watcher.events():
            try:
                async with self._cycle_lock:
                    await self.broadcaster.on_settled_change(
                        event, is_stopped=lambda: self.watcher.stopped
                    )
            except Exception:  # noqa: BLE001 - one bad cycle must not end the loop
                self._log.exception(
                    "Pipeline cycle failed",
                    extra={"path": str(event.path), "event": event.kind.value},
                )


def build_monitor(settings: Optional[Settings] = None) -> MonitorContext:
    """Factory that wires the monitor from configuration."""
    settings = settings or get_settings()
    path = Path(settings.temperature_file).absolute()
    watcher = ChangeWatcher(
        path,
        stability_threshold=settings.stability_threshold,
        poll_interval=settings.poll_interval,
        changes=filesystem_changes(
            force_polling=settings.force_polling,
            poll_interval_ms=settings.poll_interval_ms,
        ),
    )
    registry = SessionRegistry()
    return MonitorContext(
        path=path,
        watcher=watcher,
        registry=registry,
        broadcaster=Broadcaster(registry),
        writer=TemperatureWriter(path),
        snapshot_on_connect=settings.snapshot_on_connect,
    )
