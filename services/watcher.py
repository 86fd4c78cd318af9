"""Debounced observation of the temperature file.

Raw filesystem notifications (``watchfiles.awatch`` on the file's parent
directory) are reduced to three settled events:

* ``created`` / ``modified`` once the file has been quiet for the stability
  threshold, sampled every poll interval;
* ``removed`` as soon as the file is observed missing, cancelling any pending
  settle loop.

Events are delivered through a single ordered stream, ``ChangeWatcher.events()``.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from pathlib import Path
from typing import (
    AsyncIterator,
    Callable,
    Iterable,
    Optional,
    Set,
    Tuple,
)

from watchfiles import Change, awatch

from models.records import WatchEvent, WatchEventKind

logger = logging.getLogger(__name__)

ChangeBatch = Set[Tuple[Change, str]]
ChangeSource = Callable[[Path, asyncio.Event], AsyncIterator[ChangeBatch]]
ErrorCallback = Callable[[BaseException], None]


def filesystem_changes(force_polling: bool = False, poll_interval_ms: int = 50) -> ChangeSource:
    """Build a change source backed by ``watchfiles.awatch``."""

    def source(path: Path, stop_event: asyncio.Event) -> AsyncIterator[ChangeBatch]:
        name = path.name
        return awatch(
            path.parent,
            watch_filter=lambda _change, changed: Path(changed).name == name,
            debounce=poll_interval_ms,
            step=poll_interval_ms,
            stop_event=stop_event,
            recursive=False,
            force_polling=force_polling,
            poll_delay_ms=poll_interval_ms,
        )

    return source


class ChangeWatcher:
    """Turns raw change notifications for one file into settled watch events."""

    def __init__(
        self,
        path: Path,
        stability_threshold: float = 0.1,
        poll_interval: float = 0.05,
        changes: Optional[ChangeSource] = None,
        on_error: Optional[ErrorCallback] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.path = Path(path).absolute()
        self.stability_threshold = stability_threshold
        self.poll_interval = poll_interval
        self._changes = changes or filesystem_changes(
            poll_interval_ms=max(1, int(poll_interval * 1000))
        )
        self._on_error = on_error
        self._log = log or logger
        self._queue: asyncio.Queue[Optional[WatchEvent]] = asyncio.Queue()
        self._stop_event = asyncio.Event()
        self._source_task: Optional[asyncio.Task[None]] = None
        self._settle_task: Optional[asyncio.Task[None]] = None
        self._last_activity = 0.0
        self._known = False
        self._started = False
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def settling(self) -> bool:
        return self._settle_task is not None and not self._settle_task.done()

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._log.info("Watching file", extra={"path": str(self.path)})

        if self._sample_or_report() is not None:
            self._known = True
            self._emit(WatchEventKind.created)

        self._source_task = asyncio.create_task(
            self._observe(), name=f"watch:{self.path.name}"
        )

    async def stop(self) -> None:
        """Stop observing; pending settle loops are dropped without emitting."""
        if self._stopped:
            return
        self._stopped = True
        self._stop_event.set()

        tasks = [task for task in (self._settle_task, self._source_task) if task is not None]
        self._settle_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task

        self._queue.put_nowait(None)
        self._log.info("Stopped watching file", extra={"path": str(self.path)})

    async def events(self) -> AsyncIterator[WatchEvent]:
        """Yield settled events in order until the watcher is stopped."""
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    def notify(self, changes: Iterable[Tuple[Change, str]]) -> None:
        """Feed one batch of raw change notifications into the watcher."""
        if self._stopped or not list(changes):
            return
        try:
            sample = self._sample()
        except OSError as exc:
            self._report(exc)
            return
        if sample is None:
            self._handle_removal()
        else:
            self._mark_activity()

    async def _observe(self) -> None:
        while not self._stop_event.is_set():
            try:
                async for batch in self._changes(self.path, self._stop_event):
                    self.notify(batch)
            except Exception as exc:
                self._report(exc)
            if self._stop_event.is_set():
                return
            await asyncio.sleep(self.poll_interval)

    def _mark_activity(self) -> None:
        self._last_activity = asyncio.get_running_loop().time()
        if not self.settling:
            self._settle_task = asyncio.create_task(
                self._settle(), name=f"settle:{self.path.name}"
            )

    async def _settle(self) -> None:
        loop = asyncio.get_running_loop()
        previous = self._sample_or_report()
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                current = self._sample()
            except OSError as exc:
                self._settle_task = None
                self._report(exc)
                return
            if current is None:
                self._settle_task = None
                self._handle_removal()
                return

            now = loop.time()
            if current != previous:
                previous = current
                self._last_activity = now
            if now - self._last_activity >= self.stability_threshold:
                break

        self._settle_task = None
        kind = WatchEventKind.modified if self._known else WatchEventKind.created
        self._known = True
        self._emit(kind)

    def _handle_removal(self) -> None:
        if self._settle_task is not None:
            self._settle_task.cancel()
            self._settle_task = None
        if not self._known:
            return
        self._known = False
        self._emit(WatchEventKind.removed)

    def _emit(self, kind: WatchEventKind) -> None:
        if self._stopped:
            return
        self._log.info("File %s", kind.value, extra={"path": str(self.path), "event": kind.value})
        self._queue.put_nowait(WatchEvent(kind=kind, path=self.path))

    def _sample(self) -> Optional[Tuple[int, int]]:
        try:
            info = self.path.stat()
        except (FileNotFoundError, NotADirectoryError):
            return None
        return info.st_size, info.st_mtime_ns

    def _sample_or_report(self) -> Optional[Tuple[int, int]]:
        try:
            return self._sample()
        except OSError as exc:
            self._report(exc)
            return None

    def _report(self, exc: BaseException) -> None:
        self._log.error("Watcher error", extra={"path": str(self.path), "reason": str(exc)})
        if self._on_error is not None:
            self._on_error(exc)
