from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Tuple

from watchfiles import Change

from models.records import WatchEvent, WatchEventKind
from services.watcher import ChangeWatcher, filesystem_changes

created = WatchEventKind.created
modified = WatchEventKind.modified
removed = WatchEventKind.removed


async def idle_changes(path: Path, stop_event: asyncio.Event):
    await stop_event.wait()
    for batch in ():
        yield batch


class Recorder:
    """Consumes a watcher's event stream, noting when each event arrived."""

    def __init__(self, watcher: ChangeWatcher) -> None:
        self.received: List[Tuple[WatchEvent, float]] = []
        self._task = asyncio.create_task(self._consume(watcher))

    async def _consume(self, watcher: ChangeWatcher) -> None:
        loop = asyncio.get_running_loop()
        async for event in watcher.events():
            self.received.append((event, loop.time()))

    async def finish(self) -> List[WatchEventKind]:
        await self._task
        return self.kinds()

    def kinds(self) -> List[WatchEventKind]:
        return [event.kind for event, _ in self.received]


def _touch(watcher: ChangeWatcher, change: Change = Change.modified) -> None:
    watcher.notify({(change, str(watcher.path))})


def test_existing_file_emits_created_on_start(tmp_path: Path) -> None:
    path = tmp_path / "temperature.txt"
    path.write_text("32C\n")

    async def scenario() -> List[WatchEvent]:
        watcher = ChangeWatcher(path, changes=idle_changes)
        await watcher.start()
        await watcher.stop()
        return [event async for event in watcher.events()]

    events = asyncio.run(scenario())

    assert [event.kind for event in events] == [created]
    assert events[0].path == path.absolute()
    assert events[0].observed_at.tzinfo is not None


def test_missing_file_emits_nothing_until_it_settles(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "temperature.txt"

    async def scenario() -> Tuple[List[WatchEventKind], List[WatchEventKind]]:
        watcher = ChangeWatcher(path, stability_threshold=0.1, poll_interval=0.02, changes=idle_changes)
        recorder = Recorder(watcher)
        await watcher.start()
        assert path.parent.is_dir()

        path.write_text("32C\n")
        _touch(watcher, Change.added)
        await asyncio.sleep(0.05)
        early = recorder.kinds()
        await asyncio.sleep(0.3)
        await watcher.stop()
        return early, await recorder.finish()

    early, final = asyncio.run(scenario())

    assert early == []
    assert final == [created]


def test_burst_of_writes_settles_into_one_modified_event(tmp_path: Path) -> None:
    path = tmp_path / "temperature.txt"
    path.write_text("1C\n")

    async def scenario() -> List[WatchEventKind]:
        watcher = ChangeWatcher(path, stability_threshold=0.1, poll_interval=0.02, changes=idle_changes)
        recorder = Recorder(watcher)
        await watcher.start()

        path.write_text("32C\n")
        _touch(watcher)
        await asyncio.sleep(0.01)
        path.write_text("32C\n100F\n")
        _touch(watcher)

        await asyncio.sleep(0.4)
        await watcher.stop()
        return await recorder.finish()

    assert asyncio.run(scenario()) == [created, modified]


def test_fresh_write_during_window_restarts_the_quiet_period(tmp_path: Path) -> None:
    path = tmp_path / "temperature.txt"
    path.write_text("1C\n")

    async def scenario() -> Tuple[List[WatchEventKind], List[WatchEventKind]]:
        watcher = ChangeWatcher(path, stability_threshold=0.15, poll_interval=0.02, changes=idle_changes)
        recorder = Recorder(watcher)
        await watcher.start()

        for value in range(4):
            path.write_text(f"{value}C\n")
            _touch(watcher)
            await asyncio.sleep(0.08)
        during = recorder.kinds()

        await asyncio.sleep(0.4)
        await watcher.stop()
        return during, await recorder.finish()

    during, final = asyncio.run(scenario())

    assert during == [created]
    assert final == [created, modified]


def test_removal_is_emitted_immediately_and_cancels_pending_settle(tmp_path: Path) -> None:
    path = tmp_path / "temperature.txt"
    path.write_text("32C\n")
    threshold = 0.2

    async def scenario() -> Tuple[List[Tuple[WatchEvent, float]], float]:
        loop = asyncio.get_running_loop()
        watcher = ChangeWatcher(path, stability_threshold=threshold, poll_interval=0.02, changes=idle_changes)
        recorder = Recorder(watcher)
        await watcher.start()

        path.write_text("32C\n100F\n")
        _touch(watcher)
        await asyncio.sleep(0.03)
        assert watcher.settling

        path.unlink()
        removed_at = loop.time()
        _touch(watcher, Change.deleted)
        assert not watcher.settling

        await asyncio.sleep(0.5)
        await watcher.stop()
        await recorder.finish()
        return recorder.received, removed_at

    received, removed_at = asyncio.run(scenario())

    assert [event.kind for event, _ in received] == [created, removed]
    _, delivered_at = received[1]
    assert delivered_at - removed_at < threshold


def test_settle_loop_notices_silent_removal(tmp_path: Path) -> None:
    path = tmp_path / "temperature.txt"
    path.write_text("32C\n")

    async def scenario() -> List[WatchEventKind]:
        watcher = ChangeWatcher(path, stability_threshold=0.1, poll_interval=0.02, changes=idle_changes)
        recorder = Recorder(watcher)
        await watcher.start()

        _touch(watcher)
        path.unlink()
        await asyncio.sleep(0.3)
        _touch(watcher, Change.deleted)
        await watcher.stop()
        return await recorder.finish()

    assert asyncio.run(scenario()) == [created, removed]


def test_removal_of_unknown_file_emits_nothing(tmp_path: Path) -> None:
    path = tmp_path / "temperature.txt"

    async def scenario() -> List[WatchEventKind]:
        watcher = ChangeWatcher(path, stability_threshold=0.1, poll_interval=0.02, changes=idle_changes)
        recorder = Recorder(watcher)
        await watcher.start()
        _touch(watcher, Change.deleted)
        await asyncio.sleep(0.05)
        await watcher.stop()
        return await recorder.finish()

    assert asyncio.run(scenario()) == []


def test_stop_is_idempotent_and_drops_pending_settle(tmp_path: Path) -> None:
    path = tmp_path / "temperature.txt"
    path.write_text("32C\n")

    async def scenario() -> Tuple[List[WatchEventKind], bool]:
        watcher = ChangeWatcher(path, stability_threshold=0.1, poll_interval=0.02, changes=idle_changes)
        recorder = Recorder(watcher)
        await watcher.start()

        path.write_text("100F\n")
        _touch(watcher)
        await watcher.stop()
        await watcher.stop()
        _touch(watcher)
        await asyncio.sleep(0.3)
        return await recorder.finish(), watcher.settling

    kinds, settling = asyncio.run(scenario())

    assert kinds == [created]
    assert settling is False


def test_change_source_batches_drive_events(tmp_path: Path) -> None:
    path = tmp_path / "temperature.txt"

    async def scenario() -> List[WatchEventKind]:
        batches: asyncio.Queue = asyncio.Queue()

        async def queued_changes(watched: Path, stop_event: asyncio.Event):
            while True:
                yield await batches.get()

        watcher = ChangeWatcher(path, stability_threshold=0.05, poll_interval=0.02, changes=queued_changes)
        recorder = Recorder(watcher)
        await watcher.start()

        path.write_text("32C\n")
        await batches.put({(Change.added, str(path))})
        await asyncio.sleep(0.2)
        path.write_text("33C\n")
        await batches.put({(Change.modified, str(path))})
        await asyncio.sleep(0.2)
        path.unlink()
        await batches.put({(Change.deleted, str(path))})
        await asyncio.sleep(0.05)

        await watcher.stop()
        return await recorder.finish()

    assert asyncio.run(scenario()) == [created, modified, removed]


def test_source_errors_are_reported_and_observation_resumes(tmp_path: Path) -> None:
    path = tmp_path / "temperature.txt"
    errors: List[BaseException] = []
    calls = {"count": 0}

    async def flaky_changes(watched: Path, stop_event: asyncio.Event):
        calls["count"] += 1
        if calls["count"] == 1:
            raise PermissionError("permission denied")
        await stop_event.wait()
        for batch in ():
            yield batch

    async def scenario() -> List[WatchEventKind]:
        watcher = ChangeWatcher(
            path,
            stability_threshold=0.05,
            poll_interval=0.02,
            changes=flaky_changes,
            on_error=errors.append,
        )
        recorder = Recorder(watcher)
        await watcher.start()
        await asyncio.sleep(0.1)

        path.write_text("32C\n")
        _touch(watcher, Change.added)
        await asyncio.sleep(0.2)
        await watcher.stop()
        return await recorder.finish()

    kinds = asyncio.run(scenario())

    assert calls["count"] == 2
    assert len(errors) == 1
    assert isinstance(errors[0], PermissionError)
    assert kinds == [created]


def test_filesystem_source_reports_real_writes(tmp_path: Path) -> None:
    path = tmp_path / "temperature.txt"

    async def scenario() -> WatchEvent:
        watcher = ChangeWatcher(
            path,
            stability_threshold=0.1,
            poll_interval=0.05,
            changes=filesystem_changes(force_polling=True, poll_interval_ms=50),
        )
        await watcher.start()
        await asyncio.sleep(0.3)
        path.write_text("32C\n")
        stream = watcher.events()
        try:
            return await asyncio.wait_for(stream.__anext__(), timeout=5)
        finally:
            await watcher.stop()
            await stream.aclose()

    event = asyncio.run(scenario())

    assert event.kind is created
    assert event.path == path.absolute()
