"""Tests for autosync.watchdog.debounce."""

import asyncio

from autosync.watchdog.debounce import DebounceTask

from conftest import settle, wait_until


class Counter:
    """Sync function counting runs, optionally gated."""

    def __init__(self, gated=False, fail_first=False):
        self.runs = 0
        self.finished = 0
        self.started = asyncio.Event()
        self.release = asyncio.Event() if gated else None
        self.fail_first = fail_first

    async def __call__(self):
        self.runs += 1
        self.started.set()
        if self.release is not None:
            await self.release.wait()
        self.finished += 1
        if self.fail_first and self.runs == 1:
            raise RuntimeError("rclone exited with code 1")


class TestTrigger:
    """Tests for coalescing triggers."""

    async def test_no_trigger_no_run(self):
        counter = Counter()
        task = DebounceTask("remote:/a", counter, asyncio.Event())
        await settle()
        assert counter.runs == 0
        await task.close()

    async def test_burst_while_idle_runs_once(self):
        counter = Counter()
        task = DebounceTask("remote:/a", counter, asyncio.Event())

        for _ in range(10):
            task.trigger()

        await wait_until(lambda: counter.finished == 1)
        await settle()
        assert counter.runs == 1
        assert task.stats['triggers'] == 10
        assert task.stats['coalesced'] == 9
        await task.close()

    async def test_burst_during_sync_runs_exactly_one_more(self):
        counter = Counter(gated=True)
        task = DebounceTask("remote:/a", counter, asyncio.Event())

        task.trigger()
        await counter.started.wait()
        for _ in range(5):
            task.trigger()

        counter.release.set()
        await wait_until(lambda: counter.finished == 2)
        await settle()
        assert counter.runs == 2
        await task.close()

    async def test_runs_never_overlap(self):
        active = 0
        peak = 0

        async def sync():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

        task = DebounceTask("remote:/a", sync, asyncio.Event())
        for _ in range(20):
            task.trigger()
            await asyncio.sleep(0.003)

        await wait_until(lambda: task.stats['runs'] >= 2 and active == 0)
        assert peak == 1
        await task.close()


class TestFailures:
    """Tests for sync failures."""

    async def test_failure_is_logged_and_task_keeps_running(self, caplog):
        counter = Counter(fail_first=True)
        task = DebounceTask("remote:/a", counter, asyncio.Event())

        task.trigger()
        await wait_until(lambda: task.stats['failures'] == 1)
        assert task.is_running
        assert "remote:/a" in caplog.text
        assert "rclone exited with code 1" in caplog.text

        task.trigger()
        await wait_until(lambda: counter.finished == 2)
        assert task.stats['failures'] == 1
        await task.close()


class TestClose:
    """Tests for shutdown behaviour."""

    async def test_close_waits_for_running_sync(self):
        counter = Counter(gated=True)
        task = DebounceTask("remote:/a", counter, asyncio.Event())

        task.trigger()
        await counter.started.wait()

        closer = asyncio.create_task(task.close())
        await settle()
        assert not closer.done()
        assert counter.finished == 0

        counter.release.set()
        await closer
        assert counter.finished == 1
        assert not task.is_running

    async def test_trigger_after_close_is_noop(self):
        counter = Counter()
        task = DebounceTask("remote:/a", counter, asyncio.Event())
        await task.close()

        task.trigger()
        task.trigger()
        await settle()
        assert counter.runs == 0
        assert task.stats['triggers'] == 0

    async def test_trigger_while_closing_is_noop(self):
        counter = Counter(gated=True)
        task = DebounceTask("remote:/a", counter, asyncio.Event())

        task.trigger()
        await counter.started.wait()
        closer = asyncio.create_task(task.close())
        await settle()

        # Close is waiting on the running sync
        assert not closer.done()
        task.trigger()
        assert task.stats['triggers'] == 1
        assert not task.get_stats()['pending']

        counter.release.set()
        await closer
        await settle()
        assert counter.runs == 1

    async def test_pending_run_is_dropped_on_close(self):
        counter = Counter(gated=True)
        task = DebounceTask("remote:/a", counter, asyncio.Event())

        task.trigger()
        await counter.started.wait()
        task.trigger()

        closer = asyncio.create_task(task.close())
        await settle()
        counter.release.set()
        await closer
        assert counter.runs == 1
        assert not task.get_stats()['pending']

    async def test_shutdown_event_stops_worker(self):
        shutdown = asyncio.Event()
        counter = Counter()
        task = DebounceTask("remote:/a", counter, shutdown)

        shutdown.set()
        await wait_until(lambda: not task.is_running)

        task.trigger()
        await settle()
        assert counter.runs == 0
        await task.close()

    async def test_close_twice(self):
        task = DebounceTask("remote:/a", Counter(), asyncio.Event())
        await task.close()
        await task.close()
        assert not task.is_running
