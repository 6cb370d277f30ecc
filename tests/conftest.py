"""Pytest configuration and fixtures."""

import asyncio
import sys
import time
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add project root to Python path for imports
root_path = Path(__file__).parent.parent
sys.path.insert(0, str(root_path))

from autosync.utils.config import PipelineConfig  # noqa: E402


class FakeObserver:
    """In-memory stand-in for a watchdog observer."""

    def __init__(self):
        self.watches = {}
        self.handlers = {}
        self.started = False
        self.stopped = False
        self.fail_on = set()

    def schedule(self, event_handler, path, recursive=False):
        if path in self.fail_on:
            raise PermissionError(13, "Permission denied", path)
        watch = SimpleNamespace(path=path, is_recursive=recursive)
        self.watches[path] = watch
        self.handlers[path] = event_handler
        return watch

    def unschedule(self, watch):
        if self.watches.get(watch.path) is not watch:
            raise KeyError(watch)
        del self.watches[watch.path]
        del self.handlers[watch.path]

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass

    def is_alive(self):
        return self.started and not self.stopped


class SyncRecorder:
    """Records sync calls; optionally blocks each call until released."""

    def __init__(self):
        self.calls = []
        self.started = asyncio.Event()
        self.release = None

    async def __call__(self, destination):
        self.calls.append(destination)
        self.started.set()
        if self.release is not None:
            await self.release.wait()

    @property
    def remote_paths(self):
        return [d.remote_path for d in self.calls]


async def wait_until(predicate, timeout=2.0, interval=0.01):
    """Poll predicate until it is true or fail after timeout."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


async def settle(delay=0.05):
    """Give background tasks a chance to run."""
    await asyncio.sleep(delay)


def make_options(root, **overrides):
    """Build a valid PipelineConfig for root."""
    values = dict(
        dir=str(root),
        rclone_path="rclone",
        rclone_config="/etc/rclone.conf",
        remote_path=["remote:/backup"],
    )
    values.update(overrides)
    return PipelineConfig(**values)


@pytest.fixture
def fake_observer():
    return FakeObserver()


@pytest.fixture
def sync_recorder():
    return SyncRecorder()


@pytest.fixture
def data_dir(tmp_path):
    root = tmp_path / "data"
    root.mkdir()
    return root
