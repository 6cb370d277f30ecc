# autosync/watchdog/debounce.py

"""
Per-destination sync debouncing
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from ..utils.aio import completed, wait_first

logger = logging.getLogger(__name__)


class DebounceTask:
    """
    Serializes sync runs for one destination and collapses bursts

    At most one sync is running and at most one is pending. A trigger that
    arrives while a sync runs queues exactly one follow-up run; any further
    triggers before that follow-up starts are dropped.
    """

    def __init__(self, destination: str,
                 sync_func: Callable[[], Awaitable[Any]],
                 shutdown: asyncio.Event,
                 log: Optional[logging.LoggerAdapter] = None):
        """
        Initialize and start the worker. Must be called from a running loop.

        Args:
            destination: Destination label used in log records
            sync_func: Coroutine function performing one sync run
            shutdown: Shared event; once set the task stops taking triggers
            log: Logger to report through (defaults to the module logger)
        """
        self.destination = destination
        self.sync_func = sync_func
        self.shutdown = shutdown
        self.log = log or logger

        self._pending: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._closing = asyncio.Event()

        # Statistics
        self.stats = {
            'triggers': 0,
            'coalesced': 0,
            'runs': 0,
            'failures': 0,
        }

        self._worker = asyncio.create_task(self._loop())

    @property
    def is_running(self) -> bool:
        return not self._worker.done()

    def _stopping(self) -> bool:
        return self._closing.is_set() or self.shutdown.is_set()

    def trigger(self):
        """Request a sync run. Never blocks."""
        if self._stopping():
            return

        self.stats['triggers'] += 1
        try:
            self._pending.put_nowait(None)
        except asyncio.QueueFull:
            self.stats['coalesced'] += 1

    async def _loop(self):
        self.log.debug(f"Sync task started for {self.destination}")
        while not self._stopping():
            signal, closing, shutdown = await wait_first(
                self._pending.get(),
                self._closing.wait(),
                self.shutdown.wait(),
            )
            if completed(closing) or completed(shutdown):
                break
            if completed(signal):
                await self._run_once()
        self.log.debug(f"Sync task stopped for {self.destination}")

    async def _run_once(self):
        self.stats['runs'] += 1
        try:
            await self.sync_func()
        except Exception as e:
            self.stats['failures'] += 1
            self.log.error(
                f"Sync to {self.destination} failed: {e}",
                extra={'remote_path': self.destination, 'error': str(e)},
            )

    async def close(self):
        """Stop the worker and wait until it has exited"""
        self._closing.set()
        await self._worker

        while not self._pending.empty():
            self._pending.get_nowait()

    def get_stats(self) -> Dict[str, Any]:
        """Get task statistics"""
        return {
            **self.stats,
            'destination': self.destination,
            'is_running': self.is_running,
            'pending': self._pending.full(),
        }
