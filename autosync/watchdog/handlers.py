# autosync/watchdog/handlers.py

"""
Bridge from the watchdog observer thread to asyncio
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler

from .events import WatchdogEvent, convert_event

logger = logging.getLogger(__name__)


class WatchStream(FileSystemEventHandler):
    """
    Event handler that turns watchdog callbacks into two asyncio streams

    ``on_any_event`` runs on the observer thread; converted events and
    conversion errors are handed to the owning loop with
    ``call_soon_threadsafe``. Closing the stream puts a ``None`` end marker
    on both queues.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        """
        Initialize stream

        Args:
            loop: Event loop the consumer runs on
        """
        self.loop = loop
        self.events: asyncio.Queue = asyncio.Queue()
        self.errors: asyncio.Queue = asyncio.Queue()
        self.closed = False

        # Statistics
        self.stats = {
            'events_received': 0,
            'errors': 0,
        }

    def on_any_event(self, event: FileSystemEvent):
        """Handle any file system event (observer thread)"""
        self.stats['events_received'] += 1
        try:
            converted = convert_event(event)
        except Exception as e:
            self.report_error(e)
            return
        self._post(self.events, converted)

    def report_error(self, error: Exception):
        """Send an error to the consumer; safe from any thread"""
        self.stats['errors'] += 1
        self._post(self.errors, error)

    def _post(self, queue: asyncio.Queue, item: Any):
        if self.closed:
            return
        try:
            self.loop.call_soon_threadsafe(queue.put_nowait, item)
        except RuntimeError:
            # Loop already closed during shutdown
            logger.debug(f"Dropping {item!r}, event loop is closed")

    async def next_event(self) -> Optional[WatchdogEvent]:
        """Next event, or None once the stream is closed"""
        return await self.events.get()

    async def next_error(self) -> Optional[Exception]:
        """Next error, or None once the stream is closed"""
        return await self.errors.get()

    def close(self):
        """Close both streams. Must be called on the consumer loop."""
        if self.closed:
            return
        self.closed = True
        self.events.put_nowait(None)
        self.errors.put_nowait(None)

    def get_stats(self) -> Dict[str, Any]:
        """Get stream statistics"""
        return {
            **self.stats,
            'queued_events': self.events.qsize(),
            'closed': self.closed,
        }
