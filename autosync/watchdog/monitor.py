# autosync/watchdog/monitor.py

"""
Watch pipeline: one local directory tree synced to its destinations
"""
import asyncio
import functools
import os
import stat
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from ..errors import ConfigurationError, InitializationError
from ..processing.rclone import Destination, RcloneSyncer, build_destination
from ..utils.aio import completed, wait_first
from ..utils.config import PipelineConfig
from ..utils.logger import get_logger
from .debounce import DebounceTask
from .events import EventType, WatchdogEvent
from .handlers import WatchStream
from .patterns import PathFilter
from .watcher import RecursiveWatcher

logger = logging.getLogger(__name__)

SyncFunc = Callable[[Destination], Awaitable[Any]]


class WatchPipeline:
    """
    Watches one directory tree and syncs it to every configured destination

    Each relevant change triggers one DebounceTask per destination, so syncs
    to the same destination never overlap and bursts collapse into at most
    one follow-up run.
    """

    def __init__(self, options: PipelineConfig, shutdown: asyncio.Event,
                 log: Optional[logging.LoggerAdapter] = None,
                 observer_factory: Callable[[], BaseObserver] = Observer,
                 sync_func: Optional[SyncFunc] = None):
        """
        Validate options and build the pipeline

        Args:
            options: Pipeline configuration
            shutdown: Shared event; setting it stops the pipeline
            log: Logger to report through (defaults to one tagged with dir)
            observer_factory: Creates the watchdog observer
            sync_func: Coroutine function syncing one destination
                (defaults to running rclone)

        Raises:
            ConfigurationError: On the first invalid option
        """
        if not options.dir:
            raise ConfigurationError("missing dir")
        if not options.rclone_path:
            raise ConfigurationError("missing rclone_path")
        if not options.rclone_config:
            raise ConfigurationError("missing rclone_config")
        if not options.remote_path:
            raise ConfigurationError("missing remote_path")

        self.path_filter = PathFilter.from_patterns(options.filter_rule, options.filter_mode)

        self.dir = options.dir
        self.shutdown = shutdown
        self.log = log or get_logger(__name__, {'dir': self.dir})
        self.observer_factory = observer_factory

        filter_args = self.path_filter.rclone_args()
        self.destinations: List[Destination] = [
            build_destination(
                rclone_path=options.rclone_path,
                rclone_config=options.rclone_config,
                source=self.dir,
                remote_path=remote_path,
                filter_args=filter_args,
                extra_args=options.arg,
            )
            for remote_path in options.remote_path
        ]

        if sync_func is None:
            sync_func = RcloneSyncer(self.dir, shutdown, self.log).sync
        self.sync_func = sync_func

        self.stream: Optional[WatchStream] = None
        self.watcher: Optional[RecursiveWatcher] = None
        self.tasks: List[DebounceTask] = []
        self._closed = False

        # Statistics
        self.stats = {
            'events_received': 0,
            'events_ignored': 0,
            'triggers': 0,
            'watch_errors': 0,
        }

    async def init(self):
        """
        Watch every directory of the tree and start the destination tasks

        Raises:
            InitializationError: If the tree cannot be walked or watched
        """
        self.stream = WatchStream(asyncio.get_running_loop())
        watcher = RecursiveWatcher(
            Path(self.dir), self.stream, self.observer_factory, log=self.log)
        try:
            watcher.register_tree()
            watcher.start()
        except OSError as e:
            watcher.stop()
            raise InitializationError(f"failed to watch fs: {e}") from e
        self.watcher = watcher

        self.tasks = [
            DebounceTask(
                destination.remote_path,
                functools.partial(self.sync_func, destination),
                self.shutdown,
                self.log,
            )
            for destination in self.destinations
        ]

    async def run(self):
        """Process events until shutdown or until the watch stream closes"""
        if self.watcher is None:
            raise RuntimeError("pipeline is not initialized")

        self.log.info("watcher is started")
        try:
            while not self.shutdown.is_set():
                event, error, stop = await wait_first(
                    self.stream.next_event(),
                    self.stream.next_error(),
                    self.shutdown.wait(),
                )
                if completed(stop):
                    break
                if completed(event):
                    if event.result() is None:
                        break
                    self.handle_event(event.result())
                if completed(error):
                    if error.result() is None:
                        break
                    self.stats['watch_errors'] += 1
                    self.log.error("watcher error", extra={'error': str(error.result())})
        finally:
            await self.close()
            self.log.info("watcher is stopped")

    def handle_event(self, event: WatchdogEvent) -> bool:
        """
        Classify one event, update the watch set and trigger syncs

        Returns:
            True if the destinations were triggered
        """
        self.stats['events_received'] += 1
        self.log.debug(
            "watcher event",
            extra={'event': event.event_type.value, 'path': str(event.src_path)},
        )

        if event.event_type == EventType.CREATE:
            contents = self._handle_created(event)
        elif event.event_type == EventType.WRITE:
            contents = []
        elif event.event_type == EventType.REMOVE:
            self.watcher.unregister(event.src_path)
            contents = []
        elif event.event_type == EventType.RENAME:
            contents = self._handle_renamed(event)
        else:
            self.stats['events_ignored'] += 1
            return False

        if not self._matches(event) and not any(map(self.path_filter.matches, contents)):
            self.stats['events_ignored'] += 1
            return False

        self.trigger()
        return True

    def _handle_created(self, event: WatchdogEvent) -> List[Path]:
        """Register a new directory; returns what was already inside it"""
        fields = {'event': event.event_type.value, 'path': str(event.src_path)}
        try:
            mode = os.stat(event.src_path).st_mode
        except OSError as e:
            self.log.error("failed to get path stat", extra={**fields, 'error': str(e)})
            return []

        if not stat.S_ISDIR(mode):
            return []
        # Entries created before anything reported them (moved in, or
        # written right after the mkdir) are only found by this walk
        return self.watcher.register_new_tree(event.src_path)

    def _handle_renamed(self, event: WatchdogEvent) -> List[Path]:
        if event.dest_path is None:
            return []
        if event.src_path not in self.watcher and not event.is_directory:
            return []
        contents = self.watcher.move(event.src_path, event.dest_path)
        self.log.debug(
            f"Followed renamed directory ({len(contents)} entries)",
            extra={'path': str(event.src_path), 'dest_path': str(event.dest_path)},
        )
        return contents

    def _matches(self, event: WatchdogEvent) -> bool:
        if self.path_filter.matches(event.src_path):
            return True
        return event.dest_path is not None and self.path_filter.matches(event.dest_path)

    def trigger(self):
        """Request a sync on every destination"""
        self.stats['triggers'] += 1
        for task in self.tasks:
            task.trigger()

    async def close(self):
        """Stop watching, then stop every destination task"""
        if self._closed:
            return
        self._closed = True

        if self.watcher is not None:
            # Joining the observer threads blocks; keep sibling pipelines running
            await asyncio.get_running_loop().run_in_executor(None, self.watcher.stop)
        if self.stream is not None:
            self.stream.close()
        for task in self.tasks:
            await task.close()

    def get_status(self) -> Dict[str, Any]:
        """Get pipeline status"""
        return {
            'dir': self.dir,
            'destinations': [d.remote_path for d in self.destinations],
            'filter': repr(self.path_filter),
            'watched_directories': len(self.watcher) if self.watcher is not None else 0,
            'stats': self.stats.copy(),
            'tasks': [task.get_stats() for task in self.tasks],
        }
