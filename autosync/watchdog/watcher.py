# autosync/watchdog/watcher.py

"""
Directory watcher tracking every directory of a tree
"""
import os
import logging
from pathlib import Path
from typing import Callable, List, Optional, Set, Union

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch

logger = logging.getLogger(__name__)


class RecursiveWatcher:
    """
    Watch a directory tree and keep the set of directories under observation

    The observer gets a single recursive watch on the root, so one inotify
    instance covers the whole tree no matter how many directories it holds.
    The set of registered directories (the watch set) is kept alongside it
    and only changes through register/unregister/move, which the pipeline
    calls as creations, removals and renames are reported.
    """

    def __init__(self, root_directory: Path,
                 handler: FileSystemEventHandler,
                 observer_factory: Callable[[], BaseObserver] = Observer,
                 join_timeout: float = 10.0,
                 log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        """
        Initialize recursive watcher

        Args:
            root_directory: Root directory to watch
            handler: Handler receiving events of the whole tree
            observer_factory: Creates the underlying observer
            join_timeout: Seconds to wait for observer threads on stop
            log: Logger for walk failures (defaults to the module logger)
        """
        self.root_directory = Path(root_directory)
        self.handler = handler
        self.observer = observer_factory()
        self.join_timeout = join_timeout
        self.log = log or logger

        self.root_watch: Optional[ObservedWatch] = None
        self._directories: Set[Path] = set()

        self.is_watching = False

    @property
    def directories(self) -> Set[Path]:
        """Directories currently under observation"""
        return set(self._directories)

    def __contains__(self, path) -> bool:
        return Path(path) in self._directories

    def __len__(self) -> int:
        return len(self._directories)

    def contains_path(self, path: Path) -> bool:
        """True if path is the root or lies below it"""
        path = Path(path)
        return path == self.root_directory or self.root_directory in path.parents

    def register(self, directory: Path) -> bool:
        """
        Add a single directory to the watch set

        Returns:
            True if the directory was not registered before
        """
        directory = Path(directory)
        if directory in self._directories or not self.contains_path(directory):
            return False
        self._directories.add(directory)
        logger.debug(f"Watching directory: {directory}")
        return True

    def _walk(self, directory: Path, strict: bool,
              found: Optional[List[Path]] = None) -> int:
        def on_walk_error(error: OSError):
            if strict:
                raise error
            self.log.error(
                "failed to watch dir",
                extra={'path': str(error.filename or directory), 'error': str(error)},
            )

        added = 0
        for dirpath, dirnames, filenames in os.walk(directory, onerror=on_walk_error):
            current = Path(dirpath)
            if self.register(current):
                added += 1
            if found is not None:
                found.extend(current / name for name in dirnames)
                found.extend(current / name for name in filenames)
        return added

    def register_tree(self, directory: Optional[Path] = None, strict: bool = True) -> int:
        """
        Register a directory and every directory below it

        Args:
            directory: Top of the tree (defaults to the root directory)
            strict: Raise on the first walk error instead of logging it
                and continuing

        Returns:
            Number of directories newly registered

        Raises:
            OSError: In strict mode, on any walk failure
        """
        directory = Path(directory) if directory is not None else self.root_directory
        if strict and not directory.is_dir():
            raise NotADirectoryError(f"not a directory: {directory}")
        return self._walk(directory, strict)

    def register_new_tree(self, directory: Path) -> List[Path]:
        """
        Register a directory that just appeared, with everything below it

        Walk errors are logged. Files and directories already inside the new
        directory were created before anything reported them, so they are
        returned for the caller to act on.

        Returns:
            Every file and directory found below directory
        """
        found: List[Path] = []
        self._walk(Path(directory), strict=False, found=found)
        return found

    def unregister(self, directory: Path) -> int:
        """
        Drop a directory and every registered directory below it

        Returns:
            Number of directories unregistered
        """
        directory = Path(directory)
        removed = [
            path for path in self._directories
            if path == directory or directory in path.parents
        ]
        for path in removed:
            self._directories.discard(path)
            logger.debug(f"Stopped watching directory: {path}")
        return len(removed)

    def move(self, src: Path, dest: Path) -> List[Path]:
        """
        Follow a renamed directory

        Registrations under src are dropped; dest is registered (with its
        subdirectories) when it is still inside the root.

        Returns:
            Every file and directory found below dest
        """
        self.unregister(src)
        dest = Path(dest)
        if not self.contains_path(dest) or not dest.is_dir():
            return []
        return self.register_new_tree(dest)

    def start(self):
        """
        Schedule the recursive root watch and start delivering events

        Raises:
            OSError: If the watch cannot be set up
        """
        if self.is_watching:
            return
        if self.root_watch is None:
            self.root_watch = self.observer.schedule(
                self.handler, str(self.root_directory), recursive=True)
        self.observer.start()
        self.is_watching = True
        logger.info(f"Started watching {len(self._directories)} directories under {self.root_directory}")

    def stop(self):
        """Stop the observer and drop every registration. Blocks on the join."""
        if self.is_watching:
            self.observer.stop()
            self.observer.join(timeout=self.join_timeout)
            self.is_watching = False
        self.root_watch = None
        self._directories.clear()
