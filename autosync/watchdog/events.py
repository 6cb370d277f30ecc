# autosync/watchdog/events.py

"""
File system event model shared by the watch stream and the pipelines
"""
from enum import Enum
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from watchdog.events import (
    FileSystemEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileDeletedEvent,
    FileMovedEvent,
    DirCreatedEvent,
    DirDeletedEvent,
    DirMovedEvent,
)


class EventType(Enum):
    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"
    OTHER = "other"


@dataclass
class WatchdogEvent:
    event_type: EventType
    src_path: Path
    dest_path: Optional[Path] = None
    is_directory: bool = False
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()

    def __str__(self):
        if self.dest_path:
            return f"{self.event_type.value}: {self.src_path} -> {self.dest_path}"
        return f"{self.event_type.value}: {self.src_path}"


def convert_event(event: FileSystemEvent) -> WatchdogEvent:
    """
    Convert a raw watchdog event into a WatchdogEvent

    Directory modifications are reported as OTHER: they only echo changes to
    a child, and the child's own event is what gets filtered.
    """
    if isinstance(event, (FileCreatedEvent, DirCreatedEvent)):
        event_type = EventType.CREATE
    elif isinstance(event, FileModifiedEvent):
        event_type = EventType.WRITE
    elif isinstance(event, (FileDeletedEvent, DirDeletedEvent)):
        event_type = EventType.REMOVE
    elif isinstance(event, (FileMovedEvent, DirMovedEvent)):
        event_type = EventType.RENAME
    else:
        event_type = EventType.OTHER

    dest_path = getattr(event, 'dest_path', None)

    return WatchdogEvent(
        event_type=event_type,
        src_path=Path(_decode(event.src_path)),
        dest_path=Path(_decode(dest_path)) if dest_path else None,
        is_directory=event.is_directory,
    )


def _decode(path) -> str:
    if isinstance(path, bytes):
        return path.decode(errors='surrogateescape')
    return path
