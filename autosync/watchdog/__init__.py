# autosync/watchdog/__init__.py

"""
autosync Watchdog Module
File system monitoring and sync scheduling
"""
from .events import WatchdogEvent, EventType
from .patterns import PathFilter, FilterMode
from .debounce import DebounceTask
from .handlers import WatchStream
from .watcher import RecursiveWatcher
from .monitor import WatchPipeline
from .group import Monitor, PipelineGroup, create_monitor

__all__ = [
    'WatchdogEvent',
    'EventType',
    'PathFilter',
    'FilterMode',
    'DebounceTask',
    'WatchStream',
    'RecursiveWatcher',
    'WatchPipeline',
    'Monitor',
    'PipelineGroup',
    'create_monitor',
]
