"""
autosync Processing Modules
Sync invocation
"""
from .rclone import Destination, RcloneSyncer, build_destination

__all__ = [
    'Destination',
    'RcloneSyncer',
    'build_destination',
]
