"""
autosync - watch local directories and sync them with rclone on change
"""
__version__ = "0.1.0"
