#main.py

"""
autosync - watch local directories and rclone-sync them on change
"""
import sys
from pathlib import Path

# Allow running from a checkout without installing
sys.path.insert(0, str(Path(__file__).parent))

from autosync.cli import cli

if __name__ == "__main__":
    cli()
