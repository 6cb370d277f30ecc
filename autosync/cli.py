# autosync/cli.py

"""
Command line entry point: load config, watch, sync until signalled
"""
import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from . import __version__
from .errors import ConfigurationError, InitializationError
from .utils.config import DEFAULT_CONFIG_PATH, load_config
from .utils.logger import LOG_FORMATS, setup_logging
from .watchdog.group import create_monitor

logger = logging.getLogger(__name__)

DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_FORMAT = "json"

SHUTDOWN_SIGNALS = [
    getattr(signal, name)
    for name in ("SIGINT", "SIGTERM", "SIGQUIT")
    if hasattr(signal, name)
]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="autosync",
        description="Watch local directories and rclone-sync them on change.",
        epilog="Examples:\n"
        "  autosync                         # Use ./config.json\n"
        "  autosync -c sync.yaml -l debug   # Custom config, verbose logs\n",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"config file, JSON or YAML (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        default=None,
        help=f"log level (default: {DEFAULT_LOG_LEVEL})",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help=f"log output format (default: {DEFAULT_LOG_FORMAT})",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)


def install_signal_handlers(loop: asyncio.AbstractEventLoop, shutdown: asyncio.Event):
    """Set the shutdown event on SIGINT/SIGTERM/SIGQUIT"""

    def on_signal(signum: int):
        logger.warning("receive signal, exiting...", extra={'signal': signal.Signals(signum).name})
        shutdown.set()

    for signum in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(signum, on_signal, signum)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            signal.signal(signum, lambda s, _frame: loop.call_soon_threadsafe(on_signal, s))


async def main(args: argparse.Namespace) -> int:
    """
    Run autosync until a shutdown signal arrives

    Returns:
        Process exit code
    """
    try:
        setup_logging(args.log_level or DEFAULT_LOG_LEVEL, args.log_format or DEFAULT_LOG_FORMAT)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config)
        if (config.log_level and not args.log_level) or (config.log_format and not args.log_format):
            setup_logging(
                args.log_level or config.log_level or DEFAULT_LOG_LEVEL,
                args.log_format or config.log_format or DEFAULT_LOG_FORMAT,
            )
    except (ConfigurationError, ValueError) as e:
        logger.error(str(e))
        return 1

    shutdown = asyncio.Event()
    try:
        monitor = create_monitor(config.core, shutdown)
        await monitor.init()
    except (ConfigurationError, InitializationError) as e:
        logger.error(str(e))
        return 1

    install_signal_handlers(asyncio.get_running_loop(), shutdown)
    await monitor.run()
    return 0


def cli(argv: Optional[List[str]] = None):
    """Console script entry point"""
    args = parse_args(argv)
    try:
        code = asyncio.run(main(args))
    except KeyboardInterrupt:
        code = 130
    if code != 0:
        sys.exit(code)
