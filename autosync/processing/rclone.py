# autosync/processing/rclone.py

"""
rclone invocation for one source directory
"""
import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from ..errors import SyncError

logger = logging.getLogger(__name__)

# Lines of rclone stderr kept in the error message of a failed run
STDERR_TAIL_LINES = 5


@dataclass(frozen=True)
class Destination:
    """A remote path and the full rclone command line that syncs to it"""
    remote_path: str
    args: Tuple[str, ...]

    def __str__(self):
        return self.remote_path


def build_destination(rclone_path: str, rclone_config: str, source: str,
                      remote_path: str, filter_args: Sequence[str] = (),
                      extra_args: Sequence[str] = ()) -> Destination:
    """
    Build the rclone command line for syncing source to remote_path

    Args:
        rclone_path: rclone executable
        rclone_config: rclone config file passed with --config
        source: Local directory
        remote_path: rclone remote path (e.g. "remote:/backup")
        filter_args: --include/--exclude arguments
        extra_args: Additional arguments appended last

    Returns:
        Immutable Destination
    """
    args = (
        rclone_path,
        "sync",
        "-v",
        "--config",
        rclone_config,
        source,
        remote_path,
        *filter_args,
        *extra_args,
    )
    return Destination(remote_path=remote_path, args=args)


class RcloneSyncer:
    """
    Runs rclone sync for one local directory

    A run in progress when the shutdown event fires is terminated, then
    killed if it does not exit within terminate_timeout seconds.
    """

    def __init__(self, source: str, shutdown: asyncio.Event,
                 log: Optional[logging.LoggerAdapter] = None,
                 terminate_timeout: float = 10.0):
        """
        Initialize syncer

        Args:
            source: Local directory, also the working directory of rclone
            shutdown: Shared shutdown event
            log: Logger to report through (defaults to the module logger)
            terminate_timeout: Seconds to wait after SIGTERM before SIGKILL
        """
        self.source = source
        self.shutdown = shutdown
        self.log = log or logger
        self.terminate_timeout = terminate_timeout

    def _environment(self) -> Dict[str, str]:
        env = dict(os.environ)
        env["RCLONE_IGNORE_ERRORS"] = "true"
        return env

    async def sync(self, destination: Destination):
        """
        Sync the source directory to destination

        Raises:
            SyncError: If rclone cannot be started or exits non-zero
        """
        fields = {'local_path': self.source, 'remote_path': destination.remote_path}
        self.log.info("start a sync task", extra=fields)
        started = time.monotonic()

        try:
            returncode, stderr = await self._run(destination)
            if returncode is None:
                self.log.warning("sync task interrupted by shutdown", extra=fields)
                return
            if returncode != 0:
                raise SyncError(
                    f"rclone exited with code {returncode}: {_tail(stderr)}",
                    returncode=returncode,
                )
            self.log.info("sync task success", extra=fields)
        finally:
            self.log.info(
                "sync task done",
                extra={**fields, 'duration': round(time.monotonic() - started, 3)},
            )

    async def _run(self, destination: Destination) -> Tuple[Optional[int], bytes]:
        """Run rclone; returncode is None when the run was cut short by shutdown"""
        try:
            process = await asyncio.create_subprocess_exec(
                *destination.args,
                cwd=self.source,
                env=self._environment(),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SyncError(f"failed to start {destination.args[0]}: {e}") from e

        communicate = asyncio.ensure_future(process.communicate())
        stop = asyncio.ensure_future(self.shutdown.wait())
        try:
            await asyncio.wait({communicate, stop}, return_when=asyncio.FIRST_COMPLETED)
            if not communicate.done():
                await self._terminate(process, communicate)
                await communicate
                return None, b""
            _, stderr = communicate.result()
            return process.returncode, stderr or b""
        finally:
            stop.cancel()
            if process.returncode is None:
                communicate.cancel()
                try:
                    process.kill()
                except ProcessLookupError:
                    pass

    async def _terminate(self, process: asyncio.subprocess.Process,
                         communicate: asyncio.Future):
        self.log.warning(f"Terminating rclone (pid {process.pid})")
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(asyncio.shield(communicate), self.terminate_timeout)
        except asyncio.TimeoutError:
            self.log.warning(f"rclone (pid {process.pid}) ignored SIGTERM, killing it")
            process.kill()


def _tail(stderr: bytes) -> str:
    lines = stderr.decode(errors='replace').strip().splitlines()
    if not lines:
        return "no output"
    return " | ".join(lines[-STDERR_TAIL_LINES:])
