# autosync/watchdog/group.py

"""
Running several watch pipelines as one unit
"""
import asyncio
import logging
from typing import Any, Dict, List, Protocol, Sequence

from ..errors import ConfigurationError, InitializationError
from ..utils.config import PipelineConfig
from .monitor import WatchPipeline

logger = logging.getLogger(__name__)


class Monitor(Protocol):
    """Anything that can be initialized and then run until shutdown"""

    async def init(self) -> None:
        ...

    async def run(self) -> None:
        ...


class PipelineGroup:
    """
    Runs one WatchPipeline per configured directory concurrently

    Pipelines do not cancel each other; stopping them all is done by setting
    the shared shutdown event.
    """

    def __init__(self, configs: Sequence[PipelineConfig], shutdown: asyncio.Event,
                 **pipeline_kwargs: Any):
        """
        Build every pipeline

        Args:
            configs: One entry per watched directory
            shutdown: Shared shutdown event
            pipeline_kwargs: Passed through to each WatchPipeline

        Raises:
            ConfigurationError: If there are no entries or one is invalid
        """
        if not configs:
            raise ConfigurationError("missing options")

        self.shutdown = shutdown
        self.pipelines: List[WatchPipeline] = []
        for index, options in enumerate(configs):
            try:
                pipeline = WatchPipeline(options, shutdown, **pipeline_kwargs)
            except ConfigurationError as e:
                raise ConfigurationError(f"create core[{index}] failed: {e}") from e
            self.pipelines.append(pipeline)

    async def init(self):
        """
        Initialize pipelines in order, stopping at the first failure

        Raises:
            InitializationError: Naming the failing pipeline's index and dir
        """
        for index, pipeline in enumerate(self.pipelines):
            try:
                await pipeline.init()
            except InitializationError as e:
                raise InitializationError(
                    f"core[{index}] init failed: {e}, dir: {pipeline.dir}"
                ) from e

    async def run(self):
        """Run every pipeline until all of them have returned"""
        results = await asyncio.gather(
            *(pipeline.run() for pipeline in self.pipelines),
            return_exceptions=True,
        )
        for pipeline, result in zip(self.pipelines, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Pipeline stopped with error: {result}",
                    extra={'dir': pipeline.dir, 'error': str(result)},
                )

    def get_status(self) -> Dict[str, Any]:
        """Get status of every pipeline"""
        return {
            'pipelines': [pipeline.get_status() for pipeline in self.pipelines],
        }


def create_monitor(configs: Sequence[PipelineConfig], shutdown: asyncio.Event,
                   **pipeline_kwargs: Any) -> Monitor:
    """
    Build a bare pipeline for a single entry, a group for several

    Raises:
        ConfigurationError: If there are no entries or one is invalid
    """
    if not configs:
        raise ConfigurationError("missing options")
    if len(configs) == 1:
        return WatchPipeline(configs[0], shutdown, **pipeline_kwargs)
    return PipelineGroup(configs, shutdown, **pipeline_kwargs)
