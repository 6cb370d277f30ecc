# autosync/utils/__init__.py

"""
autosync Utilities
"""
from .config import Config, PipelineConfig, load_config, as_list
from .logger import setup_logging, get_logger, JsonFormatter, PipelineLogger

__all__ = [
    'Config', 'PipelineConfig', 'load_config', 'as_list',
    'setup_logging', 'get_logger', 'JsonFormatter', 'PipelineLogger',
]
