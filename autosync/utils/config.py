# autosync/utils/config.py

"""
Configuration management for autosync
"""
import os
import json
import yaml
from pathlib import Path
from typing import Dict, Any, List, Mapping, Optional, Union
from dataclasses import dataclass, field, asdict, fields
import logging

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_RCLONE_PATH = "RCLONE_PATH"
ENV_RCLONE_CONFIG = "RCLONE_CONFIG"
DEFAULT_RCLONE_PATH = "rclone"

DEFAULT_CONFIG_PATH = "config.json"


def as_list(value: Any, name: str = "value") -> List[str]:
    """
    Normalize a scalar-or-list configuration value to a list of strings

    Args:
        value: None, a single string, or a list of strings
        name: Field name used in error messages

    Returns:
        List of strings (empty for None)
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = list(value)
    else:
        items = [value]

    for index, item in enumerate(items):
        if not isinstance(item, str):
            raise ConfigurationError(
                f"invalid {name}[{index}]: expected a string, got {type(item).__name__}"
            )
    return items


def _as_str(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigurationError(f"invalid {name}: expected a string, got {type(value).__name__}")
    return value


@dataclass
class PipelineConfig:
    """One watched directory and where it syncs to"""
    dir: str = ""
    rclone_path: str = ""       # or $RCLONE_PATH
    rclone_config: str = ""     # or $RCLONE_CONFIG
    arg: List[str] = field(default_factory=list)
    filter_rule: List[str] = field(default_factory=list)
    filter_mode: str = ""       # exclude | include
    remote_path: List[str] = field(default_factory=list)

    _LIST_FIELDS = ('arg', 'filter_rule', 'remote_path')

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PipelineConfig":
        """
        Build a pipeline config from a parsed mapping

        Args:
            data: Mapping with the keys of this dataclass

        Returns:
            PipelineConfig with list fields normalized
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"expected a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        values = {}
        for name in known:
            if name not in data:
                continue
            if name in cls._LIST_FIELDS:
                values[name] = as_list(data[name], name)
            else:
                values[name] = _as_str(data[name], name)
        return cls(**values)

    def apply_env_defaults(self, environ: Optional[Mapping[str, str]] = None):
        """Fill rclone_path/rclone_config from the environment when unset"""
        environ = os.environ if environ is None else environ
        if not self.rclone_path:
            self.rclone_path = environ.get(ENV_RCLONE_PATH) or DEFAULT_RCLONE_PATH
        if not self.rclone_config:
            self.rclone_config = environ.get(ENV_RCLONE_CONFIG, "")


@dataclass
class Config:
    """Main configuration class"""
    core: List[PipelineConfig] = field(default_factory=list)
    log_level: Optional[str] = None
    log_format: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        """Build config from the parsed file contents"""
        if not isinstance(data, Mapping):
            raise ConfigurationError("config file must contain a mapping")

        raw_core = data.get("core")
        if raw_core is None:
            entries = []
        elif isinstance(raw_core, list):
            entries = raw_core
        else:
            entries = [raw_core]

        core = []
        for index, entry in enumerate(entries):
            try:
                core.append(PipelineConfig.from_dict(entry))
            except ConfigurationError as e:
                raise ConfigurationError(f"invalid core[{index}]: {e}") from e

        return cls(
            core=core,
            log_level=_as_str(data.get("log_level"), "log_level") or None,
            log_format=_as_str(data.get("log_format"), "log_format") or None,
        )

    def apply_env_defaults(self, environ: Optional[Mapping[str, str]] = None):
        for pipeline in self.core:
            pipeline.apply_env_defaults(environ)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}

    def to_json(self, indent: int = 2) -> str:
        """Convert config to JSON string"""
        return json.dumps(self.to_dict(), indent=indent)

    def to_yaml(self) -> str:
        """Convert config to YAML string"""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False)


def load_config(path: Union[str, Path] = DEFAULT_CONFIG_PATH,
                environ: Optional[Mapping[str, str]] = None) -> Config:
    """
    Load configuration from a JSON or YAML file

    Args:
        path: Config file; .yaml/.yml is read as YAML, anything else as JSON
        environ: Environment for rclone defaults (defaults to os.environ)

    Returns:
        Loaded config with environment defaults applied

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    config_path = Path(path)

    try:
        content = config_path.read_text(encoding='utf-8')
    except OSError as e:
        raise ConfigurationError(f"read config file failed: {e}") from e

    try:
        if config_path.suffix.lower() in ['.yaml', '.yml']:
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (yaml.YAMLError, ValueError) as e:
        raise ConfigurationError(f"parse config file failed: {e}") from e

    config = Config.from_dict(data or {})
    config.apply_env_defaults(environ)

    logger.debug(f"Loaded configuration from {config_path} ({len(config.core)} core entries)")
    return config
