# autosync/watchdog/patterns.py

"""
Include/exclude filtering of changed paths
"""
import re
import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Pattern, Sequence, Union

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


class FilterMode(Enum):
    """What a matching rule means for a path"""
    EXCLUDE = "exclude"
    INCLUDE = "include"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FilterMode"]:
        """
        Parse a configured filter mode

        Args:
            value: "include", "exclude", or empty/None when unset

        Returns:
            The mode, or None when unset

        Raises:
            ConfigurationError: If the value is not a known mode
        """
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(f"invalid filter_mode: {value}") from None


class PathFilter:
    """
    Decide whether a changed path should trigger a sync

    Rules are regular expressions searched anywhere in the path. In exclude
    mode a matching rule drops the path, in include mode it keeps it; a path
    no rule matches gets the opposite answer. With no rules every path
    matches.
    """

    def __init__(self, rules: Sequence[Pattern] = (),
                 mode: FilterMode = FilterMode.EXCLUDE):
        self.rules: List[Pattern] = list(rules)
        self.mode = mode

    @classmethod
    def from_patterns(cls, patterns: Optional[Sequence[str]],
                      mode: Optional[str] = None) -> "PathFilter":
        """
        Build a filter from configuration values

        Args:
            patterns: Rule patterns, in match order
            mode: "include", "exclude", or None (defaults to exclude)

        Returns:
            Compiled PathFilter

        Raises:
            ConfigurationError: On an unknown mode, an explicit mode without
                rules, or the first pattern that does not compile
        """
        patterns = list(patterns or [])
        filter_mode = FilterMode.parse(mode)

        if filter_mode is None:
            filter_mode = FilterMode.EXCLUDE
        elif not patterns:
            raise ConfigurationError("missing filter_rule")

        rules = []
        for index, pattern in enumerate(patterns):
            try:
                rules.append(re.compile(pattern))
            except re.error as e:
                raise ConfigurationError(f"invalid filter_rule[{index}]: {e}") from e

        return cls(rules, filter_mode)

    def matches(self, path: Union[str, Path]) -> bool:
        """
        Check if a change to path should trigger a sync

        Args:
            path: Changed path

        Returns:
            True if the path passes the filter
        """
        if not self.rules:
            return True

        path_str = str(path)
        for rule in self.rules:
            if rule.search(path_str):
                return self.mode is FilterMode.INCLUDE

        return self.mode is FilterMode.EXCLUDE

    def rclone_args(self) -> List[str]:
        """Render the rules as rclone --include/--exclude arguments"""
        flag = f"--{self.mode.value}"
        args = []
        for rule in self.rules:
            args.extend([flag, f"'{rule.pattern}'"])
        return args

    def __repr__(self):
        patterns = [rule.pattern for rule in self.rules]
        return f"PathFilter(mode={self.mode.value}, rules={patterns})"
