"""Configuration wrapper providing typed access, and the generator launch settings."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .constants import DEFAULT_COMMAND, DEFAULT_GRACEFUL_TIMEOUT, GENERATOR_CONFIG_FLAG

if TYPE_CHECKING:
    import logging

__all__ = ["Configuration", "GeneratorConfig"]


class Configuration(dict):
    """A config section with typed accessors.

    Invalid values are logged and replaced by the default.
    """

    def __init__(self, *args: Any, logger: logging.Logger, **kwargs: Any) -> None:  # noqa: ANN401
        super().__init__(*args, **kwargs)
        self.log = logger

    def get_float(self, name: str, default: float = 0.0) -> float:
        """Get a float value.

        Args:
            name: The key name
            default: Default value if key is missing or invalid
        """
        value = self.get(name)
        if value is None:
            return default
        try:
            return float(value)
        except (ValueError, TypeError):
            self.log.warning("Invalid float value for %s: %s", name, value)
            return default

    def get_str(self, name: str, default: str = "") -> str:
        """Get a string value."""
        value = self.get(name)
        if value is None:
            return default
        return str(value)

    def get_list(self, name: str, default: list[str] | None = None) -> list[str]:
        """Get a list of strings. A single string is split like a shell would."""
        value = self.get(name)
        if value is None:
            return list(default or [])
        if isinstance(value, str):
            try:
                return shlex.split(value)
            except ValueError as e:
                self.log.warning("Invalid list value for %s: %s (%s)", name, value, e)
                return list(default or [])
        if isinstance(value, list):
            return [str(item) for item in value]
        self.log.warning("Invalid list value for %s: %s", name, value)
        return list(default or [])


@dataclass
class GeneratorConfig:
    """How to launch the status line generator."""

    command: str = DEFAULT_COMMAND
    config_file: str | None = None
    args: list[str] = field(default_factory=list)
    graceful_timeout: float = DEFAULT_GRACEFUL_TIMEOUT

    @classmethod
    def from_config(cls, conf: Configuration, **overrides: Any) -> GeneratorConfig:  # noqa: ANN401
        """Build from a config section, non-None `overrides` taking precedence."""
        values: dict[str, Any] = {
            "command": conf.get_str("command", DEFAULT_COMMAND),
            "config_file": conf.get_str("config_file") or None,
            "args": conf.get_list("args"),
            "graceful_timeout": conf.get_float("graceful_timeout", DEFAULT_GRACEFUL_TIMEOUT),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def config_path(self) -> str | None:
        """Return the generator config file with `~` and variables expanded."""
        if not self.config_file:
            return None
        return os.path.expanduser(os.path.expandvars(self.config_file))

    def argv(self) -> list[str]:
        """Return the generator command line.

        Raises:
            ValueError: the command has unbalanced quotes
        """
        argv = shlex.split(self.command)
        if self.config_path:
            argv += [GENERATOR_CONFIG_FLAG, self.config_path]
        return argv + list(self.args)
