"""Configuration file loading."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles
import aiofiles.os

from .config import Configuration
from .constants import CONFIG_FILE, CONFIG_SECTION
from .models import ConfigError

if TYPE_CHECKING:
    import logging

__all__ = ["ConfigLoader"]


class ConfigLoader:
    """Loads the relay TOML configuration.

    The default file is optional: when it doesn't exist, defaults apply.
    A file named explicitly must exist.
    """

    def __init__(self, log: logging.Logger) -> None:
        """Initialize the config loader.

        Args:
            log: Logger instance for status and error messages
        """
        self.log = log

    async def load(self, config_filename: str = "") -> Configuration:
        """Load the configuration and return the relay section.

        Args:
            config_filename: Optional path to the config file.
                           If empty, uses the default CONFIG_FILE location.

        Raises:
            ConfigError: If an explicit file is missing, or any file has syntax errors.
        """
        if config_filename:
            fname = Path(os.path.expandvars(config_filename)).expanduser()
            if not await aiofiles.os.path.exists(fname):
                msg = f"Config file not found: {fname}"
                raise ConfigError(msg)
        else:
            fname = CONFIG_FILE
            if not await aiofiles.os.path.exists(fname):
                self.log.debug("No config file at %s, using defaults", fname)
                return Configuration(logger=self.log)

        config = await self._load_config_file(fname)
        section = config.get(CONFIG_SECTION, {})
        if not isinstance(section, dict):
            msg = f"[{CONFIG_SECTION}] must be a table in {fname}"
            raise ConfigError(msg)
        return Configuration(section, logger=self.log)

    async def _load_config_file(self, fname: Path) -> dict[str, Any]:
        """Read and parse a single TOML file."""
        self.log.info("Loading %s", fname)
        try:
            async with aiofiles.open(fname, encoding="utf-8") as f:
                content = await f.read()
        except OSError as e:
            msg = f"Problem reading {fname}: {e}"
            raise ConfigError(msg) from e
        try:
            return tomllib.loads(content)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {fname}: {e}"
            raise ConfigError(msg) from e
