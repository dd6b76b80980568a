"""Shared constants for statusrelay."""

import os
from pathlib import Path

__all__ = [
    "CONFIG_FILE",
    "CONFIG_SECTION",
    "DEFAULT_COMMAND",
    "DEFAULT_GRACEFUL_TIMEOUT",
    "GENERATOR_CONFIG_FLAG",
    "LOGGER_NAME",
]

# Config file path - use XDG_CONFIG_HOME with fallback to ~/.config
_xdg_config_home = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
CONFIG_FILE = _xdg_config_home / "statusrelay" / "config.toml"

CONFIG_SECTION = "statusrelay"

LOGGER_NAME = "statusrelay"

DEFAULT_COMMAND = "i3status"

# i3status takes its configuration file with `-c`
GENERATOR_CONFIG_FLAG = "-c"

# Seconds between SIGTERM and SIGKILL when stopping the generator
DEFAULT_GRACEFUL_TIMEOUT = 1.0
