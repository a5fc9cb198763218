"""Global constants and path definitions for GitOp.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, and the default values used when no configuration is
present.
"""

import os
from pathlib import Path

# --- Identity ---
APP_NAME = "gitop"
"""str: The application name, also used as the logger name."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / APP_NAME
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "gitop.log"
"""Path: The file path for the monitor logs."""

_XDG_CONFIG = os.environ.get("XDG_CONFIG_HOME")
_BASE_CONFIG = Path(_XDG_CONFIG) if _XDG_CONFIG else Path.home() / ".config"

CONFIG_DIR: Path = _BASE_CONFIG / APP_NAME
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "gitop.toml"
"""Path: The global configuration file path."""

LOCAL_CONFIG_FILE: Path = Path("gitop.toml")
"""Path: A project-local configuration file, used when no global file exists."""

# --- Defaults ---
DEFAULT_REMOTE = "origin"
"""str: The remote tracked when a repository entry does not name one."""

DEFAULT_REFRESH_INTERVAL = 5
"""int: Seconds between the starts of two polling rounds."""

DEFAULT_MAX_COMMITS = 5
"""int: Number of recent commits fetched per repository."""

NOTIFICATION_CAPACITY = 50
"""int: Maximum number of notifications retained in the console log."""

DEFAULT_AHEAD_COLOR = "yellow"
DEFAULT_BEHIND_COLOR = "cyan"

DETACHED_HEAD = "HEAD (detached)"
"""str: Branch name reported when HEAD does not point at a local branch."""

MAX_LOG_SIZE = 5 * 1024 * 1024
"""int: Max bytes for the log file before rotation."""
