import os
from pathlib import Path

"""Global constants and filesystem layout for the chat history backup service.

This module defines where the synchronized content lives, where the persisted
configuration is read from, and the fixed git values used by the sync engine.
"""

# --- Identity ---
APP_NAME = "st-git-backup"
"""str: The application name, also used as the logger name."""

API_PREFIX = "/api/git-backup"
"""str: The route prefix of the HTTP control interface."""

# --- Paths ---
_ROOT_OVERRIDE = os.environ.get("ST_GIT_BACKUP_ROOT")
ROOT_DIR = Path(_ROOT_OVERRIDE) if _ROOT_OVERRIDE else Path.cwd()
"""Path: The process working root that the data directory is relative to."""

DATA_DIR = ROOT_DIR / "data" / "default-user" / "chats"
"""Path: The chat history directory that is mirrored to the remote repository."""

_CONFIG_OVERRIDE = os.environ.get("ST_GIT_BACKUP_CONFIG")
CONFIG_FILE = (
    Path(_CONFIG_OVERRIDE) if _CONFIG_OVERRIDE else ROOT_DIR / "git-config.json"
)
"""Path: The persisted JSON configuration file."""

_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / APP_NAME
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "service.log"
"""Path: The rotating log file written by the long-running service."""

MAX_LOG_SIZE = 5 * 1024 * 1024
"""int: Max bytes for the log file before rotation."""

# --- Git / Sync Constants ---
DEFAULT_BRANCH = "master"
"""str: The branch published when neither caller nor config names one."""

REMOTE_NAME = "origin"
"""str: The remote pointer that is reset and pushed to on every sync."""

COMMIT_MESSAGE_PREFIX = "Auto sync chat history"
"""str: Commit message prefix; the sync timestamp is appended."""

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
"""str: Format of the human-readable sync timestamp."""

STARTUP_SYNC_DELAY = 10.0
"""float: Seconds between service start and the one-shot startup sync."""

CONFIG_KEYS = ("repoUrl", "token", "userName", "userEmail", "branch")
"""tuple[str, ...]: Keys accepted from callers and from the persisted config."""

# --- Control Interface ---
DEFAULT_HOST = "127.0.0.1"
"""str: Bind address for the HTTP control interface."""

DEFAULT_PORT = 8765
"""int: Port for the HTTP control interface."""
