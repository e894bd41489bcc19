"""st-git-backup: Chat history backup to a git remote.

This package provides the sync engine that mirrors the chat history directory
to a remote repository, an HTTP control interface to trigger it and read its
status, a one-shot startup scheduler, and a command-line interface.
"""

from . import (
    api,
    cli,
    config,
    constants,
    daemon,
    engine,
    errors,
    git_wrapper,
)

__all__ = [
    "api",
    "cli",
    "config",
    "constants",
    "daemon",
    "engine",
    "errors",
    "git_wrapper",
]
