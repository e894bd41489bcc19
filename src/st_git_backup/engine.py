"""The synchronization engine and the status record it maintains.

A sync mirrors the chat history directory to the configured remote: it makes
sure the directory is a git repository, points `origin` at the (optionally
token-authenticated) address, and when the working tree has changes commits
them and force-pushes the configured branch.
"""

import datetime
import enum
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any
from urllib.parse import quote

from . import config
from .constants import (
    APP_NAME,
    COMMIT_MESSAGE_PREFIX,
    DATA_DIR,
    REMOTE_NAME,
    TIMESTAMP_FORMAT,
)
from .errors import BusyError, CommandError, ConfigurationError
from .git_wrapper import GitRepo, SubprocessRunner

logger = logging.getLogger(APP_NAME)

SECURE_SCHEME = "https://"
UNKNOWN_ERROR = "unknown error"


class SyncState(str, enum.Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


@dataclass
class SyncStatus:
    """The last known outcome of the sync engine.

    Attributes:
        state (SyncState): Whether the engine is idle, running, or failed.
        last_sync (str | None): Timestamp of the last successful publish.
        error (str | None): The message of the last failure, if any.
    """

    state: SyncState = SyncState.IDLE
    last_sync: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        """Returns the wire form used by the control interface."""
        return {
            "status": self.state.value,
            "lastSync": self.last_sync,
            "error": self.error,
        }


class StatusStore:
    """Holds the engine's status record.

    Readers get copies from `get`; only the engine calls the mutators.
    """

    def __init__(self) -> None:
        self._status = SyncStatus()
        self._lock = threading.Lock()

    def get(self) -> SyncStatus:
        with self._lock:
            return replace(self._status)

    def begin(self) -> None:
        with self._lock:
            self._status.state = SyncState.SYNCING

    def record_publish(self, timestamp: str) -> None:
        with self._lock:
            self._status.last_sync = timestamp
            self._status.error = None

    def finish(self) -> None:
        with self._lock:
            self._status.state = SyncState.IDLE

    def fail(self, message: str) -> None:
        with self._lock:
            self._status.state = SyncState.ERROR
            self._status.error = message


@dataclass(frozen=True)
class SyncResult:
    """The outcome of a successful sync.

    Attributes:
        published (bool): Whether a commit was created and pushed.
        timestamp (str | None): The sync timestamp when something was published.
    """

    published: bool
    timestamp: str | None = None


def build_publish_url(repo_url: str, token: str | None) -> str:
    """Embeds an access token into an https repository address.

    `https://host/owner/repo.git` becomes `https://<token>@host/owner/repo.git`.
    Addresses using any other scheme, or calls without a token, are returned
    unchanged.

    Args:
        repo_url (str): The configured repository address.
        token (str | None): The access token.

    Returns:
        str: The address handed to `git remote add`.
    """
    if not token or not repo_url.startswith(SECURE_SCHEME):
        return repo_url
    rest = repo_url[len(SECURE_SCHEME) :]
    return f"{SECURE_SCHEME}{quote(token, safe='')}@{rest}"


def redact(message: str, token: str | None) -> str:
    """Replaces every occurrence of `token` (raw or url-quoted) with `***`."""
    if not token:
        return message
    for secret in {token, quote(token, safe="")}:
        message = message.replace(secret, "***")
    return message


def failure_message(exc: BaseException) -> str:
    """Reduces a sync failure to the message stored in the status record.

    Captured stderr of a failed command wins, then the exception message,
    then a generic fallback.
    """
    if isinstance(exc, CommandError) and exc.stderr:
        return exc.stderr
    return str(exc) or UNKNOWN_ERROR


class SyncEngine:
    """Orchestrates the git command sequence for one synchronized directory.

    Calls are single-flight: while one sync is running, further calls raise
    `BusyError` without touching the status record.

    Attributes:
        data_dir (Path): The directory mirrored to the remote.
        status (StatusStore): The engine's status record.
    """

    def __init__(
        self,
        data_dir: Path | None = None,
        config_file: Path | None = None,
        runner: SubprocessRunner | None = None,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ):
        self.data_dir = data_dir or DATA_DIR
        self.config_file = config_file
        self.runner = runner or SubprocessRunner()
        self.clock = clock
        self.status = StatusStore()
        self._guard = threading.Lock()

    def is_busy(self) -> bool:
        return self._guard.locked()

    def sync(self, options: Mapping[str, Any] | None = None) -> SyncResult:
        """Runs one sync.

        Args:
            options (Mapping[str, Any] | None): Caller overrides keyed by wire
                name (`repoUrl`, `token`, `userName`, `userEmail`, `branch`).

        Returns:
            SyncResult: Whether anything was published.

        Raises:
            BusyError: If another sync is already running.
            ConfigurationError: If no repository address is configured.
            CommandError: If a git command fails.

        Every failure other than `BusyError` is raised with a `status_message`
        attribute holding the (redacted) text written to the status record.
        """
        if not self._guard.acquire(blocking=False):
            raise BusyError("a sync is already in progress")
        try:
            return self._sync_locked(options)
        finally:
            self._guard.release()

    def _sync_locked(self, options: Mapping[str, Any] | None) -> SyncResult:
        try:
            conf = config.resolve(options, self.config_file)
        except ConfigurationError as e:
            e.status_message = failure_message(e)
            logger.error(f"SYNC FAILED: {e.status_message}")
            self.status.fail(e.status_message)
            raise

        self.status.begin()
        try:
            result = self._run_steps(conf)
        except Exception as e:
            e.status_message = redact(failure_message(e), conf.token)
            logger.error(f"SYNC FAILED: {e.status_message}")
            self.status.fail(e.status_message)
            raise

        if result.timestamp:
            self.status.record_publish(result.timestamp)
        self.status.finish()
        return result

    def _run_steps(self, conf: config.SyncConfig) -> SyncResult:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        repo = GitRepo(self.data_dir, self.runner)

        if not repo.is_initialized():
            logger.info(f"Initializing git repository in {self.data_dir}")
            repo.init()

        repo.set_identity(conf.user_name, conf.user_email)

        try:
            repo.remove_remote(REMOTE_NAME)
        except CommandError as e:
            logger.debug(f"No existing remote '{REMOTE_NAME}' to remove: {e.stderr}")
        repo.add_remote(REMOTE_NAME, build_publish_url(conf.repo_url, conf.token))

        repo.add_all()
        if not repo.status_porcelain():
            logger.info("NO CHANGES: nothing to sync.")
            return SyncResult(published=False)

        timestamp = self.clock().strftime(TIMESTAMP_FORMAT)
        repo.commit(f"{COMMIT_MESSAGE_PREFIX}: {timestamp}")
        repo.push_force(REMOTE_NAME, conf.branch)
        logger.info(f"SUCCESS: pushed {conf.branch} to {conf.repo_url}")
        return SyncResult(published=True, timestamp=timestamp)
