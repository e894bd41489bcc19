import contextlib
import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import APP_NAME, CONFIG_FILE, CONFIG_KEYS, DEFAULT_BRANCH
from .errors import ConfigurationError

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class SyncConfig:
    """The effective settings for a single sync run.

    Attributes:
        repo_url (str): The remote repository address.
        token (str | None): Access token embedded into https addresses.
        user_name (str | None): Committer name for the local repository.
        user_email (str | None): Committer email for the local repository.
        branch (str): The remote branch that is force-published.
    """

    repo_url: str
    token: str | None = None
    user_name: str | None = None
    user_email: str | None = None
    branch: str = DEFAULT_BRANCH


def mask_token(token: str | None) -> str | None:
    """Hides all but the last four characters of a token.

    Tokens too short to spare four characters are hidden completely.
    """
    if not token:
        return None
    if len(token) <= 8:
        return "****"
    return "*" * (len(token) - 4) + token[-4:]


def _clean(data: Mapping[str, Any], source: str) -> dict[str, str]:
    """Keeps known keys with non-empty string values, warning about the rest."""
    unknown = set(data.keys()) - set(CONFIG_KEYS)
    if unknown:
        logger.warning(
            f"Unknown config keys in {source}: {', '.join(sorted(unknown))}. Ignoring."
        )

    cleaned = {}
    for key in CONFIG_KEYS:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            logger.warning(f"Config error in {source}.{key}: expected a string.")
            continue
        value = value.strip()
        if value:
            cleaned[key] = value
    return cleaned


def load_local_config(path: Path | None = None) -> dict[str, str]:
    """Reads the persisted JSON configuration.

    A missing file is an empty configuration. A file that cannot be read or
    parsed is logged and also treated as empty.

    Args:
        path (Path | None): The config file. Defaults to `CONFIG_FILE`.

    Returns:
        dict[str, str]: The recognized, non-empty settings keyed by wire name.
    """
    path = path or CONFIG_FILE
    if not path.exists():
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.error(f"Config syntax error in {path}: {e}")
        return {}
    except OSError as e:
        logger.error(f"Failed to read config from {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Config error in {path}: expected a JSON object.")
        return {}

    return _clean(data, path.name)


def save_local_config(
    updates: Mapping[str, str | None], path: Path | None = None
) -> dict[str, str]:
    """Merges `updates` into the persisted configuration and writes it atomically.

    Empty or None values remove the key.

    Args:
        updates (Mapping[str, str | None]): Settings keyed by wire name.
        path (Path | None): The config file. Defaults to `CONFIG_FILE`.

    Returns:
        dict[str, str]: The configuration as written.

    Raises:
        ValueError: If `updates` contains an unknown key.
    """
    path = path or CONFIG_FILE
    unknown = set(updates.keys()) - set(CONFIG_KEYS)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    data = load_local_config(path)
    for key, value in updates.items():
        value = (value or "").strip()
        if value:
            data[key] = value
        else:
            data.pop(key, None)

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_file = path.with_suffix(".tmp")
    try:
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_file, path)
    except OSError:
        with contextlib.suppress(OSError):
            tmp_file.unlink()
        raise

    return data


def resolve(
    explicit: Mapping[str, Any] | None = None, path: Path | None = None
) -> SyncConfig:
    """Builds the effective configuration for one sync.

    Each field takes the caller's value when present and non-empty, then the
    persisted value, then the built-in default (only the branch has one).

    Args:
        explicit (Mapping[str, Any] | None): Caller overrides keyed by wire name.
        path (Path | None): The config file. Defaults to `CONFIG_FILE`.

    Returns:
        SyncConfig: The merged configuration.

    Raises:
        ConfigurationError: If no repository address is configured anywhere.
    """
    merged = load_local_config(path)
    merged.update(_clean(explicit or {}, "request"))

    repo_url = merged.get("repoUrl")
    if not repo_url:
        raise ConfigurationError("missing repository address")

    return SyncConfig(
        repo_url=repo_url,
        token=merged.get("token"),
        user_name=merged.get("userName"),
        user_email=merged.get("userEmail"),
        branch=merged.get("branch") or DEFAULT_BRANCH,
    )
