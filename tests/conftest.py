"""Shared fixtures: a deterministic stand-in for the git command runner."""

import json
from pathlib import Path

import pytest

from st_git_backup.engine import SyncEngine
from st_git_backup.errors import CommandError


class FakeRunner:
    """Records git invocations and simulates just enough repository state.

    Attributes:
        calls (list[list[str]]): Every argument vector received, in order.
        pending (list[str]): Porcelain lines reported until the next commit.
        remotes (dict[str, str]): Configured remote pointers.
        failures (dict[tuple[str, ...], CommandError]): Errors raised for
            commands whose git arguments start with the given prefix.
    """

    def __init__(self, pending: list[str] | None = None) -> None:
        self.calls: list[list[str]] = []
        self.pending = list(pending or [])
        self.remotes: dict[str, str] = {}
        self.failures: dict[tuple[str, ...], CommandError] = {}

    def fail_on(self, *prefix: str, stderr: str = "fatal: failed") -> None:
        self.failures[prefix] = CommandError(
            f"Git error: {stderr}", stderr=stderr, returncode=128
        )

    def git_calls(self, verb: str) -> list[list[str]]:
        return [c[1:] for c in self.calls if c[1] == verb]

    def run(self, args: list[str], cwd: Path) -> str:
        self.calls.append(list(args))
        git_args = args[1:]

        for prefix, exc in self.failures.items():
            if tuple(git_args[: len(prefix)]) == prefix:
                raise exc

        if git_args[0] == "init":
            (cwd / ".git").mkdir(exist_ok=True)
        elif git_args[:2] == ["remote", "remove"]:
            if git_args[2] not in self.remotes:
                raise CommandError(
                    "Git error: error: No such remote: 'origin'",
                    stderr="error: No such remote: 'origin'",
                    returncode=2,
                )
            del self.remotes[git_args[2]]
        elif git_args[:2] == ["remote", "add"]:
            self.remotes[git_args[2]] = git_args[3]
        elif git_args[:2] == ["status", "--porcelain"]:
            return "\n".join(self.pending)
        elif git_args[0] == "commit":
            self.pending = []
        return ""


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Path of a (not yet written) persisted config file."""
    return tmp_path / "git-config.json"


@pytest.fixture
def write_config(config_file: Path):
    """Writes the given settings as the persisted JSON config."""

    def _write(**settings: str) -> Path:
        config_file.write_text(json.dumps(settings))
        return config_file

    return _write


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data" / "default-user" / "chats"


@pytest.fixture
def engine(data_dir: Path, config_file: Path, runner: FakeRunner) -> SyncEngine:
    """An engine wired to the fake runner and temporary paths."""
    return SyncEngine(data_dir=data_dir, config_file=config_file, runner=runner)
