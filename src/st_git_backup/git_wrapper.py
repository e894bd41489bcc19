import logging
import subprocess
from pathlib import Path

from .constants import APP_NAME
from .errors import CommandError

logger = logging.getLogger(APP_NAME)


class SubprocessRunner:
    """Executes a single external command and captures its output.

    Commands are passed as an argument vector and never through a shell. There
    is no timeout and no retry: a hung process blocks the caller until it exits.
    Any object exposing the same `run` method can stand in for this class.
    """

    def run(self, args: list[str], cwd: Path) -> str:
        """Runs a command inside `cwd`.

        Args:
            args (list[str]): The program followed by its arguments.
            cwd (Path): The working directory for the command.

        Returns:
            str: The stripped stdout of the command.

        Raises:
            CommandError: If the command exits non-zero or cannot be started.
        """
        try:
            res = subprocess.run(
                args,
                cwd=cwd,
                capture_output=True,
                text=True,
                check=True,
            )
            return res.stdout.strip()
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise CommandError(
                f"Git error: {stderr or e}", stderr=stderr, returncode=e.returncode
            ) from e
        except OSError as e:
            raise CommandError(f"Git error: {e}") from e


class GitRepo:
    """A wrapper around the git command line for the synchronized directory.

    Unlike a plain repository handle, the directory does not need to be a git
    repository yet: `init` turns it into one.

    Attributes:
        path (Path): The working tree root.
        runner: The command runner used to execute git.
    """

    def __init__(self, path: Path, runner: SubprocessRunner | None = None):
        self.path = path
        self.runner = runner or SubprocessRunner()

    def _run(self, args: list[str]) -> str:
        return self.runner.run(["git", *args], self.path)

    def is_initialized(self) -> bool:
        """Checks for the `.git` metadata marker in the working tree."""
        return (self.path / ".git").exists()

    def init(self) -> None:
        """Creates an empty repository in the working tree."""
        self._run(["init"])

    def set_identity(self, name: str | None, email: str | None) -> None:
        """Writes the local committer identity.

        Either value may be missing, in which case it is left as is.

        Args:
            name (str | None): The committer name.
            email (str | None): The committer email.
        """
        if name:
            self._run(["config", "user.name", name])
        if email:
            self._run(["config", "user.email", email])

    def remove_remote(self, name: str) -> None:
        """Removes a remote pointer.

        Raises:
            CommandError: If the remote does not exist.
        """
        self._run(["remote", "remove", name])

    def add_remote(self, name: str, url: str) -> None:
        """Adds a remote pointer to `url` under `name`."""
        self._run(["remote", "add", name, url])

    def add_all(self) -> None:
        """
        Stages all changes (modified, deleted, and untracked files)
        in the working directory.
        """
        self._run(["add", "."])

    def status_porcelain(self) -> list[str]:
        """Returns the porcelain (machine-readable) status of the working tree.

        Returns:
            list[str]: A list of status lines returned by `git status --porcelain`.
        """
        output = self._run(["status", "--porcelain"])
        return output.splitlines() if output else []

    def commit(self, message: str) -> None:
        """Creates a new commit from the staged changes.

        Args:
            message (str): The commit message.
        """
        self._run(["commit", "-m", message])

    def push_force(self, remote: str, branch: str) -> None:
        """Publishes HEAD as `branch`, overwriting the remote branch's history.

        HEAD is pushed explicitly so the local default branch name (which
        `git init` picks from the user's git config) does not have to match.

        Args:
            remote (str): The remote pointer to push to.
            branch (str): The remote branch to publish and track.
        """
        self._run(["push", "-u", remote, f"HEAD:{branch}", "--force"])
