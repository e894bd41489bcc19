"""Exception types raised by the sync engine and its collaborators."""


class SyncError(RuntimeError):
    """Base class for every failure the sync engine reports."""


class ConfigurationError(SyncError):
    """The merged configuration is unusable (e.g. no repository address).

    Raised before any filesystem or git action has been taken.
    """


class CommandError(SyncError):
    """An external command exited non-zero or could not be executed.

    Attributes:
        stderr (str): The captured standard error of the command, stripped.
        returncode (int | None): The exit status, or None if the command
                                 never ran.
    """

    def __init__(
        self, message: str, stderr: str = "", returncode: int | None = None
    ) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode


class BusyError(SyncError):
    """A sync is already in progress; overlapping calls are rejected."""
