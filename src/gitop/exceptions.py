"""Exception hierarchy for GitOp.

Repository errors are local to one monitored repository: the engine stores them
in that repository's slot instead of letting them propagate.
"""

from pathlib import Path


class GitopError(Exception):
    """Base exception for all GitOp errors."""


class ConfigError(GitopError):
    """Raised when the configuration file cannot be parsed."""


class RepositoryError(GitopError):
    """A recoverable, per-repository polling failure.

    Attributes:
        path (Path | None): The repository path the failure relates to.
    """

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path

    def __eq__(self, other: object) -> bool:
        return (
            type(self) is type(other)
            and str(self) == str(other)
            and self.path == getattr(other, "path", None)
        )

    def __hash__(self) -> int:
        return hash((type(self), str(self), self.path))


class PathNotFound(RepositoryError):
    """The configured working copy does not exist."""


class NotARepository(RepositoryError):
    """The configured path exists but is not a git working copy."""


class RemoteNotFound(RepositoryError):
    """The configured remote is not defined in the repository."""


class DetachedOrUnborn(RepositoryError):
    """HEAD has no commit to inspect (e.g. a freshly initialised repository)."""
