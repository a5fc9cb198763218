"""Reading a repository's sync state from its local object database.

The provider only consults remote-tracking refs that a previous `git fetch`
already stored locally; it never initiates network transfer.
"""

import logging
from pathlib import Path

from .constants import APP_NAME, DETACHED_HEAD
from .exceptions import (
    DetachedOrUnborn,
    NotARepository,
    PathNotFound,
    RemoteNotFound,
    RepositoryError,
)
from .git_wrapper import GitRepo
from .models import RepositoryStatus

logger = logging.getLogger(APP_NAME)


class GitStatusProvider:
    """Computes `RepositoryStatus` values with the git CLI.

    Every failure is reported as a `RepositoryError` subclass, so callers only
    ever need to handle one exception family per repository.
    """

    def fetch_status(
        self, path: Path, remote: str, max_commits: int
    ) -> RepositoryStatus:
        """Inspects one working copy.

        Args:
            path (Path): The repository root.
            remote (str): The remote whose tracking branch is compared against.
            max_commits (int): Number of recent commits to include.

        Returns:
            RepositoryStatus: Branch, ahead/behind counts and recent commits.
            Ahead and behind are both 0 when the current branch has no
            counterpart under `refs/remotes/<remote>/`.

        Raises:
            PathNotFound: If `path` does not exist.
            NotARepository: If `path` is not a git working copy.
            RemoteNotFound: If `remote` is not configured in the repository.
            DetachedOrUnborn: If HEAD does not resolve to a commit.
            RepositoryError: For any other git failure.
        """
        if not path.exists():
            raise PathNotFound(f"Path does not exist: {path}", path)

        try:
            repo = GitRepo(path)
        except ValueError as e:
            raise NotARepository(str(e), path) from e

        try:
            return self._read(repo, remote, max_commits)
        except RuntimeError as e:
            if "not a git repository" in str(e).lower():
                raise NotARepository(f"Not a git repository: {path}", path) from e
            raise RepositoryError(str(e), path) from e
        except FileNotFoundError as e:
            if not path.exists():
                raise PathNotFound(f"Path does not exist: {path}", path) from e
            raise RepositoryError("git executable not found", path) from e
        except OSError as e:
            raise RepositoryError(f"Cannot read repository: {e}", path) from e

    def _read(self, repo: GitRepo, remote: str, max_commits: int) -> RepositoryStatus:
        if remote not in repo.remotes():
            raise RemoteNotFound(f"Remote '{remote}' not found", repo.path)

        head = repo.rev_parse("HEAD")
        if head is None:
            raise DetachedOrUnborn("HEAD has no commits yet (unborn branch)", repo.path)

        branch = repo.current_branch() or DETACHED_HEAD

        ahead = behind = 0
        if branch != DETACHED_HEAD:
            upstream = repo.rev_parse(f"refs/remotes/{remote}/{branch}")
            if upstream is not None:
                ahead, behind = repo.ahead_behind(head, upstream)
            else:
                logger.debug(f"No tracking ref {remote}/{branch} in {repo.path}")

        commits = repo.recent_commits(max_commits)
        return RepositoryStatus(
            branch=branch, ahead=ahead, behind=behind, commits=tuple(commits)
        )
