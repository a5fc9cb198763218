"""Shared fixtures: commit factories and throwaway git repositories."""

import datetime
import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from gitop.models import Commit, RepositoryStatus

requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git executable not available"
)


def make_commit(sha: str, message: str = "", author: str = "Ada") -> Commit:
    """Builds a Commit with a fixed timestamp."""
    return Commit(
        hash=sha,
        message=message or f"commit {sha}",
        author=author,
        timestamp=datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc),
    )


def make_status(
    *hashes: str, branch: str = "main", ahead: int = 0, behind: int = 0
) -> RepositoryStatus:
    """Builds a RepositoryStatus whose commits carry the given hashes."""
    return RepositoryStatus(
        branch=branch,
        ahead=ahead,
        behind=behind,
        commits=tuple(make_commit(h) for h in hashes),
    )


def git(path: Path, *args: str) -> str:
    """Runs a git command in `path` and returns its stripped stdout."""
    res = subprocess.run(
        ["git", *args], cwd=path, check=True, capture_output=True, text=True
    )
    return res.stdout.strip()


@pytest.fixture
def git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolates git from the user's configuration and fixes the identity."""
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))
    for role in ("AUTHOR", "COMMITTER"):
        monkeypatch.setenv(f"GIT_{role}_NAME", "Test User")
        monkeypatch.setenv(f"GIT_{role}_EMAIL", "test@example.com")


@pytest.fixture
def make_repo(tmp_path: Path, git_env: None) -> Callable[..., Path]:
    """Factory for empty repositories on branch 'main'.

    Args:
        name (str): Directory name under tmp_path.
        remote (str | None): Remote to register (no fetch is ever performed).
    """

    def factory(name: str = "repo", remote: str | None = "origin") -> Path:
        path = tmp_path / name
        path.mkdir()
        git(path, "init", "--quiet")
        git(path, "symbolic-ref", "HEAD", "refs/heads/main")
        if remote:
            git(path, "remote", "add", remote, "https://example.invalid/repo.git")
        return path

    return factory


def commit(path: Path, message: str) -> str:
    """Creates an empty commit and returns its full hash."""
    git(path, "commit", "--quiet", "--allow-empty", "-m", message)
    return git(path, "rev-parse", "HEAD")
