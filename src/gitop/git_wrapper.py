import datetime
import logging
import os
import subprocess
from pathlib import Path

from .constants import APP_NAME
from .models import Commit

logger = logging.getLogger(APP_NAME)

# NUL cannot appear in author names or commit subjects.
_FIELD_SEP = "\x00"


class GitRepo:
    """A read-only wrapper around the Git command-line interface for one repository.

    Every method inspects the local object database only; nothing here fetches
    from or pushes to a remote.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            ValueError: If the specified path does not contain a .git entry.
        """
        self.path = path
        if not (self.path / ".git").exists():
            raise ValueError(f"Not a git repository: {self.path}")

    def _run(self, args: list[str]) -> str:
        """Executes a Git command within the repository context.

        Optional locks are disabled so that polling never contends with the
        user's own git commands for the index lock.

        Args:
            args (list[str]): A list of arguments to pass to the git command.

        Returns:
            str: The stripped stdout of the command.

        Raises:
            RuntimeError: If the git command returns a non-zero exit code.
        """
        env = os.environ.copy()
        env["GIT_OPTIONAL_LOCKS"] = "0"
        try:
            res = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=True,
                env=env,
            )
            return res.stdout.strip()
        except subprocess.CalledProcessError as e:
            raise RuntimeError(f"Git error: {(e.stderr or '').strip() or e}") from e

    def current_branch(self) -> str:
        """Retrieves the name of the currently checked-out branch.

        Returns:
            str: The branch name, or an empty string when HEAD is detached.
        """
        return self._run(["branch", "--show-current"])

    def rev_parse(self, rev: str) -> str | None:
        """Resolves a revision to a full SHA-1 hash.

        Args:
            rev (str): The revision to parse (e.g., 'HEAD', 'refs/remotes/origin/main').

        Returns:
            str | None: The full SHA-1 hash, or None if the revision does not exist.
        """
        try:
            return self._run(["rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}"])
        except RuntimeError as e:
            logger.debug(f"rev-parse failed for '{rev}' in {self.path}: {e}")
            return None

    def remotes(self) -> list[str]:
        """Lists the names of the configured remotes."""
        output = self._run(["remote"])
        return output.splitlines() if output else []

    def ahead_behind(self, local: str, upstream: str) -> tuple[int, int]:
        """Counts commits unique to each side of `local...upstream`.

        Args:
            local (str): The local revision.
            upstream (str): The remote-tracking revision.

        Returns:
            tuple[int, int]: (ahead, behind).
        """
        output = self._run(["rev-list", "--left-right", "--count", f"{local}...{upstream}"])
        ahead, behind = output.split()
        return int(ahead), int(behind)

    def recent_commits(self, count: int, rev: str = "HEAD") -> list[Commit]:
        """Lists the most recent commits reachable from `rev`, newest first.

        Args:
            count (int): Maximum number of commits.
            rev (str): Starting revision. Defaults to 'HEAD'.

        Returns:
            list[Commit]: Commits with abbreviated (8 character) hashes.
        """
        if count <= 0:
            return []
        fmt = "%x00".join(["%H", "%an", "%at", "%s"])
        output = self._run(["log", f"--max-count={count}", f"--format={fmt}", rev, "--"])

        commits = []
        for line in output.splitlines():
            try:
                sha, author, epoch, subject = line.split(_FIELD_SEP, 3)
                timestamp = datetime.datetime.fromtimestamp(
                    int(epoch), tz=datetime.timezone.utc
                )
            except ValueError:
                logger.warning(f"Skipping unparseable log line in {self.path}: {line!r}")
                continue
            commits.append(
                Commit(
                    hash=sha[:8],
                    message=subject or "No message",
                    author=author or "Unknown",
                    timestamp=timestamp,
                )
            )
        return commits
