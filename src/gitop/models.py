"""Value types shared by the polling engine, the reconciler and the dashboard.

All types here are immutable. A repository's visible state is replaced as a
whole `SlotState` rather than mutated field by field, which lets a snapshot
reader copy it without ever observing a half-applied poll.
"""

import datetime
from dataclasses import dataclass, field
from enum import Enum

from .config import RepositoryConfig
from .exceptions import RepositoryError


@dataclass(frozen=True)
class Commit:
    """A single commit as shown in the dashboard.

    Attributes:
        hash (str): Abbreviated commit id.
        message (str): First line of the commit message.
        author (str): Author name.
        timestamp (datetime.datetime): Author time in UTC.
    """

    hash: str
    message: str
    author: str
    timestamp: datetime.datetime


@dataclass(frozen=True)
class RepositoryStatus:
    """The result of one successful poll of a repository.

    Attributes:
        branch (str): Current local branch, or `DETACHED_HEAD`.
        ahead (int): Local commits missing from the remote-tracking branch.
        behind (int): Remote-tracking commits missing locally.
        commits (tuple[Commit, ...]): Most recent commits, newest first.
    """

    branch: str
    ahead: int = 0
    behind: int = 0
    commits: tuple[Commit, ...] = ()

    @property
    def head(self) -> str | None:
        """Returns the hash of the newest known commit, if any."""
        return self.commits[0].hash if self.commits else None


class NotificationKind(Enum):
    """The closed set of state transitions the console reports."""

    NEW_COMMITS = "new_commits"
    BRANCH_CHANGED = "branch_changed"
    BECAME_AHEAD = "became_ahead"
    BECAME_BEHIND = "became_behind"
    ERROR_RAISED = "error_raised"
    ERROR_CLEARED = "error_cleared"


@dataclass(frozen=True)
class NotificationEvent:
    """An immutable entry in the notification log.

    Attributes:
        timestamp (datetime.datetime): When the transition was observed (UTC).
        repository_name (str): Display name of the repository.
        kind (NotificationKind): The kind of transition.
        detail (str): Human-readable description.
        commits (tuple[Commit, ...]): New commits, newest first. Only populated
            for `NotificationKind.NEW_COMMITS`.
    """

    timestamp: datetime.datetime
    repository_name: str
    kind: NotificationKind
    detail: str
    commits: tuple[Commit, ...] = ()


@dataclass(frozen=True)
class SlotState:
    """Everything the renderer needs to know about one configured repository.

    Exactly one of `status` and `error` is set once the first poll has
    completed; before that both are None.

    Attributes:
        config (RepositoryConfig): The repository this slot tracks.
        status (RepositoryStatus | None): The last successful poll result.
        error (RepositoryError | None): The last poll failure.
        expanded (bool): Whether the dashboard lists the commits.
        last_polled_at (datetime.datetime | None): Completion time of the last poll.
        last_status (RepositoryStatus | None): The most recent successful status,
            kept while an error is displayed so recovery can be diffed against it.
    """

    config: RepositoryConfig
    status: RepositoryStatus | None = None
    error: RepositoryError | None = None
    expanded: bool = False
    last_polled_at: datetime.datetime | None = None
    last_status: RepositoryStatus | None = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def has_polled(self) -> bool:
        return self.last_polled_at is not None


@dataclass(frozen=True)
class Snapshot:
    """A consistent, read-only view of the monitor for one render pass.

    Attributes:
        slots (tuple[SlotState, ...]): Repository states in configuration order.
        notifications (tuple[NotificationEvent, ...]): Log entries, oldest first.
    """

    slots: tuple[SlotState, ...]
    notifications: tuple[NotificationEvent, ...]

    def recent_notifications(self, count: int) -> list[NotificationEvent]:
        """Returns up to `count` notifications, newest first."""
        if count <= 0:
            return []
        return list(reversed(self.notifications[-count:]))
