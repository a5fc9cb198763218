"""State reconciliation: turning two consecutive poll results into notifications.

`reconcile` is a pure function. It never reads the clock itself (the caller
passes `now`) and never touches shared state, so the engine can call it from any
poll thread and apply the outcome in a single slot replacement.
"""

import datetime
from dataclasses import dataclass, field

from .exceptions import RepositoryError
from .models import Commit, NotificationEvent, NotificationKind, RepositoryStatus


@dataclass(frozen=True)
class Reconciliation:
    """The outcome of reconciling one poll result.

    Attributes:
        status (RepositoryStatus | None): The status to display (None on error).
        error (RepositoryError | None): The error to display (None on success).
        last_status (RepositoryStatus | None): The baseline for the next poll.
        events (list[NotificationEvent]): Notifications, in rule order.
    """

    status: RepositoryStatus | None
    error: RepositoryError | None
    last_status: RepositoryStatus | None
    events: list[NotificationEvent] = field(default_factory=list)


def new_commits_since(
    previous: RepositoryStatus, current: RepositoryStatus, limit: int
) -> tuple[Commit, ...]:
    """Returns the commits in `current` that are newer than `previous`'s head.

    Walks `current.commits` (newest first) until the previously seen head is
    reached. Commits already known from `previous` are never reported, so a
    history rewind yields nothing.

    Args:
        previous (RepositoryStatus): The baseline status.
        current (RepositoryStatus): The freshly fetched status.
        limit (int): Maximum number of commits to return.

    Returns:
        tuple[Commit, ...]: New commits, newest first.
    """
    known = {c.hash for c in previous.commits}
    fresh: list[Commit] = []
    for commit in current.commits:
        if commit.hash == previous.head:
            break
        if commit.hash not in known:
            fresh.append(commit)
    return tuple(fresh[: max(limit, 0)])


def _describe_commits(commits: tuple[Commit, ...], branch: str) -> str:
    newest = commits[0]
    noun = "commit" if len(commits) == 1 else "commits"
    return (
        f"{len(commits)} new {noun} on {branch}, latest {newest.hash} "
        f"'{newest.message}' by {newest.author}"
    )


def reconcile(
    previous_status: RepositoryStatus | None,
    previous_error: RepositoryError | None,
    result: RepositoryStatus | RepositoryError,
    *,
    repository_name: str,
    max_commits: int,
    now: datetime.datetime,
) -> Reconciliation:
    """Compares a poll result with the previous state of the same repository.

    Rules are applied in order and independently, so one result may produce
    several events:

    1. error after success (or on the first poll): ERROR_RAISED
    2. success after error: ERROR_CLEARED
    3. branch differs: BRANCH_CHANGED
    4. newest commit differs: NEW_COMMITS (at most `max_commits`)
    5. ahead went from 0 to positive: BECAME_AHEAD
    6. behind went from 0 to positive: BECAME_BEHIND

    Rules 3-6 need a previous successful status to compare against. After an
    error clears, the last successful status before the error is used, so an
    unchanged history does not produce NEW_COMMITS. The very first successful
    status only establishes a baseline.

    Args:
        previous_status (RepositoryStatus | None): Last known good status.
        previous_error (RepositoryError | None): The error currently displayed.
        result (RepositoryStatus | RepositoryError): The fresh poll result.
        repository_name (str): Display name used in the events.
        max_commits (int): Upper bound on commits carried by NEW_COMMITS.
        now (datetime.datetime): Timestamp stamped on every event.

    Returns:
        Reconciliation: The new slot fields and the emitted events.
    """
    events: list[NotificationEvent] = []

    def emit(
        kind: NotificationKind, detail: str, commits: tuple[Commit, ...] = ()
    ) -> None:
        events.append(NotificationEvent(now, repository_name, kind, detail, commits))

    if isinstance(result, RepositoryError):
        if previous_error is None:
            emit(NotificationKind.ERROR_RAISED, f"Git error: {result}")
        return Reconciliation(None, result, previous_status, events)

    if previous_error is not None:
        emit(NotificationKind.ERROR_CLEARED, "Repository is readable again")

    if previous_status is not None:
        if result.branch != previous_status.branch:
            emit(
                NotificationKind.BRANCH_CHANGED,
                f"Switched branch: {previous_status.branch} -> {result.branch}",
            )

        if result.head is not None and result.head != previous_status.head:
            if fresh := new_commits_since(previous_status, result, max_commits):
                emit(
                    NotificationKind.NEW_COMMITS,
                    _describe_commits(fresh, result.branch),
                    fresh,
                )

        if previous_status.ahead == 0 and result.ahead > 0:
            emit(
                NotificationKind.BECAME_AHEAD,
                f"Local commits added: {result.ahead} ahead",
            )

        if previous_status.behind == 0 and result.behind > 0:
            emit(
                NotificationKind.BECAME_BEHIND,
                f"New commits available: {result.behind} behind",
            )

    return Reconciliation(result, None, result, events)
