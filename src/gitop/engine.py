"""The polling engine: periodic, concurrent status polls and their reconciliation.

A single driver thread wakes once per refresh interval and hands one poll per
repository to a thread pool. Each repository's state lives in its own
`RepositorySlot`, guarded by its own lock, so a slow or failing repository
never holds up the others. Results are applied by swapping in a new frozen
`SlotState`, and notifications go to one shared `NotificationLog`.
"""

import datetime
import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import replace
from pathlib import Path
from typing import Protocol

from .config import RepositoryConfig
from .constants import (
    APP_NAME,
    DEFAULT_MAX_COMMITS,
    DEFAULT_REFRESH_INTERVAL,
    NOTIFICATION_CAPACITY,
)
from .exceptions import RepositoryError
from .models import NotificationKind, RepositoryStatus, SlotState, Snapshot
from .notifications import NotificationLog
from .reconciler import reconcile
from .status import GitStatusProvider

logger = logging.getLogger(APP_NAME)


class StatusProvider(Protocol):
    def fetch_status(
        self, path: Path, remote: str, max_commits: int
    ) -> RepositoryStatus: ...


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class RepositorySlot:
    """Mutable holder for one configured repository.

    The visible state is a frozen `SlotState` that is only ever replaced as a
    whole while holding `lock`. The `in_flight` flag guarantees that at most one
    poll per repository runs at a time.

    Attributes:
        index (int): Position in configuration order.
        lock (threading.Lock): Guards state replacement and the in-flight flag.
    """

    def __init__(self, index: int, config: RepositoryConfig):
        self.index = index
        self.lock = threading.Lock()
        self._state = SlotState(config=config)
        self._in_flight = False

    @property
    def config(self) -> RepositoryConfig:
        return self._state.config

    @property
    def state(self) -> SlotState:
        # A single reference read; replacement happens in one assignment.
        return self._state

    def replace_state(self, **changes) -> SlotState:
        """Replaces the state with a copy carrying `changes`. Caller holds `lock`."""
        self._state = replace(self._state, **changes)
        return self._state

    def try_begin_poll(self) -> bool:
        """Marks a poll as in flight. Returns False if one is already running."""
        with self.lock:
            if self._in_flight:
                return False
            self._in_flight = True
            return True

    def end_poll(self) -> None:
        with self.lock:
            self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight


class RepositoryMonitor:
    """Polls configured repositories on a fixed cadence and exposes snapshots.

    Usage:
        monitor = RepositoryMonitor(config.repositories, refresh_interval=5)
        monitor.start()
        snapshot = monitor.get_snapshot()
        monitor.shutdown()

    Attributes:
        slots (list[RepositorySlot]): One slot per repository, in config order.
        log (NotificationLog): The shared notification log.
        refresh_interval (float): Seconds between the starts of two rounds.
        max_commits (int): Commits fetched per poll.
    """

    def __init__(
        self,
        repositories: Sequence[RepositoryConfig],
        provider: StatusProvider | None = None,
        *,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        max_commits: int = DEFAULT_MAX_COMMITS,
        log_capacity: int = NOTIFICATION_CAPACITY,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ):
        """Creates the slots. No polling happens until `start` or `poll_round`.

        Args:
            repositories (Sequence[RepositoryConfig]): Repositories to monitor.
            provider (StatusProvider | None): Status source. Defaults to
                `GitStatusProvider`.
            refresh_interval (float): Seconds between round starts. Must be positive.
            max_commits (int): Commits fetched per poll. Must be non-negative.
            log_capacity (int): Maximum retained notifications.
            clock (Callable[[], datetime.datetime]): Source of event timestamps.

        Raises:
            ValueError: On a non-positive interval or negative `max_commits`.
        """
        if refresh_interval <= 0:
            raise ValueError(f"refresh_interval must be positive, got {refresh_interval}")
        if max_commits < 0:
            raise ValueError(f"max_commits must be non-negative, got {max_commits}")

        self.slots = [RepositorySlot(i, repo) for i, repo in enumerate(repositories)]
        self.log = NotificationLog(log_capacity)
        self.provider = provider or GitStatusProvider()
        self.refresh_interval = refresh_interval
        self.max_commits = max_commits
        self._clock = clock

        self._stop = threading.Event()
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, len(self.slots)), thread_name_prefix="gitop-poll"
        )
        self._driver: threading.Thread | None = None

    def __enter__(self) -> "RepositoryMonitor":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    @property
    def running(self) -> bool:
        return self._driver is not None and not self._stop.is_set()

    # --- Scheduling ---

    def start(self) -> None:
        """Starts the driver thread. The first round begins immediately."""
        if self._driver is not None:
            return
        logger.info(
            f"Started monitoring {len(self.slots)} repositories "
            f"(interval {self.refresh_interval}s)."
        )
        self._driver = threading.Thread(
            target=self._drive, name="gitop-scheduler", daemon=True
        )
        self._driver.start()

    def _drive(self) -> None:
        """Runs rounds until shutdown, measuring the interval start-to-start."""
        next_tick = time.monotonic()
        while not self._stop.is_set():
            self.poll_round()

            next_tick += self.refresh_interval
            now = time.monotonic()
            if next_tick <= now:
                # The driver fell behind: skip missed ticks instead of bursting.
                missed = int((now - next_tick) // self.refresh_interval) + 1
                logger.debug(f"Scheduler behind by {missed} tick(s).")
                next_tick += missed * self.refresh_interval
            if self._stop.wait(next_tick - now):
                break

    def poll_round(self, wait: bool = False) -> list[Future]:
        """Submits one poll per idle repository.

        Repositories whose previous poll has not completed are skipped for this
        round; other repositories are unaffected.

        Args:
            wait (bool): Block until every submitted poll has completed.

        Returns:
            list[Future]: The submitted polls.
        """
        futures: list[Future] = []
        for slot in self.slots:
            if self._stop.is_set():
                break
            if not slot.try_begin_poll():
                logger.debug(f"Poll of {slot.config.name} still running; skipping.")
                continue
            try:
                futures.append(self._executor.submit(self._poll, slot))
            except RuntimeError:
                # The executor was shut down between the check and the submit.
                slot.end_poll()
                break

        if wait and futures:
            wait_futures(futures)
        return futures

    def _poll(self, slot: RepositorySlot) -> None:
        repo = slot.config
        logger.debug(f"Polling {repo.name} ({repo.path}).")
        try:
            try:
                result: RepositoryStatus | RepositoryError = (
                    self.provider.fetch_status(repo.path, repo.remote, self.max_commits)
                )
            except RepositoryError as e:
                result = e
            except Exception as e:
                logger.exception(f"POLL ERROR {repo.name}")
                result = RepositoryError(f"Unexpected error: {e}", repo.path)
            try:
                self._apply(slot, result)
            except Exception:
                logger.exception(f"APPLY ERROR {repo.name}")
        finally:
            slot.end_poll()

    def _apply(
        self, slot: RepositorySlot, result: RepositoryStatus | RepositoryError
    ) -> None:
        """Reconciles `result` and publishes it, unless the monitor has stopped."""
        # Lock order is slot, then log. Stamping under the log lock keeps the
        # log chronological across repositories.
        with slot.lock, self.log.lock:
            if self._stop.is_set():
                return
            now = self._clock()
            previous = slot.state
            outcome = reconcile(
                previous.last_status,
                previous.error,
                result,
                repository_name=previous.name,
                max_commits=self.max_commits,
                now=now,
            )
            slot.replace_state(
                status=outcome.status,
                error=outcome.error,
                last_status=outcome.last_status,
                last_polled_at=now,
            )
            if outcome.events:
                self.log.extend(outcome.events)

        for event in outcome.events:
            if event.kind is NotificationKind.ERROR_RAISED:
                logger.warning(f"ERROR {event.repository_name}: {result}")
            else:
                logger.info(f"{event.kind.name} {event.repository_name}: {event.detail}")

    # --- Renderer / input surface ---

    def get_snapshot(self) -> Snapshot:
        """Returns the latest settled state of every slot plus the log."""
        return Snapshot(
            slots=tuple(slot.state for slot in self.slots),
            notifications=self.log.entries(),
        )

    def _find(self, key: int | str) -> RepositorySlot:
        if isinstance(key, int):
            if 0 <= key < len(self.slots):
                return self.slots[key]
        else:
            for slot in self.slots:
                if slot.config.name == key:
                    return slot
        raise KeyError(key)

    def set_expanded(self, key: int | str, expanded: bool) -> None:
        """Sets one repository's expansion flag.

        Args:
            key (int | str): Slot index, or repository name (first match).
            expanded (bool): The new value.

        Raises:
            KeyError: If no slot matches `key`.
        """
        slot = self._find(key)
        with slot.lock:
            slot.replace_state(expanded=expanded)

    def toggle_expanded(self, key: int | str) -> bool:
        """Flips one repository's expansion flag.

        Args:
            key (int | str): Slot index, or repository name (first match).

        Returns:
            bool: The new value.

        Raises:
            KeyError: If no slot matches `key`.
        """
        slot = self._find(key)
        with slot.lock:
            return slot.replace_state(expanded=not slot.state.expanded).expanded

    def shutdown(self, wait: bool = False) -> None:
        """Stops polling. In-flight polls finish but their results are discarded.

        Args:
            wait (bool): Join the driver thread and pool workers before returning.
        """
        if self._stop.is_set():
            return
        logger.info("Shutting down monitor.")
        self._stop.set()
        self._executor.shutdown(wait=wait, cancel_futures=True)
        if wait and self._driver is not None:
            self._driver.join()
