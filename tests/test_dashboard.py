"""Tests for dashboard rendering and navigation."""

import asyncio
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from conftest import make_status
from rich.console import Console

from gitop.config import ColorConfig, RepositoryConfig
from gitop.dashboard import Dashboard, DashboardApp
from gitop.engine import RepositoryMonitor
from gitop.exceptions import NotARepository


class ScriptedProvider:
    def __init__(self, results: dict):
        self.results = results

    def fetch_status(self, path: Path, remote: str, max_commits: int):
        result = self.results[path.name]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def monitor():
    provider = ScriptedProvider(
        {
            "api": make_status("c2", "c1", branch="main", ahead=2),
            "web": make_status("w1", branch="dev", behind=4),
            "docs": NotARepository("Not a git repository: docs"),
        }
    )
    repos = [RepositoryConfig(n, Path(n)) for n in ("api", "web", "docs")]
    m = RepositoryMonitor(repos, provider)
    yield m
    m.shutdown(wait=True)


def render_text(dashboard: Dashboard) -> str:
    console = Console(record=True, width=120, color_system=None)
    console.print(dashboard.render(dashboard.monitor.get_snapshot()))
    return console.export_text()


def test_render_before_first_poll(monitor: RepositoryMonitor) -> None:
    text = render_text(Dashboard(monitor))

    assert "GitOp - Repositories" in text
    assert "Monitoring 3 repositories" in text
    assert text.count("unknown") == 3
    assert "Enter: Expand/Collapse" in text


def test_render_statuses_errors_and_console(monitor: RepositoryMonitor) -> None:
    """Verifies ahead/behind arrows, error text and the notification panel."""
    monitor.poll_round(wait=True)

    text = render_text(Dashboard(monitor, warnings=["docs: Not a git repository"]))

    assert "↑2" in text
    assert "↓4" in text
    assert "error: Not a git repository: docs" in text
    assert "Warning: docs: Not a git repository" in text
    assert "docs: Git error: Not a git repository: docs" in text


def test_expanded_repository_lists_commits(monitor: RepositoryMonitor) -> None:
    monitor.poll_round(wait=True)
    dashboard = Dashboard(monitor)

    assert "└─ c2" not in render_text(dashboard)

    dashboard.toggle_selected()
    text = render_text(dashboard)

    assert "└─ c2 - commit c2" in text
    assert "└─ c1 - commit c1" in text
    assert "(main)" in text
    assert "01/01 12:00" in text

def test_navigation_wraps_around(monitor: RepositoryMonitor) -> None:
    dashboard = Dashboard(monitor)

    dashboard.move(-1)
    assert dashboard.selected == 2

    dashboard.move(1)
    dashboard.move(1)
    assert dashboard.selected == 1

    dashboard.toggle_selected()
    snap = monitor.get_snapshot()
    assert [s.expanded for s in snap.slots] == [False, True, False]


def test_empty_monitor_ignores_navigation() -> None:
    m = RepositoryMonitor([], ScriptedProvider({}))
    dashboard = Dashboard(m)

    dashboard.move(1)
    dashboard.toggle_selected()

    assert dashboard.selected == 0
    assert "Monitoring 0 repositories" in render_text(dashboard)
    m.shutdown()


def test_colors_are_resolved(monitor: RepositoryMonitor) -> None:
    dashboard = Dashboard(
        monitor, ColorConfig(ahead_color="lightgreen", behind_color="#112233")
    )

    assert dashboard.ahead_style.color.name == "bright_green"
    assert dashboard.behind_style.color.triplet.hex == "#112233"


def test_app_key_bindings(monitor: RepositoryMonitor) -> None:
    """Verifies arrow keys, vi keys and Enter drive selection and expansion."""
    monitor.poll_round(wait=True)
    dashboard = Dashboard(monitor)
    app = DashboardApp(dashboard, tick=0.05)

    async def scenario() -> None:
        async with app.run_test() as pilot:
            await pilot.press("down", "down")
            assert dashboard.selected == 2
            await pilot.press("j")
            assert dashboard.selected == 0
            await pilot.press("up", "enter")
            assert dashboard.selected == 2
            assert monitor.get_snapshot().slots[2].expanded is True
            await pilot.press("k", "enter")
            assert monitor.get_snapshot().slots[1].expanded is True

    asyncio.run(scenario())


def test_app_quits_on_q(monitor: RepositoryMonitor) -> None:
    app = DashboardApp(Dashboard(monitor))

    async def scenario() -> None:
        async with app.run_test() as pilot:
            await pilot.press("q")

    asyncio.run(scenario())

    assert app.return_code == 0


def test_app_redraws_from_snapshots(
    monitor: RepositoryMonitor, mocker: MagicMock
) -> None:
    """Verifies the redraw timer keeps reading fresh snapshots."""
    app = DashboardApp(Dashboard(monitor), tick=0.01)
    spy = mocker.spy(monitor, "get_snapshot")

    async def scenario() -> None:
        async with app.run_test() as pilot:
            await pilot.pause(0.1)

    asyncio.run(scenario())

    assert spy.call_count >= 2
