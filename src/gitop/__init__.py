"""GitOp: a live terminal monitor for the sync state of local git repositories.

This package provides the polling engine that tracks how far each configured
working copy has diverged from its remote-tracking branch, the notification
log of state transitions, and the rich-based dashboard and CLI around them.
"""

from . import (
    cli,
    config,
    constants,
    dashboard,
    engine,
    exceptions,
    git_wrapper,
    models,
    notifications,
    reconciler,
    status,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "dashboard",
    "engine",
    "exceptions",
    "git_wrapper",
    "models",
    "notifications",
    "reconciler",
    "status",
]
