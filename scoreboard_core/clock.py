"""Contest clock: start/finish checks and per-contestant submission deadlines.

Two deadline regimes, exactly one applies per contest:
- shared: no window_length, every contestant's deadline is finish_time
- windowed: deadline = min(finish_time, first_access_time + window_length minutes),
  undefined until the contestant's first access is recorded
"""
from __future__ import annotations

import time as _time

from .errors import PreconditionFailed
from .models import Contest, ContestParticipation


def now() -> int:
    return int(_time.time())


def has_started(contest: Contest, at: int | None = None) -> bool:
    return (now() if at is None else at) >= contest.start_time


def has_finished(contest: Contest, at: int | None = None) -> bool:
    return (now() if at is None else at) >= contest.finish_time


def ensure_started(contest: Contest, at: int | None = None) -> None:
    """Raise PreconditionFailed carrying start_time for client countdowns."""
    if not has_started(contest, at):
        raise PreconditionFailed("contestNotStarted", start_time=contest.start_time)


def window_seconds(contest: Contest) -> int | None:
    if contest.window_length is None:
        return None
    return int(contest.window_length) * 60


def contest_duration(contest: Contest) -> int:
    """Length a contestant gets: the window when set, else the whole contest."""
    window = window_seconds(contest)
    if window is None:
        return contest.duration
    return window


def resolve_deadline(
    contest: Contest, participation: ContestParticipation | None
) -> int | None:
    window = window_seconds(contest)
    if window is None:
        return contest.finish_time
    if participation is None or participation.first_access_time is None:
        return None
    return min(contest.finish_time, participation.first_access_time + window)


def scoreboard_cutoff(contest: Contest) -> int:
    """Instant after which non-privileged viewers stop seeing new runs."""
    pct = max(0, min(100, int(contest.scoreboard)))
    return contest.start_time + (contest.duration * pct) // 100


__all__ = [
    "contest_duration",
    "ensure_started",
    "has_finished",
    "has_started",
    "now",
    "resolve_deadline",
    "scoreboard_cutoff",
    "window_seconds",
]
