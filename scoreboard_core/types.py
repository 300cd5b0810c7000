"""Type definitions for the dict payloads handed back to callers."""
from __future__ import annotations

from typing import List, Optional, TypedDict


class TotalDict(TypedDict):
    points: float
    penalty: float


class ProblemResultDict(TypedDict):
    alias: str
    letter: str
    points: float
    penalty: int
    runs: int


class RankingRowDict(TypedDict):
    username: str
    name: Optional[str]
    place: int
    total: TotalDict
    problems: List[ProblemResultDict]


class ScoreboardProblemDict(TypedDict):
    alias: str
    letter: str
    points: float
    order: int


class ScoreboardPayload(TypedDict):
    contest_alias: str
    problems: List[ScoreboardProblemDict]
    ranking: List[RankingRowDict]
    # Freeze cutoff applied to this board, None when every run is shown.
    cutoff: Optional[int]


class MergedRowDict(TypedDict):
    username: str
    name: Optional[str]
    place: int
    total: TotalDict
    # Dense: one entry per merged contest alias, zero-filled.
    contests: dict[str, TotalDict]


class MergedScoreboardPayload(TypedDict):
    contests: List[str]
    ranking: List[MergedRowDict]


class ActivityEventInfo(TypedDict, total=False):
    name: str  # 'open' | 'submit'
    problem: str


class ActivityEventDict(TypedDict):
    username: str
    time: int
    # Small integer assigned per distinct address, in first-seen order.
    ip: int
    event: ActivityEventInfo


class ContestProblemInfo(TypedDict, total=False):
    alias: str
    title: str
    letter: str
    points: float
    order: int
    languages: List[str]


class ContestDetails(TypedDict, total=False):
    """
    Contest details payload.

    The cached part (everything but submission_deadline/admin) is shared by all
    viewers of a contest; the per-user fields are added after the cache lookup.
    """
    alias: str
    title: str
    description: str
    start_time: int
    finish_time: int
    window_length: Optional[int]
    public: bool
    contestant_must_register: bool
    scoreboard: int
    show_scoreboard_after: bool
    points_decay_factor: float
    partial_score: bool
    submissions_gap: int
    feedback: str
    penalty: int
    penalty_type: str
    penalty_calc_policy: str
    languages: List[str]
    problems: List[ContestProblemInfo]
    submission_deadline: Optional[int]
    admin: bool
    user_registration_requested: bool
    user_registration_answered: bool
    user_registration_accepted: bool


class ContestListEntry(TypedDict):
    contest_id: int
    alias: str
    title: str
    description: str
    start_time: int
    finish_time: int
    public: bool
    window_length: Optional[int]
    recommended: bool
    duration: int


class ContestUserEntry(TypedDict):
    username: str
    name: Optional[str]
    # None until the user first opens the contest.
    access_time: Optional[int]


class ContestAdminEntry(TypedDict):
    username: str
    role: str  # "director" | "admin"


class StatsPayload(TypedDict):
    total_runs: int
    total_points: float
    size_of_bucket: float
    distribution: List[int]
    verdict_counts: dict[str, int]


__all__ = [
    "ActivityEventDict",
    "ActivityEventInfo",
    "ContestAdminEntry",
    "ContestDetails",
    "ContestListEntry",
    "ContestProblemInfo",
    "ContestUserEntry",
    "MergedRowDict",
    "MergedScoreboardPayload",
    "ProblemResultDict",
    "RankingRowDict",
    "ScoreboardPayload",
    "ScoreboardProblemDict",
    "StatsPayload",
    "TotalDict",
]
