"""Value types for contests, participations, registrations and submissions.

Instants are integer unix timestamps (seconds). `window_length` is expressed in
minutes, the unit contest directors configure it in.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

PenaltyType = Literal["contest_start", "problem_open", "runtime", "none"]
PenaltyCalcPolicy = Literal["sum", "max"]
Feedback = Literal["no", "yes", "partial"]

ACCEPTED_VERDICT = "AC"
# Runs with these verdicts never count as an attempt.
IGNORED_VERDICTS = frozenset({"CE", "JE"})


@dataclass(frozen=True)
class User:
    user_id: int
    username: str
    name: str | None = None


@dataclass(frozen=True)
class Principal:
    """Identity of the caller. `user_id is None` means anonymous."""

    user_id: int | None = None
    username: str | None = None
    is_system_admin: bool = False

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None


ANONYMOUS = Principal()


@dataclass(frozen=True)
class Contest:
    contest_id: int
    alias: str
    title: str
    start_time: int
    finish_time: int
    description: str = ""
    window_length: int | None = None
    public: bool = False
    contestant_must_register: bool = False
    scoreboard: int = 100
    show_scoreboard_after: bool = True
    scoreboard_token: str = ""
    scoreboard_admin_token: str = ""
    recommended: bool = False
    languages: frozenset[str] = field(default_factory=frozenset)
    director_id: int | None = None
    points_decay_factor: float = 0.0
    partial_score: bool = True
    submissions_gap: int = 60
    feedback: Feedback = "yes"
    penalty: int = 0
    penalty_type: PenaltyType = "none"
    penalty_calc_policy: PenaltyCalcPolicy = "sum"
    interview: bool = False

    @property
    def duration(self) -> int:
        return self.finish_time - self.start_time


@dataclass(frozen=True)
class ContestProblem:
    problem_id: int
    alias: str
    points: float
    order: int = 1
    title: str = ""
    languages: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ContestParticipation:
    contest_id: int
    user_id: int
    first_access_time: int | None = None
    score: float = 0.0
    time: int = 0


@dataclass(frozen=True)
class RegistrationRequest:
    contest_id: int
    user_id: int
    requested_at: int
    # None = pending, True = accepted, False = rejected
    accepted: bool | None = None
    decided_by: int | None = None
    note: str | None = None
    last_update: int | None = None

    @property
    def is_pending(self) -> bool:
        return self.accepted is None


@dataclass(frozen=True)
class RegistrationDecision:
    """Append-only history entry for an arbitrated registration request."""

    contest_id: int
    user_id: int
    admin_id: int | None
    accepted: bool
    time: int
    note: str | None = None


@dataclass(frozen=True)
class SubmissionRecord:
    contest_id: int
    problem_alias: str
    user_id: int
    username: str
    time: int
    verdict: str
    score: float = 0.0
    contest_score: float = 0.0
    penalty: int = 0
    name: str | None = None
    guid: str | None = None


@dataclass(frozen=True)
class AccessEvent:
    username: str
    time: int
    ip: int | str


@dataclass(frozen=True)
class SubmissionEvent:
    username: str
    time: int
    ip: int | str
    problem: str


__all__ = [
    "ACCEPTED_VERDICT",
    "ANONYMOUS",
    "AccessEvent",
    "Contest",
    "ContestParticipation",
    "ContestProblem",
    "Feedback",
    "IGNORED_VERDICTS",
    "PenaltyCalcPolicy",
    "PenaltyType",
    "Principal",
    "RegistrationDecision",
    "RegistrationRequest",
    "SubmissionEvent",
    "SubmissionRecord",
    "User",
]
