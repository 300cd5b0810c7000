"""Collaborator seams: durable storage and identity resolution.

The core never talks to a database. Implementations must:
- raise DuplicateEntry from create_contest on alias collisions
- make upsert_participation an atomic check-and-set of first_access_time
- treat a participation row as the user's explicit grant to the contest
"""
from __future__ import annotations

from typing import Protocol, Sequence

from .models import (
    AccessEvent,
    Contest,
    ContestParticipation,
    ContestProblem,
    Principal,
    RegistrationDecision,
    RegistrationRequest,
    SubmissionEvent,
    SubmissionRecord,
    User,
)


class ContestRepository(Protocol):
    async def get_contest(self, alias: str) -> Contest | None:
        ...

    async def list_contests(self) -> Sequence[Contest]:
        ...

    async def list_public_contests(self) -> Sequence[Contest]:
        ...

    async def list_contests_for_user(self, user_id: int) -> Sequence[Contest]:
        """Public contests plus private ones the user holds a grant on."""
        ...

    async def create_contest(
        self,
        contest: Contest,
        problems: Sequence[ContestProblem],
        private_users: Sequence[int],
    ) -> Contest:
        ...

    async def update_contest(self, contest: Contest) -> Contest:
        ...

    async def is_contest_admin(self, user_id: int, contest: Contest) -> bool:
        ...

    async def set_contest_admin(self, contest_id: int, user_id: int, is_admin: bool) -> None:
        ...

    async def list_contest_admins(self, contest: Contest) -> Sequence[User]:
        """The director followed by every user granted the admin role."""
        ...

    async def list_administered_contests(self, user_id: int) -> Sequence[Contest]:
        """Contests the user directs or holds the admin role on."""
        ...

    async def find_user(self, username: str) -> User | None:
        ...

    async def find_problem(self, alias: str) -> ContestProblem | None:
        ...

    async def get_problems(self, contest_id: int, order_by: str = "order") -> Sequence[ContestProblem]:
        ...

    async def add_problem(self, contest_id: int, problem: ContestProblem) -> None:
        ...

    async def remove_problem(self, contest_id: int, problem_alias: str) -> bool:
        ...

    async def get_submissions(
        self,
        contest_id: int,
        *,
        problem_alias: str | None = None,
        user_id: int | None = None,
        verdict: str | None = None,
    ) -> Sequence[SubmissionRecord]:
        ...

    async def list_participants(self, contest_id: int) -> Sequence[User]:
        ...

    async def get_participation(self, contest_id: int, user_id: int) -> ContestParticipation | None:
        ...

    async def list_participations(
        self, contest_id: int
    ) -> Sequence[tuple[User, ContestParticipation]]:
        ...

    async def remove_participation(self, contest_id: int, user_id: int) -> bool:
        """Revoke the grant; False when the user held none."""
        ...

    async def upsert_participation(
        self,
        contest_id: int,
        user_id: int,
        first_access_time: int | None = None,
    ) -> ContestParticipation:
        """Create the row if missing; set first_access_time only while unset.

        Returns the stored row. A second call never moves first_access_time.
        """
        ...

    async def get_registration(self, contest_id: int, user_id: int) -> RegistrationRequest | None:
        ...

    async def list_registrations(self, contest_id: int) -> Sequence[RegistrationRequest]:
        ...

    async def save_registration(self, request: RegistrationRequest) -> None:
        ...

    async def save_registration_decision(
        self, request: RegistrationRequest, decision: RegistrationDecision
    ) -> None:
        """Persist the decided request and append the decision to its history."""
        ...

    async def log_access(self, contest_id: int, user_id: int, ip: int | str | None, time: int) -> None:
        ...

    async def get_access_log(self, contest_id: int) -> Sequence[AccessEvent]:
        ...

    async def get_submission_log(self, contest_id: int) -> Sequence[SubmissionEvent]:
        ...


class IdentityResolver(Protocol):
    async def resolve(self, auth_token: str | None) -> Principal:
        """Principal for a session token; ANONYMOUS when absent or invalid."""
        ...


__all__ = ["ContestRepository", "IdentityResolver"]
