from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import replace

import pytest

from scoreboard_core import (
    AccessEvent,
    CacheCoordinator,
    Contest,
    ContestParticipation,
    ContestProblem,
    ContestService,
    DuplicateEntry,
    EngineConfig,
    Principal,
    RegistrationDecision,
    RegistrationRequest,
    SubmissionEvent,
    SubmissionRecord,
    User,
)


class FakeClock:
    def __init__(self, t: int = 1000):
        self.t = t

    def __call__(self) -> int:
        return self.t


class FakeRepository:
    """In-memory ContestRepository with call counters and failure injection."""

    def __init__(self):
        self.contests: dict[str, Contest] = {}
        self.problems: dict[int, list[ContestProblem]] = {}
        self.catalog: dict[str, ContestProblem] = {}
        self.users: dict[str, User] = {}
        self.admins: set[tuple[int, int]] = set()
        self.participations: dict[tuple[int, int], ContestParticipation] = {}
        self.registrations: dict[tuple[int, int], RegistrationRequest] = {}
        self.decisions: list[RegistrationDecision] = []
        self.submissions: dict[int, list[SubmissionRecord]] = {}
        self.accesses: dict[int, list[AccessEvent]] = {}
        self.submission_events: dict[int, list[SubmissionEvent]] = {}
        self.calls: Counter = Counter()
        self.fail: Exception | None = None
        self.delay = 0.0
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def _enter(self, name: str) -> None:
        self.calls[name] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail is not None:
            raise self.fail

    # ---- seeding helpers (sync) ----

    def add_user(self, user_id: int, username: str, name: str | None = None) -> User:
        user = User(user_id=user_id, username=username, name=name)
        self.users[username] = user
        return user

    def add_contest(self, contest: Contest, problems=()) -> Contest:
        if contest.contest_id == 0:
            contest = replace(contest, contest_id=self._next_id)
        self._next_id = max(self._next_id, contest.contest_id) + 1
        self.contests[contest.alias] = contest
        self.problems[contest.contest_id] = list(problems)
        return contest

    def add_submission(self, contest: Contest, user: User, problem: str, time: int, verdict: str = "AC", **kw):
        record = SubmissionRecord(
            contest_id=contest.contest_id,
            problem_alias=problem,
            user_id=user.user_id,
            username=user.username,
            name=user.name,
            time=time,
            verdict=verdict,
            **kw,
        )
        self.submissions.setdefault(contest.contest_id, []).append(record)
        return record

    def grant(self, contest: Contest, user: User) -> None:
        self.participations[(contest.contest_id, user.user_id)] = ContestParticipation(
            contest_id=contest.contest_id, user_id=user.user_id
        )

    # ---- ContestRepository ----

    async def get_contest(self, alias):
        await self._enter("get_contest")
        return self.contests.get(alias)

    async def list_contests(self):
        await self._enter("list_contests")
        return list(self.contests.values())

    async def list_public_contests(self):
        await self._enter("list_public_contests")
        return [c for c in self.contests.values() if c.public]

    async def list_contests_for_user(self, user_id):
        await self._enter("list_contests_for_user")
        return [
            c
            for c in self.contests.values()
            if c.public
            or (c.contest_id, user_id) in self.participations
            or (c.contest_id, user_id) in self.admins
            or c.director_id == user_id
        ]

    async def create_contest(self, contest, problems, private_users):
        await self._enter("create_contest")
        if contest.alias in self.contests:
            raise DuplicateEntry("aliasInUse", alias=contest.alias)
        stored = self.add_contest(contest, problems)
        for user_id in private_users:
            self.participations[(stored.contest_id, user_id)] = ContestParticipation(
                contest_id=stored.contest_id, user_id=user_id
            )
        return stored

    async def update_contest(self, contest):
        await self._enter("update_contest")
        self.contests[contest.alias] = contest
        return contest

    async def is_contest_admin(self, user_id, contest):
        await self._enter("is_contest_admin")
        return contest.director_id == user_id or (contest.contest_id, user_id) in self.admins

    async def set_contest_admin(self, contest_id, user_id, is_admin):
        await self._enter("set_contest_admin")
        if is_admin:
            self.admins.add((contest_id, user_id))
        else:
            self.admins.discard((contest_id, user_id))

    async def list_contest_admins(self, contest):
        await self._enter("list_contest_admins")
        by_id = {u.user_id: u for u in self.users.values()}
        ids = [contest.director_id] + sorted(
            uid for (cid, uid) in self.admins if cid == contest.contest_id and uid != contest.director_id
        )
        return [by_id[uid] for uid in ids if uid in by_id]

    async def list_administered_contests(self, user_id):
        await self._enter("list_administered_contests")
        return [
            c
            for c in self.contests.values()
            if c.director_id == user_id or (c.contest_id, user_id) in self.admins
        ]

    async def find_user(self, username):
        await self._enter("find_user")
        return self.users.get(username)

    async def find_problem(self, alias):
        await self._enter("find_problem")
        return self.catalog.get(alias)

    async def get_problems(self, contest_id, order_by="order"):
        await self._enter("get_problems")
        return list(self.problems.get(contest_id, []))

    async def add_problem(self, contest_id, problem):
        await self._enter("add_problem")
        current = [p for p in self.problems.get(contest_id, []) if p.alias != problem.alias]
        self.problems[contest_id] = current + [problem]

    async def remove_problem(self, contest_id, problem_alias):
        await self._enter("remove_problem")
        current = self.problems.get(contest_id, [])
        kept = [p for p in current if p.alias != problem_alias]
        self.problems[contest_id] = kept
        return len(kept) != len(current)

    async def get_submissions(self, contest_id, *, problem_alias=None, user_id=None, verdict=None):
        await self._enter("get_submissions")
        runs = self.submissions.get(contest_id, [])
        return [
            r
            for r in runs
            if (problem_alias is None or r.problem_alias == problem_alias)
            and (user_id is None or r.user_id == user_id)
            and (verdict is None or r.verdict == verdict)
        ]

    async def list_participants(self, contest_id):
        await self._enter("list_participants")
        by_id = {u.user_id: u for u in self.users.values()}
        return [
            by_id[uid]
            for (cid, uid) in self.participations
            if cid == contest_id and uid in by_id
        ]

    async def get_participation(self, contest_id, user_id):
        await self._enter("get_participation")
        return self.participations.get((contest_id, user_id))

    async def list_participations(self, contest_id):
        await self._enter("list_participations")
        by_id = {u.user_id: u for u in self.users.values()}
        return [
            (by_id[uid], participation)
            for (cid, uid), participation in self.participations.items()
            if cid == contest_id and uid in by_id
        ]

    async def remove_participation(self, contest_id, user_id):
        await self._enter("remove_participation")
        return self.participations.pop((contest_id, user_id), None) is not None

    async def upsert_participation(self, contest_id, user_id, first_access_time=None):
        await self._enter("upsert_participation")
        async with self._lock:
            current = self.participations.get((contest_id, user_id))
            if current is None:
                current = ContestParticipation(contest_id=contest_id, user_id=user_id)
            if current.first_access_time is None and first_access_time is not None:
                current = replace(current, first_access_time=first_access_time)
            self.participations[(contest_id, user_id)] = current
            return current

    async def get_registration(self, contest_id, user_id):
        await self._enter("get_registration")
        return self.registrations.get((contest_id, user_id))

    async def list_registrations(self, contest_id):
        await self._enter("list_registrations")
        return [r for (cid, _), r in self.registrations.items() if cid == contest_id]

    async def save_registration(self, request):
        await self._enter("save_registration")
        self.registrations[(request.contest_id, request.user_id)] = request

    async def save_registration_decision(self, request, decision):
        await self._enter("save_registration_decision")
        self.registrations[(request.contest_id, request.user_id)] = request
        self.decisions.append(decision)

    async def log_access(self, contest_id, user_id, ip, time):
        await self._enter("log_access")
        username = next(u.username for u in self.users.values() if u.user_id == user_id)
        self.accesses.setdefault(contest_id, []).append(AccessEvent(username=username, time=time, ip=ip))

    async def get_access_log(self, contest_id):
        await self._enter("get_access_log")
        return sorted(self.accesses.get(contest_id, []), key=lambda e: e.time)

    async def get_submission_log(self, contest_id):
        await self._enter("get_submission_log")
        return sorted(self.submission_events.get(contest_id, []), key=lambda e: e.time)


def make_contest(alias: str = "c1", **kw) -> Contest:
    fields = {
        "contest_id": 0,
        "alias": alias,
        "title": f"Contest {alias}",
        "start_time": 0,
        "finish_time": 10000,
        "public": True,
        "scoreboard_token": f"{alias}-viewer",
        "scoreboard_admin_token": f"{alias}-admin",
    }
    fields.update(kw)
    return Contest(**fields)


def principal_of(user: User, *, system_admin: bool = False) -> Principal:
    return Principal(user_id=user.user_id, username=user.username, is_system_admin=system_admin)


@pytest.fixture
def clock():
    return FakeClock(1000)


@pytest.fixture
def repo():
    repository = FakeRepository()
    repository.add_user(1, "director", "Dora Director")
    repository.add_user(2, "ana", "Ana")
    repository.add_user(3, "ben", "Ben")
    repository.add_user(4, "root", "Root")
    repository.catalog["sum"] = ContestProblem(problem_id=10, alias="sum", points=100, title="Sum")
    repository.catalog["max"] = ContestProblem(problem_id=11, alias="max", points=100, title="Max")
    return repository


@pytest.fixture
def service(repo, clock):
    config = EngineConfig(storage_timeout_seconds=0.5, max_problems_in_contest=2)
    return ContestService(repo, cache=CacheCoordinator(maxsize=64), config=config, now=clock)


@pytest.fixture
def users(repo):
    return {name: principal_of(user, system_admin=(name == "root")) for name, user in repo.users.items()}
