"""Contest operations over a storage backend (async, transport-free).

Every public coroutine returns a success value or raises exactly one
ContestError. Storage calls go through `_storage`, which applies the configured
timeout and wraps any backend failure into StorageUnavailable; errors of the
taxonomy (e.g. DuplicateEntry decided by the data layer) pass through as-is.

Cache keys and their invalidation triggers:
- contest_info:<alias>        contest edited, problem added/removed, recommended flag
- scoreboard:<alias>:<mode>   contest edited, problem added/removed
- contests_list:<viewer>      contest created/edited, visibility or admins changed
"""
from __future__ import annotations

import asyncio
import logging
import secrets
import string
from copy import deepcopy
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from . import clock
from .access import AccessContext, AccessDecision, Purpose, check_access, is_invited
from .activity import merge_activity
from .cache import CacheCoordinator, contest_info_key, contest_list_key, scoreboard_key
from .config import EngineConfig
from .errors import ContestError, Forbidden, InvalidInput, NotFound, PreconditionFailed, StorageUnavailable
from .merge import MergedRanking, MergeParams, merge_rankings
from .models import (
    ANONYMOUS,
    Contest,
    ContestParticipation,
    ContestProblem,
    Principal,
    RegistrationDecision,
    RegistrationRequest,
)
from .ranking import Ranking, RankingMode, compute_ranking, ordered_problems, score_distribution
from .repository import ContestRepository, IdentityResolver
from .types import (
    ActivityEventDict,
    ContestAdminEntry,
    ContestDetails,
    ContestListEntry,
    ContestProblemInfo,
    ContestUserEntry,
    StatsPayload,
)
from .validation import AddProblemInput, ArbitrateInput, ContestSettings, MergeRequest, parse_input

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALL_EVENTS_ALIAS = "all-events"
_TOKEN_ALPHABET = string.ascii_letters + string.digits

# Contest fields an update may touch; alias is immutable.
_UPDATABLE_FIELDS = (
    "title",
    "description",
    "start_time",
    "finish_time",
    "window_length",
    "public",
    "contestant_must_register",
    "scoreboard",
    "show_scoreboard_after",
    "points_decay_factor",
    "partial_score",
    "submissions_gap",
    "feedback",
    "penalty",
    "penalty_type",
    "penalty_calc_policy",
    "languages",
    "interview",
)


def generate_token(length: int) -> str:
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(length))


def _list_entry(contest: Contest) -> ContestListEntry:
    return {
        "contest_id": contest.contest_id,
        "alias": contest.alias,
        "title": contest.title,
        "description": contest.description,
        "start_time": contest.start_time,
        "finish_time": contest.finish_time,
        "public": contest.public,
        "window_length": contest.window_length,
        "recommended": contest.recommended,
        "duration": clock.contest_duration(contest),
    }


def _settings_of(contest: Contest) -> Dict[str, Any]:
    data: Dict[str, Any] = {"alias": contest.alias}
    for name in _UPDATABLE_FIELDS:
        data[name] = getattr(contest, name)
    data["languages"] = sorted(contest.languages)
    return data


class ContestService:
    def __init__(
        self,
        repository: ContestRepository,
        *,
        cache: Optional[CacheCoordinator] = None,
        config: Optional[EngineConfig] = None,
        identity: Optional[IdentityResolver] = None,
        now: Callable[[], int] = clock.now,
    ) -> None:
        self.repository = repository
        self.config = config or EngineConfig()
        self.cache = cache or CacheCoordinator(maxsize=self.config.cache_maxsize)
        self.identity = identity
        self._now = now

    # ==================== plumbing ====================

    async def _storage(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.config.storage_timeout_seconds)
        except ContestError:
            raise
        except TimeoutError as e:
            logger.error(f"Storage call {operation} timed out")
            raise StorageUnavailable("storageTimeout", retryable=True, operation=operation) from e
        except Exception as e:
            logger.error(f"Storage call {operation} failed: {e!r}")
            raise StorageUnavailable(operation=operation) from e

    async def authenticate(self, auth_token: Optional[str]) -> Principal:
        if auth_token is None or self.identity is None:
            return ANONYMOUS
        return await self._storage("resolve_identity", self.identity.resolve(auth_token))

    async def _get_contest(self, alias: str) -> Contest:
        if not alias:
            raise InvalidInput("parameterEmpty", parameter="contest_alias")
        contest = await self._storage("get_contest", self.repository.get_contest(alias))
        if contest is None:
            raise NotFound("contestNotFound")
        return contest

    def _require_login(self, principal: Principal) -> int:
        if principal.is_anonymous:
            raise Forbidden("loginRequired")
        return principal.user_id  # type: ignore[return-value]

    async def _access_context(
        self, contest: Contest, principal: Principal, token: Optional[str] = None
    ) -> AccessContext:
        if token is not None or principal.is_anonymous:
            return AccessContext(principal=principal, token=token)
        user_id = principal.user_id
        is_admin = principal.is_system_admin or await self._storage(
            "is_contest_admin", self.repository.is_contest_admin(user_id, contest)
        )
        participation = await self._storage(
            "get_participation", self.repository.get_participation(contest.contest_id, user_id)
        )
        registration = None
        if contest.contestant_must_register:
            registration = await self._storage(
                "get_registration", self.repository.get_registration(contest.contest_id, user_id)
            )
        return AccessContext(
            principal=principal,
            is_contest_admin=is_admin,
            has_grant=participation is not None,
            registration=registration,
        )

    async def _authorize(
        self,
        alias: str,
        principal: Principal,
        *,
        token: Optional[str] = None,
        purpose: Purpose = "view",
    ) -> tuple[Contest, AccessContext, AccessDecision]:
        contest = await self._get_contest(alias)
        ctx = await self._access_context(contest, principal, token)
        decision = check_access(contest, ctx, purpose=purpose, at=self._now())
        return contest, ctx, decision

    async def _visible_contest(
        self, alias: str, principal: Principal
    ) -> tuple[Contest, AccessContext]:
        """Load a contest for callers that skip the full gate.

        A private contest exists only for its admins and grant holders; everyone
        else gets the same NotFound as an unknown alias.
        """
        contest = await self._get_contest(alias)
        ctx = await self._access_context(contest, principal)
        if not contest.public and not (ctx.is_contest_admin or ctx.has_grant):
            raise NotFound("contestNotFound")
        return contest, ctx

    async def _record_first_access(self, contest: Contest, user_id: int) -> ContestParticipation:
        return await self._storage(
            "upsert_participation",
            self.repository.upsert_participation(contest.contest_id, user_id, self._now()),
        )

    # ==================== access & clock ====================

    async def check_access(
        self,
        alias: str,
        principal: Principal,
        token: Optional[str] = None,
        purpose: Purpose = "view",
    ) -> AccessDecision:
        _, _, decision = await self._authorize(alias, principal, token=token, purpose=purpose)
        return decision

    async def submission_deadline(self, alias: str, principal: Principal) -> Optional[int]:
        user_id = self._require_login(principal)
        contest, _, _ = await self._authorize(alias, principal)
        participation = await self._storage(
            "get_participation", self.repository.get_participation(contest.contest_id, user_id)
        )
        return clock.resolve_deadline(contest, participation)

    async def open_contest(self, alias: str, principal: Principal) -> ContestParticipation:
        contest, _, _ = await self._authorize(alias, principal, purpose="enter")
        participation = await self._record_first_access(contest, principal.user_id)  # type: ignore[arg-type]
        logger.info(f"User '{principal.username}' joined contest '{contest.alias}'")
        return participation

    async def show_intro(self, alias: str, principal: Principal) -> bool:
        """Intro page unless the user already started (admins included)."""
        contest, ctx = await self._visible_contest(alias, principal)
        if principal.is_anonymous:
            # No session: show the intro so they can log in.
            return True

        try:
            check_access(contest, ctx, purpose="view", at=self._now())
        except ContestError as e:
            if not is_invited(contest, ctx):
                raise
            logger.error(f"Exception while trying to verify access: {e!r}")
            return True

        participation = await self._storage(
            "get_participation",
            self.repository.get_participation(contest.contest_id, principal.user_id),  # type: ignore[arg-type]
        )
        if participation is not None and participation.first_access_time is not None:
            logger.debug("Not intro because you already started the contest")
            return False
        return True

    # ==================== details ====================

    async def _cached_details(self, contest: Contest) -> ContestDetails:
        async def produce() -> ContestDetails:
            problems = await self._storage(
                "get_problems", self.repository.get_problems(contest.contest_id, "order")
            )
            return self._build_details(contest, problems)

        return await self.cache.get_or_compute(
            contest_info_key(contest.alias), produce, ttl=self.config.contest_info_ttl
        )

    def _build_details(self, contest: Contest, problems: List[ContestProblem]) -> ContestDetails:
        by_alias = {p.alias: p for p in problems}
        problem_infos = []
        for ranked in ordered_problems(problems):
            problem = by_alias[ranked.alias]
            languages = set(problem.languages)
            if contest.languages:
                languages = languages & set(contest.languages) if languages else set(contest.languages)
            problem_infos.append(
                {
                    "alias": problem.alias,
                    "title": problem.title,
                    "letter": ranked.letter,
                    "points": problem.points,
                    "order": problem.order,
                    "languages": sorted(languages),
                }
            )
        return {
            "alias": contest.alias,
            "title": contest.title,
            "description": contest.description,
            "start_time": contest.start_time,
            "finish_time": contest.finish_time,
            "window_length": contest.window_length,
            "public": contest.public,
            "contestant_must_register": contest.contestant_must_register,
            "scoreboard": contest.scoreboard,
            "show_scoreboard_after": contest.show_scoreboard_after,
            "points_decay_factor": contest.points_decay_factor,
            "partial_score": contest.partial_score,
            "submissions_gap": contest.submissions_gap,
            "feedback": contest.feedback,
            "penalty": contest.penalty,
            "penalty_type": contest.penalty_type,
            "penalty_calc_policy": contest.penalty_calc_policy,
            "languages": sorted(contest.languages),
            "problems": problem_infos,
        }

    async def details(
        self,
        alias: str,
        principal: Principal,
        token: Optional[str] = None,
        ip: Optional[int | str] = None,
    ) -> ContestDetails:
        """
        Contest details. Without a token this also records the caller's first
        access (starting a windowed contest), adds their submission_deadline and
        appends an access-log entry.
        """
        purpose: Purpose = "enter" if token is None else "view"
        contest, _, decision = await self._authorize(alias, principal, token=token, purpose=purpose)
        result: ContestDetails = deepcopy(await self._cached_details(contest))

        if token is None:
            user_id = principal.user_id
            participation = await self._record_first_access(contest, user_id)  # type: ignore[arg-type]
            result["submission_deadline"] = clock.resolve_deadline(contest, participation)
            result["admin"] = decision.is_admin
            await self._storage(
                "log_access",
                self.repository.log_access(contest.contest_id, user_id, ip, self._now()),  # type: ignore[arg-type]
            )
        return result

    async def admin_details(self, alias: str, principal: Principal) -> ContestDetails:
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        result: ContestDetails = deepcopy(await self._cached_details(contest))
        result["admin"] = True
        return result

    async def public_details(self, alias: str, principal: Principal = ANONYMOUS) -> ContestDetails:
        contest, ctx = await self._visible_contest(alias, principal)
        result: ContestDetails = {
            "alias": contest.alias,
            "title": contest.title,
            "description": contest.description,
            "start_time": contest.start_time,
            "finish_time": contest.finish_time,
            "window_length": contest.window_length,
            "public": contest.public,
            "contestant_must_register": contest.contestant_must_register,
            "scoreboard": contest.scoreboard,
            "show_scoreboard_after": contest.show_scoreboard_after,
            "penalty": contest.penalty,
            "penalty_type": contest.penalty_type,
            "penalty_calc_policy": contest.penalty_calc_policy,
        }
        if not principal.is_anonymous and contest.contestant_must_register:
            registration = ctx.registration
            result["user_registration_requested"] = registration is not None
            result["user_registration_answered"] = (
                registration is not None and not registration.is_pending
            )
            result["user_registration_accepted"] = (
                registration is not None and registration.accepted is True
            )
        return result

    # ==================== registration ====================

    async def register_for_contest(self, alias: str, principal: Principal) -> RegistrationRequest:
        user_id = self._require_login(principal)
        contest, _ = await self._visible_contest(alias, principal)
        if not contest.public:
            # Private contests admit through grants, never through requests.
            raise Forbidden("contestNotPublic")
        existing = await self._storage(
            "get_registration", self.repository.get_registration(contest.contest_id, user_id)
        )
        if existing is not None:
            if existing.accepted is False:
                raise Forbidden("registrationRejected")
            return existing

        request = RegistrationRequest(
            contest_id=contest.contest_id, user_id=user_id, requested_at=self._now()
        )
        await self._storage("save_registration", self.repository.save_registration(request))
        logger.info(f"User '{principal.username}' requested registration to '{contest.alias}'")
        return request

    async def list_requests(self, alias: str, principal: Principal) -> List[RegistrationRequest]:
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        requests = await self._storage(
            "list_registrations", self.repository.list_registrations(contest.contest_id)
        )
        return list(requests)

    async def arbitrate_request(
        self, alias: str, principal: Principal, data: Dict[str, Any]
    ) -> RegistrationRequest:
        params = parse_input(ArbitrateInput, data)
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")

        target = await self._storage("find_user", self.repository.find_user(params.username))
        if target is None:
            raise NotFound("userNotFound")
        request = await self._storage(
            "get_registration", self.repository.get_registration(contest.contest_id, target.user_id)
        )
        if request is None:
            raise InvalidInput("userNotInListOfRequests", parameter="username")
        if not request.is_pending:
            raise InvalidInput("requestAlreadyArbitrated", parameter="username")

        decided_at = self._now()
        decided = replace(
            request,
            accepted=params.resolution,
            decided_by=principal.user_id,
            note=params.note,
            last_update=decided_at,
        )
        decision = RegistrationDecision(
            contest_id=contest.contest_id,
            user_id=target.user_id,
            admin_id=principal.user_id,
            accepted=params.resolution,
            time=decided_at,
            note=params.note,
        )
        await self._storage(
            "save_registration_decision",
            self.repository.save_registration_decision(decided, decision),
        )
        logger.info(
            f"Arbitrated contest for user, new accepted user_id={target.user_id}, state={params.resolution}"
        )
        return decided

    # ==================== scoreboards ====================

    async def _ranking(
        self, contest: Contest, mode: RankingMode, *, only_accepted: bool = False
    ) -> Ranking:
        discriminator = f"{mode}-ac" if only_accepted else mode

        async def produce() -> Ranking:
            problems = await self._storage(
                "get_problems", self.repository.get_problems(contest.contest_id, "order")
            )
            submissions = await self._storage(
                "get_submissions", self.repository.get_submissions(contest.contest_id)
            )
            participants = await self._storage(
                "list_participants", self.repository.list_participants(contest.contest_id)
            )
            return compute_ranking(
                contest,
                problems,
                submissions,
                mode=mode,
                only_accepted=only_accepted,
                participants=participants,
                at=self._now(),
            )

        return await self.cache.get_or_compute(
            scoreboard_key(contest.alias, discriminator), produce, ttl=self.config.scoreboard_ttl
        )

    async def scoreboard(
        self, alias: str, principal: Principal, token: Optional[str] = None
    ) -> Ranking:
        contest, _, decision = await self._authorize(
            alias, principal, token=token, purpose="scoreboard"
        )
        mode: RankingMode = "unrestricted" if decision.is_admin else "restricted"
        return await self._ranking(contest, mode)

    async def merge_scoreboards(self, principal: Principal, data: Dict[str, Any]) -> MergedRanking:
        self._require_login(principal)
        request = parse_input(MergeRequest, data)

        contests: List[Contest] = []
        for alias in request.contest_aliases:
            contest, _, _ = await self._authorize(alias, principal, purpose="scoreboard")
            contests.append(contest)

        params: Dict[str, MergeParams] = {}
        rankings: Dict[str, Ranking] = {}
        for contest in contests:
            raw = request.contest_params.get(contest.alias)
            merge_params = (
                MergeParams(weight=raw.weight, only_accepted=raw.only_ac) if raw else MergeParams()
            )
            params[contest.alias] = merge_params
            # Each constituent is frozen on its own before merging.
            rankings[contest.alias] = await self._ranking(
                contest, "restricted", only_accepted=merge_params.only_accepted
            )
        return merge_rankings(rankings, params, request.usernames_filter)

    async def report(self, alias: str, principal: Principal) -> Ranking:
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        problems = await self._storage(
            "get_problems", self.repository.get_problems(contest.contest_id, "order")
        )
        submissions = await self._storage(
            "get_submissions", self.repository.get_submissions(contest.contest_id)
        )
        participants = await self._storage(
            "list_participants", self.repository.list_participants(contest.contest_id)
        )
        return compute_ranking(
            contest,
            problems,
            submissions,
            mode="unrestricted",
            participants=participants,
            sort_by_name=True,
            at=self._now(),
        )

    async def stats(self, alias: str, principal: Principal) -> StatsPayload:
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        submissions = await self._storage(
            "get_submissions", self.repository.get_submissions(contest.contest_id)
        )
        verdict_counts: Dict[str, int] = {}
        for run in submissions:
            verdict_counts[run.verdict] = verdict_counts.get(run.verdict, 0) + 1

        ranking = await self._ranking(contest, "unrestricted")
        distribution, bucket_size = score_distribution(ranking)
        return {
            "total_runs": len(submissions),
            "total_points": ranking.total_points,
            "size_of_bucket": bucket_size,
            "distribution": distribution,
            "verdict_counts": verdict_counts,
        }

    async def activity_report(
        self, alias: str, principal: Principal, token: Optional[str] = None
    ) -> List[ActivityEventDict]:
        contest, _, _ = await self._authorize(alias, principal, token=token, purpose="admin")
        accesses = await self._storage(
            "get_access_log", self.repository.get_access_log(contest.contest_id)
        )
        submissions = await self._storage(
            "get_submission_log", self.repository.get_submission_log(contest.contest_id)
        )
        return merge_activity(accesses, submissions)

    # ==================== listing & roles ====================

    async def list_contests(self, principal: Principal = ANONYMOUS) -> List[ContestListEntry]:
        if principal.is_anonymous:

            async def produce_public() -> List[ContestListEntry]:
                contests = await self._storage(
                    "list_public_contests", self.repository.list_public_contests()
                )
                return [_list_entry(c) for c in contests]

            return deepcopy(
                await self.cache.get_or_compute(
                    contest_list_key("anonymous"), produce_public, ttl=self.config.contest_list_ttl
                )
            )

        if principal.is_system_admin:

            async def produce_all() -> List[ContestListEntry]:
                contests = await self._storage("list_contests", self.repository.list_contests())
                return [_list_entry(c) for c in contests]

            return deepcopy(
                await self.cache.get_or_compute(
                    contest_list_key("admin"), produce_all, ttl=self.config.contest_list_ttl
                )
            )

        contests = await self._storage(
            "list_contests_for_user",
            self.repository.list_contests_for_user(principal.user_id),  # type: ignore[arg-type]
        )
        return [_list_entry(c) for c in contests]

    async def my_contests(self, principal: Principal) -> List[ContestListEntry]:
        """Contests the caller administers; every contest for system admins."""
        user_id = self._require_login(principal)
        if principal.is_system_admin:
            contests = await self._storage("list_contests", self.repository.list_contests())
        else:
            contests = await self._storage(
                "list_administered_contests", self.repository.list_administered_contests(user_id)
            )
        return [_list_entry(c) for c in contests]

    async def list_problems(self, alias: str, principal: Principal) -> List[ContestProblemInfo]:
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        return deepcopy((await self._cached_details(contest))["problems"])

    async def role(self, alias: str, principal: Principal, token: Optional[str] = None) -> bool:
        """Whether the caller administers the contest; failures read as False."""
        try:
            if alias == ALL_EVENTS_ALIAS and principal.is_system_admin:
                return True
            decision = await self.check_access(alias, principal, token=token)
            return decision.is_admin
        except ContestError as e:
            logger.error(f"Error getting role: {e!r}")
            return False

    async def set_recommended(self, alias: str, principal: Principal, value: bool) -> Contest:
        if not principal.is_system_admin:
            raise Forbidden("userNotAllowed")
        contest = await self._get_contest(alias)
        updated = await self._storage(
            "update_contest", self.repository.update_contest(replace(contest, recommended=bool(value)))
        )
        self.cache.invalidate(contest_info_key(contest.alias))
        self.cache.invalidate_contest_lists()
        logger.info(f"Contest '{contest.alias}' recommended={bool(value)}")
        return updated

    # ==================== contest administration ====================

    async def create_contest(self, principal: Principal, data: Dict[str, Any]) -> Contest:
        user_id = self._require_login(principal)
        settings = parse_input(
            ContestSettings,
            data,
            context={"max_contest_length_seconds": self.config.max_contest_length_seconds},
        )
        if settings.public and not settings.problems:
            raise InvalidInput("contestPublicRequiresProblem", parameter="public")

        fields = settings.model_dump(exclude={"private_users", "problems"})
        fields["languages"] = frozenset(settings.languages)
        contest = Contest(
            contest_id=0,
            director_id=user_id,
            scoreboard_token=generate_token(self.config.scoreboard_token_length),
            scoreboard_admin_token=generate_token(self.config.scoreboard_token_length),
            **fields,
        )
        problems = [
            ContestProblem(problem_id=p.problem_id, alias=p.alias, points=p.points, order=p.order)
            for p in settings.problems
        ]
        private_users = [] if settings.public else list(settings.private_users)

        stored = await self._storage(
            "create_contest", self.repository.create_contest(contest, problems, private_users)
        )
        self.cache.invalidate_contest_lists()
        logger.info(f"New Contest Created: {stored.alias}")
        return stored

    async def update_contest(self, alias: str, principal: Principal, data: Dict[str, Any]) -> Contest:
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        for name in ("problems", "private_users"):
            if name in data:
                raise InvalidInput("parameterNotUpdatable", parameter=name)

        merged = _settings_of(contest)
        merged.update({k: v for k, v in data.items() if v is not None and k != "alias"})
        settings = parse_input(
            ContestSettings,
            merged,
            context={"max_contest_length_seconds": self.config.max_contest_length_seconds},
        )

        if settings.start_time != contest.start_time:
            runs = await self._storage(
                "get_submissions", self.repository.get_submissions(contest.contest_id)
            )
            if runs:
                raise InvalidInput("contestUpdateAlreadyHasRuns", parameter="start_time")

        if settings.public and not contest.public:
            problems = await self._storage(
                "get_problems", self.repository.get_problems(contest.contest_id, "order")
            )
            if not problems:
                raise InvalidInput("contestPublicRequiresProblem", parameter="public")

        changes = {name: getattr(settings, name) for name in _UPDATABLE_FIELDS}
        changes["languages"] = frozenset(settings.languages)
        updated = await self._storage(
            "update_contest", self.repository.update_contest(replace(contest, **changes))
        )

        self.cache.invalidate_contest(contest.alias)
        self.cache.invalidate_contest_lists()
        logger.info(f"Contest updated (alias): {contest.alias}")
        return updated

    async def add_problem(self, alias: str, principal: Principal, data: Dict[str, Any]) -> ContestProblem:
        params = parse_input(AddProblemInput, data)
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")

        problem = await self._storage("find_problem", self.repository.find_problem(params.problem_alias))
        if problem is None:
            raise NotFound("problemNotFound")
        current = await self._storage(
            "get_problems", self.repository.get_problems(contest.contest_id, "order")
        )
        if len(current) >= self.config.max_problems_in_contest:
            raise PreconditionFailed("contestAddproblemTooManyProblems")

        assigned = replace(problem, points=params.points, order=params.order_in_contest)
        await self._storage("add_problem", self.repository.add_problem(contest.contest_id, assigned))
        self.cache.invalidate_contest(contest.alias)
        return assigned

    async def remove_problem(self, alias: str, principal: Principal, problem_alias: str) -> None:
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        removed = await self._storage(
            "remove_problem", self.repository.remove_problem(contest.contest_id, problem_alias)
        )
        if not removed:
            raise NotFound("problemNotFound")
        self.cache.invalidate_contest(contest.alias)

    async def add_user(self, alias: str, principal: Principal, username: str) -> ContestParticipation:
        """Explicitly grant a user access (required for private contests)."""
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        user = await self._storage("find_user", self.repository.find_user(username))
        if user is None:
            raise NotFound("userOrMailNotFound")
        participation = await self._storage(
            "upsert_participation",
            self.repository.upsert_participation(contest.contest_id, user.user_id, None),
        )
        # Boards list every participant, scored or not.
        self.cache.invalidate_contest(contest.alias)
        return participation

    async def set_admin(
        self, alias: str, principal: Principal, username: str, is_admin: bool = True
    ) -> None:
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        user = await self._storage("find_user", self.repository.find_user(username))
        if user is None:
            raise NotFound("userOrMailNotFound")
        if not is_admin:
            current = await self._storage(
                "is_contest_admin", self.repository.is_contest_admin(user.user_id, contest)
            )
            if not current:
                raise NotFound("userNotAdmin")
        await self._storage(
            "set_contest_admin",
            self.repository.set_contest_admin(contest.contest_id, user.user_id, is_admin),
        )
        self.cache.invalidate_contest_lists()

    async def remove_user(self, alias: str, principal: Principal, username: str) -> None:
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        user = await self._storage("find_user", self.repository.find_user(username))
        if user is None:
            raise NotFound("userOrMailNotFound")
        removed = await self._storage(
            "remove_participation",
            self.repository.remove_participation(contest.contest_id, user.user_id),
        )
        if not removed:
            raise NotFound("userNotInContest")
        self.cache.invalidate_contest(contest.alias)
        logger.info(f"User '{username}' removed from contest '{contest.alias}'")

    async def list_users(self, alias: str, principal: Principal) -> List[ContestUserEntry]:
        """Every grant on the contest with the time the user first opened it."""
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        rows = await self._storage(
            "list_participations", self.repository.list_participations(contest.contest_id)
        )
        return [
            {
                "username": user.username,
                "name": user.name,
                "access_time": participation.first_access_time,
            }
            for user, participation in rows
        ]

    async def list_admins(self, alias: str, principal: Principal) -> List[ContestAdminEntry]:
        contest, _, _ = await self._authorize(alias, principal, purpose="admin")
        admins = await self._storage(
            "list_contest_admins", self.repository.list_contest_admins(contest)
        )
        return [
            {
                "username": user.username,
                "role": "director" if user.user_id == contest.director_id else "admin",
            }
            for user in admins
        ]


__all__ = ["ALL_EVENTS_ALIAS", "ContestService", "generate_token"]
