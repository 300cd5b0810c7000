"""Contest access gate (visibility x principal x token decision table).

Decision order:
1. A scoreboard token, when present, decides alone: admin token -> admin,
   viewer token -> viewer, anything else -> forbidden (invalidScoreboardUrl).
2. Contest admins are always allowed.
3. Private contests need an explicit grant (userNotAllowed otherwise).
4. Public registration-gated contests need an accepted request
   (contestNotRegistered for pending, rejected or absent requests).
5. Remaining public contests are open to everyone.

Private contests must not leak: a denial on a private contest for a principal
without an explicit grant is reported as NotFound, exactly like an unknown alias.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from .clock import has_started
from .errors import ContestError, Forbidden, NotFound, PreconditionFailed
from .models import Contest, Principal, RegistrationRequest

logger = logging.getLogger(__name__)

Role = Literal["contestant", "viewer", "admin"]
Purpose = Literal["view", "enter", "scoreboard", "admin"]


@dataclass(frozen=True)
class AccessContext:
    """Everything the gate needs to know about the caller's relationship to a contest."""

    principal: Principal
    is_contest_admin: bool = False
    has_grant: bool = False
    registration: RegistrationRequest | None = None
    token: str | None = None


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    role: Role | None = None
    reason: str | None = None
    via_token: bool = False

    @property
    def is_admin(self) -> bool:
        return self.allowed and self.role == "admin"


def _deny(reason: str, *, via_token: bool = False) -> AccessDecision:
    return AccessDecision(allowed=False, role=None, reason=reason, via_token=via_token)


def decide_access(contest: Contest, ctx: AccessContext) -> AccessDecision:
    if ctx.token is not None:
        if contest.scoreboard_admin_token and ctx.token == contest.scoreboard_admin_token:
            return AccessDecision(allowed=True, role="admin", via_token=True)
        if contest.scoreboard_token and ctx.token == contest.scoreboard_token:
            return AccessDecision(allowed=True, role="viewer", via_token=True)
        return _deny("invalidScoreboardUrl", via_token=True)

    if ctx.is_contest_admin:
        return AccessDecision(allowed=True, role="admin")

    if not contest.public:
        if ctx.has_grant and not ctx.principal.is_anonymous:
            return AccessDecision(allowed=True, role="contestant")
        return _deny("userNotAllowed")

    if contest.contestant_must_register:
        reg = ctx.registration
        if reg is None or reg.accepted is not True:
            return _deny("contestNotRegistered")

    if ctx.principal.is_anonymous:
        return AccessDecision(allowed=True, role="viewer")
    return AccessDecision(allowed=True, role="contestant")


def is_invited(contest: Contest, ctx: AccessContext) -> bool:
    """Whether the caller holds a positive signal that disclosure is safe."""
    if ctx.principal.is_anonymous:
        return False
    return contest.public or ctx.has_grant


def mask_private_denial(contest: Contest, ctx: AccessContext, error: ContestError) -> ContestError:
    if contest.public or ctx.has_grant or ctx.is_contest_admin:
        return error
    if isinstance(error, (Forbidden, PreconditionFailed)):
        return NotFound("contestNotFound")
    return error


def check_access(
    contest: Contest,
    ctx: AccessContext,
    *,
    purpose: Purpose = "view",
    at: int | None = None,
) -> AccessDecision:
    """Authorize `ctx` for `purpose` on `contest` or raise.

    - view: any allowed principal; non-admin, non-token callers must wait for start
    - enter: like view, but a token never enters and the caller must be logged in
    - scoreboard: like view, without the start precondition
    - admin: the decision must carry admin privileges
    """
    try:
        if purpose == "enter":
            if ctx.token is not None:
                raise Forbidden("tokenCannotEnterContest")
            if ctx.principal.is_anonymous:
                raise Forbidden("loginRequired")

        decision = decide_access(contest, ctx)
        if not decision.allowed:
            raise Forbidden(decision.reason)

        if purpose in ("view", "enter") and not decision.via_token and not decision.is_admin:
            if not has_started(contest, at):
                raise PreconditionFailed("contestNotStarted", start_time=contest.start_time)

        if purpose == "admin" and not decision.is_admin:
            raise Forbidden("userNotAllowed")
    except ContestError as e:
        masked = mask_private_denial(contest, ctx, e)
        if masked is e:
            raise
        logger.debug(f"Masking {e.kind} on private contest {contest.alias} as not found")
        raise masked from None
    return decision


__all__ = [
    "AccessContext",
    "AccessDecision",
    "Purpose",
    "Role",
    "check_access",
    "decide_access",
    "is_invited",
    "mask_private_denial",
]
