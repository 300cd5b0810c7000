from .access import (
    AccessContext,
    AccessDecision,
    check_access,
    decide_access,
    is_invited,
    mask_private_denial,
)
from .activity import merge_activity, merge_streams
from .cache import CacheCoordinator, contest_info_key, contest_list_key, scoreboard_key
from .clock import contest_duration, ensure_started, has_finished, has_started, resolve_deadline
from .config import EngineConfig
from .errors import (
    ContestError,
    DuplicateEntry,
    Forbidden,
    InvalidInput,
    NotFound,
    PreconditionFailed,
    StorageUnavailable,
)
from .merge import MergedRanking, MergedRow, MergeParams, merge_rankings
from .models import (
    ANONYMOUS,
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
from .ranking import Ranking, RankingRow, column_name, compute_ranking, score_distribution
from .repository import ContestRepository, IdentityResolver
from .service import ContestService
from .validation import ContestSettings, InputSanitizer, MergeRequest, parse_input

__all__ = [
    "ANONYMOUS",
    "AccessContext",
    "AccessDecision",
    "AccessEvent",
    "CacheCoordinator",
    "Contest",
    "ContestError",
    "ContestParticipation",
    "ContestProblem",
    "ContestRepository",
    "ContestService",
    "ContestSettings",
    "DuplicateEntry",
    "EngineConfig",
    "Forbidden",
    "IdentityResolver",
    "InputSanitizer",
    "InvalidInput",
    "MergeParams",
    "MergeRequest",
    "MergedRanking",
    "MergedRow",
    "NotFound",
    "PreconditionFailed",
    "Principal",
    "Ranking",
    "RankingRow",
    "RegistrationDecision",
    "RegistrationRequest",
    "StorageUnavailable",
    "SubmissionEvent",
    "SubmissionRecord",
    "User",
    "check_access",
    "column_name",
    "compute_ranking",
    "contest_duration",
    "contest_info_key",
    "contest_list_key",
    "decide_access",
    "ensure_started",
    "has_finished",
    "has_started",
    "is_invited",
    "mask_private_denial",
    "merge_activity",
    "merge_rankings",
    "merge_streams",
    "parse_input",
    "resolve_deadline",
    "score_distribution",
    "scoreboard_key",
]
