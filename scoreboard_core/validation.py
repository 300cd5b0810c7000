"""
Input validation schemas using Pydantic v2
Validates contest create/update, problem assignment, merge and arbitration inputs
"""

import logging
import re
from typing import Any, Dict, List, Literal, Optional, Self, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .errors import InvalidInput

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

ALIAS_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,32}$")
DEFAULT_MAX_CONTEST_LENGTH_SECONDS = 2678400


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: Any, max_length: int = 255) -> str:
        """Sanitize string input"""
        if not isinstance(value, str):
            value = str(value)

        value = value.strip()[:max_length]

        # Remove null bytes
        return value.replace("\0", "")

    @staticmethod
    def split_csv(value: Any) -> Any:
        """Accept 'a,b,c' as well as lists; drops empty items and duplicates"""
        if value is None:
            return None
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple, set, frozenset)):
            return value
        items: List[str] = []
        for item in value:
            cleaned = InputSanitizer.sanitize_string(item)
            if cleaned and cleaned not in items:
                items.append(cleaned)
        return items


class ProblemAssignment(BaseModel):
    """A problem attached to a contest at creation time"""

    problem_id: int = Field(..., ge=0)
    alias: str = Field(..., min_length=1, max_length=32)
    points: float = Field(..., ge=0)
    order: int = Field(1, ge=0)


class ContestSettings(BaseModel):
    """Full, validated contest configuration (create, or stored merged with update)"""

    alias: str = Field(..., description="Unique contest alias")
    title: str = Field(..., min_length=1, max_length=256)
    description: str = Field(..., min_length=1)
    start_time: int = Field(..., ge=0)
    finish_time: int = Field(..., ge=0)
    # Minutes; None = shared deadline
    window_length: Optional[int] = Field(None, ge=0)
    public: bool = False
    contestant_must_register: bool = False
    scoreboard: int = Field(100, ge=0, le=100)
    show_scoreboard_after: bool = True
    points_decay_factor: float = Field(0.0, ge=0, le=1)
    partial_score: bool = True
    submissions_gap: int = Field(60, ge=0)
    feedback: Literal["no", "yes", "partial"] = "yes"
    penalty: int = 0
    penalty_type: Literal["contest_start", "problem_open", "runtime", "none"] = "none"
    penalty_calc_policy: Literal["sum", "max"] = "sum"
    languages: List[str] = Field(default_factory=list)
    interview: bool = False
    private_users: List[int] = Field(default_factory=list)
    problems: List[ProblemAssignment] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @field_validator("alias")
    @classmethod
    def validate_alias(cls, v: str) -> str:
        v = v.strip()
        if not ALIAS_PATTERN.match(v):
            raise ValueError("invalidAlias")
        return v

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("window_length", mode="before")
    @classmethod
    def null_window(cls, v: Any) -> Any:
        # Legacy clients send the literal string 'NULL'
        if v in ("NULL", ""):
            return None
        return v

    @field_validator("penalty", mode="before")
    @classmethod
    def clamp_penalty(cls, v: Any) -> int:
        return max(0, int(v or 0))

    @field_validator("languages", mode="before")
    @classmethod
    def split_languages(cls, v: Any) -> Any:
        if v is None:
            return []
        return InputSanitizer.split_csv(v)

    @model_validator(mode="after")
    def validate_times(self, info: ValidationInfo) -> Self:
        if self.start_time > self.finish_time:
            raise ValueError("contestNewInvalidStartTime")

        length = self.finish_time - self.start_time
        max_length = DEFAULT_MAX_CONTEST_LENGTH_SECONDS
        if info.context and "max_contest_length_seconds" in info.context:
            max_length = int(info.context["max_contest_length_seconds"])
        if not self.interview and length > max_length:
            raise ValueError("contestLengthTooLong")

        if self.window_length is not None and self.window_length > length // 60:
            raise ValueError("windowLengthOutOfRange")

        if self.submissions_gap > length:
            raise ValueError("submissionsGapOutOfRange")

        return self


class AddProblemInput(BaseModel):
    problem_alias: str = Field(..., min_length=1, max_length=32)
    points: float = Field(..., ge=0)
    order_in_contest: int = Field(1, ge=0)


class MergeContestParams(BaseModel):
    weight: float = Field(1, ge=0)
    only_ac: bool = False


class MergeRequest(BaseModel):
    contest_aliases: List[str] = Field(..., min_length=1)
    usernames_filter: Optional[List[str]] = None
    contest_params: Dict[str, MergeContestParams] = Field(default_factory=dict)

    @field_validator("contest_aliases", "usernames_filter", mode="before")
    @classmethod
    def split_lists(cls, v: Any) -> Any:
        return InputSanitizer.split_csv(v)

    @field_validator("usernames_filter")
    @classmethod
    def non_empty_filter(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None and len(v) == 0:
            raise ValueError("usernames_filter cannot be empty")
        return v


class ArbitrateInput(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    resolution: bool
    note: Optional[str] = Field(None, max_length=255)


def _error_key(error: Dict[str, Any]) -> str:
    if error.get("type") == "value_error":
        ctx_error = (error.get("ctx") or {}).get("error")
        if ctx_error is not None:
            return str(ctx_error)
    return "parameterInvalid"


def parse_input(model: Type[M], data: Dict[str, Any], context: Optional[Dict[str, Any]] = None) -> M:
    """
    Validate `data` against `model`

    Raises:
        InvalidInput: first failing field as `parameter`, message key as message
    """
    try:
        return model.model_validate(data, context=context)
    except ValidationError as e:
        first = e.errors()[0]
        parameter = ".".join(str(part) for part in first.get("loc", ())) or None
        logger.warning(f"{model.__name__} validation failed: {e}")
        raise InvalidInput(_error_key(first), parameter=parameter) from e


# ==================== EXPORT ====================

__all__ = [
    "AddProblemInput",
    "ArbitrateInput",
    "ContestSettings",
    "InputSanitizer",
    "MergeContestParams",
    "MergeRequest",
    "ProblemAssignment",
    "parse_input",
]
