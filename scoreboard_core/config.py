"""Engine configuration.

Reads settings from SCOREBOARD_* environment variables with defaults matching
the limits enforced by the contest API.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class EngineConfig:
    max_contest_length_seconds: int = 2678400  # 31 days
    max_problems_in_contest: int = 30
    storage_timeout_seconds: float = 5.0
    contest_info_ttl: int = 60
    scoreboard_ttl: int = 10
    contest_list_ttl: int = 60
    cache_maxsize: int = 1024
    scoreboard_token_length: int = 30

    @classmethod
    def from_env(cls) -> "EngineConfig":
        defaults = cls()
        return cls(
            max_contest_length_seconds=_get_int(
                "SCOREBOARD_MAX_CONTEST_LENGTH_SECONDS", defaults.max_contest_length_seconds
            ),
            max_problems_in_contest=_get_int(
                "SCOREBOARD_MAX_PROBLEMS_IN_CONTEST", defaults.max_problems_in_contest
            ),
            storage_timeout_seconds=_get_float(
                "SCOREBOARD_STORAGE_TIMEOUT_SECONDS", defaults.storage_timeout_seconds
            ),
            contest_info_ttl=_get_int("SCOREBOARD_CONTEST_INFO_TTL", defaults.contest_info_ttl),
            scoreboard_ttl=_get_int("SCOREBOARD_SCOREBOARD_TTL", defaults.scoreboard_ttl),
            contest_list_ttl=_get_int("SCOREBOARD_CONTEST_LIST_TTL", defaults.contest_list_ttl),
            cache_maxsize=_get_int("SCOREBOARD_CACHE_MAXSIZE", defaults.cache_maxsize),
            scoreboard_token_length=_get_int(
                "SCOREBOARD_TOKEN_LENGTH", defaults.scoreboard_token_length
            ),
        )


__all__ = ["EngineConfig"]
