"""Cross-contest scoreboard merge (weighted sum of independent rankings)."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Collection, Mapping

from .ranking import Ranking, assign_places, ranking_sort_key
from .types import MergedRowDict, MergedScoreboardPayload


@dataclass(frozen=True)
class MergeParams:
    weight: float = 1
    only_accepted: bool = False


DEFAULT_MERGE_PARAMS = MergeParams()


@dataclass(frozen=True)
class ContestTotal:
    points: float = 0.0
    penalty: float = 0


@dataclass(frozen=True)
class MergedRow:
    username: str
    name: str | None
    place: int
    points: float
    penalty: float
    contests: Mapping[str, ContestTotal] = field(default_factory=dict)


@dataclass(frozen=True)
class MergedRanking:
    contests: tuple[str, ...]
    rows: tuple[MergedRow, ...]

    def row_for(self, username: str) -> MergedRow | None:
        for row in self.rows:
            if row.username == username:
                return row
        return None

    def as_dict(self) -> MergedScoreboardPayload:
        return {
            "contests": list(self.contests),
            "ranking": [_merged_row_to_dict(row) for row in self.rows],
        }


@dataclass
class _Accumulator:
    username: str
    name: str | None
    points: float = 0.0
    penalty: float = 0
    contests: dict[str, ContestTotal] = field(default_factory=dict)


def merge_rankings(
    rankings: Mapping[str, Ranking],
    params: Mapping[str, MergeParams] | None = None,
    usernames_filter: Collection[str] | None = None,
) -> MergedRanking:
    """
    Merge per-contest rankings into one.

    Args:
      rankings: contest alias -> ranking, in the order contests were requested.
      params: per-alias weight/only_accepted; missing aliases use weight 1.
      usernames_filter: exact-match allow-list applied before sorting.

    Totals are per user: points += contest points * weight, penalty += contest
    penalty. Every merged row carries an entry for every input alias.
    """
    params = params or {}
    aliases = tuple(rankings.keys())
    merged: dict[str, _Accumulator] = {}

    for alias, ranking in rankings.items():
        weight = params.get(alias, DEFAULT_MERGE_PARAMS).weight
        for row in ranking.rows:
            acc = merged.get(row.username)
            if acc is None:
                acc = _Accumulator(username=row.username, name=row.name)
                merged[row.username] = acc
            weighted = row.points * weight
            acc.contests[alias] = ContestTotal(points=weighted, penalty=row.penalty)
            acc.points += weighted
            acc.penalty += row.penalty

    accumulators = list(merged.values())
    if usernames_filter is not None:
        allowed = set(usernames_filter)
        accumulators = [acc for acc in accumulators if acc.username in allowed]

    for acc in accumulators:
        for alias in aliases:
            acc.contests.setdefault(alias, ContestTotal())

    accumulators.sort(key=lambda acc: ranking_sort_key(acc.points, acc.penalty))
    places = assign_places([ranking_sort_key(acc.points, acc.penalty) for acc in accumulators])
    rows = tuple(
        MergedRow(
            username=acc.username,
            name=acc.name,
            place=place,
            points=acc.points,
            penalty=acc.penalty,
            contests={alias: acc.contests[alias] for alias in aliases},
        )
        for acc, place in zip(accumulators, places)
    )
    return MergedRanking(contests=aliases, rows=rows)


def _merged_row_to_dict(row: MergedRow) -> MergedRowDict:
    return {
        "username": row.username,
        "name": row.name,
        "place": row.place,
        "total": {"points": row.points, "penalty": row.penalty},
        "contests": {
            alias: {"points": total.points, "penalty": total.penalty}
            for alias, total in row.contests.items()
        },
    }


__all__ = [
    "ContestTotal",
    "DEFAULT_MERGE_PARAMS",
    "MergeParams",
    "MergedRanking",
    "MergedRow",
    "merge_rankings",
]
