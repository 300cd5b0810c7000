"""Single-contest ranking engine.

Single source of truth for contest standings across scoreboard/report/stats/merge:
- Comparator: points desc, then penalty asc; equal rows keep input order.
- Best run per (user, problem) by the contest's scoring policy
  (partial credit or all-or-nothing), penalty by its basis and calc policy.
- Restricted mode hides runs at/after the scoreboard cutoff (frozen board).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal, Sequence

from .clock import has_finished, scoreboard_cutoff
from .models import (
    ACCEPTED_VERDICT,
    IGNORED_VERDICTS,
    Contest,
    ContestProblem,
    SubmissionRecord,
    User,
)
from .types import ProblemResultDict, RankingRowDict, ScoreboardPayload

RankingMode = Literal["restricted", "unrestricted"]


@dataclass(frozen=True)
class RankingProblem:
    alias: str
    letter: str
    points: float
    order: int


@dataclass(frozen=True)
class ProblemScore:
    alias: str
    letter: str
    points: float
    penalty: int
    runs: int


@dataclass(frozen=True)
class RankingRow:
    username: str
    name: str | None
    place: int
    points: float
    penalty: int
    problems: tuple[ProblemScore, ...]


@dataclass(frozen=True)
class Ranking:
    contest_alias: str
    problems: tuple[RankingProblem, ...]
    rows: tuple[RankingRow, ...]
    cutoff: int | None = None

    def row_for(self, username: str) -> RankingRow | None:
        for row in self.rows:
            if row.username == username:
                return row
        return None

    @property
    def total_points(self) -> float:
        return float(sum(p.points for p in self.problems))

    def as_dict(self) -> ScoreboardPayload:
        return {
            "contest_alias": self.contest_alias,
            "problems": [
                {"alias": p.alias, "letter": p.letter, "points": p.points, "order": p.order}
                for p in self.problems
            ],
            "ranking": [_row_to_dict(row) for row in self.rows],
            "cutoff": self.cutoff,
        }


@dataclass
class _UserTally:
    username: str
    name: str | None
    runs: dict[str, list[SubmissionRecord]] = field(default_factory=dict)


def column_name(idx: int) -> str:
    """Spreadsheet-style label for a 0-based index: A..Z, AA, AB, ..."""
    if idx < 0:
        raise ValueError("column index must be non-negative")
    name = ""
    n = idx + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        name = chr(ord("A") + rem) + name
    return name


def ranking_sort_key(points: float, penalty: float) -> tuple[float, float]:
    return (-points, penalty)


def assign_places(keys: Sequence[tuple[float, float]]) -> list[int]:
    """Competition places (1, 1, 3) for keys already in ranking order."""
    places: list[int] = []
    for i, key in enumerate(keys):
        if i > 0 and key == keys[i - 1]:
            places.append(places[-1])
        else:
            places.append(i + 1)
    return places


def ordered_problems(problems: Sequence[ContestProblem]) -> tuple[RankingProblem, ...]:
    # Letters follow display order only; point values never reorder problems.
    indexed = sorted(enumerate(problems), key=lambda pair: (pair[1].order, pair[0]))
    return tuple(
        RankingProblem(alias=p.alias, letter=column_name(i), points=float(p.points), order=p.order)
        for i, (_, p) in enumerate(indexed)
    )


def resolve_cutoff(contest: Contest, mode: RankingMode, at: int | None = None) -> int | None:
    if mode == "unrestricted":
        return None
    if contest.scoreboard >= 100:
        return None
    if contest.show_scoreboard_after and has_finished(contest, at):
        return None
    return scoreboard_cutoff(contest)


def _basis_penalty(contest: Contest, run: SubmissionRecord) -> int:
    if contest.penalty_type == "contest_start":
        return max(0, (run.time - contest.start_time) // 60)
    if contest.penalty_type in ("problem_open", "runtime"):
        return int(run.penalty)
    return 0


def _score_problem(
    contest: Contest,
    problem: RankingProblem,
    runs: Sequence[SubmissionRecord],
    *,
    only_accepted: bool,
) -> ProblemScore:
    ordered = sorted(runs, key=lambda r: r.time)
    best_idx: int | None = None
    best_points = 0.0
    for i, run in enumerate(ordered):
        accepted = run.verdict == ACCEPTED_VERDICT
        if contest.partial_score and not only_accepted:
            candidate = float(run.contest_score)
        elif accepted:
            candidate = problem.points
        else:
            candidate = 0.0
        # Strictly greater: the earliest run wins among equal scores.
        if candidate > best_points:
            best_points = candidate
            best_idx = i
        if not contest.partial_score and best_idx is not None:
            break

    if best_idx is None:
        return ProblemScore(
            alias=problem.alias, letter=problem.letter, points=0.0, penalty=0, runs=len(ordered)
        )

    penalty = 0
    if contest.penalty_type != "none":
        penalty = _basis_penalty(contest, ordered[best_idx]) + int(contest.penalty) * best_idx
    return ProblemScore(
        alias=problem.alias,
        letter=problem.letter,
        points=round(best_points, 2),
        penalty=penalty,
        runs=len(ordered),
    )


def compute_ranking(
    contest: Contest,
    problems: Sequence[ContestProblem],
    submissions: Iterable[SubmissionRecord],
    *,
    mode: RankingMode = "restricted",
    only_accepted: bool = False,
    participants: Sequence[User] = (),
    sort_by_name: bool = False,
    at: int | None = None,
) -> Ranking:
    """
    Compute a contest ranking from raw submission records.

    Args:
      contest: contest whose scoring/penalty policies apply.
      problems: contest problems (points + display order).
      submissions: every run of the contest; filtering happens here.
      mode: 'unrestricted' for admin views, 'restricted' applies the freeze cutoff.
      only_accepted: count AC runs only (used by merged scoreboards).
      participants: users listed even without runs, in this order.
      sort_by_name: report layout, rows by username (places still reflect scores).
      at: evaluation instant; defaults to now.
    """
    ranking_problems = ordered_problems(problems)
    by_alias = {p.alias: p for p in ranking_problems}
    cutoff = resolve_cutoff(contest, mode, at)

    tallies: dict[str, _UserTally] = {}
    for user in participants:
        tallies.setdefault(user.username, _UserTally(username=user.username, name=user.name))
    for run in submissions:
        if run.problem_alias not in by_alias:
            continue
        tally = tallies.setdefault(run.username, _UserTally(username=run.username, name=run.name))
        if tally.name is None and run.name is not None:
            tally.name = run.name
        if run.verdict in IGNORED_VERDICTS:
            continue
        if only_accepted and run.verdict != ACCEPTED_VERDICT:
            continue
        if cutoff is not None and run.time >= cutoff:
            continue
        tally.runs.setdefault(run.problem_alias, []).append(run)

    scored: list[tuple[_UserTally, tuple[ProblemScore, ...], float, int]] = []
    for tally in tallies.values():
        results = tuple(
            _score_problem(contest, p, tally.runs.get(p.alias, ()), only_accepted=only_accepted)
            for p in ranking_problems
        )
        points = round(sum(r.points for r in results), 2)
        penalties = [r.penalty for r in results]
        if contest.penalty_calc_policy == "max":
            penalty = max(penalties, default=0)
        else:
            penalty = sum(penalties)
        scored.append((tally, results, points, penalty))

    # list.sort is stable: equal (points, penalty) keep first-seen order.
    scored.sort(key=lambda item: ranking_sort_key(item[2], item[3]))
    places = assign_places([ranking_sort_key(item[2], item[3]) for item in scored])
    rows = [
        RankingRow(
            username=tally.username,
            name=tally.name,
            place=place,
            points=points,
            penalty=penalty,
            problems=results,
        )
        for (tally, results, points, penalty), place in zip(scored, places)
    ]
    if sort_by_name:
        rows.sort(key=lambda row: row.username)

    return Ranking(
        contest_alias=contest.alias,
        problems=ranking_problems,
        rows=tuple(rows),
        cutoff=cutoff,
    )


def score_distribution(ranking: Ranking, total_points: float | None = None) -> tuple[list[int], float]:
    """101 buckets of contestants by percentage of the maximum score."""
    total = ranking.total_points if total_points is None else float(total_points)
    bucket_size = total / 100
    distribution = [0] * 101
    for row in ranking.rows:
        if bucket_size <= 0:
            distribution[0] += 1
            continue
        idx = int(row.points / bucket_size)
        distribution[max(0, min(100, idx))] += 1
    return distribution, bucket_size


def _problem_to_dict(result: ProblemScore) -> ProblemResultDict:
    return {
        "alias": result.alias,
        "letter": result.letter,
        "points": result.points,
        "penalty": result.penalty,
        "runs": result.runs,
    }


def _row_to_dict(row: RankingRow) -> RankingRowDict:
    return {
        "username": row.username,
        "name": row.name,
        "place": row.place,
        "total": {"points": row.points, "penalty": row.penalty},
        "problems": [_problem_to_dict(r) for r in row.problems],
    }


__all__ = [
    "ProblemScore",
    "Ranking",
    "RankingMode",
    "RankingProblem",
    "RankingRow",
    "assign_places",
    "column_name",
    "compute_ranking",
    "ordered_problems",
    "ranking_sort_key",
    "resolve_cutoff",
    "score_distribution",
]
