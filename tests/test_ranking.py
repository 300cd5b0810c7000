from __future__ import annotations

import pytest

from scoreboard_core import ContestProblem, SubmissionRecord, User, column_name, compute_ranking, score_distribution
from scoreboard_core.ranking import assign_places, ordered_problems

from conftest import make_contest


def _run(username, problem, time, verdict="AC", contest_score=0.0, **kw):
    return SubmissionRecord(
        contest_id=1,
        problem_alias=problem,
        user_id=0,
        username=username,
        time=time,
        verdict=verdict,
        contest_score=contest_score,
        **kw,
    )


def _problems():
    return [
        ContestProblem(problem_id=1, alias="easy", points=100, order=1),
        ContestProblem(problem_id=2, alias="hard", points=200, order=2),
    ]


def test_column_name_is_bijective_base26():
    assert [column_name(i) for i in (0, 1, 25, 26, 27, 51, 52, 701, 702)] == [
        "A", "B", "Z", "AA", "AB", "AZ", "BA", "ZZ", "AAA",
    ]
    with pytest.raises(ValueError):
        column_name(-1)


def test_letters_follow_display_order_not_points():
    problems = [
        ContestProblem(problem_id=1, alias="big", points=500, order=3),
        ContestProblem(problem_id=2, alias="small", points=1, order=1),
        ContestProblem(problem_id=3, alias="mid", points=50, order=2),
    ]
    assert [(p.alias, p.letter) for p in ordered_problems(problems)] == [
        ("small", "A"),
        ("mid", "B"),
        ("big", "C"),
    ]


def test_all_or_nothing_first_accepted_run_counts():
    contest = make_contest(partial_score=False, penalty_type="contest_start", penalty=20)
    runs = [
        _run("ana", "easy", 120, "WA"),
        _run("ana", "easy", 300, "AC"),
        _run("ana", "easy", 900, "AC"),
    ]
    ranking = compute_ranking(contest, _problems(), runs, mode="unrestricted")
    row = ranking.row_for("ana")
    assert row.points == 100
    # 5 minutes from start plus one wrong try
    assert row.penalty == 5 + 20


def test_partial_score_keeps_earliest_best():
    contest = make_contest(partial_score=True, penalty_type="none")
    runs = [
        _run("ana", "hard", 60, "PA", contest_score=50),
        _run("ana", "hard", 120, "PA", contest_score=120),
        _run("ana", "hard", 180, "PA", contest_score=120),
        _run("ana", "hard", 240, "WA", contest_score=10),
    ]
    row = compute_ranking(contest, _problems(), runs, mode="unrestricted").row_for("ana")
    assert row.points == 120
    assert row.penalty == 0
    hard = row.problems[1]
    assert hard.letter == "B" and hard.runs == 4


def test_ignored_verdicts_do_not_count():
    contest = make_contest(partial_score=False, penalty_type="contest_start", penalty=20)
    runs = [_run("ana", "easy", 60, "CE"), _run("ana", "easy", 120, "AC")]
    row = compute_ranking(contest, _problems(), runs, mode="unrestricted").row_for("ana")
    assert row.penalty == 2
    assert row.problems[0].runs == 1


def test_penalty_policies_sum_and_max():
    runs = [
        _run("ana", "easy", 600, "AC"),
        _run("ana", "hard", 1800, "AC"),
    ]
    summed = make_contest(partial_score=False, penalty_type="contest_start", penalty_calc_policy="sum")
    maxed = make_contest(partial_score=False, penalty_type="contest_start", penalty_calc_policy="max")
    assert compute_ranking(summed, _problems(), runs, mode="unrestricted").rows[0].penalty == 40
    assert compute_ranking(maxed, _problems(), runs, mode="unrestricted").rows[0].penalty == 30


def test_runtime_penalty_uses_recorded_value():
    contest = make_contest(partial_score=False, penalty_type="runtime")
    runs = [_run("ana", "easy", 600, "AC", penalty=7)]
    assert compute_ranking(contest, _problems(), runs, mode="unrestricted").rows[0].penalty == 7


def test_order_points_desc_then_penalty_asc_then_stable():
    contest = make_contest(partial_score=False, penalty_type="contest_start")
    runs = [
        _run("carl", "easy", 600, "AC"),
        _run("ana", "easy", 120, "AC"),
        _run("ben", "easy", 600, "AC"),
        _run("dan", "hard", 3000, "AC"),
    ]
    ranking = compute_ranking(contest, _problems(), runs, mode="unrestricted")
    assert [(r.username, r.place) for r in ranking.rows] == [
        ("dan", 1),
        ("ana", 2),
        ("carl", 3),
        ("ben", 3),
    ]
    for a, b in zip(ranking.rows, ranking.rows[1:]):
        assert a.points > b.points or (a.points == b.points and a.penalty <= b.penalty)


def test_restricted_mode_freezes_late_runs():
    contest = make_contest(start_time=0, finish_time=10000, scoreboard=50, partial_score=False)
    runs = [_run("ana", "easy", 1000, "AC"), _run("ben", "hard", 6000, "AC")]
    frozen = compute_ranking(contest, _problems(), runs, mode="restricted", at=8000)
    full = compute_ranking(contest, _problems(), runs, mode="unrestricted", at=8000)
    assert frozen.cutoff == 5000
    assert frozen.row_for("ben").points == 0
    assert full.row_for("ben").points == 200
    assert full.cutoff is None


def test_freeze_lifts_after_finish_when_configured():
    contest = make_contest(start_time=0, finish_time=10000, scoreboard=50, partial_score=False)
    runs = [_run("ben", "hard", 6000, "AC")]
    assert compute_ranking(contest, _problems(), runs, at=10000).row_for("ben").points == 200
    hidden = make_contest(
        start_time=0, finish_time=10000, scoreboard=50, partial_score=False, show_scoreboard_after=False
    )
    assert compute_ranking(hidden, _problems(), runs, at=10000).row_for("ben").points == 0


def test_only_accepted_ignores_partial_credit():
    contest = make_contest(partial_score=True, penalty_type="none")
    runs = [_run("ana", "hard", 60, "PA", contest_score=150), _run("ana", "easy", 90, "AC", contest_score=100)]
    row = compute_ranking(contest, _problems(), runs, mode="unrestricted", only_accepted=True).row_for("ana")
    assert row.points == 100


def test_participants_without_runs_are_listed():
    contest = make_contest()
    ranking = compute_ranking(
        contest, _problems(), [], mode="unrestricted", participants=[User(user_id=9, username="zoe")]
    )
    assert [(r.username, r.points) for r in ranking.rows] == [("zoe", 0.0)]


def test_runs_on_unknown_problems_are_skipped():
    contest = make_contest()
    ranking = compute_ranking(contest, _problems(), [_run("ana", "ghost", 10)], mode="unrestricted")
    assert ranking.rows == ()


def test_report_sorts_by_username_but_keeps_places():
    contest = make_contest(partial_score=False)
    runs = [_run("zed", "easy", 60, "AC"), _run("amy", "easy", 60, "WA")]
    ranking = compute_ranking(contest, _problems(), runs, mode="unrestricted", sort_by_name=True)
    assert [(r.username, r.place) for r in ranking.rows] == [("amy", 2), ("zed", 1)]


def test_as_dict_shape():
    contest = make_contest(partial_score=False, penalty_type="none")
    payload = compute_ranking(contest, _problems(), [_run("ana", "easy", 60)], mode="unrestricted").as_dict()
    assert payload["contest_alias"] == "c1"
    assert [p["letter"] for p in payload["problems"]] == ["A", "B"]
    row = payload["ranking"][0]
    assert row["total"] == {"points": 100.0, "penalty": 0}
    assert row["problems"][0]["alias"] == "easy"


def test_assign_places_competition_style():
    assert assign_places([(-3, 0), (-3, 0), (-1, 5)]) == [1, 1, 3]


def test_score_distribution_buckets():
    contest = make_contest(partial_score=False)
    runs = [_run("ana", "easy", 60), _run("ana", "hard", 60), _run("ben", "easy", 60)]
    ranking = compute_ranking(
        contest, _problems(), runs, mode="unrestricted", participants=[User(user_id=5, username="cy")]
    )
    distribution, bucket = score_distribution(ranking)
    assert bucket == 3.0
    assert len(distribution) == 101
    assert distribution[100] == 1
    assert distribution[33] == 1
    assert distribution[0] == 1
