import pytest

from scoreboard_core import ContestParticipation, PreconditionFailed, resolve_deadline
from scoreboard_core.clock import contest_duration, ensure_started, has_finished, has_started, scoreboard_cutoff

from conftest import make_contest


def _participation(first_access):
    return ContestParticipation(contest_id=1, user_id=2, first_access_time=first_access)


def test_shared_deadline_ignores_access_time():
    contest = make_contest(start_time=1000, finish_time=5000)
    for first_access in (None, 1000, 1200, 4999):
        assert resolve_deadline(contest, _participation(first_access)) == 5000
    assert resolve_deadline(contest, None) == 5000


def test_windowed_deadline_uses_first_access():
    contest = make_contest(start_time=1000, finish_time=5000, window_length=60)
    assert resolve_deadline(contest, _participation(1200)) == 4800


def test_windowed_deadline_capped_by_finish():
    contest = make_contest(start_time=1000, finish_time=5000, window_length=60)
    assert resolve_deadline(contest, _participation(4000)) == 5000


def test_windowed_deadline_undefined_before_first_access():
    contest = make_contest(start_time=1000, finish_time=5000, window_length=60)
    assert resolve_deadline(contest, None) is None
    assert resolve_deadline(contest, _participation(None)) is None


def test_started_and_finished_boundaries():
    contest = make_contest(start_time=1000, finish_time=5000)
    assert not has_started(contest, 999)
    assert has_started(contest, 1000)
    assert not has_finished(contest, 4999)
    assert has_finished(contest, 5000)


def test_ensure_started_carries_start_time():
    contest = make_contest(start_time=1000, finish_time=5000)
    with pytest.raises(PreconditionFailed) as exc:
        ensure_started(contest, 500)
    assert exc.value.message == "contestNotStarted"
    assert exc.value.context == {"start_time": 1000}
    ensure_started(contest, 1000)


def test_contest_duration_prefers_window():
    assert contest_duration(make_contest(start_time=0, finish_time=7200)) == 7200
    assert contest_duration(make_contest(start_time=0, finish_time=7200, window_length=30)) == 1800


def test_scoreboard_cutoff_is_percentage_of_duration():
    contest = make_contest(start_time=1000, finish_time=5000, scoreboard=75)
    assert scoreboard_cutoff(contest) == 4000
