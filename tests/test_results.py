import pytest

import state
from errors import ILLEGAL_OPERATION, INVALID_DATE, PortalError
from schema import Status


def _code(fn, *args):
    with pytest.raises(PortalError) as exc:
        fn(*args)
    return exc.value.code


def test_scenario_a_day_scores_and_ranking() -> None:
    alice = state.create_player("Alice", "alice@example.com")
    bob = state.create_player("Bob", "bob@example.com")
    league_id = state.create_league(alice, "Chess League", "CHESS")
    assert league_id == 1
    assert state.get_league_status(league_id) == Status.PENDING
    state.invite_player_to_league(league_id, "bob@example.com")
    state.accept_invite_to_league(league_id, bob)

    state.start_league(league_id)
    assert state.get_league_status(league_id) == Status.IN_PROGRESS
    assert state.get_league_start_day(league_id) == 100

    state.register_day_results(100, league_id, [10, 20])
    assert state.get_day_scores(league_id, 100) == [10, 20]
    assert state.get_day_ranking(league_id, 100) == [2, 1]


def test_scenario_b_void_after_window_fails(started_league) -> None:
    league_id, _, _ = started_league
    state.register_day_results(100, league_id, [10, 20])
    for _ in range(3):
        state.increment_day()
    assert state.get_current_day() == 103
    assert _code(state.void_day_results, 100, league_id) == INVALID_DATE
    assert state.get_day_scores(league_id, 100) == [10, 20]


def test_correction_window_bounds(started_league) -> None:
    league_id, _, _ = started_league
    state.set_current_day(101)
    state.register_day_results(100, league_id, [1, 2])
    state.register_day_results(100, league_id, [3, 4])
    assert state.get_day_scores(league_id, 100) == [3, 4]

    state.set_current_day(102)
    assert _code(state.register_day_results, 100, league_id, [5, 6]) == INVALID_DATE
    assert _code(state.void_day_results, 100, league_id) == INVALID_DATE
    state.void_day_results(101, league_id)


def test_void_zeroes_and_locks(started_league) -> None:
    league_id, alice, _ = started_league
    state.register_day_results(100, league_id, [10, 20])
    state.void_day_results(100, league_id)

    assert state.is_day_void(league_id, 100) is True
    assert state.get_day_scores(league_id, 100) == [0, 0]
    assert state.get_day_ranking(league_id, 100) == [1, 1]
    assert _code(state.register_day_results, 100, league_id, [1, 1]) == INVALID_DATE
    assert _code(state.void_day_results, 100, league_id) == INVALID_DATE
    assert _code(state.register_game_report, 100, league_id, alice, "late") == INVALID_DATE


def test_day_outside_span(started_league) -> None:
    league_id, _, _ = started_league
    assert _code(state.register_day_results, 99, league_id, [1, 1]) == INVALID_DATE
    assert _code(state.register_day_results, 101, league_id, [1, 1]) == INVALID_DATE
    assert _code(state.get_day_scores, league_id, 101) == INVALID_DATE


def test_results_on_unstarted_league(two_player_league) -> None:
    league_id, alice, _ = two_player_league
    assert _code(state.register_day_results, 100, league_id, [1, 1]) == INVALID_DATE
    assert _code(state.register_game_report, 100, league_id, alice, "hi") == INVALID_DATE


@pytest.mark.parametrize("scores", [[1], [1, 2, 3], [1, -1], [1, "2"], "12"])
def test_bad_score_arrays(started_league, scores) -> None:
    league_id, _, _ = started_league
    assert _code(state.register_day_results, 100, league_id, scores) == ILLEGAL_OPERATION


def test_inactive_member_not_scored(started_league) -> None:
    league_id, alice, bob = started_league
    state.set_league_player_inactive(league_id, bob)
    state.register_day_results(100, league_id, [10, 20])
    assert state.get_day_scores(league_id, 100) == [10, 0]
    assert state.get_day_ranking(league_id, 100) == [1, 2]


def test_game_reports(started_league) -> None:
    league_id, alice, bob = started_league
    assert state.get_game_report(100, league_id, alice) == ""

    state.register_game_report(100, league_id, alice, "1. e4 e5 2. Nf3")
    state.register_game_report(100, league_id, alice, "1. e4 c5")
    assert state.get_game_report(100, league_id, alice) == "1. e4 c5"
    assert state.get_game_report(100, league_id, bob) == ""

    outsider = state.create_player("Carol", "carol@example.com")
    assert _code(state.register_game_report, 100, league_id, outsider, "x") == ILLEGAL_OPERATION

    state.set_league_player_inactive(league_id, bob)
    assert _code(state.register_game_report, 100, league_id, bob, "x") == ILLEGAL_OPERATION

    state.register_day_results(100, league_id, [1, 0])
    assert _code(state.register_game_report, 100, league_id, alice, "again") == INVALID_DATE


def test_reports_rejected_after_close(started_league) -> None:
    league_id, alice, _ = started_league
    state.close_league(league_id)
    assert _code(state.register_game_report, 100, league_id, alice, "x") == INVALID_DATE


def test_clock() -> None:
    assert state.get_current_day() == 100
    assert state.increment_day() == 101
    assert state.set_current_day(150) == 150
    assert _code(state.set_current_day, 149) == ILLEGAL_OPERATION
    assert _code(state.set_current_day, "151") == INVALID_DATE
    assert state.get_current_day() == 150
