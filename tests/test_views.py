import pytest

import state
from errors import INVALID_DATE, PortalError
from schema import Status
from state_modules import state_views


def test_dense_ranking_has_no_gaps() -> None:
    assert state_views.dense_ranking([50, 50, 30]) == [1, 1, 2]
    assert state_views.dense_ranking([10, 20]) == [2, 1]
    assert state_views.dense_ranking([5, 7, 5, 1]) == [2, 1, 2, 3]
    assert state_views.dense_ranking([]) == []


def test_pending_until_first_entry(started_league) -> None:
    league_id, _, _ = started_league
    assert state.get_day_status(league_id, 100) == Status.PENDING
    assert state.get_day_scores(league_id, 100) == []
    assert state.get_day_ranking(league_id, 100) == []
    assert state.get_week_status(league_id, 100) == Status.PENDING


def test_in_progress_then_closed_when_day_passes(started_league) -> None:
    league_id, alice, _ = started_league
    state.register_game_report(100, league_id, alice, "played")
    assert state.get_day_status(league_id, 100) == Status.IN_PROGRESS
    assert state.get_day_scores(league_id, 100) == [0, 0]
    assert state.get_day_ranking(league_id, 100) == [1, 1]

    state.increment_day()
    assert state.get_day_status(league_id, 100) == Status.CLOSED


def test_week_sums_days(started_league) -> None:
    league_id, _, _ = started_league
    state.register_day_results(100, league_id, [10, 20])
    state.increment_day()
    state.register_day_results(101, league_id, [30, 5])

    assert state.get_week_status(league_id, 101) == Status.IN_PROGRESS
    assert state.get_week_scores(league_id, 101) == [40, 25]
    assert state.get_week_ranking(league_id, 101) == [1, 2]
    assert state.get_month_scores(league_id, 100) == [40, 25]
    assert state.get_year_ranking(league_id, 100) == [1, 2]
    assert state.get_day_scores(league_id, 101) == [30, 5]

    state.set_current_day(107)
    assert state.get_week_status(league_id, 106) == Status.CLOSED
    assert state.get_week_status(league_id, 107) == Status.PENDING
    assert state.get_week_scores(league_id, 107) == []


def test_close_clips_the_period(started_league) -> None:
    league_id, _, _ = started_league
    state.register_day_results(100, league_id, [3, 4])
    state.increment_day()
    state.close_league(league_id)

    assert state.get_week_status(league_id, 100) == Status.CLOSED
    assert state.get_week_scores(league_id, 101) == [3, 4]

    state.set_current_day(105)
    with pytest.raises(PortalError) as exc:
        state.get_week_scores(league_id, 102)
    assert exc.value.code == INVALID_DATE


def test_blocks_are_anchored_at_start_day(started_league) -> None:
    league_id, _, _ = started_league
    state.set_current_day(500)
    snap = state.export_full_state_snapshot()
    league = snap["leagues"][league_id]

    assert state_views.period_bounds(snap, league, "week", 106) == (100, 106, 106)
    assert state_views.period_bounds(snap, league, "week", 107) == (107, 113, 113)
    assert state_views.period_bounds(snap, league, "month", 129) == (100, 129, 129)
    assert state_views.period_bounds(snap, league, "month", 130) == (130, 159, 159)
    assert state_views.period_bounds(snap, league, "year", 464) == (100, 464, 464)
    assert state_views.period_bounds(snap, league, "year", 465) == (465, 829, 829)


def test_period_view(started_league) -> None:
    league_id, alice, bob = started_league
    state.register_day_results(100, league_id, [10, 20])
    view = state.get_period_view(league_id, "week", 100)
    assert view == {
        "league_id": league_id,
        "period": "week",
        "start_day": 100,
        "end_day": 106,
        "status": "IN_PROGRESS",
        "players": [alice, bob],
        "scores": [10, 20],
        "ranking": [2, 1],
        "points": [1, 2],
    }
    with pytest.raises(ValueError):
        state.get_period_view(league_id, "fortnight", 100)


def test_finalized_day_stays_closed_after_new_member_joins(started_league) -> None:
    league_id, _, _ = started_league
    state.register_day_results(100, league_id, [10, 20])
    assert state.get_day_status(league_id, 100) == Status.CLOSED

    state.invite_player_to_league(league_id, "carol@example.com")
    carol = state.create_player("Carol", "carol@example.com")
    state.accept_invite_to_league(league_id, carol)

    assert state.get_day_status(league_id, 100) == Status.CLOSED
    assert state.get_day_scores(league_id, 100) == [10, 20, 0]
    assert state.get_day_points(league_id, 100) == [1, 2, 0]


def test_finalized_day_stays_closed_after_member_returns(started_league) -> None:
    league_id, _, bob = started_league
    state.set_league_player_inactive(league_id, bob)
    state.register_day_results(100, league_id, [10, 0])
    assert state.get_day_status(league_id, 100) == Status.CLOSED

    state.set_league_player_active(league_id, bob)
    assert state.get_day_status(league_id, 100) == Status.CLOSED


def test_points_empty_until_finalized(started_league) -> None:
    league_id, alice, _ = started_league
    state.register_game_report(100, league_id, alice, "played")
    assert state.get_day_points(league_id, 100) == []
    assert state.get_week_points(league_id, 100) == []

    state.register_day_results(100, league_id, [10, 20])
    assert state.get_day_points(league_id, 100) == [1, 2]


def test_points_sum_over_finalized_days(started_league) -> None:
    league_id, _, _ = started_league
    state.register_day_results(100, league_id, [10, 20])
    state.increment_day()
    state.register_day_results(101, league_id, [30, 5])
    state.increment_day()
    state.register_day_results(102, league_id, [7, 7])

    assert state.get_day_points(league_id, 101) == [2, 1]
    assert state.get_day_points(league_id, 102) == [1, 1]
    assert state.get_week_points(league_id, 102) == [4, 4]
    assert state.get_month_points(league_id, 100) == [4, 4]
    assert state.get_year_points(league_id, 100) == [4, 4]


def test_void_day_awards_no_points(started_league) -> None:
    league_id, _, _ = started_league
    state.register_day_results(100, league_id, [10, 20])
    state.increment_day()
    state.void_day_results(101, league_id)

    assert state.get_day_points(league_id, 101) == [0, 0]
    assert state.get_week_points(league_id, 101) == [1, 2]
