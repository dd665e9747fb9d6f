import pytest

import state
from errors import ILLEGAL_OPERATION, PortalError


def test_deactivation_anonymises_but_keeps_scores(started_league) -> None:
    league_id, alice, bob = started_league
    state.register_game_report(100, league_id, bob, "a brilliant sacrifice")
    state.register_day_results(100, league_id, [10, 20])

    assert state.deactivate_player(bob) is True

    assert state.get_player_display_name(bob) == f"deactivated{bob}"
    assert state.get_player_email(bob) == f"deactivated{bob}@anonymised.invalid"
    assert state.is_deactivated_player(bob) is True
    assert state.get_game_report(100, league_id, bob) == ""
    assert state.get_day_scores(league_id, 100) == [10, 20]
    assert state.is_league_player_active(league_id, bob) is False
    assert state.get_league_players(league_id) == [alice, bob]
    assert state.lookup_by_email("bob@example.com") is None


def test_deactivation_clears_full_name_and_phone() -> None:
    bob = state.create_player("Bob", "bob@example.com", "Robert Tables", "+44 20 7946 0000")
    state.deactivate_player(bob)
    assert state.get_player_name(bob) == f"deactivated{bob}"
    assert state.get_player_phone(bob) == ""


def test_deactivation_is_idempotent(two_player_league) -> None:
    _, _, bob = two_player_league
    assert state.deactivate_player(bob) is True
    before = state.export_full_state_snapshot()
    assert state.deactivate_player(bob) is False
    assert state.export_full_state_snapshot() == before


def test_sole_owner_cannot_be_deactivated(started_league) -> None:
    league_id, alice, _ = started_league
    state.register_game_report(100, league_id, alice, "keep me")
    before = state.export_full_state_snapshot()

    with pytest.raises(PortalError) as exc:
        state.deactivate_player(alice)
    assert exc.value.code == ILLEGAL_OPERATION
    assert state.export_full_state_snapshot() == before


def test_co_owner_can_be_deactivated(two_player_league) -> None:
    league_id, alice, bob = two_player_league
    state.add_owner(league_id, bob)
    assert state.deactivate_player(alice) is True
    assert state.get_league_owners(league_id) == [alice, bob]


def test_deactivated_player_stays_out(two_player_league) -> None:
    league_id, _, bob = two_player_league
    state.deactivate_player(bob)

    with pytest.raises(PortalError) as exc:
        state.set_league_player_active(league_id, bob)
    assert exc.value.code == ILLEGAL_OPERATION

    # the old address is free again and belongs to a new identity
    again = state.create_player("Bob", "bob@example.com")
    assert again != bob
    assert state.get_player_leagues(again) == []


def test_deactivation_drops_pending_invites() -> None:
    owner = state.create_player("Owner", "owner@example.com")
    carol = state.create_player("Carol", "carol@example.com")
    league_id = state.create_league(owner, "Chess League", "CHESS")
    state.invite_player_to_league(league_id, "carol@example.com")

    state.deactivate_player(carol)
    assert state.get_league_player_invites(league_id) == []
    assert state.get_player_invites(carol) == []
