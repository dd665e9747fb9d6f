from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

import state  # noqa: E402

START_DAY = 100


@pytest.fixture(autouse=True)
def fresh_portal():
    """Every test starts from an empty portal with the clock at day 100."""
    state.reset_state_for_dev(current_day=START_DAY)
    yield
    state.reset_state_for_dev(current_day=START_DAY)


@pytest.fixture
def two_player_league():
    """Alice (owner) and Bob in 'Chess League', not started. Returns (league_id, alice, bob)."""
    alice = state.create_player("Alice", "alice@example.com")
    bob = state.create_player("Bob", "bob@example.com")
    league_id = state.create_league(alice, "Chess League", "CHESS")
    state.invite_player_to_league(league_id, "bob@example.com")
    state.accept_invite_to_league(league_id, bob)
    return league_id, alice, bob


@pytest.fixture
def started_league(two_player_league):
    league_id, alice, bob = two_player_league
    state.start_league(league_id)
    return league_id, alice, bob
