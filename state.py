from __future__ import annotations

import logging
import os
import sqlite3
import tempfile
from copy import deepcopy
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from errors import SNAPSHOT_IO, PortalError
from schema import Status
from state_modules import (
    state_core,
    state_deactivation,
    state_identity,
    state_lifecycle,
    state_membership,
    state_results,
    state_views,
)
from state_modules.state_store import (
    atomic_update,
    locked,
    replace_state,
    reset_state_for_dev as _reset_state_for_dev,
)
from state_modules.state_utils import require_player
from state_schema import create_default_state, validate_game_state

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = [
    # clock
    "get_current_day",
    "set_current_day",
    "increment_day",
    # players
    "create_player",
    "lookup_by_email",
    "deactivate_player",
    "update_player_display_name",
    "get_player_ids",
    "get_player_display_name",
    "get_player_email",
    "get_player_name",
    "get_player_phone",
    "get_player_join_day",
    "is_deactivated_player",
    "get_player_leagues",
    "get_player_owned_leagues",
    "get_player_invites",
    "get_player_rounds_played",
    "get_player_rounds_percentage",
    # leagues
    "create_league",
    "remove_league",
    "update_league_name",
    "get_league_ids",
    "get_league_name",
    "get_league_game_type",
    "get_league_status",
    "get_league_start_day",
    "get_league_close_day",
    "start_league",
    "close_league",
    "reset_league",
    "clone_league",
    # membership
    "invite_player_to_league",
    "accept_invite_to_league",
    "remove_invite_from_league",
    "add_owner",
    "remove_owner",
    "set_league_player_active",
    "set_league_player_inactive",
    "is_league_player_active",
    "get_league_players",
    "get_league_owners",
    "get_league_email_invites",
    "get_league_player_invites",
    # results
    "register_game_report",
    "get_game_report",
    "register_day_results",
    "void_day_results",
    "is_day_void",
    "get_day_status",
    "get_day_scores",
    "get_day_ranking",
    "get_day_points",
    "get_week_status",
    "get_week_scores",
    "get_week_ranking",
    "get_week_points",
    "get_month_status",
    "get_month_scores",
    "get_month_ranking",
    "get_month_points",
    "get_year_status",
    "get_year_scores",
    "get_year_ranking",
    "get_year_points",
    "get_period_view",
    # whole store
    "erase_portal_data",
    "save_portal_data",
    "load_portal_data",
    "validate_state",
    "export_full_state_snapshot",
    "import_state",
    "reset_state_for_dev",
]


def _read(fn: Callable[..., T], *args: Any) -> T:
    """Run a state_modules reader under the lock over the committed state."""
    with locked() as state:
        return deepcopy(fn(state, *args))


def _write(fn: Callable[..., T], *args: Any) -> T:
    return atomic_update(lambda state: fn(state, *args))


# -------------------------------------------------------------------------
# Clock
# -------------------------------------------------------------------------

def get_current_day() -> int:
    return _read(state_core.get_current_day)


def set_current_day(day: int) -> int:
    return _write(state_core.set_current_day, day)


def increment_day() -> int:
    return _write(state_core.increment_day)


# -------------------------------------------------------------------------
# Players
# -------------------------------------------------------------------------

def create_player(display_name: str, email: str, name: Optional[str] = None, phone: str = "") -> int:
    return _write(state_identity.create_player, display_name, email, name, phone)


def lookup_by_email(email: str) -> Optional[int]:
    return _read(state_identity.find_player_id_by_email, email)


def deactivate_player(player_id: int) -> bool:
    return _write(state_deactivation.deactivate_player, player_id)


def update_player_display_name(player_id: int, display_name: str) -> None:
    _write(state_identity.update_player_display_name, player_id, display_name)


def get_player_ids() -> List[int]:
    return _read(state_identity.get_player_ids)


def _player_field(player_id: int, key: str) -> Any:
    with locked() as state:
        return deepcopy(require_player(state, player_id)[key])


def get_player_display_name(player_id: int) -> str:
    return _player_field(player_id, "display_name")


def get_player_email(player_id: int) -> str:
    return _player_field(player_id, "email")


def get_player_name(player_id: int) -> Optional[str]:
    return _player_field(player_id, "name")


def get_player_phone(player_id: int) -> str:
    return _player_field(player_id, "phone")


def get_player_join_day(player_id: int) -> int:
    return _player_field(player_id, "join_day")


def is_deactivated_player(player_id: int) -> bool:
    return not _player_field(player_id, "active")


def get_player_leagues(player_id: int) -> List[int]:
    return _read(state_identity.get_player_leagues, player_id)


def get_player_owned_leagues(player_id: int) -> List[int]:
    return _read(state_identity.get_player_owned_leagues, player_id)


def get_player_invites(player_id: int) -> List[int]:
    return _read(state_identity.get_player_invites, player_id)


def get_player_rounds_played(player_id: int) -> int:
    return _read(state_identity.get_player_rounds_played, player_id)


def get_player_rounds_percentage(player_id: int) -> float:
    return _read(state_identity.get_player_rounds_percentage, player_id)


# -------------------------------------------------------------------------
# Leagues (lifecycle)
# -------------------------------------------------------------------------

def create_league(owner_id: int, name: str, game_type: Any) -> int:
    return _write(state_lifecycle.create_league, owner_id, name, game_type)


def remove_league(league_id: int) -> None:
    _write(state_lifecycle.remove_league, league_id)


def update_league_name(league_id: int, new_name: str) -> None:
    _write(state_lifecycle.update_league_name, league_id, new_name)


def get_league_ids() -> List[int]:
    return _read(state_lifecycle.get_league_ids)


def get_league_name(league_id: int) -> str:
    return _read(state_lifecycle.get_league_name, league_id)


def get_league_game_type(league_id: int) -> str:
    return _read(state_lifecycle.get_league_game_type, league_id)


def get_league_status(league_id: int) -> Status:
    return _read(state_lifecycle.get_league_status, league_id)


def get_league_start_day(league_id: int) -> Optional[int]:
    return _read(state_lifecycle.get_league_start_day, league_id)


def get_league_close_day(league_id: int) -> Optional[int]:
    return _read(state_lifecycle.get_league_close_day, league_id)


def start_league(league_id: int) -> int:
    return _write(state_lifecycle.start_league, league_id)


def close_league(league_id: int) -> int:
    return _write(state_lifecycle.close_league, league_id)


def reset_league(league_id: int) -> None:
    _write(state_lifecycle.reset_league, league_id)


def clone_league(league_id: int, new_name: str) -> int:
    return _write(state_lifecycle.clone_league, league_id, new_name)


# -------------------------------------------------------------------------
# Membership & ownership
# -------------------------------------------------------------------------

def invite_player_to_league(league_id: int, email: str) -> Dict[str, Any]:
    return _write(state_membership.invite_player_to_league, league_id, email)


def accept_invite_to_league(league_id: int, player_id: int) -> None:
    _write(state_membership.accept_invite_to_league, league_id, player_id)


def remove_invite_from_league(league_id: int, email: str) -> None:
    _write(state_membership.remove_invite_from_league, league_id, email)


def add_owner(league_id: int, player_id: int) -> None:
    _write(state_membership.add_owner, league_id, player_id)


def remove_owner(league_id: int, player_id: int) -> None:
    _write(state_membership.remove_owner, league_id, player_id)


def set_league_player_active(league_id: int, player_id: int) -> None:
    _write(state_membership.set_league_player_active, league_id, player_id, True)


def set_league_player_inactive(league_id: int, player_id: int) -> None:
    _write(state_membership.set_league_player_active, league_id, player_id, False)


def is_league_player_active(league_id: int, player_id: int) -> bool:
    return _read(state_membership.is_league_player_active, league_id, player_id)


def get_league_players(league_id: int) -> List[int]:
    return _read(state_membership.get_league_players, league_id)


def get_league_owners(league_id: int) -> List[int]:
    return _read(state_membership.get_league_owners, league_id)


def get_league_email_invites(league_id: int) -> List[str]:
    return _read(state_membership.get_league_email_invites, league_id)


def get_league_player_invites(league_id: int) -> List[int]:
    return _read(state_membership.get_league_player_invites, league_id)


# -------------------------------------------------------------------------
# Results ledger
# -------------------------------------------------------------------------

def register_game_report(day: int, league_id: int, player_id: int, report: str) -> None:
    _write(state_results.register_game_report, day, league_id, player_id, report)


def get_game_report(day: int, league_id: int, player_id: int) -> str:
    return _read(state_results.get_game_report, day, league_id, player_id)


def register_day_results(day: int, league_id: int, scores: Sequence[int]) -> None:
    _write(state_results.register_day_results, day, league_id, scores)


def void_day_results(day: int, league_id: int) -> None:
    _write(state_results.void_day_results, day, league_id)


def is_day_void(league_id: int, day: int) -> bool:
    return _read(state_results.is_day_void, league_id, day)


# -------------------------------------------------------------------------
# Aggregation (derived on read)
# -------------------------------------------------------------------------

def _status(period: str, league_id: int, day: int) -> Status:
    return _read(state_views.get_period_status, league_id, period, day)


def _scores(period: str, league_id: int, day: int) -> List[int]:
    return _read(state_views.get_period_scores, league_id, period, day)


def _ranking(period: str, league_id: int, day: int) -> List[int]:
    return _read(state_views.get_period_ranking, league_id, period, day)


def _points(period: str, league_id: int, day: int) -> List[int]:
    return _read(state_views.get_period_points, league_id, period, day)


def get_day_status(league_id: int, day: int) -> Status:
    return _status("day", league_id, day)


def get_day_scores(league_id: int, day: int) -> List[int]:
    return _scores("day", league_id, day)


def get_day_ranking(league_id: int, day: int) -> List[int]:
    return _ranking("day", league_id, day)


def get_day_points(league_id: int, day: int) -> List[int]:
    return _points("day", league_id, day)


def get_week_status(league_id: int, day: int) -> Status:
    return _status("week", league_id, day)


def get_week_scores(league_id: int, day: int) -> List[int]:
    return _scores("week", league_id, day)


def get_week_ranking(league_id: int, day: int) -> List[int]:
    return _ranking("week", league_id, day)


def get_week_points(league_id: int, day: int) -> List[int]:
    return _points("week", league_id, day)


def get_month_status(league_id: int, day: int) -> Status:
    return _status("month", league_id, day)


def get_month_scores(league_id: int, day: int) -> List[int]:
    return _scores("month", league_id, day)


def get_month_ranking(league_id: int, day: int) -> List[int]:
    return _ranking("month", league_id, day)


def get_month_points(league_id: int, day: int) -> List[int]:
    return _points("month", league_id, day)


def get_year_status(league_id: int, day: int) -> Status:
    return _status("year", league_id, day)


def get_year_scores(league_id: int, day: int) -> List[int]:
    return _scores("year", league_id, day)


def get_year_ranking(league_id: int, day: int) -> List[int]:
    return _ranking("year", league_id, day)


def get_year_points(league_id: int, day: int) -> List[int]:
    return _points("year", league_id, day)


def get_period_view(league_id: int, period: str, day: int) -> Dict[str, Any]:
    return _read(state_views.get_period_view, league_id, period, day)


# -------------------------------------------------------------------------
# Whole store
# -------------------------------------------------------------------------

def erase_portal_data() -> None:
    """Empty store, fresh id counters. The clock is kept."""
    def _erase(state: dict) -> None:
        fresh = create_default_state(state_core.get_current_day(state))
        state.clear()
        state.update(fresh)

    atomic_update(_erase)
    logger.info("portal data erased")


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def save_portal_data(path: Optional[str] = None) -> str:
    """Write a full snapshot to ``path`` (default: config.DEFAULT_DB_PATH).

    The snapshot goes to a uniquely named temporary sibling first and is
    renamed over the destination only after a successful commit. The lock is
    held for the whole write so concurrent saves and mutations are serialized.
    State is never modified.
    """
    from config import DEFAULT_DB_PATH
    from league_repo import LeagueRepo

    dest = str(path or DEFAULT_DB_PATH)
    tmp: Optional[str] = None
    with locked() as state:
        snapshot = deepcopy(state)
        try:
            directory = os.path.dirname(dest) or "."
            with tempfile.NamedTemporaryFile(
                dir=directory, prefix=os.path.basename(dest) + ".", suffix=".tmp", delete=False
            ) as handle:
                tmp = handle.name
            with LeagueRepo(tmp) as repo:
                repo.init_db()
                repo.write_snapshot(snapshot)
            os.replace(tmp, dest)
        except (OSError, sqlite3.Error, ValueError) as exc:
            logger.warning("save to %s failed", dest, exc_info=True)
            if tmp is not None:
                _remove_quietly(tmp)
            raise PortalError(SNAPSHOT_IO, f"could not save snapshot to '{dest}': {exc}", {"path": dest}) from exc
    logger.info(
        "snapshot saved to %s (%d players, %d leagues)",
        dest, len(snapshot["players"]), len(snapshot["leagues"]),
    )
    return dest


def load_portal_data(path: Optional[str] = None) -> None:
    """Replace the whole state from a snapshot; on any failure the current state stays."""
    from config import DEFAULT_DB_PATH
    from league_repo import LeagueRepo

    src = str(path or DEFAULT_DB_PATH)
    with locked():
        # sqlite3.connect would silently create a missing file.
        if not os.path.isfile(src):
            raise PortalError(SNAPSHOT_IO, f"snapshot '{src}' does not exist", {"path": src})
        try:
            with LeagueRepo(src) as repo:
                new_state = repo.read_snapshot()
            replace_state(new_state)
        except (OSError, sqlite3.Error, ValueError, KeyError) as exc:
            logger.warning("load from %s failed", src, exc_info=True)
            raise PortalError(SNAPSHOT_IO, f"could not load snapshot from '{src}': {exc}", {"path": src}) from exc
    logger.info("snapshot loaded from %s", src)


def validate_state() -> None:
    with locked() as state:
        validate_game_state(state)


def export_full_state_snapshot() -> dict:
    with locked() as state:
        return deepcopy(state)


def import_state(new_state: dict) -> None:
    replace_state(new_state)


def reset_state_for_dev(*, current_day: Optional[int] = None) -> None:
    _reset_state_for_dev(current_day=current_day)
