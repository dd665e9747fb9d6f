from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from errors import DUPLICATE_NAME, ILLEGAL_OPERATION, INVALID_STATE, PortalError
from schema import Status, normalize_game_type, validate_display_name
from state_schema import create_default_league
from .state_core import get_current_day
from .state_identity import count_league_rounds
from .state_utils import require_active_player, require_league

logger = logging.getLogger(__name__)

# PENDING -> IN_PROGRESS -> CLOSED; reset returns any state to PENDING.
_ALLOWED_TRANSITIONS = {
    "start": {Status.PENDING.value},
    "close": {Status.IN_PROGRESS.value},
}


def _allocate_league_id(state: dict) -> int:
    counters = state["counters"]
    lid = int(counters["next_league_id"])
    counters["next_league_id"] = lid + 1
    return lid


def _require_unique_league_name(state: dict, name: str, *, ignore_league_id: Optional[int] = None) -> None:
    for lid, league in state["leagues"].items():
        if lid == ignore_league_id:
            continue
        if league["name"] == name:
            raise PortalError(DUPLICATE_NAME, f"league name '{name}' already exists", {"name": name, "league_id": lid})


def _require_transition(league: Dict[str, Any], action: str) -> None:
    allowed = _ALLOWED_TRANSITIONS[action]
    if league["status"] not in allowed:
        raise PortalError(
            INVALID_STATE,
            f"cannot {action} league {league['league_id']} in status {league['status']}",
            {"league_id": league["league_id"], "status": league["status"], "action": action},
        )


def create_league(state: dict, owner_id: Any, name: Any, game_type: Any) -> int:
    owner = require_active_player(state, owner_id)
    league_name = validate_display_name(name, what="league name")
    try:
        gtype = normalize_game_type(game_type)
    except ValueError as exc:
        raise PortalError(ILLEGAL_OPERATION, str(exc), {"game_type": game_type}) from exc
    _require_unique_league_name(state, league_name)

    lid = _allocate_league_id(state)
    state["leagues"][lid] = create_default_league(lid, league_name, gtype.value, owner["player_id"])
    logger.info("league %s created: name=%r game_type=%s owner=%s", lid, league_name, gtype.value, owner["player_id"])
    return lid


def remove_league(state: dict, league_id: Any) -> None:
    league = require_league(state, league_id)
    lid = league["league_id"]
    # Lifetime participation stats survive league removal.
    for pid in state["players"].keys():
        counts = count_league_rounds(state, lid, pid)
        if counts["eligible"] == 0:
            continue
        player = state["players"][pid]
        player["archived_rounds_played"] += counts["played"]
        player["archived_rounds_eligible"] += counts["eligible"]
    state["ledger"].pop(lid, None)
    del state["leagues"][lid]
    logger.info("league %s removed", lid)


def update_league_name(state: dict, league_id: Any, new_name: Any) -> None:
    league = require_league(state, league_id)
    name = validate_display_name(new_name, what="league name")
    _require_unique_league_name(state, name, ignore_league_id=league["league_id"])
    league["name"] = name


def start_league(state: dict, league_id: Any) -> int:
    league = require_league(state, league_id)
    _require_transition(league, "start")
    day = get_current_day(state)
    league["status"] = Status.IN_PROGRESS.value
    league["start_day"] = day
    logger.info("league %s started on day %s", league["league_id"], day)
    return day


def close_league(state: dict, league_id: Any) -> int:
    league = require_league(state, league_id)
    _require_transition(league, "close")
    day = get_current_day(state)
    league["status"] = Status.CLOSED.value
    league["close_day"] = day
    logger.info("league %s closed on day %s", league["league_id"], day)
    return day


def reset_league(state: dict, league_id: Any) -> None:
    """Wipe gameplay history and dates; roster, owners and invites stay."""
    league = require_league(state, league_id)
    lid = league["league_id"]
    state["ledger"].pop(lid, None)
    league["status"] = Status.PENDING.value
    league["start_day"] = None
    league["close_day"] = None
    logger.info("league %s reset to PENDING", lid)


def clone_league(state: dict, league_id: Any, new_name: Any) -> int:
    source = require_league(state, league_id)
    name = validate_display_name(new_name, what="league name")
    _require_unique_league_name(state, name)

    # Owners carry over as members (owners must stay on the roster); every
    # other prior member is re-invited.
    owners = set(source["owners"])
    roster = [pid for pid in source["roster"] if pid in owners]
    invites = [
        pid for pid in source["roster"]
        if pid not in owners and state["players"][pid]["active"]
    ]

    lid = _allocate_league_id(state)
    league = create_default_league(lid, name, source["game_type"], roster[0])
    league["roster"] = roster
    league["owners"] = sorted(owners)
    league["member_active"] = {pid: bool(state["players"][pid]["active"]) for pid in roster}
    league["player_invites"] = invites
    state["leagues"][lid] = league
    logger.info("league %s cloned from %s as %r (%s invites)", lid, source["league_id"], name, len(invites))
    return lid


# -------------------------------------------------------------------------
# Getters
# -------------------------------------------------------------------------

def get_league_ids(state: dict) -> List[int]:
    return sorted(state["leagues"].keys())


def get_league_name(state: dict, league_id: Any) -> str:
    return require_league(state, league_id)["name"]


def get_league_status(state: dict, league_id: Any) -> Status:
    return Status(require_league(state, league_id)["status"])


def get_league_game_type(state: dict, league_id: Any) -> str:
    return require_league(state, league_id)["game_type"]


def get_league_start_day(state: dict, league_id: Any) -> Optional[int]:
    return require_league(state, league_id)["start_day"]


def get_league_close_day(state: dict, league_id: Any) -> Optional[int]:
    return require_league(state, league_id)["close_day"]
