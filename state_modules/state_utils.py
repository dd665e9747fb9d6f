from __future__ import annotations

from typing import Any, Dict

from errors import ID_NOT_FOUND, ILLEGAL_OPERATION, INVALID_DATE, PortalError
from schema import normalize_id


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_id(value: Any, what: str) -> int:
    try:
        return normalize_id(value, what=what)
    except ValueError as exc:
        raise PortalError(ID_NOT_FOUND, f"{what} {value!r} is not a valid id", {what: value}) from exc


def require_player(state: dict, player_id: Any) -> Dict[str, Any]:
    pid = _coerce_id(player_id, "player_id")
    player = state["players"].get(pid)
    if player is None:
        raise PortalError(ID_NOT_FOUND, f"player {pid} not found", {"player_id": pid})
    return player


def require_league(state: dict, league_id: Any) -> Dict[str, Any]:
    lid = _coerce_id(league_id, "league_id")
    league = state["leagues"].get(lid)
    if league is None:
        raise PortalError(ID_NOT_FOUND, f"league {lid} not found", {"league_id": lid})
    return league


def require_active_player(state: dict, player_id: Any) -> Dict[str, Any]:
    player = require_player(state, player_id)
    if not player["active"]:
        raise PortalError(
            ILLEGAL_OPERATION,
            f"player {player['player_id']} has been deactivated",
            {"player_id": player["player_id"]},
        )
    return player


def require_roster_member(league: Dict[str, Any], player_id: int) -> None:
    if player_id not in league["member_active"]:
        raise PortalError(
            ILLEGAL_OPERATION,
            f"player {player_id} is not a member of league {league['league_id']}",
            {"league_id": league["league_id"], "player_id": player_id},
        )


def _require_day(value: Any) -> int:
    if not _is_int(value):
        raise PortalError(INVALID_DATE, f"day must be an int epoch day, got {value!r}", {"day": value})
    return int(value)
