from __future__ import annotations

import logging
from typing import Any, Dict, List

from errors import ILLEGAL_OPERATION, PortalError
from schema import email_key, validate_email
from .state_identity import find_player_id_by_email, require_unreserved_email
from .state_utils import require_active_player, require_league, require_player, require_roster_member

logger = logging.getLogger(__name__)


def invite_player_to_league(state: dict, league_id: Any, email: Any) -> Dict[str, Any]:
    """Registered email -> player invite, otherwise an email invite resolved at signup."""
    league = require_league(state, league_id)
    addr = require_unreserved_email(email)
    pid = find_player_id_by_email(state, addr)

    if pid is not None:
        if pid in league["member_active"]:
            raise PortalError(
                ILLEGAL_OPERATION,
                f"player {pid} is already a member of league {league['league_id']}",
                {"league_id": league["league_id"], "player_id": pid},
            )
        if pid not in league["player_invites"]:
            league["player_invites"].append(pid)
        return {"kind": "player", "player_id": pid}

    key = email_key(addr)
    if not any(email_key(e) == key for e in league["email_invites"]):
        league["email_invites"].append(addr)
    return {"kind": "email", "email": addr}


def accept_invite_to_league(state: dict, league_id: Any, player_id: Any) -> None:
    league = require_league(state, league_id)
    pid = require_active_player(state, player_id)["player_id"]
    if pid not in league["player_invites"]:
        raise PortalError(
            ILLEGAL_OPERATION,
            f"player {pid} has no pending invite to league {league['league_id']}",
            {"league_id": league["league_id"], "player_id": pid},
        )
    league["player_invites"].remove(pid)
    league["roster"].append(pid)
    league["member_active"][pid] = True
    logger.debug("league %s: player %s joined (roster position %s)", league["league_id"], pid, len(league["roster"]))


def remove_invite_from_league(state: dict, league_id: Any, email: Any) -> None:
    league = require_league(state, league_id)
    addr = validate_email(email)

    pid = find_player_id_by_email(state, addr)
    if pid is not None and pid in league["player_invites"]:
        league["player_invites"].remove(pid)
        return

    key = email_key(addr)
    remaining = [e for e in league["email_invites"] if email_key(e) != key]
    if len(remaining) == len(league["email_invites"]):
        raise PortalError(
            ILLEGAL_OPERATION,
            f"no pending invite for '{addr}' in league {league['league_id']}",
            {"league_id": league["league_id"], "email": addr},
        )
    league["email_invites"] = remaining


def add_owner(state: dict, league_id: Any, player_id: Any) -> None:
    league = require_league(state, league_id)
    pid = require_active_player(state, player_id)["player_id"]
    require_roster_member(league, pid)
    if pid not in league["owners"]:
        league["owners"] = sorted(league["owners"] + [pid])


def remove_owner(state: dict, league_id: Any, player_id: Any) -> None:
    league = require_league(state, league_id)
    pid = require_player(state, player_id)["player_id"]
    if pid not in league["owners"]:
        raise PortalError(
            ILLEGAL_OPERATION,
            f"player {pid} is not an owner of league {league['league_id']}",
            {"league_id": league["league_id"], "player_id": pid},
        )
    if len(league["owners"]) == 1:
        raise PortalError(
            ILLEGAL_OPERATION,
            f"removing player {pid} would leave league {league['league_id']} without an owner",
            {"league_id": league["league_id"], "player_id": pid},
        )
    league["owners"] = [o for o in league["owners"] if o != pid]


def set_league_player_active(state: dict, league_id: Any, player_id: Any, active: bool) -> None:
    league = require_league(state, league_id)
    player = require_player(state, player_id)
    pid = player["player_id"]
    require_roster_member(league, pid)
    if active and not player["active"]:
        raise PortalError(
            ILLEGAL_OPERATION,
            f"player {pid} has been deactivated and cannot be reactivated",
            {"league_id": league["league_id"], "player_id": pid},
        )
    league["member_active"][pid] = bool(active)


def is_league_player_active(state: dict, league_id: Any, player_id: Any) -> bool:
    league = require_league(state, league_id)
    pid = require_player(state, player_id)["player_id"]
    require_roster_member(league, pid)
    return bool(league["member_active"][pid])


def get_league_players(state: dict, league_id: Any) -> List[int]:
    return list(require_league(state, league_id)["roster"])


def get_league_owners(state: dict, league_id: Any) -> List[int]:
    return sorted(require_league(state, league_id)["owners"])


def get_league_email_invites(state: dict, league_id: Any) -> List[str]:
    return list(require_league(state, league_id)["email_invites"])


def get_league_player_invites(state: dict, league_id: Any) -> List[int]:
    return list(require_league(state, league_id)["player_invites"])


def active_members(league: Dict[str, Any]) -> List[int]:
    """Active roster members in roster order."""
    return [pid for pid in league["roster"] if league["member_active"].get(pid)]
