from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from config import RESERVED_EMAIL_DOMAIN
from errors import DUPLICATE_EMAIL, INVALID_EMAIL, PortalError
from schema import email_key, validate_display_name, validate_email, validate_full_name, validate_phone
from state_schema import create_default_player
from .state_core import get_current_day
from .state_utils import require_active_player, require_player

logger = logging.getLogger(__name__)


def _allocate_player_id(state: dict) -> int:
    counters = state["counters"]
    pid = int(counters["next_player_id"])
    counters["next_player_id"] = pid + 1
    return pid


def find_player_id_by_email(state: dict, email: Any) -> Optional[int]:
    """Linear scan over active players; emails compare case-insensitively."""
    if not isinstance(email, str) or not email:
        return None
    key = email_key(email)
    for pid, player in state["players"].items():
        # Deactivated players keep only a placeholder address.
        if not player["active"]:
            continue
        if email_key(player["email"]) == key:
            return pid
    return None


def _convert_email_invites(state: dict, email: str, player_id: int) -> List[int]:
    """Pending email invites for ``email`` become player invites for the new player."""
    key = email_key(email)
    converted: List[int] = []
    for lid, league in state["leagues"].items():
        remaining = [e for e in league["email_invites"] if email_key(e) != key]
        if len(remaining) == len(league["email_invites"]):
            continue
        league["email_invites"] = remaining
        if player_id not in league["player_invites"]:
            league["player_invites"].append(player_id)
        converted.append(lid)
    return converted


def is_reserved_email(email: str) -> bool:
    return email_key(email).endswith("@" + RESERVED_EMAIL_DOMAIN)


def require_unreserved_email(email: Any) -> str:
    addr = validate_email(email)
    if is_reserved_email(addr):
        raise PortalError(INVALID_EMAIL, f"email domain '{RESERVED_EMAIL_DOMAIN}' is reserved", {"email": addr})
    return addr


def create_player(state: dict, display_name: Any, email: Any, name: Any = None, phone: Any = "") -> int:
    display = validate_display_name(display_name, what="display name")
    full_name = validate_full_name(name)
    contact = validate_phone(phone)
    addr = require_unreserved_email(email)
    existing = find_player_id_by_email(state, addr)
    if existing is not None:
        raise PortalError(DUPLICATE_EMAIL, f"email '{addr}' is already registered", {"email": addr})

    pid = _allocate_player_id(state)
    state["players"][pid] = create_default_player(pid, display, addr, get_current_day(state), full_name, contact)
    converted = _convert_email_invites(state, addr, pid)
    if converted:
        logger.debug("player %s: email invites converted for leagues %s", pid, converted)
    return pid


def update_player_display_name(state: dict, player_id: Any, display_name: Any) -> None:
    player = require_active_player(state, player_id)
    player["display_name"] = validate_display_name(display_name, what="display name")


def get_player_ids(state: dict) -> List[int]:
    return sorted(state["players"].keys())


def get_player_leagues(state: dict, player_id: Any) -> List[int]:
    pid = require_player(state, player_id)["player_id"]
    return sorted(lid for lid, league in state["leagues"].items() if pid in league["member_active"])


def get_player_owned_leagues(state: dict, player_id: Any) -> List[int]:
    pid = require_player(state, player_id)["player_id"]
    return sorted(lid for lid, league in state["leagues"].items() if pid in league["owners"])


def get_player_invites(state: dict, player_id: Any) -> List[int]:
    pid = require_player(state, player_id)["player_id"]
    return sorted(lid for lid, league in state["leagues"].items() if pid in league["player_invites"])


# -------------------------------------------------------------------------
# Participation stats (live leagues + archived counts from removed leagues)
# -------------------------------------------------------------------------

def count_league_rounds(state: dict, league_id: int, player_id: int) -> Dict[str, int]:
    """Rounds = finalized days. Eligible if active at finalization, played if reported."""
    played = 0
    eligible = 0
    for record in (state["ledger"].get(league_id) or {}).values():
        if not record["finalized"] or player_id not in record["eligible"]:
            continue
        eligible += 1
        entry = record["entries"].get(player_id)
        if entry is not None and entry["reported"]:
            played += 1
    return {"played": played, "eligible": eligible}


def _lifetime_rounds(state: dict, player: Dict[str, Any]) -> Dict[str, int]:
    pid = player["player_id"]
    played = int(player["archived_rounds_played"])
    eligible = int(player["archived_rounds_eligible"])
    for lid in state["ledger"].keys():
        counts = count_league_rounds(state, lid, pid)
        played += counts["played"]
        eligible += counts["eligible"]
    return {"played": played, "eligible": eligible}


def get_player_rounds_played(state: dict, player_id: Any) -> int:
    player = require_player(state, player_id)
    return _lifetime_rounds(state, player)["played"]


def get_player_rounds_percentage(state: dict, player_id: Any) -> float:
    player = require_player(state, player_id)
    counts = _lifetime_rounds(state, player)
    if counts["eligible"] <= 0:
        return 0.0
    return counts["played"] / counts["eligible"] * 100.0
