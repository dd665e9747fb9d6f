from __future__ import annotations

from typing import Any, Dict, Optional

from schema import ALLOWED_GAME_TYPES, ALLOWED_STATUSES, SCHEMA_VERSION, email_key

GAME_STATE_SCHEMA_VERSION = SCHEMA_VERSION


def create_default_counters() -> dict:
    return {"next_player_id": 1, "next_league_id": 1}


def create_default_player(
    player_id: int,
    display_name: str,
    email: str,
    join_day: int,
    name: Optional[str] = None,
    phone: str = "",
) -> dict:
    return {
        "player_id": int(player_id),
        "display_name": display_name,
        "email": email,
        "name": name,
        "phone": phone,
        "join_day": int(join_day),
        "active": True,
        "archived_rounds_played": 0,
        "archived_rounds_eligible": 0,
    }


def create_default_league(league_id: int, name: str, game_type: str, owner_id: int) -> dict:
    return {
        "league_id": int(league_id),
        "name": name,
        "game_type": str(game_type),
        "status": "PENDING",
        "start_day": None,
        "close_day": None,
        "owners": [int(owner_id)],
        "roster": [int(owner_id)],
        "member_active": {int(owner_id): True},
        "email_invites": [],
        "player_invites": [],
    }


def create_default_day_record() -> dict:
    return {"finalized": False, "void": False, "eligible": [], "entries": {}}


def create_default_state(current_day: int = 0) -> dict:
    return {
        "schema_version": GAME_STATE_SCHEMA_VERSION,
        "current_day": int(current_day),
        "counters": create_default_counters(),
        "players": {},
        "leagues": {},
        "ledger": {},
    }


ALLOWED_TOP_LEVEL_KEYS = set(create_default_state().keys())
PLAYER_KEYS = set(create_default_player(1, "x", "x@x", 0).keys())
LEAGUE_KEYS = set(create_default_league(1, "x", "CHESS", 1).keys())
DAY_RECORD_KEYS = set(create_default_day_record().keys())
ENTRY_KEYS = {"score", "report", "reported"}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_player_block(pid: Any, player: Dict[str, Any], next_player_id: int) -> None:
    label = f"players[{pid}]"
    if not _is_int(pid) or pid <= 0 or pid >= next_player_id:
        raise ValueError(f"{label}: player id must be an allocated positive int")
    if not isinstance(player, dict) or set(player.keys()) != PLAYER_KEYS:
        raise ValueError(f"{label} must have keys {PLAYER_KEYS}")
    if player["player_id"] != pid:
        raise ValueError(f"{label}.player_id must match its key")
    if not isinstance(player["display_name"], str) or not isinstance(player["email"], str):
        raise ValueError(f"{label} display_name/email must be str")
    if player["name"] is not None and not isinstance(player["name"], str):
        raise ValueError(f"{label}.name must be str or None")
    if not isinstance(player["phone"], str):
        raise ValueError(f"{label}.phone must be str")
    if not isinstance(player["active"], bool):
        raise ValueError(f"{label}.active must be bool")
    for key in ("join_day", "archived_rounds_played", "archived_rounds_eligible"):
        if not _is_int(player[key]):
            raise ValueError(f"{label}.{key} must be int")
    if player["archived_rounds_played"] > player["archived_rounds_eligible"]:
        raise ValueError(f"{label}: archived rounds played exceed rounds eligible")


def _validate_league_block(lid: Any, league: Dict[str, Any], players: Dict[int, Any], next_league_id: int) -> None:
    label = f"leagues[{lid}]"
    if not _is_int(lid) or lid <= 0 or lid >= next_league_id:
        raise ValueError(f"{label}: league id must be an allocated positive int")
    if not isinstance(league, dict) or set(league.keys()) != LEAGUE_KEYS:
        raise ValueError(f"{label} must have keys {LEAGUE_KEYS}")
    if league["league_id"] != lid:
        raise ValueError(f"{label}.league_id must match its key")
    if league["status"] not in ALLOWED_STATUSES:
        raise ValueError(f"{label}.status must be one of {ALLOWED_STATUSES}")
    if league["game_type"] not in ALLOWED_GAME_TYPES:
        raise ValueError(f"{label}.game_type must be one of {ALLOWED_GAME_TYPES}")

    roster = league["roster"]
    owners = league["owners"]
    if not isinstance(roster, list) or len(set(roster)) != len(roster):
        raise ValueError(f"{label}.roster must be a list of unique player ids")
    for pid in roster:
        if pid not in players:
            raise ValueError(f"{label}.roster references unknown player {pid}")
    if not isinstance(owners, list) or not owners:
        raise ValueError(f"{label}.owners must be a non-empty list")
    if not set(owners).issubset(roster):
        raise ValueError(f"{label}.owners must be roster members")
    member_active = league["member_active"]
    if not isinstance(member_active, dict) or set(member_active.keys()) != set(roster):
        raise ValueError(f"{label}.member_active must have exactly the roster as keys")
    for pid in league["player_invites"]:
        if pid not in players:
            raise ValueError(f"{label}.player_invites references unknown player {pid}")
        if pid in member_active:
            raise ValueError(f"{label}.player_invites must not contain roster members")

    status = league["status"]
    start_day = league["start_day"]
    close_day = league["close_day"]
    if status == "PENDING" and (start_day is not None or close_day is not None):
        raise ValueError(f"{label}: PENDING league must not have start/close days")
    if status == "IN_PROGRESS" and (not _is_int(start_day) or close_day is not None):
        raise ValueError(f"{label}: IN_PROGRESS league needs start_day and no close_day")
    if status == "CLOSED" and (not _is_int(start_day) or not _is_int(close_day) or close_day < start_day):
        raise ValueError(f"{label}: CLOSED league needs start_day <= close_day")


def _validate_ledger_block(lid: Any, days: Dict[Any, Any], league: Dict[str, Any]) -> None:
    label = f"ledger[{lid}]"
    if not isinstance(days, dict):
        raise ValueError(f"{label} must be a dict")
    if days and league["start_day"] is None:
        raise ValueError(f"{label}: unstarted league must have no ledger entries")
    for day, record in days.items():
        if not _is_int(day):
            raise ValueError(f"{label}: day keys must be int")
        if not isinstance(record, dict) or set(record.keys()) != DAY_RECORD_KEYS:
            raise ValueError(f"{label}[{day}] must have keys {DAY_RECORD_KEYS}")
        if record["void"] and not record["finalized"]:
            raise ValueError(f"{label}[{day}]: void day must be finalized")
        for pid, entry in record["entries"].items():
            if not isinstance(entry, dict) or set(entry.keys()) != ENTRY_KEYS:
                raise ValueError(f"{label}[{day}][{pid}] must have keys {ENTRY_KEYS}")
            score = entry["score"]
            if score is not None and (not _is_int(score) or score < 0):
                raise ValueError(f"{label}[{day}][{pid}].score must be None or int >= 0")
            if record["void"] and score not in (None, 0):
                raise ValueError(f"{label}[{day}][{pid}]: void day scores must be 0")
            if not isinstance(entry["report"], str):
                raise ValueError(f"{label}[{day}][{pid}].report must be str")


def validate_game_state(state: dict) -> None:
    for key in state.keys():
        if key not in ALLOWED_TOP_LEVEL_KEYS:
            raise ValueError(f"Unknown top-level key: {key}")
    for key in ALLOWED_TOP_LEVEL_KEYS:
        if key not in state:
            raise ValueError(f"Missing top-level key: {key}")

    if state.get("schema_version") != GAME_STATE_SCHEMA_VERSION:
        raise ValueError("schema_version mismatch")

    if not _is_int(state.get("current_day")):
        raise ValueError("current_day must be int")

    counters = state.get("counters")
    if not isinstance(counters, dict) or set(counters.keys()) != {"next_player_id", "next_league_id"}:
        raise ValueError("counters must have next_player_id and next_league_id")
    next_player_id = counters["next_player_id"]
    next_league_id = counters["next_league_id"]
    if not _is_int(next_player_id) or next_player_id < 1 or not _is_int(next_league_id) or next_league_id < 1:
        raise ValueError("counters must be positive ints")

    players = state.get("players")
    if not isinstance(players, dict):
        raise ValueError("players must be a dict")
    seen_emails: set[str] = set()
    for pid, player in players.items():
        _validate_player_block(pid, player, next_player_id)
        key = email_key(player["email"])
        if key in seen_emails:
            raise ValueError(f"duplicate player email: {player['email']!r}")
        seen_emails.add(key)

    leagues = state.get("leagues")
    if not isinstance(leagues, dict):
        raise ValueError("leagues must be a dict")
    seen_names: set[str] = set()
    for lid, league in leagues.items():
        _validate_league_block(lid, league, players, next_league_id)
        if league["name"] in seen_names:
            raise ValueError(f"duplicate league name: {league['name']!r}")
        seen_names.add(league["name"])

    ledger = state.get("ledger")
    if not isinstance(ledger, dict):
        raise ValueError("ledger must be a dict")
    for lid, days in ledger.items():
        if lid not in leagues:
            raise ValueError(f"ledger references unknown league {lid}")
        _validate_ledger_block(lid, days, leagues[lid])
