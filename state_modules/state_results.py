from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config import CORRECTION_WINDOW_DAYS
from errors import ILLEGAL_OPERATION, INVALID_DATE, PortalError
from schema import Status
from state_schema import create_default_day_record
from .state_core import get_current_day
from .state_utils import _is_int, _require_day, require_league, require_player, require_roster_member

logger = logging.getLogger(__name__)


def league_span(state: dict, league: Dict[str, Any]) -> Tuple[int, int]:
    """[start_day, last valid day] of a started league (close day, else today)."""
    start = league["start_day"]
    if start is None:
        raise PortalError(
            INVALID_DATE,
            f"league {league['league_id']} has not started",
            {"league_id": league["league_id"]},
        )
    end = league["close_day"] if league["close_day"] is not None else get_current_day(state)
    return int(start), int(end)


def require_day_in_span(state: dict, league: Dict[str, Any], day: Any) -> int:
    d = _require_day(day)
    start, end = league_span(state, league)
    if not (start <= d <= end):
        raise PortalError(
            INVALID_DATE,
            f"day {d} is outside league {league['league_id']} span [{start}, {end}]",
            {"league_id": league["league_id"], "day": d, "start_day": start, "end_day": end},
        )
    return d


def _require_correction_window(state: dict, league: Dict[str, Any], day: int) -> None:
    current = get_current_day(state)
    if current >= day + CORRECTION_WINDOW_DAYS:
        raise PortalError(
            INVALID_DATE,
            f"day {day} is settled (current day {current}); results can no longer change",
            {"league_id": league["league_id"], "day": day, "current_day": current},
        )


def _require_not_void(league: Dict[str, Any], record: Optional[Dict[str, Any]], day: int) -> None:
    if record is not None and record["void"]:
        raise PortalError(
            INVALID_DATE,
            f"day {day} of league {league['league_id']} is void-locked",
            {"league_id": league["league_id"], "day": day},
        )


def get_day_record(state: dict, league_id: int, day: int) -> Optional[Dict[str, Any]]:
    return (state["ledger"].get(league_id) or {}).get(day)


def _ensure_day_record(state: dict, league_id: int, day: int) -> Dict[str, Any]:
    days = state["ledger"].setdefault(league_id, {})
    return days.setdefault(day, create_default_day_record())


def _new_entry() -> Dict[str, Any]:
    return {"score": None, "report": "", "reported": False}


# -------------------------------------------------------------------------
# Writes
# -------------------------------------------------------------------------

def register_game_report(state: dict, day: Any, league_id: Any, player_id: Any, report: Any) -> None:
    league = require_league(state, league_id)
    pid = require_player(state, player_id)["player_id"]
    if league["status"] == Status.CLOSED.value:
        raise PortalError(
            INVALID_DATE,
            f"league {league['league_id']} is closed",
            {"league_id": league["league_id"], "day": day},
        )
    d = require_day_in_span(state, league, day)
    require_roster_member(league, pid)
    if not league["member_active"][pid]:
        raise PortalError(
            ILLEGAL_OPERATION,
            f"player {pid} is inactive in league {league['league_id']}",
            {"league_id": league["league_id"], "player_id": pid},
        )
    if not isinstance(report, str):
        raise PortalError(ILLEGAL_OPERATION, "game report must be text", {"report": report})

    lid = league["league_id"]
    record = get_day_record(state, lid, d)
    _require_not_void(league, record, d)
    if record is not None and record["finalized"]:
        raise PortalError(
            INVALID_DATE,
            f"day {d} of league {lid} is already finalized",
            {"league_id": lid, "day": d},
        )

    record = _ensure_day_record(state, lid, d)
    entry = record["entries"].setdefault(pid, _new_entry())
    entry["report"] = report
    entry["reported"] = True
    logger.debug("league %s day %s: report from player %s (%d chars)", lid, d, pid, len(report))


def register_day_results(state: dict, day: Any, league_id: Any, scores: Sequence[Any]) -> None:
    """Scores follow roster order; only active members are scored. Finalizes the day."""
    league = require_league(state, league_id)
    d = require_day_in_span(state, league, day)
    lid = league["league_id"]
    _require_not_void(league, get_day_record(state, lid, d), d)
    _require_correction_window(state, league, d)

    roster = league["roster"]
    values = list(scores) if isinstance(scores, (list, tuple)) else None
    if values is None or len(values) != len(roster):
        raise PortalError(
            ILLEGAL_OPERATION,
            f"expected {len(roster)} scores in roster order",
            {"league_id": lid, "roster": list(roster), "scores": scores},
        )
    for idx, value in enumerate(values):
        if not _is_int(value) or value < 0:
            raise PortalError(
                ILLEGAL_OPERATION,
                f"score at position {idx} must be a non-negative int",
                {"league_id": lid, "index": idx, "score": value},
            )

    record = _ensure_day_record(state, lid, d)
    eligible: List[int] = []
    for pid, value in zip(roster, values):
        if not league["member_active"][pid]:
            continue
        entry = record["entries"].setdefault(pid, _new_entry())
        entry["score"] = int(value)
        eligible.append(pid)
    record["finalized"] = True
    record["eligible"] = eligible
    logger.debug("league %s day %s: results registered for %d players", lid, d, len(eligible))


def void_day_results(state: dict, day: Any, league_id: Any) -> None:
    league = require_league(state, league_id)
    d = require_day_in_span(state, league, day)
    lid = league["league_id"]
    _require_not_void(league, get_day_record(state, lid, d), d)
    _require_correction_window(state, league, d)

    record = _ensure_day_record(state, lid, d)
    for pid in league["roster"]:
        entry = record["entries"].setdefault(pid, _new_entry())
        entry["score"] = 0
    record["void"] = True
    record["finalized"] = True
    record["eligible"] = [pid for pid in league["roster"] if league["member_active"][pid]]
    logger.info("league %s day %s voided", lid, d)


# -------------------------------------------------------------------------
# Reads
# -------------------------------------------------------------------------

def get_game_report(state: dict, day: Any, league_id: Any, player_id: Any) -> str:
    league = require_league(state, league_id)
    pid = require_player(state, player_id)["player_id"]
    d = require_day_in_span(state, league, day)
    record = get_day_record(state, league["league_id"], d)
    if record is None:
        return ""
    entry = record["entries"].get(pid)
    return entry["report"] if entry is not None else ""


def is_day_void(state: dict, league_id: Any, day: Any) -> bool:
    league = require_league(state, league_id)
    d = require_day_in_span(state, league, day)
    record = get_day_record(state, league["league_id"], d)
    return bool(record is not None and record["void"])
