from __future__ import annotations

from typing import Any, Dict, Iterable, List, Tuple

from config import PERIOD_LENGTH_DAYS
from schema import Status
from .state_core import get_current_day
from .state_membership import active_members
from .state_results import require_day_in_span
from .state_utils import require_league

# Views are derived on every read from the ledger; nothing here is stored.


def dense_ranking(values: Iterable[int]) -> List[int]:
    """[50, 50, 30] -> [1, 1, 2]; ties share a rank, no gaps."""
    vals = list(values)
    distinct = sorted(set(vals), reverse=True)
    rank_of = {v: i + 1 for i, v in enumerate(distinct)}
    return [rank_of[v] for v in vals]


def period_bounds(state: dict, league: Dict[str, Any], period: str, day: Any) -> Tuple[int, int, int]:
    """Return (period_start, period_end, effective_end) for the block holding ``day``.

    Blocks are fixed-size (see PERIOD_LENGTH_DAYS) and anchored at the league
    start day. effective_end is clipped to the close day of a closed league.
    """
    if period not in PERIOD_LENGTH_DAYS:
        raise ValueError(f"unknown period '{period}' (expected one of {tuple(PERIOD_LENGTH_DAYS)})")
    d = require_day_in_span(state, league, day)
    length = PERIOD_LENGTH_DAYS[period]
    start_day = int(league["start_day"])
    p_start = start_day + ((d - start_day) // length) * length
    p_end = p_start + length - 1
    close_day = league["close_day"]
    eff_end = min(p_end, int(close_day)) if close_day is not None else p_end
    return p_start, p_end, eff_end


def _period_ended(state: dict, league: Dict[str, Any], p_end: int) -> bool:
    close_day = league["close_day"]
    if close_day is not None and close_day <= p_end:
        return True
    return get_current_day(state) > p_end


def _days_in_range(days: Dict[int, Any], start: int, end: int) -> List[int]:
    return sorted(d for d in days.keys() if start <= d <= end)


def _status_for(state: dict, league: Dict[str, Any], p_start: int, p_end: int, eff_end: int) -> Status:
    days = state["ledger"].get(league["league_id"]) or {}
    members = active_members(league)
    played_days = _days_in_range(days, p_start, eff_end)

    has_entry = any(
        days[d]["finalized"] or any(pid in days[d]["entries"] for pid in members)
        for d in played_days
    )
    if not has_entry:
        return Status.PENDING
    if _period_ended(state, league, p_end):
        return Status.CLOSED

    for d in range(p_start, eff_end + 1):
        record = days.get(d)
        if record is None:
            return Status.IN_PROGRESS
        # A finalized day stays closed whoever joins or returns afterwards.
        if record["finalized"]:
            continue
        for pid in members:
            entry = record["entries"].get(pid)
            if entry is None or entry["score"] is None:
                return Status.IN_PROGRESS
    return Status.CLOSED


def _scores_for(state: dict, league: Dict[str, Any], p_start: int, eff_end: int) -> List[int]:
    days = state["ledger"].get(league["league_id"]) or {}
    totals = {pid: 0 for pid in league["roster"]}
    for d in _days_in_range(days, p_start, eff_end):
        for pid, entry in days[d]["entries"].items():
            if pid in totals and entry["score"] is not None:
                totals[pid] += int(entry["score"])
    return [totals[pid] for pid in league["roster"]]


def day_points(record: Dict[str, Any]) -> Dict[int, int]:
    """League points awarded by one finalized day.

    Players eligible at finalization are ranked densely by score; the top rank
    earns as many points as there are distinct ranks, each rank below one less.
    A void day awards nothing.
    """
    if not record["finalized"] or record["void"]:
        return {}
    eligible = list(record["eligible"])
    scores = []
    for pid in eligible:
        entry = record["entries"].get(pid)
        scores.append(int(entry["score"]) if entry is not None and entry["score"] is not None else 0)
    ranks = dense_ranking(scores)
    top = max(ranks) if ranks else 0
    return {pid: top - rank + 1 for pid, rank in zip(eligible, ranks)}


def _points_for(state: dict, league: Dict[str, Any], p_start: int, eff_end: int) -> List[int]:
    """Points summed over the finalized days of the period; [] while none is finalized."""
    days = state["ledger"].get(league["league_id"]) or {}
    finalized = [d for d in _days_in_range(days, p_start, eff_end) if days[d]["finalized"]]
    if not finalized:
        return []
    totals = {pid: 0 for pid in league["roster"]}
    for d in finalized:
        for pid, points in day_points(days[d]).items():
            if pid in totals:
                totals[pid] += points
    return [totals[pid] for pid in league["roster"]]


def get_period_status(state: dict, league_id: Any, period: str, day: Any) -> Status:
    league = require_league(state, league_id)
    p_start, p_end, eff_end = period_bounds(state, league, period, day)
    return _status_for(state, league, p_start, p_end, eff_end)


def get_period_scores(state: dict, league_id: Any, period: str, day: Any) -> List[int]:
    league = require_league(state, league_id)
    p_start, p_end, eff_end = period_bounds(state, league, period, day)
    if _status_for(state, league, p_start, p_end, eff_end) == Status.PENDING:
        return []
    return _scores_for(state, league, p_start, eff_end)


def get_period_ranking(state: dict, league_id: Any, period: str, day: Any) -> List[int]:
    scores = get_period_scores(state, league_id, period, day)
    return dense_ranking(scores) if scores else []


def get_period_points(state: dict, league_id: Any, period: str, day: Any) -> List[int]:
    league = require_league(state, league_id)
    p_start, _, eff_end = period_bounds(state, league, period, day)
    return _points_for(state, league, p_start, eff_end)


def get_period_view(state: dict, league_id: Any, period: str, day: Any) -> Dict[str, Any]:
    """Every view of one period in a single pass (HTTP/export helper)."""
    league = require_league(state, league_id)
    p_start, p_end, eff_end = period_bounds(state, league, period, day)
    status = _status_for(state, league, p_start, p_end, eff_end)
    scores = [] if status == Status.PENDING else _scores_for(state, league, p_start, eff_end)
    return {
        "league_id": league["league_id"],
        "period": period,
        "start_day": p_start,
        "end_day": p_end,
        "status": status.value,
        "players": list(league["roster"]),
        "scores": scores,
        "ranking": dense_ranking(scores) if scores else [],
        "points": _points_for(state, league, p_start, eff_end),
    }
