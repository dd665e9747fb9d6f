"""League table export: one row per roster member, every period side by side."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

from schema import PERIODS
from state_modules.state_store import locked
from state_modules.state_utils import require_league, require_player
from state_modules.state_views import get_period_view

logger = logging.getLogger(__name__)


def _table_rows(s: dict, league_id: int, day: int) -> List[Dict[str, Any]]:
    league = require_league(s, league_id)
    lid = league["league_id"]
    views = {period: get_period_view(s, lid, period, day) for period in PERIODS}

    out: List[Dict[str, Any]] = []
    for idx, pid in enumerate(league["roster"]):
        row: Dict[str, Any] = {
            "league_id": lid,
            "day": day,
            "player_id": pid,
            "display_name": require_player(s, pid)["display_name"],
            "active": bool(league["member_active"][pid]),
        }
        for period, view in views.items():
            row[f"{period}_status"] = view["status"]
            row[f"{period}_score"] = view["scores"][idx] if view["scores"] else 0
            row[f"{period}_rank"] = view["ranking"][idx] if view["ranking"] else None
            row[f"{period}_points"] = view["points"][idx] if view["points"] else None
        out.append(row)
    return out


def build_league_table(league_id: int, day: int):
    """Return a pandas DataFrame with ``{period}_status/score/rank/points`` columns.

    All rows come from one locked read, so a concurrent write never lands
    between two players' rows. Pending periods have no scores; their score
    column is 0 and rank is empty. Points stay empty until a day is finalized.
    """
    import pandas as pd  # local import so the portal runs without pandas outside exports

    with locked() as s:
        rows = _table_rows(s, league_id, day)
    return pd.DataFrame(rows)


def export_league_table(league_id: int, day: int, path: str | Path) -> Path:
    df = build_league_table(league_id, day)
    out_path = Path(path)
    df.to_csv(str(out_path), index=False)
    logger.info("league %s table for day %s exported to %s (%d rows)", league_id, day, out_path, len(df))
    return out_path
