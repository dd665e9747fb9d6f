import os
from datetime import date
from typing import Dict, Optional

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Snapshot store (SQLite). Overridable per process.
DEFAULT_DB_PATH = os.environ.get("GAMES_LEAGUE_DB_PATH") or os.path.join(BASE_DIR, "games_league.db")

# Name rules (player display names and league names share the same bounds)
NAME_MIN_LEN = 1
NAME_MAX_LEN = 20

# Full (legal) player names are optional but longer when given.
FULL_NAME_MIN_LEN = 5
FULL_NAME_MAX_LEN = 50

# Results may be (re)registered or voided while current_day <= day + 1.
CORRECTION_WINDOW_DAYS = 2

# Fixed-size aggregation blocks, anchored at the league start day.
PERIOD_LENGTH_DAYS: Dict[str, int] = {
    "day": 1,
    "week": 7,
    "month": 30,
    "year": 365,
}

# Anonymised identity written by player deactivation.
DEACTIVATED_NAME_FMT = "deactivated{player_id}"
RESERVED_EMAIL_DOMAIN = "anonymised.invalid"
DEACTIVATED_EMAIL_FMT = "deactivated{player_id}@" + RESERVED_EMAIL_DOMAIN


def _initial_day_from_env() -> Optional[int]:
    raw = os.environ.get("GAMES_LEAGUE_START_DAY")
    if raw is None or not str(raw).strip():
        return None
    try:
        return int(raw)
    except ValueError:
        print("[WARN] GAMES_LEAGUE_START_DAY is not an int, falling back to today:", raw)
        return None


def default_current_day() -> int:
    """Initial clock value: env override, else today's real epoch day."""
    override = _initial_day_from_env()
    if override is not None:
        return override
    return date.today().toordinal() - date(1970, 1, 1).toordinal()
