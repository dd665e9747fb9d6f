# schema.py
from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Tuple
import re

from config import FULL_NAME_MAX_LEN, FULL_NAME_MIN_LEN, NAME_MAX_LEN, NAME_MIN_LEN
from errors import ILLEGAL_OPERATION, INVALID_EMAIL, INVALID_NAME, PortalError

# ============================================================================
# 0) Single Source of Truth: IDs / Versions
# ============================================================================

SCHEMA_VERSION: str = "1.0"

# IMPORTANT:
# - Player and league ids are positive ints allocated by the portal counters.
# - Every cross-entity reference (owners, roster, invites) stores these ids, never objects.


class Status(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    CLOSED = "CLOSED"


class GameType(str, Enum):
    CHESS = "CHESS"
    WORDLE = "WORDLE"
    SUDOKU = "SUDOKU"
    CROSSWORD = "CROSSWORD"
    TRIVIA = "TRIVIA"


ALLOWED_STATUSES: Tuple[str, ...] = tuple(s.value for s in Status)
ALLOWED_GAME_TYPES: Tuple[str, ...] = tuple(g.value for g in GameType)
PERIODS: Tuple[str, ...] = ("day", "week", "month", "year")

# local@domain, no whitespace anywhere, exactly one '@'
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+$")


# ============================================================================
# 1) Normalization / Validation Utilities (must be used everywhere)
# ============================================================================

def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def validate_display_name(
    value: Any,
    *,
    what: str = "name",
    min_len: int = NAME_MIN_LEN,
    max_len: int = NAME_MAX_LEN,
) -> str:
    """Names: 1..20 chars by default, no leading/trailing whitespace."""
    if not isinstance(value, str):
        raise PortalError(INVALID_NAME, f"{what} must be a string", {"value": value})
    if value != value.strip():
        raise PortalError(INVALID_NAME, f"{what} must not start or end with whitespace", {"value": value})
    if not (min_len <= len(value) <= max_len):
        raise PortalError(
            INVALID_NAME,
            f"{what} must be {min_len}-{max_len} characters",
            {"value": value, "length": len(value)},
        )
    return value


def validate_full_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    return validate_display_name(value, what="name", min_len=FULL_NAME_MIN_LEN, max_len=FULL_NAME_MAX_LEN)


def validate_phone(value: Any) -> str:
    """Free-form contact number; empty string when unknown."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise PortalError(ILLEGAL_OPERATION, "phone must be a string", {"value": value})
    return value.strip()


def validate_email(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise PortalError(INVALID_EMAIL, "email is empty", {"value": value})
    if not EMAIL_RE.match(value):
        raise PortalError(INVALID_EMAIL, f"invalid email '{value}'", {"value": value})
    return value


def email_key(email: str) -> str:
    """Comparison key for email uniqueness (case-insensitive)."""
    return str(email).strip().casefold()


def normalize_game_type(value: Any) -> GameType:
    if isinstance(value, GameType):
        return value
    s = str(value).strip().upper()
    if s not in ALLOWED_GAME_TYPES:
        raise ValueError(f"invalid game_type '{value}' (expected one of {ALLOWED_GAME_TYPES})")
    return GameType(s)


def normalize_id(value: Any, *, what: str = "id") -> int:
    """Ids arrive as ints (or int-like strings from the HTTP layer)."""
    if _is_int(value):
        return int(value)
    s = str(value).strip()
    if not s.lstrip("-").isdigit():
        raise ValueError(f"invalid {what} '{value}' (expected int)")
    return int(s)

