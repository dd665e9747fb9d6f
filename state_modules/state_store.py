from __future__ import annotations

import logging
from contextlib import contextmanager
from copy import deepcopy
from threading import RLock
from typing import Any, Callable, Dict, Iterator, TypeVar

from config import default_current_day
from state_schema import create_default_state, validate_game_state

logger = logging.getLogger(__name__)

T = TypeVar("T")

# -------------------------------------------------------------------------
# 1. Global GAME_STATE (single authority over players, leagues and ledger)
# -------------------------------------------------------------------------
GAME_STATE: Dict[str, Any] = create_default_state(default_current_day())

# NOTE: Single-process safety. Every mutation and every read runs under this
# lock for its full duration, so no caller observes a half-applied change.
_STATE_LOCK = RLock()


@contextmanager
def locked() -> Iterator[dict]:
    """Hold the state lock and yield the committed state (read-only by convention)."""
    with _STATE_LOCK:
        yield GAME_STATE


def _swap_in(new_state: dict) -> None:
    # Replace contents in place so module-level references stay valid.
    GAME_STATE.clear()
    GAME_STATE.update(new_state)


def atomic_update(mutator: Callable[[dict], T]) -> T:
    """Run ``mutator`` on a working copy, validate, then commit.

    Any exception raised by the mutator or by validation leaves GAME_STATE
    untouched. Returns the mutator's return value.
    """
    with _STATE_LOCK:
        working = deepcopy(GAME_STATE)
        result = mutator(working)
        validate_game_state(working)
        _swap_in(working)
        return result


def replace_state(new_state: dict) -> None:
    """Validated wholesale replacement (snapshot load, test fixtures)."""
    with _STATE_LOCK:
        candidate = deepcopy(new_state)
        validate_game_state(candidate)
        _swap_in(candidate)


def reset_state_for_dev(*, current_day: int | None = None) -> None:
    """Empty store with fresh id counters."""
    with _STATE_LOCK:
        day = GAME_STATE.get("current_day") if current_day is None else current_day
        if day is None:
            day = default_current_day()
        _swap_in(create_default_state(int(day)))
        logger.debug("state reset (current_day=%s)", day)
