from __future__ import annotations

import logging
from typing import Any

from errors import ILLEGAL_OPERATION, PortalError
from .state_utils import _require_day

logger = logging.getLogger(__name__)


def get_current_day(state: dict) -> int:
    """Return the portal's logical epoch day (SSOT: state['current_day'])."""
    return int(state["current_day"])


def set_current_day(state: dict, day: Any) -> int:
    """Move the clock to ``day``. The clock never moves backwards."""
    target = _require_day(day)
    current = get_current_day(state)
    if target < current:
        raise PortalError(
            ILLEGAL_OPERATION,
            f"cannot move the clock backwards ({current} -> {target})",
            {"current_day": current, "day": target},
        )
    state["current_day"] = target
    if target != current:
        logger.debug("clock moved %s -> %s", current, target)
    return target


def increment_day(state: dict) -> int:
    return set_current_day(state, get_current_day(state) + 1)
