from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from config import DEACTIVATED_EMAIL_FMT, DEACTIVATED_NAME_FMT
from errors import ILLEGAL_OPERATION, PortalError
from .state_utils import require_player

logger = logging.getLogger(__name__)


@dataclass
class DeactivationPlan:
    """Every write deactivation will make, collected before any of them happen."""

    player_id: int
    placeholder_name: str
    placeholder_email: str
    reports_to_blank: List[Tuple[int, int]] = field(default_factory=list)  # (league_id, day)
    memberships_to_disable: List[int] = field(default_factory=list)
    invites_to_drop: List[int] = field(default_factory=list)


def _sole_owned_leagues(state: dict, player_id: int) -> List[int]:
    return sorted(
        lid for lid, league in state["leagues"].items()
        if league["owners"] == [player_id]
    )


def plan_deactivation(state: dict, player_id: Any) -> Optional[DeactivationPlan]:
    """Read-only pass. Returns None when the player is already deactivated."""
    player = require_player(state, player_id)
    pid = player["player_id"]
    if not player["active"]:
        return None

    sole_owned = _sole_owned_leagues(state, pid)
    if sole_owned:
        raise PortalError(
            ILLEGAL_OPERATION,
            f"player {pid} is the sole owner of leagues {sole_owned}",
            {"player_id": pid, "league_ids": sole_owned},
        )

    plan = DeactivationPlan(
        player_id=pid,
        placeholder_name=DEACTIVATED_NAME_FMT.format(player_id=pid),
        placeholder_email=DEACTIVATED_EMAIL_FMT.format(player_id=pid),
    )
    for lid, days in state["ledger"].items():
        for day, record in days.items():
            if pid in record["entries"]:
                plan.reports_to_blank.append((lid, day))
    for lid, league in state["leagues"].items():
        if pid in league["member_active"]:
            plan.memberships_to_disable.append(lid)
        if pid in league["player_invites"]:
            plan.invites_to_drop.append(lid)
    return plan


def apply_deactivation_plan(state: dict, plan: DeactivationPlan) -> None:
    pid = plan.player_id
    player = state["players"][pid]
    player["display_name"] = plan.placeholder_name
    player["email"] = plan.placeholder_email
    player["name"] = plan.placeholder_name
    player["phone"] = ""

    for lid, day in plan.reports_to_blank:
        # Scores stay, only the free text goes.
        state["ledger"][lid][day]["entries"][pid]["report"] = ""
    for lid in plan.memberships_to_disable:
        state["leagues"][lid]["member_active"][pid] = False
    for lid in plan.invites_to_drop:
        state["leagues"][lid]["player_invites"].remove(pid)

    player["active"] = False


def deactivate_player(state: dict, player_id: Any) -> bool:
    """Returns False if the player was already deactivated."""
    plan = plan_deactivation(state, player_id)
    if plan is None:
        return False
    apply_deactivation_plan(state, plan)
    logger.info(
        "player %s deactivated: %d reports blanked, %d memberships disabled, %d invites dropped",
        plan.player_id,
        len(plan.reports_to_blank),
        len(plan.memberships_to_disable),
        len(plan.invites_to_drop),
    )
    return True
