from __future__ import annotations

from typing import Dict, List, Optional

from ..schemas import FieldingAction, OutDetail


def fielding_credits(
    fielding_position: Optional[str],
    out_details: List[OutDetail],
    defense: Optional[Dict[str, str]] = None,
    result: Optional[str] = None,
) -> List[FieldingAction]:
    """Putout/assist/error credits for one play.

    Every OutDetail credits its thrower with an assist and its receiver with
    the putout. On an ``error`` result the fielder who misplayed the ball is
    charged with the error. Otherwise the fielder who handled the ball gets a
    "fielded" entry unless one of the outs already credits that fielder
    (F8, 6-3, 6-4-3, ...).
    """
    defense = defense or {}

    def act(position: str, action: str) -> FieldingAction:
        return FieldingAction(position=position, action=action, player_id=defense.get(position))

    actions: List[FieldingAction] = []
    if fielding_position:
        if result == "error":
            actions.append(act(fielding_position, "error"))
        else:
            credited = any(fielding_position in (d.throwing_position, d.putting_out_position) for d in out_details)
            if not credited:
                actions.append(act(fielding_position, "fielded"))

    for d in out_details:
        if d.throwing_position:
            actions.append(act(d.throwing_position, "assist"))
        actions.append(act(d.putting_out_position, "putout"))
    return actions


def putouts_by_position(actions: List[FieldingAction]) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for a in actions:
        if a.action == "putout":
            out[a.position] = out.get(a.position, 0) + 1
    return out
