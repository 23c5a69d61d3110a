from __future__ import annotations

from typing import List, Optional

from ..schemas import OutDetail


_HIT_CODES = {"single": "1B", "double": "2B", "triple": "3B"}
_SIMPLE = {
    "walk": "BB",
    "hit_by_pitch": "HBP",
    "strikeout_swinging": "K",
    "strikeout_looking": "KL",
    "dropped_third_strike": "K-D3",
}


# Lead runner first, batter last: the order the throws are made in
_PLAY_ORDER = {"3": 0, "2": 1, "1": 2, "home": 3}


def _chain(details: List[OutDetail]) -> str:
    """Fielder sequence across every out of the play (6-4-3, 5-4-3, 3U).

    A fielder who takes one throw and makes the next appears once.
    """
    seq: List[str] = []
    for d in sorted(details, key=lambda d: _PLAY_ORDER[d.from_base]):
        if d.throwing_position and (not seq or seq[-1] != d.throwing_position):
            seq.append(d.throwing_position)
        if not seq or seq[-1] != d.putting_out_position:
            seq.append(d.putting_out_position)
    if not seq:
        return ""
    if len(seq) == 1:
        return f"{seq[0]}U"
    return "-".join(seq)


def _multi_out(outs_recorded: int) -> str:
    if outs_recorded >= 3:
        return " TP"
    if outs_recorded == 2:
        return " DP"
    return ""


def summarize_play(
    result: str,
    fielding_position: Optional[str] = None,
    outfield_direction: Optional[str] = None,
    safety_bunt: bool = False,
    outs_before: int = 0,
    outs_after: int = 0,
    out_details: Optional[List[OutDetail]] = None,
) -> str:
    """Scorebook shorthand for a plate appearance (6-3, F8, HR/center, ...)."""
    if result in _SIMPLE:
        return _SIMPLE[result]

    details = list(out_details or [])
    extra = _multi_out(outs_after - outs_before)

    if result in _HIT_CODES:
        code = _HIT_CODES[result]
        if outfield_direction:
            code += f"/{outfield_direction}"
        elif fielding_position:
            code += f"-{fielding_position}"
        return code + (" (bunt)" if safety_bunt else "")
    if result in ("homerun", "running_homerun"):
        code = "HR" if result == "homerun" else "IPHR"
        return f"{code}/{outfield_direction}" if outfield_direction else code
    if result == "groundout":
        return (_chain(details) or "G") + extra
    if result == "flyout":
        return f"F{fielding_position or ''}" + extra
    if result == "lineout":
        return f"L{fielding_position or ''}" + extra
    if result == "sacrifice_fly":
        return f"SF{fielding_position or ''}"
    if result == "bunt_out":
        return f"BO {_chain(details)}".strip() + extra
    if result == "sacrifice_bunt":
        return f"SH {_chain(details)}".strip()
    if result == "fielders_choice":
        return f"FC{fielding_position or ''}"
    if result == "error":
        return f"E{fielding_position or ''}"
    return result
