from __future__ import annotations

from typing import Dict, List, Optional

from ..models.outcome_classifier import BATTING_RESULTS
from ..schemas import MatchDocument, PitchingLine
from ..utils.roster import Roster
from .batting import STRIKEOUTS


def innings_pitched(outs: int) -> str:
    """Scorebook innings: 14 outs -> "4.2"."""
    return f"{outs // 3}.{outs % 3}"


def pitching_lines(doc: MatchDocument, roster: Optional[Roster] = None) -> List[PitchingLine]:
    roster = roster or Roster()
    lines: Dict[str, PitchingLine] = {}

    def line(player_id: str) -> PitchingLine:
        if player_id not in lines:
            lines[player_id] = PitchingLine(player_id=player_id, name=roster.display_name(player_id))
        return lines[player_id]

    for play in doc.plays:
        ln = line(play.pitcher_id)
        result = play.batting_result
        ln.batters_faced += 1
        ln.pitches += len(play.pitches)
        ln.outs_recorded += max(0, play.outs_after - play.outs_before)
        ln.runs += len(play.scored_runner_ids)
        if BATTING_RESULTS[result].is_hit:
            ln.hits += 1
            if result in ("homerun", "running_homerun"):
                ln.home_runs += 1
        if result == "sacrifice_bunt":
            ln.sacrifice_bunts += 1
        elif result == "sacrifice_fly":
            ln.sacrifice_flies += 1
        elif result in STRIKEOUTS:
            ln.strikeouts += 1
        elif result == "walk":
            ln.walks += 1
        elif result == "hit_by_pitch":
            ln.hit_by_pitch += 1

    for ev in doc.runner_events:
        if ev.pitcher_id is None:
            continue
        ln = line(ev.pitcher_id)
        if ev.to_base == "out":
            ln.outs_recorded += 1
        elif ev.to_base == "home":
            ln.runs += 1
        if ev.type == "wildpitch":
            ln.wild_pitches += 1

    for ln in lines.values():
        ln.innings_pitched = innings_pitched(ln.outs_recorded)
    return list(lines.values())
