from __future__ import annotations

from typing import Dict, List, Optional

from ..models.outcome_classifier import BATTING_RESULTS
from ..schemas import BattingLine, Half, MatchDocument
from ..utils.roster import Roster

STRIKEOUTS = ("strikeout_swinging", "strikeout_looking", "dropped_third_strike")
_EXTRA_BASES = {"double": "doubles", "triple": "triples", "homerun": "home_runs", "running_homerun": "home_runs"}


def batting_lines(doc: MatchDocument, half: Optional[Half] = None, roster: Optional[Roster] = None) -> List[BattingLine]:
    """Per-player batting, baserunning and fielding lines from the play history.

    ``half`` keeps one side: its plate appearances and runner events, plus the
    fielding it did while the other side batted. Lines are in order of first
    appearance.
    """
    roster = roster or Roster()
    lines: Dict[str, BattingLine] = {}

    def line(player_id: str) -> BattingLine:
        if player_id not in lines:
            lines[player_id] = BattingLine(player_id=player_id, name=roster.display_name(player_id))
        return lines[player_id]

    for play in doc.plays:
        if half is None or play.half == half:
            ln = line(play.batter_id)
            d = BATTING_RESULTS[play.batting_result]
            ln.plate_appearances += 1
            ln.at_bats += int(d.is_at_bat)
            ln.sacrifices += int(d.is_sacrifice)
            ln.rbi += play.rbi
            if d.is_hit:
                ln.hits += 1
                attr = _EXTRA_BASES.get(play.batting_result, "singles")
                setattr(ln, attr, getattr(ln, attr) + 1)
            if play.batting_result in ("walk", "hit_by_pitch"):
                ln.walks_hbp += 1
            if play.batting_result in STRIKEOUTS:
                ln.strikeouts += 1
            for runner_id in play.scored_runner_ids:
                line(runner_id).runs += 1
        if half is None or play.half != half:
            for a in play.fielding:
                if a.player_id is None or a.action == "fielded":
                    continue
                ln = line(a.player_id)
                if a.action == "putout":
                    ln.putouts += 1
                elif a.action == "assist":
                    ln.assists += 1
                else:
                    ln.errors += 1

    # The full event log: events that closed a half never reach a PlayRecord
    for ev in doc.runner_events:
        if half is not None and ev.half != half:
            continue
        if ev.type == "steal" and ev.to_base != "out":
            line(ev.runner_id).stolen_bases += 1
        if ev.to_base == "home":
            line(ev.runner_id).runs += 1
    return list(lines.values())
