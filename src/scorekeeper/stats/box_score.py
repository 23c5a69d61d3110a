from __future__ import annotations

from ..models.outcome_classifier import BATTING_RESULTS
from ..schemas import BoxscoreResponse, MatchDocument


def box_score(doc: MatchDocument) -> BoxscoreResponse:
    """Line score, totals, hits and left-on-base per side."""
    state = doc.state
    hits = {"top": 0, "bottom": 0}
    for play in doc.plays:
        if BATTING_RESULTS[play.batting_result].is_hit:
            hits[play.half] += 1
    return BoxscoreResponse(
        match_id=state.match_id,
        innings={"top": list(state.score_by_inning.top), "bottom": list(state.score_by_inning.bottom)},
        runs={"top": state.score_total.top, "bottom": state.score_total.bottom},
        hits=hits,
        left_on_base={"top": sum(state.left_on_base.top), "bottom": sum(state.left_on_base.bottom)},
        plays=len(doc.plays),
    )
