from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Optional, Tuple

from ..errors import InputValidationError, InvariantViolation, MatchNotPlaying, PlayRejected
from ..schemas import (
    BASES,
    Bases,
    Count,
    DraftPlay,
    GameState,
    Half,
    MatchDocument,
    Matchup,
    OutDetail,
    PlayRecord,
    RunnerEvent,
    SideInts,
    SideTotals,
    utcnow,
)
from ..store.game_state_store import GameStateStore
from ..telemetry.play_log import maybe_log_play
from ..utils.notation import summarize_play
from .advancement_model import RunnerAdvancementResolver
from .disambiguation import FIELDERS, DisambiguationResolver
from .fielding import fielding_credits

_LOGGER = logging.getLogger(__name__)

_RANK = {"1": 1, "2": 2, "3": 3, "home": 4}
# Runner event types that end with the runner out
OUT_EVENTS = ("pickoff", "caughtstealing", "out")
NO_RBI_RESULTS = ("error", "dropped_third_strike")


def _other(half: Half) -> Half:
    return "bottom" if half == "top" else "top"


def _add_at(values: List[int], inning: int, n: int) -> List[int]:
    out = list(values)
    while len(out) < inning:
        out.append(0)
    out[inning - 1] += n
    return out


def _side_ints(current: SideInts, half: Half, inning: int, n: int) -> SideInts:
    data = current.model_dump()
    data[half] = _add_at(data[half], inning, n)
    return SideInts(**data)


def _side_totals(current: SideTotals, half: Half, value: int) -> SideTotals:
    data = current.model_dump()
    data[half] = value
    return SideTotals(**data)


class PlayCommitEngine:
    """Apply a resolved plate appearance (or a between-pitch runner event) to GameState.

    Every check runs before anything is written; state and history then go to
    the store as one document. On any failure the stored match is untouched.
    """

    def __init__(
        self,
        store: GameStateStore,
        resolver: Optional[DisambiguationResolver] = None,
        advancement: Optional[RunnerAdvancementResolver] = None,
        lineup_size: int = 9,
        innings: Optional[int] = None,
        play_log_path: Optional[str] = None,
    ):
        self.store = store
        self.resolver = resolver or DisambiguationResolver()
        self.advancement = advancement or RunnerAdvancementResolver()
        self.lineup_size = lineup_size
        # None: the engine never closes the match on its own
        self.innings = innings
        self.play_log_path = play_log_path

    def _playing(self, match_id: str) -> MatchDocument:
        doc = self.store.load(match_id)
        if doc.state.status != "PLAYING":
            raise MatchNotPlaying(f"match {match_id} is {doc.state.status}, not PLAYING")
        return doc

    @staticmethod
    def _check_current(state: GameState, inning: int, half: Half, outs: int, runners: Bases) -> None:
        if (state.inning, state.half, state.outs, state.runners) != (inning, half, outs, runners):
            raise PlayRejected("play was opened against an out-of-date game state")

    def commit(self, draft: DraftPlay, defense: Optional[Dict[str, str]] = None) -> PlayRecord:
        doc = self._playing(draft.match_id)
        state = doc.state
        self._check_current(state, draft.inning, draft.half, draft.outs_before, draft.runners_before)

        if draft.result is None:
            raise InputValidationError("select a batting result first")
        step = self.resolver.next_step(draft)
        if step is not None:
            raise InputValidationError(f"{step} has not been answered")
        try:
            outcome = self.advancement.resolve(draft)
        except PlayRejected:
            raise
        except InvariantViolation as e:
            raise PlayRejected(e.rule) from e

        answers = draft.answers
        outs_recorded = outcome.outs_after - draft.outs_before
        runs = len(outcome.scored_runner_ids)
        no_rbi = draft.result in NO_RBI_RESULTS or (draft.result == "groundout" and outs_recorded >= 2)
        record = PlayRecord(
            play_id=uuid.uuid4().hex,
            index=len(doc.plays) + 1,
            match_id=draft.match_id,
            inning=draft.inning,
            half=draft.half,
            batting_order_slot=draft.batting_order_slot,
            batter_id=draft.batter_id,
            pitcher_id=draft.pitcher_id,
            pitches=draft.pitches,
            batting_result=draft.result,
            safety_bunt=bool(answers.safety_bunt),
            bat_type=answers.bat_type,
            fielding_position=answers.fielding_position,
            outfield_direction=answers.outfield_direction,
            outs_before=draft.outs_before,
            outs_after=outcome.outs_after,
            runners_before=draft.runners_before,
            runners_after=outcome.runners_after,
            scored_runner_ids=outcome.scored_runner_ids,
            out_details=outcome.out_details,
            fielding=fielding_credits(answers.fielding_position, outcome.out_details, defense, result=draft.result),
            runner_events=doc.pending_events,
            rbi=0 if no_rbi else runs,
            summary=summarize_play(
                draft.result,
                fielding_position=answers.fielding_position,
                outfield_direction=answers.outfield_direction,
                safety_bunt=bool(answers.safety_bunt),
                outs_before=draft.outs_before,
                outs_after=outcome.outs_after,
                out_details=outcome.out_details,
            ),
            committed_at=utcnow(),
        )

        new_state = self._apply(state, draft.half, draft.inning, runs, outcome.outs_after, outcome.runners_after)
        idx = (getattr(state.batting_index, draft.half) + 1) % self.lineup_size
        new_state = new_state.model_copy(
            update={
                "batting_index": _side_totals(new_state.batting_index, draft.half, idx),
                "matchup": Matchup(),
            }
        )
        new_doc = doc.model_copy(update={"state": new_state, "plays": doc.plays + [record], "pending_events": []})
        self.store.save(new_doc)

        _LOGGER.info(
            "match %s play %d: %s %s (%d out, %d run)",
            record.match_id,
            record.index,
            record.batter_id,
            record.summary,
            outs_recorded,
            runs,
        )
        maybe_log_play(record, self.play_log_path)
        return record

    def commit_runner_event(
        self,
        match_id: str,
        type: str,
        from_base: str,
        to_base: str,
        putting_out_position: Optional[str] = None,
        throwing_position: Optional[str] = None,
        pitch_seq: Optional[int] = None,
        pitcher_id: Optional[str] = None,
        expected: Optional[Tuple[int, Bases]] = None,
    ) -> Tuple[RunnerEvent, GameState]:
        """Move one runner between pitches. A third out closes the half-inning."""
        doc = self._playing(match_id)
        state = doc.state
        if expected is not None:
            self._check_current(state, state.inning, state.half, expected[0], expected[1])

        if to_base not in _RANK and to_base != "out":
            raise InputValidationError(f"unknown runner target: {to_base}")
        runner_id = state.runners.get(from_base) if from_base in BASES else None
        if runner_id is None:
            raise InputValidationError(f"no runner on {from_base}")
        is_out = to_base == "out"
        if (type in OUT_EVENTS) != is_out:
            raise InputValidationError(f"{type} cannot send the runner to {to_base}")

        detail = None
        if is_out:
            if not putting_out_position:
                raise InputValidationError(f"runner on {from_base} is out: the putout fielder is required")
            for pos in (putting_out_position, throwing_position):
                if pos is not None and pos not in FIELDERS:
                    raise InputValidationError(f"unknown fielding position: {pos}")
            detail = OutDetail(
                runner_id=runner_id,
                from_base=from_base,
                throwing_position=throwing_position,
                putting_out_position=putting_out_position,
            )
        else:
            if _RANK[to_base] <= _RANK[from_base]:
                raise InputValidationError(f"runner on {from_base} cannot move back to {to_base}")
            # Bases between origin and target must be clear, or the runner would pass someone
            for b in BASES:
                if _RANK[from_base] < _RANK[b] <= _RANK[to_base] and state.runners.get(b) is not None:
                    raise PlayRejected(f"base {b} already holds {state.runners.get(b)}")

        event = RunnerEvent(
            type=type,
            runner_id=runner_id,
            from_base=from_base,
            to_base=to_base,
            pitch_seq=pitch_seq,
            out_detail=detail,
            inning=state.inning,
            half=state.half,
            pitcher_id=pitcher_id,
        )

        after = state.runners.as_dict()
        after[from_base] = None
        if not is_out and to_base != "home":
            after[to_base] = runner_id
        runs = 1 if to_base == "home" else 0
        outs = state.outs + (1 if is_out else 0)
        new_state = self._apply(
            state, state.half, state.inning, runs, outs, Bases.from_mapping(after), reset_count=False
        )

        pending = doc.pending_events + [event]
        if outs == 3:
            # The batter keeps the turn; nothing left to attach these events to
            pending = []
        new_doc = doc.model_copy(
            update={"state": new_state, "pending_events": pending, "runner_events": doc.runner_events + [event]}
        )
        self.store.save(new_doc)
        _LOGGER.info("match %s runner event %s: %s %s -> %s", match_id, type, runner_id, from_base, to_base)
        return event, new_state

    def update_live(self, match_id: str, count: Count, matchup: Matchup) -> GameState:
        """Publish the in-progress count and matchup so readers can follow along."""
        doc = self._playing(match_id)
        state = doc.state.model_copy(update={"count": count, "matchup": matchup, "last_updated": utcnow()})
        self.store.save(doc.model_copy(update={"state": state}))
        return state

    def _apply(
        self,
        state: GameState,
        half: Half,
        inning: int,
        runs: int,
        outs: int,
        runners: Bases,
        reset_count: bool = True,
    ) -> GameState:
        if outs > 3:
            raise PlayRejected("a half-inning cannot exceed three outs")
        score_by_inning = _side_ints(state.score_by_inning, half, inning, runs)
        score_total = _side_totals(state.score_total, half, getattr(state.score_total, half) + runs)
        update = {
            "score_by_inning": score_by_inning,
            "score_total": score_total,
            "last_updated": utcnow(),
        }
        if outs == 3:
            nxt_half = _other(half)
            nxt_inning = inning + 1 if half == "bottom" else inning
            update.update(
                {
                    "left_on_base": _side_ints(state.left_on_base, half, inning, runners.count()),
                    "outs": 0,
                    "runners": Bases(),
                    "half": nxt_half,
                    "inning": nxt_inning,
                    "count": Count(),
                    "score_by_inning": _side_ints(score_by_inning, nxt_half, nxt_inning, 0),
                }
            )
        else:
            count = Count(outs=outs) if reset_count else state.count.model_copy(update={"outs": outs})
            update.update({"outs": outs, "runners": runners, "count": count})
        new_state = state.model_copy(update=update)
        if self._game_over(new_state):
            new_state = new_state.model_copy(update={"status": "FINISHED"})
            _LOGGER.info("match %s finished %d-%d", state.match_id, score_total.top, score_total.bottom)
        return new_state

    def _game_over(self, state: GameState) -> bool:
        if self.innings is None:
            return False
        top, bottom = state.score_total.top, state.score_total.bottom
        # Home side ahead once it is batting in the last inning (walk-off included)
        if state.half == "bottom" and state.inning >= self.innings and bottom > top:
            return True
        # A full extra-or-final inning closed with a winner
        return state.half == "top" and state.inning > self.innings and top != bottom
