from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..errors import CollaboratorError, InputValidationError, MatchNotPlaying, PlayRejected
from ..schemas import (
    Count,
    CountTransition,
    DraftPlay,
    GameState,
    Matchup,
    PitchResult,
    PitchType,
    PlayRecord,
    RunnerEvent,
    SessionView,
    ZonePoint,
)
from ..store.game_state_store import GameStateStore
from ..utils.roster import Roster
from .advancement_model import RunnerAdvancementResolver
from .commit_engine import PlayCommitEngine
from .count_tracker import CountTracker
from .disambiguation import DisambiguationResolver, default_outs_after
from .outcome_classifier import OutcomeClassifier

_LOGGER = logging.getLogger(__name__)

_TARGET_WORDS = {"1": "to first", "2": "to second", "3": "to third", "home": "scores", "out": "out"}


class PlateAppearanceSession:
    """Drives one match's plate appearances from first pitch to commit.

    Pitch input -> result selection -> disambiguation -> runner advancement ->
    commit. Only one scorer drives a session; it is not thread-safe.
    """

    def __init__(
        self,
        match_id: str,
        store: GameStateStore,
        engine: Optional[PlayCommitEngine] = None,
        roster: Optional[Roster] = None,
    ):
        self.match_id = match_id
        self.store = store
        self.classifier = OutcomeClassifier()
        self.resolver = DisambiguationResolver(self.classifier)
        self.advancement = RunnerAdvancementResolver()
        self.engine = engine or PlayCommitEngine(store, self.resolver, self.advancement)
        self.roster = roster or Roster()
        self.tracker = CountTracker()
        self.draft: Optional[DraftPlay] = None
        self.defense: Dict[str, str] = {}
        self._context: Optional[Dict[str, Any]] = None

    # -- lifecycle ---------------------------------------------------------
    def _playing_state(self) -> GameState:
        state = self.store.snapshot(self.match_id)
        if state.status != "PLAYING":
            raise MatchNotPlaying(f"match {self.match_id} is {state.status}, not PLAYING")
        return state

    def _require_open(self) -> Dict[str, Any]:
        if self._context is None:
            raise InputValidationError("no plate appearance is open")
        return self._context

    def _require_draft(self) -> DraftPlay:
        if self.draft is None:
            raise InputValidationError("the plate appearance has not ended yet")
        return self.draft

    def open(self, batter_id: str, pitcher_id: str, defense: Optional[Dict[str, str]] = None) -> SessionView:
        if self._context is not None and (len(self.tracker.log) or self.tracker.ended):
            raise InputValidationError("a plate appearance is already in progress")
        state = self._playing_state()
        # Publish first: a failed write must leave the session as it was
        self.engine.update_live(
            self.match_id, Count(outs=state.outs), Matchup(batter_id=batter_id, pitcher_id=pitcher_id)
        )
        self._context = {
            "inning": state.inning,
            "half": state.half,
            "outs": state.outs,
            "runners": state.runners,
            "slot": getattr(state.batting_index, state.half) + 1,
            "batter_id": batter_id,
            "pitcher_id": pitcher_id,
        }
        if defense is not None:
            self.defense = dict(defense)
        self.tracker.reset(outs=state.outs)
        self.draft = None
        return self.view()

    def _new_draft(self) -> DraftPlay:
        ctx = self._require_open()
        trigger = self.tracker.trigger
        if trigger is None:
            raise InputValidationError("the plate appearance has not ended yet")
        draft = DraftPlay(
            match_id=self.match_id,
            inning=ctx["inning"],
            half=ctx["half"],
            batting_order_slot=ctx["slot"],
            batter_id=ctx["batter_id"],
            pitcher_id=ctx["pitcher_id"],
            outs_before=ctx["outs"],
            runners_before=ctx["runners"],
            pitches=self.tracker.log.events,
            trigger=trigger,
            result=self.classifier.default_result(trigger),
        )
        return self._seed_runners(draft)

    def _seed_runners(self, draft: DraftPlay) -> DraftPlay:
        # Automatic destinations need the disambiguation answers first
        if self.resolver.is_complete(draft) and not draft.assignments:
            return self.advancement.open(draft)
        return draft

    # -- pitch input -------------------------------------------------------
    def record_pitch(
        self,
        result: PitchResult,
        location: Optional[ZonePoint] = None,
        pitch_type: PitchType = "unknown",
    ) -> CountTransition:
        ctx = self._require_open()
        self._playing_state()
        try:
            transition = self.tracker.record_pitch(result, location=location, pitch_type=pitch_type)
        except (ValueError, RuntimeError) as e:
            raise InputValidationError(str(e)) from e
        try:
            self.engine.update_live(
                self.match_id, self.tracker.count, Matchup(batter_id=ctx["batter_id"], pitcher_id=ctx["pitcher_id"])
            )
        except CollaboratorError:
            # Not published, so not recorded: the scorer retries the same pitch
            self.tracker.withdraw_last()
            raise
        if transition.kind == "end":
            self.draft = self._new_draft()
        return transition

    def runner_event(
        self,
        type: str,
        from_base: str,
        to_base: str,
        putting_out_position: Optional[str] = None,
        throwing_position: Optional[str] = None,
    ) -> Tuple[RunnerEvent, GameState]:
        """Steal, wild pitch, pickoff... recorded between pitches."""
        ctx = self._require_open()
        if self.tracker.ended:
            raise InputValidationError("runner events are recorded between pitches, not after the last one")
        seq = len(self.tracker.log) or None
        event, state = self.engine.commit_runner_event(
            self.match_id,
            type,
            from_base,
            to_base,
            putting_out_position=putting_out_position,
            throwing_position=throwing_position,
            pitch_seq=seq,
            pitcher_id=ctx["pitcher_id"],
            expected=(ctx["outs"], ctx["runners"]),
        )
        if (state.inning, state.half) != (ctx["inning"], ctx["half"]):
            # Third out: the half is over and the batter keeps the turn
            self._context = None
            self.tracker.reset(outs=0)
        else:
            ctx["outs"] = state.outs
            ctx["runners"] = state.runners
            self.tracker.outs = state.outs
        return event, state

    # -- result / disambiguation ------------------------------------------
    def select_result(self, result: str) -> SessionView:
        draft = self.resolver.select_result(self._require_draft(), result)
        self.draft = self._seed_runners(draft)
        return self.view()

    def answer(self, step: str, value: Any) -> SessionView:
        draft = self.resolver.answer(self._require_draft(), step, value)
        self.draft = self._seed_runners(draft)
        return self.view()

    # -- runner advancement ------------------------------------------------
    def _require_runner_phase(self) -> DraftPlay:
        draft = self._require_draft()
        if draft.result is None:
            raise InputValidationError("select a batting result first")
        step = self.resolver.next_step(draft)
        if step is not None:
            raise InputValidationError(f"{step} must be answered before runners move")
        return draft

    def runner_candidates(self, target: str) -> List[Tuple[str, str]]:
        return self.advancement.eligible_runners(self._require_runner_phase(), target)

    def assign_runner(
        self,
        from_base: str,
        target: str,
        putting_out_position: Optional[str] = None,
        throwing_position: Optional[str] = None,
    ) -> SessionView:
        draft = self._require_runner_phase()
        self.draft = self.advancement.assign(
            draft,
            from_base,
            target,
            putting_out_position=putting_out_position,
            throwing_position=throwing_position,
        )
        return self.view()

    def unassign_runner(self, from_base: str) -> SessionView:
        self.draft = self.advancement.unassign(self._require_runner_phase(), from_base)
        return self.view()

    # -- cancel / restart / commit ----------------------------------------
    def cancel(self) -> SessionView:
        """Discard the draft and reopen the count; earlier pitches stay."""
        self._require_open()
        if self.tracker.ended:
            self.tracker.withdraw_terminal()
        self.draft = None
        return self.view()

    def restart_resolution(self) -> SessionView:
        """Fresh draft from the same terminal pitch, against the current game state."""
        ctx = self._require_open()
        if not self.tracker.ended:
            raise InputValidationError("the plate appearance has not ended yet")
        state = self.store.snapshot(self.match_id)
        if (state.inning, state.half) != (ctx["inning"], ctx["half"]):
            raise InputValidationError("the half-inning has changed; cancel and open a new plate appearance")
        ctx["outs"] = state.outs
        ctx["runners"] = state.runners
        if self.draft is None:
            self.draft = self._new_draft()
        else:
            draft = self.resolver.cancel(self.draft).model_copy(
                update={"outs_before": state.outs, "runners_before": state.runners}
            )
            self.draft = self._seed_runners(draft)
        return self.view()

    def commit(self) -> PlayRecord:
        draft = self._require_draft()
        try:
            record = self.engine.commit(draft, self.defense)
        except PlayRejected as e:
            _LOGGER.warning("match %s play rejected: %s", self.match_id, e.rule)
            self.draft = None
            raise
        self._context = None
        self.draft = None
        self.tracker.reset(outs=record.outs_after % 3)
        return record

    # -- read side ---------------------------------------------------------
    def _phase(self) -> str:
        if self._context is None:
            return "idle"
        if not self.tracker.ended:
            return "pitching"
        if self.draft is None:
            return "rejected"
        if self.draft.result is None:
            return "result"
        if self.resolver.next_step(self.draft) is not None:
            return "disambiguation"
        if self.advancement.pending(self.draft):
            return "runners"
        return "ready"

    def view(self) -> SessionView:
        phase = self._phase()
        draft = self.draft
        view = SessionView(phase=phase, count=self.tracker.count, pitches=self.tracker.log.events)
        if draft is None:
            return view
        step = self.resolver.next_step(draft)
        pending = self.advancement.pending(draft) if step is None and draft.result else []
        nxt = pending[0] if pending else None
        return view.model_copy(
            update={
                "trigger": draft.trigger,
                "result": draft.result,
                "options": self.classifier.options(draft.trigger, draft.runners_before, draft.outs_before),
                "next_step": step,
                "step_choices": self.resolver.choices(draft, step),
                "step_default": default_outs_after(draft.outs_before) if step == "outs_after" else None,
                "answers": draft.answers,
                "pending_runners": pending,
                "next_runner": nxt,
                "suggested_target": self.advancement.suggested_target(draft, nxt) if nxt else None,
                "assignments": draft.assignments,
            }
        )

    def confirmation(self) -> List[str]:
        """Human-readable lines for the scorer to confirm before commit."""
        draft = self._require_draft()
        name = self.roster.display_name
        lines = [f"{name(draft.batter_id)}: {draft.result or 'no result selected'}"]
        for origin in ("1", "2", "3", "home"):
            a = draft.assignments.get(origin)
            if a is None:
                continue
            who = "batter" if origin == "home" else f"runner on {origin}"
            lines.append(f"{who} {name(a.runner_id)} {_TARGET_WORDS[a.target]}")
        return lines

