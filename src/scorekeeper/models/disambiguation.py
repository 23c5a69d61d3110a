from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..errors import InputValidationError
from ..schemas import Answers, DraftPlay
from .outcome_classifier import OutcomeClassifier


FIELDERS = ("1", "2", "3", "4", "5", "6", "7", "8", "9")
BAT_TYPES = ("ground", "fly", "line")
OUTFIELD_DIRECTIONS = ("left", "left-center", "center", "right-center", "right")

# step -> Answers field it fills
STEP_FIELDS: Dict[str, str] = {
    "bat_type": "bat_type",
    "fielding_position": "fielding_position",
    "outfield_direction": "outfield_direction",
    "first_base_touch": "first_base_touched",
    "putout_credit": "putout_position",
    "safety_bunt": "safety_bunt",
    "outs_after": "outs_after",
}

_YES = {"yes", "y", "true", "1"}
_NO = {"no", "n", "false", "0"}


def outs_after_options(outs_before: int) -> List[int]:
    """A play adds at most two outs and the half-inning caps at three."""
    return [o for o in range(outs_before, outs_before + 3) if o <= 3]


def default_outs_after(outs_before: int) -> int:
    return min(3, outs_before + 1)


def _as_bool(value: Any, step: str) -> bool:
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in _YES:
        return True
    if s in _NO:
        return False
    raise InputValidationError(f"{step} expects yes or no")


def _as_fielder(value: Any, step: str) -> str:
    s = str(value).strip()
    if s not in FIELDERS:
        raise InputValidationError(f"{step} expects a fielding position 1-9")
    return s


class DisambiguationResolver:
    """Ask the flagged single-question steps in their fixed order.

    Each method takes a draft and returns a new one; the input draft is
    never modified.
    """

    def __init__(self, classifier: Optional[OutcomeClassifier] = None):
        self.classifier = classifier or OutcomeClassifier()

    def _prune(self, draft: DraftPlay, answers: Answers) -> Answers:
        # Clear answers whose step no longer applies; repeat since the
        # first-base questions hang off the fielding position.
        if draft.result is None:
            return Answers()
        while True:
            steps = set(self.classifier.requirements(draft.result, answers).steps())
            stale = {STEP_FIELDS[s]: None for s in STEP_FIELDS if s not in steps and getattr(answers, STEP_FIELDS[s]) is not None}
            if not stale:
                return answers
            answers = answers.model_copy(update=stale)

    def select_result(self, draft: DraftPlay, result: str) -> DraftPlay:
        chosen = self.classifier.validate_selection(draft.trigger, result, draft.runners_before, draft.outs_before)
        if chosen == draft.result:
            return draft
        updated = draft.model_copy(update={"result": chosen, "assignments": {}})
        return updated.model_copy(update={"answers": self._prune(updated, draft.answers)})

    def required_steps(self, draft: DraftPlay) -> List[str]:
        if draft.result is None:
            return []
        return self.classifier.classify(draft.result, draft.answers).requirements.steps()

    def pending_steps(self, draft: DraftPlay) -> List[str]:
        return [s for s in self.required_steps(draft) if getattr(draft.answers, STEP_FIELDS[s]) is None]

    def next_step(self, draft: DraftPlay) -> Optional[str]:
        pending = self.pending_steps(draft)
        return pending[0] if pending else None

    def is_complete(self, draft: DraftPlay) -> bool:
        return draft.result is not None and not self.pending_steps(draft)

    def choices(self, draft: DraftPlay, step: Optional[str]) -> List[Any]:
        if step == "bat_type":
            return list(BAT_TYPES)
        if step == "fielding_position":
            return list(FIELDERS)
        if step == "outfield_direction":
            return list(OUTFIELD_DIRECTIONS)
        if step in ("first_base_touch", "safety_bunt"):
            return [True, False]
        if step == "putout_credit":
            return [f for f in FIELDERS if f != "3"]
        if step == "outs_after":
            return outs_after_options(draft.outs_before)
        return []

    def _coerce(self, draft: DraftPlay, step: str, value: Any) -> Any:
        if step == "bat_type":
            if value not in BAT_TYPES:
                raise InputValidationError("bat type must be ground, fly or line")
            return value
        if step == "fielding_position":
            return _as_fielder(value, step)
        if step == "outfield_direction":
            if value not in OUTFIELD_DIRECTIONS:
                raise InputValidationError("outfield direction must be left, left-center, center, right-center or right")
            return value
        if step in ("first_base_touch", "safety_bunt"):
            return _as_bool(value, step)
        if step == "putout_credit":
            pos = _as_fielder(value, step)
            if pos == "3":
                raise InputValidationError("covering fielder cannot be the first baseman who did not touch the base")
            return pos
        if step == "outs_after":
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                raise InputValidationError("outs after play must be a whole number")
            try:
                outs = int(value)
            except (TypeError, ValueError):
                raise InputValidationError("outs after play must be a whole number") from None
            if outs < draft.outs_before:
                raise InputValidationError("out count cannot decrease")
            if outs not in outs_after_options(draft.outs_before):
                raise InputValidationError("a play records at most two outs and a half-inning at most three")
            return outs
        raise InputValidationError(f"unknown step: {step}")

    def answer(self, draft: DraftPlay, step: str, value: Any) -> DraftPlay:
        if draft.result is None:
            raise InputValidationError("select a batting result first")
        expected = self.next_step(draft)
        if expected is None:
            raise InputValidationError("no question is pending for this play")
        if step != expected:
            raise InputValidationError(f"{expected} must be answered before {step}")
        answers = draft.answers.model_copy(update={STEP_FIELDS[step]: self._coerce(draft, step, value)})
        return draft.model_copy(update={"answers": self._prune(draft, answers), "assignments": {}})

    def cancel(self, draft: DraftPlay) -> DraftPlay:
        """Drop every answer of this plate appearance; the pitches stay."""
        return draft.model_copy(
            update={
                "result": self.classifier.default_result(draft.trigger),
                "answers": Answers(),
                "assignments": {},
            }
        )
