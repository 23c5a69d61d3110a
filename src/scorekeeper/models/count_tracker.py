from __future__ import annotations

from typing import List, Optional

from ..schemas import Count, CountTransition, PitchEvent, PitchResult, PitchType, Trigger, ZonePoint
from ..utils.zone import course_for


PITCH_RESULTS = ("swing", "looking", "ball", "foul", "inplay", "deadball")


class PitchLog:
    """Append-only pitch sequence for the current plate appearance."""

    def __init__(self):
        self._events: List[PitchEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> List[PitchEvent]:
        return list(self._events)

    def append(self, location: ZonePoint, pitch_type: PitchType, result: PitchResult) -> PitchEvent:
        event = PitchEvent(
            sequence_number=len(self._events) + 1,
            location=location,
            pitch_type=pitch_type,
            result=result,
            course=course_for(location.x, location.y),
        )
        self._events.append(event)
        return event

    def withdraw_last(self) -> Optional[PitchEvent]:
        # Only the terminal pitch of an unresolved plate appearance is withdrawn
        return self._events.pop() if self._events else None

    def reset(self) -> None:
        self._events = []


class CountTracker:
    """Balls/strikes for the plate appearance, outs for the half-inning.

    Decides when the plate appearance ends. Precedence per pitch:
    deadball > ball four > ball > strike three > strike/foul > in play.
    """

    def __init__(self, outs: int = 0):
        self.balls = 0
        self.strikes = 0
        self.outs = outs
        self.log = PitchLog()
        self.trigger: Optional[Trigger] = None
        self._before_terminal: Optional[Count] = None
        self._before_last: Optional[Count] = None

    @property
    def count(self) -> Count:
        return Count(balls=self.balls, strikes=self.strikes, outs=self.outs)

    @property
    def ended(self) -> bool:
        return self.trigger is not None

    @staticmethod
    def _evaluate(result: str, balls: int, strikes: int) -> tuple[int, int, Optional[Trigger]]:
        if result == "deadball":
            return balls, strikes, "hit_by_pitch"
        if result == "ball":
            if balls >= 3:
                return balls, strikes, "walk"
            return balls + 1, strikes, None
        if result in ("swing", "looking"):
            if strikes >= 2:
                return balls, strikes, "strikeout_swinging" if result == "swing" else "strikeout_looking"
            return balls, strikes + 1, None
        if result == "foul":
            # A foul never produces strike three
            return balls, min(2, strikes + 1), None
        if result == "inplay":
            return balls, strikes, "ball_in_play"
        raise ValueError(f"unrecognised pitch result: {result!r}")

    def record_pitch(
        self,
        result: PitchResult,
        location: Optional[ZonePoint] = None,
        pitch_type: PitchType = "unknown",
    ) -> CountTransition:
        if result not in PITCH_RESULTS:
            raise ValueError(f"unrecognised pitch result: {result!r}")
        if self.ended:
            raise RuntimeError("plate appearance already ended; reset before the next pitch")

        pitch = self.log.append(location or ZonePoint(x=130.0, y=162.5), pitch_type, result)
        before = self.count
        balls, strikes, trigger = self._evaluate(result, self.balls, self.strikes)
        self.balls, self.strikes = balls, strikes
        self._before_last = before
        if trigger is None:
            return CountTransition(kind="continue", count=self.count, pitch=pitch)
        self.trigger = trigger
        self._before_terminal = before
        return CountTransition(kind="end", count=self.count, trigger=trigger, pitch=pitch)

    def withdraw_terminal(self) -> Optional[PitchEvent]:
        """Reopen the plate appearance by removing the pitch that ended it."""
        if not self.ended:
            return None
        pitch = self.log.withdraw_last()
        if self._before_terminal is not None:
            self.balls = self._before_terminal.balls
            self.strikes = self._before_terminal.strikes
        self.trigger = None
        self._before_terminal = None
        self._before_last = None
        return pitch

    def withdraw_last(self) -> Optional[PitchEvent]:
        """Undo the most recent pitch, terminal or not. One level only."""
        if self._before_last is None:
            return None
        pitch = self.log.withdraw_last()
        self.balls = self._before_last.balls
        self.strikes = self._before_last.strikes
        self.trigger = None
        self._before_terminal = None
        self._before_last = None
        return pitch

    def reset(self, outs: Optional[int] = None) -> None:
        self.balls = 0
        self.strikes = 0
        if outs is not None:
            self.outs = outs
        self.trigger = None
        self._before_terminal = None
        self._before_last = None
        self.log.reset()
