from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from ..errors import InputValidationError
from ..schemas import Answers, Bases, BattingResult, ResultOption, Trigger


INFIELD = ("1", "2", "3", "4", "5", "6")
OUTFIELD = ("7", "8", "9")

# Disambiguation steps in the order they are asked
STEP_ORDER = (
    "bat_type",
    "fielding_position",
    "outfield_direction",
    "first_base_touch",
    "putout_credit",
    "safety_bunt",
    "outs_after",
)


class ResultDef(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: BattingResult
    is_at_bat: bool
    is_hit: bool
    is_on_base: bool
    is_sacrifice: bool
    is_out: bool
    # Ball put in play and retired the batter (bat type is asked)
    in_play_out: bool = False
    # Base the batter is sent to without a prompt, if any
    batter_auto: Optional[str] = None
    batter_suggest: Optional[str] = None


def _d(code, ab, hit, ob, sac, out, **kw) -> ResultDef:
    return ResultDef(code=code, is_at_bat=ab, is_hit=hit, is_on_base=ob, is_sacrifice=sac, is_out=out, **kw)


BATTING_RESULTS: Dict[str, ResultDef] = {
    r.code: r
    for r in (
        _d("single", True, True, True, False, False, batter_suggest="1"),
        _d("double", True, True, True, False, False, batter_suggest="2"),
        _d("triple", True, True, True, False, False, batter_suggest="3"),
        _d("homerun", True, True, True, False, False, batter_auto="home"),
        _d("running_homerun", True, True, True, False, False, batter_auto="home"),
        _d("walk", False, False, True, False, False, batter_auto="1"),
        _d("hit_by_pitch", False, False, True, False, False, batter_auto="1"),
        _d("strikeout_swinging", True, False, False, False, True, batter_auto="out"),
        _d("strikeout_looking", True, False, False, False, True, batter_auto="out"),
        _d("dropped_third_strike", True, False, False, False, False, batter_suggest="1"),
        _d("groundout", True, False, False, False, True, in_play_out=True, batter_auto="out"),
        _d("flyout", True, False, False, False, True, in_play_out=True, batter_auto="out"),
        _d("lineout", True, False, False, False, True, in_play_out=True, batter_auto="out"),
        _d("bunt_out", True, False, False, False, True, in_play_out=True, batter_auto="out"),
        _d("sacrifice_bunt", False, False, False, True, True, in_play_out=True, batter_auto="out"),
        _d("sacrifice_fly", False, False, False, True, True, in_play_out=True, batter_auto="out"),
        _d("fielders_choice", True, False, False, False, False, batter_suggest="1"),
        _d("error", True, False, False, False, False, batter_suggest="1"),
    )
}

BALL_IN_PLAY_RESULTS: List[BattingResult] = [
    "single",
    "double",
    "triple",
    "homerun",
    "running_homerun",
    "groundout",
    "flyout",
    "lineout",
    "bunt_out",
    "sacrifice_bunt",
    "sacrifice_fly",
    "fielders_choice",
    "error",
]

TRIGGER_RESULTS: Dict[str, List[BattingResult]] = {
    "walk": ["walk"],
    "hit_by_pitch": ["hit_by_pitch"],
    "strikeout_swinging": ["strikeout_swinging", "dropped_third_strike"],
    "strikeout_looking": ["strikeout_looking", "dropped_third_strike"],
    "ball_in_play": BALL_IN_PLAY_RESULTS,
}

OUTFIELD_DIRECTION_RESULTS = ("triple", "homerun", "running_homerun", "sacrifice_fly")


class Requirements(BaseModel):
    model_config = ConfigDict(frozen=True)

    needs_bat_type: bool = False
    needs_fielding_position: bool = False
    needs_outfield_direction: bool = False
    needs_first_base_touch_check: bool = False
    needs_putout_credit: bool = False
    needs_safety_bunt_check: bool = False
    needs_outs_after_confirmation: bool = False

    def steps(self) -> List[str]:
        flags = {
            "bat_type": self.needs_bat_type,
            "fielding_position": self.needs_fielding_position,
            "outfield_direction": self.needs_outfield_direction,
            "first_base_touch": self.needs_first_base_touch_check,
            "putout_credit": self.needs_putout_credit,
            "safety_bunt": self.needs_safety_bunt_check,
            "outs_after": self.needs_outs_after_confirmation,
        }
        return [s for s in STEP_ORDER if flags[s]]


class Classification(BaseModel):
    model_config = ConfigDict(frozen=True)

    result: BattingResult
    requirements: Requirements


class OutcomeClassifier:
    """Map a terminal trigger (+ the scorer's selection) to a result and its questions.

    Stateless. Requirements that hinge on the fielder (first-base touch,
    safety bunt) are re-derived from the answers gathered so far, so the
    classifier is evaluated again after every answer.
    """

    @staticmethod
    def options(trigger: Trigger, runners: Bases, outs: int) -> List[ResultOption]:
        allowed = TRIGGER_RESULTS[trigger]
        # Sacrifices need a runner to advance and fewer than two outs
        sac_bunt_ok = outs < 2 and (runners.B1 is not None or runners.B2 is not None)
        sac_fly_ok = outs < 2 and runners.B3 is not None
        opts = []
        for code in allowed:
            disabled = (code == "sacrifice_bunt" and not sac_bunt_ok) or (code == "sacrifice_fly" and not sac_fly_ok)
            opts.append(ResultOption(value=code, disabled=disabled))
        return opts

    @staticmethod
    def default_result(trigger: Trigger) -> Optional[BattingResult]:
        # Only a ball in play needs the scorer to pick the result
        if trigger == "ball_in_play":
            return None
        return TRIGGER_RESULTS[trigger][0]

    def validate_selection(self, trigger: Trigger, result: str, runners: Bases, outs: int) -> BattingResult:
        if result not in BATTING_RESULTS:
            raise InputValidationError(f"unknown batting result: {result}")
        for opt in self.options(trigger, runners, outs):
            if opt.value == result:
                if opt.disabled:
                    raise InputValidationError(f"{result} is not available in this situation")
                return opt.value
        raise InputValidationError(f"{result} cannot follow a {trigger} pitch")

    @staticmethod
    def requirements(result: BattingResult, answers: Optional[Answers] = None) -> Requirements:
        answers = answers or Answers()
        d = BATTING_RESULTS[result]
        position = answers.fielding_position
        needs_position = d.in_play_out or result in ("fielders_choice", "error", "single")
        touch_check = result == "groundout" and position == "3"
        return Requirements(
            needs_bat_type=d.in_play_out,
            needs_fielding_position=needs_position,
            needs_outfield_direction=result in OUTFIELD_DIRECTION_RESULTS,
            needs_first_base_touch_check=touch_check,
            needs_putout_credit=touch_check and answers.first_base_touched is False,
            needs_safety_bunt_check=result == "single" and position in INFIELD,
            needs_outs_after_confirmation=result == "groundout",
        )

    def classify(self, result: BattingResult, answers: Optional[Answers] = None) -> Classification:
        return Classification(result=result, requirements=self.requirements(result, answers))
