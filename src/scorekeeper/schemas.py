from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Half = Literal["top", "bottom"]
MatchStatus = Literal["SCHEDULED", "PLAYING", "FINISHED"]
PitchType = Literal["rise", "drop", "cut", "changeup", "chenrai", "slider", "unknown"]
PitchResult = Literal["swing", "looking", "ball", "foul", "inplay", "deadball"]
Trigger = Literal["walk", "hit_by_pitch", "strikeout_swinging", "strikeout_looking", "ball_in_play"]
BaseId = Literal["1", "2", "3"]
# "home" as an origin is the batter; as a target it is a run scored
Origin = Literal["home", "1", "2", "3"]
Target = Literal["1", "2", "3", "home", "out"]
FielderCode = Literal["1", "2", "3", "4", "5", "6", "7", "8", "9"]
BatType = Literal["ground", "fly", "line"]
OutfieldDirection = Literal["left", "left-center", "center", "right-center", "right"]
BattingResult = Literal[
    "single",
    "double",
    "triple",
    "homerun",
    "running_homerun",
    "walk",
    "hit_by_pitch",
    "strikeout_swinging",
    "strikeout_looking",
    "dropped_third_strike",
    "groundout",
    "flyout",
    "lineout",
    "bunt_out",
    "sacrifice_bunt",
    "sacrifice_fly",
    "fielders_choice",
    "error",
]
RunnerEventType = Literal["steal", "wildpitch", "passedball", "advance", "pickoff", "caughtstealing", "out"]

BASES: tuple[BaseId, ...] = ("1", "2", "3")


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


class ZonePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class PitchEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    sequence_number: int = Field(ge=1)
    location: ZonePoint
    pitch_type: PitchType = "unknown"
    result: PitchResult
    course: int = Field(ge=1, le=25)


class Count(BaseModel):
    balls: int = Field(0, ge=0, le=3)
    strikes: int = Field(0, ge=0, le=2)
    outs: int = Field(0, ge=0, le=2)


class Bases(BaseModel):
    # Field names are python-safe; "1","2","3" aliases are used for JSON IO
    B1: Optional[str] = Field(None, alias="1")
    B2: Optional[str] = Field(None, alias="2")
    B3: Optional[str] = Field(None, alias="3")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def get(self, base: str) -> Optional[str]:
        return getattr(self, "B" + base)

    def occupied(self) -> Dict[str, str]:
        return {b: pid for b in BASES if (pid := self.get(b)) is not None}

    def count(self) -> int:
        return len(self.occupied())

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {b: self.get(b) for b in BASES}

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Optional[str]]) -> "Bases":
        return cls(**{b: mapping.get(b) for b in BASES})


class OutDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    runner_id: str
    from_base: Origin
    throwing_position: Optional[FielderCode] = None
    putting_out_position: FielderCode


class FieldingAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: FielderCode
    action: Literal["fielded", "assist", "putout", "error"]
    player_id: Optional[str] = None


class RunnerEvent(BaseModel):
    """Runner movement recorded between pitches (steal, wild pitch, ...)."""

    model_config = ConfigDict(frozen=True)

    type: RunnerEventType
    runner_id: str
    from_base: BaseId
    to_base: Target
    pitch_seq: Optional[int] = None
    out_detail: Optional[OutDetail] = None
    inning: Optional[int] = None
    half: Optional[Half] = None
    pitcher_id: Optional[str] = None


class Answers(BaseModel):
    """Disambiguation answers collected for the current plate appearance."""

    model_config = ConfigDict(frozen=True)

    bat_type: Optional[BatType] = None
    fielding_position: Optional[FielderCode] = None
    outfield_direction: Optional[OutfieldDirection] = None
    first_base_touched: Optional[bool] = None
    putout_position: Optional[FielderCode] = None
    safety_bunt: Optional[bool] = None
    outs_after: Optional[int] = Field(None, ge=0, le=3)


class RunnerAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    runner_id: str
    from_base: Origin
    target: Target
    out_detail: Optional[OutDetail] = None
    automatic: bool = False


class DraftPlay(BaseModel):
    """Working value for one plate appearance, threaded through every stage."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    inning: int = Field(ge=1)
    half: Half
    batting_order_slot: int = Field(ge=1)
    batter_id: str
    pitcher_id: str
    outs_before: int = Field(ge=0, le=2)
    runners_before: Bases
    pitches: List[PitchEvent] = Field(default_factory=list)
    trigger: Trigger
    result: Optional[BattingResult] = None
    answers: Answers = Field(default_factory=Answers)
    assignments: Dict[str, RunnerAssignment] = Field(default_factory=dict)


class AdvancementOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    runners_after: Bases
    scored_runner_ids: List[str]
    out_details: List[OutDetail]
    outs_after: int = Field(ge=0, le=3)


class PlayRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    play_id: str
    index: int = Field(ge=1)
    match_id: str
    inning: int
    half: Half
    batting_order_slot: int
    batter_id: str
    pitcher_id: str
    pitches: List[PitchEvent]
    batting_result: BattingResult
    safety_bunt: bool = False
    bat_type: Optional[BatType] = None
    fielding_position: Optional[FielderCode] = None
    outfield_direction: Optional[OutfieldDirection] = None
    outs_before: int
    outs_after: int
    runners_before: Bases
    runners_after: Bases
    scored_runner_ids: List[str]
    out_details: List[OutDetail]
    fielding: List[FieldingAction] = Field(default_factory=list)
    runner_events: List[RunnerEvent] = Field(default_factory=list)
    rbi: int = 0
    summary: str = ""
    committed_at: str


class SideInts(BaseModel):
    top: List[int] = Field(default_factory=lambda: [0])
    bottom: List[int] = Field(default_factory=lambda: [0])


class SideTotals(BaseModel):
    top: int = 0
    bottom: int = 0


class Matchup(BaseModel):
    batter_id: Optional[str] = None
    pitcher_id: Optional[str] = None


class GameState(BaseModel):
    match_id: str
    status: MatchStatus = "SCHEDULED"
    inning: int = Field(1, ge=1)
    half: Half = "top"
    outs: int = Field(0, ge=0, le=2)
    count: Count = Field(default_factory=Count)
    runners: Bases = Field(default_factory=Bases)
    score_by_inning: SideInts = Field(default_factory=SideInts)
    score_total: SideTotals = Field(default_factory=SideTotals)
    left_on_base: SideInts = Field(default_factory=SideInts)
    batting_index: SideTotals = Field(default_factory=SideTotals)
    matchup: Matchup = Field(default_factory=Matchup)
    last_updated: str = Field(default_factory=utcnow)


class MatchDocument(BaseModel):
    """Everything persisted for one match; written as a single document."""

    state: GameState
    plays: List[PlayRecord] = Field(default_factory=list)
    # Runner events not yet attached to a PlayRecord
    pending_events: List[RunnerEvent] = Field(default_factory=list)
    runner_events: List[RunnerEvent] = Field(default_factory=list)


# Service payloads
class RegisterMatchRequest(BaseModel):
    match_id: str
    status: MatchStatus = "SCHEDULED"


class StatusRequest(BaseModel):
    status: MatchStatus


class OpenPlateAppearanceRequest(BaseModel):
    batter_id: str
    pitcher_id: str
    defense: Optional[Dict[str, str]] = None  # fielder code -> player id


class PitchRequest(BaseModel):
    location: ZonePoint
    pitch_type: PitchType = "unknown"
    result: PitchResult


class ResultRequest(BaseModel):
    result: BattingResult


class AnswerRequest(BaseModel):
    step: str
    value: Any


class RunnerRequest(BaseModel):
    from_base: Origin
    target: Target
    putting_out_position: Optional[FielderCode] = None
    throwing_position: Optional[FielderCode] = None


class RunnerEventRequest(BaseModel):
    type: RunnerEventType
    from_base: BaseId
    to_base: Target
    putting_out_position: Optional[FielderCode] = None
    throwing_position: Optional[FielderCode] = None


class CountTransition(BaseModel):
    kind: Literal["continue", "end"]
    count: Count
    trigger: Optional[Trigger] = None
    pitch: PitchEvent


class ResultOption(BaseModel):
    value: BattingResult
    disabled: bool = False


class SessionView(BaseModel):
    """What the scorer sees after each input."""

    phase: Literal["idle", "pitching", "rejected", "result", "disambiguation", "runners", "ready"]
    count: Count
    pitches: List[PitchEvent]
    trigger: Optional[Trigger] = None
    result: Optional[BattingResult] = None
    options: List[ResultOption] = Field(default_factory=list)
    next_step: Optional[str] = None
    step_choices: List[Any] = Field(default_factory=list)
    step_default: Optional[Any] = None
    answers: Optional[Answers] = None
    pending_runners: List[str] = Field(default_factory=list)
    # Runner to place next and where the scorer most likely sends them
    next_runner: Optional[str] = None
    suggested_target: Optional[Target] = None
    assignments: Dict[str, RunnerAssignment] = Field(default_factory=dict)


class BoxscoreResponse(BaseModel):
    match_id: str
    innings: Dict[str, List[int]]
    runs: Dict[str, int]
    hits: Dict[str, int]
    left_on_base: Dict[str, int]
    plays: int


class RunnerCandidate(BaseModel):
    from_base: Origin
    runner_id: str


class RunnerEventResponse(BaseModel):
    event: RunnerEvent
    state: GameState


class PitchChartResponse(BaseModel):
    match_id: str
    pitcher_id: Optional[str] = None
    grid: List[List[int]]
    percent: List[List[float]]


class ConfirmationResponse(BaseModel):
    lines: List[str]


class BattingLine(BaseModel):
    player_id: str
    name: str
    plate_appearances: int = 0
    at_bats: int = 0
    hits: int = 0
    singles: int = 0
    doubles: int = 0
    triples: int = 0
    home_runs: int = 0
    runs: int = 0
    rbi: int = 0
    sacrifices: int = 0
    walks_hbp: int = 0
    strikeouts: int = 0
    stolen_bases: int = 0
    putouts: int = 0
    assists: int = 0
    errors: int = 0


class PitchingLine(BaseModel):
    player_id: str
    name: str
    innings_pitched: str = "0.0"
    outs_recorded: int = 0
    batters_faced: int = 0
    pitches: int = 0
    hits: int = 0
    home_runs: int = 0
    runs: int = 0
    sacrifice_bunts: int = 0
    sacrifice_flies: int = 0
    strikeouts: int = 0
    walks: int = 0
    hit_by_pitch: int = 0
    wild_pitches: int = 0


class BattingStatsResponse(BaseModel):
    match_id: str
    half: Optional[Half] = None
    lines: List[BattingLine]


class PitchingStatsResponse(BaseModel):
    match_id: str
    lines: List[PitchingLine]
