import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from ..config import Settings, load_settings
from ..errors import CollaboratorError, ScoringError
from ..models.commit_engine import PlayCommitEngine
from ..models.session import PlateAppearanceSession
from ..schemas import (
    AnswerRequest,
    BattingStatsResponse,
    BoxscoreResponse,
    ConfirmationResponse,
    CountTransition,
    GameState,
    Half,
    OpenPlateAppearanceRequest,
    PitchChartResponse,
    PitchingStatsResponse,
    PitchRequest,
    PlayRecord,
    RegisterMatchRequest,
    ResultRequest,
    RunnerCandidate,
    RunnerEvent,
    RunnerEventRequest,
    RunnerEventResponse,
    RunnerRequest,
    SessionView,
    StatusRequest,
)
from ..stats.batting import batting_lines
from ..stats.box_score import box_score
from ..stats.pitch_chart import chart_percentages, pitch_chart
from ..stats.pitching import pitching_lines
from ..store.game_state_store import build_store
from ..utils.roster import Roster, load_roster_csv

app = FastAPI(title="scorekeeper")

_ROOT = Path(__file__).resolve().parents[3]

# Settings: SCOREKEEPER_SETTINGS overrides the bundled example file
try:
    _SETTINGS_PATH = os.environ.get("SCOREKEEPER_SETTINGS") or str(_ROOT / "config" / "settings.example.yaml")
    _settings = load_settings(_SETTINGS_PATH)
    print(f"[serve.api] Loaded settings from {_SETTINGS_PATH}")
except (OSError, yaml.YAMLError):
    _settings = Settings(
        host="0.0.0.0",
        port=8000,
        store_backend="memory",
        store_path=None,
        lineup_size=9,
        innings=7,
        roster_path=None,
        play_log_path=None,
    )


def _resolve(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    p = Path(path)
    return str(p if p.is_absolute() else _ROOT / p)


_store = build_store(_settings.store_backend, _resolve(_settings.store_path))
_engine = PlayCommitEngine(
    _store,
    lineup_size=_settings.lineup_size,
    innings=_settings.innings,
    play_log_path=_resolve(_settings.play_log_path),
)
_sessions: Dict[str, PlateAppearanceSession] = {}

# Roster supplies display names for confirmations and stat lines; empty if the file is missing
_ROSTER = Roster()
if _settings.roster_path:
    _ROSTER_PATH = _resolve(_settings.roster_path)
    try:
        _ROSTER = load_roster_csv(_ROSTER_PATH)
        if len(_ROSTER):
            print(f"[serve.api] Loaded {len(_ROSTER)} players from {_ROSTER_PATH}")
    except CollaboratorError as e:
        print(f"[serve.api] Roster not loaded: {e.rule}")


@app.exception_handler(ScoringError)
async def _scoring_error(request: Request, exc: ScoringError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "rule": exc.rule, "retryable": exc.retryable},
    )


def _session(match_id: str) -> PlateAppearanceSession:
    # Raises UnknownMatch before a session is created for a bad id
    _store.load(match_id)
    sess = _sessions.get(match_id)
    if sess is None:
        sess = PlateAppearanceSession(match_id, _store, _engine, roster=_ROSTER)
        _sessions[match_id] = sess
    return sess


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/v1/matches", response_model=GameState)
def register_match(req: RegisterMatchRequest):
    return _store.register(req.match_id, req.status)


@app.put("/v1/matches/{match_id}/status", response_model=GameState)
def set_status(match_id: str, req: StatusRequest):
    return _store.set_status(match_id, req.status)


@app.get("/v1/matches/{match_id}/state", response_model=GameState)
def get_state(match_id: str):
    return _store.snapshot(match_id)


@app.get("/v1/matches/{match_id}/plays", response_model=List[PlayRecord])
def get_plays(match_id: str):
    return _store.history(match_id)


@app.get("/v1/matches/{match_id}/runner-events", response_model=List[RunnerEvent])
def get_runner_events(match_id: str):
    return _store.runner_events(match_id)


@app.get("/v1/matches/{match_id}/boxscore", response_model=BoxscoreResponse)
def get_boxscore(match_id: str):
    return box_score(_store.load(match_id))


@app.get("/v1/matches/{match_id}/pitch-chart", response_model=PitchChartResponse)
def get_pitch_chart(
    match_id: str,
    pitcher_id: Optional[str] = None,
    result: Optional[List[str]] = Query(None),
):
    grid = pitch_chart(_store.history(match_id), pitcher_id=pitcher_id, results=result)
    return PitchChartResponse(
        match_id=match_id,
        pitcher_id=pitcher_id,
        grid=grid.tolist(),
        percent=chart_percentages(grid),
    )


@app.get("/v1/matches/{match_id}/stats/batting", response_model=BattingStatsResponse)
def get_batting_stats(match_id: str, half: Optional[Half] = None):
    lines = batting_lines(_store.load(match_id), half=half, roster=_ROSTER)
    return BattingStatsResponse(match_id=match_id, half=half, lines=lines)


@app.get("/v1/matches/{match_id}/stats/pitching", response_model=PitchingStatsResponse)
def get_pitching_stats(match_id: str):
    return PitchingStatsResponse(match_id=match_id, lines=pitching_lines(_store.load(match_id), roster=_ROSTER))


@app.post("/v1/matches/{match_id}/pa", response_model=SessionView)
def open_plate_appearance(match_id: str, req: OpenPlateAppearanceRequest):
    return _session(match_id).open(req.batter_id, req.pitcher_id, defense=req.defense)


@app.get("/v1/matches/{match_id}/pa", response_model=SessionView)
def get_plate_appearance(match_id: str):
    return _session(match_id).view()


@app.post("/v1/matches/{match_id}/pa/pitch", response_model=CountTransition)
def record_pitch(match_id: str, req: PitchRequest):
    return _session(match_id).record_pitch(req.result, location=req.location, pitch_type=req.pitch_type)


@app.post("/v1/matches/{match_id}/pa/result", response_model=SessionView)
def select_result(match_id: str, req: ResultRequest):
    return _session(match_id).select_result(req.result)


@app.post("/v1/matches/{match_id}/pa/answer", response_model=SessionView)
def answer_step(match_id: str, req: AnswerRequest):
    return _session(match_id).answer(req.step, req.value)


@app.get("/v1/matches/{match_id}/pa/runner-candidates", response_model=List[RunnerCandidate])
def runner_candidates(match_id: str, target: str):
    pairs = _session(match_id).runner_candidates(target)
    return [RunnerCandidate(from_base=origin, runner_id=rid) for origin, rid in pairs]


@app.post("/v1/matches/{match_id}/pa/runners", response_model=SessionView)
def assign_runner(match_id: str, req: RunnerRequest):
    return _session(match_id).assign_runner(
        req.from_base,
        req.target,
        putting_out_position=req.putting_out_position,
        throwing_position=req.throwing_position,
    )


@app.delete("/v1/matches/{match_id}/pa/runners/{from_base}", response_model=SessionView)
def unassign_runner(match_id: str, from_base: str):
    return _session(match_id).unassign_runner(from_base)


@app.post("/v1/matches/{match_id}/pa/runner-event", response_model=RunnerEventResponse)
def runner_event(match_id: str, req: RunnerEventRequest):
    event, state = _session(match_id).runner_event(
        req.type,
        req.from_base,
        req.to_base,
        putting_out_position=req.putting_out_position,
        throwing_position=req.throwing_position,
    )
    return RunnerEventResponse(event=event, state=state)


@app.post("/v1/matches/{match_id}/pa/cancel", response_model=SessionView)
def cancel(match_id: str):
    return _session(match_id).cancel()


@app.post("/v1/matches/{match_id}/pa/restart", response_model=SessionView)
def restart_resolution(match_id: str):
    return _session(match_id).restart_resolution()


@app.get("/v1/matches/{match_id}/pa/confirmation", response_model=ConfirmationResponse)
def confirmation(match_id: str):
    return ConfirmationResponse(lines=_session(match_id).confirmation())


@app.post("/v1/matches/{match_id}/pa/commit", response_model=PlayRecord)
def commit(match_id: str):
    return _session(match_id).commit()
