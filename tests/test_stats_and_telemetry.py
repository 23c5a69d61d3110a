import csv

from scorekeeper.config import load_settings
from scorekeeper.schemas import (
    Bases,
    FieldingAction,
    GameState,
    MatchDocument,
    PitchEvent,
    PlayRecord,
    RunnerEvent,
    ZonePoint,
)
from scorekeeper.stats.batting import batting_lines
from scorekeeper.stats.box_score import box_score
from scorekeeper.stats.pitch_chart import chart_percentages, pitch_chart
from scorekeeper.stats.pitching import innings_pitched, pitching_lines
from scorekeeper.telemetry.play_log import maybe_log_play
from scorekeeper.utils.roster import Roster, load_roster_csv
from scorekeeper.utils.zone import course_cell, course_for


def _record(pitcher="P1", half="top", result="single", courses=(1, 13)):
    pitches = [
        PitchEvent(sequence_number=i + 1, location=ZonePoint(x=0, y=0), result="ball", course=c)
        for i, c in enumerate(courses)
    ]
    return PlayRecord(
        play_id="x",
        index=1,
        match_id="M1",
        inning=1,
        half=half,
        batting_order_slot=1,
        batter_id="B1",
        pitcher_id=pitcher,
        pitches=pitches,
        batting_result=result,
        outs_before=0,
        outs_after=0,
        runners_before=Bases(),
        runners_after=Bases(B1="B1"),
        scored_runner_ids=[],
        out_details=[],
        summary="1B-8",
        committed_at="2024-05-01T00:00:00Z",
    )


def test_zone_courses():
    assert course_for(-5, -5) == 1
    assert course_for(1000, 1000) == 25
    assert course_for(259, 0) == 5
    assert course_cell(7) == (1, 1)


def test_pitch_chart_filters_by_pitcher():
    plays = [_record("P1"), _record("P2", courses=(25,))]
    grid = pitch_chart(plays, pitcher_id="P1")
    assert grid.shape == (5, 5)
    assert grid[0, 0] == 1 and grid[2, 2] == 1 and grid.sum() == 2
    assert pitch_chart(plays, results=["swing"]).sum() == 0
    pct = chart_percentages(grid)
    assert pct[0][0] == 50.0
    assert chart_percentages(pitch_chart([])) == [[0.0] * 5 for _ in range(5)]


def test_box_score_counts_hits_per_side():
    doc = MatchDocument(
        state=GameState(match_id="M1"),
        plays=[_record(), _record(half="bottom", result="walk"), _record(half="bottom", result="homerun")],
    )
    box = box_score(doc)
    assert box.hits == {"top": 1, "bottom": 1}
    assert box.plays == 3


def test_play_log_only_when_enabled(tmp_path, monkeypatch):
    path = tmp_path / "plays.csv"
    monkeypatch.delenv("PLAY_LOG_ENABLE", raising=False)
    maybe_log_play(_record(), str(path))
    assert not path.exists()

    monkeypatch.setenv("PLAY_LOG_ENABLE", "1")
    monkeypatch.delenv("PLAY_LOG_PATH", raising=False)
    maybe_log_play(_record(), str(path))
    maybe_log_play(_record(), str(path))
    with path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 2
    assert rows[0]["summary"] == "1B-8" and rows[0]["pitches"] == "2"


def test_roster_csv(tmp_path):
    p = tmp_path / "roster.csv"
    p.write_text("player_id,first_name,last_name,team_id\nP1,Ann,Lee,T1\nP2,Bo,Kim,T1\n", encoding="utf-8")
    roster = load_roster_csv(str(p))
    assert roster.display_name("P1") == "Ann Lee"
    assert roster.display_name("ZZ") == "ZZ"
    assert roster.team_players("T1") == ["P1", "P2"]
    assert len(load_roster_csv(str(tmp_path / "missing.csv"))) == 0


def test_settings_from_yaml(tmp_path):
    p = tmp_path / "settings.yaml"
    p.write_text("store:\n  backend: json\n  path: /tmp/m\ngame:\n  lineup_size: 10\n", encoding="utf-8")
    s = load_settings(str(p))
    assert s.store_backend == "json" and s.store_path == "/tmp/m"
    assert s.lineup_size == 10 and s.innings == 7
    assert s.port == 8000


def _stats_doc():
    hr = _record(result="homerun").model_copy(
        update={"batter_id": "B1", "scored_runner_ids": ["R1", "B1"], "rbi": 2, "runners_before": Bases(B1="R1")}
    )
    k = _record(result="strikeout_swinging").model_copy(
        update={
            "batter_id": "B2",
            "outs_after": 1,
            "fielding": [FieldingAction(position="2", action="putout", player_id="C9")],
        }
    )
    err = _record(result="error").model_copy(
        update={
            "batter_id": "B3",
            "outs_before": 1,
            "outs_after": 1,
            "fielding": [FieldingAction(position="6", action="error", player_id="S9")],
        }
    )
    sf = _record(result="sacrifice_fly").model_copy(update={"batter_id": "B4", "outs_before": 1, "outs_after": 2})
    events = [
        RunnerEvent(type="steal", runner_id="B3", from_base="1", to_base="2", half="top", pitcher_id="P1"),
        RunnerEvent(type="wildpitch", runner_id="B3", from_base="2", to_base="home", half="top", pitcher_id="P1"),
        RunnerEvent(type="caughtstealing", runner_id="B5", from_base="1", to_base="out", half="top", pitcher_id="P1"),
    ]
    return MatchDocument(state=GameState(match_id="M1"), plays=[hr, k, err, sf], runner_events=events)


def test_batting_lines_per_player():
    lines = {ln.player_id: ln for ln in batting_lines(_stats_doc(), roster=Roster({"B1": "Ann Lee"}))}
    b1 = lines["B1"]
    assert b1.name == "Ann Lee"
    assert (b1.plate_appearances, b1.at_bats, b1.hits, b1.home_runs, b1.runs, b1.rbi) == (1, 1, 1, 1, 1, 2)
    assert lines["R1"].runs == 1 and lines["R1"].plate_appearances == 0
    assert lines["B2"].strikeouts == 1
    assert lines["B3"].at_bats == 1 and lines["B3"].hits == 0
    assert lines["B3"].stolen_bases == 1 and lines["B3"].runs == 1
    assert lines["B4"].sacrifices == 1 and lines["B4"].at_bats == 0
    assert lines["C9"].putouts == 1 and lines["S9"].errors == 1

    # The batting side alone: top-half plays, no bottom-half fielding
    top_only = {ln.player_id for ln in batting_lines(_stats_doc(), half="top")}
    assert "C9" not in top_only and "B1" in top_only


def test_pitching_lines_from_outs_and_events():
    (p1,) = pitching_lines(_stats_doc())
    assert p1.player_id == "P1"
    assert p1.batters_faced == 4 and p1.pitches == 8
    # Two outs at the plate plus the caught stealing
    assert p1.outs_recorded == 3 and p1.innings_pitched == "1.0"
    assert (p1.hits, p1.home_runs, p1.strikeouts, p1.sacrifice_flies) == (1, 1, 1, 1)
    assert p1.runs == 3 and p1.wild_pitches == 1
    assert innings_pitched(14) == "4.2"
