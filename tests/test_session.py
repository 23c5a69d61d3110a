import pytest

from scorekeeper.errors import CollaboratorError, InputValidationError, MatchNotPlaying, PlayRejected
from scorekeeper.models.session import PlateAppearanceSession
from scorekeeper.schemas import Bases, ZonePoint
from scorekeeper.store.game_state_store import GameStateStore, InMemoryDocumentStore
from scorekeeper.utils.roster import Roster


def _session(status="PLAYING", runners=None, outs=0, roster=None):
    store = GameStateStore()
    store.register("M1", status)
    if runners or outs:
        doc = store.load("M1")
        state = doc.state.model_copy(update={"runners": Bases(**(runners or {})), "outs": outs})
        store.save(doc.model_copy(update={"state": state}))
    return store, PlateAppearanceSession("M1", store, roster=roster)


def _pitches(sess, *results):
    t = None
    for r in results:
        t = sess.record_pitch(r)
    return t


def test_pitches_refused_unless_playing():
    store, sess = _session(status="SCHEDULED")
    with pytest.raises(MatchNotPlaying):
        sess.open("B1", "P1")


def test_strikeout_plate_appearance_end_to_end():
    store, sess = _session()
    view = sess.open("B1", "P1", defense={"2": "C1"})
    assert view.phase == "pitching"
    assert store.snapshot("M1").matchup.batter_id == "B1"
    _pitches(sess, "looking", "foul", "foul", "swing")
    assert sess.view().phase == "ready"
    rec = sess.commit()
    assert rec.batting_result == "strikeout_swinging"
    assert rec.summary == "K"
    assert [(f.position, f.action, f.player_id) for f in rec.fielding] == [("2", "putout", "C1")]
    assert len(rec.pitches) == 4
    state = store.snapshot("M1")
    assert state.outs == 1
    assert state.matchup.batter_id is None
    assert sess.view().phase == "idle"


def test_hit_by_pitch_on_three_balls():
    store, sess = _session()
    sess.open("B1", "P1")
    t = _pitches(sess, "ball", "ball", "ball", "deadball")
    assert t.trigger == "hit_by_pitch"
    rec = sess.commit()
    assert rec.batting_result == "hit_by_pitch"
    assert store.snapshot("M1").runners.get("1") == "B1"


def test_double_play_scenario():
    store, sess = _session(runners={"1": "P1", "2": "P2"}, outs=1)
    sess.open("B1", "X")
    _pitches(sess, "inplay")
    assert sess.view().phase == "result"
    sess.select_result("groundout")
    sess.answer("bat_type", "ground")
    sess.answer("fielding_position", "6")
    view = sess.view()
    assert view.next_step == "outs_after" and view.step_choices == [1, 2, 3]
    assert view.step_default == 2
    sess.answer("outs_after", 3)
    view = sess.view()
    assert view.pending_runners == ["1", "2"]
    assert view.next_runner == "1" and view.suggested_target == "1"
    sess.assign_runner("1", "out", putting_out_position="4", throwing_position="6")
    sess.assign_runner("2", "3")
    rec = sess.commit()
    assert rec.outs_after == 3
    assert rec.scored_runner_ids == []
    assert rec.summary == "6-4-3 DP"
    state = store.snapshot("M1")
    assert state.half == "bottom" and state.outs == 0
    assert state.runners.count() == 0


def test_bases_empty_home_run_scenario():
    store, sess = _session()
    sess.open("B1", "P1")
    _pitches(sess, "inplay")
    sess.select_result("homerun")
    sess.answer("outfield_direction", "center")
    rec = sess.commit()
    assert rec.scored_runner_ids == ["B1"]
    assert rec.runners_after.count() == 0
    state = store.snapshot("M1")
    assert state.score_total.top == 1 and state.outs == 0


def test_shortstop_single_safety_bunt():
    store, sess = _session()
    sess.open("B1", "P1")
    _pitches(sess, "inplay")
    sess.select_result("single")
    view = sess.answer("fielding_position", "6")
    assert view.phase == "disambiguation" and view.next_step == "safety_bunt"
    sess.answer("safety_bunt", "yes")
    assert sess.view().phase == "runners"
    sess.assign_runner("home", "1")
    rec = sess.commit()
    assert rec.batting_result == "single" and rec.safety_bunt is True
    assert rec.summary == "1B-6 (bunt)"


def test_runner_phase_blocked_until_answers_complete():
    store, sess = _session(runners={"1": "R1"})
    sess.open("B1", "P1")
    _pitches(sess, "inplay")
    sess.select_result("flyout")
    with pytest.raises(InputValidationError):
        sess.assign_runner("1", "2")
    with pytest.raises(InputValidationError):
        sess.commit()


def test_cancel_withdraws_terminal_pitch_only():
    store, sess = _session()
    sess.open("B1", "P1")
    _pitches(sess, "ball", "looking", "inplay")
    sess.select_result("lineout")
    view = sess.cancel()
    assert view.phase == "pitching"
    assert [p.result for p in view.pitches] == ["ball", "looking"]
    assert (view.count.balls, view.count.strikes) == (1, 1)
    t = sess.record_pitch("ball", location=ZonePoint(x=10, y=10), pitch_type="drop")
    assert t.pitch.sequence_number == 3 and t.pitch.course == 1


def test_rejected_play_can_restart_from_terminal_pitch():
    store, sess = _session(runners={"1": "R1"})
    sess.open("B1", "P1")
    _pitches(sess, "inplay")
    sess.select_result("groundout")
    for step, value in (("bat_type", "ground"), ("fielding_position", "4"), ("outs_after", 2)):
        sess.answer(step, value)
    sess.assign_runner("1", "2")
    with pytest.raises(PlayRejected):
        sess.commit()
    assert sess.view().phase == "rejected"
    view = sess.restart_resolution()
    assert view.phase == "result"
    assert len(view.pitches) == 1
    sess.select_result("single")
    sess.answer("fielding_position", "4")
    sess.answer("safety_bunt", False)
    sess.assign_runner("1", "2")
    sess.assign_runner("home", "1")
    rec = sess.commit()
    assert rec.runners_after.as_dict() == {"1": "B1", "2": "R1", "3": None}


def test_runner_event_between_pitches():
    store, sess = _session(runners={"1": "R1"})
    sess.open("B1", "P1")
    _pitches(sess, "ball")
    event, state = sess.runner_event("steal", "1", "2")
    assert event.pitch_seq == 1
    assert event.pitcher_id == "P1"
    assert state.runners.get("2") == "R1"
    _pitches(sess, "ball", "ball", "ball")
    rec = sess.commit()
    assert rec.batting_result == "walk"
    assert [e.type for e in rec.runner_events] == ["steal"]
    # Runner on 2nd was not forced
    assert rec.runners_after.as_dict() == {"1": "B1", "2": "R1", "3": None}


def test_third_out_on_the_bases_ends_plate_appearance():
    store, sess = _session(runners={"2": "R2"}, outs=2)
    sess.open("B1", "P1")
    _pitches(sess, "looking")
    sess.runner_event("pickoff", "2", "out", putting_out_position="6", throwing_position="1")
    assert sess.view().phase == "idle"
    state = store.snapshot("M1")
    assert state.half == "bottom"
    assert state.batting_index.top == 0


def test_confirmation_uses_roster_names():
    roster = Roster({"B1": "Ann Lee", "R1": "Bo Kim"})
    store, sess = _session(runners={"1": "R1"}, roster=roster)
    sess.open("B1", "P1")
    _pitches(sess, "ball", "ball", "ball", "ball")
    lines = sess.confirmation()
    assert lines[0] == "Ann Lee: walk"
    assert "runner on 1 Bo Kim to second" in lines
    assert "batter Ann Lee to first" in lines


class _FlakyBackend(InMemoryDocumentStore):
    fail = False

    def put(self, key, doc):
        if self.fail:
            raise OSError("disk full")
        super().put(key, doc)


def _flaky_session():
    backend = _FlakyBackend()
    store = GameStateStore(backend)
    store.register("M1", "PLAYING")
    return backend, PlateAppearanceSession("M1", store)


def test_pitch_not_kept_when_live_count_cannot_be_saved():
    backend, sess = _flaky_session()
    sess.open("B1", "P1")
    backend.fail = True
    with pytest.raises(CollaboratorError):
        sess.record_pitch("ball")
    view = sess.view()
    assert view.pitches == [] and view.count.balls == 0
    backend.fail = False
    t = sess.record_pitch("ball")
    assert t.pitch.sequence_number == 1 and t.count.balls == 1


def test_terminal_pitch_can_be_retried_after_save_failure():
    backend, sess = _flaky_session()
    sess.open("B1", "P1")
    _pitches(sess, "ball", "ball", "ball")
    backend.fail = True
    with pytest.raises(CollaboratorError):
        sess.record_pitch("ball")
    assert sess.view().phase == "pitching"
    assert sess.view().count.balls == 3
    backend.fail = False
    assert sess.record_pitch("ball").trigger == "walk"
    assert len(sess.view().pitches) == 4
    assert sess.commit().batting_result == "walk"


def test_open_fails_cleanly_when_store_is_down():
    backend, sess = _flaky_session()
    backend.fail = True
    with pytest.raises(CollaboratorError):
        sess.open("B1", "P1")
    assert sess.view().phase == "idle"
    backend.fail = False
    assert sess.open("B1", "P1").phase == "pitching"
