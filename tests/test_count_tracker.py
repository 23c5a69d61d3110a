import itertools

import pytest

from scorekeeper.models.count_tracker import CountTracker
from scorekeeper.schemas import ZonePoint


def _feed(tracker, *results):
    out = None
    for r in results:
        out = tracker.record_pitch(r)
    return out


def test_fourth_ball_is_a_walk_and_balls_stay_at_three():
    t = CountTracker()
    mid = _feed(t, "ball", "ball", "ball")
    assert mid.kind == "continue" and mid.count.balls == 3
    end = t.record_pitch("ball")
    assert end.kind == "end" and end.trigger == "walk"
    assert end.count.balls == 3
    assert [p.sequence_number for p in t.log.events] == [1, 2, 3, 4]


def test_third_strike_variants():
    swing = CountTracker()
    assert _feed(swing, "looking", "swing", "swing").trigger == "strikeout_swinging"
    looking = CountTracker()
    assert _feed(looking, "swing", "swing", "looking").trigger == "strikeout_looking"
    assert looking.count.strikes == 2


def test_foul_with_two_strikes_keeps_the_count():
    t = CountTracker()
    _feed(t, "looking", "foul")
    assert t.count.strikes == 2
    for _ in range(5):
        tr = t.record_pitch("foul")
        assert tr.kind == "continue"
        assert tr.count.strikes == 2
    assert not t.ended


def test_deadball_beats_ball_four():
    t = CountTracker()
    end = _feed(t, "ball", "ball", "ball", "deadball")
    assert end.trigger == "hit_by_pitch"
    assert end.count.balls == 3


def test_inplay_ends_the_plate_appearance():
    t = CountTracker(outs=1)
    end = _feed(t, "ball", "inplay")
    assert end.trigger == "ball_in_play"
    assert end.count.outs == 1


def test_no_pitch_after_the_end_and_unknown_results_rejected():
    t = CountTracker()
    t.record_pitch("inplay")
    with pytest.raises(RuntimeError):
        t.record_pitch("ball")
    with pytest.raises(ValueError):
        CountTracker().record_pitch("balk")


def test_course_from_location():
    t = CountTracker()
    first = t.record_pitch("ball", location=ZonePoint(x=0, y=0)).pitch
    last = t.record_pitch("ball", location=ZonePoint(x=259, y=324)).pitch
    middle = t.record_pitch("ball", location=ZonePoint(x=130, y=162.5)).pitch
    assert (first.course, last.course, middle.course) == (1, 25, 13)


def test_withdraw_terminal_restores_count():
    t = CountTracker()
    _feed(t, "ball", "looking", "looking", "swing")
    assert t.ended
    pitch = t.withdraw_terminal()
    assert pitch.result == "swing"
    assert not t.ended
    assert (t.count.balls, t.count.strikes) == (1, 2)
    assert len(t.log) == 3
    # Same plate appearance can go on
    assert t.record_pitch("ball").count.balls == 2


def test_ceilings_hold_for_every_short_sequence():
    results = ("swing", "looking", "ball", "foul", "inplay", "deadball")
    for seq in itertools.product(results, repeat=5):
        t = CountTracker()
        for r in seq:
            if t.ended:
                break
            c = t.record_pitch(r).count
            assert c.balls <= 3 and c.strikes <= 2
