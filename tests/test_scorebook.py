from scorekeeper.models.fielding import fielding_credits, putouts_by_position
from scorekeeper.schemas import OutDetail
from scorekeeper.utils.notation import summarize_play


def _out(base, putout, thrower=None, rid="X"):
    return OutDetail(runner_id=rid, from_base=base, putting_out_position=putout, throwing_position=thrower)


def test_summaries():
    assert summarize_play("walk") == "BB"
    assert summarize_play("strikeout_looking") == "KL"
    assert summarize_play("dropped_third_strike") == "K-D3"
    assert summarize_play("flyout", fielding_position="8", outs_before=0, outs_after=1) == "F8"
    assert summarize_play("triple", outfield_direction="right-center") == "3B/right-center"
    assert summarize_play("running_homerun", outfield_direction="left") == "IPHR/left"
    assert summarize_play("error", fielding_position="5") == "E5"
    assert summarize_play("fielders_choice", fielding_position="4") == "FC4"


def test_groundout_chains():
    unassisted = [_out("home", "3")]
    assert summarize_play("groundout", fielding_position="3", outs_after=1, out_details=unassisted) == "3U"
    dp = [_out("1", "4", "6"), _out("home", "3", "4")]
    assert summarize_play("groundout", fielding_position="6", outs_before=0, outs_after=2, out_details=dp) == "6-4-3 DP"
    assert summarize_play("sacrifice_bunt", fielding_position="1", out_details=[_out("home", "3", "1")]) == "SH 1-3"


def test_fielding_credits_for_groundout():
    acts = fielding_credits("6", [_out("home", "3", "6")], {"6": "SS1", "3": "FB1"})
    assert [(a.position, a.action, a.player_id) for a in acts] == [
        ("6", "assist", "SS1"),
        ("3", "putout", "FB1"),
    ]


def test_fielding_credits_for_hit_and_double_play():
    hit = fielding_credits("8", [])
    assert [(a.position, a.action) for a in hit] == [("8", "fielded")]
    dp = fielding_credits("5", [_out("1", "4", "5"), _out("home", "3", "4")])
    assert [(a.position, a.action) for a in dp] == [
        ("5", "assist"),
        ("4", "putout"),
        ("4", "assist"),
        ("3", "putout"),
    ]
    assert putouts_by_position(dp) == {"4": 1, "3": 1}


def test_error_is_charged_to_the_fielder():
    acts = fielding_credits("6", [], {"6": "SS1"}, result="error")
    assert [(a.position, a.action, a.player_id) for a in acts] == [("6", "error", "SS1")]


def test_triple_play_chain_starts_with_the_lead_runner():
    tp = [_out("home", "3", "4"), _out("1", "4", "5"), _out("2", "5")]
    assert summarize_play("groundout", fielding_position="5", outs_before=0, outs_after=3, out_details=tp) == "5-4-3 TP"
