import numpy as np

from gridsim.config import KnobsCfg
from gridsim.engine.crowd import Crowd
from gridsim.engine.penalties import Penalty, PenaltyModel, describe, enforce
from gridsim.state import Situation

OFFSIDE = Penalty("Offside", 5, on_defense=True, pre_snap=True)
FALSE_START = Penalty("False start", -5, on_defense=False, pre_snap=True)
HOLDING = Penalty("Offensive holding", -10, on_defense=False)


def test_offside_can_move_the_chains():
    sit = Situation(down=3, distance=3, yardline=50)
    applied = enforce(OFFSIDE, sit)
    assert (sit.down, sit.distance, sit.yardline) == (1, 10, 55)
    assert describe(OFFSIDE, applied, sit) == "Offside: +5 (1st down)"


def test_false_start_backs_up():
    sit = Situation(down=2, distance=7, yardline=30)
    applied = enforce(FALSE_START, sit)
    assert (sit.down, sit.distance, sit.yardline) == (2, 12, 25)
    assert describe(FALSE_START, applied, sit) == "False start: -5 (replay down)"


def test_holding_half_the_distance_inside_20():
    sit = Situation(down=1, distance=10, yardline=10)
    assert enforce(HOLDING, sit) == 5
    assert (sit.yardline, sit.distance) == (5, 15)
    sit = Situation(down=1, distance=10, yardline=40)
    assert enforce(HOLDING, sit) == 10
    assert sit.yardline == 30


def test_dpi_is_a_spot_foul_with_first_down():
    sit = Situation(down=3, distance=12, yardline=40)
    assert enforce(Penalty("DPI", 20, on_defense=True, auto_first=True, spot=True), sit) == 20
    assert (sit.down, sit.distance, sit.yardline) == (1, 10, 60)


def test_spot_foul_stops_short_of_goal_line():
    sit = Situation(down=2, distance=5, yardline=92)
    enforce(Penalty("DPI", 30, on_defense=True, auto_first=True, spot=True), sit)
    assert sit.yardline == 99
    assert sit.down == 1 and sit.distance == 1


def test_pre_snap_flags_and_cooldown():
    model = PenaltyModel(KnobsCfg(refs=100, crowd=100), Crowd())
    rng = np.random.default_rng(5)
    sit = Situation(down=3, distance=9, yardline=40)
    flags = 0
    for _ in range(2000):
        pen = model.pre_snap(sit, rng)
        if pen is None:
            continue
        flags += 1
        assert pen.pre_snap and pen.kind in ("Offside", "False start")
        assert model.pre_snap(sit, rng) is None
    assert flags > 0


def test_live_flags_are_not_pre_snap():
    model = PenaltyModel(KnobsCfg(refs=100), Crowd())
    rng = np.random.default_rng(9)
    sit = Situation(down=3, distance=9, yardline=40)
    seen = set()
    for _ in range(3000):
        for is_pass in (True, False):
            pen = model.live(sit, rng, is_pass=is_pass, air_depth=12)
            if pen is not None:
                assert not pen.pre_snap
                seen.add(pen.kind)
                if pen.kind == "DPI":
                    assert 8 <= pen.yards <= 35
    assert "Offensive holding" in seen
    assert "DPI" in seen


def test_model_reset():
    model = PenaltyModel(KnobsCfg(), Crowd())
    model.streak, model.cooldown = 0.7, 1
    model.reset()
    assert (model.streak, model.cooldown) == (0.0, 0)

    loud = Crowd(capacity=70000, present=70000, mood=1.0)
    model.reset(loud)
    assert model.crowd is loud
