import numpy as np

from gridsim.config import EnvironmentCfg, KnobsCfg
from gridsim.engine.crowd import Crowd
from gridsim.engine.penalties import PenaltyModel
from gridsim.engine.plays import pick_receiver, pick_rusher, resolve_pass, resolve_run
from gridsim.state import ClockOutcome, PlayKind, Situation


def test_run_yards_bounded(teams):
    atk, dfn = teams
    knobs = KnobsCfg()
    pens = PenaltyModel(knobs, Crowd())
    rng = np.random.default_rng(0)
    for y in (5, 50, 96):
        sit = Situation(down=1, distance=10, yardline=y)
        for _ in range(300):
            res = resolve_run(atk, dfn, sit, knobs, pens, rng)
            if res.penalty is not None:
                assert res.kind is PlayKind.PENALTY
                continue
            assert -4 <= res.yards <= 100 - y
            assert res.touchdown == (y + res.yards >= 100)


def test_pass_outcomes_consistent(teams):
    atk, dfn = teams
    knobs = KnobsCfg()
    crowd = Crowd()
    pens = PenaltyModel(knobs, crowd)
    rng = np.random.default_rng(1)
    sit = Situation(down=2, distance=8, yardline=60)
    seen = set()
    for _ in range(1500):
        res = resolve_pass(atk, dfn, sit, knobs, EnvironmentCfg(), crowd, pens, rng)
        if res.penalty is not None:
            continue
        seen.add(res.clock)
        assert res.yards <= 40
        if res.interception:
            assert 1 <= res.turnover_yardline <= 99
            assert res.yards == 0
        if res.clock is ClockOutcome.SACK:
            assert res.yards < 0 and res.in_bounds
        if res.clock is ClockOutcome.INCOMPLETE:
            assert res.yards == 0 and not res.in_bounds
        if res.touchdown:
            assert not res.in_bounds
    assert {ClockOutcome.COMPLETE, ClockOutcome.INCOMPLETE, ClockOutcome.SACK} <= seen


def test_box_scores_accumulate(teams):
    atk, dfn = teams
    knobs = KnobsCfg(refs=0)
    crowd = Crowd()
    pens = PenaltyModel(knobs, crowd)
    rng = np.random.default_rng(2)
    sit = Situation(down=1, distance=10, yardline=30)
    for _ in range(200):
        resolve_pass(atk, dfn, sit, knobs, EnvironmentCfg(), crowd, pens, rng)
    qb = atk.qb.box
    assert qb.dropbacks == 200
    assert qb.completions <= qb.attempts <= qb.dropbacks
    assert sum(p.box.catches for p in atk.players) == qb.completions


def test_pickers_return_roster_players(teams):
    atk, _ = teams
    rng = np.random.default_rng(3)
    sit = Situation(down=3, distance=1, yardline=50)
    for _ in range(100):
        assert pick_rusher(atk, sit, rng) in atk.players
        assert pick_receiver(atk, rng) in atk.players
