from dataclasses import replace

import numpy as np

from gridsim.config import EnvironmentCfg
from gridsim.constants import KICKOFF_TOUCHBACK_YARD, PUNT_TOUCHBACK_YARD
from gridsim.engine.special import (coverage_edge, decide_pat, resolve_field_goal, resolve_kickoff,
                                    resolve_punt, should_onside)
from gridsim.state import PATKind, Score, Side


def test_onside_only_when_trailing_late():
    assert should_onside(Score(home=10, away=13), Side.HOME, 100)
    assert should_onside(Score(home=0, away=17), Side.HOME, 500)
    assert not should_onside(Score(home=0, away=7), Side.HOME, 1200)
    assert not should_onside(Score(home=14, away=7), Side.HOME, 60)
    assert not should_onside(Score(home=7, away=7), Side.AWAY, 60)


def test_pat_choice_by_margin():
    rng = np.random.default_rng(0)
    assert decide_pat(Score(home=12, away=14), Side.HOME, 2000, rng) is PATKind.TWO_POINT
    assert decide_pat(Score(home=21, away=20), Side.HOME, 100, rng) is PATKind.TWO_POINT
    for _ in range(50):
        assert decide_pat(Score(home=13, away=6), Side.HOME, 3000, rng) is PATKind.XP


def test_heavy_weather_kickoff_is_touchback(teams):
    home, away = teams
    rng = np.random.default_rng(1)
    res = resolve_kickoff(Side.HOME, home, away, False, EnvironmentCfg(precip="heavy_rain"), rng)
    assert res.touchback
    assert res.receiving is Side.AWAY
    assert res.yardline == KICKOFF_TOUCHBACK_YARD


def test_kickoff_spots(teams):
    home, away = teams
    rng = np.random.default_rng(2)
    for _ in range(200):
        res = resolve_kickoff(Side.HOME, home, away, False, EnvironmentCfg(), rng)
        assert res.receiving is Side.AWAY
        assert res.yardline == KICKOFF_TOUCHBACK_YARD or 10 <= res.yardline <= 45


def test_onside_kick_spots(teams):
    home, away = teams
    rng = np.random.default_rng(3)
    kept = 0
    for _ in range(400):
        res = resolve_kickoff(Side.AWAY, away, home, True, EnvironmentCfg(), rng)
        assert "onside" in res.text
        if res.receiving is Side.AWAY:
            kept += 1
            assert 50 <= res.yardline <= 53
        else:
            assert 45 <= res.yardline <= 49
    assert 0 < kept < 200


def test_punt_from_deep_in_opponent_territory_is_touchback(teams):
    home, away = teams
    rng = np.random.default_rng(4)
    for _ in range(50):
        res = resolve_punt(Side.HOME, home, away, 90, rng)
        assert res.touchback and res.yardline == PUNT_TOUCHBACK_YARD


def test_punt_return_spot_on_field(teams):
    home, away = teams
    rng = np.random.default_rng(5)
    for _ in range(200):
        res = resolve_punt(Side.HOME, home, away, 25, rng)
        assert res.receiving is Side.AWAY
        assert 1 <= res.yardline <= 99


def test_field_goal_distance(teams):
    home, _ = teams
    res = resolve_field_goal(home, 75, EnvironmentCfg(), np.random.default_rng(6))
    assert res.distance == 42
    assert res.text.startswith("FG:")


def test_coverage_edge_follows_special_ratings(teams):
    home, away = teams
    strong, weak = replace(home, special=90.0), replace(away, special=50.0)
    assert coverage_edge(strong, weak) == -4.0
    assert coverage_edge(weak, strong) == 4.0
    assert coverage_edge(home, away) == 0.0


def test_better_coverage_unit_pins_returns_deeper(teams):
    home, away = teams
    strong, weak = replace(home, special=90.0), replace(home, special=50.0)
    spots = {}
    for label, kicker in (("strong", strong), ("weak", weak)):
        rng = np.random.default_rng(21)
        spots[label] = [resolve_punt(Side.HOME, kicker, away, 30, rng).yardline for _ in range(300)]
    assert all(s <= w for s, w in zip(spots["strong"], spots["weak"]))
    assert np.mean(spots["strong"]) < np.mean(spots["weak"])
