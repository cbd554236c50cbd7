import numpy as np
import pytest

from gridsim.constants import WP_MAX, WP_MIN
from gridsim.models.wp import WinProbabilityModel, multi_score_cap, seconds_left, wp_cap
from gridsim.state import Side


def test_seconds_left_counts_whole_game():
    assert seconds_left(1, 900) == 3600
    assert seconds_left(4, 30) == 30


def test_opening_kickoff_is_near_even():
    wp = WinProbabilityModel().win_probability(0, 0, 1, 900, 25, Side.HOME, 0.5)
    assert 0.4 < wp < 0.6


def test_lead_raises_home_wp():
    m = WinProbabilityModel()
    up = m.win_probability(14, 7, 3, 400, 50, Side.HOME)
    tied = m.win_probability(7, 7, 3, 400, 50, Side.HOME)
    down = m.win_probability(7, 14, 3, 400, 50, Side.HOME)
    assert up > tied > down


def test_three_score_lead_with_ball_late_is_locked():
    m = WinProbabilityModel()
    assert m.win_probability(24, 3, 4, 30, 75, Side.HOME) >= 0.999
    assert m.win_probability(3, 24, 4, 30, 75, Side.AWAY) <= 0.001


def test_end_game_pulls_only_move_toward_leader():
    m = WinProbabilityModel()
    rng = np.random.default_rng(3)
    for _ in range(300):
        lead = int(rng.integers(1, 30))
        secs = int(rng.integers(0, 901))
        y = int(rng.integers(1, 100))
        poss = Side.HOME if rng.random() < 0.5 else Side.AWAY
        base = m.base(lead, seconds_left(4, secs), y, poss, 0.5)
        wp = m.win_probability(lead, 0, 4, secs, y, poss)
        assert wp >= base - 1e-12
        mirrored = m.win_probability(0, lead, 4, secs, y, poss)
        assert mirrored <= m.base(-lead, seconds_left(4, secs), y, poss, 0.5) + 1e-12


def test_wp_always_bounded():
    m = WinProbabilityModel()
    rng = np.random.default_rng(11)
    for _ in range(300):
        wp = m.win_probability(int(rng.integers(0, 60)), int(rng.integers(0, 60)),
                               int(rng.integers(1, 5)), int(rng.integers(0, 901)),
                               int(rng.integers(1, 100)), Side.AWAY, float(rng.uniform(0.3, 0.7)),
                               down=int(rng.integers(1, 5)), distance=int(rng.integers(1, 20)),
                               timeouts={Side.HOME: 0, Side.AWAY: 1})
        assert WP_MIN <= wp <= WP_MAX


def test_wp_cap_grows_through_game():
    assert abs(wp_cap(1, 900) - 0.03) < 1e-9
    assert abs(wp_cap(4, 0) - 0.73) < 1e-9
    assert wp_cap(2, 0) < wp_cap(4, 300)


def test_multi_score_cap():
    assert multi_score_cap(1, 60) == 1.0
    assert multi_score_cap(3, 60) < multi_score_cap(2, 60) < multi_score_cap(2, 600)


def test_25_point_lead_inside_ten_seconds_is_floored():
    m = WinProbabilityModel()
    for y in (5, 50, 95):
        for poss in (Side.HOME, Side.AWAY):
            assert m.win_probability(25, 0, 4, 10, y, poss) >= 0.9995
            assert m.win_probability(0, 25, 4, 10, y, poss) <= 0.0005


@pytest.mark.parametrize("quarter,seconds", [(1, 900), (2, 130), (3, 450), (4, 600), (4, 240),
                                             (4, 90), (4, 25), (4, 3)])
def test_wp_non_decreasing_in_home_margin(quarter, seconds):
    m = WinProbabilityModel()
    for y in (10, 45, 80):
        for poss in (Side.HOME, Side.AWAY):
            for tos in (0, 3):
                timeouts = {Side.HOME: tos, Side.AWAY: tos}
                curve = [m.win_probability(30 + lead, 30, quarter, seconds, y, poss, 0.55,
                                           down=3, distance=6, timeouts=timeouts)
                         for lead in range(-35, 36)]
                assert all(b >= a - 1e-12 for a, b in zip(curve, curve[1:]))
