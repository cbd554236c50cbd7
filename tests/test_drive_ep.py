import pytest

from gridsim.config import EnvironmentCfg, KnobsCfg
from gridsim.constants import DRIVE_EP_MAX
from gridsim.models.drive_ep import DriveEPEvaluator, FourthDownChoice, fourth_down_choice, go_threshold
from gridsim.models.knn import HistoricalQuery, HistoricalRow, KNNEstimator
from gridsim.state import Score, Side, Situation


def test_go_threshold():
    assert go_threshold(60, 50) == 4.0
    assert go_threshold(30, 50) == 2.0
    assert go_threshold(60, 75) == 3.0
    assert go_threshold(60, 50, quarter=4) == pytest.approx(3.4)


def test_fourth_and_short_near_goal_goes(teams):
    sit = Situation(quarter=4, seconds=300, down=4, distance=1, yardline=97)
    assert fourth_down_choice(sit, teams[0], KnobsCfg(), EnvironmentCfg()) is FourthDownChoice.GO


def test_fourth_and_long_deep_punts(teams):
    sit = Situation(quarter=2, seconds=300, down=4, distance=10, yardline=20)
    assert fourth_down_choice(sit, teams[0], KnobsCfg(), EnvironmentCfg()) is FourthDownChoice.PUNT


def test_fourth_down_in_range_kicks(teams):
    sit = Situation(quarter=1, seconds=300, down=4, distance=5, yardline=75)
    assert fourth_down_choice(sit, teams[0], KnobsCfg(), EnvironmentCfg()) is FourthDownChoice.FIELD_GOAL


def test_drive_ep_bounded_and_grows_toward_goal(teams):
    home, away = teams
    ev = DriveEPEvaluator()
    for down in (1, 2, 3, 4):
        for dist in (1, 3, 10, 20):
            for y in (1, 25, 50, 75, 99):
                v = ev.evaluate(Situation(down=down, distance=dist, yardline=y), home, away)
                assert 0.0 <= v <= DRIVE_EP_MAX
    deep = ev.evaluate(Situation(down=1, distance=10, yardline=20), home, away)
    close = ev.evaluate(Situation(down=1, distance=1, yardline=99), home, away)
    assert close > deep


def test_third_and_long_worth_less(teams):
    home, away = teams
    ev = DriveEPEvaluator()
    long_ = ev.evaluate(Situation(down=3, distance=15, yardline=75), home, away)
    short = ev.evaluate(Situation(down=3, distance=2, yardline=75), home, away)
    assert short > long_


def _estimator(ep):
    row = HistoricalRow(HistoricalQuery(), 0.5, ep, 0.0, 0.3, 0.2, 0.0, 0.5)
    return KNNEstimator(k=1).initialize([row])


def test_estimator_takes_over_when_loaded(teams):
    home, away = teams
    sit = Situation(down=2, distance=6, yardline=55, possession=Side.AWAY)
    assert DriveEPEvaluator(_estimator(4.2)).evaluate(sit, home, away, Score()) == pytest.approx(4.2)
    assert DriveEPEvaluator(_estimator(9.0)).evaluate(sit, home, away, Score()) == DRIVE_EP_MAX
    assert DriveEPEvaluator(_estimator(-1.0)).evaluate(sit, home, away, Score()) == 0.0


def test_unloaded_estimator_falls_back(teams):
    home, away = teams
    sit = Situation(down=1, distance=10, yardline=50)
    plain = DriveEPEvaluator().evaluate(sit, home, away, Score())
    assert DriveEPEvaluator(KNNEstimator()).evaluate(sit, home, away, Score()) == plain
