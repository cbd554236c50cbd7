import numpy as np
import pandas as pd
import pytest

from gridsim.errors import DataError, NotReady
from gridsim.models.knn import HistoricalQuery, HistoricalRow, KNNEstimator
from gridsim.state import Score, Side, Situation


def _rows():
    return [
        HistoricalRow(HistoricalQuery(1, 1, 10, 25, 3600, 0, 1), 0.50, 0.6, 0.0, 0.20, 0.15, 0.0, 0.65),
        HistoricalRow(HistoricalQuery(2, 3, 8, 60, 2000, 7, 0), 0.70, 1.4, -0.3, 0.25, 0.25, 0.0, 0.50),
        HistoricalRow(HistoricalQuery(4, 1, 10, 80, 120, -3, 1), 0.35, 3.9, 0.5, 0.55, 0.30, 0.0, 0.15),
        HistoricalRow(HistoricalQuery(3, 2, 5, 45, 1500, 14, 0), 0.90, 1.0, 0.1, 0.20, 0.20, 0.02, 0.58),
    ]


def test_not_ready_before_load():
    est = KNNEstimator()
    assert not est.ready
    with pytest.raises(NotReady):
        est.estimate(HistoricalQuery())
    assert est.try_estimate(Situation(), Score()) is None


def test_exact_match_returns_row():
    est = KNNEstimator(k=4).initialize(_rows())
    assert est.ready and est.n_rows == 4
    out = est.estimate(HistoricalQuery(4, 1, 10, 80, 120, -3, 1))
    assert out.wp == pytest.approx(0.35)
    assert out.ep == pytest.approx(3.9)


def test_nearest_neighbor_dominates():
    est = KNNEstimator(k=1).initialize(_rows())
    out = est.estimate(HistoricalQuery(2, 3, 8, 61, 1990, 7, 0))
    assert out.wp == pytest.approx(0.70)


def test_weighted_average_stays_in_range():
    est = KNNEstimator(k=4).initialize(_rows())
    out = est.estimate(HistoricalQuery(2, 2, 7, 50, 1800, 3, 1))
    assert 0.35 <= out.wp <= 0.90
    assert out.td_prob + out.fg_prob + out.safety_prob + out.no_score_prob == pytest.approx(1.0)


def test_score_probabilities_renormalized():
    q = HistoricalQuery(1, 1, 10, 25, 3600, 0, 1)
    est = KNNEstimator(k=1).initialize([HistoricalRow(q, 0.5, 0.5, 0.0, 0.4, 0.4, 0.0, 1.2)])
    out = est.estimate(q)
    assert out.td_prob == pytest.approx(0.2)
    assert out.no_score_prob == pytest.approx(0.6)


def test_columns_case_insensitive_and_bad_rows_dropped():
    records = [r.as_record() for r in _rows()]
    records[1]["wp_hat"] = np.nan
    records[2]["down"] = "n/a"
    df = pd.DataFrame(records)
    df.columns = [c.upper() for c in df.columns]
    est = KNNEstimator().initialize(df)
    assert est.n_rows == 2


def test_missing_columns_rejected():
    df = pd.DataFrame([r.as_record() for r in _rows()]).drop(columns=["ep_hat"])
    with pytest.raises(DataError):
        KNNEstimator().initialize(df)


def test_from_csv(tmp_path):
    path = tmp_path / "metrics.csv"
    pd.DataFrame([r.as_record() for r in _rows()]).to_csv(path, index=False)
    est = KNNEstimator.from_csv(str(path), k=2)
    assert est.n_rows == 4 and est.k == 2
    with pytest.raises(DataError):
        KNNEstimator.from_csv(str(tmp_path / "nope.csv"))


def test_background_load(tmp_path):
    est = KNNEstimator()
    assert est.load_in_background(_rows()).result(timeout=10) is True
    assert est.ready

    broken = KNNEstimator()
    assert broken.load_in_background(str(tmp_path / "missing.csv")).result(timeout=10) is False
    assert not broken.ready


def test_query_from_live_situation():
    sit = Situation(quarter=3, seconds=600, down=2, distance=7, yardline=40, possession=Side.AWAY)
    q = HistoricalQuery.from_situation(sit, Score(home=10, away=3))
    assert q.seconds_remaining == 1500
    assert q.score_differential == -7
    assert q.possession_is_home == 0
