import numpy as np
import pytest

from gridsim.eval.metrics import brier_score, ece, reliability_table


def test_brier():
    assert brier_score(np.array([1.0, 0.0]), np.array([1, 0])) == 0.0
    assert brier_score(np.full(4, 0.5), np.array([1, 0, 1, 0])) == pytest.approx(0.25)


def test_ece():
    assert ece(np.full(10, 0.5), np.array([1, 0] * 5)) == pytest.approx(0.0)
    assert ece(np.full(10, 0.9), np.zeros(10)) == pytest.approx(0.9)


def test_reliability_table():
    probs = np.array([0.05, 0.15, 0.95, 0.92])
    tbl = reliability_table(probs, np.array([0, 0, 1, 1]))
    assert list(tbl["n"]) == [1, 1, 2]
    assert tbl["observed"].iloc[-1] == 1.0


def test_ece_is_population_weighted_gap():
    probs = np.array([0.15, 0.15, 0.15, 0.85])
    labels = np.array([0, 0, 1, 1])
    tbl = reliability_table(probs, labels, n_bins=10)
    assert tbl["gap"].tolist() == pytest.approx([1 / 3 - 0.15, 0.15])
    assert ece(probs, labels, n_bins=10) == pytest.approx((3 * (1 / 3 - 0.15) + 0.15) / 4)


def test_mismatched_inputs_rejected():
    with pytest.raises(ValueError):
        brier_score(np.array([0.5, 0.5]), np.array([1]))
    with pytest.raises(ValueError):
        ece(np.array([0.5]), np.array([1, 0]))
