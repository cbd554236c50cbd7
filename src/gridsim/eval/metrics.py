"""Calibration scores for win-probability forecasts against final results.

Forecasts are the home-team WP logged on every event; labels are 1.0 for a
home win and 0.0 for a loss (ties are filtered out by the caller).
"""
from __future__ import annotations
import numpy as np
import pandas as pd


def _pair(probs, labels) -> tuple[np.ndarray, np.ndarray]:
    probs = np.asarray(probs, dtype=np.float64).ravel()
    labels = np.asarray(labels, dtype=np.float64).ravel()
    if probs.shape != labels.shape:
        raise ValueError(f"{probs.size} forecasts but {labels.size} outcomes")
    return probs, labels


def brier_score(probs: np.ndarray, labels: np.ndarray) -> float:
    probs, labels = _pair(probs, labels)
    if probs.size == 0:
        return float("nan")
    return float(np.mean((probs - labels) ** 2))


def reliability_table(probs: np.ndarray, labels: np.ndarray, n_bins: int = 10) -> pd.DataFrame:
    """Per-bin mean forecast vs observed win rate, plus the gap between them."""
    probs, labels = _pair(probs, labels)
    edges = np.linspace(0.0, 1.0, n_bins + 1)
    idx = np.clip(np.digitize(probs, edges) - 1, 0, n_bins - 1)
    df = pd.DataFrame({"bin": idx, "forecast": probs, "observed": labels})
    tbl = df.groupby("bin").agg(n=("forecast", "size"), forecast=("forecast", "mean"),
                                observed=("observed", "mean"))
    tbl["gap"] = (tbl["observed"] - tbl["forecast"]).abs()
    tbl.index = [f"{edges[b]:.1f}-{edges[b + 1]:.1f}" for b in tbl.index]
    return tbl


def ece(probs: np.ndarray, labels: np.ndarray, n_bins: int = 15) -> float:
    """Expected calibration error: reliability gaps weighted by bin population."""
    tbl = reliability_table(probs, labels, n_bins)
    if tbl.empty:
        return float("nan")
    return float((tbl["gap"] * tbl["n"]).sum() / tbl["n"].sum())
