"""Nearest-neighbor estimator over a table of historical game states.

Each row pairs a 7-feature situation (quarter, down, distance, yardline,
seconds remaining, score differential, possession-is-home) with model
outcomes (win probability, expected points, EPA and next-score type
probabilities). Features are rescaled by their 10th-90th percentile spread
so that seconds remaining does not swamp down or distance; queries are
answered with an inverse-distance-weighted average over the k closest rows.

The table is loaded once, possibly on a background thread. Until it is
loaded ``ready`` is False and ``estimate`` raises ``NotReady``; callers fall
back to the closed-form models.
"""
from __future__ import annotations
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
import logging
import threading
from typing import Iterable, Mapping, Optional, Union

import numpy as np
import pandas as pd

from gridsim.constants import KNN_DEFAULT_K
from gridsim.errors import DataError, NotReady
from gridsim.state import Score, Side, Situation

logger = logging.getLogger(__name__)

FEATURE_COLUMNS = ("qtr", "down", "ydstogo", "yardline_100", "game_seconds_remaining",
                   "score_differential", "posteam_is_home")
OUTCOME_COLUMNS = ("wp_hat", "ep_hat", "epa_hat", "td_prob_hat", "fg_prob_hat",
                   "safety_prob_hat", "no_score_prob_hat")
EPS = 1e-9
MIN_SCALE = 1e-6


@dataclass(frozen=True, slots=True)
class HistoricalQuery:
    quarter: int = 1
    down: int = 1
    distance: float = 10
    yardline: float = 75
    seconds_remaining: float = 0
    score_differential: float = 0
    possession_is_home: int = 0

    def as_array(self) -> np.ndarray:
        return np.array([self.quarter, self.down, self.distance, self.yardline,
                         self.seconds_remaining, self.score_differential,
                         self.possession_is_home], dtype=np.float64)

    @classmethod
    def from_situation(cls, sit: Situation, score: Score) -> "HistoricalQuery":
        return cls(quarter=sit.quarter, down=sit.down, distance=sit.distance,
                   yardline=sit.yardline, seconds_remaining=max(0, sit.seconds_left_total),
                   score_differential=score.margin_for(sit.possession),
                   possession_is_home=int(sit.possession is Side.HOME))


@dataclass(frozen=True, slots=True)
class HistoricalRow:
    query: HistoricalQuery
    win_prob: float
    expected_points: float
    epa: float
    td_prob: float
    fg_prob: float
    safety_prob: float
    no_score_prob: float

    def as_record(self) -> dict:
        q = self.query
        return dict(zip(FEATURE_COLUMNS + OUTCOME_COLUMNS, (
            q.quarter, q.down, q.distance, q.yardline, q.seconds_remaining,
            q.score_differential, q.possession_is_home, self.win_prob, self.expected_points,
            self.epa, self.td_prob, self.fg_prob, self.safety_prob, self.no_score_prob)))


@dataclass(frozen=True, slots=True)
class Estimate:
    wp: float = 0.5
    ep: float = 0.0
    epa: float = 0.0
    td_prob: float = 0.0
    fg_prob: float = 0.0
    safety_prob: float = 0.0
    no_score_prob: float = 1.0


RowsLike = Union[pd.DataFrame, Iterable[Mapping], Iterable[HistoricalRow]]


def _to_frame(rows: RowsLike) -> pd.DataFrame:
    if isinstance(rows, pd.DataFrame):
        return rows
    rows = list(rows)
    if rows and isinstance(rows[0], HistoricalRow):
        return pd.DataFrame([r.as_record() for r in rows])
    return pd.DataFrame(rows)


class KNNEstimator:
    def __init__(self, k: int = KNN_DEFAULT_K):
        self.k = k
        self._features: Optional[np.ndarray] = None  # already divided by scales
        self._outputs: Optional[np.ndarray] = None
        self._scales: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self._features is not None

    @property
    def n_rows(self) -> int:
        return 0 if self._features is None else len(self._features)

    def initialize(self, rows: RowsLike) -> "KNNEstimator":
        df = _to_frame(rows)
        lower = {str(c).strip().lower(): c for c in df.columns}
        missing = [c for c in FEATURE_COLUMNS + OUTCOME_COLUMNS if c not in lower]
        if missing:
            raise DataError(f"metrics table missing required columns: {missing}")

        cols = [lower[c] for c in FEATURE_COLUMNS + OUTCOME_COLUMNS]
        table = df[cols].apply(pd.to_numeric, errors="coerce").to_numpy(dtype=np.float64)
        table = table[np.isfinite(table).all(axis=1)]
        if len(table) == 0:
            raise DataError("metrics table has no usable rows")

        n_feat = len(FEATURE_COLUMNS)
        feats, outs = table[:, :n_feat], table[:, n_feat:]
        spread = np.percentile(feats, 90, axis=0) - np.percentile(feats, 10, axis=0)
        scales = np.maximum(MIN_SCALE, spread)

        with self._lock:
            self._scales = scales
            self._outputs = outs
            self._features = feats / scales
        logger.info("loaded %d historical rows (dropped %d)", len(table), len(df) - len(table))
        return self

    @classmethod
    def from_csv(cls, path: str, k: int = KNN_DEFAULT_K) -> "KNNEstimator":
        try:
            df = pd.read_csv(path, sep=None, engine="python")
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DataError(f"could not read metrics table {path}: {e}") from e
        return cls(k).initialize(df)

    def load_in_background(self, source: Union[str, RowsLike]) -> Future:
        """Start the one-time load; failures leave the estimator unavailable."""
        def _load():
            try:
                if isinstance(source, str):
                    df = pd.read_csv(source, sep=None, engine="python")
                else:
                    df = source
                self.initialize(df)
            except (DataError, OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
                logger.warning("historical metrics unavailable, using closed-form models: %s", e)
                return False
            return True

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="knn-load")
        future = executor.submit(_load)
        executor.shutdown(wait=False)
        return future

    def estimate(self, query: Union[HistoricalQuery, np.ndarray], k: Optional[int] = None) -> Estimate:
        if not self.ready:
            raise NotReady("historical metrics not loaded")
        q = query.as_array() if isinstance(query, HistoricalQuery) else np.asarray(query, dtype=np.float64)
        q = q / self._scales

        n = len(self._features)
        k = min(k or self.k, n)
        dist = ((self._features - q) ** 2).sum(axis=1)
        if k < n:
            idx = np.argpartition(dist, k - 1)[:k]
        else:
            idx = np.arange(n)
        d = dist[idx]

        exact = d == 0
        if exact.any():
            w = exact.astype(np.float64)
        else:
            w = 1.0 / (EPS + np.sqrt(d))
        total = w.sum()
        if not total > 0:
            return Estimate()

        vals = (w[:, None] * self._outputs[idx]).sum(axis=0) / total if not exact.any() \
            else self._outputs[idx][exact].mean(axis=0)
        wp, ep, epa, td, fg, saf, nos = (float(v) for v in vals)
        s = td + fg + saf + nos
        if s > 1e-6 and abs(s - 1.0) > 1e-12:
            td, fg, saf, nos = td / s, fg / s, saf / s, nos / s
        return Estimate(wp=wp, ep=ep, epa=epa, td_prob=td, fg_prob=fg,
                        safety_prob=saf, no_score_prob=nos)

    def try_estimate(self, sit: Situation, score: Score) -> Optional[Estimate]:
        """Estimate for a live situation, or None when the table is unavailable."""
        if not self.ready:
            return None
        return self.estimate(HistoricalQuery.from_situation(sit, score))
