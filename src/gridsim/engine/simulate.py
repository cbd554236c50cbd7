from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from gridsim.config import FullConfig, load_config
from gridsim.engine.game import GameResult, GameSimulation
from gridsim.eval.metrics import brier_score, ece
from gridsim.models.knn import KNNEstimator
from gridsim.ratings import generated_team

logger = logging.getLogger(__name__)

PLAY_COLUMNS = ["game", "seq", "tag", "kind", "offense", "down", "yards", "description",
                "is_scoring", "epa", "wpa", "drive_ep", "wp", "home_score", "away_score", "home_won"]


def play_rows(game_idx: int, res: GameResult) -> list[dict]:
    home_won = float(res.home_score > res.away_score) if res.home_score != res.away_score else 0.5
    rows = []
    for i, ev in enumerate(res.events):
        rows.append({
            "game": game_idx,
            "seq": i,
            "tag": ev.tag.value,
            "kind": ev.kind.value if ev.kind is not None else None,
            "offense": ev.offense.value,
            "down": ev.down or None,
            "yards": ev.yards,
            "description": ev.description,
            "is_scoring": ev.is_scoring,
            "epa": ev.epa,
            "wpa": ev.wpa,
            "drive_ep": ev.drive_ep_at_snap,
            "wp": ev.wp,
            "home_score": ev.home_score,
            "away_score": ev.away_score,
            "home_won": home_won,
        })
    return rows


def drive_rows(game_idx: int, res: GameResult) -> list[dict]:
    return [{
        "game": game_idx,
        "team": d.team.value,
        "start_yardline": d.start_yardline,
        "start_ep": round(d.start_ep, 3),
        "plays": d.plays,
        "yards": d.yards,
        "result": d.result.value if d.result is not None else None,
        "points": d.points,
        "drive_epa": round(d.drive_epa, 3),
        "elapsed": d.elapsed,
    } for d in res.drives]


def calibration(plays: pd.DataFrame) -> dict:
    """WP calibration against final outcomes; ties are left out."""
    decided = plays[plays["home_won"] != 0.5]
    if decided.empty:
        return dict(n=0, brier=np.nan, ece=np.nan)
    probs = decided["wp"].to_numpy(dtype=np.float64)
    labels = decided["home_won"].to_numpy(dtype=np.float64)
    return dict(n=len(decided), brier=brier_score(probs, labels), ece=ece(probs, labels))


def simulate_games(n_games: int, cfg: FullConfig, estimator: Optional[KNNEstimator] = None,
                   home_name: str = "Home", away_name: str = "Away",
                   delay: float = 0.0) -> tuple[list[GameResult], pd.DataFrame, pd.DataFrame]:
    home, away = generated_team(home_name), generated_team(away_name)
    results, plays, drives = [], [], []
    for g in range(n_games):
        game_cfg = cfg.model_copy(update={"seed": f"{cfg.seed}-{g}"})
        res = GameSimulation(home, away, game_cfg, estimator).run(delay=delay)
        results.append(res)
        plays.extend(play_rows(g, res))
        drives.extend(drive_rows(g, res))
    return results, pd.DataFrame(plays, columns=PLAY_COLUMNS), pd.DataFrame(drives)


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--n_games", type=int, default=20)
    ap.add_argument("--seed", type=str, default=None)
    ap.add_argument("--config", type=str, default="")
    ap.add_argument("--metrics", type=str, default="", help="historical situations CSV for the KNN estimator")
    ap.add_argument("--k", type=int, default=None)
    ap.add_argument("--home", type=str, default="Home")
    ap.add_argument("--away", type=str, default="Away")
    ap.add_argument("--out", type=str, default="runs/sim_plays.csv")
    ap.add_argument("--delay", type=float, default=0.0)
    ap.add_argument("--report", type=str, default="", help="markdown report for the first game")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    cfg = load_config(args.config) if args.config else FullConfig()
    if args.seed is not None:
        cfg = cfg.model_copy(update={"seed": int(args.seed) if args.seed.isdigit() else args.seed})

    estimator = None
    metrics_path = args.metrics or cfg.metrics.path
    if metrics_path:
        estimator = KNNEstimator(k=args.k or cfg.metrics.k)
        # failures are logged inside and leave the heuristic models in charge
        estimator.load_in_background(metrics_path).result()

    results, plays, drives = simulate_games(args.n_games, cfg, estimator, args.home, args.away,
                                            args.delay)

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    plays.to_csv(out, index=False)
    drives.to_csv(out.with_name(out.stem + "_drives.csv"), index=False)

    if args.report and results:
        from gridsim.eval.report import write_game_report
        write_game_report(results[0], args.report)

    scores = pd.DataFrame([(r.home_score, r.away_score) for r in results], columns=["home", "away"])
    cal = calibration(plays)
    print(f"Games: {len(results)}  plays logged: {len(plays):,}  -> {out}")
    print(f"Mean score  home={scores['home'].mean():.1f}  away={scores['away'].mean():.1f}")
    print(f"Home win rate: {(scores['home'] > scores['away']).mean():.3f}")
    print(f"WP calibration (n={cal['n']}): brier={cal['brier']:.4f}  ece={cal['ece']:.4f}")


if __name__ == "__main__":
    main()
