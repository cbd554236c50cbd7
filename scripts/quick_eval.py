from __future__ import annotations

import argparse
import glob
import sys

import numpy as np
import pandas as pd

from gridsim.eval.metrics import brier_score, ece, reliability_table
from gridsim.state import PlayKind

KINDS = [k.value for k in PlayKind]
SCRIMMAGE = [k.value for k in PlayKind if k.is_scrimmage]


def stats(x):
    x = x.dropna()
    if len(x) == 0:
        return dict(n=0, mean=np.nan, std=np.nan, p10=np.nan, p50=np.nan, p90=np.nan)
    return dict(
        n=len(x),
        mean=float(x.mean()),
        std=float(x.std()),
        p10=float(x.quantile(0.1)),
        p50=float(x.quantile(0.5)),
        p90=float(x.quantile(0.9)),
    )


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--sims", default="")
    args = ap.parse_args()

    found = sorted(glob.glob("runs/sim_*plays.csv"))
    sim_path = args.sims or (found[-1] if found else "")
    if not sim_path:
        print("No play log found in runs/ (expected runs/sim_*plays.csv)")
        sys.exit(1)

    print(f"\n== Quick Eval ==\nSIMS: {sim_path}\n")

    sims = pd.read_csv(sim_path)
    plays = sims[sims["kind"].notna()]

    share = plays["kind"].value_counts(normalize=True).reindex(KINDS).fillna(0).round(3)
    print("-- Play-kind share --")
    print(share.to_string(), "\n")

    scrimmage = plays[plays["kind"].isin(SCRIMMAGE)]
    dropbacks = scrimmage["kind"].isin([PlayKind.PASS.value, PlayKind.SCRAMBLE.value])
    print("-- Pass rate by down --")
    for d in (1, 2, 3):
        m = scrimmage["down"] == d
        rate = dropbacks[m].mean() if m.any() else np.nan
        print(f"down {d}: {rate:.3f} (n={int(m.sum())})")
    print()

    print("-- Yards/play (run+pass, clipped [-10,80]) --")
    print({k: round(v, 3) for k, v in stats(scrimmage["yards"].clip(-10, 80)).items()}, "\n")

    print("-- Penalties per game --")
    n_games = max(1, sims["game"].nunique())
    print(round((plays["kind"] == PlayKind.PENALTY.value).sum() / n_games, 2), "\n")

    decided = sims[sims["home_won"] != 0.5]
    if len(decided):
        p, y = decided["wp"].to_numpy(), decided["home_won"].to_numpy()
        print("-- WP calibration --")
        print(f"brier={brier_score(p, y):.4f}  ece={ece(p, y):.4f}")
        print(reliability_table(p, y).round(3).to_string())
    sys.stdout.flush()


if __name__ == "__main__":
    main()
