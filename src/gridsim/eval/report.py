from __future__ import annotations
import argparse
from dataclasses import asdict
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

from gridsim.engine.game import GameResult
from gridsim.state import PlayKind


def plot_wp(wp_series, home: str, away: str, out_png):
    plt.figure(figsize=(7, 3.5))
    plt.plot(range(len(wp_series)), wp_series, lw=1.4)
    plt.axhline(0.5, color="grey", lw=0.6, ls="--")
    plt.ylim(0, 1); plt.xlabel("tick"); plt.ylabel(f"{home} win prob")
    plt.title(f"{away} at {home}")
    plt.tight_layout(); plt.savefig(out_png); plt.close()


def drive_table(res: GameResult) -> pd.DataFrame:
    rows = [{
        "team": d.team.value,
        "start": d.start_yardline,
        "plays": d.plays,
        "yards": d.yards,
        "result": d.result.value if d.result is not None else "",
        "pts": d.points,
        "start_ep": round(d.start_ep, 2),
        "drive_epa": round(d.drive_epa, 2),
    } for d in res.drives]
    return pd.DataFrame(rows)


def play_mix(res: GameResult) -> pd.DataFrame:
    """Snaps, yards and EPA per play kind and team; untagged events are skipped."""
    rows = [{"team": ev.offense.value, "kind": ev.kind.value, "yards": ev.yards, "epa": ev.epa}
            for ev in res.events if ev.kind is not None]
    df = pd.DataFrame(rows, columns=["team", "kind", "yards", "epa"])
    tbl = df.groupby(["kind", "team"]).agg(n=("epa", "size"), yards=("yards", "sum"),
                                           epa=("epa", "sum")).unstack("team", fill_value=0)
    order = [k.value for k in PlayKind if k.value in tbl.index]
    return tbl.reindex(order).round(2)


def team_table(res: GameResult) -> pd.DataFrame:
    def flat(stats):
        row = asdict(stats)
        third, fourth = row.pop("third"), row.pop("fourth")
        row["third_down"] = f"{third['made']}/{third['att']}"
        row["fourth_down"] = f"{fourth['made']}/{fourth['att']}"
        row["epa"] = round(row["epa"], 2)
        return row
    return pd.DataFrame({res.home_name: flat(res.home_stats), res.away_name: flat(res.away_stats)})


def write_game_report(res: GameResult, out: str) -> Path:
    """Markdown box score with a WP chart next to it; returns the report path."""
    out_path = Path(out)
    out_dir = out_path.parent; out_dir.mkdir(parents=True, exist_ok=True)
    wp_png = out_dir / (out_path.stem + "_wp.png")
    plot_wp(res.wp_series, res.home_name, res.away_name, wp_png)

    with open(out_path, "w") as f:
        f.write(f"# {res.away_name} at {res.home_name}\n\n")
        f.write(f"**Final: {res.home_name} {res.home_score} - {res.away_name} {res.away_score}**"
                f" ({res.ticks} ticks, seed `{res.seed}`)\n\n")

        f.write("## Scoring summary\n\n")
        if res.scoring:
            for entry in res.scoring:
                f.write(f"- {entry.text} ({entry.score})\n")
        else:
            f.write("_No scoring._\n")
        f.write("\n")

        f.write("## Win probability\n\n")
        f.write(f"![WP]({wp_png.name})\n\n")

        f.write("## Drives\n\n")
        f.write("```\n" + drive_table(res).to_string(index=False) + "\n```\n\n")

        f.write("## Play mix\n\n")
        f.write("```\n" + play_mix(res).to_string() + "\n```\n\n")

        f.write("## Team stats\n\n")
        f.write("```\n" + team_table(res).to_string() + "\n```\n")
    return out_path


def main():
    from gridsim.config import FullConfig, load_config
    from gridsim.engine.game import run_headless
    from gridsim.ratings import generated_team

    ap = argparse.ArgumentParser()
    ap.add_argument("--config", default="")
    ap.add_argument("--home", default="Home")
    ap.add_argument("--away", default="Away")
    ap.add_argument("--out", default="runs/game_report.md")
    args = ap.parse_args()

    cfg = load_config(args.config) if args.config else FullConfig()
    res = run_headless(generated_team(args.home), generated_team(args.away), cfg)
    print("Wrote", write_game_report(res, args.out))


if __name__ == "__main__":
    main()
