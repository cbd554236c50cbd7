from gridsim.config import FullConfig
from gridsim.engine.game import run_headless
from gridsim.engine.simulate import PLAY_COLUMNS, calibration, simulate_games
from gridsim.eval.report import play_mix, write_game_report
from gridsim.ratings import generated_team


def test_game_report_written(tmp_path):
    res = run_headless(generated_team("Home"), generated_team("Away"), FullConfig(seed=8))
    out = write_game_report(res, str(tmp_path / "game.md"))
    text = out.read_text()
    assert f"{res.home_score} - " in text
    assert "## Drives" in text
    assert "## Play mix" in text
    assert (tmp_path / "game_wp.png").exists()


def test_batch_simulation_play_log():
    results, plays, drives = simulate_games(2, FullConfig(seed=1))
    assert len(results) == 2
    assert list(plays.columns) == PLAY_COLUMNS
    assert set(plays["game"]) == {0, 1}
    assert (plays["tag"] == "FINAL").sum() == 2
    assert drives.groupby("game")["points"].sum().tolist() == [r.home_score + r.away_score for r in results]
    cal = calibration(plays)
    assert cal["n"] in (0, len(plays[plays["home_won"] != 0.5]))


def test_play_mix_groups_by_kind():
    res = run_headless(generated_team("Home"), generated_team("Away"), FullConfig(seed=3))
    mix = play_mix(res)
    assert {"run", "pass", "kickoff"} <= set(mix.index)
    tagged = sum(ev.kind is not None for ev in res.events)
    assert int(mix["n"].to_numpy().sum()) == tagged


def test_play_log_carries_structured_fields():
    _, plays, _ = simulate_games(1, FullConfig(seed=4))
    scrimmage = plays[plays["kind"].isin(["run", "pass", "scramble"])]
    assert len(scrimmage) > 0
    assert scrimmage["down"].between(1, 4).all()
    assert plays.loc[plays["tag"] == "PEN", "kind"].eq("penalty").all()
    assert plays.loc[plays["tag"] == "FINAL", "kind"].isna().all()
