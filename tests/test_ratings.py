import pandas as pd
import pytest

from gridsim.errors import DataError
from gridsim.ratings import generated_roster_rows, generated_team, team_from_rows


def test_missing_position_column_rejected():
    with pytest.raises(DataError):
        team_from_rows("X", [{"First Name": "A", "SPD": 80}])
    with pytest.raises(DataError):
        team_from_rows("X", pd.DataFrame({"First Name": ["A"], "SPD": [80]}))


def test_empty_roster_rejected():
    with pytest.raises(DataError):
        team_from_rows("X", [])


def test_missing_specialists_get_replacements():
    rows = [{"First Name": "Sam", "Last Name": "Lee", "Position": "RB", "SPD": "91"},
            {"First Name": "Al", "Last Name": "King", "Position": "CB", "COVER": 85}]
    team = team_from_rows("X", rows)
    assert team.qb.pos == "QB" and team.qb.pass_accuracy == 70
    assert team.k.kick_power == 70 and team.p.kick_power == 70
    assert team.rb[0].speed == 91
    assert team.db[0].coverage == 85


def test_bad_numbers_default_and_ovr_override():
    rows = [{"First Name": "Q", "Last Name": "B", "Position": "qb", "PASS_ACC": "n/a", "OVR": 88}]
    team = team_from_rows("X", rows)
    assert team.qb.pass_accuracy == 70
    assert team.qb.overall == 88


def test_generated_roster_is_deterministic():
    assert generated_roster_rows("Bears") == generated_roster_rows("Bears")
    a, b = generated_team("Bears"), generated_team("Bears")
    assert a.offense == b.offense and a.defense == b.defense
    assert len(a.players) == 53
    assert 40 <= a.offense <= 99


def test_reset_stats_clears_accumulators():
    team = generated_team("Lions")
    team.stats.plays = 12
    team.qb.box.attempts = 30
    team.reset_stats()
    assert team.stats.plays == 0
    assert team.qb.box.attempts == 0
