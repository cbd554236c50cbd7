import pytest

from gridsim.ratings import PlayerRatings, team_from_players

POSITIONS = ["QB", "RB", "RB", "WR", "WR", "WR", "TE", "OL", "OL", "OL", "OL", "OL",
             "DL", "DL", "DL", "DL", "LB", "LB", "LB", "DB", "DB", "DB", "DB", "K", "P"]


def flat_team(name, **ratings):
    return team_from_players(name, [PlayerRatings(first=name, last=str(i), pos=p, **ratings)
                                    for i, p in enumerate(POSITIONS)])


@pytest.fixture
def teams():
    return flat_team("Home"), flat_team("Away")
