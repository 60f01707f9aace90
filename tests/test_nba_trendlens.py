from datetime import datetime

import pytest

from statpad.services import nba_trendlens

UPDATED = datetime(2025, 1, 15, 8, 0, 0)


def entry(player_id, gp, pts, reb, ast, *, stl=0, blk=0, tov=0, fga=0, fgm=0, fg3m=0, fg3a=0, fta=0):
    return {
        "player": {
            "id": player_id,
            "firstName": "Nikola",
            "lastName": "Jokic",
            "primaryPosition": "C",
            "currentTeam": {"id": 99, "abbreviation": "DEN"},
        },
        "stats": {
            "gamesPlayed": gp,
            "offense": {"pts": pts, "ast": ast},
            "rebounds": {"reb": reb},
            "defense": {"stl": stl, "blk": blk, "tov": tov},
            "fieldGoals": {"fgMade": fgm, "fgAtt": fga, "fg3PtMade": fg3m, "fg3PtAtt": fg3a},
            "freeThrows": {"ftAtt": fta},
        },
    }


def test_player_metrics_formulas():
    line = nba_trendlens.PlayerLine(
        games_played=2, points=50, rebounds=20, assists=10, steals=2, blocks=2, turnovers=4,
        fg_made=20, fg_att=40, fg3_made=4, ft_att=10,
    )
    metrics = nba_trendlens.player_metrics(line)
    assert metrics["simplifiedPER"] == pytest.approx(40.0)
    assert metrics["tsPct"] == pytest.approx(round(50 / (80 + 9.5) * 100, 2))
    assert metrics["eFGPct"] == pytest.approx(55.0)


def test_player_metrics_zero_games():
    metrics = nba_trendlens.player_metrics(nba_trendlens.PlayerLine())
    assert metrics == {"simplifiedPER": 0.0, "tsPct": 0.0, "eFGPct": 0.0}


def test_record_without_window_has_no_trends():
    record = nba_trendlens.build_player_record(entry(7, 40, 1000, 500, 400), None, UPDATED)
    assert record["objectID"] == "player_7"
    assert record["fullName"] == "Nikola Jokic"
    assert record["teamAbbrev"] == "DEN"
    assert record["pointsPerGame"] == pytest.approx(25.0)
    assert "recentPointsPerGame" not in record
    assert "ptsTrend" not in record


def test_record_with_window_adds_recent_earlier_and_trends():
    season = entry(7, 40, 1000, 480, 360)
    window = entry(7, 10, 300, 120, 100)
    record = nba_trendlens.build_player_record(season, window, UPDATED)
    assert record["recentGamesPlayed"] == 10
    assert record["recentPointsPerGame"] == pytest.approx(30.0)
    assert record["earlierGamesPlayed"] == 30
    assert record["earlierPointsPerGame"] == pytest.approx(round(700 / 30, 2))
    assert record["ptsTrend"] == pytest.approx(round(30.0 - round(700 / 30, 2), 2))
    assert record["rebTrend"] == pytest.approx(0.0)
    assert record["lastUpdated"] == UPDATED.isoformat()


def test_window_covering_whole_season_skips_trends():
    season = entry(7, 10, 300, 120, 100)
    record = nba_trendlens.build_player_record(season, season, UPDATED)
    assert record["recentGamesPlayed"] == 10
    assert "earlierGamesPlayed" not in record


def test_build_records_joins_by_player_id():
    seasons = [entry(1, 20, 400, 100, 100), entry(2, 20, 200, 100, 100), {"player": {}}]
    windows = [entry(2, 5, 100, 25, 25)]
    records = nba_trendlens.build_records(seasons, windows, updated_at=UPDATED)
    assert [r["objectID"] for r in records] == ["player_1", "player_2"]
    assert "recentPointsPerGame" not in records[0]
    assert records[1]["recentPointsPerGame"] == pytest.approx(20.0)
