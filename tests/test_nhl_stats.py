import pytest

from statpad.csv_source import Table
from statpad.errors import DataSourceError
from statpad.services import nhl_stats


def make_table(header, rows):
    return Table(header=list(header), rows=[list(r) for r in rows], path="test.csv")


def test_goals_by_position_counts_games_and_goals():
    table = make_table(
        ["playerPositionThatDidEvent", "teamCode", "event", "game_id"],
        [
            ["C", "TOR", "GOAL", "1"],
            ["D", "TOR", "SHOT", "1"],
            ["C", "TOR", "GOAL", "2"],
            ["L", "MTL", "MISS", "2"],
        ],
    )
    result = nhl_stats.goals_by_position(table)
    assert result["TOR"]["total_games"] == 2
    assert result["TOR"]["total_goals"] == {"C": 2}
    assert result["TOR"]["goals_per_game"]["C"] == pytest.approx(1.0)
    assert result["MTL"]["total_goals"] == {}
    assert result["MTL"]["goals_per_game"] == {}


def test_goals_by_position_missing_columns():
    table = make_table(["teamCode", "event"], [["TOR", "GOAL"]])
    with pytest.raises(DataSourceError) as exc:
        nhl_stats.goals_by_position(table)
    assert exc.value.status_code == 400


def test_assists_only_count_goals_after_a_pass():
    table = make_table(
        [
            "playerPositionThatDidEvent",
            "team",
            "event",
            "game_id",
            "goal",
            "lastEventCategory",
            "playerNumThatDidLastEvent",
        ],
        [
            ["C", "HOME", "GOAL", "1", "1", "PASS", "91"],
            ["D", "HOME", "GOAL", "1", "1", "FAC", "44"],
            ["C", "HOME", "SHOT", "2", "0", "PASS", "91"],
        ],
    )
    result = nhl_stats.assists_by_position(table)["HOME"]
    assert result["total_games"] == 2
    assert result["total_assists"] == {"C": 1}
    assert result["player_assists"] == {"91": 1}
    assert result["assists_per_game"]["C"] == pytest.approx(0.5)


GA_HEADER = [
    "playerPositionThatDidEvent",
    "teamCode",
    "event",
    "game_id",
    "isHomeTeam",
    "homeTeamCode",
    "awayTeamCode",
    "season",
]


def test_goals_against_credits_the_opponent():
    table = make_table(
        GA_HEADER,
        [
            ["C", "TOR", "GOAL", "1", "1", "TOR", "MTL", "2024"],
            ["C", "TOR", "GOAL", "1", "1", "TOR", "MTL", "2024"],
            ["D", "MTL", "GOAL", "1", "0", "TOR", "MTL", "2024"],
            ["D", "MTL", "SHOT", "1", "0", "TOR", "MTL", "2024"],
            ["D", "MTL", "GOAL", "9", "0", "TOR", "MTL", "2023"],
        ],
    )
    ranking = nhl_stats.goals_against(table, "2024")
    assert [r["team"] for r in ranking] == ["MTL", "TOR"]
    assert ranking[0]["goals_against_per_game"] == pytest.approx(2.0)
    assert ranking[1]["goals_against_per_game"] == pytest.approx(1.0)
    assert [r["rank"] for r in ranking] == [1, 2]


GD_HEADER = [
    "season",
    "teamCode",
    "event",
    "game_id",
    "homeTeamCode",
    "awayTeamCode",
    "homeTeamGoals",
    "awayTeamGoals",
    "homeTeamWon",
    "period",
]


def test_goal_differential_uses_first_second_period_row_and_clamps():
    table = make_table(
        GD_HEADER,
        [
            ["2024", "TOR", "SHOT", "1", "TOR", "MTL", "0", "0", "1", "1"],
            ["2024", "TOR", "SHOT", "1", "TOR", "MTL", "6", "0", "1", "2"],
            ["2024", "TOR", "SHOT", "1", "TOR", "MTL", "1", "1", "1", "2"],
            ["2024", "MTL", "SHOT", "2", "MTL", "TOR", "1", "2", "0", "2"],
            ["2024", "MTL", "SHOT", "3", "MTL", "TOR", "x", "2", "0", "2"],
        ],
    )
    result = nhl_stats.goal_differential(table, "2024")
    tor = result["TOR"]
    assert tor["team"] == "TOR"
    assert tor["total_games"] == 2
    assert tor["total_wins"] == 2
    assert tor["goal_differential_counts"]["4"] == 1
    assert tor["goal_differential_counts"]["1"] == 1
    assert tor["win_probability_by_differential"]["4"] == pytest.approx(100.0)
    assert tor["win_probability_by_differential"]["0"] == "N/A"
    assert tor["goal_differential_per_game"] == pytest.approx(2.5)

    mtl = result["MTL"]
    assert mtl["goal_differential_counts"]["-4"] == 1
    assert mtl["total_wins"] == 0
    assert mtl["win_probability_by_differential"]["-1"] == pytest.approx(0.0)


def test_goal_differential_lists_teams_without_second_period_rows():
    table = make_table(
        GD_HEADER,
        [
            ["2024", "TOR", "SHOT", "1", "TOR", "MTL", "1", "0", "1", "2"],
            ["2024", "BOS", "SHOT", "4", "BOS", "OTT", "0", "0", "1", "1"],
            ["2023", "EDM", "SHOT", "5", "EDM", "CGY", "0", "0", "1", "2"],
        ],
    )
    result = nhl_stats.goal_differential(table, "2024")
    assert set(result) == {"TOR", "MTL", "BOS", "OTT"}
    bos = result["BOS"]
    assert bos["total_games"] == 0
    assert bos["goal_differential_per_game"] == 0
    assert bos["goal_differential_counts"]["0"] == 0
    assert set(bos["win_probability_by_differential"].values()) == {"N/A"}


def test_clamp_differential():
    assert nhl_stats.clamp_differential(7) == 4
    assert nhl_stats.clamp_differential(-9) == -4
    assert nhl_stats.clamp_differential(2) == 2


def test_time_to_score_tracks_first_goal_per_game():
    table = make_table(
        ["event", "time", "teamCode", "season", "game_id"],
        [
            ["GOAL", "125", "TOR", "2024", "1"],
            ["GOAL", "600", "MTL", "2024", "1"],
            ["GOAL", "1300", "TOR", "2024", "2"],
            ["SHOT", "30", "TOR", "2024", "2"],
            ["GOAL", "bad", "TOR", "2024", "3"],
        ],
    )
    result = nhl_stats.time_to_score(table, "2024")
    tor = result["TOR"]
    assert tor["goals"] == 2
    assert tor["average_time_to_score"] == pytest.approx((2 + 21) / 2)
    assert tor["first_goals"] == 2
    mtl = result["MTL"]
    assert mtl["first_goals"] == 0
    assert mtl["average_time_to_first_goal"] == 0


def test_shots_to_goals_conversion_with_no_shots():
    table = make_table(
        ["event", "teamCode"],
        [["GOAL", "TOR"], ["SHOT", "TOR"], ["SHOT", "TOR"], ["SHOT", "TOR"], ["MISS", "MTL"]],
    )
    result = nhl_stats.shots_to_goals(table)
    assert result["TOR"]["goals"] == 1
    assert result["TOR"]["shots"] == 4
    assert result["TOR"]["conversion_rate"] == pytest.approx(0.25)
    assert result["MTL"]["shots"] == 0
    assert result["MTL"]["conversion_rate"] == 0


def test_is_high_danger_regions():
    assert nhl_stats.is_high_danger(15, 40)
    assert nhl_stats.is_high_danger(28, -30)
    assert not nhl_stats.is_high_danger(28, 40)
    assert nhl_stats.is_high_danger(24, 80, "TIP")
    assert not nhl_stats.is_high_danger(40, 0, "tip")


def test_danger_zone_ranks_and_discounts_blocks():
    table = make_table(
        ["teamCode", "shotDistance", "shotAngleAdjusted", "shotType"],
        [
            ["TOR", "10", "5", "WRIST"],
            ["TOR", "12", "5", "BLOCKED"],
            ["TOR", "60", "5", "SLAP"],
            ["TOR", "10", "5", "UNKNOWN"],
            ["MTL", "60", "5", "SNAP"],
            ["MTL", "15", "10", "SNAP"],
            ["MTL", "70", "10", "SNAP"],
            ["MTL", "70", "10", "SNAP"],
        ],
    )
    result = nhl_stats.danger_zone(table)
    tor = result["TOR"]
    assert tor["total_shots_allowed"] == 3
    assert tor["danger_zone_shots_allowed"] == 1
    assert tor["danger_zone_blocked"] == 1
    assert tor["danger_zone_percentage"] == pytest.approx(100 / 3)
    assert tor["adjusted_danger_zone_percentage"] == pytest.approx(100 / 3 * 0.75)
    assert tor["rank"] == 1
    assert result["MTL"]["danger_zone_percentage"] == pytest.approx(25.0)
    assert result["MTL"]["rank"] == 2
