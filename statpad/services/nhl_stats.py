"""Team-level NHL aggregates computed from shot-by-shot CSV exports.

Each function takes a loaded :class:`~statpad.csv_source.Table`, validates
the columns it needs and folds the rows in a single pass.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

from ..config import setup_logger
from ..constants import (
    BLOCK_EFFECTIVENESS_WEIGHT,
    DANGER_ZONE_AREAS,
    DANGER_ZONE_SHOT_TYPES,
    DEFLECTION_MAX_DISTANCE,
    DEFLECTION_SHOT_TYPES,
    GOAL_DIFF_CLAMP,
)
from ..csv_source import Table, parse_bool, parse_float, parse_int, require_any
from ..utils import safe_div

logger = setup_logger(__name__)

DIFFERENTIALS = tuple(range(-GOAL_DIFF_CLAMP, GOAL_DIFF_CLAMP + 1))


def _is_goal(event: str) -> bool:
    return event.strip().lower() == "goal"


def is_high_danger(distance: float, angle: float, shot_type: str = "") -> bool:
    """Slot-area shots, or tips/deflections from slightly further out."""

    shot_type = (shot_type or "").lower()
    for max_distance, max_angle in DANGER_ZONE_AREAS:
        if distance <= max_distance and abs(angle) <= max_angle:
            return True
    return shot_type in DEFLECTION_SHOT_TYPES and distance <= DEFLECTION_MAX_DISTANCE


def clamp_differential(diff: int) -> int:
    return max(-GOAL_DIFF_CLAMP, min(GOAL_DIFF_CLAMP, diff))


def goals_by_position(table: Table) -> Dict[str, Dict[str, Any]]:
    cols = table.require("playerPositionThatDidEvent", "teamCode", "event", "game_id")

    games: Dict[str, Set[str]] = defaultdict(set)
    goals: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    for row in table.records(cols):
        team = row["teamCode"]
        games[team].add(row["game_id"])
        if _is_goal(row["event"]):
            goals[team][row["playerPositionThatDidEvent"]] += 1

    result: Dict[str, Dict[str, Any]] = {}
    for team, game_ids in games.items():
        total_games = len(game_ids)
        team_goals = dict(goals.get(team, {}))
        result[team] = {
            "team": team,
            "total_games": total_games,
            "total_goals": team_goals,
            "goals_per_game": {pos: safe_div(n, total_games) for pos, n in team_goals.items()},
        }
    return result


def assists_by_position(table: Table) -> Dict[str, Dict[str, Any]]:
    cols = table.require(
        "playerPositionThatDidEvent",
        "team",
        "event",
        "game_id",
        "goal",
        "lastEventCategory",
        "playerNumThatDidLastEvent",
    )

    games: Dict[str, Set[str]] = defaultdict(set)
    by_position: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    by_player: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    for row in table.records(cols):
        team = row["team"]
        games[team].add(row["game_id"])
        if row["goal"].strip() == "1" and row["lastEventCategory"].strip().lower() == "pass":
            by_position[team][row["playerPositionThatDidEvent"]] += 1
            by_player[team][row["playerNumThatDidLastEvent"]] += 1

    result: Dict[str, Dict[str, Any]] = {}
    for team, game_ids in games.items():
        total_games = len(game_ids)
        positions = dict(by_position.get(team, {}))
        result[team] = {
            "team": team,
            "total_games": total_games,
            "total_assists": positions,
            "player_assists": dict(by_player.get(team, {})),
            "assists_per_game": {pos: safe_div(n, total_games) for pos, n in positions.items()},
        }
    return result


def goals_against(table: Table, season: str) -> List[Dict[str, Any]]:
    """Goals conceded per game, ranked from most to fewest."""

    cols = table.require(
        "playerPositionThatDidEvent",
        "teamCode",
        "event",
        "game_id",
        "isHomeTeam",
        "homeTeamCode",
        "awayTeamCode",
        "season",
    )

    games: Dict[str, Set[str]] = defaultdict(set)
    conceded: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    for row in table.records(cols):
        if row["season"].strip() != season:
            continue
        games[row["teamCode"]].add(row["game_id"])
        if not _is_goal(row["event"]):
            continue
        # the defending side is whichever team did not take the shot
        if parse_bool(row["isHomeTeam"], False):
            defending = row["awayTeamCode"]
        else:
            defending = row["homeTeamCode"]
        conceded[defending][row["playerPositionThatDidEvent"]] += 1

    teams = set(games) | set(conceded)
    ranking = []
    for team in teams:
        total = sum(conceded.get(team, {}).values())
        ranking.append(
            {
                "team": team,
                "goals_against_per_game": safe_div(total, len(games.get(team, ()))),
            }
        )
    ranking.sort(key=lambda item: (-item["goals_against_per_game"], item["team"]))
    for rank, item in enumerate(ranking, start=1):
        item["rank"] = rank
    return ranking


def _empty_goal_diff_team(team: str) -> Dict[str, Any]:
    return {
        "team": team,
        "goal_differentials": [],
        "goal_differential_counts": {d: 0 for d in DIFFERENTIALS},
        "wins_by_differential": {d: 0 for d in DIFFERENTIALS},
    }


def goal_differential(table: Table, season: str) -> Dict[str, Dict[str, Any]]:
    """Second-period goal differential per team and how often each state ended in a win."""

    cols = table.require(
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
    )

    second_period: Dict[str, Dict[str, Any]] = {}
    teams: Dict[str, Dict[str, Any]] = {}
    for row in table.records(cols):
        if row["season"].strip() != season:
            continue
        period = parse_int(row["period"], None)
        home_goals = parse_int(row["homeTeamGoals"], None)
        away_goals = parse_int(row["awayTeamGoals"], None)
        home_won = parse_bool(row["homeTeamWon"], None)
        if period is None or home_goals is None or away_goals is None or home_won is None:
            continue
        for code in (row["homeTeamCode"], row["awayTeamCode"]):
            teams.setdefault(code, _empty_goal_diff_team(code))
        if period != 2 or row["game_id"] in second_period:
            continue
        second_period[row["game_id"]] = {
            "home": row["homeTeamCode"],
            "away": row["awayTeamCode"],
            "home_goals": home_goals,
            "away_goals": away_goals,
            "home_won": home_won,
        }

    for state in second_period.values():
        home_diff = clamp_differential(state["home_goals"] - state["away_goals"])
        away_diff = clamp_differential(state["away_goals"] - state["home_goals"])
        home = teams[state["home"]]
        away = teams[state["away"]]

        home["goal_differentials"].append(home_diff)
        away["goal_differentials"].append(away_diff)
        home["goal_differential_counts"][home_diff] += 1
        away["goal_differential_counts"][away_diff] += 1
        if state["home_won"]:
            home["wins_by_differential"][home_diff] += 1
        else:
            away["wins_by_differential"][away_diff] += 1

    result: Dict[str, Dict[str, Any]] = {}
    for team, acc in teams.items():
        diffs = acc["goal_differentials"]
        counts = acc["goal_differential_counts"]
        wins = acc["wins_by_differential"]
        probabilities: Dict[str, Any] = {}
        for d in DIFFERENTIALS:
            probabilities[str(d)] = wins[d] / counts[d] * 100 if counts[d] else "N/A"
        result[team] = {
            "team": team,
            "total_games": len(diffs),
            "total_wins": sum(wins.values()),
            "goal_differential_per_game": safe_div(sum(diffs), len(diffs)),
            "goal_differential_counts": {str(d): n for d, n in counts.items()},
            "wins_by_differential": {str(d): n for d, n in wins.items()},
            "win_probability_by_differential": probabilities,
        }
    return result


def time_to_score(table: Table, season: str) -> Dict[str, Dict[str, Any]]:
    """Average minute of each team's goals, and of the goals that opened a game."""

    cols = table.require("event", "time", "teamCode", "season", "game_id")

    totals: Dict[str, Dict[str, Any]] = {}
    opened: Set[str] = set()

    for row in table.records(cols):
        if row["season"].strip() != season or not _is_goal(row["event"]):
            continue
        seconds = parse_int(row["time"], None)
        if seconds is None:
            continue
        minutes = seconds // 60
        team = row["teamCode"]
        acc = totals.setdefault(
            team,
            {"team": team, "total_goal_time": 0, "goals": 0, "total_first_goal_time": 0, "first_goals": 0},
        )
        acc["total_goal_time"] += minutes
        acc["goals"] += 1
        if row["game_id"] not in opened:
            opened.add(row["game_id"])
            acc["total_first_goal_time"] += minutes
            acc["first_goals"] += 1

    for acc in totals.values():
        acc["average_time_to_score"] = safe_div(acc["total_goal_time"], acc["goals"])
        acc["average_time_to_first_goal"] = safe_div(acc["total_first_goal_time"], acc["first_goals"])
    return totals


def shots_to_goals(table: Table) -> Dict[str, Dict[str, Any]]:
    cols = table.require("event", "teamCode")

    totals: Dict[str, Dict[str, Any]] = {}
    for row in table.records(cols):
        team = row["teamCode"]
        acc = totals.setdefault(team, {"team": team, "goals": 0, "shots": 0})
        event = row["event"].strip().lower()
        if event == "goal":
            acc["goals"] += 1
            acc["shots"] += 1
        elif event == "shot":
            acc["shots"] += 1

    for acc in totals.values():
        acc["conversion_rate"] = safe_div(acc["goals"], acc["shots"])
    return totals


def danger_zone(table: Table) -> Dict[str, Dict[str, Any]]:
    """High-danger shots allowed per team, discounted by how many were blocked."""

    distance_col = require_any(table, ("arenaAdjustedShotDistance", "shotDistance"))
    cols = table.require("teamCode", distance_col, "shotAngleAdjusted", "shotType")

    totals: Dict[str, Dict[str, Any]] = {}
    for row in table.records(cols):
        team = row["teamCode"].strip()
        if not team:
            continue
        distance: Optional[float] = parse_float(row[distance_col], None)
        angle: Optional[float] = parse_float(row["shotAngleAdjusted"], None)
        if distance is None or angle is None:
            continue
        shot_type = row["shotType"].strip().lower()
        if shot_type not in DANGER_ZONE_SHOT_TYPES:
            continue

        acc = totals.setdefault(
            team,
            {
                "team": team,
                "total_shots_allowed": 0,
                "danger_zone_shots_allowed": 0,
                "danger_zone_blocked": 0,
            },
        )
        acc["total_shots_allowed"] += 1
        if is_high_danger(distance, angle, shot_type):
            if shot_type == "blocked":
                acc["danger_zone_blocked"] += 1
            else:
                acc["danger_zone_shots_allowed"] += 1

    for acc in totals.values():
        allowed = acc["danger_zone_shots_allowed"]
        blocked = acc["danger_zone_blocked"]
        percentage = safe_div(allowed, acc["total_shots_allowed"]) * 100
        block_effectiveness = safe_div(blocked, allowed + blocked)
        acc["danger_zone_percentage"] = percentage
        acc["adjusted_danger_zone_percentage"] = percentage * (
            1 - block_effectiveness * BLOCK_EFFECTIVENESS_WEIGHT
        )

    ordered = sorted(totals.values(), key=lambda acc: (-acc["danger_zone_percentage"], acc["team"]))
    for rank, acc in enumerate(ordered, start=1):
        acc["rank"] = rank
    logger.info("danger zone computed for %d teams", len(ordered))
    return {acc["team"]: acc for acc in ordered}
