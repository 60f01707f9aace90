"""NBA team and player metrics over MySportsFeeds payloads.

All functions here are pure: they take already-fetched ``teamStatsTotals`` /
``playerStatsTotals`` entries (plain dicts) and return JSON-ready structures.
"""
from __future__ import annotations

import math
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..config import setup_logger
from ..constants import (
    BLOWOUT_HOME_ADVANTAGE,
    BLOWOUT_MIDPOINT,
    BLOWOUT_NET_RATING_WEIGHT,
    BLOWOUT_PYTH_WEIGHT,
    BLOWOUT_STEEPNESS,
    EPM_HIGH_THRESHOLD,
    EPM_LOW_THRESHOLD,
    EPM_POSITION_GROUPS,
    NBA_PYTHAGOREAN_EXPONENT,
    POSITIONAL_DEFENSE_LIMIT,
    POWER_METRIC_WEIGHTS,
)
from ..csv_source import Table, parse_float
from ..domain.contracts import BlowoutPrediction, PythagoreanTeam
from ..utils import pct, safe_div

logger = setup_logger(__name__)


def stat(entry: Mapping[str, Any], *path: str, default: float = 0.0) -> float:
    """Walk ``entry['stats'][path...]`` and return a float, or ``default``."""

    node: Any = entry.get("stats") or {}
    for key in path:
        if not isinstance(node, Mapping):
            return default
        node = node.get(key)
    try:
        return float(node) if node is not None else default
    except (TypeError, ValueError):
        return default


def team_abbreviation(entry: Mapping[str, Any]) -> str:
    return (entry.get("team") or {}).get("abbreviation", "")


def team_display_name(entry: Mapping[str, Any]) -> str:
    team = entry.get("team") or {}
    return f"{team.get('city', '')} {team.get('name', '')}".strip()


def index_by_abbreviation(entries: Iterable[Mapping[str, Any]]) -> Dict[str, Mapping[str, Any]]:
    return {team_abbreviation(e).upper(): e for e in entries if team_abbreviation(e)}


# ---------------------------------------------------------------------------
# Pythagorean expectation
# ---------------------------------------------------------------------------

def pythagorean_fraction(scored: float, allowed: float, exponent: float) -> float:
    """Expected win fraction; 0 when either input is non-positive."""

    if scored <= 0 or allowed <= 0:
        return 0.0
    scored_e = scored ** exponent
    return scored_e / (scored_e + allowed ** exponent)


def pythagorean_pct(scored: float, allowed: float, exponent: float = NBA_PYTHAGOREAN_EXPONENT) -> float:
    return pythagorean_fraction(scored, allowed, exponent) * 100


def pythagorean_table(
    entries: Iterable[Mapping[str, Any]],
    exponent: float,
    *,
    scored_path: Sequence[Sequence[str]],
    allowed_path: Sequence[Sequence[str]],
    scored_key: str = "pointsPerGame",
    allowed_key: str = "pointsAgainstPerGame",
) -> List[PythagoreanTeam]:
    """Expected vs actual wins per team, best expected first.

    ``scored_path``/``allowed_path`` list candidate stat paths, first present wins,
    so the same routine serves points (NBA) and runs (MLB).
    """

    def first_stat(entry: Mapping[str, Any], paths: Sequence[Sequence[str]]) -> float:
        for path in paths:
            value = stat(entry, *path, default=math.nan)
            if not math.isnan(value):
                return value
        return 0.0

    teams: List[PythagoreanTeam] = []
    for entry in entries:
        scored = first_stat(entry, scored_path)
        allowed = first_stat(entry, allowed_path)
        wins = stat(entry, "standings", "wins")
        losses = stat(entry, "standings", "losses")
        games = wins + losses
        expected_pct = pythagorean_pct(scored, allowed, exponent)
        expected_wins = expected_pct / 100 * games
        teams.append(
            {
                "team": team_display_name(entry),
                "abbreviation": team_abbreviation(entry),
                scored_key: round(scored, 2),
                allowed_key: round(allowed, 2),
                "actualWinPct": round(stat(entry, "standings", "winPct") * 100, 2),
                "expectedWinPct": round(expected_pct, 2),
                "expectedWins": round(expected_wins, 2),
                "actualWins": int(wins),
                "winDifference": round(wins - expected_wins, 2),
            }
        )
    teams.sort(key=lambda t: t["expectedWinPct"], reverse=True)
    return teams


# ---------------------------------------------------------------------------
# Shooting / four factors
# ---------------------------------------------------------------------------

def four_factors(entry: Mapping[str, Any]) -> Dict[str, Any]:
    fgm = stat(entry, "fieldGoals", "fgMade")
    fga = stat(entry, "fieldGoals", "fgAtt")
    fg3m = stat(entry, "fieldGoals", "fg3PtMade")
    fta = stat(entry, "freeThrows", "ftAtt")
    tov = stat(entry, "defense", "tov")
    oreb = stat(entry, "rebounds", "offReb")
    dreb = stat(entry, "rebounds", "defReb")

    efg = pct(fgm + 0.5 * fg3m, fga)
    to_rate = pct(tov, fga + 0.44 * fta + tov)
    orb_rate = pct(oreb, oreb + dreb)
    ft_rate = pct(fta, fga)
    overall = (efg + (100 - to_rate) + orb_rate + ft_rate) / 4
    return {
        "team": team_display_name(entry),
        "abbreviation": team_abbreviation(entry),
        "eFGPercentage": round(efg, 2),
        "turnoverRate": round(to_rate, 2),
        "offensiveReboundRate": round(orb_rate, 2),
        "freeThrowRate": round(ft_rate, 2),
        "overallRate": round(overall, 2),
    }


def four_factors_table(entries: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    rows = [four_factors(e) for e in entries]
    rows.sort(key=lambda r: r["eFGPercentage"], reverse=True)
    return rows


def true_shooting_pct(entry: Mapping[str, Any]) -> float:
    points = (
        2 * stat(entry, "fieldGoals", "fg2PtMade")
        + 3 * stat(entry, "fieldGoals", "fg3PtMade")
        + stat(entry, "freeThrows", "ftMade")
    )
    attempts = (
        stat(entry, "fieldGoals", "fg2PtAtt")
        + stat(entry, "fieldGoals", "fg3PtAtt")
        + 0.44 * stat(entry, "freeThrows", "ftAtt")
    )
    return safe_div(points, 2 * attempts) * 100


def true_shooting_table(entries: Iterable[Mapping[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "teamStatsTotals": [
            {
                "team": entry.get("team") or {},
                "stats": {
                    "ftPct": stat(entry, "freeThrows", "ftPct"),
                    "fg2PtPct": stat(entry, "fieldGoals", "fg2PtPct"),
                    "fg3PtPct": stat(entry, "fieldGoals", "fg3PtPct"),
                },
                "tsPercentage": round(true_shooting_pct(entry), 2),
            }
            for entry in entries
        ]
    }


# ---------------------------------------------------------------------------
# Power metric (CSV backed)
# ---------------------------------------------------------------------------

def power_metric(table: Table) -> List[Dict[str, Any]]:
    cols = table.require("team", "conference", *POWER_METRIC_WEIGHTS)
    rows = []
    for row in table.records(cols):
        values = {name: parse_float(row[name], None) for name in POWER_METRIC_WEIGHTS}
        if any(v is None for v in values.values()):
            continue
        score = sum(POWER_METRIC_WEIGHTS[name] * value for name, value in values.items())
        rows.append({"name": row["team"], "conference": row["conference"], "power_metric": score})
    rows.sort(key=lambda r: r["power_metric"], reverse=True)
    return rows


# ---------------------------------------------------------------------------
# Matchup models
# ---------------------------------------------------------------------------

def net_rating(entry: Mapping[str, Any]) -> float:
    return stat(entry, "offense", "ptsPerGame") - stat(entry, "defense", "ptsAgainstPerGame")


def blowout_probability(margin: float) -> float:
    return 1 / (1 + math.exp(-BLOWOUT_STEEPNESS * (margin - BLOWOUT_MIDPOINT)))


def blowout_prediction(home: Mapping[str, Any], away: Mapping[str, Any]) -> BlowoutPrediction:
    home_abbr = team_abbreviation(home)
    away_abbr = team_abbreviation(away)
    net_diff = net_rating(home) - net_rating(away)
    pyth_diff = pythagorean_fraction(
        stat(home, "offense", "ptsPerGame"), stat(home, "defense", "ptsAgainstPerGame"), NBA_PYTHAGOREAN_EXPONENT
    ) - pythagorean_fraction(
        stat(away, "offense", "ptsPerGame"), stat(away, "defense", "ptsAgainstPerGame"), NBA_PYTHAGOREAN_EXPONENT
    )
    margin = net_diff * BLOWOUT_NET_RATING_WEIGHT + pyth_diff * BLOWOUT_PYTH_WEIGHT + BLOWOUT_HOME_ADVANTAGE
    favored = home_abbr if margin >= 0 else away_abbr
    margin = abs(margin)
    return {
        "homeTeam": home_abbr,
        "awayTeam": away_abbr,
        "favoredTeam": favored,
        "predictedMargin": round(margin, 2),
        "blowoutProbability": round(blowout_probability(margin), 4),
        "factors": {
            "netRating": round(net_diff, 2),
            "pythWinPct": round(pyth_diff, 4),
            "homeAdvantage": BLOWOUT_HOME_ADVANTAGE,
        },
    }


def blowout_predictions(
    matchups: Iterable[Mapping[str, str]], teams: Mapping[str, Mapping[str, Any]]
) -> List[BlowoutPrediction]:
    predictions = []
    for matchup in matchups:
        home = teams.get(matchup["home"].upper())
        away = teams.get(matchup["away"].upper())
        if home is None or away is None:
            logger.warning("blowout: missing team stats for %s @ %s", matchup["away"], matchup["home"])
            continue
        predictions.append(blowout_prediction(home, away))
    predictions.sort(key=lambda p: p["blowoutProbability"], reverse=True)
    return predictions


def bayes_win_probability(points_per_game: float, opponent_allowed_per_game: float) -> float:
    """Share of the two sides' scoring expectation, halved and clamped to [0, 1]."""

    probability = 0.5 * safe_div(points_per_game, points_per_game + opponent_allowed_per_game)
    return max(0.0, min(1.0, probability))


def bayes_matchup(home: Mapping[str, Any], away: Mapping[str, Any]) -> Dict[str, Any]:
    sides = []
    for team, opponent in ((home, away), (away, home)):
        sides.append(
            {
                "team": team_display_name(team),
                "abbreviation": team_abbreviation(team),
                "winProbability": bayes_win_probability(
                    stat(team, "offense", "ptsPerGame"),
                    stat(opponent, "defense", "ptsAgainstPerGame"),
                ),
            }
        )
    return {"matchup": sides}


# ---------------------------------------------------------------------------
# EPM (minutes-weighted plus/minus by position group)
# ---------------------------------------------------------------------------

def player_team(entry: Mapping[str, Any]) -> str:
    player = entry.get("player") or {}
    team = player.get("currentTeam") or entry.get("team") or {}
    return (team.get("abbreviation") or "").upper()


def player_position(entry: Mapping[str, Any]) -> str:
    return ((entry.get("player") or {}).get("primaryPosition") or "").upper()


def player_name(entry: Mapping[str, Any]) -> str:
    player = entry.get("player") or {}
    return f"{player.get('firstName', '')} {player.get('lastName', '')}".strip()


def team_epm(players: Iterable[Mapping[str, Any]]) -> Dict[str, Dict[str, float]]:
    """``{team: {group: weighted plus/minus}}`` with minutes as weights."""

    weighted: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    minutes: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    group_of = {pos: group for group, positions in EPM_POSITION_GROUPS.items() for pos in positions}

    for entry in players:
        team = player_team(entry)
        group = group_of.get(player_position(entry))
        if not team or group is None:
            continue
        mins = stat(entry, "miscellaneous", "minSecondsPerGame") / 60
        weighted[team][group] += stat(entry, "miscellaneous", "plusMinusPerGame") * mins
        minutes[team][group] += mins

    return {
        team: {group: safe_div(weighted[team][group], minutes[team][group]) for group in EPM_POSITION_GROUPS}
        for team in minutes
    }


def epm_rating(value: float) -> str:
    if value > EPM_HIGH_THRESHOLD:
        return "High"
    if value > EPM_LOW_THRESHOLD:
        return "Average"
    return "Low"


def league_rank(value: float, ordered_desc: Sequence[float]) -> int:
    for index, other in enumerate(ordered_desc):
        if value >= other:
            return index + 1
    return len(ordered_desc) + 1


def epm_matchups(
    matchups: Iterable[Mapping[str, str]], epm: Mapping[str, Mapping[str, float]]
) -> Dict[str, Dict[str, Any]]:
    league = {group: sorted((t[group] for t in epm.values()), reverse=True) for group in EPM_POSITION_GROUPS}
    empty = {group: 0.0 for group in EPM_POSITION_GROUPS}

    result: Dict[str, Dict[str, Any]] = {}
    for matchup in matchups:
        home, away = matchup["home"].upper(), matchup["away"].upper()
        entry: Dict[str, Any] = {}
        for side, team in (("Home", home), ("Away", away)):
            values = epm.get(team, empty)
            for group in EPM_POSITION_GROUPS:
                value = values[group]
                entry[f"{side}{group}"] = round(value, 2)
                entry[f"{side}{group}Rank"] = league_rank(value, league[group])
                entry[f"{side}{group}Rating"] = epm_rating(value)
        result[f"{home} vs {away}"] = entry
    return result


# ---------------------------------------------------------------------------
# Player level
# ---------------------------------------------------------------------------

def defensive_rating(steals_pg: float, blocks_pg: float, turnovers_pg: float) -> float:
    return 0.3 * steals_pg + 0.3 * blocks_pg + 0.2 * (1 / (turnovers_pg + 0.1))


def positional_defense(players: Iterable[Mapping[str, Any]], teams: Iterable[str]) -> Dict[str, List[Dict[str, Any]]]:
    """Weakest defenders per position among players on ``teams``."""

    wanted = {t.upper() for t in teams}
    by_position: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for entry in players:
        team = player_team(entry)
        if team not in wanted:
            continue
        spg = stat(entry, "defense", "stlPerGame")
        bpg = stat(entry, "defense", "blkPerGame")
        tovpg = stat(entry, "defense", "tovPerGame")
        position = player_position(entry)
        by_position[position].append(
            {
                "player": player_name(entry),
                "team": team,
                "position": position,
                "stealsPerGame": spg,
                "blocksPerGame": bpg,
                "tovPerGame": tovpg,
                "defensiveRating": round(defensive_rating(spg, bpg, tovpg), 3),
            }
        )

    return {
        position: sorted(rows, key=lambda r: r["defensiveRating"])[:POSITIONAL_DEFENSE_LIMIT]
        for position, rows in by_position.items()
    }


def mismatch_metric(entry: Mapping[str, Any]) -> Dict[str, Any]:
    offensive = (stat(entry, "usgPct") + stat(entry, "tsPct") + stat(entry, "efgPct")) / 3.0
    defensive = stat(entry, "defense", "stl")
    return {
        "player": player_name(entry),
        "team": player_team(entry),
        "offensive_rating": offensive,
        "defensive_rating": defensive,
        "mismatch_score": offensive - defensive,
    }


def unplayed_games(games: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    return [g for g in games if (g.get("schedule") or {}).get("playedStatus") == "UNPLAYED"]


def slate_teams(matchups: Iterable[Mapping[str, str]]) -> List[str]:
    """Unique team abbreviations from a slate, in schedule order."""

    seen: List[str] = []
    for matchup in matchups:
        for team in (matchup["away"], matchup["home"]):
            if team not in seen:
                seen.append(team)
    return seen


def find_team(entries: Mapping[str, Mapping[str, Any]], abbreviation: str) -> Optional[Mapping[str, Any]]:
    return entries.get(abbreviation.upper())
