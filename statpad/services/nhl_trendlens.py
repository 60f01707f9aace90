"""NHL TrendLens: per-shooter season and recent-window aggregates for the search index."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set

from ..config import setup_logger
from ..constants import DEFAULT_SKATERS, TRENDLENS_DATE_FORMATS, TRENDLENS_RECENT_FRACTION_DIVISOR
from ..csv_source import Table, parse_bool, parse_float, parse_int
from ..utils import safe_div
from .nhl_stats import is_high_danger

logger = setup_logger(__name__)

REQUIRED_COLUMNS = ("event", "time", "teamCode", "season", "game_id")


@dataclass
class Shot:
    game_id: str
    shooter_id: str
    shooter_name: str
    team_code: str
    home_team_code: str = ""
    away_team_code: str = ""
    position: str = ""
    shot_type: str = ""
    distance: float = 0.0
    angle: float = 0.0
    x_goal: float = 0.0
    goal: bool = False
    rush: bool = False
    on_goal: bool = False
    empty_net: bool = False
    home_skaters: int = DEFAULT_SKATERS
    away_skaters: int = DEFAULT_SKATERS
    time_on_ice: float = 0.0
    date: Optional[datetime] = None

    @property
    def is_home(self) -> bool:
        return self.team_code == self.home_team_code

    @property
    def is_power_play(self) -> bool:
        if self.is_home:
            return self.home_skaters > self.away_skaters
        return self.away_skaters > self.home_skaters


@dataclass
class PlayerStats:
    player_id: str
    player_name: str
    position: str
    team_code: str
    games: Set[str] = field(default_factory=set)
    shots_attempted: int = 0
    shots_on_goal: int = 0
    goals: int = 0
    empty_net_goals: int = 0
    rush_shots: int = 0
    high_danger_shots: int = 0
    high_danger_goals: int = 0
    power_play_shots: int = 0
    power_play_goals: int = 0
    average_distance: float = 0.0
    average_angle: float = 0.0
    total_xgoals: float = 0.0
    time_on_ice: float = 0.0

    @property
    def games_played(self) -> int:
        return len(self.games)

    def add(self, shot: Shot) -> None:
        self.games.add(shot.game_id)
        self.shots_attempted += 1
        if shot.on_goal:
            self.shots_on_goal += 1

        if shot.empty_net and shot.on_goal:
            self.goals += 1
            self.empty_net_goals += 1
        elif shot.goal:
            self.goals += 1
            if not shot.on_goal:
                self.shots_on_goal += 1
            if shot.empty_net:
                self.empty_net_goals += 1

        if shot.rush:
            self.rush_shots += 1
        if is_high_danger(shot.distance, shot.angle, shot.shot_type):
            self.high_danger_shots += 1
            if shot.goal:
                self.high_danger_goals += 1
        if shot.is_power_play:
            self.power_play_shots += 1
            if shot.goal:
                self.power_play_goals += 1

        n = self.shots_attempted
        self.average_distance = (self.average_distance * (n - 1) + shot.distance) / n
        self.average_angle = (self.average_angle * (n - 1) + abs(shot.angle)) / n
        self.total_xgoals += shot.x_goal
        self.time_on_ice += shot.time_on_ice


def _parse_date(value: str) -> Optional[datetime]:
    value = (value or "").strip()
    if not value:
        return None
    for fmt in TRENDLENS_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def parse_shots(table: Table) -> List[Shot]:
    """Turn full-width rows with a named shooter into :class:`Shot` records."""

    table.require(*REQUIRED_COLUMNS)

    shots: List[Shot] = []
    for row in table.full_width_rows():
        shooter_id = row.get("shooterPlayerId", "")
        shooter_name = row.get("shooterName", "")
        if not shooter_id or not shooter_name:
            continue
        shots.append(
            Shot(
                game_id=row.get("game_id", ""),
                shooter_id=shooter_id,
                shooter_name=shooter_name,
                team_code=row.get("teamCode", ""),
                home_team_code=row.get("homeTeamCode", ""),
                away_team_code=row.get("awayTeamCode", ""),
                position=row.get("playerPositionThatDidEvent", ""),
                shot_type=row.get("shotType", ""),
                distance=parse_float(row.get("shotDistance"), 0.0),
                angle=parse_float(row.get("shotAngle"), 0.0),
                x_goal=parse_float(row.get("xGoal"), 0.0),
                goal=parse_bool(row.get("goal"), False),
                rush=parse_bool(row.get("shotRush"), False),
                on_goal=row.get("event", "") == "SHOT",
                empty_net=parse_bool(row.get("shotOnEmptyNet"), False),
                home_skaters=parse_int(row.get("homeSkatersOnIce"), DEFAULT_SKATERS),
                away_skaters=parse_int(row.get("awaySkatersOnIce"), DEFAULT_SKATERS),
                time_on_ice=parse_float(row.get("shooterTimeOnIce"), 0.0),
                date=_parse_date(row.get("time", "")),
            )
        )
    return shots


def recent_window(shots: List[Shot], now: Optional[datetime] = None, days: int = 30) -> List[Shot]:
    """Shots from the last ``days`` days, or the trailing ~month of rows when undated."""

    if any(shot.date is not None for shot in shots):
        cutoff = (now or datetime.now()) - timedelta(days=days)
        recent = [shot for shot in shots if shot.date is not None and shot.date > cutoff]
        logger.info("Filtered %d of %d shots as recent by date", len(recent), len(shots))
        return recent

    count = int(len(shots) / TRENDLENS_RECENT_FRACTION_DIVISOR)
    if count <= 0:
        return list(shots)
    logger.info("No usable shot dates; using trailing %d of %d shots as recent", count, len(shots))
    return shots[-count:]


def aggregate_players(shots: Iterable[Shot]) -> Dict[str, PlayerStats]:
    players: Dict[str, PlayerStats] = {}
    for shot in shots:
        stats = players.get(shot.shooter_id)
        if stats is None:
            stats = players[shot.shooter_id] = PlayerStats(
                player_id=shot.shooter_id,
                player_name=shot.shooter_name,
                position=shot.position,
                team_code=shot.team_code,
            )
        stats.add(shot)
    return players


def aggregate_games(shots: Iterable[Shot]) -> Dict[str, Dict[str, Any]]:
    grouped: Dict[str, List[Shot]] = {}
    for shot in shots:
        grouped.setdefault(shot.game_id, []).append(shot)

    games: Dict[str, Dict[str, Any]] = {}
    for game_id, game_shots in grouped.items():
        home = [s for s in game_shots if s.is_home]
        away = [s for s in game_shots if not s.is_home]
        home_xg = sum(s.x_goal for s in home)
        away_xg = sum(s.x_goal for s in away)
        stats: Dict[str, Any] = {
            "homeTeam": game_shots[0].home_team_code,
            "awayTeam": game_shots[0].away_team_code,
            "totalShots": len(game_shots),
            "totalGoals": sum(1 for s in game_shots if s.goal),
            "totalXGoals": round(home_xg + away_xg, 2),
            "homeShots": len(home),
            "homeGoals": sum(1 for s in home if s.goal),
            "homeXGoals": round(home_xg, 2),
            "awayShots": len(away),
            "awayGoals": sum(1 for s in away if s.goal),
            "awayXGoals": round(away_xg, 2),
            "gamePace": round(len(game_shots) / 60.0, 1),
        }
        if home_xg + away_xg > 0:
            stats["homeXGShare"] = round(home_xg / (home_xg + away_xg), 3)
        games[game_id] = stats
    return games


def advanced_metrics(stats: PlayerStats) -> Dict[str, float]:
    gp = stats.games_played
    metrics = {
        "shootingPct": safe_div(stats.goals, stats.shots_on_goal) * 100,
        "shotOnGoalPct": safe_div(stats.shots_on_goal, stats.shots_attempted) * 100,
        "shotsPerGame": safe_div(stats.shots_attempted, gp),
        "shotsOnGoalPerGame": safe_div(stats.shots_on_goal, gp),
        "xGoalsPerShot": safe_div(stats.total_xgoals, stats.shots_attempted),
        "goalsPerGame": safe_div(stats.goals, gp),
        "xGoalsPerGame": safe_div(stats.total_xgoals, gp),
        "rushShootingPct": safe_div(stats.goals, stats.rush_shots) * 100,
        "goalsAboveExpected": stats.goals - stats.total_xgoals,
        "highDangerShotPct": safe_div(stats.high_danger_shots, stats.shots_attempted) * 100,
        "highDangerGoalPct": safe_div(stats.high_danger_goals, stats.high_danger_shots) * 100,
        "powerPlayShootingPct": safe_div(stats.power_play_goals, stats.power_play_shots) * 100,
        "hockeyCardRating": 0.0,
        "hockeyCardRatingPerGame": 0.0,
    }
    if stats.shots_attempted > 0:
        rating = stats.goals + stats.high_danger_goals * 0.5 + (stats.goals - stats.total_xgoals) * 2.0
        metrics["hockeyCardRating"] = rating
        metrics["hockeyCardRatingPerGame"] = safe_div(rating, gp)
    return {key: round(value, 1) for key, value in metrics.items()}


def _recent_fields(recent: PlayerStats, recent_metrics: Dict[str, float]) -> Dict[str, Any]:
    gp = recent.games_played
    return {
        "recentGamesPlayed": gp,
        "recentShotsAttempted": recent.shots_attempted,
        "recentShotsOnGoal": recent.shots_on_goal,
        "recentGoals": recent.goals,
        "recentShotsPerGame": round(safe_div(recent.shots_attempted, gp), 1),
        "recentShotsOnGoalPerGame": round(safe_div(recent.shots_on_goal, gp), 1),
        "recentGoalsPerGame": round(safe_div(recent.goals, gp), 1),
        "recentShootingPct": recent_metrics["shootingPct"],
        "recentXGoals": round(recent.total_xgoals, 1),
        "recentXGoalsPerGame": round(safe_div(recent.total_xgoals, gp), 1),
        "recentGoalsAboveExpected": recent_metrics["goalsAboveExpected"],
        "recentHighDangerGoals": recent.high_danger_goals,
        "recentHighDangerShots": recent.high_danger_shots,
        "recentPowerPlayGoals": recent.power_play_goals,
        "recentHockeyCardRating": recent_metrics["hockeyCardRating"],
        "recentHighDangerShotPct": recent_metrics["highDangerShotPct"],
        "recentHighDangerGoalPct": recent_metrics["highDangerGoalPct"],
    }


def _trend_fields(
    season: PlayerStats,
    recent: PlayerStats,
    metrics: Dict[str, float],
    recent_metrics: Dict[str, float],
) -> Dict[str, float]:
    """Recent window compared against the earlier part of the season."""

    earlier_gp = season.games_played - recent.games_played
    trends: Dict[str, float] = {
        "goalsScoringTrend": recent.goals / recent.games_played
        - (season.goals - recent.goals) / earlier_gp,
        "xGoalsTrend": recent.total_xgoals / recent.games_played
        - (season.total_xgoals - recent.total_xgoals) / earlier_gp,
        "shootingPctTrend": 0.0,
        "hockeyCardTrend": recent_metrics["hockeyCardRatingPerGame"]
        - (metrics["hockeyCardRating"] - recent_metrics["hockeyCardRating"]) / earlier_gp,
    }

    earlier_sog = season.shots_on_goal - recent.shots_on_goal
    if recent.shots_on_goal > 0 and earlier_sog > 0:
        trends["shootingPctTrend"] = recent_metrics["shootingPct"] - (
            (season.goals - recent.goals) / earlier_sog * 100
        )

    earlier_hd = season.high_danger_shots - recent.high_danger_shots
    if recent.high_danger_shots > 0 and earlier_hd > 0:
        trends["recentHighDangerScoringTrend"] = (
            recent.high_danger_goals / recent.high_danger_shots
            - (season.high_danger_goals - recent.high_danger_goals) / earlier_hd
        ) * 100

    if recent.rush_shots > 0 and season.rush_shots > recent.rush_shots:
        trends["rushShotPctTrend"] = (
            recent.rush_shots / recent.shots_attempted
            - (season.rush_shots - recent.rush_shots) / (season.shots_attempted - recent.shots_attempted)
        ) * 100

    if recent.power_play_shots > 0 and season.power_play_shots > recent.power_play_shots:
        trends["powerPlayScoringTrend"] = (
            recent.power_play_goals / recent.power_play_shots
            - (season.power_play_goals - recent.power_play_goals)
            / (season.power_play_shots - recent.power_play_shots)
        ) * 100

    return {key: round(value, 1) for key, value in trends.items()}


def build_player_record(
    stats: PlayerStats,
    recent: Optional[PlayerStats],
    updated_at: datetime,
) -> Dict[str, Any]:
    metrics = advanced_metrics(stats)
    gp = stats.games_played
    record: Dict[str, Any] = {
        "objectID": f"nhl_player_{stats.player_id}",
        "playerID": stats.player_id,
        "playerName": stats.player_name,
        "position": stats.position,
        "teamCode": stats.team_code,
        "gamesPlayed": gp,
        "shotsAttempted": stats.shots_attempted,
        "shotsOnGoal": stats.shots_on_goal,
        "goals": stats.goals,
        "emptyNetGoals": stats.empty_net_goals,
        "shotsPerGame": round(safe_div(stats.shots_attempted, gp), 1),
        "shotsOnGoalPerGame": round(safe_div(stats.shots_on_goal, gp), 1),
        "goalsPerGame": round(safe_div(stats.goals, gp), 1),
        "averageDistance": round(stats.average_distance, 1),
        "averageAngle": round(stats.average_angle, 1),
        "totalXGoals": round(stats.total_xgoals, 1),
        "xGoalsPerGame": round(safe_div(stats.total_xgoals, gp), 1),
        "shootingPct": metrics["shootingPct"],
        "shotOnGoalPct": metrics["shotOnGoalPct"],
        "xGoalsPerShot": metrics["xGoalsPerShot"],
        "rushShots": stats.rush_shots,
        "rushShotPct": round(safe_div(stats.rush_shots, stats.shots_attempted) * 100, 1),
        "highDangerShots": stats.high_danger_shots,
        "highDangerGoals": stats.high_danger_goals,
        "highDangerShotPct": metrics["highDangerShotPct"],
        "highDangerGoalPct": metrics["highDangerGoalPct"],
        "powerPlayShots": stats.power_play_shots,
        "powerPlayGoals": stats.power_play_goals,
        "powerPlayShotPct": metrics["powerPlayShootingPct"],
        "goalsAboveExpected": metrics["goalsAboveExpected"],
        "hockeyCardRating": metrics["hockeyCardRating"],
        "hockeyCardRatingPerGame": metrics["hockeyCardRatingPerGame"],
        "lastUpdated": updated_at.isoformat(),
    }

    if recent is not None and recent.games_played > 0:
        recent_metrics = advanced_metrics(recent)
        record.update(_recent_fields(recent, recent_metrics))
        if gp > recent.games_played:
            record.update(_trend_fields(stats, recent, metrics, recent_metrics))
    return record


def build_trendlens(
    table: Table,
    *,
    now: Optional[datetime] = None,
    recent_days: int = 30,
    min_shots: int = 5,
) -> Dict[str, Any]:
    """Aggregate a shot table into index records plus summary counts."""

    now = now or datetime.now()
    shots = parse_shots(table)
    recent_shots = recent_window(shots, now=now, days=recent_days)

    players = aggregate_players(shots)
    recent_players = aggregate_players(recent_shots)
    games = aggregate_games(shots)

    records = [
        build_player_record(stats, recent_players.get(player_id), now)
        for player_id, stats in players.items()
        if stats.shots_attempted >= min_shots
    ]
    logger.info(
        "TrendLens NHL: %d shots, %d players, %d games, %d records",
        len(shots),
        len(players),
        len(games),
        len(records),
    )
    return {"records": records, "players": players, "games": games}
