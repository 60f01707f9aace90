from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from flask import Blueprint, g, request

from .. import odds_api_client, settings
from ..adapters.algolia import AlgoliaSink
from ..adapters.mysportsfeeds import SOURCE as MSF_SOURCE
from ..adapters.mysportsfeeds import MySportsFeedsClient, schedule_matchups
from ..adapters.pbpstats import PbpStatsAdapter
from ..app_utils import make_ok
from ..constants import NBA_PYTHAGOREAN_EXPONENT, PBPSTATS_TEAMS
from ..csv_source import load_source
from ..domain.contracts import MatchupInsight
from ..errors import APIError, BadRequest
from ..services import nba_stats, nba_trendlens
from ..validators import parse_compact_date, require_param, validate_league

bp = Blueprint("nba", __name__, url_prefix="/nba")
log = logging.getLogger(__name__)

_pbp_singleton = None


def _get_client() -> MySportsFeedsClient:
    # one client per request so the rate limit budget is not shared
    client = g.get("nba_client")
    if client is None:
        client = MySportsFeedsClient(league="nba", season=settings.NBA_SEASON)
        g.nba_client = client
        log.debug("nba client season=%s", client.season)
    return client


def _get_pbp() -> PbpStatsAdapter:
    global _pbp_singleton
    if _pbp_singleton is None:
        _pbp_singleton = PbpStatsAdapter()
    return _pbp_singleton


def _slate_date(default: Optional[date] = None) -> date:
    return parse_compact_date(request.args.get("date"), default)


def _team_index() -> Dict[str, Any]:
    return nba_stats.index_by_abbreviation(_get_client().team_stats_totals())


@bp.get("/pythagorean")
def pythagorean():
    teams = nba_stats.pythagorean_table(
        _get_client().team_stats_totals(),
        NBA_PYTHAGOREAN_EXPONENT,
        scored_path=[("offense", "ptsPerGame")],
        allowed_path=[("defense", "ptsAgainstPerGame")],
    )
    return make_ok(
        {
            "status": "success",
            "data": {
                "teams": teams,
                "metadata": {
                    "pythagoreanExponent": NBA_PYTHAGOREAN_EXPONENT,
                    "formula": "PF^13.91 / (PF^13.91 + PA^13.91)",
                    "note": "Expected win percentage from points scored and allowed per game",
                },
            },
        }
    )


@bp.get("/fourfactor")
def four_factor():
    return make_ok(nba_stats.four_factors_table(_get_client().team_stats_totals()))


@bp.get("/trueshooting")
def true_shooting():
    return make_ok(nba_stats.true_shooting_table(_get_client().team_stats_totals()))


@bp.get("/powermetric")
def power_metric():
    table = load_source(request.args.get("filePath"), settings.NBA_POWER_METRIC_FILE)
    return make_ok(nba_stats.power_metric(table))


@bp.get("/blowout")
def blowout():
    day = _slate_date()
    matchups = schedule_matchups(_get_client(), day)
    predictions = nba_stats.blowout_predictions(matchups, _team_index())
    log.info("blowout date=%s games=%d predictions=%d", day, len(matchups), len(predictions))
    return make_ok({"date": day.isoformat(), "predictions": predictions})


@bp.get("/bayes")
def bayes():
    matchups = schedule_matchups(_get_client(), _slate_date())
    teams = _team_index()
    games = []
    for matchup in matchups:
        home = nba_stats.find_team(teams, matchup["home"])
        away = nba_stats.find_team(teams, matchup["away"])
        for abbr, entry in ((matchup["home"], home), (matchup["away"], away)):
            if entry is None:
                raise APIError(MSF_SOURCE, "NOT_FOUND", f"Team stats not found for {abbr}", status_code=404)
        games.append(nba_stats.bayes_matchup(home, away))
    return make_ok({"games": games})


@bp.get("/epm")
def epm():
    client = _get_client()
    matchups = schedule_matchups(client, _slate_date())
    ratings = nba_stats.team_epm(client.player_stats_totals())
    return make_ok(nba_stats.epm_matchups(matchups, ratings))


@bp.get("/positionaldefense")
def positional_defense():
    client = _get_client()
    try:
        matchups = schedule_matchups(client, _slate_date())
    except APIError as exc:
        if exc.code != "NO_GAMES":
            raise
        return make_ok({"status": "success", "data": {"message": "No NBA games scheduled for today"}})
    teams = nba_stats.slate_teams(matchups)
    return make_ok(nba_stats.positional_defense(client.player_stats_totals(), teams))


@bp.get("/mismatch")
def mismatch():
    player = (request.args.get("player") or "").strip()
    team = (request.args.get("team") or "").strip()
    if not player and not team:
        raise BadRequest("At least one of player or team is required")
    players = _get_client().player_stats_totals(team=team or None, player=player or None)
    if not players:
        raise APIError(MSF_SOURCE, "NOT_FOUND", "Player not found", status_code=404)
    return make_ok(nba_stats.mismatch_metric(players[0]))


@bp.get("/daily-games/<day>")
def daily_games(day: str):
    try:
        parsed = datetime.strptime(day, "%Y%m%d").date()
    except ValueError:
        raise BadRequest("Invalid date format, expected YYYYMMDD")
    return make_ok(nba_stats.unplayed_games(_get_client().games_on(parsed)))


@bp.get("/games-today")
def games_today():
    return make_ok(odds_api_client.filter_bookmakers(odds_api_client.get_nba_odds()))


@bp.get("/relativeefficiency")
def relative_efficiency():
    adapter = _get_pbp()
    result = {}
    for team in PBPSTATS_TEAMS:
        data = adapter.relative_efficiency(team)
        if data is not None:
            result[team] = data
    return make_ok(result)


@bp.get("/subunit")
def subunit():
    players = require_param(request.args.get("players"), "players")
    league, warnings = validate_league(request.args.get("league"))
    if warnings:
        log.info("subunit warnings=%s", warnings)
    return make_ok(_get_pbp().subunit_stats(league, players))


@bp.get("/teamscatterplot")
def team_scatter_plot():
    return make_ok(
        _get_pbp().scatter_plot(
            x=request.args.get("x"),
            y=request.args.get("y"),
            x_type=request.args.get("xType"),
            y_type=request.args.get("yType"),
        )
    )


def _matchup_insight(adapter: PbpStatsAdapter, home: str, away: str) -> MatchupInsight:
    home_eff = adapter.efficiency(home)
    away_eff = adapter.efficiency(away)
    home_shot = adapter.shot_query(home)
    away_shot = adapter.shot_query(away)
    return {
        "home_team": home,
        "away_team": away,
        "home_off_eff": home_eff.get("relative_off_efficiency"),
        "home_def_eff": home_eff.get("relative_def_efficiency"),
        "away_off_eff": away_eff.get("relative_off_efficiency"),
        "away_def_eff": away_eff.get("relative_def_efficiency"),
        "home_shot_quality": home_shot.get("shot_quality"),
        "away_shot_quality": away_shot.get("shot_quality"),
    }


@bp.get("/dailymatchup")
def daily_matchup():
    adapter = _get_pbp()
    insights: List[MatchupInsight] = []
    for game in adapter.live_games():
        home = (game.get("home") or "")[:3]
        away = (game.get("away") or "")[:3]
        if not home or not away:
            continue
        try:
            insights.append(_matchup_insight(adapter, home, away))
        except APIError as exc:
            log.warning("dailymatchup skip %s vs %s: %s", home, away, exc.message)
    if not insights:
        raise APIError("pbpstats", "NO_DATA", "No data available for today's matchups")
    return make_ok(insights)


@bp.get("/trendlens")
def trendlens():
    client = _get_client()
    today = date.today()
    slate = _slate_date(today - timedelta(days=1))
    matchups = schedule_matchups(client, slate)
    window = (today - timedelta(days=settings.TRENDLENS_RECENT_DAYS), today)

    teams = ",".join(team.lower() for team in nba_stats.slate_teams(matchups))
    window_entries = client.player_stats_totals(team=teams, date_range=window)
    season_entries = client.player_stats_totals(team=teams)

    now = datetime.now()
    records = nba_trendlens.build_records(season_entries, window_entries, updated_at=now)
    task_id = AlgoliaSink.from_settings(settings.ALGOLIA_INDEX_NAME).save_objects(records)
    return make_ok(
        {
            "status": "success",
            "recordsSaved": len(records),
            "taskID": task_id,
            "date": now.isoformat(),
        }
    )
