from __future__ import annotations

import logging
from datetime import datetime

from flask import Blueprint, request

from .. import settings
from ..adapters.algolia import AlgoliaSink
from ..app_utils import make_ok
from ..csv_source import load_source
from ..services import nhl_stats, nhl_trendlens
from ..validators import validate_recent_days

bp = Blueprint("nhl", __name__)
log = logging.getLogger(__name__)


def _table(default_name: str):
    return load_source(request.args.get("filePath"), default_name)


@bp.get("/process-goals")
def process_goals():
    return make_ok(nhl_stats.goals_by_position(_table(settings.NHL_GOALS_FILE)))


@bp.get("/process-assists")
def process_assists():
    return make_ok(nhl_stats.assists_by_position(_table(settings.NHL_ASSISTS_FILE)))


@bp.get("/process-goals-against")
def process_goals_against():
    table = _table(settings.NHL_GOALS_AGAINST_FILE)
    return make_ok(nhl_stats.goals_against(table, settings.NHL_SEASON))


@bp.get("/process-goal-diff")
def process_goal_diff():
    table = _table(settings.NHL_GOAL_DIFF_FILE)
    return make_ok(nhl_stats.goal_differential(table, settings.NHL_SEASON))


@bp.get("/process-avgscoretime")
def process_avg_score_time():
    table = _table(settings.NHL_SCORE_TIME_FILE)
    return make_ok(nhl_stats.time_to_score(table, settings.NHL_SEASON))


@bp.get("/process-shotstogoals")
def process_shots_to_goals():
    return make_ok(nhl_stats.shots_to_goals(_table(settings.NHL_SHOTS_TO_GOALS_FILE)))


@bp.get("/process-dangerzone")
def process_danger_zone():
    return make_ok(nhl_stats.danger_zone(_table(settings.NHL_DANGER_ZONE_FILE)))


@bp.get("/nhl/trendlens")
def trendlens():
    table = _table(settings.NHL_TRENDLENS_FILE)
    recent_days, warnings = validate_recent_days(
        request.args.get("recentDays"), default=settings.TRENDLENS_RECENT_DAYS
    )
    now = datetime.now()
    result = nhl_trendlens.build_trendlens(
        table, now=now, recent_days=recent_days, min_shots=settings.TRENDLENS_MIN_SHOTS
    )

    sink = AlgoliaSink.from_settings(settings.ALGOLIA_NHL_INDEX_NAME)
    task_id = sink.save_objects(result["records"])
    log.info("nhl trendlens saved=%d task=%s warnings=%s", len(result["records"]), task_id, warnings)
    return make_ok(
        {
            "status": "success",
            "playerCount": len(result["players"]),
            "gameCount": len(result["games"]),
            "recordsSaved": len(result["records"]),
            "taskID": task_id,
            "date": now.isoformat(),
        }
    )
