from __future__ import annotations

import logging

from flask import Blueprint, g

from .. import settings
from ..adapters.mysportsfeeds import MySportsFeedsClient
from ..app_utils import make_ok
from ..constants import MLB_PYTHAGOREAN_EXPONENT
from ..services import mlb_stats

bp = Blueprint("mlb", __name__, url_prefix="/mlb")
log = logging.getLogger(__name__)


def _get_client() -> MySportsFeedsClient:
    client = g.get("mlb_client")
    if client is None:
        client = MySportsFeedsClient(league="mlb", season=settings.MLB_SEASON)
        g.mlb_client = client
    return client


@bp.get("/pythagorean")
def pythagorean():
    teams = mlb_stats.pythagorean_wins(_get_client().team_stats_totals())
    log.info("mlb pythagorean teams=%d", len(teams))
    return make_ok(
        {
            "status": "success",
            "data": {
                "teams": teams,
                "metadata": {
                    "pythagoreanExponent": MLB_PYTHAGOREAN_EXPONENT,
                    "formula": "RS^2 / (RS^2 + RA^2)",
                    "note": "Expected win percentage from runs scored and allowed",
                },
            },
        }
    )
