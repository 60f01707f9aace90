from __future__ import annotations

import logging

from flask import Blueprint, request

from .. import odds_api_client
from ..app_utils import make_ok

bp = Blueprint("events", __name__)
log = logging.getLogger(__name__)


@bp.get("/upcoming-events")
def upcoming_events():
    events = odds_api_client.get_upcoming_odds()
    log.info("upcoming_events count=%d", len(events))
    if (request.args.get("groupBy") or "").lower() == "sport":
        return make_ok(odds_api_client.group_by_sport(events))
    return make_ok(events)


@bp.get("/nhl-events")
def nhl_events():
    return make_ok(odds_api_client.get_nhl_events())
