from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .. import config, settings
from ..constants import PBPSTATS_BASE_URL, PBPSTATS_SCATTER_DEFAULTS
from ..errors import APIError
from ..utils import create_retry_session, request_with_retries

log = logging.getLogger(__name__)

SOURCE = "pbpstats"


class PbpStatsAdapter:
    """Read-only client for api.pbpstats.com."""

    def __init__(self, timeout: Optional[float] = None, session: Optional[requests.Session] = None) -> None:
        self.timeout = timeout or config.API_TIMEOUT
        self.session = session or create_retry_session(
            max_retries=config.SESSION_MAX_ATTEMPTS, backoff_factor=0.5
        )

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{PBPSTATS_BASE_URL}{path}"
        try:
            response = request_with_retries(
                self.session,
                "GET",
                url,
                timeout=self.timeout,
                max_retries=config.SESSION_MAX_ATTEMPTS,
                backoff_factor=0.5,
                context=f"pbpstats {path}",
                params=params,
            )
        except requests.Timeout as exc:
            raise APIError(SOURCE, "TIMEOUT", f"pbpstats {path} timed out") from exc
        except requests.HTTPError as exc:
            status = getattr(exc.response, "status_code", None)
            raise APIError(SOURCE, "HTTP_ERROR", f"pbpstats {path} failed", details=f"HTTP {status}") from exc
        except requests.RequestException as exc:
            raise APIError(SOURCE, "NETWORK_ERROR", f"pbpstats {path} unreachable", details=type(exc).__name__) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise APIError(SOURCE, "PARSE_ERROR", f"pbpstats {path} returned invalid JSON") from exc

    def efficiency(self, team: str) -> Dict[str, Any]:
        payload = self._get("/get-relative-off-def-efficiency/nba", {"team": team})
        if not isinstance(payload, dict):
            raise APIError(SOURCE, "PARSE_ERROR", f"Failed to parse efficiency data for team {team}")
        return payload

    def relative_efficiency(self, team: str, season: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Relative offensive/defensive efficiency for ``team``, or None outside ``season``."""

        season = season or settings.PBPSTATS_SEASON
        payload = self.efficiency(team)
        return payload if payload.get("season") == season else None

    def subunit_stats(self, league: str, players: str) -> Any:
        return self._get(f"/get-lineup-subunit-stats/{league}", {"players": players})

    def scatter_plot(
        self,
        x: Optional[str] = None,
        y: Optional[str] = None,
        x_type: Optional[str] = None,
        y_type: Optional[str] = None,
    ) -> Any:
        params = {
            "Season": settings.PBPSTATS_SCATTER_SEASON,
            "SeasonType": "Regular Season",
            "X": x or PBPSTATS_SCATTER_DEFAULTS["x"],
            "Y": y or PBPSTATS_SCATTER_DEFAULTS["y"],
            "XType": x_type or PBPSTATS_SCATTER_DEFAULTS["x_type"],
            "YType": y_type or PBPSTATS_SCATTER_DEFAULTS["y_type"],
        }
        return self._get("/get-scatter-plots/nba", params)

    def live_games(self) -> List[Dict[str, Any]]:
        payload = self._get("/live/games/nba")
        return payload.get("game_data", []) if isinstance(payload, dict) else []

    def shot_query(self, team: str) -> Dict[str, Any]:
        payload = self._get("/get-shot-query-data/nba", {"team": team})
        if not isinstance(payload, dict):
            raise APIError(SOURCE, "PARSE_ERROR", f"Failed to parse shot query data for team {team}")
        return payload
