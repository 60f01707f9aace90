from __future__ import annotations

import logging
import threading
import time
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from requests.auth import HTTPBasicAuth

from .. import config, settings
from ..constants import MYSPORTSFEEDS_BASE_URL
from ..errors import APIError
from ..logging_utils import warn_once
from ..net_retry import fetch_with_backoff

log = logging.getLogger(__name__)

SOURCE = "MySportsFeeds"
# MySportsFeeds v2.x uses the literal password "MYSPORTSFEEDS" with the API key
AUTH_PASSWORD = "MYSPORTSFEEDS"


class RateLimiter:
    """Per-minute request budget with per-endpoint spacing.

    Each request costs ``1 + backoff_seconds``. A request that would push the
    count for the current window past ``limit`` is refused outright; a request
    to an endpoint hit less than ``backoff_seconds`` ago waits out the gap.
    """

    def __init__(
        self,
        limit: int = 100,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.limit = limit
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._count = 0
        self._window_start = clock()
        self._last_request: Dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        return self._count

    def acquire(self, endpoint: str, backoff_seconds: int = 0) -> None:
        cost = 1 + max(0, backoff_seconds)
        with self._lock:
            now = self._clock()
            if now - self._window_start >= self.window:
                self._count = 0
                self._window_start = now

            if self._count + cost > self.limit:
                raise APIError(
                    SOURCE,
                    "RATE_LIMITED",
                    "Rate limit would be exceeded",
                    details=f"current count: {self._count}, new cost: {cost}",
                )

            wait = 0.0
            last = self._last_request.get(endpoint)
            if backoff_seconds > 0 and last is not None:
                wait = backoff_seconds - (now - last)

        if wait > 0:
            log.debug("msf backoff endpoint=%s wait=%.2fs", endpoint, wait)
            self._sleep(wait)

        with self._lock:
            self._count += cost
            self._last_request[endpoint] = self._clock()


class MySportsFeedsClient:
    """Basic-auth client for the MySportsFeeds v2.1 pull API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        league: str = "nba",
        season: Optional[str] = None,
        timeout: Optional[float] = None,
        limiter: Optional[RateLimiter] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.MYSPORTSFEEDS_API_KEY
        self.league = league
        self.season = season or settings.NBA_SEASON
        self.timeout = timeout or config.API_TIMEOUT
        self.limiter = limiter or RateLimiter(limit=config.MSF_REQUESTS_PER_MINUTE)

    def _url(self, path: str) -> str:
        return f"{MYSPORTSFEEDS_BASE_URL}/{self.league}/{self.season}/{path}"

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, backoff_seconds: int = 0) -> requests.Response:
        if not self.api_key:
            warn_once("msf-missing-key", "MYSPORTSFEEDS_API_KEY is not configured", logger=log)
            raise APIError(SOURCE, "CONFIG_ERROR", "MySportsFeeds API key is missing")

        url = self._url(path)
        self.limiter.acquire(url, backoff_seconds)
        response, attempts = fetch_with_backoff(
            url,
            source=SOURCE,
            params=params,
            auth=HTTPBasicAuth(self.api_key, AUTH_PASSWORD),
            timeout=self.timeout,
        )
        if attempts > 1:
            log.info("msf %s succeeded after %d attempts", path, attempts)
        if response.status_code == 401 or response.status_code == 403:
            raise APIError(SOURCE, "AUTH_ERROR", "MySportsFeeds rejected the API key",
                           details=f"HTTP {response.status_code}")
        if response.status_code not in (200, 204):
            raise APIError(SOURCE, "HTTP_ERROR", f"API returned non-200 status code: {response.status_code}",
                           details=(response.text or "")[:200])
        return response

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None, backoff_seconds: int = 0) -> Dict[str, Any]:
        response = self.get(path, params=params, backoff_seconds=backoff_seconds)
        if response.status_code == 204:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise APIError(SOURCE, "PARSE_ERROR", "Failed to decode MySportsFeeds response") from exc

    def team_stats_totals(self, team: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"team": team} if team else None
        return self.get_json("team_stats_totals.json", params).get("teamStatsTotals", [])

    def player_stats_totals(
        self,
        team: Optional[str] = None,
        date_range: Optional[Tuple[date, date]] = None,
        player: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if team:
            params["team"] = team
        if player:
            params["player"] = player
        if date_range:
            start, end = date_range
            params["date"] = f"{start:%Y%m%d}-{end:%Y%m%d}"
        return self.get_json("player_stats_totals.json", params or None).get("playerStatsTotals", [])

    def daily_games(self, day: date) -> List[Dict[str, Any]]:
        """Games on ``day`` in start-time order; empty when nothing is scheduled."""
        params = {
            "status": "in-progress,unplayed,final",
            "sort": "game.starttime.A",
            "force": "true",
        }
        return self.get_json(f"date/{day:%Y%m%d}/games.json", params).get("games", [])

    def games_on(self, day: date) -> List[Dict[str, Any]]:
        return self.get_json("games.json", {"date": f"{day:%Y%m%d}"}).get("games", [])


def schedule_matchups(client: MySportsFeedsClient, day: date) -> List[Dict[str, str]]:
    """``[{"away": ABBR, "home": ABBR}, ...]`` for the slate on ``day``."""

    games = client.daily_games(day)
    matchups = []
    for game in games:
        schedule = game.get("schedule") or {}
        away = (schedule.get("awayTeam") or {}).get("abbreviation")
        home = (schedule.get("homeTeam") or {}).get("abbreviation")
        if away and home:
            matchups.append({"away": away, "home": home})
    if not matchups:
        raise APIError(SOURCE, "NO_GAMES", "No games scheduled for today", status_code=404)
    return matchups
