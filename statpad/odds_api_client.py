import re
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional

from . import settings
from .config import API_TIMEOUT, setup_logger
from .constants import (
    NBA_SPORT_KEY,
    NHL_SPORT_KEY,
    ODDS_API_BASE_URL,
    ODDS_FORMAT,
    ODDS_MARKETS,
    ODDS_REGIONS,
    PREFERRED_BOOKMAKERS,
)
from .errors import APIError
from .logging_utils import warn_once
from .net_retry import fetch_with_backoff

SOURCE = "OddsAPI"

logger = setup_logger(__name__)

invalid_keys = set()  # Track keys the API has rejected so they are skipped
current_key_index = 0


def sanitize_error_message(message):
    """
    Remove API keys from error messages to prevent security leaks.
    Handles patterns: apiKey=XXX, X-Auth-Token: XXX
    """
    if not message:
        return message

    sanitized = re.sub(r'apiKey=[A-Za-z0-9._-]+', 'apiKey=***', str(message))
    sanitized = re.sub(r'X-Auth-Token[:\s]+[A-Za-z0-9._-]+', 'X-Auth-Token: ***', sanitized)
    return sanitized


def _valid_keys() -> List[str]:
    return [k for k in settings.ODDS_API_KEYS if k not in invalid_keys]


def get_next_api_key():
    global current_key_index
    keys = _valid_keys()
    if not keys:
        warn_once("odds-missing-key", "No usable ODDS_API_KEY configured", logger=logger)
        raise APIError(SOURCE, "CONFIG_ERROR", "API key is missing")

    key = keys[current_key_index % len(keys)]
    current_key_index = (current_key_index + 1) % len(keys)
    return key


def _log_quota(response) -> None:
    remaining = (response.headers or {}).get("x-requests-remaining")
    used = (response.headers or {}).get("x-requests-used")
    if remaining is not None:
        logger.info("Odds API quota: remaining=%s used=%s", remaining, used)


def _get_json(path: str, params: Optional[Dict[str, Any]] = None) -> Any:
    """GET an Odds API path, rotating to the next key when one is rejected."""
    url = f"{ODDS_API_BASE_URL}{path}"
    attempts_left = max(1, len(_valid_keys()))
    last_error: Optional[APIError] = None

    for _ in range(attempts_left):
        api_key = get_next_api_key()
        query = dict(params or {})
        query["apiKey"] = api_key
        response, attempts = fetch_with_backoff(
            url, source=SOURCE, params=query, timeout=API_TIMEOUT
        )
        if attempts > 1:
            logger.info("Odds API backoff done for %s after %d attempts", path, attempts)

        if response.status_code == 401:
            invalid_keys.add(api_key)
            logger.warning("Odds API key rejected for %s - trying alternate key", path)
            last_error = APIError(SOURCE, "AUTH_ERROR", "The provided Odds API key was rejected.")
            continue

        if response.status_code != 200:
            body = sanitize_error_message((response.text or "")[:200])
            logger.error("Odds API %s returned %s: %s", path, response.status_code, body)
            raise APIError(
                SOURCE,
                "HTTP_ERROR",
                f"Failed to fetch from The Odds API: status {response.status_code}",
                body or None,
            )

        _log_quota(response)
        try:
            return response.json()
        except ValueError as exc:
            error_msg = sanitize_error_message(str(exc))
            logger.error("Failed to parse Odds API response for %s: %s", path, error_msg)
            raise APIError(SOURCE, "PARSE_ERROR", "Failed to parse API response.", error_msg) from exc

    raise last_error or APIError(SOURCE, "AUTH_ERROR", "All Odds API keys were rejected.")


def get_upcoming_odds() -> List[Dict[str, Any]]:
    """Next events across all in-season sports with h2h and spread prices."""
    return _get_json(
        "/sports/upcoming/odds",
        {"regions": ODDS_REGIONS, "markets": ODDS_MARKETS, "oddsFormat": ODDS_FORMAT},
    )


def get_nhl_events() -> List[Dict[str, Any]]:
    return _get_json(f"/sports/{NHL_SPORT_KEY}/events", {"dateFormat": "iso"})


def get_nba_odds() -> List[Dict[str, Any]]:
    return _get_json(
        f"/sports/{NBA_SPORT_KEY}/odds",
        {"regions": ODDS_REGIONS, "markets": ODDS_MARKETS, "oddsFormat": ODDS_FORMAT},
    )


def group_by_sport(events: Iterable[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grouped: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for event in events:
        grouped.setdefault(event.get("sport_title") or "Unknown", []).append(event)
    return dict(grouped)


def filter_bookmakers(
    events: Iterable[Dict[str, Any]], wanted: Iterable[str] = PREFERRED_BOOKMAKERS
) -> List[Dict[str, Any]]:
    """Keep only ``wanted`` bookmakers; events left with none are dropped."""
    wanted_keys = set(wanted)
    filtered = []
    for event in events:
        books = [b for b in event.get("bookmakers") or [] if b.get("key") in wanted_keys]
        if books:
            filtered.append({**event, "bookmakers": books})
    return filtered
