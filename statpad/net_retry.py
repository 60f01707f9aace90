"""Exponential backoff for rate-limited upstreams (The Odds API, MySportsFeeds)."""
from __future__ import annotations

import random
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Optional, Tuple

import requests

from . import config as config_module
from .config import setup_logger
from .errors import APIError

logger = setup_logger(__name__)

TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}


def _parse_retry_after_seconds(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None

    ceiling = config_module.MAX_RETRY_AFTER
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        pass
    else:
        return max(0.0, min(seconds, ceiling))

    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None

    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    now = datetime.now(dt.tzinfo)
    delay = (dt - now).total_seconds()
    if delay > 0:
        delay = max(delay, 0.1)
    return max(0.0, min(delay, ceiling))


def get_retry_delay(attempt: int, response: Optional[requests.Response] = None) -> float:
    """Delay before the next attempt: Retry-After when present, else base * 2^(n-1) + jitter."""
    if response is not None and "Retry-After" in (response.headers or {}):
        parsed = _parse_retry_after_seconds(response.headers.get("Retry-After"))
        if parsed is not None:
            return parsed

    base = config_module.BACKOFF_BASE_DELAY
    jitter = random.uniform(0, config_module.BACKOFF_JITTER)
    delay = base * (2 ** (attempt - 1)) + jitter
    return min(delay, config_module.MAX_RETRY_AFTER)


def fetch_with_backoff(
    url: str,
    *,
    source: str = "HTTP",
    headers: Optional[dict] = None,
    params: Optional[dict] = None,
    auth: Any = None,
    timeout: Optional[float] = None,
    max_attempts: Optional[int] = None,
    request_callable: Optional[Callable[..., requests.Response]] = None,
) -> Tuple[requests.Response, int]:
    """GET ``url``, retrying network errors and transient statuses.

    Returns ``(response, attempts)``. Non-transient statuses (including 204
    and 4xx) come back unchanged for the caller to interpret; exhausting the
    attempts raises :class:`APIError`.
    """
    attempts = max_attempts or config_module.BACKOFF_MAX_ATTEMPTS
    timeout = timeout or config_module.API_TIMEOUT
    request_fn = request_callable or requests.get

    last_error: Optional[Exception] = None
    last_status: Optional[int] = None

    for attempt in range(1, attempts + 1):
        try:
            response = request_fn(url, headers=headers, params=params, auth=auth, timeout=timeout)
        except requests.RequestException as exc:
            last_error = exc
            if attempt == attempts:
                break
            delay = get_retry_delay(attempt)
            logger.warning(
                "%s error %s, retrying in %.1fs (attempt %d/%d)",
                source,
                type(exc).__name__,
                delay,
                attempt,
                attempts,
            )
            time.sleep(delay)
            continue

        if response.status_code not in TRANSIENT_STATUS_CODES:
            return response, attempt

        last_status = response.status_code
        if attempt == attempts:
            break
        delay = get_retry_delay(attempt, response)
        logger.warning(
            "%s transient %s, retrying in %.1fs (attempt %d/%d)",
            source,
            response.status_code,
            delay,
            attempt,
            attempts,
        )
        time.sleep(delay)

    error_message = f"{source} retry limit exceeded"
    if last_error is not None:
        error_code = "NETWORK_ERROR"
        if isinstance(last_error, requests.Timeout):
            error_code = "TIMEOUT"
        raise APIError(source, error_code, error_message, details=type(last_error).__name__) from last_error
    if last_status == 429:
        raise APIError(source, "RATE_LIMITED", error_message, details="HTTP 429")
    raise APIError(source, "HTTP_ERROR", error_message, details=f"HTTP {last_status}")
