"""
Shared helpers: rounding/ratio arithmetic used by the stat services and
retry-configured requests sessions used by the JSON API adapters.
"""

import logging
import time
from typing import Any, Callable, Iterable, Optional
from urllib.parse import urlsplit, urlunsplit

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


logger = logging.getLogger(__name__)


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Return numerator/denominator, or ``default`` when the denominator is zero."""

    if not denominator:
        return default
    return numerator / denominator


def pct(numerator: float, denominator: float, places: Optional[int] = None) -> float:
    """Percentage with a zero guard, optionally rounded."""

    value = safe_div(numerator, denominator) * 100
    return round(value, places) if places is not None else value


def scrub_url(url: Optional[str]) -> str:
    """Strip the query string (which may carry API keys) from a URL for logging."""

    if not url:
        return ""
    parts = urlsplit(str(url))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", parts.fragment))


_DEFAULT_ALLOWED_METHODS: frozenset[str] = frozenset(["HEAD", "GET", "OPTIONS", "POST"])
_DEFAULT_STATUS_FORCELIST: tuple[int, ...] = (429, 500, 502, 503, 504)


def create_retry_session(
    max_retries: int,
    backoff_factor: float,
    status_forcelist: Iterable[int] | None = None,
) -> requests.Session:
    """Create a configured :class:`requests.Session` with retry adapters."""

    retry_adapter = HTTPAdapter(
        max_retries=Retry(
            total=0,
            connect=0,
            read=0,
            backoff_factor=backoff_factor,
            status_forcelist=tuple(status_forcelist or _DEFAULT_STATUS_FORCELIST),
            allowed_methods=_DEFAULT_ALLOWED_METHODS,
            raise_on_status=False,
        )
    )

    session = requests.Session()
    session.mount("https://", retry_adapter)
    session.mount("http://", retry_adapter)
    return session


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float,
    max_retries: int,
    backoff_factor: float,
    status_forcelist: Iterable[int] | None = None,
    context: str = "",
    sanitize: Optional[Callable[[str], str]] = scrub_url,
    **kwargs: Any,
) -> requests.Response:
    """Perform an HTTP request, retrying timeouts, connection errors and forced statuses.

    The final failure is re-raised as the underlying ``requests`` exception so
    adapters can map it onto their own error codes.
    """

    max_retries = max(1, max_retries)
    retry_state = Retry(
        total=max_retries,
        connect=max_retries,
        read=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=tuple(status_forcelist or _DEFAULT_STATUS_FORCELIST),
        allowed_methods=_DEFAULT_ALLOWED_METHODS,
        raise_on_status=False,
    )
    shown_url = sanitize(url) if sanitize else url
    context = context or f"{method} {shown_url}"

    attempts = 0
    last_exception: Optional[requests.exceptions.RequestException] = None

    while attempts < max_retries:
        attempts += 1
        response: Optional[requests.Response] = None

        try:
            response = session.request(method, url, timeout=timeout, **kwargs)
            if response.status_code in retry_state.status_forcelist:
                raise requests.exceptions.HTTPError(
                    f"{response.status_code} Server Error: {response.reason}",
                    response=response,
                )
            response.raise_for_status()
            return response
        except requests.exceptions.RequestException as exc:
            last_exception = exc
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            should_retry = attempts < max_retries and (
                isinstance(exc, (requests.exceptions.Timeout, requests.exceptions.ConnectionError))
                or status_code in retry_state.status_forcelist
            )
            if not should_retry:
                break

            retry_state = retry_state.increment(
                method=method,
                url=url,
                response=getattr(exc, "response", None) or response,
                error=exc,
            )
            backoff = retry_state.get_backoff_time()
            logger.warning("Retrying %s (%d/%d): %s", context, attempts, max_retries, exc)
            if backoff > 0:
                time.sleep(backoff)

    logger.error("Failed %s after %d attempts: %s", context, attempts, last_exception)
    raise last_exception
