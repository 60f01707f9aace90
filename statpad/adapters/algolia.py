from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from .. import config, settings
from ..constants import ALGOLIA_HOST_TEMPLATE
from ..errors import APIError
from ..utils import create_retry_session, request_with_retries

log = logging.getLogger(__name__)

SOURCE = "Algolia"


class AlgoliaSink:
    """Write-only batch upsert into a hosted Algolia index."""

    def __init__(
        self,
        app_id: str,
        api_key: str,
        index_name: str,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.app_id = app_id
        self.api_key = api_key
        self.index_name = index_name
        self.timeout = timeout or config.API_TIMEOUT
        self.session = session or create_retry_session(
            max_retries=config.SESSION_MAX_ATTEMPTS, backoff_factor=0.5
        )

    @classmethod
    def from_settings(cls, index_name: Optional[str]) -> "AlgoliaSink":
        if not settings.ALGOLIA_APP_ID or not settings.ALGOLIA_API_KEY or not index_name:
            raise APIError(SOURCE, "CONFIG_ERROR", "Missing Algolia credentials")
        return cls(settings.ALGOLIA_APP_ID, settings.ALGOLIA_API_KEY, index_name)

    @property
    def batch_url(self) -> str:
        host = ALGOLIA_HOST_TEMPLATE.format(app_id=self.app_id)
        return f"{host}/1/indexes/{self.index_name}/batch"

    def save_objects(self, records: Iterable[Dict[str, Any]]) -> Optional[int]:
        """Upsert ``records`` (each carrying an ``objectID``); returns the task id."""

        requests_body: List[Dict[str, Any]] = [
            {"action": "updateObject", "body": record} for record in records
        ]
        if not requests_body:
            log.info("algolia batch skipped: no records for index=%s", self.index_name)
            return None

        headers = {
            "X-Algolia-Application-Id": self.app_id,
            "X-Algolia-API-Key": self.api_key,
            "Content-Type": "application/json",
        }
        try:
            response = request_with_retries(
                self.session,
                "POST",
                self.batch_url,
                timeout=self.timeout,
                max_retries=config.SESSION_MAX_ATTEMPTS,
                backoff_factor=0.5,
                context=f"algolia batch {self.index_name}",
                headers=headers,
                json={"requests": requests_body},
            )
        except requests.Timeout as exc:
            raise APIError(SOURCE, "TIMEOUT", "Failed to save to Algolia: request timed out") from exc
        except requests.HTTPError as exc:
            status = getattr(exc.response, "status_code", None)
            code = "AUTH_ERROR" if status in (401, 403) else "HTTP_ERROR"
            raise APIError(SOURCE, code, "Failed to save to Algolia", details=f"HTTP {status}") from exc
        except requests.RequestException as exc:
            raise APIError(SOURCE, "NETWORK_ERROR", "Failed to save to Algolia", details=type(exc).__name__) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise APIError(SOURCE, "PARSE_ERROR", "Failed to save to Algolia: invalid JSON") from exc

        task_id = payload.get("taskID")
        log.info(
            "algolia batch index=%s objects=%d task=%s",
            self.index_name,
            len(requests_body),
            task_id,
        )
        return task_id
