"""HTTP adapter for the school portal's configuration, profile and activity APIs.

Every call goes through one request helper that classifies failures:
connection problems, timeouts, 429 and 5xx are TransientError (retried by
tenacity), everything else is PermanentError. Payloads with
``"success": false`` are treated as permanent failures too.
"""

from typing import Any

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from src.remedial.config import RemedialConfig, get_config
from src.remedial.errors import AuthenticationError, PermanentError, RateLimitError, TransientError
from src.remedial.logging import get_logger

logger = get_logger(__name__)


class RemedialClient:
    """Thin request/response client; one instance per coordinator session."""

    def __init__(
        self,
        config: RemedialConfig | None = None,
        session: requests.Session | None = None,
        wait: wait_base | None = None,
    ) -> None:
        """Initialize RemedialClient.

        Args:
            config: Engine configuration (defaults to the env-loaded singleton).
            session: Pre-built requests session, e.g. one carrying auth cookies.
            wait: tenacity wait strategy between retries.
        """
        self.config = config or get_config()
        self.session = session or requests.Session()
        self.wait = wait or wait_exponential(multiplier=0.5, max=8)
        if self.config.api_token:
            self.session.headers["Authorization"] = f"Bearer {self.config.api_token}"

    def __enter__(self) -> "RemedialClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        allow_missing: bool = False,
    ) -> dict[str, Any] | None:
        retrying = Retrying(
            stop=stop_after_attempt(self.config.api_max_attempts),
            wait=self.wait,
            retry=retry_if_exception_type(TransientError),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return self._request_once(
                    method, path, params=params, json_body=json_body, allow_missing=allow_missing
                )
        return None  # unreachable: reraise=True

    def _request_once(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None,
        json_body: Any,
        allow_missing: bool,
    ) -> dict[str, Any] | None:
        url = f"{self.config.api_base_url}{path}"
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                timeout=self.config.api_timeout_seconds,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning("api_unreachable", method=method, url=url, error=str(e))
            raise TransientError(f"{method} {path} failed: {e}") from e
        except requests.RequestException as e:
            logger.error("api_request_error", method=method, url=url, error=str(e), type=type(e).__name__)
            raise PermanentError(f"{method} {path} failed: {e}") from e

        status = resp.status_code
        if status == 404 and allow_missing:
            logger.info("api_not_found", method=method, url=url)
            return None
        if status == 429:
            raise RateLimitError(f"{method} {path} rate limited")
        if status in (401, 403):
            raise AuthenticationError(f"{method} {path} rejected: HTTP {status}")
        if status >= 500:
            logger.warning("api_server_error", method=method, url=url, status=status)
            raise TransientError(f"{method} {path} failed: HTTP {status}")
        if status >= 400:
            raise PermanentError(f"{method} {path} failed: HTTP {status}: {resp.text[:200]}")

        try:
            data = resp.json()
        except ValueError as e:
            raise PermanentError(f"{method} {path} returned invalid JSON") from e

        if isinstance(data, dict) and data.get("success") is False:
            raise PermanentError(str(data.get("error") or f"{method} {path} reported failure"))

        logger.debug("api_response", method=method, url=url, status=status)
        return data if isinstance(data, dict) else {"value": data}

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------
    def fetch_window_config(self) -> dict[str, Any] | None:
        """Explicit remedial window record; None when none is configured (404)."""
        data = self._request("GET", self.config.window_path, allow_missing=True)
        if data is None:
            return None
        return data.get("schedule") if "schedule" in data else data

    def fetch_quarter_schedule(self, school_year: str) -> dict[str, Any] | None:
        data = self._request(
            "GET",
            self.config.quarter_schedule_path,
            params={"school_year": school_year},
            allow_missing=True,
        )
        if data is None:
            return None
        return data.get("schedule") if "schedule" in data else data

    def fetch_profile(self, user_id: str) -> dict[str, Any]:
        """Coordinator record plus stored activities (``{coordinator, activities}``)."""
        return self._request("GET", self.config.profile_path, params={"userId": user_id}) or {}

    def fetch_weekly_subjects(self) -> dict[str, Any] | None:
        return self._request("GET", self.config.weekly_subjects_path, allow_missing=True)

    def submit_activities(
        self,
        activities: list[dict[str, Any]],
        *,
        grade_level: str | None = None,
        coordinator_id: str | None = None,
        coordinator_name: str | None = None,
        subject_fallback: str | None = None,
    ) -> dict[str, Any]:
        """Send activities for principal approval.

        Returns:
            ``{"inserted": int, "skipped": [{"title", "reason"}], ...}``
        """
        body = {
            "gradeLevel": grade_level,
            "coordinatorId": coordinator_id,
            "coordinatorName": coordinator_name,
            "subjectFallback": subject_fallback,
            "activities": activities,
        }
        logger.info("submitting_activities", count=len(activities), grade_level=grade_level)
        return self._request("POST", self.config.send_path, json_body=body) or {}
