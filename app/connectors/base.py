"""
app/connectors/base.py

Base Google API connector and shared HTTP mechanics.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

import requests

from app.config import ExternalHTTPSettings
from app.connectors.google_auth import GoogleAccessTokenProvider

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class GoogleAPIError(RuntimeError):
    """
    Raised when a Google API call fails.

    ``status_code`` is None when no response was received.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BaseGoogleConnector:
    """
    Authenticated JSON access to one Google API with retry support.
    """

    api_name: str = "google"

    def __init__(
        self,
        *,
        base_url: str,
        token_provider: GoogleAccessTokenProvider,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._session = session or requests.Session()
        self._timeout_seconds = http_settings.timeout_seconds
        self._max_retries = http_settings.max_retries
        self._backoff_initial_seconds = http_settings.backoff_initial_seconds
        self._backoff_multiplier = http_settings.backoff_multiplier

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        response = self._request(method="GET", path=path, params=params)
        try:
            payload = response.json()
        except ValueError as exc:
            raise GoogleAPIError(
                f"{self.api_name}: response was not valid JSON.",
                status_code=response.status_code,
            ) from exc
        return payload if isinstance(payload, dict) else {}

    def _request(
        self,
        *,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> requests.Response:
        """
        Execute an authenticated request with exponential backoff.

        A 401 invalidates the cached token and is retried once with a fresh one.
        """

        url = f"{self._base_url}/{path.lstrip('/')}"
        last_error: Exception | None = None
        reauthorized = False
        attempt = 0
        while attempt <= self._max_retries:
            headers = {"Authorization": f"Bearer {self._token_provider.get_token()}"}
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers=headers,
                    timeout=self._timeout_seconds,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc
            else:
                if response.status_code == 401 and not reauthorized:
                    reauthorized = True
                    self._token_provider.invalidate()
                    continue
                if response.status_code < 400:
                    return response
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    message = _error_message(response)
                    logger.error(
                        "Google API request failed api=%s status=%s url=%s error=%s",
                        self.api_name,
                        response.status_code,
                        url,
                        message,
                    )
                    raise GoogleAPIError(
                        f"{self.api_name}: {response.status_code} {message}",
                        status_code=response.status_code,
                    )
                last_error = GoogleAPIError(
                    f"{self.api_name}: retryable status {response.status_code}",
                    status_code=response.status_code,
                )

            if attempt >= self._max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Google API request retry api=%s attempt=%s/%s wait_seconds=%.2f url=%s",
                self.api_name,
                attempt + 1,
                self._max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)
            attempt += 1

        logger.error(
            "Google API request exhausted retries api=%s url=%s error=%s",
            self.api_name,
            url,
            last_error,
        )
        status_code = last_error.status_code if isinstance(last_error, GoogleAPIError) else None
        raise GoogleAPIError(
            f"{self.api_name}: request failed after retries.",
            status_code=status_code,
        ) from last_error

    @staticmethod
    def parse_iso_datetime(value: str) -> datetime:
        """
        Parse an ISO datetime string into a timezone-aware datetime.
        """

        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        # Google returns nanosecond fractions; fromisoformat accepts at most six digits.
        if "." in normalized:
            head, _, tail = normalized.partition(".")
            digits_end = len(tail) - len(tail.lstrip("0123456789"))
            digits, offset = tail[:digits_end], tail[digits_end:]
            normalized = f"{head}.{digits[:6].ljust(6, '0')}{offset}"
        parsed = datetime.fromisoformat(normalized)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return response.text[:200]
