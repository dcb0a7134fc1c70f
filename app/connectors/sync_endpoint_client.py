"""
app/connectors/sync_endpoint_client.py

HTTP client for the internal sync endpoints called by the cron orchestrator.

Single-shot: no retries and no polling, each call bounded by a
timeout.
"""

from __future__ import annotations

import logging

import requests

from app.domain.cron_sync import DownstreamFailure, DownstreamResult, DownstreamSuccess

logger = logging.getLogger(__name__)


class SyncTransportError(RuntimeError):
    """
    Raised when no usable response was obtained: connection failure,
    timeout, or a success response whose body is not JSON.
    """


class SyncEndpointClient:
    def __init__(
        self,
        *,
        timeout_seconds: float,
        session: requests.Session | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def post(self, url: str, *, timeout_seconds: float | None = None) -> DownstreamResult:
        """
        POST without a body and decode the response defensively.

        ``timeout_seconds`` overrides the client default for this call only.

        Failure bodies fall back to raw text when they are not JSON; success
        bodies must be JSON.
        """

        timeout = self._timeout_seconds if timeout_seconds is None else timeout_seconds
        try:
            response = self._session.post(url, timeout=timeout)
        except requests.RequestException as exc:
            logger.error("Sync endpoint request failed url=%s error=%s", url, exc)
            raise SyncTransportError(str(exc) or exc.__class__.__name__) from exc

        is_success = 200 <= response.status_code < 300
        try:
            body = response.json()
        except ValueError as exc:
            if is_success:
                raise SyncTransportError(
                    f"Invalid JSON in response from {url} (status {response.status_code})."
                ) from exc
            body = response.text

        if is_success:
            return DownstreamSuccess(status_code=response.status_code, payload=body)
        return DownstreamFailure(status_code=response.status_code, body=body)
