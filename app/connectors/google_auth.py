"""
app/connectors/google_auth.py

Credential loading and access-token refresh for Google API calls.

Only already-issued credentials are handled here: environment variables in
production, the clasp credentials file during local development.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any

import requests

from app.config import GoogleAPISettings

logger = logging.getLogger(__name__)

# Refresh a little before the advertised expiry.
_EXPIRY_SKEW_SECONDS = 60.0


class GoogleCredentialsError(RuntimeError):
    """
    Raised when no usable Google credentials are configured, or a token
    refresh is rejected.
    """


@dataclass(frozen=True)
class GoogleCredentials:
    client_id: str
    client_secret: str = field(default="", repr=False)
    refresh_token: str = field(default="", repr=False)
    access_token: str = field(default="", repr=False)


def load_google_credentials(settings: GoogleAPISettings) -> GoogleCredentials:
    """
    Resolve credentials from settings first, then from ``.clasprc.json``.
    """

    if settings.client_id and settings.refresh_token:
        return GoogleCredentials(
            client_id=settings.client_id,
            client_secret=settings.client_secret or "",
            refresh_token=settings.refresh_token,
            access_token=settings.access_token or "",
        )

    path = settings.clasprc_path
    if not path.exists():
        raise GoogleCredentialsError(
            "Google credentials not found. Either set GOOGLE_CLIENT_ID and GOOGLE_REFRESH_TOKEN "
            'environment variables, or run "clasp login" locally.'
        )

    try:
        clasprc: Any = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise GoogleCredentialsError(f"Could not read clasp credentials from {path}.") from exc

    token = None
    if isinstance(clasprc, dict):
        tokens = clasprc.get("tokens")
        token = tokens.get("default") if isinstance(tokens, dict) else None
        token = token or clasprc.get("token")
    if not isinstance(token, dict):
        raise GoogleCredentialsError(f"No valid token found in {path.name}.")

    return GoogleCredentials(
        client_id=str(token.get("client_id") or ""),
        client_secret=str(token.get("client_secret") or ""),
        refresh_token=str(token.get("refresh_token") or ""),
        access_token=str(token.get("access_token") or ""),
    )


class GoogleAccessTokenProvider:
    """
    Hands out bearer tokens, refreshing them through the OAuth token endpoint.

    A configured access token is used until the first 401 forces a refresh;
    refreshed tokens are cached until shortly before they expire.
    """

    def __init__(
        self,
        *,
        settings: GoogleAPISettings,
        credentials: GoogleCredentials | None = None,
        session: requests.Session | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._settings = settings
        self._credentials = credentials
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds
        self._lock = threading.Lock()
        self._access_token: str | None = None
        self._expires_at: float | None = None

    def get_token(self) -> str:
        with self._lock:
            credentials = self._get_credentials()
            if self._access_token is None and credentials.access_token:
                self._access_token = credentials.access_token
            if self._access_token and not self._is_expired():
                return self._access_token
            return self._refresh(credentials)

    def invalidate(self) -> None:
        with self._lock:
            self._access_token = None
            self._expires_at = 0.0

    def _get_credentials(self) -> GoogleCredentials:
        if self._credentials is None:
            self._credentials = load_google_credentials(self._settings)
        return self._credentials

    def _is_expired(self) -> bool:
        if self._expires_at is None:
            return False
        return time.monotonic() >= self._expires_at

    def _refresh(self, credentials: GoogleCredentials) -> str:
        if not credentials.refresh_token:
            raise GoogleCredentialsError("Google credentials have no refresh token.")

        try:
            response = self._session.post(
                self._settings.token_uri,
                data={
                    "client_id": credentials.client_id,
                    "client_secret": credentials.client_secret,
                    "refresh_token": credentials.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise GoogleCredentialsError("Google token refresh request failed.") from exc

        if response.status_code != 200:
            logger.error("Google token refresh rejected status=%s", response.status_code)
            raise GoogleCredentialsError(f"Google token refresh rejected with status {response.status_code}.")

        try:
            payload = response.json()
        except ValueError as exc:
            raise GoogleCredentialsError("Google token refresh returned invalid JSON.") from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise GoogleCredentialsError("Google token refresh returned no access token.")

        expires_in = payload.get("expires_in")
        if isinstance(expires_in, (int, float)) and expires_in > 0:
            self._expires_at = time.monotonic() + max(0.0, float(expires_in) - _EXPIRY_SKEW_SECONDS)
        else:
            self._expires_at = None
        self._access_token = str(token)
        logger.info("Google access token refreshed")
        return self._access_token
