"""
app/connectors package marker.
"""

from app.connectors.apps_script_connector import AppsScriptConnector
from app.connectors.base import BaseGoogleConnector, GoogleAPIError
from app.connectors.drive_connector import DriveConnector
from app.connectors.google_auth import (
    GoogleAccessTokenProvider,
    GoogleCredentials,
    GoogleCredentialsError,
    load_google_credentials,
)
from app.connectors.sync_endpoint_client import SyncEndpointClient, SyncTransportError

__all__ = [
    "AppsScriptConnector",
    "BaseGoogleConnector",
    "DriveConnector",
    "GoogleAPIError",
    "GoogleAccessTokenProvider",
    "GoogleCredentials",
    "GoogleCredentialsError",
    "SyncEndpointClient",
    "SyncTransportError",
    "load_google_credentials",
]
