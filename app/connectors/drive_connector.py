"""
app/connectors/drive_connector.py

Google Drive API v3 connector used for script discovery.
"""

from __future__ import annotations

import logging
from typing import Any

from app.connectors.base import BaseGoogleConnector

logger = logging.getLogger(__name__)

SCRIPT_MIME_TYPE = "application/vnd.google-apps.script"
SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"


class DriveConnector(BaseGoogleConnector):
    """
    Lists Apps Script projects and spreadsheets visible to the account.
    """

    api_name = "drive"

    def list_script_files(self, *, limit: int = 1000) -> list[dict[str, Any]]:
        """
        Standalone Apps Script projects, most recently modified first.
        """

        return self._list_files(
            query=f"mimeType='{SCRIPT_MIME_TYPE}'",
            fields="nextPageToken, files(id, name, modifiedTime, owners(emailAddress))",
            limit=limit,
        )

    def list_spreadsheets(self, *, limit: int = 1000) -> list[dict[str, Any]]:
        """
        Spreadsheets owned by the account; candidates for container-bound scripts.
        """

        return self._list_files(
            query=f"mimeType='{SPREADSHEET_MIME_TYPE}' and 'me' in owners",
            fields="nextPageToken, files(id, name)",
            limit=limit,
        )

    def get_file(self, file_id: str) -> dict[str, Any]:
        return self._get_json(f"files/{file_id}", params={"fields": "id, name, webViewLink"})

    def _list_files(self, *, query: str, fields: str, limit: int) -> list[dict[str, Any]]:
        files: list[dict[str, Any]] = []
        page_token: str | None = None
        while len(files) < limit:
            params: dict[str, Any] = {
                "q": query,
                "fields": fields,
                "pageSize": min(1000, limit - len(files)),
                "orderBy": "modifiedTime desc",
            }
            if page_token:
                params["pageToken"] = page_token
            payload = self._get_json("files", params=params)
            batch = payload.get("files") or []
            files.extend(item for item in batch if isinstance(item, dict) and item.get("id"))
            page_token = payload.get("nextPageToken")
            if not page_token or not batch:
                break
        logger.debug("Drive listing query=%r files=%s", query, len(files))
        return files[:limit]
