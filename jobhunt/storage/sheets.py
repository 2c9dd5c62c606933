"""Google Sheets result log — one appended row per processed posting."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from google.oauth2 import service_account
from googleapiclient.discovery import build

from jobhunt.config import Settings
from jobhunt.errors import ConfigurationError
from jobhunt.models.outcome import LOG_HEADER, LogRecord

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
NUM_RETRIES = 2
_LAST_COLUMN = chr(ord("A") + len(LOG_HEADER) - 1)  # K
_URL_COLUMN = chr(ord("A") + LOG_HEADER.index("Job URL"))  # J


class GoogleSheetsResultLog:
    """Append-only log backed by a spreadsheet tab.

    The Sheets client is blocking, so each call runs in a worker thread;
    the pipeline still awaits them one at a time.
    """

    def __init__(self, service: Any, spreadsheet_id: str, sheet_name: str = "Sheet1") -> None:
        if not spreadsheet_id:
            raise ConfigurationError("GOOGLE_SHEET_ID environment variable is not set")
        self._service = service
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name

    @classmethod
    def from_settings(cls, settings: Settings) -> GoogleSheetsResultLog:
        """Build the Sheets service from a service-account JSON string.

        Raises:
            ConfigurationError: if the credential or sheet id is missing or invalid.
        """
        if not settings.google_service_account_json:
            raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_JSON environment variable is not set")
        if not settings.google_sheet_id:
            raise ConfigurationError("GOOGLE_SHEET_ID environment variable is not set")
        try:
            info = json.loads(settings.google_service_account_json)
            credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
        except (ValueError, KeyError) as e:
            raise ConfigurationError(f"Invalid GOOGLE_SERVICE_ACCOUNT_JSON: {e}") from e

        service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        return cls(service, settings.google_sheet_id, settings.google_sheet_name)

    def _range(self, a1: str) -> str:
        return f"{self.sheet_name}!{a1}"

    # -- Header -----------------------------------------------------------------

    async def ensure_header(self) -> None:
        """Write the column header into row 1 unless it is already current."""
        await asyncio.to_thread(self._ensure_header_sync)

    def _ensure_header_sync(self) -> None:
        header_range = self._range(f"A1:{_LAST_COLUMN}1")
        result = self._service.spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=header_range,
        ).execute(num_retries=NUM_RETRIES)

        values = result.get("values", [])
        if values and values[0] == LOG_HEADER:
            return

        self._service.spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=header_range,
            valueInputOption="RAW",
            body={"values": [LOG_HEADER]},
        ).execute(num_retries=NUM_RETRIES)
        logger.info("Sheet header %s", "updated" if values else "initialized")

    # -- Append -----------------------------------------------------------------

    async def append(self, record: LogRecord) -> None:
        await asyncio.to_thread(self._append_sync, record)
        logger.info("Row appended to sheet: %s / %s [%s]", record.company, record.role, record.status.value)

    def _append_sync(self, record: LogRecord) -> None:
        self._service.spreadsheets().values().append(
            spreadsheetId=self.spreadsheet_id,
            range=self._range(f"A:{_LAST_COLUMN}"),
            valueInputOption="USER_ENTERED",
            insertDataOption="INSERT_ROWS",
            body={"values": [record.as_row()]},
        ).execute(num_retries=NUM_RETRIES)

    # -- Read path ----------------------------------------------------------------

    async def seen_urls(self) -> set[str]:
        """Job URLs already present in the sheet."""
        return await asyncio.to_thread(self._seen_urls_sync)

    def _seen_urls_sync(self) -> set[str]:
        result = self._service.spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=self._range(f"{_URL_COLUMN}2:{_URL_COLUMN}"),
        ).execute(num_retries=NUM_RETRIES)
        return {row[0].strip() for row in result.get("values", []) if row and row[0].strip()}
