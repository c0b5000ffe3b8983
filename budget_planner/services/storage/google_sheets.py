"""
Google Sheets Remote Snapshot Store

Google Sheets is used as the remote document store because:
1. Users can see (and back up) their own data directly in Sheets
2. No server or database to run
3. Access is governed by ordinary Google sharing

TRADEOFFS:
- One row per user holds the whole snapshot as JSON, so a snapshot
  is limited by the cell size (50,000 characters)
- Sheets has no push notifications: subscriptions poll the row
- No transactions: every write is a full-row overwrite, last write wins
"""

import asyncio
import json
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from budget_planner.config import GoogleSheetsSettings, get_settings
from budget_planner.services.storage.interface import (
    ConnectionError,
    MalformedSnapshotError,
    RemoteChangeCallback,
    RemoteErrorCallback,
    RemotePayload,
    RemoteSnapshotStore,
    RemoteWatch,
    StorageError,
)


# Column mappings for the Snapshots sheet
SNAPSHOT_COLUMNS = [
    "identity",
    "last_updated",
    "origin",
    "revision",
    "snapshot_json",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def poll_interval(self) -> float:
        return self._settings.poll_interval_seconds

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_snapshots_sheet(self) -> gspread.Worksheet:
        """Get or create the Snapshots worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.snapshots_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.snapshots_sheet_name,
                rows=100,
                cols=len(SNAPSHOT_COLUMNS),
            )
            sheet.append_row(SNAPSHOT_COLUMNS)
        return sheet


class _PollingWatch(RemoteWatch):
    """Polls one identity's row and reports when it changes."""

    def __init__(
        self,
        store: "GoogleSheetsSnapshotStore",
        key: str,
        on_change: RemoteChangeCallback,
        on_error: Optional[RemoteErrorCallback],
        interval: float,
    ):
        self._store = store
        self._key = key
        self._on_change = on_change
        self._on_error = on_error
        self._interval = interval
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise StorageError("Watching Google Sheets requires a running event loop")
        self._task = loop.create_task(self._run())

    async def _run(self) -> None:
        marker = None
        first = True
        while True:
            try:
                row = self._store._find_row(self._key)
                current = tuple(row[1][1:4]) if row else None
                if first:
                    # Baseline only; the one-shot load covers the initial value
                    first = False
                elif current != marker:
                    self._on_change(self._store._row_payload(row[1]) if row else None)
                marker = current
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if self._on_error:
                    self._on_error(e)
            await asyncio.sleep(self._interval)

    def cancel(self) -> None:
        self._task.cancel()


class GoogleSheetsSnapshotStore(RemoteSnapshotStore):
    """
    Google Sheets implementation of the remote snapshot store.

    Each user's snapshot is one row. The write-origin tag is copied into
    its own columns so the poller can detect changes without parsing JSON.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, key: str) -> Optional[tuple[int, list]]:
        """Return (sheet row number, row values) for a key, if present."""
        sheet = self._client.get_snapshots_sheet()
        all_rows = sheet.get_all_values()

        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if row and row[0] == key:
                return idx, row
        return None

    def _row_payload(self, row: list) -> RemotePayload:
        try:
            payload = json.loads(row[4])
        except (IndexError, ValueError) as e:
            raise MalformedSnapshotError(f"Unreadable snapshot row for {row[0]}: {e}")
        if not isinstance(payload, dict):
            raise MalformedSnapshotError(f"Snapshot row for {row[0]} is not an object")
        return payload

    def _payload_to_row(self, key: str, payload: RemotePayload) -> list:
        return [
            key,
            payload.get("lastUpdated", ""),
            payload.get("origin", ""),
            str(payload.get("revision", "")),
            json.dumps(payload, ensure_ascii=False),
        ]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def read(self, key: str) -> Optional[RemotePayload]:
        """Fetch the snapshot row for a user."""
        try:
            found = self._find_row(key)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read snapshot: {e}")

        if found is None:
            return None
        return self._row_payload(found[1])

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def write(self, key: str, payload: RemotePayload) -> bool:
        """Overwrite (or create) the snapshot row for a user."""
        try:
            sheet = self._client.get_snapshots_sheet()
            row = self._payload_to_row(key, payload)
            found = self._find_row(key)
            if found is None:
                sheet.append_row(row, value_input_option="RAW")
            else:
                idx = found[0]
                sheet.update(
                    range_name=f"A{idx}:E{idx}",
                    values=[row],
                    value_input_option="RAW",
                )
            return True
        except Exception as e:
            raise StorageError(f"Failed to save snapshot: {e}")

    def watch(
        self,
        key: str,
        on_change: RemoteChangeCallback,
        on_error: Optional[RemoteErrorCallback] = None,
    ) -> RemoteWatch:
        return _PollingWatch(
            self,
            key,
            on_change,
            on_error,
            interval=self._client.poll_interval,
        )
