"""
Google Sheets Connector

Reads and writes the funnel tracking tabs through the Sheets API v4.
"""
from typing import Any, Dict, List, Optional, Sequence
import os

import google.auth
import google_auth_httplib2
import httplib2
from google.oauth2 import service_account
from googleapiclient.discovery import build

from funnel_sync.config import Settings, get_settings
from funnel_sync.exceptions import ConfigurationError, MissingSheetError
from funnel_sync.sheets.a1 import parse_range
from funnel_sync.sheets.storage import SheetStorage
from funnel_sync.utils.logger import log

# Timeout for individual Google Sheets API calls (seconds)
SHEETS_API_TIMEOUT = 30
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def _number_format_type(pattern: str) -> str:
    if "%" in pattern:
        return "PERCENT"
    if "y" in pattern.lower() and "d" in pattern.lower():
        return "DATE"
    return "NUMBER"


def _quote(name: str) -> str:
    return "'" + name.replace("'", "''") + "'"


class GoogleSheetsStorage(SheetStorage):
    """
    SheetStorage backed by one spreadsheet.

    Values are written with USER_ENTERED so formulas evaluate and ISO dates
    become real dates; reads return formatted (displayed) values.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        credentials_path: Optional[str] = None,
        service: Any = None
    ):
        if not spreadsheet_id or spreadsheet_id == "your_spreadsheet_id":
            raise ConfigurationError(
                "TRACKING_SHEET_ID is not configured. Set it in .env to the Google Sheets spreadsheet ID."
            )
        self.spreadsheet_id = spreadsheet_id
        self.credentials_path = credentials_path
        self.service = service
        self._sheet_ids: Optional[Dict[str, int]] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GoogleSheetsStorage":
        settings = settings or get_settings()
        return cls(settings.tracking_sheet_id, settings.google_sheets_credentials_path)

    def _get_service(self):
        if self.service is None:
            if self.credentials_path and os.path.exists(self.credentials_path):
                credentials = service_account.Credentials.from_service_account_file(
                    self.credentials_path,
                    scopes=SHEETS_SCOPES
                )
            else:
                credentials, _ = google.auth.default(scopes=SHEETS_SCOPES)

            # Build with a timeout-aware http transport
            http = httplib2.Http(timeout=SHEETS_API_TIMEOUT)
            authed_http = google_auth_httplib2.AuthorizedHttp(credentials, http=http)
            self.service = build('sheets', 'v4', http=authed_http, cache_discovery=False)
        return self.service

    def _load_sheet_ids(self) -> Dict[str, int]:
        if self._sheet_ids is None:
            result = self._get_service().spreadsheets().get(
                spreadsheetId=self.spreadsheet_id,
                fields="sheets.properties(sheetId,title)"
            ).execute()
            self._sheet_ids = {
                s["properties"]["title"]: s["properties"]["sheetId"]
                for s in result.get("sheets", [])
            }
        return self._sheet_ids

    def _sheet_id(self, name: str) -> int:
        ids = self._load_sheet_ids()
        if name not in ids:
            raise MissingSheetError(name)
        return ids[name]

    def has_sheet(self, name: str) -> bool:
        return name in self._load_sheet_ids()

    def add_sheet(self, name: str) -> None:
        result = self._get_service().spreadsheets().batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={"requests": [{"addSheet": {"properties": {"title": name}}}]}
        ).execute()
        props = result["replies"][0]["addSheet"]["properties"]
        self._load_sheet_ids()[props["title"]] = props["sheetId"]
        log.info(f"Created sheet tab '{name}'")

    def read_range(self, name: str, a1_range: str) -> List[List[Any]]:
        result = self._get_service().spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=f"{_quote(name)}!{a1_range}",
            valueRenderOption="FORMATTED_VALUE"
        ).execute()
        return result.get("values", [])

    def write_range(self, name: str, a1_range: str, rows: Sequence[Sequence[Any]]) -> None:
        self._get_service().spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=f"{_quote(name)}!{a1_range}",
            valueInputOption="USER_ENTERED",
            body={"values": [list(r) for r in rows]}
        ).execute()

    def format_ranges(self, name: str, formats: Dict[str, str]) -> None:
        if not formats:
            return
        sheet_id = self._sheet_id(name)
        requests = []
        for a1_range, pattern in formats.items():
            start_col, start_row, end_col, end_row = parse_range(a1_range)
            grid = {
                "sheetId": sheet_id,
                "startColumnIndex": start_col - 1,
                "endColumnIndex": end_col,
            }
            if start_row is not None:
                grid["startRowIndex"] = start_row - 1
            if end_row is not None:
                grid["endRowIndex"] = end_row
            requests.append({
                "repeatCell": {
                    "range": grid,
                    "cell": {"userEnteredFormat": {"numberFormat": {
                        "type": _number_format_type(pattern),
                        "pattern": pattern,
                    }}},
                    "fields": "userEnteredFormat.numberFormat",
                }
            })
        self._get_service().spreadsheets().batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={"requests": requests}
        ).execute()
