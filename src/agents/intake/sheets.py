"""
Google Sheets persistence client

Reads and appends rows through the Sheets v4 REST API. Authentication uses a
service account; when the sheet id or credentials are missing, persistence is
disabled and `build_sheets_client` returns None.
"""
import asyncio
import base64
import binascii
import json
import logging
import os
from pathlib import Path
from urllib.parse import quote

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from .records import APPEND_RANGE, PATIENTS, STUDENTS

log = logging.getLogger(__name__)

SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"
SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class SheetsError(RuntimeError):
    pass


# ---------- Credentials ----------
def _read_file_maybe(file_path: str) -> str | None:
    path = Path(file_path)
    if not path.is_absolute():
        path = Path(os.getcwd()) / path
    if not path.exists():
        return None
    return path.read_text(encoding="utf-8").strip()


def load_service_account_info(raw: str, file_path: str = "") -> dict | None:
    """
    Resolve service-account JSON from the environment.

    Accepts inline JSON, a file path put in the JSON variable by mistake,
    a separate file path, or a `base64:` prefixed payload. Escaped newlines
    in `private_key` are restored.

    Returns:
        Parsed credential dict, or None when nothing usable is configured
    """
    payload = (raw or "").strip()

    if payload and (payload.startswith("/") or payload.endswith(".json")) and not payload.startswith("{"):
        by_path = _read_file_maybe(payload)
        if by_path:
            payload = by_path

    if not payload and file_path:
        by_path = _read_file_maybe(file_path)
        if by_path:
            payload = by_path

    if not payload:
        return None

    if payload.startswith("base64:"):
        try:
            payload = base64.b64decode(payload[len("base64:"):]).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            log.error(f"[SHEETS] Invalid base64 in GOOGLE_SERVICE_ACCOUNT_JSON: {e}")
            return None

    try:
        info = json.loads(payload)
    except json.JSONDecodeError as e:
        log.error(f"[SHEETS] Invalid GOOGLE_SERVICE_ACCOUNT_JSON: {e}")
        return None
    if not isinstance(info, dict):
        log.error("[SHEETS] GOOGLE_SERVICE_ACCOUNT_JSON is not an object")
        return None
    if info.get("private_key"):
        info["private_key"] = info["private_key"].replace("\\n", "\n")
    return info


# ---------- Client ----------
class GoogleSheetsClient:
    def __init__(self, sheet_id: str, credentials, sheet_names: dict[str, str], timeout: float = 15):
        self.sheet_id = sheet_id
        self.credentials = credentials
        self.sheet_names = sheet_names
        self.timeout = timeout
        self._token_lock = asyncio.Lock()

    def sheet_name(self, collection: str) -> str:
        return self.sheet_names[collection]

    async def _auth_header(self) -> dict:
        async with self._token_lock:
            if not self.credentials.valid:
                # google-auth refresh is blocking
                await asyncio.to_thread(self.credentials.refresh, Request())
        return {"Authorization": f"Bearer {self.credentials.token}"}

    def _url(self, collection: str, cell_range: str) -> str:
        a1 = quote(f"{self.sheet_name(collection)}!{cell_range}", safe="")
        return f"{SHEETS_API}/{self.sheet_id}/values/{a1}"

    async def get_values(self, collection: str, cell_range: str) -> list[list[str]]:
        try:
            headers = await self._auth_header()
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(self._url(collection, cell_range), headers=headers)
                r.raise_for_status()
                return r.json().get("values", [])
        except (httpx.HTTPError, GoogleAuthError, ValueError) as e:
            raise SheetsError(f"read {collection}!{cell_range} failed: {e}") from e

    async def append_row(self, collection: str, row: list[str]):
        try:
            headers = await self._auth_header()
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(
                    f"{self._url(collection, APPEND_RANGE)}:append",
                    params={"valueInputOption": "USER_ENTERED"},
                    json={"values": [row]},
                    headers=headers,
                )
                r.raise_for_status()
        except (httpx.HTTPError, GoogleAuthError, ValueError) as e:
            raise SheetsError(f"append to {collection} failed: {e}") from e
        log.info(f"[SHEETS] Row appended to {self.sheet_name(collection)}")


def build_sheets_client(settings) -> GoogleSheetsClient | None:
    """Sheets client from settings, or None (persistence disabled)."""
    if not settings.GOOGLE_SHEET_ID:
        return None
    info = load_service_account_info(
        settings.GOOGLE_SERVICE_ACCOUNT_JSON,
        settings.GOOGLE_SERVICE_ACCOUNT_JSON_PATH,
    )
    if not info:
        return None
    try:
        credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
    except (ValueError, KeyError) as e:
        log.error(f"[SHEETS] Unusable service account credentials: {e}")
        return None
    return GoogleSheetsClient(
        settings.GOOGLE_SHEET_ID,
        credentials,
        {STUDENTS: settings.STUDENTS_SHEET_NAME, PATIENTS: settings.PATIENTS_SHEET_NAME},
        timeout=settings.SHEETS_TIMEOUT_SECONDS,
    )
