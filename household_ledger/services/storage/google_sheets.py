"""
Google Sheets Blob Storage

DESIGN DECISION: Snapshots are kept in a Google Sheets spreadsheet because:
1. Users can open the spreadsheet and see their backups
2. No database or bucket setup required
3. Built-in durability and version history (Google's infrastructure)

LAYOUT:
- One worksheet per container (a profile folder such as "FinanceApp/Edson"
  becomes the worksheet "FinanceApp-Edson"; '/' is not allowed in titles)
- One blob is a set of rows [blob_name, chunk_index, chunk], because a
  single cell holds at most 50,000 characters

TRADEOFFS:
- Writes are not atomic: old rows are deleted, then new rows appended.
  A failure in between leaves the blob missing, never half-written.
- gspread is blocking, so every call runs in a worker thread. That keeps
  the event loop free and lets callers time-box the call.
"""

import asyncio
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from household_ledger.config import GoogleSheetsSettings, get_settings
from household_ledger.models.results import AccountInfo
from household_ledger.services.storage.interface import (
    BackendUnavailableError,
    BlobStorageInterface,
)


# Column layout of a container worksheet
BLOB_COLUMNS = [
    "blob_name",
    "chunk_index",
    "content",
]

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# Transient failures worth another attempt; requests' errors are OSErrors
_transient = retry_if_exception_type((gspread.exceptions.APIError, OSError))

logger = structlog.get_logger(__name__)


def worksheet_title(container: str) -> str:
    """Map a '/'-separated container name to a legal worksheet title."""
    segments = [s for s in container.strip("/").split("/") if s]
    return "-".join(segments)[:100]


def split_path(path: str) -> tuple[str, str]:
    """Split 'a/b/file.json' into ('a/b', 'file.json')."""
    path = path.strip("/")
    if "/" not in path:
        raise ValueError(f"Blob path needs a container: {path!r}")
    container, name = path.rsplit("/", 1)
    return container, name


def chunk(content: str, size: int) -> list[str]:
    """Split content into cell-sized pieces (at least one, even if empty)."""
    if not content:
        return [""]
    return [content[i:i + size] for i in range(0, len(content), size)]


def contiguous_runs(indices: list[int]) -> list[tuple[int, int]]:
    """Group sorted row numbers into (start, end) runs, last run first."""
    runs: list[tuple[int, int]] = []
    for idx in sorted(indices):
        if runs and runs[-1][1] == idx - 1:
            runs[-1] = (runs[-1][0], idx)
        else:
            runs.append((idx, idx))
    return list(reversed(runs))


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._credentials: Optional[Credentials] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def chunk_size(self) -> int:
        return self._settings.chunk_size

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=_transient,
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        Network and API errors propagate so the retry can see them;
        anything else is final.
        """
        if self._client is None:
            try:
                self._credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
                self._client = gspread.authorize(self._credentials)
            except FileNotFoundError:
                raise BackendUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except (gspread.exceptions.APIError, OSError):
                raise
            except Exception as e:
                raise BackendUnavailableError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=_transient,
        reraise=True,
    )
    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise BackendUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def worksheet(self, container: str, create: bool = False) -> Optional[gspread.Worksheet]:
        """
        Get the worksheet backing a container.

        Returns None when it does not exist and ``create`` is False.
        """
        spreadsheet = self.get_spreadsheet()
        title = worksheet_title(container)
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            if not create:
                return None
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=100,
                cols=len(BLOB_COLUMNS),
            )
            sheet.append_row(BLOB_COLUMNS)
            return sheet

    def account_info(self) -> AccountInfo:
        """Service account identity plus the spreadsheet it writes to."""
        spreadsheet = self.get_spreadsheet()
        email = getattr(self._credentials, "service_account_email", "") or ""
        return AccountInfo(name=spreadsheet.title, email=email)


class GoogleSheetsBlobStorage(BlobStorageInterface):
    """
    Google Sheets implementation of snapshot blob storage.

    Blobs are stored as rows of the container's worksheet, split into
    chunks and reassembled in chunk order on read.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Blocking helpers (run in a worker thread)
    # -------------------------------------------------------------------------

    def _ensure_container_sync(self, name: str) -> str:
        sheet = self._client.worksheet(name, create=True)
        return str(sheet.id)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=_transient,
        reraise=True,
    )
    def _write_sync(self, path: str, content: str) -> bool:
        container, name = split_path(path)
        sheet = self._client.worksheet(container, create=True)

        # Drop the previous version of the blob (header row is row 1)
        all_rows = sheet.get_all_values()
        stale = [
            idx for idx, row in enumerate(all_rows[1:], start=2)
            if row and row[0] == name
        ]
        for start, end in contiguous_runs(stale):
            sheet.delete_rows(start, end)

        rows = [
            [name, index, piece]
            for index, piece in enumerate(chunk(content, self._client.chunk_size))
        ]
        sheet.append_rows(rows, value_input_option="RAW")
        return True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=_transient,
        reraise=True,
    )
    def _read_sync(self, path: str) -> Optional[str]:
        container, name = split_path(path)
        sheet = self._client.worksheet(container)
        if sheet is None:
            return None

        pieces = []
        for row in sheet.get_all_values()[1:]:
            if not row or row[0] != name:
                continue
            try:
                index = int(row[1])
            except (IndexError, ValueError):
                continue  # Skip malformed rows
            pieces.append((index, row[2] if len(row) > 2 else ""))

        if not pieces:
            return None
        pieces.sort(key=lambda p: p[0])
        return "".join(piece for _, piece in pieces)

    # -------------------------------------------------------------------------
    # BlobStorageInterface
    # -------------------------------------------------------------------------

    async def ensure_container(self, name: str) -> str:
        try:
            return await asyncio.to_thread(self._ensure_container_sync, name)
        except BackendUnavailableError:
            raise
        except Exception as e:
            raise BackendUnavailableError(f"Failed to create folder {name}: {e}") from e

    async def write_blob(self, path: str, content: str) -> bool:
        try:
            return await asyncio.to_thread(self._write_sync, path, content)
        except BackendUnavailableError:
            raise
        except Exception as e:
            raise BackendUnavailableError(f"Failed to write {path}: {e}") from e

    async def read_blob(self, path: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read_sync, path)
        except BackendUnavailableError:
            raise
        except Exception as e:
            raise BackendUnavailableError(f"Failed to read {path}: {e}") from e

    async def who_am_i(self) -> Optional[AccountInfo]:
        try:
            return await asyncio.to_thread(self._client.account_info)
        except Exception as e:
            logger.warning("who_am_i_failed", error=str(e))
            return None
