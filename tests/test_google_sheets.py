"""
Tests for Google Sheets blob storage.

No network: the client is replaced by an in-process fake spreadsheet
with the same worksheet surface gspread exposes.
"""

from types import SimpleNamespace
from typing import Optional

import pytest

from household_ledger.config import GoogleSheetsSettings
from household_ledger.models.results import AccountInfo
from household_ledger.services.storage import BackendUnavailableError
from household_ledger.services.storage import google_sheets
from household_ledger.services.storage.google_sheets import (
    BLOB_COLUMNS,
    GoogleSheetsBlobStorage,
    GoogleSheetsClient,
    chunk,
    contiguous_runs,
    split_path,
    worksheet_title,
)


class FakeWorksheet:
    """Rows of strings, 1-based like a real sheet."""

    def __init__(self, sheet_id: int):
        self.id = sheet_id
        self.rows: list[list[str]] = []

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, values):
        self.rows.append([str(v) for v in values])

    def append_rows(self, values, value_input_option=None):
        for row in values:
            self.append_row(row)

    def delete_rows(self, start_index: int, end_index: Optional[int] = None):
        end_index = end_index or start_index
        del self.rows[start_index - 1:end_index]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient."""

    def __init__(self, chunk_size: int = 1000):
        self.chunk_size = chunk_size
        self.sheets: dict[str, FakeWorksheet] = {}

    def worksheet(self, container: str, create: bool = False) -> Optional[FakeWorksheet]:
        title = worksheet_title(container)
        if title not in self.sheets:
            if not create:
                return None
            sheet = FakeWorksheet(len(self.sheets) + 1)
            sheet.append_row(BLOB_COLUMNS)
            self.sheets[title] = sheet
        return self.sheets[title]

    def account_info(self) -> AccountInfo:
        return AccountInfo(name="Ledger backups", email="ledger@project.iam.gserviceaccount.com")


class CrashingSheetsClient(FakeSheetsClient):
    """Every call fails with a non-transient error."""

    def worksheet(self, container: str, create: bool = False):
        raise RuntimeError("quota exceeded")

    def account_info(self) -> AccountInfo:
        raise RuntimeError("invalid grant")


@pytest.fixture
def client():
    return FakeSheetsClient(chunk_size=1000)


@pytest.fixture
def sheets(client):
    return GoogleSheetsBlobStorage(client)


class TestHelpers:
    """Tests for the pure layout helpers."""

    def test_worksheet_title(self):
        """Test '/' separated folders become a legal title."""
        assert worksheet_title("FinanceApp/Edson") == "FinanceApp-Edson"
        assert worksheet_title("/FinanceApp//Tais/") == "FinanceApp-Tais"
        assert len(worksheet_title("x/" * 100)) == 100

    def test_split_path(self):
        """Test container and blob name are split on the last '/'."""
        assert split_path("FinanceApp/Edson/transactions.json") == (
            "FinanceApp/Edson",
            "transactions.json",
        )
        with pytest.raises(ValueError):
            split_path("transactions.json")

    def test_chunk(self):
        """Test content is cut into cell-sized pieces."""
        assert chunk("", 10) == [""]
        assert chunk("abcdefghij", 4) == ["abcd", "efgh", "ij"]

    def test_contiguous_runs_last_first(self):
        """Test rows are grouped for bottom-up deletion."""
        assert contiguous_runs([2, 3, 4, 7, 9, 10]) == [(9, 10), (7, 7), (2, 4)]
        assert contiguous_runs([]) == []


class TestBlobStorage:
    """Tests for reading and writing blobs."""

    @pytest.mark.asyncio
    async def test_round_trip_with_chunks(self, sheets, client):
        """Test large content spans several rows and reads back whole."""
        content = "[" + ",".join(str(i) for i in range(1000)) + "]"

        assert await sheets.write_blob("FinanceApp/Edson/transactions.json", content) is True

        rows = client.sheets["FinanceApp-Edson"].rows
        assert rows[0] == BLOB_COLUMNS
        assert len(rows) - 1 == len(chunk(content, 1000))
        assert await sheets.read_blob("FinanceApp/Edson/transactions.json") == content

    @pytest.mark.asyncio
    async def test_overwrite_replaces_previous_version(self, sheets, client):
        """Test writing again leaves only the new chunks."""
        path = "FinanceApp/Edson/transactions.json"
        await sheets.write_blob(path, "x" * 2500)
        await sheets.write_blob(path, "[]")

        assert await sheets.read_blob(path) == "[]"
        assert len(client.sheets["FinanceApp-Edson"].rows) == 2

    @pytest.mark.asyncio
    async def test_blobs_in_one_container_are_independent(self, sheets, client):
        """Test rewriting one blob keeps its neighbours."""
        await sheets.write_blob("FinanceApp/Edson/a.json", "A" * 1500)
        await sheets.write_blob("FinanceApp/Edson/b.json", "B")
        await sheets.write_blob("FinanceApp/Edson/a.json", "AA")

        assert await sheets.read_blob("FinanceApp/Edson/a.json") == "AA"
        assert await sheets.read_blob("FinanceApp/Edson/b.json") == "B"

    @pytest.mark.asyncio
    async def test_empty_content(self, sheets):
        """Test an empty blob still exists."""
        await sheets.write_blob("FinanceApp/Tais/transactions.json", "")
        assert await sheets.read_blob("FinanceApp/Tais/transactions.json") == ""

    @pytest.mark.asyncio
    async def test_missing_container_or_blob_is_none(self, sheets):
        """Test absent blobs are a value, not an error."""
        assert await sheets.read_blob("FinanceApp/Edson/transactions.json") is None
        await sheets.ensure_container("FinanceApp/Edson")
        assert await sheets.read_blob("FinanceApp/Edson/transactions.json") is None

    @pytest.mark.asyncio
    async def test_chunks_reassembled_in_index_order(self, sheets, client):
        """Test row order in the sheet does not matter."""
        await sheets.ensure_container("FinanceApp/Edson")
        sheet = client.sheets["FinanceApp-Edson"]
        sheet.append_rows([
            ["transactions.json", 1, "world"],
            ["transactions.json", 0, "hello "],
            ["transactions.json", "bogus", "!"],
        ])
        assert await sheets.read_blob("FinanceApp/Edson/transactions.json") == "hello world"

    @pytest.mark.asyncio
    async def test_ensure_container_is_idempotent(self, sheets, client):
        """Test the same worksheet id comes back and no header is repeated."""
        first = await sheets.ensure_container("FinanceApp/Edson")
        second = await sheets.ensure_container("FinanceApp/Edson")
        assert first == second == "1"
        assert client.sheets["FinanceApp-Edson"].rows == [BLOB_COLUMNS]

    @pytest.mark.asyncio
    async def test_backend_errors_become_unavailable(self):
        """Test client failures surface as BackendUnavailableError."""
        sheets = GoogleSheetsBlobStorage(CrashingSheetsClient())
        with pytest.raises(BackendUnavailableError):
            await sheets.write_blob("FinanceApp/Edson/transactions.json", "[]")
        with pytest.raises(BackendUnavailableError):
            await sheets.read_blob("FinanceApp/Edson/transactions.json")
        with pytest.raises(BackendUnavailableError):
            await sheets.ensure_container("FinanceApp/Edson")


class TestWhoAmI:
    """Tests for the connection check."""

    @pytest.mark.asyncio
    async def test_account(self, sheets):
        """Test the account is reported."""
        info = await sheets.who_am_i()
        assert info.name == "Ledger backups"
        assert info.email.endswith("gserviceaccount.com")

    @pytest.mark.asyncio
    async def test_unavailable_is_none(self):
        """Test failures are reported as no account."""
        sheets = GoogleSheetsBlobStorage(CrashingSheetsClient())
        assert await sheets.who_am_i() is None


class TestClientConnection:
    """Tests for authenticating against Google Sheets."""

    @pytest.fixture
    def sheets_settings(self, tmp_path):
        credentials = tmp_path / "service-account.json"
        credentials.write_text("{}")
        return GoogleSheetsSettings(
            credentials_path=str(credentials),
            spreadsheet_id="ledger-sheet",
        )

    def test_transient_credential_failure_is_retried(self, sheets_settings, monkeypatch):
        """Test a network blip while loading credentials is retried."""
        attempts = []
        authorized = object()

        def load_credentials(path, scopes):
            attempts.append(path)
            if len(attempts) == 1:
                raise OSError("connection reset")
            return "credentials"

        monkeypatch.setattr(
            google_sheets.Credentials, "from_service_account_file", load_credentials
        )
        monkeypatch.setattr(google_sheets.gspread, "authorize", lambda creds: authorized)

        client = GoogleSheetsClient(sheets_settings)

        assert client.connect() is authorized
        assert len(attempts) == 2

    def test_transient_spreadsheet_failure_is_retried(self, sheets_settings, monkeypatch):
        """Test opening the spreadsheet is retried on network errors."""
        attempts = []
        spreadsheet = SimpleNamespace(title="Ledger backups")

        def open_by_key(key):
            attempts.append(key)
            if len(attempts) == 1:
                raise ConnectionError("timed out")
            return spreadsheet

        monkeypatch.setattr(
            google_sheets.Credentials,
            "from_service_account_file",
            lambda path, scopes: "credentials",
        )
        monkeypatch.setattr(
            google_sheets.gspread,
            "authorize",
            lambda creds: SimpleNamespace(open_by_key=open_by_key),
        )

        client = GoogleSheetsClient(sheets_settings)

        assert client.get_spreadsheet() is spreadsheet
        assert attempts == ["ledger-sheet", "ledger-sheet"]

    def test_bad_credentials_fail_without_retry(self, sheets_settings, monkeypatch):
        """Test a malformed credentials file is final."""
        attempts = []

        def load_credentials(path, scopes):
            attempts.append(path)
            raise ValueError("missing private_key")

        monkeypatch.setattr(
            google_sheets.Credentials, "from_service_account_file", load_credentials
        )

        with pytest.raises(BackendUnavailableError):
            GoogleSheetsClient(sheets_settings).connect()
        assert len(attempts) == 1
