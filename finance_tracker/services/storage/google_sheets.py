"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the persistent backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No multi-row transactions: commit() rewrites every affected worksheet
  in a single values batchUpdate request, so a transaction row and the
  account balance it changes land together or not at all
- Limited query capabilities (we filter in Python)

Each document collection lives in its own worksheet, one document per
row, column 0 holding the document id.
"""

import json
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import get_settings
from finance_tracker.config.settings import GoogleSheetsSettings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.services.storage.interface import (
    ACCOUNTS,
    BUDGETS,
    SETTINGS,
    TRANSACTIONS,
    AuditStorageInterface,
    ConnectionError,
    DocumentStoreInterface,
    DocumentWrite,
    StorageError,
    apply_writes,
)


logger = structlog.get_logger(__name__)


# Column layouts per collection (first column is always the document id)
COLLECTION_COLUMNS: dict[str, list[str]] = {
    TRANSACTIONS: [
        "id",
        "date",
        "description",
        "amount",
        "category",
        "type",
        "accountId",
        "vendor",
        "createdAt",
    ],
    BUDGETS: [
        "id",
        "category",
        "limit",
    ],
    ACCOUNTS: [
        "id",
        "name",
        "balance",
    ],
    SETTINGS: [
        "id",
        "systemMonth",
        "systemYear",
    ],
}

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
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
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

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

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_collection_sheet(self, collection: str) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.sheet_name_for(collection),
            COLLECTION_COLUMNS[collection],
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsDocumentStore(DocumentStoreInterface):
    """
    Google Sheets implementation of the document store.

    Values are written RAW as strings and read back as strings; the
    pydantic models on top parse them (amounts, dates, month numbers).
    Empty cells read back as None.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _columns(self, collection: str) -> list[str]:
        try:
            return COLLECTION_COLUMNS[collection]
        except KeyError:
            raise StorageError(f"Unknown collection: {collection}") from None

    def _doc_to_row(self, collection: str, doc_id: str, doc: dict) -> list[str]:
        row = [doc_id]
        for column in self._columns(collection)[1:]:
            value = doc.get(column)
            row.append("" if value is None else str(value))
        return row

    def _row_to_doc(self, collection: str, row: list) -> dict:
        def safe_get(index: int) -> Optional[str]:
            try:
                return row[index] if row[index] != "" else None
            except IndexError:
                return None

        columns = self._columns(collection)
        return {column: safe_get(index) for index, column in enumerate(columns)}

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _read_rows(self, collection: str) -> list[list]:
        """All non-empty data rows (header excluded)."""
        sheet = self._client.get_collection_sheet(collection)
        return [row for row in sheet.get_all_values()[1:] if row and row[0]]

    def _read_table(self, collection: str) -> dict[str, dict]:
        try:
            rows = self._read_rows(collection)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {collection}: {e}")
        return {row[0]: self._row_to_doc(collection, row) for row in rows}

    async def get_document(self, collection: str, doc_id: str) -> Optional[dict]:
        return self._read_table(collection).get(doc_id)

    async def list_documents(self, collection: str) -> list[dict]:
        return list(self._read_table(collection).values())

    async def commit(self, writes: list[DocumentWrite]) -> None:
        """Rewrite every affected worksheet in one batchUpdate request."""
        if not writes:
            return

        collections = list(dict.fromkeys(write.collection for write in writes))
        tables = {collection: self._read_table(collection) for collection in collections}
        previous_sizes = {collection: len(table) for collection, table in tables.items()}

        # Raises NotFoundError/DuplicateError before anything is sent
        apply_writes(tables, writes)

        data = []
        for collection in collections:
            columns = self._columns(collection)
            values = [columns] + [
                self._doc_to_row(collection, doc_id, doc)
                for doc_id, doc in tables[collection].items()
            ]
            # Blank out rows left over from deletions
            blanks = previous_sizes[collection] + 1 - len(values)
            values.extend([[""] * len(columns)] * max(0, blanks))
            title = self._client.settings.sheet_name_for(collection)
            data.append({"range": f"'{title}'!A1", "values": values})

        try:
            for collection, entry in zip(collections, data):
                sheet = self._client.get_collection_sheet(collection)
                missing_rows = len(entry["values"]) - sheet.row_count
                if missing_rows > 0:
                    sheet.add_rows(missing_rows)
            self._client.get_spreadsheet().values_batch_update(
                {"valueInputOption": "RAW", "data": data}
            )
        except Exception as e:
            raise StorageError(f"Failed to commit {len(writes)} writes: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=safe_get(1),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError):
                logger.warning("audit_row_unreadable", event_id=row[0])
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append_row(self, row: list) -> None:
        self._client.get_audit_sheet().append_row(row, value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append_row(event.to_sheets_row())
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._all_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._all_events(), key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
