"""Tests for the storage backends (in-memory and Google Sheets with a mocked client)."""

import pytest
from unittest.mock import MagicMock

from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.services.storage import (
    ACCOUNTS,
    TRANSACTIONS,
    DocumentWrite,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryDocumentStore,
    NotFoundError,
    StorageError,
    apply_writes,
)
from finance_tracker.services.storage.google_sheets import (
    COLLECTION_COLUMNS,
    GoogleSheetsAuditStorage,
    GoogleSheetsDocumentStore,
)


class TestApplyWrites:
    """Tests for the shared all-or-nothing write application."""

    def test_applies_in_order(self):
        """Test later writes see earlier ones in the same batch."""
        tables = {}
        apply_writes(tables, [
            DocumentWrite.insert(TRANSACTIONS, "t1", {"id": "t1"}),
            DocumentWrite.update(TRANSACTIONS, "t1", {"id": "t1", "amount": "5"}),
        ])
        assert tables[TRANSACTIONS]["t1"]["amount"] == "5"

    def test_failed_check_leaves_tables_untouched(self):
        """Test nothing is applied when one write is invalid."""
        tables = {ACCOUNTS: {"primary": {"id": "primary", "balance": "0"}}}
        with pytest.raises(NotFoundError):
            apply_writes(tables, [
                DocumentWrite.set(ACCOUNTS, "primary", {"id": "primary", "balance": "9"}),
                DocumentWrite.delete(TRANSACTIONS, "missing"),
            ])
        assert tables == {ACCOUNTS: {"primary": {"id": "primary", "balance": "0"}}}

    def test_duplicate_insert(self):
        """Test inserting an existing id fails."""
        tables = {TRANSACTIONS: {"t1": {"id": "t1"}}}
        with pytest.raises(DuplicateError):
            apply_writes(tables, [DocumentWrite.insert(TRANSACTIONS, "t1", {"id": "t1"})])

    def test_write_without_data(self):
        """Test a non-delete write must carry data."""
        with pytest.raises(StorageError):
            apply_writes({}, [DocumentWrite(kind="set", collection=ACCOUNTS, doc_id="cash")])


class TestInMemoryDocumentStore:
    """Tests for the in-memory document store."""

    @pytest.mark.asyncio
    async def test_read_after_write(self):
        """Test documents are readable right after a commit."""
        store = InMemoryDocumentStore()
        await store.insert_document(TRANSACTIONS, "t1", {"id": "t1", "amount": "1.00"})
        assert await store.get_document(TRANSACTIONS, "t1") == {"id": "t1", "amount": "1.00"}
        assert await store.list_documents(TRANSACTIONS) == [{"id": "t1", "amount": "1.00"}]

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self):
        """Test callers cannot mutate stored state."""
        store = InMemoryDocumentStore()
        await store.set_document(ACCOUNTS, "cash", {"id": "cash", "balance": "0"})
        doc = await store.get_document(ACCOUNTS, "cash")
        doc["balance"] = "1000"
        assert (await store.get_document(ACCOUNTS, "cash"))["balance"] == "0"

    @pytest.mark.asyncio
    async def test_commit_is_atomic(self):
        """Test a failing batch leaves the store unchanged."""
        store = InMemoryDocumentStore()
        with pytest.raises(NotFoundError):
            await store.commit([
                DocumentWrite.insert(TRANSACTIONS, "t1", {"id": "t1"}),
                DocumentWrite.update(ACCOUNTS, "primary", {"id": "primary"}),
            ])
        assert await store.get_document(TRANSACTIONS, "t1") is None

    @pytest.mark.asyncio
    async def test_commit_leaves_untouched_collections_alone(self):
        """Test a commit copies only the collections it writes to."""
        store = InMemoryDocumentStore({TRANSACTIONS: {"t1": {"id": "t1"}}})
        transactions_table = store._tables[TRANSACTIONS]
        await store.set_document(ACCOUNTS, "cash", {"id": "cash", "balance": "5"})
        assert store._tables[TRANSACTIONS] is transactions_table
        assert await store.get_document(TRANSACTIONS, "t1") == {"id": "t1"}

    @pytest.mark.asyncio
    async def test_written_documents_are_copies(self):
        """Test mutating a document after committing it does not change the store."""
        store = InMemoryDocumentStore()
        doc = {"id": "cash", "balance": "0", "meta": {"note": "start"}}
        await store.set_document(ACCOUNTS, "cash", doc)
        doc["balance"] = "1000"
        doc["meta"]["note"] = "changed"
        assert await store.get_document(ACCOUNTS, "cash") == {
            "id": "cash", "balance": "0", "meta": {"note": "start"},
        }

    @pytest.mark.asyncio
    async def test_delete_missing(self):
        """Test deleting a missing document raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await InMemoryDocumentStore().delete_document(TRANSACTIONS, "nope")


class TestInMemoryAuditStorage:
    """Tests for the in-memory audit log."""

    @pytest.mark.asyncio
    async def test_queries(self):
        """Test lookups by entity and recency."""
        storage = InMemoryAuditStorage()
        first = AuditEventBuilder.balance_reset(account_id="cash", old_balance=1)
        second = AuditEventBuilder.balance_reset(account_id="primary", old_balance=2)
        await storage.append_event(first)
        await storage.append_event(second)

        assert await storage.get_events_by_entity("account", "cash") == [first]
        assert len(await storage.get_recent_events(limit=1)) == 1
        assert len(storage.events) == 2


def _fake_sheet(rows):
    sheet = MagicMock()
    sheet.get_all_values.return_value = rows
    sheet.row_count = 1000
    return sheet


def _fake_client(sheets):
    client = MagicMock()
    client.get_collection_sheet.side_effect = lambda collection: sheets[collection]
    client.settings.sheet_name_for.side_effect = lambda collection: collection.title()
    return client


class TestGoogleSheetsDocumentStore:
    """Tests for the Sheets backend with a mocked gspread client."""

    @pytest.mark.asyncio
    async def test_reads_rows_as_documents(self):
        """Test rows map to documents and empty cells read as None."""
        header = COLLECTION_COLUMNS[ACCOUNTS]
        client = _fake_client({ACCOUNTS: _fake_sheet([header, ["cash", "Cash", ""]])})
        store = GoogleSheetsDocumentStore(client)

        doc = await store.get_document(ACCOUNTS, "cash")
        assert doc == {"id": "cash", "name": "Cash", "balance": None}

    @pytest.mark.asyncio
    async def test_commit_sends_one_batch_update(self):
        """Test all affected worksheets go out in a single request."""
        sheets = {
            TRANSACTIONS: _fake_sheet([COLLECTION_COLUMNS[TRANSACTIONS]]),
            ACCOUNTS: _fake_sheet([COLLECTION_COLUMNS[ACCOUNTS]]),
        }
        client = _fake_client(sheets)
        store = GoogleSheetsDocumentStore(client)

        await store.commit([
            DocumentWrite.insert(TRANSACTIONS, "t1", {"id": "t1", "amount": "5.00", "type": "expense"}),
            DocumentWrite.set(ACCOUNTS, "primary", {"id": "primary", "name": "Main", "balance": "-5.00"}),
        ])

        spreadsheet = client.get_spreadsheet.return_value
        spreadsheet.values_batch_update.assert_called_once()
        body = spreadsheet.values_batch_update.call_args.args[0]
        assert body["valueInputOption"] == "RAW"
        ranges = [entry["range"] for entry in body["data"]]
        assert ranges == ["'Transactions'!A1", "'Accounts'!A1"]
        assert body["data"][1]["values"][1] == ["primary", "Main", "-5.00"]

    @pytest.mark.asyncio
    async def test_commit_blanks_deleted_rows(self):
        """Test a deleted document's row is overwritten with blanks."""
        header = COLLECTION_COLUMNS[ACCOUNTS]
        sheet = _fake_sheet([header, ["cash", "Cash", "0"], ["primary", "Main", "0"]])
        client = _fake_client({ACCOUNTS: sheet})
        store = GoogleSheetsDocumentStore(client)

        await store.commit([DocumentWrite.delete(ACCOUNTS, "cash")])

        body = client.get_spreadsheet.return_value.values_batch_update.call_args.args[0]
        values = body["data"][0]["values"]
        assert values[1] == ["primary", "Main", "0"]
        assert values[2] == ["", "", ""]

    @pytest.mark.asyncio
    async def test_commit_checks_before_sending(self):
        """Test a failing check sends nothing."""
        client = _fake_client({TRANSACTIONS: _fake_sheet([COLLECTION_COLUMNS[TRANSACTIONS]])})
        store = GoogleSheetsDocumentStore(client)

        with pytest.raises(NotFoundError):
            await store.commit([DocumentWrite.delete(TRANSACTIONS, "missing")])
        client.get_spreadsheet.return_value.values_batch_update.assert_not_called()

    @pytest.mark.asyncio
    async def test_api_failure_is_storage_error(self):
        """Test backend failures surface as StorageError."""
        client = _fake_client({ACCOUNTS: _fake_sheet([COLLECTION_COLUMNS[ACCOUNTS]])})
        client.get_spreadsheet.return_value.values_batch_update.side_effect = RuntimeError("quota")
        store = GoogleSheetsDocumentStore(client)

        with pytest.raises(StorageError, match="quota"):
            await store.set_document(ACCOUNTS, "cash", {"id": "cash", "name": "Cash", "balance": "0"})


class TestGoogleSheetsAuditStorage:
    """Tests for the Sheets audit log."""

    @pytest.mark.asyncio
    async def test_append_failure_returns_false(self):
        """Test audit append failures never raise."""
        client = MagicMock()
        client.get_audit_sheet.return_value.append_row.side_effect = RuntimeError("down")
        storage = GoogleSheetsAuditStorage(client)
        storage._append_row.retry.sleep = lambda seconds: None

        event = AuditEventBuilder.balance_reset(account_id="cash", old_balance=0)
        assert await storage.append_event(event) is False

    @pytest.mark.asyncio
    async def test_rows_round_trip(self):
        """Test a written row reads back as the same event."""
        event = AuditEventBuilder.balance_reset(account_id="cash", old_balance=3)
        client = MagicMock()
        client.get_audit_sheet.return_value.get_all_values.return_value = [
            ["header"],
            event.to_sheets_row(),
        ]
        storage = GoogleSheetsAuditStorage(client)

        events = await storage.get_events_by_entity("account", "cash")
        assert [e.event_id for e in events] == [event.event_id]
