"""Unit tests for the TaskLedgerDB motor wrapper."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from taskledger.db import TASKS, USERS, TaskLedgerDB


@pytest.fixture
def mock_collection():
    collection = MagicMock()
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[{"_id": 1}])
    collection.find.return_value = cursor
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="abc123"))
    collection.find_one = AsyncMock(return_value={"_id": "abc123"})
    collection.count_documents = AsyncMock(return_value=4)
    collection.create_index = AsyncMock()
    return collection


@pytest.fixture
def mock_client(mock_collection):
    mock_db = MagicMock()
    mock_db.__getitem__ = MagicMock(return_value=mock_collection)
    mock_db.command = AsyncMock(return_value={"ok": 1.0})
    client = MagicMock()
    client.__getitem__ = MagicMock(return_value=mock_db)
    return client


@pytest.fixture
def patched_client(mock_client):
    with patch("taskledger.db.AsyncIOMotorClient", return_value=mock_client) as ctor:
        yield ctor


class TestTaskLedgerDBInit:
    def test_init_stores_params(self):
        db = TaskLedgerDB(uri="mongodb://test:27017", db_name="test_db", timeout_ms=100)

        assert db._uri == "mongodb://test:27017"
        assert db._db_name == "test_db"
        assert db._timeout_ms == 100
        assert db._client is None
        assert db._db is None
        assert db.is_connected is False


class TestTaskLedgerDBConnect:
    @pytest.mark.asyncio
    async def test_connect_passes_timeouts(self, patched_client, mock_client):
        db = TaskLedgerDB(uri="mongodb://test:27017", timeout_ms=1234)

        result = await db.connect()

        assert result is db
        assert db._client is mock_client
        patched_client.assert_called_once_with(
            "mongodb://test:27017", tz_aware=True, serverSelectionTimeoutMS=1234, timeoutMS=1234
        )

    @pytest.mark.asyncio
    async def test_connect_idempotent(self, patched_client):
        db = TaskLedgerDB()
        await db.connect()
        await db.connect()

        patched_client.assert_called_once()

    @pytest.mark.asyncio
    async def test_disconnect_cleans_up(self, patched_client, mock_client):
        db = TaskLedgerDB()
        await db.connect()
        await db.disconnect()

        mock_client.close.assert_called_once()
        assert db.is_connected is False


class TestTaskLedgerDBOperations:
    @pytest.mark.asyncio
    async def test_insert_one_returns_string_id(self, patched_client, mock_collection):
        db = TaskLedgerDB()

        inserted = await db.insert_one(USERS, {"email": "a@b.c"})

        assert inserted == "abc123"
        mock_collection.insert_one.assert_awaited_once_with({"email": "a@b.c"})

    @pytest.mark.asyncio
    async def test_find_one_auto_connects(self, patched_client, mock_collection):
        db = TaskLedgerDB()

        doc = await db.find_one(USERS, {"email": "a@b.c"})

        assert doc == {"_id": "abc123"}
        assert db.is_connected is True

    @pytest.mark.asyncio
    async def test_find_many_applies_sort_skip_limit(self, patched_client, mock_collection):
        db = TaskLedgerDB()

        docs = await db.find_many(TASKS, {"owner_id": "u1"}, sort=[("created_at", 1)], skip=6, limit=3)

        assert docs == [{"_id": 1}]
        cursor = mock_collection.find.return_value
        mock_collection.find.assert_called_once_with({"owner_id": "u1"})
        cursor.sort.assert_called_once_with([("created_at", 1)])
        cursor.skip.assert_called_once_with(6)
        cursor.limit.assert_called_once_with(3)

    @pytest.mark.asyncio
    async def test_find_many_without_window(self, patched_client, mock_collection):
        db = TaskLedgerDB()

        await db.find_many(USERS)

        cursor = mock_collection.find.return_value
        mock_collection.find.assert_called_once_with({})
        cursor.skip.assert_not_called()
        cursor.limit.assert_not_called()

    @pytest.mark.asyncio
    async def test_count(self, patched_client, mock_collection):
        db = TaskLedgerDB()

        assert await db.count(TASKS, {"owner_id": "u1"}) == 4
        mock_collection.count_documents.assert_awaited_once_with({"owner_id": "u1"})

    @pytest.mark.asyncio
    async def test_ensure_indexes_runs_once(self, patched_client, mock_collection):
        db = TaskLedgerDB()

        await db.ensure_indexes()
        await db.ensure_indexes()

        assert mock_collection.create_index.await_count == 2
        mock_collection.create_index.assert_any_await("email", unique=True)
        mock_collection.create_index.assert_any_await([("owner_id", 1), ("created_at", 1)])

    @pytest.mark.asyncio
    async def test_ping(self, patched_client, mock_client):
        db = TaskLedgerDB()

        assert await db.ping() is True
        mock_client.__getitem__.return_value.command.assert_awaited_once_with("ping")
