"""Async MongoDB wrapper for the TaskLedger service.

Uses motor (async pymongo driver) directly. Holds the client lifecycle, creates the indexes the repositories rely on,
and exposes generic CRUD helpers; repositories own all document mapping.
"""

from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

USERS = "users"
TASKS = "tasks"


class TaskLedgerDB:
    """Async MongoDB wrapper with proper resource management.

    Example:
        ```python
        db = await TaskLedgerDB(uri="mongodb://localhost:27017", db_name="taskledger").connect()
        user_id = await db.insert_one("users", {"email": "alice@example.com", "name": "Alice"})
        user = await db.find_one("users", {"email": "alice@example.com"})
        await db.disconnect()
        ```
    """

    def __init__(
        self,
        uri: str = "mongodb://localhost:27017",
        db_name: str = "taskledger",
        timeout_ms: int = 5000,
    ):
        """Initialize with connection parameters. No connection made until connect()."""
        self._uri = uri
        self._db_name = db_name
        self._timeout_ms = timeout_ms
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None
        self._indexes_ready = False

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> "TaskLedgerDB":
        """Connect to MongoDB. Returns self for chaining."""
        if self._client is not None:
            return self
        self._client = AsyncIOMotorClient(
            self._uri,
            tz_aware=True,
            serverSelectionTimeoutMS=self._timeout_ms,
            timeoutMS=self._timeout_ms,
        )
        self._db = self._client[self._db_name]
        return self

    async def disconnect(self) -> None:
        """Disconnect and cleanup."""
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None
            self._indexes_ready = False

    async def ensure_indexes(self) -> None:
        """Create the unique email index and the owner-scoped task listing index."""
        if self._indexes_ready:
            return
        if not self.is_connected:
            await self.connect()
        await self._db[USERS].create_index("email", unique=True)
        await self._db[TASKS].create_index([("owner_id", ASCENDING), ("created_at", ASCENDING)])
        self._indexes_ready = True

    async def ping(self) -> bool:
        """Return True if the server answers a ``ping`` command."""
        if not self.is_connected:
            await self.connect()
        result = await self._db.command("ping")
        return bool(result.get("ok"))

    # -------------------------------------------------------------------------
    # Generic CRUD
    # -------------------------------------------------------------------------

    async def insert_one(self, collection: str, document: Dict[str, Any]) -> str:
        """Insert a document. Returns inserted ID as string."""
        if not self.is_connected:
            await self.connect()
        result = await self._db[collection].insert_one(document)
        return str(result.inserted_id)

    async def find_one(self, collection: str, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Find a single document."""
        if not self.is_connected:
            await self.connect()
        return await self._db[collection].find_one(query)

    async def find_many(
        self,
        collection: str,
        query: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        """Find multiple documents, optionally sorted and windowed by ``skip``/``limit``."""
        if not self.is_connected:
            await self.connect()
        cursor = self._db[collection].find(query or {})
        if sort:
            cursor = cursor.sort(sort)
        if skip > 0:
            cursor = cursor.skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=None)

    async def count(self, collection: str, query: Optional[Dict[str, Any]] = None) -> int:
        """Count documents matching query."""
        if not self.is_connected:
            await self.connect()
        return await self._db[collection].count_documents(query or {})
