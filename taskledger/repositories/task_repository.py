from datetime import datetime, timezone
from typing import List

from taskledger.db import TASKS
from taskledger.models import Task
from taskledger.repositories.base_repository import BaseRepository, parse_object_id


class TaskRepository(BaseRepository):
    """Task store over the ``tasks`` collection. Every read is filtered by owner."""

    @staticmethod
    def _to_model(doc: dict) -> Task:
        return Task(
            id=str(doc["_id"]),
            title=doc["title"],
            description=doc.get("description", ""),
            status=bool(doc.get("status", False)),
            owner_id=str(doc["owner_id"]),
            created_at=doc["created_at"],
            updated_at=doc.get("updated_at", doc["created_at"]),
        )

    async def insert(self, owner_id: str, title: str, description: str, status: bool = False) -> Task:
        now = datetime.now(timezone.utc)
        data = {
            "title": title,
            "description": description,
            "status": status,
            "owner_id": owner_id,
            "created_at": now,
            "updated_at": now,
        }
        data["_id"] = parse_object_id(await self.db.insert_one(TASKS, data))
        return self._to_model(data)

    async def find_many(self, owner_id: str, skip: int, take: int) -> List[Task]:
        """Return at most ``take`` of the owner's tasks after skipping ``skip``, oldest first."""
        docs = await self.db.find_many(
            TASKS,
            {"owner_id": owner_id},
            sort=[("created_at", 1), ("_id", 1)],
            skip=skip,
            limit=take,
        )
        return [self._to_model(doc) for doc in docs]

    async def count(self, owner_id: str) -> int:
        return await self.db.count(TASKS, {"owner_id": owner_id})
