from datetime import datetime, timezone
from typing import List, Optional

from taskledger.db import USERS
from taskledger.models import User
from taskledger.repositories.base_repository import BaseRepository, parse_object_id


class UserRepository(BaseRepository):
    """Credential store over the ``users`` collection.

    Emails are expected already normalized (trimmed and lower-cased). Uniqueness is enforced by the unique index on
    ``email``, so a duplicate insert raises ``ConflictError``.
    """

    @staticmethod
    def _to_model(doc: dict) -> User:
        return User(
            id=str(doc["_id"]),
            email=doc["email"],
            name=doc["name"],
            password_hash=doc["password_hash"],
            created_at=doc.get("created_at"),
        )

    async def find_by_email(self, email: str) -> Optional[User]:
        doc = await self.db.find_one(USERS, {"email": email})
        if not doc:
            return None
        return self._to_model(doc)

    async def find_by_id(self, user_id: str) -> Optional[User]:
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        doc = await self.db.find_one(USERS, {"_id": oid})
        if not doc:
            return None
        return self._to_model(doc)

    async def list(self) -> List[User]:
        docs = await self.db.find_many(USERS, sort=[("created_at", 1), ("_id", 1)])
        return [self._to_model(doc) for doc in docs]

    async def insert(self, email: str, name: str, password_hash: str) -> User:
        data = {
            "email": email,
            "name": name,
            "password_hash": password_hash,
            "created_at": datetime.now(timezone.utc),
        }
        data["_id"] = parse_object_id(await self.db.insert_one(USERS, data))
        return self._to_model(data)
