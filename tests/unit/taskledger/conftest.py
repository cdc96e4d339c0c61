"""Pytest fixtures for TaskLedger unit tests."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from taskledger.config import reset_taskledger_config
from taskledger.core.exceptions import ConflictError
from taskledger.core.security import AuthGuard, PasswordHasher, TokenService
from taskledger.models import Task, User
from taskledger.service import TaskLedgerService

TEST_SECRET = "test-secret-key"


@pytest.fixture(autouse=True)
def reset_config():
    """Reset TaskLedger config before each test to ensure clean state."""
    reset_taskledger_config()
    yield
    reset_taskledger_config()


# ---------------------------------------------------------------------------
# Fake repositories (pure in-memory, no Mongo)
# ---------------------------------------------------------------------------


class FakeUserRepository:
    """In-memory fake user repository. Duplicate emails raise ConflictError like the unique index does."""

    def __init__(self) -> None:
        self._users: Dict[str, User] = {}

    async def find_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self._users.values() if u.email == email), None)

    async def find_by_id(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    async def list(self) -> List[User]:
        return list(self._users.values())

    async def insert(self, email: str, name: str, password_hash: str) -> User:
        if any(u.email == email for u in self._users.values()):
            raise ConflictError("Record already exists")
        user = User(
            id=str(ObjectId()),
            email=email,
            name=name,
            password_hash=password_hash,
            created_at=datetime.now(timezone.utc),
        )
        self._users[user.id] = user
        return user


class FakeTaskRepository:
    """In-memory fake task repository that records the window of every ``find_many`` call."""

    def __init__(self) -> None:
        self._tasks: List[Task] = []
        self.find_calls: List[Tuple[str, int, int]] = []

    async def insert(self, owner_id: str, title: str, description: str, status: bool = False) -> Task:
        now = datetime.now(timezone.utc) + timedelta(microseconds=len(self._tasks))
        task = Task(
            id=str(ObjectId()),
            title=title,
            description=description,
            status=status,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        self._tasks.append(task)
        return task

    async def find_many(self, owner_id: str, skip: int, take: int) -> List[Task]:
        self.find_calls.append((owner_id, skip, take))
        owned = [t for t in self._tasks if t.owner_id == owner_id]
        return owned[skip : skip + take]

    async def count(self, owner_id: str) -> int:
        return sum(1 for t in self._tasks if t.owner_id == owner_id)


# ---------------------------------------------------------------------------
# Security fixtures
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def hasher():
    """Cheap work factor keeps the suite fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_service(clock):
    return TokenService(TEST_SECRET, key_id="test", clock=clock)


@pytest.fixture
def guard(token_service):
    return AuthGuard(token_service)


@pytest.fixture
def user_repo():
    return FakeUserRepository()


@pytest.fixture
def task_repo():
    return FakeTaskRepository()


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def service_overrides(tmp_path):
    return {
        "TASKLEDGER": {
            "URL": "http://localhost:3333",
            "MONGO_DB": "taskledger_test",
            "JWT_SECRET": TEST_SECRET,
            "LOG_DIR": str(tmp_path / "logs"),
            "LOG_LEVEL": "DEBUG",
            "USE_STRUCTLOG": False,
        }
    }


@pytest.fixture
def service(service_overrides, user_repo, task_repo, hasher):
    """A TaskLedgerService wired to in-memory repositories."""
    return TaskLedgerService(
        enable_db=False,
        config_overrides=service_overrides,
        user_repo=user_repo,
        task_repo=task_repo,
        password_hasher=hasher,
    )


@pytest.fixture
def client(service):
    """HTTP client. Not used as a context manager, so no lifespan (and no MongoDB) runs."""
    return TestClient(service.app)
