"""Request, response and record models for TaskLedger.

API models serialize with camelCase aliases (``accessToken``, ``ownerId``, ...) and accept either camelCase or
snake_case input. Request models validate at the boundary and fail closed on missing or mistyped fields.
"""

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictBool
from pydantic.alias_generators import to_camel

# bcrypt only consumes the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class APIModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


class User(BaseModel):
    """User record as held by the credential store. Never returned to API callers directly."""

    id: str
    email: str
    name: str
    password_hash: str
    created_at: Optional[datetime] = None


class Task(BaseModel):
    id: str
    title: str
    description: str
    status: bool = False
    owner_id: str
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


def _normalize_email(value: str) -> str:
    local, sep, domain = value.partition("@")
    if not sep or not local or not domain or "@" in domain or " " in value:
        raise ValueError("Invalid email address")
    return value.lower()


def _check_password(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


Email = Annotated[str, Field(min_length=3, max_length=254), AfterValidator(_normalize_email)]
Password = Annotated[str, Field(min_length=1), AfterValidator(_check_password)]


class RegisterPayload(APIModel):
    email: Email = Field(..., description="Unique email address")
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    password: Password = Field(..., description="Plain text password")


class LoginPayload(APIModel):
    email: Email
    password: str = Field(..., min_length=1)


class TokenResponse(APIModel):
    access_token: str
    name: str


class UserResponse(APIModel):
    """API-safe representation of a user (no password hash)."""

    id: str = Field(..., description="User ID")
    email: str
    name: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, email=user.email, name=user.name, created_at=user.created_at)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskCreateRequest(APIModel):
    """Task creation payload. Owner fields sent by the client are ignored."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., max_length=5000)
    status: Optional[StrictBool] = None


class TaskOwner(APIModel):
    id: str
    name: str


class TaskResponse(APIModel):
    id: str
    title: str
    description: str
    status: bool
    owner_id: str
    created_at: datetime
    updated_at: datetime
    owner: Optional[TaskOwner] = None

    @classmethod
    def from_task(cls, task: Task, owner: Optional[TaskOwner] = None) -> "TaskResponse":
        return cls(**task.model_dump(), owner=owner)


class TaskListResponse(APIModel):
    tasks: List[TaskResponse]
    amount_items: int = Field(..., description="Total number of tasks owned by the caller")
    total_pages: int


class ErrorResponse(BaseModel):
    detail: str
    error_code: str


__all__ = [
    "APIModel",
    "ErrorResponse",
    "LoginPayload",
    "RegisterPayload",
    "Task",
    "TaskCreateRequest",
    "TaskListResponse",
    "TaskOwner",
    "TaskResponse",
    "TokenResponse",
    "User",
    "UserResponse",
]
