"""Unit tests for request and response models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from taskledger.models import (
    LoginPayload,
    RegisterPayload,
    Task,
    TaskCreateRequest,
    TaskListResponse,
    TaskOwner,
    TaskResponse,
    User,
    UserResponse,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestRegisterPayload:
    def test_email_is_trimmed_and_lowercased(self):
        payload = RegisterPayload(email="  Alice@Example.COM ", name=" Alice ", password="pw")

        assert payload.email == "alice@example.com"
        assert payload.name == "Alice"

    @pytest.mark.parametrize("email", ["alice", "@example.com", "alice@", "a@b@c", "al ice@example.com"])
    def test_invalid_email(self, email):
        with pytest.raises(ValidationError):
            RegisterPayload(email=email, name="Alice", password="pw")

    def test_password_limited_to_72_bytes(self):
        RegisterPayload(email="a@b.co", name="A", password="p" * 72)

        with pytest.raises(ValidationError):
            RegisterPayload(email="a@b.co", name="A", password="é" * 37)

    def test_missing_field(self):
        with pytest.raises(ValidationError):
            RegisterPayload(email="a@b.co", name="A")

    def test_login_payload_normalizes_email(self):
        assert LoginPayload(email="A@B.CO", password="x").email == "a@b.co"


class TestTaskModels:
    def test_create_request_ignores_owner_fields(self):
        payload = TaskCreateRequest.model_validate({"title": "T", "description": "D", "ownerId": "someone"})

        assert "owner_id" not in payload.model_dump()
        assert payload.status is None

    @pytest.mark.parametrize("status", ["yes", "on", "true", 1, 0])
    def test_status_must_be_a_json_boolean(self, status):
        with pytest.raises(ValidationError):
            TaskCreateRequest(title="T", description="D", status=status)

    def test_status_accepts_booleans(self):
        assert TaskCreateRequest(title="T", description="D", status=False).status is False

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            TaskCreateRequest(title="  ", description="")

    def test_task_response_serializes_camel_case(self):
        task = Task(id="t1", title="T", description="D", owner_id="u1", created_at=NOW, updated_at=NOW)

        body = TaskResponse.from_task(task, TaskOwner(id="u1", name="Alice")).model_dump(by_alias=True)

        assert body["ownerId"] == "u1"
        assert body["createdAt"] == NOW
        assert body["owner"] == {"id": "u1", "name": "Alice"}
        assert body["status"] is False

    def test_list_response_serializes_camel_case(self):
        body = TaskListResponse(tasks=[], amount_items=0, total_pages=0).model_dump(by_alias=True)

        assert body == {"tasks": [], "amountItems": 0, "totalPages": 0}


class TestUserResponse:
    def test_from_user_drops_hash(self):
        user = User(id="u1", email="a@b.co", name="A", password_hash="$2b$hash", created_at=NOW)

        body = UserResponse.from_user(user).model_dump(by_alias=True)

        assert body == {"id": "u1", "email": "a@b.co", "name": "A", "createdAt": NOW}
