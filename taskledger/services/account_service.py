"""User registration, login and lookup."""

import logging
from datetime import timedelta
from typing import List, Optional

from taskledger.core.exceptions import ConflictError, NotFoundError, Unauthenticated
from taskledger.core.security import PasswordHasher, TokenService
from taskledger.models import TokenResponse, UserResponse
from taskledger.repositories import UserRepository


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountService:
    """Account operations over a ``UserRepository``.

    Args:
        users: Credential store.
        hasher: Password hasher used for new registrations and login checks.
        tokens: Token service issuing access tokens on login.
        token_ttl: Lifetime of issued access tokens. Defaults to the token service's ttl.
        logger: Logger for account events. Passwords and tokens are never logged.
    """

    def __init__(
        self,
        users: UserRepository,
        hasher: PasswordHasher,
        tokens: TokenService,
        *,
        token_ttl: Optional[timedelta] = None,
        logger=None,
    ):
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.token_ttl = token_ttl
        self.logger = logger or logging.getLogger(__name__)

    async def register(self, email: str, name: str, password: str) -> UserResponse:
        email = normalize_email(email)
        if await self.users.find_by_email(email) is not None:
            raise ConflictError("Email already registered")

        password_hash = await self.hasher.hash_async(password)
        # A concurrent registration can still win the race; the unique index turns it into ConflictError
        user = await self.users.insert(email=email, name=name.strip(), password_hash=password_hash)
        self.logger.info(f"Registered user {user.id}")
        return UserResponse.from_user(user)

    async def login(self, email: str, password: str) -> TokenResponse:
        user = await self.users.find_by_email(normalize_email(email))
        if user is None:
            raise NotFoundError("Email not found")

        if not await self.hasher.verify_async(password, user.password_hash):
            self.logger.info(f"Rejected login for user {user.id}")
            raise Unauthenticated("Invalid credentials")

        token = self.tokens.issue(user.id, claims={"email": user.email}, ttl=self.token_ttl)
        self.logger.info(f"Issued access token for user {user.id}")
        return TokenResponse(access_token=token, name=user.name)

    async def get(self, user_id: str) -> UserResponse:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User with id '{user_id}' not found")
        return UserResponse.from_user(user)

    async def list(self) -> List[UserResponse]:
        return [UserResponse.from_user(user) for user in await self.users.list()]
