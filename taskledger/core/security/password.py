"""Password hashing and verification.

Uses pwdlib with a bcrypt hasher. The work factor defaults to 10 rounds and every call to ``hash`` draws a fresh
random salt, so hashing the same password twice yields different digests.
"""

import asyncio

from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from pwdlib.hashers.bcrypt import BcryptHasher

from taskledger.core.exceptions import InternalFailure

DEFAULT_ROUNDS = 10
DEFAULT_TIMEOUT_SECONDS = 5.0


class PasswordHasher:
    """Salted one-way password hashing.

    Example:

            hasher = PasswordHasher(rounds=10)
            digest = hasher.hash("my_secure_password")
            assert hasher.verify("my_secure_password", digest)

    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS, timeout: float | None = DEFAULT_TIMEOUT_SECONDS):
        self.rounds = rounds
        self.timeout = timeout
        self._password_hash = PasswordHash((BcryptHasher(rounds=rounds),))

    def hash(self, password: str) -> str:
        """Hash a plain text password.

        Args:
            password: Plain text password to hash

        Returns:
            Hashed password string that can be safely stored in a database
        """
        return self._password_hash.hash(password)

    def verify(self, password: str, digest: str) -> bool:
        """Verify a password against its hash.

        A digest that is not a recognisable bcrypt hash verifies as False rather than raising.
        """
        try:
            return self._password_hash.verify(password, digest)
        except (UnknownHashError, ValueError):
            return False

    async def hash_async(self, password: str) -> str:
        """Hash off the event loop, bounded by ``timeout`` seconds."""
        return await self._run_bounded(self.hash, password)

    async def verify_async(self, password: str, digest: str) -> bool:
        """Verify off the event loop, bounded by ``timeout`` seconds."""
        return await self._run_bounded(self.verify, password, digest)

    async def _run_bounded(self, func, *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise InternalFailure("Password hashing timed out") from e
