"""Unit tests for password hashing."""

import time

import pytest

from taskledger.core.exceptions import InternalFailure
from taskledger.core.security import PasswordHasher


class TestPasswordHasher:
    def test_verify_matching_password(self, hasher):
        digest = hasher.hash("my_secure_password")

        assert hasher.verify("my_secure_password", digest) is True

    def test_verify_wrong_password(self, hasher):
        digest = hasher.hash("password-one")

        assert hasher.verify("password-two", digest) is False

    def test_hash_is_salted(self, hasher):
        """Hashing the same password twice yields different digests that both verify."""
        first = hasher.hash("same")
        second = hasher.hash("same")

        assert first != second
        assert hasher.verify("same", first)
        assert hasher.verify("same", second)

    def test_digest_never_contains_plaintext(self, hasher):
        assert "hunter2" not in hasher.hash("hunter2")

    def test_work_factor_in_digest(self):
        digest = PasswordHasher(rounds=5).hash("pw")

        assert digest.startswith("$2b$05$")

    def test_default_rounds(self):
        assert PasswordHasher().rounds == 10

    @pytest.mark.parametrize("digest", ["", "not-a-hash", "$2b$04$tooshort"])
    def test_malformed_digest_verifies_false(self, hasher, digest):
        assert hasher.verify("anything", digest) is False


class TestPasswordHasherAsync:
    @pytest.mark.asyncio
    async def test_hash_and_verify_async(self, hasher):
        digest = await hasher.hash_async("secret123")

        assert await hasher.verify_async("secret123", digest) is True
        assert await hasher.verify_async("secret124", digest) is False

    @pytest.mark.asyncio
    async def test_timeout_raises_internal_failure(self):
        hasher = PasswordHasher(rounds=4, timeout=0.01)

        def slow_hash(password):
            time.sleep(0.2)
            return "never"

        hasher.hash = slow_hash

        with pytest.raises(InternalFailure):
            await hasher.hash_async("secret123")
