"""Unit tests for the token service."""

import string
from datetime import timedelta

import jwt
import pytest

from taskledger.core.exceptions import InvalidTokenError
from taskledger.core.security import TokenService, parse_keyring

B64URL = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-_"


def _tamper(token: str, index: int) -> str:
    """Change the character at ``index`` so that its decoded bits always differ."""
    char = token[index]
    replacement = "A" if char == "." else B64URL[B64URL.index(char) ^ 32]
    return token[:index] + replacement + token[index + 1 :]


class TestIssueAndVerify:
    def test_roundtrip(self, token_service):
        token = token_service.issue("user-1", claims={"email": "alice@example.com"})

        claims = token_service.verify(token)

        assert claims.sub == "user-1"
        assert claims.email == "alice@example.com"

    def test_default_ttl_is_24_hours(self, token_service):
        claims = token_service.verify(token_service.issue("user-1"))

        assert claims.exp - claims.iat == 24 * 60 * 60

    def test_custom_ttl(self, token_service):
        claims = token_service.verify(token_service.issue("user-1", ttl=timedelta(minutes=5)))

        assert claims.exp - claims.iat == 300

    def test_header_carries_key_id(self, token_service):
        token = token_service.issue("user-1")

        assert jwt.get_unverified_header(token)["kid"] == "test"

    def test_requires_secret(self):
        with pytest.raises(ValueError):
            TokenService("")


class TestExpiry:
    def test_valid_until_exp(self, token_service, clock):
        token = token_service.issue("user-1")

        clock.advance(hours=24)

        assert token_service.verify(token).sub == "user-1"

    def test_rejected_after_exp(self, token_service, clock):
        token = token_service.issue("user-1")

        clock.advance(hours=24, seconds=1)

        with pytest.raises(InvalidTokenError):
            token_service.verify(token)


class TestTampering:
    def test_any_modified_character_is_rejected(self, token_service):
        token = token_service.issue("user-1", claims={"email": "alice@example.com"})

        for index in range(len(token)):
            with pytest.raises(InvalidTokenError):
                token_service.verify(_tamper(token, index))

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c", "a.b"])
    def test_malformed_token(self, token_service, token):
        with pytest.raises(InvalidTokenError):
            token_service.verify(token)

    def test_wrong_secret(self, token_service, clock):
        forged = TokenService("another-secret", key_id="test", clock=clock).issue("user-1")

        with pytest.raises(InvalidTokenError):
            token_service.verify(forged)

    def test_missing_subject(self, token_service, clock):
        token = jwt.encode(
            {"iat": int(clock().timestamp()), "exp": int(clock().timestamp()) + 60},
            "test-secret-key",
            algorithm="HS256",
            headers={"kid": "test"},
        )

        with pytest.raises(InvalidTokenError):
            token_service.verify(token)


class TestKeyRotation:
    def test_unknown_key_id_rejected(self, token_service, clock):
        token = TokenService("test-secret-key", key_id="unknown", clock=clock).issue("user-1")

        with pytest.raises(InvalidTokenError):
            token_service.verify(token)

    def test_retired_key_still_verifies(self, clock):
        old = TokenService("old-secret", key_id="2023", clock=clock)
        new = TokenService("new-secret", key_id="2024", retired_keys={"2023": "old-secret"}, clock=clock)

        assert new.verify(old.issue("user-1")).sub == "user-1"
        assert jwt.get_unverified_header(new.issue("user-1"))["kid"] == "2024"
        assert new.key_ids == ["2023", "2024"]

    def test_new_key_not_accepted_by_old_service(self, clock):
        old = TokenService("old-secret", key_id="2023", clock=clock)
        new = TokenService("new-secret", key_id="2024", retired_keys={"2023": "old-secret"}, clock=clock)

        with pytest.raises(InvalidTokenError):
            old.verify(new.issue("user-1"))


class TestParseKeyring:
    def test_parses_entries(self):
        assert parse_keyring("a:one, b:two") == {"a": "one", "b": "two"}

    def test_secret_may_contain_colons(self):
        assert parse_keyring("a:x:y") == {"a": "x:y"}

    @pytest.mark.parametrize("raw", [None, "", " , "])
    def test_empty(self, raw):
        assert parse_keyring(raw) == {}

    @pytest.mark.parametrize("raw", ["no-separator", ":secret", "kid:"])
    def test_malformed(self, raw):
        with pytest.raises(ValueError):
            parse_keyring(raw)
