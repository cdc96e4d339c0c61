"""Signed bearer tokens.

Tokens are HS256 JWTs carrying the subject (user id), extra claims, ``iat`` and ``exp``. The header names the signing
key through ``kid`` so the signing secret can be rotated: the service keeps a keyring of ``{kid: secret}`` where one key
signs new tokens and retired keys are still accepted for verification until their tokens expire.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional

import jwt
from pydantic import BaseModel

from taskledger.core.exceptions import InvalidTokenError

DEFAULT_TTL = timedelta(hours=24)
DEFAULT_ALGORITHM = "HS256"


class TokenClaims(BaseModel):
    """Verified JWT payload."""

    sub: str
    iat: int
    exp: int
    email: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_keyring(raw: str | None) -> Dict[str, str]:
    """Parse ``"kid1:secret1,kid2:secret2"`` into a keyring mapping. Blank entries are ignored."""
    keys: Dict[str, str] = {}
    for entry in (raw or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        kid, sep, secret = entry.partition(":")
        if not sep or not kid.strip() or not secret:
            raise ValueError(f"Malformed key entry '{kid.strip() or entry}': expected '<kid>:<secret>'")
        keys[kid.strip()] = secret
    return keys


class TokenService:
    """Issue and verify signed, time-boxed bearer tokens.

    Args:
        secret: Secret of the active signing key.
        key_id: Identifier written to the ``kid`` header of every issued token.
        retired_keys: Older ``{kid: secret}`` pairs that are accepted for verification only.
        algorithm: HMAC algorithm used for signing.
        ttl: Default token lifetime.
        clock: Callable returning the current aware datetime, injectable for tests.

    Example:
        ```python
        tokens = TokenService(secret="s3cret", key_id="2024-01")
        token = tokens.issue("65f0c0ffee", claims={"email": "alice@example.com"})
        claims = tokens.verify(token)
        assert claims.sub == "65f0c0ffee"
        ```
    """

    def __init__(
        self,
        secret: str,
        *,
        key_id: str = "default",
        retired_keys: Optional[Mapping[str, str]] = None,
        algorithm: str = DEFAULT_ALGORITHM,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret:
            raise ValueError("A signing secret is required")
        self.key_id = key_id
        self.algorithm = algorithm
        self.ttl = ttl
        self._clock = clock
        self._keys: Dict[str, str] = dict(retired_keys or {})
        self._keys[key_id] = secret

    @property
    def key_ids(self) -> list[str]:
        return sorted(self._keys)

    def issue(
        self,
        subject: str,
        claims: Optional[Mapping[str, Any]] = None,
        ttl: Optional[timedelta] = None,
    ) -> str:
        """Create a signed JWT for the given subject (user id)."""
        now = self._clock()
        payload: Dict[str, Any] = dict(claims or {})
        payload.update(
            {
                "sub": subject,
                "iat": int(now.timestamp()),
                "exp": int((now + (ttl or self.ttl)).timestamp()),
            }
        )
        return jwt.encode(
            payload,
            self._keys[self.key_id],
            algorithm=self.algorithm,
            headers={"kid": self.key_id},
        )

    def verify(self, token: str) -> TokenClaims:
        """Verify signature and expiry, returning the typed payload.

        Raises:
            InvalidTokenError: If the token is malformed, signed with an unknown key, tampered with, or expired.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Malformed token") from e

        secret = self._keys.get(header.get("kid") or self.key_id)
        if secret is None:
            raise InvalidTokenError("Unknown signing key")

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={
                    "require": ["sub", "iat", "exp"],
                    # Time checks below run against the injected clock
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
            claims = TokenClaims(**payload)
        except (jwt.InvalidTokenError, ValueError) as e:
            raise InvalidTokenError("Invalid token") from e

        if self._clock().timestamp() > claims.exp:
            raise InvalidTokenError("Token has expired")
        return claims
