"""Bearer token authentication guard.

``AuthGuard`` is the single choke point for protected operations: it turns an ``Authorization`` header value into
the authenticated subject id or raises. A missing or non-bearer header is ``Unauthenticated`` (401); a token that
fails verification is ``Forbidden`` (403).
"""

from typing import Optional

from fastapi import Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taskledger.core.exceptions import Forbidden, InvalidTokenError, Unauthenticated
from taskledger.core.security.tokens import TokenService

bearer_scheme = HTTPBearer(
    auto_error=False,
    scheme_name="Bearer",
    description="JWT Bearer token authentication. Format: Bearer <token>",
)


def extract_bearer_token(header_value: Optional[str]) -> Optional[str]:
    """Return the token of a ``Bearer <token>`` header value, or None if there is none."""
    if not header_value:
        return None
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


class AuthGuard:
    """Authenticate requests against a ``TokenService``.

    The guard can be called directly with a raw header value, or used as a FastAPI dependency:

        ```python
        guard = AuthGuard(token_service)

        @app.get("/me")
        async def me(subject: str = Depends(guard)):
            ...
        ```
    """

    def __init__(self, token_service: TokenService):
        self.token_service = token_service

    def authenticate(self, header_value: Optional[str]) -> str:
        """Return the subject id of the bearer token in ``header_value``."""
        token = extract_bearer_token(header_value)
        if token is None:
            raise Unauthenticated("Token not found")
        return self.authenticate_token(token)

    def authenticate_token(self, token: str) -> str:
        try:
            claims = self.token_service.verify(token)
        except InvalidTokenError as e:
            raise Forbidden("Invalid or expired token") from e
        return claims.sub

    async def __call__(
        self,
        credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    ) -> str:
        if credentials is None:
            raise Unauthenticated("Token not found")
        return self.authenticate_token(credentials.credentials)


async def require_subject(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> str:
    """FastAPI dependency returning the caller's subject id through the app's ``AuthGuard``.

    Declared as a dependency, it is solved before the request body is validated, so unauthenticated callers get 401
    whatever they send.
    """
    guard: AuthGuard = request.app.state.auth_guard
    return await guard(credentials)
