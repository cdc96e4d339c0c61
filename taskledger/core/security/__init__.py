from taskledger.core.security.guard import AuthGuard, bearer_scheme, extract_bearer_token, require_subject
from taskledger.core.security.password import PasswordHasher
from taskledger.core.security.tokens import TokenClaims, TokenService, parse_keyring

__all__ = [
    "AuthGuard",
    "bearer_scheme",
    "extract_bearer_token",
    "parse_keyring",
    "PasswordHasher",
    "require_subject",
    "TokenClaims",
    "TokenService",
]
