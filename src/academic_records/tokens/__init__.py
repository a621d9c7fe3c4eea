"""Token subsystem — signed access and refresh tokens."""
from __future__ import annotations

from academic_records.tokens.claims import TokenClaims, TokenKind
from academic_records.tokens.service import (
    ACCESS_TOKEN_TTL,
    REFRESH_TOKEN_TTL,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenService,
)

__all__ = [
    "ACCESS_TOKEN_TTL",
    "REFRESH_TOKEN_TTL",
    "TokenClaims",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenKind",
    "TokenService",
]
