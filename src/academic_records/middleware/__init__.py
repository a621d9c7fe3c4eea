"""Request middleware — bearer-token authentication and role gating.

Quick start
-----------
::

    from academic_records.middleware import ADMIN_ONLY, AuthGate
    from academic_records.tokens import TokenService

    tokens = TokenService(b"access-secret", b"refresh-secret")
    gate = AuthGate(tokens, ADMIN_ONLY)
    claims = gate.authenticate("Bearer " + tokens.issue_access(admin_claims))
"""
from __future__ import annotations

from academic_records.middleware.auth import (
    AuthError,
    AuthGate,
    BlockedAccount,
    ForbiddenRole,
    InvalidOrExpiredToken,
    MalformedToken,
    MissingRole,
    MissingToken,
    extract_bearer_token,
)
from academic_records.middleware.rbac import ADMIN_ONLY, ANY_ROLE, STAFF, RolePolicy

__all__ = [
    "ADMIN_ONLY",
    "ANY_ROLE",
    "AuthError",
    "AuthGate",
    "BlockedAccount",
    "ForbiddenRole",
    "InvalidOrExpiredToken",
    "MalformedToken",
    "MissingRole",
    "MissingToken",
    "RolePolicy",
    "STAFF",
    "extract_bearer_token",
]
