"""Identity subsystem — the identity records read by the auth and audit core."""
from __future__ import annotations

from academic_records.identity.roles import AccountStatus, Role, parse_role, parse_status
from academic_records.identity.store import (
    IdentityAlreadyExistsError,
    IdentityNotFoundError,
    IdentityRecord,
    IdentityStore,
    hash_password,
)

__all__ = [
    "AccountStatus",
    "IdentityAlreadyExistsError",
    "IdentityNotFoundError",
    "IdentityRecord",
    "IdentityStore",
    "Role",
    "hash_password",
    "parse_role",
    "parse_status",
]
