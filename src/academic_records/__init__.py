"""academic-records — authentication and activity audit core for academic records.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Quick start
-----------
::

    from academic_records import (
        # Tokens and gating
        TokenService, TokenClaims, TokenKind, AuthGate, RolePolicy,
        # Audit trail
        ActivityStore, AuditRecorder, AuditQueryEngine, AuditEvent, ActionCode,
        # Identities
        IdentityStore, Role, AccountStatus,
    )
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Configuration and request context
# ------------------------------------------------------------------
from academic_records.config import Settings
from academic_records.context import RequestContext

# ------------------------------------------------------------------
# Identity subsystem
# ------------------------------------------------------------------
from academic_records.identity import (
    AccountStatus,
    IdentityAlreadyExistsError,
    IdentityNotFoundError,
    IdentityRecord,
    IdentityStore,
    Role,
)

# ------------------------------------------------------------------
# Token subsystem
# ------------------------------------------------------------------
from academic_records.tokens import (
    TokenClaims,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenKind,
    TokenService,
)

# ------------------------------------------------------------------
# Middleware subsystem
# ------------------------------------------------------------------
from academic_records.middleware import (
    ADMIN_ONLY,
    AuthError,
    AuthGate,
    BlockedAccount,
    ForbiddenRole,
    InvalidOrExpiredToken,
    MalformedToken,
    MissingRole,
    MissingToken,
    RolePolicy,
)

# ------------------------------------------------------------------
# Enrichment subsystem
# ------------------------------------------------------------------
from academic_records.enrichment import GeoInfo, GeoLocator, UserAgentInfo, parse_user_agent, resolve_client_ip

# ------------------------------------------------------------------
# Audit subsystem
# ------------------------------------------------------------------
from academic_records.audit import (
    ActionCategory,
    ActionCode,
    ActivityRecord,
    ActivityStore,
    ActivitySummary,
    AuditEvent,
    AuditQueryEngine,
    AuditRecorder,
    Pagination,
    SearchParams,
    SearchResult,
)

__all__ = [
    # version
    "__version__",
    # configuration
    "RequestContext",
    "Settings",
    # identity
    "AccountStatus",
    "IdentityAlreadyExistsError",
    "IdentityNotFoundError",
    "IdentityRecord",
    "IdentityStore",
    "Role",
    # tokens
    "TokenClaims",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenKind",
    "TokenService",
    # middleware
    "ADMIN_ONLY",
    "AuthError",
    "AuthGate",
    "BlockedAccount",
    "ForbiddenRole",
    "InvalidOrExpiredToken",
    "MalformedToken",
    "MissingRole",
    "MissingToken",
    "RolePolicy",
    # enrichment
    "GeoInfo",
    "GeoLocator",
    "UserAgentInfo",
    "parse_user_agent",
    "resolve_client_ip",
    # audit
    "ActionCategory",
    "ActionCode",
    "ActivityRecord",
    "ActivityStore",
    "ActivitySummary",
    "AuditEvent",
    "AuditQueryEngine",
    "AuditRecorder",
    "Pagination",
    "SearchParams",
    "SearchResult",
]
