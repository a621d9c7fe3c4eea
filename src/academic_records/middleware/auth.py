"""AuthGate — bearer-token authentication and role gating for requests.

The gate runs before any handler logic. It extracts the bearer token from the
Authorization header, verifies it as an access token, and then applies the
account-status and role checks in a fixed order:

  1. missing / malformed header      -> MissingToken           (401)
  2. signature or expiry failure     -> InvalidOrExpiredToken  (401)
  3. status == blocked               -> BlockedAccount         (403)
  4. empty role                      -> MissingRole            (401)
  5. role outside the allowed set    -> ForbiddenRole          (403)

Each failure is an :class:`AuthError` carrying an HTTP status code, a generic
public message, and an internal ``detail`` that callers only expose outside
production. The gate holds no mutable state.
"""
from __future__ import annotations

import logging
import re

from academic_records.context import RequestContext
from academic_records.identity.roles import AccountStatus, parse_role, parse_status
from academic_records.middleware.rbac import RolePolicy
from academic_records.tokens.claims import TokenClaims, TokenKind
from academic_records.tokens.service import TokenError, TokenService

logger = logging.getLogger(__name__)

_BEARER_PATTERN = re.compile(r"^Bearer\s+(\S+)\s*$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AuthError(Exception):
    """Base class for authentication and authorization failures."""

    status_code: int = 401
    public_message: str = "Authentication failed"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail or self.public_message)

    def to_dict(self, expose_detail: bool = False) -> dict[str, object]:
        """Return the response body for this error."""
        body: dict[str, object] = {"message": self.public_message}
        if expose_detail and self.detail:
            body["error"] = self.detail
        return body


class MissingToken(AuthError):
    status_code = 401
    public_message = "Authorization token is required"


class MalformedToken(AuthError):
    status_code = 401
    public_message = "Invalid token"


class InvalidOrExpiredToken(AuthError):
    status_code = 401
    public_message = "Invalid or expired token"


class BlockedAccount(AuthError):
    status_code = 403
    public_message = "Your account is currently blocked."


class MissingRole(AuthError):
    status_code = 401
    public_message = "Invalid token payload (missing role)"


class ForbiddenRole(AuthError):
    status_code = 403
    public_message = "This action is forbidden with the current credentials"


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------


def extract_bearer_token(authorization_header: str | None) -> str:
    """Return the token from a ``Bearer <token>`` header value.

    Raises
    ------
    MissingToken
        If the header is absent or does not follow the Bearer scheme.
    """
    match = _BEARER_PATTERN.match((authorization_header or "").strip())
    if match is None:
        raise MissingToken("Authorization header is missing or not a Bearer credential.")
    return match.group(1)


class AuthGate:
    """Request gate enforcing "valid token + allowed role + not blocked".

    Parameters
    ----------
    tokens:
        The token service used to verify access tokens.
    policy:
        Roles allowed through this gate.
    """

    def __init__(self, tokens: TokenService, policy: RolePolicy) -> None:
        self._tokens = tokens
        self._policy = policy

    @property
    def policy(self) -> RolePolicy:
        return self._policy

    def authenticate(self, authorization_header: str | None) -> TokenClaims:
        """Run every check against a raw Authorization header value.

        Returns
        -------
        TokenClaims
            The verified claims of the caller.

        Raises
        ------
        AuthError
            The first failing check, as one of its subclasses.
        """
        token = extract_bearer_token(authorization_header)

        try:
            claims = self._tokens.verify(token, TokenKind.ACCESS)
        except TokenError as exc:
            raise InvalidOrExpiredToken(str(exc)) from exc

        if claims.status:
            try:
                status = parse_status(claims.status)
            except ValueError as exc:
                raise MalformedToken(f"Unknown account status {claims.status!r}.") from exc
            if status is AccountStatus.BLOCKED:
                raise BlockedAccount(f"Account {claims.external_id!r} is blocked.")

        if not claims.role.strip():
            raise MissingRole("Token carries no role claim.")

        try:
            role = parse_role(claims.role)
        except ValueError as exc:
            raise ForbiddenRole(f"Unknown role {claims.role!r}.") from exc

        if not self._policy.permits(role):
            raise ForbiddenRole(
                f"Role {role.value!r} is not one of {', '.join(self._policy.names())}."
            )

        return claims

    def check(self, context: RequestContext) -> TokenClaims:
        """Authenticate *context* and attach the claims to it on success."""
        claims = self.authenticate(context.header("authorization") or None)
        context.identity = claims
        logger.debug("authenticated %s as %s", claims.external_id, claims.role)
        return claims
