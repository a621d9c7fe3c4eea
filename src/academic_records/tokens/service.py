"""TokenService — HMAC-SHA256 signed access and refresh tokens.

Token format
------------
The token is a dot-separated string:
    base64url(header).base64url(payload).base64url(signature)

- header: ``{"alg": "HS256", "typ": "JWT"}``
- payload: the TokenClaims fields plus ``"kind"``, ``"iat"`` and ``"exp"``
- signature: HMAC-SHA256(header.payload, secret-for-kind)

Base64 padding is stripped so tokens can be stored in a cookie unquoted.
Each kind has its own secret, so an access token never verifies under the
refresh secret and vice versa. The service is stateless: verification needs
nothing but the secrets and the clock.
"""
from __future__ import annotations

import base64
import datetime
import hashlib
import hmac
import json
from collections.abc import Callable

from academic_records.tokens.claims import TokenClaims, TokenKind

ACCESS_TOKEN_TTL = datetime.timedelta(minutes=15)
REFRESH_TOKEN_TTL = datetime.timedelta(days=30)


# ---------------------------------------------------------------------------
# Custom exceptions
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Base class for all token-related errors."""


class TokenExpiredError(TokenError):
    """Raised when the token's expiry time has passed."""

    def __init__(self, subject_id: str, expired_at: str) -> None:
        self.subject_id = subject_id
        self.expired_at = expired_at
        super().__init__(f"Token for subject '{subject_id}' expired at {expired_at}")


class TokenInvalidError(TokenError):
    """Raised when the token is malformed, tampered with, or of the wrong kind."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid token: {reason}")


# ---------------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------------


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


_TOKEN_HEADER: dict[str, str] = {"alg": "HS256", "typ": "JWT"}
_HEADER_B64: str = _b64encode(json.dumps(_TOKEN_HEADER, separators=(",", ":")).encode("utf-8"))


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# ---------------------------------------------------------------------------
# TokenService
# ---------------------------------------------------------------------------


class TokenService:
    """Issues and verifies access and refresh tokens.

    Parameters
    ----------
    access_secret:
        Secret for access tokens.
    refresh_secret:
        Secret for refresh tokens. Must differ from *access_secret*.
    clock:
        Callable returning the current UTC datetime. Injected in tests.

    Examples
    --------
    >>> service = TokenService(b"access", b"refresh")
    >>> token = service.issue_access(claims)
    >>> service.verify(token, TokenKind.ACCESS) == claims
    True
    """

    def __init__(
        self,
        access_secret: bytes | str,
        refresh_secret: bytes | str,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        access = access_secret.encode("utf-8") if isinstance(access_secret, str) else access_secret
        refresh = refresh_secret.encode("utf-8") if isinstance(refresh_secret, str) else refresh_secret
        if not access or not refresh:
            raise ValueError("Token secrets must not be empty.")
        if access == refresh:
            raise ValueError("Access and refresh secrets must be distinct.")
        self._secrets: dict[TokenKind, bytes] = {
            TokenKind.ACCESS: access,
            TokenKind.REFRESH: refresh,
        }
        self._ttls: dict[TokenKind, datetime.timedelta] = {
            TokenKind.ACCESS: ACCESS_TOKEN_TTL,
            TokenKind.REFRESH: REFRESH_TOKEN_TTL,
        }
        self._clock = clock

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_access(self, claims: TokenClaims) -> str:
        """Sign *claims* as an access token valid for 15 minutes."""
        return self._sign(claims, TokenKind.ACCESS)

    def issue_refresh(self, claims: TokenClaims) -> str:
        """Sign *claims* as a refresh token valid for 30 days."""
        return self._sign(claims, TokenKind.REFRESH)

    def refresh(self, refresh_token: str) -> str:
        """Mint a new access token from the claims inside *refresh_token*.

        The identity store is not consulted; the access token carries the
        snapshot taken when the refresh token was issued.

        Raises
        ------
        TokenInvalidError, TokenExpiredError
            If the refresh token does not verify.
        """
        claims = self.verify(refresh_token, TokenKind.REFRESH)
        return self.issue_access(claims)

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, token: str, kind: TokenKind) -> TokenClaims:
        """Verify a signed token of *kind* and return its claims.

        Raises
        ------
        TokenInvalidError
            When the token has an unexpected format, a bad signature, or was
            issued for a different kind.
        TokenExpiredError
            When the token has passed its expiry time.
        """
        parts = token.split(".")
        if len(parts) != 3:
            raise TokenInvalidError(f"expected 3 dot-separated parts, got {len(parts)}")

        header_b64, payload_b64, signature_b64 = parts

        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        expected_sig = self._compute_signature(signing_input, self._secrets[kind])
        if not hmac.compare_digest(
            signature_b64.encode("utf-8"), expected_sig.encode("ascii")
        ):
            raise TokenInvalidError("signature verification failed")

        try:
            payload = json.loads(_b64decode(payload_b64).decode("utf-8"))
        except Exception as exc:
            raise TokenInvalidError(f"could not decode payload: {exc}") from exc
        if not isinstance(payload, dict):
            raise TokenInvalidError("payload is not an object")

        if payload.get("kind") != kind.value:
            raise TokenInvalidError(f"token is not an {kind.value} token")

        exp_str = payload.get("exp")
        try:
            exp_dt = datetime.datetime.fromisoformat(str(exp_str))
        except ValueError as exc:
            raise TokenInvalidError(f"invalid 'exp' field: {exc}") from exc
        if self._clock() >= exp_dt:
            raise TokenExpiredError(
                subject_id=str(payload.get("subject_id", "")),
                expired_at=str(exp_str),
            )

        try:
            return TokenClaims.from_dict(payload)
        except KeyError as exc:
            raise TokenInvalidError(f"missing claim {exc}") from exc

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _sign(self, claims: TokenClaims, kind: TokenKind) -> str:
        now = self._clock()
        payload = claims.to_dict()
        payload["kind"] = kind.value
        payload["iat"] = now.isoformat()
        payload["exp"] = (now + self._ttls[kind]).isoformat()

        payload_bytes = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
        signing_input = f"{_HEADER_B64}.{_b64encode(payload_bytes)}"
        signature = self._compute_signature(signing_input.encode("utf-8"), self._secrets[kind])
        return f"{signing_input}.{signature}"

    @staticmethod
    def _compute_signature(data: bytes, secret: bytes) -> str:
        """Compute a base64url-encoded HMAC-SHA256 signature."""
        return _b64encode(hmac.new(secret, data, hashlib.sha256).digest())
