"""Tests for academic_records.tokens — TokenService and TokenClaims."""
from __future__ import annotations

import base64
import datetime
import json

import pytest

from academic_records.tokens import (
    ACCESS_TOKEN_TTL,
    REFRESH_TOKEN_TTL,
    TokenClaims,
    TokenExpiredError,
    TokenInvalidError,
    TokenKind,
    TokenService,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self, start: datetime.datetime) -> None:
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, delta: datetime.timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime.datetime(2024, 3, 1, 12, 0, tzinfo=datetime.timezone.utc))


@pytest.fixture()
def service(clock: FakeClock) -> TokenService:
    return TokenService("access-secret", "refresh-secret", clock=clock)


@pytest.fixture()
def claims() -> TokenClaims:
    return TokenClaims(
        subject_id="u-1",
        external_id="S001",
        role="student",
        first_name="Ana",
        last_name="Ruiz",
        email="ana@example.edu",
        status="active",
        need_to_change=True,
    )


def _payload(token: str) -> dict[str, object]:
    segment = token.split(".")[1]
    return json.loads(base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4)))


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestTokenServiceInit:
    def test_rejects_empty_secret(self) -> None:
        with pytest.raises(ValueError):
            TokenService("", "refresh")

    def test_rejects_identical_secrets(self) -> None:
        with pytest.raises(ValueError):
            TokenService("same", "same")

    def test_accepts_bytes_secrets(self) -> None:
        TokenService(b"access", b"refresh")


# ---------------------------------------------------------------------------
# Issue / verify
# ---------------------------------------------------------------------------


class TestIssueAndVerify:
    def test_access_token_round_trip(self, service: TokenService, claims: TokenClaims) -> None:
        token = service.issue_access(claims)
        assert service.verify(token, TokenKind.ACCESS) == claims

    def test_token_has_three_segments_without_padding(
        self, service: TokenService, claims: TokenClaims
    ) -> None:
        token = service.issue_refresh(claims)
        assert token.count(".") == 2
        assert "=" not in token

    def test_payload_carries_kind_and_expiry(
        self, service: TokenService, claims: TokenClaims, clock: FakeClock
    ) -> None:
        payload = _payload(service.issue_access(claims))
        assert payload["kind"] == "access"
        assert payload["exp"] == (clock.now + ACCESS_TOKEN_TTL).isoformat()

    def test_refresh_token_rejected_as_access(
        self, service: TokenService, claims: TokenClaims
    ) -> None:
        token = service.issue_refresh(claims)
        with pytest.raises(TokenInvalidError):
            service.verify(token, TokenKind.ACCESS)

    def test_access_token_rejected_as_refresh(
        self, service: TokenService, claims: TokenClaims
    ) -> None:
        token = service.issue_access(claims)
        with pytest.raises(TokenInvalidError):
            service.verify(token, TokenKind.REFRESH)

    def test_tampered_payload_rejected(self, service: TokenService, claims: TokenClaims) -> None:
        header, _, signature = service.issue_access(claims).split(".")
        forged = dict(claims.to_dict(), role="admin", kind="access", exp="2999-01-01T00:00:00+00:00")
        body = base64.urlsafe_b64encode(json.dumps(forged).encode()).rstrip(b"=").decode()
        with pytest.raises(TokenInvalidError):
            service.verify(f"{header}.{body}.{signature}", TokenKind.ACCESS)

    def test_token_from_other_secret_rejected(self, claims: TokenClaims) -> None:
        other = TokenService("another-access", "another-refresh")
        token = other.issue_access(claims)
        with pytest.raises(TokenInvalidError):
            TokenService("access-secret", "refresh-secret").verify(token, TokenKind.ACCESS)

    @pytest.mark.parametrize(
        "token", ["", "abc", "a.b", "a.b.c.d", "aaa.bbb.\u00e9\u00e9", "\u00e9.\u00e9.\u00e9"]
    )
    def test_malformed_token_rejected(self, service: TokenService, token: str) -> None:
        with pytest.raises(TokenInvalidError):
            service.verify(token, TokenKind.ACCESS)


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------


class TestExpiry:
    def test_access_token_valid_just_before_expiry(
        self, service: TokenService, claims: TokenClaims, clock: FakeClock
    ) -> None:
        token = service.issue_access(claims)
        clock.advance(ACCESS_TOKEN_TTL - datetime.timedelta(seconds=1))
        assert service.verify(token, TokenKind.ACCESS).subject_id == "u-1"

    def test_access_token_expires_after_fifteen_minutes(
        self, service: TokenService, claims: TokenClaims, clock: FakeClock
    ) -> None:
        token = service.issue_access(claims)
        clock.advance(datetime.timedelta(minutes=15))
        with pytest.raises(TokenExpiredError) as exc_info:
            service.verify(token, TokenKind.ACCESS)
        assert exc_info.value.subject_id == "u-1"

    def test_refresh_token_rejected_after_thirty_one_days(
        self, service: TokenService, claims: TokenClaims, clock: FakeClock
    ) -> None:
        token = service.issue_refresh(claims)
        clock.advance(datetime.timedelta(days=31))
        with pytest.raises(TokenExpiredError):
            service.refresh(token)

    def test_refresh_token_lifetime_is_thirty_days(self) -> None:
        assert REFRESH_TOKEN_TTL == datetime.timedelta(days=30)


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


class TestRefresh:
    def test_refresh_mints_access_token_with_same_claims(
        self, service: TokenService, claims: TokenClaims
    ) -> None:
        refresh_token = service.issue_refresh(claims)
        access_token = service.refresh(refresh_token)
        assert service.verify(access_token, TokenKind.ACCESS) == claims

    def test_refresh_rejects_access_token(self, service: TokenService, claims: TokenClaims) -> None:
        with pytest.raises(TokenInvalidError):
            service.refresh(service.issue_access(claims))

    def test_refresh_rejects_non_ascii_token(self, service: TokenService) -> None:
        with pytest.raises(TokenInvalidError):
            service.refresh("aaa.bbb.\u00e9")

    def test_refresh_keeps_snapshot_claims(
        self, service: TokenService, claims: TokenClaims
    ) -> None:
        # The refresh path does not consult the identity store.
        refresh_token = service.issue_refresh(claims)
        access = service.verify(service.refresh(refresh_token), TokenKind.ACCESS)
        assert access.status == "active"
        assert access.need_to_change is True


class TestTokenClaims:
    def test_from_dict_requires_subject(self) -> None:
        with pytest.raises(KeyError):
            TokenClaims.from_dict({"role": "admin"})

    def test_from_dict_defaults_missing_fields(self) -> None:
        claims = TokenClaims.from_dict({"subject_id": "x"})
        assert claims.role == ""
        assert claims.status == ""
        assert claims.need_to_change is False
