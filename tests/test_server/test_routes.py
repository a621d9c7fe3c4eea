"""Tests for academic_records.server.routes."""
from __future__ import annotations

import pytest

from academic_records.config import Settings
from academic_records.context import RequestContext
from academic_records.identity import IdentityStore
from academic_records.server import routes
from academic_records.tokens import TokenClaims, TokenKind


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def identities() -> IdentityStore:
    store = IdentityStore()
    store.add(external_id="S001", first_name="Ana", last_name="Ruiz", email="ana@example.edu")
    store.add(external_id="T001", first_name="Luis", last_name="Diaz", role="teacher", password="teach")
    store.add(external_id="A001", first_name="Laura", last_name="Gomez", role="admin", password="admin-pw")
    store.add(
        external_id="B001", first_name="Beto", last_name="Paz", status="blocked", password="blocked-pw"
    )
    return store


@pytest.fixture(autouse=True)
def configured(identities: IdentityStore):  # type: ignore[no-untyped-def]
    """Install fresh services before each test and tear them down after."""
    routes.reset_state()
    routes.configure(Settings(access_secret="access", refresh_secret="refresh"), identities=identities)
    yield
    routes.reset_state()


def _ctx(**headers: str) -> RequestContext:
    return RequestContext(headers={k.replace("_", "-"): v for k, v in headers.items()}, peer_address="127.0.0.1")


def _bearer_for(external_id: str) -> RequestContext:
    services = routes.get_services()
    identity = services.identities.find_by_external_id(external_id)
    assert identity is not None
    token = services.tokens.issue_access(TokenClaims.from_identity(identity))
    return _ctx(Authorization=f"Bearer {token}")


def _cookie_value(set_cookie: str) -> str:
    return set_cookie.split(";")[0].split("=", 1)[1]


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class TestHandleLogin:
    def test_default_password_login(self) -> None:
        status, data, cookies = routes.handle_login({"id": "S001", "password": "S001"}, _ctx())

        assert status == 200
        assert data is not None
        assert data["needToChange"] is True
        claims = routes.get_services().tokens.verify(str(data["accessToken"]), TokenKind.ACCESS)
        assert claims.external_id == "S001"

        assert len(cookies) == 1
        cookie = cookies[0]
        assert cookie.startswith("refreshToken=")
        assert "HttpOnly" in cookie
        assert "SameSite=Lax" in cookie
        assert "Path=/" in cookie
        assert "Max-Age=2592000" in cookie
        assert "Secure" not in cookie

    def test_cookie_is_secure_in_production(self, identities: IdentityStore) -> None:
        routes.configure(
            Settings(access_secret="access", refresh_secret="refresh", environment="production"),
            identities=identities,
        )
        _, _, cookies = routes.handle_login({"id": "A001", "password": "admin-pw"}, _ctx())
        assert "Secure" in cookies[0]

    def test_password_already_changed(self) -> None:
        status, data, _ = routes.handle_login({"id": "T001", "password": "teach"}, _ctx())
        assert status == 200
        assert data is not None and data["needToChange"] is False

    @pytest.mark.parametrize("body", [{}, {"id": "S001"}, {"id": "", "password": "x"}])
    def test_missing_fields(self, body: dict[str, object]) -> None:
        status, data, cookies = routes.handle_login(body, _ctx())
        assert status == 400
        assert data == {"message": "Id and password are required"}
        assert cookies == ()

    def test_unknown_user(self) -> None:
        status, data, _ = routes.handle_login({"id": "X999", "password": "x"}, _ctx())
        assert status == 401
        assert data == {"message": "Incorrect document or password."}

    def test_wrong_password_is_audited(self) -> None:
        status, data, cookies = routes.handle_login({"id": "S001", "password": "nope"}, _ctx())
        assert status == 401
        assert data == {"message": "Incorrect document or password."}
        assert cookies == ()

        services = routes.get_services()
        services.recorder.flush()
        records = services.activities.newest_first()
        assert [r.action_code for r in records] == ["LOGIN_FAILURE"]
        assert records[0].human_description == "Student Ana failed to log in."

    def test_blocked_user(self) -> None:
        status, data, cookies = routes.handle_login({"id": "B001", "password": "blocked-pw"}, _ctx())
        assert status == 403
        assert data == {"message": "Your account is currently blocked."}
        assert cookies == ()

    def test_success_is_audited(self) -> None:
        routes.handle_login(
            {"id": "A001", "password": "admin-pw"}, _ctx(X_Forwarded_For="190.70.54.229")
        )
        services = routes.get_services()
        services.recorder.flush()
        record = services.activities.newest_first()[0]
        assert record.action_code == "LOGIN_SUCCESS"
        assert record.human_description == "Admin Laura logged in successfully."
        assert record.client_ip == "190.70.54.229"
        assert record.actor_role == "admin"


# ---------------------------------------------------------------------------
# Refresh / logout
# ---------------------------------------------------------------------------


class TestHandleRefresh:
    def test_refresh_with_cookie(self) -> None:
        _, _, cookies = routes.handle_login({"id": "S001", "password": "S001"}, _ctx())
        refresh_token = _cookie_value(cookies[0])

        status, data, _ = routes.handle_refresh(_ctx(Cookie=f"refreshToken={refresh_token}"))
        assert status == 200
        assert data is not None
        claims = routes.get_services().tokens.verify(str(data["accessToken"]), TokenKind.ACCESS)
        assert claims.external_id == "S001"

    def test_missing_cookie(self) -> None:
        status, data, _ = routes.handle_refresh(_ctx())
        assert status == 401
        assert data == {"message": "Missing refresh token"}

    def test_access_token_in_cookie_is_rejected(self) -> None:
        _, data, _ = routes.handle_login({"id": "S001", "password": "S001"}, _ctx())
        assert data is not None
        status, body, _ = routes.handle_refresh(_ctx(Cookie=f"refreshToken={data['accessToken']}"))
        assert status == 401
        assert body is not None
        assert body["message"] == "Invalid or expired refresh token"
        assert "error" in body

    def test_error_detail_hidden_in_production(self, identities: IdentityStore) -> None:
        routes.configure(
            Settings(access_secret="access", refresh_secret="refresh", environment="prod"),
            identities=identities,
        )
        status, body, _ = routes.handle_refresh(_ctx(Cookie="refreshToken=garbage"))
        assert status == 401
        assert body == {"message": "Invalid or expired refresh token"}


class TestHandleLogout:
    def test_clears_cookie(self) -> None:
        status, data, cookies = routes.handle_logout()
        assert status == 204
        assert data is None
        assert cookies[0].startswith("refreshToken=")
        assert "Max-Age=0" in cookies[0]


# ---------------------------------------------------------------------------
# Activity routes
# ---------------------------------------------------------------------------


class TestActivityRoutes:
    def _seed(self) -> None:
        routes.handle_login({"id": "S001", "password": "S001"}, _ctx())
        routes.handle_login({"id": "T001", "password": "wrong"}, _ctx())
        routes.get_services().recorder.flush()

    def test_recent_actions(self) -> None:
        self._seed()
        status, data, _ = routes.handle_recent_actions(_bearer_for("A001"))
        assert status == 200
        assert data is not None
        assert data["stats"] == {"Creates": 0, "Updates": 0, "Deletes": 0, "total": 2}
        assert len(data["activities"]) == 2  # type: ignore[arg-type]

    def test_teacher_is_forbidden(self) -> None:
        status, data, _ = routes.handle_recent_actions(_bearer_for("T001"))
        assert status == 403
        assert data is not None
        assert data["message"] == "This action is forbidden with the current credentials"

    def test_missing_token(self) -> None:
        status, data, _ = routes.handle_filtered_activities({}, _ctx())
        assert status == 401
        assert data is not None
        assert data["message"] == "Authorization token is required"

    def test_filtered_activities(self) -> None:
        self._seed()
        status, data, _ = routes.handle_filtered_activities(
            {"q": "luis", "page": "1", "limit": "10"}, _bearer_for("A001")
        )
        assert status == 200
        assert data is not None
        results = data["results"]
        assert [row["action"] for row in results] == ["LOGIN_FAILURE"]  # type: ignore[union-attr]
        assert results[0]["user"]["id"] == "T001"  # type: ignore[index]
        assert data["pagination"] == {
            "currentPage": 1,
            "totalPages": 1,
            "hasMore": False,
            "total": 1,
        }

    def test_filtered_activities_coerces_bad_params(self) -> None:
        self._seed()
        status, data, _ = routes.handle_filtered_activities(
            {"page": "abc", "limit": "-5", "from": "garbage"}, _bearer_for("A001")
        )
        assert status == 200
        assert data is not None
        assert data["pagination"]["total"] == 2  # type: ignore[index]

    def test_get_activity(self) -> None:
        self._seed()
        record = routes.get_services().activities.newest_first()[0]
        status, data, _ = routes.handle_get_activity(record.record_id, _bearer_for("A001"))
        assert status == 200
        assert data is not None and data["_id"] == record.record_id

    def test_get_missing_activity(self) -> None:
        status, data, _ = routes.handle_get_activity("nope", _bearer_for("A001"))
        assert status == 404
        assert data == {"error": "", "message": "Activity not found"}

    def test_actor_activities(self) -> None:
        self._seed()
        services = routes.get_services()
        teacher = services.identities.find_by_external_id("T001")
        assert teacher is not None
        status, data, _ = routes.handle_actor_activities(teacher.identity_id, _bearer_for("A001"))
        assert status == 200
        assert data is not None
        assert [row["action"] for row in data["results"]] == ["LOGIN_FAILURE"]  # type: ignore[union-attr]

    def test_query_failure_returns_error_envelope(self, monkeypatch: pytest.MonkeyPatch) -> None:
        services = routes.get_services()

        def boom() -> None:
            raise RuntimeError("store offline")

        monkeypatch.setattr(services.query, "summarize", boom)
        status, data, _ = routes.handle_recent_actions(_bearer_for("A001"))
        assert status == 500
        assert data == {"error": "store offline", "message": "Failed getting recent activity."}


# ---------------------------------------------------------------------------
# Health / configuration
# ---------------------------------------------------------------------------


class TestHealthAndState:
    def test_health(self) -> None:
        status, data, _ = routes.handle_health()
        assert status == 200
        assert data is not None
        assert data["status"] == "ok"
        assert data["service"] == "academic-records"
        assert data["identity_count"] == 4

    def test_unconfigured_services_raise(self) -> None:
        routes.reset_state()
        with pytest.raises(RuntimeError):
            routes.get_services()
