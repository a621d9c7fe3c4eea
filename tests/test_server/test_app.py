"""Tests for academic_records.server.app — HTTP handler integration."""
from __future__ import annotations

import http.client
import json
import threading
from http.server import ThreadingHTTPServer

import pytest

from academic_records.config import Settings
from academic_records.identity import IdentityStore
from academic_records.server import routes
from academic_records.server.app import RecordsRequestHandler, create_server


@pytest.fixture(scope="module")
def identities() -> IdentityStore:
    store = IdentityStore()
    store.add(external_id="A001", first_name="Laura", last_name="Gomez", role="admin", password="admin-pw")
    return store


@pytest.fixture()
def server(identities: IdentityStore):  # type: ignore[no-untyped-def]
    routes.configure(Settings(access_secret="access", refresh_secret="refresh"), identities=identities)
    httpd = create_server(host="127.0.0.1", port=0)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield httpd
    httpd.shutdown()
    httpd.server_close()
    routes.reset_state()


def _request(
    httpd: ThreadingHTTPServer,
    method: str,
    path: str,
    body: bytes | None = None,
    headers: dict[str, str] | None = None,
) -> tuple[int, dict[str, str], bytes]:
    host, port = httpd.server_address[:2]
    conn = http.client.HTTPConnection(str(host), int(port), timeout=5)
    try:
        conn.request(method, path, body=body, headers=headers or {})
        response = conn.getresponse()
        return response.status, dict(response.getheaders()), response.read()
    finally:
        conn.close()


class TestCreateServer:
    def test_returns_threading_server(self) -> None:
        httpd = create_server(host="127.0.0.1", port=0)
        try:
            assert isinstance(httpd, ThreadingHTTPServer)
            assert httpd.RequestHandlerClass is RecordsRequestHandler
        finally:
            httpd.server_close()


class TestHttpRoundTrip:
    def test_health(self, server: ThreadingHTTPServer) -> None:
        status, _, raw = _request(server, "GET", "/health")
        assert status == 200
        assert json.loads(raw)["identity_count"] == 1

    def test_login_sets_cookie_and_unlocks_admin_routes(self, server: ThreadingHTTPServer) -> None:
        body = json.dumps({"id": "A001", "password": "admin-pw"}).encode("utf-8")
        status, headers, raw = _request(
            server, "POST", "/auth/login", body=body, headers={"Content-Type": "application/json"}
        )
        assert status == 200
        assert headers["Set-Cookie"].startswith("refreshToken=")
        token = json.loads(raw)["accessToken"]

        status, _, raw = _request(
            server,
            "GET",
            "/activity/filtered/activities?q=laura&limit=5",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert status == 200
        assert "pagination" in json.loads(raw)

    def test_admin_route_without_token(self, server: ThreadingHTTPServer) -> None:
        status, _, raw = _request(server, "GET", "/activity/recent/actions")
        assert status == 401
        assert json.loads(raw)["message"] == "Authorization token is required"

    def test_admin_route_with_non_ascii_token(self, server: ThreadingHTTPServer) -> None:
        status, _, _ = _request(
            server,
            "GET",
            "/activity/recent/actions",
            headers={"Authorization": "Bearer aaa.bbb.\u00e9\u00e9"},
        )
        assert status == 401

    def test_logout_has_empty_body(self, server: ThreadingHTTPServer) -> None:
        status, headers, raw = _request(server, "POST", "/auth/logout")
        assert status == 204
        assert raw == b""
        assert "Max-Age=0" in headers["Set-Cookie"]

    def test_invalid_json_body(self, server: ThreadingHTTPServer) -> None:
        status, _, raw = _request(server, "POST", "/auth/login", body=b"{not json")
        assert status == 400
        assert json.loads(raw)["error"] == "Invalid JSON"

    @pytest.mark.parametrize("length", ["abc", "-5"])
    def test_invalid_content_length(self, server: ThreadingHTTPServer, length: str) -> None:
        status, _, raw = _request(
            server, "POST", "/auth/login", headers={"Content-Length": length}
        )
        assert status == 400
        assert json.loads(raw)["message"] == "Invalid Content-Length header"

    def test_unknown_route(self, server: ThreadingHTTPServer) -> None:
        status, _, _ = _request(server, "GET", "/nowhere")
        assert status == 404
