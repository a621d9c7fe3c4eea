"""HTTP server for academic-records using stdlib http.server.

Routes:
    POST   /auth/login                      — exchange credentials for tokens
    POST   /auth/refresh                    — mint an access token from the refresh cookie
    POST   /auth/logout                     — clear the refresh cookie
    GET    /activity/recent/actions         — rollup of the activity trail (admin)
    GET    /activity/filtered/activities    — paginated activity search (admin)
    GET    /activity/one/{record_id}        — one activity record (admin)
    GET    /activity/all/{actor_id}         — every activity of one user (admin)
    GET    /health                          — health check

Usage:
    academic-records serve --port 4000
"""
from __future__ import annotations

import json
import logging
import re
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from academic_records.context import RequestContext
from academic_records.server import routes
from academic_records.server.routes import RouteResponse

logger = logging.getLogger(__name__)

_ONE_ACTIVITY_PATTERN = re.compile(r"^/activity/one/([^/]+)$")
_ACTOR_ACTIVITY_PATTERN = re.compile(r"^/activity/all/([^/]+)$")


def _not_found(method: str, path: str) -> RouteResponse:
    return RouteResponse(404, {"error": "Not found", "message": f"No route for {method} {path}"})


class RecordsRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the academic-records server.

    Routes GET and POST requests to the functions in :mod:`routes`. All
    request and response bodies are JSON.
    """

    server_version = "academic-records"

    def log_message(self, format: str, *args: object) -> None:
        """Override to route access logs through the Python logging system."""
        logger.debug(format, *args)

    # ── GET ───────────────────────────────────────────────────────────────────

    def do_GET(self) -> None:
        """Handle all GET requests by routing on the URL path."""
        parsed = urllib.parse.urlparse(self.path)
        path = parsed.path.rstrip("/")
        context = self._context()

        if path == "/health":
            self._dispatch(routes.handle_health)
        elif path == "/activity/recent/actions":
            self._dispatch(routes.handle_recent_actions, context)
        elif path == "/activity/filtered/activities":
            query = {
                key: values[0]
                for key, values in urllib.parse.parse_qs(parsed.query).items()
                if values
            }
            self._dispatch(routes.handle_filtered_activities, query, context)
        else:
            one = _ONE_ACTIVITY_PATTERN.match(path)
            by_actor = _ACTOR_ACTIVITY_PATTERN.match(path)
            if one:
                record_id = urllib.parse.unquote(one.group(1))
                self._dispatch(routes.handle_get_activity, record_id, context)
            elif by_actor:
                actor_id = urllib.parse.unquote(by_actor.group(1))
                self._dispatch(routes.handle_actor_activities, actor_id, context)
            else:
                self._send(_not_found("GET", path))

    # ── POST ──────────────────────────────────────────────────────────────────

    def do_POST(self) -> None:
        """Handle all POST requests by routing on the URL path."""
        parsed = urllib.parse.urlparse(self.path)
        path = parsed.path.rstrip("/")
        context = self._context()

        if path == "/auth/login":
            body = self._read_json_body()
            if body is None:
                return
            self._dispatch(routes.handle_login, body, context)
        elif path == "/auth/refresh":
            self._dispatch(routes.handle_refresh, context)
        elif path == "/auth/logout":
            self._dispatch(routes.handle_logout)
        else:
            self._send(_not_found("POST", path))

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _context(self) -> RequestContext:
        peer = self.client_address[0] if self.client_address else None
        return RequestContext.from_headers(self.headers, peer_address=peer)

    def _dispatch(self, handler, *args: object) -> None:  # type: ignore[no-untyped-def]
        """Run a route function; unexpected errors become a generic 500."""
        try:
            response = handler(*args)
        except Exception:
            logger.exception("unhandled error in %s", getattr(handler, "__name__", handler))
            response = RouteResponse(500, {"error": "", "message": "Internal server error"})
        self._send(response)

    def _send(self, response: RouteResponse) -> None:
        """Serialize *response* and write it, including any Set-Cookie headers."""
        self.send_response(response.status)
        for cookie in response.set_cookies:
            self.send_header("Set-Cookie", cookie)
        if response.body is None:
            self.send_header("Content-Length", "0")
            self.end_headers()
            return
        body = json.dumps(response.body, default=str).encode("utf-8")
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_json_body(self) -> dict[str, object] | None:
        """Read and parse the JSON request body.

        Returns None (and sends a 400 error response) if parsing fails.
        """
        try:
            content_length = int(self.headers.get("Content-Length", 0) or 0)
        except ValueError:
            content_length = -1
        if content_length < 0:
            self.close_connection = True
            self._send(
                RouteResponse(400, {"error": "Invalid JSON", "message": "Invalid Content-Length header"})
            )
            return None
        if content_length == 0:
            return {}

        raw = self.rfile.read(content_length)
        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self._send(RouteResponse(400, {"error": "Invalid JSON", "message": str(exc)}))
            return None
        if not isinstance(parsed, dict):
            self._send(RouteResponse(400, {"error": "Invalid JSON", "message": "Expected an object"}))
            return None
        return parsed


def create_server(host: str = "0.0.0.0", port: int = 4000) -> ThreadingHTTPServer:
    """Create (but do not start) the academic-records HTTP server.

    :func:`routes.configure` must have been called before requests arrive.

    Parameters
    ----------
    host:
        Bind address (default ``"0.0.0.0"`` — all interfaces).
    port:
        TCP port to listen on (default 4000).
    """
    server = ThreadingHTTPServer((host, port), RecordsRequestHandler)
    logger.info("academic-records server created at http://%s:%d", host, port)
    return server


def run_server(host: str = "0.0.0.0", port: int = 4000) -> None:
    """Create and run the academic-records HTTP server (blocking)."""
    server = create_server(host=host, port=port)
    logger.info("Serving academic-records on http://%s:%d — press Ctrl-C to stop", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down academic-records server.")
    finally:
        server.server_close()
        routes.reset_state()
