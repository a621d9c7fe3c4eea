"""Route handler functions for the academic-records HTTP server.

Each function accepts parsed request data plus the request context and
returns a :class:`RouteResponse` (status code, JSON body, cookies to set).
The HTTP handler in app.py calls these functions and serializes the result.

Guarded routes run the auth gate first; an authentication failure
short-circuits before any handler logic. Audit events are dispatched to the
recorder without waiting for them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie
from typing import NamedTuple, Optional

from pydantic import ValidationError

from academic_records.audit.actions import ActionCode
from academic_records.audit.query import AuditQueryEngine, SearchParams
from academic_records.audit.record import AuditEvent
from academic_records.audit.recorder import AuditRecorder
from academic_records.audit.store import ActivityStore
from academic_records.config import Settings
from academic_records.context import RequestContext
from academic_records.enrichment.geo import GeoLocator
from academic_records.identity.roles import AccountStatus
from academic_records.identity.store import IdentityStore
from academic_records.middleware.auth import AuthError, AuthGate
from academic_records.middleware.rbac import ADMIN_ONLY
from academic_records.server.models import (
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshResponse,
)
from academic_records.tokens.claims import TokenClaims
from academic_records.tokens.service import REFRESH_TOKEN_TTL, TokenError, TokenService

logger = logging.getLogger(__name__)

REFRESH_COOKIE = "refreshToken"


class RouteResponse(NamedTuple):
    status: int
    body: Optional[dict[str, object]]
    set_cookies: tuple[str, ...] = ()


@dataclass
class Services:
    """Everything the routes need, built once per process."""

    settings: Settings
    identities: IdentityStore
    tokens: TokenService
    activities: ActivityStore
    recorder: AuditRecorder
    query: AuditQueryEngine
    geo: GeoLocator
    admin_gate: AuthGate = field(init=False)

    def __post_init__(self) -> None:
        self.admin_gate = AuthGate(self.tokens, ADMIN_ONLY)

    def close(self) -> None:
        self.recorder.close()
        self.geo.close()


_services: Optional[Services] = None


def configure(settings: Settings, identities: IdentityStore | None = None) -> Services:
    """Build the process-wide services from *settings* and install them."""
    global _services
    if _services is not None:
        _services.close()
    activities = ActivityStore(log_path=settings.audit_log_path)
    geo = GeoLocator(settings.geoip_database)
    if identities is None:
        identities = (
            IdentityStore.load(settings.identities_path)
            if settings.identities_path is not None
            else IdentityStore()
        )
    _services = Services(
        settings=settings,
        identities=identities,
        tokens=TokenService(settings.access_secret, settings.refresh_secret),
        activities=activities,
        recorder=AuditRecorder(
            activities,
            geo=geo,
            workers=settings.audit_workers,
            queue_size=settings.audit_queue_size,
        ),
        query=AuditQueryEngine(activities, identities),
        geo=geo,
    )
    return _services


def reset_state() -> None:
    """Tear down the installed services — used in tests and for clean restarts."""
    global _services
    if _services is not None:
        _services.close()
    _services = None


def get_services() -> Services:
    """Return the installed services.

    Raises
    ------
    RuntimeError
        If :func:`configure` has not been called.
    """
    if _services is None:
        raise RuntimeError("Server services are not configured; call configure() first.")
    return _services


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def refresh_cookie(value: str, secure: bool, max_age: int | None = None) -> str:
    """Render the Set-Cookie value for the refresh token."""
    cookie: SimpleCookie = SimpleCookie()
    cookie[REFRESH_COOKIE] = value
    morsel = cookie[REFRESH_COOKIE]
    morsel["httponly"] = True
    morsel["secure"] = secure
    morsel["samesite"] = "Lax"
    morsel["path"] = "/"
    morsel["max-age"] = (
        int(REFRESH_TOKEN_TTL.total_seconds()) if max_age is None else max_age
    )
    return morsel.OutputString()


def read_cookie(context: RequestContext, name: str) -> Optional[str]:
    """Return the value of cookie *name* from the request, or None."""
    raw = context.header("cookie")
    if not raw:
        return None
    cookie: SimpleCookie = SimpleCookie()
    try:
        cookie.load(raw)
    except CookieError:
        return None
    morsel = cookie.get(name)
    return morsel.value if morsel is not None and morsel.value else None


def _auth_failure(exc: AuthError, services: Services) -> RouteResponse:
    return RouteResponse(
        exc.status_code, exc.to_dict(expose_detail=not services.settings.is_production)
    )


def _server_error(exc: Exception, message: str, services: Services) -> RouteResponse:
    logger.exception(message)
    detail = "" if services.settings.is_production else str(exc)
    return RouteResponse(500, ErrorResponse(error=detail, message=message).model_dump())


def _audit(
    services: Services,
    claims: TokenClaims | None,
    action: ActionCode,
    message: str,
    entity: str,
    context: RequestContext,
) -> None:
    services.recorder.record(
        AuditEvent(
            action=action,
            message=message,
            entity=entity,
            actor_id=claims.subject_id if claims else None,
            actor_role=claims.role if claims else "unknown",
            actor_first_name=claims.first_name if claims else "",
        ),
        context,
    )


# ---------------------------------------------------------------------------
# Auth routes
# ---------------------------------------------------------------------------


def handle_login(body: dict[str, object], context: RequestContext) -> RouteResponse:
    """Handle POST /auth/login."""
    services = get_services()
    try:
        request = LoginRequest.model_validate(body)
    except ValidationError:
        return RouteResponse(
            400,
            MessageResponse(message="Id and password are required").model_dump(exclude_none=True),
        )

    identity = services.identities.find_by_external_id(request.id)
    if identity is None:
        return RouteResponse(401, {"message": "Incorrect document or password."})

    if identity.status is AccountStatus.BLOCKED:
        return RouteResponse(403, {"message": "Your account is currently blocked."})

    claims = TokenClaims.from_identity(identity)
    if not identity.check_password(request.password):
        _audit(services, claims, ActionCode.LOGIN_FAILURE, "failed to log in.", "Users", context)
        return RouteResponse(401, {"message": "Incorrect document or password."})

    access_token = services.tokens.issue_access(claims)
    refresh_token = services.tokens.issue_refresh(claims)
    _audit(services, claims, ActionCode.LOGIN_SUCCESS, "logged in successfully.", "Users", context)
    logger.info("login succeeded for %s", identity.external_id)

    return RouteResponse(
        200,
        LoginResponse(
            access_token=access_token, need_to_change=identity.need_to_change
        ).model_dump(by_alias=True),
        (refresh_cookie(refresh_token, secure=services.settings.is_production),),
    )


def handle_refresh(context: RequestContext) -> RouteResponse:
    """Handle POST /auth/refresh."""
    services = get_services()
    token = read_cookie(context, REFRESH_COOKIE)
    if not token:
        return RouteResponse(401, {"message": "Missing refresh token"})
    try:
        access_token = services.tokens.refresh(token)
    except TokenError as exc:
        body = MessageResponse(message="Invalid or expired refresh token")
        if not services.settings.is_production:
            body.error = str(exc)
        return RouteResponse(401, body.model_dump(exclude_none=True))
    return RouteResponse(200, RefreshResponse(access_token=access_token).model_dump(by_alias=True))


def handle_logout() -> RouteResponse:
    """Handle POST /auth/logout."""
    services = get_services()
    return RouteResponse(
        204, None, (refresh_cookie("", secure=services.settings.is_production, max_age=0),)
    )


# ---------------------------------------------------------------------------
# Activity routes (admin only)
# ---------------------------------------------------------------------------


def handle_recent_actions(context: RequestContext) -> RouteResponse:
    """Handle GET /activity/recent/actions."""
    services = get_services()
    try:
        services.admin_gate.check(context)
    except AuthError as exc:
        return _auth_failure(exc, services)
    try:
        return RouteResponse(200, services.query.summarize().to_dict())
    except Exception as exc:
        return _server_error(exc, "Failed getting recent activity.", services)


def handle_filtered_activities(
    query: dict[str, object], context: RequestContext
) -> RouteResponse:
    """Handle GET /activity/filtered/activities?q=&page=&limit=&from=&to=."""
    services = get_services()
    try:
        services.admin_gate.check(context)
    except AuthError as exc:
        return _auth_failure(exc, services)
    try:
        params = SearchParams.from_query(query)
        return RouteResponse(200, services.query.search(params).to_dict())
    except Exception as exc:
        return _server_error(exc, "Failed filtering activities.", services)


def handle_get_activity(record_id: str, context: RequestContext) -> RouteResponse:
    """Handle GET /activity/one/{record_id}."""
    services = get_services()
    try:
        services.admin_gate.check(context)
    except AuthError as exc:
        return _auth_failure(exc, services)
    try:
        record = services.query.get_record(record_id)
    except Exception as exc:
        return _server_error(exc, "Failed getting activity", services)
    if record is None:
        return RouteResponse(404, ErrorResponse(message="Activity not found").model_dump())
    return RouteResponse(200, record)


def handle_actor_activities(actor_id: str, context: RequestContext) -> RouteResponse:
    """Handle GET /activity/all/{actor_id}."""
    services = get_services()
    try:
        services.admin_gate.check(context)
    except AuthError as exc:
        return _auth_failure(exc, services)
    try:
        return RouteResponse(200, {"results": services.query.list_by_actor(actor_id)})
    except Exception as exc:
        return _server_error(exc, "Failed getting activity from user.", services)


def handle_health() -> RouteResponse:
    """Handle GET /health."""
    services = get_services()
    return RouteResponse(
        200,
        HealthResponse(
            identity_count=len(services.identities),
            activity_count=len(services.activities),
            audit_pending=services.recorder.pending,
        ).model_dump(),
    )
