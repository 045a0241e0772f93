"""
Session gate: ASGI middleware plus FastAPI dependencies for authentication.
"""

from typing import List, Optional, Tuple

from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from filedeck.app import FileDeckApp
from filedeck.models.user import Identity
from filedeck.utils.exceptions import NotAuthenticatedError, RateLimitError

SESSION_COOKIE_NAME = "filedeck_session"
LOGIN_ROUTE = "/api/login"

# Everything under /api/ needs a session except these
PUBLIC_API_ROUTES = {
    LOGIN_ROUTE,
    "/api/session",
}


def _parse_accept(accept: str) -> List[Tuple[str, str, float]]:
    ranges = []
    for part in accept.split(","):
        media, _, params = part.strip().partition(";")
        main_type, _, sub_type = media.strip().lower().partition("/")
        if not main_type:
            continue
        quality = 1.0
        for param in params.split(";"):
            key, _, value = param.strip().partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        ranges.append((main_type, sub_type or "*", quality))
    return ranges


def _quality(ranges: List[Tuple[str, str, float]], main_type: str, sub_type: str) -> float:
    """q-value of the most specific media range matching main_type/sub_type"""
    best_specificity = -1
    best_quality = 0.0
    for r_main, r_sub, quality in ranges:
        if r_main == main_type and r_sub == sub_type:
            specificity = 2
        elif r_main == main_type and r_sub == "*":
            specificity = 1
        elif r_main == "*" and r_sub == "*":
            specificity = 0
        else:
            continue
        if specificity > best_specificity:
            best_specificity, best_quality = specificity, quality
    return best_quality


def prefers_html(accept: Optional[str]) -> bool:
    """True when the client ranks text/html strictly above application/json"""
    if not accept:
        return False
    ranges = _parse_accept(accept)
    return _quality(ranges, "text", "html") > _quality(ranges, "application", "json")


def unauthenticated_response(accept: Optional[str], admin_path: str) -> Response:
    """Browsers are sent to the login page, API callers get a 401"""
    if prefers_html(accept):
        return RedirectResponse(admin_path, status_code=302)
    return JSONResponse({"error": "Unauthorized"}, status_code=401)


def get_filedeck(request: Request) -> FileDeckApp:
    return request.app.state.filedeck


def get_session_id(request: Request) -> Optional[str]:
    """Session id from the signed cookie, or None if absent or tampered with"""
    filedeck = get_filedeck(request)
    return filedeck.auth_service.unsign_session_id(request.cookies.get(SESSION_COOKIE_NAME))


async def get_optional_identity(request: Request) -> Optional[Identity]:
    session_id = get_session_id(request)
    if not session_id:
        return None
    filedeck = get_filedeck(request)
    return await run_in_threadpool(filedeck.auth_service.validate_session, session_id)


class SessionGateMiddleware:
    """Raw ASGI gate: login rate limiting plus the session check on protected /api/ routes.

    Runs before the request body is read, so throttled or unauthenticated callers never
    reach body parsing or handler code.
    """

    def __init__(self, app: ASGIApp, filedeck: FileDeckApp):
        self.app = app
        self.filedeck = filedeck

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path") or ""
        if path == LOGIN_ROUTE and scope.get("method") == "POST":
            client = scope.get("client")
            try:
                self.filedeck.auth_service.check_login_rate(client[0] if client else "unknown")
            except RateLimitError as e:
                response = JSONResponse(
                    {"error": str(e)},
                    status_code=e.status_code,
                    headers={"Retry-After": str(e.retry_after)},
                )
                await response(scope, receive, send)
                return

        if not path.startswith("/api/") or path in PUBLIC_API_ROUTES:
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        auth_service = self.filedeck.auth_service
        session_id = auth_service.unsign_session_id(request.cookies.get(SESSION_COOKIE_NAME))
        identity = await run_in_threadpool(auth_service.validate_session, session_id) if session_id else None
        if identity is None:
            response = unauthenticated_response(
                request.headers.get("accept"), self.filedeck.settings.admin_path
            )
            await response(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        state["identity"] = identity
        state["session_id"] = session_id
        await self.app(scope, receive, send)


async def require_auth(request: Request) -> Identity:
    """Dependency for protected routes: the identity the gate attached"""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise NotAuthenticatedError()
    return identity
