"""FastAPI main application for the FileDeck file manager"""

from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from filedeck import __version__
from filedeck.app import FileDeckApp
from filedeck.models.user import Identity
from filedeck.utils.config import Settings
from filedeck.utils.exceptions import FileDeckError, NotAuthenticatedError, RateLimitError
from filedeck.utils.logger import get_logger

from .api import router as api_router
from .auth_deps import SessionGateMiddleware, get_optional_identity, unauthenticated_response

logger = get_logger(__name__)


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(FileDeckError)
    async def filedeck_error_handler(request: Request, exc: FileDeckError):
        if isinstance(exc, NotAuthenticatedError):
            return unauthenticated_response(request.headers.get("accept"), settings.admin_path)
        headers = {}
        if isinstance(exc, RateLimitError) and exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": "Invalid request"}, status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            {"error": str(exc.detail)}, status_code=exc.status_code, headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", path=request.url.path, error=str(exc))
        return JSONResponse({"error": "Internal server error"}, status_code=500)


def _register_pages(app: FastAPI, settings: Settings) -> None:
    """Static HTML shell for the browser client; the API does the work"""
    public_dir = settings.public_dir
    admin_path = settings.admin_path

    def _page(name: str):
        page = public_dir / name
        if not page.is_file():
            return JSONResponse({"error": "Not found"}, status_code=404)
        return FileResponse(page)

    @app.get("/", include_in_schema=False)
    async def index():
        return _page("index.html")

    @app.get(admin_path, include_in_schema=False)
    async def admin_page(identity: Optional[Identity] = Depends(get_optional_identity)):
        return _page("app.html" if identity else "login.html")

    if admin_path != "/admin":
        @app.get("/admin", include_in_schema=False)
        async def legacy_admin_redirect():
            return RedirectResponse(admin_path, status_code=302)

    @app.get("/login", include_in_schema=False)
    async def login_redirect():
        return RedirectResponse(admin_path, status_code=302)

    if public_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(public_dir)), name="static")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the web application.

    Directories are created and the bootstrap admin is written here, before
    the app can accept any request.
    """
    filedeck = FileDeckApp(settings).initialize()
    settings = filedeck.settings

    app = FastAPI(
        title="FileDeck",
        description="Sandboxed web file manager",
        version=__version__,
    )
    app.state.filedeck = filedeck

    _register_exception_handlers(app, settings)
    app.add_middleware(SessionGateMiddleware, filedeck=filedeck)
    app.include_router(api_router)
    _register_pages(app, settings)
    return app
