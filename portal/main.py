"""
Provider Portal - FastAPI Application
Server-rendered front end for the service-provider marketplace backend
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from portal.config import settings
from portal.core.exceptions import BackendError, PermissionDeniedError, SessionExpiredError
from portal.core.logger import configure_logging, get_logger
from portal.core.security import clear_session
from portal.integrations.backend import BackendClient
from portal.templating import flash, render

from portal.api.routes import (
    health,
    pages,
    auth,
    dashboard,
    activation,
    admin,
)

logger = get_logger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


def _wants_json(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "application/json" in accept or "text/event-stream" in accept


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    logger.info("Starting %s...", settings.app_name)
    owns_backend = getattr(app.state, "backend", None) is None
    if owns_backend:
        app.state.backend = BackendClient()
    logger.info("Backend API at %s", app.state.backend.base_url)
    logger.info("Portal running on %s environment", settings.app_env)
    logger.info("=" * 50)
    yield
    # Shutdown
    if owns_backend:
        await app.state.backend.aclose()
        app.state.backend = None
    logger.info("Shutting down %s...", settings.app_name)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SessionExpiredError)
    async def session_expired(request: Request, exc: SessionExpiredError):
        clear_session(request)
        if _wants_json(request):
            return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": exc.message})
        flash(request, exc.message, "error")
        return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)

    @app.exception_handler(PermissionDeniedError)
    async def permission_denied(request: Request, exc: PermissionDeniedError):
        if _wants_json(request):
            return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": exc.message})
        flash(request, exc.message, "error")
        return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)

    @app.exception_handler(BackendError)
    async def backend_error(request: Request, exc: BackendError):
        status_code = status.HTTP_502_BAD_GATEWAY
        if not exc.is_transport_error and exc.status_code >= 400:
            status_code = exc.status_code
        logger.error("Unhandled backend error on %s: %s", request.url.path, exc.message)
        if _wants_json(request):
            return JSONResponse(status_code=status_code, content={"error": exc.message})
        return render(
            request,
            "error.html",
            {"title": "Something went wrong", "message": exc.message, "retry_url": request.url.path},
            status_code=status_code,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND and not _wants_json(request):
            return render(request, "not_found.html", status_code=status.HTTP_404_NOT_FOUND)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app(backend: Optional[BackendClient] = None) -> FastAPI:
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Front end for the service-provider marketplace",
        version="1.0.0",
        lifespan=lifespan,
        debug=settings.app_debug,
    )
    app.state.backend = backend

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key.get_secret_value(),
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=settings.app_env == "production",
    )
    # Trust X-Forwarded-* so url_for keeps the client's scheme and host.
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    register_exception_handlers(app)

    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    app.include_router(health.router, tags=["Health"])
    app.include_router(pages.router, tags=["Directory"])
    app.include_router(auth.router, tags=["Auth"])
    app.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
    app.include_router(activation.router, tags=["Activation"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])
    return app


app = create_app()
