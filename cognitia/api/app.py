"""FastAPI application factory for Cognitia.

Creates and configures the FastAPI app with CORS, sessions, error
rendering and all route modules registered.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from cognitia.core.auth import FirebaseAdmin, GoogleIdentityBridge, HandoffChannel, OriginAllowlist
from cognitia.core.db import DatabaseManager, get_database_manager
from cognitia.core.errors import CognitiaError
from cognitia.core.reports import ReportStore
from cognitia.setting import Settings, get_settings

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    """First validation problem as ``Invalid request: <field>: <reason>``."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = ".".join(loc) or "body"
    return f"Invalid request: {field}: {first.get('msg', 'invalid value')}"


def create_app(
    settings: Optional[Settings] = None,
    db_manager: Optional[DatabaseManager] = None,
    analysis_engine=None,
    identity_bridge: Optional[GoogleIdentityBridge] = None,
    firebase: Optional[FirebaseAdmin] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings (defaults to the environment)
        db_manager: DatabaseManager (defaults to settings.database_url)
        analysis_engine: AnalysisEngine (optional; built on first request)
        identity_bridge: GoogleIdentityBridge (optional)
        firebase: FirebaseAdmin handle (optional)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    db_manager = db_manager or get_database_manager(settings.database_url)
    report_store = ReportStore(db_manager)

    app = FastAPI(
        title="Cognitia API",
        description="AI data intelligence engine",
        version="0.1.0",
    )

    # Session middleware (carries the signed-in user between requests)
    app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)

    origins = list(settings.cors_origins)
    if settings.app_url:
        origins.append(settings.app_url)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store shared dependencies on app state
    app.state.settings = settings
    app.state.db_manager = db_manager
    app.state.report_store = report_store
    app.state.analysis_engine = analysis_engine
    app.state.identity_bridge = identity_bridge or GoogleIdentityBridge(settings, report_store)
    app.state.handoff_channel = HandoffChannel(
        settings.app_url,
        OriginAllowlist(settings.app_url, settings.trusted_origin_suffixes),
    )
    app.state.firebase = firebase or FirebaseAdmin(settings.firebase_service_account)
    app.state.firebase.get_app()

    @app.exception_handler(CognitiaError)
    async def cognitia_error_handler(request: Request, exc: CognitiaError):
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        logger.warning(f"Rejected request to {request.url.path}: {message}")
        return JSONResponse(status_code=400, content={"error": message})

    # Register routers
    from .routes.analyze import router as analyze_router
    from .routes.auth import router as auth_router, callback_router
    from .routes.reports import router as reports_router

    app.include_router(auth_router, prefix="/api")
    app.include_router(reports_router, prefix="/api")
    app.include_router(analyze_router, prefix="/api")
    app.include_router(callback_router)

    @app.get("/api/health")
    async def health_check():
        """Configuration introspection; no side effects."""
        s = app.state.settings
        return {
            "status": "ok",
            "firebase": app.state.firebase.is_ready,
            "appUrl": s.app_url or "NOT_SET",
            "googleClientId": bool(s.google_client_id),
            "geminiKeyConfigured": s.gemini_key_configured,
            "geminiKeyName": s.gemini_key_name,
            "redirectUri": s.redirect_uri or "APP_URL_MISSING",
            "origin": s.app_url or "APP_URL_MISSING",
        }

    logger.info("FastAPI app created with all routes registered")
    return app
