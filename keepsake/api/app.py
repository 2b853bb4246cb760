"""
FastAPI application for the Keepsake API.

`create_app()` builds everything a request needs (engine, session factory,
token codec, CAPTCHA verifier, media store) from one Settings object and
hangs it on `app.state`. Nothing reads configuration from module globals.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from keepsake.api import anniversaries, auth, memories, messages, photos
from keepsake.auth.tokens import TokenCodec
from keepsake.config import Settings, get_settings
from keepsake.core import responses
from keepsake.core.errors import KeepsakeError
from keepsake.db.database import init_db, make_engine, make_session_factory
from keepsake.integrations.captcha import RecaptchaVerifier
from keepsake.integrations.sentry import capture_exception, init_sentry
from keepsake.storage.local import LocalContentStorage
from keepsake.storage.media import MediaStore

logger = logging.getLogger(__name__)

HTTP_MESSAGES = {
    404: "Not found",
    405: "Method not allowed",
}


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    settings: Settings = app.state.settings

    if init_sentry(settings):
        logger.info("Sentry error tracking enabled")

    init_db(app.state.engine)

    logger.info(f"Keepsake API starting in {settings.environment} mode")

    yield

    app.state.engine.dispose()
    logger.info("Keepsake API shutting down")


# =============================================================================
# Exception Handlers
# =============================================================================


async def handle_keepsake_error(request: Request, exc: KeepsakeError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return responses.error(exc.message, exc.status_code)


async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    field = errors[0]["loc"][-1] if errors and errors[0].get("loc") else "request"
    return responses.error(f"Invalid value for {field}", 400)


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    message = HTTP_MESSAGES.get(exc.status_code) or str(exc.detail)
    return responses.error(message, exc.status_code)


async def handle_database_error(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    capture_exception(exc, path=request.url.path, method=request.method)
    return responses.error("Database error", 500)


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    capture_exception(exc, path=request.url.path, method=request.method)
    return responses.error("Internal server error", 500)


# =============================================================================
# App Setup
# =============================================================================


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Keepsake API",
        description="Shared photos, memories and messages for two people",
        version="0.1.0",
        lifespan=lifespan,
    )

    engine = make_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.token_codec = TokenCodec.from_settings(settings)
    app.state.captcha = RecaptchaVerifier.from_settings(settings)
    app.state.media = MediaStore.from_settings(settings, LocalContentStorage(settings.upload_dir))

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Authorization"],
    )

    app.add_exception_handler(KeepsakeError, handle_keepsake_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    for module in (auth, photos, memories, messages, anniversaries):
        app.include_router(module.router, prefix="/api")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "keepsake-api"}

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    return app
