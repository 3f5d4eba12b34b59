"""Application entrypoint for the Telegram to Google Drive relay."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.v1 import oauth_router, router as api_v1_router, webhook_router
from app.core.config import Settings, get_settings
from app.core.context import build_context
from app.core.logging import configure_logging
from app.models import Base

logger = logging.getLogger(__name__)

ERROR_CODE_MAP: dict[int, str] = {
    400: "BAD_REQUEST",
    404: "RESOURCE_NOT_FOUND",
    422: "VALIDATION_ERROR",
}


def create_app(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Raises ``ConfigurationError`` when required settings are missing.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    settings.require_complete()

    context = build_context(settings, transport=transport)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        async with context.engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        logger.info("Relay service started", extra={"version": settings.version})
        yield
        await context.engine.dispose()

    application = FastAPI(title="Telegram Drive Relay", version=settings.version, lifespan=lifespan)
    application.state.context = context

    _configure_exception_handlers(application)

    application.include_router(webhook_router)
    application.include_router(oauth_router)
    application.include_router(api_v1_router, prefix="/api/v1")

    return application


def _configure_exception_handlers(application: FastAPI) -> None:
    application.add_exception_handler(HTTPException, _http_exception_handler)
    application.add_exception_handler(RequestValidationError, _validation_exception_handler)
    application.add_exception_handler(Exception, _unhandled_exception_handler)


async def _http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, HTTPException)
    if isinstance(exc.detail, dict):
        message = str(exc.detail.get("message", "")) or str(exc.detail)
        code = exc.detail.get(
            "code", ERROR_CODE_MAP.get(exc.status_code, f"HTTP_{exc.status_code}")
        )
    else:
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        code = ERROR_CODE_MAP.get(exc.status_code, f"HTTP_{exc.status_code}")
    return _error_response(code, message, exc.status_code)


async def _validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)
    logger.info("Validation error", extra={"errors": exc.errors()})
    return _error_response("VALIDATION_ERROR", "Validation error", status_code=422)


async def _unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled application error")
    return _error_response("INTERNAL_SERVER_ERROR", "Internal server error", status_code=500)


def _error_response(code: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message}})
