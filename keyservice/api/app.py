"""
Key service FastAPI application.

    create_app(services)  -> app wired to the given Services bundle
    create_app()          -> app that builds its Services from config at startup

uvicorn runs the second form through ``factory=True``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from keyservice import __version__
from keyservice.api.middleware import CorrelationMiddleware
from keyservice.api.routers import api_keys, apps, health, requirements, secrets, validate
from keyservice.config import get_config
from keyservice.db.connection import close_pool
from keyservice.errors import (
    AuthenticationError,
    DecryptionError,
    KeyServiceError,
    NotFoundError,
    ServiceNotConfiguredError,
    ValidationError,
)
from keyservice.services import Services, build_services

logger = logging.getLogger(__name__)


def _log_level(exc: KeyServiceError) -> int:
    if isinstance(exc, (ServiceNotConfiguredError, DecryptionError)):
        return logging.ERROR
    if isinstance(exc, (AuthenticationError, NotFoundError)):
        return logging.WARNING
    if isinstance(exc, ValidationError):
        return logging.INFO
    return logging.ERROR


async def keyservice_error_handler(request: Request, exc: KeyServiceError) -> JSONResponse:
    logger.log(
        _log_level(exc),
        "%s %s failed (%d): %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.message,
    )
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("%s %s rejected: invalid request", request.method, request.url.path)
    return JSONResponse(
        {"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
        status_code=400,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owns_pool = getattr(app.state, "services", None) is None
    if owns_pool:
        app.state.services = build_services(get_config())
    logger.info("Key service started")
    yield
    if owns_pool:
        close_pool()
    logger.info("Key service stopped")


def create_app(services: Services | None = None) -> FastAPI:
    """Create the application. Without ``services`` they are built from config on startup."""
    app = FastAPI(title="Key Service", version=__version__, lifespan=lifespan)
    if services is not None:
        app.state.services = services

    app.add_middleware(CorrelationMiddleware)

    app.add_exception_handler(KeyServiceError, keyservice_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health.router)
    app.include_router(validate.router)
    app.include_router(api_keys.router)
    app.include_router(secrets.router)
    app.include_router(requirements.router)
    app.include_router(apps.router)
    return app
