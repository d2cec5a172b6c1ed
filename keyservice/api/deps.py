"""Shared FastAPI dependencies — services, service key, identity, caller."""

from __future__ import annotations

from fastapi import Depends, Header, Request

from keyservice.auth.resolver import IdentityContext
from keyservice.registry.callers import CallerInfo, require_caller
from keyservice.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_service_key(
    x_api_key: str | None = Header(None),
    authorization: str | None = Header(None),
    services: Services = Depends(get_services),
) -> None:
    """Gate for every /internal route."""
    services.auth.verify_service_key(x_api_key, authorization)


def require_identity(
    authorization: str | None = Header(None),
    services: Services = Depends(get_services),
) -> IdentityContext:
    """Resolve the bearer credential. Plain def: touches the database."""
    return services.auth.resolve_bearer(authorization)


def require_caller_headers(request: Request) -> CallerInfo:
    """X-Caller-Service/Method/Path, all three required."""
    return require_caller(request.headers)
