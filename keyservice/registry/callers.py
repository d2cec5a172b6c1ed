"""
Caller identification headers.

Internal callers declare which of their own endpoints is asking for a secret:

    X-Caller-Service: apollo
    X-Caller-Method:  POST
    X-Caller-Path:    /leads/search

The values feed the provider-requirement registry only; they play no part in
authorization.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from keyservice.errors import ValidationError

SERVICE_HEADER = "x-caller-service"
METHOD_HEADER = "x-caller-method"
PATH_HEADER = "x-caller-path"

MISSING_HEADERS_MESSAGE = (
    "Missing required headers: X-Caller-Service, X-Caller-Method, X-Caller-Path"
)


@dataclass(frozen=True)
class CallerInfo:
    """A normalized (service, method, path) endpoint."""

    service: str
    method: str
    path: str


def normalize_endpoint(service: str | None, method: str | None, path: str | None) -> CallerInfo | None:
    """Trim all three fields; lowercase service, uppercase method, keep path case.

    Returns None if any field is missing or blank after trimming.
    """
    if not isinstance(service, str) or not isinstance(method, str) or not isinstance(path, str):
        return None
    service, method, path = service.strip(), method.strip(), path.strip()
    if not service or not method or not path:
        return None
    return CallerInfo(service=service.lower(), method=method.upper(), path=path)


def extract_caller(headers: Mapping[str, str]) -> CallerInfo | None:
    """Read the caller headers (names matched case-insensitively)."""
    lowered = {k.lower(): v for k, v in headers.items()}
    return normalize_endpoint(
        lowered.get(SERVICE_HEADER),
        lowered.get(METHOD_HEADER),
        lowered.get(PATH_HEADER),
    )


def require_caller(headers: Mapping[str, str]) -> CallerInfo:
    """Like extract_caller, but a missing or blank field is a ValidationError."""
    caller = extract_caller(headers)
    if caller is None:
        raise ValidationError(MISSING_HEADERS_MESSAGE)
    return caller
