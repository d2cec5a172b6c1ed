"""Key service middleware — correlation IDs and request logging."""

from __future__ import annotations

import logging
import re
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger(__name__)

# Client-supplied ids outside this shape are replaced with a fresh one
_CORRELATION_ID_RE = re.compile(r"[A-Za-z0-9._-]{1,64}")


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Attach a unique X-Correlation-Id to every request/response.

    Also logs one line per request. Only the method, path, status and
    caller service are logged; headers and bodies may carry secrets.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get("x-correlation-id", "")
        if not _CORRELATION_ID_RE.fullmatch(correlation_id):
            correlation_id = uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        started = time.monotonic()
        response = await call_next(request)
        response.headers["X-Correlation-Id"] = correlation_id
        logger.info(
            "%s %s -> %d (%.1fms) caller=%s cid=%s",
            request.method,
            request.url.path,
            response.status_code,
            (time.monotonic() - started) * 1000,
            request.headers.get("x-caller-service", "-"),
            correlation_id,
        )
        return response
