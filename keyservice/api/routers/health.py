"""Health route."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    """Liveness only; does not touch the database."""
    return {
        "status": "ok",
        "service": "key-service",
        "timestamp": datetime.now(UTC).isoformat(),
    }
