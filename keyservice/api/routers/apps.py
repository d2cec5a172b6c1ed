"""App registration route (service key required)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from keyservice.api.deps import get_services, require_service_key
from keyservice.api.models import RegisterAppRequest
from keyservice.services import Services

router = APIRouter(
    prefix="/internal/apps",
    tags=["apps"],
    dependencies=[Depends(require_service_key)],
)


@router.post("")
def api_register_app(body: RegisterAppRequest, services: Services = Depends(get_services)):
    """Idempotent. Only the first registration discloses the raw key."""
    reg = services.credentials.register_app(body.name)
    if not reg.created:
        return {"appId": reg.app_id, "keyPrefix": reg.key_prefix, "created": False}
    return {
        "appId": reg.app_id,
        "keyPrefix": reg.key_prefix,
        "created": True,
        "apiKey": reg.api_key,
        "message": "App registered. Save this key now - it won't be shown again.",
    }
