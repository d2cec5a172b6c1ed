"""Provider-requirement discovery route (service key required)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from keyservice.api.deps import get_services, require_service_key
from keyservice.api.models import ProviderRequirementsRequest
from keyservice.registry.callers import CallerInfo
from keyservice.services import Services

router = APIRouter(
    prefix="/internal",
    tags=["provider-requirements"],
    dependencies=[Depends(require_service_key)],
)


@router.post("/provider-requirements")
def api_provider_requirements(body: ProviderRequirementsRequest, services: Services = Depends(get_services)):
    """Which providers each listed endpoint has been observed to need."""
    result = services.registry.query(
        CallerInfo(service=e.service, method=e.method, path=e.path) for e in body.endpoints
    )
    return {
        "requirements": [
            {"service": m.service, "method": m.method, "path": m.path, "provider": m.provider}
            for m in result.matches
        ],
        "providers": result.providers,
    }
