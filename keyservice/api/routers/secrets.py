"""Provider secret routes for the byok, app and platform scopes (service key required)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from keyservice.api.deps import get_services, require_caller_headers, require_service_key
from keyservice.api.models import CreateAppKeyRequest, CreateByokKeyRequest, CreatePlatformKeyRequest
from keyservice.registry.callers import CallerInfo
from keyservice.services import Services
from keyservice.vault.dal import SecretScope
from keyservice.vault.service import BYOK_PROVIDERS

router = APIRouter(
    prefix="/internal",
    tags=["secrets"],
    dependencies=[Depends(require_service_key)],
)


def _entries(services: Services, scope: SecretScope, owner: str | None) -> dict:
    return {"keys": [e.model_dump() for e in services.vault.list(scope, owner)]}


# ─── BYOK (per org) ──────────────────────────────────────────────────────


@router.get("/keys")
def api_list_byok(orgId: str = Query(..., min_length=1), services: Services = Depends(get_services)):
    return _entries(services, SecretScope.BYOK, orgId)


@router.post("/keys")
def api_store_byok(body: CreateByokKeyRequest, services: Services = Depends(get_services)):
    masked = services.vault.store(SecretScope.BYOK, body.orgId, body.provider, body.apiKey)
    return {"provider": body.provider, "maskedKey": masked, "message": f"{body.provider} key saved"}


@router.delete("/keys/{provider}")
def api_delete_byok(
    provider: str,
    orgId: str = Query(..., min_length=1),
    services: Services = Depends(get_services),
):
    if provider not in BYOK_PROVIDERS:
        return JSONResponse({"error": "Invalid provider"}, status_code=400)
    services.vault.delete(SecretScope.BYOK, orgId, provider)
    return {"message": f"{provider} key deleted"}


@router.get("/keys/{provider}/decrypt")
def api_decrypt_byok(
    provider: str,
    orgId: str = Query(..., min_length=1),
    caller: CallerInfo = Depends(require_caller_headers),
    services: Services = Depends(get_services),
):
    return {"provider": provider, "key": services.vault.decrypt(SecretScope.BYOK, orgId, provider, caller)}


# ─── App keys (per app) ──────────────────────────────────────────────────


@router.get("/app-keys")
def api_list_app_keys(appId: str = Query(..., min_length=1), services: Services = Depends(get_services)):
    return _entries(services, SecretScope.APP, appId)


@router.post("/app-keys")
def api_store_app_key(body: CreateAppKeyRequest, services: Services = Depends(get_services)):
    masked = services.vault.store(SecretScope.APP, body.appId, body.provider, body.apiKey)
    return {"provider": body.provider, "maskedKey": masked, "message": f"{body.provider} key saved"}


@router.delete("/app-keys/{provider}")
def api_delete_app_key(
    provider: str,
    appId: str = Query(..., min_length=1),
    services: Services = Depends(get_services),
):
    services.vault.delete(SecretScope.APP, appId, provider)
    return {"message": f"{provider} key deleted"}


@router.get("/app-keys/{provider}/decrypt")
def api_decrypt_app_key(
    provider: str,
    appId: str = Query(..., min_length=1),
    caller: CallerInfo = Depends(require_caller_headers),
    services: Services = Depends(get_services),
):
    return {"provider": provider, "key": services.vault.decrypt(SecretScope.APP, appId, provider, caller)}


# ─── Platform keys ───────────────────────────────────────────────────────


@router.get("/platform-keys")
def api_list_platform_keys(services: Services = Depends(get_services)):
    return _entries(services, SecretScope.PLATFORM, None)


@router.post("/platform-keys")
def api_store_platform_key(body: CreatePlatformKeyRequest, services: Services = Depends(get_services)):
    masked = services.vault.store(SecretScope.PLATFORM, None, body.provider, body.apiKey)
    return {"provider": body.provider, "maskedKey": masked, "message": f"{body.provider} platform key saved"}


@router.delete("/platform-keys/{provider}")
def api_delete_platform_key(provider: str, services: Services = Depends(get_services)):
    services.vault.delete(SecretScope.PLATFORM, None, provider)
    return {"message": f"{provider} platform key deleted"}


@router.get("/platform-keys/{provider}/decrypt")
def api_decrypt_platform_key(
    provider: str,
    caller: CallerInfo = Depends(require_caller_headers),
    services: Services = Depends(get_services),
):
    return {"provider": provider, "key": services.vault.decrypt(SecretScope.PLATFORM, None, provider, caller)}
