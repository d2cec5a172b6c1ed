"""User API key routes (service key required)."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from keyservice.api.deps import get_services, require_service_key
from keyservice.api.models import CreateApiKeyRequest, DeleteApiKeyRequest, SessionApiKeyRequest
from keyservice.services import Services

router = APIRouter(
    prefix="/internal/api-keys",
    tags=["api-keys"],
    dependencies=[Depends(require_service_key)],
)


@router.get("")
def api_list_keys(
    orgId: str = Query(..., min_length=1),
    userId: UUID | None = Query(None),
    services: Services = Depends(get_services),
):
    user_id = str(userId) if userId else None
    return {"keys": services.credentials.list_user_keys(orgId, user_id)}


@router.post("")
def api_create_key(body: CreateApiKeyRequest, services: Services = Depends(get_services)):
    issued = services.credentials.create_user_key(
        app_id=body.appId,
        org_id=body.orgId,
        user_id=body.userId,
        created_by=body.createdBy,
        name=body.name,
    )
    return {
        "id": issued.id,
        "key": issued.key,
        "keyPrefix": issued.key_prefix,
        "name": issued.name,
        "appId": issued.app_id,
        "orgId": issued.org_id,
        "userId": issued.user_id,
        "createdBy": issued.created_by,
        "createdAt": issued.created_at,
        "message": "API key created. Save this key now - it won't be shown again.",
    }


@router.post("/session")
def api_session_key(body: SessionApiKeyRequest, services: Services = Depends(get_services)):
    issued = services.credentials.session_key(
        app_id=body.appId, org_id=body.orgId, user_id=body.userId
    )
    return {
        "id": issued.id,
        "key": issued.key,
        "keyPrefix": issued.key_prefix,
        "name": issued.name,
    }


@router.delete("/{key_id}")
def api_delete_key(key_id: UUID, body: DeleteApiKeyRequest, services: Services = Depends(get_services)):
    services.credentials.delete_user_key(str(key_id), body.orgId)
    return {"message": "API key deleted successfully"}
