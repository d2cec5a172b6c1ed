"""Credential validation routes, authenticated with a bearer user or app key."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from keyservice.api.deps import get_services, require_caller_headers, require_identity
from keyservice.auth.resolver import IdentityContext
from keyservice.credentials.keys import KeyKind
from keyservice.registry.callers import CallerInfo
from keyservice.services import Services
from keyservice.vault.dal import SecretScope

router = APIRouter(prefix="/validate", tags=["validate"])


def _scope_and_owner(identity: IdentityContext) -> tuple[SecretScope, str]:
    if identity.kind is KeyKind.APP:
        return SecretScope.APP, identity.app_id
    return SecretScope.BYOK, identity.org_id


@router.get("")
def api_validate(
    identity: IdentityContext = Depends(require_identity),
    services: Services = Depends(get_services),
):
    scope, owner = _scope_and_owner(identity)
    result = {
        "valid": True,
        "type": identity.kind.value,
        "appId": identity.app_id,
        "configuredProviders": services.vault.providers(scope, owner),
    }
    if identity.kind is KeyKind.USER:
        result["orgId"] = identity.org_id
        result["userId"] = identity.user_id
    return result


@router.get("/keys/{provider}")
def api_validate_key(
    provider: str,
    identity: IdentityContext = Depends(require_identity),
    caller: CallerInfo = Depends(require_caller_headers),
    services: Services = Depends(get_services),
):
    """Release the provider secret the credential's owner configured."""
    scope, owner = _scope_and_owner(identity)
    return {"provider": provider, "key": services.vault.decrypt(scope, owner, provider, caller)}
