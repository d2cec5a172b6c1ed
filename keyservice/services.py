"""
Service wiring — builds every collaborator once, from configuration.

The API and the CLI both receive a ``Services`` bundle instead of reaching
for module-level singletons, so tests can substitute any DAL.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from keyservice.auth.resolver import AuthResolver
from keyservice.config import Config
from keyservice.credentials.dal import ApiKeyDAL, AppDAL, OrgDAL
from keyservice.credentials.service import CredentialService
from keyservice.registry.dal import RequirementDAL
from keyservice.registry.registry import ProviderRequirementRegistry
from keyservice.vault.crypto import load_encryption_key
from keyservice.vault.dal import SecretDAL, SecretScope
from keyservice.vault.service import KeyVault

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    auth: AuthResolver
    vault: KeyVault
    credentials: CredentialService
    registry: ProviderRequirementRegistry


def retention_from_config(config: Config) -> timedelta | None:
    if config.requirement_retention_days is None:
        return None
    if config.requirement_retention_days <= 0:
        raise ValueError("KEYSERVICE_REQUIREMENT_RETENTION_DAYS must be a positive number of days")
    return timedelta(days=config.requirement_retention_days)


def build_registry(config: Config, requirements: RequirementDAL | None = None) -> ProviderRequirementRegistry:
    return ProviderRequirementRegistry(
        requirements or RequirementDAL(),
        retention=retention_from_config(config),
    )


def build_services(
    config: Config,
    *,
    orgs: OrgDAL | None = None,
    api_keys: ApiKeyDAL | None = None,
    apps: AppDAL | None = None,
    secrets: dict[SecretScope, SecretDAL] | None = None,
    requirements: RequirementDAL | None = None,
) -> Services:
    """Construct the service graph. Any DAL not given uses PostgreSQL."""
    encryption_key = load_encryption_key(config.encryption_key)

    orgs = orgs or OrgDAL()
    api_keys = api_keys or ApiKeyDAL()
    apps = apps or AppDAL()
    secrets = secrets or {scope: SecretDAL(scope) for scope in SecretScope}
    registry = build_registry(config, requirements)

    if not config.service_key_configured:
        logger.error("KEY_SERVICE_API_KEY is not set: every /internal call will fail")

    return Services(
        auth=AuthResolver(config.service_api_key, api_keys, apps),
        vault=KeyVault(encryption_key, secrets, orgs, registry),
        credentials=CredentialService(encryption_key, orgs, api_keys, apps),
        registry=registry,
    )
