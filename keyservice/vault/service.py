"""
KeyVault — store, list, delete and release provider secrets.

Three scopes share one code path:

    byok      owner = external org id (resolved to the internal org UUID)
    app       owner = app name
    platform  no owner

Releasing a secret (``decrypt``) is the only operation that feeds the
provider-requirement registry, and only once both the lookup and the
authentication-tag check have succeeded.
"""

from __future__ import annotations

import logging

from keyservice.credentials.dal import OrgDAL
from keyservice.errors import DecryptionError, NotFoundError
from keyservice.registry.callers import CallerInfo
from keyservice.registry.registry import ProviderRequirementRegistry
from keyservice.vault import crypto
from keyservice.vault.dal import SecretDAL, SecretScope
from keyservice.vault.models import SecretEntry

logger = logging.getLogger(__name__)

BYOK_PROVIDERS = ("apollo", "anthropic", "instantly", "firecrawl")


def _not_found_message(scope: SecretScope, owner: str | None, provider: str) -> str:
    if scope is SecretScope.BYOK:
        return f"BYOK key not found: no '{provider}' key configured for org '{owner}'"
    if scope is SecretScope.APP:
        return f"App key not found: no '{provider}' key configured for app '{owner}'"
    return f"Platform key not found: no '{provider}' platform key configured"


class KeyVault:
    def __init__(
        self,
        encryption_key: bytes,
        secrets: dict[SecretScope, SecretDAL],
        orgs: OrgDAL,
        registry: ProviderRequirementRegistry,
    ) -> None:
        self._key = encryption_key
        self._secrets = secrets
        self._orgs = orgs
        self.registry = registry

    def _resolve_owner(self, scope: SecretScope, owner: str | None, *, create: bool) -> str | None:
        """Map the caller-facing owner to the stored one. None for an unknown org on read."""
        if scope is SecretScope.PLATFORM:
            return None
        if scope is SecretScope.BYOK:
            return self._orgs.ensure(owner) if create else self._orgs.find(owner)
        return owner

    def store(self, scope: SecretScope, owner: str | None, provider: str, plaintext: str) -> str:
        """Encrypt and upsert a secret. Returns its masked form."""
        stored_owner = self._resolve_owner(scope, owner, create=True)
        self._secrets[scope].upsert(stored_owner, provider, crypto.encrypt(plaintext, self._key))
        logger.info("Stored %s key: provider=%s owner=%s", scope.value, provider, owner)
        return crypto.mask(plaintext)

    def list(self, scope: SecretScope, owner: str | None) -> list[SecretEntry]:
        """Masked listing of every secret in the scope for ``owner``."""
        if scope is not SecretScope.PLATFORM:
            owner = self._resolve_owner(scope, owner, create=False)
            if owner is None:
                return []
        return [
            SecretEntry(
                provider=row["provider"],
                maskedKey=crypto.mask(crypto.decrypt(row["encrypted_key"], self._key)),
                createdAt=row.get("created_at"),
                updatedAt=row.get("updated_at"),
            )
            for row in self._secrets[scope].list(owner)
        ]

    def providers(self, scope: SecretScope, owner: str | None) -> list[str]:
        """Provider names configured for ``owner``, without touching ciphertext."""
        if scope is not SecretScope.PLATFORM:
            owner = self._resolve_owner(scope, owner, create=False)
            if owner is None:
                return []
        return [row["provider"] for row in self._secrets[scope].list(owner)]

    def delete(self, scope: SecretScope, owner: str | None, provider: str) -> bool:
        stored_owner = self._resolve_owner(scope, owner, create=False)
        if scope is not SecretScope.PLATFORM and stored_owner is None:
            return False
        deleted = self._secrets[scope].delete(stored_owner, provider)
        if deleted:
            logger.info("Deleted %s key: provider=%s owner=%s", scope.value, provider, owner)
        return deleted

    def decrypt(
        self,
        scope: SecretScope,
        owner: str | None,
        provider: str,
        caller: CallerInfo,
    ) -> str:
        """Release a plaintext secret and record that ``caller`` needs ``provider``."""
        stored_owner = self._resolve_owner(scope, owner, create=False)
        row = None
        if scope is SecretScope.PLATFORM or stored_owner is not None:
            row = self._secrets[scope].get(stored_owner, provider)
        if row is None:
            logger.warning(
                "%s key not found: provider=%s owner=%s caller=%s",
                scope.value,
                provider,
                owner,
                caller.service,
            )
            raise NotFoundError(_not_found_message(scope, owner, provider))

        try:
            plaintext = crypto.decrypt(row["encrypted_key"], self._key)
        except DecryptionError:
            logger.error(
                "Stored %s key failed authentication: provider=%s owner=%s. "
                "The store may be encrypted with a different ENCRYPTION_KEY.",
                scope.value,
                provider,
                owner,
            )
            raise

        self.registry.record(caller, provider)
        return plaintext
