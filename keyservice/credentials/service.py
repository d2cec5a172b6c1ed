"""
Credential issuance — user API keys, session keys and app registration.

Raw keys leave this module exactly once, in the result of the call that
created them. Session keys are the one exception: their raw value is also
stored encrypted so the same key can be handed back to its requester.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from keyservice.credentials.dal import SESSION_KEY_NAME, ApiKeyDAL, AppDAL, OrgDAL
from keyservice.credentials.keys import KeyKind, display_prefix, generate_key, hash_key
from keyservice.errors import NotFoundError, ValidationError
from keyservice.vault import crypto

logger = logging.getLogger(__name__)

APP_NAME_RE = re.compile(r"[a-z0-9-]{1,100}")


@dataclass(frozen=True)
class IssuedKey:
    """A freshly issued or re-disclosed key, with its raw value."""

    id: str
    key: str
    key_prefix: str
    name: str | None
    app_id: str
    org_id: str
    user_id: str
    created_by: str
    created_at: datetime | None


@dataclass(frozen=True)
class AppRegistration:
    app_id: str
    key_prefix: str
    created: bool
    api_key: str | None = None


class CredentialService:
    def __init__(
        self,
        encryption_key: bytes,
        orgs: OrgDAL,
        api_keys: ApiKeyDAL,
        apps: AppDAL,
    ) -> None:
        self._key = encryption_key
        self._orgs = orgs
        self._api_keys = api_keys
        self._apps = apps

    @staticmethod
    def _issued(row: dict, raw_key: str) -> IssuedKey:
        return IssuedKey(
            id=row["id"],
            key=raw_key,
            key_prefix=row["key_prefix"],
            name=row.get("name"),
            app_id=row["app_id"],
            org_id=row["external_org_id"],
            user_id=row["user_id"],
            created_by=row["created_by"],
            created_at=row.get("created_at"),
        )

    # ─── User keys ───────────────────────────────────────────────────────

    def create_user_key(
        self,
        *,
        app_id: str,
        org_id: str,
        user_id: str,
        created_by: str,
        name: str,
    ) -> IssuedKey:
        """Issue a new user key. The raw key is not retrievable afterwards.

        ``Default`` is reserved for the session key and is refused here.
        """
        if name.strip() == SESSION_KEY_NAME:
            raise ValidationError(f"'{SESSION_KEY_NAME}' is reserved for the session key")
        internal_org = self._orgs.ensure(org_id)
        raw_key = generate_key(KeyKind.USER)
        row = self._api_keys.insert(
            org_id=internal_org,
            app_id=app_id,
            user_id=user_id,
            created_by=created_by,
            key_hash=hash_key(raw_key),
            key_prefix=display_prefix(raw_key),
            name=name,
        )
        logger.info("Issued user key %s for org=%s app=%s", row["key_prefix"], org_id, app_id)
        return self._issued(row, raw_key)

    def list_user_keys(self, org_id: str, user_id: str | None = None) -> list[dict]:
        """Key metadata (never hashes or raw values) for an org, optionally one user."""
        internal_org = self._orgs.find(org_id)
        if internal_org is None:
            return []
        rows = self._api_keys.list(internal_org, user_id)
        return [
            {
                "id": r["id"],
                "keyPrefix": r["key_prefix"],
                "name": r.get("name"),
                "appId": r["app_id"],
                "orgId": r["external_org_id"],
                "userId": r["user_id"],
                "createdBy": r["created_by"],
                "createdAt": r.get("created_at"),
                "lastUsedAt": r.get("last_used_at"),
            }
            for r in rows
        ]

    def delete_user_key(self, key_id: str, org_id: str) -> None:
        internal_org = self._orgs.find(org_id)
        if internal_org is None or not self._api_keys.delete(key_id, internal_org):
            raise NotFoundError("API key not found")
        logger.info("Deleted user key %s for org=%s", key_id, org_id)

    def session_key(self, *, app_id: str, org_id: str, user_id: str) -> IssuedKey:
        """Get or create the per-user ``Default`` key, returning its raw value."""
        internal_org = self._orgs.ensure(org_id)

        existing = self._api_keys.get_session(internal_org, app_id, user_id)
        if existing is not None:
            if existing.get("encrypted_key"):
                return self._issued(existing, crypto.decrypt(existing["encrypted_key"], self._key))
            # Issued before raw values were kept; it cannot be re-disclosed.
            logger.info("Replacing legacy session key %s", existing["key_prefix"])
            self._api_keys.delete_by_id(existing["id"])

        raw_key = generate_key(KeyKind.USER)
        row = self._api_keys.insert_session(
            org_id=internal_org,
            app_id=app_id,
            user_id=user_id,
            key_hash=hash_key(raw_key),
            key_prefix=display_prefix(raw_key),
            encrypted_key=crypto.encrypt(raw_key, self._key),
        )
        if row is None:
            # A concurrent request created it first; disclose that one.
            winner = self._api_keys.get_session(internal_org, app_id, user_id)
            if winner is None or not winner.get("encrypted_key"):
                raise NotFoundError(f"{SESSION_KEY_NAME} key vanished during creation")
            return self._issued(winner, crypto.decrypt(winner["encrypted_key"], self._key))

        logger.info("Issued session key %s for org=%s app=%s", row["key_prefix"], org_id, app_id)
        return self._issued(row, raw_key)

    # ─── Apps ────────────────────────────────────────────────────────────

    def register_app(self, name: str) -> AppRegistration:
        """Register an app and issue its key. Re-registering returns only the prefix."""
        if not APP_NAME_RE.fullmatch(name or ""):
            raise ValidationError("App name must be lowercase alphanumeric with hyphens")

        raw_key = generate_key(KeyKind.APP)
        row = self._apps.insert(name, hash_key(raw_key), display_prefix(raw_key))
        if row is None:
            existing = self._apps.get_by_name(name)
            if existing is None:
                raise NotFoundError(f"App '{name}' vanished during registration")
            return AppRegistration(app_id=existing["name"], key_prefix=existing["key_prefix"], created=False)

        logger.info("Registered app %s (%s)", name, row["key_prefix"])
        return AppRegistration(app_id=row["name"], key_prefix=row["key_prefix"], created=True, api_key=raw_key)
