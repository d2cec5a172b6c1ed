"""
Request authentication.

Two independent paths:

  * Service-to-service: a single shared secret (KEY_SERVICE_API_KEY) sent as
    ``X-API-Key`` or ``Authorization: Bearer``. X-API-Key wins when both are
    present. Both sides are trimmed before an exact comparison. No
    configured secret means every call fails closed with a 500.

  * Identity credentials: a ``distrib.``/``mcpf_`` bearer key resolved to an
    app or a user through its SHA-256 hash.

Each request is resolved once into an immutable IdentityContext; nothing is
cached between requests.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from keyservice.credentials.dal import ApiKeyDAL, AppDAL
from keyservice.credentials.keys import (
    KeyKind,
    classify,
    display_prefix,
    has_known_family,
    hash_key,
)
from keyservice.errors import AuthenticationError, ServiceNotConfiguredError

logger = logging.getLogger(__name__)

INVALID_CREDENTIAL = "Invalid API key"
INVALID_SERVICE_KEY = "Invalid service key"
NOT_CONFIGURED = "Service not configured"


@dataclass(frozen=True)
class IdentityContext:
    """Who a request authenticated as. Built once, never mutated."""

    kind: KeyKind
    app_id: str
    org_id: str | None = None
    internal_org_id: str | None = None
    user_id: str | None = None
    key_id: str | None = None


def _strip_bearer(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if value[:7].lower() == "bearer ":
        return value[7:].strip()
    return value


class AuthResolver:
    def __init__(self, service_api_key: str | None, api_keys: ApiKeyDAL, apps: AppDAL) -> None:
        self._service_key = (service_api_key or "").strip()
        self._api_keys = api_keys
        self._apps = apps

    # ─── Service-to-service ──────────────────────────────────────────────

    def verify_service_key(self, x_api_key: str | None, authorization: str | None) -> None:
        """Raise unless the supplied secret equals the configured one."""
        if not self._service_key:
            logger.error("KEY_SERVICE_API_KEY not configured; rejecting internal call")
            raise ServiceNotConfiguredError(NOT_CONFIGURED)

        supplied = (x_api_key or "").strip() or _strip_bearer(authorization)
        if not supplied or not hmac.compare_digest(
            supplied.encode("utf-8"), self._service_key.encode("utf-8")
        ):
            logger.warning("Service key rejected")
            raise AuthenticationError(INVALID_SERVICE_KEY)

    # ─── Identity credentials ────────────────────────────────────────────

    def resolve_bearer(self, authorization: str | None) -> IdentityContext:
        """Resolve an ``Authorization: Bearer <key>`` header to an identity."""
        if not authorization or authorization[:7].lower() != "bearer ":
            raise AuthenticationError(INVALID_CREDENTIAL)
        return self.resolve_key(authorization[7:].strip())

    def resolve_key(self, raw_key: str) -> IdentityContext:
        """Resolve a raw key. Every failure looks the same to the caller."""
        classification = classify(raw_key)
        if not classification.is_well_formed:
            if has_known_family(raw_key):
                logger.info("Rejected malformed credential %s", display_prefix(raw_key))
            else:
                logger.info("Rejected credential with unrecognized prefix")
            raise AuthenticationError(INVALID_CREDENTIAL)

        key_hash = hash_key(raw_key)

        if classification.kind is KeyKind.APP:
            app = self._apps.find_by_hash(key_hash)
            if app is None:
                logger.info("Unknown app key %s", display_prefix(raw_key))
                raise AuthenticationError(INVALID_CREDENTIAL)
            self._apps.touch(app["id"])
            return IdentityContext(kind=KeyKind.APP, app_id=app["name"], key_id=app["id"])

        row = self._api_keys.find_by_hash(key_hash)
        if row is None:
            logger.info("Unknown user key %s", display_prefix(raw_key))
            raise AuthenticationError(INVALID_CREDENTIAL)

        self._api_keys.touch(row["id"])
        return IdentityContext(
            kind=KeyKind.USER,
            app_id=row["app_id"],
            org_id=row["external_org_id"],
            internal_org_id=row["org_id"],
            user_id=row["user_id"],
            key_id=row["id"],
        )
