"""
Provider-requirement registry.

Learns from live decrypt calls which third-party provider each internal
endpoint depends on, then answers "which providers do these endpoints need?".

Usage:
    registry = ProviderRequirementRegistry(RequirementDAL())
    registry.record(CallerInfo("apollo", "POST", "/leads/search"), "anthropic")
    result = registry.query([CallerInfo("apollo", "POST", "/leads/search")])
    result.providers    # ["anthropic"]
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from keyservice.errors import ValidationError
from keyservice.registry.callers import CallerInfo, normalize_endpoint
from keyservice.registry.dal import RequirementDAL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderRequirement:
    service: str
    method: str
    path: str
    provider: str
    created_at: datetime | None = None
    last_seen_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> ProviderRequirement:
        return cls(
            service=row["service"],
            method=row["method"],
            path=row["path"],
            provider=row["provider"],
            created_at=row.get("created_at"),
            last_seen_at=row.get("last_seen_at"),
        )


@dataclass(frozen=True)
class RequirementQueryResult:
    matches: list[ProviderRequirement] = field(default_factory=list)
    providers: list[str] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ProviderRequirementRegistry:
    """Records and queries (service, method, path) -> provider facts.

    ``retention`` is the explicit pruning window. None keeps every
    observation forever and turns ``prune`` into a no-op.
    """

    def __init__(
        self,
        dal: RequirementDAL,
        retention: timedelta | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._dal = dal
        self.retention = retention
        self._clock = clock

    def record(self, caller: CallerInfo, provider: str) -> ProviderRequirement:
        """Observe that ``caller`` needed ``provider``.

        Only call this after the secret lookup for ``provider`` succeeded.
        """
        row = self._dal.upsert(caller.service, caller.method, caller.path, provider, self._clock())
        logger.debug(
            "Provider requirement observed: %s %s %s -> %s",
            caller.service,
            caller.method,
            caller.path,
            provider,
        )
        return ProviderRequirement.from_row(row)

    def query(self, endpoints: Iterable[CallerInfo]) -> RequirementQueryResult:
        """Every stored requirement for the given endpoints, plus the sorted provider set."""
        normalized: list[tuple[str, str, str]] = []
        for endpoint in endpoints:
            caller = normalize_endpoint(endpoint.service, endpoint.method, endpoint.path)
            if caller is None:
                raise ValidationError("Each endpoint needs a non-empty service, method and path")
            key = (caller.service, caller.method, caller.path)
            if key not in normalized:
                normalized.append(key)

        rows = self._dal.find(normalized)
        matches = sorted(
            (ProviderRequirement.from_row(r) for r in rows),
            key=lambda m: (m.service, m.method, m.path, m.provider),
        )
        providers = sorted({m.provider for m in matches})
        return RequirementQueryResult(matches=matches, providers=providers)

    def prune(self, now: datetime | None = None) -> int:
        """Delete requirements not observed within the retention window."""
        if self.retention is None:
            logger.info("No requirement retention configured; nothing pruned")
            return 0
        cutoff = (now or self._clock()) - self.retention
        deleted = self._dal.delete_older_than(cutoff)
        logger.info("Pruned %d provider requirements last seen before %s", deleted, cutoff.isoformat())
        return deleted
