"""Tests for keyservice.registry.registry — observe, query and prune."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from keyservice.errors import ValidationError
from keyservice.registry.callers import CallerInfo
from keyservice.registry.registry import ProviderRequirementRegistry
from tests.fakes import FakeRequirementDAL

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

SEARCH = CallerInfo(service="apollo", method="POST", path="/leads/search")
ENRICH = CallerInfo(service="apollo", method="POST", path="/leads/enrich")


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return Clock(T0)


@pytest.fixture
def dal():
    return FakeRequirementDAL()


@pytest.fixture
def registry(dal, clock):
    return ProviderRequirementRegistry(dal, clock=clock)


class TestRecord:
    def test_first_observation(self, registry):
        req = registry.record(SEARCH, "apollo")
        assert req.created_at == T0
        assert req.last_seen_at == T0

    def test_repeat_observation_advances_last_seen(self, registry, clock, dal):
        registry.record(SEARCH, "apollo")
        clock.now = T0 + timedelta(hours=1)
        req = registry.record(SEARCH, "apollo")
        assert req.created_at == T0
        assert req.last_seen_at == T0 + timedelta(hours=1)
        assert len(dal.rows) == 1

    def test_last_seen_never_moves_backwards(self, registry, clock):
        clock.now = T0 + timedelta(hours=1)
        registry.record(SEARCH, "apollo")
        clock.now = T0
        assert registry.record(SEARCH, "apollo").last_seen_at == T0 + timedelta(hours=1)


class TestQuery:
    def test_providers_sorted_and_distinct(self, registry):
        registry.record(SEARCH, "apollo")
        registry.record(SEARCH, "anthropic")
        registry.record(ENRICH, "apollo")

        result = registry.query([SEARCH, ENRICH])

        assert result.providers == ["anthropic", "apollo"]
        assert [(m.path, m.provider) for m in result.matches] == [
            ("/leads/enrich", "apollo"),
            ("/leads/search", "anthropic"),
            ("/leads/search", "apollo"),
        ]

    def test_endpoints_normalized_like_headers(self, registry):
        registry.record(SEARCH, "apollo")
        result = registry.query([CallerInfo(service=" APOLLO", method="post", path="/leads/search ")])
        assert result.providers == ["apollo"]

    def test_path_is_case_sensitive(self, registry):
        registry.record(SEARCH, "apollo")
        result = registry.query([CallerInfo(service="apollo", method="POST", path="/Leads/Search")])
        assert result.providers == []

    def test_unknown_endpoint(self, registry):
        result = registry.query([ENRICH])
        assert result.matches == []
        assert result.providers == []

    def test_duplicate_endpoints_deduplicated(self, registry):
        registry.record(SEARCH, "apollo")
        assert len(registry.query([SEARCH, SEARCH]).matches) == 1

    def test_blank_endpoint_rejected(self, registry):
        with pytest.raises(ValidationError):
            registry.query([CallerInfo(service="apollo", method=" ", path="/x")])


class TestPrune:
    def test_no_retention_is_noop(self, registry, dal):
        registry.record(SEARCH, "apollo")
        assert registry.prune(now=T0 + timedelta(days=3650)) == 0
        assert len(dal.rows) == 1

    def test_prunes_stale_only(self, dal, clock):
        registry = ProviderRequirementRegistry(dal, retention=timedelta(days=30), clock=clock)
        registry.record(SEARCH, "apollo")
        clock.now = T0 + timedelta(days=20)
        registry.record(ENRICH, "apollo")

        assert registry.prune(now=T0 + timedelta(days=40)) == 1
        assert registry.query([SEARCH, ENRICH]).matches[0].path == "/leads/enrich"


class TestDiscoveryScenario:
    def test_record_then_query(self, registry):
        registry.record(SEARCH, "anthropic")

        result = registry.query([CallerInfo(service="apollo", method="POST", path="/leads/search")])
        assert [m.provider for m in result.matches] == ["anthropic"]

        unrelated = registry.query([CallerInfo(service="apollo", method="GET", path="/leads")])
        assert unrelated.matches == []

    def test_repeated_record_keeps_one_row(self, registry, clock, dal):
        stamps = []
        for i in range(5):
            clock.now = T0 + timedelta(minutes=i)
            stamps.append(registry.record(SEARCH, "anthropic").last_seen_at)
        assert len(dal.rows) == 1
        assert stamps == sorted(stamps)
