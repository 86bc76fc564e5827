"""Catalog cache refresh and scheduler behaviour."""

from __future__ import annotations

import asyncio
from typing import cast

import pytest

from app.models import CatalogEntity, CatalogKind
from app.services.catalog_cache import CatalogCache, RefreshScheduler
from app.services.seerr import ApiError, SeerrClient


class StubClient:
    """Catalog client stub returning canned lists or raising per catalog."""

    def __init__(self) -> None:
        self.responses: dict[CatalogKind, list[CatalogEntity] | ApiError] = {
            CatalogKind.NETWORK: [
                CatalogEntity(id="1", name="HBO"),
                CatalogEntity(id="2", name="Netflix"),
            ],
            CatalogKind.STUDIO: [CatalogEntity(id="9", name="Warner Bros.")],
        }
        self.calls: list[CatalogKind] = []

    async def list_entities(self, kind: CatalogKind) -> list[CatalogEntity]:
        self.calls.append(kind)
        await asyncio.sleep(0)
        response = self.responses[kind]
        if isinstance(response, ApiError):
            raise response
        return list(response)


def _cache(stub: StubClient) -> CatalogCache:
    return CatalogCache(cast(SeerrClient, stub))


def test_refresh_populates_both_catalogs() -> None:
    stub = StubClient()
    cache = _cache(stub)

    outcome = asyncio.run(cache.refresh())

    assert outcome == {CatalogKind.NETWORK: True, CatalogKind.STUDIO: True}
    assert set(cache.networks) == {"1", "2"}
    assert cache.lookup(CatalogKind.STUDIO, "9").name == "Warner Bros."
    assert cache.last_refreshed_at is not None
    assert cache.snapshot(CatalogKind.NETWORK).fetched_at is not None


def test_failed_catalog_keeps_previous_snapshot() -> None:
    stub = StubClient()
    cache = _cache(stub)
    asyncio.run(cache.refresh())
    previous_networks = cache.snapshot(CatalogKind.NETWORK)

    stub.responses[CatalogKind.NETWORK] = ApiError(500, "Internal Server Error")
    stub.responses[CatalogKind.STUDIO] = [CatalogEntity(id="4", name="Sony Pictures")]
    outcome = asyncio.run(cache.refresh())

    assert outcome == {CatalogKind.NETWORK: False, CatalogKind.STUDIO: True}
    assert cache.snapshot(CatalogKind.NETWORK) is previous_networks
    assert dict(cache.networks) == dict(previous_networks.entries)
    assert set(cache.studios) == {"4"}


def test_refresh_failure_on_empty_cache_stays_empty() -> None:
    stub = StubClient()
    stub.responses[CatalogKind.NETWORK] = ApiError(None, "unreachable")
    stub.responses[CatalogKind.STUDIO] = ApiError(None, "unreachable")
    cache = _cache(stub)

    asyncio.run(cache.refresh())

    assert len(cache.networks) == 0
    assert len(cache.studios) == 0
    assert cache.last_refreshed_at is not None
    assert cache.last_succeeded_at is None
    assert cache.to_status_payload()["lastSucceededAt"] is None


def test_refresh_replaces_catalog_wholesale() -> None:
    """A reader's snapshot never mixes entries from two refreshes."""

    stub = StubClient()
    cache = _cache(stub)
    asyncio.run(cache.refresh())
    held = cache.networks

    stub.responses[CatalogKind.NETWORK] = [CatalogEntity(id="3", name="Hulu")]
    asyncio.run(cache.refresh())

    assert set(held) == {"1", "2"}
    assert set(cache.networks) == {"3"}
    with pytest.raises(TypeError):
        cache.networks["4"] = CatalogEntity(id="4", name="Max")  # type: ignore[index]


def test_status_payload_reports_counts() -> None:
    cache = _cache(StubClient())
    asyncio.run(cache.refresh())

    payload = cache.to_status_payload()

    assert payload["networks"]["count"] == 2  # type: ignore[index]
    assert payload["studios"]["count"] == 1  # type: ignore[index]
    assert payload["lastRefreshedAt"] is not None
    assert payload["lastSucceededAt"] is not None


def test_scheduler_refreshes_at_startup_and_on_interval() -> None:
    stub = StubClient()
    cache = _cache(stub)

    async def runner() -> None:
        scheduler = RefreshScheduler(cache, interval_seconds=0.01)
        await scheduler.start()
        assert stub.calls.count(CatalogKind.NETWORK) == 1
        assert scheduler.running
        await asyncio.sleep(0.1)
        await scheduler.stop()
        assert not scheduler.running

    asyncio.run(runner())

    assert stub.calls.count(CatalogKind.NETWORK) >= 2


def test_manual_trigger_does_not_delay_periodic_tick() -> None:
    stub = StubClient()
    cache = _cache(stub)

    async def runner() -> list[CatalogKind]:
        scheduler = RefreshScheduler(cache, interval_seconds=0.05)
        await scheduler.start()
        periodic = scheduler._task
        await scheduler.trigger()
        assert scheduler._task is periodic
        await asyncio.sleep(0.12)
        await scheduler.stop()
        return stub.calls

    calls = asyncio.run(runner())

    # startup + manual + one scheduled tick
    assert calls.count(CatalogKind.STUDIO) >= 3


def test_reschedule_validates_interval() -> None:
    scheduler = RefreshScheduler(_cache(StubClient()), interval_seconds=3600)
    scheduler.reschedule(60)

    assert scheduler.interval_seconds == 60
    with pytest.raises(ValueError):
        scheduler.reschedule(0)
    with pytest.raises(ValueError):
        RefreshScheduler(_cache(StubClient()), interval_seconds=0)
