"""In-memory catalog cache and its periodic refresh task."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping

from ..models import CatalogEntity, CatalogKind
from .seerr import ApiError, SeerrClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CatalogSnapshot:
    """Immutable view of one catalog as of its last successful fetch."""

    kind: CatalogKind
    entries: Mapping[str, CatalogEntity] = field(
        default_factory=lambda: MappingProxyType({})
    )
    fetched_at: datetime | None = None

    def get(self, entity_id: str) -> CatalogEntity | None:
        return self.entries.get(entity_id)

    def __len__(self) -> int:
        return len(self.entries)


class CatalogCache:
    """Holds the networks and studios catalogs.

    Each catalog is replaced as a whole snapshot, so a reader holding a
    snapshot never sees a mix of old and new entries. A failed fetch keeps
    the previous snapshot.
    """

    def __init__(self, client: SeerrClient):
        self._client = client
        self._snapshots: dict[CatalogKind, CatalogSnapshot] = {
            kind: CatalogSnapshot(kind=kind) for kind in CatalogKind
        }
        self.last_refreshed_at: datetime | None = None
        self.last_succeeded_at: datetime | None = None

    def snapshot(self, kind: CatalogKind) -> CatalogSnapshot:
        return self._snapshots[kind]

    @property
    def networks(self) -> Mapping[str, CatalogEntity]:
        return self._snapshots[CatalogKind.NETWORK].entries

    @property
    def studios(self) -> Mapping[str, CatalogEntity]:
        return self._snapshots[CatalogKind.STUDIO].entries

    def lookup(self, kind: CatalogKind, entity_id: str) -> CatalogEntity | None:
        """Return a cached entity without touching the network."""

        return self._snapshots[kind].get(entity_id)

    async def refresh(self) -> dict[CatalogKind, bool]:
        """Refetch both catalogs; returns which of them were replaced."""

        logger.info("Refreshing network and studio catalogs")
        # Stamped per attempt; last_succeeded_at only moves when a catalog is replaced.
        self.last_refreshed_at = datetime.now(timezone.utc)
        kinds = tuple(CatalogKind)
        results = await asyncio.gather(*(self._refresh_catalog(kind) for kind in kinds))
        outcome = dict(zip(kinds, results))
        if any(results):
            self.last_succeeded_at = datetime.now(timezone.utc)
        logger.info(
            "Refreshed data: %d networks, %d studios",
            len(self.networks),
            len(self.studios),
        )
        return outcome

    async def _refresh_catalog(self, kind: CatalogKind) -> bool:
        try:
            entities = await self._client.list_entities(kind)
        except ApiError as exc:
            logger.warning("Keeping cached %ss after failed refresh: %s", kind.value, exc)
            return False

        entries = {entity.id: entity for entity in entities}
        self._snapshots[kind] = CatalogSnapshot(
            kind=kind,
            entries=MappingProxyType(entries),
            fetched_at=datetime.now(timezone.utc),
        )
        return True

    def to_status_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "lastRefreshedAt": (
                self.last_refreshed_at.isoformat() if self.last_refreshed_at else None
            ),
            "lastSucceededAt": (
                self.last_succeeded_at.isoformat() if self.last_succeeded_at else None
            ),
        }
        for kind, snapshot in self._snapshots.items():
            payload[f"{kind.value}s"] = {
                "count": len(snapshot),
                "fetchedAt": (
                    snapshot.fetched_at.isoformat() if snapshot.fetched_at else None
                ),
            }
        return payload


class RefreshScheduler:
    """Runs ``CatalogCache.refresh`` at startup and on a fixed period.

    Manual triggers run out of band and never move the next periodic tick.
    """

    def __init__(self, cache: CatalogCache, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("Refresh interval must be positive")
        self._cache = cache
        self._interval_seconds = float(interval_seconds)
        self._task: asyncio.Task[None] | None = None
        self._manual_jobs: set[asyncio.Task[None]] = set()

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Refresh once, then launch the periodic loop."""

        await self._run_refresh("startup")
        if self._task is None:
            self._task = asyncio.create_task(self._refresh_loop())

    async def stop(self) -> None:
        """Stop the periodic loop and any manual refresh still running."""

        tasks = list(self._manual_jobs)
        if self._task is not None:
            tasks.append(self._task)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        self._task = None
        self._manual_jobs.clear()

    def reschedule(self, interval_seconds: float) -> None:
        """Change the period used after the tick that is currently pending."""

        if interval_seconds <= 0:
            raise ValueError("Refresh interval must be positive")
        self._interval_seconds = float(interval_seconds)

    def trigger(self) -> asyncio.Task[None]:
        """Run an immediate refresh without touching the periodic timer."""

        task = asyncio.create_task(self._run_refresh("manual"))
        self._manual_jobs.add(task)
        task.add_done_callback(self._manual_jobs.discard)
        return task

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            await self._run_refresh("scheduled")

    async def _run_refresh(self, reason: str) -> None:
        try:
            await self._cache.refresh()
        except Exception as exc:  # pragma: no cover - background safety net
            logger.exception("%s catalog refresh failed: %s", reason.capitalize(), exc)
