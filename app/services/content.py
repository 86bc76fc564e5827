"""Retrieves content lists scoped to a catalog entity."""

from __future__ import annotations

import asyncio
import logging

from ..models import Availability, CatalogKind, ContentItem, EntityContent, MediaType
from .seerr import ApiError, SeerrClient

logger = logging.getLogger(__name__)


class ContentFetcher:
    """Fetches the movies and series of one network or studio.

    Nothing is cached: every call hits the service and returns fresh items.
    ``ApiError`` propagates to the caller.
    """

    def __init__(self, client: SeerrClient, *, status_concurrency: int = 8):
        self._client = client
        self._semaphore = asyncio.Semaphore(status_concurrency)

    async def fetch_for_entity(
        self, kind: CatalogKind, entity_id: str
    ) -> EntityContent:
        content = await self._client.list_content_for_entity(kind, entity_id)
        items = list(content.all_items())

        unreported = [item for item in items if not item.availability_reported]
        if unreported:
            await asyncio.gather(*(self._annotate(item) for item in unreported))

        return EntityContent(
            movies=[item for item in items if item.media_type is MediaType.MOVIE],
            series=[item for item in items if item.media_type is MediaType.SERIES],
        )

    async def _annotate(self, item: ContentItem) -> None:
        try:
            async with self._semaphore:
                status = await self._client.check_library_status(
                    item.id, item.media_type
                )
        except ApiError as exc:
            logger.warning(
                "Library status lookup failed for %s (%s): %s",
                item.title,
                item.media_type.value,
                exc,
            )
            item.availability = Availability.NOT_AVAILABLE
        else:
            item.availability = status.availability
            if status.library_ref and not item.library_ref:
                item.library_ref = status.library_ref
        item.availability_reported = True
