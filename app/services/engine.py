"""Owned runtime state tying the cache, router and request workflow together."""

from __future__ import annotations

import logging

from ..config import Settings
from ..models import ContentItem, LibraryStatus, MediaType, RequestOutcome
from ..router import EntityView, HomeView, RenderedView, Unrecognized, ViewRouter
from .catalog_cache import CatalogCache, RefreshScheduler
from .content import ContentFetcher
from .item_state import ItemStateStore
from .notifications import NotificationService
from .request_workflow import RequestWorkflow
from .seerr import SeerrClient

logger = logging.getLogger(__name__)


class BrowseEngine:
    """Holds every piece of client state for the lifetime of the process."""

    def __init__(
        self,
        settings: Settings,
        client: SeerrClient,
        *,
        notifications: NotificationService | None = None,
    ):
        self._settings = settings
        self.client = client
        self.cache = CatalogCache(client)
        self.scheduler = RefreshScheduler(self.cache, settings.refresh_interval_seconds)
        self.store = ItemStateStore()
        self.notifications = notifications or NotificationService(
            limit=settings.notification_limit
        )
        self.fetcher = ContentFetcher(client)
        self.router = ViewRouter(settings, self.cache, self.fetcher, self.store)
        self.workflow = RequestWorkflow(client, self.store, self.notifications)
        self.current_view: RenderedView | None = None
        self.details_item: ContentItem | None = None
        self._navigation_seq = 0

    @property
    def settings(self) -> Settings:
        return self._settings

    async def start(self) -> None:
        logger.info("Starting browse engine against %s", self._settings.service_url)
        await self.scheduler.start()

    async def refresh(self) -> None:
        await self.cache.refresh()

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        self.close_details()
        if self.current_view is not None:
            self.current_view.close()
            self.current_view = None

    def apply_settings(self, settings: Settings) -> bool:
        """Swap in saved settings; returns whether a refresh was triggered."""

        previous = self._settings
        self._settings = settings
        self.client.configure(settings)
        self.router.configure(settings)
        self.notifications.limit = settings.notification_limit
        if not previous.requires_refresh(settings):
            return False
        self.scheduler.reschedule(settings.refresh_interval_seconds)
        logger.info("Configuration changed, refreshing catalogs")
        self.scheduler.trigger()
        return True

    def home(self) -> HomeView:
        return self.router.home()

    async def navigate(self, path: str) -> RenderedView | None:
        """Render ``path`` and make it the current view.

        Unrecognized paths leave the current view untouched. A view whose
        content arrives after a newer navigation started is discarded.
        """

        descriptor = self.router.resolve(path)
        if isinstance(descriptor, Unrecognized):
            logger.debug("Ignoring unrecognized path %s", path)
            return self.current_view
        self._navigation_seq += 1
        seq = self._navigation_seq
        view = await self.router.render(descriptor)
        if view is None:
            return self.current_view
        if seq != self._navigation_seq:
            view.close()
            return self.current_view
        if self.current_view is not None:
            self.current_view.close()
        self.close_details()
        self.current_view = view
        return view

    def find_item(self, media_id: int, media_type: MediaType) -> ContentItem | None:
        """Return an item rendered in the current view or the details modal."""

        key = (media_id, MediaType.parse(media_type))
        if self.details_item is not None and self.details_item.key == key:
            return self.details_item
        if isinstance(self.current_view, EntityView):
            return self.current_view.find(*key)
        return None

    def open_details(self, media_id: int, media_type: MediaType) -> ContentItem | None:
        """Open the details modal as another representation of an item."""

        item = self.find_item(media_id, media_type)
        if item is None:
            return None
        self.close_details()
        modal_item = item.model_copy()
        self.store.attach(modal_item)
        self.details_item = modal_item
        return modal_item

    def close_details(self) -> None:
        if self.details_item is not None:
            self.store.detach(self.details_item)
            self.details_item = None

    async def request(self, media_id: int, media_type: MediaType) -> RequestOutcome | None:
        """Submit a request for a rendered item; ``None`` if it is not rendered."""

        item = self.find_item(media_id, media_type)
        if item is None:
            return None
        from_modal = item is self.details_item
        outcome = await self.workflow.submit(item)
        if from_modal:
            self.close_details()
        return outcome

    async def library_status(
        self, external_id: int | str, media_type: MediaType
    ) -> LibraryStatus:
        return await self.client.check_library_status(external_id, media_type)

    def to_status_payload(self) -> dict[str, object]:
        payload = self.cache.to_status_payload()
        payload["refreshIntervalHours"] = self._settings.refresh_interval_hours
        payload["schedulerRunning"] = self.scheduler.running
        return payload
