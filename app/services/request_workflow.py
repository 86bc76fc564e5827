"""Optimistic request submission with identity-keyed fan-out and rollback."""

from __future__ import annotations

import logging

from ..models import Availability, ContentItem, RequestOutcome
from .item_state import ItemStateStore
from .notifications import NotificationService, Severity
from .seerr import ApiError, SeerrClient

logger = logging.getLogger(__name__)


class RequestNotAllowedError(Exception):
    """Raised when an item cannot be requested in its current state."""

    def __init__(self, item: ContentItem, state: Availability):
        super().__init__(
            f"{item.title} cannot be requested while {state.label.lower()}"
        )
        self.item = item
        self.state = state


class RequestWorkflow:
    """Drives ``NotAvailable -> RequestPending -> Requested | RequestFailed``.

    The pending state is published before the remote call so every rendered
    copy of the item drops its request affordance at once. A failure rolls
    all of them back to ``NotAvailable``.
    """

    def __init__(
        self,
        client: SeerrClient,
        store: ItemStateStore,
        notifications: NotificationService,
    ):
        self._client = client
        self._store = store
        self._notifications = notifications

    async def submit(self, item: ContentItem) -> RequestOutcome:
        key = item.key
        if item.availability.settled() is not Availability.NOT_AVAILABLE:
            raise RequestNotAllowedError(item, item.availability)

        # Compare-and-set so a second submission for the same key is rejected
        # before it reaches the service.
        if not self._store.compare_and_set(
            key,
            Availability.NOT_AVAILABLE,
            Availability.REQUEST_PENDING,
            default=item.availability,
        ):
            current = self._store.state_of(key, item.availability)
            raise RequestNotAllowedError(item, current or item.availability)
        item.availability = Availability.REQUEST_PENDING

        try:
            await self._client.submit_request(item.id, item.media_type)
        except ApiError as exc:
            logger.warning("Error requesting content %s: %s", item.id, exc)
            self._store.publish(key, Availability.REQUEST_FAILED)
            item.availability = Availability.NOT_AVAILABLE
            self._notifications.notify(
                "Error", f"Failed to request {item.title}.", Severity.ERROR
            )
            return RequestOutcome.failed(str(exc))

        self._store.publish(key, Availability.REQUESTED)
        item.availability = Availability.REQUESTED
        self._notifications.notify(
            "Success", f"{item.title} has been requested.", Severity.SUCCESS
        )
        return RequestOutcome.succeeded()
