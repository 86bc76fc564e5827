"""Identity-keyed registry of rendered content items and their request state."""

from __future__ import annotations

import logging
from typing import Callable

from ..models import Availability, ContentItem, ItemKey

logger = logging.getLogger(__name__)

StateListener = Callable[[ItemKey, Availability], None]

_IN_FLIGHT_STATES = (Availability.REQUEST_PENDING, Availability.REQUESTED)


class Subscription:
    """Handle returned by :meth:`ItemStateStore.subscribe`."""

    def __init__(self, store: "ItemStateStore", key: ItemKey, listener: StateListener):
        self._store = store
        self.key = key
        self.listener = listener
        self.active = True

    def close(self) -> None:
        if self.active:
            self._store._unsubscribe(self)
            self.active = False


class ItemStateStore:
    """Fans request state out to every rendered representation of an item.

    Representations are the ``ContentItem`` instances held by open views;
    several may share one ``(id, media_type)`` key. The store also keeps the
    authoritative request state per key so that submissions can be guarded
    with a compare-and-set.
    """

    def __init__(self) -> None:
        self._representations: dict[ItemKey, list[ContentItem]] = {}
        self._subscriptions: dict[ItemKey, list[Subscription]] = {}
        self._states: dict[ItemKey, Availability] = {}

    def attach(self, item: ContentItem) -> None:
        """Register a rendered item so it receives state transitions."""

        known = self._states.get(item.key)
        if known is not None:
            if (
                known in _IN_FLIGHT_STATES
                and item.availability is not Availability.AVAILABLE
            ):
                item.availability = known
            elif known is not Availability.REQUEST_PENDING:
                # A freshly fetched item carries the service's current view.
                self._states[item.key] = item.availability.settled()
        instances = self._representations.setdefault(item.key, [])
        if not any(existing is item for existing in instances):
            instances.append(item)

    def detach(self, item: ContentItem) -> None:
        instances = self._representations.get(item.key)
        if not instances:
            return
        instances[:] = [existing for existing in instances if existing is not item]
        if not instances:
            del self._representations[item.key]
            self._forget_settled(item.key)

    def _forget_settled(self, key: ItemKey) -> None:
        """Drop the stored state of a key nothing renders or awaits."""

        if self._states.get(key) is not Availability.REQUEST_PENDING:
            self._states.pop(key, None)

    def representations(self, key: ItemKey) -> tuple[ContentItem, ...]:
        return tuple(self._representations.get(key, ()))

    def subscribe(self, key: ItemKey, listener: StateListener) -> Subscription:
        subscription = Subscription(self, key, listener)
        self._subscriptions.setdefault(key, []).append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.key)
        if not subscriptions:
            return
        subscriptions[:] = [entry for entry in subscriptions if entry is not subscription]
        if not subscriptions:
            del self._subscriptions[subscription.key]

    def state_of(
        self, key: ItemKey, default: Availability | None = None
    ) -> Availability | None:
        """Return the authoritative state for ``key``.

        Falls back to what the rendered representations show, then to
        ``default``.
        """

        if key in self._states:
            return self._states[key]
        instances = self._representations.get(key)
        if instances:
            return instances[0].availability
        return default

    def compare_and_set(
        self,
        key: ItemKey,
        expected: Availability,
        new: Availability,
        *,
        default: Availability = Availability.NOT_AVAILABLE,
    ) -> bool:
        """Publish ``new`` only if the current state equals ``expected``."""

        current = self.state_of(key, default)
        if current is None or current.settled() is not expected:
            return False
        self.publish(key, new)
        return True

    def publish(self, key: ItemKey, state: Availability) -> None:
        """Apply a transition to every representation and notify listeners."""

        settled = state.settled()
        self._states[key] = settled
        instances = self._representations.get(key, ())
        for item in instances:
            item.availability = settled
        if not instances:
            self._forget_settled(key)
        for subscription in list(self._subscriptions.get(key, ())):
            try:
                subscription.listener(key, state)
            except Exception:  # pragma: no cover - listener safety net
                logger.exception("State listener for %s failed", key)
