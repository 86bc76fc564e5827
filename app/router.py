"""Navigation path routing and view rendering."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import ClassVar, Union

from .config import Settings
from .models import CatalogEntity, CatalogKind, ContentItem, EntityContent, MediaType
from .services.catalog_cache import CatalogCache
from .services.content import ContentFetcher
from .services.item_state import ItemStateStore
from .services.seerr import ApiError
from .utils import select_by_names

logger = logging.getLogger(__name__)

MOUNT_PREFIX = "/jellyseerr"
BROWSE_PATH = "/browse"


@dataclass(frozen=True, slots=True)
class Home:
    pass


@dataclass(frozen=True, slots=True)
class BrowseAll:
    pass


@dataclass(frozen=True, slots=True)
class NetworkDetail:
    entity_id: str
    kind: ClassVar[CatalogKind] = CatalogKind.NETWORK


@dataclass(frozen=True, slots=True)
class StudioDetail:
    entity_id: str
    kind: ClassVar[CatalogKind] = CatalogKind.STUDIO


@dataclass(frozen=True, slots=True)
class Unrecognized:
    path: str = ""


ViewDescriptor = Union[Home, BrowseAll, NetworkDetail, StudioDetail, Unrecognized]

_DETAIL_PREFIXES: tuple[tuple[str, type[NetworkDetail] | type[StudioDetail]], ...] = (
    ("/network/", NetworkDetail),
    ("/studio/", StudioDetail),
)


def normalize_path(path: str) -> str:
    """Strip the hash marker and the plugin mount prefix from a path."""

    value = (path or "").strip()
    if value.startswith("#"):
        value = value[1:]
    if value == MOUNT_PREFIX or value.startswith(f"{MOUNT_PREFIX}/"):
        value = value[len(MOUNT_PREFIX):]
    return value


def resolve(path: str) -> ViewDescriptor:
    """Map a navigation path to a view descriptor. Performs no I/O."""

    value = normalize_path(path)
    if value == BROWSE_PATH:
        return BrowseAll()
    for prefix, descriptor in _DETAIL_PREFIXES:
        if value.startswith(prefix):
            segment = value[len(prefix):].strip("/")
            if segment and "/" not in segment:
                return descriptor(segment)
            break
    return Unrecognized(path)


class RenderedView:
    """Base class for the renderable result of a navigation."""

    name: ClassVar[str] = "view"

    def close(self) -> None:
        """Release any item representations held by the view."""

    def to_payload(self) -> dict[str, object]:
        return {"view": self.name}


@dataclass(eq=False)
class HomeView(RenderedView):
    name: ClassVar[str] = "home"

    networks: list[CatalogEntity] = field(default_factory=list)
    studios: list[CatalogEntity] = field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        return {
            "view": self.name,
            "title": "Popular Networks & Studios",
            "networks": [e.to_card_payload(CatalogKind.NETWORK) for e in self.networks],
            "studios": [e.to_card_payload(CatalogKind.STUDIO) for e in self.studios],
        }


@dataclass(eq=False)
class BrowseView(HomeView):
    name: ClassVar[str] = "browse"

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        payload["title"] = "Browse Networks & Studios"
        return payload


@dataclass(eq=False)
class NotFoundView(RenderedView):
    name: ClassVar[str] = "not-found"

    kind: CatalogKind = CatalogKind.NETWORK
    entity_id: str = ""

    def to_payload(self) -> dict[str, object]:
        return {
            "view": self.name,
            "kind": self.kind.value,
            "id": self.entity_id,
            "message": f"{self.kind.label} not found",
        }


@dataclass(eq=False)
class EntityView(RenderedView):
    """Detail page of a network or studio with its content grid."""

    name: ClassVar[str] = "entity"

    kind: CatalogKind
    entity: CatalogEntity
    store: ItemStateStore
    content: EntityContent | None = None
    error: str | None = None
    closed: bool = False

    def __post_init__(self) -> None:
        for item in self.items():
            self.store.attach(item)

    def items(self) -> list[ContentItem]:
        if self.content is None:
            return []
        return list(self.content.all_items())

    def find(self, media_id: int, media_type: MediaType) -> ContentItem | None:
        for item in self.items():
            if item.key == (media_id, media_type):
                return item
        return None

    def close(self) -> None:
        if self.closed:
            return
        for item in self.items():
            self.store.detach(item)
        self.closed = True

    def to_payload(self) -> dict[str, object]:
        sections: list[dict[str, object]] = []
        if self.content is not None:
            # Empty groups are left out of the rendered page.
            for title, group in (
                ("Movies", self.content.movies),
                ("TV Shows", self.content.series),
            ):
                if group:
                    sections.append(
                        {
                            "title": title,
                            "items": [item.to_card_payload() for item in group],
                        }
                    )
        return {
            "view": self.name,
            "kind": self.kind.value,
            "entity": {
                "id": self.entity.id,
                "name": self.entity.name,
                "logo": self.entity.logo_url(self.kind, "w500"),
            },
            "sections": sections,
            "error": self.error,
        }


class ViewRouter:
    """Turns view descriptors into rendered views.

    Entity metadata comes from the cache only; content is fetched on demand.
    """

    def __init__(
        self,
        settings: Settings,
        cache: CatalogCache,
        fetcher: ContentFetcher,
        store: ItemStateStore,
    ):
        self._settings = settings
        self._cache = cache
        self._fetcher = fetcher
        self._store = store

    def configure(self, settings: Settings) -> None:
        self._settings = settings

    resolve = staticmethod(resolve)

    async def navigate(self, path: str) -> RenderedView | None:
        """Resolve and render ``path``; ``None`` means no view change."""

        return await self.render(self.resolve(path))

    async def render(self, descriptor: ViewDescriptor) -> RenderedView | None:
        if isinstance(descriptor, Home):
            return self.home()
        if isinstance(descriptor, BrowseAll):
            return self.browse()
        if isinstance(descriptor, (NetworkDetail, StudioDetail)):
            return await self._render_entity(descriptor.kind, descriptor.entity_id)
        return None

    def home(self) -> HomeView:
        """Configured networks and studios, in configured order."""

        return HomeView(
            networks=select_by_names(
                self._settings.display_networks,
                self._cache.networks,
                lambda entity: entity.name,
            ),
            studios=select_by_names(
                self._settings.display_studios,
                self._cache.studios,
                lambda entity: entity.name,
            ),
        )

    def browse(self) -> BrowseView:
        return BrowseView(
            networks=_sorted_by_name(self._cache.networks.values()),
            studios=_sorted_by_name(self._cache.studios.values()),
        )

    async def _render_entity(self, kind: CatalogKind, entity_id: str) -> RenderedView:
        entity = self._cache.lookup(kind, entity_id)
        if entity is None:
            return NotFoundView(kind=kind, entity_id=entity_id)

        try:
            content = await self._fetcher.fetch_for_entity(kind, entity_id)
        except ApiError as exc:
            logger.error("Error fetching content for %s %s: %s", kind.value, entity_id, exc)
            return EntityView(
                kind=kind,
                entity=entity,
                store=self._store,
                error=f"Failed to load content for this {kind.value}.",
            )
        return EntityView(kind=kind, entity=entity, store=self._store, content=content)


def _sorted_by_name(entities) -> list[CatalogEntity]:
    return sorted(entities, key=lambda entity: (entity.name.casefold(), entity.id))
