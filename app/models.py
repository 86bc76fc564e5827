"""Pydantic models describing catalog and content payloads."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .utils import build_image_url, extract_year, normalize_entity_id


class CatalogKind(str, Enum):
    """The two reference catalogs exposed by the request service."""

    NETWORK = "network"
    STUDIO = "studio"

    @property
    def list_endpoint(self) -> str:
        return f"/{self.value}s"

    def content_endpoint(self, entity_id: str) -> str:
        return f"/{self.value}/{entity_id}/content"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class MediaType(str, Enum):
    """Media types accepted by the request service (wire values)."""

    MOVIE = "movie"
    SERIES = "tv"

    @classmethod
    def parse(cls, value: Any) -> "MediaType":
        if isinstance(value, MediaType):
            return value
        text = str(value or "").strip().lower()
        if text in {"tv", "series", "show", "tvshow"}:
            return cls.SERIES
        if text == "movie":
            return cls.MOVIE
        raise ValueError(f"Unsupported media type: {value!r}")


class Availability(str, Enum):
    """Availability of a content item, including request progress."""

    AVAILABLE = "available"
    NOT_AVAILABLE = "not-available"
    REQUEST_PENDING = "request-pending"
    REQUESTED = "requested"
    REQUEST_FAILED = "request-failed"

    def settled(self) -> "Availability":
        """Map the transient failure state back to a requestable one."""

        if self is Availability.REQUEST_FAILED:
            return Availability.NOT_AVAILABLE
        return self

    @property
    def label(self) -> str:
        return {
            Availability.AVAILABLE: "Available",
            Availability.NOT_AVAILABLE: "Not Available",
            Availability.REQUEST_PENDING: "Requesting",
            Availability.REQUESTED: "Requested",
            Availability.REQUEST_FAILED: "Request Failed",
        }[self]


ItemKey = tuple[int, MediaType]

# Media status codes reported in ``mediaInfo.status``.
_MEDIA_STATUS_AVAILABILITY = {
    2: Availability.REQUESTED,
    3: Availability.REQUESTED,
    5: Availability.AVAILABLE,
}


class CatalogEntity(BaseModel):
    """A network or studio known to the request service."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    logo_path: str | None = Field(
        default=None, validation_alias=AliasChoices("logoPath", "logo_path")
    )

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        normalized = normalize_entity_id(value)
        if not normalized:
            raise ValueError("Catalog entity id must not be empty")
        return normalized

    def logo_url(self, kind: CatalogKind, size: str = "w300") -> str:
        return build_image_url(self.logo_path, size, fallback=f"default-{kind.value}")

    def to_card_payload(self, kind: CatalogKind) -> dict[str, object]:
        """Return the payload for an entity card linking to its detail view."""

        return {
            "id": self.id,
            "kind": kind.value,
            "name": self.name,
            "logo": self.logo_url(kind),
            "path": f"/{kind.value}/{self.id}",
        }


class ContentItem(BaseModel):
    """A movie or series associated with a catalog entity."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    media_type: MediaType = Field(
        validation_alias=AliasChoices("mediaType", "media_type")
    )
    title: str = Field(validation_alias=AliasChoices("title", "name"))
    poster_path: str | None = Field(
        default=None, validation_alias=AliasChoices("posterPath", "poster_path")
    )
    release_date: str | None = Field(
        default=None,
        validation_alias=AliasChoices("releaseDate", "firstAirDate", "release_date"),
    )
    overview: str | None = None
    library_ref: str | None = Field(
        default=None,
        validation_alias=AliasChoices("jellyfinId", "libraryRef", "library_ref"),
    )
    availability: Availability = Availability.NOT_AVAILABLE
    availability_reported: bool = Field(default=True, exclude=True)

    @field_validator("media_type", mode="before")
    @classmethod
    def _parse_media_type(cls, value: Any) -> MediaType:
        return MediaType.parse(value)

    @classmethod
    def from_payload(
        cls, data: dict[str, Any], *, default_media_type: MediaType
    ) -> "ContentItem":
        """Build an item from a service payload, deriving its availability."""

        item_data = {**data}
        if not (item_data.get("mediaType") or item_data.get("media_type")):
            item_data["mediaType"] = default_media_type
        availability = _availability_from_payload(item_data)
        item_data["availability"] = availability or Availability.NOT_AVAILABLE
        item_data["availability_reported"] = availability is not None
        if item_data.get("jellyfinId") is not None:
            item_data["jellyfinId"] = str(item_data["jellyfinId"])
        return cls.model_validate(item_data)

    @property
    def key(self) -> ItemKey:
        return (self.id, self.media_type)

    @property
    def display_year(self) -> int | None:
        return extract_year(self.release_date)

    @property
    def can_request(self) -> bool:
        """Whether the request affordance is shown for this item."""

        return self.availability is Availability.NOT_AVAILABLE

    @property
    def detail_path(self) -> str | None:
        if self.availability is Availability.AVAILABLE and self.library_ref:
            return f"/details?id={self.library_ref}"
        return None

    def poster_url(self, size: str = "w342") -> str:
        return build_image_url(
            self.poster_path, size, fallback=f"default-{self.media_type.value}"
        )

    def to_card_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "mediaType": self.media_type.value,
            "title": self.title,
            "poster": self.poster_url(),
            "year": self.display_year,
            "overview": self.overview,
            "availability": self.availability.value,
            "badge": self.availability.label,
            "canRequest": self.can_request,
            "detailPath": self.detail_path,
        }


def _availability_from_payload(data: dict[str, Any]) -> Availability | None:
    available = data.get("available")
    if isinstance(available, bool):
        if available:
            return Availability.AVAILABLE
        media_info = data.get("mediaInfo")
        status = media_info.get("status") if isinstance(media_info, dict) else None
        return _MEDIA_STATUS_AVAILABILITY.get(status, Availability.NOT_AVAILABLE)
    media_info = data.get("mediaInfo")
    if isinstance(media_info, dict) and "status" in media_info:
        return _MEDIA_STATUS_AVAILABILITY.get(
            media_info.get("status"), Availability.NOT_AVAILABLE
        )
    return None


class EntityContent(BaseModel):
    """Content scoped to one catalog entity, grouped by media type."""

    movies: list[ContentItem] = Field(default_factory=list)
    series: list[ContentItem] = Field(default_factory=list)

    def all_items(self) -> Iterator[ContentItem]:
        yield from self.movies
        yield from self.series

    def is_empty(self) -> bool:
        return not (self.movies or self.series)


class LibraryStatus(BaseModel):
    """Availability reported by the service's library status lookup."""

    available: bool = False
    library_ref: str | None = None

    @classmethod
    def from_payload(cls, data: Any) -> "LibraryStatus":
        if not isinstance(data, dict):
            return cls()
        derived = _availability_from_payload(data)
        if derived is None and isinstance(data.get("status"), str):
            derived = (
                Availability.AVAILABLE
                if data["status"].lower() == "available"
                else Availability.NOT_AVAILABLE
            )
        library_ref = data.get("jellyfinId") or data.get("libraryRef")
        return cls(
            available=derived is Availability.AVAILABLE,
            library_ref=str(library_ref) if library_ref else None,
        )

    @property
    def availability(self) -> Availability:
        if self.available:
            return Availability.AVAILABLE
        return Availability.NOT_AVAILABLE


@dataclass(frozen=True, slots=True)
class RequestOutcome:
    """Result of one request submission."""

    success: bool
    reason: str | None = None

    @classmethod
    def succeeded(cls) -> "RequestOutcome":
        return cls(success=True)

    @classmethod
    def failed(cls, reason: str) -> "RequestOutcome":
        return cls(success=False, reason=reason)
