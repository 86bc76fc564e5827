"""Client for the request service's JSON API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..models import (
    CatalogEntity,
    CatalogKind,
    ContentItem,
    EntityContent,
    LibraryStatus,
    MediaType,
)

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised when the service answers with an error or cannot be reached."""

    def __init__(self, status_code: int | None, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:
        if self.status_code is None:
            return f"Request service unreachable: {self.message}"
        return f"Request service API error: {self.status_code} {self.message}"


class SeerrClient:
    """Thin wrapper around the request service HTTP API.

    Every call carries the static ``X-Api-Key`` credential. Failures are
    raised as :class:`ApiError`; no retries happen at this layer.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    def configure(self, settings: Settings) -> None:
        """Point subsequent calls at a new service URL or credential."""

        self._settings = settings

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Api-Key": self._settings.api_key.get_secret_value(),
        }

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
        *,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Issue one request and return its decoded JSON payload."""

        url = f"{self._settings.api_base_url}{endpoint}"
        send_body = body is not None and method.upper() in {"POST", "PUT"}
        try:
            response = await self._client.request(
                method.upper(),
                url,
                headers=self._headers(),
                params=params,
                json=body if send_body else None,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ApiError(
                exc.response.status_code, exc.response.reason_phrase or "error"
            ) from exc
        except httpx.HTTPError as exc:
            raise ApiError(None, str(exc) or exc.__class__.__name__) from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(response.status_code, "Invalid JSON payload") from exc

    async def list_networks(self) -> list[CatalogEntity]:
        return await self._list_entities(CatalogKind.NETWORK)

    async def list_studios(self) -> list[CatalogEntity]:
        return await self._list_entities(CatalogKind.STUDIO)

    async def list_entities(self, kind: CatalogKind) -> list[CatalogEntity]:
        """Return every entity of one catalog."""

        return await self._list_entities(kind)

    async def _list_entities(self, kind: CatalogKind) -> list[CatalogEntity]:
        payload = await self.call(kind.list_endpoint)
        if not isinstance(payload, list):
            raise ApiError(None, f"Unexpected {kind.value} list payload")

        entities: list[CatalogEntity] = []
        for entry in payload:
            if not isinstance(entry, dict):
                continue
            try:
                entities.append(CatalogEntity.model_validate(entry))
            except ValidationError as exc:
                logger.warning("Skipping malformed %s entry: %s", kind.value, exc)
        return entities

    async def list_content_for_entity(
        self, kind: CatalogKind, entity_id: str
    ) -> EntityContent:
        """Return the movies and series associated with one entity."""

        payload = await self.call(kind.content_endpoint(entity_id))
        if not isinstance(payload, dict):
            raise ApiError(None, f"Unexpected content payload for {kind.value} {entity_id}")

        return EntityContent(
            movies=self._parse_items(payload.get("movies"), MediaType.MOVIE),
            series=self._parse_items(
                payload.get("tvShows") or payload.get("series"), MediaType.SERIES
            ),
        )

    async def submit_request(self, media_id: int, media_type: MediaType) -> Any:
        """Ask the service to request a movie or series."""

        return await self.call(
            "/request",
            "POST",
            {"mediaId": media_id, "mediaType": MediaType.parse(media_type).value},
        )

    async def check_library_status(
        self, external_id: int | str, media_type: MediaType
    ) -> LibraryStatus:
        payload = await self.call(
            "/search/status",
            params={
                "tmdbId": external_id,
                "mediaType": MediaType.parse(media_type).value,
            },
        )
        return LibraryStatus.from_payload(payload)

    @staticmethod
    def _parse_items(raw_items: Any, media_type: MediaType) -> list[ContentItem]:
        if not isinstance(raw_items, list):
            return []
        items: list[ContentItem] = []
        for entry in raw_items:
            if not isinstance(entry, dict):
                continue
            try:
                items.append(
                    ContentItem.from_payload(entry, default_media_type=media_type)
                )
            except ValidationError as exc:
                logger.warning("Skipping malformed content entry: %s", exc)
        return items
