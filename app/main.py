"""Entry point for the FastAPI-powered browse and request service."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .config import ConfigUpdate, get_settings
from .models import MediaType
from .services.engine import BrowseEngine
from .services.request_workflow import RequestNotAllowedError
from .services.seerr import ApiError, SeerrClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

APP_TITLE = "Seerbrowse"

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    settings = get_settings()
    exit_stack = AsyncExitStack()
    http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0))
    )
    engine = BrowseEngine(settings, SeerrClient(settings, http_client))
    fastapi_app.state.engine = engine
    await engine.start()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await engine.shutdown()
        await exit_stack.aclose()


class NavigatePayload(BaseModel):
    path: str


class MediaPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    media_id: int = Field(validation_alias=AliasChoices("mediaId", "media_id", "id"))
    media_type: MediaType = Field(
        validation_alias=AliasChoices("mediaType", "media_type")
    )

    @field_validator("media_type", mode="before")
    @classmethod
    def _parse_media_type(cls, value: object) -> MediaType:
        return MediaType.parse(value)

    @classmethod
    def from_path(cls, media_type: str, media_id: int) -> "MediaPayload":
        try:
            return cls(media_id=media_id, media_type=MediaType.parse(media_type))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=APP_TITLE,
        description="Browse networks and studios and request missing content",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_engine(app: FastAPI) -> BrowseEngine:
    engine = getattr(app.state, "engine", None)
    if not isinstance(engine, BrowseEngine):
        raise RuntimeError("Browse engine not initialised")
    return engine


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/status")
    async def status() -> dict[str, Any]:
        return get_engine(fastapi_app).to_status_payload()

    @fastapi_app.get("/api/home")
    async def home() -> dict[str, Any]:
        return get_engine(fastapi_app).home().to_payload()

    @fastapi_app.post("/api/navigate")
    async def navigate(payload: NavigatePayload) -> dict[str, Any]:
        view = await get_engine(fastapi_app).navigate(payload.path)
        if view is None:
            return {"view": None}
        return view.to_payload()

    @fastapi_app.get("/api/view")
    async def current_view() -> dict[str, Any]:
        view = get_engine(fastapi_app).current_view
        if view is None:
            return {"view": None}
        return view.to_payload()

    @fastapi_app.post("/api/details")
    async def open_details(payload: MediaPayload) -> dict[str, Any]:
        item = get_engine(fastapi_app).open_details(payload.media_id, payload.media_type)
        if item is None:
            raise HTTPException(status_code=404, detail="Item is not rendered")
        return item.to_card_payload()

    @fastapi_app.delete("/api/details")
    async def close_details() -> dict[str, str]:
        get_engine(fastapi_app).close_details()
        return {"status": "closed"}

    @fastapi_app.post("/api/request")
    async def request_content(payload: MediaPayload) -> dict[str, Any]:
        engine = get_engine(fastapi_app)
        try:
            outcome = await engine.request(payload.media_id, payload.media_type)
        except RequestNotAllowedError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        if outcome is None:
            raise HTTPException(status_code=404, detail="Item is not rendered")
        state = engine.store.state_of((payload.media_id, payload.media_type))
        return {
            "success": outcome.success,
            "reason": outcome.reason,
            "availability": state.value if state else None,
        }

    @fastapi_app.get("/api/items/{media_type}/{media_id}")
    async def item_state(media_type: str, media_id: int) -> dict[str, Any]:
        media = MediaPayload.from_path(media_type, media_id)
        engine = get_engine(fastapi_app)
        key = (media.media_id, media.media_type)
        state = engine.store.state_of(key)
        if state is None:
            raise HTTPException(status_code=404, detail="Item is not rendered")
        return {
            "id": media.media_id,
            "mediaType": media.media_type.value,
            "availability": state.value,
            "representations": len(engine.store.representations(key)),
        }

    @fastapi_app.get("/api/library-status")
    async def library_status(tmdbId: int, mediaType: str) -> dict[str, Any]:
        media = MediaPayload.from_path(mediaType, tmdbId)
        try:
            status = await get_engine(fastapi_app).library_status(
                media.media_id, media.media_type
            )
        except ApiError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return {
            "available": status.available,
            "availability": status.availability.value,
            "libraryRef": status.library_ref,
        }

    @fastapi_app.get("/api/notifications")
    async def notifications() -> list[dict[str, Any]]:
        return get_engine(fastapi_app).notifications.to_payload()

    @fastapi_app.get("/api/config")
    async def read_config() -> dict[str, Any]:
        return get_engine(fastapi_app).settings.to_public_payload()

    @fastapi_app.put("/api/config")
    async def save_config(request: Request) -> dict[str, Any]:
        engine = get_engine(fastapi_app)
        try:
            body = await request.json()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid payload") from exc
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        try:
            update = ConfigUpdate.model_validate(body)
            new_settings = update.apply(engine.settings)
        except ValidationError as exc:
            errors = exc.errors(
                include_url=False, include_context=False, include_input=False
            )
            raise HTTPException(status_code=400, detail=errors) from exc
        refreshed = engine.apply_settings(new_settings)
        payload = new_settings.to_public_payload()
        payload["refreshTriggered"] = refreshed
        return payload


app = create_app()
