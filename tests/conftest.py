"""Pytest configuration and test helpers."""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Any

import httpx
import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.config import Settings  # noqa: E402

SERVICE_URL = "http://seerr.test"
API_KEY = "secret-key"

CONTENT_PATH_RE = re.compile(r"^/(network|studio)/([^/]+)/content$")


class FakeService:
    """In-memory stand-in for the request service, served via MockTransport."""

    def __init__(self) -> None:
        self.networks: list[dict[str, Any]] = [
            {"id": 1, "name": "HBO", "logoPath": "/hbo.png"},
            {"id": 2, "name": "Netflix", "logoPath": "/netflix.png"},
        ]
        self.studios: list[dict[str, Any]] = [
            {"id": 9, "name": "Warner Bros.", "logoPath": None},
        ]
        self.content: dict[tuple[str, str], dict[str, Any]] = {
            ("network", "1"): {
                "movies": [
                    {
                        "id": 42,
                        "mediaType": "movie",
                        "title": "Requestable Movie",
                        "posterPath": "/poster42.jpg",
                        "releaseDate": "2021-06-01",
                        "available": False,
                    },
                    {
                        "id": 7,
                        "mediaType": "movie",
                        "title": "Owned Movie",
                        "releaseDate": "1999-03-31",
                        "available": True,
                        "jellyfinId": "abc123",
                    },
                ],
                "tvShows": [
                    {
                        "id": 100,
                        "mediaType": "tv",
                        "name": "Some Show",
                        "firstAirDate": "2019-01-01",
                        "available": False,
                    }
                ],
            },
        }
        self.library: dict[tuple[str, str], dict[str, Any]] = {}
        self.failures: dict[str, int] = {}
        self.request_status = 201
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/api/v1"):
            path = path[len("/api/v1"):]
        if path in self.failures:
            return httpx.Response(self.failures[path], json={"message": "boom"})
        if request.headers.get("X-Api-Key") != API_KEY:
            return httpx.Response(403, json={"message": "forbidden"})

        if path == "/networks":
            return httpx.Response(200, json=self.networks)
        if path == "/studios":
            return httpx.Response(200, json=self.studios)
        if path == "/request" and request.method == "POST":
            return httpx.Response(self.request_status, json={"id": 1, "status": 1})
        if path == "/search/status":
            key = (
                request.url.params.get("tmdbId", ""),
                request.url.params.get("mediaType", ""),
            )
            return httpx.Response(200, json=self.library.get(key, {"available": False}))
        match = CONTENT_PATH_RE.match(path)
        if match:
            payload = self.content.get((match.group(1), match.group(2)))
            if payload is None:
                return httpx.Response(404, json={"message": "not found"})
            return httpx.Response(200, json=payload)
        return httpx.Response(404, json={"message": "unknown endpoint"})

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


def build_settings(**overrides: Any) -> Settings:
    """Return a settings object with defaults suitable for tests."""

    base: dict[str, Any] = {"SERVICE_URL": SERVICE_URL, "API_KEY": API_KEY}
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
def settings_factory():
    return build_settings


@pytest.fixture
def fake_service() -> FakeService:
    return FakeService()
