"""Pytest configuration providing a fake Favro API and shared fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from favro_exporter.config import ExportConfig
from favro_exporter.engine import ExportSession, PaginatedFetcher, RequestPacer

BASE_URL = "https://favro.test/api/v1"
API_PREFIX = "/api/v1"


class FakeClock:
    """Deterministic clock advanced by the fake sleep."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.sleeps: list[float] = []

    def __call__(self) -> datetime:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)


class FakeFavroApi:
    """Serve canned paginated envelopes keyed by path and query parameters."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, tuple[tuple[str, str], ...]], list[tuple[int, Any, dict]]] = {}
        self.requests: list[httpx.Request] = []
        self.on_request: Callable[[httpx.Request], None] | None = None

    @staticmethod
    def _key(path: str, params: dict[str, str] | None) -> tuple[str, tuple[tuple[str, str], ...]]:
        return API_PREFIX + path, tuple(sorted((params or {}).items()))

    def add_pages(
        self,
        path: str,
        pages: list[list[dict]],
        params: dict[str, str] | None = None,
        request_id: str = "req-1",
        headers: dict[str, str] | None = None,
    ) -> None:
        total = len(pages)
        self.routes[self._key(path, params)] = [
            (
                200,
                {"requestId": request_id, "page": index, "pages": total, "entities": entities},
                dict(headers or {}),
            )
            for index, entities in enumerate(pages)
        ]

    def add(self, path: str, entities: list[dict], params: dict[str, str] | None = None, **kwargs) -> None:
        self.add_pages(path, [entities], params=params, **kwargs)

    def set_page(
        self,
        path: str,
        page: int,
        status: int,
        body: Any = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        responses = self.routes.setdefault(self._key(path, params), [])
        while len(responses) <= page:
            responses.append((404, {"message": "not found"}, {}))
        responses[page] = (status, body, dict(headers or {}))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.on_request is not None:
            self.on_request(request)
        params = dict(request.url.params)
        page = int(params.pop("page", "0"))
        params.pop("requestId", None)
        responses = self.routes.get((request.url.path, tuple(sorted(params.items()))))
        if not responses or page >= len(responses):
            return httpx.Response(404, json={"message": "not found"})
        status, body, headers = responses[page]
        if body is None:
            return httpx.Response(status, headers=headers)
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body, headers=headers)
        return httpx.Response(status, json=body, headers=headers)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def paths(self) -> list[str]:
        return [request.url.path[len(API_PREFIX):] for request in self.requests]


class FakeFileServer:
    """Serve attachment bytes by URL; unknown URLs answer 404."""

    def __init__(self, files: dict[str, bytes] | None = None) -> None:
        self.files = dict(files or {})
        self.requests: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url not in self.files:
            return httpx.Response(404, content=b"missing")
        return httpx.Response(200, content=self.files[url])

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_api() -> FakeFavroApi:
    return FakeFavroApi()


@pytest.fixture
def fake_files() -> FakeFileServer:
    return FakeFileServer()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def export_config() -> Callable[..., ExportConfig]:
    def _builder(**overrides: Any) -> ExportConfig:
        base: dict[str, Any] = {
            "base_url": BASE_URL,
            "user": "exporter@example.com",
            "api_token": "token-123",
        }
        base.update(overrides)
        return ExportConfig(**base)

    return _builder


@pytest.fixture
def session() -> ExportSession:
    return ExportSession(base_url=BASE_URL, user="exporter@example.com", api_token="token-123")


@pytest.fixture
def make_fetcher(session: ExportSession, fake_api: FakeFavroApi, fake_clock: FakeClock):
    def _builder(**pacer_kwargs: Any) -> PaginatedFetcher:
        pacer = RequestPacer(session, clock=fake_clock, sleep=fake_clock.sleep, **pacer_kwargs)
        return PaginatedFetcher(session, pacer, client=fake_api.client())

    return _builder


@pytest.fixture
def destination(tmp_path: Path) -> Path:
    path = tmp_path / "export"
    path.mkdir()
    return path
