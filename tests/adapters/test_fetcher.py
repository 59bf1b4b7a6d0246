from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import httpx
import pytest

from pitchsync.adapters.fetcher import RateLimitedFetcher, response_date
from pitchsync.config.http_resilience import ResilienceConfig
from pitchsync.domain.errors import (
    FatalRequestError,
    RateLimitExceeded,
    TransientNetworkError,
)
from pitchsync.domain.model import Provider
from tests.support.http import mock_client_factory

if TYPE_CHECKING:
    from tests.support.http import Handler

CONFIG = ResilienceConfig(name="example", base_url="https://provider.test/api", max_pages=3)


def _fetch(handler: Handler, endpoint: str = "/items", **kwargs: object) -> object:
    async def run() -> object:
        fetcher = RateLimitedFetcher(
            CONFIG,
            provider=Provider.THESPORTSDB,
            client_factory=mock_client_factory(handler),
            **kwargs,  # type: ignore[arg-type]
        )
        async with fetcher:
            return await fetcher.fetch(endpoint, {"id": 1})

    return asyncio.run(run())


def test_fetch_retries_transient_failures() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        if len(calls) < 3:
            return httpx.Response(503)
        assert request.url.params["id"] == "1"
        return httpx.Response(200, json={"ok": True})

    assert _fetch(handler) == {"ok": True}
    assert len(calls) == 3


def test_fetch_surfaces_rate_limit_after_retries() -> None:
    calls: list[int] = []

    def handler(_request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(429, headers={"Retry-After": "7"})

    with pytest.raises(RateLimitExceeded) as exc:
        _fetch(handler)

    assert exc.value.retry_after == 7.0
    assert exc.value.status_code == 429
    assert len(calls) == 3


def test_fetch_surfaces_server_errors_as_transient() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    with pytest.raises(TransientNetworkError) as exc:
        _fetch(handler)

    assert exc.value.status_code == 502
    assert exc.value.endpoint == "/items"


def test_fetch_does_not_retry_client_errors() -> None:
    calls: list[int] = []

    def handler(_request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(403, json={"message": "forbidden"})

    with pytest.raises(FatalRequestError) as exc:
        _fetch(handler)

    assert exc.value.status_code == 403
    assert len(calls) == 1


def test_fetch_maps_connection_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransientNetworkError):
        _fetch(handler)


def test_fetch_rejects_non_json_bodies() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(FatalRequestError):
        _fetch(handler)


def test_fetch_posts_when_configured() -> None:
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(200, json={})

    _fetch(handler, method="POST")

    assert methods == ["POST"]


def test_fetcher_requires_context() -> None:
    fetcher = RateLimitedFetcher(CONFIG, provider=Provider.KLEAGUE)

    with pytest.raises(RuntimeError):
        _ = fetcher.client


def _collect_pages(handler: Handler) -> list[object]:
    async def run() -> list[object]:
        fetcher = RateLimitedFetcher(
            CONFIG,
            provider=Provider.HIGHLIGHTLY,
            client_factory=mock_client_factory(handler),
        )
        async with fetcher:
            return [
                page
                async for page in fetcher.fetch_pages(
                    "/items", has_next=lambda payload: bool(payload["more"])  # type: ignore[index]
                )
            ]

    return asyncio.run(run())


def test_fetch_pages_follows_has_next() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        return httpx.Response(200, json={"page": page, "more": page < 2})

    pages = _collect_pages(handler)

    assert [page["page"] for page in pages] == [1, 2]  # type: ignore[index]


def test_fetch_pages_stops_on_missing_page() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        if page > 1:
            return httpx.Response(404)
        return httpx.Response(200, json={"page": page, "more": True})

    assert len(_collect_pages(handler)) == 1


def test_fetch_pages_raises_when_first_page_is_missing() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    with pytest.raises(FatalRequestError):
        _collect_pages(handler)


def test_fetch_pages_respects_page_cap(caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"page": request.url.params["page"], "more": True})

    pages = _collect_pages(handler)

    assert len(pages) == CONFIG.max_pages
    assert "page limit" in caplog.text


def test_snapshot_tracks_oldest_response_date() -> None:
    dates = iter(
        [
            "Sun, 21 Sep 2025 08:00:00 GMT",
            "Sun, 21 Sep 2025 09:00:00 GMT",
            "Sun, 21 Sep 2025 08:50:00 GMT",
        ]
    )

    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Date": next(dates)}, json={})

    async def run() -> datetime | None:
        fetcher = RateLimitedFetcher(
            CONFIG, provider=Provider.HIGHLIGHTLY, client_factory=mock_client_factory(handler)
        )
        async with fetcher:
            await fetcher.fetch("/before")
            with fetcher.tracking_snapshots() as snapshot:
                await fetcher.fetch("/items")
                await fetcher.fetch("/items")
            return snapshot.oldest

    assert asyncio.run(run()) == datetime(2025, 9, 21, 8, 50, tzinfo=UTC)


def test_response_without_readable_date_has_no_snapshot() -> None:
    assert response_date(httpx.Response(200)) is None
    assert response_date(httpx.Response(200, headers={"Date": "yesterday"})) is None
