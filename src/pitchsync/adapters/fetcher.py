"""Rate-limited fetcher shared by every provider adapter.

Retries and backoff happen inside :class:`ResilientClient`; by the time a
response reaches this module the retry budget is spent, so anything still
failing is translated into the provider error taxonomy.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from logging import getLogger
from typing import TYPE_CHECKING, Literal, Self

import httpx

from pitchsync.domain.errors import (
    FatalRequestError,
    RateLimitExceeded,
    TransientNetworkError,
)

from .http_resilience import ResilientClient

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator, Mapping
    from types import TracebackType

    from pitchsync.config.http_resilience import ResilienceConfig
    from pitchsync.domain.model import Provider

log = getLogger(__name__)

type ClientFactory = Callable[[ResilienceConfig], ResilientClient]
type HttpMethod = Literal["GET", "POST"]


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def response_date(response: httpx.Response) -> datetime | None:
    """When the server produced ``response``, from its ``Date`` header.

    Caches replay the stored header, so a cached body reports its original age.
    """

    value = response.headers.get("Date")
    if value is None:
        return None
    try:
        produced = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        log.debug(f"Ignoring unreadable Date header {value!r}")
        return None
    if produced.tzinfo is None:
        return produced.replace(tzinfo=UTC)
    return produced.astimezone(UTC)


class SnapshotClock:
    """Oldest response time observed while it is being tracked."""

    def __init__(self) -> None:
        self.oldest: datetime | None = None

    def observe(self, produced: datetime) -> None:
        if self.oldest is None or produced < self.oldest:
            self.oldest = produced


class RateLimitedFetcher:
    def __init__(
        self,
        config: ResilienceConfig,
        *,
        provider: Provider,
        method: HttpMethod = "GET",
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.config = config
        self.provider = provider
        self.method = method
        self._client_factory = client_factory or _default_client_factory
        self._client: ResilientClient | None = None
        self._snapshots: list[SnapshotClock] = []

    async def __aenter__(self) -> Self:
        self._client = self._client_factory(self.config)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> ResilientClient:
        if self._client is None:
            raise RuntimeError(f"{self.provider} fetcher used outside its context")
        return self._client

    @contextmanager
    def tracking_snapshots(self) -> Iterator[SnapshotClock]:
        """Record the oldest ``Date`` of every response received inside the block."""

        clock = SnapshotClock()
        self._snapshots.append(clock)
        try:
            yield clock
        finally:
            self._snapshots.remove(clock)

    async def fetch(self, endpoint: str, params: Mapping[str, str | int] | None = None) -> object:
        """Perform one request and return the decoded JSON body."""

        query = httpx.QueryParams(dict(params)) if params else None
        try:
            if self.method == "POST":
                response = await self.client.post(endpoint, params=query)
            else:
                response = await self.client.get(endpoint, params=query)
        except httpx.TimeoutException as exc:
            raise TransientNetworkError(
                f"{self.provider} {endpoint} timed out", provider=self.provider, endpoint=endpoint
            ) from exc
        except httpx.TransportError as exc:
            raise TransientNetworkError(
                f"{self.provider} {endpoint} unreachable: {exc}",
                provider=self.provider,
                endpoint=endpoint,
            ) from exc

        self._raise_for_status(endpoint, response)
        produced = response_date(response)
        if produced is not None:
            for clock in self._snapshots:
                clock.observe(produced)
        try:
            return response.json()
        except ValueError as exc:
            raise FatalRequestError(
                f"{self.provider} {endpoint} returned a non-JSON body",
                provider=self.provider,
                endpoint=endpoint,
                status_code=response.status_code,
            ) from exc

    async def fetch_pages(
        self,
        endpoint: str,
        params: Mapping[str, str | int] | None = None,
        *,
        has_next: Callable[[object], bool],
        page_param: str = "page",
        first_page: int = 1,
    ) -> AsyncIterator[object]:
        """Yield one decoded body per page until ``has_next`` says stop.

        A 404 past the first page ends the walk, and so does the page cap.
        """

        page = first_page
        for _ in range(self.config.max_pages):
            page_params: dict[str, str | int] = dict(params or {})
            page_params[page_param] = page
            try:
                payload = await self.fetch(endpoint, page_params)
            except FatalRequestError as exc:
                if exc.status_code == httpx.codes.NOT_FOUND and page != first_page:
                    log.debug(f"{self.provider} {endpoint} has no page {page}")
                    return
                raise
            yield payload
            if not has_next(payload):
                return
            page += 1
        log.warning(
            f"{self.provider} {endpoint} stopped at the {self.config.max_pages}-page limit"
        )

    def _raise_for_status(self, endpoint: str, response: httpx.Response) -> None:
        status = response.status_code
        if status < httpx.codes.BAD_REQUEST:
            return
        if status == httpx.codes.TOO_MANY_REQUESTS:
            retry_after = _retry_after(response)
            raise RateLimitExceeded(
                f"{self.provider} {endpoint} still rate limited after retries",
                provider=self.provider,
                endpoint=endpoint,
                retry_after=retry_after,
            )
        message = f"{self.provider} {endpoint} returned HTTP {status}"
        if status >= httpx.codes.INTERNAL_SERVER_ERROR:
            raise TransientNetworkError(
                message, provider=self.provider, endpoint=endpoint, status_code=status
            )
        raise FatalRequestError(
            message, provider=self.provider, endpoint=endpoint, status_code=status
        )
