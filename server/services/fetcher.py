"""Upstream HTTP fetcher used by route handlers.

Every request goes through the cache: the request is turned into a cache key,
and the actual HTTP call only happens when ``CacheService.resolve`` decides
the data is not cached (or the caller asked to bypass the cache).

Usage:
    result = await fetcher.get("https://weibo.com/ajax/side/hotSearch", no_cache=options.no_cache)
    items = result.data["data"]["realtime"]
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Literal, Optional

import httpx

from core.cache import CacheService
from core.config import Settings
from core.exceptions import FetchError
from core.keys import RequestDescriptor, derive_key
from core.logging import get_logger, log_upstream_request

logger = get_logger(__name__)

ResponseType = Literal["json", "text"]
Validator = Callable[[Any], None]


@dataclass
class FetchResult:
    """Upstream payload plus cache metadata."""
    data: Any
    update_time: str
    from_cache: bool


class HttpFetcher:
    """Cached GET/POST helper around a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        cache: CacheService,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache
        self.settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def startup(self) -> None:
        """Open the shared HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.request_timeout,
                headers={"User-Agent": self.settings.user_agent},
                follow_redirects=True,
                transport=self._transport,
            )

    async def shutdown(self) -> None:
        """Close the shared HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("HttpFetcher.startup() has not been called")
        return self._client

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        *,
        no_cache: bool = False,
        ttl: Optional[int] = None,
        response_type: ResponseType = "json",
        validate: Optional[Validator] = None,
    ) -> FetchResult:
        """Cached GET request.

        ``validate`` runs on the decoded payload before it is cached and should
        raise ``ValueError`` for payloads that must not be cached.
        """
        descriptor = RequestDescriptor(url=url, method="GET", params=params or {})
        return await self._request(descriptor, headers, no_cache, ttl, response_type, validate)

    async def post(
        self,
        url: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        *,
        no_cache: bool = False,
        ttl: Optional[int] = None,
        response_type: ResponseType = "json",
        validate: Optional[Validator] = None,
    ) -> FetchResult:
        """Cached POST request with a JSON body."""
        descriptor = RequestDescriptor(url=url, method="POST", params=params or {}, body=json)
        return await self._request(descriptor, headers, no_cache, ttl, response_type, validate)

    async def _request(
        self,
        descriptor: RequestDescriptor,
        headers: Optional[Dict[str, str]],
        no_cache: bool,
        ttl: Optional[int],
        response_type: ResponseType,
        validate: Optional[Validator],
    ) -> FetchResult:
        key = derive_key(descriptor)
        fetched = False

        async def fetch() -> Dict[str, Any]:
            nonlocal fetched
            fetched = True
            data = await self._send(descriptor, headers, response_type)
            if validate is not None:
                try:
                    validate(data)
                except (ValueError, KeyError, TypeError) as e:
                    raise FetchError(descriptor.url, f"Unexpected payload: {e}") from e
            return {
                "data": data,
                "updateTime": datetime.now(timezone.utc).isoformat(),
            }

        envelope = await self.cache.resolve(key, fetch, bypass=no_cache, ttl=ttl)
        return FetchResult(
            data=envelope["data"],
            update_time=envelope["updateTime"],
            from_cache=not fetched,
        )

    async def _send(
        self,
        descriptor: RequestDescriptor,
        headers: Optional[Dict[str, str]],
        response_type: ResponseType,
    ) -> Any:
        url = descriptor.url
        start_time = time.time()

        try:
            response = await self.client.request(
                descriptor.method,
                url,
                params=dict(descriptor.params) or None,
                json=descriptor.body,
                headers=headers,
            )
            log_upstream_request(logger, descriptor.method, url,
                                 response.status_code, time.time() - start_time)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise FetchError(url, f"Request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise FetchError(
                url,
                f"Upstream returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise FetchError(url, f"Network error: {e}") from e

        if response_type == "text":
            return response.text

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(url, "Malformed JSON payload", status_code=response.status_code) from e
