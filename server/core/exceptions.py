"""Cache layer exception hierarchy."""

from typing import Optional


class CacheError(Exception):
    """Base exception for all cache-related errors."""


class FetchError(CacheError):
    """Upstream fetch failed (network, non-success status, malformed payload)."""

    def __init__(
        self,
        url: Optional[str],
        message: str,
        status_code: Optional[int] = None,
        cache_key: Optional[str] = None,
    ):
        self.url = url
        self.message = message
        self.status_code = status_code
        self.cache_key = cache_key
        super().__init__(f"[{url or cache_key}] {message}")


class SecondaryUnavailable(CacheError):
    """Secondary cache tier could not be reached."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Secondary {operation} failed: {message}")
