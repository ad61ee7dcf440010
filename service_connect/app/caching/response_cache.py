"""
In-memory HTTP response cache with conditional-request support.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from shared.logging import get_logger
from ..models import HttpResponse, RequestSpec


DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_MAX_SIZE = 1000


@dataclass
class CacheEntry:
    """A cached upstream response."""
    payload: Any
    received_at: float
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    ttl: Optional[float] = None

    @property
    def has_validator(self) -> bool:
        return bool(self.etag or self.last_modified)

    def to_response(self) -> HttpResponse:
        return HttpResponse(status_code=self.status_code, headers=dict(self.headers), body=self.payload)


class ResponseCache:
    """Keyed store of recent responses with TTL expiry and FIFO size eviction.

    Keys combine the upper-cased method, the URL path and the query
    parameters sorted by name, so parameter order does not matter.
    Eviction removes the oldest *inserted* entry; reads do not refresh
    an entry's position.

    An entry expires when it is strictly older than its TTL; an entry
    exactly ``ttl`` seconds old is still served.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._evictions = 0
        self._expirations = 0
        self.logger = get_logger("connect.response_cache")

    @classmethod
    def from_config(cls, config, clock: Callable[[], float] = time.time) -> "ResponseCache":
        return cls(default_ttl=config.cache_ttl_seconds, max_size=config.cache_max_size, clock=clock)

    @staticmethod
    def make_key(request: RequestSpec) -> str:
        key = f"{request.method}:{request.path}"
        query = request.canonical_query()
        return f"{key}?{query}" if query else key

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` or drop it if expired. Caller holds the lock."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        ttl = entry.ttl if entry.ttl is not None else self.default_ttl
        if self._clock() - entry.received_at > ttl:
            del self._entries[key]
            self._expirations += 1
            return None
        return entry

    def lookup(self, request: RequestSpec) -> Optional[CacheEntry]:
        """Return the live entry for the request, or None on a miss."""
        key = self.make_key(request)
        with self._lock:
            return self._live_entry(key)

    def store(self, request: RequestSpec, response: HttpResponse, ttl: Optional[float] = None) -> None:
        """Cache a response, evicting the oldest inserted entry when full."""
        key = self.make_key(request)
        entry = CacheEntry(
            payload=response.body,
            received_at=self._clock(),
            status_code=response.status_code,
            headers=dict(response.headers),
            etag=response.header("etag"),
            last_modified=response.header("last-modified"),
            ttl=ttl,
        )

        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_size:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                self.logger.debug("Evicted cache entry", key=evicted_key)
            self._entries[key] = entry

    def wants_revalidation(self, request: RequestSpec) -> bool:
        """True when the network should still be hit for this request.

        That is the case on a miss, and also when a live entry carries an
        ETag or Last-Modified validator.
        """
        entry = self.lookup(request)
        if entry is None:
            return True
        return entry.has_validator

    def apply_conditional_headers(self, request: RequestSpec, entry: Optional[CacheEntry] = None) -> None:
        """Add If-None-Match / If-Modified-Since from the cached validators.

        ``entry`` is a result of an earlier ``lookup``; without it the cache
        is consulted again.
        """
        if entry is None:
            entry = self.lookup(request)
        if entry is None:
            return

        if entry.etag:
            request.headers["If-None-Match"] = entry.etag
        if entry.last_modified:
            request.headers["If-Modified-Since"] = entry.last_modified

    def invalidate(self, request: RequestSpec) -> bool:
        with self._lock:
            return self._entries.pop(self.make_key(request), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "default_ttl_seconds": self.default_ttl,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }
