"""
Short-TTL cache of validated tokens.
"""

import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional


DEFAULT_TOKEN_TTL_SECONDS = 5 * 60


@dataclass
class _TokenEntry:
    token: str
    expires: float
    digest: str


def token_digest(token: str) -> str:
    """Truncated SHA-256 of a token, safe to log."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


class SecureTokenCache:
    """Maps a logical key to a token that has already been validated."""

    def __init__(self, default_ttl: float = DEFAULT_TOKEN_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, _TokenEntry] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config, clock: Callable[[], float] = time.time) -> "SecureTokenCache":
        return cls(default_ttl=config.token_cache_ttl_seconds, clock=clock)

    def set(self, key: str, token: str, ttl: Optional[float] = None) -> None:
        expires = self._clock() + (ttl if ttl is not None else self.default_ttl)
        with self._lock:
            self._entries[key] = _TokenEntry(token=token, expires=expires, digest=token_digest(token))

    def _live_entry(self, key: str) -> Optional[_TokenEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._live_entry(key)
            return entry.token if entry else None

    def fingerprint(self, key: str) -> Optional[str]:
        """Digest of the cached token, for log correlation."""
        with self._lock:
            entry = self._live_entry(key)
            return entry.digest if entry else None

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
