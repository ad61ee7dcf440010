"""
Fixed-window limiter for authentication attempts.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from shared.logging import get_logger


DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_WINDOW_SECONDS = 15 * 60


@dataclass
class RateLimitRecord:
    identifier: str
    attempt_count: int
    window_start: float


class AuthRateLimiter:
    """Counts attempts per identifier inside a fixed window.

    The window starts at the first attempt and is not sliding. An expired
    record is reset by the next ``is_allowed`` call; there is no background
    sweep, stale identifiers stay until they are seen again.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._records: Dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()
        self.logger = get_logger("connect.auth_rate_limiter")

    @classmethod
    def from_config(cls, config, clock: Callable[[], float] = time.time) -> "AuthRateLimiter":
        return cls(
            max_attempts=config.rate_limit_max_attempts,
            window_seconds=config.rate_limit_window_seconds,
            clock=clock,
        )

    def _expired(self, record: RateLimitRecord, now: float) -> bool:
        return now - record.window_start > self.window_seconds

    def is_allowed(self, identifier: str) -> bool:
        """Register an attempt and report whether it is within the limit."""
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)

            if record is None or self._expired(record, now):
                self._records[identifier] = RateLimitRecord(identifier, 1, now)
                return True

            if record.attempt_count >= self.max_attempts:
                self.logger.warning(
                    "Auth attempts exceeded",
                    identifier=identifier,
                    attempts=record.attempt_count,
                    limit=self.max_attempts,
                )
                return False

            record.attempt_count += 1
            return True

    def remaining(self, identifier: str) -> int:
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None or self._expired(record, now):
                return self.max_attempts
            return max(0, self.max_attempts - record.attempt_count)

    def retry_after(self, identifier: str) -> float:
        """Seconds until the identifier's window ends; 0 if not limited."""
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None or self._expired(record, now):
                return 0.0
            return max(0.0, record.window_start + self.window_seconds - now)

    def reset(self, identifier: Optional[str] = None) -> None:
        with self._lock:
            if identifier is None:
                self._records.clear()
            else:
                self._records.pop(identifier, None)
