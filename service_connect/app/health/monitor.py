"""
Request, auth and cache counters derived into a tri-state health verdict.
"""

import threading
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Deque, Dict, Optional

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


MAX_LATENCY_SAMPLES = 1000
RECENT_ERROR_WINDOW_SECONDS = 5 * 60
MIN_SUCCESS_RATE = 95.0
MAX_AVG_RESPONSE_TIME_MS = 5000.0
MAX_AUTH_FAILURE_RATIO = 0.1
DEGRADED_CHECK_RATIO = 0.7


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class AuthOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    RATE_LIMITED = "rate_limited"


@dataclass
class HealthChecks:
    high_success_rate: bool
    no_recent_errors: bool
    reasonable_response_time: bool
    auth_working: bool

    def passed(self) -> int:
        return sum(1 for value in asdict(self).values() if value)

    def total(self) -> int:
        return len(asdict(self))


@dataclass
class HealthReport:
    status: HealthStatus
    uptime_seconds: float
    checks: HealthChecks
    requests: Dict[str, Any] = field(default_factory=dict)
    auth: Dict[str, int] = field(default_factory=dict)
    cache: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


class HealthMonitor:
    """Rolling counters and a moving average of upstream response times.

    Latencies are in milliseconds. ``snapshot`` never mutates state.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        metrics: Optional["MetricsCollector"] = None,
        max_samples: int = MAX_LATENCY_SAMPLES,
    ):
        self._clock = clock
        self.metrics = metrics
        self._max_samples = max_samples
        self._lock = threading.Lock()
        self._reset_state()

    def _reset_state(self) -> None:
        self._start_time = self._clock()
        self._requests = {"total": 0, "successful": 0, "failed": 0}
        self._auth = {outcome.value: 0 for outcome in AuthOutcome}
        self._cache = {"hits": 0, "misses": 0}
        self._error_count = 0
        self._last_error: Optional[str] = None
        self._last_error_time: Optional[float] = None
        self._response_times: Deque[float] = deque(maxlen=self._max_samples)

    def record_request(self, success: bool, latency_ms: float) -> None:
        with self._lock:
            self._requests["total"] += 1
            self._requests["successful" if success else "failed"] += 1
            self._response_times.append(latency_ms)

        if self.metrics:
            self.metrics.record_upstream_request(success, latency_ms / 1000.0)

    def record_auth(self, outcome: str) -> None:
        outcome = AuthOutcome(outcome)
        with self._lock:
            self._auth[outcome.value] += 1

        if self.metrics:
            self.metrics.record_auth(outcome.value)

    def record_cache_hit(self, hit: bool) -> None:
        with self._lock:
            self._cache["hits" if hit else "misses"] += 1

        if self.metrics:
            self.metrics.record_cache_lookup(hit)

    def record_error(self, error: BaseException) -> None:
        with self._lock:
            self._error_count += 1
            self._last_error = str(error) or type(error).__name__
            self._last_error_time = self._clock()

        if self.metrics:
            self.metrics.record_error(type(error).__name__)

    def average_response_time(self) -> float:
        with self._lock:
            return self._average_locked()

    def _average_locked(self) -> float:
        if not self._response_times:
            return 0.0
        return sum(self._response_times) / len(self._response_times)

    def snapshot(self) -> HealthReport:
        now = self._clock()
        with self._lock:
            requests = dict(self._requests)
            auth = dict(self._auth)
            cache = dict(self._cache)
            average = self._average_locked()
            error_count = self._error_count
            last_error = self._last_error
            last_error_time = self._last_error_time
            start_time = self._start_time

        success_rate = (
            requests["successful"] / requests["total"] * 100 if requests["total"] > 0 else 100.0
        )
        lookups = cache["hits"] + cache["misses"]
        cache_hit_rate = cache["hits"] / lookups * 100 if lookups > 0 else 0.0

        auth_attempted = auth["success"] + auth["failure"] > 0
        checks = HealthChecks(
            high_success_rate=success_rate >= MIN_SUCCESS_RATE,
            no_recent_errors=(
                last_error_time is None or now - last_error_time > RECENT_ERROR_WINDOW_SECONDS
            ),
            reasonable_response_time=average < MAX_AVG_RESPONSE_TIME_MS,
            auth_working=(
                not auth_attempted or auth["failure"] < auth["success"] * MAX_AUTH_FAILURE_RATIO
            ),
        )

        passed, total = checks.passed(), checks.total()
        if passed == total:
            status = HealthStatus.HEALTHY
        elif passed >= total * DEGRADED_CHECK_RATIO:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.UNHEALTHY

        return HealthReport(
            status=status,
            uptime_seconds=now - start_time,
            checks=checks,
            requests={
                **requests,
                "avg_response_time_ms": average,
                "success_rate": round(success_rate, 2),
            },
            auth=auth,
            cache={**cache, "hit_rate": round(cache_hit_rate, 2)},
            errors={
                "count": error_count,
                "last_error": last_error,
                "last_error_time": last_error_time,
            },
        )

    def reset(self) -> None:
        with self._lock:
            self._reset_state()
