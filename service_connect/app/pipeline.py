"""
Request pipeline for upstream tool calls.

Owns one instance of each resilience component for its lifetime and runs
every tool call through them: authentication (token cache, rate limiter,
token validation), response cache lookup with conditional revalidation,
optional batching, dispatch with retries, and metrics/health recording.
"""

import asyncio
import time
from typing import Awaitable, Callable, List, Optional

from shared.config import ConnectConfig
from shared.errors import AuthenticationError, BatchResultMismatchError, RateLimitError, UpstreamError
from shared.logging import (
    clear_context,
    get_logger,
    log_auth,
    log_request,
    set_request_id,
    set_tool_context,
)
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, RetryError, retry_async
from shared.security import mask_token, validate_token_security

from .auth.tokens import create_authenticated_headers
from .batching.batcher import RequestBatcher
from .caching.response_cache import CacheEntry, ResponseCache
from .caching.token_cache import SecureTokenCache, token_digest
from .health.monitor import HealthMonitor, HealthReport
from .models import HttpResponse, RequestSpec
from .ratelimit.auth_limiter import AuthRateLimiter


Dispatch = Callable[[RequestSpec], Awaitable[HttpResponse]]

RETRYABLE_ERRORS = (UpstreamError, ConnectionError, asyncio.TimeoutError)


class RequestPipeline:
    """Runs upstream calls through cache, batcher, limiter and monitor."""

    def __init__(
        self,
        config: ConnectConfig,
        *,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
        response_cache: Optional[ResponseCache] = None,
        batcher: Optional[RequestBatcher] = None,
        rate_limiter: Optional[AuthRateLimiter] = None,
        token_cache: Optional[SecureTokenCache] = None,
        monitor: Optional[HealthMonitor] = None,
    ):
        self.config = config
        self.logger = get_logger("connect.pipeline")

        if metrics is None and config.enable_metrics:
            metrics = MetricsCollector(config.server_name)
        self.metrics = metrics

        self.cache = response_cache or ResponseCache.from_config(config, clock=clock)
        self.batcher = batcher or RequestBatcher.from_config(config, metrics=self.metrics)
        self.rate_limiter = rate_limiter or AuthRateLimiter.from_config(config, clock=clock)
        self.token_cache = token_cache or SecureTokenCache.from_config(config, clock=clock)
        self.monitor = monitor or HealthMonitor(clock=clock, metrics=self.metrics)
        self.retry_config = RetryConfig.from_connect_config(config)

    async def authenticate(self, identifier: str, token: Optional[str] = None) -> str:
        """Resolve and validate the bearer token for a caller.

        Tokens already validated are served from the token cache. Fresh
        validations count against the caller's rate limit window.
        """
        try:
            bearer = create_authenticated_headers(token)["Authorization"]
        except AuthenticationError:
            self.monitor.record_auth("failure")
            log_auth(self.logger, "failure", identifier=identifier, reason="missing_token")
            raise

        cache_key = token_digest(bearer)
        if self.token_cache.get(cache_key) is not None:
            self.monitor.record_auth("success")
            return bearer

        if self.config.rate_limit_enabled and not self.rate_limiter.is_allowed(identifier):
            retry_after = self.rate_limiter.retry_after(identifier)
            self.monitor.record_auth("rate_limited")
            log_auth(self.logger, "rate_limited", identifier=identifier, retry_after=retry_after)
            raise RateLimitError(
                "Too many authentication attempts",
                details={"identifier": identifier, "retry_after_seconds": retry_after},
            )

        if self.config.token_validation_enabled:
            result = validate_token_security(bearer)
            if result.warnings:
                self.logger.warning(
                    "Token security warnings",
                    token=mask_token(bearer),
                    warnings=result.warnings,
                )
            if not result.is_valid:
                self.monitor.record_auth("failure")
                log_auth(self.logger, "failure", identifier=identifier, errors=result.errors)
                raise AuthenticationError(
                    "Token failed security validation",
                    details={"errors": result.errors, "warnings": result.warnings},
                )

        self.token_cache.set(cache_key, bearer)
        self.monitor.record_auth("success")
        log_auth(self.logger, "success", identifier=identifier, token=mask_token(bearer))
        return bearer

    async def execute(
        self,
        request: RequestSpec,
        dispatch: Dispatch,
        *,
        cache_ttl: Optional[float] = None,
        tool_name: Optional[str] = None,
    ) -> HttpResponse:
        """Serve a request from cache or dispatch it upstream."""
        set_request_id(request.request_id)
        set_tool_context(tool_name)
        try:
            return await self._execute(request, dispatch, cache_ttl)
        finally:
            clear_context()

    async def _execute(self, request: RequestSpec, dispatch: Dispatch, cache_ttl: Optional[float]) -> HttpResponse:
        start = time.perf_counter()

        cached = self._cache_lookup(request)
        if cached is not None and not cached.has_validator:
            self.monitor.record_request(True, _elapsed_ms(start))
            return cached.to_response()
        if cached is not None:
            self._apply_conditional_headers(request, cached)

        try:
            response = await self._send(request, dispatch)
        except Exception as e:
            elapsed = _elapsed_ms(start)
            self.monitor.record_error(e)
            self.monitor.record_request(False, elapsed)
            if self.config.enable_request_logging:
                log_request(self.logger, request.method, request.url, elapsed, error=e)
            raise

        if response.not_modified and cached is not None:
            response = cached.to_response()
            self._cache_store(request, response, cached.ttl)
        elif response.ok and self._cacheable(request):
            self._cache_store(request, response, cache_ttl)

        elapsed = _elapsed_ms(start)
        self.monitor.record_request(response.ok, elapsed)
        if self.config.enable_request_logging:
            log_request(self.logger, request.method, request.url, elapsed, status_code=response.status_code)
        return response

    def health(self) -> HealthReport:
        report = self.monitor.snapshot()
        if self.metrics:
            self.metrics.record_health_check(report.status.value)
        return report

    async def close(self) -> None:
        await self.batcher.flush_all()

    def _cacheable(self, request: RequestSpec) -> bool:
        return self.config.cache_enabled and request.method == "GET"

    def _cache_lookup(self, request: RequestSpec) -> Optional[CacheEntry]:
        if not self._cacheable(request):
            return None
        try:
            entry = self.cache.lookup(request)
        except Exception as e:
            self.logger.warning("Cache lookup failed, treating as miss", error=str(e))
            entry = None
        self.monitor.record_cache_hit(entry is not None)
        return entry

    def _apply_conditional_headers(self, request: RequestSpec, entry: CacheEntry) -> None:
        try:
            self.cache.apply_conditional_headers(request, entry)
        except Exception as e:
            self.logger.warning("Could not apply conditional headers", error=str(e))

    def _cache_store(self, request: RequestSpec, response: HttpResponse, ttl: Optional[float]) -> None:
        try:
            self.cache.store(request, response, ttl)
        except Exception as e:
            self.logger.warning("Cache write failed", error=str(e))

    async def _send(self, request: RequestSpec, dispatch: Dispatch) -> HttpResponse:
        if not (self.config.batching_enabled and request.method == "GET"):
            return await self._dispatch_with_retry(request, dispatch)

        async def executor(requests: List[RequestSpec]) -> List[HttpResponse]:
            return await asyncio.gather(*(self._dispatch_with_retry(r, dispatch) for r in requests))

        try:
            return await self.batcher.enqueue(request, executor)
        except BatchResultMismatchError as e:
            self.logger.warning("Batching failed, dispatching directly", error=str(e))
            return await self._dispatch_with_retry(request, dispatch)

    async def _dispatch_with_retry(self, request: RequestSpec, dispatch: Dispatch) -> HttpResponse:
        try:
            return await retry_async(
                lambda: dispatch(request),
                config=self.retry_config,
                exceptions=RETRYABLE_ERRORS,
                name="dispatch",
            )
        except RetryError as e:
            raise e.last_exception from None


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0
