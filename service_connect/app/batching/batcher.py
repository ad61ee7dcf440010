"""
Time-windowed request batcher.

Near-simultaneous requests that share a group key are coalesced into one
executor call. A group is flushed when it reaches ``max_batch_size`` or
when its window timer fires, whichever comes first, and never twice.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

from shared.errors import BatchResultMismatchError
from shared.logging import get_logger
from ..models import RequestSpec

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_BATCH_WINDOW_SECONDS = 0.1
DEFAULT_MAX_BATCH_SIZE = 10

BatchResults = Union[Sequence[Any], Mapping[str, Any]]
BatchExecutor = Callable[[List[RequestSpec]], Awaitable[BatchResults]]
GroupKeyFunc = Callable[[RequestSpec], str]


def default_group_key(request: RequestSpec) -> str:
    """Method plus path; the query string is ignored."""
    return f"{request.method}:{request.path}"


@dataclass
class BatchGroup:
    group_key: str
    executor: BatchExecutor
    pending: List[Tuple[RequestSpec, "asyncio.Future[Any]"]] = field(default_factory=list)
    timer: Optional[asyncio.TimerHandle] = None
    flushed: bool = False


class RequestBatcher:
    """Coalesces requests per group key into a single executor invocation.

    The executor receives the pending requests in enqueue order and returns
    either a sequence (matched by position, lengths must agree) or a mapping
    keyed by ``RequestSpec.request_id``. The executor passed with the first
    request of a group runs the whole group.
    """

    def __init__(
        self,
        batch_window: float = DEFAULT_BATCH_WINDOW_SECONDS,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        key_func: GroupKeyFunc = default_group_key,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        self.batch_window = batch_window
        self.max_batch_size = max_batch_size
        self.key_func = key_func
        self.metrics = metrics
        self.logger = get_logger("connect.request_batcher")

        self._groups: Dict[str, BatchGroup] = {}
        self._lock = threading.Lock()
        self._flush_tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config, **kwargs) -> "RequestBatcher":
        return cls(batch_window=config.batch_window_seconds, max_batch_size=config.max_batch_size, **kwargs)

    async def enqueue(self, request: RequestSpec, executor: BatchExecutor) -> Any:
        """Add a request to its group and wait for its individual result."""
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        key = self.key_func(request)
        full_group = None

        with self._lock:
            group = self._groups.get(key)
            if group is None:
                group = BatchGroup(group_key=key, executor=executor)
                group.timer = loop.call_later(self.batch_window, self._on_window_elapsed, group)
                self._groups[key] = group
            group.pending.append((request, future))

            if len(group.pending) >= self.max_batch_size:
                self._detach(group)
                full_group = group

        if full_group is not None:
            self._schedule_flush(full_group, "size")

        return await future

    def pending(self) -> Dict[str, int]:
        """Open groups and how many requests each holds."""
        with self._lock:
            return {key: len(group.pending) for key, group in self._groups.items()}

    async def flush_all(self) -> None:
        """Flush every open group now and wait for the executors to finish."""
        with self._lock:
            groups = list(self._groups.values())
            for group in groups:
                self._detach(group)

        for group in groups:
            self._schedule_flush(group, "shutdown")

        if self._flush_tasks:
            await asyncio.gather(*list(self._flush_tasks), return_exceptions=True)

    def _detach(self, group: BatchGroup) -> None:
        """Close a group to new members. Caller holds the lock."""
        group.flushed = True
        if self._groups.get(group.group_key) is group:
            del self._groups[group.group_key]
        if group.timer is not None:
            group.timer.cancel()
            group.timer = None

    def _on_window_elapsed(self, group: BatchGroup) -> None:
        with self._lock:
            if group.flushed:
                return
            # The handle already fired; drop it so _detach does not cancel it.
            group.timer = None
            self._detach(group)

        self._schedule_flush(group, "window")

    def _schedule_flush(self, group: BatchGroup, trigger: str) -> None:
        task = asyncio.ensure_future(self._flush(group, trigger))
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    async def _flush(self, group: BatchGroup, trigger: str) -> None:
        requests = [request for request, _ in group.pending]
        futures = [future for _, future in group.pending]

        self.logger.debug(
            "Flushing batch",
            group_key=group.group_key,
            size=len(requests),
            trigger=trigger,
        )

        try:
            results = await group.executor(requests)
        except asyncio.CancelledError:
            for future in futures:
                future.cancel()
            raise
        except Exception as e:
            self.logger.warning(
                "Batch executor failed",
                group_key=group.group_key,
                size=len(requests),
                error=str(e),
            )
            self._record_flush(trigger, "failure", len(requests))
            for future in futures:
                _fail(future, e)
            return

        try:
            outcome = self._distribute(group, requests, futures, results)
        except Exception as e:
            error = BatchResultMismatchError(
                "Batch results could not be distributed",
                details={"group_key": group.group_key, "error": str(e)},
            )
            error.__cause__ = e
            self.logger.error("Batch result distribution failed", **error.details)
            for future in futures:
                _fail(future, error)
            outcome = "mismatch"

        self._record_flush(trigger, outcome, len(requests))

    def _distribute(
        self,
        group: BatchGroup,
        requests: List[RequestSpec],
        futures: List["asyncio.Future[Any]"],
        results: BatchResults,
    ) -> str:
        if isinstance(results, Mapping):
            outcome = "success"
            for request, future in zip(requests, futures):
                if request.request_id in results:
                    _resolve(future, results[request.request_id])
                else:
                    outcome = "partial"
                    _fail(future, BatchResultMismatchError(
                        "Batch executor returned no result for request",
                        details={"group_key": group.group_key, "request_id": request.request_id},
                    ))
            return outcome

        if isinstance(results, (str, bytes, bytearray)) or not isinstance(results, Iterable):
            raise TypeError(
                f"batch executor must return a sequence or mapping, got {type(results).__name__}"
            )

        results = list(results)
        if len(results) != len(requests):
            error = BatchResultMismatchError(
                "Batch executor returned a different number of results",
                details={
                    "group_key": group.group_key,
                    "expected": len(requests),
                    "received": len(results),
                },
            )
            self.logger.error("Batch result count mismatch", **error.details)
            for future in futures:
                _fail(future, error)
            return "mismatch"

        for future, result in zip(futures, results):
            _resolve(future, result)
        return "success"

    def _record_flush(self, trigger: str, outcome: str, size: int) -> None:
        if self.metrics:
            self.metrics.record_batch_flush(trigger, outcome, size)


def _resolve(future: "asyncio.Future[Any]", result: Any) -> None:
    if not future.done():
        future.set_result(result)


def _fail(future: "asyncio.Future[Any]", error: BaseException) -> None:
    if not future.done():
        future.set_exception(error)
