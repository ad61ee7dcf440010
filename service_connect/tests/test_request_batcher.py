"""
Unit tests for the request batcher.
"""

import asyncio

import pytest

from service_connect.app.batching.batcher import RequestBatcher, default_group_key
from service_connect.app.models import RequestSpec
from shared.errors import BatchResultMismatchError
from shared.metrics import MetricsCollector


def _request(path="/api/items", **params):
    return RequestSpec("GET", path, params=params or None)


class RecordingExecutor:
    """Executor stub that records every batch it receives."""

    def __init__(self, delay: float = 0.0):
        self.batches = []
        self.delay = delay

    async def __call__(self, requests):
        self.batches.append(list(requests))
        if self.delay:
            await asyncio.sleep(self.delay)
        return [f"result-{r.params['id']}" for r in requests]


class TestRequestBatcher:
    """Test cases for RequestBatcher."""

    @pytest.mark.asyncio
    async def test_requests_within_window_share_one_executor_call(self):
        batcher = RequestBatcher(batch_window=0.02, max_batch_size=10)
        executor = RecordingExecutor()

        results = await asyncio.gather(*(
            batcher.enqueue(_request(id=i), executor) for i in range(3)
        ))

        assert results == ["result-0", "result-1", "result-2"]
        assert len(executor.batches) == 1
        assert [r.params["id"] for r in executor.batches[0]] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_full_group_flushes_without_waiting_for_window(self):
        batcher = RequestBatcher(batch_window=30.0, max_batch_size=3)
        executor = RecordingExecutor()

        results = await asyncio.wait_for(
            asyncio.gather(*(batcher.enqueue(_request(id=i), executor) for i in range(3))),
            timeout=1.0,
        )

        assert results == ["result-0", "result-1", "result-2"]
        assert len(executor.batches) == 1
        assert batcher.pending() == {}

    @pytest.mark.asyncio
    async def test_size_flush_cancels_window_timer(self):
        batcher = RequestBatcher(batch_window=0.02, max_batch_size=2)
        executor = RecordingExecutor()

        await asyncio.gather(*(batcher.enqueue(_request(id=i), executor) for i in range(2)))
        await asyncio.sleep(0.06)

        assert len(executor.batches) == 1

    @pytest.mark.asyncio
    async def test_executor_failure_fails_every_member(self):
        batcher = RequestBatcher(batch_window=0.01, max_batch_size=10)
        error = RuntimeError("upstream down")

        async def failing_executor(requests):
            raise error

        results = await asyncio.gather(
            *(batcher.enqueue(_request(id=i), failing_executor) for i in range(4)),
            return_exceptions=True,
        )

        assert len(results) == 4
        assert all(result is error for result in results)

    @pytest.mark.asyncio
    async def test_distinct_keys_form_separate_groups(self):
        batcher = RequestBatcher(batch_window=0.01, max_batch_size=10)
        executor = RecordingExecutor()

        await asyncio.gather(
            batcher.enqueue(_request("/api/customers", id=1), executor),
            batcher.enqueue(_request("/api/meters", id=2), executor),
            batcher.enqueue(RequestSpec("POST", "/api/customers", params={"id": 3}), executor),
        )

        assert sorted(len(batch) for batch in executor.batches) == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_query_string_is_ignored_for_grouping(self):
        batcher = RequestBatcher(batch_window=0.01, max_batch_size=10)
        executor = RecordingExecutor()

        await asyncio.gather(
            batcher.enqueue(RequestSpec("GET", "/api/items?id=1"), _by_url(executor)),
            batcher.enqueue(RequestSpec("GET", "/api/items?id=2"), _by_url(executor)),
        )

        assert len(executor.batches) == 1
        assert default_group_key(RequestSpec("get", "/api/items?id=1")) == "GET:/api/items"

    @pytest.mark.asyncio
    async def test_custom_group_key(self):
        batcher = RequestBatcher(batch_window=0.01, max_batch_size=10, key_func=lambda r: r.method)
        executor = RecordingExecutor()

        await asyncio.gather(
            batcher.enqueue(_request("/api/customers", id=1), executor),
            batcher.enqueue(_request("/api/meters", id=2), executor),
        )

        assert len(executor.batches) == 1

    @pytest.mark.asyncio
    async def test_enqueue_after_flush_opens_new_group(self):
        batcher = RequestBatcher(batch_window=0.02, max_batch_size=2)
        executor = RecordingExecutor(delay=0.05)

        results = await asyncio.gather(*(batcher.enqueue(_request(id=i), executor) for i in range(3)))

        assert results == ["result-0", "result-1", "result-2"]
        assert [[r.params["id"] for r in batch] for batch in executor.batches] == [[0, 1], [2]]

    @pytest.mark.asyncio
    async def test_result_count_mismatch_fails_all_members(self):
        batcher = RequestBatcher(batch_window=0.01, max_batch_size=10)

        async def short_executor(requests):
            return ["only-one"]

        results = await asyncio.gather(
            *(batcher.enqueue(_request(id=i), short_executor) for i in range(2)),
            return_exceptions=True,
        )

        assert all(isinstance(result, BatchResultMismatchError) for result in results)
        assert results[0].details["expected"] == 2
        assert results[0].details["received"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_result", [None, 42, "ab", b"ab"])
    async def test_unusable_result_fails_every_member(self, bad_result):
        batcher = RequestBatcher(batch_window=0.01, max_batch_size=10)

        async def bad_executor(requests):
            return bad_result

        results = await asyncio.wait_for(
            asyncio.gather(
                *(batcher.enqueue(_request(id=i), bad_executor) for i in range(2)),
                return_exceptions=True,
            ),
            timeout=1.0,
        )

        assert all(isinstance(result, BatchResultMismatchError) for result in results)
        assert isinstance(results[0].__cause__, TypeError)
        assert batcher.pending() == {}

    @pytest.mark.asyncio
    async def test_mapping_results_are_matched_by_request_id(self):
        batcher = RequestBatcher(batch_window=0.01, max_batch_size=10)

        async def reordering_executor(requests):
            return {r.request_id: f"result-{r.params['id']}" for r in reversed(requests)}

        results = await asyncio.gather(*(batcher.enqueue(_request(id=i), reordering_executor) for i in range(3)))

        assert results == ["result-0", "result-1", "result-2"]

    @pytest.mark.asyncio
    async def test_mapping_missing_request_id_fails_only_that_member(self):
        batcher = RequestBatcher(batch_window=0.01, max_batch_size=10)
        requests = [_request(id=i) for i in range(2)]

        async def partial_executor(batch):
            return {batch[0].request_id: "first"}

        results = await asyncio.gather(
            *(batcher.enqueue(request, partial_executor) for request in requests),
            return_exceptions=True,
        )

        assert results[0] == "first"
        assert isinstance(results[1], BatchResultMismatchError)

    @pytest.mark.asyncio
    async def test_flush_all_flushes_open_groups(self):
        batcher = RequestBatcher(batch_window=30.0, max_batch_size=10)
        executor = RecordingExecutor()

        pending = asyncio.ensure_future(batcher.enqueue(_request(id=7), executor))
        await asyncio.sleep(0)
        assert batcher.pending() == {"GET:/api/items": 1}

        await batcher.flush_all()

        assert await asyncio.wait_for(pending, timeout=1.0) == "result-7"
        assert batcher.pending() == {}

    @pytest.mark.asyncio
    async def test_flushes_are_recorded_in_metrics(self):
        metrics = MetricsCollector("connect-test")
        batcher = RequestBatcher(batch_window=30.0, max_batch_size=2, metrics=metrics)

        await asyncio.gather(*(batcher.enqueue(_request(id=i), RecordingExecutor()) for i in range(2)))

        assert metrics.registry.get_sample_value(
            "batch_flushes_total", {"trigger": "size", "outcome": "success"}
        ) == 1.0
        assert metrics.registry.get_sample_value("batch_size_sum") == 2.0

    def test_rejects_non_positive_batch_size(self):
        with pytest.raises(ValueError):
            RequestBatcher(max_batch_size=0)


def _by_url(recorder):
    async def executor(requests):
        recorder.batches.append(list(requests))
        return [r.url for r in requests]
    return executor
