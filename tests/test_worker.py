"""Tests for the background analysis worker."""

import asyncio
import threading

import pytest

from solana_wallet_forensics.worker import AnalysisWorker, AnalysisWorkerError


def add(a: int, b: int, *, scale: int = 1) -> int:
    return (a + b) * scale


def fail() -> None:
    raise ValueError("boom")


class TestAnalysisWorker:
    """Tests for AnalysisWorker."""

    @pytest.mark.asyncio
    async def test_submit_and_collect(self):
        """Test a submitted callable's result is returned by id."""
        worker = AnalysisWorker()
        request_id = worker.submit(add, 2, 3, scale=10)

        assert worker.is_pending(request_id)
        assert await worker.result(request_id) == 50
        assert not worker.is_pending(request_id)
        assert worker.pending_count == 0

    @pytest.mark.asyncio
    async def test_ids_increase(self):
        """Test every submission gets a fresh increasing id."""
        worker = AnalysisWorker()
        first = worker.submit(add, 1, 1)
        second = worker.submit(add, 1, 1)

        assert second > first
        await asyncio.gather(worker.result(first), worker.result(second))

    @pytest.mark.asyncio
    async def test_result_collected_once(self):
        """Test a result cannot be collected twice."""
        worker = AnalysisWorker()
        request_id = worker.submit(add, 1, 1)
        await worker.result(request_id)

        with pytest.raises(AnalysisWorkerError):
            await worker.result(request_id)

    @pytest.mark.asyncio
    async def test_unknown_id(self):
        """Test unknown ids raise AnalysisWorkerError."""
        with pytest.raises(AnalysisWorkerError):
            await AnalysisWorker().result(42)

    @pytest.mark.asyncio
    async def test_exception_propagates(self):
        """Test the callable's exception is raised to the collector."""
        worker = AnalysisWorker()
        request_id = worker.submit(fail)

        with pytest.raises(ValueError, match="boom"):
            await worker.result(request_id)
        assert worker.pending_count == 0

    @pytest.mark.asyncio
    async def test_timeout_keeps_request_pending(self):
        """Test a timeout leaves the request collectable."""
        release = threading.Event()
        worker = AnalysisWorker()
        request_id = worker.submit(release.wait, 5)

        with pytest.raises(TimeoutError):
            await worker.result(request_id, timeout=0.01)
        assert worker.is_pending(request_id)

        release.set()
        assert await worker.result(request_id) is True

    @pytest.mark.asyncio
    async def test_cancel(self):
        """Test cancelling abandons the request."""
        release = threading.Event()
        worker = AnalysisWorker()
        request_id = worker.submit(release.wait, 5)

        assert worker.cancel(request_id)
        assert not worker.cancel(request_id)
        with pytest.raises(AnalysisWorkerError):
            await worker.result(request_id)

        release.set()
        await worker.close()

    @pytest.mark.asyncio
    async def test_run_cancels_on_timeout(self):
        """Test run() abandons the request after a timeout."""
        release = threading.Event()
        worker = AnalysisWorker()

        with pytest.raises(TimeoutError):
            await worker.run(release.wait, 5, timeout=0.01)
        assert worker.pending_count == 0

        release.set()
        await worker.close()

    @pytest.mark.asyncio
    async def test_close_abandons_pending(self):
        """Test close() cancels outstanding requests and waits for threads."""
        worker = AnalysisWorker()
        worker.submit(add, 1, 2)

        await worker.close()

        assert worker.pending_count == 0
