"""Background execution of analyses with correlation ids.

Analyses are synchronous and CPU-bound, so they run on worker threads via
``asyncio.to_thread``. Each submission gets an increasing integer id and
exactly one future; the caller collects the result by id and owns the
timeout. Cancelling a request abandons its future, the computation
itself runs to completion in its thread.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AnalysisWorkerError(Exception):
    """Raised when a request id is unknown or no longer pending."""


class AnalysisWorker:
    """Runs callables off the event loop and resolves one future per request id.

    Example:
        ```python
        worker = AnalysisWorker()
        request_id = worker.submit(analyze_funding, transactions, address)
        result = await worker.result(request_id, timeout=30)
        ```
    """

    def __init__(self) -> None:
        self._next_id = 0
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending_count(self) -> int:
        """Number of requests whose result has not been collected."""
        return len(self._pending)

    def is_pending(self, request_id: int) -> bool:
        return request_id in self._pending

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> int:
        """Schedule ``fn(*args, **kwargs)`` on a worker thread.

        Must be called from a running event loop.

        Returns:
            The request id to collect the result with.
        """
        loop = asyncio.get_running_loop()
        self._next_id += 1
        request_id = self._next_id
        self._pending[request_id] = loop.create_future()

        task = asyncio.create_task(self._execute(request_id, fn, args, kwargs))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Submitted request %d: %s", request_id, getattr(fn, "__name__", fn))
        return request_id

    async def _execute(
        self,
        request_id: int,
        fn: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        try:
            value = await asyncio.to_thread(fn, *args, **kwargs)
        except Exception as e:
            logger.debug("Request %d failed: %s", request_id, e)
            self._resolve(request_id, error=e)
        else:
            self._resolve(request_id, value=value)

    def _resolve(self, request_id: int, *, value: Any = None, error: BaseException | None = None) -> None:
        future = self._pending.get(request_id)
        if future is None or future.done():
            logger.debug("Dropping result of abandoned request %d", request_id)
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(value)

    async def result(self, request_id: int, timeout: float | None = None) -> Any:
        """Wait for a request's result and release it.

        A timeout leaves the request pending so it can be awaited again or
        cancelled.

        Raises:
            AnalysisWorkerError: If the id is unknown or was already collected.
            TimeoutError: If the result is not ready within ``timeout`` seconds.
            Exception: Whatever the submitted callable raised.
        """
        future = self._pending.get(request_id)
        if future is None:
            raise AnalysisWorkerError(f"Unknown or already collected request id: {request_id}")
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout)
        finally:
            if future.done():
                self._pending.pop(request_id, None)

    def cancel(self, request_id: int) -> bool:
        """Abandon a pending request.

        Returns:
            True if a pending request was cancelled.
        """
        future = self._pending.pop(request_id, None)
        if future is None:
            return False
        cancelled = future.cancel()
        logger.debug("Cancelled request %d", request_id)
        return cancelled

    async def run(self, fn: Callable[..., T], /, *args: Any, timeout: float | None = None, **kwargs: Any) -> T:
        """Submit and wait in one step; the request is cancelled on timeout."""
        request_id = self.submit(fn, *args, **kwargs)
        try:
            result: T = await self.result(request_id, timeout=timeout)
        except TimeoutError:
            self.cancel(request_id)
            raise
        return result

    async def close(self) -> None:
        """Abandon pending requests and wait for running threads to finish."""
        for request_id in list(self._pending):
            self.cancel(request_id)
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
