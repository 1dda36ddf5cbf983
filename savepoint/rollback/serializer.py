"""
Mutation Serializer
~~~~~~~~~~~~~~~~~~~

A single-worker queue that runs one filesystem mutation at a time and
lets the caller block until it finishes.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from typing import Any, TypeVar

from savepoint.exceptions import OperationInterruptedError

__all__ = ["MutationSerializer"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MutationSerializer:
    """
    Runs submitted work on exactly one background thread, in order.

    ``run`` blocks the calling thread until its unit of work completes
    and re-raises whatever the work raised. Work submitted from the
    worker thread itself runs inline instead of deadlocking on the
    queue.
    """

    def __init__(self, name: str = "savepoint-mutation") -> None:
        self._worker_ident: int | None = None
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=name,
            initializer=self._bind_worker,
        )
        self._lock = threading.Lock()
        self._closed = False

    def _bind_worker(self) -> None:
        self._worker_ident = threading.get_ident()

    @property
    def closed(self) -> bool:
        return self._closed

    def in_worker(self) -> bool:
        """Return True when called from the worker thread."""
        return self._worker_ident == threading.get_ident()

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        """
        Queue ``fn`` behind every previously submitted unit of work.

        Raises:
            OperationInterruptedError: If the serializer has been closed.
        """
        with self._lock:
            if self._closed:
                raise OperationInterruptedError("Mutation worker has been shut down")
            try:
                return self._executor.submit(fn, *args, **kwargs)
            except RuntimeError as exc:
                raise OperationInterruptedError(
                    "Mutation worker has been shut down"
                ) from exc

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Submit ``fn`` and block until it has finished."""
        if self.in_worker():
            return fn(*args, **kwargs)
        future = self.submit(fn, *args, **kwargs)
        try:
            return future.result()
        except CancelledError as exc:
            raise OperationInterruptedError(
                "Operation was cancelled before it started"
            ) from exc

    async def run_async(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Async version of run; awaits the same queued unit of work."""
        future = self.submit(fn, *args, **kwargs)
        return await asyncio.wrap_future(future)

    def close(self, wait: bool = True) -> None:
        """
        Stop accepting work and shut the worker down.

        Work still queued behind the running unit is cancelled; its
        callers see OperationInterruptedError.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.debug("Mutation worker shut down")

    def __enter__(self) -> MutationSerializer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
