"""Serial background worker that runs chart computations off the caller's thread.

One :class:`ChartWorker` backs one chart context. Requests run strictly in
submission order on a single thread, so responses arrive in request order and
need no sequence tags. Contexts that run concurrently must each own a worker;
:class:`WorkerPool` keeps that mapping.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Future, ThreadPoolExecutor
import copy
import logging
import threading
from typing import Any, Optional

from runalign.config import EngineConfig
from runalign.errors import TransportError
from runalign.logging_utils import log_exception
from runalign.pipeline import run_chart_request
from runalign.protocol import error_payload


class ChartWorker:
    def __init__(
        self,
        *,
        config: Optional[EngineConfig] = None,
        name: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.name = name or self.config.worker_name_prefix
        self._logger = logger or logging.getLogger("runalign.worker")
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=self.name
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, request: Any) -> "Future[dict[str, Any]]":
        """Queue ``request``; the returned future always resolves to a payload.

        The request is deep-copied before this call returns, so the caller may
        keep mutating its runs afterwards.
        """
        if self._closed:
            raise TransportError(f"Chart worker {self.name!r} is closed.")
        try:
            snapshot = copy.deepcopy(request)
        except Exception as exc:
            failure = TransportError(
                f"Failed to copy chart request: {exc}",
                context={"worker": self.name},
            )
            log_exception(self._logger, failure)
            future: "Future[dict[str, Any]]" = Future()
            future.set_result(error_payload(failure))
            return future
        return self._executor.submit(self._handle, snapshot)

    def _handle(self, snapshot: Any) -> dict[str, Any]:
        try:
            return run_chart_request(snapshot, config=self.config)
        except Exception as exc:
            log_exception(self._logger, exc)
            return error_payload(exc)

    def process_sync(self, request: Any) -> dict[str, Any]:
        return self.submit(request).result()

    async def process(self, request: Any) -> dict[str, Any]:
        return await asyncio.wrap_future(self.submit(request))

    def close(self, *, wait: bool = True) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ChartWorker":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class WorkerPool:
    """One independent :class:`ChartWorker` per chart context id."""

    def __init__(self, *, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()
        self._workers: dict[str, ChartWorker] = {}
        self._lock = threading.Lock()

    def worker_for(self, context_id: str) -> ChartWorker:
        if not isinstance(context_id, str) or not context_id.strip():
            raise TypeError("context_id must be a non-empty string.")
        with self._lock:
            worker = self._workers.get(context_id)
            if worker is None or worker.closed:
                worker = ChartWorker(
                    config=self.config,
                    name=f"{self.config.worker_name_prefix}-{context_id}",
                )
                self._workers[context_id] = worker
            return worker

    def submit(self, context_id: str, request: Any) -> "Future[dict[str, Any]]":
        return self.worker_for(context_id).submit(request)

    def contexts(self) -> list[str]:
        with self._lock:
            return sorted(self._workers)

    def discard(self, context_id: str, *, wait: bool = False) -> None:
        with self._lock:
            worker = self._workers.pop(context_id, None)
        if worker is not None:
            worker.close(wait=wait)

    def close(self) -> None:
        with self._lock:
            workers = list(self._workers.values())
            self._workers.clear()
        for worker in workers:
            worker.close()

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = ["ChartWorker", "WorkerPool"]
