"""
Background execution for large layer computations.

Binning and clustering a full upstream query can take long enough to stall an
interactive caller. LayerWorker runs any processor on a thread pool with the
same call signature it has inline; processors share no mutable state, so no
extra locking is needed around them.

Usage:
    from oceanlayers.fields import generate_heatmap
    from oceanlayers.worker import LayerWorker

    with LayerWorker() as worker:
        future = worker.submit(generate_heatmap, rows, "temp")
        heatmap = future.result()

    # from async code
    heatmap = await worker.run(generate_heatmap, rows, "temp")
"""

import asyncio
import concurrent.futures
import functools
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Sequence

from oceanlayers.config import settings
from oceanlayers.records import ensure_rows

logger = logging.getLogger(__name__)


@dataclass
class LayerJob:
    """A keyed submission; superseded once a newer job is submitted under the same key."""
    key: str
    generation: int
    future: concurrent.futures.Future
    _worker: "LayerWorker"

    @property
    def is_current(self) -> bool:
        return self._worker.current_generation(self.key) == self.generation

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> Any:
        return self.future.result(timeout=timeout)


class LayerWorker:
    """Thread-pool runner for layer processors."""

    def __init__(self, max_workers: Optional[int] = None):
        self.max_workers = max_workers or settings.worker_max_workers
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="oceanlayers",
        )
        self._generations: Dict[str, int] = {}
        self._lock = Lock()

    @staticmethod
    def _snapshot(rows: Sequence[Mapping]) -> List[Mapping]:
        # Later mutation of the caller's list must not leak into a running job
        return list(ensure_rows(rows))

    def submit(self, fn: Callable, rows: Sequence[Mapping], *args, **kwargs) -> concurrent.futures.Future:
        """Run ``fn(rows, *args, **kwargs)`` on the pool."""
        snapshot = self._snapshot(rows)
        logger.debug(f"Submitting {getattr(fn, '__name__', fn)} over {len(snapshot)} rows")
        return self._executor.submit(fn, snapshot, *args, **kwargs)

    async def run(self, fn: Callable, rows: Sequence[Mapping], *args, **kwargs) -> Any:
        """Await ``fn(rows, *args, **kwargs)`` without blocking the event loop."""
        snapshot = self._snapshot(rows)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, functools.partial(fn, snapshot, *args, **kwargs)
        )

    def submit_latest(self, key: str, fn: Callable, rows: Sequence[Mapping], *args, **kwargs) -> LayerJob:
        """
        Submit under ``key``, superseding earlier submissions with that key.

        Superseded jobs still run to completion; callers check
        ``job.is_current`` before using a result.
        """
        future = self.submit(fn, rows, *args, **kwargs)
        with self._lock:
            generation = self._generations.get(key, 0) + 1
            self._generations[key] = generation
        return LayerJob(key=key, generation=generation, future=future, _worker=self)

    def current_generation(self, key: str) -> int:
        with self._lock:
            return self._generations.get(key, 0)

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "LayerWorker":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(wait=True)
