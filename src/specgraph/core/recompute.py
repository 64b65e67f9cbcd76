"""Latest-only recomputation for editors that revalidate as the user types.

Engine passes are pure, so an editor can run them off the UI thread and
throw stale results away. ``LatestOnlyRunner`` does exactly that: every
``submit`` starts a new generation, a still-queued older pass is cancelled,
and only the result of the most recently submitted pass is ever delivered.

Usage:
    from specgraph.core.recompute import LatestOnlyRunner
    from specgraph.core.validation import validate_spec

    with LatestOnlyRunner(on_result=render_issues) as runner:
        runner.submit(validate_spec, draft, snapshot)
        ...
        runner.submit(validate_spec, newer_draft, snapshot)  # supersedes the first
"""

from __future__ import annotations

import logging
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from enum import Enum
from threading import RLock
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 1


class RecomputeStatus(str, Enum):
    """Lifecycle of one submitted pass."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SUPERSEDED = "superseded"


class RecomputeTicket:
    """Handle for a submitted pass.

    Attributes:
        generation: Monotonic submission number, starting at 1
    """

    def __init__(self, runner: "LatestOnlyRunner", generation: int, future: Future) -> None:
        self._runner = runner
        self.generation = generation
        self._future = future

    @property
    def is_current(self) -> bool:
        """True while no newer pass has been submitted."""
        return self._runner.generation == self.generation

    @property
    def status(self) -> RecomputeStatus:
        if self._future.cancelled():
            return RecomputeStatus.CANCELLED
        if not self._future.done():
            if not self.is_current:
                return RecomputeStatus.SUPERSEDED
            return RecomputeStatus.RUNNING if self._future.running() else RecomputeStatus.PENDING
        if not self.is_current:
            return RecomputeStatus.SUPERSEDED
        if self._future.exception() is not None:
            return RecomputeStatus.FAILED
        return RecomputeStatus.COMPLETED

    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> bool:
        """Cancel the pass if it has not started yet."""
        return self._future.cancel()

    def result(self, timeout: Optional[float] = None) -> Any:
        """Wait for this pass and return its own result, stale or not.

        Raises:
            concurrent.futures.CancelledError: If the pass was cancelled
            Exception: Whatever the pass raised
        """
        return self._future.result(timeout=timeout)

    def __repr__(self) -> str:
        return f"RecomputeTicket(generation={self.generation}, status={self.status.value})"


class LatestOnlyRunner:
    """Runs passes on a thread pool and delivers only the newest result.

    A result is delivered (stored for ``latest()`` and handed to
    ``on_result``) only if no newer pass was submitted before it finished.
    Superseded results are discarded, never merged. Running passes are not
    interrupted; a superseded pass that is still queued is cancelled.

    Args:
        on_result: Called with each delivered result, on the worker thread
        on_error: Called with the exception of a current pass that failed
        pool_size: Worker threads (1 keeps passes strictly sequential)
    """

    def __init__(
        self,
        on_result: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
        pool_size: int = DEFAULT_POOL_SIZE,
    ) -> None:
        self._on_result = on_result
        self._on_error = on_error
        self._executor = ThreadPoolExecutor(
            max_workers=max(pool_size, 1), thread_name_prefix="specgraph-recompute"
        )
        self._lock = RLock()
        self._generation = 0
        self._pending: Optional[Future] = None
        self._latest: Any = None
        self._latest_generation = 0
        self._last_error: Optional[BaseException] = None
        self._closed = False

    @property
    def generation(self) -> int:
        """Number of the most recently submitted pass (0 before any)."""
        with self._lock:
            return self._generation

    @property
    def latest_generation(self) -> int:
        """Generation of the result returned by ``latest()`` (0 if none yet)."""
        with self._lock:
            return self._latest_generation

    @property
    def last_error(self) -> Optional[BaseException]:
        with self._lock:
            return self._last_error

    def latest(self) -> Any:
        """Most recent delivered result, or None."""
        with self._lock:
            return self._latest

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> RecomputeTicket:
        """Start a new pass, superseding any earlier one.

        Raises:
            RuntimeError: If the runner has been shut down
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("LatestOnlyRunner has been shut down")
            if self._pending is not None and self._pending.cancel():
                logger.debug("Cancelled queued pass %d", self._generation)
            self._generation += 1
            generation = self._generation
            future = self._executor.submit(fn, *args, **kwargs)
            self._pending = future

        future.add_done_callback(lambda done: self._deliver(generation, done))
        return RecomputeTicket(self, generation, future)

    def _deliver(self, generation: int, future: Future) -> None:
        # Callbacks run after the lock is released so they may call back into the runner.
        with self._lock:
            if generation != self._generation:
                logger.debug(
                    "Discarding stale pass %d (current: %d)", generation, self._generation
                )
                return
            try:
                result = future.result()
            except CancelledError:
                return
            except Exception as exc:
                self._last_error = exc
                logger.warning("Recompute pass %d failed: %s", generation, exc)
                callback, value = self._on_error, exc
            else:
                self._latest = result
                self._latest_generation = generation
                self._last_error = None
                callback, value = self._on_result, result

        if callback is not None:
            callback(value)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting passes; cancel a queued one and optionally wait for the rest."""
        with self._lock:
            self._closed = True
            if self._pending is not None:
                self._pending.cancel()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "LatestOnlyRunner":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown(wait=True)
