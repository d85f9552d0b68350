"""Run blocking work off the interactive thread."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


class BackgroundRunner:
    """Submit work to a worker thread; callers wait on the returned future."""

    def __init__(self, max_workers: int = 1, executor: Optional[ThreadPoolExecutor] = None) -> None:
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="lutim-upload"
        )

    def submit(self, fn: Callable[..., T], *args, **kwargs) -> "Future[T]":
        return self._executor.submit(fn, *args, **kwargs)

    def run_and_wait(self, fn: Callable[..., T], *args, **kwargs) -> T:
        """Run fn in the background and block until it finishes.

        Exceptions raised by fn propagate to the caller.
        """
        return self.submit(fn, *args, **kwargs).result()

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
