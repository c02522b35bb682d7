from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Optional, Set

from whispr.utils.deferred import DeferredErrorChannel, DeferredFailure

logger = logging.getLogger(__name__)


class BackgroundWriter:
    """
    Runs store and audit writes without making the caller wait for them.
    A write that raises is turned into a DeferredFailure on the channel; the
    exception never reaches the code that submitted it.
    """

    def __init__(self, channel: DeferredErrorChannel, max_workers: int = 4):
        self.channel = channel
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="whispr-writer")
        self._lock = threading.Lock()
        self._pending: Set[Future] = set()

    def submit(
        self,
        fn: Callable[[], Any],
        *,
        path: str,
        operation: str,
        request_data: Optional[Dict[str, Any]] = None,
    ) -> Future:
        future = self.executor.submit(self._run, fn, path, operation, request_data or {})
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _run(self, fn: Callable[[], Any], path: str, operation: str, request_data: Dict[str, Any]) -> bool:
        try:
            fn()
        except Exception as e:
            logger.warning("Background %s of %s failed: %s", operation, path, e)
            self.channel.publish(
                DeferredFailure(path=path, operation=operation, request_data=request_data, error=e)
            )
            return False
        return True

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for every write submitted so far, including ones they chain."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = set(self._pending)
            if not pending:
                return
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return
            wait(pending, timeout=remaining)

    def shutdown(self) -> None:
        self.executor.shutdown(wait=True)
