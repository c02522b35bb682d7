from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from whispr.errors import PermissionDenied
from whispr.state.models import utc_now

logger = logging.getLogger(__name__)

_STOP = object()


@dataclass
class DeferredFailure:
    """A fire-and-forget write that failed after its caller already returned."""
    path: str
    operation: str  # create | update
    request_data: Dict[str, Any]
    error: BaseException
    occurred_at: str = field(default_factory=utc_now)

    @property
    def is_permission_error(self) -> bool:
        return isinstance(self.error, PermissionDenied)

    def summary(self) -> str:
        return f"{self.operation} {self.path} failed: {self.error}"


FailureHandler = Callable[[DeferredFailure], None]


class DeferredErrorChannel:
    """
    Process-wide notification path for failures of non-blocking writes.

    publish() never blocks the writer; a single reporting thread delivers each
    failure once to the current subscriber. There is no retry and no
    persistence, and a full queue drops the failure with a warning.
    """

    def __init__(self, maxsize: int = 100):
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._handler: Optional[FailureHandler] = None
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self.dropped = 0

    def subscribe(self, handler: FailureHandler) -> None:
        """Install the consumer. Only one is active; a new one replaces the old."""
        with self._lock:
            self._handler = handler

    def unsubscribe(self) -> None:
        with self._lock:
            self._handler = None

    def start(self) -> "DeferredErrorChannel":
        with self._lock:
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(
                    target=self._run, name="deferred-error-reporter", daemon=True
                )
                self._thread.start()
        return self

    def publish(self, failure: DeferredFailure) -> bool:
        try:
            self._queue.put_nowait(failure)
        except queue.Full:
            self.dropped += 1
            logger.warning("Deferred error channel full; dropping failure: %s", failure.summary())
            return False
        return True

    def drain(self, timeout: Optional[float] = None) -> None:
        """Block until every published failure has been handed to the subscriber."""
        if self._thread is None:
            self.start()
        if timeout is None:
            self._queue.join()
            return
        done = threading.Event()

        def _join():
            self._queue.join()
            done.set()

        threading.Thread(target=_join, daemon=True).start()
        done.wait(timeout)

    def close(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._queue.put(_STOP)
        thread.join()
        self._thread = None

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._deliver(item)
            finally:
                self._queue.task_done()

    def _deliver(self, failure: DeferredFailure) -> None:
        with self._lock:
            handler = self._handler
        if handler is None:
            logger.error("Unhandled deferred failure: %s", failure.summary())
            return
        try:
            handler(failure)
        except Exception:
            logger.exception("Deferred error subscriber raised while handling %s", failure.path)


_default: Optional[DeferredErrorChannel] = None
_default_lock = threading.Lock()


def default_channel(maxsize: int = 100) -> DeferredErrorChannel:
    """
    The process-wide channel, created and started on first use.
    maxsize only applies to that first call.
    """
    global _default
    with _default_lock:
        if _default is None:
            _default = DeferredErrorChannel(maxsize=maxsize).start()
        return _default
