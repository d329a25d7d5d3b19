"""
Single-threaded command loop.

Every state change of the controller (user commands and audio engine
events alike) is posted here as a message and executed one at a time,
so no two transitions ever interleave.
"""

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

_STOP = object()


class CommandLoop:
    """
    FIFO of callables with one consumer.

    Runs on its own daemon thread after ``start()``. Without a thread,
    ``run_pending()`` drains the queue on the calling thread.
    """

    def __init__(self, name: str = "PlaybackLoop"):
        self.name = name
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        """Post a message. The returned future resolves once it has run."""
        future: Future = Future()
        self._queue.put((future, fn, args))
        return future

    def run_pending(self) -> int:
        """Execute queued messages, including ones they post. Returns the count run."""
        count = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return count
            if item is _STOP:
                continue
            self._execute(item)
            count += 1

    def start(self) -> None:
        if self.running:
            return
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Finish the messages already queued, then end the thread."""
        if not self.running:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            self._execute(item)

    def _execute(self, item) -> None:
        future, fn, args = item
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args)
        except Exception:
            logger.exception(f"Unhandled error in {getattr(fn, '__name__', fn)!r}")
            future.set_result(None)
        else:
            future.set_result(result)
