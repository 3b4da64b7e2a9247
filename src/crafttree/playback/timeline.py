"""
Deferred-callback timeline.

All reveal steps run on one Timeline: a single-threaded scheduler of
callbacks at points in time. The only suspension points are the delays
between callbacks, so there is never more than one callback running.

Two clocks are supported:
- virtual (default): time only moves when `advance` or `run_until` is
  called. Deterministic; used by tests and instant playback.
- realtime: time follows `time.monotonic()` and `run_until` sleeps
  until the next callback is due.

Other threads (e.g. a websocket reader) must not call into the
scheduled world directly. They hand callbacks over with
`call_soon_threadsafe`, which queues them for the timeline's thread.
"""

import heapq
import itertools
import logging
import queue
import threading
import time
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


class TimerHandle:
    """A scheduled callback. Cancelling it guarantees it will not run."""

    def __init__(self, when: float, seq: int, callback: Callable[..., Any], args: tuple):
        self.when = when
        self._seq = seq
        self._callback: Optional[Callable[..., Any]] = callback
        self._args = args
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        self._callback = None
        self._args = ()

    def _run(self) -> None:
        if self._cancelled or self._callback is None:
            return
        callback, args = self._callback, self._args
        self._callback = None
        callback(*args)

    def __lt__(self, other: "TimerHandle") -> bool:
        return (self.when, self._seq) < (other.when, other._seq)


class Timeline:
    """
    Single-threaded scheduler of deferred callbacks.

    Usage:
        timeline = Timeline()
        handle = timeline.call_later(0.5, print, "hello")
        timeline.advance(1.0)   # prints "hello"
    """

    def __init__(self, realtime: bool = False):
        self.realtime = realtime
        self._origin = time.monotonic()
        self._virtual_now = 0.0
        self._heap: List[TimerHandle] = []
        self._counter = itertools.count()
        self._inbox: "queue.SimpleQueue[tuple]" = queue.SimpleQueue()
        self._wakeup = threading.Event()

    @property
    def now(self) -> float:
        if self.realtime:
            return time.monotonic() - self._origin
        return self._virtual_now

    # =========================================================================
    # Scheduling
    # =========================================================================

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Schedule `callback(*args)` to run `delay` seconds from now."""
        handle = TimerHandle(self.now + max(0.0, delay), next(self._counter), callback, args)
        heapq.heappush(self._heap, handle)
        return handle

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        return self.call_later(0.0, callback, *args)

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue a callback from another thread; it runs on the timeline's next turn."""
        self._inbox.put((callback, args))
        self._wakeup.set()

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()

    @property
    def pending_count(self) -> int:
        """Callbacks that are still going to run."""
        return sum(1 for h in self._heap if not h.cancelled) + self._inbox.qsize()

    # =========================================================================
    # Running
    # =========================================================================

    def advance(self, seconds: float) -> None:
        """
        Move the virtual clock forward, running every callback that falls due.

        Raises:
            RuntimeError: If the timeline runs on the real clock.
        """
        if self.realtime:
            raise RuntimeError("advance() is only available on a virtual timeline")
        target = self._virtual_now + max(0.0, seconds)
        while True:
            self._drain_inbox()
            handle = self._peek()
            if handle is None or handle.when > target:
                break
            heapq.heappop(self._heap)
            self._virtual_now = max(self._virtual_now, handle.when)
            self._invoke(handle)
        self._virtual_now = target

    def run_until_idle(self) -> None:
        """Run until nothing is scheduled (virtual timeline: instantly)."""
        while True:
            self._drain_inbox()
            handle = self._peek()
            if handle is None:
                return
            if self.realtime and handle.when > self.now:
                self._wakeup.wait(handle.when - self.now)
                self._wakeup.clear()
                continue
            heapq.heappop(self._heap)
            if not self.realtime:
                self._virtual_now = max(self._virtual_now, handle.when)
            self._invoke(handle)

    def run_until(self, predicate: Callable[[], bool], timeout: Optional[float] = None) -> bool:
        """
        Run callbacks until `predicate()` is true, nothing is left to run,
        or `timeout` seconds of timeline time have passed.

        Returns the final value of `predicate()`.
        """
        deadline = None if timeout is None else self.now + timeout
        while not predicate():
            self._drain_inbox()
            if predicate():
                break
            handle = self._peek()

            if not self.realtime:
                if handle is None:
                    break
                if deadline is not None and handle.when > deadline:
                    self._virtual_now = deadline
                    break
                heapq.heappop(self._heap)
                self._virtual_now = max(self._virtual_now, handle.when)
                self._invoke(handle)
                continue

            now = self.now
            if deadline is not None and now >= deadline:
                break
            if handle is not None and handle.when <= now:
                heapq.heappop(self._heap)
                self._invoke(handle)
                continue

            wait = 0.1 if handle is None else handle.when - now
            if deadline is not None:
                wait = min(wait, deadline - now)
            self._wakeup.wait(max(0.0, wait))
            self._wakeup.clear()
        return predicate()

    def _peek(self) -> Optional[TimerHandle]:
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0] if self._heap else None

    def _drain_inbox(self) -> None:
        while True:
            try:
                callback, args = self._inbox.get_nowait()
            except queue.Empty:
                return
            handle = TimerHandle(self.now, next(self._counter), callback, args)
            self._invoke(handle)

    def _invoke(self, handle: TimerHandle) -> None:
        try:
            handle._run()
        except Exception as e:
            logger.error(f"Timeline callback failed: {e}", exc_info=True)
