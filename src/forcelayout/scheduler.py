"""
Cooperative single-threaded scheduler.

Deferred work (stabilization batches, the delayed `stabilized` event) is
queued with call_soon() and runs only when the host pumps the queue with
run_pending() or run_until_idle(). Nothing here uses threads or timers; the
host decides when control is handed back.
"""

from collections import deque
from typing import Any, Callable, Deque, Optional

from .logger import Logger


class Handle:
    """A queued callback. Cancelled handles are skipped when reached."""

    __slots__ = ("callback", "args", "cancelled", "label")

    def __init__(self, callback: Callable[..., Any], args: tuple, label: str = ""):
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.label = label

    def cancel(self) -> None:
        self.cancelled = True

    def run(self) -> None:
        self.callback(*self.args)


class CooperativeScheduler:

    def __init__(self, max_callbacks: Optional[int] = None):
        """
        Args:
            max_callbacks: Upper bound for a single run_until_idle() call.
                None means unbounded.
        """
        self._queue: Deque[Handle] = deque()
        self.max_callbacks = max_callbacks

    def call_soon(self, callback: Callable[..., Any], *args, label: str = "") -> Handle:
        handle = Handle(callback, args, label=label)
        self._queue.append(handle)
        return handle

    def cancel(self, handle: Optional[Handle]) -> None:
        if handle is not None:
            handle.cancel()

    @property
    def pending(self) -> int:
        return sum(1 for handle in self._queue if not handle.cancelled)

    def run_pending(self) -> int:
        """
        Run the callbacks queued before this call.

        Callbacks scheduled while running wait for the next pump, which is
        what makes call_soon() a real deferral.

        Returns:
            Number of callbacks executed.
        """
        executed = 0
        for _ in range(len(self._queue)):
            handle = self._queue.popleft()
            if handle.cancelled:
                continue
            handle.run()
            executed += 1
        return executed

    def run_until_idle(self) -> int:
        """Pump the queue until nothing is left to run. Returns the number of callbacks executed."""
        executed = 0
        while self._queue:
            executed += self.run_pending()
            if self.max_callbacks is not None and executed > self.max_callbacks:
                Logger.log(f"Scheduler exceeded {self.max_callbacks} callbacks",
                           Logger.LogPriority.ERROR, Logger.Component.SCHEDULER)
                raise RuntimeError(f"Scheduler did not become idle within {self.max_callbacks} callbacks")
        return executed

    def clear(self) -> None:
        for handle in self._queue:
            handle.cancel()
        self._queue.clear()
