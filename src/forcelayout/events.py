"""
Notification channel between the engine and its host.

The engine only depends on the NotificationSink protocol (a single emit()
method). EventBus is the default in-process implementation: listeners are
called synchronously in subscription order and every emitted event is kept
in `history` so hosts and tests can inspect what happened.
"""

from typing import Callable, Dict, List, Optional, Protocol, Tuple

from .logger import Logger


class Events:
    """Names of the notifications emitted by the engine."""
    START_STABILIZING = "start_stabilizing"
    STABILIZATION_PROGRESS = "stabilization_progress"
    STABILIZATION_ITERATIONS_DONE = "stabilization_iterations_done"
    STABILIZED = "stabilized"
    FIT = "fit"
    REQUEST_REDRAW = "request_redraw"
    BLOCK_REDRAW = "block_redraw"
    ALLOW_REDRAW = "allow_redraw"
    START_RENDERING = "start_rendering"
    STOP_RENDERING = "stop_rendering"
    RESIZE_NODES = "resize_nodes"
    REDRAW = "redraw"


Listener = Callable[[Optional[dict]], None]


class NotificationSink(Protocol):
    def emit(self, name: str, payload: Optional[dict] = None) -> None:
        ...


class EventBus:
    """
    Synchronous publish/subscribe bus.

    Usage:
        bus = EventBus()
        bus.on(Events.STABILIZED, lambda payload: print(payload["iterations"]))
        engine = PhysicsEngine(body, sink=bus)
    """

    def __init__(self, keep_history: bool = True):
        self._listeners: Dict[str, List[Listener]] = {}
        self.keep_history = keep_history
        self.history: List[Tuple[str, Optional[dict]]] = []

    def on(self, name: str, listener: Listener) -> "EventBus":
        self._listeners.setdefault(name, []).append(listener)
        return self

    def off(self, name: Optional[str] = None, listener: Optional[Listener] = None) -> "EventBus":
        """
        Unsubscribe.

        off() drops every listener, off(name) every listener of one event,
        off(name, listener) a single subscription.
        """
        if name is None:
            self._listeners.clear()
        elif listener is None:
            self._listeners.pop(name, None)
        else:
            listeners = self._listeners.get(name, [])
            if listener in listeners:
                listeners.remove(listener)
        return self

    def emit(self, name: str, payload: Optional[dict] = None) -> None:
        if self.keep_history:
            self.history.append((name, payload))
        # copy: a listener may unsubscribe itself
        for listener in list(self._listeners.get(name, ())):
            listener(payload)

    def count(self, name: str) -> int:
        """Number of times an event appears in the history."""
        return sum(1 for event_name, _ in self.history if event_name == name)

    def payloads(self, name: str) -> List[Optional[dict]]:
        return [payload for event_name, payload in self.history if event_name == name]

    def clear_history(self) -> None:
        self.history.clear()


class NullSink:
    """Sink that drops every notification (headless runs)."""

    def emit(self, name: str, payload: Optional[dict] = None) -> None:
        Logger.log(f"Notification {name} dropped: {payload}", component=Logger.Component.EVENTS)
