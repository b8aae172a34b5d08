"""Minimal ordered event emitter used by the session controller."""

from __future__ import annotations

from typing import Any, Callable, Iterable

from ..domain.errors import InvalidArgument

Listener = Callable[..., Any]


class EventEmitter:
    def __init__(self, event_names: Iterable[str], logger) -> None:
        self._listeners: dict[str, list[Listener]] = {name: [] for name in event_names}
        self.logger = logger

    def on(self, event: str, callback: Listener) -> Callable[[], None]:
        if event not in self._listeners:
            raise InvalidArgument(f"Unknown session event: {event!r}")
        if not callable(callback):
            raise InvalidArgument(f"Listener for {event!r} is not callable")
        self._listeners[event].append(callback)

        def unsubscribe() -> None:
            callbacks = self._listeners.get(event)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def emit(self, event: str, *args: Any) -> None:
        # Copy so listeners may unsubscribe while being dispatched.
        for callback in list(self._listeners.get(event, ())):
            try:
                callback(*args)
            except Exception:
                self.logger.exception("Listener for %s failed", event)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def clear(self) -> None:
        for callbacks in self._listeners.values():
            callbacks.clear()
