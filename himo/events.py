"""Typed event buses and a broker that routes events to them by type."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")

EventHandler = Callable[[T], None]

_log = logging.getLogger(__name__)


def _type_key(tp: type) -> str:
    return f"{tp.__module__}.{tp.__qualname__}"


@runtime_checkable
class Publisher(Protocol):
    """Accepts events and names the event type it carries."""

    def publish(self, event: Any) -> None: ...

    def key(self) -> str: ...


def _run_in_background(handler: EventHandler[T]) -> EventHandler[T]:
    def run(event: T) -> None:
        try:
            handler(event)
        except Exception:
            _log.exception("async event handler failed")

    def start(event: T) -> None:
        threading.Thread(target=run, args=(event,), daemon=True).start()

    return start


class Bus(Generic[T]):
    """Delivers events of one type to every subscribed handler, in order."""

    def __init__(self, event_type: type[T]) -> None:
        self._event_type = event_type
        self._lock = threading.Lock()
        self._handlers: list[EventHandler[T]] = []
        self._async_wrapper: Callable[[EventHandler[T]], EventHandler[T]] = (
            _run_in_background
        )

    def subscribe(self, handler: EventHandler[T]) -> None:
        """Add a handler that runs during publish."""
        with self._lock:
            self._handlers.append(handler)

    def subscribe_async(self, handler: EventHandler[T]) -> None:
        """Add a handler wrapped by the async wrapper; by default it runs in a thread."""
        self.subscribe(self._async_wrapper(handler))

    def set_async_handler(
        self, wrapper: Callable[[EventHandler[T]], EventHandler[T]] | None
    ) -> None:
        """Replace the wrapper used by subscribe_async."""
        if wrapper is None:
            raise ValueError("nil async handler")
        self._async_wrapper = wrapper

    def publish(self, event: Any) -> None:
        """Run every handler; failures are gathered into one ExceptionGroup."""
        with self._lock:
            handlers = list(self._handlers)
        if not handlers:
            return
        if not isinstance(event, self._event_type):
            raise TypeError(f"invalid event type: {_type_key(type(event))}")
        errors: list[Exception] = []
        for handle in handlers:
            try:
                handle(event)
            except Exception as exc:
                errors.append(exc)
        if errors:
            raise ExceptionGroup("event handlers failed", errors)

    def key(self) -> str:
        """Return the name of the event type this bus carries."""
        return _type_key(self._event_type)


class Broker:
    """Routes each event to the bus registered for its exact type."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buses: dict[str, Publisher] = {}

    def register_bus(self, bus: Publisher) -> None:
        """Register a bus under its key, replacing any bus with the same key."""
        with self._lock:
            self._buses[bus.key()] = bus

    def publish(self, event: Any) -> None:
        """Publish the event on the bus for its type."""
        if event is None:
            raise ValueError("event is nil")
        key = _type_key(type(event))
        with self._lock:
            bus = self._buses.get(key)
        if bus is None:
            raise LookupError(f"event bus [{key}] not found")
        bus.publish(event)