import logging
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

__all__ = ["Event", "DocumentEvents"]

T = TypeVar("T")

Listener = Callable[[T], Any]


class Event(Generic[T]):
    """A named stream of notifications fired synchronously to its listeners."""

    def __init__(self, name: str):
        self.name = name
        self._listeners: list[Listener[T]] = []

    def __len__(self):
        return len(self._listeners)

    def __repr__(self):
        return f"Event({self.name!r}, listeners={len(self._listeners)})"

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        """Attach a listener, returns a callable that detaches it again."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener[T]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear(self):
        self._listeners.clear()

    def fire(self, value: T):
        # Listeners may detach themselves while we iterate
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception as exc:
                tb = "\n".join(traceback.format_tb(exc.__traceback__))
                logging.error(
                    f"Listener {listener!r} of `{self.name}` failed: {type(exc).__name__} {exc}\n{tb}"
                )


def event_field(name: str) -> Any:
    return field(default_factory=lambda: Event(name))


@dataclass
class DocumentEvents:
    """Lifecycle streams published by the document manager."""

    created: Event[Any] = event_field("created")
    opened_on_client: Event[Any] = event_field("opened_on_client")
    opened_on_server: Event[Any] = event_field("opened_on_server")
    content_changed: Event[Any] = event_field("content_changed")
    closed: Event[Any] = event_field("closed")
    closed_on_client: Event[Any] = event_field("closed_on_client")
    closed_on_server: Event[Any] = event_field("closed_on_server")
    updated: Event[Any] = event_field("updated")

    def all(self) -> list[Event[Any]]:
        return [
            self.created,
            self.opened_on_client,
            self.opened_on_server,
            self.content_changed,
            self.closed,
            self.closed_on_client,
            self.closed_on_server,
            self.updated,
        ]

    def clear(self):
        for event in self.all():
            event.clear()
