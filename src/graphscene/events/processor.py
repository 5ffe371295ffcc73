"""Event processor base classes."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from graphscene.events.types import (
        Event,
        NodeHighlightEvent,
        NodeSelectEvent,
        NodeToggleExpandEvent,
        NodeToggleExtractEvent,
        NodeToggleSeriesGroupEvent,
        NodeUnhighlightEvent,
    )


# Mapping from event class name to handler method name.
_EVENT_METHOD_MAP: dict[str, str] = {
    "NodeToggleExpandEvent": "on_node_toggle_expand",
    "NodeSelectEvent": "on_node_select",
    "NodeHighlightEvent": "on_node_highlight",
    "NodeUnhighlightEvent": "on_node_unhighlight",
    "NodeToggleExtractEvent": "on_node_toggle_extract",
    "NodeToggleSeriesGroupEvent": "on_node_toggle_series_group",
}


class EventProcessor:
    """Base class for signal consumers.

    Subclass and override ``on_event`` to receive all signals,
    or use ``TypedEventProcessor`` for per-type dispatch.
    """

    def on_event(self, event: Event) -> None:
        """Called for every signal. Override in subclasses."""

    def shutdown(self) -> None:
        """Called once when the scene is discarded. Override to release resources."""


class TypedEventProcessor(EventProcessor):
    """Dispatches ``on_event`` to typed handler methods automatically.

    Override any of the ``on_*`` methods below to handle specific signals.
    Unhandled signals are silently ignored.
    """

    def on_event(self, event: Event) -> None:
        method_name = _EVENT_METHOD_MAP.get(type(event).__name__)
        if method_name is not None:
            method = getattr(self, method_name, None)
            if method is not None:
                method(event)

    def on_node_toggle_expand(self, event: NodeToggleExpandEvent) -> None: ...
    def on_node_select(self, event: NodeSelectEvent) -> None: ...
    def on_node_highlight(self, event: NodeHighlightEvent) -> None: ...
    def on_node_unhighlight(self, event: NodeUnhighlightEvent) -> None: ...
    def on_node_toggle_extract(self, event: NodeToggleExtractEvent) -> None: ...
    def on_node_toggle_series_group(self, event: NodeToggleSeriesGroupEvent) -> None: ...


class RecordingProcessor(EventProcessor):
    """Keeps every signal it receives, in order."""

    def __init__(self) -> None:
        self.events: list[Event] = []
        self.closed = False

    def on_event(self, event: Event) -> None:
        self.events.append(event)

    @property
    def signals(self) -> list[tuple[str, str]]:
        """(signal, name) pairs of the received events."""
        return [(event.signal, event.name) for event in self.events]

    def shutdown(self) -> None:
        self.closed = True
