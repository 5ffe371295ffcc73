"""Interaction signals and their processors."""

from graphscene.events.controller import SceneController
from graphscene.events.dispatcher import EventDispatcher
from graphscene.events.processor import (
    EventProcessor,
    RecordingProcessor,
    TypedEventProcessor,
)
from graphscene.events.types import (
    SIGNALS,
    BaseEvent,
    Event,
    NodeHighlightEvent,
    NodeSelectEvent,
    NodeToggleExpandEvent,
    NodeToggleExtractEvent,
    NodeToggleSeriesGroupEvent,
    NodeUnhighlightEvent,
    event_for_signal,
)

__all__ = [
    # Event types
    "BaseEvent",
    "Event",
    "NodeHighlightEvent",
    "NodeSelectEvent",
    "NodeToggleExpandEvent",
    "NodeToggleExtractEvent",
    "NodeToggleSeriesGroupEvent",
    "NodeUnhighlightEvent",
    "SIGNALS",
    "event_for_signal",
    # Processor interfaces
    "EventProcessor",
    "RecordingProcessor",
    "TypedEventProcessor",
    "SceneController",
    # Dispatcher
    "EventDispatcher",
]
