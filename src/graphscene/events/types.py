"""Interaction signals emitted by the scene."""

from __future__ import annotations

import time
from dataclasses import dataclass, field


def _now() -> float:
    """Current timestamp."""
    return time.time()


@dataclass(frozen=True)
class BaseEvent:
    """Base class for all interaction signals.

    Attributes:
        name: Name of the node the signal is about.
        timestamp: Unix timestamp when the signal was created.
    """

    name: str
    timestamp: float = field(default_factory=_now, compare=False)

    #: Wire name of the signal, as the hosting shell knows it
    signal = ""


@dataclass(frozen=True)
class NodeToggleExpandEvent(BaseEvent):
    """Emitted on double click or expand-button click of a node."""

    signal = "node-toggle-expand"


@dataclass(frozen=True)
class NodeSelectEvent(BaseEvent):
    """Emitted when a node (or one of its annotations) is clicked."""

    signal = "node-select"


@dataclass(frozen=True)
class NodeHighlightEvent(BaseEvent):
    """Emitted when the pointer enters a collapsed node."""

    signal = "node-highlight"


@dataclass(frozen=True)
class NodeUnhighlightEvent(BaseEvent):
    """Emitted when the pointer leaves a collapsed node."""

    signal = "node-unhighlight"


@dataclass(frozen=True)
class NodeToggleExtractEvent(BaseEvent):
    """Emitted to move a node into or out of its parent's extract box."""

    signal = "node-toggle-extract"


@dataclass(frozen=True)
class NodeToggleSeriesGroupEvent(BaseEvent):
    """Emitted to group or ungroup a series.

    ``name`` is the series name, not the name of the node interacted with.
    """

    signal = "node-toggle-seriesgroup"


Event = (
    NodeToggleExpandEvent
    | NodeSelectEvent
    | NodeHighlightEvent
    | NodeUnhighlightEvent
    | NodeToggleExtractEvent
    | NodeToggleSeriesGroupEvent
)

SIGNALS: dict[str, type[BaseEvent]] = {
    cls.signal: cls
    for cls in (
        NodeToggleExpandEvent,
        NodeSelectEvent,
        NodeHighlightEvent,
        NodeUnhighlightEvent,
        NodeToggleExtractEvent,
        NodeToggleSeriesGroupEvent,
    )
}


def event_for_signal(signal: str, name: str) -> BaseEvent:
    """Build the event for a wire signal name.

    Raises:
        KeyError: If the signal is unknown
    """
    return SIGNALS[signal](name=name)
