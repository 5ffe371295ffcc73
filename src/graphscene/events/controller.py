"""Default host behaviour: route interaction signals back into the scene."""

from __future__ import annotations

from typing import TYPE_CHECKING

from graphscene.events.processor import TypedEventProcessor

if TYPE_CHECKING:
    from graphscene.events.types import (
        NodeHighlightEvent,
        NodeSelectEvent,
        NodeToggleExpandEvent,
        NodeToggleExtractEvent,
        NodeToggleSeriesGroupEvent,
        NodeUnhighlightEvent,
    )
    from graphscene.scene.scene import Scene


class SceneController(TypedEventProcessor):
    """Applies each signal to the scene that fired it.

    Example:
        >>> dispatcher = EventDispatcher([SceneController(scene), my_logger])
    """

    def __init__(self, scene: Scene) -> None:
        self.scene = scene

    def on_node_toggle_expand(self, event: NodeToggleExpandEvent) -> None:
        self.scene.toggle_expand(event.name)

    def on_node_select(self, event: NodeSelectEvent) -> None:
        self.scene.select_node(event.name)

    def on_node_highlight(self, event: NodeHighlightEvent) -> None:
        self.scene.highlight_node(event.name)

    def on_node_unhighlight(self, event: NodeUnhighlightEvent) -> None:
        self.scene.unhighlight_node(event.name)

    def on_node_toggle_extract(self, event: NodeToggleExtractEvent) -> None:
        self.scene.toggle_extract(event.name)

    def on_node_toggle_series_group(self, event: NodeToggleSeriesGroupEvent) -> None:
        self.scene.toggle_series_group(event.name)
