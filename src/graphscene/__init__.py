"""graphscene - Expandable scene rendering and input tracing for hierarchical computation graphs."""

from graphscene.config import SceneConfig, load_config
from graphscene.events import (
    BaseEvent,
    Event,
    EventDispatcher,
    EventProcessor,
    NodeHighlightEvent,
    NodeSelectEvent,
    NodeToggleExpandEvent,
    NodeToggleExtractEvent,
    NodeToggleSeriesGroupEvent,
    NodeUnhighlightEvent,
    RecordingProcessor,
    SceneController,
    TypedEventProcessor,
)
from graphscene.exceptions import (
    HierarchyError,
    NodeNotFoundError,
    UnknownColorModeError,
    UnknownNodeTypeError,
)
from graphscene.hierarchy import (
    ROOT_NAME,
    BridgeNode,
    EllipsisNode,
    Hierarchy,
    HierarchyBuilder,
    Include,
    Metanode,
    NodeInput,
    NodeType,
    OpNode,
    SeriesNode,
    get_strict_name,
)
from graphscene.render import RenderGraphInfo, RenderGroupNodeInfo, RenderNodeInfo
from graphscene.scene import (
    Class,
    ColorBy,
    Scene,
    SceneElement,
    TraceResult,
    get_visible_parent,
    trace_inputs,
)

__all__ = [
    # Hierarchy
    "ROOT_NAME",
    "BridgeNode",
    "EllipsisNode",
    "Hierarchy",
    "HierarchyBuilder",
    "Include",
    "Metanode",
    "NodeInput",
    "NodeType",
    "OpNode",
    "SeriesNode",
    "get_strict_name",
    # Render state
    "RenderGraphInfo",
    "RenderGroupNodeInfo",
    "RenderNodeInfo",
    # Scene
    "Class",
    "ColorBy",
    "Scene",
    "SceneElement",
    "TraceResult",
    "get_visible_parent",
    "trace_inputs",
    # Config
    "SceneConfig",
    "load_config",
    # Errors
    "HierarchyError",
    "NodeNotFoundError",
    "UnknownColorModeError",
    "UnknownNodeTypeError",
    # Events
    "BaseEvent",
    "Event",
    "EventDispatcher",
    "EventProcessor",
    "TypedEventProcessor",
    "RecordingProcessor",
    "SceneController",
    "NodeHighlightEvent",
    "NodeSelectEvent",
    "NodeToggleExpandEvent",
    "NodeToggleExtractEvent",
    "NodeToggleSeriesGroupEvent",
    "NodeUnhighlightEvent",
]
