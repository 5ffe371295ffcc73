"""Scene builder and input tracing over the render-state overlay."""

from graphscene.scene.elements import Class, SceneElement
from graphscene.scene.labels import (
    CharWidthMeasurer,
    FontScale,
    FontScaleCache,
    LabelFit,
    TextMeasurer,
    enforce_label_width,
    label_budget,
)
from graphscene.scene.node import (
    ColorBy,
    MenuItem,
    can_be_in_series,
    get_containing_series,
    get_fill_for_node,
    get_series_name,
    get_stroke_for_fill,
)
from graphscene.scene.scene import Scene
from graphscene.scene.trace import (
    TraceResult,
    get_all_contained_op_nodes,
    get_visible_parent,
    trace_all_inputs_of_op_node,
    trace_inputs,
)

__all__ = [
    "CharWidthMeasurer",
    "Class",
    "ColorBy",
    "FontScale",
    "FontScaleCache",
    "LabelFit",
    "MenuItem",
    "Scene",
    "SceneElement",
    "TextMeasurer",
    "TraceResult",
    "can_be_in_series",
    "enforce_label_width",
    "get_all_contained_op_nodes",
    "get_containing_series",
    "get_fill_for_node",
    "get_series_name",
    "get_stroke_for_fill",
    "get_visible_parent",
    "label_budget",
    "trace_all_inputs_of_op_node",
    "trace_inputs",
]
