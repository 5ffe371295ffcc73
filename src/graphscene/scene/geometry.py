"""Positioning of scene elements from layout geometry.

Geometry comes from the layout collaborator through render info fields;
these helpers only translate it into element attributes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from graphscene.hierarchy.nodes import NodeType

if TYPE_CHECKING:
    from graphscene.render.info import RenderGroupNodeInfo, RenderNodeInfo
    from graphscene.scene.elements import SceneElement

EXPAND_BUTTON_RADIUS = 3
EXTRACT_X_OFFSET = 15


def _num(value: float) -> str:
    return f"{value:g}"


def translate(element: SceneElement | None, x: float, y: float) -> None:
    if element is not None:
        element.attr("transform", f"translate({_num(x)},{_num(y)})")


def position_rect(rect: SceneElement | None, cx: float, cy: float, width: float, height: float) -> None:
    """Place a rect by its center."""
    if rect is None:
        return
    rect.attr("x", cx - width / 2).attr("y", cy - height / 2)
    rect.attr("width", width).attr("height", height)


def position_ellipse(
    ellipse: SceneElement | None, cx: float, cy: float, width: float, height: float
) -> None:
    if ellipse is None:
        return
    ellipse.attr("cx", cx).attr("cy", cy).attr("rx", width / 2).attr("ry", height / 2)


def compute_cx_position_of_node_shape(info: RenderNodeInfo) -> float:
    """Horizontal center of a node's shape.

    Expanded groups are centered on the node. Collapsed nodes sit to the
    right of their in-annotation box.
    """
    if info.expanded:
        return info.x
    dx = info.inbox_width if len(info.in_annotations) else 0
    return info.x - info.width / 2 + dx + info.core_box["width"] / 2


def position_button(button: SceneElement, info: RenderNodeInfo) -> None:
    """Put the expand/collapse button in the top right corner of the shape."""
    cx = compute_cx_position_of_node_shape(info)
    width = info.width if info.expanded else info.core_box["width"]
    height = info.height if info.expanded else info.core_box["height"]
    x = cx + width / 2 - 6
    y = info.y - height / 2 + 6
    if info.node.type is NodeType.SERIES and not info.expanded:
        x += 10
        y -= 2
    for child in button.children:
        if child.tag == "path":
            translate(child, x, y)
        elif child.tag == "circle":
            child.attr("cx", x).attr("cy", y).attr("r", EXPAND_BUTTON_RADIUS)


def position_scene_group(scene_group: SceneElement, info: RenderGroupNodeInfo) -> None:
    """Offset the core below the group label and the extract boxes beside it."""
    y = 0 if info.node.type is NodeType.SERIES else info.label_height
    translate(scene_group.select_child("core"), 0, y)

    has_out_extract = bool(info.isolated_out_extract)
    core_width = info.core_box["width"]
    if info.isolated_in_extract:
        offset = EXTRACT_X_OFFSET if has_out_extract else 0
        translate(scene_group.select_child("in-extract"), core_width - offset, y)
    if has_out_extract:
        translate(scene_group.select_child("out-extract"), core_width, y)


def edge_path(points: list[tuple[float, float]]) -> str | None:
    """SVG path data for a polyline, None when there are no points."""
    if not points:
        return None
    head, *rest = points
    segments = [f"M{_num(head[0])},{_num(head[1])}"]
    segments += [f"L{_num(x)},{_num(y)}" for x, y in rest]
    return "".join(segments)
