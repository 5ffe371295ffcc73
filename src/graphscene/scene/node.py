"""Node groups of the scene.

Every rendered node is a ``g.node`` element inside its scene's
``g.nodes`` container::

    <g class="node op|meta|series|bridge" data-name="...">
      <g class="in-annotations">...</g>
      <g class="out-annotations">...</g>
      <g class="nodeshape">...</g>       background of the node
      <g class="subscene">...</g>        expanded groups only
      <text class="nodelabel">...</text> always last, painted on top
    </g>
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from graphscene.events.types import (
    NodeHighlightEvent,
    NodeSelectEvent,
    NodeToggleExpandEvent,
    NodeToggleExtractEvent,
    NodeToggleSeriesGroupEvent,
    NodeUnhighlightEvent,
)
from graphscene.exceptions import UnknownColorModeError, UnknownNodeTypeError
from graphscene.hierarchy.nodes import (
    BridgeNode,
    Include,
    Metanode,
    Node,
    NodeType,
    OpNode,
    SeriesNode,
)
from graphscene.render.colors import (
    BRIDGE_INBOUND,
    BRIDGE_OUTBOUND,
    BRIDGE_STRUCTURAL,
    WHITE,
    MetanodeColors,
    darker,
    structure_palette,
)
from graphscene.render.info import RenderGroupNodeInfo, RenderNodeInfo
from graphscene.scene import annotation
from graphscene.scene.elements import Class, SceneElement
from graphscene.scene.geometry import (
    compute_cx_position_of_node_shape,
    position_button,
    position_ellipse,
    position_rect,
    translate,
)
from graphscene.scene.labels import enforce_label_width, label_budget, shorten_metanode_label

if TYPE_CHECKING:
    from graphscene.scene.scene import Scene

logger = logging.getLogger(__name__)


def node_key(info: RenderNodeInfo) -> str:
    """Join key of a node group. Including the type avoids swapping shapes in place."""
    return f"{info.node.name}:{info.node.type.value}"


def build_group(
    scene_group: SceneElement,
    node_data: list[RenderNodeInfo],
    scene: Scene,
) -> list[SceneElement]:
    """Join ``node_data`` with the node groups of ``scene_group``.

    New keys enter (create and index the group), present keys are updated
    in place and keys no longer present exit (deregister and remove).

    Returns:
        The node groups, in ``node_data`` order
    """
    container = scene_group.select_or_create_child("g", Class.Node.CONTAINER)
    existing = {node_key(el.data): el for el in container.children}

    node_groups: list[SceneElement] = []
    for info in node_data:
        node_group = existing.pop(node_key(info), None)
        if node_group is None:
            # ENTER
            node_group = container.append("g")
            node_group.attr("data-name", info.name)
            scene.add_node_group(info.name, node_group)
        node_group.data = info
        node_groups.append(node_group)

    # EXIT
    for node_group in existing.values():
        _exit(node_group, scene)

    # UPDATE
    for node_group, info in zip(node_groups, node_data):
        update(node_group, info, scene)
    return node_groups


def _exit(node_group: SceneElement, scene: Scene) -> None:
    info: RenderNodeInfo = node_group.data
    scene.remove_node_group(info.name, node_group)
    for box in (Class.Annotation.INBOX, Class.Annotation.OUTBOX):
        annotation_box = node_group.select_child(box)
        if annotation_box is not None:
            for annotation_group in annotation_box.select_children(Class.Annotation.GROUP):
                scene.remove_annotation_group(annotation_group.data, info, annotation_group)
    subscene = node_group.select_child(Class.Subscene.GROUP)
    if subscene is not None:
        scene.deregister_subtree(subscene)
    node_group.remove()


def update(node_group: SceneElement, info: RenderNodeInfo, scene: Scene) -> None:
    """Rebuild one node group from its render info.

    Shape comes before the subscene and the label after both, so the
    label always paints on top.
    """
    node_group.data = info
    node_group.set_classes(Class.Node.GROUP, node_class(info))

    # Annotation boxes always exist to keep layer order stable
    in_box = node_group.select_or_create_child("g", Class.Annotation.INBOX)
    annotation.build_group(in_box, info.in_annotations, info, scene)
    out_box = node_group.select_or_create_child("g", Class.Annotation.OUTBOX)
    annotation.build_group(out_box, info.out_annotations, info, scene)

    shape = build_shape(node_group, info, Class.Node.SHAPE)
    if info.node.is_group_node:
        add_button(shape, info, scene)
    add_interaction(shape, info, scene)

    subscene_build(node_group, info, scene)

    label = label_build(node_group, info, scene)
    # Metanode labels sit inside the shape, which already has the interactions
    add_interaction(label, info, scene, disable_interaction=info.node.type is NodeType.META)

    stylize(node_group, info, scene)
    position(node_group, info)


def subscene_build(
    node_group: SceneElement, info: RenderNodeInfo, scene: Scene
) -> SceneElement | None:
    """Build the subscene of an expanded group, or tear it down when collapsed.

    Returns:
        The subscene group, or None for ops, bridges and collapsed groups
    """
    if not info.node.is_group_node:
        return None
    if info.expanded:
        assert isinstance(info, RenderGroupNodeInfo)
        return scene.build_group(node_group, info, Class.Subscene.GROUP)
    subscene = node_group.select_child(Class.Subscene.GROUP)
    if subscene is not None:
        scene.deregister_subtree(subscene)
        subscene.remove()
    return None


def _subscene_position(node_group: SceneElement, info: RenderNodeInfo) -> None:
    x0 = info.x - info.width / 2 + info.padding_left
    y0 = info.y - info.height / 2 + info.padding_top
    translate(node_group.select_child(Class.Subscene.GROUP), x0, y0)


def add_button(shape: SceneElement, info: RenderNodeInfo, scene: Scene) -> None:
    """Add the expand/collapse button to a group node's shape."""
    group = shape.select_or_create_child("g", Class.Node.BUTTON_CONTAINER)
    group.data = info
    group.select_or_create_child("circle", Class.Node.BUTTON_CIRCLE)
    group.select_or_create_child("path", Class.Node.EXPAND_BUTTON).attr(
        "d", "M0,-2.2 V2.2 M-2.2,0 H2.2"
    )
    group.select_or_create_child("path", Class.Node.COLLAPSE_BUTTON).attr("d", "M-2.2,0 H2.2")
    group.on("click", lambda d: scene.fire(NodeToggleExpandEvent(name=d.node.name)))
    position_button(group, info)


def add_interaction(
    selection: SceneElement,
    info: RenderNodeInfo,
    scene: Scene,
    disable_interaction: bool = False,
) -> None:
    """Fire node-* signals when the element is interacted with.

    With ``disable_interaction`` the element ignores pointer events.
    """
    selection.data = info
    if disable_interaction:
        selection.attr("pointer-events", "none")
        return

    def on_mouseover(d: RenderNodeInfo) -> None:
        # Expanded groups do not highlight, their children do
        if not scene.is_node_expanded(d):
            scene.fire(NodeHighlightEvent(name=d.node.name))

    def on_mouseout(d: RenderNodeInfo) -> None:
        if not scene.is_node_expanded(d):
            scene.fire(NodeUnhighlightEvent(name=d.node.name))

    def on_contextmenu(d: RenderNodeInfo) -> None:
        scene.fire(NodeSelectEvent(name=d.node.name))
        scene.context_menu = get_context_menu(d.node, scene)

    selection.on("dblclick", lambda d: scene.fire(NodeToggleExpandEvent(name=d.node.name)))
    selection.on("mouseover", on_mouseover)
    selection.on("mouseout", on_mouseout)
    selection.on("click", lambda d: scene.fire(NodeSelectEvent(name=d.node.name)))
    selection.on("contextmenu", on_contextmenu)


# =============================================================================
# Context menu and series helpers
# =============================================================================


@dataclass(frozen=True)
class MenuItem:
    """A context menu entry; the host draws it and calls ``action`` on click."""

    title: str
    action: Callable[[], None]


def get_include_node_button_string(include: Include) -> str:
    if include is Include.EXCLUDE:
        return "Add to main graph"
    return "Remove from main graph"


def get_group_setting_label(node: Node) -> str:
    if get_containing_series(node) is not None:
        return "Ungroup this series of nodes"
    return "Group this series of nodes"


def get_context_menu(node: Node, scene: Scene) -> list[MenuItem]:
    """Menu entries for a node: toggle extraction, and series grouping when possible."""
    menu = [
        MenuItem(
            get_include_node_button_string(node.include),
            lambda: scene.fire(NodeToggleExtractEvent(name=node.name)),
        )
    ]
    series_name = get_series_name(node)
    if series_name is not None:
        menu.append(
            MenuItem(
                get_group_setting_label(node),
                lambda: scene.fire(NodeToggleSeriesGroupEvent(name=series_name)),
            )
        )
    return menu


def can_be_in_series(node: Node | None) -> bool:
    return get_series_name(node) is not None


def get_series_name(node: Node | None) -> str | None:
    """Name of the series that may group this node, or None."""
    if node is None:
        return None
    if node.type is NodeType.SERIES:
        return node.name
    if node.type is NodeType.OP:
        assert isinstance(node, OpNode)
        return node.owning_series
    return None


def get_containing_series(node: Node | None) -> SeriesNode | None:
    """The series this node is drawn in (itself for a series node), or None."""
    if node is None:
        return None
    if isinstance(node, SeriesNode):
        return node
    if isinstance(node.parent, SeriesNode):
        return node.parent
    return None


# =============================================================================
# Label
# =============================================================================


def label_build(node_group: SceneElement, info: RenderNodeInfo, scene: Scene) -> SceneElement:
    """Create or refresh the label and move it to the top of the group."""
    config = scene.config
    text = info.display_name
    use_font_scale = info.node.type is NodeType.META and not info.expanded

    label = node_group.select_or_create_child("text", Class.Node.LABEL)
    label.raise_to_top()
    label.attr("dy", ".35em").attr("text-anchor", "middle")

    font_size = config.label_font_size
    if use_font_scale:
        text = shorten_metanode_label(text, config.max_metanode_label_length)
        font_size = scene.font_scale_cache.get(config)(len(text))
        label.attr("font-size", f"{font_size:g}px")
    else:
        label.attr("font-size", None)

    fit = enforce_label_width(
        text,
        label_budget(config, info.node.type, info.expanded),
        scene.measurer,
        font_size,
    )
    label.text = fit.text
    for title in [c for c in label.children if c.tag == "title"]:
        title.remove()
    if fit.truncated:
        label.append("title").text = fit.full_text
    return label


def _label_position(node_group: SceneElement, cx: float, cy: float, y_offset: float) -> None:
    label = node_group.select_child(Class.Node.LABEL)
    if label is not None:
        label.attr("x", cx).attr("y", cy + y_offset)


# =============================================================================
# Shape, class and position (exhaustive over NodeType)
# =============================================================================


def _child_by_tag(parent: SceneElement | None, tag: str) -> SceneElement | None:
    if parent is None:
        return None
    return next((c for c in parent.children if c.tag == tag), None)


def build_shape(node_group: SceneElement, info: RenderNodeInfo, node_class: str) -> SceneElement:
    """Select or create the shape group of a node.

    Raises:
        UnknownNodeTypeError: For node types without a shape
    """
    shape_group = node_group.select_or_create_child("g", node_class)
    shape_group.data = info
    node_type = info.node.type
    if node_type is NodeType.OP:
        shape_group.select_or_create_child("ellipse", Class.Node.COLOR_TARGET)
    elif node_type is NodeType.SERIES:
        # Pick the stamp drawn for a collapsed series
        if node_class == Class.Annotation.NODE:
            stamp = "annotation"
        else:
            assert isinstance(info.node, SeriesNode)
            stamp = "vertical" if info.node.has_non_control_edges else "horizontal"
        use = _child_by_tag(shape_group, "use") or shape_group.append("use", Class.Node.COLOR_TARGET)
        use.classed("faded-ellipse", info.is_faded_out)
        use.attr("xlink:href", f"#op-series-{stamp}-stamp")
        rect = shape_group.select_or_create_child("rect", Class.Node.COLOR_TARGET)
        rect.attr("rx", info.radius).attr("ry", info.radius)
    elif node_type is NodeType.BRIDGE or node_type is NodeType.META:
        rect = shape_group.select_or_create_child("rect", Class.Node.COLOR_TARGET)
        rect.attr("rx", info.radius).attr("ry", info.radius)
    else:
        raise UnknownNodeTypeError(node_type, info.node.name)
    return shape_group


def node_class(info: RenderNodeInfo) -> str:
    """CSS class of a node group for its type.

    Raises:
        UnknownNodeTypeError: For node types without a class
    """
    node_type = info.node.type
    if node_type is NodeType.OP:
        return Class.OPNODE
    elif node_type is NodeType.META:
        return Class.METANODE
    elif node_type is NodeType.SERIES:
        return Class.SERIESNODE
    elif node_type is NodeType.BRIDGE:
        return Class.BRIDGENODE
    elif node_type is NodeType.ELLIPSIS:
        return Class.ELLIPSISNODE
    raise UnknownNodeTypeError(node_type, info.node.name)


def position(node_group: SceneElement, info: RenderNodeInfo) -> None:
    """Apply layout geometry to the shape, subscene and label.

    Raises:
        UnknownNodeTypeError: For node types without a position rule
    """
    shape_group = node_group.select_child(Class.Node.SHAPE)
    cx = compute_cx_position_of_node_shape(info)
    node_type = info.node.type
    core_width, core_height = info.core_box["width"], info.core_box["height"]

    if node_type is NodeType.OP:
        shape = _child_by_tag(shape_group, "ellipse")
        position_ellipse(shape, cx, info.y, core_width, core_height)
        _label_position(node_group, cx, info.y, info.label_offset)
    elif node_type is NodeType.META or node_type is NodeType.SERIES:
        tag = "rect" if node_type is NodeType.META else "use"
        shape = _child_by_tag(shape_group, tag)
        if info.expanded:
            position_rect(shape, info.x, info.y, info.width, info.height)
            _subscene_position(node_group, info)
            # Label at the top of the expanded box
            _label_position(node_group, cx, info.y, -info.height / 2 + info.label_height / 2)
        else:
            position_rect(shape, cx, info.y, core_width, core_height)
            offset = 0 if node_type is NodeType.META else info.label_offset
            _label_position(node_group, cx, info.y, offset)
    elif node_type is NodeType.BRIDGE:
        # Not visible; positioned for debugging
        shape = _child_by_tag(shape_group, "rect")
        position_rect(shape, info.x, info.y, info.width, info.height)
    else:
        raise UnknownNodeTypeError(node_type, info.node.name)


# =============================================================================
# Color
# =============================================================================


class ColorBy(Enum):
    """What node fills encode."""

    STRUCTURE = "structure"
    DEVICE = "device"
    XLA_CLUSTER = "xla_cluster"
    COMPUTE_TIME = "compute_time"
    MEMORY = "memory"

    @classmethod
    def parse(cls, value: ColorBy | str) -> ColorBy:
        """Accept a member or its (case-insensitive) value.

        Raises:
            UnknownColorModeError: If the value names no mode
        """
        if isinstance(value, ColorBy):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnknownColorModeError(value) from None


_QUERY_SELECTOR_SPECIAL = re.compile(r"([:.\[\],/\\()])")


def escape_query_selector(selector: str) -> str:
    """Backslash-escape characters with a meaning in CSS selectors."""
    return _QUERY_SELECTOR_SPECIAL.sub(r"\\\1", selector)


def _register_gradient(
    gradient_defs: dict[str, list[tuple[float, str]]],
    gradient_id: str,
    device_colors: list[tuple[str, float]],
) -> None:
    if gradient_id in gradient_defs:
        return
    stops: list[tuple[float, str]] = []
    cumulative = 0.0
    # Two stops per device give hard color bands
    for color, proportion in device_colors:
        stops.append((cumulative, color))
        stops.append((cumulative + proportion, color))
        cumulative += proportion
    gradient_defs[gradient_id] = stops


def get_fill_for_node(
    template_index: Callable[[str], int],
    color_by: ColorBy,
    info: RenderNodeInfo,
    is_expanded: bool,
    gradient_defs: dict[str, list[tuple[float, str]]] | None = None,
) -> str:
    """Fill color of a node for a color mode.

    In DEVICE mode a gradient definition is registered in ``gradient_defs``
    (keyed by node name) and a ``url(#...)`` reference is returned.

    Raises:
        UnknownColorModeError: If ``color_by`` is not a ColorBy member
        UnknownNodeTypeError: For STRUCTURE mode on an unknown node type
    """
    colors = MetanodeColors
    node = info.node
    if color_by is ColorBy.STRUCTURE:
        if node.type is NodeType.META:
            assert isinstance(node, Metanode)
            if node.template_id is None:
                return colors.UNKNOWN
            return structure_palette(template_index(node.template_id), is_expanded)
        elif node.type is NodeType.SERIES:
            # Expanded shows the gray background rect; collapsed shows white stamps
            return colors.EXPANDED_COLOR if is_expanded else WHITE
        elif node.type is NodeType.BRIDGE:
            assert isinstance(node, BridgeNode)
            if info.structural:
                return BRIDGE_STRUCTURAL
            return BRIDGE_INBOUND if node.inbound else BRIDGE_OUTBOUND
        elif node.type is NodeType.OP or node.type is NodeType.ELLIPSIS:
            return WHITE
        raise UnknownNodeTypeError(node.type, node.name)
    elif color_by is ColorBy.DEVICE:
        if is_expanded:
            return colors.EXPANDED_COLOR
        if not info.device_colors:
            return colors.UNKNOWN
        escaped_id = escape_query_selector(node.name)
        if gradient_defs is not None:
            _register_gradient(gradient_defs, node.name, info.device_colors)
        return f"url(#{escaped_id})"
    elif color_by is ColorBy.XLA_CLUSTER:
        if is_expanded:
            return colors.EXPANDED_COLOR
        return info.xla_cluster_color or colors.UNKNOWN
    elif color_by is ColorBy.COMPUTE_TIME:
        if is_expanded:
            return colors.EXPANDED_COLOR
        return info.compute_time_color or colors.UNKNOWN
    elif color_by is ColorBy.MEMORY:
        if is_expanded:
            return colors.EXPANDED_COLOR
        return info.memory_color or colors.UNKNOWN
    raise UnknownColorModeError(color_by)


def get_stroke_for_fill(fill: str) -> str:
    """Outline for a fill: fixed gray for gradients, a darker shade otherwise."""
    if fill.startswith("url"):
        return MetanodeColors.GRADIENT_OUTLINE
    return darker(fill)


def stylize(
    node_group: SceneElement,
    info: RenderNodeInfo,
    scene: Scene,
    node_class: str | None = None,
) -> None:
    """Toggle state classes and apply fill and stroke to the color targets."""
    node_class = node_class or Class.Node.SHAPE
    name = info.node.name
    is_selected = scene.is_node_selected(name)
    node_group.classed(Class.HIGHLIGHTED, scene.is_node_highlighted(name))
    node_group.classed(Class.SELECTED, is_selected)
    node_group.classed(Class.EXTRACT, info.is_in_extract or info.is_out_extract)
    node_group.classed(Class.EXPANDED, info.expanded)
    node_group.classed(Class.FADED, info.is_faded_out)

    fill = get_fill_for_node(
        scene.template_index, scene.color_by, info, info.expanded, scene.gradient_defs
    )
    shape = node_group.select_child(node_class)
    if shape is None:
        return
    # Selected nodes get their outline from CSS
    stroke = None if is_selected else get_stroke_for_fill(fill)
    for target in shape.select_children(Class.Node.COLOR_TARGET):
        target.set_style("fill", fill)
        target.set_style("stroke", stroke)
