"""Input tracing: highlight everything that transitively feeds a node.

Tracing works on full hierarchy names and maps every result onto what is
currently drawn: each op resolves to its visible parent, the nearest
ancestor (or itself) with a rendered element. A connection between two
visible parents is highlighted as a path of rendered edges that climbs
out of the groups around the input, crosses between the two children of
the lowest common ancestor, and descends into the groups around the
traced node.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from graphscene.exceptions import NodeNotFoundError
from graphscene.hierarchy.core import get_strict_name
from graphscene.hierarchy.nodes import ROOT_NAME, GroupNode, Metanode, Node, NodeType, OpNode
from graphscene.render.edges import bridge_edge_key, edge_key
from graphscene.scene.elements import Class

if TYPE_CHECKING:
    from graphscene.render.graph import RenderGraphInfo
    from graphscene.scene.scene import Scene

logger = logging.getLogger(__name__)


@dataclass
class TraceResult:
    """Outcome of one trace, as names of rendered node groups and edge keys.

    Attributes:
        selected: Name of the element marked as the selected input source
        traced_nodes: Op names visited, in visiting order
        input_highlight: Node groups marked as inputs
        input_parent: Node groups containing an input
        non_input: Node groups marked for dimming
        input_edges: Edge keys on an input path
        non_input_edges: Edge keys marked for dimming
    """

    selected: str | None = None
    traced_nodes: list[str] = field(default_factory=list)
    input_highlight: list[str] = field(default_factory=list)
    input_parent: list[str] = field(default_factory=list)
    non_input: list[str] = field(default_factory=list)
    input_edges: list[str] = field(default_factory=list)
    non_input_edges: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.selected is None


def get_visible_parent(render_graph: RenderGraphInfo, node: Node) -> Node:
    """Nearest node at or above ``node`` that is drawn.

    Climbs until the parent is rendered and either expanded or an op (in
    which case ``node`` is embedded in it). The root is always visible.
    """
    current_parent: Node | None = node
    while True:
        current = current_parent
        assert current is not None
        current_parent = current.parent
        if current_parent is None:
            return current
        info = render_graph.get_render_node_by_name(current_parent.name)
        if info is not None and (info.expanded or current_parent.type is NodeType.OP):
            return current


def get_all_contained_op_nodes(name: str, render_graph: RenderGraphInfo) -> list[OpNode]:
    """Ops making up a node: an op plus its in-embeddings, or every op below a group."""
    node = render_graph.get_node_by_name(name)
    if isinstance(node, OpNode):
        return [node, *node.in_embeddings]
    if isinstance(node, GroupNode):
        op_nodes: list[OpNode] = []
        for child_name in node.metagraph.nodes:
            op_nodes.extend(get_all_contained_op_nodes(child_name, render_graph))
        return op_nodes
    return []


def _resolve_input(render_graph: RenderGraphInfo, name: str) -> OpNode | None:
    resolved = render_graph.get_node_by_name(name)
    # An op colliding with a metanode lives under its strict name
    if isinstance(resolved, Metanode):
        resolved = render_graph.get_node_by_name(get_strict_name(resolved.name))
    return resolved if isinstance(resolved, OpNode) else None


def trace_all_inputs_of_op_node(
    scene: Scene,
    start_node: OpNode,
    all_traced_nodes: dict[str, bool],
) -> dict[str, bool]:
    """Mark the inputs of ``start_node`` and recurse into them.

    ``all_traced_nodes`` is the visited set of the current trace; an op
    already in it returns immediately, which handles cycles and shared
    inputs.
    """
    if all_traced_nodes.get(start_node.name):
        return all_traced_nodes
    all_traced_nodes[start_node.name] = True

    render_graph = scene.render_graph
    current_visible_parent = get_visible_parent(render_graph, start_node)
    scene.mark_node(current_visible_parent.name, Class.INPUT_HIGHLIGHT)

    # Group inputs by the visible parent that stands for them
    visible_inputs: dict[str, tuple[Node, list[OpNode]]] = {}
    for node_input in start_node.inputs:
        resolved = _resolve_input(render_graph, node_input.name)
        if resolved is None:
            logger.debug(
                "Input '%s' of '%s' is not in the hierarchy, skipping",
                node_input.name,
                start_node.name,
            )
            continue
        visible_parent = get_visible_parent(render_graph, resolved)
        entry = visible_inputs.setdefault(visible_parent.name, (visible_parent, []))
        entry[1].append(resolved)

    # Ancestors of the start node's visible parent, indexed by distance
    start_node_parents: dict[str, int] = {current_visible_parent.name: 0}
    indexed_start_node_parents: list[Node] = [current_visible_parent]
    current: Node = current_visible_parent
    while current.name != ROOT_NAME and current.parent is not None:
        current = current.parent
        start_node_parents[current.name] = len(indexed_start_node_parents)
        indexed_start_node_parents.append(current)

    for visible_parent, op_nodes in visible_inputs.values():
        for op_node in op_nodes:
            trace_all_inputs_of_op_node(scene, op_node, all_traced_nodes)
        if visible_parent.name != current_visible_parent.name:
            _create_visible_trace(
                scene, visible_parent, start_node_parents, indexed_start_node_parents
            )

    return all_traced_nodes


def _create_visible_trace(
    scene: Scene,
    node_instance: Node,
    start_node_parents: dict[str, int],
    indexed_start_node_parents: list[Node],
) -> None:
    """Highlight the rendered edges connecting an input to the start node.

    ``node_instance`` is the input's visible parent. Climbing from it to the
    first common ancestor yields the groups the connection leaves (OUT
    edges); the start node's ancestors below that ancestor are the groups
    it enters (IN edges). The two children of the common ancestor are
    joined by a direct edge.
    """
    current: Node | None = node_instance
    previous: Node = node_instance
    exits: list[tuple[Node, Node]] = []
    while current is not None and current.name not in start_node_parents:
        if previous.name != current.name:
            exits.append((previous, current))
        previous = current
        current = current.parent
    if current is None:
        return

    start_index = start_node_parents[current.name]
    start_top_parent = indexed_start_node_parents[max(start_index - 1, 0)].name
    target_top_parent = previous.name

    scene.mark_edge(edge_key(target_top_parent, start_top_parent), Class.INPUT_EDGE_HIGHLIGHT)

    for inner, outer in exits:
        key = bridge_edge_key(inner.name, start_top_parent, outer.name, inbound=False)
        scene.mark_edge(key, Class.INPUT_EDGE_HIGHLIGHT)

    for index in range(1, start_index):
        inner = indexed_start_node_parents[index - 1]
        outer = indexed_start_node_parents[index]
        key = bridge_edge_key(inner.name, target_top_parent, outer.name, inbound=True)
        scene.mark_edge(key, Class.INPUT_EDGE_HIGHLIGHT)


def _find_visible_parents_from_op_nodes(
    render_graph: RenderGraphInfo, node_names: list[str]
) -> dict[str, Node]:
    visible_parents: dict[str, Node] = {}
    for name in node_names:
        node = render_graph.get_node_by_name(name)
        if node is None:
            continue
        visible_parent = get_visible_parent(render_graph, node)
        visible_parents[visible_parent.name] = visible_parent
    return visible_parents


def _mark_parents_of_nodes(scene: Scene, visible_nodes: dict[str, Node]) -> None:
    """Mark every drawn ancestor of an input as an input parent.

    Ancestors already marked as input or selected keep their class. Op
    ancestors (hosts of an embedded input) are never input parents.
    """
    for node in visible_nodes.values():
        current: Node | None = node
        while current is not None and current.name != ROOT_NAME:
            element = scene.get_node_group(current.name)
            if (
                element is not None
                and not element.has_class(Class.INPUT_HIGHLIGHT)
                and not element.has_class(Class.SELECTED)
                and not element.has_class(Class.INPUT_HIGHLIGHT_SELECTED)
                and not element.has_class(Class.OPNODE)
            ):
                element.classed(Class.INPUT_PARENT, True)
            current = current.parent


def _reset(scene: Scene) -> None:
    for class_name in Class.TRACE_CLASSES:
        for element in scene.select_all(class_name):
            element.classed(class_name, False)


def trace_inputs(scene: Scene, selected_name: str | None = None) -> TraceResult:
    """Clear the previous trace, then highlight all inputs of a node.

    Args:
        scene: Built scene to mark
        selected_name: Node to trace, defaults to the scene's selected node

    Returns:
        What was marked. Empty when nothing is selected or tracing is off.

    Raises:
        NodeNotFoundError: If ``selected_name`` is not in the hierarchy
    """
    _reset(scene)

    render_graph = scene.render_graph
    name = selected_name if selected_name is not None else scene.selected_node
    if name is None or not render_graph.trace_inputs:
        return TraceResult()
    selected = render_graph.get_node_by_name(name)
    if selected is None:
        raise NodeNotFoundError(name)

    all_traced_nodes: dict[str, bool] = {}
    for op_node in get_all_contained_op_nodes(name, render_graph):
        trace_all_inputs_of_op_node(scene, op_node, all_traced_nodes)

    # The selected element is the source of the trace, not one of its inputs
    selected_visible = get_visible_parent(render_graph, selected)
    selected_element = scene.get_node_group(selected_visible.name)
    if selected_element is not None:
        selected_element.classed(Class.INPUT_HIGHLIGHT, False)
        selected_element.classed(Class.INPUT_HIGHLIGHT_SELECTED, True)

    visible_nodes = _find_visible_parents_from_op_nodes(render_graph, list(all_traced_nodes))
    _mark_parents_of_nodes(scene, visible_nodes)

    spared = (
        Class.SELECTED,
        Class.INPUT_HIGHLIGHT_SELECTED,
        Class.INPUT_HIGHLIGHT,
        Class.INPUT_PARENT,
        Class.INPUT_CHILD,
    )
    for node_name, element in scene.iter_node_groups():
        if any(element.has_class(c) for c in spared):
            continue
        element.classed(Class.NON_INPUT, True)
        # Annotations showing a non-input are dimmed as well
        for annotation_group in scene.get_annotation_groups(node_name).values():
            annotation_group.classed(Class.NON_INPUT, True)
    for _, element in scene.iter_edge_groups():
        if not element.has_class(Class.INPUT_EDGE_HIGHLIGHT):
            element.classed(Class.NON_INPUT_EDGE_HIGHLIGHT, True)

    result = TraceResult(
        selected=selected_visible.name,
        traced_nodes=list(all_traced_nodes),
    )
    for node_name, element in scene.iter_node_groups():
        if element.has_class(Class.INPUT_HIGHLIGHT):
            result.input_highlight.append(node_name)
        if element.has_class(Class.INPUT_PARENT):
            result.input_parent.append(node_name)
        if element.has_class(Class.NON_INPUT):
            result.non_input.append(node_name)
    for key, element in scene.iter_edge_groups():
        if element.has_class(Class.INPUT_EDGE_HIGHLIGHT):
            result.input_edges.append(key)
        else:
            result.non_input_edges.append(key)

    logger.debug(
        "Traced %d ops for '%s': %d inputs drawn, %d edges",
        len(all_traced_nodes),
        name,
        len(result.input_highlight),
        len(result.input_edges),
    )
    return result
