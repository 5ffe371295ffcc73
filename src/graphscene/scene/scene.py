"""The scene: root element, element indices and interaction state.

Example:
    >>> scene = Scene(RenderGraphInfo(hierarchy))
    >>> scene.build()
    >>> scene.select_node("B/op3")
    >>> scene.get_node_group("A").has_class("input-highlight")
    True
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from graphscene.config import SceneConfig
from graphscene.events.controller import SceneController
from graphscene.events.dispatcher import EventDispatcher
from graphscene.events.types import BaseEvent
from graphscene.exceptions import NodeNotFoundError
from graphscene.hierarchy.nodes import ROOT_NAME, NodeType
from graphscene.render.graph import RenderGraphInfo
from graphscene.render.info import Annotation, RenderGroupNodeInfo, RenderNodeInfo
from graphscene.scene import edge, node
from graphscene.scene.elements import Class, SceneElement
from graphscene.scene.geometry import position_scene_group
from graphscene.scene.labels import CharWidthMeasurer, FontScaleCache, TextMeasurer
from graphscene.scene.node import ColorBy, MenuItem
from graphscene.scene.trace import TraceResult, trace_inputs

logger = logging.getLogger(__name__)


class Scene(SceneElement):
    """Host element of a rendered hierarchy.

    Owns the name -> node group index, the annotation and edge indices,
    gradient definitions, and the selected/highlighted node. Signals fired
    by elements go through ``dispatcher``; without one, a dispatcher wired
    to a SceneController is created.

    Args:
        render_graph: Render-state overlay to draw
        config: Rendering settings, defaults to the render graph's
        measurer: Text measurement for label truncation
        font_scale_cache: Metanode label font scale, shared across scenes if desired
        dispatcher: Receiver of interaction signals
        color_by: Color mode, defaults to ``config.color_by``
    """

    def __init__(
        self,
        render_graph: RenderGraphInfo,
        *,
        config: SceneConfig | None = None,
        measurer: TextMeasurer | None = None,
        font_scale_cache: FontScaleCache | None = None,
        dispatcher: EventDispatcher | None = None,
        color_by: ColorBy | str | None = None,
    ) -> None:
        super().__init__("svg")
        self.render_graph = render_graph
        self.config = config or render_graph.config
        self.measurer = measurer or CharWidthMeasurer()
        self.font_scale_cache = font_scale_cache or FontScaleCache()
        self.color_by = ColorBy.parse(color_by if color_by is not None else self.config.color_by)

        if dispatcher is None:
            dispatcher = EventDispatcher([SceneController(self)])
        self.dispatcher = dispatcher

        self.selected_node: str | None = None
        self.highlighted_node: str | None = None
        self.context_menu: list[MenuItem] | None = None
        self.series_grouping: dict[str, bool] = {}
        self.gradient_defs: dict[str, list[tuple[float, str]]] = {}
        self.last_trace: TraceResult | None = None

        self._node_groups: dict[str, SceneElement] = {}
        self._annotation_groups: dict[str, dict[str, SceneElement]] = {}
        self._edge_groups: dict[str, SceneElement] = {}

    # =========================================================================
    # Indices
    # =========================================================================

    def add_node_group(self, name: str, element: SceneElement) -> None:
        self._node_groups[name] = element

    def remove_node_group(self, name: str, element: SceneElement | None = None) -> None:
        """Drop a name from the index (only if it still maps to ``element``, when given)."""
        if element is None or self._node_groups.get(name) is element:
            self._node_groups.pop(name, None)

    def get_node_group(self, name: str) -> SceneElement | None:
        return self._node_groups.get(name)

    def iter_node_groups(self) -> Iterator[tuple[str, SceneElement]]:
        return iter(list(self._node_groups.items()))

    def add_annotation_group(
        self, annotation: Annotation, host_info: RenderNodeInfo, element: SceneElement
    ) -> None:
        self._annotation_groups.setdefault(annotation.node.name, {})[host_info.name] = element

    def remove_annotation_group(
        self,
        annotation: Annotation,
        host_info: RenderNodeInfo,
        element: SceneElement | None = None,
    ) -> None:
        hosts = self._annotation_groups.get(annotation.node.name)
        if not hosts:
            return
        if element is None or hosts.get(host_info.name) is element:
            hosts.pop(host_info.name, None)
        if not hosts:
            del self._annotation_groups[annotation.node.name]

    def get_annotation_groups(self, name: str) -> dict[str, SceneElement]:
        """Annotation groups showing ``name``, keyed by host node name."""
        return dict(self._annotation_groups.get(name, {}))

    def add_edge_group(self, key: str, element: SceneElement) -> None:
        self._edge_groups[key] = element

    def remove_edge_group(self, key: str, element: SceneElement | None = None) -> None:
        if element is None or self._edge_groups.get(key) is element:
            self._edge_groups.pop(key, None)

    def get_edge_group(self, key: str) -> SceneElement | None:
        return self._edge_groups.get(key)

    def iter_edge_groups(self) -> Iterator[tuple[str, SceneElement]]:
        return iter(list(self._edge_groups.items()))

    def deregister_subtree(self, element: SceneElement) -> None:
        """Remove every node, annotation and edge group below ``element`` from the indices."""
        for el in element.iter_descendants():
            if el.has_class(Class.Node.GROUP) and el.get_attr("data-name"):
                self.remove_node_group(el.get_attr("data-name"), el)
            elif el.has_class(Class.Annotation.GROUP) and isinstance(el.data, Annotation):
                hosts = self._annotation_groups.get(el.data.node.name, {})
                for host, indexed in list(hosts.items()):
                    if indexed is el:
                        del hosts[host]
                if not hosts:
                    self._annotation_groups.pop(el.data.node.name, None)
            elif el.has_class(Class.Edge.GROUP) and el.get_attr("data-edge"):
                self.remove_edge_group(el.get_attr("data-edge"), el)

    # =========================================================================
    # State queries used by the builder
    # =========================================================================

    def template_index(self, template_id: str) -> int:
        return self.render_graph.hierarchy.template_index(template_id)

    def is_node_expanded(self, info: RenderNodeInfo) -> bool:
        return info.expanded

    def is_node_selected(self, name: str) -> bool:
        return name == self.selected_node

    def is_node_highlighted(self, name: str) -> bool:
        return name == self.highlighted_node

    def fire(self, event: BaseEvent) -> None:
        logger.debug("Signal %s for '%s'", event.signal, event.name)
        self.dispatcher.emit(event)

    # =========================================================================
    # Building
    # =========================================================================

    def build(self) -> SceneElement:
        """Build (or rebuild) the whole scene from the root, then re-trace."""
        scene_group = self.build_group(self, self.render_graph.root, Class.Scene.GROUP)
        logger.debug("Built scene with %d node groups", len(self._node_groups))
        self._update_input_trace()
        return scene_group

    def build_group(
        self,
        container: SceneElement,
        render_info: RenderGroupNodeInfo,
        scene_class: str = Class.Scene.GROUP,
    ) -> SceneElement:
        """Build the scene group of an expanded group node inside ``container``.

        The core holds edges, then nodes; extracted children go to the
        in/out extract boxes, which are removed when empty.
        """
        scene_group = container.select_or_create_child("g", scene_class)
        scene_group.data = render_info
        core_group = scene_group.select_or_create_child("g", Class.Scene.CORE)

        core_nodes = render_info.core_infos()
        if render_info.node.type is NodeType.SERIES:
            core_nodes.reverse()

        edge.build_group(core_group, render_info.core_graph, self)
        node.build_group(core_group, core_nodes, self)

        extracts = (
            (Class.Scene.INEXTRACT, render_info.isolated_in_extract),
            (Class.Scene.OUTEXTRACT, render_info.isolated_out_extract),
        )
        for extract_class, infos in extracts:
            if infos:
                extract_group = scene_group.select_or_create_child("g", extract_class)
                node.build_group(extract_group, infos, self)
            else:
                extract_group = scene_group.select_child(extract_class)
                if extract_group is not None:
                    self.deregister_subtree(extract_group)
                    extract_group.remove()

        position_scene_group(scene_group, render_info)
        return scene_group

    def update_node(self, name: str) -> None:
        """Re-enter the builder for one rendered node. No-op if it is not drawn."""
        if name == ROOT_NAME:
            self.build_group(self, self.render_graph.root, Class.Scene.GROUP)
            return
        element = self.get_node_group(name)
        info = self.render_graph.get_render_node_by_name(name)
        if element is None or info is None:
            return
        node.update(element, info, self)

    def update_node_state(self, name: str | None) -> None:
        """Restyle a node group and every annotation showing that node."""
        if name is None:
            return
        info = self.render_graph.get_render_node_by_name(name)
        if info is None:
            return
        element = self.get_node_group(name)
        if element is not None:
            node.stylize(element, info, self)
        for annotation_group in self.get_annotation_groups(name).values():
            node.stylize(annotation_group, info, self, Class.Annotation.NODE)

    # =========================================================================
    # Interaction
    # =========================================================================

    def _require(self, name: str) -> None:
        if self.render_graph.get_node_by_name(name) is None:
            raise NodeNotFoundError(name)

    def toggle_expand(self, name: str) -> bool | None:
        """Expand or collapse a rendered group and rebuild just that node.

        Returns:
            The new expansion state, or None for nodes that cannot expand
        """
        info = self.render_graph.get_render_node_by_name(name)
        if info is None:
            self._require(name)
            raise NodeNotFoundError(name, f"Node '{name}' is not currently rendered")
        if not info.node.is_group_node:
            return None
        expanded = self.render_graph.toggle_expand(name)
        self.update_node(name)
        self._update_input_trace()
        return expanded

    def select_node(self, name: str | None, *, reveal: bool = False) -> None:
        """Set the selected node and trace its inputs.

        With ``reveal``, every collapsed ancestor is expanded first so the
        node itself is drawn. Selecting the selected node again without
        ``reveal`` is a no-op.
        """
        if name is not None:
            self._require(name)
        if name == self.selected_node and not reveal:
            return
        previous, self.selected_node = self.selected_node, name
        if name is not None and reveal:
            self._reveal(name)
        self.update_node_state(previous)
        self.update_node_state(name)
        self._update_input_trace()

    def _reveal(self, name: str) -> None:
        target = self.render_graph.get_node_by_name(name)
        assert target is not None
        chain = [
            n.name
            for n in self.render_graph.hierarchy.ancestors(target)
            if n.name != ROOT_NAME and n.is_group_node
        ]
        top_expanded: str | None = None
        for group_name in reversed(chain):
            if not self.render_graph.is_expanded(group_name):
                self.render_graph.expand(group_name)
                top_expanded = top_expanded or group_name
        if top_expanded is not None:
            self.update_node(top_expanded)

    def highlight_node(self, name: str) -> None:
        previous, self.highlighted_node = self.highlighted_node, name
        self.update_node_state(previous)
        self.update_node_state(name)

    def unhighlight_node(self, name: str) -> None:
        if self.highlighted_node != name:
            return
        self.highlighted_node = None
        self.update_node_state(name)

    def toggle_extract(self, name: str) -> None:
        """Move a node into or out of its parent's extract box and rebuild the parent."""
        self._require(name)
        self.render_graph.toggle_include(name)
        parent = self.render_graph.get_node_by_name(name).parent
        self.update_node(parent.name if parent is not None else ROOT_NAME)
        self._update_input_trace()

    def toggle_series_group(self, name: str) -> bool:
        """Flip the grouping preference of a series and return it.

        Regrouping changes the hierarchy itself, so the host rebuilds it
        from ``series_grouping``.
        """
        grouped = not self.series_grouping.get(name, True)
        self.series_grouping[name] = grouped
        logger.debug("Series '%s' grouping set to %s", name, grouped)
        return grouped

    # =========================================================================
    # Input tracing
    # =========================================================================

    def trace(self, name: str | None = None) -> TraceResult:
        """Trace the inputs of ``name`` (default: the selected node)."""
        self.last_trace = trace_inputs(self, name)
        return self.last_trace

    def _update_input_trace(self) -> None:
        self.last_trace = trace_inputs(self)

    def mark_node(self, name: str, class_name: str) -> None:
        """Add a class to a node group. Missing groups are ignored."""
        element = self.get_node_group(name)
        if element is not None:
            element.classed(class_name, True)

    def mark_edge(self, key: str, class_name: str) -> None:
        element = self.get_edge_group(key)
        if element is not None:
            element.classed(class_name, True)
