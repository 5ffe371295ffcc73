"""Render-state overlay over a Hierarchy.

RenderGraphInfo decides which nodes are materialized: the root's children
always, and the children of every expanded group reachable from the root.
Each materialized group owns a core graph of its drawn children, the
edges between them, and bridge nodes standing in for connections that
cross its boundary.

Example:
    >>> info = RenderGraphInfo(hierarchy)
    >>> info.get_render_node_by_name("A/op1") is None
    True
    >>> info.expand("A")
    >>> info.get_render_node_by_name("A/op1").node.name
    'A/op1'
"""

from __future__ import annotations

import logging
from typing import Any

from graphscene.config import SceneConfig
from graphscene.exceptions import NodeNotFoundError
from graphscene.hierarchy.core import Hierarchy
from graphscene.hierarchy.nodes import (
    ROOT_NAME,
    BridgeNode,
    GroupNode,
    Include,
    Node,
    OpNode,
)
from graphscene.render.colors import parse_color
from graphscene.render.edges import bridge_edge_key, bridge_node_name, edge_key
from graphscene.render.info import (
    Annotation,
    AnnotationList,
    AnnotationType,
    RenderGroupNodeInfo,
    RenderMetaedgeInfo,
    RenderNodeInfo,
)

logger = logging.getLogger(__name__)

_COLOR_HINT_FIELDS = frozenset(
    {"device_colors", "xla_cluster_color", "compute_time_color", "memory_color"}
)


class RenderGraphInfo:
    """Expansion state and render infos of the materialized part of a hierarchy.

    Attributes:
        hierarchy: The immutable node hierarchy
        config: Rendering settings
        root: Render info of the root (always expanded)
        trace_inputs: Whether selecting a node traces its inputs
    """

    def __init__(self, hierarchy: Hierarchy, config: SceneConfig | None = None) -> None:
        self.hierarchy = hierarchy
        self.config = config or SceneConfig()
        self.trace_inputs = self.config.trace_inputs
        self._index: dict[str, RenderNodeInfo] = {}
        self._built: set[str] = set()
        self._color_hints: dict[str, dict[str, Any]] = {}

        root = self._create_info(hierarchy.root)
        assert isinstance(root, RenderGroupNodeInfo)
        self.root = root
        self.root.expanded = True
        self.build_subhierarchy(ROOT_NAME)

    # =========================================================================
    # Lookup
    # =========================================================================

    def get_node_by_name(self, name: str | None) -> Node | None:
        return self.hierarchy.get_node_by_name(name)

    def get_render_node_by_name(self, name: str | None) -> RenderNodeInfo | None:
        if name is None:
            return None
        return self._index.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def is_expanded(self, name: str) -> bool:
        info = self._index.get(name)
        return info is not None and info.expanded

    # =========================================================================
    # Color hints
    # =========================================================================

    def set_color_hints(self, name: str, **hints: Any) -> None:
        """Attach externally computed colors to a node.

        Hints survive collapse: they are re-applied whenever the node's
        render info is recreated.

        Args:
            name: Node name
            **hints: Any of device_colors, xla_cluster_color,
                compute_time_color, memory_color

        Raises:
            TypeError: If a hint name is not a color hint
            ValueError: If a hint color is not a solid CSS color
        """
        unknown = set(hints) - _COLOR_HINT_FIELDS
        if unknown:
            raise TypeError(f"Unknown color hints: {sorted(unknown)}")
        for key, value in hints.items():
            colors = [c for c, _ in value] if key == "device_colors" else [value]
            for color in colors:
                if color is not None:
                    parse_color(color)
        self.hierarchy.require(name)
        self._color_hints.setdefault(name, {}).update(hints)
        info = self._index.get(name)
        if info is not None:
            self._apply_color_hints(info)

    def _apply_color_hints(self, info: RenderNodeInfo) -> None:
        for key, value in self._color_hints.get(info.name, {}).items():
            setattr(info, key, list(value) if key == "device_colors" else value)

    # =========================================================================
    # Subhierarchy construction
    # =========================================================================

    def _create_info(self, node: Node) -> RenderNodeInfo:
        max_annotations = self.config.max_annotations
        cls = RenderGroupNodeInfo if isinstance(node, GroupNode) else RenderNodeInfo
        info = cls(
            node,
            in_annotations=AnnotationList(max_annotations),
            out_annotations=AnnotationList(max_annotations),
        )
        self._apply_color_hints(info)
        self._index[node.name] = info
        return info

    def build_subhierarchy(self, name: str) -> None:
        """Materialize the children of a rendered group.

        Creates render infos for the children (and for embedded auxiliaries
        of child ops, as annotations), copies metaedges into the core graph,
        adds bridge nodes for every boundary crossing and moves excluded
        children into the extract boxes. Does nothing if already built.
        """
        if name in self._built:
            return
        info = self._require_group_info(name)
        group = info.node
        assert isinstance(group, GroupNode)
        core = info.core_graph

        for child in self.hierarchy.children(name):
            child_info = self._create_info(child)
            core.add_node(child.name, info=child_info)
            if isinstance(child, OpNode):
                for embedded in child.in_embeddings:
                    self._add_embedding(child_info, embedded, is_in=True)
                for embedded in child.out_embeddings:
                    self._add_embedding(child_info, embedded, is_in=False)

        for v, w, attrs in group.metagraph.edges(data=True):
            core.add_edge(
                v, w, info=RenderMetaedgeInfo(edge_key(v, w), v, w, list(attrs["base_edges"]))
            )

        if name != ROOT_NAME:
            self._add_bridges(info)

        self._extract_excluded(info)
        self._built.add(name)
        logger.debug(
            "Built subhierarchy of '%s': %d nodes, %d edges",
            name,
            core.number_of_nodes(),
            core.number_of_edges(),
        )

    def _add_embedding(self, host_info: RenderNodeInfo, embedded: OpNode, is_in: bool) -> None:
        embedded_info = self._create_info(embedded)
        host = host_info.name
        if is_in:
            edge_info = RenderMetaedgeInfo(edge_key(embedded.name, host), embedded.name, host)
            annotations, kind = host_info.in_annotations, AnnotationType.CONSTANT
        else:
            edge_info = RenderMetaedgeInfo(edge_key(host, embedded.name), host, embedded.name)
            annotations, kind = host_info.out_annotations, AnnotationType.SUMMARY
        annotations.push(Annotation(embedded, embedded_info, edge_info, kind, is_in))

    def _add_bridges(self, info: RenderGroupNodeInfo) -> None:
        group = info.node
        assert isinstance(group, GroupNode)
        core = info.core_graph
        bridge_infos: dict[str, RenderNodeInfo] = {}

        for v, w, attrs in group.bridgegraph.edges(data=True):
            inbound = attrs["inbound"]
            inner, other = (w, v) if inbound else (v, w)
            bridge_name = bridge_node_name(other, group.name, inbound)
            if bridge_name not in bridge_infos:
                bridge_info = RenderNodeInfo(BridgeNode(bridge_name, inbound))
                self._index[bridge_name] = bridge_info
                core.add_node(bridge_name, info=bridge_info)
                bridge_infos[bridge_name] = bridge_info
            src, dst = (bridge_name, inner) if inbound else (inner, bridge_name)
            key = bridge_edge_key(inner, other, group.name, inbound)
            core.add_edge(
                src,
                dst,
                info=RenderMetaedgeInfo(key, src, dst, list(attrs["base_edges"]), is_bridge=True),
            )

        # Bridges carrying only control dependencies do not draw data flow
        for bridge_name, bridge_info in bridge_infos.items():
            edges = [attrs["info"] for *_, attrs in core.in_edges(bridge_name, data=True)]
            edges += [attrs["info"] for *_, attrs in core.out_edges(bridge_name, data=True)]
            bridge_info.structural = all(e.is_control_only for e in edges)

    def _extract_excluded(self, info: RenderGroupNodeInfo) -> None:
        core = info.core_graph
        for child_name in list(core.nodes):
            child_info: RenderNodeInfo = core.nodes[child_name]["info"]
            if child_info.node.include is not Include.EXCLUDE:
                continue
            in_edges = list(core.in_edges(child_name, data=True))
            out_edges = list(core.out_edges(child_name, data=True))
            for v, _, attrs in in_edges:
                other: RenderNodeInfo = core.nodes[v]["info"]
                self._add_shortcut(other, child_info, attrs["info"], is_in=False)
                self._add_shortcut(child_info, other, attrs["info"], is_in=True)
            for _, w, attrs in out_edges:
                other = core.nodes[w]["info"]
                self._add_shortcut(other, child_info, attrs["info"], is_in=True)
                self._add_shortcut(child_info, other, attrs["info"], is_in=False)
            core.remove_node(child_name)
            if out_edges and not in_edges:
                child_info.is_in_extract = True
                info.isolated_in_extract.append(child_info)
            else:
                child_info.is_out_extract = True
                info.isolated_out_extract.append(child_info)

    @staticmethod
    def _add_shortcut(
        target: RenderNodeInfo,
        shown: RenderNodeInfo,
        edge_info: RenderMetaedgeInfo,
        is_in: bool,
    ) -> None:
        annotations = target.in_annotations if is_in else target.out_annotations
        annotations.push(Annotation(shown.node, shown, edge_info, AnnotationType.SHORTCUT, is_in))

    def _destroy_subhierarchy(self, info: RenderGroupNodeInfo) -> None:
        """Drop every descendant render info of a group."""
        children = info.core_infos() + info.isolated_in_extract + info.isolated_out_extract
        for child_info in children:
            if isinstance(child_info, RenderGroupNodeInfo):
                self._destroy_subhierarchy(child_info)
            for annotation in list(child_info.in_annotations) + list(child_info.out_annotations):
                node = annotation.node
                if isinstance(node, OpNode) and node.embedded:
                    self._index.pop(node.name, None)
            self._index.pop(child_info.name, None)
        info.core_graph.clear()
        info.core_graph.graph["name"] = info.name
        info.isolated_in_extract.clear()
        info.isolated_out_extract.clear()
        self._built.discard(info.name)

    # =========================================================================
    # Expansion and extraction
    # =========================================================================

    def _require_group_info(self, name: str) -> RenderGroupNodeInfo:
        info = self._index.get(name)
        if info is None:
            self.hierarchy.require(name)
            raise NodeNotFoundError(name, f"Node '{name}' is not currently rendered")
        if not isinstance(info, RenderGroupNodeInfo):
            raise ValueError(f"Node '{name}' is not a group node and cannot expand")
        return info

    def expand(self, name: str) -> None:
        info = self._require_group_info(name)
        info.expanded = True
        self.build_subhierarchy(name)
        logger.debug("Expanded '%s'", name)

    def collapse(self, name: str) -> None:
        """Collapse a group. None of its descendants keep a render info."""
        if name == ROOT_NAME:
            raise ValueError("The root is always expanded")
        info = self._require_group_info(name)
        info.expanded = False
        self._destroy_subhierarchy(info)
        logger.debug("Collapsed '%s'", name)

    def set_expanded(self, name: str, expanded: bool) -> None:
        if expanded:
            self.expand(name)
        else:
            self.collapse(name)

    def toggle_expand(self, name: str) -> bool:
        """Flip the expansion of a group and return the new state."""
        expanded = not self._require_group_info(name).expanded
        self.set_expanded(name, expanded)
        return expanded

    def toggle_include(self, name: str) -> Include:
        """Move a node into or out of its parent's extract box.

        The parent's subhierarchy is rebuilt; groups that were expanded
        below it stay expanded.
        """
        node = self.hierarchy.require(name)
        node.include = Include.INCLUDE if node.include is Include.EXCLUDE else Include.EXCLUDE

        parent = node.parent
        parent_info = self._index.get(parent.name) if parent is not None else None
        if isinstance(parent_info, RenderGroupNodeInfo) and parent.name in self._built:
            expanded = sorted(
                (i.name for i in self._index.values() if i.expanded and i.name != parent.name),
                key=lambda n: n.count("/"),
            )
            self._destroy_subhierarchy(parent_info)
            self.build_subhierarchy(parent.name)
            for group_name in expanded:
                if isinstance(self._index.get(group_name), RenderGroupNodeInfo):
                    self.expand(group_name)
        logger.debug("Set include of '%s' to %s", name, node.include.value)
        return node.include
