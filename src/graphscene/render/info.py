"""Render-side decorations of hierarchy nodes.

A render info exists only for nodes currently materialized in the diagram.
It carries the expansion flag, the geometry filled in by the layout
collaborator, the annotation side boxes and per-mode color hints.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import networkx as nx

from graphscene.hierarchy.nodes import BaseEdge, EllipsisNode, GroupNode, Node


class AnnotationType(Enum):
    """Kinds of entries in a node's annotation side boxes."""

    SHORTCUT = "SHORTCUT"
    CONSTANT = "CONSTANT"
    SUMMARY = "SUMMARY"
    ELLIPSIS = "ELLIPSIS"


@dataclass
class RenderMetaedgeInfo:
    """A rendered edge of a core graph.

    Attributes:
        key: Lookup key, see ``graphscene.render.edges``
        v: Name of the drawn source endpoint
        w: Name of the drawn destination endpoint
        base_edges: Op-level edges collapsed onto this edge
        is_bridge: True when one endpoint is a bridge node
        points: Polyline filled in by the layout collaborator
    """

    key: str
    v: str
    w: str
    base_edges: list[BaseEdge] = field(default_factory=list)
    is_bridge: bool = False
    points: list[tuple[float, float]] = field(default_factory=list)

    @property
    def is_control_only(self) -> bool:
        return bool(self.base_edges) and all(e.is_control_dependency for e in self.base_edges)


@dataclass
class Annotation:
    """One entry of an annotation side box."""

    node: Node
    render_node_info: RenderNodeInfo
    render_metaedge_info: RenderMetaedgeInfo | None
    annotation_type: AnnotationType
    is_in: bool
    dx: float = 0.0
    dy: float = 0.0
    width: float = 0.0
    height: float = 0.0


class AnnotationList:
    """Annotations of one side of a node, capped at ``max_annotations``.

    Entries past the cap are folded into a trailing ELLIPSIS annotation
    counting them. Adding a node twice is a no-op.
    """

    def __init__(self, max_annotations: int = 5) -> None:
        self.max_annotations = max_annotations
        self.list: list[Annotation] = []
        self._node_names: set[str] = set()

    def push(self, annotation: Annotation) -> None:
        if annotation.node.name in self._node_names:
            return
        self._node_names.add(annotation.node.name)

        if len(self.list) < self.max_annotations:
            self.list.append(annotation)
            return

        last = self.list[-1]
        if last.annotation_type is AnnotationType.ELLIPSIS:
            assert isinstance(last.node, EllipsisNode)
            last.node.set_num_more_nodes(last.node.num_more_nodes + 1)
            return

        ellipsis = EllipsisNode(1)
        self.list.append(
            Annotation(
                node=ellipsis,
                render_node_info=RenderNodeInfo(ellipsis),
                render_metaedge_info=None,
                annotation_type=AnnotationType.ELLIPSIS,
                is_in=annotation.is_in,
            )
        )

    def __iter__(self):
        return iter(self.list)

    def __len__(self) -> int:
        return len(self.list)


@dataclass(eq=False)
class RenderNodeInfo:
    """Render state of a materialized node.

    Geometry fields belong to the layout collaborator; this package only
    reads them when positioning elements.
    """

    node: Node
    expanded: bool = False

    # Geometry
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    core_box: dict[str, float] = field(default_factory=lambda: {"width": 0.0, "height": 0.0})
    radius: float = 0.0
    label_offset: float = 0.0
    label_height: float = 0.0
    padding_left: float = 0.0
    padding_top: float = 0.0
    inbox_width: float = 0.0

    in_annotations: AnnotationList = field(default_factory=AnnotationList)
    out_annotations: AnnotationList = field(default_factory=AnnotationList)

    is_in_extract: bool = False
    is_out_extract: bool = False
    is_faded_out: bool = False
    structural: bool = False

    # Color hints supplied by external color-scale computation
    device_colors: list[tuple[str, float]] = field(default_factory=list)
    xla_cluster_color: str | None = None
    compute_time_color: str | None = None
    memory_color: str | None = None

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def display_name(self) -> str:
        return self.node.display_name


@dataclass(eq=False)
class RenderGroupNodeInfo(RenderNodeInfo):
    """Render state of a metanode or series node.

    Attributes:
        core_graph: Drawn children (node attribute ``info``) and drawn edges
            (edge attribute ``info``, a RenderMetaedgeInfo)
        isolated_in_extract: Children moved to the input extract box
        isolated_out_extract: Children moved to the output extract box
    """

    core_graph: nx.DiGraph = field(default_factory=nx.DiGraph)
    isolated_in_extract: list[RenderNodeInfo] = field(default_factory=list)
    isolated_out_extract: list[RenderNodeInfo] = field(default_factory=list)

    def __post_init__(self) -> None:
        assert isinstance(self.node, GroupNode)
        self.core_graph.graph["name"] = self.node.name

    def core_infos(self) -> list[RenderNodeInfo]:
        """Render infos of the drawn children, in insertion order."""
        return [attrs["info"] for _, attrs in self.core_graph.nodes(data=True)]

    def edge_infos(self) -> list[RenderMetaedgeInfo]:
        return [attrs["info"] for _, _, attrs in self.core_graph.edges(data=True)]
