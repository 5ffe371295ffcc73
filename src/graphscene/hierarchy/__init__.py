"""Node/hierarchy model: typed nodes, the hierarchy tree and its builder."""

from graphscene.hierarchy.builder import HierarchyBuilder
from graphscene.hierarchy.core import Hierarchy, get_strict_name
from graphscene.hierarchy.nodes import (
    BRIDGE_DELIM,
    NAMESPACE_DELIM,
    ROOT_NAME,
    BaseEdge,
    BridgeNode,
    EllipsisNode,
    GroupNode,
    Include,
    Metanode,
    Node,
    NodeInput,
    NodeType,
    OpNode,
    SeriesNode,
)

__all__ = [
    "BRIDGE_DELIM",
    "NAMESPACE_DELIM",
    "ROOT_NAME",
    "BaseEdge",
    "BridgeNode",
    "EllipsisNode",
    "GroupNode",
    "Hierarchy",
    "HierarchyBuilder",
    "Include",
    "Metanode",
    "Node",
    "NodeInput",
    "NodeType",
    "OpNode",
    "SeriesNode",
    "get_strict_name",
]
