"""Node types of the graph hierarchy.

The hierarchy is a tagged union over ``NodeType``: op nodes are leaves,
metanodes and series nodes are groups owning a metagraph of their
children, bridge nodes stand in for connections that cross a group
boundary, and ellipsis nodes stand in for elided annotation entries.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum

import networkx as nx

ROOT_NAME = "__root__"
NAMESPACE_DELIM = "/"
BRIDGE_DELIM = "~~"


class NodeType(Enum):
    """Variant tag for every node in the hierarchy."""

    META = "META"
    OP = "OP"
    SERIES = "SERIES"
    BRIDGE = "BRIDGE"
    ELLIPSIS = "ELLIPSIS"


class Include(Enum):
    """Whether a node is drawn in the main graph or moved to an extract box."""

    INCLUDE = "INCLUDE"
    EXCLUDE = "EXCLUDE"
    UNSPECIFIED = "UNSPECIFIED"


@dataclass(frozen=True)
class NodeInput:
    """A declared input of an op: the producing node and its output port."""

    name: str
    output_port: int = 0
    is_control_dependency: bool = False

    @classmethod
    def parse(cls, spec: str) -> NodeInput:
        """Parse an input reference string.

        Examples:
            >>> NodeInput.parse("a/b")
            NodeInput(name='a/b', output_port=0, is_control_dependency=False)
            >>> NodeInput.parse("^a/b")
            NodeInput(name='a/b', output_port=0, is_control_dependency=True)
            >>> NodeInput.parse("a/b:2")
            NodeInput(name='a/b', output_port=2, is_control_dependency=False)
        """
        if spec.startswith("^"):
            return cls(name=spec[1:], is_control_dependency=True)
        name, sep, port = spec.rpartition(":")
        if sep and port.isdigit():
            return cls(name=name, output_port=int(port))
        return cls(name=spec)


@dataclass(frozen=True)
class BaseEdge:
    """An op-level edge: ``w`` reads output ``output_port`` of ``v``."""

    v: str
    w: str
    output_port: int = 0
    is_control_dependency: bool = False


def basename(name: str) -> str:
    """Last path segment of a hierarchical name."""
    return name.split(NAMESPACE_DELIM)[-1]


def parent_prefix(name: str) -> str:
    """Name prefix up to the last delimiter, or ROOT_NAME for top-level names."""
    head, sep, _ = name.rpartition(NAMESPACE_DELIM)
    return head if sep else ROOT_NAME


class Node:
    """Base class for all hierarchy nodes.

    Subclasses set ``type`` and ``is_group_node``. The parent link is
    assigned by the hierarchy when the node is attached.
    """

    type: NodeType
    is_group_node: bool = False

    def __init__(self, name: str) -> None:
        self.name = name
        self.parent: GroupNode | OpNode | None = None
        self.include = Include.UNSPECIFIED
        self.cardinality = 1

    @property
    def display_name(self) -> str:
        return basename(self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class OpNode(Node):
    """A leaf computation."""

    type = NodeType.OP

    def __init__(
        self,
        name: str,
        op: str = "",
        inputs: list[NodeInput] | None = None,
        *,
        device: str | None = None,
        xla_cluster: str | None = None,
    ) -> None:
        super().__init__(name)
        self.op = op
        self.inputs: list[NodeInput] = list(inputs or [])
        self.device = device
        self.xla_cluster = xla_cluster
        self.in_embeddings: list[OpNode] = []
        self.out_embeddings: list[OpNode] = []
        self.owning_series: str | None = None
        self.embedded = False


class GroupNode(Node):
    """A node owning a subgraph of children.

    Attributes:
        metagraph: Children by name (insertion ordered). Edges connect two
            children and carry ``base_edges``, the op-level edges they stand for.
        bridgegraph: Edges between a child and the node on the other side of
            this group's boundary. Each edge carries ``inbound`` and
            ``base_edges``. Inbound edges point from the outside node to the
            child, outbound edges from the child to the outside node.
    """

    is_group_node = True

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.metagraph = nx.DiGraph(name=name)
        self.bridgegraph = nx.DiGraph(name=name)
        self.device_histogram: Counter[str] = Counter()
        self.has_non_control_edges = False

    def child_names(self) -> list[str]:
        return list(self.metagraph.nodes)


class Metanode(GroupNode):
    """A named, expandable subgraph."""

    type = NodeType.META

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.template_id: str | None = None
        self.depth = 1


class SeriesNode(GroupNode):
    """A run of structurally identical ops collapsed into one glyph."""

    type = NodeType.SERIES

    def __init__(
        self,
        name: str,
        *,
        prefix: str = "",
        suffix: str = "",
        cluster_id: int = 0,
    ) -> None:
        super().__init__(name)
        self.prefix = prefix
        self.suffix = suffix
        self.cluster_id = cluster_id
        self.ids: list[int] = []


class BridgeNode(Node):
    """Synthetic node for an edge entering or leaving a group."""

    type = NodeType.BRIDGE

    def __init__(self, name: str, inbound: bool) -> None:
        super().__init__(name)
        self.inbound = inbound


class EllipsisNode(Node):
    """Placeholder counting nodes that were elided from a list."""

    type = NodeType.ELLIPSIS

    def __init__(self, num_more_nodes: int) -> None:
        super().__init__(f"... {num_more_nodes} more")
        self.num_more_nodes = num_more_nodes

    def set_num_more_nodes(self, num_more_nodes: int) -> None:
        self.num_more_nodes = num_more_nodes
        self.name = f"... {num_more_nodes} more"
