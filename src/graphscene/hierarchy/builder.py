"""Build a Hierarchy once from flat op definitions.

Groups are derived from name prefixes: every prefix of an op name becomes
a metanode. Series and embeddings are declared explicitly, and template
ids come from an external structural analysis.

Example:
    >>> h = (
    ...     HierarchyBuilder()
    ...     .add_op("A/op1")
    ...     .add_op("A/op2", inputs=["A/op1"])
    ...     .add_op("B/op3", inputs=["A/op2"])
    ...     .build()
    ... )
    >>> [n.name for n in h.children("__root__")]
    ['A', 'B']
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from graphscene.exceptions import HierarchyError
from graphscene.hierarchy.core import Hierarchy, get_strict_name
from graphscene.hierarchy.nodes import (
    NAMESPACE_DELIM,
    ROOT_NAME,
    BaseEdge,
    GroupNode,
    Metanode,
    Node,
    NodeInput,
    OpNode,
    SeriesNode,
    parent_prefix,
)

logger = logging.getLogger(__name__)


@dataclass
class _OpSpec:
    name: str
    op: str
    inputs: list[NodeInput]
    device: str | None
    xla_cluster: str | None


@dataclass
class _SeriesSpec:
    name: str
    members: list[str]
    prefix: str
    suffix: str
    cluster_id: int
    ids: list[int] = field(default_factory=list)


def _prefixes(name: str) -> list[str]:
    """All proper name prefixes, shortest first ('a/b/c' -> ['a', 'a/b'])."""
    parts = name.split(NAMESPACE_DELIM)
    return [NAMESPACE_DELIM.join(parts[:i]) for i in range(1, len(parts))]


def _path_to_root(node: Node) -> list[Node]:
    path = [node]
    while path[-1].parent is not None:
        path.append(path[-1].parent)
    return path


class HierarchyBuilder:
    """Collects op definitions and produces an immutable Hierarchy.

    All ``add_*`` methods return the builder so calls can be chained.
    """

    def __init__(self) -> None:
        self._ops: dict[str, _OpSpec] = {}
        self._embeddings: dict[str, tuple[str, bool]] = {}
        self._series: dict[str, _SeriesSpec] = {}
        self._templates: dict[str, str] = {}

    def add_op(
        self,
        name: str,
        op: str = "",
        inputs: Iterable[str | NodeInput] = (),
        *,
        device: str | None = None,
        xla_cluster: str | None = None,
    ) -> HierarchyBuilder:
        """Declare an op. Inputs are NodeInput or strings parsed by NodeInput.parse."""
        if not name or name == ROOT_NAME:
            raise HierarchyError(f"Invalid op name: '{name}'")
        if name in self._ops:
            raise HierarchyError(f"Duplicate op name: '{name}'")
        parsed = [i if isinstance(i, NodeInput) else NodeInput.parse(i) for i in inputs]
        self._ops[name] = _OpSpec(name, op, parsed, device, xla_cluster)
        return self

    def embed(self, host: str, name: str, *, inbound: bool = True) -> HierarchyBuilder:
        """Fold op ``name`` into op ``host`` (a constant feeding it, a summary reading it)."""
        self._embeddings[name] = (host, inbound)
        return self

    def add_series(
        self,
        name: str,
        members: Iterable[str],
        *,
        prefix: str = "",
        suffix: str = "",
        cluster_id: int = 0,
        ids: Iterable[int] = (),
    ) -> HierarchyBuilder:
        """Group sibling ops under a series node living beside them."""
        self._series[name] = _SeriesSpec(
            name, list(members), prefix, suffix, cluster_id, list(ids)
        )
        return self

    def set_template(self, metanode_name: str, template_id: str) -> HierarchyBuilder:
        self._templates[metanode_name] = template_id
        return self

    # =========================================================================
    # Build
    # =========================================================================

    def build(self) -> Hierarchy:
        """Create groups, attach ops, series and embeddings, then derive edges.

        Raises:
            HierarchyError: If embeddings, series or templates reference
                unknown or incompatible nodes
        """
        hierarchy = Hierarchy()

        metanode_names = self._collect_metanode_names()
        self._create_metanodes(hierarchy, metanode_names)
        series_of = self._create_series(hierarchy)
        self._create_ops(hierarchy, metanode_names, series_of)
        self._attach_embeddings(hierarchy)
        self._apply_templates(hierarchy)
        self._add_edges(hierarchy)
        self._compute_stats(hierarchy.root)

        hierarchy.validate()
        logger.debug("Built hierarchy with %d nodes", len(hierarchy))
        return hierarchy

    def _collect_metanode_names(self) -> list[str]:
        names: dict[str, None] = {}
        for op_name in self._ops:
            for prefix in _prefixes(op_name):
                names[prefix] = None
        for series in self._series.values():
            for prefix in _prefixes(series.name):
                names[prefix] = None
        return sorted(names, key=lambda n: (n.count(NAMESPACE_DELIM), n))

    def _create_metanodes(self, hierarchy: Hierarchy, names: list[str]) -> None:
        for name in names:
            parent = hierarchy.get_node_by_name(parent_prefix(name))
            assert isinstance(parent, GroupNode)
            hierarchy.attach(Metanode(name), parent)

    def _create_series(self, hierarchy: Hierarchy) -> dict[str, SeriesNode]:
        series_of: dict[str, SeriesNode] = {}
        for spec in self._series.values():
            parent = hierarchy.get_node_by_name(parent_prefix(spec.name))
            if not isinstance(parent, GroupNode):
                raise HierarchyError(f"Series '{spec.name}' has no group to live in")
            series = SeriesNode(
                spec.name, prefix=spec.prefix, suffix=spec.suffix, cluster_id=spec.cluster_id
            )
            series.ids = spec.ids
            hierarchy.attach(series, parent)
            for member in spec.members:
                if member not in self._ops:
                    raise HierarchyError(f"Series '{spec.name}' member '{member}' is not an op")
                if parent_prefix(member) != parent.name:
                    raise HierarchyError(
                        f"Series '{spec.name}' member '{member}' is not a sibling of the series"
                    )
                series_of[member] = series
        return series_of

    def _create_ops(
        self,
        hierarchy: Hierarchy,
        metanode_names: list[str],
        series_of: dict[str, SeriesNode],
    ) -> None:
        collisions = set(metanode_names)
        for spec in self._ops.values():
            if spec.name in self._embeddings:
                continue
            name = get_strict_name(spec.name) if spec.name in collisions else spec.name
            node = self._make_op(spec, name)
            series = series_of.get(spec.name)
            if series is not None:
                node.owning_series = series.name
                hierarchy.attach(node, series)
                continue
            group = hierarchy.get_node_by_name(parent_prefix(name))
            assert isinstance(group, GroupNode)
            hierarchy.attach(node, group)

    @staticmethod
    def _make_op(spec: _OpSpec, name: str) -> OpNode:
        return OpNode(
            name, spec.op, spec.inputs, device=spec.device, xla_cluster=spec.xla_cluster
        )

    def _attach_embeddings(self, hierarchy: Hierarchy) -> None:
        for name, (host_name, inbound) in self._embeddings.items():
            spec = self._ops.get(name)
            if spec is None:
                raise HierarchyError(f"Embedded node '{name}' is not an op")
            host = _resolve_op(hierarchy, host_name)
            if host is None or host.embedded:
                raise HierarchyError(f"Embedding host '{host_name}' is not a top-level op")
            node = self._make_op(spec, name)
            node.embedded = True
            node.parent = host
            hierarchy.set_node(node)
            if inbound:
                host.in_embeddings.append(node)
            else:
                host.out_embeddings.append(node)

    def _apply_templates(self, hierarchy: Hierarchy) -> None:
        for name, template_id in self._templates.items():
            node = hierarchy.get_node_by_name(name)
            if not isinstance(node, Metanode):
                raise HierarchyError(f"Template target '{name}' is not a metanode")
            node.template_id = template_id
            hierarchy.register_template(template_id)

    def _add_edges(self, hierarchy: Hierarchy) -> None:
        """Place every op-level edge in the metagraph of the endpoints' lowest
        common ancestor, and in the bridgegraph of every group it crosses."""
        for dst in hierarchy.iter_nodes():
            if not isinstance(dst, OpNode):
                continue
            for node_input in dst.inputs:
                src = _resolve_op(hierarchy, node_input.name)
                if src is None:
                    logger.debug(
                        "Skipping input '%s' of '%s': not in hierarchy", node_input.name, dst.name
                    )
                    continue
                base_edge = BaseEdge(
                    src.name, dst.name, node_input.output_port, node_input.is_control_dependency
                )
                self._place_edge(src, dst, base_edge)

    @staticmethod
    def _place_edge(src: OpNode, dst: OpNode, base_edge: BaseEdge) -> None:
        # Embedded endpoints are drawn as annotations of their host
        src_anchor = src.parent if src.embedded else src
        dst_anchor = dst.parent if dst.embedded else dst
        if src_anchor is dst_anchor:
            return

        src_path = _path_to_root(src_anchor)
        dst_path = _path_to_root(dst_anchor)
        dst_set = {id(n) for n in dst_path}
        lca_pos = next(i for i, n in enumerate(src_path) if id(n) in dst_set)
        lca = src_path[lca_pos]
        src_top = src_path[lca_pos - 1]
        dst_top = dst_path[next(i for i, n in enumerate(dst_path) if n is lca) - 1]
        assert isinstance(lca, GroupNode)

        _add_base_edge(lca.metagraph, src_top.name, dst_top.name, base_edge)
        if not base_edge.is_control_dependency:
            lca.has_non_control_edges = True

        # Leaving every group between the source and the common ancestor
        for inner, outer in zip(src_path, src_path[1:lca_pos]):
            assert isinstance(outer, GroupNode)
            _add_base_edge(outer.bridgegraph, inner.name, dst_top.name, base_edge, inbound=False)

        # Entering every group between the common ancestor and the destination
        dst_lca_pos = next(i for i, n in enumerate(dst_path) if n is lca)
        for inner, outer in zip(dst_path, dst_path[1:dst_lca_pos]):
            assert isinstance(outer, GroupNode)
            _add_base_edge(outer.bridgegraph, src_top.name, inner.name, base_edge, inbound=True)

    def _compute_stats(self, group: GroupNode) -> tuple[int, int]:
        """Fill depth, cardinality and device histograms bottom-up.

        Returns (depth, cardinality) of the group.
        """
        max_child_depth = 0
        cardinality = 0
        for child_name in group.metagraph.nodes:
            child = _child(group, child_name)
            if isinstance(child, GroupNode):
                depth, count = self._compute_stats(child)
                max_child_depth = max(max_child_depth, depth)
                cardinality += count
                group.device_histogram.update(child.device_histogram)
            else:
                cardinality += 1
                if isinstance(child, OpNode) and child.device:
                    group.device_histogram[child.device] += 1
        group.cardinality = cardinality
        depth = max_child_depth + 1
        if isinstance(group, Metanode) and group.name != ROOT_NAME:
            group.depth = depth
        return depth, cardinality


def _child(group: GroupNode, child_name: str) -> Node:
    return group.metagraph.nodes[child_name]["node"]


def _resolve_op(hierarchy: Hierarchy, name: str) -> OpNode | None:
    """Resolve an input reference to an op, honoring strict-name renames."""
    node = hierarchy.get_node_by_name(name)
    if isinstance(node, Metanode):
        node = hierarchy.get_node_by_name(get_strict_name(node.name))
    return node if isinstance(node, OpNode) else None


def _add_base_edge(
    graph,
    v: str,
    w: str,
    base_edge: BaseEdge,
    *,
    inbound: bool | None = None,
) -> None:
    if graph.has_edge(v, w):
        graph.edges[v, w]["base_edges"].append(base_edge)
        return
    attrs = {"base_edges": [base_edge]}
    if inbound is not None:
        attrs["inbound"] = inbound
    graph.add_edge(v, w, **attrs)
