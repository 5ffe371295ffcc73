"""Tests for the node hierarchy and its builder."""

from __future__ import annotations

import pytest

from graphscene.exceptions import HierarchyError, NodeNotFoundError
from graphscene.hierarchy import (
    ROOT_NAME,
    BaseEdge,
    HierarchyBuilder,
    Metanode,
    NodeInput,
    NodeType,
    OpNode,
    SeriesNode,
    get_strict_name,
)

# ---------------------------------------------------------------------------
# Input parsing and naming
# ---------------------------------------------------------------------------


class TestNodeInput:
    def test_plain(self):
        assert NodeInput.parse("a/b") == NodeInput("a/b")

    def test_control_dependency(self):
        parsed = NodeInput.parse("^a/b")
        assert parsed.name == "a/b"
        assert parsed.is_control_dependency

    def test_output_port(self):
        assert NodeInput.parse("a/b:2") == NodeInput("a/b", output_port=2)

    def test_non_numeric_suffix_is_part_of_name(self):
        assert NodeInput.parse("a/b:x").name == "a/b:x"


class TestStrictName:
    def test_appends_basename_in_parens(self):
        assert get_strict_name("a/b") == "a/b/(b)"

    def test_op_colliding_with_metanode_is_renamed(self):
        hierarchy = HierarchyBuilder().add_op("a").add_op("a/b").build()
        assert isinstance(hierarchy.get_node_by_name("a"), Metanode)
        op = hierarchy.get_node_by_name("a/(a)")
        assert isinstance(op, OpNode)
        assert op.parent.name == "a"


# ---------------------------------------------------------------------------
# Tree structure
# ---------------------------------------------------------------------------


class TestHierarchyStructure:
    def test_root(self, two_scope_hierarchy):
        root = two_scope_hierarchy.root
        assert root.name == ROOT_NAME
        assert root.parent is None
        assert [n.name for n in two_scope_hierarchy.children(ROOT_NAME)] == ["A", "B"]

    def test_metanodes_created_from_prefixes(self, two_scope_hierarchy):
        a = two_scope_hierarchy.get_node_by_name("A")
        assert a.type is NodeType.META
        assert a.child_names() == ["A/op1", "A/op2"]

    def test_every_node_has_one_parent(self, two_scope_hierarchy):
        for node in two_scope_hierarchy.iter_nodes():
            if node.name == ROOT_NAME:
                continue
            assert node.parent is not None
            assert node.name in node.parent.metagraph

    def test_lookup(self, two_scope_hierarchy):
        assert two_scope_hierarchy.get_node_by_name("missing") is None
        assert two_scope_hierarchy.get_node_by_name(None) is None
        assert "B/op3" in two_scope_hierarchy
        with pytest.raises(NodeNotFoundError):
            two_scope_hierarchy.require("missing")

    def test_children_of_op_is_empty(self, two_scope_hierarchy):
        assert two_scope_hierarchy.children("A/op1") == []

    def test_ancestors(self, two_scope_hierarchy):
        op = two_scope_hierarchy.get_node_by_name("A/op1")
        assert [n.name for n in two_scope_hierarchy.ancestors(op)] == ["A", ROOT_NAME]

    def test_stats(self, two_scope_hierarchy):
        root = two_scope_hierarchy.root
        a = two_scope_hierarchy.get_node_by_name("A")
        assert root.cardinality == 3
        assert a.cardinality == 2
        assert a.depth == 1

    def test_device_histogram(self):
        hierarchy = (
            HierarchyBuilder()
            .add_op("A/x", device="/gpu:0")
            .add_op("A/y", device="/gpu:0")
            .add_op("A/z", device="/cpu:0")
            .build()
        )
        a = hierarchy.get_node_by_name("A")
        assert a.device_histogram == {"/gpu:0": 2, "/cpu:0": 1}
        assert hierarchy.root.device_histogram["/gpu:0"] == 2


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------


class TestEdgePlacement:
    def test_metaedge_at_lowest_common_ancestor(self, two_scope_hierarchy):
        root = two_scope_hierarchy.root
        assert root.metagraph.has_edge("A", "B")
        assert root.metagraph.edges["A", "B"]["base_edges"] == [BaseEdge("A/op2", "B/op3")]
        assert root.has_non_control_edges

    def test_bridgegraph_of_source_scope(self, two_scope_hierarchy):
        a = two_scope_hierarchy.get_node_by_name("A")
        assert list(a.bridgegraph.edges) == [("A/op2", "B")]
        assert a.bridgegraph.edges["A/op2", "B"]["inbound"] is False

    def test_bridgegraph_of_destination_scope(self, two_scope_hierarchy):
        b = two_scope_hierarchy.get_node_by_name("B")
        assert list(b.bridgegraph.edges) == [("A", "B/op3")]
        assert b.bridgegraph.edges["A", "B/op3"]["inbound"] is True

    def test_sibling_edge_in_parent_metagraph(self):
        hierarchy = HierarchyBuilder().add_op("A/x").add_op("A/y", inputs=["A/x"]).build()
        a = hierarchy.get_node_by_name("A")
        assert a.metagraph.has_edge("A/x", "A/y")
        assert a.bridgegraph.number_of_edges() == 0

    def test_unresolved_input_is_skipped(self):
        hierarchy = HierarchyBuilder().add_op("x", inputs=["missing"]).build()
        assert hierarchy.root.metagraph.number_of_edges() == 0
        assert hierarchy.get_node_by_name("x").inputs == [NodeInput("missing")]

    def test_parallel_base_edges_share_metaedge(self):
        hierarchy = (
            HierarchyBuilder()
            .add_op("A/x")
            .add_op("A/y")
            .add_op("B/z", inputs=["A/x", "A/y"])
            .build()
        )
        base_edges = hierarchy.root.metagraph.edges["A", "B"]["base_edges"]
        assert [e.v for e in base_edges] == ["A/x", "A/y"]


# ---------------------------------------------------------------------------
# Embeddings, series and templates
# ---------------------------------------------------------------------------


class TestEmbeddings:
    def test_embedded_op_is_indexed_but_not_a_child(self):
        hierarchy = (
            HierarchyBuilder()
            .add_op("w", "Variable", inputs=["w_init"])
            .add_op("w_init", "Const")
            .embed("w", "w_init")
            .build()
        )
        host = hierarchy.get_node_by_name("w")
        embedded = hierarchy.get_node_by_name("w_init")
        assert embedded.embedded
        assert embedded.parent is host
        assert host.in_embeddings == [embedded]
        assert "w_init" not in hierarchy.root.metagraph
        # Edge between host and its own embedding is not drawn
        assert hierarchy.root.metagraph.number_of_edges() == 0

    def test_out_embedding(self):
        hierarchy = (
            HierarchyBuilder()
            .add_op("loss")
            .add_op("loss_summary", "ScalarSummary", inputs=["loss"])
            .embed("loss", "loss_summary", inbound=False)
            .build()
        )
        host = hierarchy.get_node_by_name("loss")
        assert [n.name for n in host.out_embeddings] == ["loss_summary"]

    def test_unknown_embedding_host_raises(self):
        builder = HierarchyBuilder().add_op("c").embed("missing", "c")
        with pytest.raises(HierarchyError, match="missing"):
            builder.build()


class TestSeries:
    def test_series_groups_sibling_ops(self):
        hierarchy = (
            HierarchyBuilder()
            .add_op("s/x_1")
            .add_op("s/x_2")
            .add_series("s/x_[1-2]", ["s/x_1", "s/x_2"], prefix="x_", ids=[1, 2])
            .build()
        )
        series = hierarchy.get_node_by_name("s/x_[1-2]")
        assert isinstance(series, SeriesNode)
        assert series.parent.name == "s"
        assert series.child_names() == ["s/x_1", "s/x_2"]
        assert hierarchy.get_node_by_name("s/x_1").owning_series == "s/x_[1-2]"

    def test_member_must_be_sibling(self):
        builder = HierarchyBuilder().add_op("t/x").add_series("s/x_[1]", ["t/x"])
        with pytest.raises(HierarchyError, match="sibling"):
            builder.build()

    def test_member_must_be_op(self):
        builder = HierarchyBuilder().add_op("s/y").add_series("s/x_[1]", ["s/x"])
        with pytest.raises(HierarchyError, match="not an op"):
            builder.build()


class TestTemplates:
    def test_shared_template_index(self):
        hierarchy = (
            HierarchyBuilder()
            .add_op("A/x")
            .add_op("B/x")
            .add_op("C/x")
            .set_template("A", "t1")
            .set_template("B", "t1")
            .set_template("C", "t2")
            .build()
        )
        assert hierarchy.template_index("t1") == 0
        assert hierarchy.template_index("t2") == 1
        assert hierarchy.get_node_by_name("B").template_id == "t1"

    def test_template_on_op_raises(self):
        builder = HierarchyBuilder().add_op("x").set_template("x", "t1")
        with pytest.raises(HierarchyError, match="not a metanode"):
            builder.build()


class TestBuilderValidation:
    def test_duplicate_op(self):
        with pytest.raises(HierarchyError, match="Duplicate"):
            HierarchyBuilder().add_op("x").add_op("x")

    def test_root_name_reserved(self):
        with pytest.raises(HierarchyError):
            HierarchyBuilder().add_op(ROOT_NAME)

    def test_empty_name(self):
        with pytest.raises(HierarchyError):
            HierarchyBuilder().add_op("")
