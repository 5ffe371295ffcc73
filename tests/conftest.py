"""Shared fixtures: small hierarchies and scenes built from them."""

import pytest

from graphscene.hierarchy import HierarchyBuilder
from graphscene.render import RenderGraphInfo
from graphscene.scene import Scene


def make_two_scope_builder() -> HierarchyBuilder:
    """root -> {A/op1, A/op2, B/op3}, where B/op3 reads A/op2."""
    return (
        HierarchyBuilder()
        .add_op("A/op1", "Const")
        .add_op("A/op2", "Identity")
        .add_op("B/op3", "MatMul", inputs=["A/op2"])
    )


@pytest.fixture
def two_scope_hierarchy():
    return make_two_scope_builder().build()


@pytest.fixture
def render_graph(two_scope_hierarchy):
    return RenderGraphInfo(two_scope_hierarchy)


@pytest.fixture
def scene(render_graph):
    scene = Scene(render_graph)
    scene.build()
    return scene
