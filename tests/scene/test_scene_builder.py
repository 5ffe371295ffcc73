"""Tests for the scene builder: node groups, subscenes, labels, annotations and colors."""

from __future__ import annotations

import pytest

from graphscene.events import EventDispatcher, RecordingProcessor, SceneController
from graphscene.exceptions import UnknownColorModeError, UnknownNodeTypeError
from graphscene.hierarchy import EllipsisNode, HierarchyBuilder, Include, OpNode
from graphscene.render import RenderGraphInfo, RenderNodeInfo
from graphscene.render.colors import BRIDGE_OUTBOUND, WHITE, MetanodeColors, structure_palette
from graphscene.scene import Class, ColorBy, Scene, get_fill_for_node, get_stroke_for_fill
from graphscene.scene import node as node_builder


def _child_classes(element):
    return [child.classes[0] if child.classes else child.tag for child in element.children]


@pytest.fixture
def recorder():
    return RecordingProcessor()


@pytest.fixture
def wired_scene(render_graph, recorder):
    """Scene whose signals go to the recorder and back into the scene."""
    scene = Scene(render_graph, dispatcher=EventDispatcher(strict=True))
    scene.dispatcher.add(recorder)
    scene.dispatcher.add(SceneController(scene))
    scene.build()
    return scene


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


class TestSceneStructure:
    def test_root_scene_group(self, scene):
        scene_group = scene.select_child(Class.Scene.GROUP)
        assert scene_group is not None
        core = scene_group.select_child(Class.Scene.CORE)
        assert _child_classes(core) == [Class.Edge.CONTAINER, Class.Node.CONTAINER]

    def test_node_groups_indexed(self, scene):
        names = [name for name, _ in scene.iter_node_groups()]
        assert names == ["A", "B"]
        a = scene.get_node_group("A")
        assert a.has_class(Class.Node.GROUP)
        assert a.has_class(Class.METANODE)
        assert a.get_attr("data-name") == "A"

    def test_edge_group_keyed(self, scene):
        edge = scene.get_edge_group("A--B")
        assert edge is not None
        assert edge.get_attr("data-edge") == "A--B"
        assert edge.select_child(Class.Edge.LINE) is not None

    def test_layer_order(self, scene):
        a = scene.get_node_group("A")
        assert _child_classes(a) == [
            Class.Annotation.INBOX,
            Class.Annotation.OUTBOX,
            Class.Node.SHAPE,
            Class.Node.LABEL,
        ]

    def test_label_stays_last_after_expand(self, scene):
        scene.toggle_expand("A")
        a = scene.get_node_group("A")
        assert _child_classes(a)[-2:] == [Class.Subscene.GROUP, Class.Node.LABEL]
        assert a.has_class(Class.EXPANDED)

    def test_group_has_expand_button(self, scene):
        shape = scene.get_node_group("A").select_child(Class.Node.SHAPE)
        button = shape.select_child(Class.Node.BUTTON_CONTAINER)
        assert button is not None
        assert button.select_child(Class.Node.BUTTON_CIRCLE).get_attr("r") == 3

    def test_op_shape_is_ellipse(self, scene):
        scene.toggle_expand("A")
        shape = scene.get_node_group("A/op1").select_child(Class.Node.SHAPE)
        assert [c.tag for c in shape.children] == ["ellipse"]
        assert shape.select_child(Class.Node.BUTTON_CONTAINER) is None


class TestSubscenes:
    def test_expand_registers_children(self, scene):
        scene.toggle_expand("A")
        assert scene.get_node_group("A/op1") is not None
        assert scene.get_node_group("B~~A~~OUT").has_class(Class.BRIDGENODE)
        assert scene.get_edge_group("A/op2--B~~A~~OUT") is not None

    def test_collapse_tears_down(self, scene):
        scene.toggle_expand("A")
        scene.toggle_expand("A")
        a = scene.get_node_group("A")
        assert a.select_child(Class.Subscene.GROUP) is None
        assert scene.get_node_group("A/op1") is None
        assert scene.get_node_group("B~~A~~OUT") is None
        assert scene.get_edge_group("A/op2--B~~A~~OUT") is None

    def test_update_keeps_element_identity(self, scene):
        before = scene.get_node_group("B")
        scene.toggle_expand("A")
        assert scene.get_node_group("B") is before

    def test_toggle_expand_op_is_noop(self, scene):
        scene.toggle_expand("A")
        assert scene.toggle_expand("A/op1") is None

    def test_series_subscene_reversed(self):
        hierarchy = (
            HierarchyBuilder()
            .add_op("s/x_1")
            .add_op("s/x_2")
            .add_series("s/x_[1-2]", ["s/x_1", "s/x_2"], prefix="x_", ids=[1, 2])
            .build()
        )
        render_graph = RenderGraphInfo(hierarchy)
        render_graph.expand("s")
        render_graph.expand("s/x_[1-2]")
        scene = Scene(render_graph)
        scene.build()
        series = scene.get_node_group("s/x_[1-2]")
        nodes = series.select_child(Class.Subscene.GROUP).select_child(Class.Scene.CORE)
        container = nodes.select_child(Class.Node.CONTAINER)
        assert [el.get_attr("data-name") for el in container.children] == ["s/x_2", "s/x_1"]


class TestExtractBoxes:
    def test_toggle_extract_moves_node(self, scene):
        scene.toggle_extract("A")
        a = scene.get_node_group("A")
        assert a.parent.parent.has_class(Class.Scene.INEXTRACT)
        assert a.has_class(Class.EXTRACT)
        assert scene.get_edge_group("A--B") is None
        assert set(scene.get_annotation_groups("A")) == {"B"}

    def test_extract_box_removed_when_empty(self, scene):
        scene.toggle_extract("A")
        scene.toggle_extract("A")
        scene_group = scene.select_child(Class.Scene.GROUP)
        assert scene_group.select_child(Class.Scene.INEXTRACT) is None
        assert scene.get_node_group("A").parent.parent.has_class(Class.Scene.CORE)


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


class TestLabels:
    def test_short_label_untouched(self, scene):
        label = scene.get_node_group("A").select_child(Class.Node.LABEL)
        assert label.text == "A"
        assert [c for c in label.children if c.tag == "title"] == []

    def test_long_op_label_truncated_with_tooltip(self):
        hierarchy = HierarchyBuilder().add_op("a_really_long_operation_name").build()
        scene = Scene(RenderGraphInfo(hierarchy))
        scene.build()
        label = scene.get_node_group("a_really_long_operation_name").select_child(Class.Node.LABEL)
        assert label.text.endswith("...")
        assert "a_really_long_operation_name".startswith(label.text[:-3])
        (title,) = label.children
        assert title.text == "a_really_long_operation_name"

    def test_long_metanode_label_scaled_down(self):
        hierarchy = HierarchyBuilder().add_op("a_very_long_metanode_name/x").build()
        scene = Scene(RenderGraphInfo(hierarchy))
        scene.build()
        label = scene.get_node_group("a_very_long_metanode_name").select_child(Class.Node.LABEL)
        assert label.get_attr("font-size") == "6px"
        assert label.text.endswith("...")
        assert scene.font_scale_cache.computed

    def test_expanded_metanode_label_not_scaled(self):
        hierarchy = HierarchyBuilder().add_op("a_very_long_metanode_name/x").build()
        scene = Scene(RenderGraphInfo(hierarchy))
        scene.build()
        scene.toggle_expand("a_very_long_metanode_name")
        label = scene.get_node_group("a_very_long_metanode_name").select_child(Class.Node.LABEL)
        assert label.get_attr("font-size") is None
        assert label.text == "a_very_long_metanode_name"


# ---------------------------------------------------------------------------
# Annotations
# ---------------------------------------------------------------------------


class TestAnnotations:
    @pytest.fixture
    def embedded_scene(self):
        hierarchy = (
            HierarchyBuilder()
            .add_op("w", "Variable", inputs=["w_init"])
            .add_op("w_init", "Const")
            .add_op("w_summary", "HistogramSummary", inputs=["w"])
            .embed("w", "w_init")
            .embed("w", "w_summary", inbound=False)
            .build()
        )
        scene = Scene(RenderGraphInfo(hierarchy))
        scene.build()
        return scene

    def test_constant_annotation(self, embedded_scene):
        w = embedded_scene.get_node_group("w")
        (group,) = w.select_child(Class.Annotation.INBOX).children
        assert group.has_class(Class.Annotation.GROUP)
        assert group.has_class("constant")
        assert group.get_attr("data-name") == "w_init"
        assert group.select_child(Class.Annotation.NODE) is not None
        assert group.select_child(Class.Annotation.LABEL).text == "w_init"

    def test_summary_annotation_uses_icon(self, embedded_scene):
        w = embedded_scene.get_node_group("w")
        (group,) = w.select_child(Class.Annotation.OUTBOX).children
        assert group.has_class("summary")
        assert group.select_child(Class.Annotation.NODE).tag == "use"

    def test_annotation_groups_indexed(self, embedded_scene):
        assert set(embedded_scene.get_annotation_groups("w_init")) == {"w"}

    def test_ellipsis_annotation_has_no_handlers(self):
        builder = HierarchyBuilder().add_op("host")
        for i in range(7):
            builder.add_op(f"c{i}").embed("host", f"c{i}")
        scene = Scene(RenderGraphInfo(builder.build()))
        scene.build()
        in_box = scene.get_node_group("host").select_child(Class.Annotation.INBOX)
        assert len(in_box.children) == 6
        last = in_box.children[-1]
        assert last.has_class("ellipsis")
        assert last.select_child(Class.Annotation.LABEL).text == "... 2 more"
        assert last.handlers("click") == []


# ---------------------------------------------------------------------------
# Interaction signals
# ---------------------------------------------------------------------------


class TestInteraction:
    def test_click_selects(self, wired_scene, recorder):
        shape = wired_scene.get_node_group("A").select_child(Class.Node.SHAPE)
        shape.dispatch("click")
        assert recorder.signals == [("node-select", "A")]
        assert wired_scene.selected_node == "A"
        assert wired_scene.get_node_group("A").has_class(Class.SELECTED)

    def test_dblclick_toggles_expand(self, wired_scene, recorder):
        shape = wired_scene.get_node_group("A").select_child(Class.Node.SHAPE)
        shape.dispatch("dblclick")
        assert recorder.signals == [("node-toggle-expand", "A")]
        assert wired_scene.render_graph.is_expanded("A")

    def test_button_click_toggles_expand(self, wired_scene):
        shape = wired_scene.get_node_group("A").select_child(Class.Node.SHAPE)
        shape.select_child(Class.Node.BUTTON_CONTAINER).dispatch("click")
        assert wired_scene.get_node_group("A/op1") is not None

    def test_hover_highlights_collapsed_node(self, wired_scene, recorder):
        shape = wired_scene.get_node_group("B").select_child(Class.Node.SHAPE)
        shape.dispatch("mouseover")
        assert wired_scene.get_node_group("B").has_class(Class.HIGHLIGHTED)
        shape.dispatch("mouseout")
        assert not wired_scene.get_node_group("B").has_class(Class.HIGHLIGHTED)
        assert recorder.signals == [("node-highlight", "B"), ("node-unhighlight", "B")]

    def test_hover_ignored_on_expanded_group(self, wired_scene, recorder):
        wired_scene.toggle_expand("A")
        wired_scene.get_node_group("A").select_child(Class.Node.SHAPE).dispatch("mouseover")
        assert recorder.signals == []

    def test_metanode_label_ignores_pointer(self, scene):
        label = scene.get_node_group("A").select_child(Class.Node.LABEL)
        assert label.get_attr("pointer-events") == "none"
        assert label.handlers("click") == []

    def test_context_menu_extract(self, wired_scene, recorder):
        shape = wired_scene.get_node_group("A").select_child(Class.Node.SHAPE)
        shape.dispatch("contextmenu")
        (item,) = wired_scene.context_menu
        assert item.title == "Remove from main graph"
        item.action()
        assert wired_scene.render_graph.get_node_by_name("A").include is Include.EXCLUDE
        assert recorder.signals[-1] == ("node-toggle-extract", "A")

    def test_annotation_click_selects_annotated_node(self, wired_scene, recorder):
        wired_scene.toggle_extract("A")
        b = wired_scene.get_node_group("B")
        (group,) = b.select_child(Class.Annotation.INBOX).children
        group.dispatch("click")
        assert recorder.signals == [("node-select", "A")]

    def test_series_context_menu(self):
        hierarchy = (
            HierarchyBuilder()
            .add_op("x_1")
            .add_op("x_2")
            .add_series("x_[1-2]", ["x_1", "x_2"], prefix="x_", ids=[1, 2])
            .build()
        )
        render_graph = RenderGraphInfo(hierarchy)
        scene = Scene(render_graph)
        scene.build()
        scene.get_node_group("x_[1-2]").select_child(Class.Node.SHAPE).dispatch("contextmenu")
        titles = [item.title for item in scene.context_menu]
        assert titles == ["Remove from main graph", "Ungroup this series of nodes"]
        scene.context_menu[1].action()
        assert scene.series_grouping == {"x_[1-2]": False}


# ---------------------------------------------------------------------------
# Node type dispatch
# ---------------------------------------------------------------------------


class TestNodeTypeDispatch:
    def test_ellipsis_has_class_but_no_shape(self, scene):
        info = RenderNodeInfo(EllipsisNode(3))
        assert node_builder.node_class(info) == Class.ELLIPSISNODE
        element = scene.get_node_group("A")
        with pytest.raises(UnknownNodeTypeError):
            node_builder.build_shape(element, info, Class.Node.SHAPE)
        with pytest.raises(UnknownNodeTypeError):
            node_builder.position(element, info)

    def test_unregistered_type_raises(self):
        class Strange(OpNode):
            type = "STRANGE"

        info = RenderNodeInfo(Strange("s"))
        with pytest.raises(UnknownNodeTypeError, match="STRANGE"):
            node_builder.node_class(info)


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------


def _no_templates(template_id: str) -> int:
    raise AssertionError("no template expected")


class TestFillColors:
    def test_structure_op_is_white(self):
        info = RenderNodeInfo(OpNode("x"))
        assert get_fill_for_node(_no_templates, ColorBy.STRUCTURE, info, False) == WHITE

    def test_structure_metanode_without_template(self, render_graph):
        info = render_graph.get_render_node_by_name("A")
        assert get_fill_for_node(_no_templates, ColorBy.STRUCTURE, info, False) == MetanodeColors.UNKNOWN

    def test_structure_metanode_with_template(self):
        hierarchy = HierarchyBuilder().add_op("A/x").set_template("A", "t").build()
        render_graph = RenderGraphInfo(hierarchy)
        info = render_graph.get_render_node_by_name("A")
        fill = get_fill_for_node(hierarchy.template_index, ColorBy.STRUCTURE, info, False)
        assert fill == structure_palette(0, False)

    def test_bridge_direction(self, render_graph):
        render_graph.expand("A")
        info = render_graph.get_render_node_by_name("B~~A~~OUT")
        assert get_fill_for_node(_no_templates, ColorBy.STRUCTURE, info, False) == BRIDGE_OUTBOUND

    def test_device_gradient(self):
        info = RenderNodeInfo(OpNode("x"), device_colors=[("#ff0000", 0.5), ("#0000ff", 0.5)])
        defs = {}
        fill = get_fill_for_node(_no_templates, ColorBy.DEVICE, info, False, defs)
        assert fill == "url(#x)"
        assert defs["x"] == [(0.0, "#ff0000"), (0.5, "#ff0000"), (0.5, "#0000ff"), (1.0, "#0000ff")]

    def test_device_name_escaped(self):
        info = RenderNodeInfo(OpNode("A/x"), device_colors=[("#ff0000", 1.0)])
        assert get_fill_for_node(_no_templates, ColorBy.DEVICE, info, False) == "url(#A\\/x)"

    def test_device_without_colors(self):
        info = RenderNodeInfo(OpNode("x"))
        assert get_fill_for_node(_no_templates, ColorBy.DEVICE, info, False) == MetanodeColors.UNKNOWN

    @pytest.mark.parametrize(
        "color_by", [ColorBy.DEVICE, ColorBy.XLA_CLUSTER, ColorBy.COMPUTE_TIME, ColorBy.MEMORY]
    )
    def test_expanded_uses_expanded_color(self, color_by):
        info = RenderNodeInfo(OpNode("x"), memory_color="#123456")
        assert get_fill_for_node(_no_templates, color_by, info, True) == MetanodeColors.EXPANDED_COLOR

    def test_hint_colors(self):
        info = RenderNodeInfo(OpNode("x"), xla_cluster_color="#010203")
        assert get_fill_for_node(_no_templates, ColorBy.XLA_CLUSTER, info, False) == "#010203"
        assert get_fill_for_node(_no_templates, ColorBy.MEMORY, info, False) == MetanodeColors.UNKNOWN

    @pytest.mark.parametrize(
        "color", ["orange", "steelblue", "hsl(120, 50%, 50%)", "rgba(10, 20, 30, 0.5)"]
    )
    def test_css_hint_colors_build(self, color):
        render_graph = RenderGraphInfo(HierarchyBuilder().add_op("x").build())
        render_graph.set_color_hints("x", xla_cluster_color=color)
        scene = Scene(render_graph, color_by="xla_cluster")
        scene.build()
        shape = scene.get_node_group("x").select_child(Class.Node.SHAPE)
        (target,) = shape.select_children(Class.Node.COLOR_TARGET)
        assert target.style["fill"] == color
        assert target.style["stroke"] == get_stroke_for_fill(color)

    def test_unparseable_hint_rejected(self, render_graph):
        with pytest.raises(ValueError, match="not-a-color"):
            render_graph.set_color_hints("A", memory_color="not-a-color")
        with pytest.raises(ValueError):
            render_graph.set_color_hints("B", device_colors=[("#00ff00", 0.5), ("nope", 0.5)])
        assert render_graph.get_render_node_by_name("A").memory_color is None

    def test_unknown_mode_raises(self):
        info = RenderNodeInfo(OpNode("x"))
        with pytest.raises(UnknownColorModeError):
            get_fill_for_node(_no_templates, "rainbow", info, False)

    def test_parse_mode(self):
        assert ColorBy.parse("Memory") is ColorBy.MEMORY
        with pytest.raises(UnknownColorModeError, match="rainbow"):
            ColorBy.parse("rainbow")


class TestStroke:
    def test_gradient_outline(self):
        assert get_stroke_for_fill("url(#x)") == MetanodeColors.GRADIENT_OUTLINE

    def test_darker_solid(self):
        assert get_stroke_for_fill("#ffffff") == "#b2b2b2"


class TestStylize:
    def test_fill_and_stroke_applied(self, scene):
        shape = scene.get_node_group("A").select_child(Class.Node.SHAPE)
        (target,) = shape.select_children(Class.Node.COLOR_TARGET)
        assert target.style["fill"] == MetanodeColors.UNKNOWN
        assert target.style["stroke"] == get_stroke_for_fill(MetanodeColors.UNKNOWN)

    def test_selected_node_has_no_inline_stroke(self, scene):
        scene.select_node("A")
        shape = scene.get_node_group("A").select_child(Class.Node.SHAPE)
        (target,) = shape.select_children(Class.Node.COLOR_TARGET)
        assert "stroke" not in target.style

    def test_color_mode_from_hints(self, render_graph):
        render_graph.set_color_hints("A", memory_color="#123456")
        scene = Scene(render_graph, color_by="memory")
        scene.build()
        shape = scene.get_node_group("A").select_child(Class.Node.SHAPE)
        (target,) = shape.select_children(Class.Node.COLOR_TARGET)
        assert target.style["fill"] == "#123456"

    def test_device_mode_registers_gradient(self, render_graph):
        render_graph.set_color_hints("B", device_colors=[("#00ff00", 1.0)])
        scene = Scene(render_graph, color_by=ColorBy.DEVICE)
        scene.build()
        assert scene.gradient_defs == {"B": [(0.0, "#00ff00"), (1.0, "#00ff00")]}

    def test_unknown_scene_color_mode(self, render_graph):
        with pytest.raises(UnknownColorModeError):
            Scene(render_graph, color_by="rainbow")
