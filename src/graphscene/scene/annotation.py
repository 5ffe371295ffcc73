"""Annotation groups: the side boxes listing nodes folded into or shortcut to a node."""

from __future__ import annotations

from typing import TYPE_CHECKING

from graphscene.events.types import NodeHighlightEvent, NodeSelectEvent, NodeUnhighlightEvent
from graphscene.render.info import Annotation, AnnotationList, AnnotationType, RenderNodeInfo
from graphscene.scene import node
from graphscene.scene.elements import Class, SceneElement
from graphscene.scene.geometry import compute_cx_position_of_node_shape, translate
from graphscene.scene.labels import enforce_label_width, label_budget

if TYPE_CHECKING:
    from graphscene.scene.scene import Scene

LABEL_OFFSET = 2


def annotation_class(annotation_type: AnnotationType) -> str:
    return annotation_type.value.lower()


def build_group(
    container: SceneElement,
    annotation_list: AnnotationList,
    host_info: RenderNodeInfo,
    scene: Scene,
) -> list[SceneElement]:
    """Join the annotations of one side of ``host_info`` with their groups.

    Groups are keyed by the annotated node's name.
    """
    existing = {el.get_attr("data-name"): el for el in container.children}
    groups: list[SceneElement] = []

    for a in annotation_list:
        group = existing.pop(a.node.name, None)
        if group is None:
            group = container.append("g", Class.Annotation.GROUP, annotation_class(a.annotation_type))
            group.attr("data-name", a.node.name)
            group.data = a
            scene.add_annotation_group(a, host_info, group)
            _build_content(group, a, scene)
        group.data = a
        _update(group, a, host_info, scene)
        groups.append(group)

    for group in existing.values():
        scene.remove_annotation_group(group.data, host_info, group)
        group.remove()
    return groups


def _build_content(group: SceneElement, a: Annotation, scene: Scene) -> None:
    if a.annotation_type is AnnotationType.SUMMARY:
        icon = group.append("use", Class.Annotation.NODE)
        icon.attr("xlink:href", "#summary-icon")
    elif a.annotation_type is not AnnotationType.ELLIPSIS:
        node.build_shape(group, a.render_node_info, Class.Annotation.NODE)

    if a.annotation_type is not AnnotationType.ELLIPSIS:
        group.append("path", Class.Annotation.EDGE)

    text = a.node.name if a.annotation_type is AnnotationType.ELLIPSIS else a.node.display_name
    label = group.append("text", Class.Annotation.LABEL)
    label.attr("dy", ".35em")
    label.attr("text-anchor", "end" if a.is_in else "start")
    font_size = scene.config.label_font_size
    fit = enforce_label_width(
        text, label_budget(scene.config, None, annotation=True), scene.measurer, font_size
    )
    label.text = fit.text
    if fit.truncated:
        label.append("title").text = fit.full_text

    if a.annotation_type is not AnnotationType.ELLIPSIS:
        _add_interaction(group, scene)


def _add_interaction(group: SceneElement, scene: Scene) -> None:
    group.on("click", lambda a: scene.fire(NodeSelectEvent(name=a.node.name)))
    group.on("mouseover", lambda a: scene.fire(NodeHighlightEvent(name=a.node.name)))
    group.on("mouseout", lambda a: scene.fire(NodeUnhighlightEvent(name=a.node.name)))


def _update(group: SceneElement, a: Annotation, host_info: RenderNodeInfo, scene: Scene) -> None:
    if a.annotation_type is AnnotationType.ELLIPSIS:
        label = group.select_child(Class.Annotation.LABEL)
        if label is not None:
            label.text = a.node.name
    elif a.annotation_type is not AnnotationType.SUMMARY:
        node.stylize(group, a.render_node_info, scene, Class.Annotation.NODE)
    position(group, a, host_info)


def position(group: SceneElement, a: Annotation, host_info: RenderNodeInfo) -> None:
    """Place an annotation relative to its host's shape."""
    cx = compute_cx_position_of_node_shape(host_info)
    x = cx + a.dx
    y = host_info.y + a.dy
    translate(group, x, y)
    label = group.select_child(Class.Annotation.LABEL)
    if label is not None:
        offset = -a.width / 2 - LABEL_OFFSET if a.is_in else a.width / 2 + LABEL_OFFSET
        label.attr("x", offset).attr("y", 0)
