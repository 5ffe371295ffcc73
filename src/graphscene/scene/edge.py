"""Edge groups of the scene, one ``g.edge`` per core-graph edge."""

from __future__ import annotations

from typing import TYPE_CHECKING

import networkx as nx

from graphscene.render.info import RenderMetaedgeInfo, RenderNodeInfo
from graphscene.scene.elements import Class, SceneElement
from graphscene.scene.geometry import edge_path

if TYPE_CHECKING:
    from graphscene.scene.scene import Scene


def build_group(scene_group: SceneElement, core_graph: nx.DiGraph, scene: Scene) -> list[SceneElement]:
    """Join the core graph's edges with the edge groups of ``scene_group``.

    Groups carry their key in ``data-edge`` and are indexed by it.
    """
    container = scene_group.select_or_create_child("g", Class.Edge.CONTAINER)
    existing = {el.get_attr("data-edge"): el for el in container.children}
    groups: list[SceneElement] = []

    for v, w, attrs in core_graph.edges(data=True):
        info: RenderMetaedgeInfo = attrs["info"]
        group = existing.pop(info.key, None)
        if group is None:
            group = container.append("g", Class.Edge.GROUP)
            group.attr("data-edge", info.key)
            group.append("path", Class.Edge.LINE)
            scene.add_edge_group(info.key, group)
        group.data = info

        src: RenderNodeInfo = core_graph.nodes[v]["info"]
        dst: RenderNodeInfo = core_graph.nodes[w]["info"]
        group.classed(Class.Edge.STRUCTURAL, src.structural or dst.structural)
        group.classed(Class.Edge.CONTROL, info.is_control_only)
        line = group.select_child(Class.Edge.LINE)
        if line is not None:
            line.attr("d", edge_path(info.points))
        groups.append(group)

    for key, group in existing.items():
        scene.remove_edge_group(key, group)
        group.remove()
    return groups
