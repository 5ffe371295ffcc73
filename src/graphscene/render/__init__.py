"""Render-state overlay: which nodes are materialized, expanded and how they are keyed."""

from graphscene.render.colors import MetanodeColors, darker, parse_color, structure_palette
from graphscene.render.edges import bridge_edge_key, bridge_node_name, edge_key
from graphscene.render.graph import RenderGraphInfo
from graphscene.render.info import (
    Annotation,
    AnnotationList,
    AnnotationType,
    RenderGroupNodeInfo,
    RenderMetaedgeInfo,
    RenderNodeInfo,
)

__all__ = [
    "Annotation",
    "AnnotationList",
    "AnnotationType",
    "MetanodeColors",
    "RenderGraphInfo",
    "RenderGroupNodeInfo",
    "RenderMetaedgeInfo",
    "RenderNodeInfo",
    "bridge_edge_key",
    "bridge_node_name",
    "darker",
    "edge_key",
    "parse_color",
    "structure_palette",
]
