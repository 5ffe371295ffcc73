"""Rendered-edge keys.

The key of a rendered edge is how the input tracer finds it again, so the
format is fixed:

    direct edge:          "<source>--<destination>"
    entering a group:     "<inner>--<boundaryNode>~~<outer>~~IN"
    leaving a group:      "<inner>--<boundaryNode>~~<outer>~~OUT"

``outer`` is the group whose boundary is crossed, ``inner`` its child on
the path to the real endpoint, and ``boundaryNode`` the child of the lowest
common ancestor that holds the other endpoint.
"""

from __future__ import annotations

from graphscene.hierarchy.nodes import BRIDGE_DELIM

EDGE_DELIM = "--"
IN = "IN"
OUT = "OUT"


def edge_key(source: str, destination: str) -> str:
    return f"{source}{EDGE_DELIM}{destination}"


def bridge_node_name(boundary_node: str, outer: str, inbound: bool) -> str:
    """Name of the bridge node drawn inside ``outer`` for a crossing edge.

    Example:
        >>> bridge_node_name("B", "A", inbound=False)
        'B~~A~~OUT'
    """
    direction = IN if inbound else OUT
    return BRIDGE_DELIM.join((boundary_node, outer, direction))


def bridge_edge_key(inner: str, boundary_node: str, outer: str, inbound: bool) -> str:
    """Key of the edge between ``inner`` and the bridge node of ``outer``.

    Example:
        >>> bridge_edge_key("A/op2", "B", "A", inbound=False)
        'A/op2--B~~A~~OUT'
    """
    return edge_key(inner, bridge_node_name(boundary_node, outer, inbound))
