"""Exceptions for graphscene hierarchy construction and scene rendering."""

from __future__ import annotations

from typing import Any


class HierarchyError(Exception):
    """Raised when a hierarchy is constructed inconsistently.

    Examples: a node whose name prefix does not resolve to an existing
    group, an embedding whose host is not an op, a duplicate op name.
    """

    pass


class NodeNotFoundError(KeyError):
    """A name passed to the scene or render graph does not exist.

    Attributes:
        name: The name that failed to resolve
        message: Human-readable error message
    """

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        self.message = message or f"No node named '{name}' in the hierarchy"
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class UnknownNodeTypeError(Exception):
    """A node variant has no shape, position, class or fill rule.

    Raised immediately during scene construction. There is no fallback
    rendering for an unrecognized variant.

    Attributes:
        node_type: The offending node type value
        node_name: Optional name of the node being rendered
    """

    def __init__(self, node_type: Any, node_name: str | None = None) -> None:
        self.node_type = node_type
        self.node_name = node_name
        message = f"Unrecognized node type: {node_type!r}"
        if node_name is not None:
            message += f" (node '{node_name}')"
        super().__init__(message)


class UnknownColorModeError(Exception):
    """The requested color mode is not one of the ColorBy members.

    Attributes:
        color_by: The value that failed to resolve
    """

    def __init__(self, color_by: Any) -> None:
        self.color_by = color_by
        super().__init__(f"Unknown case to color nodes by: {color_by!r}")
