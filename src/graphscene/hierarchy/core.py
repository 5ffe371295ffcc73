"""The hierarchy tree: name-indexed nodes under a single root metanode."""

from __future__ import annotations

from collections.abc import Iterator

from graphscene.exceptions import HierarchyError, NodeNotFoundError
from graphscene.hierarchy.nodes import (
    NAMESPACE_DELIM,
    ROOT_NAME,
    GroupNode,
    Metanode,
    Node,
    NodeType,
    OpNode,
    basename,
    parent_prefix,
)


def get_strict_name(name: str) -> str:
    """Name an op receives when a metanode already owns its name.

    Example:
        >>> get_strict_name("a/b")
        'a/b/(b)'
    """
    return f"{name}{NAMESPACE_DELIM}({basename(name)})"


class Hierarchy:
    """Rooted tree over all node names.

    Groups own their children through their metagraph; ``parent`` links
    point back up. Embedded auxiliary ops are indexed by name but are not
    metagraph members: their parent is the op hosting them.

    Attributes:
        root: The root metanode (named ROOT_NAME)
    """

    def __init__(self) -> None:
        self.root = Metanode(ROOT_NAME)
        self.root.depth = 0
        self._index: dict[str, Node] = {ROOT_NAME: self.root}
        self._templates: dict[str, int] = {}

    # === Lookup ===

    def get_node_by_name(self, name: str | None) -> Node | None:
        if name is None:
            return None
        return self._index.get(name)

    def require(self, name: str) -> Node:
        """Like get_node_by_name, but raises NodeNotFoundError on a miss."""
        node = self._index.get(name)
        if node is None:
            raise NodeNotFoundError(name)
        return node

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._index)

    def iter_nodes(self) -> Iterator[Node]:
        return iter(self._index.values())

    def children(self, name: str) -> list[Node]:
        """Direct metagraph children of a group node, in insertion order."""
        node = self.require(name)
        if not isinstance(node, GroupNode):
            return []
        return [self._index[child] for child in node.metagraph.nodes]

    def ancestors(self, node: Node) -> list[Node]:
        """Chain of parents from the immediate parent up to the root."""
        chain = []
        current = node.parent
        while current is not None:
            chain.append(current)
            current = current.parent
        return chain

    # === Mutation (build time only) ===

    def set_node(self, node: Node) -> None:
        """Index a node by name. Attaching it to a parent is separate."""
        if node.name in self._index and self._index[node.name] is not node:
            raise HierarchyError(f"Duplicate node name: '{node.name}'")
        self._index[node.name] = node

    def attach(self, node: Node, parent: GroupNode) -> None:
        """Index a node and add it to a group's metagraph."""
        self.set_node(node)
        node.parent = parent
        parent.metagraph.add_node(node.name, node=node)

    # === Templates ===

    def register_template(self, template_id: str) -> int:
        if template_id not in self._templates:
            self._templates[template_id] = len(self._templates)
        return self._templates[template_id]

    def template_index(self, template_id: str) -> int:
        """Stable palette index for a template id (first registration wins)."""
        return self.register_template(template_id)

    # === Validation ===

    def validate(self) -> None:
        """Check the parent/prefix invariant for every non-root node.

        A node's name prefix must name an existing node which is its parent,
        or, for a series member, the series' own parent. Embedded nodes may
        also sit beside their host instead of under it.

        Raises:
            HierarchyError: On the first violation found
        """
        for node in self._index.values():
            if node.name == ROOT_NAME:
                continue
            if node.parent is None:
                raise HierarchyError(f"Node '{node.name}' has no parent")
            prefix = parent_prefix(node.name)
            if prefix not in self._index:
                raise HierarchyError(
                    f"Node '{node.name}' has prefix '{prefix}' which is not a node"
                )
            allowed = {node.parent.name}
            if node.parent.type is NodeType.SERIES and node.parent.parent is not None:
                allowed.add(node.parent.parent.name)
            if isinstance(node, OpNode) and node.embedded and node.parent.parent is not None:
                allowed.add(node.parent.parent.name)
            if prefix not in allowed:
                raise HierarchyError(
                    f"Node '{node.name}' is attached to '{node.parent.name}' "
                    f"but its name prefix is '{prefix}'"
                )
