"""Hierarchy CLI commands: ls, inspect, trace."""

from __future__ import annotations

import importlib
import sys
from typing import Annotated

import typer

from graphscene.cli._format import print_json, print_lines, print_table, truncate_cell
from graphscene.config import load_config
from graphscene.exceptions import HierarchyError, NodeNotFoundError
from graphscene.hierarchy import GroupNode, Hierarchy, HierarchyBuilder, Node, NodeType, OpNode


def _coerce_hierarchy(obj, module_path: str) -> Hierarchy:
    if callable(obj) and not isinstance(obj, (Hierarchy, HierarchyBuilder)):
        obj = obj()
    if isinstance(obj, HierarchyBuilder):
        obj = obj.build()
    if not isinstance(obj, Hierarchy):
        print(
            f"Error: '{module_path}' is not a Hierarchy or HierarchyBuilder "
            f"(got {type(obj).__name__})"
        )
        raise typer.Exit(1)
    return obj


def _import_hierarchy(module_path: str) -> Hierarchy:
    """Import a hierarchy from 'module:attribute' path.

    The attribute may be a Hierarchy, a HierarchyBuilder, or a callable
    taking no arguments that returns either.

    Examples:
        my_module:hierarchy
        my_package.models:build_hierarchy
    """
    module_name, attr_name = module_path.rsplit(":", 1)

    try:
        if "." not in sys.path:
            sys.path.insert(0, ".")
        module = importlib.import_module(module_name)
    except ImportError as e:
        print(f"Error: Could not import module '{module_name}': {e}")
        raise typer.Exit(1) from e

    obj = getattr(module, attr_name, None)
    if obj is None:
        print(f"Error: Module '{module_name}' has no attribute '{attr_name}'")
        raise typer.Exit(1)

    return _coerce_hierarchy(obj, module_path)


def _load_from_registry(name: str) -> Hierarchy:
    """Look up a hierarchy name in [tool.graphscene.graphs] and import it."""
    config = load_config()
    module_path = config.graphs.get(name)
    if module_path is None:
        print(f"Error: '{name}' not found in [tool.graphscene.graphs]")
        print("Hint: Use 'module:attribute' format or register in pyproject.toml:")
        print(f'  [tool.graphscene.graphs]\n  {name} = "my_module:hierarchy"')
        raise typer.Exit(1)
    return _import_hierarchy(module_path)


def load_hierarchy(target: str) -> Hierarchy:
    """Load a Hierarchy by module path ('module:attr') or registry name."""
    if ":" in target:
        return _import_hierarchy(target)
    return _load_from_registry(target)


def _walk(hierarchy: Hierarchy, node: Node, depth: int = 0):
    """Depth-first (node, depth) pairs below ``node``, in child order."""
    for child in hierarchy.children(node.name):
        yield child, depth
        if isinstance(child, GroupNode):
            yield from _walk(hierarchy, child, depth + 1)


def _node_detail(node: Node) -> str:
    if isinstance(node, OpNode):
        return node.op or "—"
    if node.type is NodeType.META:
        return node.template_id or "—"
    if node.type is NodeType.SERIES:
        return f"{node.prefix}{{{','.join(map(str, node.ids))}}}{node.suffix}"
    return "—"


def _node_dict(node: Node, depth: int) -> dict:
    data = {
        "name": node.name,
        "type": node.type.value,
        "depth": depth,
        "cardinality": node.cardinality,
        "include": node.include.value,
    }
    if isinstance(node, OpNode):
        data["op"] = node.op
        data["inputs"] = [i.name for i in node.inputs]
        data["device"] = node.device
        data["in_embeddings"] = [n.name for n in node.in_embeddings]
        data["out_embeddings"] = [n.name for n in node.out_embeddings]
    if isinstance(node, GroupNode):
        data["children"] = node.child_names()
    return data


def register_commands(app: typer.Typer) -> None:
    """Register ls, inspect and trace on the top-level app."""

    @app.command("ls")
    def graph_ls(
        as_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
        output: Annotated[str | None, typer.Option("--output", help="Write JSON to file")] = None,
    ):
        """List registered hierarchies from [tool.graphscene.graphs]."""
        config = load_config()

        if as_json:
            print_json("ls", {"graphs": config.graphs}, output)
            return

        if not config.graphs:
            print("\n  No hierarchies registered in pyproject.toml.")
            print("  Add entries under [tool.graphscene.graphs]:")
            print('    [tool.graphscene.graphs]\n    model = "my_module:hierarchy"')
            return

        headers = ["Name", "Module Path"]
        rows = [[name, path] for name, path in sorted(config.graphs.items())]
        lines = print_table(headers, rows)

        print(f"\n  Registered hierarchies ({len(config.graphs)}):\n")
        print_lines(lines)

    @app.command("inspect")
    def graph_inspect(
        target: Annotated[str, typer.Argument(help="Hierarchy as 'module:attribute' or registered name")],
        as_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
        output: Annotated[str | None, typer.Option("--output", help="Write JSON to file")] = None,
    ):
        """Show the node tree of a hierarchy."""
        hierarchy = load_hierarchy(target)
        walked = list(_walk(hierarchy, hierarchy.root))

        if as_json:
            data = {
                "nodes": [_node_dict(node, depth) for node, depth in walked],
                "node_count": len(walked),
            }
            print_json("inspect", data, output)
            return

        op_count = sum(1 for node, _ in walked if node.type is NodeType.OP)
        print(f"\nHierarchy: {len(walked)} nodes | {op_count} ops\n")

        headers = ["Node", "Type", "Depth", "Detail"]
        rows = [
            [
                truncate_cell("  " * depth + node.display_name, 48),
                node.type.value,
                str(depth),
                truncate_cell(_node_detail(node), 30),
            ]
            for node, depth in walked
        ]
        print_lines(print_table(headers, rows))

    @app.command("trace")
    def graph_trace(
        target: Annotated[str, typer.Argument(help="Hierarchy as 'module:attribute' or registered name")],
        select: Annotated[str, typer.Option("--select", help="Node whose inputs are traced")],
        expand: Annotated[
            list[str] | None, typer.Option("--expand", help="Group to expand before tracing (repeatable)")
        ] = None,
        as_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
        output: Annotated[str | None, typer.Option("--output", help="Write JSON to file")] = None,
    ):
        """Build the scene, trace the inputs of a node and show each element's trace class."""
        from graphscene.render import RenderGraphInfo
        from graphscene.scene import Class, Scene

        hierarchy = load_hierarchy(target)
        render_graph = RenderGraphInfo(hierarchy, load_config())
        try:
            for name in expand or []:
                render_graph.expand(name)
            scene = Scene(render_graph)
            scene.build()
            scene.select_node(select)
        except (HierarchyError, NodeNotFoundError, ValueError) as e:
            print(f"Error: {e}")
            raise typer.Exit(1) from e

        result = scene.last_trace
        rows_data = []
        for name, element in scene.iter_node_groups():
            marks = [c for c in Class.TRACE_CLASSES if element.has_class(c)]
            rows_data.append({"kind": "node", "name": name, "classes": marks})
        for key, element in scene.iter_edge_groups():
            marks = [c for c in Class.TRACE_CLASSES if element.has_class(c)]
            rows_data.append({"kind": "edge", "name": key, "classes": marks})

        if as_json:
            data = {
                "selected": result.selected if result else None,
                "traced_nodes": list(result.traced_nodes) if result else [],
                "elements": rows_data,
            }
            print_json("trace", data, output)
            return

        traced = len(result.traced_nodes) if result else 0
        print(f"\nTrace of '{select}': {traced} ops visited\n")
        headers = ["Kind", "Element", "Trace"]
        rows = [
            [row["kind"], truncate_cell(row["name"], 60), ", ".join(row["classes"]) or "—"]
            for row in rows_data
        ]
        print_lines(print_table(headers, rows))
