"""graphscene CLI: inspect hierarchies and trace node inputs.

Entry point for the `graphscene` command. Requires ``pip install graphscene[cli]``.

Commands:
    ls        List registered hierarchies from pyproject.toml
    inspect   Show the node tree of a hierarchy
    trace     Build the scene, trace a node's inputs and print the markings
"""

from __future__ import annotations


def _require_typer():
    """Check that typer is available."""
    try:
        import typer  # noqa: F401
    except ImportError:
        import sys

        print("Error: typer is required for the CLI. Install with: pip install graphscene[cli]", file=sys.stderr)
        raise SystemExit(1) from None


def create_app():
    """Create the Typer app with all commands."""
    _require_typer()

    import typer

    from graphscene.cli.graph_cmd import register_commands

    app = typer.Typer(
        name="graphscene",
        help="Inspect hierarchical computation graphs and trace node inputs.",
        no_args_is_help=True,
    )
    register_commands(app)

    return app


def main():
    """CLI entry point."""
    app = create_app()
    app()
