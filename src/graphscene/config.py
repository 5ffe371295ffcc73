"""Project-level configuration from pyproject.toml.

Reads the [tool.graphscene] section to override label budgets, font
sizing, annotation limits and the default color mode, and to register
named hierarchies for the CLI.

Example:
    [tool.graphscene]
    color_by = "structure"
    op_max_label_width = 40

    [tool.graphscene.graphs]
    model = "my_package.models:hierarchy"
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


@dataclass(frozen=True)
class SceneConfig:
    """Rendering settings shared by the render graph and the scene.

    Widths are in pixels. Font sizes are in pixels as well.
    """

    # Label width budgets per node kind
    op_max_label_width: float = 30
    meta_max_label_width: float = 52
    annotation_max_label_width: float = 72
    label_font_size: float = 9

    # Collapsed metanode labels shrink their font as they get longer
    max_metanode_label_length: int = 18
    max_metanode_label_length_large_font: int = 11
    max_metanode_label_length_font_size: float = 9
    min_metanode_label_length_font_size: float = 6

    # Annotation boxes beside a node
    max_annotations: int = 5

    color_by: str = "structure"
    trace_inputs: bool = True

    # CLI registry: name -> "module:attribute"
    graphs: dict[str, str] = field(default_factory=dict)


def find_pyproject(start: Path | None = None) -> Path | None:
    """Walk up from start directory to find pyproject.toml."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def config_from_mapping(section: dict[str, Any]) -> SceneConfig:
    """Build a SceneConfig from a [tool.graphscene]-shaped mapping.

    Unknown keys are ignored so newer pyproject files keep working.
    """
    known = {f.name for f in fields(SceneConfig)}
    values = {key: value for key, value in section.items() if key in known}
    if "graphs" in values:
        values["graphs"] = dict(values["graphs"])
    return SceneConfig(**values)


def load_config(start: Path | None = None) -> SceneConfig:
    """Load [tool.graphscene] from the nearest pyproject.toml.

    Returns default config if no pyproject.toml or no [tool.graphscene] section.
    """
    path = find_pyproject(start)
    if path is None:
        return SceneConfig()

    with open(path, "rb") as f:
        data = tomllib.load(f)

    section = data.get("tool", {}).get("graphscene", {})
    if not section:
        return SceneConfig()

    return config_from_mapping(section)
