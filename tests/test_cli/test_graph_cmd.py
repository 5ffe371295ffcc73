"""Tests for the ls, inspect and trace CLI commands."""

from __future__ import annotations

import json
import textwrap

import pytest

typer = pytest.importorskip("typer")

from typer.testing import CliRunner  # noqa: E402

from graphscene.cli import create_app  # noqa: E402
from graphscene.cli._format import json_envelope, print_table, truncate_cell  # noqa: E402
from graphscene.hierarchy import HierarchyBuilder  # noqa: E402

# ---------------------------------------------------------------------------
# Test hierarchies defined at module scope for the CLI to import
# ---------------------------------------------------------------------------

test_builder = (
    HierarchyBuilder()
    .add_op("A/op1", "Const")
    .add_op("A/op2", "Identity")
    .add_op("B/op3", "MatMul", inputs=["A/op2"])
)
test_hierarchy = test_builder.build()


def build_hierarchy():
    return test_builder.build()


not_a_hierarchy = 42

runner_cli = CliRunner()

MODULE_PATH = f"{__name__}:test_hierarchy"


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormat:
    def test_envelope(self):
        envelope = json_envelope("inspect", {"x": 1})
        assert envelope["schema_version"] == 1
        assert envelope["command"] == "inspect"
        assert envelope["data"] == {"x": 1}
        assert "generated_at" in envelope

    def test_table_alignment(self):
        lines = print_table(["Name", "Depth"], [["a", "1"], ["longer", "10"]])
        assert lines[0] == "  Name    Depth"
        assert lines[2] == "  a           1"
        assert lines[3] == "  longer     10"

    def test_empty_table(self):
        assert print_table(["Name"], []) == []

    def test_truncate_cell(self):
        assert truncate_cell("abcdef", 10) == "abcdef"
        assert truncate_cell("abcdef", 4) == "abc…"


# ---------------------------------------------------------------------------
# ls
# ---------------------------------------------------------------------------


class TestLs:
    def test_no_registry(self, tmp_path, monkeypatch):
        (tmp_path / "pyproject.toml").write_text("[project]\nname = 'test'\n")
        monkeypatch.chdir(tmp_path)
        result = runner_cli.invoke(create_app(), ["ls"])
        assert result.exit_code == 0
        assert "No hierarchies registered" in result.output

    def test_with_registry_json(self, tmp_path, monkeypatch):
        (tmp_path / "pyproject.toml").write_text(
            textwrap.dedent("""\
            [tool.graphscene.graphs]
            model = "my_module:hierarchy"
        """)
        )
        monkeypatch.chdir(tmp_path)
        result = runner_cli.invoke(create_app(), ["ls", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["command"] == "ls"
        assert data["data"]["graphs"] == {"model": "my_module:hierarchy"}

    def test_with_registry_table(self, tmp_path, monkeypatch):
        (tmp_path / "pyproject.toml").write_text(
            '[tool.graphscene.graphs]\nmodel = "my_module:hierarchy"\n'
        )
        monkeypatch.chdir(tmp_path)
        result = runner_cli.invoke(create_app(), ["ls"])
        assert result.exit_code == 0
        assert "model" in result.output
        assert "my_module:hierarchy" in result.output


# ---------------------------------------------------------------------------
# inspect
# ---------------------------------------------------------------------------


class TestInspect:
    def test_table(self):
        result = runner_cli.invoke(create_app(), ["inspect", MODULE_PATH])
        assert result.exit_code == 0, result.output
        assert "5 nodes | 3 ops" in result.output
        assert "MatMul" in result.output

    def test_json(self):
        result = runner_cli.invoke(create_app(), ["inspect", MODULE_PATH, "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)["data"]
        assert data["node_count"] == 5
        by_name = {n["name"]: n for n in data["nodes"]}
        assert by_name["A"]["children"] == ["A/op1", "A/op2"]
        assert by_name["B/op3"]["inputs"] == ["A/op2"]
        assert by_name["B/op3"]["depth"] == 1

    def test_builder_and_factory_targets(self):
        for target in (f"{__name__}:test_builder", f"{__name__}:build_hierarchy"):
            result = runner_cli.invoke(create_app(), ["inspect", target, "--json"])
            assert result.exit_code == 0, result.output

    def test_wrong_type(self):
        result = runner_cli.invoke(create_app(), ["inspect", f"{__name__}:not_a_hierarchy"])
        assert result.exit_code == 1
        assert "not a Hierarchy" in result.output

    def test_missing_module(self):
        result = runner_cli.invoke(create_app(), ["inspect", "no_such_module_xyz:h"])
        assert result.exit_code == 1
        assert "Could not import" in result.output

    def test_missing_attribute(self):
        result = runner_cli.invoke(create_app(), ["inspect", f"{__name__}:nope"])
        assert result.exit_code == 1
        assert "has no attribute" in result.output

    def test_unregistered_name(self, tmp_path, monkeypatch):
        (tmp_path / "pyproject.toml").write_text("[project]\nname = 'test'\n")
        monkeypatch.chdir(tmp_path)
        result = runner_cli.invoke(create_app(), ["inspect", "model"])
        assert result.exit_code == 1
        assert "not found in [tool.graphscene.graphs]" in result.output


# ---------------------------------------------------------------------------
# trace
# ---------------------------------------------------------------------------


def _trace_json(*args: str) -> dict:
    result = runner_cli.invoke(create_app(), ["trace", MODULE_PATH, *args, "--json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.output)["data"]


def _classes(data: dict, name: str) -> list[str]:
    return next(e["classes"] for e in data["elements"] if e["name"] == name)


class TestTrace:
    def test_collapsed(self):
        data = _trace_json("--select", "B/op3")
        assert data["selected"] == "B"
        assert data["traced_nodes"] == ["B/op3", "A/op2"]
        assert _classes(data, "A") == ["input-highlight"]
        assert _classes(data, "A--B") == ["input-edge-highlight"]

    def test_expanded(self):
        data = _trace_json("--select", "B/op3", "--expand", "A")
        assert _classes(data, "A/op2") == ["input-highlight"]
        assert _classes(data, "A/op2--B~~A~~OUT") == ["input-edge-highlight"]
        assert _classes(data, "A/op1") == ["non-input"]

    def test_table(self):
        result = runner_cli.invoke(create_app(), ["trace", MODULE_PATH, "--select", "B/op3"])
        assert result.exit_code == 0, result.output
        assert "Trace of 'B/op3'" in result.output
        assert "input-edge-highlight" in result.output

    def test_unknown_selection(self):
        result = runner_cli.invoke(create_app(), ["trace", MODULE_PATH, "--select", "nope"])
        assert result.exit_code == 1
        assert "nope" in result.output

    def test_expand_op_fails(self):
        result = runner_cli.invoke(
            create_app(), ["trace", MODULE_PATH, "--select", "B/op3", "--expand", "A/op1"]
        )
        assert result.exit_code == 1
