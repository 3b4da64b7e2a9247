"""
Unit tests for the 'layout' command.
"""

import json

import pytest
from click.testing import CliRunner

from crafttree.cli.main import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tree_file(tmp_path, brick_payload):
    path = tmp_path / "brick.json"
    path.write_text(json.dumps(brick_payload))
    return str(path)


class TestLayoutCommand:
    def test_json_layout(self, runner, tree_file, tmp_path):
        result = runner.invoke(main, [
            "--config", str(tmp_path / "missing.yaml"),
            "layout", tree_file, "--width", "600", "--height", "300", "--json",
        ])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["width"] == 600
        nodes = {n["name"]: n for n in data["nodes"]}
        assert set(nodes) == {"Brick", "Mud", "Fire", "Water", "Earth"}
        assert nodes["Brick"]["parent"] is None
        assert nodes["Water"]["parent"] == nodes["Mud"]["id"]
        assert nodes["Brick"]["y"] < nodes["Mud"]["y"] < nodes["Water"]["y"]
        assert all(0 <= n["x"] <= 600 for n in data["nodes"])

    def test_text_layout(self, runner, tree_file, tmp_path):
        result = runner.invoke(main, ["--config", str(tmp_path / "missing.yaml"), "layout", tree_file])

        assert result.exit_code == 0
        assert result.output.startswith("Layout 960 x")
        assert "Brick" in result.output
