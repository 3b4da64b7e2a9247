"""
Unit tests for CLI utility functions.
"""

import json
from unittest.mock import MagicMock, patch

import click

from crafttree.cli.utils import (
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    get_settings,
    load_trees,
    pick_tree,
)


class TestEchoFunctions:
    @patch("click.echo")
    @patch("click.style")
    def test_echo_success(self, mock_style, mock_echo):
        mock_style.return_value = "styled"
        echo_success("done")
        mock_style.assert_called_with("✅ done", fg="green")
        mock_echo.assert_called_with("styled")

    @patch("click.echo")
    @patch("click.style")
    def test_echo_error_goes_to_stderr(self, mock_style, mock_echo):
        mock_style.return_value = "styled"
        echo_error("failed")
        mock_style.assert_called_with("❌ failed", fg="red")
        mock_echo.assert_called_with("styled", err=True)

    @patch("click.echo")
    @patch("click.style")
    def test_echo_warning(self, mock_style, mock_echo):
        echo_warning("careful")
        mock_style.assert_called_with("⚠️  careful", fg="yellow")

    @patch("click.echo")
    @patch("click.style")
    def test_echo_info(self, mock_style, mock_echo):
        echo_info("note")
        mock_style.assert_called_with("   note", dim=True)


class TestLoadTrees:
    def test_tree_shape(self, tmp_path, brick_payload):
        path = tmp_path / "brick.json"
        path.write_text(json.dumps(brick_payload))

        trees = load_trees(str(path))

        assert [t.name for t in trees] == ["Brick"]

    def test_path_shape_uses_target(self, tmp_path, brick_path):
        path = tmp_path / "path.json"
        path.write_text(json.dumps(brick_path))

        trees = load_trees(str(path), target="Brick")

        assert trees[0].name == "Brick"
        assert [c.name for c in trees[0].children] == ["Mud", "Fire"]

    @patch("crafttree.cli.utils.echo_error")
    def test_missing_file(self, mock_error, tmp_path):
        assert load_trees(str(tmp_path / "nope.json")) is None
        assert "not found" in mock_error.call_args.args[0]

    @patch("crafttree.cli.utils.echo_error")
    def test_invalid_json(self, mock_error, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert load_trees(str(path)) is None
        mock_error.assert_called_once()


class TestPickTree:
    @patch("crafttree.cli.utils.echo_error")
    def test_out_of_range(self, mock_error, brick_tree):
        assert pick_tree([brick_tree], 0) is brick_tree
        assert pick_tree([brick_tree], 1) is None
        assert pick_tree([brick_tree], -1) is None
        assert mock_error.call_count == 2


class TestGetSettings:
    def test_reads_config_path_from_context(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("playback:\n  algorithm: dfs\n")
        ctx = MagicMock(spec=click.Context)
        ctx.obj = {"config_path": str(path)}

        assert get_settings(ctx).playback.algorithm == "dfs"
