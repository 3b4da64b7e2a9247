"""Unit tests for render surfaces."""

import pytest
from rich.console import Console

from crafttree.core.errors import RenderError
from crafttree.render.surface import ConsoleSurface, RecordingSurface, node_style


class TestRecordingSurface:
    def test_records_operations(self, brick_hierarchy):
        surface = RecordingSurface()
        root, mud = brick_hierarchy.root, brick_hierarchy.get("n1")
        surface.draw_node(root)
        surface.draw_node(mud)
        surface.draw_link(root, mud, "n0->n1")

        assert surface.nodes == ["n0", "n1"]
        assert surface.links == ["n0->n1"]
        assert surface.names == ["Brick", "Mud"]

        surface.clear()
        assert surface.nodes == [] and surface.links == []
        assert surface.clear_count == 1

    def test_fail_on(self, brick_hierarchy):
        surface = RecordingSurface(fail_on={"Mud"})
        with pytest.raises(RenderError):
            surface.draw_node(brick_hierarchy.get("n1"))


class TestConsoleSurface:
    def test_prints_nodes(self, brick_hierarchy):
        console = Console(record=True, width=80)
        surface = ConsoleSurface(console, show_links=True)
        root, mud = brick_hierarchy.root, brick_hierarchy.get("n1")
        surface.draw_node(root)
        surface.draw_node(mud)
        surface.draw_link(root, mud, "n0->n1")
        surface.show_error("Could not render tree: boom")

        text = console.export_text()
        assert "Brick" in text and "Mud" in text
        assert "Brick ← Mud" in text
        assert "Could not render tree: boom" in text
        assert text.count("Could not render tree") == 1

    def test_styles(self, brick_hierarchy):
        assert node_style(brick_hierarchy.root) == "green"
        assert node_style(brick_hierarchy.get("n2")) == "yellow"
        assert node_style(brick_hierarchy.get("n1")) == "cyan"
