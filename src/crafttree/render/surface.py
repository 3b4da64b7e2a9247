"""
Render surfaces.

The playback driver never draws directly; it calls a RenderSurface:

    clear()                         forget everything drawn so far
    draw_node(node)                 reveal one positioned node
    draw_link(parent, child, id)    reveal one structural link
    show_error(message)             replace the drawing with an inline error

Any method may raise RenderError, which the driver and the visualizer
treat as a RenderFailure.
"""

import logging
from typing import List, Optional, Protocol, Set, Tuple

from rich.console import Console
from rich.markup import escape

from ..core.errors import RenderError
from ..core.hierarchy import PositionedNode

logger = logging.getLogger(__name__)


class RenderSurface(Protocol):
    def clear(self) -> None: ...

    def draw_node(self, node: PositionedNode) -> None: ...

    def draw_link(self, parent: PositionedNode, child: PositionedNode, link_id: str) -> None: ...

    def show_error(self, message: str) -> None: ...


def node_style(node: PositionedNode) -> str:
    """Color for a node, following the tree view legend."""
    if node.parent is None and node.depth == 0:
        return "green"
    if node.is_circular_reference:
        return "dark_orange"
    if node.is_base_element:
        return "yellow"
    if node.has_no_recipe:
        return "grey50"
    return "cyan"


class RecordingSurface:
    """
    In-memory surface that keeps what was drawn, in order.

    Args:
        fail_on: Element names whose draw_node raises RenderError.
    """

    def __init__(self, fail_on: Optional[Set[str]] = None):
        self.fail_on = set(fail_on or ())
        self.nodes: List[str] = []
        self.names: List[str] = []
        self.links: List[str] = []
        self.operations: List[Tuple[str, str]] = []
        self.errors: List[str] = []
        self.clear_count = 0

    def clear(self) -> None:
        self.nodes.clear()
        self.names.clear()
        self.links.clear()
        self.errors.clear()
        self.clear_count += 1
        self.operations.append(("clear", ""))

    def draw_node(self, node: PositionedNode) -> None:
        if node.name in self.fail_on:
            raise RenderError(f"cannot draw {node.name}")
        self.nodes.append(node.id)
        self.names.append(node.name)
        self.operations.append(("node", node.id))

    def draw_link(self, parent: PositionedNode, child: PositionedNode, link_id: str) -> None:
        self.links.append(link_id)
        self.operations.append(("link", link_id))

    def show_error(self, message: str) -> None:
        self.errors.append(message)
        self.operations.append(("error", message))


class ConsoleSurface:
    """Print reveals to a terminal as they happen."""

    def __init__(self, console: Optional[Console] = None, show_links: bool = False):
        self.console = console or Console()
        self.show_links = show_links
        self.count = 0

    def clear(self) -> None:
        self.count = 0

    def draw_node(self, node: PositionedNode) -> None:
        self.count += 1
        style = node_style(node)
        indent = "  " * node.depth
        marker = " ↺" if node.is_circular_reference else ""
        self.console.print(f"{self.count:>3} {indent}[{style}]{escape(node.name)}[/{style}]{marker}")

    def draw_link(self, parent: PositionedNode, child: PositionedNode, link_id: str) -> None:
        if self.show_links:
            self.console.print(f"    [dim]{escape(parent.name)} ← {escape(child.name)}[/dim]")

    def show_error(self, message: str) -> None:
        self.console.print(f"[red]{escape(message)}[/red]")
