"""
Layout Engine.

Assigns (x, y) to every node of a RecipeHierarchy with a top-down tidy
tree layout: leaves occupy consecutive horizontal slots, each parent is
centered over its first and last child, and rows are spaced by depth.

Slot width and row height are sized from the host canvas, with floors
so a tiny canvas never collapses the tree onto itself. Coordinates that
come out undefined or non-numeric are replaced with a deterministic
default of (0, depth * DEFAULT_DEPTH_SPACING).
"""

import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Tuple

from ..config import (
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    DEFAULT_DEPTH_SPACING,
    MIN_NODE_SPACING_X,
    MIN_NODE_SPACING_Y,
)
from .hierarchy import RecipeHierarchy, RepairReport, validate_and_repair

logger = logging.getLogger(__name__)


@dataclass
class LayoutResult:
    spacing_x: float
    spacing_y: float
    width: float
    height: float
    repaired_coordinates: int = 0
    pre_repair: RepairReport = field(default_factory=RepairReport)
    post_repair: RepairReport = field(default_factory=RepairReport)


def is_valid_coordinate(value: Any) -> bool:
    """True for finite real numbers (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value)


def repair_coordinates(hierarchy: RecipeHierarchy) -> int:
    """
    Replace invalid coordinates with (0, depth * DEFAULT_DEPTH_SPACING).

    Returns the number of nodes that were repaired.
    """
    repaired = 0
    for node in hierarchy.nodes:
        if is_valid_coordinate(node.x) and is_valid_coordinate(node.y):
            continue
        logger.debug(f"Repairing coordinates of {node.id} ({node.name!r}): x={node.x!r}, y={node.y!r}")
        node.x = 0.0
        node.y = node.depth * DEFAULT_DEPTH_SPACING
        repaired += 1
    return repaired


class LayoutEngine:
    """
    Tidy top-down tree layout sized from a canvas.

    Usage:
        engine = LayoutEngine(canvas_width=800, canvas_height=500)
        result = engine.apply(hierarchy)
    """

    def __init__(
        self,
        canvas_width: float = DEFAULT_CANVAS_WIDTH,
        canvas_height: float = DEFAULT_CANVAS_HEIGHT,
        min_spacing_x: float = MIN_NODE_SPACING_X,
        min_spacing_y: float = MIN_NODE_SPACING_Y,
    ):
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.min_spacing_x = min_spacing_x
        self.min_spacing_y = min_spacing_y

    def spacing_for(self, hierarchy: RecipeHierarchy) -> Tuple[float, float]:
        """Per-slot width and per-row height for this tree on this canvas."""
        leaf_count = max(len(hierarchy.leaves()), 1)
        rows = hierarchy.max_depth + 1
        width = self.canvas_width if is_valid_coordinate(self.canvas_width) else 0.0
        height = self.canvas_height if is_valid_coordinate(self.canvas_height) else 0.0
        spacing_x = max(self.min_spacing_x, width / leaf_count)
        spacing_y = max(self.min_spacing_y, height / rows)
        return spacing_x, spacing_y

    def apply(self, hierarchy: RecipeHierarchy) -> LayoutResult:
        """Repair, assign coordinates, fix invalid coordinates, repair again."""
        pre = validate_and_repair(hierarchy)
        spacing_x, spacing_y = self.spacing_for(hierarchy)

        try:
            self._assign(hierarchy, spacing_x, spacing_y)
        except (ArithmeticError, TypeError, ValueError) as e:
            logger.debug(f"Layout pass failed, falling back to default coordinates: {e}")

        repaired = repair_coordinates(hierarchy)
        post = validate_and_repair(hierarchy)

        leaf_count = max(len(hierarchy.leaves()), 1)
        return LayoutResult(
            spacing_x=spacing_x,
            spacing_y=spacing_y,
            width=leaf_count * spacing_x,
            height=(hierarchy.max_depth + 1) * spacing_y,
            repaired_coordinates=repaired,
            pre_repair=pre,
            post_repair=post,
        )

    def _assign(self, hierarchy: RecipeHierarchy, spacing_x: float, spacing_y: float) -> None:
        ordered = hierarchy.descendants()

        slot = 0
        for node in ordered:
            node.y = node.depth * spacing_y
            if node.is_leaf:
                node.x = (slot + 0.5) * spacing_x
                slot += 1

        # Reverse pre-order visits children before their parent
        for node in reversed(ordered):
            if node.children:
                node.x = (node.children[0].x + node.children[-1].x) / 2
