"""
Positioned hierarchy and its validator/repairer.

A RecipeHierarchy wraps a normalized IngredientNode tree in
PositionedNodes, which carry layout coordinates, depth, a stable id and
a weak back-reference to the parent. The `children` list is the only
ownership edge; the parent pointer is lookup-only.

`validate_and_repair` enforces parent/children consistency:
- children ownership is authoritative, parent pointers are corrected;
- a node never owns itself and is owned at most once;
- any registered node unreachable from the root is reattached under it;
- depths are recomputed from the root.

It is idempotent: a second run on a repaired hierarchy changes nothing.
"""

import logging
import weakref
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from .types import IngredientNode

logger = logging.getLogger(__name__)


class PositionedNode:
    """A tree node with layout coordinates and a weak parent pointer."""

    def __init__(self, data: IngredientNode, node_id: str, depth: int = 0,
                 parent: Optional["PositionedNode"] = None):
        self.data = data
        self.id = node_id
        self.depth = depth
        self.x: Any = None
        self.y: Any = None
        self.children: List["PositionedNode"] = []
        self._parent_ref: Optional[weakref.ReferenceType] = None
        self.parent = parent

    @property
    def parent(self) -> Optional["PositionedNode"]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @parent.setter
    def parent(self, value: Optional["PositionedNode"]) -> None:
        self._parent_ref = weakref.ref(value) if value is not None else None

    # Delegated element attributes

    @property
    def name(self) -> str:
        return self.data.name

    @property
    def is_base_element(self) -> bool:
        return self.data.is_base_element

    @property
    def is_circular_reference(self) -> bool:
        return self.data.is_circular_reference

    @property
    def has_no_recipe(self) -> bool:
        return self.data.has_no_recipe

    @property
    def image_ref(self) -> Optional[str]:
        return self.data.image_ref

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def __repr__(self) -> str:
        return f"PositionedNode({self.id}, {self.name!r}, depth={self.depth})"


def link_id(parent: PositionedNode, child: PositionedNode) -> str:
    """Stable id for the structural link parent -> child."""
    return f"{parent.id}->{child.id}"


class RecipeHierarchy:
    """
    The positioned form of one recipe tree.

    Holds strong references to every PositionedNode created for the
    tree (the registry), so orphans can still be found after a bad edit.
    """

    def __init__(self, root: PositionedNode, nodes: List[PositionedNode]):
        self.root = root
        self._nodes: List[PositionedNode] = list(nodes)
        self._by_id: Dict[str, PositionedNode] = {n.id: n for n in self._nodes}
        if root.id not in self._by_id:
            self._register(root)

    @classmethod
    def from_tree(cls, tree: IngredientNode) -> "RecipeHierarchy":
        """Build positioned nodes for a tree, ids assigned in pre-order."""
        counter = 0
        root = PositionedNode(tree, "n0", depth=0)
        nodes = [root]
        stack: List[Tuple[PositionedNode, IngredientNode]] = [(root, tree)]
        while stack:
            pnode, data = stack.pop()
            created = []
            for child in data.children:
                counter += 1
                cnode = PositionedNode(child, f"n{counter}", depth=pnode.depth + 1, parent=pnode)
                pnode.children.append(cnode)
                nodes.append(cnode)
                created.append((cnode, child))
            stack.extend(reversed(created))
        # Re-number in true pre-order so ids read top-down, left-to-right
        ordered = list(_preorder(root))
        for index, node in enumerate(ordered):
            node.id = f"n{index}"
        return cls(root, ordered)

    def _register(self, node: PositionedNode) -> None:
        self._nodes.append(node)
        self._by_id[node.id] = node

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def nodes(self) -> List[PositionedNode]:
        """Every registered node, reachable or not."""
        return list(self._nodes)

    def get(self, node_id: str) -> Optional[PositionedNode]:
        return self._by_id.get(node_id)

    def descendants(self) -> List[PositionedNode]:
        """Nodes reachable from the root through children, in pre-order."""
        return list(_preorder(self.root))

    def links(self) -> List[Tuple[PositionedNode, PositionedNode]]:
        """Structural (parent, child) pairs in pre-order."""
        return [(node, child) for node in _preorder(self.root) for child in node.children]

    def leaves(self) -> List[PositionedNode]:
        return [n for n in _preorder(self.root) if n.is_leaf]

    def find_by_name(self, name: str) -> List[PositionedNode]:
        """Nodes with the given element name, in level order."""
        return [n for n in _level_order(self.root) if n.name == name]

    @property
    def max_depth(self) -> int:
        return max((n.depth for n in _preorder(self.root)), default=0)

    def __len__(self) -> int:
        return len(self._nodes)


def _preorder(root: PositionedNode) -> Iterator[PositionedNode]:
    seen: Set[int] = set()
    stack = [root]
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        yield node
        stack.extend(reversed(node.children))


def _level_order(root: PositionedNode) -> Iterator[PositionedNode]:
    seen: Set[int] = set()
    queue = deque([root])
    while queue:
        node = queue.popleft()
        if id(node) in seen:
            continue
        seen.add(id(node))
        yield node
        queue.extend(node.children)


# =============================================================================
# Validation / repair
# =============================================================================

@dataclass
class RepairReport:
    parents_corrected: int = 0
    orphans_reattached: int = 0
    duplicates_removed: int = 0
    depths_corrected: int = 0

    @property
    def changed(self) -> bool:
        return bool(
            self.parents_corrected
            or self.orphans_reattached
            or self.duplicates_removed
            or self.depths_corrected
        )


def validate_and_repair(hierarchy: RecipeHierarchy) -> RepairReport:
    """
    Make parent pointers, children lists and depths consistent.

    Returns a report of what was changed; an already-valid hierarchy
    yields a report with `changed == False`.
    """
    report = RepairReport()
    root = hierarchy.root
    seen: Set[int] = {id(root)}

    if root.parent is not None:
        root.parent = None
        report.parents_corrected += 1
    if root.depth != 0:
        root.depth = 0
        report.depths_corrected += 1

    _claim_subtree(hierarchy, root, seen, report)

    for node in hierarchy.nodes:
        if id(node) in seen:
            continue
        logger.debug(f"Reattaching orphan {node.id} ({node.name!r}) under root")
        node.parent = root
        root.children.append(node)
        seen.add(id(node))
        report.orphans_reattached += 1
        if node.depth != 1:
            node.depth = 1
            report.depths_corrected += 1
        _claim_subtree(hierarchy, node, seen, report)

    if report.changed:
        logger.debug(
            f"Hierarchy repaired: {report.parents_corrected} parents, "
            f"{report.orphans_reattached} orphans, {report.duplicates_removed} duplicates, "
            f"{report.depths_corrected} depths"
        )
    return report


def _claim_subtree(hierarchy: RecipeHierarchy, start: PositionedNode,
                   seen: Set[int], report: RepairReport) -> None:
    """Walk children from `start`, fixing ownership of everything reached."""
    queue = deque([start])
    while queue:
        parent = queue.popleft()
        kept: List[PositionedNode] = []
        for child in parent.children:
            if child is parent or id(child) in seen:
                report.duplicates_removed += 1
                continue
            seen.add(id(child))
            if hierarchy.get(child.id) is not child:
                hierarchy._register(child)
            if child.parent is not parent:
                child.parent = parent
                report.parents_corrected += 1
            if child.depth != parent.depth + 1:
                child.depth = parent.depth + 1
                report.depths_corrected += 1
            kept.append(child)
            queue.append(child)
        if len(kept) != len(parent.children):
            parent.children = kept
