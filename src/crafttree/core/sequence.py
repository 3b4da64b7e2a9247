"""
Animation Sequence Builder.

Produces the order in which a tree's nodes are revealed, modelling how
each search algorithm discovers a recipe:

- BFS: level order from the target, siblings in ingredient order.
- DFS: walk to every leaf depth-first; for each root-to-leaf path,
  place the unseen nodes leaf-first ("explain the deepest dependency
  first, then walk back up").
- Bidirectional: the target, then every base-element leaf, then the
  shallowest and deepest remaining levels alternately until the two
  fronts meet.

Every node appears exactly once (by identity, not by name), and the
output depends only on the tree shape and the algorithm.
"""

from collections import defaultdict, deque
from typing import Dict, List, Set, Union

from .hierarchy import PositionedNode, RecipeHierarchy
from .types import Algorithm, RevealEvent, RevealKind


def build_sequence(
    root: Union[PositionedNode, RecipeHierarchy],
    algorithm: Union[Algorithm, str],
) -> List[PositionedNode]:
    """
    Build the reveal order for a tree.

    Args:
        root: Root node (or the hierarchy owning it).
        algorithm: Algorithm or its name.

    Returns:
        List[PositionedNode]: Each reachable node exactly once.
    """
    if isinstance(root, RecipeHierarchy):
        root = root.root
    algorithm = Algorithm.parse(algorithm)

    if not root.children:
        return [root]

    if algorithm is Algorithm.DFS:
        return _dfs_order(root)
    if algorithm is Algorithm.BIDIRECTIONAL:
        return _bidirectional_order(root)
    return _bfs_order(root)


def _bfs_order(root: PositionedNode) -> List[PositionedNode]:
    order: List[PositionedNode] = []
    seen: Set[int] = set()
    queue = deque([root])
    while queue:
        node = queue.popleft()
        if id(node) in seen:
            continue
        seen.add(id(node))
        order.append(node)
        queue.extend(node.children)
    return order


def _dfs_order(root: PositionedNode) -> List[PositionedNode]:
    order: List[PositionedNode] = []
    placed: Set[int] = set()
    stack = [(root, [root])]

    while stack:
        node, path = stack.pop()
        children = [c for c in node.children if c not in path]
        if children:
            for child in reversed(children):
                stack.append((child, path + [child]))
            continue
        for step in reversed(path):
            if id(step) not in placed:
                placed.add(id(step))
                order.append(step)
    return order


def _bidirectional_order(root: PositionedNode) -> List[PositionedNode]:
    order: List[PositionedNode] = [root]
    placed: Set[int] = {id(root)}

    # Pre-order, so base leaves appear left to right
    stack = [root]
    preorder: List[PositionedNode] = []
    seen: Set[int] = set()
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        preorder.append(node)
        stack.extend(reversed(node.children))

    for node in preorder:
        if node.is_leaf and node.is_base_element and id(node) not in placed:
            placed.add(id(node))
            order.append(node)

    levels: Dict[int, List[PositionedNode]] = defaultdict(list)
    for node in _bfs_order(root):
        if id(node) not in placed:
            levels[node.depth].append(node)

    depths = sorted(levels)
    low, high = 0, len(depths) - 1
    from_front = True
    while low <= high:
        if from_front:
            depth = depths[low]
            low += 1
        else:
            depth = depths[high]
            high -= 1
        from_front = not from_front
        for node in levels[depth]:
            if id(node) not in placed:
                placed.add(id(node))
                order.append(node)
    return order


def build_reveal_events(sequence: List[PositionedNode]) -> List[RevealEvent]:
    """Wrap a node sequence in NODE reveal events numbered from 0."""
    return [
        RevealEvent(kind=RevealKind.NODE, sequence_index=index, node_id=node.id)
        for index, node in enumerate(sequence)
    ]
