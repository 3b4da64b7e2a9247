"""
Tree Normalizer.

Converts raw backend output into canonical IngredientNode trees. The
backend answers in several shapes depending on the endpoint:

- {"paths": [[PathNode, ...], ...]}  linear ingredient paths
- {"trees": [TreeNode, ...]}         nested trees
- {"tree": TreeNode}                 single tree wrapper
- TreeNode                           bare tree
- [TreeNode, ...] / [[PathNode]]     bare lists of either

Cycle rule: only the first occurrence of an element name along a
root-to-node path expands its ingredients. A repeated name on the same
path becomes a childless CircularReference. The visited set is
path-local, so sibling branches may reuse a name freely.

Nothing in this module raises on bad input. Missing names degrade to
placeholder nodes, and missing data degrades to a single placeholder
labeled with the requested target.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from pydantic import ValidationError

from ..config import BASE_ELEMENTS, MAX_TREE_DEPTH, UNKNOWN_ELEMENT_NAME
from .types import CircularReference, IngredientNode, RawPathNode, RawTreeNode, SearchResponse

logger = logging.getLogger(__name__)


def placeholder(target: Optional[str]) -> IngredientNode:
    """Single node standing in for a result that carried no usable data."""
    name = (target or "").strip() or UNKNOWN_ELEMENT_NAME
    return IngredientNode(name=name, is_placeholder=True)


def _malformed() -> IngredientNode:
    return IngredientNode(name=UNKNOWN_ELEMENT_NAME, is_placeholder=True, has_no_recipe=True)


def is_base_element(name: str) -> bool:
    return name in BASE_ELEMENTS


def _salvage(raw: Mapping) -> IngredientNode:
    """Keep the name of a node whose other fields are unusable, as a leaf."""
    for key in ("name", "element", "Element", "Name"):
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            name = value.strip()
            return IngredientNode(name=name, is_base_element=is_base_element(name),
                                  has_no_recipe=not is_base_element(name))
    return _malformed()


# =============================================================================
# Entry point
# =============================================================================

def normalize_result(raw: Any, target: Optional[str] = None) -> List[IngredientNode]:
    """
    Normalize any backend search payload into a list of trees.

    Always returns at least one tree. When the payload is missing or
    empty, that tree is a placeholder named after `target`.
    """
    try:
        trees = _dispatch(raw, target)
    except Exception as e:
        logger.error(f"Failed to normalize search result for {target!r}: {e}")
        trees = []

    if not trees:
        logger.debug(f"No recipe data for {target!r}, using placeholder")
        return [placeholder(target)]
    return trees


def read_envelope(raw: Any) -> SearchResponse:
    """Search response envelope; an unusable payload gives an empty one."""
    if not isinstance(raw, Mapping):
        return SearchResponse()
    try:
        return SearchResponse.model_validate(raw)
    except ValidationError as e:
        logger.debug(f"Malformed search envelope: {e.error_count()} validation errors")
        return SearchResponse()


def _dispatch(raw: Any, target: Optional[str]) -> List[IngredientNode]:
    if raw is None:
        return []

    if isinstance(raw, IngredientNode):
        return [raw]

    if isinstance(raw, Mapping):
        if any(k in raw for k in ("name", "element", "Element", "Name")):
            return [normalize_tree(raw, target)]
        envelope = read_envelope(raw)
        if envelope.paths is not None:
            return [path_to_tree(p, target) for p in envelope.paths if isinstance(p, list)]
        if envelope.trees is not None:
            return [normalize_tree(t, target) for t in envelope.trees]
        if envelope.tree is not None:
            return [normalize_tree(envelope.tree, target)]
        return []

    if isinstance(raw, list):
        items = [item for item in raw if item is not None]
        if not items:
            return []
        if all(isinstance(item, list) for item in items):
            return [path_to_tree(p, target) for p in items]
        return [normalize_tree(item, target) for item in items]

    logger.debug(f"Unrecognized search payload type: {type(raw).__name__}")
    return []


# =============================================================================
# Nested trees
# =============================================================================

def normalize_tree(raw: Any, target: Optional[str] = None) -> IngredientNode:
    """
    Normalize one nested tree.

    A root without a name is replaced by a placeholder for `target`.
    """
    if raw is None:
        return placeholder(target)
    root = _build_nested(raw, set(), 0)
    if root.is_placeholder and root.name == UNKNOWN_ELEMENT_NAME and target:
        return placeholder(target)
    return root


def _build_nested(raw: Any, ancestors: Set[str], depth: int) -> IngredientNode:
    if isinstance(raw, IngredientNode):
        raw = raw.to_dict()
    if isinstance(raw, str):
        raw = {"name": raw}
    if not isinstance(raw, Mapping):
        logger.debug(f"Skipping malformed tree node of type {type(raw).__name__}")
        return _malformed()

    try:
        node = RawTreeNode.model_validate(raw)
    except ValidationError as e:
        logger.debug(f"Malformed tree node: {e.error_count()} validation errors")
        return _salvage(raw)

    name = (node.name or "").strip()
    if not name:
        return _malformed()

    if name in ancestors or node.is_circular_reference:
        return CircularReference(name=name, image_ref=node.image)

    if is_base_element(name):
        return IngredientNode(name=name, is_base_element=True, image_ref=node.image)

    if depth >= MAX_TREE_DEPTH:
        logger.warning(f"Tree deeper than {MAX_TREE_DEPTH} levels, truncating at {name!r}")
        return IngredientNode(name=name, image_ref=node.image, is_placeholder=True)

    ancestors.add(name)
    try:
        children = [
            _build_nested(child, ancestors, depth + 1) for child in node.ingredients if child is not None
        ]
    finally:
        ancestors.discard(name)

    return IngredientNode(
        name=name,
        image_ref=node.image,
        children=children,
        has_no_recipe=node.no_recipe or not children,
    )


# =============================================================================
# Linear paths
# =============================================================================

def path_to_tree(path: Any, target: Optional[str] = None) -> IngredientNode:
    """
    Rebuild a tree from one linear ingredient path.

    The root is the path node named like `target`, falling back to the
    last node of the path. Each element's ingredients come from the
    first path node with that name; names not on the path become leaves.
    """
    steps: List[RawPathNode] = []
    for raw in path or []:
        if not isinstance(raw, Mapping):
            continue
        try:
            step = RawPathNode.model_validate(raw)
        except ValidationError:
            logger.debug("Skipping malformed path node")
            continue
        if step.element and step.element.strip():
            steps.append(step)

    if not steps:
        return placeholder(target)

    lookup: Dict[str, RawPathNode] = {}
    for step in steps:
        lookup.setdefault(step.element.strip(), step)

    wanted = (target or "").strip()
    root_name = wanted if wanted in lookup else steps[-1].element.strip()
    return _build_from_path(root_name, lookup, set(), 0)


def _build_from_path(
    name: str,
    lookup: Dict[str, RawPathNode],
    ancestors: Set[str],
    depth: int,
) -> IngredientNode:
    entry = lookup.get(name)
    image = entry.image if entry else None

    if name in ancestors:
        return CircularReference(name=name, image_ref=image)

    if is_base_element(name):
        return IngredientNode(name=name, is_base_element=True, image_ref=image)

    if entry is None:
        return IngredientNode(name=name, has_no_recipe=True)

    if depth >= MAX_TREE_DEPTH:
        logger.warning(f"Path deeper than {MAX_TREE_DEPTH} levels, truncating at {name!r}")
        return IngredientNode(name=name, image_ref=image, is_placeholder=True)

    ancestors.add(name)
    try:
        children = [
            _build_from_path(ingredient.strip(), lookup, ancestors, depth + 1)
            for ingredient in entry.ingredients
            if ingredient and ingredient.strip()
        ]
    finally:
        ancestors.discard(name)

    return IngredientNode(name=name, image_ref=image, children=children, has_no_recipe=not children)


# =============================================================================
# Summaries
# =============================================================================

@dataclass
class TreeStats:
    node_count: int = 0
    max_depth: int = 0
    base_count: int = 0
    circular_count: int = 0
    no_recipe_count: int = 0
    distinct_elements: int = 0


def tree_stats(root: IngredientNode) -> TreeStats:
    """Count nodes, depth and special markers in a tree."""
    stats = TreeStats()
    names: Set[str] = set()
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        stats.node_count += 1
        stats.max_depth = max(stats.max_depth, depth)
        names.add(node.name)
        if node.is_base_element:
            stats.base_count += 1
        if node.is_circular_reference:
            stats.circular_count += 1
        if node.has_no_recipe:
            stats.no_recipe_count += 1
        stack.extend((child, depth + 1) for child in node.children)
    stats.distinct_elements = len(names)
    return stats


@dataclass
class PathSummary:
    """Compact 'bases -> intermediates -> target' view of a tree."""
    target: str
    bases: List[str] = field(default_factory=list)
    intermediates: List[str] = field(default_factory=list)

    def render(self, max_intermediates: int = 3) -> str:
        parts = [" + ".join(self.bases)] if self.bases else []
        if self.intermediates:
            shown = self.intermediates[:max_intermediates]
            if len(self.intermediates) > max_intermediates:
                shown = shown + ["..."]
            parts.append(" -> ".join(shown))
        parts.append(self.target)
        return " -> ".join(parts)


def summarize_path(root: IngredientNode) -> PathSummary:
    """
    Collect the leaves (in pre-order) and the intermediate products of a tree.

    Leaves are base elements or anything without ingredients. Intermediates
    are non-root, non-base nodes that have ingredients.
    """
    summary = PathSummary(target=root.name)
    if root.is_leaf:
        return summary
    for node in root.walk():
        if node is root:
            continue
        if node.is_base_element or node.is_leaf:
            summary.bases.append(node.name)
        else:
            summary.intermediates.append(node.name)
    return summary


def collect_names(root: IngredientNode) -> List[str]:
    """Distinct element names in a tree, in first-seen pre-order."""
    seen: Dict[str, None] = {}
    for node in root.walk():
        seen.setdefault(node.name, None)
    return list(seen)
