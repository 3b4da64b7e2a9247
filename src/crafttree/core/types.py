"""
Core type definitions for crafttree.

Two families live here:
- Canonical tree types (IngredientNode, CircularReference) used by every
  downstream component. These are identity-hashed dataclasses because
  the same element name may appear many times in one tree.
- Wire models (pydantic) describing what the backend sends. All of the
  backend's alternate field spellings are resolved here, once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class Algorithm(StrEnum):
    """Search algorithms the backend can run, and the reveal order they imply."""
    BFS = "bfs"
    DFS = "dfs"
    BIDIRECTIONAL = "bidirectional"

    @classmethod
    def parse(cls, value: "str | Algorithm") -> "Algorithm":
        """
        Parse an algorithm name, accepting the short spellings used by
        older frontends ('bidire', 'bidir', 'bi-dir').

        Raises:
            ValueError: If the name is not recognized.
        """
        if isinstance(value, Algorithm):
            return value
        key = str(value).strip().lower().replace("_", "-")
        aliases = {
            "bidire": cls.BIDIRECTIONAL,
            "bidir": cls.BIDIRECTIONAL,
            "bi-dir": cls.BIDIRECTIONAL,
            "bi-directional": cls.BIDIRECTIONAL,
        }
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown algorithm: {value!r}") from None


class RevealKind(StrEnum):
    NODE = "node"
    LINK = "link"


class AnimationSource(StrEnum):
    """Which producer is currently driving the reveal events."""
    LOCAL = "local"
    REMOTE = "remote"


class PlaybackState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# =============================================================================
# Canonical tree
# =============================================================================

@dataclass(eq=False)
class IngredientNode:
    """
    One element in a recipe derivation tree.

    Identity matters: two nodes named "Water" in different branches are
    different nodes. `children` is ordered by the recipe's ingredient order.
    """
    name: str
    is_base_element: bool = False
    is_circular_reference: bool = False
    has_no_recipe: bool = False
    image_ref: Optional[str] = None
    children: List["IngredientNode"] = field(default_factory=list)
    is_placeholder: bool = False

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def walk(self):
        """Yield this node and its descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> dict:
        """Serialize back to the backend's tree shape."""
        data: dict = {"name": self.name, "ingredients": [c.to_dict() for c in self.children]}
        if self.image_ref:
            data["imagePath"] = self.image_ref
        if self.is_base_element:
            data["isBaseElement"] = True
        if self.is_circular_reference:
            data["isCircularReference"] = True
        if self.has_no_recipe:
            data["noRecipe"] = True
        if self.is_placeholder:
            data["noData"] = True
        return data


@dataclass(eq=False)
class CircularReference(IngredientNode):
    """
    Terminal marker for an element that already appears higher up on the
    same root-to-node path. Never has children.
    """
    is_circular_reference: bool = True

    def __post_init__(self) -> None:
        self.is_circular_reference = True
        self.children = []


class RevealEvent(BaseModel):
    """
    One atomic unit of animation progress.

    NODE events carry `node_id`; LINK events carry the link id and the
    element names of both endpoints (product first, ingredient second).
    """
    kind: RevealKind
    sequence_index: int
    node_id: str | None = None
    link_id: str | None = None
    source_name: str | None = None
    target_name: str | None = None

    model_config = ConfigDict(frozen=True)


# =============================================================================
# Wire models
# =============================================================================

_NAME = AliasChoices("name", "element", "Element", "Name")
_IMAGE = AliasChoices("imagePath", "ImagePath", "image", "Image", "localImage", "image_ref")
_INGREDIENTS = AliasChoices("ingredients", "Ingredients", "children")


def _default_if_none(model: type[BaseModel], value: Any, info: ValidationInfo) -> Any:
    # The backend encodes empty lists and unset flags as null
    if value is None:
        return model.model_fields[info.field_name].get_default(call_default_factory=True)
    return value


class RawTreeNode(BaseModel):
    """A nested tree node as sent by the backend. Children stay raw until normalized."""
    name: str | None = Field(default=None, validation_alias=_NAME)
    image: str | None = Field(default=None, validation_alias=_IMAGE)
    ingredients: List[Any] = Field(default_factory=list, validation_alias=_INGREDIENTS)
    is_base_element: bool = Field(default=False, validation_alias=AliasChoices("isBaseElement", "is_base_element"))
    is_circular_reference: bool = Field(
        default=False, validation_alias=AliasChoices("isCircularReference", "is_circular_reference")
    )
    no_recipe: bool = Field(default=False, validation_alias=AliasChoices("noRecipe", "hasNoRecipe", "no_recipe"))

    model_config = ConfigDict(extra="ignore")

    @field_validator("ingredients", "is_base_element", "is_circular_reference", "no_recipe", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        return _default_if_none(cls, value, info)


class RawPathNode(BaseModel):
    """One step of a linear ingredient path."""
    element: str | None = Field(default=None, validation_alias=_NAME)
    image: str | None = Field(default=None, validation_alias=_IMAGE)
    ingredients: List[str] = Field(default_factory=list, validation_alias=_INGREDIENTS)

    model_config = ConfigDict(extra="ignore")

    @field_validator("ingredients", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        return _default_if_none(cls, value, info)


class ElementRecipe(BaseModel):
    ingredients: List[str] = Field(default_factory=list, validation_alias=_INGREDIENTS)

    @field_validator("ingredients", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        return _default_if_none(cls, value, info)


class Element(BaseModel):
    """Catalog entry for one element."""
    name: str = Field(validation_alias=_NAME)
    image: str | None = Field(default=None, validation_alias=_IMAGE)
    tier: int = 0
    recipes: List[ElementRecipe] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("tier", "recipes", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        return _default_if_none(cls, value, info)

    @property
    def is_base_element(self) -> bool:
        from ..config import BASE_ELEMENTS
        return self.name in BASE_ELEMENTS


class SearchResponse(BaseModel):
    """
    Envelope of a search response.

    Exactly which of `paths`, `trees` or `tree` is present depends on the
    endpoint. Timing figures sit next to them at the top level.
    """
    paths: List[Any] | None = None
    trees: List[Any] | None = None
    tree: Any = None
    time_elapsed: float = Field(default=0, validation_alias=AliasChoices("timeElapsed", "time_elapsed"))
    nodes_visited: int = Field(default=0, validation_alias=AliasChoices("nodesVisited", "nodes_visited"))

    model_config = ConfigDict(extra="ignore")

    @field_validator("time_elapsed", "nodes_visited", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        return _default_if_none(cls, value, info)


class StreamNodePayload(BaseModel):
    name: str | None = Field(default=None, validation_alias=_NAME)
    image: str | None = Field(default=None, validation_alias=_IMAGE)

    model_config = ConfigDict(extra="ignore")


class StreamLinkPayload(BaseModel):
    source: str
    target: str

    model_config = ConfigDict(extra="ignore")


class StreamMessage(BaseModel):
    """
    One frame on the animation channel.

    `type` is one of: metadata, steps, node, link, error, complete.
    """
    type: str
    algorithm: str | None = None
    element: str | None = None
    total_steps: int | None = Field(default=None, validation_alias=AliasChoices("totalSteps", "total_steps"))
    step_index: int | None = Field(default=None, validation_alias=AliasChoices("stepIndex", "step_index"))
    node: StreamNodePayload | None = None
    link: StreamLinkPayload | None = None
    is_base_node: bool = Field(default=False, validation_alias=AliasChoices("isBaseNode", "is_base_node"))
    message: str | None = Field(default=None, validation_alias=AliasChoices("message", "error"))
    nodes_visited: int | None = Field(default=None, validation_alias=AliasChoices("nodesVisited", "nodes_visited"))

    model_config = ConfigDict(extra="ignore")

    @field_validator("is_base_node", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        return _default_if_none(cls, value, info)
