"""Unit tests for core types and wire models."""

import pytest
from pydantic import ValidationError

from crafttree.core.types import (
    CircularReference,
    Element,
    IngredientNode,
    RevealEvent,
    RevealKind,
    StreamMessage,
)


class TestIngredientNode:
    def test_identity_equality(self):
        a, b = IngredientNode(name="Water"), IngredientNode(name="Water")
        assert a != b
        assert len({a, b}) == 2

    def test_circular_reference_is_always_childless(self):
        node = CircularReference(name="Mud", children=[IngredientNode(name="Water")])
        assert node.is_circular_reference
        assert node.children == []

    def test_to_dict(self, brick_tree):
        data = brick_tree.to_dict()
        assert data["name"] == "Brick"
        assert data["imagePath"] == "/img/brick.png"
        assert [i["name"] for i in data["ingredients"]] == ["Mud", "Fire"]
        assert data["ingredients"][1]["isBaseElement"] is True


class TestRevealEvent:
    def test_frozen(self):
        event = RevealEvent(kind=RevealKind.NODE, sequence_index=0, node_id="n0")
        with pytest.raises(ValidationError):
            event.node_id = "n1"


class TestWireModels:
    def test_stream_node_frame(self):
        message = StreamMessage.model_validate({
            "type": "node",
            "node": {"name": "Mud", "imagePath": "/m.png"},
            "stepIndex": 2,
            "totalSteps": 5,
            "isBaseNode": False,
        })
        assert message.node.name == "Mud"
        assert message.node.image == "/m.png"
        assert (message.step_index, message.total_steps) == (2, 5)

    def test_stream_error_frame_accepts_error_key(self):
        message = StreamMessage.model_validate({"type": "error", "error": "boom"})
        assert message.message == "boom"

    def test_element_catalog_entry(self):
        element = Element.model_validate({
            "name": "Mud",
            "localImage": "/m.png",
            "tier": 1,
            "recipes": [{"ingredients": ["Water", "Earth"]}],
        })
        assert element.image == "/m.png"
        assert element.recipes[0].ingredients == ["Water", "Earth"]
        assert not element.is_base_element
        assert Element.model_validate({"name": "Fire"}).is_base_element
