"""Shared fixtures: the Brick recipe in its various backend shapes."""

import copy

import pytest

from crafttree.core.hierarchy import RecipeHierarchy
from crafttree.core.normalizer import normalize_tree
from crafttree.playback.timeline import Timeline

BRICK_TREE = {
    "name": "Brick",
    "imagePath": "/img/brick.png",
    "ingredients": [
        {
            "name": "Mud",
            "ingredients": [
                {"name": "Water", "isBaseElement": True},
                {"name": "Earth", "isBaseElement": True},
            ],
        },
        {"name": "Fire", "isBaseElement": True},
    ],
}

BRICK_PATH = [
    {"element": "Mud", "ingredients": ["Water", "Earth"]},
    {"Element": "Brick", "Ingredients": ["Mud", "Fire"], "ImagePath": "/img/brick.png"},
]


@pytest.fixture
def brick_payload():
    return copy.deepcopy(BRICK_TREE)


@pytest.fixture
def brick_tree():
    return normalize_tree(BRICK_TREE, "Brick")


@pytest.fixture
def brick_hierarchy(brick_tree):
    return RecipeHierarchy.from_tree(brick_tree)


@pytest.fixture
def timeline():
    return Timeline()


@pytest.fixture
def brick_path():
    return copy.deepcopy(BRICK_PATH)
