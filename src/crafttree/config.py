"""
Global Configuration and Safe Defaults.

This module centralizes the constants shared by the normalizer, the
layout engine and the playback driver. Runtime overrides (backend
URLs, timeouts) live in `crafttree.settings`.
"""

from typing import Dict, FrozenSet, Mapping, Optional

# --- Recipe Domain ---

# Closed set of elements that have no recipe. Always rendered as leaves.
BASE_ELEMENTS: FrozenSet[str] = frozenset({"Water", "Fire", "Earth", "Air"})

# Label used for nodes that arrive without a usable name
UNKNOWN_ELEMENT_NAME = "?"

# Normalization stops expanding below this depth (pathological input guard)
MAX_TREE_DEPTH = 64

# --- Layout ---

DEFAULT_CANVAS_WIDTH = 960.0
DEFAULT_CANVAS_HEIGHT = 500.0

# Floors so tiny canvases don't collapse the layout
MIN_NODE_SPACING_X = 48.0
MIN_NODE_SPACING_Y = 64.0

# Row height used when a coordinate has to be repaired after layout
DEFAULT_DEPTH_SPACING = 100.0

# --- Playback ---

# Seconds between reveal steps at speed 1.0. DFS is paced more deliberately.
BASE_DELAYS: Dict[str, float] = {
    "bfs": 0.5,
    "dfs": 0.8,
    "bidirectional": 0.5,
}

MIN_PLAYBACK_SPEED = 0.1
MAX_PLAYBACK_SPEED = 10.0

# --- Remote Stream ---

# Seconds to wait for the animation channel before falling back to local
DEFAULT_CONNECT_TIMEOUT = 3.0

# Seconds an open animation stream may stay silent before falling back
DEFAULT_IDLE_TIMEOUT = 10.0

DEFAULT_API_URL = "http://localhost:8080/api"
DEFAULT_WS_URL = "ws://localhost:8080/ws/animation"

# Seconds allowed for a single backend HTTP request
HTTP_TIMEOUT = 30.0


def base_delay_for(algorithm: str, delays: Optional[Mapping[str, float]] = None) -> float:
    """Per-step delay at speed 1.0 for an algorithm name. Unknown names pace like BFS."""
    delays = BASE_DELAYS if delays is None else delays
    return delays.get(str(algorithm), BASE_DELAYS["bfs"])
