"""
Runtime settings.

Settings come from `.crafttree/config.yaml` (written by `crafttree init`)
and may be overridden with environment variables:

    CRAFTTREE_API_URL          backend REST base URL
    CRAFTTREE_WS_URL           animation websocket base URL
    CRAFTTREE_CONNECT_TIMEOUT  seconds to wait for the animation stream
    CRAFTTREE_IDLE_TIMEOUT     seconds an open stream may stay silent

A missing or unreadable config file falls back to the defaults in
`crafttree.config`.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import (
    DEFAULT_API_URL,
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_IDLE_TIMEOUT,
    DEFAULT_WS_URL,
    HTTP_TIMEOUT,
)

logger = logging.getLogger(__name__)

CONFIG_DIR = ".crafttree"
CONFIG_FILE = "config.yaml"

ENV_OVERRIDES = {
    "CRAFTTREE_API_URL": ("backend", "api_url"),
    "CRAFTTREE_WS_URL": ("backend", "ws_url"),
    "CRAFTTREE_CONNECT_TIMEOUT": ("backend", "connect_timeout"),
    "CRAFTTREE_IDLE_TIMEOUT": ("backend", "idle_timeout"),
}


class BackendSettings(BaseModel):
    api_url: str = DEFAULT_API_URL
    ws_url: str = DEFAULT_WS_URL
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT, gt=0)
    idle_timeout: float = Field(default=DEFAULT_IDLE_TIMEOUT, gt=0)
    http_timeout: float = Field(default=HTTP_TIMEOUT, gt=0)
    stream: bool = True

    model_config = ConfigDict(extra="ignore")


class PlaybackSettings(BaseModel):
    algorithm: str = "bfs"
    speed: float = Field(default=1.0, gt=0)
    result_count: int = Field(default=1, ge=1)

    model_config = ConfigDict(extra="ignore")


class CanvasSettings(BaseModel):
    width: float = DEFAULT_CANVAS_WIDTH
    height: float = DEFAULT_CANVAS_HEIGHT

    model_config = ConfigDict(extra="ignore")


class Settings(BaseModel):
    """Top-level crafttree settings."""
    version: str = "1.0"
    backend: BackendSettings = Field(default_factory=BackendSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)
    canvas: CanvasSettings = Field(default_factory=CanvasSettings)

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def load(
        cls,
        path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Settings":
        """
        Load settings from a YAML file and the environment.

        Args:
            path: Config file (default: ./.crafttree/config.yaml).
            environ: Environment mapping (default: os.environ).
        """
        path = path or Path(CONFIG_DIR) / CONFIG_FILE
        environ = os.environ if environ is None else environ

        data = _read_yaml(path)
        for var, (section, key) in ENV_OVERRIDES.items():
            value = environ.get(var)
            if value:
                if not isinstance(data.get(section), dict):
                    data[section] = {}
                data[section][key] = value

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid settings in {path}, using defaults: {e.error_count()} errors")
            return cls()

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.model_dump(), sort_keys=False, default_flow_style=False)


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not read config {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {path}: expected a mapping")
        return {}
    # Sections must be mappings for env overrides to merge into them
    return {k: (dict(v) if isinstance(v, dict) else v) for k, v in data.items()}
