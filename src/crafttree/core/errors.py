"""
Error types for crafttree.

Most failures in the pipeline are repaired or degraded rather than
raised (see the normalizer and layout engine). The exceptions here
mark the few places where something must be caught by a caller.
"""

from dataclasses import dataclass


class CraftTreeError(Exception):
    """Base class for crafttree exceptions."""


class RenderError(CraftTreeError):
    """Raised by a render surface when drawing fails."""


class StreamProtocolError(CraftTreeError):
    """
    Raised when an animation channel delivers a frame that cannot be
    understood.

    Attributes:
        frame: The raw frame that failed to parse.
    """

    def __init__(self, message: str, frame=None):
        super().__init__(message)
        self.frame = frame


@dataclass
class BackendError:
    """Structured error for backend (catalog/search) calls."""
    message: str
    url: str | None = None
    status_code: int | None = None
    cause: Exception | None = None

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message
