"""
Remote Stream Adapter.

Turns an animation channel (see `channels`) into reveal callbacks for
the playback driver. Frames follow the backend's websocket protocol:

    {"type": "metadata", "algorithm": .., "element": ..}
    {"type": "steps", "totalSteps": N}
    {"type": "node", "node": {"name": .., "imagePath": ..}, "stepIndex": i, "totalSteps": N}
    {"type": "link", "link": {"source": .., "target": ..}, "stepIndex": i}
    {"type": "error", "message": ..}
    {"type": "complete", "nodesVisited": n}

`stepIndex` counts from 1. A connection either reaches `complete` or
fails exactly once. A connect timeout, a transport error, an error
frame, silence longer than the idle timeout, or a close before
`complete` all end in `on_remote_failure`.
"""

import json
import logging
from enum import StrEnum
from typing import Any, Callable, Optional, Protocol

from pydantic import ValidationError

from ..config import DEFAULT_CONNECT_TIMEOUT, DEFAULT_IDLE_TIMEOUT
from ..core.errors import StreamProtocolError
from ..core.types import Algorithm, StreamMessage
from .channels import StreamChannel
from .timeline import Timeline, TimerHandle

logger = logging.getLogger(__name__)


class RemoteListener(Protocol):
    def on_remote_connected(self) -> None: ...

    def on_remote_steps(self, total_steps: int) -> None: ...

    def on_remote_node(self, name: str, step_index: Optional[int], total_steps: Optional[int]) -> None: ...

    def on_remote_link(self, source: str, target: str, step_index: Optional[int]) -> None: ...

    def on_remote_complete(self, nodes_visited: Optional[int]) -> None: ...

    def on_remote_failure(self, reason: str) -> None: ...


class ConnectionStatus(StrEnum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    FAILED = "failed"


def parse_frame(frame: Any) -> StreamMessage:
    """
    Decode one channel frame.

    Raises:
        StreamProtocolError: If the frame is not valid JSON or has no type.
    """
    if isinstance(frame, (bytes, bytearray)):
        frame = frame.decode("utf-8", errors="replace")
    if isinstance(frame, str):
        try:
            frame = json.loads(frame)
        except json.JSONDecodeError as e:
            raise StreamProtocolError(f"Frame is not JSON: {e}", frame) from e
    if not isinstance(frame, dict):
        raise StreamProtocolError("Frame is not an object", frame)
    try:
        return StreamMessage.model_validate(frame)
    except ValidationError as e:
        raise StreamProtocolError(f"Invalid frame: {e.error_count()} errors", frame) from e


class RemoteConnection:
    """One animation stream, from connect to complete or failure."""

    def __init__(
        self,
        channel: StreamChannel,
        timeline: Timeline,
        listener: RemoteListener,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
    ):
        self.channel = channel
        self.timeline = timeline
        self.listener = listener
        self.connect_timeout = connect_timeout
        self.idle_timeout = idle_timeout
        self.status = ConnectionStatus.CONNECTING
        self.failure_reason: Optional[str] = None
        self._timer: Optional[TimerHandle] = None
        self._idle_timer: Optional[TimerHandle] = None

    @property
    def is_active(self) -> bool:
        return self.status in (ConnectionStatus.CONNECTING, ConnectionStatus.OPEN)

    def open(self) -> None:
        self._timer = self.timeline.call_later(self.connect_timeout, self._on_timeout)
        try:
            self.channel.open(self)
        except Exception as e:
            self._fail(f"Could not open animation stream: {e}")

    def close(self) -> None:
        """Close without reporting anything to the listener."""
        if not self.is_active:
            return
        self.status = ConnectionStatus.CLOSED
        self._shutdown()

    # Channel listener

    def on_open(self) -> None:
        if self.status is not ConnectionStatus.CONNECTING:
            return
        self.timeline.cancel(self._timer)
        self._timer = None
        self.status = ConnectionStatus.OPEN
        self._arm_idle_timer()
        logger.debug("Animation stream connected")
        self.listener.on_remote_connected()

    def on_message(self, frame: Any) -> None:
        if self.status is not ConnectionStatus.OPEN:
            return
        self._arm_idle_timer()
        try:
            message = parse_frame(frame)
        except StreamProtocolError as e:
            logger.warning(f"Ignoring malformed stream frame: {e}")
            return
        self._dispatch(message)

    def on_error(self, error: Exception) -> None:
        self._fail(f"Animation stream error: {error}")

    def on_close(self) -> None:
        if self.is_active:
            self._fail("Animation stream closed before completion")

    # Internals

    def _dispatch(self, message: StreamMessage) -> None:
        kind = message.type
        if kind == "metadata":
            logger.debug(f"Stream metadata: algorithm={message.algorithm} element={message.element}")
        elif kind == "steps":
            if message.total_steps is not None:
                self.listener.on_remote_steps(message.total_steps)
        elif kind == "node":
            if message.node is None or not message.node.name:
                logger.warning("Ignoring node frame without a name")
                return
            self.listener.on_remote_node(message.node.name, message.step_index, message.total_steps)
        elif kind == "link":
            if message.link is None:
                logger.warning("Ignoring link frame without endpoints")
                return
            self.listener.on_remote_link(message.link.source, message.link.target, message.step_index)
        elif kind == "error":
            self._fail(f"Backend reported: {message.message or 'unknown error'}")
        elif kind == "complete":
            self.status = ConnectionStatus.CLOSED
            self._shutdown()
            self.listener.on_remote_complete(message.nodes_visited)
        else:
            logger.debug(f"Ignoring stream frame of type {kind!r}")

    def _on_timeout(self) -> None:
        self._timer = None
        if self.status is ConnectionStatus.CONNECTING:
            self._fail(f"No animation stream within {self.connect_timeout:g}s")

    def _arm_idle_timer(self) -> None:
        self.timeline.cancel(self._idle_timer)
        self._idle_timer = self.timeline.call_later(self.idle_timeout, self._on_idle)

    def _on_idle(self) -> None:
        self._idle_timer = None
        if self.status is ConnectionStatus.OPEN:
            self._fail(f"Animation stream idle for {self.idle_timeout:g}s")

    def _fail(self, reason: str) -> None:
        if not self.is_active:
            return
        self.status = ConnectionStatus.FAILED
        self.failure_reason = reason
        logger.warning(reason)
        self._shutdown()
        self.listener.on_remote_failure(reason)

    def _shutdown(self) -> None:
        self.timeline.cancel(self._timer)
        self._timer = None
        self.timeline.cancel(self._idle_timer)
        self._idle_timer = None
        try:
            self.channel.close()
        except Exception as e:
            logger.debug(f"Error while closing animation channel: {e}")


ChannelFactory = Callable[[str, Algorithm], StreamChannel]


class RemoteStreamAdapter:
    """
    Opens animation streams for the playback driver.

    Args:
        channel_factory: Builds a channel for (target, algorithm).
        timeline: Timeline the connect timeout runs on.
        connect_timeout: Seconds allowed before the stream must open.
        idle_timeout: Seconds an open stream may go without a frame.
    """

    def __init__(
        self,
        channel_factory: ChannelFactory,
        timeline: Timeline,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
    ):
        self.channel_factory = channel_factory
        self.timeline = timeline
        self.connect_timeout = connect_timeout
        self.idle_timeout = idle_timeout

    def connect(self, target: str, algorithm: Algorithm, listener: RemoteListener) -> RemoteConnection:
        """Start connecting; the listener hears back on the timeline."""
        logger.debug(f"Connecting animation stream for {target!r} ({algorithm})")
        try:
            channel = self.channel_factory(target, algorithm)
        except Exception as e:
            channel = _DeadChannel(e)
        connection = RemoteConnection(
            channel, self.timeline, listener, self.connect_timeout, self.idle_timeout
        )
        connection.open()
        return connection


class _DeadChannel:
    """Channel whose construction failed; opening it reports the error."""

    def __init__(self, error: Exception):
        self.error = error

    def open(self, listener) -> None:
        raise self.error

    def close(self) -> None:
        pass
