"""
Animation stream channels.

A channel is the transport under the Remote Stream Adapter. It opens a
connection and reports back through a ChannelListener:

    on_open()            connection established
    on_message(frame)    one frame (JSON text or an already-decoded dict)
    on_error(exc)        transport error
    on_close()           connection closed by the remote end

Every listener call must happen on the Timeline, never on a foreign
thread. After `close()` a channel delivers nothing further.

Implementations:
- ReplayChannel: scripted frames delivered on the timeline. Simulates
  connect delays, connections that never open, and mid-run failures.
- WebSocketChannel: websocket-client on a daemon thread, callbacks
  marshalled through Timeline.call_soon_threadsafe.
"""

import logging
import threading
from typing import Any, List, Optional, Protocol, Sequence

import websocket

from .timeline import Timeline, TimerHandle

logger = logging.getLogger(__name__)


class ChannelListener(Protocol):
    def on_open(self) -> None: ...

    def on_message(self, frame: Any) -> None: ...

    def on_error(self, error: Exception) -> None: ...

    def on_close(self) -> None: ...


class StreamChannel(Protocol):
    def open(self, listener: ChannelListener) -> None: ...

    def close(self) -> None: ...


class ReplayChannel:
    """
    Deliver a fixed list of frames on a timeline.

    Args:
        frames: Frames to deliver in order after the connection opens.
        timeline: Timeline to schedule deliveries on.
        interval: Seconds between frames.
        connect_delay: Seconds before on_open; None means never connect.
        fail_after: Deliver on_error after this many frames.
        close_after: Deliver on_close after this many frames.
    """

    def __init__(
        self,
        frames: Sequence[Any],
        timeline: Timeline,
        interval: float = 0.05,
        connect_delay: Optional[float] = 0.0,
        fail_after: Optional[int] = None,
        close_after: Optional[int] = None,
    ):
        self.frames = list(frames)
        self.timeline = timeline
        self.interval = interval
        self.connect_delay = connect_delay
        self.fail_after = fail_after
        self.close_after = close_after
        self.closed = False
        self.delivered = 0
        self._handles: List[TimerHandle] = []

    def open(self, listener: ChannelListener) -> None:
        if self.connect_delay is None:
            logger.debug("Replay channel configured to never connect")
            return

        self._schedule(self.connect_delay, listener.on_open)

        when = self.connect_delay
        for index, frame in enumerate(self.frames):
            if self.fail_after is not None and index >= self.fail_after:
                break
            if self.close_after is not None and index >= self.close_after:
                break
            when += self.interval
            self._schedule(when, self._deliver, listener, frame)

        when += self.interval
        if self.fail_after is not None:
            self._schedule(when, listener.on_error, ConnectionError("replay channel failure"))
        elif self.close_after is not None:
            self._schedule(when, listener.on_close)

    def _deliver(self, listener: ChannelListener, frame: Any) -> None:
        self.delivered += 1
        listener.on_message(frame)

    def _schedule(self, delay: float, callback, *args) -> None:
        def guarded():
            if not self.closed:
                callback(*args)

        self._handles.append(self.timeline.call_later(delay, guarded))

    def close(self) -> None:
        self.closed = True
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()


class WebSocketChannel:
    """
    Websocket transport for the backend's animation endpoint.

    The websocket runs on its own daemon thread; every callback is
    handed to the timeline, where it is dropped if the channel was
    closed in the meantime.
    """

    def __init__(self, url: str, timeline: Timeline):
        self.url = url
        self.timeline = timeline
        self.closed = False
        self._app: Optional[websocket.WebSocketApp] = None
        self._thread: Optional[threading.Thread] = None

    def open(self, listener: ChannelListener) -> None:
        logger.debug(f"Opening animation stream {self.url}")
        self._app = websocket.WebSocketApp(
            self.url,
            on_open=lambda ws: self._marshal(listener.on_open),
            on_message=lambda ws, message: self._marshal(listener.on_message, message),
            on_error=lambda ws, error: self._marshal(listener.on_error, error),
            on_close=lambda ws, status, reason: self._marshal(listener.on_close),
        )
        self._thread = threading.Thread(target=self._app.run_forever, name="crafttree-stream", daemon=True)
        self._thread.start()

    def _marshal(self, callback, *args) -> None:
        def deliver():
            if not self.closed:
                callback(*args)

        self.timeline.call_soon_threadsafe(deliver)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._app is not None:
            try:
                self._app.close()
            except Exception as e:
                logger.debug(f"Error while closing stream {self.url}: {e}")
