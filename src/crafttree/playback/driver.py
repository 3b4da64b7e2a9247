"""
Playback Driver.

Runs one animation at a time over a RecipeHierarchy:

    IDLE -> RUNNING -> COMPLETED | CANCELLED

Reveal events come from one of two producers, never both at once:
- LOCAL: the sequence from `build_sequence`, one node per step, paced
  by `base_delay / playback_speed`.
- REMOTE: an animation stream from the backend, replayed as it arrives.
  If the stream cannot connect, errors, or closes early, control passes
  to LOCAL exactly once and the local run skips nodes already shown.

A link is drawn as soon as both of its endpoints are drawn. After the
last reveal a single reconciliation sweep draws any missing ancestors
and links, so every non-root node ends up attached to the tree.

Every run owns a fresh PlaybackSession. Disposing the session cancels
its timers and closes its stream, and its callbacks check `disposed`
before doing anything.
"""

import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Callable, Dict, List, Optional, Set, Union

from ..config import BASE_DELAYS, MAX_PLAYBACK_SPEED, MIN_PLAYBACK_SPEED, base_delay_for
from ..core.hierarchy import PositionedNode, RecipeHierarchy, link_id
from ..core.sequence import build_sequence
from ..core.types import Algorithm, AnimationSource, PlaybackState, RevealEvent, RevealKind
from ..render.surface import RenderSurface
from .remote import RemoteConnection, RemoteStreamAdapter
from .timeline import Timeline, TimerHandle

logger = logging.getLogger(__name__)


@dataclass
class AnimationState:
    """What the current (or last) run has put on screen."""
    rendered_node_ids: Set[str] = field(default_factory=set)
    rendered_link_ids: Set[str] = field(default_factory=set)
    progress_percent: float = 0.0
    is_running: bool = False
    active_source: Optional[AnimationSource] = None
    advisory_error: Optional[str] = None
    events: List[RevealEvent] = field(default_factory=list)


class PlaybackSession:
    """Resources owned by a single run: timers, stream, and counters."""

    def __init__(self, timeline: Timeline, hierarchy: RecipeHierarchy, algorithm: Algorithm, target: str):
        self.timeline = timeline
        self.hierarchy = hierarchy
        self.algorithm = algorithm
        self.target = target
        self.sequence: List[PositionedNode] = build_sequence(hierarchy, algorithm)
        self.consumed_index = 0
        self.received_step_index = 0
        self.declared_total: Optional[int] = None
        self.connection: Optional[RemoteConnection] = None
        self.fallback_done = False
        self.disposed = False
        self._handles: Set[TimerHandle] = set()

    def schedule(self, delay: float, callback: Callable, *args) -> TimerHandle:
        """Schedule a callback that is dropped once the session is disposed."""
        def guarded():
            self._handles.discard(handle)
            if not self.disposed:
                callback(*args)

        handle = self.timeline.call_later(delay, guarded)
        self._handles.add(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
        if self.connection is not None:
            self.connection.close()


class PlaybackDriver:
    """
    Animates a hierarchy onto a render surface.

    Usage:
        timeline = Timeline()
        driver = PlaybackDriver(timeline, surface=RecordingSurface())
        driver.start(hierarchy, Algorithm.BFS)
        timeline.run_until_idle()
    """

    def __init__(
        self,
        timeline: Optional[Timeline] = None,
        surface: Optional[RenderSurface] = None,
        remote: Optional[RemoteStreamAdapter] = None,
        playback_speed: float = 1.0,
        base_delays: Optional[Dict[str, float]] = None,
        on_state_change: Optional[Callable[[PlaybackState], None]] = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ):
        self.timeline = timeline or Timeline()
        self.surface = surface
        self.remote = remote
        self.base_delays = dict(base_delays or BASE_DELAYS)
        self.on_state_change = on_state_change
        self.on_progress = on_progress

        self.state = AnimationState()
        self.playback_state = PlaybackState.IDLE
        self.hierarchy: Optional[RecipeHierarchy] = None
        self.algorithm: Optional[Algorithm] = None
        self._session: Optional[PlaybackSession] = None
        self._speed = 1.0
        self.set_playback_speed(playback_speed)

    # =========================================================================
    # Public API
    # =========================================================================

    @property
    def playback_speed(self) -> float:
        return self._speed

    @property
    def is_running(self) -> bool:
        return self.playback_state is PlaybackState.RUNNING

    @property
    def session(self) -> Optional[PlaybackSession]:
        return self._session

    @property
    def progress_percent(self) -> float:
        return self.state.progress_percent

    def set_playback_speed(self, speed: Union[int, float]) -> float:
        """
        Set the speed multiplier, effective from the next scheduled step.

        Returns the speed actually applied after clamping.

        Raises:
            ValueError: If speed is not a positive number.
        """
        if isinstance(speed, bool) or not isinstance(speed, Real) or math.isnan(speed) or speed <= 0:
            raise ValueError(f"Playback speed must be a positive number, got {speed!r}")
        self._speed = min(max(float(speed), MIN_PLAYBACK_SPEED), MAX_PLAYBACK_SPEED)
        logger.debug(f"Playback speed set to {self._speed:g}")
        return self._speed

    def step_delay(self) -> float:
        return base_delay_for(self.algorithm or Algorithm.BFS, self.base_delays) / self._speed

    def start(
        self,
        hierarchy: RecipeHierarchy,
        algorithm: Union[Algorithm, str],
        target: Optional[str] = None,
        use_remote: bool = True,
    ) -> PlaybackSession:
        """
        Start a new run, cancelling whatever was running before.

        Raises:
            ValueError: If the algorithm name is unknown.
        """
        algorithm = Algorithm.parse(algorithm)
        self.cancel()

        self.hierarchy = hierarchy
        self.algorithm = algorithm
        self.state = AnimationState(is_running=True)
        session = PlaybackSession(self.timeline, hierarchy, algorithm, target or hierarchy.root.name)
        self._session = session
        self._set_playback_state(PlaybackState.RUNNING)
        self._notify_progress()

        logger.debug(f"Starting {algorithm} playback of {session.target!r} ({len(session.sequence)} steps)")

        if not self._clear_surface(session):
            return session

        if self.remote is not None and use_remote:
            bridge = _RemoteBridge(self, session)
            session.connection = self.remote.connect(session.target, algorithm, bridge)
        else:
            self._begin_local(session)
        return session

    def cancel(self) -> None:
        """Stop the current run. Safe to call repeatedly."""
        session = self._session
        if session is None:
            return
        self._session = None
        session.dispose()
        if self.playback_state is PlaybackState.RUNNING:
            self.state.is_running = False
            logger.debug("Playback cancelled")
            self._set_playback_state(PlaybackState.CANCELLED)

    def dispose(self) -> None:
        """Cancel and forget the current tree."""
        self.cancel()
        self.hierarchy = None
        self.algorithm = None
        self.state = AnimationState()
        self._set_playback_state(PlaybackState.IDLE)

    def render_static(self, hierarchy: RecipeHierarchy) -> None:
        """
        Draw a whole tree at once, without animation.

        Raises:
            Exception: Whatever the surface raises; nothing is caught here.
        """
        self.cancel()
        self.hierarchy = hierarchy
        self.state = AnimationState()
        if self.surface is not None:
            self.surface.clear()

        for node in hierarchy.descendants():
            if self.surface is not None:
                self.surface.draw_node(node)
            self.state.rendered_node_ids.add(node.id)
            self._record(RevealKind.NODE, node_id=node.id)

        for parent, child in hierarchy.links():
            lid = link_id(parent, child)
            if self.surface is not None:
                self.surface.draw_link(parent, child, lid)
            self.state.rendered_link_ids.add(lid)
            self._record(RevealKind.LINK, link_id=lid, source_name=parent.name, target_name=child.name)

        self.state.progress_percent = 100.0
        self._notify_progress()
        self._set_playback_state(PlaybackState.COMPLETED)

    def wait(self, timeout: Optional[float] = None) -> PlaybackState:
        """Drive the timeline until the current run ends (or `timeout` passes)."""
        self.timeline.run_until(lambda: not self.is_running, timeout=timeout)
        return self.playback_state

    # =========================================================================
    # Local producer
    # =========================================================================

    def _begin_local(self, session: PlaybackSession) -> None:
        self.state.active_source = AnimationSource.LOCAL
        session.schedule(0.0, self._local_step, session)

    def _local_step(self, session: PlaybackSession) -> None:
        sequence = session.sequence
        while session.consumed_index < len(sequence):
            node = sequence[session.consumed_index]
            session.consumed_index += 1
            if node.id in self.state.rendered_node_ids:
                continue
            if not self._reveal_node(session, node):
                return
            break

        self._set_progress(session.consumed_index / len(sequence) * 100)
        if session.consumed_index < len(sequence):
            session.schedule(self.step_delay(), self._local_step, session)
        else:
            session.schedule(self.step_delay(), self._reconcile, session)

    # =========================================================================
    # Remote producer
    # =========================================================================

    def _on_remote_connected(self, session: PlaybackSession) -> None:
        self.state.active_source = AnimationSource.REMOTE
        logger.info(f"Replaying animation stream for {session.target!r}")

    def _on_remote_steps(self, session: PlaybackSession, total_steps: int) -> None:
        session.declared_total = total_steps

    def _on_remote_node(
        self, session: PlaybackSession, name: str, step_index: Optional[int], total_steps: Optional[int]
    ) -> None:
        if total_steps:
            session.declared_total = total_steps
        if step_index is not None:
            session.received_step_index = max(session.received_step_index, step_index)

        node = next(
            (n for n in session.hierarchy.find_by_name(name) if n.id not in self.state.rendered_node_ids),
            None,
        )
        if node is None:
            logger.debug(f"Stream node {name!r} has no unrendered match in this tree")
        elif not self._reveal_node(session, node):
            return
        self._update_remote_progress(session)

    def _on_remote_link(self, session: PlaybackSession, source: str, target: str, step_index: Optional[int]) -> None:
        if step_index is not None:
            session.received_step_index = max(session.received_step_index, step_index)
        matches = [
            (parent, child)
            for parent, child in session.hierarchy.links()
            if {parent.name, child.name} == {source, target}
        ]
        if not matches:
            logger.debug(f"Stream link {source!r} -> {target!r} has no structural match")
        for parent, child in matches:
            if link_id(parent, child) in self.state.rendered_link_ids:
                continue
            if not self._reveal_link(session, parent, child):
                return
            break
        self._update_remote_progress(session)

    def _on_remote_complete(self, session: PlaybackSession, nodes_visited: Optional[int]) -> None:
        logger.debug(f"Animation stream complete (nodes visited: {nodes_visited})")
        session.connection = None
        session.schedule(0.0, self._reconcile, session)

    def _on_remote_failure(self, session: PlaybackSession, reason: str) -> None:
        if session.fallback_done:
            return
        session.fallback_done = True
        session.connection = None
        self.state.advisory_error = reason
        logger.info(f"Falling back to local playback: {reason}")
        self._begin_local(session)

    def _update_remote_progress(self, session: PlaybackSession) -> None:
        if session.declared_total:
            self._set_progress(min(session.received_step_index / session.declared_total, 1.0) * 100)

    # =========================================================================
    # Rendering
    # =========================================================================

    def _reveal_node(self, session: PlaybackSession, node: PositionedNode) -> bool:
        try:
            if self.surface is not None:
                self.surface.draw_node(node)
        except Exception as e:
            self._render_failed(session, e)
            return False

        self.state.rendered_node_ids.add(node.id)
        self._record(RevealKind.NODE, node_id=node.id)
        return self._try_links(session, node)

    def _try_links(self, session: PlaybackSession, node: PositionedNode) -> bool:
        parent = node.parent
        if parent is not None and not self._reveal_link(session, parent, node):
            return False
        for child in node.children:
            if not self._reveal_link(session, node, child):
                return False
        return True

    def _reveal_link(self, session: PlaybackSession, parent: PositionedNode, child: PositionedNode) -> bool:
        rendered = self.state.rendered_node_ids
        lid = link_id(parent, child)
        if lid in self.state.rendered_link_ids or parent.id not in rendered or child.id not in rendered:
            return True
        try:
            if self.surface is not None:
                self.surface.draw_link(parent, child, lid)
        except Exception as e:
            self._render_failed(session, e)
            return False

        self.state.rendered_link_ids.add(lid)
        self._record(
            RevealKind.LINK, link_id=lid, source_name=parent.name, target_name=child.name
        )
        return True

    def _record(self, kind: RevealKind, **fields) -> None:
        self.state.events.append(
            RevealEvent(kind=kind, sequence_index=len(self.state.events), **fields)
        )

    def _reconcile(self, session: PlaybackSession) -> None:
        hierarchy = session.hierarchy
        rendered = self.state.rendered_node_ids

        missing: Set[str] = set()
        for node_id in list(rendered):
            node = hierarchy.get(node_id)
            ancestor = node.parent if node is not None else None
            while ancestor is not None and ancestor.id not in rendered:
                missing.add(ancestor.id)
                ancestor = ancestor.parent

        # Pre-order draws each ancestor before its descendants
        for node in hierarchy.descendants():
            if node.id in missing and node.id not in rendered:
                logger.debug(f"Reconciling unrevealed ancestor {node.id} ({node.name!r})")
                if not self._reveal_node(session, node):
                    return

        for parent, child in hierarchy.links():
            if not self._reveal_link(session, parent, child):
                return

        self._finish(session, PlaybackState.COMPLETED)

    def _clear_surface(self, session: PlaybackSession) -> bool:
        if self.surface is None:
            return True
        try:
            self.surface.clear()
        except Exception as e:
            self._render_failed(session, e)
            return False
        return True

    def _render_failed(self, session: PlaybackSession, error: Exception) -> None:
        logger.error(f"Rendering failed: {error}")
        message = f"Rendering failed: {error}"
        self.state.advisory_error = message
        if self.surface is not None:
            try:
                self.surface.clear()
                self.surface.show_error(message)
            except Exception as e:
                logger.error(f"Could not display render error: {e}")
        self._finish(session, PlaybackState.CANCELLED)

    # =========================================================================
    # State
    # =========================================================================

    def _finish(self, session: PlaybackSession, outcome: PlaybackState) -> None:
        session.dispose()
        if self._session is session:
            self._session = None
        self.state.is_running = False
        if outcome is PlaybackState.COMPLETED:
            self._set_progress(100.0)
            logger.debug(
                f"Playback complete: {len(self.state.rendered_node_ids)} nodes, "
                f"{len(self.state.rendered_link_ids)} links"
            )
        self._set_playback_state(outcome)

    def _set_progress(self, value: float) -> None:
        value = max(self.state.progress_percent, min(value, 100.0))
        if value != self.state.progress_percent:
            self.state.progress_percent = value
            self._notify_progress()

    def _notify_progress(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self.state.progress_percent)

    def _set_playback_state(self, new_state: PlaybackState) -> None:
        if new_state is self.playback_state:
            return
        self.playback_state = new_state
        if self.on_state_change is not None:
            self.on_state_change(new_state)


class _RemoteBridge:
    """Routes stream callbacks to the driver while their session is current."""

    def __init__(self, driver: PlaybackDriver, session: PlaybackSession):
        self.driver = driver
        self.session = session

    def _live(self) -> bool:
        return not self.session.disposed and self.driver.session is self.session

    def on_remote_connected(self) -> None:
        if self._live():
            self.driver._on_remote_connected(self.session)

    def on_remote_steps(self, total_steps: int) -> None:
        if self._live():
            self.driver._on_remote_steps(self.session, total_steps)

    def on_remote_node(self, name: str, step_index: Optional[int], total_steps: Optional[int]) -> None:
        if self._live():
            self.driver._on_remote_node(self.session, name, step_index, total_steps)

    def on_remote_link(self, source: str, target: str, step_index: Optional[int]) -> None:
        if self._live():
            self.driver._on_remote_link(self.session, source, target, step_index)

    def on_remote_complete(self, nodes_visited: Optional[int]) -> None:
        if self._live():
            self.driver._on_remote_complete(self.session, nodes_visited)

    def on_remote_failure(self, reason: str) -> None:
        if self._live():
            self.driver._on_remote_failure(self.session, reason)
