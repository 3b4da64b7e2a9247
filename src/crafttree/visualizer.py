"""
Recipe Visualizer.

The facade a UI shell talks to. It ties the pipeline together:

    BackendClient -> normalize_result -> RecipeHierarchy
        -> LayoutEngine -> PlaybackDriver (+ RemoteStreamAdapter) -> surface

Failures never escape as exceptions from the main entry points:
backend errors go to `notify` and leave the current visualization as
it was; render errors clear the surface and show an inline message.
"""

import logging
from typing import Callable, FrozenSet, List, Optional

from .client import BackendClient
from .core.hierarchy import RecipeHierarchy
from .core.layout import LayoutEngine, LayoutResult
from .core.normalizer import normalize_result
from .core.types import Algorithm, Element, IngredientNode, PlaybackState
from .playback.channels import StreamChannel, WebSocketChannel
from .playback.driver import PlaybackDriver
from .playback.remote import RemoteStreamAdapter
from .playback.timeline import Timeline
from .render.surface import RecordingSurface, RenderSurface
from .settings import Settings

logger = logging.getLogger(__name__)


class RecipeVisualizer:
    """
    Search, lay out and animate recipe trees.

    Usage:
        viz = RecipeVisualizer(settings=Settings.load(), surface=ConsoleSurface())
        viz.run_search("Brick", "bfs", count=3)
        viz.start_animation()
        viz.wait()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[BackendClient] = None,
        surface: Optional[RenderSurface] = None,
        timeline: Optional[Timeline] = None,
        channel_factory: Optional[Callable[[str, Algorithm], StreamChannel]] = None,
        layout: Optional[LayoutEngine] = None,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.settings = settings or Settings()
        backend = self.settings.backend
        self.client = client or BackendClient(backend.api_url, backend.ws_url, backend.http_timeout)
        self.timeline = timeline or Timeline()
        self.surface = surface if surface is not None else RecordingSurface()
        self.layout = layout or LayoutEngine(self.settings.canvas.width, self.settings.canvas.height)
        self.notify = notify or logger.warning

        if channel_factory is None and backend.stream:
            channel_factory = self._websocket_channel
        remote = None
        if channel_factory is not None:
            remote = RemoteStreamAdapter(
                channel_factory, self.timeline, backend.connect_timeout, backend.idle_timeout
            )

        self.driver = PlaybackDriver(
            self.timeline,
            surface=self.surface,
            remote=remote,
            playback_speed=self.settings.playback.speed,
        )

        self.algorithm = Algorithm.parse(self.settings.playback.algorithm)
        self.target: Optional[str] = None
        self.selected_index: Optional[int] = None
        self.hierarchy: Optional[RecipeHierarchy] = None
        self.layout_result: Optional[LayoutResult] = None
        self._trees: List[IngredientNode] = []
        self._catalog: List[Element] = []
        self._render_error: Optional[str] = None

    def _websocket_channel(self, target: str, algorithm: Algorithm) -> StreamChannel:
        return WebSocketChannel(self.client.stream_url(target, algorithm), self.timeline)

    # =========================================================================
    # Read-only state
    # =========================================================================

    @property
    def progress_percent(self) -> float:
        return self.driver.progress_percent

    @property
    def advisory_error(self) -> Optional[str]:
        return self._render_error or self.driver.state.advisory_error

    @property
    def rendered_node_ids(self) -> FrozenSet[str]:
        return frozenset(self.driver.state.rendered_node_ids)

    @property
    def trees(self) -> List[IngredientNode]:
        return list(self._trees)

    @property
    def catalog(self) -> List[Element]:
        return list(self._catalog)

    @property
    def is_running(self) -> bool:
        return self.driver.is_running

    # =========================================================================
    # Backend
    # =========================================================================

    def load_element_catalog(self) -> List[Element]:
        """Fetch the element catalog; on failure keep the previous one."""
        result = self.client.load_catalog()
        if result.is_err():
            self.notify(f"Could not load elements: {result.error}")
            return self.catalog
        self._catalog = result.unwrap()
        return self.catalog

    def run_search(
        self,
        target: str,
        algorithm: Optional[Algorithm | str] = None,
        count: Optional[int] = None,
        animate: bool = False,
    ) -> List[IngredientNode]:
        """
        Search for recipes of `target` and show the first resulting tree.

        On backend failure the current trees and drawing are left alone.

        Raises:
            ValueError: If the algorithm name is unknown.
        """
        algorithm = Algorithm.parse(algorithm or self.algorithm)
        count = count or self.settings.playback.result_count

        result = self.client.run_search(target, algorithm, count)
        if result.is_err():
            self.notify(f"Search for {target!r} failed: {result.error}")
            return self.trees

        self.algorithm = algorithm
        self.target = target
        self._trees = normalize_result(result.unwrap(), target)
        logger.debug(f"Search for {target!r} produced {len(self._trees)} trees")
        self.select_tree(0, animate=animate)
        return self.trees

    # =========================================================================
    # Display
    # =========================================================================

    def visualize(self, tree: IngredientNode, animate: bool = True) -> bool:
        """
        Lay out and draw a tree, animated or all at once.

        Returns False when drawing failed; the surface then shows the error.
        """
        self.driver.cancel()
        self._render_error = None
        try:
            hierarchy = RecipeHierarchy.from_tree(tree)
            self.layout_result = self.layout.apply(hierarchy)
            self.hierarchy = hierarchy
            if animate:
                self.start_animation()
            else:
                self.driver.render_static(hierarchy)
        except Exception as e:
            logger.error(f"Could not render tree {tree.name!r}: {e}")
            self._render_error = f"Could not render tree: {e}"
            self.driver.cancel()
            try:
                self.surface.clear()
                self.surface.show_error(self._render_error)
            except Exception as inner:
                logger.error(f"Could not display render error: {inner}")
            return False
        return True

    def start_animation(self) -> bool:
        """(Re)start the animation of the current tree."""
        if self.hierarchy is None:
            self.notify("Nothing to animate: run a search first")
            return False
        target = self.target or self.hierarchy.root.name
        self.driver.start(self.hierarchy, self.algorithm, target=target)
        return self.driver.playback_state is PlaybackState.RUNNING

    def cancel_animation(self) -> None:
        self.driver.cancel()

    def set_playback_speed(self, speed: float) -> float:
        """
        Raises:
            ValueError: If speed is not positive.
        """
        return self.driver.set_playback_speed(speed)

    def select_tree(self, index: int, animate: bool = True) -> bool:
        """
        Switch to another tree of the current result.

        Raises:
            IndexError: If there is no tree at `index`.
        """
        if not 0 <= index < len(self._trees):
            raise IndexError(f"No tree at index {index} ({len(self._trees)} available)")
        self.driver.dispose()
        self.selected_index = index
        return self.visualize(self._trees[index], animate=animate)

    def wait(self, timeout: Optional[float] = None) -> PlaybackState:
        """Run the timeline until the current animation ends."""
        return self.driver.wait(timeout)

    def teardown(self) -> None:
        """Stop everything and forget the current tree."""
        self.driver.dispose()
        self.hierarchy = None
        self.layout_result = None
        self.selected_index = None
        self._render_error = None
