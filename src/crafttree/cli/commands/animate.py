"""
Animate Command - Play a reveal animation in the terminal.
"""

from typing import Optional

import click
from rich.console import Console

from ...core.types import Algorithm, PlaybackState
from ...playback.timeline import Timeline
from ...render.surface import ConsoleSurface
from ...visualizer import RecipeVisualizer
from ..utils import echo_error, echo_success, echo_warning, get_settings, load_trees, pick_tree
from .search import ALGORITHM_CHOICES

console = Console()


@click.command()
@click.argument("tree_file", type=click.Path())
@click.option("-a", "--algorithm", type=ALGORITHM_CHOICES, default=None, help="Reveal order")
@click.option("--speed", type=float, default=None, help="Playback speed multiplier")
@click.option("--stream/--no-stream", default=False, help="Replay the backend's animation stream")
@click.option("--realtime/--instant", default=True, help="Pace steps in real time")
@click.option("--links", is_flag=True, help="Also print each link as it is drawn")
@click.option("--target", default=None, help="Element the result was searched for")
@click.option("-i", "--index", type=int, default=0, help="Tree to use when the result has several")
@click.pass_context
def animate(ctx: click.Context, tree_file: str, algorithm: Optional[str], speed: Optional[float],
            stream: bool, realtime: bool, links: bool, target: Optional[str], index: int):
    """
    Reveal TREE_FILE node by node, the way the search discovers it.
    """
    trees = load_trees(tree_file, target)
    if trees is None:
        ctx.exit(1)
    tree = pick_tree(trees, index)
    if tree is None:
        ctx.exit(1)

    if stream and not realtime:
        echo_warning("--stream needs --realtime; replaying locally")
        stream = False

    settings = get_settings(ctx)
    settings.backend.stream = stream
    if algorithm:
        settings.playback.algorithm = str(Algorithm.parse(algorithm))

    viz = RecipeVisualizer(
        settings=settings,
        surface=ConsoleSurface(console, show_links=links),
        timeline=Timeline(realtime=realtime),
        notify=echo_warning,
    )
    if speed is not None:
        try:
            viz.set_playback_speed(speed)
        except ValueError as e:
            echo_error(str(e))
            ctx.exit(1)

    viz.target = target or tree.name
    if not viz.visualize(tree, animate=True):
        echo_error(viz.advisory_error or "Rendering failed")
        ctx.exit(1)

    outcome = viz.wait()
    if viz.advisory_error:
        echo_warning(viz.advisory_error)

    if outcome is PlaybackState.COMPLETED:
        echo_success(f"Revealed {len(viz.rendered_node_ids)} nodes ({viz.progress_percent:.0f}%)")
    else:
        echo_error(f"Animation ended: {outcome}")
        ctx.exit(1)
