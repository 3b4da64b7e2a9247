"""
Search Command - Ask the backend for recipe trees.
"""

import json
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from ...client import BackendClient
from ...core.normalizer import normalize_result, read_envelope, summarize_path, tree_stats
from ...core.types import Algorithm, IngredientNode
from ..utils import echo_error, echo_info, echo_success, get_settings

console = Console()

ALGORITHM_CHOICES = click.Choice(["bfs", "dfs", "bidirectional", "bidir"], case_sensitive=False)


def _label(node: IngredientNode) -> str:
    name = escape(node.name)
    if node.is_circular_reference:
        return f"[dark_orange]{name}[/dark_orange] [dim](circular)[/dim]"
    if node.is_base_element:
        return f"[yellow]{name}[/yellow]"
    if node.is_placeholder:
        return f"[grey50]{name}[/grey50] [dim](no data)[/dim]"
    if node.has_no_recipe:
        return f"[grey50]{name}[/grey50] [dim](no recipe)[/dim]"
    return f"[cyan]{name}[/cyan]"


def build_rich_tree(root: IngredientNode) -> Tree:
    """Render an ingredient tree as a rich Tree, target in green."""
    view = Tree(f"[bold green]{escape(root.name)}[/bold green]")
    stack = [(view, child) for child in reversed(root.children)]
    while stack:
        parent_view, node = stack.pop()
        branch = parent_view.add(_label(node))
        stack.extend((branch, child) for child in reversed(node.children))
    return view


@click.command()
@click.argument("target")
@click.option("-a", "--algorithm", type=ALGORITHM_CHOICES, default=None, help="Search algorithm")
@click.option("-n", "--count", type=click.IntRange(min=1), default=None, help="Number of recipes")
@click.option("--json", "as_json", is_flag=True, help="Print normalized trees as JSON")
@click.option("--save", "save_path", type=click.Path(dir_okay=False), default=None,
              help="Save the raw backend response")
@click.pass_context
def search(ctx: click.Context, target: str, algorithm: Optional[str], count: Optional[int],
           as_json: bool, save_path: Optional[str]):
    """
    Search recipes for TARGET and print the resulting trees.
    """
    settings = get_settings(ctx)
    backend = settings.backend
    client = BackendClient(backend.api_url, backend.ws_url, backend.http_timeout)
    algorithm = Algorithm.parse(algorithm or settings.playback.algorithm)

    result = client.run_search(target, algorithm, count or settings.playback.result_count)
    if result.is_err():
        echo_error(str(result.error))
        ctx.exit(1)

    payload = result.unwrap()
    if save_path:
        Path(save_path).write_text(json.dumps(payload, indent=2))

    trees = normalize_result(payload, target)

    if as_json:
        click.echo(json.dumps([t.to_dict() for t in trees], indent=2))
        return

    echo_success(f"{len(trees)} recipe tree(s) for {target} ({algorithm})")
    envelope = read_envelope(payload)
    if envelope.nodes_visited:
        echo_info(f"Backend visited {envelope.nodes_visited} nodes in {envelope.time_elapsed:g} ms")
    for index, tree in enumerate(trees):
        stats = tree_stats(tree)
        click.echo()
        click.echo(click.style(f"Tree {index}", bold=True)
                   + f"  {stats.node_count} nodes, depth {stats.max_depth}, "
                   f"{stats.base_count} base")
        echo_info(summarize_path(tree).render())
        console.print(build_rich_tree(tree))

    if save_path:
        click.echo()
        echo_info(f"Response saved to {save_path}")
