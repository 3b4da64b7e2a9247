"""
Sequence Command - Show the reveal order for a saved search result.
"""

import json
from typing import Optional

import click

from ...core.hierarchy import RecipeHierarchy
from ...core.sequence import build_sequence
from ...core.types import Algorithm
from ..utils import load_trees, pick_tree
from .search import ALGORITHM_CHOICES


@click.command()
@click.argument("tree_file", type=click.Path())
@click.option("-a", "--algorithm", type=ALGORITHM_CHOICES, default="bfs", help="Reveal order")
@click.option("--target", default=None, help="Element the result was searched for")
@click.option("-i", "--index", type=int, default=0, help="Tree to use when the result has several")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def sequence(ctx: click.Context, tree_file: str, algorithm: str, target: Optional[str],
             index: int, as_json: bool):
    """
    Print the order in which TREE_FILE's nodes are revealed.
    """
    trees = load_trees(tree_file, target)
    if trees is None:
        ctx.exit(1)
    tree = pick_tree(trees, index)
    if tree is None:
        ctx.exit(1)

    algorithm = Algorithm.parse(algorithm)
    hierarchy = RecipeHierarchy.from_tree(tree)
    order = build_sequence(hierarchy, algorithm)

    if as_json:
        click.echo(json.dumps({
            "algorithm": str(algorithm),
            "target": hierarchy.root.name,
            "sequence": [{"id": n.id, "name": n.name, "depth": n.depth} for n in order],
        }, indent=2))
        return

    click.echo(f"{click.style(str(algorithm).upper(), bold=True)} reveal order for "
               f"{click.style(hierarchy.root.name, fg='green')}:")
    for step, node in enumerate(order, 1):
        click.echo(f"  {step:>3}. {node.name} ({node.id}, depth {node.depth})")
