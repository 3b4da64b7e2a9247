"""
Layout Command - Print positioned nodes for a saved search result.
"""

import json
from typing import Optional

import click

from ...core.hierarchy import RecipeHierarchy
from ...core.layout import LayoutEngine
from ..utils import echo_info, get_settings, load_trees, pick_tree


@click.command()
@click.argument("tree_file", type=click.Path())
@click.option("--width", type=float, default=None, help="Canvas width")
@click.option("--height", type=float, default=None, help="Canvas height")
@click.option("--target", default=None, help="Element the result was searched for")
@click.option("-i", "--index", type=int, default=0, help="Tree to use when the result has several")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def layout(ctx: click.Context, tree_file: str, width: Optional[float], height: Optional[float],
           target: Optional[str], index: int, as_json: bool):
    """
    Lay out TREE_FILE and print each node's coordinates.
    """
    trees = load_trees(tree_file, target)
    if trees is None:
        ctx.exit(1)
    tree = pick_tree(trees, index)
    if tree is None:
        ctx.exit(1)

    canvas = get_settings(ctx).canvas
    engine = LayoutEngine(
        canvas_width=width if width is not None else canvas.width,
        canvas_height=height if height is not None else canvas.height,
    )
    hierarchy = RecipeHierarchy.from_tree(tree)
    result = engine.apply(hierarchy)

    nodes = [
        {
            "id": n.id,
            "name": n.name,
            "depth": n.depth,
            "x": n.x,
            "y": n.y,
            "parent": n.parent.id if n.parent is not None else None,
        }
        for n in hierarchy.descendants()
    ]

    if as_json:
        click.echo(json.dumps({
            "width": result.width,
            "height": result.height,
            "spacing": [result.spacing_x, result.spacing_y],
            "nodes": nodes,
        }, indent=2))
        return

    click.echo(f"Layout {result.width:g} x {result.height:g} "
               f"(slot {result.spacing_x:g}, row {result.spacing_y:g})")
    for n in nodes:
        click.echo(f"  {n['id']:>4}  {n['name']:<20} x={n['x']:8.1f} y={n['y']:8.1f}")
    if result.repaired_coordinates:
        echo_info(f"{result.repaired_coordinates} coordinate(s) repaired")
