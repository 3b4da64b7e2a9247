"""
Catalog Command - List the elements the backend knows.
"""

import json
from typing import Optional

import click

from ...client import BackendClient
from ..utils import echo_error, get_settings


@click.command()
@click.option("--tier", type=int, default=None, help="Only show elements of this tier")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def catalog(ctx: click.Context, tier: Optional[int], as_json: bool):
    """
    List elements with their tier and recipe count.
    """
    backend = get_settings(ctx).backend
    client = BackendClient(backend.api_url, backend.ws_url, backend.http_timeout)

    result = client.load_catalog()
    if result.is_err():
        echo_error(str(result.error))
        ctx.exit(1)

    elements = result.unwrap()
    if tier is not None:
        elements = [e for e in elements if e.tier == tier]
    elements.sort(key=lambda e: (e.tier, e.name))

    if as_json:
        click.echo(json.dumps([e.model_dump() for e in elements], indent=2))
        return

    click.echo(f"{len(elements)} elements")
    for element in elements:
        marker = click.style(" (base)", fg="yellow") if element.is_base_element else ""
        click.echo(f"  [{element.tier:>2}] {element.name}{marker}  {len(element.recipes)} recipe(s)")
