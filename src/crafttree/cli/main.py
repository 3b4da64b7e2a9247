"""
crafttree CLI - Main entry point.

This module registers all CLI commands. Each command is implemented
in its own module under cli/commands/.
"""

from typing import Optional

import click

from .commands import animate, catalog, init, layout, search, sequence
from .utils import setup_logging


@click.group()
@click.version_option(package_name="crafttree")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Config file (default: .crafttree/config.yaml)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: Optional[str]):
    """crafttree: Recipe tree search and animation.

    \b
    Quick Start:
      crafttree init
      crafttree search Brick --save brick.json
      crafttree animate brick.json -a dfs
    """
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# Register commands
main.add_command(init.init)
main.add_command(search.search)
main.add_command(sequence.sequence)
main.add_command(layout.layout)
main.add_command(animate.animate)
main.add_command(catalog.catalog)

if __name__ == "__main__":
    main()
