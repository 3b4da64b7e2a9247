"""
CLI Utilities - Shared helpers for crafttree commands.

Formatted printing, logging setup, and loading saved search results.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

import click

from ..core.normalizer import normalize_result
from ..core.types import IngredientNode


def setup_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def echo_success(message: str) -> None:
    """Print a success message with a green checkmark."""
    click.echo(click.style(f"✅ {message}", fg="green"))


def echo_error(message: str) -> None:
    """Print an error message with a red cross, to stderr."""
    click.echo(click.style(f"❌ {message}", fg="red"), err=True)


def echo_warning(message: str) -> None:
    """Print a warning message with a yellow alert symbol."""
    click.echo(click.style(f"⚠️  {message}", fg="yellow"))


def echo_info(message: str) -> None:
    """Print an informational message, dimmed."""
    click.echo(click.style(f"   {message}", dim=True))


def load_trees(tree_file: str, target: Optional[str] = None) -> Optional[List[IngredientNode]]:
    """
    Load a saved search result (any backend shape) and normalize it.

    Args:
        tree_file: Path to a JSON file.
        target: Element the result was searched for, if known.

    Returns:
        Optional[List[IngredientNode]]: The trees, or None if the file
        could not be read.
    """
    path = Path(tree_file)
    if not path.exists():
        echo_error(f"Tree file not found: {tree_file}")
        return None
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        echo_error(f"Failed to read {tree_file}: {e}")
        return None
    return normalize_result(data, target)


def pick_tree(trees: List[IngredientNode], index: int) -> Optional[IngredientNode]:
    """Select one tree by index, reporting out-of-range indexes."""
    if not 0 <= index < len(trees):
        echo_error(f"No tree at index {index} ({len(trees)} available)")
        return None
    return trees[index]


def get_settings(ctx: click.Context):
    """Settings for this invocation, honoring the group's --config option."""
    from ..settings import Settings

    config_path = (ctx.obj or {}).get("config_path")
    return Settings.load(Path(config_path) if config_path else None)
