"""
Init Command - Write a default configuration.

Creates `.crafttree/config.yaml` in the current directory, optionally
pointing at a non-default backend.
"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm

from ...settings import CONFIG_DIR, CONFIG_FILE, Settings

console = Console()


def create_gitignore(config_dir: Path) -> None:
    """Ensure the .crafttree/ directory is ignored by git."""
    gitignore = config_dir.parent / ".gitignore"
    entry = "\n# crafttree\n.crafttree/\n"

    if not gitignore.exists():
        gitignore.write_text(entry)
    elif ".crafttree" not in gitignore.read_text():
        with open(gitignore, "a") as f:
            f.write(entry)


def write_config(root_dir: Path, settings: Settings) -> Path:
    config_dir = root_dir / CONFIG_DIR
    config_dir.mkdir(exist_ok=True)
    config_file = config_dir / CONFIG_FILE
    config_file.write_text(settings.to_yaml())
    create_gitignore(config_dir)
    return config_file


@click.command()
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
@click.option("--api-url", default=None, help="Backend REST base URL")
@click.option("--ws-url", default=None, help="Animation websocket base URL")
@click.option("--no-stream", is_flag=True, help="Never use the animation stream")
def init(force: bool, api_url: Optional[str], ws_url: Optional[str], no_stream: bool):
    """
    Initialize crafttree in the current directory.
    """
    console.print(Panel.fit("[bold blue]crafttree initialization[/bold blue]", border_style="blue"))

    root_dir = Path.cwd()
    config_file = root_dir / CONFIG_DIR / CONFIG_FILE

    if config_file.exists() and not force:
        console.print(f"[yellow]Configuration already exists at {config_file}[/yellow]")
        if not Confirm.ask("Do you want to overwrite it?"):
            console.print("Aborted.")
            return

    settings = Settings()
    if api_url:
        settings.backend.api_url = api_url
    if ws_url:
        settings.backend.ws_url = ws_url
    if no_stream:
        settings.backend.stream = False

    written = write_config(root_dir, settings)
    console.print("\n[bold green]Initialized successfully![/bold green]")
    console.print(f"   Config created at: [dim]{written}[/dim]")
