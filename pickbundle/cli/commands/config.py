"""Configuration inspection commands."""
from __future__ import annotations

from dataclasses import fields

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pickbundle.config import get_settings

console = Console()


@click.group(name="config")
def config_command():
    """
    Inspect pickbundle configuration.

    Settings come from PICKBUNDLE_* environment variables (a .env file in the
    working directory is loaded first).
    """
    pass


@config_command.command(name="show")
def show_config():
    """Show current configuration."""
    settings = get_settings()

    console.print(Panel(
        "[bold cyan]Current Configuration[/bold cyan]",
        border_style="cyan"
    ))
    console.print()

    table = Table(title="Picker Settings", border_style="blue")
    table.add_column("Setting", style="cyan")
    table.add_column("Environment variable", style="dim")
    table.add_column("Value", style="yellow")

    for item in fields(settings):
        table.add_row(
            item.name.replace("_", " ").title(),
            f"PICKBUNDLE_{item.name.upper()}",
            str(getattr(settings, item.name)),
        )

    console.print(table)
