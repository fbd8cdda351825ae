#!/usr/bin/env python3
"""Main CLI entry point for the element picker."""
from __future__ import annotations

import logging
import sys
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from pickbundle import __version__

from .commands import config, inspect, pick

console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.option("--log-level", default=None, help="Logging level (defaults to PICKBUNDLE_LOG_LEVEL)")
@click.version_option(version=__version__, prog_name="pickbundle")
def cli(log_level: Optional[str]):
    """
    pickbundle - pick elements on a live page and export a debug bundle.

    The bundle holds ranked Playwright locators, element metadata, viewport
    crops and a repro test skeleton.
    """
    from pickbundle.config import get_settings

    configure_logging(log_level or get_settings().log_level)


cli.add_command(pick.pick_command)
cli.add_command(inspect.inspect_command)
cli.add_command(config.config_command)


def main():
    """Entry point for the CLI."""
    load_dotenv()
    try:
        cli(standalone_mode=False)
    except click.exceptions.Abort:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
