"""Interactive picking in a headed browser."""
from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pickbundle.config import CLIPBOARD_KINDS, SKELETON_DIALECTS, Settings, get_settings

console = Console()


def resolve_settings(
    dialect: Optional[str] = None,
    clipboard: Optional[str] = None,
    browser: Optional[str] = None,
    headless: Optional[bool] = None,
) -> Settings:
    """Environment settings with command line overrides applied."""

    overrides = {
        "skeleton_dialect": dialect,
        "clipboard": clipboard,
        "browser": browser,
        "headless": headless,
    }
    return replace(get_settings(), **{key: value for key, value in overrides.items() if value is not None})


def print_bundle_summary(bundle: dict, tier: Optional[str] = None) -> None:
    table = Table(title="Selected Elements", border_style="cyan", header_style="bold cyan")
    table.add_column("#", justify="right", style="yellow")
    table.add_column("Element", style="white")
    table.add_column("Primary locator", style="green")
    table.add_column("Score", justify="right")
    table.add_column("Matches", justify="right")

    for element in bundle["elements"]:
        primary = element.get("primaryLocator") or {}
        label = f"{element['tag']}#{element['id']}" if element.get("id") else element["tag"]
        count = primary.get("uniqueCount")
        table.add_row(
            str(element["index"]),
            label,
            primary.get("playwright", "-"),
            str(primary.get("score", "-")),
            "?" if count is None else str(count),
        )

    console.print(table)
    screenshot = bundle["screenshot"]
    status = screenshot["status"] if screenshot["status"] == "ok" else f"{screenshot['status']} ({screenshot['reason']})"
    console.print(f"Screenshot: [yellow]{status}[/yellow]")
    if screenshot.get("note"):
        console.print(f"[dim]{screenshot['note']}[/dim]")
    if tier:
        console.print(f"Copied as [bold]{tier}[/bold] payload")


@click.command(name="pick")
@click.argument("url")
@click.option("--dialect", type=click.Choice(SKELETON_DIALECTS), help="Language of generated snippets")
@click.option("--clipboard", type=click.Choice(CLIPBOARD_KINDS), help="Where the bundle is copied")
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), help="Bundle file for --clipboard file")
@click.option("--browser", type=click.Choice(["chromium", "firefox", "webkit"]), help="Browser engine")
@click.option("--device-scale", type=float, default=1.0, show_default=True, help="Device pixel ratio")
def pick_command(
    url: str,
    dialect: Optional[str],
    clipboard: Optional[str],
    output: Optional[Path],
    browser: Optional[str],
    device_scale: float,
):
    """
    Open URL and pick elements interactively.

    Click elements to add them, press Enter to export the bundle, Backspace
    to undo the last pick and Escape to cancel.

    Examples:

      pickbundle pick https://example.com

      pickbundle pick https://example.com --clipboard file --output bundle.md
    """
    settings = resolve_settings(dialect, clipboard, browser, headless=False)
    if settings.clipboard == "file" and output is None:
        raise click.UsageError("--output is required with --clipboard file")

    console.print(Panel(
        f"[bold cyan]Element Picker[/bold cyan]\n\n"
        f"URL: [yellow]{url}[/yellow]\n"
        f"Dialect: [yellow]{settings.skeleton_dialect}[/yellow]\n"
        f"Clipboard: [yellow]{settings.clipboard}[/yellow]\n\n"
        "Click: add  |  Enter: export  |  Backspace: undo  |  Esc: cancel",
        border_style="cyan"
    ))

    bundle, tier = asyncio.run(_pick(url, settings, output, device_scale))
    if bundle is None:
        console.print("[yellow]Picker ended without an export[/yellow]")
        return
    print_bundle_summary(bundle, tier)
    if output is not None:
        console.print(f"Bundle written to [bold]{output}[/bold]")


async def _pick(url: str, settings: Settings, output: Optional[Path], device_scale: float):
    from pickbundle.browser import BrowserAutomation, BrowserConfig, PlaywrightPickerBridge, build_sink

    config = BrowserConfig.from_settings(settings, device_scale_factor=device_scale)
    async with BrowserAutomation(config) as automation:
        session = await automation.create_session()
        await session.page.goto(url, wait_until="domcontentloaded")
        sink = build_sink(settings.clipboard, page=session.page, path=output)
        bridge = PlaywrightPickerBridge(session.page, sink, settings=settings)
        bundle = await bridge.run()
        outcome = bridge.session.last_outcome if bridge.session else None
        return bundle, outcome.tier if outcome else None
