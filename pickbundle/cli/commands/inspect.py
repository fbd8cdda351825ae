"""Non-interactive bundle export for known selectors."""
from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console

from pickbundle.config import SKELETON_DIALECTS, Settings

from .pick import print_bundle_summary, resolve_settings

console = Console()


@click.command(name="inspect")
@click.argument("url")
@click.option("--select", "selectors", multiple=True, required=True, help="CSS selector to pick (repeatable)")
@click.option("--dialect", type=click.Choice(SKELETON_DIALECTS), help="Language of generated snippets")
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), help="Write the bundle to a file")
@click.option("--headless/--headed", default=True, help="Run browser in headless mode")
@click.option("--device-scale", type=float, default=1.0, show_default=True, help="Device pixel ratio")
def inspect_command(
    url: str,
    selectors: Tuple[str, ...],
    dialect: Optional[str],
    output: Optional[Path],
    headless: bool,
    device_scale: float,
):
    """
    Export a bundle for the first match of each --select selector.

    Without --output the Markdown report is printed to stdout.

    Examples:

      pickbundle inspect https://example.com --select h1 --select "a[href]"
    """
    settings = resolve_settings(dialect, "file", headless=headless)
    if output is None:
        with tempfile.TemporaryDirectory() as workdir:
            _, text = _run(url, selectors, settings, Path(workdir) / "bundle.md", device_scale)
        click.echo(text)
        return

    bundle, _ = _run(url, selectors, settings, output, device_scale)
    print_bundle_summary(bundle)
    console.print(f"Bundle written to [bold]{output}[/bold]")


def _run(url: str, selectors: Tuple[str, ...], settings: Settings, target: Path, device_scale: float):
    from pickbundle.browser import InspectExportError

    try:
        bundle, text = asyncio.run(_inspect(url, selectors, settings, target, device_scale))
    except InspectExportError as exc:
        raise click.ClickException(str(exc))
    if bundle is None:
        raise click.ClickException("No element matched the given selectors")
    return bundle, text


async def _inspect(url: str, selectors: Tuple[str, ...], settings: Settings, target: Path, device_scale: float):
    from pickbundle.browser import BrowserAutomation, BrowserConfig, FileClipboardSink, inspect_page

    config = BrowserConfig.from_settings(settings, device_scale_factor=device_scale)
    async with BrowserAutomation(config) as automation:
        session = await automation.create_session()
        await session.page.goto(url, wait_until="load")
        bundle = await inspect_page(session.page, selectors, FileClipboardSink(target), settings=settings)

    text = target.read_text(encoding="utf-8") if bundle is not None and target.exists() else ""
    return bundle, text
