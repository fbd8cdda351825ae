#!/usr/bin/env python3
"""
Examples of using the pickbundle engine from Python.

Run any example with: python3 examples/picker_examples.py
"""
import asyncio
import tempfile
from pathlib import Path

CHECKOUT_PAGE = """
<html>
  <head><title>Checkout</title></head>
  <body>
    <form class="checkout flex">
      <label for="email">Email</label>
      <input id="email" type="email" placeholder="you@example.com" required>
      <button data-testid="place-order" class="btn primary">Place order</button>
    </form>
  </body>
</html>
"""


async def example_offline_locators():
    """Rank locators for elements of a parsed page, no browser needed."""
    print("\n" + "=" * 60)
    print("Example 1: Locator ranking on static HTML")
    print("=" * 60)

    from pickbundle import LiveDocument, rank_locators, synthesize

    document = LiveDocument.from_html(CHECKOUT_PAGE, url="https://shop.example.test/checkout")
    for selector in ("#email", "button"):
        element = document.query_selector_all(selector)[0]
        print(f"\n<{element.tag}> candidates:")
        for candidate in rank_locators(synthesize(document, element)):
            print(f"  {candidate.score:>3}  {candidate.strategy:<12} {candidate.playwright}")


async def example_offline_bundle():
    """Select elements, then export a bundle to a file without a capture."""
    print("\n" + "=" * 60)
    print("Example 2: Bundle export with an unavailable capture")
    print("=" * 60)

    from pickbundle import LiveDocument, PickerSession
    from pickbundle.browser import CaptureResponse, FileClipboardSink

    class NoCapture:
        async def capture_visible(self):
            return CaptureResponse.failed("no browser attached")

    document = LiveDocument.from_html(CHECKOUT_PAGE, url="https://shop.example.test/checkout")
    with tempfile.TemporaryDirectory() as workdir:
        target = Path(workdir) / "bundle.md"
        session = PickerSession(document, NoCapture(), FileClipboardSink(target))
        session.on_click(document.get_element_by_id("email"))
        session.on_click(document.query_selector_all("button")[0])

        outcome = await session.export()
        print(f"✓ Exported {outcome.tier} bundle ({outcome.size} bytes)")
        print(target.read_text(encoding="utf-8").split("## JSON Bundle")[0])


async def example_live_inspect():
    """Pick elements on a real page in a headless browser."""
    print("\n" + "=" * 60)
    print("Example 3: Headless inspect of a live page")
    print("=" * 60)

    from pickbundle.browser import BrowserAutomation, BrowserConfig, FileClipboardSink, inspect_page
    from pickbundle.config import get_settings

    settings = get_settings()
    config = BrowserConfig.from_settings(settings, headless=True)
    with tempfile.TemporaryDirectory() as workdir:
        async with BrowserAutomation(config) as automation:
            session = await automation.create_session()
            await session.page.goto("https://example.com", wait_until="load")
            sink = FileClipboardSink(Path(workdir) / "bundle.md")
            bundle = await inspect_page(session.page, ["h1", "a"], sink, settings=settings)

    if bundle is None:
        print("✗ Nothing matched")
        return
    for element in bundle["elements"]:
        primary = element["primaryLocator"] or {}
        print(f"✓ {element['index']}. {element['tag']}: {primary.get('playwright')}")
    print(f"  Screenshot: {bundle['screenshot']['status']}")


async def main():
    """Run all examples."""
    try:
        await example_offline_locators()
        await example_offline_bundle()
        await example_live_inspect()
        print("\n" + "=" * 60)
        print("✅ All examples completed successfully!")
        print("=" * 60)
    except KeyboardInterrupt:
        print("\n\n⚠️  Examples interrupted by user")


if __name__ == "__main__":
    asyncio.run(main())
