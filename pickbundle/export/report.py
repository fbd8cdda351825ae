"""Markdown rendering of a bundle, the text that lands on the clipboard."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from ..dom.text import pluralize
from ..locators.snippets import CodeDialect, get_dialect

TOP_LOCATORS = 5

SESSION_CONTROLS = (
    "- Click: add element to bundle",
    "- Enter: export bundle to clipboard",
    "- Backspace/Delete/Ctrl+Z: remove latest selection",
    "- Escape: cancel picker",
)


def _compact(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def format_locator_line(locator: Mapping[str, Any]) -> str:
    count = locator.get("uniqueCount")
    if isinstance(count, int):
        matches = f"{count} {pluralize(count, 'match', 'matches')}"
    else:
        matches = "match count unknown"
    return f"- {locator['strategy']}: score {locator['score']}, {matches}, {locator['playwright']}"


def format_element_section(element: Mapping[str, Any]) -> List[str]:
    heading = f"{element['index']}. {element['tag']}"
    if element.get("id"):
        heading += f"#{element['id']}"
    lines = [f"### {heading}"]

    if element.get("text"):
        lines.append(f'Text: "{element["text"]}"')
    lines.append(f"CSS selector: {element['selector']}")
    if element.get("xpath"):
        lines.append(f"XPath: {element['xpath']}")
    primary = element.get("primaryLocator")
    if primary:
        lines.append(f"Primary locator: {primary['playwright']}")
    lines.append(f"Size: {element['dimensions']}")

    chain = element.get("componentChain")
    if chain:
        framework = (element.get("framework") or "component").capitalize()
        lines.append(f"{framework} chain: {' -> '.join(chain)}")

    locators = element.get("locators") or []
    if locators:
        lines.append("Locator ranking:")
        lines.extend(format_locator_line(locator) for locator in locators[:TOP_LOCATORS])

    crop = element.get("screenshotCrop")
    if crop:
        where = "visible in viewport" if crop.get("visibleInViewport") else "not visible in viewport at export time"
        lines.append(f"Screenshot crop: {where}")
        pixels = crop.get("captureRectPixels")
        if pixels:
            lines.append(
                f"Capture pixels: x={pixels['x']}, y={pixels['y']}, w={pixels['width']}, h={pixels['height']}"
            )
        if crop.get("imageDataUrl"):
            lines.append("Crop preview image: embedded in JSON under `screenshotCrop.imageDataUrl`.")

    for label, key in (
        ("A11y", "accessibility"),
        ("Form state", "formState"),
        ("Styles", "styles"),
        ("Data attrs", "dataAttributes"),
    ):
        if element.get(key):
            lines.append(f"{label}: {_compact(element[key])}")

    if element.get("html"):
        lines.extend(["HTML snippet:", "```html", element["html"], "```"])

    lines.append("")
    return lines


def format_bundle(
    bundle: Dict[str, Any],
    include_json: bool = True,
    *,
    dialect: Optional[CodeDialect] = None,
) -> str:
    """Render ``bundle`` as Markdown, optionally followed by the JSON itself."""

    dialect = dialect or get_dialect()
    lines = [
        "# Element Debug Bundle",
        "",
        f"Captured at: {bundle['generatedAt']}",
        f"URL: {bundle['page']['url']}",
        f"Title: {bundle['page']['title']}",
        f"Elements: {bundle['totalElements']}",
        "",
        "## Session Controls",
        *SESSION_CONTROLS,
        "",
        "## Elements",
        "",
    ]
    for element in bundle["elements"]:
        lines.extend(format_element_section(element))

    lines.extend(["## Playwright Repro Skeleton", f"```{dialect.fence}", bundle["playwrightSkeleton"], "```"])

    note = bundle["screenshot"].get("note")
    if note:
        lines.extend(["", f"Screenshot note: {note}"])

    if include_json:
        lines.extend(["", "## JSON Bundle", "```json", json.dumps(bundle, indent=2, ensure_ascii=False), "```"])

    return "\n".join(lines)


__all__ = ["format_bundle", "format_element_section", "format_locator_line"]
