"""Playwright code generation for locator candidates and repro skeletons.

Snippets are documentation payload: they are copied into the bundle so a
reader (or an agent) can paste them into a test, and are never executed.
"""
from __future__ import annotations

import json
from typing import List, Optional


def _literal(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


class CodeDialect:
    """Renders Playwright calls in one client language."""

    name: str = ""
    fence: str = ""

    def locator(self, selector: str) -> str:
        return f"page.locator({_literal(selector)})"

    def xpath(self, expression: str) -> str:
        return self.locator(f"xpath={expression}")

    def role(self, role: str, name: Optional[str] = None) -> str:
        raise NotImplementedError

    def text(self, text: str) -> str:
        raise NotImplementedError

    def skeleton(self, url: str, targets: List[tuple[int, str, str]]) -> str:
        """Render a test that visits ``url`` and asserts every ``(index, label, locator)``."""

        raise NotImplementedError


class PythonDialect(CodeDialect):
    name = "python"
    fence = "python"

    def role(self, role: str, name: Optional[str] = None) -> str:
        if name:
            return f"page.get_by_role({_literal(role)}, name={_literal(name)})"
        return f"page.get_by_role({_literal(role)})"

    def text(self, text: str) -> str:
        return f"page.get_by_text({_literal(text)})"

    def skeleton(self, url: str, targets: List[tuple[int, str, str]]) -> str:
        lines = [
            "from playwright.sync_api import Page, expect",
            "",
            "",
            "def test_repro_from_element_picker_bundle(page: Page) -> None:",
            f"    page.goto({_literal(url)})",
            "",
        ]
        for index, label, locator in targets:
            lines.append(f"    # Element {index}: {label}")
            lines.append(f"    target{index} = {locator}")
            lines.append(f"    expect(target{index}).to_be_visible()")
            lines.append(f"    # TODO: add action/assertion for target{index}")
            lines.append("")
        if not targets:
            lines.append("    pass")
        while lines and lines[-1] == "":
            lines.pop()
        return "\n".join(lines)


class TypeScriptDialect(CodeDialect):
    name = "typescript"
    fence = "ts"

    def role(self, role: str, name: Optional[str] = None) -> str:
        if name:
            return f"page.getByRole({_literal(role)}, {{ name: {_literal(name)} }})"
        return f"page.getByRole({_literal(role)})"

    def text(self, text: str) -> str:
        return f"page.getByText({_literal(text)})"

    def skeleton(self, url: str, targets: List[tuple[int, str, str]]) -> str:
        lines = [
            "import { test, expect } from '@playwright/test';",
            "",
            "test('repro from element picker bundle', async ({ page }) => {",
            f"  await page.goto({_literal(url)});",
            "",
        ]
        for index, label, locator in targets:
            lines.append(f"  // Element {index}: {label}")
            lines.append(f"  const target{index} = {locator};")
            lines.append(f"  await expect(target{index}).toBeVisible();")
            lines.append(f"  // TODO: add action/assertion for target{index}")
            lines.append("")
        lines.append("});")
        return "\n".join(lines)


_DIALECTS = {dialect.name: dialect for dialect in (PythonDialect(), TypeScriptDialect())}


def get_dialect(name: Optional[str] = None) -> CodeDialect:
    """Return the dialect called ``name`` (defaults to Python)."""

    key = (name or "python").strip().lower()
    if key in ("ts", "js", "javascript"):
        key = "typescript"
    try:
        return _DIALECTS[key]
    except KeyError:
        raise ValueError(f"Unknown code dialect: {name}") from None


__all__ = ["CodeDialect", "PythonDialect", "TypeScriptDialect", "get_dialect"]
