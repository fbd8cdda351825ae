"""Clipboard sinks the exporter writes bundles through."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

import pyperclip
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..config import CLIPBOARD_KINDS

logger = logging.getLogger(__name__)


class ClipboardWriteError(RuntimeError):
    """A single clipboard write was refused."""


class ClipboardSink:
    """Base sink. ``max_bytes`` models a host payload limit (``None`` = unlimited)."""

    name = "clipboard"

    def __init__(self, *, max_bytes: Optional[int] = None) -> None:
        self.max_bytes = max_bytes

    async def write_text(self, text: str) -> None:
        size = len(text.encode("utf-8"))
        if self.max_bytes is not None and size > self.max_bytes:
            raise ClipboardWriteError(f"Payload of {size} bytes exceeds the {self.name} limit of {self.max_bytes} bytes")
        await self._write(text)
        logger.debug(f"Wrote {size} bytes to {self.name}")

    async def _write(self, text: str) -> None:
        raise NotImplementedError


class PageClipboardSink(ClipboardSink):
    """``navigator.clipboard.writeText`` inside the picked page."""

    name = "page clipboard"

    def __init__(self, page: Page, *, max_bytes: Optional[int] = None) -> None:
        super().__init__(max_bytes=max_bytes)
        self.page = page

    async def _write(self, text: str) -> None:
        try:
            await self.page.evaluate("(text) => navigator.clipboard.writeText(text)", text)
        except PlaywrightError as exc:
            raise ClipboardWriteError(f"Page clipboard write failed: {exc}") from exc


class SystemClipboardSink(ClipboardSink):
    """The operating system clipboard via pyperclip."""

    name = "system clipboard"

    async def _write(self, text: str) -> None:
        try:
            await asyncio.to_thread(pyperclip.copy, text)
        except pyperclip.PyperclipException as exc:
            raise ClipboardWriteError(f"System clipboard write failed: {exc}") from exc


class FileClipboardSink(ClipboardSink):
    """Writes the payload to a file; the last successful write wins."""

    name = "file"

    def __init__(self, path: Union[str, Path], *, max_bytes: Optional[int] = None) -> None:
        super().__init__(max_bytes=max_bytes)
        self.path = Path(path)

    async def _write(self, text: str) -> None:
        try:
            await asyncio.to_thread(self.path.write_text, text, encoding="utf-8")
        except OSError as exc:
            raise ClipboardWriteError(f"Writing {self.path} failed: {exc}") from exc


def build_sink(
    kind: str,
    *,
    page: Optional[Page] = None,
    path: Optional[Union[str, Path]] = None,
    max_bytes: Optional[int] = None,
) -> ClipboardSink:
    """Create the sink configured by ``PICKBUNDLE_CLIPBOARD`` / ``--clipboard``."""

    if kind not in CLIPBOARD_KINDS:
        raise ValueError(f"Unknown clipboard kind: {kind}")
    if kind == "page":
        if page is None:
            raise ValueError("The page clipboard needs a browser page")
        return PageClipboardSink(page, max_bytes=max_bytes)
    if kind == "system":
        return SystemClipboardSink(max_bytes=max_bytes)
    if path is None:
        raise ValueError("The file clipboard needs an output path")
    return FileClipboardSink(path, max_bytes=max_bytes)


__all__ = [
    "ClipboardSink",
    "ClipboardWriteError",
    "FileClipboardSink",
    "PageClipboardSink",
    "SystemClipboardSink",
    "build_sink",
]
