"""Clipboard export with progressively lighter payloads."""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from ..config import SLIM_HTML_LIMIT
from ..dom.text import truncate
from ..locators.snippets import CodeDialect
from .report import format_bundle

logger = logging.getLogger(__name__)

SLIM_NOTE = "Inline crop images removed to keep clipboard payload manageable."


class TextSink(Protocol):
    async def write_text(self, text: str) -> None:
        ...


class ClipboardExportError(RuntimeError):
    """Every payload tier was refused by the clipboard sink."""


@dataclass(frozen=True)
class ExportOutcome:
    tier: str
    text: str

    @property
    def size(self) -> int:
        return len(self.text.encode("utf-8"))


def strip_inline_images(bundle: Dict[str, Any], html_limit: int = SLIM_HTML_LIMIT) -> Dict[str, Any]:
    """Copy of ``bundle`` without crop images and with shorter markup."""

    slim = copy.deepcopy(bundle)
    screenshot = slim["screenshot"]
    screenshot["inlineImages"] = False
    screenshot["note"] = screenshot.get("note") or SLIM_NOTE

    for element in slim["elements"]:
        if element.get("html"):
            element["html"] = truncate(element["html"], html_limit)
        crop = element.get("screenshotCrop")
        if crop:
            crop.pop("imageDataUrl", None)
    return slim


async def export_bundle(
    bundle: Dict[str, Any],
    sink: TextSink,
    *,
    dialect: Optional[CodeDialect] = None,
    html_limit: int = SLIM_HTML_LIMIT,
) -> ExportOutcome:
    """Write ``bundle`` through ``sink``, falling back full -> slim -> summary.

    Raises :class:`ClipboardExportError` when the summary tier fails too.
    """

    full_text = format_bundle(bundle, True, dialect=dialect)
    try:
        await sink.write_text(full_text)
        return ExportOutcome("full", full_text)
    except Exception as exc:
        logger.warning(f"Full bundle copy failed, retrying with lighter payload: {exc}")

    slim = strip_inline_images(bundle, html_limit)
    slim_text = format_bundle(slim, True, dialect=dialect)
    try:
        await sink.write_text(slim_text)
        return ExportOutcome("slim", slim_text)
    except Exception as exc:
        logger.warning(f"Slim bundle copy failed, retrying with summary payload: {exc}")

    summary_text = format_bundle(slim, False, dialect=dialect)
    try:
        await sink.write_text(summary_text)
    except Exception as exc:
        logger.error(f"Summary bundle copy failed: {exc}")
        raise ClipboardExportError(f"Failed to copy bundle: {exc}") from exc
    return ExportOutcome("summary", summary_text)


__all__ = [
    "ClipboardExportError",
    "ExportOutcome",
    "SLIM_NOTE",
    "TextSink",
    "export_bundle",
    "strip_inline_images",
]
