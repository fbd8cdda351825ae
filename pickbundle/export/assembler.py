"""Merge frozen selections and crop records into one bundle document."""
from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

from ..config import BUNDLE_VERSION
from ..dom.document import LiveDocument
from ..dom.text import truncate
from ..locators.snippets import CodeDialect, get_dialect
from ..vision.crops import ScreenshotData

if TYPE_CHECKING:
    from ..picker.ledger import Selection

logger = logging.getLogger(__name__)

SKELETON_LABEL_LENGTH = 72


def skeleton_target(element: Dict[str, Any], dialect: CodeDialect) -> tuple[int, str, str]:
    """``(index, label, locator)`` for one bundle element."""

    label = f"{element['tag']}#{element['id']}" if element.get("id") else element["tag"]
    label = truncate(f"{label} {element.get('text') or ''}", SKELETON_LABEL_LENGTH)

    primary = element.get("primaryLocator") or {}
    locator = primary.get("playwright") or dialect.locator(
        element.get("selector") or element.get("xpath") or element["tag"]
    )
    return element["index"], label, locator


def build_skeleton(bundle: Dict[str, Any], dialect: Optional[CodeDialect] = None) -> str:
    dialect = dialect or get_dialect()
    targets = [skeleton_target(element, dialect) for element in bundle["elements"]]
    return dialect.skeleton(bundle["page"]["url"], targets)


def assemble(
    selections: Sequence[Selection],
    screenshot: ScreenshotData,
    document: LiveDocument,
    *,
    dialect: Optional[CodeDialect] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> Dict[str, Any]:
    """Build the bundle dictionary for ``selections``.

    Each element is its descriptor plus the crop record with the same index
    (``None`` when the capture was unavailable).
    """

    elements: List[Dict[str, Any]] = []
    for selection in selections:
        element = selection.descriptor.to_dict()
        crop = screenshot.crop_for(selection.index)
        element["screenshotCrop"] = crop.to_dict() if crop is not None else None
        elements.append(element)

    timestamp = (now or (lambda: datetime.now(UTC)))()
    bundle: Dict[str, Any] = {
        "bundleVersion": BUNDLE_VERSION,
        "generatedAt": timestamp.isoformat(),
        "page": {"title": document.title, "url": document.url},
        "totalElements": len(elements),
        "screenshot": screenshot.summary(),
        "elements": elements,
    }
    bundle["playwrightSkeleton"] = build_skeleton(bundle, dialect)
    logger.debug(f"Assembled bundle with {len(elements)} elements")
    return bundle


__all__ = ["assemble", "build_skeleton", "skeleton_target"]
