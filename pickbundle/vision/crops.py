"""Per-selection crop records computed from a single viewport capture."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

from PIL import Image

from ..config import MAX_INLINE_CROPS, PREVIEW_MAX_SIDE, PREVIEW_QUALITY, Settings
from ..dom.document import LiveDocument, Rect, Viewport
from ..dom.text import round_to
from .screenshots import BoundingBox, crop_preview, decode_raster

if TYPE_CHECKING:
    from ..picker.ledger import Selection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CropRecord:
    """Where one selected element sits in the capture at export time."""

    index: int
    visible_in_viewport: bool
    viewport_rect: Optional[Rect]
    capture_rect: Optional[BoundingBox] = None
    image_data_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "index": self.index,
            "visibleInViewport": self.visible_in_viewport,
            "viewportRect": self.viewport_rect.to_dict() if self.viewport_rect is not None else None,
        }
        if self.capture_rect is not None:
            payload["captureRectPixels"] = self.capture_rect.to_dict()
        if self.image_data_url:
            payload["imageDataUrl"] = self.image_data_url
        return payload


@dataclass(frozen=True)
class ScreenshotData:
    status: str
    reason: Optional[str] = None
    dpr: Optional[float] = None
    viewport: Optional[Viewport] = None
    capture_image_size: Optional[Tuple[int, int]] = None
    inline_images: bool = False
    note: Optional[str] = None
    crops: List[CropRecord] = field(default_factory=list)

    @classmethod
    def unavailable(cls, reason: str) -> "ScreenshotData":
        return cls(status="unavailable", reason=reason)

    def crop_for(self, index: int) -> Optional[CropRecord]:
        return next((crop for crop in self.crops if crop.index == index), None)

    def summary(self) -> Dict[str, Any]:
        """The bundle's ``screenshot`` block (crops travel with their elements)."""

        size = self.capture_image_size
        return {
            "status": self.status,
            "reason": self.reason,
            "dpr": self.dpr,
            "viewport": self.viewport.to_dict() if self.viewport is not None else None,
            "captureImageSize": {"width": size[0], "height": size[1]} if size else None,
            "inlineImages": self.inline_images,
            "note": self.note,
        }


def element_rect(document: LiveDocument, selection: Selection) -> Rect:
    """Current rectangle of an attached element, else the one taken at selection time."""

    if document.is_connected(selection.element):
        return document.bounding_rect(selection.element)
    return selection.descriptor.viewport_rect


def is_visible_in_viewport(rect: Optional[Rect], viewport: Viewport) -> bool:
    if rect is None or rect.width <= 0 or rect.height <= 0:
        return False
    return rect.bottom > 0 and rect.right > 0 and rect.top < viewport.height and rect.left < viewport.width


def inline_crop_note(count: int, limit: int) -> str:
    return f"Inline crop images omitted because {count} elements were selected (limit: {limit})."


def build_crops(
    selections: Sequence[Selection],
    document: LiveDocument,
    capture: Any,
    settings: Optional[Settings] = None,
) -> ScreenshotData:
    """Compute crop records for ``selections`` from one capture response.

    ``capture`` is a :class:`pickbundle.browser.capture.CaptureResponse` (or
    anything with ``ok`` and ``raster``). Reads the document and the
    selections only.
    """

    max_inline = settings.max_inline_crops if settings else MAX_INLINE_CROPS
    max_side = settings.preview_max_side if settings else PREVIEW_MAX_SIDE
    quality = settings.preview_quality if settings else PREVIEW_QUALITY

    if capture is None or not capture.ok or not capture.raster:
        logger.warning(f"Viewport capture unavailable: {getattr(capture, 'error', None) or 'no raster'}")
        return ScreenshotData.unavailable("capture-failed")

    try:
        image = decode_raster(capture.raster)
    except ValueError as exc:
        logger.warning(f"Could not decode viewport capture: {exc}")
        return ScreenshotData.unavailable("capture-decode-failed")

    with image:
        return _crop_all(selections, document, image, max_inline, max_side, quality)


def _crop_all(
    selections: Sequence[Selection],
    document: LiveDocument,
    image: Image.Image,
    max_inline: int,
    max_side: int,
    quality: int,
) -> ScreenshotData:
    dpr = document.device_scale_factor or 1.0
    viewport = document.viewport
    include_images = len(selections) <= max_inline

    crops: List[CropRecord] = []
    for selection in selections:
        rect = element_rect(document, selection)
        visible = is_visible_in_viewport(rect, viewport)
        box = BoundingBox.from_viewport_rect(rect, dpr, image.width, image.height) if visible else None

        image_data_url = None
        if box is not None and include_images:
            try:
                image_data_url = crop_preview(image, box, max_side=max_side, quality=quality)
            except (OSError, ValueError) as exc:
                logger.debug(f"Skipping preview for element {selection.index}: {exc}")

        crops.append(
            CropRecord(
                index=selection.index,
                visible_in_viewport=visible,
                viewport_rect=rect,
                capture_rect=box,
                image_data_url=image_data_url,
            )
        )

    logger.debug(f"Computed {len(crops)} crop records at dpr {dpr}")
    return ScreenshotData(
        status="ok",
        dpr=round_to(dpr, 3),
        viewport=viewport,
        capture_image_size=(image.width, image.height),
        inline_images=include_images,
        note=None if include_images else inline_crop_note(len(selections), max_inline),
        crops=crops,
    )


__all__ = [
    "CropRecord",
    "ScreenshotData",
    "build_crops",
    "element_rect",
    "inline_crop_note",
    "is_visible_in_viewport",
]
