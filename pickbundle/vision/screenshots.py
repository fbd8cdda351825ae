"""Raster helpers for viewport captures, backed by Pillow."""
from __future__ import annotations

import base64
import math
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Union

from PIL import Image

from ..config import PREVIEW_MAX_SIDE, PREVIEW_QUALITY
from ..dom.document import Rect

DATA_URL_PREFIX = "data:"


@dataclass(frozen=True)
class BoundingBox:
    """Integer pixel region inside a captured raster."""

    left: int
    top: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    def to_dict(self) -> dict[str, int]:
        return {"x": self.left, "y": self.top, "width": self.width, "height": self.height}

    @classmethod
    def from_viewport_rect(
        cls,
        rect: Optional[Rect],
        dpr: float,
        image_width: int,
        image_height: int,
    ) -> Optional["BoundingBox"]:
        """Scale a CSS-pixel viewport rectangle into raster pixels.

        Each edge is rounded then clamped to the raster; an empty result
        yields ``None``.
        """

        if rect is None:
            return None

        left = _clamp(_round_half_up(rect.left * dpr), 0, image_width)
        top = _clamp(_round_half_up(rect.top * dpr), 0, image_height)
        right = _clamp(_round_half_up(rect.right * dpr), 0, image_width)
        bottom = _clamp(_round_half_up(rect.bottom * dpr), 0, image_height)

        width = right - left
        height = bottom - top
        if width <= 0 or height <= 0:
            return None
        return cls(left=left, top=top, width=width, height=height)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp(value: int, lower: int, upper: int) -> int:
    return min(max(value, lower), upper)


def decode_raster(raster: Union[bytes, str]) -> Image.Image:
    """Open a capture given as raw image bytes or a base64 data URL.

    Raises ``ValueError`` when the payload cannot be decoded.
    """

    if isinstance(raster, str):
        if not raster.startswith(DATA_URL_PREFIX) or "," not in raster:
            raise ValueError("Capture is not a data URL")
        header, encoded = raster.split(",", 1)
        if not header.endswith(";base64"):
            raise ValueError("Capture data URL is not base64 encoded")
        try:
            raster = base64.b64decode(encoded, validate=True)
        except ValueError as exc:
            raise ValueError(f"Capture data URL is corrupt: {exc}") from exc

    try:
        image = Image.open(BytesIO(raster))
        image.load()
    except (OSError, Image.DecompressionBombError) as exc:
        raise ValueError(f"Unable to decode captured viewport image: {exc}") from exc
    return image


def crop_preview(
    image: Image.Image,
    box: BoundingBox,
    *,
    max_side: int = PREVIEW_MAX_SIDE,
    quality: int = PREVIEW_QUALITY,
) -> str:
    """Crop ``box`` out of ``image`` and return it as a JPEG data URL.

    The crop is only ever scaled down, so its longest side is at most
    ``max_side`` pixels.
    """

    scale = min(1.0, max_side / max(box.width, box.height))
    size = (max(1, _round_half_up(box.width * scale)), max(1, _round_half_up(box.height * scale)))

    cropped = image.crop((box.left, box.top, box.right, box.bottom))
    if cropped.mode != "RGB":
        cropped = cropped.convert("RGB")
    if size != cropped.size:
        cropped = cropped.resize(size, Image.Resampling.LANCZOS)

    output = BytesIO()
    cropped.save(output, format="JPEG", quality=quality)
    encoded = base64.b64encode(output.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


__all__ = ["BoundingBox", "crop_preview", "decode_raster"]
