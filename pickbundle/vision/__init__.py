"""Viewport capture decoding and per-element crops."""

from .crops import CropRecord, ScreenshotData, build_crops, is_visible_in_viewport
from .screenshots import BoundingBox, crop_preview, decode_raster

__all__ = [
    "BoundingBox",
    "CropRecord",
    "ScreenshotData",
    "build_crops",
    "crop_preview",
    "decode_raster",
    "is_visible_in_viewport",
]
