"""Element picker: ranked Playwright locators and debug bundles for live pages."""

__version__ = "0.1.0"

from .dom import LiveDocument, Rect, Viewport, serialize
from .export import ClipboardExportError, assemble, export_bundle, format_bundle
from .locators import LocatorCandidate, rank_locators, score_locator, synthesize
from .picker import ElementDescriptor, Notice, PickerSession, Selection, SelectionLedger, describe
from .vision import ScreenshotData, build_crops

__all__ = [
    "ClipboardExportError",
    "ElementDescriptor",
    "LiveDocument",
    "LocatorCandidate",
    "Notice",
    "PickerSession",
    "Rect",
    "ScreenshotData",
    "Selection",
    "SelectionLedger",
    "Viewport",
    "assemble",
    "build_crops",
    "describe",
    "export_bundle",
    "format_bundle",
    "rank_locators",
    "score_locator",
    "serialize",
    "synthesize",
]
