"""Playwright host for the picker: launch, capture, clipboard and page bridge."""

from .automation import BrowserAutomation, BrowserConfig, BrowserSession
from .bridge import InspectExportError, PlaywrightPickerBridge, inspect_page, load_runtime, snapshot_page
from .capture import CaptureResponse, CaptureService, PlaywrightCaptureService
from .clipboard import (
    ClipboardSink,
    ClipboardWriteError,
    FileClipboardSink,
    PageClipboardSink,
    SystemClipboardSink,
    build_sink,
)

__all__ = [
    "BrowserAutomation",
    "BrowserConfig",
    "BrowserSession",
    "CaptureResponse",
    "CaptureService",
    "ClipboardSink",
    "ClipboardWriteError",
    "FileClipboardSink",
    "InspectExportError",
    "PageClipboardSink",
    "PlaywrightCaptureService",
    "PlaywrightPickerBridge",
    "SystemClipboardSink",
    "build_sink",
    "inspect_page",
    "load_runtime",
    "snapshot_page",
]
