"""Bundle assembly, Markdown rendering and clipboard export."""

from .assembler import assemble, build_skeleton
from .exporter import ClipboardExportError, ExportOutcome, export_bundle, strip_inline_images
from .report import format_bundle

__all__ = [
    "ClipboardExportError",
    "ExportOutcome",
    "assemble",
    "build_skeleton",
    "export_bundle",
    "format_bundle",
    "strip_inline_images",
]
