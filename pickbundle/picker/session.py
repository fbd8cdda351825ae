"""Interactive picking session: input handling, export and teardown."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from ..config import Settings, get_settings
from ..dom.document import Element, LiveDocument, Rect
from ..dom.text import pluralize
from ..export.assembler import assemble
from ..export.exporter import ClipboardExportError, ExportOutcome, TextSink, export_bundle
from ..locators.snippets import get_dialect
from ..vision.crops import build_crops
from .ledger import Badge, Notice, Notifier, Selection, SelectionLedger, freeze, log_notice

logger = logging.getLogger(__name__)

ACTIVATION_NOTICE = Notice("Bundle mode active: click elements, Enter exports, Backspace undoes, ESC cancels.", 3200)
UNDO_KEYS = ("Backspace", "Delete")


def is_undo_key(key: str, *, ctrl: bool = False, meta: bool = False) -> bool:
    return key in UNDO_KEYS or ((ctrl or meta) and key.lower() == "z")


class PickerSession:
    """Owns the ledger and the hover state for one activation of the picker.

    Input handlers are synchronous except :meth:`on_key` and :meth:`export`,
    whose only suspension points are the capture call and the clipboard
    writes. :meth:`cancel` ends the session from any state.
    """

    def __init__(
        self,
        document: LiveDocument,
        capture: Any,
        sink: TextSink,
        *,
        settings: Optional[Settings] = None,
        notify: Optional[Notifier] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.dialect = get_dialect(self.settings.skeleton_dialect)
        self.capture = capture
        self.sink = sink
        self._notify = notify or log_notice
        self.ledger = SelectionLedger(
            document,
            capacity=self.settings.max_selections,
            notify=self._notify,
            dialect=self.dialect,
            html_limit=self.settings.html_snippet_limit,
        )

        self.active = True
        self.exporting = False
        self.hovered: Optional[Element] = None
        self.highlight: Optional[Rect] = None
        self.last_bundle: Optional[Dict[str, Any]] = None
        self.last_outcome: Optional[ExportOutcome] = None
        self.ended = asyncio.Event()

        self._generation = 0
        self._teardown: List[Callable[[], Any]] = []

    @property
    def document(self) -> LiveDocument:
        return self.ledger.document

    def start(self) -> None:
        self._notify(ACTIVATION_NOTICE)

    def add_teardown(self, callback: Callable[[], Any]) -> None:
        self._teardown.append(callback)

    # -- input ------------------------------------------------------------

    def on_pointer_move(self, element: Optional[Element]) -> Optional[Rect]:
        """Track the hovered element; returns the highlight rectangle."""

        if not self.active or element is None or self.document.is_picker_ui(element):
            return self.highlight
        if element is not self.hovered:
            self.hovered = element
            self.highlight = self.document.bounding_rect(element)
        return self.highlight

    def on_pointer_at(self, x: float, y: float) -> Optional[Rect]:
        return self.on_pointer_move(self.document.element_from_point(x, y))

    def on_click(self, element: Optional[Element] = None) -> Optional[Selection]:
        if not self.active:
            return None
        target = element if element is not None else self.hovered
        if target is None:
            return None
        return self.ledger.add(target)

    async def on_key(self, key: str, *, ctrl: bool = False, meta: bool = False) -> Optional[str]:
        """Dispatch a key press; returns the action taken, if any."""

        if not self.active:
            return None
        if key == "Escape":
            self.cancel()
            return "cancel"
        if key == "Enter":
            await self.export()
            return "export"
        if is_undo_key(key, ctrl=ctrl, meta=meta):
            self.ledger.undo_last()
            return "undo"
        return None

    def on_viewport_change(self) -> List[Badge]:
        if self.hovered is not None:
            if self.document.is_connected(self.hovered):
                self.highlight = self.document.bounding_rect(self.hovered)
            else:
                self.hovered = None
                self.highlight = None
        return self.ledger.badges()

    def replace_document(self, document: LiveDocument) -> List[Badge]:
        """Switch to a fresh snapshot of the page and re-bind the selections."""

        hovered_key = self.document.key_for(self.hovered) if self.hovered is not None else None
        self.ledger.rebind(document)
        self.hovered = document.element_for_key(hovered_key)
        self.highlight = document.bounding_rect(self.hovered) if self.hovered is not None else None
        return self.ledger.badges()

    # -- export -----------------------------------------------------------

    async def export(self) -> Optional[ExportOutcome]:
        """Build the bundle and copy it; a success ends the session.

        Returns ``None`` when the export was rejected, failed, or was
        overtaken by :meth:`cancel`.
        """

        if not self.active or self.exporting:
            return None
        if not len(self.ledger):
            self._notify(Notice("No elements selected. Click elements first."))
            return None

        self.exporting = True
        generation = self._generation
        selections = freeze(self.ledger.selections)
        document = self.document
        count = len(selections)
        noun = pluralize(count, "element", "elements")
        self._notify(Notice(f"Building bundle for {count} {noun}...", 2500))

        try:
            response = await self.capture.capture_visible()
        except Exception as exc:
            logger.warning(f"Capture service raised: {exc}")
            response = None
        if generation != self._generation:
            logger.info("Picker cancelled during capture; discarding export")
            return None

        try:
            screenshot = build_crops(selections, document, response, self.settings)
            bundle = assemble(selections, screenshot, document, dialect=self.dialect)
            outcome = await export_bundle(
                bundle,
                self.sink,
                dialect=self.dialect,
                html_limit=self.settings.slim_html_limit,
            )
        except ClipboardExportError as exc:
            if generation != self._generation:
                return None
            logger.error(f"Failed to copy debug bundle: {exc}")
            self._notify(Notice("Failed to copy bundle. Check the log for details.", 2600))
            return None
        except Exception as exc:
            if generation != self._generation:
                return None
            logger.exception(f"Failed to build debug bundle: {exc}")
            self._notify(Notice("Failed to build bundle. Check the log for details.", 2600))
            return None
        finally:
            self.exporting = False

        if generation != self._generation:
            logger.info("Picker cancelled during clipboard write; discarding export")
            return None

        if outcome.tier == "full":
            self._notify(Notice(f"Copied full debug bundle ({count} {noun}).", 2400))
        elif outcome.tier == "slim":
            self._notify(Notice("Copied bundle without inline crop images.", 2600))
        else:
            self._notify(Notice("Copied summary bundle (payload was too large).", 2600))

        logger.info(f"Exported {count} {noun} as {outcome.tier} bundle ({outcome.size} bytes)")
        self.last_bundle = bundle
        self.last_outcome = outcome
        self.cancel()
        return outcome

    # -- teardown ---------------------------------------------------------

    def cancel(self) -> None:
        """End the session; safe to call repeatedly and mid-export."""

        self._generation += 1
        was_active = self.active
        self.active = False
        self.exporting = False
        self.hovered = None
        self.highlight = None
        self.ledger.clear()

        callbacks, self._teardown = self._teardown, []
        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                logger.debug(f"Teardown callback failed: {exc}")

        if was_active:
            logger.debug("Picker session ended")
        self.ended.set()

    async def wait(self) -> None:
        await self.ended.wait()


__all__ = ["ACTIVATION_NOTICE", "PickerSession", "is_undo_key"]
