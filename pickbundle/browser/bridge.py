"""Drive a :class:`PickerSession` from a live Playwright page."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Set

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Frame, Page

from ..config import UI_ATTR, Settings, get_settings
from ..dom.document import LiveDocument, Rect
from ..export.exporter import TextSink
from ..picker.ledger import Badge, Notice
from ..picker.session import PickerSession
from .capture import PlaywrightCaptureService
from .scripts import (
    BINDING_NAME,
    INSTALL_SCRIPT,
    OVERLAY_SCRIPT,
    RUNTIME_SCRIPT,
    SET_OVERLAY_VISIBILITY_SCRIPT,
    SNAPSHOT_SCRIPT,
    SNAPSHOT_STYLE_PROPERTIES,
    TEARDOWN_SCRIPT,
)

logger = logging.getLogger(__name__)

STATEFUL_FIBERS = 5

_UNSET = object()


class InspectExportError(RuntimeError):
    """Elements were selected but building or copying the bundle failed."""


async def snapshot_page(page: Page) -> LiveDocument:
    """Serialise the page DOM, layout and live form properties into a document."""

    data = await page.evaluate(
        SNAPSHOT_SCRIPT,
        {
            "uiAttr": UI_ATTR,
            "styleProperties": list(SNAPSHOT_STYLE_PROPERTIES),
        },
    )
    document = LiveDocument.from_snapshot(data)
    logger.debug(f"Snapshotted {document.url}")
    return document


async def load_runtime(page: Page, document: LiveDocument, element) -> None:
    """Attach the framework fiber chain of one element, walked up to the root."""

    key = document.key_for(element)
    if key is None:
        return
    try:
        data = await page.evaluate(RUNTIME_SCRIPT, {"key": key, "statefulFibers": STATEFUL_FIBERS})
    except PlaywrightError as exc:
        logger.debug(f"Runtime lookup for node {key} failed: {exc}")
        return
    if not isinstance(data, Mapping) or not data.get("fibers"):
        return

    fiber = None
    for node in reversed(data["fibers"]):
        fiber = {**node, "return": fiber}
    document.set_state(element, runtime={str(data["marker"]): fiber})


def _rect_payload(rect: Optional[Rect]) -> Optional[Dict[str, float]]:
    return rect.to_dict() if rect is not None else None


def _badge_payload(badges: Sequence[Badge]) -> list[Dict[str, float]]:
    return [{"number": badge.number, "top": badge.top, "left": badge.left} for badge in badges]


class PlaywrightPickerBridge:
    """Injection host adapter: page events in, overlay updates out.

    Events are applied to the session one at a time. Export runs as its own
    task so hovering, clicking and undo keep working while it is in flight.
    """

    def __init__(
        self,
        page: Page,
        sink: TextSink,
        *,
        settings: Optional[Settings] = None,
    ) -> None:
        self.page = page
        self.sink = sink
        self.settings = settings or get_settings()
        self.session: Optional[PickerSession] = None
        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()
        self._exposed = False

    # -- lifecycle --------------------------------------------------------

    async def start(self) -> PickerSession:
        document = await snapshot_page(self.page)
        capture = PlaywrightCaptureService(
            self.page,
            before=lambda: self._set_overlay_visible(False),
            after=lambda: self._set_overlay_visible(True),
        )
        session = PickerSession(document, capture, self.sink, settings=self.settings, notify=self._notify)
        self.session = session

        if not self._exposed:
            await self.page.expose_binding(BINDING_NAME, self._on_binding)
            self._exposed = True
        await self.page.evaluate(INSTALL_SCRIPT, {"uiAttr": UI_ATTR, "binding": BINDING_NAME})

        self.page.on("framenavigated", self._on_navigated)
        self.page.on("close", self._on_close)
        session.add_teardown(self._teardown)
        session.start()
        logger.info(f"Picker active on {document.url}")
        return session

    async def run(self) -> Optional[Dict[str, Any]]:
        """Start a session and wait for it to end; returns the exported bundle."""

        session = await self.start()
        await session.wait()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        return session.last_bundle

    def _teardown(self) -> None:
        self.page.remove_listener("framenavigated", self._on_navigated)
        self.page.remove_listener("close", self._on_close)
        if not self.page.is_closed():
            self._spawn(self._evaluate_quietly(TEARDOWN_SCRIPT, {"uiAttr": UI_ATTR}))

    def _on_navigated(self, frame: Frame) -> None:
        if frame == self.page.main_frame and self.session is not None:
            logger.info("Page navigated; ending picker session")
            self.session.cancel()

    def _on_close(self, page: Page) -> None:
        if self.session is not None:
            self.session.cancel()

    # -- events -----------------------------------------------------------

    async def _on_binding(self, source: Any, payload: Mapping[str, Any]) -> None:
        session = self.session
        if session is None or not session.active or not isinstance(payload, Mapping):
            return
        try:
            async with self._lock:
                await self._dispatch(session, payload)
        except PlaywrightError as exc:
            logger.debug(f"Dropping {payload.get('type')} event: {exc}")

    async def _dispatch(self, session: PickerSession, payload: Mapping[str, Any]) -> None:
        kind = payload.get("type")
        if payload.get("dirty"):
            await self.refresh()

        if kind == "move":
            element = await self._resolve(payload.get("key"))
            await self._render(highlight=session.on_pointer_move(element))
        elif kind == "click":
            element = await self._resolve(payload.get("key"))
            if element is not None and element not in session.ledger:
                await load_runtime(self.page, session.document, element)
            if session.on_click(element) is not None:
                await self._render(badges=session.ledger.badges())
        elif kind == "key":
            key = str(payload.get("key") or "")
            if key == "Enter":
                if not payload.get("dirty"):
                    await self.refresh()
                self._spawn(session.on_key(key))
                return
            action = await session.on_key(key, ctrl=bool(payload.get("ctrl")), meta=bool(payload.get("meta")))
            if action == "undo":
                await self._render(badges=session.ledger.badges())
        elif kind == "viewport":
            badges = session.on_viewport_change()
            await self._render(highlight=session.highlight, badges=badges)

    async def _resolve(self, key: Any):
        session = self.session
        if session is None or key is None:
            return None
        element = session.document.element_for_key(key)
        if element is None:
            await self.refresh()
            element = session.document.element_for_key(key)
        return element

    async def refresh(self) -> None:
        """Re-snapshot the page and re-bind the selections to the new tree."""

        if self.session is None or not self.session.active:
            return
        document = await snapshot_page(self.page)
        badges = self.session.replace_document(document)
        await self._render(badges=badges)

    # -- overlay ----------------------------------------------------------

    def _notify(self, notice: Notice) -> None:
        logger.info(notice.message)
        if not self.page.is_closed():
            self._spawn(self._render(toast=notice))

    async def _render(
        self,
        *,
        highlight: Any = _UNSET,
        badges: Optional[Sequence[Badge]] = None,
        toast: Optional[Notice] = None,
    ) -> None:
        args: Dict[str, Any] = {"uiAttr": UI_ATTR}
        if highlight is not _UNSET:
            args["highlight"] = _rect_payload(highlight)
        if badges is not None:
            args["badges"] = _badge_payload(badges)
        if toast is not None:
            args["toast"] = {"message": toast.message, "durationMs": toast.duration_ms}
        await self._evaluate_quietly(OVERLAY_SCRIPT, args)

    async def _set_overlay_visible(self, visible: bool) -> None:
        await self.page.evaluate(SET_OVERLAY_VISIBILITY_SCRIPT, {"uiAttr": UI_ATTR, "visible": visible})

    async def _evaluate_quietly(self, script: str, args: Mapping[str, Any]) -> None:
        try:
            await self.page.evaluate(script, dict(args))
        except PlaywrightError as exc:
            logger.debug(f"Overlay update skipped: {exc}")

    def _spawn(self, coroutine) -> None:
        task = asyncio.ensure_future(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


async def inspect_page(
    page: Page,
    selectors: Sequence[str],
    sink: TextSink,
    *,
    settings: Optional[Settings] = None,
) -> Optional[Dict[str, Any]]:
    """Select the first match of each CSS selector and export without user input.

    Returns ``None`` when no selector matched; raises :class:`InspectExportError`
    when elements were selected but the bundle could not be exported.
    """

    settings = settings or get_settings()
    document = await snapshot_page(page)
    session = PickerSession(document, PlaywrightCaptureService(page), sink, settings=settings)

    for selector in selectors:
        try:
            matches = document.query_selector_all(selector)
        except ValueError as exc:
            logger.warning(f"Skipping selector {selector!r}: {exc}")
            continue
        if not matches:
            logger.warning(f"No element matches {selector!r}")
            continue
        await load_runtime(page, document, matches[0])
        session.on_click(matches[0])

    if not len(session.ledger):
        return None
    if await session.export() is None:
        raise InspectExportError(f"Could not export the bundle for {len(session.ledger)} selected element(s)")
    return session.last_bundle


__all__ = ["InspectExportError", "PlaywrightPickerBridge", "inspect_page", "load_runtime", "snapshot_page"]
