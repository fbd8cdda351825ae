"""Shared fixtures: in-memory documents, rasters and stub collaborators."""
from __future__ import annotations

import asyncio
from io import BytesIO
from typing import Dict, List, Optional, Tuple

import pytest
from PIL import Image

from pickbundle.browser.capture import CaptureResponse
from pickbundle.config import Settings
from pickbundle.dom.document import LiveDocument, Viewport
from pickbundle.picker import SelectionLedger


class CaptureStub:
    """Capture service returning a canned response, optionally after a gate opens."""

    def __init__(self, response: Optional[CaptureResponse] = None, gate: Optional[asyncio.Event] = None) -> None:
        self.response = response
        self.gate = gate
        self.calls = 0

    async def capture_visible(self) -> Optional[CaptureResponse]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return self.response


class ClipboardStub:
    """Clipboard sink that refuses the first ``fail_times`` writes."""

    def __init__(self, fail_times: int = 0) -> None:
        self.fail_times = fail_times
        self.attempts = 0
        self.writes: List[str] = []

    async def write_text(self, text: str) -> None:
        self.attempts += 1
        if self.attempts <= self.fail_times:
            raise RuntimeError("clipboard refused the payload")
        self.writes.append(text)


class NoticeRecorder:
    def __init__(self) -> None:
        self.notices = []

    def __call__(self, notice) -> None:
        self.notices.append(notice)

    @property
    def messages(self) -> List[str]:
        return [notice.message for notice in self.notices]


def png_bytes(width: int, height: int, color: str = "white") -> bytes:
    image = Image.new("RGB", (width, height), color=color)
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        max_selections=25,
        max_inline_crops=6,
        preview_max_side=360,
        preview_quality=82,
        html_snippet_limit=500,
        slim_html_limit=240,
        skeleton_dialect="python",
        browser="chromium",
        headless=True,
        clipboard="page",
        log_level="INFO",
    )


@pytest.fixture
def make_document():
    """Factory: parse markup and assign rectangles by CSS selector."""

    def factory(
        markup: str,
        rects: Optional[Dict[str, Tuple[float, float, float, float]]] = None,
        *,
        url: str = "https://example.test/",
        viewport: Tuple[int, int] = (1280, 720),
        dpr: float = 1.0,
    ) -> LiveDocument:
        document = LiveDocument.from_html(
            markup,
            url=url,
            viewport=Viewport(width=viewport[0], height=viewport[1]),
            device_scale_factor=dpr,
        )
        for selector, (top, left, width, height) in (rects or {}).items():
            for element in document.query_selector_all(selector):
                document.set_state(element, rect={"top": top, "left": left, "width": width, "height": height})
        return document

    return factory


@pytest.fixture
def notices() -> NoticeRecorder:
    return NoticeRecorder()


@pytest.fixture
def capture_stub():
    return CaptureStub


@pytest.fixture
def clipboard_stub():
    return ClipboardStub


@pytest.fixture
def png():
    return png_bytes


FORM_MARKUP = (
    "<html><head><title>Checkout</title></head><body>"
    '<form><input id="email" type="email" placeholder="Email">'
    '<button id="save" class="btn">Save</button></form>'
    "</body></html>"
)


@pytest.fixture
def form_page(make_document) -> LiveDocument:
    """Checkout form with an email field and a save button, both on screen."""

    return make_document(
        FORM_MARKUP,
        {"#email": (20.0, 20.0, 200.0, 30.0), "#save": (60.0, 20.0, 80.0, 30.0)},
        url="https://example.test/checkout",
    )


@pytest.fixture
def select():
    """Factory: select elements by id through a fresh ledger, return frozen selections."""

    def factory(document: LiveDocument, *element_ids: str, dialect=None):
        ledger = SelectionLedger(document, notify=lambda notice: None, dialect=dialect)
        for element_id in element_ids:
            ledger.add(document.get_element_by_id(element_id))
        return ledger.selections

    return factory
