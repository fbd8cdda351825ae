"""Browser adapters exercised against an in-memory page double."""
from __future__ import annotations

import asyncio
import copy

import pyperclip
import pytest
from playwright.async_api import Error as PlaywrightError

from pickbundle.browser.automation import BrowserConfig
from pickbundle.browser.bridge import InspectExportError, PlaywrightPickerBridge, inspect_page
from pickbundle.browser.capture import PlaywrightCaptureService
from pickbundle.browser.clipboard import (
    ClipboardWriteError,
    FileClipboardSink,
    SystemClipboardSink,
    build_sink,
)
from pickbundle.browser.scripts import (
    BINDING_NAME,
    INSTALL_SCRIPT,
    RUNTIME_SCRIPT,
    SET_OVERLAY_VISIBILITY_SCRIPT,
    SNAPSHOT_SCRIPT,
    TEARDOWN_SCRIPT,
)


def _snapshot() -> dict:
    button = {
        "key": "3",
        "tag": "button",
        "attrs": [["id", "buy"], ["data-testid", "buy-now"]],
        "rect": {"top": 10, "left": 10, "width": 50, "height": 20},
        "children": ["Buy now"],
    }
    heading = {
        "key": "4",
        "tag": "h1",
        "attrs": [],
        "rect": {"top": 40, "left": 10, "width": 300, "height": 40},
        "children": ["Store"],
    }
    return {
        "url": "https://shop.example.test/",
        "title": "Store",
        "viewport": {"width": 800, "height": 600},
        "devicePixelRatio": 1,
        "root": {
            "key": "1",
            "tag": "html",
            "attrs": [],
            "children": [{"key": "2", "tag": "body", "attrs": [], "children": [button, heading]}],
        },
    }


class FakePage:
    """Just enough of ``playwright.async_api.Page`` for the picker adapters."""

    def __init__(self, raster: bytes = b"", screenshot_error: str = "") -> None:
        self.raster = raster
        self.screenshot_error = screenshot_error
        self.snapshot = _snapshot()
        self.runtime = None
        self.scripts = []
        self.screenshot_kwargs = None
        self.binding = None
        self.listeners = {}
        self.closed = False
        self.main_frame = object()

    async def evaluate(self, script, arg=None):
        self.scripts.append((script, arg))
        if script == SNAPSHOT_SCRIPT:
            return copy.deepcopy(self.snapshot)
        if script == RUNTIME_SCRIPT:
            return copy.deepcopy(self.runtime)
        return None

    async def screenshot(self, **kwargs):
        self.screenshot_kwargs = kwargs
        if self.screenshot_error:
            raise PlaywrightError(self.screenshot_error)
        return self.raster

    async def expose_binding(self, name, callback):
        self.binding = (name, callback)

    def on(self, event, handler):
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event, handler):
        self.listeners[event].remove(handler)

    def is_closed(self) -> bool:
        return self.closed

    def ran(self, script) -> list:
        return [arg for source, arg in self.scripts if source == script]


async def _started(bridge: PlaywrightPickerBridge, page: FakePage) -> asyncio.Task:
    runner = asyncio.create_task(bridge.run())
    while not page.listeners.get("close"):
        await asyncio.sleep(0)
    return runner


@pytest.mark.asyncio
async def test_bridge_round_trip(png, settings, clipboard_stub) -> None:
    page = FakePage(raster=png(800, 600))
    sink = clipboard_stub()
    bridge = PlaywrightPickerBridge(page, sink, settings=settings)

    runner = await _started(bridge, page)
    name, callback = page.binding
    assert name == BINDING_NAME
    assert page.ran(INSTALL_SCRIPT) == [{"uiAttr": "data-pickbundle-ui", "binding": BINDING_NAME}]

    await callback(None, {"type": "move", "key": "4"})
    await callback(None, {"type": "click", "key": "3"})
    await callback(None, {"type": "click", "key": "4"})
    await callback(None, {"type": "key", "key": "Backspace"})
    await callback(None, {"type": "key", "key": "Enter"})
    bundle = await runner

    assert bundle["totalElements"] == 1
    element = bundle["elements"][0]
    assert element["primaryLocator"]["selector"] == '[data-testid="buy-now"]'
    assert element["screenshotCrop"]["captureRectPixels"] == {"x": 10, "y": 10, "width": 50, "height": 20}
    assert len(sink.writes) == 1

    assert page.screenshot_kwargs == {"type": "png", "full_page": False, "scale": "device"}
    visibility = [arg["visible"] for arg in page.ran(SET_OVERLAY_VISIBILITY_SCRIPT)]
    assert visibility == [False, True]
    assert page.ran(TEARDOWN_SCRIPT)
    assert page.listeners == {"framenavigated": [], "close": []}


@pytest.mark.asyncio
async def test_navigation_cancels_the_session(settings, clipboard_stub) -> None:
    page = FakePage()
    sink = clipboard_stub()
    bridge = PlaywrightPickerBridge(page, sink, settings=settings)

    runner = await _started(bridge, page)
    _, callback = page.binding
    await callback(None, {"type": "click", "key": "3"})
    page.listeners["framenavigated"][0](page.main_frame)

    assert await runner is None
    assert sink.writes == []
    assert bridge.session.active is False


@pytest.mark.asyncio
async def test_capture_failure_is_reported(settings) -> None:
    page = FakePage(screenshot_error="Target page, context or browser has been closed")
    restored = []

    async def after() -> None:
        restored.append(True)

    response = await PlaywrightCaptureService(page, after=after).capture_visible()

    assert response.ok is False
    assert "has been closed" in response.error
    assert restored == [True]


@pytest.mark.asyncio
async def test_inspect_page_exports_first_matches(png, settings, clipboard_stub) -> None:
    page = FakePage(raster=png(800, 600))
    sink = clipboard_stub()

    bundle = await inspect_page(page, ["h1", "button", "nav", "a["], sink, settings=settings)

    assert [element["tag"] for element in bundle["elements"]] == ["h1", "button"]
    assert bundle["screenshot"]["status"] == "ok"
    assert len(sink.writes) == 1


@pytest.mark.asyncio
async def test_inspect_page_tells_no_match_from_failed_export(png, settings, clipboard_stub) -> None:
    page = FakePage(raster=png(800, 600))

    assert await inspect_page(page, ["nav"], clipboard_stub(), settings=settings) is None

    refusing = clipboard_stub(fail_times=3)
    with pytest.raises(InspectExportError):
        await inspect_page(page, ["button"], refusing, settings=settings)
    assert refusing.attempts == 3


@pytest.mark.asyncio
async def test_file_sink_enforces_payload_limit(tmp_path) -> None:
    target = tmp_path / "out" / "bundle.md"
    target.parent.mkdir()
    sink = FileClipboardSink(target, max_bytes=8)

    await sink.write_text("tiny")
    assert target.read_text(encoding="utf-8") == "tiny"

    with pytest.raises(ClipboardWriteError):
        await sink.write_text("far too long for the limit")
    assert target.read_text(encoding="utf-8") == "tiny"


@pytest.mark.asyncio
async def test_system_sink_wraps_pyperclip(monkeypatch) -> None:
    copied = []
    monkeypatch.setattr(pyperclip, "copy", copied.append)

    await SystemClipboardSink().write_text("bundle")
    assert copied == ["bundle"]

    def refuse(text: str) -> None:
        raise pyperclip.PyperclipException("no clipboard mechanism")

    monkeypatch.setattr(pyperclip, "copy", refuse)
    with pytest.raises(ClipboardWriteError):
        await SystemClipboardSink().write_text("bundle")


def test_build_sink(tmp_path) -> None:
    assert isinstance(build_sink("file", path=tmp_path / "b.md"), FileClipboardSink)
    assert isinstance(build_sink("system", max_bytes=10), SystemClipboardSink)
    with pytest.raises(ValueError):
        build_sink("page")
    with pytest.raises(ValueError):
        build_sink("file")
    with pytest.raises(ValueError):
        build_sink("carrier-pigeon")


def test_browser_config_defaults(settings) -> None:
    chromium = BrowserConfig.from_settings(settings, device_scale_factor=2.0)
    assert chromium.headless is True
    assert chromium.device_scale_factor == 2.0
    assert chromium.permissions == ["clipboard-read", "clipboard-write"]
    assert chromium.viewport == {"width": 1280, "height": 800}

    firefox = BrowserConfig(browser_type="firefox")
    assert firefox.permissions == []


@pytest.mark.asyncio
async def test_enter_remeasures_before_export(png, settings, clipboard_stub) -> None:
    page = FakePage(raster=png(800, 600))
    sink = clipboard_stub()
    bridge = PlaywrightPickerBridge(page, sink, settings=settings)

    runner = await _started(bridge, page)
    _, callback = page.binding
    await callback(None, {"type": "click", "key": "3"})
    page.snapshot["root"]["children"][0]["children"][0]["rect"]["top"] = 100
    await callback(None, {"type": "key", "key": "Enter"})
    bundle = await runner

    element = bundle["elements"][0]
    assert element["viewportRect"]["top"] == 10
    assert element["screenshotCrop"]["captureRectPixels"] == {"x": 10, "y": 100, "width": 50, "height": 20}


@pytest.mark.asyncio
async def test_clicked_element_reads_the_whole_component_chain(png, settings, clipboard_stub) -> None:
    page = FakePage(raster=png(800, 600))
    fibers = [
        {"type": "button"},
        {"type": {"$function": "BuyButton"}, "memoizedProps": {"label": "Buy"}, "memoizedState": {}},
    ]
    fibers += [{"type": "div"} for _ in range(60)]
    fibers.append({"type": {"$function": "App"}})
    page.runtime = {"marker": "__reactFiber$abc", "fibers": fibers}
    sink = clipboard_stub()
    bridge = PlaywrightPickerBridge(page, sink, settings=settings)

    runner = await _started(bridge, page)
    _, callback = page.binding
    await callback(None, {"type": "click", "key": "3"})
    await callback(None, {"type": "key", "key": "Enter"})
    bundle = await runner

    assert page.ran(RUNTIME_SCRIPT) == [{"key": "3", "statefulFibers": 5}]
    element = bundle["elements"][0]
    assert element["framework"] == "react"
    assert element["componentChain"] == ["BuyButton", "App"]
    assert element["componentState"] == {"props": {"label": "Buy"}}
