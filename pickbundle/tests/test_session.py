"""Tests for the interactive picker session state machine."""
from __future__ import annotations

import asyncio

import pytest

from pickbundle.browser.capture import CaptureResponse
from pickbundle.dom import LiveDocument
from pickbundle.picker import PickerSession
from pickbundle.picker.session import ACTIVATION_NOTICE, is_undo_key

PAGE = (
    "<html><head><title>Todo</title></head><body>"
    '<button id="add">Add</button><button id="clear">Clear</button><span id="count">3 items</span>'
    '<div id="toast" data-pickbundle-ui="true">Bundle mode active</div>'
    "</body></html>"
)
RECTS = {
    "#add": (10.0, 10.0, 60.0, 24.0),
    "#clear": (10.0, 80.0, 60.0, 24.0),
    "#count": (50.0, 10.0, 100.0, 20.0),
    "#toast": (0.0, 0.0, 1280.0, 720.0),
}


@pytest.fixture
def page(make_document) -> LiveDocument:
    return make_document(PAGE, RECTS, url="https://example.test/todo")


def _session(page, settings, notices, capture, sink) -> PickerSession:
    return PickerSession(
        page,
        capture,
        sink,
        settings=settings,
        notify=notices,
    )


def test_start_announces_controls(page, settings, notices, capture_stub, clipboard_stub) -> None:
    session = _session(page, settings, notices, capture_stub(), clipboard_stub())
    session.start()

    assert notices.notices == [ACTIVATION_NOTICE]
    assert session.active is True
    assert session.exporting is False


def test_hover_tracks_elements_but_not_picker_ui(page, settings, notices, capture_stub, clipboard_stub) -> None:
    session = _session(page, settings, notices, capture_stub(), clipboard_stub())
    add = page.get_element_by_id("add")

    highlight = session.on_pointer_move(add)
    assert session.hovered is add
    assert highlight == page.bounding_rect(add)

    assert session.on_pointer_move(page.get_element_by_id("toast")) == highlight
    assert session.hovered is add

    # the toast covers the viewport but is skipped by hit testing
    session.on_pointer_at(85.0, 15.0)
    assert session.hovered is page.get_element_by_id("clear")


def test_click_selects_hovered_element(page, settings, notices, capture_stub, clipboard_stub) -> None:
    session = _session(page, settings, notices, capture_stub(), clipboard_stub())

    assert session.on_click() is None
    session.on_pointer_move(page.get_element_by_id("count"))
    selection = session.on_click()

    assert selection.descriptor.element_id == "count"
    assert len(session.ledger) == 1
    assert session.on_click(page.get_element_by_id("toast")) is None


def test_viewport_change_refreshes_highlight_and_badges(page, settings, notices, capture_stub, clipboard_stub) -> None:
    session = _session(page, settings, notices, capture_stub(), clipboard_stub())
    add = page.get_element_by_id("add")
    session.on_pointer_move(add)
    session.on_click()

    page.scroll_by(0, 5)
    badges = session.on_viewport_change()

    assert session.highlight.top == 5.0
    assert badges[0].number == 1
    assert badges[0].top == 4

    add.getparent().remove(add)
    assert session.on_viewport_change() == []
    assert session.hovered is None
    assert session.highlight is None


@pytest.mark.asyncio
async def test_enter_exports_and_ends_session(page, settings, notices, capture_stub, clipboard_stub, png) -> None:
    sink = clipboard_stub()
    capture = capture_stub(CaptureResponse(ok=True, raster=png(1280, 720)))
    session = _session(page, settings, notices, capture, sink)
    torn_down = []
    session.add_teardown(lambda: torn_down.append(True))

    session.on_click(page.get_element_by_id("add"))
    session.on_click(page.get_element_by_id("count"))
    action = await session.on_key("Enter")

    assert action == "export"
    assert capture.calls == 1
    assert len(sink.writes) == 1
    assert session.last_outcome.tier == "full"
    assert session.last_bundle["totalElements"] == 2
    assert session.last_bundle["screenshot"]["status"] == "ok"
    assert notices.messages[-2:] == [
        "Building bundle for 2 elements...",
        "Copied full debug bundle (2 elements).",
    ]
    assert session.active is False
    assert session.ended.is_set()
    assert len(session.ledger) == 0
    assert torn_down == [True]


@pytest.mark.asyncio
async def test_export_with_nothing_selected(page, settings, notices, capture_stub, clipboard_stub) -> None:
    capture = capture_stub()
    session = _session(page, settings, notices, capture, clipboard_stub())

    assert await session.export() is None
    assert notices.messages == ["No elements selected. Click elements first."]
    assert capture.calls == 0
    assert session.active is True


@pytest.mark.asyncio
async def test_export_is_not_reentrant(page, settings, notices, capture_stub, clipboard_stub) -> None:
    gate = asyncio.Event()
    capture = capture_stub(CaptureResponse(ok=False, error="blocked"), gate)
    sink = clipboard_stub()
    session = _session(page, settings, notices, capture, sink)
    session.on_click(page.get_element_by_id("add"))

    task = asyncio.create_task(session.export())
    await asyncio.sleep(0)

    assert session.exporting is True
    assert await session.export() is None
    assert capture.calls == 1

    # selection keeps working while the capture is pending
    session.on_click(page.get_element_by_id("clear"))
    assert len(session.ledger) == 2

    gate.set()
    outcome = await task

    assert outcome.tier == "full"
    assert session.last_bundle["totalElements"] == 1
    assert session.last_bundle["screenshot"]["status"] == "unavailable"
    assert session.last_bundle["elements"][0]["screenshotCrop"] is None


@pytest.mark.asyncio
async def test_cancel_during_capture_discards_export(page, settings, notices, capture_stub, clipboard_stub) -> None:
    gate = asyncio.Event()
    sink = clipboard_stub()
    session = _session(page, settings, notices, capture_stub(None, gate), sink)
    session.on_click(page.get_element_by_id("add"))

    task = asyncio.create_task(session.export())
    await asyncio.sleep(0)
    assert await session.on_key("Escape") == "cancel"
    gate.set()

    assert await task is None
    assert sink.attempts == 0
    assert session.last_bundle is None
    assert session.active is False
    assert session.exporting is False


@pytest.mark.asyncio
async def test_failed_copy_keeps_session_for_retry(page, settings, notices, capture_stub, clipboard_stub) -> None:
    sink = clipboard_stub(fail_times=3)
    session = _session(page, settings, notices, capture_stub(), sink)
    session.on_click(page.get_element_by_id("add"))

    assert await session.export() is None
    assert notices.messages[-1] == "Failed to copy bundle. Check the log for details."
    assert notices.notices[-1].duration_ms == 2600
    assert session.active is True
    assert session.exporting is False
    assert len(session.ledger) == 1

    outcome = await session.export()
    assert outcome.tier == "full"
    assert notices.messages[-1] == "Copied full debug bundle (1 element)."
    assert session.active is False


@pytest.mark.asyncio
async def test_build_failure_keeps_session_for_retry(
    page, settings, notices, capture_stub, clipboard_stub, monkeypatch
) -> None:
    from pickbundle.picker import session as session_module

    real_assemble = session_module.assemble

    def broken_assemble(*args, **kwargs):
        raise TypeError("bundle is not serializable")

    monkeypatch.setattr(session_module, "assemble", broken_assemble)
    sink = clipboard_stub()
    session = _session(page, settings, notices, capture_stub(), sink)
    session.on_click(page.get_element_by_id("add"))

    assert await session.export() is None
    assert notices.messages[-1] == "Failed to build bundle. Check the log for details."
    assert session.active is True
    assert session.exporting is False
    assert sink.writes == []

    monkeypatch.setattr(session_module, "assemble", real_assemble)
    outcome = await session.export()
    assert outcome.tier == "full"
    assert session.active is False


@pytest.mark.asyncio
async def test_lighter_tiers_are_announced(page, settings, notices, capture_stub, clipboard_stub) -> None:
    session = _session(page, settings, notices, capture_stub(), clipboard_stub(fail_times=1))
    session.on_click(page.get_element_by_id("add"))
    await session.export()
    assert notices.messages[-1] == "Copied bundle without inline crop images."

    session = _session(page, settings, notices, capture_stub(), clipboard_stub(fail_times=2))
    session.on_click(page.get_element_by_id("add"))
    await session.export()
    assert notices.messages[-1] == "Copied summary bundle (payload was too large)."


@pytest.mark.asyncio
async def test_failing_capture_service_still_exports(page, settings, notices, clipboard_stub) -> None:
    class _BrokenCapture:
        async def capture_visible(self):
            raise RuntimeError("renderer crashed")

    session = _session(page, settings, notices, _BrokenCapture(), clipboard_stub())
    session.on_click(page.get_element_by_id("add"))

    outcome = await session.export()

    assert outcome.tier == "full"
    assert session.last_bundle["screenshot"]["reason"] == "capture-failed"


@pytest.mark.asyncio
async def test_undo_keys(page, settings, notices, capture_stub, clipboard_stub) -> None:
    session = _session(page, settings, notices, capture_stub(), clipboard_stub())
    for element_id in ("add", "clear", "count"):
        session.on_click(page.get_element_by_id(element_id))

    assert await session.on_key("Backspace") == "undo"
    assert await session.on_key("z", ctrl=True) == "undo"
    assert await session.on_key("Z", meta=True) == "undo"
    assert len(session.ledger) == 0
    assert await session.on_key("Delete") == "undo"
    assert notices.messages[-1] == "No selected elements to remove."
    assert await session.on_key("z") is None
    assert await session.on_key("Tab") is None

    assert is_undo_key("Delete")
    assert not is_undo_key("y", ctrl=True)


@pytest.mark.asyncio
async def test_inactive_session_ignores_input(page, settings, notices, capture_stub, clipboard_stub) -> None:
    session = _session(page, settings, notices, capture_stub(), clipboard_stub())
    session.cancel()

    assert await session.on_key("Enter") is None
    assert session.on_click(page.get_element_by_id("add")) is None
    assert session.on_pointer_move(page.get_element_by_id("add")) is None
    assert await session.export() is None


def test_cancel_runs_teardown_once(page, settings, notices, capture_stub, clipboard_stub) -> None:
    session = _session(page, settings, notices, capture_stub(), clipboard_stub())
    calls = []

    def broken() -> None:
        raise RuntimeError("overlay already gone")

    session.add_teardown(broken)
    session.add_teardown(lambda: calls.append("removed listeners"))
    session.on_click(page.get_element_by_id("add"))

    session.cancel()
    session.cancel()

    assert calls == ["removed listeners"]
    assert len(session.ledger) == 0
    assert session.ended.is_set()


def test_replace_document_rebinds_hover_and_selections(settings, notices, capture_stub, clipboard_stub) -> None:
    def snapshot(top: float) -> dict:
        button = {
            "key": "7",
            "tag": "button",
            "attrs": [["id", "go"]],
            "rect": {"top": top, "left": 20, "width": 40, "height": 20},
            "children": ["Go"],
        }
        body = {"key": "2", "tag": "body", "attrs": [], "children": [button]}
        return {
            "url": "https://example.test/",
            "viewport": {"width": 800, "height": 600},
            "root": {"key": "1", "tag": "html", "children": [body]},
        }

    first = LiveDocument.from_snapshot(snapshot(100))
    session = _session(first, settings, notices, capture_stub(), clipboard_stub())
    session.on_pointer_move(first.get_element_by_id("go"))
    session.on_click()

    second = LiveDocument.from_snapshot(snapshot(300))
    badges = session.replace_document(second)

    assert session.document is second
    assert session.hovered is second.get_element_by_id("go")
    assert session.highlight.top == 300.0
    assert session.ledger.selections[0].element is second.get_element_by_id("go")
    assert badges[0].top == 290.0
