"""Viewport capture service: one raster of the currently visible page."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

logger = logging.getLogger(__name__)

Raster = Union[bytes, str]
"""PNG/JPEG bytes, or the same encoded as a ``data:`` URL."""


@dataclass(frozen=True)
class CaptureResponse:
    """Result of a capture request; ``raster`` is set only when ``ok``."""

    ok: bool
    raster: Optional[Raster] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str) -> "CaptureResponse":
        return cls(ok=False, error=error)


class CaptureService(Protocol):
    async def capture_visible(self) -> CaptureResponse:
        ...


class PlaywrightCaptureService:
    """Capture the visible viewport of a Playwright page.

    ``before`` and ``after`` run around the screenshot (the picker uses them to
    hide its own overlay). A failing ``after`` hook is logged, never raised.
    """

    def __init__(
        self,
        page: Page,
        *,
        before: Optional[Callable[[], Awaitable[None]]] = None,
        after: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self.page = page
        self._before = before
        self._after = after

    async def capture_visible(self) -> CaptureResponse:
        try:
            if self._before is not None:
                await self._before()
            raster = await self.page.screenshot(type="png", full_page=False, scale="device")
        except PlaywrightError as exc:
            logger.warning(f"Viewport capture failed: {exc}")
            return CaptureResponse.failed(str(exc))
        finally:
            if self._after is not None:
                try:
                    await self._after()
                except PlaywrightError as exc:
                    logger.debug(f"Restoring page after capture failed: {exc}")

        logger.debug(f"Captured viewport ({len(raster)} bytes)")
        return CaptureResponse(ok=True, raster=raster)


__all__ = ["CaptureResponse", "CaptureService", "PlaywrightCaptureService", "Raster"]
