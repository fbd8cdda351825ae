"""Browser launch and context setup for picking sessions."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = {"width": 1280, "height": 800}
CLIPBOARD_PERMISSIONS = ["clipboard-read", "clipboard-write"]


@dataclass
class BrowserConfig:
    """Configuration for the browser the picker runs in."""

    headless: bool = False
    browser_type: str = "chromium"  # chromium, firefox, webkit
    viewport: Optional[Dict[str, int]] = None
    device_scale_factor: float = 1.0
    permissions: List[str] = field(default_factory=list)
    slow_mo: int = 0
    timeout: int = 30000  # Default timeout in milliseconds
    bypass_csp: bool = True  # Page CSP must not block the injected scripts

    def __post_init__(self):
        if self.viewport is None:
            self.viewport = DEFAULT_VIEWPORT.copy()
        # Only Chromium knows the clipboard permission names
        if not self.permissions and self.browser_type == "chromium":
            self.permissions = list(CLIPBOARD_PERMISSIONS)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "BrowserConfig":
        settings = settings or get_settings()
        options = {"headless": settings.headless, "browser_type": settings.browser}
        options.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**options)


@dataclass
class BrowserSession:
    """Represents an active browser session."""

    browser: Browser
    context: BrowserContext
    page: Page
    config: BrowserConfig

    async def close(self):
        """Close the browser session."""
        try:
            await self.context.close()
            await self.browser.close()
        except Exception as e:
            logger.error(f"Error closing browser session: {e}")


class BrowserAutomation:
    """Starts Playwright and hands out configured sessions."""

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()
        self._playwright = None
        self._sessions: List[BrowserSession] = []

    async def __aenter__(self):
        self._playwright = await async_playwright().start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close_all_sessions()
        if self._playwright:
            await self._playwright.stop()

    async def create_session(self, config: Optional[BrowserConfig] = None) -> BrowserSession:
        """Create a new browser session."""
        if not self._playwright:
            raise RuntimeError("BrowserAutomation not started. Use async context manager.")

        session_config = config or self.config

        if session_config.browser_type == "chromium":
            browser_launcher = self._playwright.chromium
        elif session_config.browser_type == "firefox":
            browser_launcher = self._playwright.firefox
        elif session_config.browser_type == "webkit":
            browser_launcher = self._playwright.webkit
        else:
            raise ValueError(f"Unsupported browser type: {session_config.browser_type}")

        browser = await browser_launcher.launch(headless=session_config.headless, slow_mo=session_config.slow_mo)

        context_options = {
            "viewport": session_config.viewport,
            "device_scale_factor": session_config.device_scale_factor,
            "bypass_csp": session_config.bypass_csp,
        }
        if session_config.permissions:
            context_options["permissions"] = session_config.permissions

        context = await browser.new_context(**context_options)
        context.set_default_timeout(session_config.timeout)
        page = await context.new_page()

        session = BrowserSession(browser=browser, context=context, page=page, config=session_config)
        self._sessions.append(session)
        logger.info(
            f"Created new browser session with {session_config.browser_type} "
            f"(headless={session_config.headless}, viewport={session_config.viewport})"
        )
        return session

    async def close_session(self, session: BrowserSession):
        """Close a specific browser session."""
        await session.close()
        if session in self._sessions:
            self._sessions.remove(session)

    async def close_all_sessions(self):
        """Close all active browser sessions."""
        for session in self._sessions.copy():
            await self.close_session(session)


__all__ = ["BrowserAutomation", "BrowserConfig", "BrowserSession", "CLIPBOARD_PERMISSIONS", "DEFAULT_VIEWPORT"]
