"""Environment-driven settings for the element picker."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

MAX_SELECTIONS = 25
MAX_INLINE_CROPS = 6
PREVIEW_MAX_SIDE = 360
PREVIEW_QUALITY = 82
HTML_SNIPPET_LIMIT = 500
SLIM_HTML_LIMIT = 240
BUNDLE_VERSION = "2.0.0"

UI_ATTR = "data-pickbundle-ui"
"""Attribute carried by every overlay node the picker injects into a page."""

SKELETON_DIALECTS = ("python", "typescript")
CLIPBOARD_KINDS = ("page", "system", "file")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    value = (os.getenv(name) or "").strip().lower()
    return value if value in choices else default


@dataclass
class Settings:
    """Container for environment-driven settings, read when instantiated."""

    max_selections: int = field(default_factory=lambda: _env_int("PICKBUNDLE_MAX_SELECTIONS", MAX_SELECTIONS))
    max_inline_crops: int = field(default_factory=lambda: _env_int("PICKBUNDLE_MAX_INLINE_CROPS", MAX_INLINE_CROPS))
    preview_max_side: int = field(default_factory=lambda: _env_int("PICKBUNDLE_PREVIEW_MAX_SIDE", PREVIEW_MAX_SIDE))
    preview_quality: int = field(default_factory=lambda: _env_int("PICKBUNDLE_PREVIEW_QUALITY", PREVIEW_QUALITY))
    html_snippet_limit: int = field(
        default_factory=lambda: _env_int("PICKBUNDLE_HTML_SNIPPET_LIMIT", HTML_SNIPPET_LIMIT)
    )
    slim_html_limit: int = field(default_factory=lambda: _env_int("PICKBUNDLE_SLIM_HTML_LIMIT", SLIM_HTML_LIMIT))
    skeleton_dialect: str = field(
        default_factory=lambda: _env_choice("PICKBUNDLE_SKELETON_DIALECT", "python", SKELETON_DIALECTS)
    )
    browser: str = field(default_factory=lambda: os.getenv("PICKBUNDLE_BROWSER", "chromium"))
    headless: bool = field(default_factory=lambda: _env_flag("PICKBUNDLE_HEADLESS", default=False))
    clipboard: str = field(default_factory=lambda: _env_choice("PICKBUNDLE_CLIPBOARD", "page", CLIPBOARD_KINDS))
    log_level: str = field(default_factory=lambda: os.getenv("PICKBUNDLE_LOG_LEVEL", "INFO").upper())

    def __post_init__(self) -> None:
        if self.skeleton_dialect not in SKELETON_DIALECTS:
            raise ValueError(f"Unknown skeleton dialect: {self.skeleton_dialect}")
        if self.max_selections < 1:
            raise ValueError("max_selections must be at least 1")
        if self.max_inline_crops < 0:
            raise ValueError("max_inline_crops cannot be negative")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = [
    "BUNDLE_VERSION",
    "CLIPBOARD_KINDS",
    "HTML_SNIPPET_LIMIT",
    "MAX_INLINE_CROPS",
    "MAX_SELECTIONS",
    "PREVIEW_MAX_SIDE",
    "PREVIEW_QUALITY",
    "SKELETON_DIALECTS",
    "SLIM_HTML_LIMIT",
    "Settings",
    "UI_ATTR",
    "get_settings",
]
