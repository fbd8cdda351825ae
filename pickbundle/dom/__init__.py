"""Live page model, text helpers and runtime introspection."""

from .document import EMPTY_RECT, Element, ElementState, LiveDocument, Rect, Viewport
from .introspection import (
    IntrospectionProvider,
    NullIntrospection,
    ReactFiberIntrospection,
    select_provider,
)
from .serialization import serialize
from .text import css_escape, normalize_text, truncate

__all__ = [
    "EMPTY_RECT",
    "Element",
    "ElementState",
    "IntrospectionProvider",
    "LiveDocument",
    "NullIntrospection",
    "ReactFiberIntrospection",
    "Rect",
    "Viewport",
    "css_escape",
    "normalize_text",
    "select_provider",
    "serialize",
    "truncate",
]
