"""In-memory model of a live page backed by an lxml HTML tree.

The tree is the source of truth for structure and attributes. Everything a
browser knows but markup does not (viewport rectangles, computed style, live
form properties, framework expando properties) lives in per-element side
tables keyed by the element itself. Those tables are filled from a browser
snapshot (see :mod:`pickbundle.browser.bridge`) or set directly in tests.

Selectors and XPath expressions are evaluated against the current tree, so
match counts reflect the document as it is at call time.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from lxml import etree
from lxml import html as lxml_html
from lxml.cssselect import CSSSelector
from cssselect import SelectorError

from ..config import UI_ATTR
from .text import round_to

logger = logging.getLogger(__name__)

Element = lxml_html.HtmlElement

_SKIPPED_TEXT_TAGS = frozenset({"script", "style", "noscript", "template", "head"})


@dataclass(frozen=True)
class Rect:
    """Viewport-relative rectangle rounded to two decimals."""

    top: float
    left: float
    width: float
    height: float

    @classmethod
    def from_client(cls, top: float, left: float, width: float, height: float) -> "Rect":
        return cls(
            top=round_to(top),
            left=round_to(left),
            width=round_to(width),
            height=round_to(height),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Rect":
        left = float(data.get("left", data.get("x", 0.0)) or 0.0)
        top = float(data.get("top", data.get("y", 0.0)) or 0.0)
        width = data.get("width")
        height = data.get("height")
        if width is None and data.get("right") is not None:
            width = float(data["right"]) - left
        if height is None and data.get("bottom") is not None:
            height = float(data["bottom"]) - top
        return cls.from_client(top, left, float(width or 0.0), float(height or 0.0))

    @property
    def right(self) -> float:
        return round_to(self.left + self.width)

    @property
    def bottom(self) -> float:
        return round_to(self.top + self.height)

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x < self.left + self.width and self.top <= y < self.top + self.height

    def shifted(self, dx: float, dy: float) -> "Rect":
        return Rect.from_client(self.top + dy, self.left + dx, self.width, self.height)

    def to_dict(self) -> Dict[str, float]:
        return {
            "top": self.top,
            "left": self.left,
            "right": self.right,
            "bottom": self.bottom,
            "width": self.width,
            "height": self.height,
        }


EMPTY_RECT = Rect(top=0.0, left=0.0, width=0.0, height=0.0)


@dataclass(frozen=True)
class Viewport:
    width: int = 1280
    height: int = 720

    def to_dict(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass
class ElementState:
    """Browser-side facts about one element that markup alone cannot give."""

    rect: Optional[Rect] = None
    style: Dict[str, str] = field(default_factory=dict)
    properties: Dict[str, Any] = field(default_factory=dict)
    runtime: Optional[Mapping[str, Any]] = None


class LiveDocument:
    """Mutable page model: an HTML tree plus layout and runtime side tables."""

    def __init__(
        self,
        root: Element,
        *,
        url: str = "about:blank",
        title: Optional[str] = None,
        viewport: Optional[Viewport] = None,
        device_scale_factor: float = 1.0,
    ) -> None:
        self.root = root
        self.url = url
        self._title = title
        self.viewport = viewport or Viewport()
        self.device_scale_factor = device_scale_factor or 1.0
        self._states: Dict[Element, ElementState] = {}
        self._keys: Dict[Element, str] = {}
        self._by_key: Dict[str, Element] = {}
        self._selector_cache: Dict[str, Optional[CSSSelector]] = {}

    # -- construction -----------------------------------------------------

    @classmethod
    def from_html(
        cls,
        markup: str,
        *,
        url: str = "about:blank",
        title: Optional[str] = None,
        viewport: Optional[Viewport] = None,
        device_scale_factor: float = 1.0,
    ) -> "LiveDocument":
        root = lxml_html.document_fromstring(markup)
        return cls(root, url=url, title=title, viewport=viewport, device_scale_factor=device_scale_factor)

    @classmethod
    def from_snapshot(cls, snapshot: Mapping[str, Any]) -> "LiveDocument":
        """Build a document from the JSON emitted by the browser snapshot script.

        Every element node carries ``key``, ``tag``, ``attrs`` (name/value
        pairs), ``children`` (element nodes or text strings) and optionally
        ``rect``, ``style``, ``props`` and ``runtime``.
        """

        viewport_data = snapshot.get("viewport") or {}
        viewport = Viewport(
            width=int(viewport_data.get("width") or 0),
            height=int(viewport_data.get("height") or 0),
        )
        root_data = snapshot.get("root")
        if not isinstance(root_data, Mapping):
            raise ValueError("snapshot is missing its root element")

        root = lxml_html.Element(str(root_data.get("tag") or "html"))
        document = cls(
            root,
            url=str(snapshot.get("url") or "about:blank"),
            title=snapshot.get("title"),
            viewport=viewport,
            device_scale_factor=float(snapshot.get("devicePixelRatio") or 1.0),
        )
        document._populate(root, root_data)
        return document

    def _populate(self, element: Element, data: Mapping[str, Any]) -> None:
        for name, value in data.get("attrs") or ():
            try:
                element.set(str(name), "" if value is None else str(value))
            except ValueError:
                logger.debug(f"Skipping attribute not representable in lxml: {name!r}")

        key = data.get("key")
        if key is not None:
            self._register_key(element, str(key))

        rect = data.get("rect")
        state = ElementState(
            rect=Rect.from_mapping(rect) if isinstance(rect, Mapping) else None,
            style=dict(data.get("style") or {}),
            properties=dict(data.get("props") or {}),
            runtime=data.get("runtime") if isinstance(data.get("runtime"), Mapping) else None,
        )
        if state.rect or state.style or state.properties or state.runtime:
            self._states[element] = state

        last: Optional[Element] = None
        for child in data.get("children") or ():
            if isinstance(child, str):
                if last is None:
                    element.text = (element.text or "") + child
                else:
                    last.tail = (last.tail or "") + child
                continue
            if not isinstance(child, Mapping) or not child.get("tag"):
                continue
            try:
                node = etree.SubElement(element, str(child["tag"]))
            except ValueError:
                logger.debug(f"Skipping element with unsupported tag {child.get('tag')!r}")
                continue
            self._populate(node, child)
            last = node

    # -- identity ---------------------------------------------------------

    def _register_key(self, element: Element, key: str) -> None:
        self._keys[element] = key
        self._by_key[key] = element

    def key_for(self, element: Element) -> Optional[str]:
        return self._keys.get(element)

    def element_for_key(self, key: Union[str, int, None]) -> Optional[Element]:
        if key is None:
            return None
        return self._by_key.get(str(key))

    # -- side tables ------------------------------------------------------

    def state(self, element: Element) -> ElementState:
        return self._states.get(element) or ElementState()

    def set_state(
        self,
        element: Element,
        *,
        rect: Optional[Union[Rect, Mapping[str, Any]]] = None,
        style: Optional[Mapping[str, str]] = None,
        properties: Optional[Mapping[str, Any]] = None,
        runtime: Optional[Mapping[str, Any]] = None,
    ) -> ElementState:
        state = self._states.setdefault(element, ElementState())
        if rect is not None:
            state.rect = rect if isinstance(rect, Rect) else Rect.from_mapping(rect)
        if style is not None:
            state.style.update(style)
        if properties is not None:
            state.properties.update(properties)
        if runtime is not None:
            state.runtime = runtime
        return state

    def scroll_by(self, dx: float, dy: float) -> None:
        """Scroll the viewport; viewport-relative rectangles move the other way."""

        for state in self._states.values():
            if state.rect is not None:
                state.rect = state.rect.shifted(-dx, -dy)

    def resize(self, width: int, height: int) -> None:
        self.viewport = Viewport(width=width, height=height)

    # -- tree access ------------------------------------------------------

    @property
    def title(self) -> str:
        if self._title is not None:
            return self._title
        node = self.root.find(".//title")
        return (node.text_content() or "").strip() if node is not None else ""

    def elements(self) -> Iterator[Element]:
        for node in self.root.iter():
            if isinstance(node.tag, str):
                yield node

    def is_connected(self, element: Element) -> bool:
        node = element
        while node.getparent() is not None:
            node = node.getparent()
        return node is self.root

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        for node in self.elements():
            if node.get("id") == element_id:
                return node
        return None

    def is_picker_ui(self, element: Element) -> bool:
        node: Optional[Element] = element
        while node is not None:
            if node.get(UI_ATTR) == "true":
                return True
            node = node.getparent()
        return False

    def bounding_rect(self, element: Element) -> Rect:
        """Current viewport rectangle, all zeros when layout is unknown."""

        return self.state(element).rect or EMPTY_RECT

    def computed_style(self, element: Element) -> Dict[str, str]:
        state = self._states.get(element)
        if state is not None and state.style:
            return dict(state.style)
        return _inline_style(element)

    def property(self, element: Element, name: str, default: Any = None) -> Any:
        return self.state(element).properties.get(name, default)

    def inner_text(self, element: Element) -> str:
        """Rendered-ish text: skips script/style subtrees and ``display: none`` nodes."""

        parts: List[str] = []
        self._collect_text(element, parts)
        return "".join(parts)

    def _collect_text(self, element: Element, parts: List[str]) -> None:
        if element.text:
            parts.append(element.text)
        for child in element:
            if isinstance(child.tag, str) and not self._text_hidden(child):
                self._collect_text(child, parts)
            if child.tail:
                parts.append(child.tail)

    def _text_hidden(self, element: Element) -> bool:
        if element.tag in _SKIPPED_TEXT_TAGS:
            return True
        state = self._states.get(element)
        return bool(state and state.style.get("display") == "none")

    def element_from_point(self, x: float, y: float) -> Optional[Element]:
        """Topmost element under a viewport point, in document paint order."""

        hit: Optional[Element] = None
        for node in self.elements():
            state = self._states.get(node)
            if state is None or state.rect is None or not state.rect.contains(x, y):
                continue
            style = state.style
            if style.get("display") == "none" or style.get("visibility") == "hidden":
                continue
            if style.get("pointerEvents") == "none" or self.is_picker_ui(node):
                continue
            hit = node
        return hit

    # -- live matching ----------------------------------------------------

    def query_selector_all(self, selector: str) -> List[Element]:
        """Evaluate a CSS selector; raises ``ValueError`` for unsupported selectors."""

        compiled = self._compile(selector)
        if compiled is None:
            raise ValueError(f"Unsupported CSS selector: {selector}")
        return [node for node in compiled(self.root) if isinstance(node.tag, str)]

    def _compile(self, selector: str) -> Optional[CSSSelector]:
        if selector not in self._selector_cache:
            try:
                self._selector_cache[selector] = CSSSelector(selector, translator="html")
            except (SelectorError, etree.XPathError, ValueError) as exc:
                logger.debug(f"CSS selector rejected: {selector!r} ({exc})")
                self._selector_cache[selector] = None
        return self._selector_cache[selector]

    def css_match_count(self, selector: str) -> Optional[int]:
        try:
            return len(self.query_selector_all(selector))
        except (ValueError, etree.XPathError) as exc:
            logger.debug(f"CSS match count unavailable for {selector!r}: {exc}")
            return None

    def xpath_match_count(self, expression: str) -> Optional[int]:
        try:
            result = self.root.getroottree().xpath(f"count({expression})")
        except (etree.XPathError, ValueError) as exc:
            logger.debug(f"XPath match count unavailable for {expression!r}: {exc}")
            return None
        try:
            return int(round(float(result)))
        except (TypeError, ValueError):
            return None


def _inline_style(element: Element) -> Dict[str, str]:
    """Fallback computed style read from the ``style`` attribute."""

    styles: Dict[str, str] = {}
    for declaration in (element.get("style") or "").split(";"):
        name, sep, value = declaration.partition(":")
        if not sep:
            continue
        name = name.strip().lower()
        value = value.replace("!important", "").strip()
        if not name or not value:
            continue
        styles[_camel_case(name)] = value
    return styles


def _camel_case(name: str) -> str:
    head, *rest = name.split("-")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


__all__ = [
    "EMPTY_RECT",
    "Element",
    "ElementState",
    "LiveDocument",
    "Rect",
    "Viewport",
]
