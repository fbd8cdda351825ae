"""Structured, immutable snapshots of selected elements."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar

from lxml import html as lxml_html

from ..config import HTML_SNIPPET_LIMIT
from ..dom.document import Element, LiveDocument, Rect
from ..dom.introspection import select_provider
from ..locators.ranking import rank_locators
from ..locators.snippets import CodeDialect, get_dialect
from ..locators.synthesis import LocatorCandidate, TextPreviews, css_path, synthesize, xpath_for

logger = logging.getLogger(__name__)

T = TypeVar("T")

FORM_TAGS = ("input", "select", "textarea", "button")


@dataclass(frozen=True)
class ElementDescriptor:
    """Everything known about one element at the moment it was selected."""

    index: int
    selected_at: str
    tag: str
    element_id: Optional[str]
    classes: str
    text: str
    viewport_rect: Rect
    selector: str
    xpath: str
    url: str
    locators: List[LocatorCandidate] = field(default_factory=list)
    framework: Optional[str] = None
    component_chain: Optional[List[str]] = None
    component_state: Optional[Dict[str, Any]] = None
    styles: Optional[Dict[str, str]] = None
    form_state: Optional[Dict[str, Any]] = None
    accessibility: Optional[Dict[str, Any]] = None
    data_attributes: Optional[Dict[str, str]] = None
    html: Optional[str] = None

    @property
    def primary_locator(self) -> Optional[LocatorCandidate]:
        return self.locators[0] if self.locators else None

    @property
    def dimensions(self) -> str:
        width = math.floor(self.viewport_rect.width + 0.5)
        height = math.floor(self.viewport_rect.height + 0.5)
        return f"{width}x{height}"

    @property
    def label(self) -> str:
        return f"{self.tag}#{self.element_id}" if self.element_id else self.tag

    def to_dict(self) -> Dict[str, Any]:
        primary = self.primary_locator
        payload: Dict[str, Any] = {
            "index": self.index,
            "selectedAt": self.selected_at,
            "tag": self.tag,
            "id": self.element_id,
            "classes": self.classes,
            "text": self.text,
            "dimensions": self.dimensions,
            "viewportRect": self.viewport_rect.to_dict(),
            "selector": self.selector,
            "xpath": self.xpath,
            "url": self.url,
            "locators": [candidate.to_dict() for candidate in self.locators],
            "primaryLocator": primary.to_dict() if primary else None,
        }
        optional = {
            "framework": self.framework,
            "componentChain": self.component_chain,
            "componentState": self.component_state,
            "styles": self.styles,
            "formState": self.form_state,
            "accessibility": self.accessibility,
            "dataAttributes": self.data_attributes,
            "html": self.html,
        }
        payload.update({key: value for key, value in optional.items() if value})
        return payload


def _optional(name: str, extract: Callable[[], Optional[T]]) -> Optional[T]:
    try:
        return extract()
    except Exception as exc:
        logger.debug(f"Omitting {name}: {exc}")
        return None


def style_anomalies(document: LiveDocument, element: Element) -> Optional[Dict[str, str]]:
    computed = document.computed_style(element)
    styles: Dict[str, str] = {}

    display = computed.get("display", "")
    if display == "none":
        styles["display"] = "none"
    if computed.get("visibility") == "hidden":
        styles["visibility"] = "hidden"

    opacity = computed.get("opacity")
    if opacity is not None:
        try:
            if float(opacity) < 1:
                styles["opacity"] = str(opacity)
        except ValueError:
            pass

    position = computed.get("position", "static")
    if position != "static":
        styles["position"] = position
        z_index = computed.get("zIndex", "auto")
        if z_index != "auto":
            styles["zIndex"] = str(z_index)

    if computed.get("pointerEvents") == "none":
        styles["pointerEvents"] = "none"
    overflow = computed.get("overflow", "visible")
    if overflow != "visible":
        styles["overflow"] = overflow

    if "flex" in display:
        styles["display"] = display
        styles["flexDirection"] = computed.get("flexDirection", "row")
        styles["justifyContent"] = computed.get("justifyContent", "normal")
        styles["alignItems"] = computed.get("alignItems", "normal")
    if "grid" in display:
        styles["display"] = display
        styles["gridTemplateColumns"] = computed.get("gridTemplateColumns", "none")
        styles["gridTemplateRows"] = computed.get("gridTemplateRows", "none")

    return styles or None


def _default_type(element: Element) -> str:
    tag = element.tag
    if tag == "input":
        return (element.get("type") or "text").lower()
    if tag == "button":
        return (element.get("type") or "submit").lower()
    if tag == "select":
        return "select-multiple" if element.get("multiple") is not None else "select-one"
    return "textarea"


def _default_value(element: Element) -> str:
    tag = element.tag
    if tag == "textarea":
        return element.text_content()
    if tag == "select":
        options = list(element.iter("option"))
        chosen = next((option for option in options if option.get("selected") is not None), None)
        if chosen is None and options and element.get("multiple") is None:
            chosen = options[0]
        if chosen is None:
            return ""
        value = chosen.get("value")
        return value if value is not None else chosen.text_content().strip()
    value = element.get("value")
    if value is None and tag == "input" and (element.get("type") or "").lower() in ("checkbox", "radio"):
        return "on"
    return value or ""


def form_state(document: LiveDocument, element: Element) -> Optional[Dict[str, Any]]:
    tag = str(element.tag).lower()
    if tag not in FORM_TAGS:
        return None

    props = document.state(element).properties
    state: Dict[str, Any] = {}

    element_type = props.get("type") or _default_type(element)
    if element_type:
        state["type"] = element_type

    value = props.get("value")
    if value is None:
        value = _default_value(element)
    if value not in (None, ""):
        state["value"] = value

    if tag == "input":
        checked = props.get("checked")
        state["checked"] = bool(checked) if checked is not None else element.get("checked") is not None

    if props.get("disabled", element.get("disabled") is not None):
        state["disabled"] = True
    if tag != "button" and props.get("required", element.get("required") is not None):
        state["required"] = True
    if tag in ("input", "textarea") and props.get("readOnly", element.get("readonly") is not None):
        state["readOnly"] = True
    if props.get("valid") is False:
        state["validationMessage"] = props.get("validationMessage", "")

    return state or None


def _tab_index(document: LiveDocument, element: Element) -> Optional[int]:
    value = document.property(element, "tabIndex")
    if value is None:
        value = element.get("tabindex")
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def accessibility_info(document: LiveDocument, element: Element) -> Optional[Dict[str, Any]]:
    info: Dict[str, Any] = {}

    role = element.get("role")
    if role:
        info["role"] = role

    for name, value in element.attrib.items():
        if name.startswith("aria-"):
            info[name] = value

    tab_index = _tab_index(document, element)
    if tab_index is not None and tab_index not in (-1, 0):
        info["tabIndex"] = tab_index

    return info or None


def data_attributes(element: Element) -> Optional[Dict[str, str]]:
    attributes = {name: value for name, value in element.attrib.items() if name.startswith("data-")}
    return attributes or None


def html_snippet(element: Element, max_length: int = HTML_SNIPPET_LIMIT) -> Optional[str]:
    """Outer markup cut at the last tag end or space before ``max_length``."""

    markup = lxml_html.tostring(element, encoding="unicode", with_tail=False)
    if not markup:
        return None
    if len(markup) <= max_length:
        return markup
    sliced = markup[:max_length]
    safe_cut = max(sliced.rfind(">"), sliced.rfind(" "), max_length - 60)
    return f"{sliced[:safe_cut]}..."


def _component_info(document: LiveDocument, element: Element) -> Dict[str, Any]:
    runtime = document.state(element).runtime
    provider = select_provider(runtime)
    if runtime is None or provider.name == "none":
        return {}
    info: Dict[str, Any] = {}
    chain = _optional("component chain", lambda: provider.component_chain(runtime))
    state = _optional("component state", lambda: provider.component_state(runtime))
    if chain or state:
        info["framework"] = provider.name
    if chain:
        info["component_chain"] = chain
    if state:
        info["component_state"] = state
    return info


def describe(
    document: LiveDocument,
    element: Element,
    index: int,
    *,
    dialect: Optional[CodeDialect] = None,
    html_limit: int = HTML_SNIPPET_LIMIT,
    now: Optional[Callable[[], datetime]] = None,
) -> ElementDescriptor:
    """Capture a descriptor for ``element`` as the ``index``-th selection.

    Reads the document only. Optional sub-extractions that fail are logged
    and left out of the descriptor.
    """

    dialect = dialect or get_dialect()
    previews = TextPreviews(document)
    selector = css_path(element)
    xpath = xpath_for(element)
    text = previews(element)

    candidates = _optional(
        "locators",
        lambda: synthesize(
            document,
            element,
            dialect=dialect,
            css=selector,
            xpath=xpath,
            text=text,
            previews=previews,
        ),
    )
    timestamp = (now or (lambda: datetime.now(UTC)))()

    return ElementDescriptor(
        index=index,
        selected_at=timestamp.isoformat(),
        tag=str(element.tag).lower(),
        element_id=element.get("id") or None,
        classes=" ".join((element.get("class") or "").split()),
        text=text,
        viewport_rect=document.bounding_rect(element),
        selector=selector,
        xpath=xpath,
        url=document.url,
        locators=rank_locators(candidates or []),
        styles=_optional("styles", lambda: style_anomalies(document, element)),
        form_state=_optional("form state", lambda: form_state(document, element)),
        accessibility=_optional("accessibility", lambda: accessibility_info(document, element)),
        data_attributes=_optional("data attributes", lambda: data_attributes(element)),
        html=_optional("html", lambda: html_snippet(element, html_limit)),
        **_component_info(document, element),
    )


__all__ = [
    "ElementDescriptor",
    "accessibility_info",
    "data_attributes",
    "describe",
    "form_state",
    "html_snippet",
    "style_anomalies",
]
