"""Candidate locator strategies for one element, each with a live match count."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..dom.document import Element, LiveDocument
from ..dom.text import css_escape, escape_attribute_value, normalize_text, truncate, xpath_literal
from .snippets import CodeDialect, get_dialect

logger = logging.getLogger(__name__)

TEST_ID_ATTRIBUTES = (
    "data-testid",
    "data-test-id",
    "data-test",
    "data-cy",
    "data-qa",
)
"""Test-id attributes in priority order."""

UTILITY_CLASS_PATTERN = re.compile(r"^(p-|m-|w-|h-|flex|grid|text-|bg-|border-|rounded)")
"""Utility-framework class names that say nothing about what an element is."""

MAX_CSS_SEGMENTS = 5
MAX_MEANINGFUL_CLASSES = 3
TEXT_PREVIEW_LENGTH = 100
ACCESSIBLE_NAME_LENGTH = 120

_INPUT_ROLES = {
    "button": "button",
    "submit": "button",
    "reset": "button",
    "checkbox": "checkbox",
    "radio": "radio",
    "range": "slider",
}

_TAG_ROLES = {
    "button": "button",
    "textarea": "textbox",
    "select": "combobox",
    "img": "img",
    "ul": "list",
    "ol": "list",
    "li": "listitem",
    "table": "table",
    "tr": "row",
    "th": "columnheader",
}


@dataclass
class LocatorCandidate:
    """One proposed way to find an element again."""

    strategy: str
    selector: str
    playwright: str
    unique_count: Optional[int]
    score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "selector": self.selector,
            "playwright": self.playwright,
            "uniqueCount": self.unique_count,
            "score": self.score,
        }


class TextPreviews:
    """Per-call memo of element text previews; whole-document counts reuse it."""

    def __init__(self, document: LiveDocument) -> None:
        self._document = document
        self._cache: Dict[Element, str] = {}

    def __call__(self, element: Element) -> str:
        preview = self._cache.get(element)
        if preview is None:
            preview = text_preview(self._document, element)
            self._cache[element] = preview
        return preview


def text_preview(document: LiveDocument, element: Element) -> str:
    text = normalize_text(document.inner_text(element))
    return truncate(text, TEXT_PREVIEW_LENGTH)


def meaningful_classes(element: Element) -> List[str]:
    classes = (element.get("class") or "").split()
    return [name for name in classes if not UTILITY_CLASS_PATTERN.match(name)][:MAX_MEANINGFUL_CLASSES]


def _same_tag_siblings(element: Element) -> List[Element]:
    parent = element.getparent()
    if parent is None:
        return []
    return [child for child in parent if child.tag == element.tag]


def _has_classes(element: Element, classes: List[str]) -> bool:
    present = set((element.get("class") or "").split())
    return all(name in present for name in classes)


def css_path(element: Element) -> str:
    """Build a CSS path of at most five segments, stopping at the nearest id.

    A segment is the tag plus up to three meaningful classes; when other
    same-tag siblings carry the same classes, an ``:nth-of-type`` index is
    appended so the segment picks out this node.
    """

    element_id = element.get("id")
    if element_id:
        return f"#{css_escape(element_id)}"

    path: List[str] = []
    current: Optional[Element] = element
    while current is not None and isinstance(current.tag, str):
        current_id = current.get("id")
        if current_id:
            path.insert(0, f"#{css_escape(current_id)}")
            break

        selector = current.tag.lower()
        classes = meaningful_classes(current)
        if classes:
            selector += "".join(f".{css_escape(name)}" for name in classes)
        if current.getparent() is not None:
            siblings = _same_tag_siblings(current)
            lookalikes = [node for node in siblings if _has_classes(node, classes)]
            if len(lookalikes) > 1:
                selector += f":nth-of-type({siblings.index(current) + 1})"

        path.insert(0, selector)
        current = current.getparent()
        if len(path) >= MAX_CSS_SEGMENTS:
            break

    return " > ".join(path)


def xpath_for(element: Element) -> str:
    """Id shortcut when possible, otherwise an absolute indexed path."""

    element_id = element.get("id")
    if element_id:
        return f"//*[@id={xpath_literal(element_id)}]"

    segments: List[str] = []
    current: Optional[Element] = element
    while current is not None and isinstance(current.tag, str):
        siblings = _same_tag_siblings(current)
        index = siblings.index(current) + 1 if len(siblings) > 1 else 1
        segments.insert(0, f"{current.tag.lower()}[{index}]")
        current = current.getparent()
    return "/" + "/".join(segments)


def infer_role(element: Element) -> Optional[str]:
    explicit = element.get("role")
    if explicit:
        return explicit

    tag = str(element.tag).lower()
    if tag == "a":
        return "link" if element.get("href") is not None else None
    if tag == "input":
        input_type = (element.get("type") or "").lower()
        return _INPUT_ROLES.get(input_type, "textbox")
    return _TAG_ROLES.get(tag)


def _form_value(document: LiveDocument, element: Element) -> str:
    value = document.property(element, "value")
    if value is None:
        if element.tag == "textarea":
            value = element.text_content()
        else:
            value = element.get("value")
    return "" if value is None else str(value)


def accessible_name(
    document: LiveDocument,
    element: Element,
    previews: Optional[TextPreviews] = None,
) -> str:
    aria_label = element.get("aria-label")
    if aria_label:
        return truncate(aria_label, ACCESSIBLE_NAME_LENGTH)

    labelled_by = element.get("aria-labelledby")
    if labelled_by:
        texts = []
        for ref in labelled_by.split():
            target = document.get_element_by_id(ref)
            texts.append(document.inner_text(target) if target is not None else "")
        text = " ".join(texts).strip()
        if text:
            return truncate(text, ACCESSIBLE_NAME_LENGTH)

    title = element.get("title")
    if title:
        return truncate(title, ACCESSIBLE_NAME_LENGTH)

    tag = str(element.tag).lower()
    alt = element.get("alt") if tag in ("img", "input", "area") else None
    if alt:
        return truncate(alt, ACCESSIBLE_NAME_LENGTH)

    if tag in ("input", "textarea"):
        placeholder = element.get("placeholder")
        if placeholder:
            return truncate(placeholder, ACCESSIBLE_NAME_LENGTH)
        value = _form_value(document, element)
        if value:
            return truncate(value, ACCESSIBLE_NAME_LENGTH)

    return previews(element) if previews is not None else text_preview(document, element)


def role_name_match_count(
    document: LiveDocument,
    role: Optional[str],
    name: Optional[str],
    previews: Optional[TextPreviews] = None,
) -> Optional[int]:
    if not role:
        return None
    nodes = [node for node in document.elements() if infer_role(node) == role]
    if not name:
        return len(nodes)
    target = normalize_text(name)
    previews = previews or TextPreviews(document)
    return sum(1 for node in nodes if normalize_text(accessible_name(document, node, previews)) == target)


def text_match_count(document: LiveDocument, text: str, previews: Optional[TextPreviews] = None) -> int:
    target = normalize_text(text)
    previews = previews or TextPreviews(document)
    return sum(1 for node in document.elements() if normalize_text(previews(node)) == target)


def role_selector(role: str, name: Optional[str] = None) -> str:
    if name:
        return f'role={role}[name="{escape_attribute_value(name)}"]'
    return f"role={role}"


def synthesize(
    document: LiveDocument,
    element: Element,
    *,
    dialect: Optional[CodeDialect] = None,
    css: Optional[str] = None,
    xpath: Optional[str] = None,
    text: Optional[str] = None,
    previews: Optional[TextPreviews] = None,
) -> List[LocatorCandidate]:
    """Return unranked candidates in synthesis order.

    Strategies are attempted independently; a strategy that does not apply
    is simply absent. A CSS path can always be built, so the result is never
    empty for an element that is part of a document.
    """

    dialect = dialect or get_dialect()
    previews = previews or TextPreviews(document)
    css = css if css is not None else css_path(element)
    xpath = xpath if xpath is not None else xpath_for(element)
    text = text if text is not None else previews(element)

    candidates: List[LocatorCandidate] = []

    for attribute in TEST_ID_ATTRIBUTES:
        value = element.get(attribute)
        if not value:
            continue
        selector = f'[{attribute}="{escape_attribute_value(value)}"]'
        candidates.append(
            LocatorCandidate(
                strategy=attribute,
                selector=selector,
                playwright=dialect.locator(selector),
                unique_count=document.css_match_count(selector),
            )
        )

    role = infer_role(element)
    name = accessible_name(document, element, previews)
    if role and name:
        candidates.append(
            LocatorCandidate(
                strategy="role-name",
                selector=role_selector(role, name),
                playwright=dialect.role(role, name),
                unique_count=role_name_match_count(document, role, name, previews),
            )
        )
    elif role:
        candidates.append(
            LocatorCandidate(
                strategy="role",
                selector=role_selector(role),
                playwright=dialect.role(role),
                unique_count=role_name_match_count(document, role, None, previews),
            )
        )

    if css:
        candidates.append(
            LocatorCandidate(
                strategy="css",
                selector=css,
                playwright=dialect.locator(css),
                unique_count=document.css_match_count(css),
            )
        )

    if xpath:
        candidates.append(
            LocatorCandidate(
                strategy="xpath",
                selector=xpath,
                playwright=dialect.xpath(xpath),
                unique_count=document.xpath_match_count(xpath),
            )
        )

    if text:
        candidates.append(
            LocatorCandidate(
                strategy="text",
                selector=text,
                playwright=dialect.text(text),
                unique_count=text_match_count(document, text, previews),
            )
        )

    logger.debug(f"Synthesized {len(candidates)} locator candidates for <{element.tag}>")
    return candidates


__all__ = [
    "LocatorCandidate",
    "TEST_ID_ATTRIBUTES",
    "TextPreviews",
    "UTILITY_CLASS_PATTERN",
    "accessible_name",
    "css_path",
    "infer_role",
    "meaningful_classes",
    "role_name_match_count",
    "role_selector",
    "synthesize",
    "text_match_count",
    "text_preview",
    "xpath_for",
]
