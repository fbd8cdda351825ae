"""Ordered, bounded record of the elements a user has picked."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from ..config import MAX_SELECTIONS
from ..dom.document import Element, LiveDocument
from ..dom.text import pluralize
from ..locators.snippets import CodeDialect
from .inspector import ElementDescriptor, describe

logger = logging.getLogger(__name__)

BADGE_OFFSET = 10
BADGE_MIN_POSITION = 4


@dataclass(frozen=True)
class Notice:
    """A short user-visible message (rendered as a toast in the browser)."""

    message: str
    duration_ms: int = 2000


Notifier = Callable[[Notice], None]


def log_notice(notice: Notice) -> None:
    logger.info(notice.message)


@dataclass
class Selection:
    element: Element
    descriptor: ElementDescriptor
    node_key: Optional[str] = None

    @property
    def index(self) -> int:
        return self.descriptor.index


@dataclass(frozen=True)
class Badge:
    """Numbered marker drawn next to a selected element."""

    number: int
    top: float
    left: float


class SelectionLedger:
    """Insertion-ordered selections; display numbers are 1-based positions."""

    def __init__(
        self,
        document: LiveDocument,
        *,
        capacity: int = MAX_SELECTIONS,
        notify: Optional[Notifier] = None,
        dialect: Optional[CodeDialect] = None,
        html_limit: Optional[int] = None,
    ) -> None:
        self.document = document
        self.capacity = capacity
        self._notify = notify or log_notice
        self._dialect = dialect
        self._html_limit = html_limit
        self._selections: List[Selection] = []

    def __len__(self) -> int:
        return len(self._selections)

    def __iter__(self) -> Iterator[Selection]:
        return iter(self._selections)

    def __contains__(self, element: object) -> bool:
        return any(selection.element is element for selection in self._selections)

    @property
    def selections(self) -> Tuple[Selection, ...]:
        return tuple(self._selections)

    def add(self, element: Optional[Element]) -> Optional[Selection]:
        """Describe and append ``element``; returns ``None`` when rejected."""

        if element is None or not isinstance(element.tag, str):
            return None

        if self.document.is_picker_ui(element):
            self._notify(Notice("Picker controls cannot be selected."))
            return None

        if element in self:
            self._notify(Notice("Element already added. Press Enter to export or keep selecting."))
            return None

        if len(self._selections) >= self.capacity:
            self._notify(Notice(f"Selection limit reached ({self.capacity}). Press Enter to export."))
            return None

        kwargs = {"dialect": self._dialect}
        if self._html_limit is not None:
            kwargs["html_limit"] = self._html_limit
        descriptor = describe(self.document, element, len(self._selections) + 1, **kwargs)
        selection = Selection(element=element, descriptor=descriptor, node_key=self.document.key_for(element))
        self._selections.append(selection)

        count = len(self._selections)
        logger.debug(f"Selected {descriptor.label} as #{count}")
        self._notify(
            Notice(
                f"Added {count} {pluralize(count, 'element', 'elements')}. Enter exports, Backspace undoes.",
                1600,
            )
        )
        return selection

    def undo_last(self) -> Optional[Selection]:
        if not self._selections:
            self._notify(Notice("No selected elements to remove."))
            return None

        removed = self._selections.pop()
        self._notify(Notice(f"Removed {removed.descriptor.label}. {len(self._selections)} selected."))
        return removed

    def clear(self) -> None:
        self._selections.clear()

    def rebind(self, document: LiveDocument) -> None:
        """Point selections at ``document`` after the page was re-snapshotted.

        Elements that no longer exist keep their old (detached) reference so
        later geometry falls back to the rectangle captured at selection time.
        """

        for selection in self._selections:
            element = document.element_for_key(selection.node_key)
            if element is not None:
                selection.element = element
        self.document = document

    def badges(self) -> List[Badge]:
        """Badge positions from current geometry; hidden for detached or empty boxes."""

        badges: List[Badge] = []
        for number, selection in enumerate(self._selections, start=1):
            element = selection.element
            if not self.document.is_connected(element):
                continue
            rect = self.document.bounding_rect(element)
            if rect.width <= 0 or rect.height <= 0:
                continue
            badges.append(
                Badge(
                    number=number,
                    top=max(BADGE_MIN_POSITION, rect.top - BADGE_OFFSET),
                    left=max(BADGE_MIN_POSITION, rect.left - BADGE_OFFSET),
                )
            )
        return badges


def freeze(selections: Sequence[Selection]) -> Tuple[Selection, ...]:
    """Copy of the current selections that later ledger mutations cannot touch."""

    return tuple(
        Selection(element=item.element, descriptor=item.descriptor, node_key=item.node_key) for item in selections
    )


__all__ = [
    "Badge",
    "Notice",
    "Notifier",
    "Selection",
    "SelectionLedger",
    "freeze",
    "log_notice",
]
