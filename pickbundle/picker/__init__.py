"""Selection state: element descriptors, the ledger and the picking session."""

from .inspector import ElementDescriptor, describe
from .ledger import Badge, Notice, Selection, SelectionLedger, freeze
from .session import ACTIVATION_NOTICE, PickerSession, is_undo_key

__all__ = [
    "ACTIVATION_NOTICE",
    "Badge",
    "ElementDescriptor",
    "Notice",
    "PickerSession",
    "Selection",
    "SelectionLedger",
    "describe",
    "freeze",
    "is_undo_key",
]
