"""Text, rounding and escaping helpers shared by the inspector and locators."""
from __future__ import annotations

import math
import re

_WHITESPACE = re.compile(r"\s+")


def round_to(value: float, precision: int = 2) -> float:
    """Round half up, matching how the browser side rounds rect coordinates."""

    factor = 10 ** precision
    return math.floor(float(value) * factor + 0.5) / factor


def pluralize(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def truncate(text: object, max_length: int = 80) -> str:
    """Strip ``text`` and cut it to ``max_length`` characters with a ``...`` suffix."""

    value = str(text if text is not None else "").strip()
    if not value:
        return ""
    if len(value) <= max_length:
        return value
    return f"{value[: max_length - 3]}..."


def normalize_text(value: object) -> str:
    """Collapse whitespace, strip and lower-case."""

    return _WHITESPACE.sub(" ", str(value if value is not None else "")).strip().lower()


def css_escape(value: object) -> str:
    """Serialize ``value`` as a CSS identifier (CSSOM ``CSS.escape``)."""

    text = str(value)
    length = len(text)
    out: list[str] = []
    for index, char in enumerate(text):
        code = ord(char)
        if code == 0:
            out.append("�")
        elif 0x01 <= code <= 0x1F or code == 0x7F:
            out.append(f"\\{code:x} ")
        elif index == 0 and 0x30 <= code <= 0x39:
            out.append(f"\\{code:x} ")
        elif index == 1 and 0x30 <= code <= 0x39 and text[0] == "-":
            out.append(f"\\{code:x} ")
        elif index == 0 and char == "-" and length == 1:
            out.append("\\-")
        elif code >= 0x80 or char in "-_" or (char.isascii() and char.isalnum()):
            out.append(char)
        else:
            out.append(f"\\{char}")
    return "".join(out)


def escape_attribute_value(value: object) -> str:
    """Escape a value for use inside a double-quoted CSS attribute selector."""

    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def xpath_literal(value: str) -> str:
    """Quote ``value`` as an XPath 1.0 string literal."""

    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    parts = value.split('"')
    return "concat(" + ", '\"', ".join(f'"{part}"' for part in parts) + ")"


__all__ = [
    "css_escape",
    "escape_attribute_value",
    "normalize_text",
    "pluralize",
    "round_to",
    "truncate",
    "xpath_literal",
]
