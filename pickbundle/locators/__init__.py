"""Locator synthesis, ranking and Playwright snippet generation."""

from .ranking import BASE_SCORES, rank_locators, score_locator
from .snippets import CodeDialect, PythonDialect, TypeScriptDialect, get_dialect
from .synthesis import (
    TEST_ID_ATTRIBUTES,
    LocatorCandidate,
    accessible_name,
    css_path,
    infer_role,
    synthesize,
    text_preview,
    xpath_for,
)

__all__ = [
    "BASE_SCORES",
    "CodeDialect",
    "LocatorCandidate",
    "PythonDialect",
    "TEST_ID_ATTRIBUTES",
    "TypeScriptDialect",
    "accessible_name",
    "css_path",
    "get_dialect",
    "infer_role",
    "rank_locators",
    "score_locator",
    "synthesize",
    "text_preview",
    "xpath_for",
]
