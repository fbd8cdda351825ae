"""Tests for locator candidate synthesis."""
from __future__ import annotations

from pickbundle.locators import rank_locators, synthesize
from pickbundle.locators.snippets import TypeScriptDialect, get_dialect
from pickbundle.locators.synthesis import (
    accessible_name,
    css_path,
    infer_role,
    meaningful_classes,
    xpath_for,
)


def test_test_id_button_ranks_test_id_first(make_document) -> None:
    document = make_document('<html><body><button data-testid="save-btn">Save</button></body></html>')
    button = document.query_selector_all("button")[0]

    ranked = rank_locators(synthesize(document, button))

    assert [(c.strategy, c.score) for c in ranked] == [
        ("data-testid", 100),
        ("role-name", 98),
        ("css", 80),
        ("xpath", 66),
        ("text", 44),
    ]
    primary = ranked[0]
    assert primary.selector == '[data-testid="save-btn"]'
    assert primary.playwright == 'page.locator("[data-testid=\\"save-btn\\"]")'
    assert primary.unique_count == 1

    role = ranked[1]
    assert role.selector == 'role=button[name="save"]'
    assert role.playwright == 'page.get_by_role("button", name="save")'
    assert ranked[2].selector == "html > body > button"
    assert ranked[3].selector == "/html[1]/body[1]/button[1]"
    # html, body and the button all render the same text
    assert ranked[4].unique_count == 3


def test_id_shortcuts(make_document) -> None:
    document = make_document('<html><body><div id="main"><span>Hi</span></div></body></html>')
    main = document.get_element_by_id("main")

    assert css_path(main) == "#main"
    assert xpath_for(main) == '//*[@id="main"]'
    assert css_path(main[0]) == "#main > span"
    assert document.xpath_match_count(xpath_for(main)) == 1


def test_lookalike_siblings_get_nth_of_type(make_document) -> None:
    document = make_document(
        "<html><body>"
        '<div class="card">A</div><div class="card">B</div><div class="card">C</div>'
        "</body></html>"
    )
    second = document.query_selector_all("div.card")[1]

    assert css_path(second) == "html > body > div.card:nth-of-type(2)"
    css = next(c for c in rank_locators(synthesize(document, second)) if c.strategy == "css")
    assert css.unique_count == 1
    assert css.score == 72
    assert xpath_for(second) == "/html[1]/body[1]/div[2]"


def test_distinct_classes_skip_nth_of_type(make_document) -> None:
    document = make_document(
        '<html><body><div class="header">A</div><div class="footer">B</div></body></html>'
    )
    footer = document.query_selector_all("div.footer")[0]
    assert css_path(footer) == "html > body > div.footer"


def test_css_path_is_capped_at_five_segments(make_document) -> None:
    document = make_document(
        "<html><body><div><div><div><div><div><p>deep</p></div></div></div></div></div></body></html>"
    )
    paragraph = document.query_selector_all("p")[0]
    path = css_path(paragraph)

    assert len(path.split(" > ")) == 5
    assert not path.startswith("html")
    assert path.endswith("div > p")


def test_utility_classes_are_ignored(make_document) -> None:
    document = make_document(
        '<html><body><button class="p-4 flex btn primary text-lg rounded-md">Go</button></body></html>'
    )
    button = document.query_selector_all("button")[0]

    assert meaningful_classes(button) == ["btn", "primary"]
    assert css_path(button) == "html > body > button.btn.primary"


def test_meaningful_classes_keep_at_most_three(make_document) -> None:
    document = make_document('<html><body><span class="a b c d">x</span></body></html>')
    assert meaningful_classes(document.query_selector_all("span")[0]) == ["a", "b", "c"]


def test_infer_role(make_document) -> None:
    document = make_document(
        "<html><body>"
        '<a id="link" href="/docs">Docs</a>'
        '<a id="anchor">Plain</a>'
        '<input id="check" type="checkbox">'
        '<input id="name">'
        '<input id="range" type="range">'
        '<div id="tab" role="tab">Tab</div>'
        '<div id="plain">Plain</div>'
        '<select id="pick"><option>One</option></select>'
        "</body></html>"
    )

    def role_of(element_id: str):
        return infer_role(document.get_element_by_id(element_id))

    assert role_of("link") == "link"
    assert role_of("anchor") is None
    assert role_of("check") == "checkbox"
    assert role_of("name") == "textbox"
    assert role_of("range") == "slider"
    assert role_of("tab") == "tab"
    assert role_of("plain") is None
    assert role_of("pick") == "combobox"


def test_accessible_name_precedence(make_document) -> None:
    document = make_document(
        "<html><body>"
        '<button id="close" aria-label="Close dialog" title="ignored">X</button>'
        '<span id="l1">Email</span> <span id="l2">address</span>'
        '<input id="email" aria-labelledby="l1 l2" placeholder="ignored">'
        '<button id="help" title="Help">?</button>'
        '<img id="logo" alt="Company logo" src="logo.png">'
        '<input id="search" placeholder="Search docs">'
        '<input id="typed">'
        '<button id="plain">  Save   Changes </button>'
        "</body></html>"
    )

    def name_of(element_id: str) -> str:
        return accessible_name(document, document.get_element_by_id(element_id))

    assert name_of("close") == "Close dialog"
    assert name_of("email") == "Email address"
    assert name_of("help") == "Help"
    assert name_of("logo") == "Company logo"
    assert name_of("search") == "Search docs"

    document.set_state(document.get_element_by_id("typed"), properties={"value": "typed value"})
    assert name_of("typed") == "typed value"
    assert name_of("plain") == "save changes"


def test_role_without_name_and_no_text_candidate(make_document) -> None:
    document = make_document('<html><body><img src="photo.png"></body></html>')
    image = document.query_selector_all("img")[0]

    candidates = synthesize(document, image)
    strategies = [c.strategy for c in candidates]

    assert strategies == ["role", "css", "xpath"]
    assert candidates[0].selector == "role=img"
    assert candidates[0].playwright == 'page.get_by_role("img")'
    assert candidates[0].unique_count == 1


def test_ambiguous_role_name_is_counted(make_document) -> None:
    document = make_document("<html><body><button>OK</button><button>OK</button></body></html>")
    first = document.query_selector_all("button")[0]

    role = next(c for c in synthesize(document, first) if c.strategy == "role-name")
    assert role.unique_count == 2


def test_invalid_selector_has_unknown_count(make_document) -> None:
    document = make_document("<html><body><p>Hi</p></body></html>")
    paragraph = document.query_selector_all("p")[0]

    candidates = synthesize(document, paragraph, css="p[", xpath="//*[")
    css = next(c for c in candidates if c.strategy == "css")
    xpath = next(c for c in candidates if c.strategy == "xpath")

    assert css.unique_count is None
    assert xpath.unique_count is None
    assert rank_locators([css])[0].score == 70


def test_typescript_snippets(make_document) -> None:
    document = make_document('<html><body><a href="/x" data-cy="nav">Next page</a></body></html>')
    link = document.query_selector_all("a")[0]

    candidates = synthesize(document, link, dialect=get_dialect("ts"))

    assert isinstance(get_dialect("ts"), TypeScriptDialect)
    assert candidates[0].strategy == "data-cy"
    assert candidates[1].playwright == 'page.getByRole("link", { name: "next page" })'
    assert candidates[-1].playwright == 'page.getByText("next page")'


def test_synthesis_is_repeatable(make_document) -> None:
    document = make_document('<html><body><main><h1 class="title">Welcome</h1></main></body></html>')
    heading = document.query_selector_all("h1")[0]
    assert synthesize(document, heading) == synthesize(document, heading)
