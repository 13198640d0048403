"""Tests for structural checks over parsed markup."""

from bs4 import BeautifulSoup

from auditor.acquisition import Document
from auditor.detectors.structure import (
    StructureAnalyzer,
    analyze_soup,
    collect_page_info,
    is_vague_link_text,
    viewport_disables_scaling,
)
from fakes import ACCESSIBLE_PAGE, MISSING_ALT_PAGE


def _analyze(html: str) -> list:
    return analyze_soup(BeautifulSoup(html, "html.parser"))


def _page(body: str, head: str = "") -> str:
    """Wrap body markup in an otherwise compliant page."""
    return (
        '<html lang="en"><head><title>Page</title>'
        '<meta name="viewport" content="width=device-width, initial-scale=1">'
        f"{head}</head><body>"
        '<a href="#content">Skip to content</a><nav></nav>'
        f'<main id="content"><h1>Title</h1>{body}</main><footer></footer>'
        "</body></html>"
    )


def _rule_ids(html: str) -> list[str]:
    return [issue.rule_id for issue in _analyze(html)]


def test_compliant_page_has_no_structure_issues() -> None:
    """Verify a page satisfying every check produces no findings."""
    assert _analyze(ACCESSIBLE_PAGE) == []
    assert _analyze(_page("<p>Body text</p>")) == []


def test_missing_alt_is_critical_with_element_selector() -> None:
    """Verify an image without alt is reported once as critical WCAG 1.1.1."""
    issues = _analyze(MISSING_ALT_PAGE)

    assert len(issues) == 1
    assert issues[0].rule_id == "image-alt"
    assert issues[0].severity == "critical"
    assert issues[0].wcag_refs == ("1.1.1",)
    assert issues[0].selector == "#main > img"
    assert issues[0].source == "static-structure"


def test_decorative_images_are_not_flagged_for_missing_alt() -> None:
    """Verify role=presentation/none and aria-hidden images are skipped."""
    html = _page(
        '<img src="a.png" role="presentation">'
        '<img src="b.png" role="none">'
        '<img src="c.png" aria-hidden="true">'
        '<img src="d.png" alt="">'
    )

    assert "image-alt" not in _rule_ids(html)


def test_page_metadata_findings_use_fixed_selectors() -> None:
    """Verify missing title, lang and viewport are page-level findings."""
    issues = _analyze("<html><head></head><body><main><h1>x</h1></main></body></html>")
    by_rule = {issue.rule_id: issue for issue in issues}

    assert by_rule["document-title"].selector == "title"
    assert by_rule["document-title"].severity == "moderate"
    assert by_rule["html-has-lang"].selector == "html"
    assert by_rule["html-has-lang"].severity == "critical"
    assert by_rule["meta-viewport"].selector == 'meta[name="viewport"]'
    assert by_rule["skip-link"].selector == "body"
    assert by_rule["landmark-navigation"].selector == "body"
    assert by_rule["landmark-contentinfo"].selector == "body"
    assert "landmark-one-main" not in by_rule


def test_viewport_that_disables_zoom_is_critical() -> None:
    """Verify user-scalable=no and maximum-scale<=1 are both rejected."""
    assert viewport_disables_scaling("width=device-width, user-scalable=no")
    assert viewport_disables_scaling("width=device-width, user-scalable=0")
    assert viewport_disables_scaling("width=device-width, maximum-scale=1.0")
    assert not viewport_disables_scaling("width=device-width, maximum-scale=5")
    assert not viewport_disables_scaling("width=device-width, initial-scale=1")

    html = _page("").replace("initial-scale=1", "initial-scale=1, user-scalable=no")
    issues = [issue for issue in _analyze(html) if issue.rule_id == "meta-viewport-scale"]
    assert len(issues) == 1
    assert issues[0].severity == "critical"


def test_skip_link_must_be_among_first_five_links() -> None:
    """Verify a skip link after the first five links does not count."""
    links = "".join(f'<a href="/page-{index}">Page {index}</a>' for index in range(5))
    html = (
        '<html lang="en"><head><title>t</title><meta name="viewport" content="width=device-width">'
        f'</head><body><nav>{links}<a href="#main">Skip to main content</a></nav>'
        '<main id="main"><h1>x</h1></main><footer></footer></body></html>'
    )

    assert "skip-link" in _rule_ids(html)


def test_placeholder_labels_text_input_only() -> None:
    """Verify placeholder labels text-like inputs, including untyped ones."""
    html = _page(
        '<input type="text" placeholder="Search">'
        '<input placeholder="Untyped search">'
        '<input type="checkbox" id="agree" placeholder="Agree">'
    )
    issues = [issue for issue in _analyze(html) if issue.rule_id == "form-field-labels"]

    assert [issue.selector for issue in issues] == ["#agree"]
    assert issues[0].severity == "critical"


def test_form_label_sources_are_recognised() -> None:
    """Verify label[for], wrapping label, aria and title attributes label controls."""
    html = _page(
        '<form><label for="email">Email</label><input type="email" id="email">'
        '<label>Name <input type="text"></label>'
        '<select aria-label="Country"><option>NZ</option></select>'
        '<textarea aria-labelledby="note-label"></textarea>'
        '<input type="tel" title="Phone">'
        '<input type="hidden" name="token">'
        '<input type="submit" value="Send">'
        "</form>"
    )

    assert "form-field-labels" not in _rule_ids(html)


def test_unlabelled_select_and_textarea_are_flagged() -> None:
    """Verify select and textarea without labels are reported."""
    html = _page('<form><select></select><textarea></textarea><button>Save</button></form>')
    selectors = [issue.selector for issue in _analyze(html) if issue.rule_id == "form-field-labels"]

    assert selectors == ["#content > form > select", "#content > form > textarea"]


def test_vague_link_text_uses_substring_match() -> None:
    """Verify deny-listed phrases are matched case-insensitively as substrings."""
    assert is_vague_link_text("Click HERE")
    assert is_vague_link_text("Read more about pricing")
    assert not is_vague_link_text("Product catalog")

    html = _page('<p><a href="/pricing">Click here</a></p>')
    issues = [issue for issue in _analyze(html) if issue.rule_id == "link-name-clarity"]
    assert len(issues) == 1
    assert issues[0].wcag_refs == ("2.4.4",)


def test_attribute_value_checks() -> None:
    """Verify positive tabindex, non-boolean aria-expanded and unknown roles."""
    html = _page(
        '<div id="a" tabindex="3">A</div>'
        '<div id="b" tabindex="0">B</div>'
        '<div id="c" tabindex="-1">C</div>'
        '<button id="d" aria-expanded="yes">D</button>'
        '<button id="e" aria-expanded="false">E</button>'
        '<div id="f" role="buton">F</div>'
        '<div id="g" role="button">G</div>'
    )
    findings = [(issue.rule_id, issue.selector) for issue in _analyze(html)]

    assert ("no-positive-tabindex", "#a") in findings
    assert ("aria-expanded-boolean", "#d") in findings
    assert ("aria-role-valid", "#f") in findings
    assert len(findings) == 3


def test_invalid_role_message_names_the_role() -> None:
    """Verify the invalid role finding quotes the offending value."""
    issues = _analyze(_page('<div role="fancy-widget">x</div>'))

    assert issues[0].message == "Invalid ARIA role: fancy-widget"


def test_heading_skip_is_reported_on_later_heading() -> None:
    """Verify h1 followed by h3 reports heading-order on the h3."""
    html = _page('<h3 id="deep">Details</h3>')
    issues = [issue for issue in _analyze(html) if issue.rule_id == "heading-order"]

    assert len(issues) == 1
    assert issues[0].selector == "#deep"
    assert issues[0].severity == "moderate"


def test_heading_descending_levels_are_allowed() -> None:
    """Verify going back up the outline is not a skip."""
    html = _page("<h2>A</h2><h3>B</h3><h2>C</h2><h3>D</h3>")

    assert "heading-order" not in _rule_ids(html)


def test_empty_heading_is_flagged() -> None:
    """Verify headings with no text or aria-label are reported."""
    html = _page('<h2 id="empty"></h2><h2 aria-label="Labelled"></h2>')
    issues = [issue for issue in _analyze(html) if issue.rule_id == "empty-heading"]

    assert [issue.selector for issue in issues] == ["#empty"]


def test_landmark_roles_satisfy_landmark_checks() -> None:
    """Verify role-based landmarks count the same as landmark elements."""
    html = (
        '<html lang="en"><head><title>t</title><meta name="viewport" content="width=device-width">'
        '</head><body><a href="#m">Skip navigation</a><div role="navigation"></div>'
        '<div role="main" id="m"><h1>x</h1></div><div role="contentinfo"></div></body></html>'
    )

    assert _analyze(html) == []


def test_form_without_submit_control_is_flagged() -> None:
    """Verify forms need a submit input, image input, submit or untyped button."""
    html = _page(
        '<form id="f1"><input type="text" aria-label="q"><button type="button">Search</button></form>'
        '<form id="f2"><input type="text" aria-label="q"><button>Search</button></form>'
        '<form id="f3"><input type="image" src="go.png" alt="Search"></form>'
    )
    issues = [issue for issue in _analyze(html) if issue.rule_id == "form-submit-button"]

    assert [issue.selector for issue in issues] == ["#f1"]
    assert issues[0].wcag_refs == ("3.2.2",)


def test_collect_page_info_summarises_page() -> None:
    """Verify page info reports metadata and element counts."""
    info = collect_page_info(BeautifulSoup(ACCESSIBLE_PAGE, "html.parser"))

    assert info["title"] == "Example Store"
    assert info["language"] == "en"
    assert info["viewport"] == "width=device-width, initial-scale=1"
    assert info["hasSkipLink"] is True
    assert info["headingCount"]["h1"] == 1
    assert info["headingCount"]["h2"] == 1
    assert info["imageCount"] == 1
    assert info["linkCount"] == 3
    assert info["formCount"] == 0


def test_structure_analyzer_always_applies() -> None:
    """Verify the analyzer adapter runs over static documents."""
    document = Document(url="https://example.com", html=MISSING_ALT_PAGE, strategy="static-fetch")
    analyzer = StructureAnalyzer()

    assert analyzer.applies_to(document)
    assert [issue.rule_id for issue in analyzer.run(document, None)] == ["image-alt"]
