"""Structural accessibility checks over parsed markup."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from bs4 import BeautifulSoup, Tag

from auditor.selectors import attr_text, css_selector, has_attr_value, text_of
from models import Issue, IssueSource, Severity

if TYPE_CHECKING:
    from auditor.acquisition import Document
    from auditor.engines.base import RuleSelection

SOURCE: IssueSource = "static-structure"

SKIP_LINK_WINDOW = 5
SKIP_LINK_WORDS = ("skip", "jump")
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
HEADING_RE = re.compile(r"^h([1-6])$")

VAGUE_LINK_PHRASES = (
    "click here",
    "read more",
    "learn more",
    "more",
    "here",
    "this",
    "that",
    "link",
    "click",
    "go",
    "continue",
    "next",
    "previous",
    "back",
    "forward",
    "submit",
    "send",
    "ok",
    "yes",
    "no",
)

TEXT_LIKE_INPUT_TYPES = {"text", "email", "password", "search", "tel", "url"}
UNLABELLED_INPUT_TYPES = {"hidden", "submit", "reset", "button", "image"}
DECORATIVE_ROLES = {"presentation", "none"}

VALID_ARIA_ROLES = frozenset(
    {
        "alert", "alertdialog", "application", "article", "banner", "blockquote",
        "button", "caption", "cell", "checkbox", "code", "columnheader", "combobox",
        "complementary", "contentinfo", "definition", "deletion", "dialog",
        "directory", "document", "emphasis", "feed", "figure", "form", "generic",
        "grid", "gridcell", "group", "heading", "img", "insertion", "link", "list",
        "listbox", "listitem", "log", "main", "mark", "marquee", "math", "menu",
        "menubar", "menuitem", "menuitemcheckbox", "menuitemradio", "meter",
        "navigation", "none", "note", "option", "paragraph", "presentation",
        "progressbar", "radio", "radiogroup", "region", "row", "rowgroup",
        "rowheader", "scrollbar", "search", "searchbox", "separator", "slider",
        "spinbutton", "status", "strong", "subscript", "superscript", "switch",
        "tab", "table", "tablist", "tabpanel", "term", "textbox", "time", "timer",
        "toolbar", "tooltip", "tree", "treegrid", "treeitem",
    }
)


def _make_issue(
    rule_id: str,
    selector: str,
    wcag_refs: tuple[str, ...],
    severity: Severity,
    message: str,
) -> Issue:
    """Create a structure issue."""
    return Issue(
        rule_id=rule_id,
        selector=selector,
        wcag_refs=wcag_refs,
        severity=severity,
        message=message,
        source=SOURCE,
    )


def document_root(soup: BeautifulSoup) -> Tag:
    html = soup.find("html")
    return html if isinstance(html, Tag) else soup


def _has_role(soup: BeautifulSoup, tag_name: str, role: str) -> bool:
    return soup.find(tag_name) is not None or bool(soup.select(f'[role="{role}"]'))


def is_decorative_image(image: Tag) -> bool:
    return (
        attr_text(image, "role").lower() in DECORATIVE_ROLES
        or attr_text(image, "aria-hidden").lower() == "true"
    )


def is_vague_link_text(text: str) -> bool:
    """Return True when link text contains a deny-listed phrase."""
    lowered = text.strip().lower()
    return any(phrase in lowered for phrase in VAGUE_LINK_PHRASES)


def parse_tabindex(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def is_labelable_control(control: Tag) -> bool:
    if control.name != "input":
        return True
    return attr_text(control, "type").lower() not in UNLABELLED_INPUT_TYPES


def is_labelled_control(control: Tag, soup: BeautifulSoup) -> bool:
    """Return True when a form control has an accessible label."""
    control_id = attr_text(control, "id")
    if control_id and soup.find("label", attrs={"for": control_id}) is not None:
        return True
    if control.find_parent("label") is not None:
        return True
    if any(has_attr_value(control, name) for name in ("aria-label", "aria-labelledby", "title")):
        return True
    if control.name == "input":
        input_type = attr_text(control, "type").lower() or "text"
        if input_type in TEXT_LIKE_INPUT_TYPES and has_attr_value(control, "placeholder"):
            return True
    return False


def viewport_disables_scaling(content: str) -> bool:
    """Return True when a viewport declaration prevents user zoom."""
    settings: dict[str, str] = {}
    for part in re.split(r"[,;]", content.lower()):
        if "=" in part:
            key, value = part.split("=", 1)
            settings[key.strip()] = value.strip()
    if settings.get("user-scalable") in {"no", "0"}:
        return True
    maximum_scale = settings.get("maximum-scale")
    if maximum_scale:
        try:
            return float(maximum_scale) <= 1
        except ValueError:
            return False
    return False


def _find_viewport(soup: BeautifulSoup) -> Tag | None:
    for meta in soup.find_all("meta"):
        if attr_text(meta, "name").lower() == "viewport":
            return meta
    return None


def has_skip_link(soup: BeautifulSoup) -> bool:
    """Return True when one of the first links jumps to in-page content."""
    for link in soup.find_all("a", href=True)[:SKIP_LINK_WINDOW]:
        if not attr_text(link, "href").startswith("#"):
            continue
        text = (text_of(link) or attr_text(link, "aria-label")).lower()
        if any(word in text for word in SKIP_LINK_WORDS):
            return True
    return False


def _detect_document_metadata(soup: BeautifulSoup) -> list[Issue]:
    """Detect missing title, language and unsafe viewport declarations."""
    issues: list[Issue] = []

    title = soup.find("title")
    if title is None or not text_of(title):
        issues.append(
            _make_issue(
                "document-title",
                "title",
                ("2.4.2",),
                "moderate",
                "Document should have a non-empty title element",
            )
        )

    if not attr_text(document_root(soup), "lang"):
        issues.append(
            _make_issue(
                "html-has-lang",
                "html",
                ("3.1.1",),
                "critical",
                "HTML element should have a lang attribute",
            )
        )

    viewport = _find_viewport(soup)
    if viewport is None:
        issues.append(
            _make_issue(
                "meta-viewport",
                'meta[name="viewport"]',
                ("1.4.4",),
                "moderate",
                "Missing viewport meta tag for responsive design",
            )
        )
    elif viewport_disables_scaling(attr_text(viewport, "content")):
        issues.append(
            _make_issue(
                "meta-viewport-scale",
                'meta[name="viewport"]',
                ("1.4.4",),
                "critical",
                "Viewport meta tag should not disable user scaling",
            )
        )

    return issues


def _detect_skip_link(soup: BeautifulSoup) -> list[Issue]:
    if has_skip_link(soup):
        return []
    return [
        _make_issue(
            "skip-link",
            "body",
            ("2.4.1",),
            "moderate",
            "Page should have a skip link for keyboard users",
        )
    ]


def _detect_images(soup: BeautifulSoup) -> list[Issue]:
    """Detect images without an alt attribute, skipping decorative ones."""
    return [
        _make_issue(
            "image-alt",
            css_selector(image),
            ("1.1.1",),
            "critical",
            "Image missing alt attribute",
        )
        for image in soup.find_all("img")
        if not is_decorative_image(image) and image.get("alt") is None
    ]


def _detect_form_labels(soup: BeautifulSoup) -> list[Issue]:
    return [
        _make_issue(
            "form-field-labels",
            css_selector(control),
            ("1.3.1",),
            "critical",
            "Form field missing accessible label",
        )
        for control in soup.find_all(["input", "select", "textarea"])
        if is_labelable_control(control) and not is_labelled_control(control, soup)
    ]


def _detect_vague_links(soup: BeautifulSoup) -> list[Issue]:
    return [
        _make_issue(
            "link-name-clarity",
            css_selector(link),
            ("2.4.4",),
            "moderate",
            "Link text is vague and not descriptive",
        )
        for link in soup.find_all("a", href=True)
        if is_vague_link_text(text_of(link))
    ]


def _detect_attribute_values(soup: BeautifulSoup) -> list[Issue]:
    """Detect positive tabindex, non-boolean aria-expanded and unknown roles."""
    issues: list[Issue] = []

    for element in soup.find_all(attrs={"tabindex": True}):
        tabindex = parse_tabindex(attr_text(element, "tabindex"))
        if tabindex is not None and tabindex > 0:
            issues.append(
                _make_issue(
                    "no-positive-tabindex",
                    css_selector(element),
                    ("2.4.3",),
                    "moderate",
                    "Element has positive tabindex value which can create confusing tab order",
                )
            )

    for element in soup.find_all(attrs={"aria-expanded": True}):
        if element.get("aria-expanded") not in {"true", "false"}:
            issues.append(
                _make_issue(
                    "aria-expanded-boolean",
                    css_selector(element),
                    ("4.1.1",),
                    "moderate",
                    "aria-expanded should have boolean values (true/false)",
                )
            )

    for element in soup.find_all(attrs={"role": True}):
        role = attr_text(element, "role")
        tokens = role.lower().split()
        if not tokens or any(token not in VALID_ARIA_ROLES for token in tokens):
            issues.append(
                _make_issue(
                    "aria-role-valid",
                    css_selector(element),
                    ("4.1.1",),
                    "moderate",
                    f"Invalid ARIA role: {role}",
                )
            )

    return issues


def _detect_headings(soup: BeautifulSoup) -> list[Issue]:
    """Detect skipped heading levels and empty headings."""
    issues: list[Issue] = []
    previous_level: int | None = None

    for heading in soup.find_all(list(HEADING_TAGS)):
        level = int(HEADING_RE.match(heading.name).group(1))
        if previous_level is not None and level > previous_level + 1:
            issues.append(
                _make_issue(
                    "heading-order",
                    css_selector(heading),
                    ("1.3.1",),
                    "moderate",
                    f"Heading level {level} skips level {previous_level + 1}",
                )
            )
        previous_level = level

        if not text_of(heading) and not has_attr_value(heading, "aria-label"):
            issues.append(
                _make_issue(
                    "empty-heading",
                    css_selector(heading),
                    ("1.3.1",),
                    "moderate",
                    "Heading element is empty",
                )
            )

    return issues


def _detect_landmarks(soup: BeautifulSoup) -> list[Issue]:
    """Detect missing main, navigation and contentinfo regions."""
    issues: list[Issue] = []
    if not _has_role(soup, "main", "main"):
        issues.append(
            _make_issue(
                "landmark-one-main",
                "body",
                ("1.3.1",),
                "moderate",
                "Page should have a main landmark",
            )
        )
    if not _has_role(soup, "nav", "navigation"):
        issues.append(
            _make_issue(
                "landmark-navigation",
                "body",
                ("1.3.1",),
                "moderate",
                "Page should have navigation landmarks",
            )
        )
    if not _has_role(soup, "footer", "contentinfo"):
        issues.append(
            _make_issue(
                "landmark-contentinfo",
                "body",
                ("1.3.1",),
                "moderate",
                "Page should have a contentinfo landmark (footer)",
            )
        )
    return issues


def _has_submit_control(form: Tag) -> bool:
    for control in form.find_all(["input", "button"]):
        control_type = attr_text(control, "type").lower()
        if control.name == "input" and control_type in {"submit", "image"}:
            return True
        if control.name == "button" and control_type in {"", "submit"}:
            return True
    return False


def _detect_form_submit(soup: BeautifulSoup) -> list[Issue]:
    return [
        _make_issue(
            "form-submit-button",
            css_selector(form),
            ("3.2.2",),
            "moderate",
            "Form should have a submit button",
        )
        for form in soup.find_all("form")
        if not _has_submit_control(form)
    ]


DETECTORS = (
    _detect_document_metadata,
    _detect_skip_link,
    _detect_images,
    _detect_form_labels,
    _detect_vague_links,
    _detect_attribute_values,
    _detect_headings,
    _detect_landmarks,
    _detect_form_submit,
)


def analyze_soup(soup: BeautifulSoup) -> list[Issue]:
    """Run every structural check over a parsed tree."""
    issues: list[Issue] = []
    for detector in DETECTORS:
        issues.extend(detector(soup))
    return issues


def analyze_document(document: Document) -> list[Issue]:
    """Run every structural check over a document's markup."""
    return analyze_soup(document.soup)


def collect_page_info(soup: BeautifulSoup) -> dict[str, Any]:
    """Summarize page metadata and element counts."""
    title = soup.find("title")
    viewport = _find_viewport(soup)
    return {
        "title": (text_of(title) if title is not None else "") or None,
        "language": attr_text(document_root(soup), "lang") or None,
        "viewport": attr_text(viewport, "content") or None if viewport is not None else None,
        "hasSkipLink": has_skip_link(soup),
        "headingCount": {name: len(soup.find_all(name)) for name in HEADING_TAGS},
        "formCount": len(soup.find_all("form")),
        "imageCount": len(soup.find_all("img")),
        "linkCount": len(soup.find_all("a", href=True)),
    }


class StructureAnalyzer:
    """Adapter exposing the structural checks through the analyzer surface."""

    name = "static-structure"
    source: IssueSource = SOURCE
    requires_page = False
    timeout_s = None

    def applies_to(self, document: Document) -> bool:
        return True

    def run(
        self, document: Document, selection: RuleSelection, timeout_s: float | None = None
    ) -> list[Issue]:
        return analyze_document(document)
