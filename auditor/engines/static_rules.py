"""axe-style rules evaluated over parsed markup when no live page exists."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from bs4 import BeautifulSoup, Tag
from loguru import logger

from auditor.config import ScanConfig
from auditor.detectors.structure import (
    DECORATIVE_ROLES,
    document_root,
    is_decorative_image,
    is_labelable_control,
    is_labelled_control,
    is_vague_link_text,
    parse_tabindex,
)
from auditor.engines.axe import issues_from_axe_violations
from auditor.engines.base import RuleSelection
from auditor.selectors import attr_text, css_selector, has_attr_value, text_of
from models import Issue, IssueSource

if TYPE_CHECKING:
    from auditor.acquisition import Document

LANG_RE = re.compile(r"^[a-zA-Z]{2,3}(-[a-zA-Z0-9]{1,8})*$")
LIST_CHILD_TAGS = {"li", "script", "template"}
LIST_PARENT_TAGS = {"ul", "ol", "menu"}
NAMING_ATTRIBUTES = ("aria-label", "aria-labelledby", "title")

RuleCheck = Callable[[Tag, BeautifulSoup], bool]


@dataclass(frozen=True)
class StaticRule:
    """One rule: ``check`` returns True when the node passes."""

    id: str
    selector: str
    tags: tuple[str, ...]
    impact: str
    help: str
    description: str
    check: RuleCheck
    page_target: str | None = None


def _has_accessible_name(node: Tag) -> bool:
    return bool(text_of(node)) or any(has_attr_value(node, name) for name in NAMING_ATTRIBUTES)


def _check_title(node: Tag, soup: BeautifulSoup) -> bool:
    title = soup.find("title")
    return title is not None and bool(text_of(title))


def _check_lang_present(node: Tag, soup: BeautifulSoup) -> bool:
    return has_attr_value(node, "lang")


def _check_lang_valid(node: Tag, soup: BeautifulSoup) -> bool:
    lang = attr_text(node, "lang")
    return not lang or bool(LANG_RE.match(lang))


def _check_image_alt(node: Tag, soup: BeautifulSoup) -> bool:
    if is_decorative_image(node):
        return True
    return node.get("alt") is not None or any(
        has_attr_value(node, name) for name in ("aria-label", "aria-labelledby")
    )


def _check_input_image_alt(node: Tag, soup: BeautifulSoup) -> bool:
    return any(has_attr_value(node, name) for name in ("alt",) + NAMING_ATTRIBUTES)


def _check_link_name(node: Tag, soup: BeautifulSoup) -> bool:
    if _has_accessible_name(node):
        return True
    return any(has_attr_value(image, "alt") for image in node.find_all("img"))


def _check_button_name(node: Tag, soup: BeautifulSoup) -> bool:
    return _has_accessible_name(node)


def _check_frame_title(node: Tag, soup: BeautifulSoup) -> bool:
    return has_attr_value(node, "title") or has_attr_value(node, "aria-label")


def _check_list(node: Tag, soup: BeautifulSoup) -> bool:
    return all(child.name in LIST_CHILD_TAGS for child in node.find_all(recursive=False))


def _check_listitem(node: Tag, soup: BeautifulSoup) -> bool:
    parent = node.parent
    if parent is None:
        return False
    return parent.name in LIST_PARENT_TAGS or attr_text(parent, "role").lower() == "list"


def _check_duplicate_id(node: Tag, soup: BeautifulSoup) -> bool:
    element_id = attr_text(node, "id")
    return not element_id or len(soup.find_all(id=element_id)) == 1


def _check_heading_one(node: Tag, soup: BeautifulSoup) -> bool:
    if soup.find("h1") is not None:
        return True
    return any(
        attr_text(heading, "aria-level") == "1" for heading in soup.select('[role="heading"]')
    )


def _check_link_clarity(node: Tag, soup: BeautifulSoup) -> bool:
    return not is_vague_link_text(text_of(node))


def _check_tabindex(node: Tag, soup: BeautifulSoup) -> bool:
    tabindex = parse_tabindex(attr_text(node, "tabindex"))
    return tabindex is None or tabindex <= 0


def _check_aria_expanded(node: Tag, soup: BeautifulSoup) -> bool:
    return node.get("aria-expanded") in {"true", "false"}


def _check_decorative_alt(node: Tag, soup: BeautifulSoup) -> bool:
    decorative = (
        attr_text(node, "role").lower() in DECORATIVE_ROLES
        or attr_text(node, "data-decorative") == "true"
        or "decorative" in (node.get("class") or [])
        or attr_text(node, "aria-hidden") == "true"
    )
    if not decorative:
        return True
    return node.get("alt") is None or node.get("alt") == ""


def _check_form_label(node: Tag, soup: BeautifulSoup) -> bool:
    return not is_labelable_control(node) or is_labelled_control(node, soup)


STATIC_RULES: tuple[StaticRule, ...] = (
    StaticRule(
        "document-title", "html", ("wcag2a", "wcag242"), "moderate",
        "Documents must have <title> element to aid in navigation",
        "Document does not have a non-empty <title> element",
        _check_title, page_target="title",
    ),
    StaticRule(
        "html-has-lang", "html", ("wcag2a", "wcag311"), "critical",
        "<html> element must have a lang attribute",
        "The <html> element does not have a lang attribute",
        _check_lang_present, page_target="html",
    ),
    StaticRule(
        "html-lang-valid", "html", ("wcag2a", "wcag311"), "serious",
        "<html> element must have a valid value for the lang attribute",
        "Value of lang attribute is not a valid language tag",
        _check_lang_valid, page_target="html",
    ),
    StaticRule(
        "image-alt", "img", ("wcag2a", "wcag111"), "critical",
        "Images must have alternate text",
        "Element does not have an alt attribute",
        _check_image_alt,
    ),
    StaticRule(
        "input-image-alt", 'input[type="image"]', ("wcag2a", "wcag111", "wcag412"), "critical",
        "Image buttons must have alternate text",
        "Element has no alt attribute or accessible name",
        _check_input_image_alt,
    ),
    StaticRule(
        "link-name", "a[href]", ("wcag2a", "wcag244", "wcag412"), "serious",
        "Links must have discernible text",
        "Element does not have text that is visible to screen readers",
        _check_link_name,
    ),
    StaticRule(
        "button-name", "button", ("wcag2a", "wcag412"), "critical",
        "Buttons must have discernible text",
        "Element does not have inner text that is visible to screen readers",
        _check_button_name,
    ),
    StaticRule(
        "frame-title", "iframe, frame", ("wcag2a", "wcag412"), "serious",
        "Frames must have an accessible name",
        "Element has no title attribute or aria-label",
        _check_frame_title,
    ),
    StaticRule(
        "list", "ul, ol", ("wcag2a", "wcag131"), "serious",
        "<ul> and <ol> must only directly contain <li>, <script> or <template> elements",
        "List element has direct children that are not allowed",
        _check_list,
    ),
    StaticRule(
        "listitem", "li", ("wcag2a", "wcag131"), "serious",
        "<li> elements must be contained in a <ul> or <ol>",
        "List item does not have a <ul>, <ol> or role=\"list\" parent element",
        _check_listitem,
    ),
    StaticRule(
        "duplicate-id", "[id]", ("wcag2a", "wcag411"), "minor",
        "id attribute value must be unique",
        "Document has multiple elements with the same id attribute",
        _check_duplicate_id,
    ),
    StaticRule(
        "page-has-heading-one", "html", ("best-practice",), "moderate",
        "Page should contain a level-one heading",
        "Page must have a level-one heading",
        _check_heading_one, page_target="html",
    ),
    StaticRule(
        "link-name-clarity", "a[href]", ("wcag2a", "wcag244"), "moderate",
        "Avoid vague link text like 'click here' or 'read more'",
        "Use descriptive link text that explains the destination or action",
        _check_link_clarity,
    ),
    StaticRule(
        "no-positive-tabindex", "[tabindex]", ("wcag2a", "wcag243"), "moderate",
        "Use natural tab order instead of positive tabindex",
        "Positive tabindex values can create confusing tab order",
        _check_tabindex,
    ),
    StaticRule(
        "aria-expanded-boolean", "[aria-expanded]", ("wcag2a", "wcag411"), "moderate",
        "Use 'true' or 'false' for aria-expanded attribute",
        "aria-expanded should be 'true' or 'false'",
        _check_aria_expanded,
    ),
    StaticRule(
        "decorative-image-alt-text", "img", ("wcag2a", "wcag111"), "moderate",
        "Use empty alt text for decorative images",
        "Use alt='' for decorative images, meaningful alt text for content images",
        _check_decorative_alt,
    ),
    StaticRule(
        "form-field-labels", "input, select, textarea", ("wcag2a", "wcag131"), "critical",
        "Ensure all form fields have proper labels",
        "Provide labels for all form fields using label, aria-label, or other labeling methods",
        _check_form_label,
    ),
)


def _failure_summary(rule: StaticRule) -> str:
    return f"Fix any of the following:\n  {rule.description}"


def _evaluate_rule(rule: StaticRule, soup: BeautifulSoup) -> dict[str, Any] | None:
    """Return an axe-shaped violation for ``rule``, or None when every node passes."""
    if rule.page_target is not None:
        targets = [] if rule.check(document_root(soup), soup) else [rule.page_target]
    else:
        targets = [css_selector(node) for node in soup.select(rule.selector) if not rule.check(node, soup)]
    if not targets:
        return None
    return {
        "id": rule.id,
        "impact": rule.impact,
        "tags": list(rule.tags),
        "help": rule.help,
        "description": rule.description,
        "nodes": [
            {"target": [target], "impact": rule.impact, "failureSummary": _failure_summary(rule)}
            for target in targets
        ],
    }


def evaluate_rules(
    soup: BeautifulSoup,
    selection: RuleSelection,
    rules: tuple[StaticRule, ...] = STATIC_RULES,
) -> list[dict[str, Any]]:
    """Evaluate selected rules and return axe-shaped violations in rule order."""
    violations: list[dict[str, Any]] = []
    for rule in rules:
        if not selection.selects(rule.id, rule.tags):
            continue
        try:
            violation = _evaluate_rule(rule, soup)
        except Exception as exc:
            logger.warning(f"Skipping static rule {rule.id}: {exc!r}")
            continue
        if violation is not None:
            violations.append(violation)
    return violations


class StaticHtmlRuleEngine:
    """Run the static rule registry over the acquired markup."""

    name = "static-rules"
    source: IssueSource = "static-rules"
    requires_page = False

    def __init__(self, config: ScanConfig) -> None:
        self.config = config
        self.timeout_s = None

    def applies_to(self, document: Document) -> bool:
        return not document.rendered or self.config.static_rules_with_browser

    def run(
        self, document: Document, selection: RuleSelection, timeout_s: float | None = None
    ) -> list[Issue]:
        violations = evaluate_rules(document.soup, selection)
        issues = issues_from_axe_violations(violations, self.source)
        logger.debug(f"Static rules reported {len(issues)} issues")
        return issues
