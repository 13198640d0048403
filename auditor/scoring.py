"""Issue prioritisation, categorisation and aggregate scoring."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from auditor.wcag import REFERENCE_CRITERIA
from models import SEVERITIES, Issue

IMPACT_WEIGHTS = {"critical": 4, "serious": 3, "moderate": 2, "minor": 1}
SEVERITY_PENALTIES = {"critical": 10, "serious": 5, "moderate": 2, "minor": 1}
CONTRAST_CRITERIA = ("1.4.3", "1.4.6")

# (keywords, bonus), first match wins
USER_IMPACT_BONUSES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("keyboard", "focus"), 2),
    (("contrast", "color"), 2),
    (("form", "input", "label"), 2),
    (("aria", "role"), 1),
    (("landmark", "navigation", "main"), 1),
    (("image", "video", "audio"), 1),
)

SMALL_EFFORT = 1
REFACTOR_EFFORT = 2
MAJOR_EFFORT = 3
REFACTOR_KEYWORDS = ("structure", "semantic", "heading")
MAJOR_KEYWORDS = ("navigation", "menu", "complex")

OTHER_CATEGORY = "Other"
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Keyboard Navigation", ("keyboard", "focus", "tab")),
    ("Color & Contrast", ("contrast", "color")),
    ("Forms & Controls", ("form", "input", "label", "button")),
    ("ARIA & Semantics", ("aria", "role", "semantic")),
    ("Landmarks & Structure", ("landmark", "navigation", "main", "header")),
    ("Media & Images", ("image", "alt", "video", "audio")),
    ("Headings & Titles", ("heading", "title", "page")),
    ("Links & Navigation", ("link", "href", "anchor")),
)

NEXT_STEP_FOCUS = {
    "Keyboard Navigation": "Focus on keyboard trap resolution and tab order optimization",
    "Color & Contrast": "Prioritize contrast ratio improvements for text and UI elements",
    "Forms & Controls": "Ensure all form inputs have proper labels and validation",
    "ARIA & Semantics": "Implement proper ARIA attributes and semantic HTML structure",
    "Landmarks & Structure": "Add proper landmark elements and improve page structure",
    "Media & Images": "Add alt text to images and captions to media content",
}
NO_ISSUES_NEXT_STEP = "No accessibility issues found. Continue monitoring for new content."


@dataclass(frozen=True)
class ScoreReport:
    issues: tuple[Issue, ...]
    overall_score: int
    severity_counts: dict[str, int]
    category_counts: dict[str, int]
    wcag_coverage: dict[str, int]


def _has_contrast_criterion(issue: Issue) -> bool:
    return any(ref in CONTRAST_CRITERIA for ref in issue.wcag_refs)


def _matches(issue: Issue, keywords: tuple[str, ...]) -> bool:
    """Keywords match the message; "keyboard" also matches the rule id, "contrast" the WCAG refs."""
    message = issue.message.lower()
    if any(keyword in message for keyword in keywords):
        return True
    if "keyboard" in keywords and "keyboard" in issue.rule_id.lower():
        return True
    return "contrast" in keywords and _has_contrast_criterion(issue)


def _user_impact_bonus(issue: Issue) -> int:
    for keywords, bonus in USER_IMPACT_BONUSES:
        if _matches(issue, keywords):
            return bonus
    return 0


def _effort_estimate(issue: Issue) -> int:
    message = issue.message.lower()
    if any(keyword in message for keyword in REFACTOR_KEYWORDS):
        return REFACTOR_EFFORT
    if any(keyword in message for keyword in MAJOR_KEYWORDS):
        return MAJOR_EFFORT
    return SMALL_EFFORT


def priority_score(issue: Issue) -> int:
    """Return ``(impact weight + user impact bonus) * (3 - effort)``; higher is more urgent."""
    weight = IMPACT_WEIGHTS.get(issue.severity, 1)
    return round((weight + _user_impact_bonus(issue)) * (3 - _effort_estimate(issue)))


def categorize_issue(issue: Issue) -> str:
    """Assign the first matching category label."""
    for category, keywords in CATEGORY_KEYWORDS:
        if _matches(issue, keywords):
            return category
    return OTHER_CATEGORY


def count_categories(issues: Iterable[Issue]) -> dict[str, int]:
    """Counts of the categories that occur, in fixed category order."""
    counts = Counter(issue.category or categorize_issue(issue) for issue in issues)
    order = [category for category, _ in CATEGORY_KEYWORDS] + [OTHER_CATEGORY]
    return {category: counts[category] for category in order if counts[category]}


def count_severities(issues: Iterable[Issue]) -> dict[str, int]:
    counts = {severity: 0 for severity in SEVERITIES}
    for issue in issues:
        counts[issue.severity] = counts.get(issue.severity, 0) + 1
    return counts


def overall_score(severity_counts: Mapping[str, int]) -> int:
    """Start at 100, subtract weighted severity counts, clamp to [0, 100]."""
    penalty = sum(
        SEVERITY_PENALTIES[severity] * severity_counts.get(severity, 0)
        for severity in SEVERITY_PENALTIES
    )
    return max(0, min(100, 100 - penalty))


def wcag_coverage(
    issues: Iterable[Issue],
    reference: frozenset[str] = REFERENCE_CRITERIA,
) -> dict[str, int]:
    """Share of reference criteria cited by at least one issue."""
    cited = {ref for issue in issues for ref in issue.wcag_refs}
    covered = len(cited & reference)
    total = len(reference)
    percentage = round(100 * covered / total) if total else 0
    return {"total": total, "covered": covered, "percentage": percentage}


def score(issues: Sequence[Issue]) -> ScoreReport:
    """Annotate and rank deduplicated issues and compute aggregates.

    Issues are ordered by descending priority; ``sorted`` is stable so
    discovery order breaks ties.
    """
    annotated = [issue.annotate(priority_score(issue), categorize_issue(issue)) for issue in issues]
    ranked = tuple(sorted(annotated, key=lambda issue: -(issue.priority or 0)))
    severity_counts = count_severities(ranked)
    return ScoreReport(
        issues=ranked,
        overall_score=overall_score(severity_counts),
        severity_counts=severity_counts,
        category_counts=count_categories(ranked),
        wcag_coverage=wcag_coverage(ranked),
    )


def next_steps(category_counts: Mapping[str, int]) -> str:
    """Suggest a remediation focus for the category with the most issues."""
    ranked = sorted(category_counts.items(), key=lambda item: -item[1])
    if not ranked:
        return NO_ISSUES_NEXT_STEP
    top_category = ranked[0][0]
    focus = NEXT_STEP_FOCUS.get(top_category)
    if focus is None:
        return (
            f"Address {top_category.lower()} issues first, "
            "as they represent the highest impact area."
        )
    return (
        f"Focus sprint on {focus.lower()}. "
        f"Consider implementing automated testing for {top_category.lower()} issues."
    )
