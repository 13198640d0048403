"""axe-core rule engine running inside a rendered page, plus the axe result mapper."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger
from playwright.sync_api import Error as PlaywrightError

from auditor.acquisition import Deadline
from auditor.config import ScanConfig
from auditor.engines.base import RuleSelection
from auditor.errors import EngineError
from auditor.wcag import criteria_from_axe_tags
from models import Issue, IssueSource, normalize_severity

if TYPE_CHECKING:
    from auditor.acquisition import Document

AXE_SCRIPT_URLS = (
    "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.10.3/axe.min.js",
    "https://cdn.jsdelivr.net/npm/axe-core@4.10.3/axe.min.js",
    "https://unpkg.com/axe-core@4.10.3/axe.min.js",
)
AXE_LOAD_ATTEMPTS = 3
AXE_LOAD_TIMEOUT_MS = 5000

# Rules unknown to the injected axe build are dropped so axe.run does not reject the options.
# page.evaluate has no timeout of its own, so the run races a timer.
AXE_RUN_SCRIPT = """
async ({ options, timeoutMs }) => {
    const known = new Set(axe.getRules().map((rule) => rule.ruleId));
    const rules = {};
    for (const [ruleId, setting] of Object.entries(options.rules || {})) {
        if (known.has(ruleId)) {
            rules[ruleId] = setting;
        }
    }
    let timer;
    const expired = new Promise((_, reject) => {
        timer = setTimeout(() => reject(new Error(`axe.run timed out after ${timeoutMs} ms`)), timeoutMs);
    });
    try {
        return await Promise.race([
            axe.run(document, {
                runOnly: options.runOnly,
                rules: rules,
                resultTypes: ["violations"],
            }),
            expired,
        ]);
    } finally {
        clearTimeout(timer);
    }
}
"""


def _remaining_ms(deadline: Deadline) -> int:
    remaining_ms = deadline.remaining_ms()
    if remaining_ms <= 0:
        raise EngineError(f"timeout after {deadline.seconds:g}s")
    return remaining_ms


def _flatten_target(target: Any) -> list[str]:
    """axe targets nest lists for iframes and shadow roots."""
    if isinstance(target, (list, tuple)):
        parts: list[str] = []
        for item in target:
            parts.extend(_flatten_target(item))
        return parts
    if target is None:
        return []
    return [str(target)]


def issues_from_axe_violations(
    violations: Iterable[dict[str, Any]],
    source: IssueSource,
) -> list[Issue]:
    """Map axe-shaped violations to issues, one issue per affected node."""
    issues: list[Issue] = []
    for violation in violations or ():
        try:
            rule_id = str(violation["id"])
            wcag_refs = criteria_from_axe_tags(violation.get("tags") or ())
            fallback_message = violation.get("help") or violation.get("description") or rule_id
            mapped = [
                Issue(
                    rule_id=rule_id,
                    selector=", ".join(_flatten_target(node.get("target"))) or "unknown",
                    wcag_refs=wcag_refs,
                    severity=normalize_severity(node.get("impact") or violation.get("impact")),
                    message=str(node.get("failureSummary") or fallback_message),
                    source=source,
                )
                for node in violation.get("nodes") or ()
            ]
        except (KeyError, TypeError, AttributeError) as exc:
            logger.warning(f"Skipping malformed {source} violation: {exc!r}")
            continue
        issues.extend(mapped)
    return issues


class DomRuleEngine:
    """Run axe-core against the live, script-executed page."""

    name = "axe-core"
    source: IssueSource = "dom-rules"
    requires_page = True

    def __init__(self, config: ScanConfig) -> None:
        self.config = config
        self.timeout_s = config.axe_timeout_s

    def applies_to(self, document: Document) -> bool:
        return document.rendered

    def _script_sources(self) -> list[dict[str, str]]:
        sources: list[dict[str, str]] = []
        if self.config.axe_script_path and Path(self.config.axe_script_path).is_file():
            sources.append({"path": self.config.axe_script_path})
        sources.extend({"url": url} for url in AXE_SCRIPT_URLS)
        return sources

    def _inject(self, page: Any, deadline: Deadline) -> None:
        for source in self._script_sources():
            page.set_default_timeout(_remaining_ms(deadline))
            try:
                page.add_script_tag(**source)
            except PlaywrightError as exc:
                logger.debug(f"axe-core injection from {source} failed: {exc}")
                continue
            for attempt in range(1, AXE_LOAD_ATTEMPTS + 1):
                try:
                    page.wait_for_function(
                        "() => typeof window.axe !== 'undefined'",
                        timeout=min(AXE_LOAD_TIMEOUT_MS, _remaining_ms(deadline)),
                    )
                except PlaywrightError:
                    logger.debug(f"axe-core load attempt {attempt} failed, retrying")
                    continue
                logger.debug(f"axe-core injected from {source}")
                return
        raise EngineError("axe-core could not be injected into the page")

    def run(
        self, document: Document, selection: RuleSelection, timeout_s: float | None = None
    ) -> list[Issue]:
        page = document.page
        if page is None:
            raise EngineError("axe-core requires a rendered page")
        deadline = Deadline(self.timeout_s if timeout_s is None else min(self.timeout_s, timeout_s))
        self._inject(page, deadline)
        arguments = {"options": selection.to_axe_options(), "timeoutMs": _remaining_ms(deadline)}
        try:
            results = page.evaluate(AXE_RUN_SCRIPT, arguments)
        except PlaywrightError as exc:
            raise EngineError(f"axe-core run failed: {exc}") from exc
        if not isinstance(results, dict):
            raise EngineError(f"axe-core returned unexpected result: {type(results).__name__}")
        issues = issues_from_axe_violations(results.get("violations") or [], self.source)
        logger.debug(f"axe-core reported {len(issues)} issues")
        return issues
