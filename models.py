"""Data models for accessibility scan results."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Literal

Severity = Literal["critical", "serious", "moderate", "minor"]
IssueSource = Literal["dom-rules", "static-rules", "static-structure", "third-party-auditor"]

SEVERITIES: tuple[Severity, ...] = ("critical", "serious", "moderate", "minor")
DEFAULT_SEVERITY: Severity = "moderate"


def normalize_severity(value: Any) -> Severity:
    """Map an engine impact value onto the severity scale."""
    text = str(value or "").strip().lower()
    if text in SEVERITIES:
        return text  # type: ignore[return-value]
    return DEFAULT_SEVERITY


@dataclass(frozen=True)
class Issue:
    """One normalized accessibility finding."""

    rule_id: str
    selector: str
    wcag_refs: tuple[str, ...]
    severity: Severity
    message: str
    source: IssueSource
    priority: int | None = None
    category: str | None = None

    @property
    def dedupe_key(self) -> tuple[str, str]:
        """Return key used for deduplication."""
        return (self.rule_id, self.selector)

    def annotate(self, priority: int, category: str) -> Issue:
        """Return a copy carrying priority and category."""
        return replace(self, priority=priority, category=category)

    def to_dict(self) -> dict[str, Any]:
        """Serialize issue to dictionary output."""
        return {
            "selector": self.selector,
            "ruleId": self.rule_id,
            "wcagRefs": list(self.wcag_refs),
            "severity": self.severity,
            "message": self.message,
            "source": self.source,
            "priority": self.priority,
            "category": self.category,
        }


@dataclass(frozen=True)
class AttemptRecord:
    """A document acquisition strategy that was tried and failed."""

    name: str
    failure_reason: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "failureReason": self.failure_reason}


@dataclass(frozen=True)
class EngineFailure:
    """An analyzer that failed and contributed no issues."""

    engine: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"engine": self.engine, "reason": self.reason}


@dataclass(frozen=True)
class ScanResult:
    """Aggregate result of one scan."""

    url: str
    timestamp: str
    issues: tuple[Issue, ...]
    overall_score: int
    severity_counts: dict[str, int]
    category_counts: dict[str, int]
    wcag_coverage: dict[str, int]
    strategy_used: str
    note: str | None = None
    attempted_strategies: tuple[AttemptRecord, ...] = ()
    source_counts: dict[str, int] = field(default_factory=dict)
    engine_failures: tuple[EngineFailure, ...] = ()
    page_info: dict[str, Any] = field(default_factory=dict)
    next_steps: str = ""

    @property
    def total_issues(self) -> int:
        return len(self.issues)

    def to_dict(self) -> dict[str, Any]:
        """Serialize scan result to dictionary output."""
        payload: dict[str, Any] = {
            "url": self.url,
            "timestamp": self.timestamp,
            "totalIssues": self.total_issues,
            "issues": [issue.to_dict() for issue in self.issues],
            "overallScore": self.overall_score,
            "severityCounts": dict(self.severity_counts),
            "categoryCounts": dict(self.category_counts),
            "wcagCoverage": dict(self.wcag_coverage),
            "strategyUsed": self.strategy_used,
        }
        if self.note:
            payload["note"] = self.note
        payload.update(
            {
                "attemptedStrategies": [attempt.to_dict() for attempt in self.attempted_strategies],
                "sourceCounts": dict(self.source_counts),
                "engineFailures": [failure.to_dict() for failure in self.engine_failures],
                "pageInfo": dict(self.page_info),
                "nextSteps": self.next_steps,
            }
        )
        return payload
