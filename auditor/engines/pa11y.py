"""Best-effort client for an external pa11y-style auditing service."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import requests
from loguru import logger

from auditor.config import ScanConfig
from auditor.engines.base import RuleSelection
from auditor.errors import EngineError
from auditor.wcag import criteria_from_code
from models import Issue, IssueSource, Severity

if TYPE_CHECKING:
    from auditor.acquisition import Document

AUDIT_STANDARD = "WCAG2AA"
SEVERITY_BY_TYPE: dict[str, Severity] = {"error": "critical", "warning": "moderate"}


def issues_from_auditor_report(raw_issues: Iterable[dict[str, Any]]) -> list[Issue]:
    """Map auditor issues to issues; notices and unknown types are dropped."""
    issues: list[Issue] = []
    for raw in raw_issues or ():
        if not isinstance(raw, dict):
            logger.warning(f"Skipping malformed auditor issue: {raw!r}")
            continue
        severity = SEVERITY_BY_TYPE.get(str(raw.get("type") or "").lower())
        if severity is None:
            continue
        code = str(raw.get("code") or "pa11y-issue")
        issues.append(
            Issue(
                rule_id=code,
                selector=str(raw.get("selector") or "unknown"),
                wcag_refs=criteria_from_code(code),
                severity=severity,
                message=str(raw.get("message") or code),
                source="third-party-auditor",
            )
        )
    return issues


class ThirdPartyAuditorEngine:
    """Ask a configured auditing service to check the page URL."""

    name = "third-party-auditor"
    source: IssueSource = "third-party-auditor"
    requires_page = False

    def __init__(self, config: ScanConfig) -> None:
        self.config = config
        self.timeout_s = config.auditor_timeout_s

    def applies_to(self, document: Document) -> bool:
        return self.config.auditor_configured

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.auditor_token:
            headers["Authorization"] = f"Bearer {self.config.auditor_token}"
        return headers

    def run(
        self, document: Document, selection: RuleSelection, timeout_s: float | None = None
    ) -> list[Issue]:
        limit_s = self.timeout_s if timeout_s is None else min(self.timeout_s, timeout_s)
        if limit_s <= 0:
            raise EngineError("scan time budget exhausted")
        payload = {
            "url": document.url,
            "standard": AUDIT_STANDARD,
            "includeWarnings": True,
            "timeout": int(limit_s * 1000),
        }
        try:
            response = requests.post(
                str(self.config.auditor_url),
                json=payload,
                headers=self._headers(),
                timeout=limit_s,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as exc:
            raise EngineError(f"auditor request failed: {exc}") from exc
        except ValueError as exc:
            raise EngineError(f"auditor returned invalid JSON: {exc}") from exc

        if not isinstance(body, dict) or not isinstance(body.get("issues", []), list):
            raise EngineError("auditor returned an unexpected payload")
        issues = issues_from_auditor_report(body.get("issues") or [])
        logger.debug(f"Third-party auditor reported {len(issues)} issues")
        return issues
