"""Rule engine adapters."""

from auditor.engines.axe import DomRuleEngine, issues_from_axe_violations
from auditor.engines.base import DEFAULT_SELECTION, Analyzer, RuleSelection
from auditor.engines.pa11y import ThirdPartyAuditorEngine
from auditor.engines.static_rules import StaticHtmlRuleEngine

__all__ = [
    "DEFAULT_SELECTION",
    "Analyzer",
    "DomRuleEngine",
    "RuleSelection",
    "StaticHtmlRuleEngine",
    "ThirdPartyAuditorEngine",
    "issues_from_axe_violations",
]
