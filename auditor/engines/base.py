"""Shared analyzer surface and rule selection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from auditor.config import ENABLED_RULES, RULE_TAGS
from models import Issue, IssueSource

if TYPE_CHECKING:
    from auditor.acquisition import Document


@dataclass(frozen=True)
class RuleSelection:
    """Canonical WCAG rule set every engine is asked to run."""

    tags: tuple[str, ...] = RULE_TAGS
    rules: tuple[str, ...] = ENABLED_RULES

    def selects(self, rule_id: str, rule_tags: tuple[str, ...]) -> bool:
        return rule_id in self.rules or bool(set(rule_tags) & set(self.tags))

    def to_axe_options(self) -> dict[str, Any]:
        return {
            "runOnly": {"type": "tag", "values": list(self.tags)},
            "rules": {rule_id: {"enabled": True} for rule_id in self.rules},
        }


DEFAULT_SELECTION = RuleSelection()


class Analyzer(Protocol):
    name: str
    source: IssueSource
    requires_page: bool
    timeout_s: float | None

    def applies_to(self, document: Document) -> bool: ...

    def run(
        self, document: Document, selection: RuleSelection, timeout_s: float | None = None
    ) -> list[Issue]:
        """Analyze the document; ``timeout_s`` is the time left for this analyzer, if bounded."""
