"""Scan orchestration: acquire, analyze, deduplicate, score.

Limitations:
- Deduplication is syntactic on (rule id, selector); the same defect reported
  under different rule ids by different engines is kept twice
- Static fetch cannot see script-rendered content
- One page per scan, no crawling
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from time import monotonic, perf_counter
from urllib.parse import urlparse

from loguru import logger

from auditor.acquisition import (
    AcquisitionStrategy,
    Document,
    ScanBudget,
    acquire_document,
    build_strategies,
)
from auditor.config import ScanConfig, load_config
from auditor.detectors import StructureAnalyzer, collect_page_info
from auditor.engines import (
    DEFAULT_SELECTION,
    Analyzer,
    DomRuleEngine,
    RuleSelection,
    StaticHtmlRuleEngine,
    ThirdPartyAuditorEngine,
)
from auditor.errors import ENGINE_UNAVAILABLE, INVALID_INPUT, ScanError
from auditor.scoring import next_steps, score
from models import EngineFailure, Issue, ScanResult

ALLOWED_SCHEMES = {"http", "https"}


def validate_url(url: str) -> str:
    """Return the trimmed URL or raise ScanError(InvalidInput)."""
    if not isinstance(url, str) or not url.strip():
        raise ScanError(INVALID_INPUT, "A URL is required")
    candidate = url.strip()
    try:
        parsed = urlparse(candidate)
        hostname = parsed.hostname
    except ValueError as exc:
        raise ScanError(INVALID_INPUT, f"Malformed URL {candidate!r}: {exc}") from exc
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise ScanError(INVALID_INPUT, f"URL must use http or https: {candidate}")
    if not hostname:
        raise ScanError(INVALID_INPUT, f"URL has no host: {candidate}")
    return candidate


def deduplicate_issues(issues: Sequence[Issue]) -> list[Issue]:
    """Deduplicate issues by rule id and selector, keeping the first occurrence."""
    unique_issues: dict[tuple[str, str], Issue] = {}
    for issue in issues:
        if issue.dedupe_key not in unique_issues:
            unique_issues[issue.dedupe_key] = issue
    return list(unique_issues.values())


def build_analyzers(config: ScanConfig) -> list[Analyzer]:
    """Return analyzers in merge order."""
    return [
        DomRuleEngine(config),
        StaticHtmlRuleEngine(config),
        StructureAnalyzer(),
        ThirdPartyAuditorEngine(config),
    ]


def _record_failure(analyzer: Analyzer, reason: str) -> EngineFailure:
    logger.warning(f"Analyzer {analyzer.name} failed and contributed no issues: {reason}")
    return EngineFailure(engine=analyzer.name, reason=reason)


def _time_limit(analyzer: Analyzer, budget: ScanBudget) -> float:
    """The analyzer's own timeout, capped by what is left of the scan budget."""
    remaining = budget.remaining()
    return remaining if analyzer.timeout_s is None else min(analyzer.timeout_s, remaining)


def _run_analyzers(
    document: Document,
    analyzers: Sequence[Analyzer],
    selection: RuleSelection,
    budget: ScanBudget,
) -> tuple[list[Issue], list[EngineFailure]]:
    """Run analyzers and merge their issues in analyzer order.

    Analyzers that do not touch the live page run in a thread pool; page-bound
    analyzers run on the calling thread, which owns the Playwright objects.
    Every analyzer is bounded by the scan budget.
    """
    outcomes: dict[int, list[Issue]] = {}
    failures: dict[int, EngineFailure] = {}
    pooled = [(index, analyzer) for index, analyzer in enumerate(analyzers) if not analyzer.requires_page]

    document.soup  # parse once before worker threads read it
    executor = ThreadPoolExecutor(max_workers=max(1, len(pooled)), thread_name_prefix="analyzer")
    try:
        started_at = monotonic()
        limits = {index: _time_limit(analyzer, budget) for index, analyzer in pooled}
        futures: dict[int, Future[list[Issue]]] = {
            index: executor.submit(analyzer.run, document, selection, limits[index])
            for index, analyzer in pooled
        }

        for index, analyzer in enumerate(analyzers):
            if not analyzer.requires_page:
                continue
            limit_s = _time_limit(analyzer, budget)
            logger.debug(f"Running analyzer {analyzer.name} (limit {limit_s:.3g}s)")
            try:
                outcomes[index] = list(analyzer.run(document, selection, limit_s))
            except Exception as exc:
                failures[index] = _record_failure(analyzer, str(exc) or type(exc).__name__)

        for index, analyzer in pooled:
            limit_s = limits[index]
            remaining = max(0.0, started_at + limit_s - monotonic())
            try:
                outcomes[index] = list(futures[index].result(timeout=remaining))
            except FutureTimeoutError:
                failures[index] = _record_failure(analyzer, f"timeout after {limit_s:.3g}s")
            except Exception as exc:
                failures[index] = _record_failure(analyzer, str(exc) or type(exc).__name__)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    issues: list[Issue] = []
    for index, analyzer in enumerate(analyzers):
        found = outcomes.get(index, [])
        if index in outcomes:
            logger.debug(f"Analyzer {analyzer.name} reported {len(found)} issues")
        issues.extend(found)
    return issues, [failures[index] for index in sorted(failures)]


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _compose_note(strategy_note: str | None, failures: Sequence[EngineFailure]) -> str | None:
    parts = [strategy_note] if strategy_note else []
    if failures:
        names = ", ".join(failure.engine for failure in failures)
        parts.append(f"Some analyzers failed and contributed no issues: {names}.")
    return " ".join(parts) or None


def perform_scan(
    url: str,
    config: ScanConfig | None = None,
    *,
    strategies: Sequence[AcquisitionStrategy] | None = None,
    analyzers: Sequence[Analyzer] | None = None,
    selection: RuleSelection = DEFAULT_SELECTION,
) -> ScanResult:
    """Scan one page and return the scored result.

    Raises ScanError with kind InvalidInput, AcquisitionFailed or
    EngineUnavailable.
    """
    started_at = perf_counter()
    target_url = validate_url(url)
    config = config or load_config()
    strategies = build_strategies(config) if strategies is None else strategies
    analyzers = build_analyzers(config) if analyzers is None else analyzers
    timestamp = _utc_timestamp()

    budget = ScanBudget(config.scan_budget_s)
    with acquire_document(target_url, strategies, budget) as acquisition:
        document = acquisition.document
        if acquisition.degraded:
            logger.warning(f"Degraded scan of {target_url}: {acquisition.note}")
        applicable = [analyzer for analyzer in analyzers if analyzer.applies_to(document)]
        if not applicable:
            raise ScanError(
                ENGINE_UNAVAILABLE,
                f"No analyzer can inspect a document acquired with {document.strategy}",
                acquisition.failed_attempts,
            )
        logger.debug(f"Applicable analyzers: {', '.join(analyzer.name for analyzer in applicable)}")

        issues, failures = _run_analyzers(document, applicable, selection, budget)
        if len(failures) == len(applicable):
            raise ScanError(
                ENGINE_UNAVAILABLE,
                "Every analyzer failed: "
                + "; ".join(f"{failure.engine}: {failure.reason}" for failure in failures),
                acquisition.failed_attempts,
            )
        page_info = collect_page_info(document.soup)

    report = score(deduplicate_issues(issues))
    duration_ms = int((perf_counter() - started_at) * 1000)
    logger.debug(
        f"Scanned {target_url} with {document.strategy}: "
        f"{len(report.issues)} issues, score {report.overall_score} ({duration_ms} ms)"
    )

    return ScanResult(
        url=target_url,
        timestamp=timestamp,
        issues=report.issues,
        overall_score=report.overall_score,
        severity_counts=report.severity_counts,
        category_counts=report.category_counts,
        wcag_coverage=report.wcag_coverage,
        strategy_used=document.strategy,
        note=_compose_note(acquisition.note, failures),
        attempted_strategies=acquisition.failed_attempts,
        source_counts=dict(Counter(issue.source for issue in issues)),
        engine_failures=tuple(failures),
        page_info=page_info,
        next_steps=next_steps(report.category_counts),
    )
