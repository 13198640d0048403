"""CLI entry point for the accessibility scanner."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from auditor.engine import perform_scan
from auditor.errors import ScanError
from auditor.wcag import criterion_url, describe_criterion
from models import SEVERITIES


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the command-line parser."""
    parser = argparse.ArgumentParser(description="Scan a web page for WCAG accessibility issues")
    parser.add_argument("--url", required=True, help="http(s) URL of the page to scan")
    parser.add_argument(
        "--format",
        choices=("json", "table"),
        default="table",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--output",
        help="Optional file path to write output (overwrites existing file)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose debug output",
    )
    return parser


def configure_logging(verbose: bool) -> None:
    """Configure loguru output for CLI messages."""
    logger.remove()
    logger.add(
        sys.stdout,
        level="DEBUG" if verbose else "INFO",
        format="{message}",
        filter=lambda record: record["level"].name in {"INFO", "DEBUG"},
    )
    logger.add(sys.stderr, level="WARNING", format="{message}")


def format_json_output(result: dict[str, Any]) -> str:
    """Render scan result as pretty JSON."""
    return json.dumps(result, indent=2)


def _build_aligned_table(rows: list[list[str]]) -> list[str]:
    """Return table rows with simple aligned columns."""
    if not rows:
        return []

    column_widths = [0] * len(rows[0])
    for row in rows:
        for index, value in enumerate(row):
            column_widths[index] = max(column_widths[index], len(value))

    return [
        " | ".join(value.ljust(column_widths[index]) for index, value in enumerate(row))
        for row in rows
    ]


def _single_line(text: str) -> str:
    return " ".join(str(text).split())


def _cited_criteria(issues: list[dict[str, Any]]) -> list[str]:
    cited: dict[str, None] = {}
    for issue in issues:
        for ref in issue.get("wcagRefs", []):
            cited.setdefault(ref, None)
    return sorted(cited, key=lambda ref: tuple(int(part) for part in ref.split(".")))


def format_table_output(result: dict[str, Any]) -> str:
    """Render scan result as a human-readable table."""
    severity_counts = result.get("severityCounts", {})
    coverage = result.get("wcagCoverage", {})
    issues = result.get("issues", [])

    table_rows: list[list[str]] = [
        ["PRIORITY", "SEVERITY", "RULE", "WCAG", "SELECTOR", "SOURCE", "MESSAGE"],
    ]
    for issue in issues:
        table_rows.append(
            [
                str(issue.get("priority", "")),
                str(issue.get("severity", "")),
                str(issue.get("ruleId", "")),
                ", ".join(issue.get("wcagRefs", [])) or "-",
                str(issue.get("selector", "")),
                str(issue.get("source", "")),
                _single_line(issue.get("message", "")),
            ]
        )

    lines = [
        "=== Scan Summary ===",
        f"URL: {result.get('url', '')}",
        f"Scanned at: {result.get('timestamp', '')}",
        f"Strategy: {result.get('strategyUsed', '')}",
        f"Score: {result.get('overallScore', 0)}/100",
        f"Issues: {result.get('totalIssues', 0)}",
        "Severity: "
        + ", ".join(f"{severity} {severity_counts.get(severity, 0)}" for severity in SEVERITIES),
        (
            f"WCAG coverage: {coverage.get('covered', 0)}/{coverage.get('total', 0)} "
            f"({coverage.get('percentage', 0)}%)"
        ),
    ]
    if result.get("note"):
        lines.append(f"Note: {result['note']}")
    if result.get("nextSteps"):
        lines.append(f"Next steps: {result['nextSteps']}")

    lines.extend(["", "=== Issues ===", *_build_aligned_table(table_rows)])

    cited = _cited_criteria(issues)
    if cited:
        lines.extend(["", "=== WCAG criteria cited ==="])
        for ref in cited:
            url = criterion_url(ref)
            lines.append(f"{describe_criterion(ref)} {url}" if url else describe_criterion(ref))

    return "\n".join(lines)


def write_output_file(output_path: str, content: str) -> None:
    """Write rendered content to an output file, overwriting if it exists."""
    Path(output_path).write_text(f"{content}\n", encoding="utf-8")


def main() -> int:
    """Run the scanner CLI."""
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(verbose=args.verbose)

    if args.verbose:
        logger.debug(f"[DEBUG] Starting scan for: {args.url}")

    try:
        scan_result = perform_scan(args.url)
    except ScanError as exc:
        logger.error(f"Error: {exc.kind}: {exc.message}")
        for attempt in exc.attempted_strategies:
            logger.error(f"  - {attempt.name}: {attempt.failure_reason}")
        return 1
    except RuntimeError as exc:
        logger.error(f"Error: scan failed: {exc}")
        return 1

    result = scan_result.to_dict()
    if args.format == "json":
        rendered_output = format_json_output(result)
    else:
        rendered_output = format_table_output(result)

    logger.info(rendered_output)

    if args.output:
        try:
            write_output_file(args.output, rendered_output)
        except OSError as exc:
            logger.error(f"Error: failed to write output file '{args.output}': {exc}")
            return 1
        if args.verbose:
            logger.debug(f"[DEBUG] Wrote output to: {args.output}")

    return 2 if scan_result.total_issues > 0 else 0


if __name__ == "__main__":
    raise SystemExit(main())
