"""Tests for CLI argument parsing and top-level CLI behavior."""

import json
import sys
from pathlib import Path

import pytest

import main as cli_main
from auditor.errors import ACQUISITION_FAILED, ScanError
from models import AttemptRecord, Issue, ScanResult

SAMPLE_RESULT = ScanResult(
    url="https://example.com/",
    timestamp="2026-01-01T00:00:00.000Z",
    issues=(
        Issue(
            rule_id="image-alt",
            selector="#main > img",
            wcag_refs=("1.1.1",),
            severity="critical",
            message="Image missing alt attribute",
            source="static-structure",
            priority=10,
            category="Media & Images",
        ),
        Issue(
            rule_id="link-name-clarity",
            selector="#main > a",
            wcag_refs=("2.4.4",),
            severity="moderate",
            message="Link text is vague\nand not descriptive",
            source="static-rules",
            priority=4,
            category="Links & Navigation",
        ),
    ),
    overall_score=88,
    severity_counts={"critical": 1, "serious": 0, "moderate": 1, "minor": 0},
    category_counts={"Media & Images": 1, "Links & Navigation": 1},
    wcag_coverage={"total": 61, "covered": 2, "percentage": 3},
    strategy_used="static-fetch",
    note="The page was fetched without a browser.",
)

CLEAN_RESULT = ScanResult(
    url="https://example.com/",
    timestamp="2026-01-01T00:00:00.000Z",
    issues=(),
    overall_score=100,
    severity_counts={"critical": 0, "serious": 0, "moderate": 0, "minor": 0},
    category_counts={},
    wcag_coverage={"total": 61, "covered": 0, "percentage": 0},
    strategy_used="rendered-browser",
)


def _run_main(monkeypatch: pytest.MonkeyPatch, args: list[str]) -> int:
    """Run CLI entrypoint with a mocked argv."""
    monkeypatch.setattr(sys, "argv", ["main.py", *args])
    return cli_main.main()


def _stub_scan(monkeypatch: pytest.MonkeyPatch, result: ScanResult) -> None:
    monkeypatch.setattr(cli_main, "perform_scan", lambda url: result)


def test_missing_required_url_argument_exits(monkeypatch: pytest.MonkeyPatch) -> None:
    """Verify argparse exits when --url is missing."""
    with pytest.raises(SystemExit) as exc_info:
        _run_main(monkeypatch, [])

    assert exc_info.value.code == 2


def test_invalid_url_returns_graceful_error(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Verify a non-http URL returns exit code 1 with a clear stderr message."""
    exit_code = _run_main(monkeypatch, ["--url", "ftp://example.com"])
    captured = capsys.readouterr()

    assert exit_code == 1
    assert "InvalidInput" in captured.err


def test_json_output_from_cli_is_parseable(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Verify --format json prints the serialised result and exits 2 on issues."""
    _stub_scan(monkeypatch, SAMPLE_RESULT)

    exit_code = _run_main(monkeypatch, ["--url", "https://example.com/", "--format", "json"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 2
    assert payload["totalIssues"] == 2
    assert payload["overallScore"] == 88
    assert payload["issues"][0]["ruleId"] == "image-alt"
    assert payload["note"] == "The page was fetched without a browser."


def test_clean_scan_exits_zero(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Verify a scan without issues exits 0."""
    _stub_scan(monkeypatch, CLEAN_RESULT)

    exit_code = _run_main(monkeypatch, ["--url", "https://example.com/"])
    captured = capsys.readouterr()

    assert exit_code == 0
    assert "Score: 100/100" in captured.out


def test_table_output_lists_issues_and_cited_criteria(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Verify table output has summary, issue columns and criterion titles."""
    _stub_scan(monkeypatch, SAMPLE_RESULT)

    exit_code = _run_main(monkeypatch, ["--url", "https://example.com/", "--format", "table"])
    out = capsys.readouterr().out

    assert exit_code == 2
    assert "=== Scan Summary ===" in out
    assert "Strategy: static-fetch" in out
    assert "Note: The page was fetched without a browser." in out
    for column in ("PRIORITY", "SEVERITY", "RULE", "WCAG", "SELECTOR", "SOURCE", "MESSAGE"):
        assert column in out
    assert "Link text is vague and not descriptive" in out
    assert "=== WCAG criteria cited ===" in out
    assert "1.1.1 Non-text Content (A)" in out
    assert "2.4.4 Link Purpose (In Context) (A)" in out


def test_scan_error_lists_attempted_strategies(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Verify acquisition failure exits 1 and reports every attempt on stderr."""

    def failing_scan(url: str) -> ScanResult:
        raise ScanError(
            ACQUISITION_FAILED,
            "Unable to acquire a document",
            (
                AttemptRecord("rendered-browser", "browser launch failed: no sandbox"),
                AttemptRecord("static-fetch", "timeout after 10s"),
            ),
        )

    monkeypatch.setattr(cli_main, "perform_scan", failing_scan)

    exit_code = _run_main(monkeypatch, ["--url", "https://example.com/"])
    err = capsys.readouterr().err

    assert exit_code == 1
    assert "AcquisitionFailed" in err
    assert "rendered-browser: browser launch failed: no sandbox" in err
    assert "static-fetch: timeout after 10s" in err


def test_output_file_is_written(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
) -> None:
    """Verify --output writes the rendered report."""
    _stub_scan(monkeypatch, SAMPLE_RESULT)
    output_path = tmp_path / "report.json"

    exit_code = _run_main(
        monkeypatch,
        ["--url", "https://example.com/", "--format", "json", "--output", str(output_path)],
    )
    capsys.readouterr()

    assert exit_code == 2
    assert json.loads(output_path.read_text(encoding="utf-8"))["url"] == "https://example.com/"


def test_unwritable_output_returns_error(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
) -> None:
    """Verify an output write failure exits 1."""
    _stub_scan(monkeypatch, SAMPLE_RESULT)

    exit_code = _run_main(
        monkeypatch,
        ["--url", "https://example.com/", "--output", str(tmp_path / "missing" / "report.txt")],
    )
    captured = capsys.readouterr()

    assert exit_code == 1
    assert "failed to write output file" in captured.err
