"""Shared pytest fixtures."""

import sys
from collections.abc import Iterator

import pytest
from loguru import logger

A11Y_ENV_VARS = (
    "A11Y_SCAN_BUDGET_SECONDS",
    "A11Y_BROWSER_ENABLED",
    "A11Y_BROWSER_TIMEOUT_SECONDS",
    "A11Y_BROWSER_EXECUTABLE_PATH",
    "A11Y_BROWSER_WS_ENDPOINT",
    "A11Y_BROWSER_SERVICE_URL",
    "A11Y_REMOTE_TIMEOUT_SECONDS",
    "A11Y_FETCH_TIMEOUT_SECONDS",
    "A11Y_AXE_SCRIPT_PATH",
    "A11Y_AXE_TIMEOUT_SECONDS",
    "A11Y_STATIC_RULES_WITH_BROWSER",
    "A11Y_AUDITOR_URL",
    "A11Y_AUDITOR_TOKEN",
    "A11Y_AUDITOR_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Restore a plain stderr sink after tests that reconfigure loguru."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every scanner environment variable."""
    for name in A11Y_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
