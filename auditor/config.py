"""Configuration: enabled strategies and engines, timeouts, endpoints."""

from __future__ import annotations

import os
from dataclasses import dataclass

RULE_TAGS = ("wcag2a", "wcag2aa", "wcag21a", "wcag21aa")
ENABLED_RULES = (
    "color-contrast",
    "document-title",
    "html-has-lang",
    "image-alt",
    "link-name",
    "list",
    "listitem",
    "page-has-heading-one",
    "region",
    "landmark-one-main",
    "landmark-unique",
    "landmark-no-duplicate-main",
    "landmark-no-duplicate-banner",
    "landmark-no-duplicate-contentinfo",
    "link-name-clarity",
    "no-positive-tabindex",
    "aria-expanded-boolean",
    "decorative-image-alt-text",
    "form-field-labels",
    "heading-order",
)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}
VIEWPORT = {"width": 1280, "height": 720}

STANDARD_LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
)
MINIMAL_LAUNCH_ARGS = ("--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage")


@dataclass(frozen=True)
class ScanConfig:
    scan_budget_s: float = 90.0
    browser_enabled: bool = True
    browser_timeout_s: float = 30.0
    browser_executable_path: str | None = None
    browser_ws_endpoint: str | None = None
    browser_service_url: str | None = None
    remote_timeout_s: float = 30.0
    fetch_timeout_s: float = 10.0
    axe_script_path: str | None = None
    axe_timeout_s: float = 30.0
    static_rules_with_browser: bool = False
    auditor_url: str | None = None
    auditor_token: str | None = None
    auditor_timeout_s: float = 30.0

    @property
    def remote_browser_configured(self) -> bool:
        return bool(self.browser_ws_endpoint or self.browser_service_url)

    @property
    def auditor_configured(self) -> bool:
        return bool(self.auditor_url)


def _env_text(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


def _env_seconds(name: str, default: float) -> float:
    raw = _env_text(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be greater than zero, got {raw!r}")
    return value


def _env_flag(name: str, default: bool) -> bool:
    raw = _env_text(name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise RuntimeError(f"{name} must be a boolean (true/false), got {raw!r}")


def load_config() -> ScanConfig:
    """Load deployment configuration from A11Y_* environment variables.

    Unset variables keep their defaults. Malformed values fail closed.
    """
    defaults = ScanConfig()
    return ScanConfig(
        scan_budget_s=_env_seconds("A11Y_SCAN_BUDGET_SECONDS", defaults.scan_budget_s),
        browser_enabled=_env_flag("A11Y_BROWSER_ENABLED", defaults.browser_enabled),
        browser_timeout_s=_env_seconds("A11Y_BROWSER_TIMEOUT_SECONDS", defaults.browser_timeout_s),
        browser_executable_path=_env_text("A11Y_BROWSER_EXECUTABLE_PATH"),
        browser_ws_endpoint=_env_text("A11Y_BROWSER_WS_ENDPOINT"),
        browser_service_url=_env_text("A11Y_BROWSER_SERVICE_URL"),
        remote_timeout_s=_env_seconds("A11Y_REMOTE_TIMEOUT_SECONDS", defaults.remote_timeout_s),
        fetch_timeout_s=_env_seconds("A11Y_FETCH_TIMEOUT_SECONDS", defaults.fetch_timeout_s),
        axe_script_path=_env_text("A11Y_AXE_SCRIPT_PATH"),
        axe_timeout_s=_env_seconds("A11Y_AXE_TIMEOUT_SECONDS", defaults.axe_timeout_s),
        static_rules_with_browser=_env_flag(
            "A11Y_STATIC_RULES_WITH_BROWSER", defaults.static_rules_with_browser
        ),
        auditor_url=_env_text("A11Y_AUDITOR_URL"),
        auditor_token=_env_text("A11Y_AUDITOR_TOKEN"),
        auditor_timeout_s=_env_seconds("A11Y_AUDITOR_TIMEOUT_SECONDS", defaults.auditor_timeout_s),
    )
