"""Document acquisition strategies and the ordered fallback chain.

Strategies are tried strictly one after another:

1. rendered-browser: local headless Chromium through Playwright
2. remote-browser-service: Chromium hosted by an out-of-process service
3. static-fetch: plain HTTP GET, no script execution

Every strategy is a context manager so the browser it owns is closed on every
exit path.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from functools import cached_property
from time import monotonic
from typing import Any, Protocol

import requests
from bs4 import BeautifulSoup
from loguru import logger
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from auditor.config import (
    MINIMAL_LAUNCH_ARGS,
    REQUEST_HEADERS,
    STANDARD_LAUNCH_ARGS,
    USER_AGENT,
    VIEWPORT,
    ScanConfig,
)
from auditor.errors import ACQUISITION_FAILED, AcquisitionError, ScanError
from models import AttemptRecord

RENDERED_BROWSER = "rendered-browser"
REMOTE_BROWSER_SERVICE = "remote-browser-service"
STATIC_FETCH = "static-fetch"

DEGRADED_NOTES = {
    REMOTE_BROWSER_SERVICE: (
        "Local browser launch was unavailable; the page was rendered by a remote browser service."
    ),
    STATIC_FETCH: (
        "The page was fetched without a browser: dynamic (JavaScript-rendered) content "
        "was not analyzed and results may be incomplete."
    ),
}


@dataclass
class Document:
    """A queryable page. ``page`` is the live Playwright page for rendered strategies."""

    url: str
    html: str
    strategy: str
    page: Any = field(default=None, repr=False)

    @property
    def rendered(self) -> bool:
        return self.page is not None

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "html.parser")


class AcquisitionStrategy(Protocol):
    name: str
    timeout_s: float

    def is_configured(self) -> bool: ...

    def acquire(self, url: str, timeout_s: float): ...


def _seconds(value: float) -> str:
    return f"{value:g}s"


class Deadline:
    """A monotonic wall-clock deadline ``seconds`` from now."""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        self._expires_at = monotonic() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - monotonic())

    def remaining_ms(self) -> int:
        """Milliseconds left, or 0 once expired. Playwright reads a 0 timeout as unbounded."""
        remaining = self.remaining()
        return max(1, int(remaining * 1000)) if remaining > 0 else 0


def _remaining_ms(deadline: Deadline) -> int:
    remaining_ms = deadline.remaining_ms()
    if remaining_ms <= 0:
        raise AcquisitionError(f"timeout after {_seconds(deadline.seconds)}: strategy time limit reached")
    return remaining_ms


def _release(browser: Any, playwright: Any) -> None:
    """Close the browser and stop the driver; both may already be gone."""
    if browser is not None:
        try:
            browser.close()
        except PlaywrightError as exc:
            logger.debug(f"Browser close failed: {exc}")
    try:
        playwright.stop()
    except PlaywrightError as exc:
        logger.debug(f"Playwright stop failed: {exc}")


class RenderedBrowserStrategy:
    """Render the page in a locally launched headless Chromium."""

    name = RENDERED_BROWSER

    def __init__(self, config: ScanConfig) -> None:
        self.config = config
        self.timeout_s = config.browser_timeout_s

    def is_configured(self) -> bool:
        return self.config.browser_enabled

    def _launch_profiles(self) -> list[tuple[str, dict[str, Any]]]:
        profiles: list[tuple[str, dict[str, Any]]] = [
            ("standard", {"args": list(STANDARD_LAUNCH_ARGS)}),
            ("minimal", {"args": list(MINIMAL_LAUNCH_ARGS)}),
        ]
        if self.config.browser_executable_path:
            profiles.append(
                (
                    "executable-path",
                    {
                        "args": ["--no-sandbox", "--disable-setuid-sandbox"],
                        "executable_path": self.config.browser_executable_path,
                    },
                )
            )
        return profiles

    def _open_browser(self, playwright: Any, deadline: Deadline) -> Any:
        last_error: PlaywrightError | None = None
        for profile, options in self._launch_profiles():
            try:
                browser = playwright.chromium.launch(
                    headless=True, timeout=_remaining_ms(deadline), **options
                )
            except PlaywrightTimeoutError:
                raise
            except PlaywrightError as exc:
                logger.debug(f"Browser launch with {profile} profile failed: {exc}")
                last_error = exc
                continue
            logger.debug(f"Browser launched with {profile} profile")
            return browser
        raise AcquisitionError(f"browser launch failed: {last_error}")

    @contextmanager
    def acquire(self, url: str, timeout_s: float) -> Iterator[Document]:
        deadline = Deadline(timeout_s)
        try:
            playwright = sync_playwright().start()
        except PlaywrightError as exc:
            raise AcquisitionError(f"playwright unavailable: {exc}") from exc

        browser = None
        try:
            try:
                browser = self._open_browser(playwright, deadline)
                context = browser.new_context(viewport=VIEWPORT, user_agent=USER_AGENT)
                page = context.new_page()
                page.set_default_timeout(_remaining_ms(deadline))
                response = page.goto(url, wait_until="networkidle", timeout=_remaining_ms(deadline))
                if response is not None and response.status >= 400:
                    raise AcquisitionError(f"HTTP {response.status} while loading page")
                html = page.content()
            except PlaywrightTimeoutError as exc:
                raise AcquisitionError(f"timeout after {_seconds(timeout_s)}: {exc}") from exc
            except PlaywrightError as exc:
                raise AcquisitionError(f"browser error: {exc}") from exc
            yield Document(url=page.url or url, html=html, strategy=self.name, page=page)
        finally:
            _release(browser, playwright)


class RemoteBrowserServiceStrategy(RenderedBrowserStrategy):
    """Render the page in a browser hosted by an out-of-process service."""

    name = REMOTE_BROWSER_SERVICE

    def __init__(self, config: ScanConfig) -> None:
        super().__init__(config)
        self.timeout_s = config.remote_timeout_s

    def is_configured(self) -> bool:
        return self.config.remote_browser_configured

    def _resolve_endpoint(self, timeout_s: float) -> str:
        if self.config.browser_ws_endpoint:
            return self.config.browser_ws_endpoint

        service_url = f"{str(self.config.browser_service_url).rstrip('/')}/browser"
        try:
            response = requests.get(service_url, timeout=timeout_s)
            response.raise_for_status()
            payload = response.json()
        except requests.Timeout as exc:
            raise AcquisitionError(f"timeout after {_seconds(timeout_s)} contacting browser service") from exc
        except requests.RequestException as exc:
            raise AcquisitionError(f"browser service request failed: {exc}") from exc
        except ValueError as exc:
            raise AcquisitionError(f"browser service returned invalid JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise AcquisitionError(f"browser service returned unexpected payload: {payload!r}")
        endpoint = payload.get("wsEndpoint")
        if not payload.get("success", True) or not endpoint:
            detail = payload.get("error") or "no wsEndpoint in response"
            raise AcquisitionError(f"browser service did not provide an endpoint: {detail}")
        return str(endpoint)

    def _open_browser(self, playwright: Any, deadline: Deadline) -> Any:
        endpoint = self._resolve_endpoint(_remaining_ms(deadline) / 1000)
        logger.debug(f"Connecting to remote browser at {endpoint}")
        return playwright.chromium.connect(endpoint, timeout=_remaining_ms(deadline))


class StaticFetchStrategy:
    """Fetch raw markup over HTTP without executing scripts."""

    name = STATIC_FETCH

    def __init__(self, config: ScanConfig) -> None:
        self.config = config
        self.timeout_s = config.fetch_timeout_s

    def is_configured(self) -> bool:
        return True

    @contextmanager
    def acquire(self, url: str, timeout_s: float) -> Iterator[Document]:
        try:
            response = requests.get(
                url,
                headers=REQUEST_HEADERS,
                timeout=timeout_s,
                allow_redirects=True,
            )
            response.raise_for_status()
        except requests.Timeout as exc:
            raise AcquisitionError(f"timeout after {_seconds(timeout_s)}: {exc}") from exc
        except requests.RequestException as exc:
            raise AcquisitionError(f"fetch failed: {exc}") from exc

        html = response.text or ""
        if not html.strip():
            raise AcquisitionError("received empty HTML content")
        yield Document(url=response.url or url, html=html, strategy=self.name)


def build_strategies(config: ScanConfig) -> list[AcquisitionStrategy]:
    """Return strategies in fallback priority order."""
    return [
        RenderedBrowserStrategy(config),
        RemoteBrowserServiceStrategy(config),
        StaticFetchStrategy(config),
    ]


class ScanBudget(Deadline):
    """Wall-clock budget shared by the fallback chain and the analyzers that follow it."""

    def timeout_for(self, strategy: AcquisitionStrategy) -> float:
        return min(strategy.timeout_s, self.remaining())


@dataclass(frozen=True)
class Acquisition:
    document: Document
    failed_attempts: tuple[AttemptRecord, ...]

    @property
    def degraded(self) -> bool:
        return self.document.strategy in DEGRADED_NOTES

    @property
    def note(self) -> str | None:
        return DEGRADED_NOTES.get(self.document.strategy)


@contextmanager
def acquire_document(
    url: str,
    strategies: Sequence[AcquisitionStrategy],
    budget: ScanBudget,
) -> Iterator[Acquisition]:
    """Yield the first document a configured strategy can produce.

    Raises ScanError(AcquisitionFailed) listing every attempt when all fail.
    """
    attempts: list[AttemptRecord] = []
    for strategy in strategies:
        if not strategy.is_configured():
            logger.debug(f"Skipping unconfigured strategy: {strategy.name}")
            continue

        timeout_s = budget.timeout_for(strategy)
        if timeout_s <= 0:
            attempts.append(AttemptRecord(strategy.name, "scan time budget exhausted"))
            logger.warning(f"Strategy {strategy.name} skipped: scan time budget exhausted")
            continue

        logger.debug(f"Acquiring {url} with {strategy.name} (timeout {_seconds(timeout_s)})")
        stack = ExitStack()
        try:
            document = stack.enter_context(strategy.acquire(url, timeout_s))
        except AcquisitionError as exc:
            attempts.append(AttemptRecord(strategy.name, exc.reason))
            logger.warning(f"Strategy {strategy.name} failed: {exc.reason}")
            continue

        logger.debug(f"Acquired {url} with {strategy.name}")
        with stack:
            yield Acquisition(document=document, failed_attempts=tuple(attempts))
        return

    raise ScanError(
        ACQUISITION_FAILED,
        f"Unable to acquire a document for {url}: all strategies failed",
        tuple(attempts),
    )
