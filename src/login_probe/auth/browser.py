"""Playwright-backed browser capability used by analysis and submission."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..core.config import DEFAULT_NAVIGATION_TIMEOUT_MS, DEFAULT_PAGE_LOAD_TIMEOUT_MS
from ..core.errors import NavigationError

logger = logging.getLogger(__name__)

LOGOUT_SELECTORS = (
    'a[href*="logout" i]',
    'a:has-text("Logout")',
    'a:has-text("Log out")',
    'a:has-text("Sign out")',
    'button:has-text("Logout")',
    'button:has-text("Log out")',
    'button:has-text("Sign out")',
)


class BrowserPage:
    """Thin wrapper over a loaded Playwright page."""

    def __init__(self, page: Page, response: Any = None) -> None:
        self.page = page
        self._response = response

    @property
    def url(self) -> str:
        return self.page.url

    @property
    def response_status(self) -> int:
        if self._response is None:
            return 0
        try:
            return int(self._response.status)
        except Exception:
            return 0

    @property
    def response_headers(self) -> Dict[str, str]:
        if self._response is None:
            return {}
        try:
            return dict(self._response.headers)
        except Exception:
            return {}

    def query(self, selector: str) -> Optional[Locator]:
        try:
            locator = self.page.locator(selector)
            if locator.count() > 0:
                return locator.first
        except PlaywrightError:
            logger.debug("Selector %s could not be evaluated", selector, exc_info=True)
        return None

    def query_any(self, selectors: Sequence[str]) -> Optional[Locator]:
        for selector in selectors:
            element = self.query(selector)
            if element is not None:
                return element
        return None

    def type_into(self, element: Locator, text: str) -> None:
        element.fill(text)

    def click_and_wait(self, element: Locator, timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS) -> bool:
        """Clicks ``element`` and waits for a navigation; ``False`` when none happened."""

        try:
            with self.page.expect_navigation(wait_until="networkidle", timeout=timeout_ms):
                element.click()
            return True
        except PlaywrightTimeoutError:
            return False

    def content(self) -> str:
        return self.page.content()

    def cookies(self) -> List[Dict[str, Any]]:
        return [dict(cookie) for cookie in self.page.context.cookies()]

    def has_logout_affordance(self) -> bool:
        return self.query_any(LOGOUT_SELECTORS) is not None

    def close(self) -> None:
        try:
            self.page.close()
        except PlaywrightError:
            logger.debug("Page already closed", exc_info=True)


@dataclass
class PlaywrightDriver:
    """Launches one isolated browser context per opened page."""

    headless: bool = True
    proxy: Optional[str] = None

    @contextmanager
    def open_page(
        self,
        url: str,
        *,
        timeout_ms: int = DEFAULT_PAGE_LOAD_TIMEOUT_MS,
        user_agent: Optional[str] = None,
    ) -> Iterator[BrowserPage]:
        launch_args: Dict[str, Any] = {"headless": self.headless}
        if self.proxy:
            launch_args["proxy"] = {"server": self.proxy}

        with sync_playwright() as playwright:
            browser = playwright.chromium.launch(**launch_args)
            try:
                context = browser.new_context(user_agent=user_agent) if user_agent else browser.new_context()
                try:
                    page = context.new_page()
                    page.set_default_timeout(timeout_ms)
                    try:
                        response = page.goto(url, wait_until="networkidle", timeout=timeout_ms)
                    except PlaywrightTimeoutError as exc:
                        raise NavigationError(
                            f"Page did not settle within {timeout_ms}ms: {url}"
                        ) from exc
                    except PlaywrightError as exc:
                        raise NavigationError(f"Unable to open {url}: {exc}") from exc

                    browser_page = BrowserPage(page, response)
                    try:
                        yield browser_page
                    finally:
                        browser_page.close()
                finally:
                    context.close()
            finally:
                browser.close()
