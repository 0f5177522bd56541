from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, sync_playwright

from jobcopilot.config import Settings
from jobcopilot.errors import ConfigurationError, PageQueryError

logger = logging.getLogger(__name__)


class PageSession(Protocol):
    """What the workflow needs from a live browser tab."""

    def navigate(self, url: str) -> None: ...

    def query_count(self, selector: str) -> int: ...

    def wait_ms(self, duration_ms: int) -> None: ...


class PlaywrightPageSession:
    def __init__(self, page: Page, *, nav_timeout_ms: int = 30000):
        self.page = page
        self.nav_timeout_ms = nav_timeout_ms

    def navigate(self, url: str) -> None:
        logger.info("Navigating to %s", url)
        self.page.goto(url, wait_until="domcontentloaded", timeout=self.nav_timeout_ms)
        logger.info("Navigation complete url=%s", self.page.url)

    def query_count(self, selector: str) -> int:
        try:
            return self.page.locator(selector).count()
        except PlaywrightError as exc:
            raise PageQueryError(selector, str(exc)) from exc

    def wait_ms(self, duration_ms: int) -> None:
        if duration_ms > 0:
            self.page.wait_for_timeout(duration_ms)

    def close(self) -> None:
        try:
            self.page.close()
        except PlaywrightError as exc:
            logger.warning("Error closing page: %s", exc)


def _launch_kwargs(settings: Settings) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        # Headed by default: a person has to be able to act on the page.
        "headless": settings.browser_headless,
        "viewport": {
            "width": settings.browser_viewport_width,
            "height": settings.browser_viewport_height,
        },
    }
    if settings.browser_channel.strip():
        kwargs["channel"] = settings.browser_channel.strip()
    if settings.browser_executable_path.strip():
        kwargs["executable_path"] = settings.browser_executable_path.strip()
    return kwargs


@contextmanager
def open_browser_session(settings: Settings) -> Iterator[PlaywrightPageSession]:
    """Acquire a persistent-profile browser tab for one workflow run and release it on exit."""
    user_data_dir = Path(settings.browser_user_data_dir).expanduser().resolve()
    user_data_dir.mkdir(parents=True, exist_ok=True)
    nav_timeout_ms = settings.browser_nav_timeout_sec * 1000

    playwright = sync_playwright().start()
    try:
        try:
            context = playwright.chromium.launch_persistent_context(
                str(user_data_dir), **_launch_kwargs(settings)
            )
        except PlaywrightError as exc:
            raise ConfigurationError(
                f"Failed to launch browser with profile {user_data_dir}: {exc}",
                suggestions=[
                    "Run `playwright install chromium` to install a browser build.",
                    "Close other browser windows that use the same profile directory.",
                    "Set BROWSER_USER_DATA_DIR to a writable directory.",
                ],
            ) from exc

        logger.info("Browser launched with persistent profile %s", user_data_dir)
        try:
            try:
                page = context.new_page()
                page.set_default_timeout(nav_timeout_ms)
                page.set_default_navigation_timeout(nav_timeout_ms)
            except PlaywrightError as exc:
                raise ConfigurationError(
                    f"Failed to open a browser tab: {exc}",
                    suggestions=[
                        "Close the browser window left over from a previous run and retry.",
                        "Run `playwright install chromium` if the browser build is missing or broken.",
                    ],
                ) from exc
            yield PlaywrightPageSession(page, nav_timeout_ms=nav_timeout_ms)
        finally:
            try:
                context.close()
            except PlaywrightError as exc:
                logger.warning("Error closing browser context: %s", exc)
            logger.info("Browser closed")
    finally:
        playwright.stop()
