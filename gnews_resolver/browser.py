"""Headless-browser fallback for links the HTTP strategies cannot resolve.

The page handle is supplied by the caller (for example a Playwright sync
``Page``); this module never launches a browser itself.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from .config import (
    AGGREGATOR_HOST,
    BROWSER_ALTERNATIVE_SELECTORS,
    BROWSER_NAVIGATION_TIMEOUT_MS,
    BROWSER_PRIMARY_SELECTOR,
    BROWSER_SETTLE_MS,
)
from .utils import is_valid_resolution

logger = logging.getLogger(__name__)

_HREF_EXPRESSION = "el => el.href || el.getAttribute('href')"


class BrowserPage(Protocol):
    url: str

    def goto(self, url: str, **options: Any) -> Any:
        ...

    def wait_for_timeout(self, timeout: float) -> None:
        ...

    def eval_on_selector(self, selector: str, expression: str) -> Any:
        ...


class BrowserResolver:
    def __init__(
        self,
        *,
        navigation_timeout_ms: int = BROWSER_NAVIGATION_TIMEOUT_MS,
        settle_ms: int = BROWSER_SETTLE_MS,
    ) -> None:
        self.navigation_timeout_ms = navigation_timeout_ms
        self.settle_ms = settle_ms

    def resolve(self, url: str, page: BrowserPage) -> Optional[str]:
        """Follow real redirects in ``page``, then scrape for an outbound link."""

        try:
            response = page.goto(
                url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms
            )
        except Exception as exc:
            logger.debug("Browser navigation failed for %s: %s", url, exc)
            return None
        if response is None:
            logger.debug("No response from Google News URL in browser")
            return None

        try:
            page.wait_for_timeout(self.settle_ms)
            final_url = page.url
        except Exception as exc:
            logger.debug("Browser page became unusable: %s", exc)
            return None

        if final_url != url and AGGREGATOR_HOST not in final_url and is_valid_resolution(final_url):
            logger.info("Browser resolved URL: %s", final_url)
            return final_url

        for selector in (BROWSER_PRIMARY_SELECTOR, *BROWSER_ALTERNATIVE_SELECTORS):
            link = self._link_for(page, selector)
            if is_valid_resolution(link):
                logger.info("Found article link via %s: %s", selector, link)
                return link
        return None

    @staticmethod
    def _link_for(page: BrowserPage, selector: str) -> Optional[str]:
        try:
            value = page.eval_on_selector(selector, _HREF_EXPRESSION)
        except Exception:
            return None
        return value if isinstance(value, str) else None


__all__ = ["BrowserPage", "BrowserResolver"]
