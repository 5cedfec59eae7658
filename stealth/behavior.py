"""
CRAWL — Human Pacing
Waits between navigation steps so the crawl reads like a person paging
through results rather than a bot hammering the search endpoint.
"""

import logging
import random

from playwright.async_api import Page

logger = logging.getLogger(__name__)

DEFAULT_PACING = {
    "settle_min_s": 5.0,
    "settle_max_s": 8.0,
    "page_gap_min_s": 8.0,
    "page_gap_max_s": 13.0,
}


class HumanBehavior:
    """
    Pacing policy for page-by-page crawling:
    - settle: after a page loads, before reading it
    - page_gap: after a page is harvested, before moving to the next one
    """

    def __init__(self, pacing: dict = None, speed_factor: float = 1.0):
        """
        Args:
            pacing: min/max seconds for each wait (see DEFAULT_PACING)
            speed_factor: Multiplier for all delays.
                          1.0 = normal, 0.5 = faster, 0 = no waiting (tests, dry runs)
        """
        self.pacing = {**DEFAULT_PACING, **(pacing or {})}
        self.speed_factor = speed_factor
        self.total_waited_s = 0.0

    # ── Delays ──────────────────────────────────────

    def _uniform_delay(self, low: float, high: float) -> float:
        return random.uniform(low, high) * self.speed_factor

    async def _wait(self, page: Page, seconds: float):
        if seconds <= 0:
            return
        self.total_waited_s += seconds
        await page.wait_for_timeout(int(seconds * 1000))

    async def settle(self, page: Page):
        """Let a freshly loaded page settle."""
        delay = self._uniform_delay(self.pacing["settle_min_s"], self.pacing["settle_max_s"])
        await self._wait(page, delay)

    async def page_gap(self, page: Page):
        """Longer pause before moving on to the next results page."""
        delay = self._uniform_delay(self.pacing["page_gap_min_s"], self.pacing["page_gap_max_s"])
        logger.info(f"  ⏳  Waiting {round(delay)}s before next page...")
        await self._wait(page, delay)

