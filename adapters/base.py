"""
CRAWL — Base Table Adapter
Abstract base class for directory sites that render results as an HTML table.
Handles the per-page pipeline: navigate, block check, harvest, persist, paginate.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .pagination import current_page, next_target

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────
#  Data Models
# ──────────────────────────────────────────────────

# attribute name → exported key (the dashboard reads camelCase)
EXPORT_KEYS = [
    ("vc_name", "vcName"),
    ("investor_name", "investorName"),
    ("linkedin_url", "linkedinUrl"),
    ("focus_areas", "focusAreas"),
    ("geographical", "geographical"),
    ("target_countries", "targetCountries"),
    ("funding_requirements", "fundingRequirements"),
    ("funding_stages", "fundingStages"),
    ("check_size", "checkSize"),
]
LIST_FIELDS = {"focus_areas", "geographical", "target_countries", "funding_stages"}


@dataclass(frozen=True)
class InvestorRecord:
    """One investor row from the results table."""
    vc_name: str
    investor_name: str = ""
    linkedin_url: str = ""
    focus_areas: tuple = ()
    geographical: tuple = ()
    target_countries: tuple = ()
    funding_requirements: str = ""
    funding_stages: tuple = ()
    check_size: str = ""
    url: str = ""

    @property
    def description(self) -> str:
        # No separate source on the list view
        return self.funding_requirements

    def to_dict(self) -> dict:
        d = {}
        for attr, key in EXPORT_KEYS:
            value = getattr(self, attr)
            d[key] = list(value) if attr in LIST_FIELDS else value
        d["description"] = self.description
        d["url"] = self.url
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "InvestorRecord":
        kwargs = {}
        for attr, key in EXPORT_KEYS:
            value = data.get(key)
            if attr in LIST_FIELDS:
                kwargs[attr] = tuple(value or ())
            else:
                kwargs[attr] = value or ""
        kwargs["url"] = data.get("url") or ""
        return cls(**kwargs)


@dataclass
class CrawlState:
    """Progress of one run. Advanced once per processed page."""
    max_pages: int = 1000
    current_page: int = 1
    record_count: int = 0
    pages_ok: int = 0
    pages_failed: int = 0

    def record_page(self, page_number: int, saved: int):
        self.current_page = page_number
        self.record_count += saved
        self.pages_ok += 1


class BlockedPageError(RuntimeError):
    """The site answered with a block / access-denied page instead of results."""

    def __init__(self, url: str, indicator: str):
        super().__init__(f"Page appears to be blocked ({indicator!r} found): {url}")
        self.url = url
        self.indicator = indicator


def find_block_indicator(text: str, indicators: Iterable[str]) -> Optional[str]:
    """First block indicator contained in `text`, or None."""
    if not text:
        return None
    for indicator in indicators:
        if indicator in text:
            return indicator
    return None


def clean_text(text: Optional[str]) -> str:
    """Collapse &nbsp; to plain spaces and trim."""
    if not text:
        return ""
    return text.replace("\u00a0", " ").strip()


# ──────────────────────────────────────────────────
#  Base Adapter
# ──────────────────────────────────────────────────

class BaseSiteAdapter(ABC):
    """
    Abstract base for table-based directory scrapers.
    Subclasses implement parse_row() with site-specific field extraction.
    The base class handles navigation, waits, block detection and persistence.
    Retries are left to the engine: fatal page errors are re-raised.
    """

    def __init__(self, site_config, stealth_module=None):
        self.config = site_config
        self.url = site_config.url
        self.base_url = site_config.base_url
        self.selectors = site_config.selectors
        self.timeouts = site_config.timeouts
        self.stealth = stealth_module

    @property
    def name(self) -> str:
        return self.config.name

    async def process_page(
        self,
        page: Page,
        url: str,
        sink,
        state: CrawlState,
        screenshot_dir: Optional[str] = None,
    ) -> Optional[str]:
        """
        Full pipeline for one results page.

        Returns the next page URL to enqueue, or None when the page limit is reached.
        Raises on navigation failure or a detected block page.
        """
        logger.info(f"  📄  Processing: {url}")
        try:
            await self.navigate(page, url)
            await self.check_blocked(page, url)

            records = await self.harvest(page)
            logger.info(f"  🔍  Found {len(records)} investors on this page")

            saved = self.persist(records, sink)
            state.record_page(current_page(url), saved)

            target = next_target(url, state.max_pages)
            if target is None:
                logger.info(f"  🏁  Reached max pages limit: {state.max_pages}")
                return None

            if self.stealth:
                await self.stealth.page_gap(page)
            logger.info(f"  ➡️  Next page: {current_page(target)}")
            return target

        except Exception as e:
            logger.error(f"  ❌  Error processing {url}: {e}")
            await self._debug_screenshot(page, screenshot_dir)
            raise

    async def navigate(self, page: Page, url: str):
        await page.goto(
            url,
            wait_until=self.timeouts.get("wait_until", "domcontentloaded"),
            timeout=self.timeouts.get("navigation_ms", 60000),
        )
        if self.stealth:
            await self.stealth.settle(page)

    async def check_blocked(self, page: Page, url: str):
        text = await page.evaluate("() => document.body ? document.body.textContent : ''")
        indicator = find_block_indicator(text or "", self.config.block_indicators)
        if indicator:
            raise BlockedPageError(url, indicator)

    async def harvest(self, page: Page) -> List[InvestorRecord]:
        """
        Wait for the results table, then extract every row in document order.
        A table that never shows up yields a best-effort extraction, not a failure.
        """
        try:
            await page.wait_for_selector(
                self.selectors["table_body"], timeout=self.timeouts.get("table_ms", 30000)
            )
            await page.wait_for_selector(
                self.selectors["row"], timeout=self.timeouts.get("rows_ms", 20000)
            )
            logger.info("  ✅  Table loaded successfully")
        except PlaywrightTimeoutError:
            logger.warning("  ⏳  Waiting for table content...")
            await page.wait_for_timeout(self.timeouts.get("grace_ms", 5000))
            content = await page.content()
            indicator = find_block_indicator(content, self.config.late_block_indicators)
            if indicator:
                raise BlockedPageError(page.url, indicator)

        try:
            html = await page.content()
            return self.extract_records(html)
        except Exception as e:
            logger.error(f"  ❌  Error extracting data: {e}")
            return []

    def extract_records(self, html: str) -> List[InvestorRecord]:
        """Parse page HTML and map every result row to a record."""
        soup = BeautifulSoup(html, "html.parser")
        rows = soup.select(self.selectors["row"])
        if not rows:
            logger.debug(f"  🔎  No rows matched '{self.selectors['row']}' ({len(html)} bytes of HTML)")

        records = []
        for row in rows:
            record = self.parse_row(row)
            if record is not None and record.vc_name:
                records.append(record)
        return records

    def persist(self, records: List[InvestorRecord], sink) -> int:
        """Append records to the sink one at a time, in extraction order."""
        saved = 0
        for record in records:
            if record.vc_name or record.investor_name:
                sink.push_data(record.to_dict())
                saved += 1
                logger.info(f"  💾  Saved investor: {record.vc_name or record.investor_name}")
        return saved

    async def _debug_screenshot(self, page: Page, screenshot_dir: Optional[str]):
        if not screenshot_dir:
            return
        try:
            ss_dir = Path(screenshot_dir)
            ss_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            path = ss_dir / f"error-{self.name}-{timestamp}.png"
            await page.screenshot(path=str(path))
            logger.info(f"  📸  Screenshot saved for debugging → {path}")
        except Exception:
            pass

    @abstractmethod
    def parse_row(self, row) -> Optional[InvestorRecord]:
        """
        Parse a single results-table row.
        Must be implemented by each site adapter.

        Args:
            row: A BeautifulSoup Tag for one <tr>

        Returns:
            InvestorRecord, or None for sponsor, header and empty rows
        """
        pass

    # ── Utility helpers for subclasses ──

    def _safe_text(self, scope, selector: str, default: str = "") -> str:
        """Trimmed text of the first match under `scope`. Missing scope or element → default."""
        el = scope.select_one(selector) if scope is not None and selector else None
        return clean_text(el.get_text()) if el else default

    def _safe_attr(self, scope, selector: str, attr: str, default: str = "") -> str:
        el = scope.select_one(selector) if scope is not None and selector else None
        if el is None:
            return default
        value = el.get(attr)
        return value.strip() if isinstance(value, str) else default

    def _safe_all(self, scope, selector: str) -> list:
        return scope.select(selector) if scope is not None and selector else []
