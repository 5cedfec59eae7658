"""
CRAWL — OpenVC Adapter
Scrapes the investor search table on openvc.app
"""

import re
from typing import Optional
from urllib.parse import urljoin, urlparse

from .base import BaseSiteAdapter, InvestorRecord, clean_text

# "+2", "+13": "show more" badges, not data
COUNT_BADGE = re.compile(r"^\+\d+$")
# Country name after an optional flag glyph: "🇺🇸 United States" → "United States"
COUNTRY_NAME = re.compile(r"([A-Z][a-zA-Z\s]+)$")

DEFAULT_SELECTORS = {
    "table_body": "table#results_tb tbody",
    "row": "table#results_tb tbody tr",
    "skip_row_classes": ["sponsorRow", "adType"],
    "name_cell": "td.nameCell",
    "vc_name": "#invOverflow",
    "type_label": "div",
    "profile_link": "a.VClink",
    "countries_cell": 'td[data-label="Target countries"]',
    "stages_cell": 'td[data-label="Funding stages"]',
    "badge": ".badge-primary",
    "badge_link": "a.VClink",
    "check_size_cell": 'td[data-label="Check size"]',
    "requirement_cell": 'td[data-label="Funding requirement"], td.criteriaCell',
    "linkedin": 'a[href*="linkedin.com"]',
}


def country_from_badge(text: str) -> str:
    """Trailing capitalized words of a badge, else its last token."""
    text = text.strip()
    match = COUNTRY_NAME.search(text)
    if match:
        return match.group(1).strip()
    parts = text.split()
    return parts[-1] if parts else text


class OpenVCAdapter(BaseSiteAdapter):
    """
    Adapter for OpenVC (https://openvc.app/search)

    Results are a server-rendered table, one investor per <tr>, paginated
    with ?page=N. Sponsored rows are mixed into the table and skipped.
    Focus areas and geography live on the profile page and are left empty.
    """

    def __init__(self, site_config, stealth_module=None):
        super().__init__(site_config, stealth_module)
        self.selectors = {**DEFAULT_SELECTORS, **site_config.selectors}

    def parse_row(self, row) -> Optional[InvestorRecord]:
        """Parse one results row into a record. None for sponsor, header and empty rows."""
        sel = self.selectors

        row_classes = row.get("class") or []
        if any(cls in row_classes for cls in sel["skip_row_classes"]):
            return None

        name_cell = row.select_one(sel["name_cell"])
        vc_name = self._safe_text(name_cell, sel["vc_name"])
        if not vc_name:
            return None

        funding_requirements = self._safe_text(row, sel["requirement_cell"])

        return InvestorRecord(
            vc_name=vc_name,
            investor_name=self._investor_type(name_cell),
            linkedin_url=self._linkedin_url(row),
            focus_areas=(),
            geographical=(),
            target_countries=self._target_countries(row),
            funding_requirements=funding_requirements,
            funding_stages=self._funding_stages(row),
            check_size=self._safe_text(row, sel["check_size_cell"]),
            url=self._profile_url(name_cell),
        )

    # ── Field helpers ──

    def _investor_type(self, name_cell) -> str:
        # Last label div under the name ("VC", "PE fund", ...) when there is more than one
        labels = self._safe_all(name_cell, self.selectors["type_label"])
        if len(labels) > 1:
            return clean_text(labels[-1].get_text())
        return ""

    def _target_countries(self, row) -> tuple:
        cell = row.select_one(self.selectors["countries_cell"])
        countries = []
        for badge in self._safe_all(cell, self.selectors["badge"]):
            country = country_from_badge(badge.get_text())
            if not country or country.startswith("+") or COUNT_BADGE.match(country):
                continue
            countries.append(country)
        return tuple(countries)

    def _funding_stages(self, row) -> tuple:
        cell = row.select_one(self.selectors["stages_cell"])
        stages = []
        for badge in self._safe_all(cell, self.selectors["badge"]):
            text = clean_text(badge.get_text())
            if badge.select_one(self.selectors["badge_link"]) and text.startswith("+"):
                continue
            if not text or COUNT_BADGE.match(text):
                continue
            stages.append(text)
        return tuple(stages)

    def _profile_url(self, name_cell) -> str:
        href = self._safe_attr(name_cell, self.selectors["profile_link"], "href")
        if not href:
            return ""
        if urlparse(href).scheme:
            return href
        return urljoin(self.base_url, href)

    def _linkedin_url(self, row) -> str:
        href = self._safe_attr(row, self.selectors["linkedin"], "href")
        return urljoin(self.base_url, href) if href else ""
