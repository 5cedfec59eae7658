"""
Tests for the OpenVC table adapter.
Covers: row → record extraction, badge filtering, page harvest, per-page pipeline.
Run with: python -m pytest tests/test_openvc_adapter.py -v
"""

import asyncio
import json
import os
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bs4 import BeautifulSoup
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adapters.base import BlockedPageError, CrawlState, InvestorRecord
from adapters.openvc import OpenVCAdapter, country_from_badge
from crawl_config import SiteConfig
from output.dataset import Dataset


# ── Test HTML Snippets ─────────────────────────────

ACME_ROW = """
<tr>
  <td class="nameCell">
    <a class="VClink" href="fund/acme-capital"><div id="invOverflow">  Acme Capital  </div></a>
    <div>VC</div>
  </td>
  <td data-label="Target countries">
    <span class="badge badge-primary">🇺🇸 United States</span>
    <span class="badge badge-primary">🇬🇧 UK</span>
    <span class="badge badge-primary">+2</span>
  </td>
  <td data-label="Check size">$50k&nbsp;-&nbsp;$200k</td>
  <td data-label="Funding stages">
    <span class="badge badge-primary">Seed</span>
    <span class="badge badge-primary">Series A</span>
    <span class="badge badge-primary"><a class="VClink" href="fund/acme-capital">+3</a></span>
  </td>
  <td data-label="Funding requirement">$50k–$200k</td>
  <td><a href="https://www.linkedin.com/company/acme-capital">in</a></td>
</tr>
"""

SPONSOR_ROW = """
<tr class="sponsorRow">
  <td class="nameCell"><div id="invOverflow">Sponsored Fund</div><div>Ad</div></td>
</tr>
"""

BETA_ROW = """
<tr>
  <td class="nameCell">
    <a class="VClink" href="https://openvc.app/fund/beta-ventures"><div id="invOverflow">Beta Ventures</div></a>
  </td>
  <td data-label="Target countries"><span class="badge badge-primary">France</span></td>
  <td data-label="Check size">$1M</td>
  <td data-label="Funding stages"><span class="badge badge-primary">+1</span></td>
  <td class="criteriaCell">  Traction required  </td>
</tr>
"""

EMPTY_NAME_ROW = """
<tr>
  <td class="nameCell"><div id="invOverflow">   </div></td>
  <td data-label="Check size">$10k</td>
</tr>
"""

GAMMA_ROW = """
<tr>
  <td class="nameCell">
    <a class="VClink" href="/fund/gamma"><div id="invOverflow">Gamma Partners</div></a>
    <div>Angel network</div>
    <div>PE fund</div>
  </td>
  <td data-label="Target countries"><span class="badge badge-primary">🇩🇪 Germany</span></td>
  <td data-label="Funding stages"><span class="badge badge-primary">Pre-seed</span></td>
</tr>
"""

RESULTS_PAGE = f"""
<html><body>
<table id="results_tb">
  <thead><tr><th>Investor</th><th>Countries</th></tr></thead>
  <tbody>
    {ACME_ROW}
    {SPONSOR_ROW}
    {BETA_ROW}
    {EMPTY_NAME_ROW}
    {GAMMA_ROW}
  </tbody>
</table>
</body></html>
"""


def make_adapter(stealth=None, **site_kwargs) -> OpenVCAdapter:
    return OpenVCAdapter(SiteConfig(name="openvc", **site_kwargs), stealth_module=stealth)


def row_from(html: str):
    soup = BeautifulSoup(f"<table><tbody>{html}</tbody></table>", "html.parser")
    return soup.select_one("tr")


def make_page(content: str = RESULTS_PAGE, body_text: str = "Investor search results"):
    page = AsyncMock()
    page.url = "https://openvc.app/search"
    page.content.return_value = content
    page.evaluate.return_value = body_text
    return page


# ──────────────────────────────────────────────────
#  Field extraction — row filtering
# ──────────────────────────────────────────────────

class TestRowFiltering:
    def test_sponsor_row_is_skipped(self):
        assert make_adapter().parse_row(row_from(SPONSOR_ROW)) is None

    def test_ad_row_is_skipped(self):
        row = row_from('<tr class="adType"><td class="nameCell"><div id="invOverflow">Promo</div></td></tr>')
        assert make_adapter().parse_row(row) is None

    def test_empty_name_row_is_skipped(self):
        assert make_adapter().parse_row(row_from(EMPTY_NAME_ROW)) is None

    def test_header_like_row_without_name_cell_is_skipped(self):
        row = row_from("<tr><td>Investor</td><td>Check size</td></tr>")
        assert make_adapter().parse_row(row) is None


# ──────────────────────────────────────────────────
#  Field extraction — values
# ──────────────────────────────────────────────────

class TestFieldExtraction:
    def setup_method(self):
        self.acme = make_adapter().parse_row(row_from(ACME_ROW))

    def test_vc_name_is_trimmed(self):
        assert self.acme.vc_name == "Acme Capital"

    def test_investor_type_becomes_investor_name(self):
        assert self.acme.investor_name == "VC"

    def test_last_label_wins(self):
        gamma = make_adapter().parse_row(row_from(GAMMA_ROW))
        assert gamma.investor_name == "PE fund"

    def test_single_label_means_no_investor_name(self):
        beta = make_adapter().parse_row(row_from(BETA_ROW))
        assert beta.investor_name == ""

    def test_countries_strip_flags_and_count_badges(self):
        assert self.acme.target_countries == ("United States", "UK")

    def test_stages_drop_linked_plus_badge(self):
        assert self.acme.funding_stages == ("Seed", "Series A")

    def test_stages_drop_plain_count_badge(self):
        beta = make_adapter().parse_row(row_from(BETA_ROW))
        assert beta.funding_stages == ()

    def test_check_size_has_no_nbsp(self):
        assert "\u00a0" not in self.acme.check_size
        assert self.acme.check_size == "$50k - $200k"

    def test_description_mirrors_funding_requirements(self):
        assert self.acme.funding_requirements == "$50k–$200k"
        assert self.acme.description == "$50k–$200k"

    def test_criteria_cell_fallback(self):
        beta = make_adapter().parse_row(row_from(BETA_ROW))
        assert beta.funding_requirements == "Traction required"

    def test_relative_profile_url_resolved(self):
        assert self.acme.url == "https://openvc.app/fund/acme-capital"

    def test_root_relative_profile_url_resolved(self):
        gamma = make_adapter().parse_row(row_from(GAMMA_ROW))
        assert gamma.url == "https://openvc.app/fund/gamma"

    def test_absolute_profile_url_kept(self):
        beta = make_adapter().parse_row(row_from(BETA_ROW))
        assert beta.url == "https://openvc.app/fund/beta-ventures"

    def test_linkedin_url(self):
        assert self.acme.linkedin_url == "https://www.linkedin.com/company/acme-capital"

    def test_missing_linkedin_is_empty(self):
        beta = make_adapter().parse_row(row_from(BETA_ROW))
        assert beta.linkedin_url == ""

    def test_reserved_fields_always_empty(self):
        assert self.acme.focus_areas == ()
        assert self.acme.geographical == ()

    def test_missing_cells_default_safely(self):
        row = row_from('<tr><td class="nameCell"><div id="invOverflow">Lone Fund</div></td></tr>')
        record = make_adapter().parse_row(row)
        assert record == InvestorRecord(vc_name="Lone Fund")

    def test_extraction_is_idempotent(self):
        first = make_adapter().parse_row(row_from(ACME_ROW))
        second = make_adapter().parse_row(row_from(ACME_ROW))
        assert first == second
        assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())

    def test_records_are_immutable(self):
        with pytest.raises(Exception):
            self.acme.vc_name = "Other"


class TestCountryBadge:
    def test_flag_prefix(self):
        assert country_from_badge("🇺🇸 USA") == "USA"

    def test_multi_word_country(self):
        assert country_from_badge("🇦🇪 United Arab Emirates") == "United Arab Emirates"

    def test_fallback_to_last_token(self):
        assert country_from_badge("🇨🇮 côte") == "côte"

    def test_count_badge_passes_through_for_filtering(self):
        assert country_from_badge("+4") == "+4"


# ──────────────────────────────────────────────────
#  Page harvest
# ──────────────────────────────────────────────────

class TestExtractRecords:
    def test_document_order_and_filtering(self):
        records = make_adapter().extract_records(RESULTS_PAGE)
        assert [r.vc_name for r in records] == ["Acme Capital", "Beta Ventures", "Gamma Partners"]

    def test_no_table_yields_nothing(self):
        assert make_adapter().extract_records("<html><body><p>Loading</p></body></html>") == []

    def test_rerun_is_byte_identical(self):
        adapter = make_adapter()
        first = [r.to_dict() for r in adapter.extract_records(RESULTS_PAGE)]
        second = [r.to_dict() for r in adapter.extract_records(RESULTS_PAGE)]
        assert json.dumps(first) == json.dumps(second)


class TestHarvest:
    def test_harvest_waits_then_extracts(self):
        page = make_page()
        records = asyncio.run(make_adapter().harvest(page))
        assert len(records) == 3
        waited = [c.args[0] for c in page.wait_for_selector.await_args_list]
        assert waited == ["table#results_tb tbody", "table#results_tb tbody tr"]

    def test_harvest_uses_configured_timeouts(self):
        page = make_page()
        adapter = make_adapter(timeouts={"table_ms": 1500, "rows_ms": 900})
        asyncio.run(adapter.harvest(page))
        timeouts = [c.kwargs["timeout"] for c in page.wait_for_selector.await_args_list]
        assert timeouts == [1500, 900]

    def test_table_timeout_degrades_to_best_effort(self):
        page = make_page(content="<html><body><p>Slow page</p></body></html>")
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded")
        records = asyncio.run(make_adapter().harvest(page))
        assert records == []
        page.wait_for_timeout.assert_awaited_once_with(5000)

    def test_table_timeout_with_late_block_raises(self):
        page = make_page(content="<html><body><h1>403 Forbidden</h1></body></html>")
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded")
        with pytest.raises(BlockedPageError):
            asyncio.run(make_adapter().harvest(page))

    def test_extraction_error_yields_empty_page(self):
        adapter = make_adapter()
        with patch.object(adapter, "extract_records", side_effect=ValueError("malformed DOM")):
            records = asyncio.run(adapter.harvest(make_page()))
        assert records == []


# ──────────────────────────────────────────────────
#  Per-page pipeline
# ──────────────────────────────────────────────────

class TestProcessPage:
    def test_persists_and_returns_next_page(self):
        sink = Dataset(persist=False)
        state = CrawlState(max_pages=5)
        next_url = asyncio.run(
            make_adapter().process_page(make_page(), "https://openvc.app/search?page=3", sink, state)
        )
        assert next_url == "https://openvc.app/search?page=4"
        assert [item["vcName"] for item in sink.get_data()] == ["Acme Capital", "Beta Ventures", "Gamma Partners"]
        assert state.current_page == 3
        assert state.record_count == 3
        assert state.pages_ok == 1

    def test_stops_at_max_pages(self):
        sink = Dataset(persist=False)
        next_url = asyncio.run(
            make_adapter().process_page(make_page(), "https://openvc.app/search?page=5", sink, CrawlState(max_pages=5))
        )
        assert next_url is None
        assert len(sink.get_data()) == 3

    def test_navigation_uses_configured_timeout(self):
        page = make_page()
        adapter = make_adapter(timeouts={"navigation_ms": 45000, "wait_until": "networkidle"})
        asyncio.run(adapter.process_page(page, "https://openvc.app/search", Dataset(persist=False), CrawlState()))
        page.goto.assert_awaited_once_with(
            "https://openvc.app/search", wait_until="networkidle", timeout=45000
        )

    def test_block_page_raises_and_screenshots(self, tmp_path):
        page = make_page(body_text="Access Denied - you have been blocked")
        sink = Dataset(persist=False)
        with pytest.raises(BlockedPageError) as exc:
            asyncio.run(
                make_adapter().process_page(
                    page, "https://openvc.app/search", sink, CrawlState(), screenshot_dir=str(tmp_path)
                )
            )
        assert exc.value.url == "https://openvc.app/search"
        assert sink.get_data() == []
        page.screenshot.assert_awaited_once()

    def test_screenshot_failure_does_not_mask_error(self, tmp_path):
        page = make_page()
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 60000ms exceeded")
        page.screenshot.side_effect = RuntimeError("browser closed")
        with pytest.raises(PlaywrightTimeoutError):
            asyncio.run(
                make_adapter().process_page(
                    page, "https://openvc.app/search", Dataset(persist=False), CrawlState(),
                    screenshot_dir=str(tmp_path),
                )
            )

    def test_pacing_hooks(self):
        stealth = MagicMock()
        stealth.settle = AsyncMock()
        stealth.page_gap = AsyncMock()
        adapter = make_adapter(stealth=stealth)
        asyncio.run(adapter.process_page(make_page(), "https://openvc.app/search", Dataset(persist=False), CrawlState()))
        stealth.settle.assert_awaited_once()
        stealth.page_gap.assert_awaited_once()

    def test_no_page_gap_on_last_page(self):
        stealth = MagicMock()
        stealth.settle = AsyncMock()
        stealth.page_gap = AsyncMock()
        adapter = make_adapter(stealth=stealth)
        asyncio.run(adapter.process_page(
            make_page(), "https://openvc.app/search", Dataset(persist=False), CrawlState(max_pages=1)
        ))
        stealth.page_gap.assert_not_awaited()

    def test_persist_skips_nameless_records(self):
        sink = Dataset(persist=False)
        saved = make_adapter().persist(
            [InvestorRecord(vc_name=""), InvestorRecord(vc_name="Acme Capital")], sink
        )
        assert saved == 1
        assert sink.get_data()[0]["vcName"] == "Acme Capital"


# ──────────────────────────────────────────────────
#  Record serialization
# ──────────────────────────────────────────────────

class TestInvestorRecord:
    def test_to_dict_keys_and_order(self):
        record = InvestorRecord(vc_name="Acme Capital", funding_requirements="$50k–$200k")
        assert list(record.to_dict()) == [
            "vcName", "investorName", "linkedinUrl", "focusAreas", "geographical",
            "targetCountries", "fundingRequirements", "fundingStages", "checkSize",
            "description", "url",
        ]
        assert record.to_dict()["description"] == "$50k–$200k"

    def test_lists_serialize_as_lists(self):
        record = InvestorRecord(vc_name="Acme", target_countries=("UK",))
        assert record.to_dict()["targetCountries"] == ["UK"]

    def test_from_dict_ignores_description(self):
        record = InvestorRecord.from_dict(
            {"vcName": "Acme", "fundingRequirements": "Revenue", "description": "something else"}
        )
        assert record.description == "Revenue"
