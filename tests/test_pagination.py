"""
Tests for ?page=N pagination.
Run with: python -m pytest tests/test_pagination.py -v
"""

import os
import sys
from urllib.parse import parse_qs, urlsplit

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adapters.pagination import current_page, next_target, page_url


def page_of(url: str) -> str:
    return parse_qs(urlsplit(url).query)["page"][0]


class TestCurrentPage:
    def test_reads_page_param(self):
        assert current_page("https://site/search?page=3") == 3

    def test_missing_defaults_to_one(self):
        assert current_page("https://site/search") == 1

    def test_unparsable_defaults_to_one(self):
        assert current_page("https://site/search?page=abc") == 1

    def test_empty_defaults_to_one(self):
        assert current_page("https://site/search?page=") == 1

    def test_zero_or_negative_defaults_to_one(self):
        assert current_page("https://site/search?page=0") == 1
        assert current_page("https://site/search?page=-4") == 1


class TestNextTarget:
    def test_advances_one_page(self):
        target = next_target("https://site/search?page=3", 5)
        assert page_of(target) == "4"

    def test_stops_at_limit(self):
        assert next_target("https://site/search?page=5", 5) is None

    def test_no_param_goes_to_page_two(self):
        target = next_target("https://site/search", 10)
        assert target == "https://site/search?page=2"

    def test_malformed_param_goes_to_page_two(self):
        assert page_of(next_target("https://site/search?page=x", 10)) == "2"

    def test_single_page_limit_stops_immediately(self):
        assert next_target("https://site/search", 1) is None

    def test_keeps_path_and_other_params(self):
        target = next_target("https://openvc.app/search?stage=seed&page=2&country=FR", 10)
        parts = urlsplit(target)
        assert parts.path == "/search"
        assert parts.query == "stage=seed&page=3&country=FR"

    def test_deterministic(self):
        url = "https://site/search?page=7"
        assert next_target(url, 100) == next_target(url, 100)


class TestPageUrl:
    def test_collapses_duplicate_page_params(self):
        assert page_url("https://site/search?page=1&page=9", 4) == "https://site/search?page=4"
