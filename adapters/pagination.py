"""
CRAWL — Page-number pagination
Directory result pages are addressed by a `page` query parameter.
"""

from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

PAGE_PARAM = "page"


def current_page(url: str) -> int:
    """Page number encoded in the URL. Missing or unparsable → 1."""
    for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if key != PAGE_PARAM:
            continue
        try:
            page = int(value)
        except ValueError:
            return 1
        return page if page >= 1 else 1
    return 1


def page_url(url: str, page: int) -> str:
    """Same URL with the `page` parameter set, other parameters untouched."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    replaced = False
    updated = []
    for key, value in query:
        if key == PAGE_PARAM:
            if replaced:
                continue
            value = str(page)
            replaced = True
        updated.append((key, value))
    if not replaced:
        updated.append((PAGE_PARAM, str(page)))
    return urlunsplit(parts._replace(query=urlencode(updated)))


def next_target(url: str, max_pages: int) -> Optional[str]:
    """
    URL of the page after `url`, or None once `max_pages` would be exceeded.

    >>> next_target("https://openvc.app/search?page=3", 5)
    'https://openvc.app/search?page=4'
    >>> next_target("https://openvc.app/search?page=5", 5) is None
    True
    """
    next_page = current_page(url) + 1
    if next_page > max_pages:
        return None
    return page_url(url, next_page)
