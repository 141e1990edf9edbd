"""Helpers for building upstream URLs and deriving pairing tags.

Open Food Facts taxonomy values carry a language prefix (``en:vegan``). Only a
leading prefix that matches exactly is removed; everything else is passed
through untouched so that order and duplicates survive.
"""
from __future__ import annotations

from typing import Iterable, List

from .config import settings

SEARCH_PATH = "/api/2/search"
DETAIL_PATH = "/api/v0/product/{code}.json"
PRODUCT_PAGE_PATH = "/product/{code}"


def strip_locale_prefix(tag: str, prefix: str | None = None) -> str:
    """Remove ``prefix`` from the start of ``tag`` when present."""
    prefix = settings.locale_prefix if prefix is None else prefix
    if prefix and tag.startswith(prefix):
        return tag[len(prefix):]
    return tag


def extract_pairings(tags: Iterable[str], prefix: str | None = None) -> List[str]:
    return [strip_locale_prefix(tag, prefix) for tag in tags]


def _join(base_url: str, path: str) -> str:
    return base_url.rstrip("/") + path


def search_url(base_url: str, query: str) -> str:
    # The query is inserted verbatim; httpx still percent-encodes characters
    # that are illegal in a URL when the request is built.
    return f"{_join(base_url, SEARCH_PATH)}?search_terms={query}"


def detail_url(base_url: str, code: str) -> str:
    return _join(base_url, DETAIL_PATH.format(code=code))


def product_page_url(base_url: str, code: str) -> str:
    return _join(base_url, PRODUCT_PAGE_PATH.format(code=code))


def pairing_cache_key(code: str) -> str:
    return f"pairings:{code}"
