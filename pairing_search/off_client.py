"""Asynchronous Open Food Facts client.

Two endpoints are consumed:

* ``GET {base}/api/2/search?search_terms={query}`` returning ``products``.
* ``GET {base}/api/v0/product/{code}.json`` returning
  ``product.ingredients_analysis_tags``.

Every failure is raised as :class:`~pairing_search.errors.TransportError` or
:class:`~pairing_search.errors.ParseError`; callers decide whether to log or
surface it. Detail lookups may be served from a :class:`CacheBackend`, search
lookups always hit the network.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from time import perf_counter
from typing import Any, List, Optional, Type

import httpx
from pydantic import BaseModel, ValidationError

from .cache import CacheBackend, get_cache
from .config import settings
from .errors import ParseError, TransportError
from .models import OffDetailPayload, OffProduct, OffSearchPayload, SearchResult
from .utils import detail_url, extract_pairings, pairing_cache_key, product_page_url, search_url

logger = logging.getLogger(__name__)


class OpenFoodFactsClient:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        user_agent: str | None = None,
        cache: CacheBackend | None = None,
        cache_ttl: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.off_base_url).rstrip("/")
        self.cache = cache
        self.cache_ttl = settings.cache_ttl_seconds if cache_ttl is None else cache_ttl
        self._http = httpx.AsyncClient(
            timeout=settings.request_timeout_seconds if timeout is None else timeout,
            headers={"User-Agent": user_agent or settings.off_user_agent},
            transport=transport,
        )

    async def __aenter__(self) -> "OpenFoodFactsClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get_json(self, url: str) -> Any:
        try:
            response = await self._http.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"GET {url} returned HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"GET {url!r} failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise ParseError(f"GET {url} returned a body that is not JSON") from exc

    @staticmethod
    def _validate(model: Type[BaseModel], payload: Any, url: str) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise ParseError(f"GET {url} returned an unexpected payload: {exc.error_count()} error(s)") from exc

    async def search(self, query: str) -> List[SearchResult]:
        url = search_url(self.base_url, query)
        started = perf_counter()
        payload = self._validate(OffSearchPayload, await self._get_json(url), url)
        results: List[SearchResult] = []
        for position, raw in enumerate(payload.products):
            try:
                product = OffProduct.model_validate(raw)
            except ValidationError:
                logger.debug("Skipping unusable product #%s in results for %r", position, query)
                continue
            if not product.code:
                logger.debug("Skipping product #%s without code in results for %r", position, query)
                continue
            results.append(
                SearchResult(
                    code=product.code,
                    name=product.product_name or "",
                    url=product.url or product_page_url(self.base_url, product.code),
                )
            )
        logger.info(
            "search q=%r hits=%s took=%.1fms",
            query,
            len(results),
            (perf_counter() - started) * 1000,
        )
        return results

    def cached_pairings(self, code: str) -> Optional[List[str]]:
        if self.cache is None or self.cache_ttl <= 0:
            return None
        cached = self.cache.get(pairing_cache_key(code))
        if not isinstance(cached, dict):
            return None
        pairings = cached.get("pairings")
        if not isinstance(pairings, list):
            return None
        return [str(tag) for tag in pairings]

    async def fetch_pairings(self, code: str) -> List[str]:
        cached = self.cached_pairings(code)
        if cached is not None:
            logger.debug("pairings cache_hit code=%s", code)
            return cached

        url = detail_url(self.base_url, code)
        payload = self._validate(OffDetailPayload, await self._get_json(url), url)
        pairings = extract_pairings(payload.product.ingredients_analysis_tags)
        logger.info("pairings code=%s tags=%s", code, len(pairings))

        if self.cache is not None and self.cache_ttl > 0:
            self.cache.set(pairing_cache_key(code), {"code": code, "pairings": pairings}, self.cache_ttl)
        return pairings


@lru_cache(maxsize=1)
def get_client() -> OpenFoodFactsClient:
    logger.info("Using Open Food Facts at %s", settings.off_base_url)
    return OpenFoodFactsClient(cache=get_cache())
