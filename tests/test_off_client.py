"""Tests for the Open Food Facts client against a stubbed transport."""

import httpx
import pytest

from pairing_search.cache import InMemoryCache
from pairing_search.errors import ParseError, TransportError
from pairing_search.models import SearchResult
from pairing_search.off_client import OpenFoodFactsClient

BASE_URL = "https://off.test"


def make_client(handler, **kwargs) -> OpenFoodFactsClient:
    return OpenFoodFactsClient(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_search_parses_products_in_response_order():
    """Products map onto results in upstream order with derived fallbacks."""

    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "products": [
                    {"code": "1", "product_name": "A", "url": "https://off.test/product/1/a"},
                    {"code": 2, "brands": "ignored"},
                ]
            },
        )

    async with make_client(handler) as client:
        results = await client.search("nutella")

    assert results == [
        SearchResult(code="1", name="A", url="https://off.test/product/1/a"),
        SearchResult(code="2", name="", url="https://off.test/product/2"),
    ]
    assert seen[0].url.path == "/api/2/search"
    assert seen[0].url.params["search_terms"] == "nutella"
    assert "PairingSearch" in seen[0].headers["user-agent"]


@pytest.mark.asyncio
async def test_search_raises_transport_error_on_http_failure():
    """A non-2xx status becomes a TransportError carrying the status."""

    async with make_client(lambda request: httpx.Response(500)) as client:
        with pytest.raises(TransportError) as excinfo:
            await client.search("x")

    assert excinfo.value.status_code == 500
    assert excinfo.value.kind == "transport"


@pytest.mark.asyncio
async def test_search_raises_transport_error_on_connection_failure():
    """Connection failures become TransportError."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("dns failure", request=request)

    async with make_client(handler) as client:
        with pytest.raises(TransportError):
            await client.search("x")


@pytest.mark.asyncio
async def test_search_raises_parse_error_on_malformed_body():
    """Non-JSON bodies and bodies without products become ParseError."""

    async with make_client(lambda request: httpx.Response(200, content=b"<html>")) as client:
        with pytest.raises(ParseError):
            await client.search("x")

    async with make_client(lambda request: httpx.Response(200, json={"count": 0})) as client:
        with pytest.raises(ParseError):
            await client.search("x")


@pytest.mark.asyncio
async def test_fetch_pairings_strips_locale_prefix():
    """Detail lookups strip the locale prefix from analysis tags."""

    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(
            200,
            json={"product": {"ingredients_analysis_tags": ["en:vegan", "en:palm-oil-free", "vegetarian"]}},
        )

    async with make_client(handler) as client:
        pairings = await client.fetch_pairings("42")

    assert pairings == ["vegan", "palm-oil-free", "vegetarian"]
    assert seen == ["/api/v0/product/42.json"]


@pytest.mark.asyncio
async def test_fetch_pairings_missing_tags_is_parse_error():
    """A detail body without the tag list is a ParseError."""

    async with make_client(lambda request: httpx.Response(200, json={"status": 0})) as client:
        with pytest.raises(ParseError):
            await client.fetch_pairings("404")

    async with make_client(lambda request: httpx.Response(200, json={"product": {}})) as client:
        with pytest.raises(ParseError):
            await client.fetch_pairings("404")


@pytest.mark.asyncio
async def test_fetch_pairings_served_from_cache_after_first_lookup():
    """The second lookup of a code is answered from the cache."""

    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"product": {"ingredients_analysis_tags": ["en:vegan"]}})

    cache = InMemoryCache()
    async with make_client(handler, cache=cache, cache_ttl=60) as client:
        assert client.cached_pairings("42") is None
        assert await client.fetch_pairings("42") == ["vegan"]
        assert await client.fetch_pairings("42") == ["vegan"]
        assert client.cached_pairings("42") == ["vegan"]

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_zero_ttl_disables_cache():
    """A zero TTL sends every lookup to the network."""

    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"product": {"ingredients_analysis_tags": []}})

    async with make_client(handler, cache=InMemoryCache(), cache_ttl=0) as client:
        await client.fetch_pairings("42")
        await client.fetch_pairings("42")

    assert len(calls) == 2


@pytest.mark.asyncio
async def test_search_with_control_character_is_transport_error():
    """Queries that cannot form a valid URL fail as TransportError, not raw httpx errors."""

    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"products": []})

    async with make_client(handler) as client:
        with pytest.raises(TransportError):
            await client.search("apple\tpie")

    assert calls == []


@pytest.mark.asyncio
async def test_search_skips_products_without_code():
    """One product lacking a code does not discard the rest of the page."""

    payload = {
        "products": [
            {"code": "1", "product_name": "A"},
            {"product_name": "nocode"},
            {"code": "", "product_name": "blank"},
            "not-an-object",
            {"code": "3", "product_name": "C"},
        ]
    }
    async with make_client(lambda request: httpx.Response(200, json=payload)) as client:
        results = await client.search("x")

    assert [result.code for result in results] == ["1", "3"]


class ListCache:
    name = "odd"

    def get(self, key):
        return ["vegan"]

    def set(self, key, value, ttl):
        pass


@pytest.mark.asyncio
async def test_non_object_cache_entry_is_a_miss():
    """A cache entry that is not an object is ignored and the network is used."""

    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"product": {"ingredients_analysis_tags": ["en:vegan"]}})

    async with make_client(handler, cache=ListCache(), cache_ttl=60) as client:
        assert client.cached_pairings("42") is None
        assert await client.fetch_pairings("42") == ["vegan"]

    assert calls == ["/api/v0/product/42.json"]
