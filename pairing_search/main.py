"""FastAPI application exposing product search and pairing lookup."""
from __future__ import annotations

import logging
from time import perf_counter

from fastapi import Depends, FastAPI, HTTPException, Path, Query

from .config import settings
from .errors import PairingSearchError, ParseError
from .models import PairingsResponse, SearchResponse
from .off_client import OpenFoodFactsClient, get_client

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# uvicorn installs its own handlers; ``force=True`` puts every logger on one format.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    logging.getLogger(name).setLevel(LOG_LEVEL)
# httpx logs every request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

app = FastAPI(title="Pairing Search Service")


def _upstream_error(exc: PairingSearchError) -> HTTPException:
    logger.warning("Upstream lookup failed: %s", exc)
    if isinstance(exc, ParseError):
        return HTTPException(status_code=502, detail="Unexpected response from product database")
    return HTTPException(status_code=502, detail="Product database unavailable")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if get_client.cache_info().currsize:
        await get_client().aclose()


@app.get("/health")
async def health(client: OpenFoodFactsClient = Depends(get_client)) -> dict:
    return {
        "status": "ok",
        "base_url": client.base_url,
        "cache": client.cache.name if client.cache is not None else None,
    }


@app.get("/search", response_model=SearchResponse)
async def search(
    q: str = Query(..., description="Search terms"),
    client: OpenFoodFactsClient = Depends(get_client),
) -> SearchResponse:
    if not q.strip():
        raise HTTPException(status_code=400, detail="Query must not be empty")
    started = perf_counter()
    try:
        results = await client.search(q)
    except PairingSearchError as exc:
        raise _upstream_error(exc) from exc
    return SearchResponse(query=q, results=results, took_ms=(perf_counter() - started) * 1000)


@app.get("/products/{code}/pairings", response_model=PairingsResponse)
async def pairings(
    code: str = Path(..., description="Product barcode"),
    client: OpenFoodFactsClient = Depends(get_client),
) -> PairingsResponse:
    cached = client.cached_pairings(code)
    if cached is not None:
        return PairingsResponse(code=code, pairings=cached, cached=True)
    try:
        tags = await client.fetch_pairings(code)
    except PairingSearchError as exc:
        raise _upstream_error(exc) from exc
    return PairingsResponse(code=code, pairings=tags)
