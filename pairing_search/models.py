"""Pydantic models for upstream payloads, workflow state and API responses."""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OffProduct(BaseModel):
    """One entry of the upstream ``products`` array (unknown fields ignored)."""

    code: str
    product_name: str | None = None
    url: str | None = None

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_code(cls, value: Any) -> Any:
        # barcodes occasionally come back as JSON numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class OffSearchPayload(BaseModel):
    # entries are validated one by one so a single bad product is skipped
    products: list[Any]


class OffProductDetail(BaseModel):
    ingredients_analysis_tags: list[str]


class OffDetailPayload(BaseModel):
    product: OffProductDetail


class SearchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    name: str = ""
    url: str = ""


class WorkflowPhase(str, Enum):
    IDLE = "idle"
    QUERYING = "querying"
    RESULTS_SHOWN = "results_shown"
    DETAIL_LOADING = "detail_loading"
    DETAIL_SHOWN = "detail_shown"


class WorkflowError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="transport or parse")
    operation: str = Field(..., description="search or detail")
    message: str


class WorkflowSnapshot(BaseModel):
    """Read-only view of the workflow handed to the presentation layer."""

    model_config = ConfigDict(frozen=True)

    query: str
    phase: WorkflowPhase
    results: list[SearchResult]
    selected: SearchResult | None = None
    pairings: list[str]
    error: WorkflowError | None = None
    search_bar_width: float | None = None


class SearchResponse(BaseModel):
    query: str
    results: list[SearchResult]
    took_ms: float


class PairingsResponse(BaseModel):
    code: str
    pairings: list[str]
    cached: bool = False
