"""Pydantic request models for the Bitcoin Merchant Map API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

PaymentMethod = Literal["onchain", "lightning", "lightning_contactless"]
DataSource = Literal[
    "I am the business owner",
    "I visited as a customer",
    "Other method",
]


class MerchantSuggestion(BaseModel):
    name: str = Field(..., min_length=1, description="Business name")
    country: str | None = None
    address: str | None = None
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    type: str | None = Field(None, description="Business category (cafe, restaurant, …)")
    payment_methods: list[PaymentMethod] | None = Field(None, alias="paymentMethods")
    website: str | None = Field(None, pattern=r"^(https?://\S+)?$")
    phone: str | None = Field(None, pattern=r"^(\+?[\d\s-]+)?$")
    opening_hours: str | None = Field(None, alias="openingHours")
    twitter_merchant: str | None = Field(None, alias="twitterMerchant")
    twitter_submitter: str | None = Field(None, alias="twitterSubmitter")
    notes: str | None = None
    data_source: DataSource | None = Field(None, alias="dataSource")
    contact: str | None = Field(
        None,
        pattern=r"^([^@\s]+@[^@\s]+\.[^@\s]+)?$",
        description="Submitter email",
    )

    model_config = {"populate_by_name": True}


class ConfigOverrides(BaseModel):
    """Per-request overrides of the loaded deduplication config."""

    name_similarity_threshold: float | None = None
    distance_threshold_m: float | None = None
    name_weight: float | None = None
    location_weight: float | None = None
    grid_cell_size_deg: float | None = None
    decision_policy: Literal["weighted", "conjunctive"] | None = None
    match_strategy: Literal["first", "best"] | None = None
    name_metric: Literal["levenshtein", "dice"] | None = None


class DeduplicateRequest(BaseModel):
    btcmap: list[Any] = Field(default_factory=list, description="Raw BTC Map elements (base)")
    blink: list[Any] = Field(default_factory=list, description="Raw Blink map markers")
    bitcoinjungle: list[Any] = Field(default_factory=list, description="Raw Bitcoin Jungle listings")
    local: list[Any] = Field(default_factory=list, description="Flat id/name/latitude/longitude records")
    include_original: bool = True
    config: ConfigOverrides | None = None
