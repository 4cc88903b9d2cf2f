"""Merchant endpoints: upstream proxies, deduplicated map data, suggestions."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from ...algorithms.deduplicator import deduplicate_sources, find_possible_duplicates
from ...sources import fetch
from ...sources.adapters import BITCOIN_JUNGLE, BLINK, BTCMAP, LOCAL, from_normalized, normalize_records
from ..helpers import config_with_overrides, get_config, get_store
from ..models import DeduplicateRequest, MerchantSuggestion

logger = logging.getLogger(__name__)

router = APIRouter()


def _upstream_failure(label: str, exc: fetch.UpstreamError) -> HTTPException:
    logger.error("%s API error: %s", label, exc)
    return HTTPException(
        status_code=500,
        detail={
            "message": f"Failed to fetch merchants from {label}",
            "error": exc.message,
        },
    )


@router.get("/api/btcmap/merchants")
def btcmap_merchants() -> list[dict[str, Any]]:
    """Proxy for the BTC Map elements endpoint."""
    try:
        return fetch.fetch_btcmap_elements()
    except fetch.UpstreamError as exc:
        raise _upstream_failure("BTCMap", exc) from exc


@router.get("/api/blink/merchants")
def blink_merchants() -> list[dict[str, Any]]:
    """Proxy for the Blink mapMarkers GraphQL query."""
    try:
        return fetch.fetch_blink_markers()
    except fetch.UpstreamError as exc:
        raise _upstream_failure("Blink", exc) from exc


@router.get("/api/merchants/deduplicated")
def deduplicated_merchants(
    include_original: bool = Query(True, description="Include each record's source payload"),
) -> dict[str, Any]:
    """
    Fetch BTC Map and Blink, add stored suggestions as the ``local`` source,
    and return the candidate records that do not duplicate a BTC Map merchant.
    """
    try:
        btcmap = fetch.fetch_btcmap_elements()
    except fetch.UpstreamError as exc:
        raise _upstream_failure("BTCMap", exc) from exc
    try:
        blink = fetch.fetch_blink_markers()
    except fetch.UpstreamError as exc:
        raise _upstream_failure("Blink", exc) from exc

    result = deduplicate_sources(
        {BTCMAP: btcmap, BLINK: blink, LOCAL: get_store().list()},
        get_config(),
    )
    body = result.to_dict(include_original=include_original)
    body["summary"] = result.stats_dict()
    return body


@router.post("/api/merchants/deduplicate")
def deduplicate_payloads(req: DeduplicateRequest) -> dict[str, Any]:
    """Run the deduplicator over caller-supplied raw payloads."""
    overrides = req.config.model_dump(exclude_none=True) if req.config else None
    config = config_with_overrides(overrides)

    raw_sources = {BTCMAP: req.btcmap, BLINK: req.blink, BITCOIN_JUNGLE: req.bitcoinjungle}
    if req.local:
        raw_sources[LOCAL] = req.local

    result = deduplicate_sources(raw_sources, config)
    body = result.to_dict(include_original=req.include_original)
    body["summary"] = result.stats_dict()
    body["config"] = config.to_dict()
    return body


@router.get("/api/merchants")
def list_suggestions() -> list[dict[str, Any]]:
    """Merchant suggestions submitted so far."""
    return get_store().list()


@router.post("/api/merchants", status_code=201)
def create_suggestion(suggestion: MerchantSuggestion) -> dict[str, Any]:
    """
    Store a merchant suggestion.  Earlier suggestions that look like the same
    business are reported under ``possible_duplicates``; the suggestion is
    stored regardless.
    """
    store = get_store()
    config = get_config()
    existing, _ = normalize_records(LOCAL, store.list())

    merchant = store.add(suggestion.model_dump(by_alias=True, exclude_none=True))
    record = from_normalized(merchant)

    matches = find_possible_duplicates(record, existing, config) if record else []
    if matches:
        logger.info("Suggestion %r resembles %d earlier suggestion(s)", merchant["name"], len(matches))

    return {**merchant, "possible_duplicates": [m.to_dict() for m in matches]}
