#!/usr/bin/env python3
"""
Bitcoin Merchant Map — API

Proxies the upstream merchant directories, serves the deduplicated merchant
set for the map, and accepts merchant suggestions.

Usage:
    uvicorn merchant_dedup.api.app:app --reload --port 8000
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from .helpers import load_config
from .routes import health, merchants

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Bitcoin Merchant Map",
    version=__version__,
    description="Cross-source Bitcoin merchant listings with duplicate pins removed",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(merchants.router)

app.state.server_started_at = datetime.now(timezone.utc)


@app.on_event("startup")
async def startup():
    app.state.server_started_at = datetime.now(timezone.utc)
    config = load_config()
    logger.info(
        "Dedup config: policy=%s strategy=%s threshold=%.2f distance=%.0fm weights=%.2f/%.2f",
        config.decision_policy,
        config.match_strategy,
        config.name_similarity_threshold,
        config.distance_threshold_m,
        config.name_weight,
        config.location_weight,
    )
