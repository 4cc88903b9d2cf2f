"""Shared fixtures for the API test suite.

Upstream directories are never contacted: the fetchers in
merchant_dedup.sources.fetch are patched to return the sample payloads
below.  Each test starts with an empty suggestion store and the built-in
default dedup config.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from starlette.testclient import TestClient

# ---------------------------------------------------------------------------
# Sample upstream payloads (native shapes)
# ---------------------------------------------------------------------------

SAMPLE_BTCMAP: list[dict] = [
    {
        "id": "node:1001",
        "osm_json": {
            "lat": 40.0,
            "lon": -73.0,
            "tags": {"name": "Joe's Coffee", "currency:XBT": "yes"},
        },
    },
    {
        "id": "node:1002",
        "osm_json": {
            "lat": 13.6929,
            "lon": -89.2182,
            "tags": {"name": "Pupusería La Esperanza"},
        },
    },
    {
        # No name tag: skipped by the adapter
        "id": "node:1003",
        "osm_json": {"lat": 13.5, "lon": -89.3, "tags": {}},
    },
]

SAMPLE_BLINK: list[dict] = [
    {
        "username": "joescoffee",
        "mapInfo": {
            "title": "Joes Coffee Shop",
            "coordinates": {"latitude": 40.0001, "longitude": -73.0001},
        },
    },
    {
        "username": "lunaroja",
        "mapInfo": {
            "title": "Luna Roja",
            "coordinates": {"latitude": 13.70, "longitude": -89.20},
        },
    },
]


# ---------------------------------------------------------------------------
# App fixture: patched upstream fetchers, fresh in-memory state
# ---------------------------------------------------------------------------


@pytest.fixture()
def app():
    """FastAPI app with upstream directories patched to the sample payloads."""
    with (
        patch(
            "merchant_dedup.sources.fetch.fetch_btcmap_elements",
            return_value=list(SAMPLE_BTCMAP),
        ),
        patch(
            "merchant_dedup.sources.fetch.fetch_blink_markers",
            return_value=list(SAMPLE_BLINK),
        ),
    ):
        from merchant_dedup.algorithms.composite_scorer import ScorerConfig
        from merchant_dedup.api import helpers
        from merchant_dedup.api.app import app as _app

        helpers._CONFIG = ScorerConfig()
        helpers.get_store().clear()

        # Normally refreshed in the startup event
        _app.state.server_started_at = datetime.now(timezone.utc)

        yield _app

        # Cleanup
        helpers._CONFIG = None
        helpers.get_store().clear()


@pytest.fixture()
def client(app):
    """TestClient that turns unhandled server errors into 500 responses."""
    return TestClient(app, raise_server_exceptions=False)
