"""Shared fixtures: raw payloads in each directory's native shape."""

from __future__ import annotations

import pytest

from merchant_dedup.algorithms.composite_scorer import ScorerConfig


def btcmap_element(eid, name, lat, lon):
    return {"id": eid, "osm_json": {"lat": lat, "lon": lon, "tags": {"name": name}}}


def blink_marker(username, title, lat, lon):
    return {
        "username": username,
        "mapInfo": {"title": title, "coordinates": {"latitude": lat, "longitude": lon}},
    }


def jungle_merchant(mid, name, lat, lon):
    return {"id": mid, "name": name, "coordinates": {"latitude": lat, "longitude": lon}}


@pytest.fixture()
def config():
    """Built-in defaults: weighted policy, 0.6/0.4, threshold 0.7, 100 m, 0.01° cells."""
    return ScorerConfig()


@pytest.fixture()
def joes_base():
    """BTC Map base with a single coffee shop in New York."""
    return [btcmap_element("1", "Joe's Coffee", 40.0, -73.0)]
