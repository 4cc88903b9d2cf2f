"""
Upstream fetchers for the merchant directories.

BTC Map exposes a REST endpoint with every element; Blink exposes its map
markers over GraphQL.  Both return raw payload lists for the adapters in
``merchant_dedup.sources.adapters``.

Dependencies:
    pip install requests
"""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

logger = logging.getLogger(__name__)

BTCMAP_URL = os.environ.get("BTCMAP_API_URL", "https://api.btcmap.org/v2/elements")
BLINK_URL = os.environ.get("BLINK_API_URL", "https://api.blink.sv/graphql")

DEFAULT_TIMEOUT = 30
USER_AGENT = "BTCMap-Frontend/1.0"

BLINK_MARKERS_QUERY = """
{
  mapMarkers {
    username
    mapInfo {
      coordinates {
        latitude
        longitude
      }
      title
    }
  }
}
"""


class UpstreamError(RuntimeError):
    """An upstream directory could not be fetched or returned an unusable payload."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


def fetch_btcmap_elements(
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[dict[str, Any]]:
    """GET every BTC Map element."""
    http = session or requests
    try:
        resp = http.get(
            BTCMAP_URL,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except requests.RequestException as exc:
        raise UpstreamError("btcmap", str(exc)) from exc
    except ValueError as exc:
        raise UpstreamError("btcmap", f"invalid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise UpstreamError("btcmap", f"expected a list, got {type(data).__name__}")

    logger.info("Fetched %d BTC Map elements", len(data))
    return data


def fetch_blink_markers(
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[dict[str, Any]]:
    """POST the mapMarkers GraphQL query to Blink."""
    http = session or requests
    try:
        resp = http.post(
            BLINK_URL,
            json={"query": BLINK_MARKERS_QUERY, "variables": {}},
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            timeout=timeout,
        )
        resp.raise_for_status()
        body = resp.json()
    except requests.RequestException as exc:
        raise UpstreamError("blink", str(exc)) from exc
    except ValueError as exc:
        raise UpstreamError("blink", f"invalid JSON: {exc}") from exc

    if not isinstance(body, dict):
        raise UpstreamError("blink", f"expected an object, got {type(body).__name__}")
    if body.get("errors"):
        messages = "; ".join(str(e.get("message", e)) for e in body["errors"] if isinstance(e, dict))
        raise UpstreamError("blink", messages or "GraphQL error")

    markers = (body.get("data") or {}).get("mapMarkers")
    if not isinstance(markers, list):
        raise UpstreamError("blink", "response has no mapMarkers list")

    logger.info("Fetched %d Blink map markers", len(markers))
    return markers
