"""Tests for the merchant endpoints."""

from __future__ import annotations

from unittest.mock import patch

from merchant_dedup.sources.fetch import UpstreamError

from .conftest import SAMPLE_BLINK, SAMPLE_BTCMAP


class TestUpstreamProxies:
    """GET /api/btcmap/merchants and /api/blink/merchants"""

    def test_btcmap_proxy(self, client):
        resp = client.get("/api/btcmap/merchants")
        assert resp.status_code == 200
        assert resp.json() == SAMPLE_BTCMAP

    def test_blink_proxy(self, client):
        resp = client.get("/api/blink/merchants")
        assert resp.status_code == 200
        assert [m["username"] for m in resp.json()] == ["joescoffee", "lunaroja"]

    def test_btcmap_failure_returns_500(self, client):
        with patch(
            "merchant_dedup.sources.fetch.fetch_btcmap_elements",
            side_effect=UpstreamError("btcmap", "connection refused"),
        ):
            resp = client.get("/api/btcmap/merchants")
        assert resp.status_code == 500
        assert resp.json()["detail"] == {
            "message": "Failed to fetch merchants from BTCMap",
            "error": "connection refused",
        }

    def test_blink_failure_returns_500(self, client):
        with patch(
            "merchant_dedup.sources.fetch.fetch_blink_markers",
            side_effect=UpstreamError("blink", "rate limited"),
        ):
            resp = client.get("/api/blink/merchants")
        assert resp.status_code == 500
        assert resp.json()["detail"]["message"] == "Failed to fetch merchants from Blink"


class TestDeduplicatedMerchants:
    """GET /api/merchants/deduplicated"""

    def test_filters_blink_against_btcmap(self, client):
        resp = client.get("/api/merchants/deduplicated")
        assert resp.status_code == 200
        data = resp.json()
        assert data["base_source"] == "btcmap"
        assert data["base_total"] == 2
        assert [m["id"] for m in data["merchants"]["blink"]] == ["lunaroja"]
        assert data["matches"][0]["candidate_key"] == "blink-joescoffee"
        assert data["matches"][0]["base_key"] == "btcmap-node:1001"

    def test_summary(self, client):
        summary = client.get("/api/merchants/deduplicated").json()["summary"]
        assert summary["total_btcmap"] == 2
        assert summary["total_blink"] == 2
        assert summary["unique_blink"] == 1
        assert summary["duplicates_blink"] == 1
        assert summary["total_local"] == 0

    def test_include_original(self, client):
        with_original = client.get("/api/merchants/deduplicated").json()
        assert with_original["merchants"]["blink"][0]["original"] == SAMPLE_BLINK[1]

        without = client.get("/api/merchants/deduplicated", params={"include_original": "false"}).json()
        assert "original" not in without["merchants"]["blink"][0]

    def test_suggestions_included_as_local_source(self, client):
        client.post("/api/merchants", json={"name": "Joe's Coffee", "latitude": 40.0, "longitude": -73.0})
        client.post("/api/merchants", json={"name": "Surf Shack", "latitude": 13.49, "longitude": -89.38})
        data = client.get("/api/merchants/deduplicated").json()
        assert [m["name"] for m in data["merchants"]["local"]] == ["Surf Shack"]
        assert data["stats"]["local"]["duplicates"] == 1

    def test_upstream_failure(self, client):
        with patch(
            "merchant_dedup.sources.fetch.fetch_blink_markers",
            side_effect=UpstreamError("blink", "timed out"),
        ):
            resp = client.get("/api/merchants/deduplicated")
        assert resp.status_code == 500
        assert resp.json()["detail"]["error"] == "timed out"


class TestDeduplicatePayloads:
    """POST /api/merchants/deduplicate"""

    def test_deduplicates_supplied_payloads(self, client):
        resp = client.post(
            "/api/merchants/deduplicate",
            json={"btcmap": SAMPLE_BTCMAP, "blink": SAMPLE_BLINK, "include_original": False},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert [m["id"] for m in data["merchants"]["blink"]] == ["lunaroja"]
        assert data["merchants"]["bitcoinjungle"] == []
        assert "local" not in data["merchants"]
        assert data["stats"]["blink"]["skipped"] == 0
        assert data["config"]["decision_policy"] == "weighted"

    def test_non_object_items_are_skipped(self, client):
        resp = client.post(
            "/api/merchants/deduplicate",
            json={"btcmap": SAMPLE_BTCMAP + [None], "blink": [None, "lunaroja", 42] + SAMPLE_BLINK},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["base_total"] == 2
        assert data["stats"]["blink"] == {"total": 2, "unique": 1, "duplicates": 1, "skipped": 3}
        assert [m["id"] for m in data["merchants"]["blink"]] == ["lunaroja"]

    def test_empty_request(self, client):
        data = client.post("/api/merchants/deduplicate", json={}).json()
        assert data["base_total"] == 0
        assert data["matches"] == []

    def test_config_override(self, client):
        resp = client.post(
            "/api/merchants/deduplicate",
            json={
                "btcmap": SAMPLE_BTCMAP,
                "blink": SAMPLE_BLINK,
                "config": {"name_similarity_threshold": 0.99},
            },
        )
        data = resp.json()
        assert data["config"]["name_similarity_threshold"] == 0.99
        assert data["summary"]["duplicates_blink"] == 0

    def test_invalid_override_returns_422(self, client):
        resp = client.post(
            "/api/merchants/deduplicate",
            json={"btcmap": [], "config": {"name_weight": 0.9}},
        )
        assert resp.status_code == 422
        assert "name_weight" in resp.json()["detail"]

    def test_unknown_policy_returns_422(self, client):
        resp = client.post("/api/merchants/deduplicate", json={"config": {"decision_policy": "fuzzy"}})
        assert resp.status_code == 422

    def test_override_does_not_change_loaded_config(self, client):
        client.post("/api/merchants/deduplicate", json={"config": {"match_strategy": "best"}})
        config = client.get("/api/health").json()["dedup_config"]
        assert config["match_strategy"] == "first"


class TestSuggestions:
    """GET/POST /api/merchants"""

    def test_create(self, client):
        resp = client.post(
            "/api/merchants",
            json={
                "name": "Luna Roja",
                "latitude": 13.7,
                "longitude": -89.2,
                "paymentMethods": ["lightning"],
                "dataSource": "I visited as a customer",
            },
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["id"] == "1"
        assert data["name"] == "Luna Roja"
        assert data["paymentMethods"] == ["lightning"]
        assert "created_at" in data
        assert data["possible_duplicates"] == []

    def test_list(self, client):
        assert client.get("/api/merchants").json() == []
        client.post("/api/merchants", json={"name": "Luna Roja", "latitude": 13.7, "longitude": -89.2})
        client.post("/api/merchants", json={"name": "Surf Shack", "latitude": 13.49, "longitude": -89.38})
        items = client.get("/api/merchants").json()
        assert [m["id"] for m in items] == ["1", "2"]
        assert "possible_duplicates" not in items[0]

    def test_flags_possible_duplicate(self, client):
        client.post("/api/merchants", json={"name": "Joe's Coffee", "latitude": 40.0, "longitude": -73.0})
        resp = client.post(
            "/api/merchants",
            json={"name": "Joes Coffee Shop", "latitude": 40.0001, "longitude": -73.0001},
        )
        assert resp.status_code == 201
        dupes = resp.json()["possible_duplicates"]
        assert len(dupes) == 1
        assert dupes[0]["base_key"] == "local-1"
        assert dupes[0]["candidate_key"] == "local-2"
        # Stored regardless
        assert len(client.get("/api/merchants").json()) == 2

    def test_missing_coordinates(self, client):
        resp = client.post("/api/merchants", json={"name": "Luna Roja"})
        assert resp.status_code == 422

    def test_latitude_out_of_range(self, client):
        resp = client.post("/api/merchants", json={"name": "Luna Roja", "latitude": 95.0, "longitude": 0.0})
        assert resp.status_code == 422

    def test_empty_name(self, client):
        resp = client.post("/api/merchants", json={"name": "", "latitude": 1.0, "longitude": 1.0})
        assert resp.status_code == 422

    def test_invalid_payment_method(self, client):
        resp = client.post(
            "/api/merchants",
            json={"name": "Luna", "latitude": 1.0, "longitude": 1.0, "paymentMethods": ["cash"]},
        )
        assert resp.status_code == 422

    def test_invalid_email(self, client):
        resp = client.post(
            "/api/merchants",
            json={"name": "Luna", "latitude": 1.0, "longitude": 1.0, "contact": "not-an-email"},
        )
        assert resp.status_code == 422
