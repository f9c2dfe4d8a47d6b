"""Tests for the HTTP routes, using FastAPI's TestClient."""

import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from api.server import create_app
from pipeline.cache import MemoryCache
from pipeline.errors import SourceUnavailable


def stored_row(trade_id, size, title):
    return {
        "id": trade_id, "market_id": f"m-{trade_id}", "market_question": title,
        "side": "BUY", "outcome": "Yes", "size": size, "price": 0.5,
        "trader_wallet": "0xw", "timestamp": "2024-05-01T12:00:00+00:00",
    }


@pytest.fixture
def context(app_config, queries):
    polymarket = MagicMock()
    polymarket.get_gamma_market.return_value = {"slug": "s", "image": "i.png"}
    return {
        "config": app_config,
        "queries": queries,
        "polymarket": polymarket,
        "kalshi": MagicMock(),
        "polygon": MagicMock(),
        "cache": MemoryCache(),
    }


@pytest.fixture
def client(context):
    return TestClient(create_app(lambda: context))


class TestHealth:
    def test_healthz(self, client):
        resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestWhaleTrades:
    def test_upstream_failure_is_500_envelope(self, client, context):
        context["polymarket"].get_gamma_markets.side_effect = SourceUnavailable(
            "polymarket", "HTTP 503")
        resp = client.get("/api/whale-trades")
        assert resp.status_code == 500
        body = resp.json()
        assert body["error"] == "Failed to fetch whale trades"
        assert "HTTP 503" in body["details"]

    def test_no_trades_is_empty_200(self, client, context):
        context["polymarket"].get_gamma_markets.return_value = []
        resp = client.get("/api/whale-trades")
        assert resp.status_code == 200
        body = resp.json()
        assert body["trades"] == []
        assert body["count"] == 0

    def test_returns_ranked_trades(self, client, context):
        context["polymarket"].get_gamma_markets.return_value = [
            {"id": "1", "condition_id": "0xc1", "question": "Will X?"}]
        context["polymarket"].get_clob_trades.return_value = [
            {"id": "a", "size": "30000", "price": "0.5"},
            {"id": "b", "size": "90000", "price": "0.5"},
        ]
        body = client.get("/api/whale-trades").json()
        assert [t["id"] for t in body["trades"]] == ["b", "a"]
        assert body["summary"]["largestTrade"]["id"] == "b"


class TestTopMarkets:
    def seed(self, queries):
        for market_id, volume, yes, change in (
                ("a", 5_000_000, 0.80, 0.0),
                ("b", 1_500_000, 0.52, 0.04),
                ("c", 700_000, 0.45, 0.0)):
            queries.insert_snapshot({
                "market_id": market_id, "market_question": f"{market_id}?",
                "yes_price": yes, "no_price": 1 - yes, "volume_24h": volume,
                "price_change_1h": change,
            })

    def test_default_volume_filter(self, client, queries):
        self.seed(queries)
        body = client.get("/api/top-markets").json()
        assert [m["id"] for m in body["markets"]] == ["a", "b"]
        assert body["filter"] == "volume"
        assert body["markets"][0]["polymarket_url"] == "https://polymarket.com/market/s"

    def test_unknown_filter_falls_back_to_volume(self, client, queries):
        self.seed(queries)
        body = client.get("/api/top-markets", params={"filter": "banana"}).json()
        assert body["filter"] == "volume"

    def test_competitive_filter(self, client, queries):
        self.seed(queries)
        body = client.get("/api/top-markets", params={"filter": "competitive"}).json()
        assert [m["id"] for m in body["markets"]] == ["b", "c", "a"]

    def test_min_volume_override(self, client, queries):
        self.seed(queries)
        body = client.get("/api/top-markets", params={"minVolume": 0}).json()
        assert body["count"] == 3
        assert body["minVolume"] == 0

    def test_negative_min_volume_rejected(self, client):
        assert client.get("/api/top-markets", params={"minVolume": -1}).status_code == 422

    def test_database_failure(self, client, context):
        context["queries"] = MagicMock()
        context["queries"].get_market_snapshots.side_effect = SourceUnavailable(
            "stored_snapshots", "locked")
        resp = client.get("/api/top-markets")
        assert resp.status_code == 500
        assert resp.json()["error"] == "Database error"


class TestStoredTrades:
    def test_writes_public_artifact(self, client, queries, app_config):
        queries.insert_trades_batch([
            stored_row("x", 25_000, "WILL BTC HIT 100K?"),
            stored_row("y", 80_000, "KNICKS VS. HEAT"),
        ])
        resp = client.get("/api/stored-trades")
        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()["trades"]] == ["x"]
        written = json.loads((app_config.output.public_dir / "trades.json").read_text())
        assert written["count"] == 1

    def test_database_failure(self, client, context):
        context["queries"] = MagicMock()
        context["queries"].get_trades.side_effect = SourceUnavailable(
            "stored_trades", "connection refused")
        resp = client.get("/api/stored-trades")
        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to fetch trades from database"
