"""Tests for the dashboard feed loader and its connection states."""

from unittest.mock import MagicMock

import pytest
import requests

from dashboard.feed import ConnectionState, FeedLoader
from pipeline.cache import MemoryCache
from pipeline.sink import empty_envelope, write_artifact

ENVELOPE = {
    "trades": [{"id": "t1", "dollarAmount": 50_000}],
    "count": 1,
    "lastUpdated": "2024-05-01T12:00:00Z",
    "summary": {"totalVolume": 50_000},
    "note": "",
}


def http_response(payload, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    return resp


@pytest.fixture
def http_loader():
    loader = FeedLoader(base_url="http://feed.local/data/")
    loader.session = MagicMock()
    return loader


class TestFileFeed:
    def test_fresh_artifact_is_strong(self, tmp_path):
        write_artifact(tmp_path / "whale-trades.json", ENVELOPE)
        result = FeedLoader(artifact_dir=tmp_path).load("whale-trades.json")
        assert result.state == ConnectionState.STRONG
        assert result.records == ENVELOPE["trades"]
        assert result.summary["totalVolume"] == 50_000
        assert result.error is None

    def test_empty_envelope_is_still_strong(self, tmp_path):
        write_artifact(tmp_path / "markets.json", empty_envelope("markets"))
        result = FeedLoader(artifact_dir=tmp_path).load("markets.json")
        assert result.state == ConnectionState.STRONG
        assert result.kind == "markets"
        assert result.records == []

    def test_missing_artifact_without_history_is_error(self, tmp_path):
        result = FeedLoader(artifact_dir=tmp_path).load("kalshi-whale-trades.json")
        assert result.state == ConnectionState.ERROR
        assert result.records == []
        assert "no artifact yet" in result.error

    def test_unconfigured_loader_is_error(self):
        assert FeedLoader().load("trades.json").state == ConnectionState.ERROR


class TestHttpFeed:
    def test_url_join(self, http_loader):
        http_loader.session.request.return_value = http_response(ENVELOPE)
        http_loader.load("trades.json")
        assert http_loader.session.request.call_args.kwargs["url"] == \
            "http://feed.local/data/trades.json"

    def test_failure_after_success_serves_last_known_good(self, http_loader):
        http_loader.session.request.side_effect = [
            http_response(ENVELOPE),
            requests.ConnectionError("refused"),
        ]
        assert http_loader.load("trades.json").state == ConnectionState.STRONG
        result = http_loader.load("trades.json")
        assert result.state == ConnectionState.WEAK
        assert result.envelope == ENVELOPE
        assert "refused" in result.error

    def test_error_payload_counts_as_failure(self, http_loader):
        http_loader.session.request.return_value = http_response(
            {"error": "Database error", "details": "timeout"})
        result = http_loader.load("trades.json")
        assert result.state == ConnectionState.ERROR
        assert "Database error" in result.error

    def test_non_object_payload(self, http_loader):
        http_loader.session.request.return_value = http_response(["nope"])
        assert http_loader.load("trades.json").state == ConnectionState.ERROR

    def test_server_error_without_history(self, http_loader):
        http_loader.session.request.return_value = http_response({}, status=502)
        result = http_loader.load("trades.json")
        assert result.state == ConnectionState.ERROR
        assert result.envelope == empty_envelope()

    def test_history_is_per_feed(self):
        cache = MemoryCache()
        loader = FeedLoader(base_url="http://feed.local", cache=cache)
        loader.session = MagicMock()
        loader.session.request.side_effect = [
            http_response(ENVELOPE),
            requests.Timeout("slow"),
        ]
        loader.load("trades.json")
        assert loader.load("markets.json").state == ConnectionState.ERROR
        assert cache.get("feed:trades.json") == ENVELOPE
