"""Tests for the Kalshi client: request construction and trade pagination."""

from unittest.mock import MagicMock, patch

import pytest

from clients.kalshi_client import KalshiClient
from config import KalshiConfig
from pipeline.errors import SourceMalformedResponse


@pytest.fixture
def client():
    return KalshiClient(KalshiConfig(rate_limit_delay=0.0))


class TestKalshiClientMethods:
    @patch("clients.kalshi_client.KalshiClient._get")
    def test_get_markets_params(self, mock_get, client):
        mock_get.return_value = {"markets": [], "cursor": None}
        client.get_markets(limit=50, cursor="abc")
        url = mock_get.call_args.args[0]
        assert url.endswith("/markets")
        assert mock_get.call_args.kwargs["params"] == {
            "limit": 50, "status": "open", "cursor": "abc"}

    @patch("clients.kalshi_client.KalshiClient._get")
    def test_open_markets_skip_junk(self, mock_get, client):
        mock_get.return_value = {"markets": [{"ticker": "A"}, "junk", None]}
        assert client.get_open_markets() == [{"ticker": "A"}]

    @patch("clients.kalshi_client.KalshiClient._get")
    def test_non_object_response(self, mock_get, client):
        mock_get.return_value = ["not", "an", "object"]
        with pytest.raises(SourceMalformedResponse):
            client.get_markets()

    @patch("clients.kalshi_client.KalshiClient._get")
    def test_trades_params(self, mock_get, client):
        mock_get.return_value = {"trades": [], "cursor": ""}
        client.get_trades("KX-1", min_ts=100, limit=1000)
        assert mock_get.call_args.kwargs["params"] == {
            "ticker": "KX-1", "limit": 1000, "min_ts": 100}

    def test_rate_limit_delay(self):
        assert KalshiClient(KalshiConfig(rate_limit_delay=0.06)).rate_limit_delay == 0.06


class TestTradePagination:
    def test_follows_cursor(self, client):
        client.get_trades = MagicMock(side_effect=[
            {"trades": [{"trade_id": "1"}], "cursor": "next"},
            {"trades": [{"trade_id": "2"}], "cursor": ""},
        ])
        trades = client.iter_trades("KX", min_ts=5).items()
        assert [t["trade_id"] for t in trades] == ["1", "2"]
        assert client.get_trades.call_args_list[1].kwargs["cursor"] == "next"

    def test_capped_at_max_pages(self, client):
        client.get_trades = MagicMock(
            return_value={"trades": [{"trade_id": "x"}], "cursor": "forever"})
        trades = client.iter_trades("KX").items()
        assert len(trades) == 10
        assert client.get_trades.call_count == 10
