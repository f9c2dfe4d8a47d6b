"""Tests for envelope serialization and atomic artifact writes."""

import json
import os
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from conftest import make_snapshot, make_trade
from pipeline.aggregate import build_result
from pipeline.errors import PersistenceFailure
from pipeline.rank import RankMode
from pipeline.sink import (
    empty_envelope, error_envelope, read_artifact, to_envelope, write_artifact,
)

UPDATED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestEnvelope:
    def test_trade_envelope_shape(self):
        result = build_result(
            [make_trade("a", 15_000, trader="0x1"), make_trade("b", 25_000, trader="0x2")],
            "trades", RankMode.SIZE, note="demo", last_updated=UPDATED,
            metadata={"timeRange": {"from": "x", "to": "y"}},
        )
        envelope = to_envelope(result)
        assert envelope["count"] == 2
        assert envelope["lastUpdated"] == "2024-05-01T12:00:00Z"
        assert envelope["note"] == "demo"
        assert envelope["timeRange"] == {"from": "x", "to": "y"}
        assert [t["id"] for t in envelope["trades"]] == ["b", "a"]
        summary = envelope["summary"]
        assert summary["totalVolume"] == 40_000
        assert summary["averageTradeSize"] == 20_000
        assert summary["uniqueTraders"] == 2
        assert summary["largestTrade"]["id"] == "b"

    def test_custom_largest_key(self):
        result = build_result([make_trade("a", 1)], "trades", RankMode.SIZE,
                              largest_key="largestActivity")
        assert "largestActivity" in to_envelope(result)["summary"]

    def test_market_envelope_shape(self):
        snapshot = make_snapshot("m1", volume=2_000_000, yes=0.653)
        snapshot.details.update({"slug": "will-x", "image": "x.png"})
        envelope = to_envelope(build_result([snapshot], "markets", RankMode.VOLUME))
        market = envelope["markets"][0]
        assert market["yes_price"] == 65.3
        assert market["polymarket_url"] == "https://polymarket.com/market/will-x"
        assert market["image_url"] == "x.png"
        assert envelope["summary"]["topMarket"]["id"] == "m1"

    def test_market_without_slug_links_nowhere(self):
        envelope = to_envelope(build_result([make_snapshot("m1")], "markets", RankMode.VOLUME))
        assert envelope["markets"][0]["polymarket_url"] == "#"

    def test_empty_and_error_envelopes(self):
        assert empty_envelope("markets")["markets"] == []
        assert error_envelope("Database error", "boom") == {
            "error": "Database error", "details": "boom"}


class TestWriteArtifact:
    def test_writes_json(self, tmp_path):
        path = tmp_path / "out" / "trades.json"
        write_artifact(path, {"trades": [], "count": 0})
        assert json.loads(path.read_text()) == {"trades": [], "count": 0}
        assert read_artifact(path) == {"trades": [], "count": 0}

    def test_replaces_previous_content_without_leftovers(self, tmp_path):
        path = tmp_path / "trades.json"
        write_artifact(path, {"count": 1})
        write_artifact(path, {"count": 2})
        assert read_artifact(path) == {"count": 2}
        assert os.listdir(tmp_path) == ["trades.json"]

    def test_failed_replace_keeps_old_file(self, tmp_path):
        path = tmp_path / "trades.json"
        write_artifact(path, {"count": 1})
        with patch("pipeline.sink.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceFailure):
                write_artifact(path, {"count": 2})
        assert read_artifact(path) == {"count": 1}
        assert os.listdir(tmp_path) == ["trades.json"]

    def test_unwritable_directory_raises_persistence_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(PersistenceFailure):
            write_artifact(blocker / "trades.json", {"count": 0})


class TestReadArtifact:
    def test_missing(self, tmp_path):
        assert read_artifact(tmp_path / "nope.json") is None

    def test_corrupt(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert read_artifact(path) is None
