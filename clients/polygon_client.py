"""Polygon JSON-RPC client for exchange event logs.

Only three calls are needed: ``eth_blockNumber`` to anchor the scan window,
``eth_getLogs`` for OrderFilled events, and ``eth_getBlockByNumber`` to
turn a block number into a timestamp.
"""

from __future__ import annotations

from datetime import datetime, timezone
from itertools import count
from typing import Any, Dict, List, Optional

from config import PolygonConfig
from pipeline.errors import SourceMalformedResponse, SourceUnavailable

from .base import JsonApiClient


class PolygonClient(JsonApiClient):
    source = "polygon"

    def __init__(self, config: PolygonConfig) -> None:
        super().__init__()
        self.config = config
        self.rpc_url = config.rpc_url
        self._ids = count(1)

    def _rpc(self, method: str, params: List[Any]) -> Any:
        body = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        payload = self._expect(
            self._request("POST", self.rpc_url, json_body=body), dict, method,
        )
        if payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise SourceUnavailable(self.source, f"{method}: {message}")
        if "result" not in payload:
            raise SourceMalformedResponse(self.source, f"{method}: no result")
        return payload["result"]

    @staticmethod
    def _to_int(value: Any, what: str) -> int:
        try:
            return int(value, 16)
        except (TypeError, ValueError) as exc:
            raise SourceMalformedResponse("polygon", f"{what}: {value!r}") from exc

    def block_number(self) -> int:
        return self._to_int(self._rpc("eth_blockNumber", []), "eth_blockNumber")

    def get_logs(self, from_block: int, to_block: int,
                 address: Optional[str] = None,
                 topics: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
        }
        if address:
            query["address"] = address
        if topics:
            query["topics"] = topics
        result = self._rpc("eth_getLogs", [query])
        return self._expect(result or [], list, "eth_getLogs")

    def get_block_timestamp(self, block_number: int) -> datetime:
        block = self._rpc("eth_getBlockByNumber", [hex(block_number), False])
        if not isinstance(block, dict) or "timestamp" not in block:
            raise SourceMalformedResponse(self.source, f"block {block_number}: no timestamp")
        seconds = self._to_int(block["timestamp"], "block timestamp")
        return datetime.fromtimestamp(seconds, tz=timezone.utc)

    def health_check(self) -> bool:
        try:
            self.block_number()
            return True
        except Exception:
            return False
