"""Envelope serialization and durable JSON artifacts.

Envelope shape, shared by every producer::

    {"trades" | "markets": [...], "count": int, "lastUpdated": iso,
     "summary": {...}, "note": str, ...metadata}

Artifacts are written to a temp file next to the target and swapped in with
``os.replace`` so a reader never sees a half-written file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from db.models import MarketSummary, RankedResult
from .errors import PersistenceFailure

logger = logging.getLogger(__name__)


def _iso(result: RankedResult) -> str:
    return result.last_updated.isoformat().replace("+00:00", "Z")


def summary_dict(result: RankedResult) -> Dict[str, Any]:
    summary = result.summary
    if isinstance(summary, MarketSummary):
        return {
            "totalVolume": summary.total_volume,
            "averageVolume": summary.average_volume,
            "uniqueMarkets": summary.unique_markets,
            result.largest_key: summary.top.to_dict() if summary.top else None,
        }
    return {
        "totalVolume": round(summary.total_volume, 2),
        result.largest_key: summary.largest.to_dict() if summary.largest else None,
        "averageTradeSize": round(summary.average_trade_size, 2),
        "uniqueMarkets": summary.unique_markets,
        "uniqueTraders": summary.unique_traders,
    }


def to_envelope(result: RankedResult) -> Dict[str, Any]:
    envelope: Dict[str, Any] = {
        result.kind: [item.to_dict() for item in result.items],
        "count": result.count,
        "lastUpdated": _iso(result),
        "summary": summary_dict(result),
        "note": result.note,
    }
    for key, value in result.metadata:
        envelope.setdefault(key, value)
    return envelope


def empty_envelope(kind: str = "trades", note: str = "") -> Dict[str, Any]:
    return {kind: [], "count": 0, "lastUpdated": None, "summary": {}, "note": note}


def error_envelope(error: str, details: Optional[str] = None) -> Dict[str, Any]:
    return {"error": error, "details": details or ""}


def write_artifact(path: Path, envelope: Dict[str, Any]) -> Path:
    """Atomically replace ``path`` with the JSON envelope."""
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent),
        )
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(envelope, fh, indent=2, default=str)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name and os.path.exists(tmp_name):
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.warning("Could not remove temp artifact %s", tmp_name)
        raise PersistenceFailure(f"Failed to write {path}: {exc}") from exc
    logger.info("Wrote %s", path)
    return path


def read_artifact(path: Path) -> Optional[Dict[str, Any]]:
    """Return the previous artifact, or None when absent or unreadable."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable artifact %s: %s", path, exc)
        return None
    return data if isinstance(data, dict) else None
