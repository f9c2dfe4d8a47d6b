"""Stored-trades database: SQLite locally, PostgreSQL when hosted.

DATABASE_URL selects PostgreSQL through psycopg2; without it a SQLite file
under data/ is used, which is also what tests seed. Both backends are
driven with sqlite3-style ``conn.execute(sql, params)`` calls and ``?``
placeholders so queries.py never branches on the backend.

The schema is declared once as columns with portable type names and
rendered per backend.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Portable column type -> (sqlite, postgres)
_TYPES: Dict[str, Tuple[str, str]] = {
    "text": ("TEXT", "TEXT"),
    "real": ("REAL", "DOUBLE PRECISION"),
    "json": ("TEXT", "JSONB"),
    "serial": ("INTEGER PRIMARY KEY AUTOINCREMENT", "SERIAL PRIMARY KEY"),
    "timestamp_now": ("TEXT DEFAULT (datetime('now'))", "TEXT DEFAULT (now()::text)"),
}

TABLES: Dict[str, List[Tuple[str, str, str]]] = {
    # column, portable type, constraint
    "trades": [
        ("id", "text", "PRIMARY KEY"),
        ("market_id", "text", "NOT NULL"),
        ("market_question", "text", "DEFAULT ''"),
        ("platform_data", "json", ""),
        ("side", "text", "DEFAULT 'BUY'"),
        ("outcome", "text", "DEFAULT ''"),
        ("size", "real", ""),            # USDC notional
        ("price", "real", ""),
        ("trader_wallet", "text", ""),
        ("taker_address", "text", ""),
        ("timestamp", "text", ""),
    ],
    "market_snapshots": [
        ("id", "serial", ""),
        ("market_id", "text", "NOT NULL"),
        ("event_id", "text", ""),
        ("market_question", "text", "DEFAULT ''"),
        ("yes_price", "real", ""),
        ("no_price", "real", ""),
        ("volume_24h", "real", ""),
        ("price_change_1h", "real", ""),
        ("snapshot_time", "timestamp_now", ""),
        ("platform_data", "json", ""),
    ],
}

INDEXES = [
    ("idx_trades_size", "trades", "size"),
    ("idx_market_snapshots_time", "market_snapshots", "snapshot_time"),
    ("idx_market_snapshots_market", "market_snapshots", "market_id, snapshot_time"),
]


def schema_statements(backend: str) -> List[str]:
    """CREATE statements for every table and index, one per string."""
    which = 1 if backend == "postgres" else 0
    statements = []
    for table, columns in TABLES.items():
        body = ",\n    ".join(
            " ".join(part for part in (name, _TYPES[kind][which], constraint) if part)
            for name, kind, constraint in columns
        )
        statements.append(f"CREATE TABLE IF NOT EXISTS {table} (\n    {body}\n)")
    for name, table, columns in INDEXES:
        statements.append(f"CREATE INDEX IF NOT EXISTS {name} ON {table}({columns})")
    return statements


class _PgConnection:
    """psycopg2 connection with the subset of the sqlite3 API queries.py uses.

    ``?`` placeholders become ``%s``; literal ``%`` is escaped first.
    """

    def __init__(self, conn) -> None:
        self._conn = conn

    def execute(self, sql: str, params=None):
        cursor = self._conn.cursor()
        cursor.execute(sql.replace("%", "%%").replace("?", "%s"), params or ())
        return cursor

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


class DatabaseManager:
    def __init__(self, db_path: Optional[Path] = None,
                 database_url: Optional[str] = None) -> None:
        self.database_url = database_url
        self.db_path = Path(db_path) if db_path else None
        self._backend = "postgres" if database_url else "sqlite"
        if self._backend == "sqlite" and self.db_path:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @property
    def backend(self) -> str:
        return self._backend

    def _open(self):
        if self._backend == "postgres":
            import psycopg2
            from psycopg2.extras import RealDictCursor

            return _PgConnection(
                psycopg2.connect(self.database_url, cursor_factory=RealDictCursor))

        conn = sqlite3.connect(str(self.db_path or ":memory:"))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextmanager
    def _connect(self) -> Iterator:
        """Yield a connection; commit on clean exit, roll back on error."""
        conn = self._open()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            for statement in schema_statements(self._backend):
                conn.execute(statement)
        logger.debug("Schema ready on %s backend", self._backend)
