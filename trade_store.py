#!/usr/bin/env python3
"""
SQLite-backed recommendation store.

Holds one row per (ticker, date) recommendation with its already-resolved
raw return. The analytics modules never touch this; callers fetch a list
of Trades here first and hand it to the engine.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from env_utils import BIDSCOPE_DB_PATH
from logging_utils import get_logger
from trade_filters import DateRange, TradeFilters, apply_filters
from trade_models import Trade

LOG = get_logger("trade_store")


class TradeStore:
    """Recommendation records keyed by (ticker, date)."""

    def __init__(self, db_path: str = BIDSCOPE_DB_PATH):
        self.db_path = Path(db_path)
        self.log = LOG
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA busy_timeout=30000")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS recommendations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ticker TEXT NOT NULL,
                    date TEXT NOT NULL,
                    raw_return REAL,
                    probability REAL,
                    volume REAL,
                    price REAL,
                    sector TEXT,
                    created_at REAL DEFAULT (strftime('%s', 'now')),
                    UNIQUE (ticker, date)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_recommendations_date ON recommendations (date)")

    def insert_trades(self, trades: Iterable[Trade]) -> int:
        """Upsert trades on (ticker, date); returns the number written."""
        rows = [
            (
                t.ticker,
                t.date.isoformat(),
                t.raw_return,
                t.probability,
                t.volume,
                t.price,
                t.sector,
            )
            for t in trades
        ]
        if not rows:
            return 0
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO recommendations (ticker, date, raw_return, probability, volume, price, sector)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (ticker, date) DO UPDATE SET
                    raw_return = excluded.raw_return,
                    probability = excluded.probability,
                    volume = excluded.volume,
                    price = excluded.price,
                    sector = excluded.sector
                """,
                rows,
            )
        self.log.info("upserted %d recommendation rows", len(rows))
        return len(rows)

    def _fetch_rows(self, date_range: Optional[DateRange]) -> List[sqlite3.Row]:
        clauses: List[str] = []
        params: List[Any] = []
        if date_range:
            start, end = date_range
            if start is not None:
                clauses.append("date >= ?")
                params.append(start.isoformat())
            if end is not None:
                clauses.append("date <= ?")
                params.append(end.isoformat())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            return conn.execute(
                f"""
                SELECT ticker, date, raw_return, probability, volume, price, sector
                FROM recommendations
                {where}
                ORDER BY date ASC, id ASC
                """,
                params,
            ).fetchall()

    def list(
        self,
        date_range: Optional[DateRange] = None,
        filters: Optional[TradeFilters] = None,
    ) -> List[Trade]:
        """Trades in date order; malformed rows are logged and skipped."""
        trades: List[Trade] = []
        skipped = 0
        for row in self._fetch_rows(date_range):
            record: Dict[str, Any] = dict(row)
            try:
                trades.append(Trade.from_mapping(record))
            except ValueError as exc:
                skipped += 1
                self.log.warning("skipping recommendation %s@%s: %s", record.get("ticker"), record.get("date"), exc)
        if skipped:
            self.log.info("skipped %d malformed recommendation rows", skipped)
        return apply_filters(trades, filters)
