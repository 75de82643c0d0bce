"""Atomic counters shared by every worker process.

Counters are kept in SQLite so several uvicorn workers (or hosts sharing a
volume) see the same values. ``increment`` runs inside a ``BEGIN IMMEDIATE``
transaction, which takes the write lock before reading, so two concurrent
turns can never both observe the pre-increment value. Blocking SQLite work
runs through ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import sqlite3
import time
from abc import ABC, abstractmethod
from typing import Optional


class CounterStore(ABC):
    """Increment-then-read counter with expiry."""

    @abstractmethod
    async def increment(self, key: str, ttl_seconds: int) -> int:
        """Atomically add one to ``key`` and return the new value."""

    @abstractmethod
    async def get(self, key: str) -> int:
        """Current value of ``key`` (0 when missing or expired)."""


class SQLiteCounterStore(CounterStore):
    """:class:`CounterStore` backed by a SQLite file."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._ready = False
        self._lock = asyncio.Lock()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10.0, isolation_level=None)
        conn.execute("PRAGMA busy_timeout = 10000")
        return conn

    def _ensure_table_sync(self) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS counters (
                    key TEXT PRIMARY KEY,
                    count INTEGER NOT NULL,
                    expires_at REAL NOT NULL
                )
                """
            )
        finally:
            conn.close()

    async def _ensure_table(self) -> None:
        if self._ready:
            return
        async with self._lock:
            if not self._ready:
                await asyncio.to_thread(self._ensure_table_sync)
                self._ready = True

    def _increment_sync(self, key: str, ttl_seconds: int, now: float) -> int:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT count, expires_at FROM counters WHERE key = ?", (key,)
            ).fetchone()
            if row is None or row[1] <= now:
                count = 1
                conn.execute(
                    "INSERT OR REPLACE INTO counters (key, count, expires_at) VALUES (?, ?, ?)",
                    (key, count, now + ttl_seconds),
                )
            else:
                count = row[0] + 1
                conn.execute("UPDATE counters SET count = ? WHERE key = ?", (count, key))
            conn.execute("COMMIT")
            return count
        except sqlite3.Error:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    async def increment(self, key: str, ttl_seconds: int) -> int:
        await self._ensure_table()
        return await asyncio.to_thread(self._increment_sync, key, ttl_seconds, time.time())

    def _get_sync(self, key: str, now: float) -> int:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT count, expires_at FROM counters WHERE key = ?", (key,)
            ).fetchone()
        finally:
            conn.close()
        if row is None or row[1] <= now:
            return 0
        return int(row[0])

    async def get(self, key: str) -> int:
        await self._ensure_table()
        return await asyncio.to_thread(self._get_sync, key, time.time())

    def _purge_sync(self, now: float) -> int:
        conn = self._connect()
        try:
            cur = conn.execute("DELETE FROM counters WHERE expires_at <= ?", (now,))
            return cur.rowcount
        finally:
            conn.close()

    async def purge_expired(self, now: Optional[float] = None) -> int:
        """Delete expired rows; returns how many were removed."""
        await self._ensure_table()
        return await asyncio.to_thread(self._purge_sync, now if now is not None else time.time())
