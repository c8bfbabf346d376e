"""Key-value stores for alert throttle state with per-key expiry.

The throttle only needs get / set-with-TTL semantics. Two backends:
- InMemoryAlertStore: process-local dict, for tests and ephemeral runs.
- SqliteAlertStore: aiosqlite file store in WAL mode, survives restarts.

Expired entries read as absent. Keys that are never read again are removed by
purge_expired(), which the scanner calls once per cycle. Neither backend
offers compare-and-set; callers serialize evaluation per symbol (the
scanner's cycle lock does this).
"""

import os
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from decimal import Decimal
from typing import Self

import aiosqlite

from fundingarb.exceptions import AlertStoreError
from fundingarb.logging import get_logger
from fundingarb.models import AlertState

logger = get_logger(__name__)

Clock = Callable[[], float]


def _now_ms(clock: Clock) -> int:
    return int(clock() * 1000)


class AlertStateStore(ABC):
    """Abstract get/set-with-expiry store for AlertState values."""

    @abstractmethod
    async def get(self, key: str) -> AlertState | None:
        """Return the stored state, or None if never written or expired."""
        ...

    @abstractmethod
    async def set(self, key: str, state: AlertState, ttl_seconds: int) -> None:
        """Store ``state`` under ``key``, replacing any previous value and TTL."""
        ...

    @abstractmethod
    async def purge_expired(self) -> int:
        """Delete every expired entry. Returns the number removed."""
        ...


class InMemoryAlertStore(AlertStateStore):
    """Dict-backed store. Expiry is checked lazily on read."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[AlertState, int]] = {}

    async def get(self, key: str) -> AlertState | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        state, expires_at_ms = entry
        if _now_ms(self._clock) >= expires_at_ms:
            del self._entries[key]
            return None
        return state

    async def set(self, key: str, state: AlertState, ttl_seconds: int) -> None:
        expires_at_ms = _now_ms(self._clock) + ttl_seconds * 1000
        self._entries[key] = (state, expires_at_ms)

    async def purge_expired(self) -> int:
        now_ms = _now_ms(self._clock)
        expired = [
            key
            for key, (_, expires_at_ms) in self._entries.items()
            if now_ms >= expires_at_ms
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS alert_state (
    key TEXT PRIMARY KEY,
    timestamp_ms INTEGER NOT NULL,
    last_spread TEXT NOT NULL,
    expires_at_ms INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_alert_state_expires
    ON alert_state(expires_at_ms);
"""


class SqliteAlertStore(AlertStateStore):
    """Async SQLite alert state store.

    Spreads are stored as TEXT and restored as Decimal.

    Usage:
        async with SqliteAlertStore("data/alerts.db") as store:
            await store.set("alert:BTC-PERP", state, ttl_seconds=86400)
    """

    def __init__(self, db_path: str = "data/alerts.db", clock: Clock = time.time) -> None:
        self._db_path = db_path
        self._clock = clock
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises RuntimeError if not connected.
        """
        if self._connection is None:
            raise RuntimeError("Alert store not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open the database, configure pragmas, and create the schema.

        Creates the parent directory if it does not exist and drops rows that
        expired while the process was down.
        """
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")
        await self._connection.executescript(_CREATE_TABLES_SQL)
        await self._connection.commit()
        removed = await self.purge_expired()

        logger.info("alert_store_connected", db_path=self._db_path, purged=removed)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("alert_store_closed", db_path=self._db_path)

    async def get(self, key: str) -> AlertState | None:
        now_ms = _now_ms(self._clock)
        try:
            cursor = await self.db.execute(
                "SELECT timestamp_ms, last_spread, expires_at_ms "
                "FROM alert_state WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            timestamp_ms, last_spread, expires_at_ms = row
            if now_ms >= expires_at_ms:
                await self.db.execute("DELETE FROM alert_state WHERE key = ?", (key,))
                await self.db.commit()
                return None
        except aiosqlite.Error as e:
            raise AlertStoreError(f"read failed for {key}: {e}") from e

        return AlertState(timestamp=timestamp_ms, last_spread=Decimal(last_spread))

    async def set(self, key: str, state: AlertState, ttl_seconds: int) -> None:
        expires_at_ms = _now_ms(self._clock) + ttl_seconds * 1000
        try:
            await self.db.execute(
                "INSERT OR REPLACE INTO alert_state "
                "(key, timestamp_ms, last_spread, expires_at_ms) "
                "VALUES (?, ?, ?, ?)",
                (key, state.timestamp, str(state.last_spread), expires_at_ms),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            raise AlertStoreError(f"write failed for {key}: {e}") from e

    async def purge_expired(self) -> int:
        """Delete all expired rows. Returns the number removed."""
        try:
            cursor = await self.db.execute(
                "DELETE FROM alert_state WHERE expires_at_ms <= ?",
                (_now_ms(self._clock),),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            raise AlertStoreError(f"purge failed: {e}") from e
        if cursor.rowcount:
            logger.debug("alert_state_purged", removed=cursor.rowcount)
        return cursor.rowcount

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
