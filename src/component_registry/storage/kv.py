"""
Key-value store adapter for registry entries.

The synchronization engine only needs point get/put/remove and an ordered
full scan. KeyValueStore provides that on top of a single SQLite table;
values are stored as JSON text so any JSON-serializable content round-trips.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Protocol, runtime_checkable

from .database import Database
from ..utils.errors import StoreError
from ..utils.logging import get_logger


logger = get_logger("component-registry.storage")


@dataclass(frozen=True)
class StoreEntry:
    """A single key/value pair returned by a full scan."""
    key: str
    value: Any


@runtime_checkable
class StoreAdapter(Protocol):
    """Capability the synchronization engine requires from a store."""

    async def put(self, key: str, value: Any) -> None: ...

    async def get(self, key: str) -> Optional[Any]: ...

    async def remove(self, key: str) -> None: ...

    async def get_all(self) -> List[StoreEntry]: ...


class KeyValueStore:
    """SQLite-backed StoreAdapter. Full scans are ordered by key."""

    def __init__(self, db_path: Path | str, timeout: float = 30.0):
        self.db = Database(db_path, timeout=timeout)

    async def initialize(self) -> None:
        """Open the database and create the entries table."""
        await self.db.connect()
        await self.db.executescript("""
            CREATE TABLE IF NOT EXISTS entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
        """)
        logger.info("store_initialized", path=str(self.db.db_path))

    async def close(self) -> None:
        await self.db.close()

    async def put(self, key: str, value: Any) -> None:
        """Insert or replace the value stored under key."""
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value for {key!r} is not JSON-serializable: {e}", cause=e) from e

        await self.db.execute(
            "INSERT INTO entries (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, encoded)
        )

    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if the key is absent."""
        row = await self.db.fetchone("SELECT value FROM entries WHERE key = ?", (key,))
        if row is None:
            return None
        return json.loads(row[0])

    async def remove(self, key: str) -> None:
        """Delete key; removing an absent key is a no-op."""
        await self.db.execute("DELETE FROM entries WHERE key = ?", (key,))

    async def get_all(self) -> List[StoreEntry]:
        """Return every stored entry ordered by key."""
        rows = await self.db.fetchall("SELECT key, value FROM entries ORDER BY key")
        return [StoreEntry(key=key, value=json.loads(value)) for key, value in rows]

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
