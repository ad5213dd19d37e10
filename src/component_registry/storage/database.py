"""
Async SQLite connection wrapper for the component store.

This module provides a thin wrapper around aiosqlite: a single autocommit
connection in WAL mode, with statements serialized through an asyncio lock
and driver errors surfaced as StoreError.
"""

import asyncio
import sqlite3
from pathlib import Path
from typing import Optional, List

import aiosqlite

from ..utils.errors import StoreError
from ..utils.logging import get_logger


logger = get_logger("component-registry.storage")


class Database:
    """Async SQLite database wrapper."""

    def __init__(self, db_path: Path | str, timeout: float = 30.0):
        """
        Initialize database wrapper.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds to wait on a locked database
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Open database connection."""
        if self._connection is not None:
            return

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(
                self.db_path,
                timeout=self.timeout,
                isolation_level=None  # Autocommit mode
            )
            await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA synchronous=NORMAL")
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Cannot open database {self.db_path}: {e}", cause=e) from e

        logger.debug("database_connected", path=str(self.db_path))

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def execute(self, sql: str, parameters: tuple = ()) -> None:
        """
        Execute a statement that returns no rows.

        Args:
            sql: SQL statement
            parameters: Query parameters
        """
        async with self._lock:
            await self._ensure_connected()
            try:
                await self._connection.execute(sql, parameters)
            except sqlite3.Error as e:
                raise StoreError(f"Statement failed: {e}", cause=e) from e

    async def executescript(self, script: str) -> None:
        """Execute a multi-statement SQL script."""
        async with self._lock:
            await self._ensure_connected()
            try:
                await self._connection.executescript(script)
            except sqlite3.Error as e:
                raise StoreError(f"Script failed: {e}", cause=e) from e

    async def fetchone(self, sql: str, parameters: tuple = ()) -> Optional[tuple]:
        """
        Execute query and fetch one result.

        Args:
            sql: SQL query
            parameters: Query parameters

        Returns:
            Single row or None
        """
        async with self._lock:
            await self._ensure_connected()
            try:
                async with self._connection.execute(sql, parameters) as cursor:
                    return await cursor.fetchone()
            except sqlite3.Error as e:
                raise StoreError(f"Query failed: {e}", cause=e) from e

    async def fetchall(self, sql: str, parameters: tuple = ()) -> List[tuple]:
        """
        Execute query and fetch all results.

        Args:
            sql: SQL query
            parameters: Query parameters

        Returns:
            List of rows
        """
        async with self._lock:
            await self._ensure_connected()
            try:
                async with self._connection.execute(sql, parameters) as cursor:
                    return list(await cursor.fetchall())
            except sqlite3.Error as e:
                raise StoreError(f"Query failed: {e}", cause=e) from e

    async def _ensure_connected(self) -> None:
        # Caller holds self._lock.
        if self._connection is None:
            await self.connect()
