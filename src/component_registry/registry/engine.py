"""
Synchronization engine for the component registry.

Keeps the key-value store in step with the components directory. Every
reload replaces all component entries wholesale and advances the version
counter stored under VERSION_KEY, which clients poll to detect staleness.

By default a reload is the plain clear -> load -> version cycle with no
guard against overlapping reloads; readers may observe a partially cleared
store. Two switches harden this:

- ``staged``: manifests are loaded before the store is touched, new entries
  are upserted, and only then are stale entries removed. A malformed
  manifest leaves the previous snapshot intact and readers never see an
  empty store.
- ``single_flight``: a reload requested while another is running is folded
  into one follow-up reload that starts when the current one finishes.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional

from .manifest import VERSION_KEY, ComponentRecord, ManifestLoader
from ..storage.kv import StoreAdapter
from ..utils.logging import get_logger


logger = get_logger("component-registry.engine")


class SyncEngine:
    """Owns the store handle and the in-memory version counter."""

    def __init__(
        self,
        store: StoreAdapter,
        components_dir: Path | str,
        *,
        single_flight: bool = False,
        staged: bool = False,
    ):
        self.store = store
        self.components_dir = Path(components_dir)
        self.loader = ManifestLoader(self.components_dir)
        self.single_flight = single_flight
        self.staged = staged

        # Every reload is a new generation, so the first one always yields 2.
        self.version = 1

        self.reload_count = 0
        self.last_reload_at: Optional[datetime] = None
        self._reload_task: Optional[asyncio.Task] = None
        self._reload_pending = False

    @property
    def is_reloading(self) -> bool:
        return self._reload_task is not None and not self._reload_task.done()

    async def reload(self) -> None:
        """
        Rebuild the store from the components directory.

        Raises:
            ManifestError: The directory could not be read or a manifest is
                invalid. Without ``staged`` the store has already been
                cleared of components at that point.
            StoreError: A store operation failed.
        """
        if not self.single_flight:
            await self._reload_once()
            return

        if self.is_reloading:
            self._reload_pending = True
            logger.debug("reload_coalesced", version=self.version)
        else:
            self._reload_pending = False
            self._reload_task = asyncio.ensure_future(self._run_coalesced())

        await asyncio.shield(self._reload_task)

    async def _run_coalesced(self) -> None:
        try:
            await self._reload_once()
            while self._reload_pending:
                self._reload_pending = False
                await self._reload_once()
        finally:
            if self._reload_pending:
                # A trigger that arrived during a failed run still gets its reload.
                self._reload_pending = False
                self._reload_task = asyncio.ensure_future(self._run_coalesced())
                self._reload_task.add_done_callback(self._follow_up_done)

    @staticmethod
    def _follow_up_done(task: asyncio.Task) -> None:
        # Failures were already logged by _reload_once.
        if not task.cancelled():
            task.exception()

    async def _reload_once(self) -> None:
        logger.info("reload_started", directory=str(self.components_dir), staged=self.staged)

        try:
            if self.staged:
                records = await self.loader.load()
                await self._write(records)
                await self._prune(keep={record.id for record in records})
            else:
                await self._clear()
                records = await self.loader.load()
                await self._write(records)

            await self._advance_version()
        except Exception as e:
            logger.error(
                "reload_failed",
                directory=str(self.components_dir),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        self.reload_count += 1
        self.last_reload_at = datetime.now(timezone.utc)
        logger.info("reload_completed", version=self.version, components=len(records))

    async def _clear(self) -> None:
        for entry in await self.store.get_all():
            if entry.key != VERSION_KEY:
                await self.store.remove(entry.key)

    async def _prune(self, keep: set) -> None:
        for entry in await self.store.get_all():
            if entry.key != VERSION_KEY and entry.key not in keep:
                await self.store.remove(entry.key)

    async def _write(self, records: Iterable[ComponentRecord]) -> None:
        for record in records:
            await self.store.put(record.id, record.content)

    async def _advance_version(self) -> None:
        self.version += 1
        logger.info("updating_version", version=self.version)
        await self.store.put(VERSION_KEY, self.version)

    async def get_version(self) -> int:
        """Return the persisted version, initialising it to 1 when absent."""
        stored = await self.store.get(VERSION_KEY)
        if isinstance(stored, int) and not isinstance(stored, bool):
            # A reload may have advanced the counter but not yet persisted it.
            self.version = max(self.version, stored)
            return stored

        self.version = 1
        await self.store.put(VERSION_KEY, self.version)
        return self.version

    async def get(self, component_id: str) -> Optional[Any]:
        """Content stored under component_id, or None."""
        return await self.store.get(component_id)

    async def get_many(self, component_ids: Iterable[str]) -> List[ComponentRecord]:
        """Records for the ids that resolve, in request order; the rest are omitted."""
        found = []
        for component_id in component_ids:
            content = await self.store.get(component_id)
            if content is not None:
                found.append(ComponentRecord(id=component_id, content=content))
        return found

    async def list_all(self) -> List[ComponentRecord]:
        """
        Every stored component; the version entry is never included.

        Entries holding null are skipped, matching get() and get_many().
        """
        return [
            ComponentRecord(id=entry.key, content=entry.value)
            for entry in await self.store.get_all()
            if entry.key != VERSION_KEY and entry.value is not None
        ]


__all__ = [
    'SyncEngine',
    'VERSION_KEY',
]
