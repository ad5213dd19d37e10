"""
Filesystem watcher that reloads the registry on every change notification.

watchdog delivers events on its observer thread; each one is handed to the
asyncio loop as a full SyncEngine.reload(). There is no debouncing and no
filtering by file name or extension, so a single save can trigger several
reloads.
"""

import asyncio
from concurrent.futures import Future
from pathlib import Path
from typing import Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .engine import SyncEngine
from ..utils.errors import WatcherError
from ..utils.logging import get_logger


logger = get_logger("component-registry.watcher")

# Read-only access notifications. The loader's own reads produce these.
_ACCESS_EVENT_TYPES = frozenset({"opened", "closed_no_write"})


class ComponentDirHandler(FileSystemEventHandler):
    """Forwards every change notification to the watcher."""

    def __init__(self, watcher: "ChangeWatcher"):
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in _ACCESS_EVENT_TYPES:
            return

        logger.info(
            "component_dir_changed",
            event_type=event.event_type,
            path=event.src_path,
        )
        self.watcher.trigger_reload()


class ChangeWatcher:
    """Watches the components directory for the lifetime of the process."""

    def __init__(self, engine: SyncEngine, directory: Path | str, recursive: bool = True):
        self.engine = engine
        self.directory = Path(directory)
        self.recursive = recursive
        self.events_seen = 0
        self._observer: Optional[Observer] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._inflight: Set[Future] = set()

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Start watching.

        Args:
            loop: Loop that runs the reloads; defaults to the running loop.

        Raises:
            WatcherError: The directory does not exist or cannot be watched.
        """
        if self._observer is not None:
            return

        if not self.directory.is_dir():
            raise WatcherError(f"Components directory does not exist: {self.directory}")

        self._loop = loop or asyncio.get_running_loop()

        observer = Observer()
        observer.schedule(ComponentDirHandler(self), str(self.directory), recursive=self.recursive)
        try:
            observer.start()
        except OSError as e:
            raise WatcherError(f"Cannot watch {self.directory}: {e}", cause=e) from e

        self._observer = observer
        logger.info("watching_components_dir", path=str(self.directory), recursive=self.recursive)

    def trigger_reload(self) -> Future:
        """Schedule a reload on the engine's loop. Safe to call from any thread."""
        if self._loop is None:
            raise WatcherError("Watcher has not been started")

        self.events_seen += 1
        future = asyncio.run_coroutine_threadsafe(self.engine.reload(), self._loop)
        self._inflight.add(future)
        future.add_done_callback(self._reload_done)
        return future

    def _reload_done(self, future: Future) -> None:
        self._inflight.discard(future)
        if future.cancelled():
            return

        error = future.exception()
        if error is not None:
            logger.error(
                "watch_reload_failed",
                path=str(self.directory),
                error=str(error),
                error_type=type(error).__name__,
                exc_info=error,
            )

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the observer thread. In-flight reloads run to completion."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout)
        self._observer = None
        logger.info("watcher_stopped", path=str(self.directory))


__all__ = [
    'ChangeWatcher',
    'ComponentDirHandler',
]
