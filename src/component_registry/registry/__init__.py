"""
Component registry synchronization.

This package keeps the key-value store in step with the components directory:
- Manifest loading and duplicate-id renaming
- Full-replace reloads with a monotonically increasing version
- Filesystem change watching
"""

from .manifest import ComponentRecord, ManifestLoader, deduplicate_ids
from .engine import SyncEngine, VERSION_KEY
from .watcher import ChangeWatcher, ComponentDirHandler

__all__ = [
    # Manifests
    'ComponentRecord',
    'ManifestLoader',
    'deduplicate_ids',

    # Engine
    'SyncEngine',
    'VERSION_KEY',

    # Watcher
    'ChangeWatcher',
    'ComponentDirHandler',
]
