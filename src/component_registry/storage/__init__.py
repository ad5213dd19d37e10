"""
Storage components for the component registry.

This package provides:
- An async SQLite connection wrapper
- The key-value store adapter used by the synchronization engine
"""

from .database import Database
from .kv import KeyValueStore, StoreAdapter, StoreEntry

__all__ = [
    'Database',
    'KeyValueStore',
    'StoreAdapter',
    'StoreEntry',
]
