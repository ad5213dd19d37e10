"""
Test fixtures for the component registry.

Provides reusable manifest data and store test doubles.
"""

from .manifest_fixtures import ManifestFixtures
from .store_fixtures import MemoryStore, FailingStore

__all__ = [
    "ManifestFixtures",
    "MemoryStore",
    "FailingStore",
]
