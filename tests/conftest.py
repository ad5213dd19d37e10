"""
Pytest configuration and shared fixtures for component registry tests.
"""

import pytest
import shutil
import tempfile
from pathlib import Path
from typing import AsyncGenerator, Generator

from component_registry.registry.engine import SyncEngine
from component_registry.storage.kv import KeyValueStore

from tests.fixtures.manifest_fixtures import ManifestFixtures


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def components_dir(temp_dir: Path) -> Path:
    """Empty components directory."""
    path = temp_dir / "components"
    path.mkdir()
    return path


@pytest.fixture
def sample_components_dir(components_dir: Path) -> Path:
    """Components directory holding the sample manifests."""
    ManifestFixtures.write_sample_manifests(components_dir)
    return components_dir


@pytest.fixture
async def kv_store(temp_dir: Path) -> AsyncGenerator[KeyValueStore, None]:
    """Create a test key-value store."""
    store = KeyValueStore(temp_dir / "data" / "components.db")
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
async def engine(kv_store: KeyValueStore, components_dir: Path) -> SyncEngine:
    """Engine over an empty components directory, baseline reload semantics."""
    return SyncEngine(kv_store, components_dir)


@pytest.fixture
def index_html(temp_dir: Path) -> Path:
    path = temp_dir / "index.html"
    path.write_text("<!doctype html><title>Components</title>", encoding="utf-8")
    return path
