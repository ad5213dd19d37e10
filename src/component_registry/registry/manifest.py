"""
Manifest loading for the component registry.

A manifest is a ``*.json`` file directly inside the components directory
holding a JSON array of ``{"id": ..., "content": ...}`` objects. Files are
read in file-name order and array order, which together fix the occurrence
order used to rename duplicate ids.
"""

import json
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List

import aiofiles
import aiofiles.os

from ..utils.errors import ManifestError, ManifestFormatError, ManifestParseError
from ..utils.logging import get_logger


logger = get_logger("component-registry.manifest")

MANIFEST_SUFFIX = ".json"

# Store key holding the version counter; never a component id.
VERSION_KEY = "__version__"


@dataclass
class ComponentRecord:
    """A component id and its opaque content."""
    id: str
    content: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "content": self.content}


def deduplicate_ids(records: Iterable[ComponentRecord]) -> List[ComponentRecord]:
    """
    Rename repeated ids, first occurrence wins.

    The first record with a given id keeps it; the second becomes ``id_2``,
    the third ``id_3`` and so on. Nothing is dropped. Renamed ids are not
    reserved, so a later record literally named ``id_2`` is a first
    occurrence of its own id.
    """
    seen: Counter = Counter()
    result = []

    for record in records:
        seen[record.id] += 1
        occurrence = seen[record.id]
        if occurrence == 1:
            result.append(record)
        else:
            result.append(ComponentRecord(id=f"{record.id}_{occurrence}", content=record.content))

    return result


class ManifestLoader:
    """Reads every manifest in a directory into component records."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    async def manifest_paths(self) -> List[Path]:
        """Manifest files directly inside the directory, sorted by name."""
        try:
            names = sorted(await aiofiles.os.listdir(self.directory))
        except OSError as e:
            raise ManifestError(self.directory, f"Cannot list components directory: {e}", cause=e) from e

        paths = []
        for name in names:
            path = self.directory / name
            if path.suffix == MANIFEST_SUFFIX and await aiofiles.os.path.isfile(path):
                paths.append(path)
        return paths

    async def load(self) -> List[ComponentRecord]:
        """
        Load and deduplicate all component records.

        Raises:
            ManifestParseError: A manifest is not valid JSON. Nothing from
                the directory is returned.
            ManifestFormatError: A manifest's top-level value is not an array.
        """
        records: List[ComponentRecord] = []
        paths = await self.manifest_paths()

        for path in paths:
            records.extend(await self._read_manifest(path))

        records = deduplicate_ids(records)
        logger.debug("manifests_loaded", files=len(paths), components=len(records))
        return records

    async def _read_manifest(self, path: Path) -> List[ComponentRecord]:
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                text = await f.read()
        except OSError as e:
            raise ManifestError(path, f"Cannot read manifest {path}: {e}", cause=e) from e
        except UnicodeDecodeError as e:
            raise ManifestParseError(path, f"{path} is not UTF-8 text: {e}", cause=e) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ManifestParseError(path, f"Malformed JSON in {path}: {e}", cause=e) from e

        if not isinstance(data, list):
            raise ManifestFormatError(path, f"{path} must contain a JSON array, got {type(data).__name__}")

        records = []
        for item in data:
            if not isinstance(item, dict):
                continue
            component_id = item.get("id")
            if not component_id:
                continue
            if not isinstance(component_id, str):
                component_id = str(component_id)
            if component_id == VERSION_KEY:
                logger.warning("reserved_id_skipped", path=str(path), id=component_id)
                continue
            records.append(ComponentRecord(id=component_id, content=item.get("content")))

        return records


__all__ = [
    'ComponentRecord',
    'ManifestLoader',
    'deduplicate_ids',
    'MANIFEST_SUFFIX',
    'VERSION_KEY',
]
