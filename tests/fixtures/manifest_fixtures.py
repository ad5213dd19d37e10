"""
Manifest test fixtures.
"""

import json
from pathlib import Path
from typing import Any, Dict, List


class ManifestFixtures:
    """Fixtures for manifest and component testing."""

    SAMPLE_MANIFESTS: Dict[str, List[Dict[str, Any]]] = {
        "a.json": [
            {"id": "button", "content": {"tag": "button", "label": "OK"}},
            {"id": "card", "content": {"tag": "div", "class": "card"}},
        ],
        "b.json": [
            {"id": "button", "content": {"tag": "button", "label": "Cancel"}},
            {"id": "modal", "content": {"tag": "dialog"}, "description": "ignored"},
        ],
    }

    @staticmethod
    def write_manifest(directory: Path, name: str, components: Any) -> Path:
        """Write components as JSON to directory/name."""
        path = directory / name
        path.write_text(json.dumps(components), encoding="utf-8")
        return path

    @staticmethod
    def write_raw(directory: Path, name: str, text: str) -> Path:
        """Write text verbatim, e.g. malformed JSON."""
        path = directory / name
        path.write_text(text, encoding="utf-8")
        return path

    @classmethod
    def write_sample_manifests(cls, directory: Path) -> Dict[str, Path]:
        return {
            name: cls.write_manifest(directory, name, components)
            for name, components in cls.SAMPLE_MANIFESTS.items()
        }

    @staticmethod
    def sample_ids() -> List[str]:
        """Ids the sample manifests produce after duplicate renaming."""
        return ["button", "card", "button_2", "modal"]
