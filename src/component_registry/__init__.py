"""
Component Registry - a key-value registry of JSON-described components.

The registry's source of truth is a directory of JSON manifests. This
package provides:
- Manifest loading with deterministic duplicate-id renaming
- A synchronization engine that rebuilds a SQLite-backed store on change
- A filesystem watcher that triggers reloads
- A small HTTP query layer
"""

__version__ = "1.0.0"

__all__ = [
    '__version__',
]
