"""
Error handling framework for the component registry.

This module provides:
- Hierarchical exception classes
- Error context preservation
- Structured error responses
- An error context manager for logging with component/operation context
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from contextlib import contextmanager
from pathlib import Path

from .logging import get_logger


logger = get_logger("component-registry.errors")


class ErrorCategory(Enum):
    """Error categories for classification."""
    CONFIGURATION = "configuration"
    MANIFEST = "manifest"
    STORAGE = "storage"
    WATCHER = "watcher"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Context information for an error."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    component: Optional[str] = None
    operation: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class RegistryError(Exception):
    """Base exception for all component registry errors."""

    code: str = "REGISTRY_ERROR"
    default_message: str = "An error occurred in the component registry"
    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message or self.default_message
        self.context = context or ErrorContext()
        self.cause = cause
        super().__init__(self.message)

    def get_suggestions(self) -> List[str]:
        """Get error resolution suggestions."""
        return []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "suggestions": self.get_suggestions(),
                "context": {
                    "timestamp": self.context.timestamp.isoformat(),
                    "component": self.context.component,
                    "operation": self.context.operation,
                    "metadata": self.context.metadata,
                },
            }
        }


class ConfigurationError(RegistryError):
    """Configuration errors."""
    code = "CONFIG_ERROR"
    default_message = "Configuration error"
    category = ErrorCategory.CONFIGURATION

    def get_suggestions(self) -> List[str]:
        return [
            "Check your configuration file syntax",
            "Check COMPONENT_REGISTRY_* environment variables",
        ]


# Manifest Errors

class ManifestError(RegistryError):
    """Errors raised while reading the manifest directory."""
    code = "MANIFEST_ERROR"
    default_message = "Failed to load component manifests"
    category = ErrorCategory.MANIFEST

    def __init__(self, path: Path, message: Optional[str] = None, **kwargs):
        self.path = Path(path)
        super().__init__(message or f"{self.default_message}: {self.path}", **kwargs)
        self.context.metadata.setdefault("path", str(self.path))


class ManifestParseError(ManifestError):
    """A manifest file does not contain valid JSON."""
    code = "MANIFEST_PARSE_ERROR"
    default_message = "Malformed JSON in manifest"

    def get_suggestions(self) -> List[str]:
        return [f"Fix the JSON syntax of {self.path.name}"]


class ManifestFormatError(ManifestError):
    """A manifest file parses but its top-level value is not an array."""
    code = "MANIFEST_FORMAT_ERROR"
    default_message = "Manifest must contain a JSON array"

    def get_suggestions(self) -> List[str]:
        return [f"Wrap the components in {self.path.name} in a JSON array"]


# Storage Errors

class StoreError(RegistryError):
    """Key-value store I/O errors."""
    code = "STORE_ERROR"
    default_message = "Key-value store operation failed"
    category = ErrorCategory.STORAGE


# Watcher Errors

class WatcherError(RegistryError):
    """The components directory could not be watched."""
    code = "WATCHER_ERROR"
    default_message = "Failed to watch components directory"
    category = ErrorCategory.WATCHER

    def get_suggestions(self) -> List[str]:
        return [
            "Ensure the components directory exists",
            "Check the inotify watch limit (fs.inotify.max_user_watches)",
        ]


@contextmanager
def error_context(component: str, operation: str, **metadata):
    """
    Attach component/operation context to registry errors raised inside the block.

    Errors are logged and always re-raised; anything that is not a
    RegistryError is wrapped in one so callers see a single hierarchy.

    Args:
        component: Component name
        operation: Operation name
        **metadata: Additional context metadata
    """
    context = ErrorContext(component=component, operation=operation, metadata=metadata)

    try:
        yield context
    except RegistryError as e:
        e.context.component = e.context.component or component
        e.context.operation = e.context.operation or operation
        e.context.metadata.update(metadata)
        logger.error("registry_error_in_context", error=e.to_dict())
        raise
    except Exception as e:
        wrapped = RegistryError(message=str(e), context=context, cause=e)
        logger.error("unexpected_error_in_context", error=wrapped.to_dict(), exc_info=True)
        raise wrapped from e


__all__ = [
    'RegistryError',
    'ErrorContext',
    'ErrorCategory',
    'ConfigurationError',
    'ManifestError',
    'ManifestParseError',
    'ManifestFormatError',
    'StoreError',
    'WatcherError',
    'error_context',
]
