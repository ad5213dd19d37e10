"""
Configuration loader for the component registry.

This module provides configuration management with:
- Multiple configuration sources (files, env vars, CLI overrides)
- Schema validation
- Type coercion
- Configuration merging
"""

import os
import json
import asyncio
from pathlib import Path
from typing import Optional, Dict, Any, List, Union

import aiofiles
import aiofiles.os
import yaml
import toml
from pydantic import BaseModel, Field, field_validator, ValidationError, ConfigDict

from .logging import get_logger
from .errors import ConfigurationError


logger = get_logger("component-registry.config")

ENV_PREFIX = "COMPONENT_REGISTRY_"

# Sources at or above this priority are applied after environment variables
OVERRIDE_PRIORITY = 100


class ConfigSource(BaseModel):
    """Configuration source definition."""
    path: Optional[Path] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: int = 0
    source_type: str = "dict"

    model_config = ConfigDict(arbitrary_types_allowed=True)


class StoreConfig(BaseModel):
    """Key-value store configuration."""
    path: Path = Field(default_factory=lambda: Path("data") / "components.db")
    timeout: float = 30.0

    @field_validator('path')
    @classmethod
    def validate_path(cls, v):
        """Ensure path is absolute."""
        return Path(v).absolute()


class ManifestConfig(BaseModel):
    """Manifest directory configuration."""
    directory: Path = Field(default_factory=lambda: Path("components"))

    @field_validator('directory')
    @classmethod
    def validate_directory(cls, v):
        return Path(v).absolute()


class WatcherConfig(BaseModel):
    """Change watcher configuration."""
    enabled: bool = True
    recursive: bool = True


class SyncConfig(BaseModel):
    """Reload hardening switches; both off reproduces the unguarded clear-then-fill cycle."""
    single_flight: bool = False
    staged: bool = False


class ServerConfig(BaseModel):
    """HTTP query layer configuration."""
    host: str = "0.0.0.0"
    port: int = 3005
    index_path: Path = Field(default_factory=lambda: Path("index.html"))

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        if not 0 < v < 65536:
            raise ValueError(f"Port out of range: {v}")
        return v

    @field_validator('index_path')
    @classmethod
    def validate_index_path(cls, v):
        return Path(v).absolute()


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "console"
    directory: Optional[Path] = None

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        if v not in ("console", "json"):
            raise ValueError(f"Invalid log format: {v}")
        return v


class RegistryConfig(BaseModel):
    """Main component registry configuration."""
    app_name: str = "component-registry"
    debug: bool = False

    store: StoreConfig = Field(default_factory=StoreConfig)
    manifests: ManifestConfig = Field(default_factory=ManifestConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True
    )


class ConfigLoader:
    """Configuration loader with multiple source support."""

    def __init__(self, env_prefix: str = ENV_PREFIX):
        self._sources: List[ConfigSource] = []
        self._config: Optional[RegistryConfig] = None
        self._env_prefix = env_prefix
        self._lock = asyncio.Lock()

    def add_source(
        self,
        source: Union[str, Path, Dict[str, Any]],
        priority: int = 0,
        source_type: Optional[str] = None
    ) -> None:
        """
        Add configuration source.

        Args:
            source: Configuration source (file path or dict)
            priority: Source priority (higher wins)
            source_type: Source type (auto-detected if None)
        """
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not source_type:
                source_type = self._detect_source_type(path)

            self._sources.append(ConfigSource(
                path=path,
                priority=priority,
                source_type=source_type
            ))
        else:
            self._sources.append(ConfigSource(
                data=source,
                priority=priority,
                source_type="dict"
            ))

        self._sources.sort(key=lambda s: s.priority)

    def _detect_source_type(self, path: Path) -> str:
        """Detect configuration file type."""
        suffix = path.suffix.lower()
        if suffix == ".json":
            return "json"
        elif suffix in (".yaml", ".yml"):
            return "yaml"
        elif suffix == ".toml":
            return "toml"
        else:
            raise ConfigurationError(f"Unknown config file type: {suffix}")

    async def load(self) -> RegistryConfig:
        """
        Load configuration from all sources.

        Sources are merged lowest priority first, so higher priorities win.
        Environment variables sit between file sources and override sources
        (priority >= OVERRIDE_PRIORITY, e.g. CLI flags).

        Returns:
            Merged configuration
        """
        async with self._lock:
            merged_data: Dict[str, Any] = {}

            for source in self._sources:
                if source.priority < OVERRIDE_PRIORITY:
                    merged_data = self._deep_merge(merged_data, await self._load_source(source))

            merged_data = self._deep_merge(merged_data, self._load_env_vars())

            for source in self._sources:
                if source.priority >= OVERRIDE_PRIORITY:
                    merged_data = self._deep_merge(merged_data, await self._load_source(source))

            try:
                self._config = RegistryConfig(**merged_data)
            except ValidationError as e:
                errors = []
                for error in e.errors():
                    field = ".".join(str(x) for x in error["loc"])
                    errors.append(f"{field}: {error['msg']}")

                raise ConfigurationError(
                    f"Configuration validation failed: {'; '.join(errors)}"
                ) from e

            logger.info("configuration_loaded", sources=len(self._sources))
            return self._config

    async def _load_source(self, source: ConfigSource) -> Dict[str, Any]:
        """Load data from a configuration source."""
        if source.path is None:
            return source.data

        if not await aiofiles.os.path.exists(source.path):
            logger.warning("config_file_not_found", path=str(source.path))
            return {}

        try:
            async with aiofiles.open(source.path, "r", encoding="utf-8") as f:
                content = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot read {source.path}: {e}") from e

        try:
            if source.source_type == "json":
                return json.loads(content)
            elif source.source_type == "yaml":
                return yaml.safe_load(content) or {}
            elif source.source_type == "toml":
                return toml.loads(content)
        except (ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot parse {source.path}: {e}") from e

        raise ConfigurationError(f"Unknown source type: {source.source_type}")

    def _load_env_vars(self) -> Dict[str, Any]:
        """
        Load configuration from environment variables.

        COMPONENT_REGISTRY_SERVER_INDEX_PATH maps to server.index_path: the
        first segment names the section, the rest is the field name.
        """
        result: Dict[str, Any] = {}
        sections = set(RegistryConfig.model_fields)

        for key, value in os.environ.items():
            if not key.startswith(self._env_prefix):
                continue

            name = key[len(self._env_prefix):].lower()
            section, _, field = name.partition("_")

            if field and section in sections and section not in ("app_name", "debug"):
                result.setdefault(section, {})[field] = self._convert_value(value)
            elif name in sections:
                result[name] = self._convert_value(value)

        return result

    def _convert_value(self, value: str) -> Any:
        """Convert string value to appropriate type."""
        if value.lower() in ("true", "yes", "on"):
            return True
        elif value.lower() in ("false", "no", "off"):
            return False

        try:
            if "." in value:
                return float(value)
            else:
                return int(value)
        except ValueError:
            pass

        return value

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get_config(self) -> RegistryConfig:
        """Get current configuration."""
        if self._config is None:
            raise ConfigurationError("Configuration not loaded")
        return self._config


async def load_config(
    config_paths: Optional[List[Union[str, Path]]] = None,
    extra_config: Optional[Dict[str, Any]] = None
) -> RegistryConfig:
    """
    Load configuration from standard locations.

    Args:
        config_paths: Additional configuration paths
        extra_config: Extra configuration to merge (CLI overrides)

    Returns:
        Loaded configuration
    """
    loader = ConfigLoader()

    default_paths = [
        Path("./component-registry.toml"),
        Path("./component-registry.yaml"),
        Path("./component-registry.json"),
    ]

    for path in default_paths:
        if path.exists():
            loader.add_source(path, priority=10)

    if config_paths:
        for i, path in enumerate(config_paths):
            loader.add_source(path, priority=20 + i)

    if extra_config:
        loader.add_source(extra_config, priority=OVERRIDE_PRIORITY)

    return await loader.load()


__all__ = [
    'RegistryConfig',
    'StoreConfig',
    'ManifestConfig',
    'WatcherConfig',
    'SyncConfig',
    'ServerConfig',
    'LoggingConfig',
    'ConfigLoader',
    'load_config',
]
