"""
TokenFS Configuration System

Configuration management with YAML files, environment variables,
schema validation, and runtime overrides.

Configuration Sources (in order of precedence):
    1. Environment variables (TOKENFS_*)
    2. Runtime overrides (ConfigManager.set)
    3. User config file (~/.tokenfs/config.yaml)
    4. Project config file (./tokenfs.yaml, ./config/tokenfs.yaml)
    5. Default values

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml
from jsonschema import Draft202012Validator

T = TypeVar("T")


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "TokenFS configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "filesystem": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "emit_prefix_list": {"type": "boolean"},
            },
        },
        "client": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "batch_size": {"type": "integer", "minimum": 1, "maximum": 500},
                "default_gateway": {"type": "string"},
            },
        },
        "observability": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "log_level": {"enum": ["debug", "info", "warning", "error", "critical"]},
                "log_format": {"enum": ["json", "text"]},
            },
        },
    },
}


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding
    and validation.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            value = self._coerce(os.environ[self.env_var])
            if self.validator and not self.validator(value):
                raise ConfigValidationError(f"Invalid value for {self.env_var}: {value!r}")
            return value
        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value}")

        self._value = value

    def reset(self) -> None:
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            try:
                return int(value)  # type: ignore
            except ValueError as e:
                raise ConfigValidationError(f"{self.env_var} must be an integer, got: {value!r}") from e
        return value  # type: ignore


@dataclass
class FilesystemConfig:
    """Configuration for the authoritative filesystem."""
    emit_prefix_list: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=True,
        env_var="TOKENFS_EMIT_PREFIX_LIST",
        description="Include the canonical prefix list in TokenPrefixesReplaced events",
    ))


@dataclass
class ClientConfig:
    """Configuration for the client helper library."""
    batch_size: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=100,
        env_var="TOKENFS_CLIENT_BATCH_SIZE",
        description="Candidate tokens checked per batch when auto-selecting a token",
        validator=lambda x: 1 <= x <= 500,
    ))
    default_gateway: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="",
        env_var="TOKENFS_GATEWAY",
        description="IPFS gateway host used when building CID URLs",
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for logging."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="TOKENFS_LOG_LEVEL",
        description="Log level (debug, info, warning, error, critical)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="TOKENFS_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class TokenFSConfig:
    """Root configuration."""
    filesystem: FilesystemConfig = field(default_factory=FilesystemConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False)


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = TokenFSConfig()
        self._config_paths: List[Path] = []
        self._validator = Draft202012Validator(CONFIG_SCHEMA)
        self._initialized = True

    @property
    def config(self) -> TokenFSConfig:
        return self._config

    def validate_document(self, data: Any) -> List[str]:
        """Schema errors for a raw configuration document, empty when valid."""
        errors = []
        for error in sorted(self._validator.iter_errors(data), key=lambda e: [str(p) for p in e.path]):
            location = ".".join(str(p) for p in error.path) or "<root>"
            errors.append(f"{location}: {error.message}")
        return errors

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not data:
            return
        errors = self.validate_document(data)
        if errors:
            raise ConfigValidationError(f"{path}: " + "; ".join(errors))
        self._apply_dict(data)
        if path not in self._config_paths:
            self._config_paths.append(path)

    def load_defaults(self) -> List[Path]:
        """Load default configuration files that exist; returns the ones applied."""
        default_paths = [
            Path("tokenfs.yaml"),
            Path("config/tokenfs.yaml"),
            Path.home() / ".tokenfs" / "config.yaml",
        ]
        loaded = []
        for path in default_paths:
            if path.exists():
                self.load_from_file(path)
                loaded.append(path)
        return loaded

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        def apply_to_config(config_obj: Any, values: Dict[str, Any]) -> None:
            for key, value in values.items():
                if hasattr(config_obj, key):
                    attr = getattr(config_obj, key)
                    if isinstance(attr, ConfigValue):
                        attr.set(value)
                    elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                        apply_to_config(attr, value)

        apply_to_config(self._config, data)

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("client.batch_size", 50)
        """
        attr = self._resolve(path)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("client.batch_size")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not hasattr(obj, "__dataclass_fields__") or part not in obj.__dataclass_fields__:
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def validate(self) -> List[str]:
        """
        Validate all effective configuration values, environment included.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value}")
                except ConfigError as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors

    def export_schema(self) -> Dict[str, Any]:
        """Export configuration schema for documentation."""
        schema: Dict[str, Any] = {"properties": {}}

        def extract_schema(obj: Any, properties: Dict[str, Any]) -> None:
            if isinstance(obj, ConfigValue):
                properties["type"] = type(obj.default).__name__
                properties["default"] = str(obj.default)
                properties["description"] = obj.description
                if obj.env_var:
                    properties["env_var"] = obj.env_var
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    properties[field_name] = {}
                    extract_schema(getattr(obj, field_name), properties[field_name])

        extract_schema(self._config, schema["properties"])
        return schema

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton; the next ConfigManager() starts from defaults."""
        with cls._lock:
            cls._instance = None


def get_config() -> TokenFSConfig:
    """Get the current TokenFS configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    return ConfigManager()
