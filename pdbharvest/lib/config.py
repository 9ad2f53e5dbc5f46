"""Configuration loading, validation and access for pdbharvest.

This module provides functions for loading the YAML configuration,
validating it against the JSON Schema and the business rules the schema
cannot express, merging command line overrides, and building the
immutable ``HarvestConfig`` that every pipeline component receives.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml
from jsonschema import Draft7Validator, ValidationError

from pdbharvest.lib.errors import ConfigurationError
from pdbharvest.lib.mirrors import validate_templates

# Bundled JSON Schema for the configuration file
DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "config.schema.yaml"

DEFAULT_LOOKUP_URL = "https://rest.uniprot.org/uniprotkb"

DOWNLOADER_SCOPES = ("accession", "global")


@dataclass(frozen=True)
class HarvestConfig:
    """
    Immutable configuration for one harvest run.

    Attributes:
        save_path: Root directory for downloaded structures.
        read_path: Delimited target export.
        download_url: Mirror URL templates in priority order.
        processor_limit: Maximum number of targets processed at once.
        downloader_limit: Maximum simultaneous downloads per pool.
        downloader_scope: "accession" (fresh pool per accession) or "global".
        lookup_url: Base URL of the flat-text lookup service.
        timeout: Network connect/read timeout in seconds.
        max_retries: Retries for transient network failures.
        retry_delay: Initial backoff delay in seconds.
        chunk_size: Read size when streaming downloads.
        delimiter: Column delimiter of the target export.
        accession_separator: Separator inside the accession column.
        batch_size: Number of targets per group directory.
        log_dir: Base directory for log files.
        log_level: Logging level name.
        strict: Exit non-zero when anything failed.
    """

    save_path: Path
    read_path: Path
    download_url: tuple[str, ...]
    processor_limit: int = 4
    downloader_limit: int = 8
    downloader_scope: str = "accession"
    lookup_url: str = DEFAULT_LOOKUP_URL
    timeout: float = 60.0
    max_retries: int = 3
    retry_delay: float = 1.0
    chunk_size: int = 65536
    delimiter: str = ";"
    accession_separator: str = "|"
    batch_size: int = 1000
    log_dir: Path = Path("logs")
    log_level: str = "INFO"
    strict: bool = False

    def __post_init__(self):
        if self.processor_limit < 1:
            raise ConfigurationError(
                "processor_limit must be a positive integer",
                details=f"Got {self.processor_limit}"
            )
        if self.downloader_limit < 1:
            raise ConfigurationError(
                "downloader_limit must be a positive integer",
                details=f"Got {self.downloader_limit}"
            )
        if self.batch_size < 1:
            raise ConfigurationError(
                "output.batch_size must be a positive integer",
                details=f"Got {self.batch_size}"
            )
        if self.downloader_scope not in DOWNLOADER_SCOPES:
            raise ConfigurationError(
                f"downloader_scope must be one of {DOWNLOADER_SCOPES}",
                details=f"Got {self.downloader_scope!r}"
            )
        validate_templates(self.download_url)


# Dotted config keys -> HarvestConfig field names
FIELD_KEYS = {
    "save_path": "save_path",
    "read_path": "read_path",
    "download_url": "download_url",
    "processor_limit": "processor_limit",
    "downloader_limit": "downloader_limit",
    "downloader_scope": "downloader_scope",
    "strict": "strict",
    "network.lookup_url": "lookup_url",
    "network.timeout": "timeout",
    "network.max_retries": "max_retries",
    "network.retry_delay": "retry_delay",
    "network.chunk_size": "chunk_size",
    "input.delimiter": "delimiter",
    "input.accession_separator": "accession_separator",
    "output.batch_size": "batch_size",
    "logging.dir": "log_dir",
    "logging.level": "log_level",
}


def get_config_value(config: dict, key: str, default: Any = None) -> Any:
    """Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        key: Dot-separated key path (e.g., "network.timeout")
        default: Default value if key not found

    Returns:
        The configuration value or default

    Examples:
        >>> config = {"network": {"timeout": 30}}
        >>> get_config_value(config, "network.timeout")
        30
        >>> get_config_value(config, "missing.key", "default")
        'default'
    """
    keys = key.split(".")
    value = config
    for k in keys:
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default
    return value


def set_config_value(config: dict, key: str, value: Any) -> None:
    """Set a nested configuration value using dot notation.

    Examples:
        >>> config = {"network": {"timeout": 30}}
        >>> set_config_value(config, "network.timeout", 10)
        >>> config["network"]["timeout"]
        10
    """
    keys = key.split(".")
    current = config
    for k in keys[:-1]:
        if k not in current:
            current[k] = {}
        current = current[k]
    current[keys[-1]] = value


def merge_cli_config(base_config: dict, cli_overrides: dict) -> dict:
    """Merge command line overrides into the base configuration.

    Overrides can use dot notation for nested keys and take precedence
    over the base configuration. ``None`` values are ignored so unset
    command line options leave the file value in place.

    Examples:
        >>> base = {"processor_limit": 4, "network": {"timeout": 60}}
        >>> result = merge_cli_config(base, {"network.timeout": 5})
        >>> result["network"]["timeout"]
        5
    """
    result = _deep_copy_dict(base_config)

    for key, value in cli_overrides.items():
        if value is None:
            continue
        if "." in key:
            set_config_value(result, key, value)
        elif isinstance(value, dict) and key in result and isinstance(result[key], dict):
            result[key] = merge_cli_config(result[key], value)
        else:
            result[key] = value

    return result


def _deep_copy_dict(d: dict) -> dict:
    """Create a deep copy of a dictionary."""
    result = {}
    for key, value in d.items():
        if isinstance(value, dict):
            result[key] = _deep_copy_dict(value)
        elif isinstance(value, list):
            result[key] = [_deep_copy_dict(v) if isinstance(v, dict) else v for v in value]
        else:
            result[key] = value
    return result


def load_config(config_path: str | Path) -> dict:
    """Load a YAML configuration file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}"
        )

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"YAML parsing error in {config_path}", details=str(e)
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read configuration file {config_path}", details=str(e)
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(data).__name__}",
            details=str(config_path)
        )
    return data


def load_schema(schema_path: Optional[Path] = None) -> dict:
    """Load the configuration JSON Schema (YAML encoded)."""
    schema_path = schema_path or DEFAULT_SCHEMA_PATH
    with open(schema_path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def format_validation_error(error: ValidationError) -> str:
    """Format a validation error into a readable message."""
    path = " -> ".join(str(p) for p in error.absolute_path) or "(root)"
    return f"  - Path: {path}\n    Error: {error.message}"


def validate_business_rules(config: dict) -> list[str]:
    """
    Validate rules that cannot be expressed in JSON Schema.

    Every mirror template must contain exactly one marker and resolve to
    a URL with a file name.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    templates = config.get("download_url", [])
    try:
        validate_templates(templates)
    except ConfigurationError as e:
        message = e.message if not e.details else f"{e.message} ({e.details})"
        errors.append(message)
    return errors


def validate_config(config: dict, schema: Optional[dict] = None) -> list[str]:
    """
    Validate a configuration dictionary against the schema and business rules.

    Args:
        config: Configuration dictionary
        schema: JSON Schema (default: the bundled schema)

    Returns:
        List of error messages (empty if valid)
    """
    if schema is None:
        schema = load_schema()

    validator = Draft7Validator(schema)
    errors = [
        format_validation_error(error)
        for error in sorted(validator.iter_errors(config), key=lambda e: str(e.path))
    ]

    # Business rules only make sense once the shape is right
    if not errors:
        for err in validate_business_rules(config):
            errors.append(f"  - Business Rule Error: {err}")

    return errors


def build_config(config: dict, schema: Optional[dict] = None) -> HarvestConfig:
    """
    Validate a configuration dictionary and build a HarvestConfig.

    Raises:
        ConfigurationError: If validation fails
    """
    errors = validate_config(config, schema)
    if errors:
        raise ConfigurationError(
            "Configuration validation failed",
            details="\n" + "\n".join(errors)
        )

    values: dict[str, Any] = {}
    for key, field_name in FIELD_KEYS.items():
        value = get_config_value(config, key)
        if value is not None:
            values[field_name] = value

    values["save_path"] = Path(values["save_path"])
    values["read_path"] = Path(values["read_path"])
    values["download_url"] = tuple(values["download_url"])
    if "log_dir" in values:
        values["log_dir"] = Path(values["log_dir"])
    if "timeout" in values:
        values["timeout"] = float(values["timeout"])
    if "retry_delay" in values:
        values["retry_delay"] = float(values["retry_delay"])

    return HarvestConfig(**values)
