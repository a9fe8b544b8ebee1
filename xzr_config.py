#!/usr/bin/env python3
"""Repack configuration: YAML file plus command-line overrides.

Example ``xzr.yaml``::

    archiveDirectory: target/dist
    outputDirectory: target/xz
    includes: ["**/*.?ar"]
    excludes: ["**/test-*.jar"]
    xzCompressionLevel: 9

Relative directories in a file are resolved against the file's directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from jsonschema import Draft202012Validator

from xzr_compress import DEFAULT_LEVEL, MAX_LEVEL, MIN_LEVEL
from xzr_select import DEFAULT_INCLUDES

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "xzr repack configuration",
    "type": "object",
    "additionalProperties": False,
    "required": ["archiveDirectory"],
    "properties": {
        "archiveDirectory": {"type": "string", "minLength": 1},
        "outputDirectory": {"type": ["string", "null"], "minLength": 1},
        "includes": {"type": "array", "items": {"type": "string"}},
        "excludes": {"type": "array", "items": {"type": "string"}},
        "xzCompressionLevel": {"type": "integer", "minimum": MIN_LEVEL, "maximum": MAX_LEVEL},
        "keepGoing": {"type": "boolean"},
        "workers": {"type": "integer", "minimum": 1},
    },
}


class ConfigError(ValueError):
    """Raised when configuration cannot be loaded or fails validation."""

    pass


@dataclass(frozen=True)
class RepackConfig:
    archive_directory: Path
    output_directory: Path
    includes: Tuple[str, ...] = DEFAULT_INCLUDES
    excludes: Tuple[str, ...] = ()
    compression_level: int = DEFAULT_LEVEL
    keep_going: bool = False
    workers: int = 1


def _format_schema_errors(errors: List[Any]) -> str:
    lines = []
    for err in errors[:5]:
        path = err.json_path or "$"
        lines.append(f"{path}: {err.message}")
    if len(errors) > 5:
        lines.append(f"... {len(errors) - 5} more")
    return "\n".join(lines)


def validate_settings(settings: Dict[str, Any]) -> None:
    """Validate a raw settings mapping against CONFIG_SCHEMA."""
    validator = Draft202012Validator(CONFIG_SCHEMA)
    errors = sorted(validator.iter_errors(settings), key=lambda e: e.json_path)
    if errors:
        raise ConfigError("Invalid configuration:\n" + _format_schema_errors(errors))


def load_settings(path: Path) -> Dict[str, Any]:
    """Read a YAML settings file, resolving directories against its location."""
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")

    for key in ("archiveDirectory", "outputDirectory"):
        value = data.get(key)
        if isinstance(value, str) and value:
            data[key] = str(path.parent / value)
    return data


def build_config(
    settings: Dict[str, Any], overrides: Optional[Dict[str, Any]] = None
) -> RepackConfig:
    """
    Merge settings with overrides and build a validated RepackConfig.

    Override values of None are ignored, so unset command-line flags never
    mask file settings.

    Raises:
        ConfigError: If the merged settings fail schema validation
    """
    merged = dict(settings)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    validate_settings(merged)

    archive_directory = Path(merged["archiveDirectory"])
    output_directory = merged.get("outputDirectory")
    return RepackConfig(
        archive_directory=archive_directory,
        output_directory=Path(output_directory) if output_directory else archive_directory,
        includes=tuple(merged.get("includes") or DEFAULT_INCLUDES),
        excludes=tuple(merged.get("excludes") or ()),
        compression_level=int(merged.get("xzCompressionLevel", DEFAULT_LEVEL)),
        keep_going=merged.get("keepGoing", False),
        workers=merged.get("workers", 1),
    )


def load_config(
    path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None
) -> RepackConfig:
    settings = load_settings(path) if path is not None else {}
    return build_config(settings, overrides)
