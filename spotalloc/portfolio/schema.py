"""Loading and schema validation for allocator configuration documents."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping, Sequence

import jsonschema
import yaml
from jsonschema import Draft7Validator

from .errors import ConfigError

__all__ = [
    "TARGETS_SCHEMA",
    "BOTS_SCHEMA",
    "load_document",
    "validate_document",
]

_UNIT = {"type": "number", "minimum": 0, "maximum": 1}

TARGETS_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["assets"],
    "additionalProperties": False,
    "properties": {
        "default_band_width": _UNIT,
        "assets": {
            "type": "object",
            "minProperties": 1,
            "additionalProperties": {
                "type": "object",
                "required": ["target_weight"],
                "additionalProperties": False,
                "properties": {
                    "target_weight": _UNIT,
                    "band_width": _UNIT,
                    "enabled": {"type": "boolean"},
                },
            },
        },
    },
}

BOTS_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "array",
    "items": {
        "type": "object",
        "required": ["id"],
        "additionalProperties": False,
        "properties": {
            "id": {"type": "string", "minLength": 1},
            "name": {"type": "string"},
            "indicator": {"type": "string"},
            "timeframe": {"type": "string"},
            "enabledAssets": {"type": "array", "items": {"type": "string"}},
            "maxDeployedUsdc": {"type": "number", "exclusiveMinimum": 0},
            "maxPortfolioPct": {"type": "number", "exclusiveMinimum": 0, "maximum": 1},
            "stateFile": {"type": "string"},
            "logFile": {"type": "string"},
            "serviceName": {"type": "string"},
            "csvDir": {"type": "string"},
        },
    },
}


def _format_error(error: jsonschema.ValidationError) -> str:
    location = ".".join(str(part) for part in error.absolute_path) or "<root>"
    return f"{location}: {error.message}"


def _format_errors(errors: Sequence[jsonschema.ValidationError]) -> str:
    return "; ".join(_format_error(err) for err in errors)


def load_document(path: Path) -> Any:
    """Parse a YAML (``.yaml``/``.yml``) or JSON document from *path*."""

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"unable to read config file: {path}") from exc
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            return yaml.safe_load(text)
        return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"invalid config payload in {path}: {exc}") from exc


def validate_document(data: Any, schema: Mapping[str, Any], label: str) -> None:
    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda err: tuple(map(str, err.absolute_path)))
    if errors:
        raise ConfigError(f"{label} failed validation: {_format_errors(errors)}")
