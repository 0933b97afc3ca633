"""Schema validation for model definition files."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any, Mapping

import jsonschema

from hydrodem.errors import ConfigError

SCHEMA_VERSION = "1.0"
MODEL_DEFINITION_SCHEMA = "model_definition.schema.json"


def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema bundled in the package."""
    with resources.files("hydrodem.schemas").joinpath(name).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def validate_model_definition(definition: Mapping[str, Any]) -> None:
    """Raise ConfigError when a model definition does not match the schema."""
    schema = _load_schema(MODEL_DEFINITION_SCHEMA)
    try:
        jsonschema.validate(definition, schema)
    except jsonschema.ValidationError as exc:
        location = "/".join(str(part) for part in exc.absolute_path) or "<root>"
        raise ConfigError(f"Invalid model definition at {location}: {exc.message}") from exc


def load_model_definition(path: Path) -> dict[str, Any]:
    """Read and validate a model definition JSON file."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not read model definition {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Model definition {path} must be a JSON object.")
    validate_model_definition(payload)
    return payload
