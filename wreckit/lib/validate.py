"""
Schema validation for wreckit.

Enforces JSON Schema validation at every data boundary: item records,
story documents, the registry and the config file.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema

from wreckit.lib.errors import WreckitError, not_found, validation_error


def _get_schemas_dir() -> Path:
    """Get path to bundled schemas directory."""
    return Path(__file__).parent.parent / "schemas"


@lru_cache(maxsize=None)
def _load_schema(schema_name: str) -> dict:
    """Load schema by name, with caching."""
    schema_path = _get_schemas_dir() / f"{schema_name}.schema.json"
    if not schema_path.exists():
        raise not_found(f"Schema file not found: {schema_path}", "FILE_NOT_FOUND")
    return json.loads(schema_path.read_text())


def validate(data: Any, schema_name: str) -> None:
    """
    Validate data against named schema.

    Args:
        data: Parsed JSON/YAML value to validate
        schema_name: Schema name (e.g., "item", "prd", "index", "config")

    Raises:
        WreckitError(validation, SCHEMA_VALIDATION): If validation fails
    """
    schema = _load_schema(schema_name)

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) if e.absolute_path else "(root)"
        raise validation_error(
            f"[{schema_name}] {e.message} at {path}", "SCHEMA_VALIDATION"
        ) from None


def is_valid(data: Any, schema_name: str) -> bool:
    """Return True if data matches the schema."""
    schema = _load_schema(schema_name)
    return jsonschema.Draft7Validator(schema).is_valid(data)


def validate_file(filepath: Path, schema_name: str) -> dict:
    """
    Load JSON file and validate against schema.

    Returns:
        Parsed and validated data

    Raises:
        WreckitError(not_found, FILE_NOT_FOUND): If the file does not exist
        WreckitError(validation, INVALID_JSON | SCHEMA_VALIDATION): If invalid
    """
    if not filepath.exists():
        raise not_found(f"File not found: {filepath}", "FILE_NOT_FOUND")

    try:
        data = json.loads(filepath.read_text())
    except json.JSONDecodeError as e:
        raise validation_error(f"Invalid JSON in {filepath}: {e}", "INVALID_JSON") from None

    validate(data, schema_name)
    return data


def validate_before_write(data: Any, schema_name: str, filepath: Path) -> None:
    """
    Validate data before writing to file. Ensures we never write invalid data.
    """
    try:
        validate(data, schema_name)
    except WreckitError as e:
        raise validation_error(
            f"Refusing to write invalid data to {filepath}: {e.message}", "SCHEMA_VALIDATION"
        ) from None
