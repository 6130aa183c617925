"""
Schema validation for agentpm configuration.

Enforces JSON Schema validation at the config file boundary.
Fails hard with clear errors when data doesn't match schema.
"""

import json
from pathlib import Path

import jsonschema

from agentpm.lib.constants import EXIT_CONFIG
from agentpm.workflow.errors import AgentPMError


class ConfigError(AgentPMError):
    """Configuration missing, unreadable, or not matching its schema."""

    exit_code = EXIT_CONFIG

    def __init__(self, schema_name: str, message: str, path: str = None):
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))

    def _extra(self) -> dict:
        return {"schema": self.schema_name, "path": self.path} if self.path else {"schema": self.schema_name}


# Cache loaded schemas
_schema_cache: dict[str, dict] = {}


def _get_schemas_dir() -> Path:
    return Path(__file__).parent.parent / "schemas"


def _load_schema(schema_name: str) -> dict:
    """Load schema by name, with caching."""
    if schema_name not in _schema_cache:
        schema_path = _get_schemas_dir() / f"{schema_name}.schema.json"
        if not schema_path.exists():
            raise ConfigError(schema_name, f"Schema file not found: {schema_path}")
        _schema_cache[schema_name] = json.loads(schema_path.read_text())
    return _schema_cache[schema_name]


def validate(data: dict, schema_name: str) -> None:
    """
    Validate data against named schema.

    Raises:
        ConfigError: If validation fails
    """
    schema = _load_schema(schema_name)

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) if e.absolute_path else "(root)"
        raise ConfigError(schema_name, e.message, path) from None


def validate_file(filepath: Path, schema_name: str) -> dict:
    """
    Load JSON file and validate against schema.

    Returns:
        Parsed and validated data

    Raises:
        ConfigError: If file missing, not JSON, or doesn't match schema
    """
    if not filepath.exists():
        raise ConfigError(schema_name, f"File not found: {filepath}")

    try:
        data = json.loads(filepath.read_text())
    except json.JSONDecodeError as e:
        raise ConfigError(schema_name, f"Invalid JSON in {filepath}: {e}") from None

    validate(data, schema_name)
    return data
