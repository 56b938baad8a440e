"""Settings file loading and validation."""

from dataclasses import dataclass, field
import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from dynamo_tables.builder import ConflictPolicy
from dynamo_tables.errors import ConfigurationError

API_VERSION = "dynamo-tables/v1"
CONFIG_ENV_VAR = "DYNAMO_TABLES_CONFIG"

SCHEMAS = {API_VERSION: "settings-v1.json"}
MAX_REPORTED_ERRORS = 10


def load_schema(api_version: str) -> dict:
    """Load the bundled JSON Schema for a settings apiVersion."""
    name = SCHEMAS.get(api_version)
    if name is None:
        supported = ", ".join(sorted(SCHEMAS))
        raise ConfigurationError(f"Unsupported apiVersion: {api_version} (supported: {supported})")
    with open(Path(__file__).resolve().parent / "schema" / name, encoding="utf-8") as f:
        return json.load(f)


def _schema_error(errors: list[jsonschema.ValidationError]) -> ConfigurationError:
    """One ConfigurationError naming each offending setting by its path in the document."""
    reported = sorted(errors, key=lambda err: err.json_path)[:MAX_REPORTED_ERRORS]
    lines = ["settings validation failed:"]
    lines += [f"  - {err.json_path.removeprefix('$').lstrip('.') or '(root)'}: {err.message}" for err in reported]
    if len(errors) > len(reported):
        lines.append(f"  (+{len(errors) - len(reported)} more)")
    return ConfigurationError("\n".join(lines))


def validate_settings(data: dict) -> None:
    """Validate parsed settings against the schema of their apiVersion."""
    if not isinstance(data, dict):
        raise ConfigurationError("settings file must contain a mapping")
    api_version = data.get("apiVersion")
    if not api_version:
        raise ConfigurationError("Missing required field: apiVersion")
    errors = list(jsonschema.Draft202012Validator(load_schema(api_version)).iter_errors(data))
    if errors:
        raise _schema_error(errors) from errors[0]


@dataclass
class BuilderSettings:
    """Parsed and validated settings for building and declaring tables."""

    conflict_policy: ConflictPolicy = ConflictPolicy.WARN
    table_name_prefix: str = ""
    point_in_time_recovery: bool = True
    deletion_protection: bool = False
    tags: dict[str, str] = field(default_factory=dict)

    def physical_name(self, table_name: str) -> str:
        return f"{self.table_name_prefix}{table_name}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BuilderSettings":
        """Build settings from an already-parsed settings document."""
        validate_settings(data)
        spec = data.get("spec") or {}
        return cls(
            conflict_policy=ConflictPolicy(spec.get("conflictPolicy", "warn")),
            table_name_prefix=spec.get("tableNamePrefix", ""),
            point_in_time_recovery=spec.get("pointInTimeRecovery", True),
            deletion_protection=spec.get("deletionProtection", False),
            tags=dict(spec.get("tags") or {}),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "BuilderSettings":
        """Load and validate a settings YAML file."""
        if not Path(path).exists():
            raise ConfigurationError(f"settings file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data)


def load_settings() -> BuilderSettings:
    """Load settings from the file named by DYNAMO_TABLES_CONFIG, or defaults when unset."""
    path = os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return BuilderSettings()
    return BuilderSettings.from_file(path)
