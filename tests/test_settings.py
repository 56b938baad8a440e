"""Tests for settings loading and validation."""

from pathlib import Path
from unittest.mock import patch

import jsonschema
import pytest

from dynamo_tables.builder import ConflictPolicy
from dynamo_tables.errors import ConfigurationError
from dynamo_tables.settings import (
    CONFIG_ENV_VAR,
    BuilderSettings,
    load_settings,
    validate_settings,
)


def test_settings_from_file(tmp_path: Path) -> None:
    """Test loading a complete settings file."""
    yaml_content = """
apiVersion: dynamo-tables/v1
kind: TableSettings
spec:
  conflictPolicy: error
  tableNamePrefix: dev-
  pointInTimeRecovery: false
  deletionProtection: true
  tags:
    team: payments
"""
    yaml_file = tmp_path / "tables.yaml"
    yaml_file.write_text(yaml_content)

    settings = BuilderSettings.from_file(yaml_file)

    assert settings.conflict_policy is ConflictPolicy.ERROR
    assert settings.table_name_prefix == "dev-"
    assert settings.point_in_time_recovery is False
    assert settings.deletion_protection is True
    assert settings.tags == {"team": "payments"}
    assert settings.physical_name("Orders") == "dev-Orders"


def test_settings_defaults(tmp_path: Path) -> None:
    """Test default values when spec is omitted."""
    yaml_file = tmp_path / "tables.yaml"
    yaml_file.write_text("apiVersion: dynamo-tables/v1\nkind: TableSettings\n")

    settings = BuilderSettings.from_file(str(yaml_file))

    assert settings == BuilderSettings()
    assert settings.conflict_policy is ConflictPolicy.WARN
    assert settings.point_in_time_recovery is True
    assert settings.physical_name("Orders") == "Orders"


def test_settings_from_file_missing(tmp_path: Path) -> None:
    """A missing settings file is a configuration error."""
    with pytest.raises(ConfigurationError, match="not found"):
        BuilderSettings.from_file(tmp_path / "absent.yaml")


def test_validate_settings_missing_api_version() -> None:
    """Missing apiVersion is rejected."""
    with pytest.raises(ConfigurationError, match="apiVersion"):
        validate_settings({"kind": "TableSettings"})


def test_validate_settings_unsupported_version() -> None:
    """Unsupported apiVersion is rejected."""
    with pytest.raises(ConfigurationError, match="Unsupported apiVersion"):
        validate_settings({"apiVersion": "dynamo-tables/v9", "kind": "TableSettings"})


def test_validate_settings_rejects_non_mapping() -> None:
    """A YAML document that is not a mapping is rejected."""
    with pytest.raises(ConfigurationError, match="mapping"):
        validate_settings(["not", "a", "mapping"])  # type: ignore[arg-type]


def test_validate_settings_reports_all_errors_and_chains_cause() -> None:
    """Every schema error is listed; the jsonschema error is the cause."""
    data = {
        "apiVersion": "dynamo-tables/v1",
        "kind": "TableSettings",
        "spec": {"conflictPolicy": "loud", "typoKey": True, "tags": {"team": 1}},
    }
    with pytest.raises(ConfigurationError) as exc_info:
        validate_settings(data)

    msg = str(exc_info.value)
    assert msg.startswith("settings validation failed:")
    assert "spec.conflictPolicy" in msg
    assert "typoKey" in msg
    assert "spec.tags.team" in msg
    assert isinstance(exc_info.value.__cause__, jsonschema.ValidationError)


def test_validate_settings_rejects_bad_prefix() -> None:
    """Table name prefixes are limited to characters DynamoDB accepts."""
    data = {"apiVersion": "dynamo-tables/v1", "kind": "TableSettings", "spec": {"tableNamePrefix": "dev/"}}
    with pytest.raises(ConfigurationError, match="tableNamePrefix"):
        validate_settings(data)


def test_load_settings_defaults_without_env() -> None:
    """Without DYNAMO_TABLES_CONFIG, defaults are used."""
    with patch.dict("os.environ", {}, clear=True):
        assert load_settings() == BuilderSettings()


def test_load_settings_from_env(tmp_path: Path) -> None:
    """DYNAMO_TABLES_CONFIG points at the settings file."""
    yaml_file = tmp_path / "tables.yaml"
    yaml_file.write_text("apiVersion: dynamo-tables/v1\nkind: TableSettings\nspec:\n  tableNamePrefix: prod-\n")

    with patch.dict("os.environ", {CONFIG_ENV_VAR: str(yaml_file)}):
        settings = load_settings()

    assert settings.table_name_prefix == "prod-"


def test_load_settings_env_points_to_missing_file(tmp_path: Path) -> None:
    """A configured but missing settings file fails loudly."""
    with patch.dict("os.environ", {CONFIG_ENV_VAR: str(tmp_path / "absent.yaml")}):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings()


def test_validate_settings_caps_reported_errors() -> None:
    """Only the first ten errors are listed; the rest are counted."""
    data = {
        "apiVersion": "dynamo-tables/v1",
        "kind": "TableSettings",
        "spec": {"tags": {f"tag{i:02d}": i for i in range(12)}},
    }
    with pytest.raises(ConfigurationError) as exc_info:
        validate_settings(data)

    msg = str(exc_info.value)
    assert "spec.tags.tag00" in msg
    assert "spec.tags.tag09" in msg
    assert "spec.tags.tag10" not in msg
    assert "(+2 more)" in msg


def test_validate_settings_reports_root_errors() -> None:
    """Errors on the document itself are reported against (root)."""
    with pytest.raises(ConfigurationError, match=r"\(root\)"):
        validate_settings({"apiVersion": "dynamo-tables/v1"})
