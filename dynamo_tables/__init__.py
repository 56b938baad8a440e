"""Derive Pulumi DynamoDB table definitions from metadata declared on record types."""

from dynamo_tables.builder import ConflictPolicy, TableResourceBuilder
from dynamo_tables.discovery import discover, discover_registered, find_tables
from dynamo_tables.errors import ConfigurationError
from dynamo_tables.metadata import (
    FieldRef,
    IndexDescriptor,
    ProjectionType,
    StorageType,
    TableGroup,
    TypeDescriptor,
)
from dynamo_tables.provision import create_table, provision_tables
from dynamo_tables.registry import (
    declared_table_name,
    dynamo_table,
    extract_descriptor,
    global_index,
    register_descriptor,
)
from dynamo_tables.settings import BuilderSettings, load_settings

__all__ = [
    "BuilderSettings",
    "ConfigurationError",
    "ConflictPolicy",
    "FieldRef",
    "IndexDescriptor",
    "ProjectionType",
    "StorageType",
    "TableGroup",
    "TableResourceBuilder",
    "TypeDescriptor",
    "create_table",
    "declared_table_name",
    "discover",
    "discover_registered",
    "dynamo_table",
    "extract_descriptor",
    "find_tables",
    "global_index",
    "load_settings",
    "provision_tables",
    "register_descriptor",
]
