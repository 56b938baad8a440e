"""DynamoDB Table provisioning from registered record types."""

from collections.abc import Iterable

import pulumi
import pulumi_aws

from dynamo_tables.builder import TableResourceBuilder
from dynamo_tables.discovery import discover
from dynamo_tables.metadata import TableGroup
from dynamo_tables.settings import BuilderSettings, load_settings

MANAGED_BY = "dynamo-tables"


def resource_name(table_name: str) -> str:
    """Pulumi logical name for a table."""
    return f"{table_name.replace('-', '_').replace('.', '_')}_table"


def build_table_args(group: TableGroup, settings: BuilderSettings) -> pulumi_aws.dynamodb.TableArgs:
    """Build the full TableArgs for one group, including name, tags and recovery settings."""
    args = TableResourceBuilder(group, conflict_policy=settings.conflict_policy).build()
    name = settings.physical_name(group.table_name)
    args.name = name
    args.point_in_time_recovery = pulumi_aws.dynamodb.TablePointInTimeRecoveryArgs(
        enabled=settings.point_in_time_recovery,
    )
    args.deletion_protection_enabled = settings.deletion_protection
    args.tags = {"Name": name, "managed-by": MANAGED_BY, **settings.tags}
    return args


def create_table(
    group: TableGroup,
    settings: BuilderSettings,
    aws_provider: pulumi_aws.Provider | None = None,
) -> pulumi_aws.dynamodb.Table:
    """Declare the DynamoDB table for one group."""
    args = build_table_args(group, settings)
    return _declare(group.table_name, args, aws_provider)


def _declare(
    table_name: str,
    args: pulumi_aws.dynamodb.TableArgs,
    aws_provider: pulumi_aws.Provider | None,
) -> pulumi_aws.dynamodb.Table:
    pulumi.log.info(f"Declaring DynamoDB table '{args.name}' ({args.billing_mode})")
    return pulumi_aws.dynamodb.Table(
        resource_name(table_name),
        args=args,
        opts=pulumi.ResourceOptions(provider=aws_provider) if aws_provider is not None else None,
    )


def provision_tables(
    types: Iterable[type],
    settings: BuilderSettings | None = None,
    aws_provider: pulumi_aws.Provider | None = None,
) -> dict[str, pulumi_aws.dynamodb.Table]:
    """Declare one table per distinct table name among types, keyed by table name.

    Every table's arguments are built before the first resource is declared,
    so a misconfigured group fails the run without partial declarations.
    """
    if settings is None:
        settings = load_settings()
    built = [(group.table_name, build_table_args(group, settings)) for group in discover(types)]
    return {name: _declare(name, args, aws_provider) for name, args in built}
