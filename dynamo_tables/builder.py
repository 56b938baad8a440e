"""Build pulumi_aws DynamoDB TableArgs from a table group's merged metadata.

Every operation merges into the TableArgs it is given and can run in any
order, any number of times. Key and index operations add the attributes they
need themselves, skipping names already declared, so the attribute list never
holds duplicates regardless of call order.

Precedence is first-declared-wins in group order: the first type with
capacity units sets the billing mode, the first type with a hash key sets the
key schema, the first type with indexes owns every index of the table.
"""

from collections.abc import Iterable
from enum import Enum

import pulumi
import pulumi_aws

from dynamo_tables.errors import ConfigurationError
from dynamo_tables.metadata import (
    FieldRef,
    IndexDescriptor,
    ProjectionType,
    TableGroup,
    TypeDescriptor,
)

BILLING_ON_DEMAND = "PAY_PER_REQUEST"
BILLING_PROVISIONED = "PROVISIONED"

# Capacity is an Int32 on the provider side.
MAX_CAPACITY_UNITS = 2**31 - 1


class ConflictPolicy(str, Enum):
    """What to do when a later type in a group disagrees with the first declaration."""

    WARN = "warn"
    ERROR = "error"
    IGNORE = "ignore"


def to_capacity(units: int | None, owner: str) -> int | None:
    """Check declared capacity units fit the provider's integer range."""
    if units is None:
        return None
    if units > MAX_CAPACITY_UNITS:
        raise ConfigurationError(
            f"{owner}: capacity units {units} exceed the maximum of {MAX_CAPACITY_UNITS}"
        )
    return units


class TableResourceBuilder:
    """Populates TableArgs for one table group."""

    def __init__(self, group: TableGroup, conflict_policy: ConflictPolicy | str = ConflictPolicy.WARN) -> None:
        self.group = group
        self.conflict_policy = ConflictPolicy(conflict_policy)

    @property
    def table_name(self) -> str:
        return self.group.table_name

    @property
    def descriptors(self) -> tuple[TypeDescriptor, ...]:
        return self.group.descriptors

    def _conflict(self, message: str) -> None:
        text = f"Table '{self.table_name}': {message}"
        if self.conflict_policy is ConflictPolicy.ERROR:
            raise ConfigurationError(text)
        if self.conflict_policy is ConflictPolicy.WARN:
            pulumi.log.warn(text)

    def _merge_attributes(self, args: pulumi_aws.dynamodb.TableArgs, refs: Iterable[FieldRef]) -> None:
        attributes = list(args.attributes or [])
        declared = {attribute.name: attribute for attribute in attributes}
        for ref in refs:
            existing = declared.get(ref.name)
            if existing is None:
                attribute = pulumi_aws.dynamodb.TableAttributeArgs(name=ref.name, type=ref.storage_type.value)
                attributes.append(attribute)
                declared[ref.name] = attribute
            elif isinstance(existing.type, str) and existing.type != ref.storage_type.value:
                self._conflict(
                    f"attribute '{ref.name}' is already declared as {existing.type}, "
                    f"ignoring {ref.storage_type.value}"
                )
        args.attributes = attributes

    def set_attribute_schema(self, args: pulumi_aws.dynamodb.TableArgs) -> "TableResourceBuilder":
        """Declare the union of every type's fields, first occurrence of a name wins."""
        union: dict[str, FieldRef] = {}
        for descriptor in self.descriptors:
            for ref in descriptor.fields:
                first = union.get(ref.name)
                if first is None:
                    union[ref.name] = ref
                elif first.storage_type != ref.storage_type:
                    self._conflict(
                        f"field '{ref.name}' is {ref.storage_type.value} on {descriptor.label} "
                        f"but {first.storage_type.value} on an earlier type; keeping {first.storage_type.value}"
                    )
        self._merge_attributes(args, union.values())
        return self

    def set_billing_mode(self, args: pulumi_aws.dynamodb.TableArgs) -> "TableResourceBuilder":
        """On-demand unless a type declares capacity units; then provisioned with the first declaration."""
        provisioned = [d for d in self.descriptors if d.has_capacity]
        if not provisioned:
            args.billing_mode = BILLING_ON_DEMAND
            args.read_capacity = None
            args.write_capacity = None
            return self

        first = provisioned[0]
        for other in provisioned[1:]:
            if (other.read_capacity_units, other.write_capacity_units) != (
                first.read_capacity_units,
                first.write_capacity_units,
            ):
                self._conflict(
                    f"{other.label} declares capacity {other.read_capacity_units}/{other.write_capacity_units}, "
                    f"using {first.read_capacity_units}/{first.write_capacity_units} from {first.label}"
                )
        read_capacity = to_capacity(first.read_capacity_units, first.label)
        write_capacity = to_capacity(first.write_capacity_units, first.label)
        args.billing_mode = BILLING_PROVISIONED
        args.read_capacity = read_capacity
        args.write_capacity = write_capacity
        return self

    def set_key_schema(self, args: pulumi_aws.dynamodb.TableArgs) -> "TableResourceBuilder":
        """Take hash and range key from the first type declaring a hash key."""
        keyed = [d for d in self.descriptors if d.hash_key is not None]
        if not keyed:
            raise ConfigurationError(
                f"Table '{self.table_name}': no type in this table group declares a hash key"
            )

        first = keyed[0]
        for other in keyed[1:]:
            if (other.hash_key, other.range_key) != (first.hash_key, first.range_key):
                self._conflict(
                    f"{other.label} declares key schema {_key_names(other)}, "
                    f"using {_key_names(first)} from {first.label}"
                )
        key_fields = [k for k in (first.hash_key, first.range_key) if k is not None]
        args.hash_key = key_fields[0].name
        args.range_key = first.range_key.name if first.range_key else None
        self._merge_attributes(args, key_fields)
        return self

    def set_global_secondary_indexes(self, args: pulumi_aws.dynamodb.TableArgs) -> "TableResourceBuilder":
        """Emit the indexes of the first type that declares any; leave args alone if none does."""
        indexed = [d for d in self.descriptors if d.global_indexes]
        if not indexed:
            return self

        owner = indexed[0]
        for other in indexed[1:]:
            if other.global_indexes != owner.global_indexes:
                self._conflict(
                    f"ignoring global indexes declared on {other.label}; {owner.label} owns the table's indexes"
                )

        key_fields: dict[str, FieldRef] = {}
        index_args = []
        for index in owner.global_indexes:
            for key in index.key_fields:
                if owner.find_field(key.name) is None:
                    raise ConfigurationError(
                        f"Table '{self.table_name}': index '{index.name}' key '{key.name}' "
                        f"is not a field of {owner.label}"
                    )
                key_fields.setdefault(key.name, key)
            index_args.append(self._index_args(index))

        args.global_secondary_indexes = index_args
        self._merge_attributes(args, key_fields.values())
        return self

    def _index_args(self, index: IndexDescriptor) -> pulumi_aws.dynamodb.TableGlobalSecondaryIndexArgs:
        owner = f"Table '{self.table_name}' index '{index.name}'"
        return pulumi_aws.dynamodb.TableGlobalSecondaryIndexArgs(
            name=index.name,
            hash_key=index.hash_key.name,
            range_key=index.range_key.name if index.range_key else None,
            projection_type=index.projection_type.value,
            non_key_attributes=(
                index.non_key_attributes if index.projection_type is ProjectionType.INCLUDE else None
            ),
            read_capacity=to_capacity(index.read_capacity_units, owner),
            write_capacity=to_capacity(index.write_capacity_units, owner),
        )

    def build(self, args: pulumi_aws.dynamodb.TableArgs | None = None) -> pulumi_aws.dynamodb.TableArgs:
        """Apply every operation to args (a new TableArgs when omitted) and return it."""
        if args is None:
            args = pulumi_aws.dynamodb.TableArgs()
        (
            self.set_attribute_schema(args)
            .set_billing_mode(args)
            .set_key_schema(args)
            .set_global_secondary_indexes(args)
        )
        pulumi.log.debug(
            f"Built table '{self.table_name}': hash_key={args.hash_key} range_key={args.range_key} "
            f"billing_mode={args.billing_mode}"
        )
        return args


def _key_names(descriptor: TypeDescriptor) -> str:
    names = [k.name for k in (descriptor.hash_key, descriptor.range_key) if k is not None]
    return "/".join(names)
