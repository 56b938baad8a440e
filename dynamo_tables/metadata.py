"""Table metadata descriptors: fields, keys, indexes and table groups."""

from dataclasses import dataclass
import decimal
from enum import Enum
import types
from typing import Any, Union, get_args, get_origin

from dynamo_tables.errors import ConfigurationError


class StorageType(str, Enum):
    """DynamoDB scalar attribute type."""

    STRING = "S"
    NUMBER = "N"
    BINARY = "B"


class ProjectionType(str, Enum):
    """Which attributes a global secondary index copies from the table."""

    ALL = "ALL"
    KEYS_ONLY = "KEYS_ONLY"
    INCLUDE = "INCLUDE"


_NUMBER_TYPES = (int, float, decimal.Decimal)
_BINARY_TYPES = (bytes, bytearray)


def storage_type_for(annotation: Any) -> StorageType:
    """Map a Python annotation to the attribute type it is stored as.

    Optional[X] maps as X and a NewType maps as its supertype. Anything that
    is not a number or bytes (strings, datetimes, collections, nested
    records) is serialised as a string.
    """
    while hasattr(annotation, "__supertype__"):
        annotation = annotation.__supertype__
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [a for a in get_args(annotation) if a is not type(None)]
        if len(members) == 1:
            return storage_type_for(members[0])
        return StorageType.STRING
    if origin is None and isinstance(annotation, type):
        if issubclass(annotation, bool):
            return StorageType.STRING
        if issubclass(annotation, _NUMBER_TYPES):
            return StorageType.NUMBER
        if issubclass(annotation, _BINARY_TYPES):
            return StorageType.BINARY
    return StorageType.STRING


@dataclass(frozen=True)
class FieldRef:
    """A storable field: attribute name and storage type."""

    name: str
    storage_type: StorageType = StorageType.STRING


def _check_capacity(owner: str, read: int | None, write: int | None) -> None:
    if (read is None) != (write is None):
        raise ConfigurationError(
            f"{owner}: read and write capacity units must be declared together "
            f"(read={read}, write={write})"
        )
    for units in (read, write):
        if units is None:
            continue
        if isinstance(units, bool) or not isinstance(units, int):
            raise ConfigurationError(f"{owner}: capacity units must be integers, got {units!r}")
        if units <= 0:
            raise ConfigurationError(f"{owner}: capacity units must be positive, got {units}")


@dataclass(frozen=True)
class IndexDescriptor:
    """A global secondary index declared by a record type."""

    name: str
    hash_key: FieldRef
    range_key: FieldRef | None = None
    projection_type: ProjectionType = ProjectionType.ALL
    projected_fields: tuple[str, ...] = ()
    read_capacity_units: int | None = None
    write_capacity_units: int | None = None

    def __post_init__(self) -> None:
        _check_capacity(f"index {self.name!r}", self.read_capacity_units, self.write_capacity_units)

    @property
    def key_fields(self) -> tuple[FieldRef, ...]:
        if self.range_key is None:
            return (self.hash_key,)
        return (self.hash_key, self.range_key)

    @property
    def non_key_attributes(self) -> list[str]:
        """Projected field names minus the index's own keys (INCLUDE only)."""
        if self.projection_type is not ProjectionType.INCLUDE:
            return []
        key_names = {key.name for key in self.key_fields}
        seen: set[str] = set()
        result: list[str] = []
        for name in self.projected_fields:
            if name in key_names or name in seen:
                continue
            seen.add(name)
            result.append(name)
        return result


@dataclass(frozen=True)
class TypeDescriptor:
    """Table metadata extracted from one record type."""

    fields: tuple[FieldRef, ...] = ()
    hash_key: FieldRef | None = None
    range_key: FieldRef | None = None
    read_capacity_units: int | None = None
    write_capacity_units: int | None = None
    global_indexes: tuple[IndexDescriptor, ...] = ()
    record_type: type | None = None

    def __post_init__(self) -> None:
        _check_capacity(self.label, self.read_capacity_units, self.write_capacity_units)
        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            raise ConfigurationError(f"{self.label}: duplicate field names in {names}")
        index_names = [index.name for index in self.global_indexes]
        if len(index_names) != len(set(index_names)):
            raise ConfigurationError(f"{self.label}: duplicate index names in {index_names}")

    @property
    def label(self) -> str:
        return self.record_type.__qualname__ if self.record_type is not None else "<descriptor>"

    @property
    def has_capacity(self) -> bool:
        return self.read_capacity_units is not None

    def find_field(self, name: str) -> FieldRef | None:
        """Return the field called name, or None."""
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class TableGroup:
    """All record types stored in one physical table."""

    table_name: str
    descriptors: tuple[TypeDescriptor, ...]

    def __post_init__(self) -> None:
        if not self.descriptors:
            raise ConfigurationError(f"table group {self.table_name!r} has no types")

    @property
    def record_types(self) -> list[type | None]:
        return [d.record_type for d in self.descriptors]
