"""Table registry: record types declare their table metadata with a decorator.

    @dynamo_table("Orders", hash_key="customer_id", range_key="order_id",
                  indexes=[global_index("by-status", "status", include=["total"])])
    @dataclass
    class Order:
        customer_id: str
        order_id: str
        status: str
        total: int

Subclasses registered under the same table name are variants of one
physical table and inherit the keys of their nearest registered base.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
import typing
from typing import ClassVar, TypeVar, get_origin

from dynamo_tables.errors import ConfigurationError
from dynamo_tables.metadata import (
    FieldRef,
    IndexDescriptor,
    ProjectionType,
    TypeDescriptor,
    storage_type_for,
)

T = TypeVar("T", bound=type)


@dataclass
class IndexDeclaration:
    """Global index declared by field name; resolved against the owning type on registration."""

    name: str
    hash_key: str
    range_key: str | None = None
    projection: ProjectionType | str | None = None
    include: Sequence[str] = ()
    read_capacity: int | None = None
    write_capacity: int | None = None


@dataclass
class RegisteredTable:
    """Registered record type: its table name and extracted descriptor."""

    table_name: str
    descriptor: TypeDescriptor


TABLES: dict[type, RegisteredTable] = {}


def global_index(
    name: str,
    hash_key: str,
    range_key: str | None = None,
    *,
    projection: ProjectionType | str | None = None,
    include: Sequence[str] = (),
    read_capacity: int | None = None,
    write_capacity: int | None = None,
) -> IndexDeclaration:
    """Declare a global secondary index. Projection defaults to INCLUDE when include is given, else ALL."""
    return IndexDeclaration(
        name=name,
        hash_key=hash_key,
        range_key=range_key,
        projection=projection,
        include=tuple(include),
        read_capacity=read_capacity,
        write_capacity=write_capacity,
    )


def _annotated_fields(cls: type) -> tuple[FieldRef, ...]:
    try:
        hints = typing.get_type_hints(cls)
    except NameError as e:
        raise ConfigurationError(f"{cls.__qualname__}: cannot resolve annotations: {e}") from e
    return tuple(
        FieldRef(name, storage_type_for(annotation))
        for name, annotation in hints.items()
        if not name.startswith("_") and get_origin(annotation) is not ClassVar and annotation is not ClassVar
    )


def _require_field(cls: type, fields: tuple[FieldRef, ...], name: str, role: str) -> FieldRef:
    for f in fields:
        if f.name == name:
            return f
    raise ConfigurationError(f"{cls.__qualname__}: {role} {name!r} is not a field of the type")


def _resolve_key(cls: type, fields: tuple[FieldRef, ...], name: str | None, role: str) -> FieldRef | None:
    if name is None:
        return None
    return _require_field(cls, fields, name, role)


def _resolve_index(cls: type, fields: tuple[FieldRef, ...], decl: IndexDeclaration) -> IndexDescriptor:
    role = f"index {decl.name!r}"
    hash_key = _require_field(cls, fields, decl.hash_key, f"{role} hash key")
    range_key = _resolve_key(cls, fields, decl.range_key, f"{role} range key")
    if decl.projection is None:
        projection = ProjectionType.INCLUDE if decl.include else ProjectionType.ALL
    else:
        try:
            projection = ProjectionType(decl.projection)
        except ValueError as e:
            raise ConfigurationError(f"{cls.__qualname__}: {role} has unknown projection {decl.projection!r}") from e
    for name in decl.include:
        _require_field(cls, fields, name, f"{role} projected field")
    return IndexDescriptor(
        name=decl.name,
        hash_key=hash_key,
        range_key=range_key,
        projection_type=projection,
        projected_fields=tuple(decl.include),
        read_capacity_units=decl.read_capacity,
        write_capacity_units=decl.write_capacity,
    )


def _inherited_keys(cls: type) -> tuple[str | None, str | None]:
    for base in cls.__mro__[1:]:
        registered = TABLES.get(base)
        if registered is None:
            continue
        descriptor = registered.descriptor
        return (
            descriptor.hash_key.name if descriptor.hash_key else None,
            descriptor.range_key.name if descriptor.range_key else None,
        )
    return None, None


def register_descriptor(cls: type, table_name: str, descriptor: TypeDescriptor) -> None:
    """Register a pre-built descriptor for cls (generated code, or types without annotations)."""
    if not table_name:
        raise ConfigurationError(f"{cls.__qualname__}: table name must not be empty")
    TABLES[cls] = RegisteredTable(table_name=table_name, descriptor=descriptor)


def dynamo_table(
    name: str,
    *,
    hash_key: str | None = None,
    range_key: str | None = None,
    read_capacity: int | None = None,
    write_capacity: int | None = None,
    indexes: Iterable[IndexDeclaration] = (),
    fields: Sequence[FieldRef] | None = None,
) -> Callable[[T], T]:
    """Decorator to register a record type as stored in table `name`.

    Fields come from the class annotations (base classes included) unless
    `fields` is given. Keys and index keys must name one of those fields.
    """

    def decorator(cls: T) -> T:
        resolved_fields = tuple(fields) if fields is not None else _annotated_fields(cls)
        hash_name, range_name = hash_key, range_key
        if hash_name is None and range_name is None:
            hash_name, range_name = _inherited_keys(cls)
        descriptor = TypeDescriptor(
            fields=resolved_fields,
            hash_key=_resolve_key(cls, resolved_fields, hash_name, "hash key"),
            range_key=_resolve_key(cls, resolved_fields, range_name, "range key"),
            read_capacity_units=read_capacity,
            write_capacity_units=write_capacity,
            global_indexes=tuple(_resolve_index(cls, resolved_fields, decl) for decl in indexes),
            record_type=cls,
        )
        register_descriptor(cls, name, descriptor)
        return cls

    return decorator


def declared_table_name(cls: type) -> str | None:
    """Table name registered for exactly cls (not inherited), or None."""
    registered = TABLES.get(cls)
    return registered.table_name if registered else None


def extract_descriptor(cls: type) -> TypeDescriptor:
    """Return the registered descriptor for cls; raise ConfigurationError if cls is not registered."""
    registered = TABLES.get(cls)
    if registered is None:
        raise ConfigurationError(f"{getattr(cls, '__qualname__', cls)!r} is not a registered table type")
    return registered.descriptor


def registered_types() -> list[type]:
    """All registered record types, in registration order."""
    return list(TABLES)


def unregister(cls: type) -> None:
    """Remove cls from the registry (no-op when absent)."""
    TABLES.pop(cls, None)
