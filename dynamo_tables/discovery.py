"""Group record types into tables by their declared table name."""

from collections.abc import Callable, Iterable
import inspect
from types import ModuleType

import pulumi

from dynamo_tables.metadata import TableGroup, TypeDescriptor
from dynamo_tables.registry import declared_table_name, extract_descriptor, registered_types


def discover(
    types: Iterable[type],
    *,
    table_name_of: Callable[[type], str | None] = declared_table_name,
    describe: Callable[[type], TypeDescriptor] = extract_descriptor,
) -> list[TableGroup]:
    """Return one TableGroup per distinct declared table name.

    Types without a declared name are skipped. Group order follows the first
    time each name is seen; types keep their encounter order inside a group.
    """
    grouped: dict[str, list[type]] = {}
    for cls in types:
        name = table_name_of(cls)
        if name is None:
            continue
        grouped.setdefault(name, []).append(cls)

    groups = []
    for name, members in grouped.items():
        group = TableGroup(table_name=name, descriptors=tuple(describe(cls) for cls in members))
        pulumi.log.debug(
            f"Discovered table '{name}' from {', '.join(cls.__qualname__ for cls in members)}"
        )
        groups.append(group)
    return groups


def find_tables(module: ModuleType) -> list[TableGroup]:
    """Discover tables among the classes defined in module, in definition order."""
    classes = [
        obj
        for obj in vars(module).values()
        if inspect.isclass(obj) and obj.__module__ == module.__name__
    ]
    return discover(classes)


def discover_registered() -> list[TableGroup]:
    """Discover tables over every registered record type."""
    return discover(registered_types())
