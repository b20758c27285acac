"""
Creation and verification of the table holding stored files.

The table is normally created by the app's migration. ``initialize`` also
creates it directly so a store can be brought up on a database that has never
been migrated, and refuses to run against a table whose shape would break the
(key, timestamp) uniqueness guarantee.
"""

import logging
import threading
from typing import Dict, Iterable, Set

from django.conf import settings
from django.db import DatabaseError

from filedb import engine
from filedb.errors import SchemaError
from filedb.models import VersionedFile

logger = logging.getLogger(__name__)

IDENTITY_COLUMNS = ("key", "timestamp")

# Django field types, as reported by introspection, accepted for each column
COMPATIBLE_TYPES: Dict[str, Set[str]] = {
    "key": {"TextField", "CharField"},
    "timestamp": {"DateTimeField"},
    "payload": {"BinaryField"},
}

_create_lock = threading.Lock()


def table_name() -> str:
    return VersionedFile._meta.db_table


def initialize(using: str) -> None:
    """
    Ensure the files table exists with a compatible shape.

    Safe to call repeatedly and from several processes at once: a creation
    that loses the race to another process verifies the winner's table.

    Args:
        using: Database alias to initialize.

    Raises:
        SchemaError: If the table cannot be created or is incompatible.
    """
    if not getattr(settings, "USE_TZ", False):
        raise SchemaError("USE_TZ must be enabled so timestamps are stored timezone-aware")

    table = table_name()
    with _create_lock:
        try:
            if not _table_exists(using, table):
                _create_table(using, table)
            verify_table(using, table)
        except DatabaseError as exc:
            raise SchemaError(f"Could not initialize table {table!r}: {exc}") from exc


def _table_exists(using: str, table: str) -> bool:
    with engine.cursor(using) as cur:
        return table in engine.get_connection(using).introspection.table_names(cur)


def _create_table(using: str, table: str) -> None:
    connection = engine.get_connection(using)
    try:
        with connection.schema_editor() as editor:
            editor.create_model(VersionedFile)
    except DatabaseError:
        # Another process may have created it between the check and the DDL
        if not _table_exists(using, table):
            raise
        logger.info(f"Table {table} was created concurrently on {using!r}")
    else:
        logger.info(f"Created table {table} on {using!r}")


def verify_table(using: str, table: str) -> None:
    """
    Check that ``table`` can hold stored files.

    Raises:
        SchemaError: If a column is missing or has the wrong type, an extra
            column is not nullable, or no constraint covers (key, timestamp).
    """
    connection = engine.get_connection(using)
    introspection = connection.introspection

    with engine.cursor(using) as cur:
        description = introspection.get_table_description(cur, table)
        constraints = introspection.get_constraints(cur, table)

    columns = {info.name: info for info in description}

    for name, accepted in COMPATIBLE_TYPES.items():
        info = columns.get(name)
        if info is None:
            raise SchemaError(f"Table {table!r} has no {name!r} column")
        try:
            field_type = introspection.get_field_type(info.type_code, info)
        except KeyError:
            field_type = str(info.type_code)
        if field_type not in accepted:
            raise SchemaError(
                f"Column {table}.{name} has type {field_type}, "
                f"expected one of {sorted(accepted)}"
            )

    for name, info in columns.items():
        if name not in COMPATIBLE_TYPES and not info.null_ok:
            raise SchemaError(f"Table {table!r} has unexpected required column {name!r}")

    if not _has_identity_constraint(constraints.values()):
        raise SchemaError(
            f"Table {table!r} has no primary key or unique constraint on (key, timestamp)"
        )


def _has_identity_constraint(constraints: Iterable[dict]) -> bool:
    expected = sorted(IDENTITY_COLUMNS)
    for constraint in constraints:
        if not (constraint.get("primary_key") or constraint.get("unique")):
            continue
        if sorted(constraint.get("columns") or []) == expected:
            return True
    return False
