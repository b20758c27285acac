"""
Thin adapter over Django's connection handling.

Every store operation goes through one of these context managers so that the
transaction (and any cursor opened inside it) is released on every exit path.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from django.db import connections, transaction
from django.db.backends.base.base import BaseDatabaseWrapper
from django.utils.connection import ConnectionDoesNotExist

from filedb.conf import get_database_alias


def resolve_alias(using: Optional[str] = None) -> str:
    """Return ``using`` or the configured default alias, checking it exists."""
    alias = using or get_database_alias()
    if alias not in connections.settings:
        raise ConnectionDoesNotExist(f"The connection {alias!r} doesn't exist.")
    return alias


def get_connection(using: Optional[str] = None) -> BaseDatabaseWrapper:
    return connections[resolve_alias(using)]


@contextmanager
def write_transaction(using: str) -> Iterator[None]:
    """
    Scope a single atomic write.

    When already inside a transaction on the same connection this becomes a
    savepoint, so a failed write rolls back only itself.
    """
    with transaction.atomic(using=using):
        yield


@contextmanager
def read_transaction(using: str) -> Iterator[None]:
    """Scope a read so that all of its queries observe one snapshot."""
    with transaction.atomic(using=using):
        yield


@contextmanager
def cursor(using: str):
    """Open a raw cursor for introspection, closing it on exit."""
    with get_connection(using).cursor() as cur:
        yield cur
