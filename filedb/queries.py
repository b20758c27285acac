"""
Multi-version reads and retention for stored files.

Sequences returned here are lazy and restartable: nothing is queried until
iteration starts, and every iteration runs its own query inside a read
transaction that stays open until the iteration finishes or is closed.
Writes made on the same connection while an iteration is open join that
transaction and are committed when the iteration ends, including when the
consumer stops early.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Generic, Iterator, NamedTuple, Optional, TypeVar

from django.db.models import QuerySet
from django.db.models.functions import Length
from django.utils import timezone

from filedb import engine
from filedb.conf import get_iterator_chunk_size, get_retention_days
from filedb.models import VersionedFile
from filedb.services import validate_key, validate_timestamp

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Version(NamedTuple):
    """A stored version of one key."""

    timestamp: datetime
    payload: bytes


class VersionInfo(NamedTuple):
    """Timestamp and payload size of a stored version."""

    timestamp: datetime
    size: int


class EntryRef(NamedTuple):
    """Identity of a stored entry, without its payload."""

    key: str
    timestamp: datetime


class LazySequence(Generic[T]):
    """Finite, restartable sequence backed by a single streaming query."""

    def __init__(self, queryset: QuerySet, using: str, build: Callable[[Any], T]):
        self._queryset = queryset
        self._using = using
        self._build = build

    def __iter__(self) -> Iterator[T]:
        return self._iterate()

    def _iterate(self) -> Iterator[T]:
        with engine.read_transaction(self._using):
            rows = self._queryset.all().iterator(chunk_size=get_iterator_chunk_size())
            try:
                for row in rows:
                    yield self._build(row)
            except GeneratorExit:
                # Early close by the consumer ends the transaction with a commit,
                # keeping writes made on this connection during the iteration
                return
            finally:
                rows.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} using={self._using!r}>"


def _to_version(row) -> Version:
    timestamp, payload = row
    return Version(timestamp, bytes(payload))


def _versions(using: str, key: str) -> QuerySet:
    return (
        VersionedFile.objects.using(using)
        .filter(key=key)
        .values_list("timestamp", "payload")
    )


def list_by_key(key: str, using: str) -> LazySequence[Version]:
    """All versions stored under ``key``, oldest first."""
    validate_key(key)
    return LazySequence(_versions(using, key).order_by("timestamp"), using, _to_version)


def latest(key: str, using: str) -> Optional[Version]:
    """
    Most recent version stored under ``key``.

    Returns:
        The version with the greatest timestamp, or None if the key has none
    """
    validate_key(key)
    with engine.read_transaction(using):
        row = _versions(using, key).order_by("-timestamp").first()
    if row is None:
        return None
    return _to_version(row)


def range_by_key(
    key: str,
    start: datetime,
    end: datetime,
    using: str,
    inclusive_from: bool = True,
    inclusive_to: bool = False,
) -> LazySequence[Version]:
    """
    Versions of ``key`` whose timestamp lies between ``start`` and ``end``.

    Each bound is inclusive or exclusive independently, so a caller polling
    for new versions can pass its previous upper bound as an exclusive start.
    A start later than the end gives an empty sequence.

    Args:
        key: The file key
        start: Lower bound of the interval
        end: Upper bound of the interval
        using: Database alias
        inclusive_from: Whether a version exactly at ``start`` is included
        inclusive_to: Whether a version exactly at ``end`` is included

    Returns:
        Matching versions, oldest first
    """
    validate_key(key)
    validate_timestamp(start, "start")
    validate_timestamp(end, "end")

    queryset = _within(_versions(using, key), start, end, inclusive_from, inclusive_to)
    return LazySequence(queryset.order_by("timestamp"), using, _to_version)


def _within(
    queryset: QuerySet,
    start: datetime,
    end: datetime,
    inclusive_from: bool,
    inclusive_to: bool,
) -> QuerySet:
    lower = "timestamp__gte" if inclusive_from else "timestamp__gt"
    upper = "timestamp__lte" if inclusive_to else "timestamp__lt"
    return queryset.filter(**{lower: start, upper: end})


def version_info(
    key: str,
    using: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    inclusive_from: bool = True,
    inclusive_to: bool = False,
) -> LazySequence[VersionInfo]:
    """
    Timestamps and payload sizes of the versions of ``key``, oldest first.

    Sizes are computed by the database, so payloads are never loaded. When
    ``start`` and ``end`` are given the versions are bounded as in
    ``range_by_key``.
    """
    validate_key(key)
    queryset = VersionedFile.objects.using(using).filter(key=key)
    if start is not None or end is not None:
        validate_timestamp(start, "start")
        validate_timestamp(end, "end")
        queryset = _within(queryset, start, end, inclusive_from, inclusive_to)

    queryset = (
        queryset.annotate(size=Length("payload"))
        .values_list("timestamp", "size")
        .order_by("timestamp")
    )
    return LazySequence(queryset, using, lambda row: VersionInfo(*row))


def list_all(using: str) -> LazySequence[EntryRef]:
    """Every stored (key, timestamp) pair, ordered by key then timestamp."""
    queryset = (
        VersionedFile.objects.using(using)
        .values_list("key", "timestamp")
        .order_by("key", "timestamp")
    )
    return LazySequence(queryset, using, lambda row: EntryRef(*row))


def list_keys(using: str) -> LazySequence[str]:
    """Distinct keys in ascending order."""
    queryset = (
        VersionedFile.objects.using(using)
        .values_list("key", flat=True)
        .order_by("key")
        .distinct()
    )
    return LazySequence(queryset, using, str)


def purge_before(cutoff: datetime, using: str, key: Optional[str] = None) -> int:
    """
    Delete every version older than ``cutoff``.

    Args:
        cutoff: Versions with a timestamp strictly earlier than this are removed
        using: Database alias
        key: Restrict the purge to one key

    Returns:
        Number of versions removed
    """
    validate_timestamp(cutoff, "cutoff")
    queryset = VersionedFile.objects.using(using).filter(timestamp__lt=cutoff)
    if key is not None:
        validate_key(key)
        queryset = queryset.filter(key=key)

    with engine.write_transaction(using):
        deleted, _ = queryset.delete()

    logger.info(f"Purged {deleted} versions older than {cutoff.isoformat()}")
    return deleted


def purge_expired(using: str, now: Optional[datetime] = None) -> int:
    """
    Apply ``FILEDB_RETENTION_DAYS``.

    Returns:
        Number of versions removed; 0 when retention is disabled
    """
    days = get_retention_days()
    if days is None:
        return 0
    if now is None:
        now = timezone.now()
    return purge_before(now - timedelta(days=days), using)
