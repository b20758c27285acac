import logging
from datetime import datetime
from typing import Optional

from django.db import IntegrityError
from django.utils import timezone

from filedb import engine
from filedb.errors import DuplicateEntry, InvalidEntry
from filedb.models import VersionedFile

logger = logging.getLogger(__name__)

BYTES_TYPES = (bytes, bytearray, memoryview)


def validate_key(key: str) -> None:
    """Keys may be any string, including the empty string, but never None."""
    if not isinstance(key, str):
        raise InvalidEntry(f"key must be a str, got {type(key).__name__}")


def validate_timestamp(timestamp: datetime, name: str = "timestamp") -> None:
    if not isinstance(timestamp, datetime):
        raise InvalidEntry(f"{name} must be a datetime, got {type(timestamp).__name__}")
    if not timezone.is_aware(timestamp):
        raise InvalidEntry(f"{name} must be timezone-aware, got {timestamp.isoformat()}")


def coerce_payload(payload) -> bytes:
    """Copy a bytes-like payload into an immutable ``bytes`` object."""
    if not isinstance(payload, BYTES_TYPES):
        raise InvalidEntry(f"payload must be bytes-like, got {type(payload).__name__}")
    return bytes(payload)


def put_file(key: str, timestamp: datetime, payload, using: str) -> None:
    """
    Store a new version of a file.

    The insert is forced so an existing row is never updated; a repeated
    (key, timestamp) pair is reported by the table's primary key.

    Args:
        key: The file key (need not be unique on its own)
        timestamp: Timezone-aware time of this version, chosen by the caller
        payload: File contents, may be empty
        using: Database alias

    Raises:
        InvalidEntry: If an argument has the wrong type or the timestamp is naive
        DuplicateEntry: If the (key, timestamp) pair is already stored
    """
    validate_key(key)
    validate_timestamp(timestamp)
    data = coerce_payload(payload)

    try:
        with engine.write_transaction(using):
            VersionedFile.objects.using(using).create(
                key=key, timestamp=timestamp, payload=data
            )
    except IntegrityError as exc:
        logger.warning(f"Rejected duplicate entry {key!r} at {timestamp.isoformat()}")
        raise DuplicateEntry(key, timestamp) from exc

    logger.debug(f"Stored {len(data)} bytes for {key!r} at {timestamp.isoformat()}")


def read_file(key: str, timestamp: datetime, using: str) -> Optional[bytes]:
    """
    Exact-match read.

    Returns:
        The stored payload, or None if nothing is stored for the pair
    """
    validate_key(key)
    validate_timestamp(timestamp)

    with engine.read_transaction(using):
        payload = (
            VersionedFile.objects.using(using)
            .filter(key=key, timestamp=timestamp)
            .values_list("payload", flat=True)
            .first()
        )

    if payload is None:
        return None
    return bytes(payload)


def delete_file(key: str, timestamp: datetime, using: str) -> bool:
    """
    Delete the version stored for an exact (key, timestamp) pair.

    Returns:
        True if a row was removed, False if the pair was not stored
    """
    validate_key(key)
    validate_timestamp(timestamp)

    with engine.write_transaction(using):
        deleted, _ = (
            VersionedFile.objects.using(using)
            .filter(key=key, timestamp=timestamp)
            .delete()
        )

    if deleted:
        logger.debug(f"Deleted {key!r} at {timestamp.isoformat()}")
    return bool(deleted)
