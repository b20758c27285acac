from typing import Optional

from django.conf import settings

DEFAULT_DATABASE = "default"
DEFAULT_ITERATOR_CHUNK_SIZE = 500


def get_database_alias() -> str:
    """Database alias used when no explicit ``using`` is given."""
    return getattr(settings, "FILEDB_DATABASE", DEFAULT_DATABASE)


def get_retention_days() -> Optional[int]:
    """
    Number of days entries are kept by ``purge_expired``.

    Returns:
        The configured window, or None when retention is disabled.
    """
    days = getattr(settings, "FILEDB_RETENTION_DAYS", None)
    if days is not None and days <= 0:
        raise ValueError(f"FILEDB_RETENTION_DAYS must be positive, got {days}")
    return days


def get_iterator_chunk_size() -> int:
    return getattr(settings, "FILEDB_ITERATOR_CHUNK_SIZE", DEFAULT_ITERATOR_CHUNK_SIZE)
