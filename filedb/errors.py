"""
Exceptions raised by the file store.

Engine failures (``django.db.DatabaseError``) are not wrapped and reach the
caller unmodified.
"""


class FileDBError(Exception):
    """Base class for errors raised by the file store."""


class SchemaError(FileDBError):
    """The backing table could not be created or has an incompatible shape."""


class StoreNotInitialized(FileDBError):
    """An operation was attempted before ``initialize()`` succeeded."""


class InvalidEntry(FileDBError, ValueError):
    """A key, timestamp or payload argument is not acceptable."""


class DuplicateEntry(FileDBError):
    """An entry with the same key and timestamp already exists."""

    def __init__(self, key: str, timestamp):
        self.key = key
        self.timestamp = timestamp
        super().__init__(
            f"An entry for key {key!r} at {timestamp.isoformat()} already exists"
        )
