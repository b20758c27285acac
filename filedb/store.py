import logging
from datetime import datetime
from typing import Optional

from filedb import engine, queries, schema, services
from filedb.errors import StoreNotInitialized
from filedb.queries import EntryRef, LazySequence, Version, VersionInfo

logger = logging.getLogger(__name__)


class FileStore:
    """
    Versioned file storage bound to one database alias.

    Files are stored under a key plus a timestamp supplied by the caller. The
    key alone need not be unique; the (key, timestamp) pair must be. The store
    never picks timestamps for entries.

    ``initialize()`` must succeed before any other method is used:

        store = FileStore()
        store.initialize()
        store.put("report.csv", timestamp, b"...")
        store.latest("report.csv")
    """

    def __init__(self, using: Optional[str] = None):
        self.using = engine.resolve_alias(using)
        self._initialized = False

    def __repr__(self) -> str:
        return f"<FileStore using={self.using!r}>"

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """
        Create or verify the backing table. Repeated calls are no-ops.

        Raises:
            SchemaError: If the table is incompatible or cannot be created;
                the store stays unusable.
        """
        if self._initialized:
            return
        schema.initialize(self.using)
        self._initialized = True
        logger.debug(f"File store ready on {self.using!r}")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StoreNotInitialized(
                f"FileStore on {self.using!r} used before initialize() succeeded"
            )

    def put(self, key: str, timestamp: datetime, payload) -> None:
        """Store ``payload`` as the version of ``key`` at ``timestamp``."""
        self._require_initialized()
        services.put_file(key, timestamp, payload, self.using)

    def get(self, key: str, timestamp: datetime) -> Optional[bytes]:
        self._require_initialized()
        return services.read_file(key, timestamp, self.using)

    def delete(self, key: str, timestamp: datetime) -> bool:
        self._require_initialized()
        return services.delete_file(key, timestamp, self.using)

    def list_by_key(self, key: str) -> LazySequence[Version]:
        self._require_initialized()
        return queries.list_by_key(key, self.using)

    def latest(self, key: str) -> Optional[Version]:
        self._require_initialized()
        return queries.latest(key, self.using)

    def range(
        self,
        key: str,
        start: datetime,
        end: datetime,
        inclusive_from: bool = True,
        inclusive_to: bool = False,
    ) -> LazySequence[Version]:
        self._require_initialized()
        return queries.range_by_key(
            key,
            start,
            end,
            self.using,
            inclusive_from=inclusive_from,
            inclusive_to=inclusive_to,
        )

    def version_info(
        self,
        key: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        inclusive_from: bool = True,
        inclusive_to: bool = False,
    ) -> LazySequence[VersionInfo]:
        """Timestamps and sizes of the versions of ``key``, without payloads."""
        self._require_initialized()
        return queries.version_info(
            key,
            self.using,
            start=start,
            end=end,
            inclusive_from=inclusive_from,
            inclusive_to=inclusive_to,
        )

    def list_all(self) -> LazySequence[EntryRef]:
        self._require_initialized()
        return queries.list_all(self.using)

    def keys(self) -> LazySequence[str]:
        self._require_initialized()
        return queries.list_keys(self.using)

    def purge_before(self, cutoff: datetime, key: Optional[str] = None) -> int:
        self._require_initialized()
        return queries.purge_before(cutoff, self.using, key=key)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        self._require_initialized()
        return queries.purge_expired(self.using, now=now)
