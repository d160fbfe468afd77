"""Key-value persistence adapters: the local-storage slot behind the store.

The health store and the assistant transcript each persist one JSON string
under a fixed key. Adapters are synchronous and never need to be present:
when durable storage cannot be opened, ``open_storage`` hands back an
in-memory adapter and the session simply does not survive a restart.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from carenexa.core.storage.database import DatabaseError, StorageDatabase
from carenexa.core.storage.encryption import EncryptionError, ValueEncryptor

if TYPE_CHECKING:
    from carenexa.core.config.settings import Settings

logger = logging.getLogger(__name__)


class StorageUnavailableError(Exception):
    """Raised when a storage adapter cannot serve a request."""


@runtime_checkable
class KeyValueStorage(Protocol):
    """Minimal synchronous string slot store (``localStorage`` shaped)."""

    def read(self, key: str) -> str | None:
        """Return the stored string, or None when the key is absent."""
        ...

    def write(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Delete ``key``. Removing a missing key is not an error."""
        ...


class MemoryStorage:
    """Dict-backed storage. Lives for the process only."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class SQLiteStorage:
    """Durable storage on a ``StorageDatabase``, optionally encrypted at rest.

    Every write commits immediately. Last writer wins: two processes sharing
    the same database file may overwrite each other's slot.
    """

    def __init__(
        self,
        database: StorageDatabase,
        encryptor: ValueEncryptor | None = None,
    ) -> None:
        self._db = database
        self._enc = encryptor

    @property
    def encrypted(self) -> bool:
        return self._enc is not None

    def read(self, key: str) -> str | None:
        try:
            stored = self._db.get(key)
        except DatabaseError as exc:
            raise StorageUnavailableError(f"Cannot read {key!r}: {exc}") from exc
        if stored is None or self._enc is None:
            return stored
        try:
            return self._enc.decrypt(stored)
        except EncryptionError:
            logger.warning("Stored value for %r could not be decrypted; ignoring it", key)
            return None

    def write(self, key: str, value: str) -> None:
        stored = self._enc.encrypt(value) if self._enc is not None else value
        try:
            self._db.put(key, stored)
        except DatabaseError as exc:
            raise StorageUnavailableError(f"Cannot write {key!r}: {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            self._db.delete(key)
        except DatabaseError as exc:
            raise StorageUnavailableError(f"Cannot remove {key!r}: {exc}") from exc

    def keys(self) -> list[str]:
        try:
            return self._db.keys()
        except DatabaseError as exc:
            raise StorageUnavailableError(f"Cannot list keys: {exc}") from exc

    def reencrypt(self) -> int:
        """Re-encrypt every slot under the current key after a key rotation.

        Slots no configured key can open are left untouched. Returns the
        number of slots rewritten.
        """
        if self._enc is None:
            return 0
        rewritten = 0
        for key in self.keys():
            stored = self._db.get(key)
            if stored is None:
                continue
            try:
                self._db.put(key, self._enc.rotate(stored))
            except EncryptionError:
                logger.warning("Slot %r could not be re-encrypted; leaving it as is", key)
                continue
            rewritten += 1
        logger.info("Re-encrypted %d storage slots", rewritten)
        return rewritten


def open_storage(settings: Settings) -> KeyValueStorage:
    """Build the configured storage adapter, degrading to memory on failure."""
    encryptor: ValueEncryptor | None = None
    if settings.encryption_key:
        try:
            encryptor = ValueEncryptor(settings.encryption_key)
        except EncryptionError as exc:
            logger.error("Invalid ENCRYPTION_KEY: %s", exc)
            logger.warning("Continuing with in-memory storage; data will not be stored")
            return MemoryStorage()

    database = StorageDatabase(settings.storage_path)
    try:
        database.initialize()
    except DatabaseError as exc:
        logger.warning("Durable storage unavailable (%s); using in-memory storage", exc)
        return MemoryStorage()

    storage = SQLiteStorage(database, encryptor)
    if encryptor is not None and encryptor.key_count > 1:
        try:
            storage.reencrypt()
        except (StorageUnavailableError, DatabaseError) as exc:
            logger.warning("Key rotation skipped: %s", exc)

    logger.info(
        "Key-value storage ready: %s (schema v%d, encrypted=%s)",
        settings.storage_path,
        database.get_schema_version(),
        encryptor is not None,
    )
    return storage
