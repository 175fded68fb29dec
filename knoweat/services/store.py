"""Key-value storage backends for menu history and the user profile."""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from knoweat.models.kv_entry import KeyValueEntry

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A backend read or write failed."""

    pass


class KeyValueStore(ABC):
    """
    Abstract string key-value store.

    Values are JSON documents. Menu and profile stores sit on top of this so
    the backing storage can be swapped without touching them.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Deleting an absent key is not an error."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, used in tests and for throwaway sessions."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SQLKeyValueStore(KeyValueStore):
    """Store backed by the kv_entries table (SQLite by default)."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as db:
                entry = db.get(KeyValueEntry, key)
                return entry.value if entry else None
        except SQLAlchemyError as e:
            raise StoreError(f"Could not read '{key}': {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            with self._session_factory() as db:
                entry = db.get(KeyValueEntry, key)
                if entry:
                    entry.value = value
                else:
                    db.add(KeyValueEntry(key=key, value=value))
                db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not write '{key}': {e}") from e

    def delete(self, key: str) -> None:
        try:
            with self._session_factory() as db:
                entry = db.get(KeyValueEntry, key)
                if entry:
                    db.delete(entry)
                    db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not delete '{key}': {e}") from e
