"""
Session storage: peewee key/value table

One SessionStorage instance lives for one browser session/tab. The default
database is an in-memory SQLite file, so nothing outlives the session.
Values are opaque strings (callers store JSON).

Notes:
- The model is bound per operation with bind_ctx, so several storages can
  coexist (e.g. one per test) without sharing a global database handle.
"""

import logging
from typing import List, Optional

import peewee
from peewee import CharField, Model, SqliteDatabase, TextField

from ..errors import StorageError

logger = logging.getLogger("iotview.storage")


class StorageItem(Model):
    """A single session storage entry."""
    key = CharField(primary_key=True)
    value = TextField()

    class Meta:
        table_name = "session_storage"
        legacy_table_names = False


class SessionStorage:
    """Key/value store with the sessionStorage contract (get/set/remove/clear)."""

    def __init__(self, path: str = ":memory:"):
        self.path = path
        self.database = SqliteDatabase(path)
        with self.database.bind_ctx([StorageItem]):
            self.database.create_tables([StorageItem], safe=True)
        logger.debug(f"Session storage ready at {path}")

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self.database.bind_ctx([StorageItem]):
                item = StorageItem.get_or_none(StorageItem.key == key)
        except peewee.PeeweeException as e:
            raise StorageError(f"read {key}: {e}") from e
        return item.value if item else None

    def set_item(self, key: str, value: str) -> None:
        try:
            with self.database.bind_ctx([StorageItem]):
                StorageItem.replace(key=key, value=value).execute()
        except peewee.PeeweeException as e:
            raise StorageError(f"write {key}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            with self.database.bind_ctx([StorageItem]):
                StorageItem.delete().where(StorageItem.key == key).execute()
        except peewee.PeeweeException as e:
            raise StorageError(f"remove {key}: {e}") from e

    def keys(self, prefix: str = "") -> List[str]:
        try:
            with self.database.bind_ctx([StorageItem]):
                query = StorageItem.select(StorageItem.key).order_by(StorageItem.key)
                return [item.key for item in query if item.key.startswith(prefix)]
        except peewee.PeeweeException as e:
            raise StorageError(f"list keys: {e}") from e

    def clear(self) -> None:
        try:
            with self.database.bind_ctx([StorageItem]):
                StorageItem.delete().execute()
        except peewee.PeeweeException as e:
            raise StorageError(f"clear: {e}") from e

    def __len__(self) -> int:
        return len(self.keys())

    def close(self) -> None:
        """End of session: drop the connection (and an in-memory database with it)."""
        if not self.database.is_closed():
            self.database.close()
