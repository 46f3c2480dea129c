from __future__ import annotations

from collections.abc import Callable

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models.storage_item import StorageItem

# Single-statement insert-or-update per dialect.
_UPSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


class DocumentStorage:
    """
    localStorage-like API over the `storage_items` table.
    Each call runs in its own short transaction from `session_factory`.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def get_item(self, key: str) -> str | None:
        with self._session_factory() as db:
            item = db.get(StorageItem, key)
            return item.value if item else None

    def set_item(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            upsert = _UPSERTS.get(db.get_bind().dialect.name)
            if upsert is None:
                db.merge(StorageItem(key=key, value=value))
            else:
                stmt = upsert(StorageItem).values(key=key, value=value)
                db.execute(
                    stmt.on_conflict_do_update(
                        index_elements=[StorageItem.key],
                        set_={"value": stmt.excluded.value, "updated_at": func.now()},
                    )
                )
            db.commit()

    def remove_item(self, key: str) -> None:
        with self._session_factory() as db:
            item = db.get(StorageItem, key)
            if item:
                db.delete(item)
                db.commit()

    def keys_with_prefix(self, prefix: str) -> list[str]:
        with self._session_factory() as db:
            rows = db.query(StorageItem.key).filter(StorageItem.key.startswith(prefix, autoescape=True)).all()
            return [r[0] for r in rows]
