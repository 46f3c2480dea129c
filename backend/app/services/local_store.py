"""
In-memory office document for one owner, persisted to durable storage.

Every committed mutation:
  1. replaces the in-memory `AppData` (models are immutable),
  2. writes the whole document to storage (failures are logged, not raised),
  3. emits a `StoreChange` to subscribers (the sync tracker sets the dirty flag).

`replace_all` is the only entry point for external data (imports, remote
sync): it always runs the hydration pipeline first.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.models.enums import ChangeSource
from app.schemas.office import AccountingEntry, AdminTask, AppData, Appointment, Client, Invoice, SessionView
from app.services.document_codec import DocumentImportError, dump_document, parse_document
from app.services.hydration import validate_and_hydrate
from app.services.sanitize import sanitize_assistants
from app.services.storage import DocumentStorage
from app.services.tree import flatten_sessions

logger = logging.getLogger(__name__)

T = TypeVar("T")
Update = Union[T, Callable[[T], T]]


@dataclass(frozen=True)
class StoreChange:
    owner_id: str
    collections: tuple[str, ...]
    source: ChangeSource
    document: AppData


Listener = Callable[[StoreChange], None]


def document_key(owner_id: str) -> str:
    return f"{settings.storage_key_prefix}_{owner_id}"


def dirty_key(owner_id: str) -> str:
    return f"{settings.dirty_key_prefix}_{owner_id}"


class LocalStore:
    def __init__(self, storage: DocumentStorage, owner_id: str):
        self.storage = storage
        self.owner_id = owner_id
        self.key = document_key(owner_id)
        self._data = validate_and_hydrate(None)
        self._listeners: list[Listener] = []
        # Serializes read-modify-write commits; sync holds it while checking for concurrent edits.
        self.lock = threading.RLock()
        self._sessions_source: list[Client] | None = None
        self._sessions_cache: list[SessionView] = []

    # --- lifecycle ---------------------------------------------------------

    def load(self) -> AppData:
        """Reads and hydrates the stored document. Missing or corrupt data yields the empty document."""
        raw = None
        try:
            text = self.storage.get_item(self.key)
            if text:
                raw = parse_document(text)
        except DocumentImportError as e:
            logger.error("Stored document %s is not valid JSON, starting empty: %s", self.key, e)
        except SQLAlchemyError:
            logger.exception("Error reading stored document %s", self.key)
        self._data = validate_and_hydrate(raw)
        logger.info("Hydrated document %s (clients=%d)", self.key, len(self._data.clients))
        return self._data

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # --- reads -------------------------------------------------------------

    @property
    def data(self) -> AppData:
        return self._data

    @property
    def clients(self) -> list[Client]:
        return self._data.clients

    @property
    def admin_tasks(self) -> list[AdminTask]:
        return self._data.admin_tasks

    @property
    def appointments(self) -> list[Appointment]:
        return self._data.appointments

    @property
    def accounting_entries(self) -> list[AccountingEntry]:
        return self._data.accounting_entries

    @property
    def invoices(self) -> list[Invoice]:
        return self._data.invoices

    @property
    def assistants(self) -> list[str]:
        return self._data.assistants

    @property
    def all_sessions(self) -> list[SessionView]:
        """Flat, date-sorted sessions; recomputed only when the client tree is replaced."""
        if self._sessions_source is not self._data.clients:
            self._sessions_cache = flatten_sessions(self._data.clients)
            self._sessions_source = self._data.clients
        return self._sessions_cache

    def export_text(self) -> str:
        """The stored document text (falls back to serializing memory if storage is empty)."""
        try:
            text = self.storage.get_item(self.key)
        except SQLAlchemyError:
            logger.exception("Error reading stored document %s for export", self.key)
            text = None
        return text or dump_document(self._data)

    # --- writes ------------------------------------------------------------

    def _set(self, field: str, value: Update[Any], source: ChangeSource) -> AppData:
        with self.lock:
            previous = getattr(self._data, field)
            new_value = value(previous) if callable(value) else value
            if field == "assistants":
                new_value = sanitize_assistants(list(new_value))
            return self._commit(self._data.model_copy(update={field: new_value}), (field,), source)

    def set_clients(self, value: Update[list[Client]], *, source: ChangeSource = ChangeSource.USER) -> AppData:
        return self._set("clients", value, source)

    def set_admin_tasks(self, value: Update[list[AdminTask]], *, source: ChangeSource = ChangeSource.USER) -> AppData:
        return self._set("admin_tasks", value, source)

    def set_appointments(self, value: Update[list[Appointment]], *, source: ChangeSource = ChangeSource.USER) -> AppData:
        return self._set("appointments", value, source)

    def set_accounting_entries(
        self, value: Update[list[AccountingEntry]], *, source: ChangeSource = ChangeSource.USER
    ) -> AppData:
        return self._set("accounting_entries", value, source)

    def set_invoices(self, value: Update[list[Invoice]], *, source: ChangeSource = ChangeSource.USER) -> AppData:
        return self._set("invoices", value, source)

    def set_assistants(self, value: Update[list[str]], *, source: ChangeSource = ChangeSource.USER) -> AppData:
        return self._set("assistants", value, source)

    def replace_all(self, raw: Any, *, source: ChangeSource = ChangeSource.IMPORT) -> AppData:
        """Hydrates arbitrary external input, then commits it as the whole document."""
        doc = validate_and_hydrate(raw)
        with self.lock:
            return self._commit(doc, tuple(AppData.model_fields), source)

    def _commit(self, new_data: AppData, collections: tuple[str, ...], source: ChangeSource) -> AppData:
        self._data = new_data
        self._persist()
        change = StoreChange(owner_id=self.owner_id, collections=collections, source=source, document=new_data)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Store listener failed for %s", self.key)
        return new_data

    def _persist(self) -> None:
        try:
            self.storage.set_item(self.key, dump_document(self._data))
        except SQLAlchemyError:
            logger.exception("Failed to save document %s", self.key)


class SyncTracker:
    """
    Dirty-flag bookkeeping for remote sync, fed by store change events.
    Changes that came from the sync itself do not mark the document dirty.
    """

    def __init__(self, store: LocalStore):
        self.storage = store.storage
        self.key = dirty_key(store.owner_id)
        try:
            self.is_dirty = self.storage.get_item(self.key) == "true"
        except SQLAlchemyError:
            logger.exception("Error reading dirty flag %s", self.key)
            self.is_dirty = False
        self._unsubscribe = store.subscribe(self._on_change)

    def _on_change(self, change: StoreChange) -> None:
        if change.source is not ChangeSource.SYNC:
            self.mark_dirty()

    def mark_dirty(self) -> None:
        self.is_dirty = True
        self._write("true")

    def mark_clean(self) -> None:
        self.is_dirty = False
        try:
            self.storage.remove_item(self.key)
        except SQLAlchemyError:
            logger.exception("Failed to clear dirty flag %s", self.key)

    def _write(self, value: str) -> None:
        try:
            self.storage.set_item(self.key, value)
        except SQLAlchemyError:
            logger.exception("Failed to save dirty flag %s", self.key)

    def close(self) -> None:
        self._unsubscribe()
