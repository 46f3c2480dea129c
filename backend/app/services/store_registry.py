from __future__ import annotations

import logging
import threading

from app.db.session import SessionLocal
from app.services.local_store import LocalStore, SyncTracker
from app.services.remote_store import RemoteStore
from app.services.storage import DocumentStorage
from app.services.sync import SyncService

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_stores: dict[str, tuple[LocalStore, SyncTracker]] = {}
_sync_services: dict[str, SyncService] = {}


def default_storage() -> DocumentStorage:
    return DocumentStorage(SessionLocal)


def get_store(owner_id: str, storage: DocumentStorage | None = None) -> tuple[LocalStore, SyncTracker]:
    """One loaded store (and its dirty-flag tracker) per owner per process."""
    with _lock:
        entry = _stores.get(owner_id)
        if entry is None:
            store = LocalStore(storage or default_storage(), owner_id)
            store.load()
            entry = (store, SyncTracker(store))
            _stores[owner_id] = entry
            logger.debug("Opened store for owner %s", owner_id)
        return entry


def get_sync_service(
    owner_id: str, remote_user_id: str, storage: DocumentStorage | None = None
) -> SyncService:
    store, tracker = get_store(owner_id, storage)
    with _lock:
        service = _sync_services.get(owner_id)
        if service is None:
            service = SyncService(store, tracker, RemoteStore.from_settings(remote_user_id))
            _sync_services[owner_id] = service
        return service


def clear() -> None:
    with _lock:
        for service in _sync_services.values():
            if service.remote is not None:
                service.remote.close()
        _sync_services.clear()
        for _, tracker in _stores.values():
            tracker.close()
        _stores.clear()
