"""
Reconciliation between the local document and the remote store.

The document is flattened into one list of rows per remote table (children
carry their parent id) and rebuilt from such rows. Conflicts are resolved per
row: the row with the strictly newer `updated_at` wins, ties go to the remote.
"""

from __future__ import annotations

import datetime as dt
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from app.models.enums import ChangeSource, SyncStatus
from app.schemas.office import AppData
from app.services.hydration import is_effectively_empty, validate_and_hydrate
from app.services.local_store import LocalStore, SyncTracker
from app.services.remote_store import TABLES, FlatData, RemoteStore, RemoteStoreError, row_key
from app.services.sanitize import parse_datetime

logger = logging.getLogger(__name__)

_INVOICE_DERIVED = ("subtotal", "tax_amount", "total")
_EPOCH = dt.datetime(1970, 1, 1)


def _row(model: BaseModel, *, exclude: set[str], **parent: str) -> dict[str, Any]:
    row = model.model_dump(mode="json", exclude=exclude)
    for name in _INVOICE_DERIVED:
        row.pop(name, None)
    row.update(parent)
    return row


def flatten_data(doc: AppData) -> FlatData:
    """Nested document -> snake_case rows per table."""
    flat: FlatData = {table: [] for table in TABLES}
    for client in doc.clients:
        flat["clients"].append(_row(client, exclude={"cases"}))
        for case in client.cases:
            flat["cases"].append(_row(case, exclude={"stages"}, client_id=client.id))
            for stage in case.stages:
                flat["stages"].append(_row(stage, exclude={"sessions"}, case_id=case.id))
                for session in stage.sessions:
                    flat["sessions"].append(_row(session, exclude=set(), stage_id=stage.id))
    flat["admin_tasks"] = [_row(t, exclude=set()) for t in doc.admin_tasks]
    flat["appointments"] = [_row(a, exclude=set()) for a in doc.appointments]
    flat["accounting_entries"] = [_row(e, exclude=set()) for e in doc.accounting_entries]
    flat["assistants"] = [{"name": name} for name in doc.assistants]
    for invoice in doc.invoices:
        flat["invoices"].append(_row(invoice, exclude={"items"}))
        flat["invoice_items"].extend(_row(item, exclude=set(), invoice_id=invoice.id) for item in invoice.items)
    return flat


def _children(rows: list[dict[str, Any]], parent_key: str) -> dict[Any, list[dict[str, Any]]]:
    grouped: dict[Any, list[dict[str, Any]]] = defaultdict(list)
    for row in rows:
        grouped[row.get(parent_key)].append(row)
    return grouped


def construct_data(flat: FlatData) -> AppData:
    """Rows per table -> hydrated nested document. Rows whose parent is missing are dropped."""
    sessions = _children(flat.get("sessions") or [], "stage_id")
    stages = _children(flat.get("stages") or [], "case_id")
    cases = _children(flat.get("cases") or [], "client_id")
    items = _children(flat.get("invoice_items") or [], "invoice_id")

    def stage(row: dict) -> dict:
        return {**row, "sessions": sessions.get(row.get("id"), [])}

    def case(row: dict) -> dict:
        return {**row, "stages": [stage(s) for s in stages.get(row.get("id"), [])]}

    raw = {
        "clients": [
            {**c, "cases": [case(cs) for cs in cases.get(c.get("id"), [])]} for c in flat.get("clients") or []
        ],
        "admin_tasks": flat.get("admin_tasks") or [],
        "appointments": flat.get("appointments") or [],
        "accounting_entries": flat.get("accounting_entries") or [],
        "assistants": [a.get("name") for a in flat.get("assistants") or []],
        "invoices": [{**inv, "items": items.get(inv.get("id"), [])} for inv in flat.get("invoices") or []],
    }
    return validate_and_hydrate(raw)


def _stamp(row: dict[str, Any]) -> dt.datetime:
    return parse_datetime(row.get("updated_at")) or _EPOCH


def _is_newer(a: dict[str, Any], b: dict[str, Any]) -> bool:
    return _stamp(a) > _stamp(b)


def merge_for_refresh(
    local: list[dict[str, Any]], remote: list[dict[str, Any]], *, table: str = "clients"
) -> list[dict[str, Any]]:
    """
    The remote decides which rows exist (a row missing remotely was deleted
    elsewhere). For rows on both sides the local one survives only when its
    `updated_at` is strictly newer.
    """
    local_by_key = {row_key(table, row): row for row in local}
    merged = []
    for remote_row in remote:
        local_row = local_by_key.get(row_key(table, remote_row))
        merged.append(local_row if local_row is not None and _is_newer(local_row, remote_row) else remote_row)
    return merged


def refresh_flat(local: FlatData, remote: FlatData) -> FlatData:
    merged: FlatData = {}
    for table in TABLES:
        if table == "assistants":
            names = [a["name"] for a in local.get(table, []) + remote.get(table, [])]
            merged[table] = [{"name": name} for name in dict.fromkeys(names)]
        else:
            merged[table] = merge_for_refresh(local.get(table, []), remote.get(table, []), table=table)
    return merged


@dataclass
class SyncPlan:
    upserts: FlatData = field(default_factory=dict)
    deletes: FlatData = field(default_factory=dict)
    merged: FlatData = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not any(self.upserts.values()) and not any(self.deletes.values())


def plan_push(local: FlatData, remote: FlatData) -> SyncPlan:
    """
    Local decides which rows exist: rows missing remotely or strictly newer
    locally are upserted, remote rows missing locally are deleted. The merged
    view keeps remote rows that are at least as new as the local copy.
    """
    plan = SyncPlan()
    for table in TABLES:
        remote_by_key = {row_key(table, row): row for row in remote.get(table, [])}
        local_rows = local.get(table, [])
        local_keys = {row_key(table, row) for row in local_rows}
        upserts, merged = [], []
        for row in local_rows:
            remote_row = remote_by_key.get(row_key(table, row))
            if remote_row is None or (table != "assistants" and _is_newer(row, remote_row)):
                upserts.append(row)
                merged.append(row)
            else:
                merged.append(remote_row)
        plan.upserts[table] = upserts
        plan.deletes[table] = [row for key, row in remote_by_key.items() if key not in local_keys]
        plan.merged[table] = merged
    return plan


def _overlay(merged: FlatData, stored: FlatData) -> FlatData:
    """Replaces merged rows with the server's stored representation where one came back."""
    result: FlatData = {}
    for table in TABLES:
        by_key = {row_key(table, row): row for row in stored.get(table, [])}
        result[table] = [by_key.get(row_key(table, row), row) for row in merged.get(table, [])]
    return result


def _remote_is_empty(flat: FlatData) -> bool:
    return not any(flat.get(table) for table in TABLES if table != "assistants")


class SyncService:
    def __init__(self, store: LocalStore, tracker: SyncTracker, remote: RemoteStore | None):
        self.store = store
        self.tracker = tracker
        self.remote = remote
        self.status = SyncStatus.LOADING if remote else SyncStatus.UNCONFIGURED
        self.last_error: str | None = None
        self.last_synced_at: dt.datetime | None = None
        self._busy = threading.Lock()

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    def _set_status(self, status: SyncStatus, error: str | None = None) -> None:
        self.status = status
        self.last_error = error
        if status is SyncStatus.SYNCED:
            self.last_synced_at = dt.datetime.now().replace(microsecond=0)

    def _fail(self, e: RemoteStoreError, action: str) -> None:
        if e.is_schema_error:
            logger.error("%s failed, remote schema mismatch: %s", action, e)
            self._set_status(SyncStatus.UNINITIALIZED, str(e))
        else:
            logger.error("%s failed: %s", action, e)
            self._set_status(SyncStatus.ERROR, str(e))

    def _apply_remote(self, doc: AppData, base: AppData) -> bool:
        """Installs the synced document unless the user changed the local one meanwhile."""
        with self.store.lock:
            if self.store.data is not base:
                logger.info("Local document for %s changed during sync; keeping local edits", self.store.owner_id)
                return False
            self.store.replace_all(doc, source=ChangeSource.SYNC)
            return True

    def manual_sync(self, initial_pull: bool = False) -> SyncStatus:
        if self.remote is None:
            self._set_status(SyncStatus.UNCONFIGURED)
            return self.status
        if not self._busy.acquire(blocking=False):
            logger.info("Sync already in progress for %s", self.store.owner_id)
            return self.status
        try:
            self._set_status(SyncStatus.SYNCING)
            check = self.remote.check_schema()
            if not check.ok:
                status = SyncStatus.UNINITIALIZED if check.error == "uninitialized" else SyncStatus.ERROR
                self._set_status(status, check.message)
                return self.status

            remote_flat = self.remote.fetch_all()
            local = self.store.data

            if initial_pull or (is_effectively_empty(local) and not _remote_is_empty(remote_flat)):
                if not initial_pull:
                    logger.warning(
                        "Local document for %s is empty but remote is not; refreshing from remote instead of pushing",
                        self.store.owner_id,
                    )
                if self._apply_remote(construct_data(remote_flat), local):
                    self.tracker.mark_clean()
                self._set_status(SyncStatus.SYNCED)
                return self.status

            plan = plan_push(flatten_data(local), remote_flat)
            if any(plan.deletes.values()):
                self.remote.delete(plan.deletes)
            stored = self.remote.upsert(plan.upserts)
            logger.info(
                "Pushed %d rows, deleted %d rows for %s",
                sum(len(rows) for rows in plan.upserts.values()),
                sum(len(rows) for rows in plan.deletes.values()),
                self.store.owner_id,
            )
            if self._apply_remote(construct_data(_overlay(plan.merged, stored)), local):
                self.tracker.mark_clean()
            self._set_status(SyncStatus.SYNCED)
        except RemoteStoreError as e:
            self._fail(e, "Sync")
        except Exception as e:
            self._set_status(SyncStatus.ERROR, str(e))
            raise
        finally:
            self._busy.release()
        return self.status

    def fetch_and_refresh(self) -> SyncStatus:
        """Pull-only refresh: merges remote rows into the local document."""
        if self.remote is None:
            self._set_status(SyncStatus.UNCONFIGURED)
            return self.status
        if not self._busy.acquire(blocking=False):
            return self.status
        try:
            self._set_status(SyncStatus.SYNCING)
            local = self.store.data
            merged = refresh_flat(flatten_data(local), self.remote.fetch_all())
            self._apply_remote(construct_data(merged), local)
            self._set_status(SyncStatus.SYNCED)
        except RemoteStoreError as e:
            self._fail(e, "Refresh")
        except Exception as e:
            self._set_status(SyncStatus.ERROR, str(e))
            raise
        finally:
            self._busy.release()
        return self.status
