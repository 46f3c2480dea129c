"""
Flat document collections. Bodies are sanitized like any other external
record, so partial or sloppy payloads are accepted and repaired.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Path, status
from pydantic import BaseModel

from app.api.deps import get_store
from app.services import sanitize
from app.services.local_store import LocalStore

router = APIRouter()


@dataclass(frozen=True)
class CollectionSpec:
    field: str
    prefix: str
    sanitize: Callable[[dict, list[str]], BaseModel]


COLLECTIONS: dict[str, CollectionSpec] = {
    "admin-tasks": CollectionSpec(
        "admin_tasks", "task", lambda raw, assistants: sanitize.sanitize_admin_task(raw, assistants=assistants)
    ),
    "appointments": CollectionSpec(
        "appointments", "apt", lambda raw, assistants: sanitize.sanitize_appointment(raw, assistants=assistants)
    ),
    "accounting-entries": CollectionSpec(
        "accounting_entries", "acc", lambda raw, _: sanitize.sanitize_accounting_entry(raw)
    ),
    "invoices": CollectionSpec("invoices", "inv", lambda raw, _: sanitize.sanitize_invoice(raw)),
}


def _spec(name: str) -> CollectionSpec:
    spec = COLLECTIONS.get(name)
    if spec is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown collection: {name}")
    return spec


def _build(spec: CollectionSpec, store: LocalStore, raw: dict[str, Any], item_id: str) -> BaseModel:
    item = spec.sanitize({**raw, "id": item_id}, store.assistants)
    return item.model_copy(update={"updated_at": dt.datetime.now().replace(microsecond=0)})


def _items(store: LocalStore, spec: CollectionSpec) -> list[BaseModel]:
    return getattr(store, spec.field)


def _set(store: LocalStore, spec: CollectionSpec, fn: Callable[[list], list]) -> None:
    getattr(store, f"set_{spec.field}")(fn)


@router.get("/{collection}")
def list_items(collection: str = Path(...), store: LocalStore = Depends(get_store)) -> list[dict]:
    spec = _spec(collection)
    return [item.model_dump(mode="json", by_alias=True) for item in _items(store, spec)]


@router.post("/{collection}", status_code=status.HTTP_201_CREATED)
def add_item(
    collection: str, raw: dict[str, Any] = Body(...), store: LocalStore = Depends(get_store)
) -> dict:
    spec = _spec(collection)
    item_id = sanitize.coerce_id(raw.get("id"), spec.prefix)
    if any(existing.id == item_id for existing in _items(store, spec)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Item already exists: {item_id}")
    item = _build(spec, store, raw, item_id)
    _set(store, spec, lambda items: [*items, item])
    return item.model_dump(mode="json", by_alias=True)


@router.put("/{collection}/{item_id}")
def replace_item(
    collection: str, item_id: str, raw: dict[str, Any] = Body(...), store: LocalStore = Depends(get_store)
) -> dict:
    spec = _spec(collection)
    if not any(existing.id == item_id for existing in _items(store, spec)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Item not found: {item_id}")
    item = _build(spec, store, raw, item_id)
    _set(store, spec, lambda items: [item if existing.id == item_id else existing for existing in items])
    return item.model_dump(mode="json", by_alias=True)


@router.delete("/{collection}/{item_id}")
def delete_item(collection: str, item_id: str, store: LocalStore = Depends(get_store)):
    spec = _spec(collection)
    if not any(existing.id == item_id for existing in _items(store, spec)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Item not found: {item_id}")
    _set(store, spec, lambda items: [existing for existing in items if existing.id != item_id])
    return {"ok": True}
