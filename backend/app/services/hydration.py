"""
Hydration pipeline: untrusted document in, guaranteed-valid `AppData` out.

Order matters: assistants are sanitized first because every assignee field is
validated against them; then the client tree; then the flat collections.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from app.schemas.office import AppData
from app.services.sanitize import (
    safe_records,
    sanitize_accounting_entry,
    sanitize_admin_task,
    sanitize_appointment,
    sanitize_assistants,
    sanitize_client,
    sanitize_invoice,
)

logger = logging.getLogger(__name__)


def empty_document() -> AppData:
    return AppData(assistants=sanitize_assistants(None))


def _pick(raw: dict, *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def validate_and_hydrate(data: Any) -> AppData:
    """
    Never raises. Anything that is not a mapping yields the empty document.
    Re-hydrating an already hydrated document returns an equal document.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True)
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Discarding non-object document of type %s", type(data).__name__)
        return empty_document()

    assistants = sanitize_assistants(data.get("assistants"))

    return AppData(
        clients=safe_records(data.get("clients"), lambda c: sanitize_client(c, assistants=assistants)),
        admin_tasks=safe_records(
            _pick(data, "admin_tasks", "adminTasks"), lambda t: sanitize_admin_task(t, assistants=assistants)
        ),
        appointments=safe_records(data.get("appointments"), lambda a: sanitize_appointment(a, assistants=assistants)),
        accounting_entries=safe_records(_pick(data, "accounting_entries", "accountingEntries"), sanitize_accounting_entry),
        invoices=safe_records(data.get("invoices"), sanitize_invoice),
        assistants=assistants,
    )


def is_effectively_empty(doc: AppData) -> bool:
    """No user records at all (assistants alone do not count)."""
    return not (doc.clients or doc.admin_tasks or doc.appointments or doc.accounting_entries or doc.invoices)
