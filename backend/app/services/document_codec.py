"""Serialization of the office document to/from its stored JSON text."""

from __future__ import annotations

import json
from typing import Any

from app.schemas.office import AppData
from app.services.sanitize import parse_datetime

# Only these keys are revived into datetimes on read; any other string stays a string.
DATE_FIELDS: frozenset[str] = frozenset(
    {
        "date",
        "dueDate",
        "due_date",
        "firstSessionDate",
        "first_session_date",
        "nextSessionDate",
        "next_session_date",
        "decisionDate",
        "decision_date",
        "issueDate",
        "issue_date",
        "updated_at",
    }
)


class DocumentImportError(ValueError):
    pass


def _revive_dates(obj: dict[str, Any]) -> dict[str, Any]:
    for key, value in obj.items():
        if key in DATE_FIELDS and isinstance(value, str):
            parsed = parse_datetime(value)
            if parsed is not None:
                obj[key] = parsed
    return obj


def parse_document(text: str | bytes) -> Any:
    """
    Parse stored/imported JSON, reviving allow-listed date fields.
    Raises DocumentImportError for anything that is not valid JSON.
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DocumentImportError(f"File is not UTF-8 text: {e}") from e
    try:
        return json.loads(text, object_hook=_revive_dates)
    except (ValueError, RecursionError) as e:
        raise DocumentImportError(f"Invalid JSON document: {e}") from e


def dump_document(doc: AppData, *, indent: int | None = None) -> str:
    payload = doc.model_dump(mode="json", by_alias=True)
    return json.dumps(payload, ensure_ascii=False, indent=indent)
