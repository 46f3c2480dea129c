"""
Entity sanitizers.

Each `sanitize_*` function takes one raw, untrusted record (from durable
storage, an import file, or a remote row) and returns a fully-typed entity.
They never raise: missing or invalid values are replaced with safe defaults.

Raw records may use camelCase (local/export JSON) or snake_case (remote rows)
keys; the snake_case value wins when both are present, as in the remote sync
payloads.
"""

from __future__ import annotations

import datetime as dt
import enum
import logging
import math
import re
import secrets
import time
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from app.core.config import settings
from app.models.enums import AccountingEntryType, CaseStatus, Importance, InvoiceStatus
from app.schemas.office import (
    UNASSIGNED,
    AccountingEntry,
    AdminTask,
    Appointment,
    Case,
    Client,
    Invoice,
    InvoiceItem,
    Session,
    Stage,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=enum.Enum)
T = TypeVar("T")

UNNAMED_CLIENT = "موكل غير مسمى"
CASE_WITHOUT_SUBJECT = "قضية بدون موضوع"
UNKNOWN_COURT = "محكمة غير محددة"
UNTITLED_TASK = "مهمة بدون عنوان"
UNTITLED_APPOINTMENT = "موعد بدون عنوان"

_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


def new_id(prefix: str) -> str:
    """Client-style id: `<prefix>-<epoch ms>-<random>`. Unique, not reproducible."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def _pick(raw: dict, *keys: str) -> Any:
    """First non-None value among `keys` (snake_case key first)."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _has_any(raw: dict, *keys: str) -> bool:
    return any(key in raw for key in keys)


def coerce_id(value: Any, prefix: str) -> str:
    if isinstance(value, bool):
        return new_id(prefix)
    if isinstance(value, (str, int)):
        s = str(value).strip()
        if s:
            return s
    return new_id(prefix)


def _text(value: Any, default: str = "") -> str:
    """Any scalar as text; None/blank/containers fall back to `default`."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return default
    if isinstance(value, enum.Enum):
        value = value.value
    s = str(value)
    return s if s.strip() else default


def _flag(value: Any, default: bool = False) -> bool:
    return value if isinstance(value, bool) else default


def _finite(value: int | float) -> bool:
    # Integers beyond the float range (valid JSON) overflow math.isfinite.
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not _finite(value):
        return default
    return value


def _enum(enum_cls: type[E], value: Any) -> E:
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return next(iter(enum_cls))


def _naive(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value
    try:
        return value.astimezone(dt.timezone.utc).replace(tzinfo=None)
    except OverflowError:
        return value.replace(tzinfo=None)


def parse_datetime(value: Any) -> dt.datetime | None:
    """
    Best-effort date parsing: datetime, date, ISO-8601 text (incl. trailing Z),
    or epoch milliseconds. Returns naive datetimes (aware values in UTC), or
    None when the value is not a usable date.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dt.datetime):
        return _naive(value)
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        if not _finite(value):
            return None
        try:
            return _naive(dt.datetime.fromtimestamp(value / 1000, tz=dt.timezone.utc))
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            return _naive(dt.datetime.fromisoformat(s))
        except ValueError:
            return None
    return None


def _required_date(value: Any, what: str) -> dt.datetime:
    parsed = parse_datetime(value)
    if parsed is None:
        logger.warning("Invalid or missing %s %r; falling back to now", what, value)
        return dt.datetime.now().replace(microsecond=0)
    return parsed


def _optional_date(value: Any) -> dt.datetime | None:
    return parse_datetime(value)


def safe_records(raw: Any, fn: Callable[[dict], T]) -> list[T]:
    """Apply `fn` to the dict entries of `raw`; non-lists give [], non-dicts are dropped."""
    if not isinstance(raw, list):
        return []
    return [fn(item) for item in raw if isinstance(item, dict)]


def sanitize_assistants(raw: Any) -> list[str]:
    """
    Ordered unique non-blank names. The unassigned sentinel is always present.
    Anything but a list yields the default assistants.
    """
    if not isinstance(raw, list):
        names: Iterable[Any] = settings.default_assistants
    else:
        names = raw
    result: list[str] = []
    for name in names:
        if isinstance(name, str) and name.strip() and name.strip() not in result:
            result.append(name.strip())
    if UNASSIGNED not in result:
        result.append(UNASSIGNED)
    return result


def _assignee(value: Any, assistants: list[str]) -> str:
    if isinstance(value, str) and value.strip() in assistants:
        return value.strip()
    return UNASSIGNED


def sanitize_session(raw: dict, *, stage: dict, case: dict, client_name: str, assistants: list[str]) -> Session:
    """
    `stage` and `case` carry the already-sanitized ancestor fields used as
    fallbacks for the session's denormalized copies.
    """
    if _has_any(raw, "case_number", "caseNumber"):
        case_number = _text(_pick(raw, "case_number", "caseNumber"))
    else:
        case_number = stage["case_number"]
    if _has_any(raw, "opponent_name", "opponentName"):
        opponent_name = _text(_pick(raw, "opponent_name", "opponentName"))
    else:
        opponent_name = case["opponent_name"]
    return Session(
        id=coerce_id(raw.get("id"), "session"),
        court=_text(raw.get("court"), stage["court"]),
        case_number=case_number,
        date=_required_date(raw.get("date"), "session date"),
        client_name=_text(_pick(raw, "client_name", "clientName"), case["client_name"] or client_name),
        opponent_name=opponent_name,
        is_postponed=_flag(_pick(raw, "is_postponed", "isPostponed")),
        postponement_reason=_text(_pick(raw, "postponement_reason", "postponementReason")),
        next_postponement_reason=_text(_pick(raw, "next_postponement_reason", "nextPostponementReason")),
        next_session_date=_optional_date(_pick(raw, "next_session_date", "nextSessionDate")),
        assignee=_assignee(raw.get("assignee"), assistants),
        updated_at=_optional_date(raw.get("updated_at")),
    )


def sanitize_stage(raw: dict, *, case: dict, client_name: str, assistants: list[str]) -> Stage:
    fields = {
        "id": coerce_id(raw.get("id"), "stage"),
        "court": _text(raw.get("court"), UNKNOWN_COURT),
        "case_number": _text(_pick(raw, "case_number", "caseNumber")),
        "first_session_date": _optional_date(_pick(raw, "first_session_date", "firstSessionDate")),
        "decision_date": _optional_date(_pick(raw, "decision_date", "decisionDate")),
        "decision_number": _text(_pick(raw, "decision_number", "decisionNumber")),
        "decision_summary": _text(_pick(raw, "decision_summary", "decisionSummary")),
        "decision_notes": _text(_pick(raw, "decision_notes", "decisionNotes")),
        "updated_at": _optional_date(raw.get("updated_at")),
    }
    sessions = safe_records(
        raw.get("sessions"),
        lambda s: sanitize_session(s, stage=fields, case=case, client_name=client_name, assistants=assistants),
    )
    return Stage(sessions=sessions, **fields)


def sanitize_case(raw: dict, *, client_name: str, assistants: list[str]) -> Case:
    fields = {
        "id": coerce_id(raw.get("id"), "case"),
        "subject": _text(raw.get("subject"), CASE_WITHOUT_SUBJECT),
        "client_name": _text(_pick(raw, "client_name", "clientName"), client_name),
        "opponent_name": _text(_pick(raw, "opponent_name", "opponentName")),
        "fee_agreement": _text(_pick(raw, "fee_agreement", "feeAgreement")),
        "status": _enum(CaseStatus, raw.get("status")),
        "updated_at": _optional_date(raw.get("updated_at")),
    }
    stages = safe_records(
        raw.get("stages"),
        lambda st: sanitize_stage(st, case=fields, client_name=fields["client_name"], assistants=assistants),
    )
    return Case(stages=stages, **fields)


def sanitize_client(raw: dict, *, assistants: list[str]) -> Client:
    name = _text(raw.get("name"), UNNAMED_CLIENT)
    return Client(
        id=coerce_id(raw.get("id"), "client"),
        name=name,
        contact_info=_text(_pick(raw, "contact_info", "contactInfo")),
        cases=safe_records(raw.get("cases"), lambda c: sanitize_case(c, client_name=name, assistants=assistants)),
        updated_at=_optional_date(raw.get("updated_at")),
    )


def sanitize_admin_task(raw: dict, *, assistants: list[str]) -> AdminTask:
    return AdminTask(
        id=coerce_id(raw.get("id"), "task"),
        task=_text(raw.get("task"), UNTITLED_TASK),
        due_date=_required_date(_pick(raw, "due_date", "dueDate"), "task due date"),
        completed=_flag(raw.get("completed")),
        importance=_enum(Importance, raw.get("importance")),
        assignee=_assignee(raw.get("assignee"), assistants),
        location=_text(raw.get("location")),
        updated_at=_optional_date(raw.get("updated_at")),
    )


def _reminder_minutes(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not _finite(value) or value < 0:
        return None
    return int(value)


def sanitize_appointment(raw: dict, *, assistants: list[str]) -> Appointment:
    time_value = raw.get("time")
    return Appointment(
        id=coerce_id(raw.get("id"), "apt"),
        title=_text(raw.get("title"), UNTITLED_APPOINTMENT),
        time=time_value if isinstance(time_value, str) and _TIME_RE.match(time_value) else "00:00",
        date=_required_date(raw.get("date"), "appointment date"),
        importance=_enum(Importance, raw.get("importance")),
        notified=_flag(raw.get("notified")),
        reminder_time_in_minutes=_reminder_minutes(_pick(raw, "reminder_time_in_minutes", "reminderTimeInMinutes")),
        assignee=_assignee(raw.get("assignee"), assistants),
        updated_at=_optional_date(raw.get("updated_at")),
    )


def sanitize_accounting_entry(raw: dict) -> AccountingEntry:
    return AccountingEntry(
        id=coerce_id(raw.get("id"), "acc"),
        type=_enum(AccountingEntryType, raw.get("type")),
        amount=_number(raw.get("amount")),
        date=_required_date(raw.get("date"), "accounting entry date"),
        description=_text(raw.get("description")),
        client_id=_text(_pick(raw, "client_id", "clientId")),
        case_id=_text(_pick(raw, "case_id", "caseId")),
        client_name=_text(_pick(raw, "client_name", "clientName")),
        updated_at=_optional_date(raw.get("updated_at")),
    )


def sanitize_invoice_item(raw: dict) -> InvoiceItem:
    return InvoiceItem(
        id=coerce_id(raw.get("id"), "item"),
        description=_text(raw.get("description")),
        amount=_number(raw.get("amount")),
        updated_at=_optional_date(raw.get("updated_at")),
    )


def sanitize_invoice(raw: dict) -> Invoice:
    return Invoice(
        id=coerce_id(raw.get("id"), "inv"),
        client_id=_text(_pick(raw, "client_id", "clientId")),
        client_name=_text(_pick(raw, "client_name", "clientName")),
        case_id=_text(_pick(raw, "case_id", "caseId")),
        case_subject=_text(_pick(raw, "case_subject", "caseSubject")),
        issue_date=_required_date(_pick(raw, "issue_date", "issueDate"), "invoice issue date"),
        due_date=_required_date(_pick(raw, "due_date", "dueDate"), "invoice due date"),
        items=safe_records(_pick(raw, "invoice_items", "items"), sanitize_invoice_item),
        tax_rate=max(0, _number(_pick(raw, "tax_rate", "taxRate"))),
        discount=max(0, _number(raw.get("discount"))),
        status=_enum(InvoiceStatus, raw.get("status")),
        notes=_text(raw.get("notes")),
        updated_at=_optional_date(raw.get("updated_at")),
    )
