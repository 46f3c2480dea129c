from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.enums import ChangeSource, NotificationType
from app.models.notification import AlertEvent, Notification
from app.services.email import send_email
from app.services.local_store import LocalStore
from app.services.reminders import describe_session, due_appointment_reminders, unpostponed_sessions
from app.services.storage import DocumentStorage

logger = logging.getLogger(__name__)


def _has_alert(db: Session, *, owner_id: str, type_: NotificationType, key: str) -> bool:
    return (
        db.query(AlertEvent)
        .filter(AlertEvent.owner_id == owner_id, AlertEvent.type == type_, AlertEvent.key == key)
        .first()
        is not None
    )


def _mark_alert(db: Session, *, owner_id: str, type_: NotificationType, key: str) -> None:
    db.add(AlertEvent(owner_id=owner_id, type=type_, key=key))
    db.commit()


def _create_notification(
    db: Session,
    *,
    owner_id: str,
    type_: NotificationType,
    title: str,
    message: str,
    severity: str,
    session_id: str | None = None,
) -> Notification:
    n = Notification(
        owner_id=owner_id, type=type_, title=title, message=message, severity=severity, session_id=session_id
    )
    db.add(n)
    db.commit()
    return n


def stored_owner_ids(storage: DocumentStorage) -> list[str]:
    prefix = f"{settings.storage_key_prefix}_"
    return [key[len(prefix) :] for key in storage.keys_with_prefix(prefix)]


def alert_unpostponed_sessions(db: Session, store: LocalStore, *, today: dt.date | None = None) -> int:
    """One notification per past session that still has no next date. Returns how many were new."""
    title = "جلسة غير مرحلة"
    lines: list[str] = []
    for s in unpostponed_sessions(store.all_sessions, today):
        key = f"session:{s.id}:unpostponed"
        if _has_alert(db, owner_id=store.owner_id, type_=NotificationType.UNPOSTPONED_SESSION, key=key):
            continue
        msg = f"جلسة بتاريخ {s.date:%Y-%m-%d} لم يتم ترحيلها: {describe_session(s)}."
        _create_notification(
            db,
            owner_id=store.owner_id,
            type_=NotificationType.UNPOSTPONED_SESSION,
            title=title,
            message=msg,
            severity="warning",
            session_id=s.id,
        )
        _mark_alert(db, owner_id=store.owner_id, type_=NotificationType.UNPOSTPONED_SESSION, key=key)
        lines.append(msg)
    if lines:
        send_email(subject=f"{title} ({len(lines)})", body="\n".join(lines), recipients=settings.alert_email_recipients)
    return len(lines)


def notify_due_appointments(db: Session, store: LocalStore, *, now: dt.datetime | None = None) -> list[Notification]:
    """Creates reminder notifications for due appointments and marks them notified in the document."""
    due = due_appointment_reminders(store.appointments, now)
    if not due:
        return []
    created = [
        _create_notification(
            db,
            owner_id=store.owner_id,
            type_=NotificationType.APPOINTMENT_REMINDER,
            title="تذكير بموعد",
            message=f"{a.title} - {a.date:%Y-%m-%d} {a.time}",
            severity="info",
        )
        for a in due
    ]
    due_ids = {a.id for a in due}
    store.set_appointments(
        lambda items: [a.model_copy(update={"notified": True}) if a.id in due_ids else a for a in items],
        source=ChangeSource.USER,
    )
    return created


def run_daily_alerts(db: Session, storage: DocumentStorage, *, today: dt.date | None = None) -> dict:
    sent = 0
    owners = stored_owner_ids(storage)
    for owner_id in owners:
        store = LocalStore(storage, owner_id)
        store.load()
        sent += alert_unpostponed_sessions(db, store, today=today)
    logger.info("Daily alerts: owners=%d sent=%d", len(owners), sent)
    return {"ok": True, "sent": sent}
