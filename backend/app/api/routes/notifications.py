from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_store, require_auth
from app.db.session import get_db
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notification import NotificationOut
from app.services.alerts import notify_due_appointments
from app.services.local_store import LocalStore

router = APIRouter()


def _to_out(n: Notification) -> NotificationOut:
    return NotificationOut(
        id=n.id,
        session_id=n.session_id,
        type=n.type,
        title=n.title,
        message=n.message,
        severity=n.severity,
        is_read=n.is_read,
        created_at=n.created_at,
    )


@router.get("/", response_model=list[NotificationOut])
def list_notifications(db: Session = Depends(get_db), user: User = Depends(require_auth)):
    items = (
        db.query(Notification)
        .filter(Notification.owner_id == user.owner_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(200)
        .all()
    )
    return [_to_out(n) for n in items]


@router.post("/appointment-reminders", response_model=list[NotificationOut])
def appointment_reminders(db: Session = Depends(get_db), store: LocalStore = Depends(get_store)):
    """Polled by the UI: emits reminders whose window has opened (each appointment once)."""
    created = notify_due_appointments(db, store)
    for n in created:
        db.refresh(n)
    return [_to_out(n) for n in created]


@router.post("/{notification_id}/read")
def mark_read(notification_id: int, db: Session = Depends(get_db), user: User = Depends(require_auth)):
    n = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.owner_id == user.owner_id)
        .first()
    )
    if not n:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    n.is_read = True
    db.commit()
    return {"ok": True}
