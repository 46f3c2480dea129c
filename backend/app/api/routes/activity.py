"""Activity log API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import require_auth
from app.db.session import get_db
from app.models.activity_log import ActivityLog
from app.models.user import User

router = APIRouter()

ACTION_LABELS = {
    "client_create": "إضافة موكل",
    "client_delete": "حذف موكل",
    "session_postpone": "ترحيل جلسة",
    "stage_decision": "حسم مرحلة",
    "backup_export": "تصدير نسخة احتياطية",
    "backup_import": "استيراد نسخة احتياطية",
    "sync": "مزامنة",
    "login": "تسجيل الدخول",
    "logout": "تسجيل الخروج",
}


@router.get("/latest")
def get_activity_latest(
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
):
    items = (
        db.query(ActivityLog)
        .filter(ActivityLog.user_id == user.id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": a.id,
            "created_at": a.created_at.isoformat() if a.created_at else None,
            "action": a.action,
            "action_label": ACTION_LABELS.get(a.action, a.action),
            "entity_type": a.entity_type,
            "entity_id": a.entity_id,
            "username": user.username,
        }
        for a in items
    ]
