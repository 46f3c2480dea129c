from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_sync_service, require_auth
from app.db.session import get_db
from app.models.user import User
from app.schemas.requests import SyncRequest, SyncStatusOut
from app.services.activity_log import log_activity
from app.services.sync import SyncService

router = APIRouter()


def _status(service: SyncService) -> SyncStatusOut:
    return SyncStatusOut(
        status=service.status,
        last_error=service.last_error,
        is_dirty=service.tracker.is_dirty,
        is_busy=service.is_busy,
        configured=service.remote is not None,
        last_synced_at=service.last_synced_at,
    )


@router.post("", response_model=SyncStatusOut)
def manual_sync(
    payload: SyncRequest | None = None,
    service: SyncService = Depends(get_sync_service),
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
):
    initial_pull = payload.initial_pull if payload else False
    status = service.manual_sync(initial_pull=initial_pull)
    log_activity(
        db,
        action="sync",
        entity_type="document",
        entity_id=user.owner_id,
        user_id=user.id,
        details={"status": status.value, "initial_pull": initial_pull},
    )
    return _status(service)


@router.post("/refresh", response_model=SyncStatusOut)
def refresh(service: SyncService = Depends(get_sync_service)):
    service.fetch_and_refresh()
    return _status(service)


@router.get("/status", response_model=SyncStatusOut)
def sync_status(service: SyncService = Depends(get_sync_service)):
    return _status(service)
