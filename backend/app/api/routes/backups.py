from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.api.deps import get_store, require_auth
from app.db.session import get_db
from app.models.backup import BackupRecord
from app.models.user import User
from app.schemas.backup import BackupLastOut, ImportResultOut
from app.services.activity_log import log_activity
from app.services.backup import count_records, export_document, import_document
from app.services.document_codec import DocumentImportError
from app.services.local_store import LocalStore

router = APIRouter()


@router.post("/export")
def export_backup(
    user: User = Depends(require_auth), db: Session = Depends(get_db), store: LocalStore = Depends(get_store)
) -> Response:
    """
    Returns the stored office document as a JSON file.
    The file is NOT stored server-side; we only store a BackupRecord (who/when/hash).
    """
    exported = export_document(db, store, user)
    rec = exported.record
    headers = {
        "Content-Disposition": f'attachment; filename="{rec.file_name}"',
        "X-Backup-Id": str(rec.id),
        "X-Backup-Sha256": rec.sha256,
    }
    return Response(content=exported.content, media_type="application/json", headers=headers)


@router.post("/import", response_model=ImportResultOut)
async def import_backup(
    file: UploadFile = File(...),
    user: User = Depends(require_auth),
    db: Session = Depends(get_db),
    store: LocalStore = Depends(get_store),
):
    content = await file.read()
    try:
        doc = import_document(store, content)
    except DocumentImportError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    log_activity(
        db,
        action="backup_import",
        entity_type="backup",
        user_id=user.id,
        details={"file_name": file.filename, "size_bytes": len(content)},
    )
    return ImportResultOut(clients=len(doc.clients), records_total=count_records(doc))


@router.get("/last", response_model=BackupLastOut)
def last_backup(db: Session = Depends(get_db), user: User = Depends(require_auth)) -> BackupLastOut:
    rec = (
        db.query(BackupRecord)
        .filter(BackupRecord.created_by_user_id == user.id)
        .order_by(BackupRecord.id.desc())
        .first()
    )
    if not rec:
        # Keep API simple for UI (no 404 handling). "id=0" means none.
        return BackupLastOut(
            id=0,
            created_at=dt.datetime.fromtimestamp(0, tz=dt.timezone.utc),
            created_by_username="",
            file_name="",
            size_bytes=0,
        )
    return BackupLastOut(
        id=rec.id,
        created_at=rec.created_at,
        created_by_username=user.username,
        file_name=rec.file_name,
        size_bytes=rec.size_bytes,
        records_total=rec.records_total,
    )
