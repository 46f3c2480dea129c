from __future__ import annotations

import datetime as dt
import hashlib
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.models.backup import BackupRecord
from app.models.enums import ChangeSource
from app.models.user import User
from app.schemas.office import AppData
from app.services.activity_log import log_activity
from app.services.document_codec import DocumentImportError, parse_document
from app.services.local_store import LocalStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportedBackup:
    content: bytes
    record: BackupRecord


def count_records(doc: AppData) -> int:
    nested = sum(
        1 + len(case.stages) + sum(len(stage.sessions) for stage in case.stages)
        for client in doc.clients
        for case in client.cases
    )
    return (
        len(doc.clients)
        + nested
        + len(doc.admin_tasks)
        + len(doc.appointments)
        + len(doc.accounting_entries)
        + len(doc.invoices)
    )


def export_document(db: Session, store: LocalStore, user: User) -> ExportedBackup:
    """
    The export is the stored document text as-is (camelCase JSON, ISO dates).
    Only a BackupRecord (who/when/hash) is kept server-side.
    """
    now = dt.datetime.now(dt.timezone.utc)
    safe_username = "".join(ch for ch in user.username if ch.isalnum() or ch in ("-", "_")) or "user"
    filename = f"casedesk-backup-{now:%Y%m%d-%H%M%S}-{safe_username}.json"

    data = store.export_text().encode("utf-8")
    rec = BackupRecord(
        created_by_user_id=user.id,
        file_name=filename,
        sha256=hashlib.sha256(data).hexdigest(),
        size_bytes=len(data),
        clients_count=len(store.clients),
        records_total=count_records(store.data),
    )
    db.add(rec)
    db.commit()
    db.refresh(rec)

    log_activity(
        db,
        action="backup_export",
        entity_type="backup",
        entity_id=str(rec.id),
        user_id=user.id,
        details={"file_name": filename, "size_bytes": len(data)},
    )
    return ExportedBackup(content=data, record=rec)


def import_document(store: LocalStore, raw: bytes | str) -> AppData:
    """
    Replaces the whole document with the uploaded backup.
    Unparseable files raise DocumentImportError and leave the store untouched.
    """
    parsed = parse_document(raw)
    if not isinstance(parsed, dict):
        raise DocumentImportError("Backup file does not contain an office document")
    doc = store.replace_all(parsed, source=ChangeSource.IMPORT)
    logger.info("Imported backup for %s (clients=%d)", store.owner_id, len(doc.clients))
    return doc
