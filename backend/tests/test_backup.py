import hashlib
import json

import pytest

from app.models.backup import BackupRecord
from app.models.enums import UserRole
from app.models.user import User
from app.services.backup import count_records, export_document, import_document
from app.services.document_codec import DocumentImportError


@pytest.fixture
def user(db) -> User:
    u = User(username="lawyer", password_hash="x", role=UserRole.ADMIN)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def test_count_records(store, raw_document):
    store.replace_all(raw_document)
    # client, case, stage, session, task, appointment, entry, invoice
    assert count_records(store.data) == 8


def test_export_returns_the_stored_document(db, store, user, raw_document):
    store.replace_all(raw_document)
    exported = export_document(db, store, user)

    body = json.loads(exported.content)
    assert body["clients"][0]["contactInfo"] == "0999000000"
    rec = db.query(BackupRecord).one()
    assert rec.id == exported.record.id
    assert rec.sha256 == hashlib.sha256(exported.content).hexdigest()
    assert rec.file_name.startswith("casedesk-backup-") and rec.file_name.endswith("-lawyer.json")
    assert rec.clients_count == 1
    assert rec.records_total == 8


def test_import_hydrates_and_replaces(store, raw_document):
    raw_document["clients"][0]["cases"][0]["stages"][0]["sessions"][0]["assignee"] = "غير معروف"
    doc = import_document(store, json.dumps(raw_document).encode("utf-8"))
    assert doc.clients[0].cases[0].stages[0].sessions[0].assignee == "بدون تخصيص"
    assert store.data == doc


@pytest.mark.parametrize("payload", [b"not json", b"[1, 2]"])
def test_import_rejects_invalid_files(store, raw_document, payload):
    store.replace_all(raw_document)
    before = store.data
    with pytest.raises(DocumentImportError):
        import_document(store, payload)
    assert store.data is before
