import json

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_storage, require_auth
from app.db.session import get_db
from app.main import create_app
from app.models.enums import UserRole
from app.models.user import User


@pytest.fixture
def user(db) -> User:
    u = User(username="lawyer", password_hash="x", role=UserRole.ADMIN)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def client(session_factory, storage, user):
    app = create_app()

    def _db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[require_auth] = lambda: user
    return TestClient(app)


def _create_session(client, date="2030-01-06T00:00:00Z") -> dict:
    c = client.post("/clients", json={"name": "سامر", "contact_info": "0999"}).json()
    case = client.post(f"/clients/{c['id']}/cases", json={"subject": "إيجار", "opponent_name": "خالد"}).json()
    stage = client.post(f"/cases/{case['id']}/stages", json={"court": "البداية", "case_number": "1/2030"}).json()
    r = client.post(f"/stages/{stage['id']}/sessions", json={"date": date, "assignee": "أحمد"})
    assert r.status_code == 201
    return {"client": c, "case": case, "stage": stage, "session": r.json()}


def test_empty_document(client):
    r = client.get("/data")
    assert r.status_code == 200
    body = r.json()
    assert body["clients"] == []
    assert body["assistants"][-1] == "بدون تخصيص"


def test_client_tree_crud(client):
    created = _create_session(client)
    session = created["session"]
    assert session["clientName"] == "سامر"
    assert session["opponentName"] == "خالد"
    assert session["caseNumber"] == "1/2030"
    assert session["assignee"] == "أحمد"

    sessions = client.get("/data/sessions").json()
    assert [s["id"] for s in sessions] == [session["id"]]
    assert sessions[0]["stageId"] == created["stage"]["id"]

    r = client.patch(f"/clients/{created['client']['id']}", json={"contact_info": "0988"})
    assert r.json()["contactInfo"] == "0988"

    r = client.patch(f"/sessions/{session['id']}", json={"assignee": "غير موجود"})
    assert r.status_code == 400

    assert client.delete(f"/clients/{created['client']['id']}").json() == {"ok": True}
    assert client.get("/data/sessions").json() == []
    assert client.get(f"/clients/{created['client']['id']}").status_code == 404


def test_postpone_flow(client):
    session = _create_session(client)["session"]
    url = f"/sessions/{session['id']}/postpone"

    r = client.post(url, json={"next_date": "2030-01-06T12:00:00Z", "reason": "تبادل لوائح"})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "date_not_after_session"

    r = client.post(url, json={"next_date": "2030-01-11T00:00:00Z", "reason": "تبادل لوائح"})
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "confirmation_required"

    r = client.post(url, json={"next_date": "2030-01-11T00:00:00Z", "reason": "تبادل لوائح", "confirmed": True})
    assert r.status_code == 200
    body = r.json()
    assert body["session"]["isPostponed"] is True
    assert body["next_session"]["postponementReason"] == "تبادل لوائح"
    assert body["warning"]

    assert len(client.get("/data/sessions").json()) == 2
    r = client.post(url, json={"next_date": "2030-01-13T00:00:00Z", "reason": "x"})
    assert r.json()["detail"]["code"] == "already_postponed"


def test_decided_stage_blocks_postponement(client):
    created = _create_session(client)
    session_id = created["session"]["id"]
    r = client.post(f"/stages/{created['stage']['id']}/decision", json={"session_id": session_id, "decision_number": "9"})
    assert r.status_code == 200
    assert r.json()["decisionDate"].startswith("2030-01-06")

    r = client.post(f"/sessions/{session_id}/postpone", json={"next_date": "2030-01-13T00:00:00Z", "reason": "x"})
    assert r.json()["detail"]["code"] == "stage_decided"
    assert client.patch(f"/sessions/{session_id}", json={"is_postponed": True}).status_code == 409
    state = client.get(f"/sessions/{session_id}/postponement").json()
    assert state["state"] == "decided"
    assert state["can_postpone"] is False


def test_collections(client):
    r = client.post("/collections/admin-tasks", json={"id": "task-1", "task": "مراجعة", "dueDate": "2030-01-01"})
    assert r.status_code == 201
    assert r.json()["assignee"] == "بدون تخصيص"
    assert client.post("/collections/admin-tasks", json={"id": "task-1", "task": "x"}).status_code == 409

    r = client.put("/collections/admin-tasks/task-1", json={"task": "مراجعة ملف", "completed": True})
    assert r.json()["completed"] is True
    assert [t["task"] for t in client.get("/collections/admin-tasks").json()] == ["مراجعة ملف"]

    assert client.delete("/collections/admin-tasks/task-1").json() == {"ok": True}
    assert client.delete("/collections/admin-tasks/task-1").status_code == 404
    assert client.get("/collections/unknown").status_code == 404


def test_collection_ids_use_record_prefixes(client):
    r = client.post("/collections/appointments", json={"title": "لقاء", "time": "09:00", "date": "2030-01-01"})
    assert r.json()["id"].startswith("apt-")
    r = client.post("/collections/accounting-entries", json={"type": "income", "amount": 10})
    assert r.json()["id"].startswith("acc-")
    r = client.post("/collections/invoices", json={"clientId": "client-1", "items": []})
    assert r.json()["id"].startswith("inv-")

    r = client.post("/collections/admin-tasks", json={"id": {"nested": 1}, "task": "مراجعة"})
    assert r.status_code == 201
    assert r.json()["id"].startswith("task-")
    r = client.post("/collections/admin-tasks", json={"id": ["task-9"], "task": "مراجعة"})
    assert r.json()["id"].startswith("task-")
    assert r.json()["id"] != "['task-9']"


def test_assistant_removal_unassigns_sessions(client):
    session = _create_session(client)["session"]
    r = client.delete("/assistants/أحمد")
    assert r.status_code == 200
    assert "أحمد" not in r.json()
    assert client.get("/data/sessions").json()[0]["assignee"] == "بدون تخصيص"
    assert session["assignee"] == "أحمد"


def test_backup_export_and_import(client, raw_document):
    r = client.post("/backups/import", files={"file": ("backup.json", json.dumps(raw_document), "application/json")})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "clients": 1, "records_total": 8}

    r = client.post("/backups/export")
    assert r.status_code == 200
    assert r.headers["x-backup-sha256"]
    assert "attachment" in r.headers["content-disposition"]
    assert r.json()["clients"][0]["id"] == "client-1"
    assert client.get("/backups/last").json()["records_total"] == 8

    r = client.post("/backups/import", files={"file": ("backup.json", b"{broken", "application/json")})
    assert r.status_code == 400
    assert client.get("/data").json()["clients"][0]["id"] == "client-1"


def test_sync_status_without_remote(client, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "remote_url", None)
    r = client.get("/sync/status")
    assert r.status_code == 200
    assert r.json()["status"] == "unconfigured"
    assert r.json()["configured"] is False
    assert client.post("/sync").json()["status"] == "unconfigured"


def test_login_sets_session_and_csrf_cookies(client, db):
    from app.core.config import settings
    from app.services.users import create_user

    create_user(db, username="assistant", password="assistant123")
    r = client.post("/auth/login", json={"username": "assistant", "password": "assistant123"})
    assert r.status_code == 200
    assert r.json()["role"] == "USER"
    assert r.json()["csrf_token"] == r.cookies[settings.csrf_cookie_name]
    assert settings.jwt_cookie_name in r.cookies

    r = client.post("/auth/login", json={"username": "assistant", "password": "wrong-password"})
    assert r.status_code == 401


def test_reports(client, raw_document):
    client.post("/backups/import", files={"file": ("backup.json", json.dumps(raw_document), "application/json")})

    r = client.get("/reports/financial", params={"start_date": "2024-05-01", "end_date": "2024-05-31"})
    assert r.status_code == 200
    assert r.json()["totals"] == {"income": 500, "expense": 0, "balance": 500}
    assert [e["id"] for e in r.json()["entries"]] == ["acc-1"]
    assert client.get("/reports/financial", params={"client_id": "other"}).json()["entries"] == []
    r = client.get("/reports/financial", params={"start_date": "2024-06-01", "end_date": "2024-05-01"})
    assert r.status_code == 400

    body = client.get("/reports/cases").json()
    assert body["breakdown"] == [{"status": "active", "name": "نشطة", "value": 1}]
    assert body["cases"][0]["clientName"] == "سامر الأحمد"

    body = client.get("/reports/clients/client-1").json()
    assert body["clientName"] == "سامر الأحمد"
    assert body["totals"]["balance"] == 500
    assert client.get("/reports/clients/missing").status_code == 404

    body = client.get("/reports/analytics").json()
    assert body["topClientsByCases"] == [{"name": "سامر الأحمد", "value": 1}]
    assert body["topClientsByIncome"] == [{"name": "سامر الأحمد", "value": 500}]
    assert body["topCasesByIncome"] == []
    assert body["longestCases"] == []
