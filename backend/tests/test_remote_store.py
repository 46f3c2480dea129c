import json

import httpx
import pytest

from app.services.remote_store import TABLES, RemoteStore, RemoteStoreError

BASE_URL = "https://remote.test/rest/v1"


def _store(handler) -> RemoteStore:
    return RemoteStore(BASE_URL, "key-1", "u1", transport=httpx.MockTransport(handler))


def _table(request: httpx.Request) -> str:
    return request.url.path.rsplit("/", 1)[-1]


def test_fetch_all_scopes_rows_by_user():
    seen = []

    def handler(request):
        seen.append(request)
        if _table(request) == "clients":
            return httpx.Response(200, json=[{"id": "client-1", "name": "x"}])
        return httpx.Response(200, json=[])

    flat = _store(handler).fetch_all()
    assert set(flat) == set(TABLES)
    assert flat["clients"] == [{"id": "client-1", "name": "x"}]
    assert all(r.url.params["user_id"] == "eq.u1" for r in seen)
    assert seen[0].headers["apikey"] == "key-1"
    assert seen[0].headers["authorization"] == "Bearer key-1"


def test_upsert_sends_parents_first_with_owner():
    calls = []

    def handler(request):
        body = json.loads(request.content)
        calls.append((_table(request), request))
        return httpx.Response(201, json=body)

    stored = _store(handler).upsert(
        {"sessions": [{"id": "s1"}], "clients": [{"id": "c1"}], "assistants": [{"name": "أحمد"}], "cases": []}
    )
    assert [table for table, _ in calls] == ["assistants", "clients", "sessions"]
    assistants_request = calls[0][1]
    assert assistants_request.url.params["on_conflict"] == "user_id,name"
    assert "merge-duplicates" in assistants_request.headers["prefer"]
    assert stored["clients"] == [{"id": "c1", "user_id": "u1"}]


def test_delete_children_first_by_key():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(204)

    _store(handler).delete({"clients": [{"id": "c1"}], "sessions": [{"id": "s1"}, {"id": "s2"}], "stages": []})
    assert [_table(r) for r in calls] == ["sessions", "clients"]
    assert calls[0].method == "DELETE"
    assert calls[0].url.params["id"] == 'in.("s1","s2")'
    assert calls[0].url.params["user_id"] == "eq.u1"


def test_http_errors_carry_code_and_table():
    def handler(request):
        return httpx.Response(409, json={"code": "23505", "message": "duplicate key"})

    with pytest.raises(RemoteStoreError) as exc:
        _store(handler).upsert({"clients": [{"id": "c1"}]})
    assert exc.value.code == "23505"
    assert exc.value.status_code == 409
    assert str(exc.value) == "[clients] 409 duplicate key"
    assert not exc.value.is_schema_error


def test_schema_errors_are_detected():
    assert RemoteStoreError("x", code="42P01").is_schema_error
    assert RemoteStoreError('column "foo" does not exist').is_schema_error
    assert RemoteStoreError("Could not find the table 'public.cases' in the schema cache").is_schema_error


def test_check_schema_reports_missing_tables():
    def handler(request):
        if _table(request) == "invoice_items":
            return httpx.Response(404, json={"code": "PGRST205", "message": "Could not find the table"})
        assert request.url.params["limit"] == "0"
        return httpx.Response(200, json=[])

    check = _store(handler).check_schema()
    assert not check.ok
    assert check.error == "uninitialized"
    assert "invoice_items" in check.message


def test_transport_errors_are_retried_then_reported():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    check = _store(handler).check_schema()
    assert not check.ok
    assert check.error == "network"
    assert len(attempts) == 3


def test_non_json_success_body_is_a_remote_error():
    def handler(request):
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(RemoteStoreError) as exc:
        _store(handler).fetch_all()
    assert exc.value.table == TABLES[0]
    assert exc.value.status_code == 200
    assert not exc.value.is_schema_error
