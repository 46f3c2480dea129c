import datetime as dt
import logging
import threading
import time

from sqlalchemy.exc import OperationalError

from app.models.enums import ChangeSource
from app.schemas.office import UNASSIGNED
from app.services import tree
from app.services.document_codec import parse_document
from app.services.local_store import LocalStore, SyncTracker, dirty_key, document_key


def test_document_keys_follow_browser_storage_names():
    assert document_key("u1") == "lawyerBusinessManagementData_u1"
    assert dirty_key("u1") == "lawyerAppIsDirty_u1"


def test_load_missing_document_is_empty(store):
    assert store.clients == []
    assert store.assistants[-1] == UNASSIGNED


def test_load_corrupt_document_starts_empty(storage, caplog):
    storage.set_item(document_key("broken"), "{oops")
    s = LocalStore(storage, "broken")
    with caplog.at_level(logging.ERROR):
        s.load()
    assert s.clients == []
    assert "not valid JSON" in caplog.text


def test_setter_persists_whole_document(store, storage):
    client = tree.make_client(name="موكل")
    store.set_clients(lambda clients: tree.add_client(clients, client))

    stored = parse_document(storage.get_item(store.key))
    assert stored["clients"][0]["id"] == client.id

    reloaded = LocalStore(storage, store.owner_id)
    reloaded.load()
    assert reloaded.data == store.data


def test_setter_accepts_plain_value(store):
    store.set_admin_tasks([])
    store.set_appointments(lambda items: items)
    assert store.admin_tasks == []


def test_set_assistants_reapplies_sentinel(store):
    store.set_assistants(["سارة", "سارة", " "])
    assert store.assistants == ["سارة", UNASSIGNED]


def test_replace_all_hydrates_input(store, raw_document):
    raw_document["clients"].append("junk")
    doc = store.replace_all(raw_document)
    assert len(doc.clients) == 1
    assert store.clients[0].cases[0].stages[0].sessions[0].date == dt.datetime(2024, 5, 10)


def test_all_sessions_is_memoized_on_clients(store, raw_document):
    store.replace_all(raw_document)
    first = store.all_sessions
    assert store.all_sessions is first
    store.set_admin_tasks([])
    assert store.all_sessions is first

    stage_id = store.clients[0].cases[0].stages[0].id
    case = store.clients[0].cases[0]
    stage = case.stages[0]
    extra = tree.make_session(case, stage, date=dt.datetime(2024, 5, 1))
    store.set_clients(lambda clients: tree.add_session(clients, stage_id, extra))
    sessions = store.all_sessions
    assert sessions is not first
    assert [s.id for s in sessions][0] == extra.id
    assert all(s.stage_id == stage_id for s in sessions)


def test_listeners_receive_changes(store):
    events = []
    unsubscribe = store.subscribe(events.append)
    store.set_invoices([])
    unsubscribe()
    store.set_invoices([])
    assert len(events) == 1
    assert events[0].collections == ("invoices",)
    assert events[0].source is ChangeSource.USER


def test_sync_tracker_marks_dirty_except_for_sync_changes(store, storage):
    tracker = SyncTracker(store)
    assert tracker.is_dirty is False

    store.replace_all({}, source=ChangeSource.SYNC)
    assert tracker.is_dirty is False

    store.set_clients([])
    assert tracker.is_dirty is True
    assert storage.get_item(dirty_key(store.owner_id)) == "true"
    assert SyncTracker(store).is_dirty is True

    tracker.mark_clean()
    assert tracker.is_dirty is False
    assert storage.get_item(dirty_key(store.owner_id)) is None


def test_storage_failure_is_logged_not_raised(store, monkeypatch, caplog):
    def boom(key, value):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(store.storage, "set_item", boom)
    client = tree.make_client(name="موكل")
    with caplog.at_level(logging.ERROR):
        store.set_clients([client])
    assert store.clients == [client]
    assert "Failed to save document" in caplog.text


def test_export_text_is_stored_json(store):
    store.set_clients([tree.make_client(name="موكل")])
    assert store.export_text() == store.storage.get_item(store.key)


def test_concurrent_setters_keep_both_updates(store, caplog):
    barrier = threading.Barrier(2)

    def slow_add(clients, client):
        time.sleep(0.05)
        return tree.add_client(clients, client)

    def add(name):
        client = tree.make_client(name=name)
        barrier.wait()
        store.set_clients(lambda clients: slow_add(clients, client))

    with caplog.at_level(logging.ERROR):
        threads = [threading.Thread(target=add, args=(name,)) for name in ("A", "B")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    assert sorted(c.name for c in store.clients) == ["A", "B"]
    reloaded = LocalStore(store.storage, "owner-1")
    assert sorted(c.name for c in reloaded.load().clients) == ["A", "B"]
    assert "Failed to save" not in caplog.text


def test_storage_set_item_overwrites_existing_key(storage):
    storage.set_item("k", "one")
    storage.set_item("k", "two")
    assert storage.get_item("k") == "two"
    assert storage.keys_with_prefix("k") == ["k"]
