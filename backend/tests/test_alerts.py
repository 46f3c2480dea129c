import datetime as dt

from app.models.enums import NotificationType
from app.models.notification import AlertEvent, Notification
from app.services.alerts import notify_due_appointments, run_daily_alerts, stored_owner_ids
from app.services.local_store import LocalStore


def test_daily_alerts_report_each_session_once(db, storage, store, raw_document):
    store.replace_all(raw_document)
    LocalStore(storage, "owner-2").replace_all({"clients": []})
    assert sorted(stored_owner_ids(storage)) == ["owner-1", "owner-2"]

    today = dt.date(2024, 5, 20)
    assert run_daily_alerts(db, storage, today=today) == {"ok": True, "sent": 1}
    assert run_daily_alerts(db, storage, today=today) == {"ok": True, "sent": 0}

    (n,) = db.query(Notification).all()
    assert n.owner_id == "owner-1"
    assert n.session_id == "session-1"
    assert n.type == NotificationType.UNPOSTPONED_SESSION
    assert db.query(AlertEvent).one().key == "session:session-1:unpostponed"


def test_no_alert_before_the_session_passed(db, storage, store, raw_document):
    store.replace_all(raw_document)
    assert run_daily_alerts(db, storage, today=dt.date(2024, 5, 10))["sent"] == 0


def test_due_appointments_are_notified_once(db, store, raw_document):
    raw_document["appointments"][0]["reminderTimeInMinutes"] = 60
    store.replace_all(raw_document)
    now = dt.datetime(2024, 5, 11, 10, 0)

    created = notify_due_appointments(db, store, now=now)
    assert [n.type for n in created] == [NotificationType.APPOINTMENT_REMINDER]
    assert created[0].owner_id == "owner-1"
    assert store.appointments[0].notified
    assert notify_due_appointments(db, store, now=now) == []
