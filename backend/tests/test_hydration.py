import datetime as dt
import json

from app.models.enums import Importance
from app.schemas.office import UNASSIGNED
from app.services.document_codec import dump_document, parse_document
from app.services.hydration import empty_document, is_effectively_empty, validate_and_hydrate


def test_non_object_input_yields_empty_document():
    for raw in (None, [], "text", 42, [{"clients": []}]):
        assert validate_and_hydrate(raw) == empty_document()


def test_empty_object_gets_default_assistants():
    doc = validate_and_hydrate({})
    assert doc.clients == []
    assert doc.invoices == []
    assert doc.assistants[-1] == UNASSIGNED
    assert is_effectively_empty(doc)


def test_malformed_collections_are_repaired():
    doc = validate_and_hydrate(
        {
            "clients": [None, 5, {"name": "أ", "cases": "oops"}],
            "adminTasks": "not a list",
            "appointments": [{"title": "x", "date": "2024-05-10"}, "junk"],
            "assistants": {"not": "a list"},
        }
    )
    assert len(doc.clients) == 1
    assert doc.clients[0].cases == []
    assert doc.admin_tasks == []
    assert len(doc.appointments) == 1
    assert UNASSIGNED in doc.assistants


def test_full_document_is_typed(raw_document):
    doc = validate_and_hydrate(raw_document)
    session = doc.clients[0].cases[0].stages[0].sessions[0]
    assert session.date == dt.datetime(2024, 5, 10)
    assert session.assignee == "أحمد"
    assert doc.admin_tasks[0].importance is Importance.URGENT
    assert doc.invoices[0].total == 1000 + 100 - 50
    assert doc.assistants == ["أحمد", "فاطمة", UNASSIGNED]
    assert not is_effectively_empty(doc)


def test_assignee_outside_assistants_is_unassigned(raw_document):
    raw_document["assistants"] = ["فاطمة"]
    doc = validate_and_hydrate(raw_document)
    assert doc.assistants == ["فاطمة", UNASSIGNED]
    assert doc.clients[0].cases[0].stages[0].sessions[0].assignee == UNASSIGNED


def test_hydration_is_idempotent(raw_document):
    raw_document["clients"].append({"cases": [{"stages": [{"sessions": [{"date": "bad"}]}]}]})
    once = validate_and_hydrate(raw_document)
    assert validate_and_hydrate(once) == once


def test_hydration_survives_storage_round_trip(raw_document):
    once = validate_and_hydrate(raw_document)
    again = validate_and_hydrate(parse_document(dump_document(once)))
    assert again == once


def test_snake_case_remote_shape_is_accepted():
    doc = validate_and_hydrate(
        {
            "admin_tasks": [{"id": "t1", "task": "x", "due_date": "2024-05-10T00:00:00+00:00"}],
            "accounting_entries": [{"id": "a1", "amount": 10, "date": "2024-05-10", "client_id": "c1"}],
        }
    )
    assert doc.admin_tasks[0].due_date == dt.datetime(2024, 5, 10)
    assert doc.accounting_entries[0].client_id == "c1"


def test_integers_beyond_float_range_fall_back():
    huge = 10**400
    text = json.dumps(
        {
            "clients": [
                {
                    "id": "c1",
                    "name": "x",
                    "cases": [{"id": "k1", "stages": [{"id": "s1", "sessions": [{"id": "ss1", "date": huge}]}]}],
                }
            ],
            "accountingEntries": [{"id": "acc-1", "amount": huge, "date": "2024-01-01"}],
            "appointments": [{"id": "apt-1", "date": huge, "reminderTimeInMinutes": huge}],
        }
    )
    doc = validate_and_hydrate(parse_document(text))
    assert doc.accounting_entries[0].amount == 0
    assert doc.appointments[0].reminder_time_in_minutes is None
    assert isinstance(doc.clients[0].cases[0].stages[0].sessions[0].date, dt.datetime)


def test_assignee_matches_stripped_assistant_names():
    doc = validate_and_hydrate(
        {
            "assistants": [" علي "],
            "adminTasks": [{"id": "t1", "task": "x", "dueDate": "2024-05-01", "assignee": " علي "}],
        }
    )
    assert doc.assistants == ["علي", UNASSIGNED]
    assert doc.admin_tasks[0].assignee == "علي"
