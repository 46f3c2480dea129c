import datetime as dt

import pytest

from app.schemas.office import UNASSIGNED
from app.services import tree
from app.services.hydration import validate_and_hydrate


@pytest.fixture
def clients(raw_document):
    return validate_and_hydrate(raw_document).clients


def test_updates_are_copy_on_write(clients):
    updated = tree.update_client(clients, "client-1", contact_info="new")
    assert updated is not clients
    assert clients[0].contact_info == "0999000000"
    assert updated[0].contact_info == "new"
    assert updated[0].updated_at is not None
    # untouched branches are shared
    assert updated[0].cases is clients[0].cases


def test_update_rejects_structural_or_unknown_fields(clients):
    with pytest.raises(ValueError):
        tree.update_client(clients, "client-1", cases=[])
    with pytest.raises(ValueError):
        tree.update_stage(clients, "stage-1", colour="red")


def test_unknown_ids_raise_not_found(clients):
    with pytest.raises(tree.EntityNotFoundError) as exc:
        tree.delete_session(clients, "missing")
    assert exc.value.kind == "session"
    with pytest.raises(tree.EntityNotFoundError):
        tree.add_case(clients, "missing", tree.make_case(clients[0], subject="x"))


def test_delete_client_cascades(clients):
    assert tree.flatten_sessions(clients)
    assert tree.flatten_sessions(tree.delete_client(clients, "client-1")) == []


def test_delete_stage_removes_its_sessions(clients):
    updated = tree.delete_stage(clients, "stage-1")
    assert updated[0].cases[0].stages == []
    with pytest.raises(tree.EntityNotFoundError):
        tree.find_session(updated, "session-1")


def test_new_case_and_session_copy_denormalized_fields(clients):
    client = clients[0]
    case = tree.make_case(client, subject="نزاع", opponent_name="ليلى")
    stage = tree.make_stage(court="محكمة الاستئناف", case_number="5/2024")
    session = tree.make_session(case, stage, date=dt.datetime(2024, 6, 1))
    assert case.client_name == client.name
    assert session.court == "محكمة الاستئناف"
    assert session.case_number == "5/2024"
    assert session.opponent_name == "ليلى"
    assert session.assignee == UNASSIGNED

    updated = tree.add_case(clients, client.id, case)
    updated = tree.add_stage(updated, case.id, stage)
    updated = tree.add_session(updated, stage.id, session)
    loc = tree.find_session(updated, session.id)
    assert (loc.client.id, loc.case.id, loc.stage.id) == (client.id, case.id, stage.id)


def test_record_decision_freezes_postponement_fields(clients):
    decided = tree.record_decision(
        clients, "stage-1", decision_date=dt.datetime(2024, 5, 10), decision_number="77", decision_summary="رد الدعوى"
    )
    stage = tree.find_stage(decided, "stage-1")[2]
    assert stage.is_decided
    assert stage.decision_number == "77"

    with pytest.raises(tree.StageDecidedError):
        tree.update_session(decided, "session-1", is_postponed=True)
    # other inline edits stay allowed
    edited = tree.update_session(decided, "session-1", assignee="فاطمة")
    assert tree.find_session(edited, "session-1").session.assignee == "فاطمة"


def test_flatten_sessions_sorted_with_stage_link(clients):
    stage_id = "stage-1"
    case = clients[0].cases[0]
    stage = case.stages[0]
    earlier = tree.make_session(case, stage, date=dt.datetime(2024, 1, 1))
    updated = tree.add_session(clients, stage_id, earlier)
    views = tree.flatten_sessions(updated)
    assert [v.id for v in views] == [earlier.id, "session-1"]
    assert views[0].stage_id == stage_id
    assert views[0].stage_decision_date is None


def test_assistant_list_operations():
    names = ["أحمد", UNASSIGNED]
    names = tree.add_assistant(names, " سارة ")
    assert names == ["أحمد", "سارة", UNASSIGNED]
    assert tree.add_assistant(names, "سارة") == names
    assert tree.rename_assistant(names, "سارة", "سلمى") == ["أحمد", "سلمى", UNASSIGNED]
    assert tree.remove_assistant(names, "أحمد") == ["سارة", UNASSIGNED]
    with pytest.raises(ValueError):
        tree.remove_assistant(names, UNASSIGNED)
    with pytest.raises(tree.EntityNotFoundError):
        tree.remove_assistant(names, "غير موجود")
