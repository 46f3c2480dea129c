from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session as DbSession

from app.api.deps import get_store, require_auth
from app.db.session import get_db
from app.models.user import User
from app.schemas.office import UNASSIGNED, Case, Client, Session, Stage
from app.schemas.requests import (
    CaseCreate,
    CaseUpdate,
    ClientCreate,
    ClientUpdate,
    DecisionRequest,
    SessionCreate,
    SessionUpdate,
    StageCreate,
    StageUpdate,
)
from app.services import tree
from app.services.activity_log import log_activity
from app.services.local_store import LocalStore

router = APIRouter()


def update_tree(store: LocalStore, fn: Callable[[list[Client]], list[Client]]) -> list[Client]:
    """Runs a tree updater through the store, mapping domain errors to HTTP errors."""
    try:
        return store.set_clients(fn).clients
    except tree.EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except tree.StageDecidedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _lookup(fn: Callable[[], object]):
    try:
        return fn()
    except tree.EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# --- clients ---------------------------------------------------------------


@router.get("/clients", response_model=list[Client])
def list_clients(store: LocalStore = Depends(get_store)):
    return store.clients


@router.post("/clients", response_model=Client, status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientCreate,
    store: LocalStore = Depends(get_store),
    db: DbSession = Depends(get_db),
    user: User = Depends(require_auth),
):
    client = tree.make_client(name=payload.name, contact_info=payload.contact_info)
    update_tree(store, lambda clients: tree.add_client(clients, client))
    log_activity(db, action="client_create", entity_type="client", entity_id=client.id, user_id=user.id)
    return client


@router.get("/clients/{client_id}", response_model=Client)
def get_client(client_id: str, store: LocalStore = Depends(get_store)):
    return _lookup(lambda: tree.find_client(store.clients, client_id))


@router.patch("/clients/{client_id}", response_model=Client)
def update_client(client_id: str, payload: ClientUpdate, store: LocalStore = Depends(get_store)):
    clients = update_tree(store, lambda c: tree.update_client(c, client_id, **payload.changes()))
    return tree.find_client(clients, client_id)


@router.delete("/clients/{client_id}")
def delete_client(
    client_id: str,
    store: LocalStore = Depends(get_store),
    db: DbSession = Depends(get_db),
    user: User = Depends(require_auth),
):
    update_tree(store, lambda clients: tree.delete_client(clients, client_id))
    log_activity(db, action="client_delete", entity_type="client", entity_id=client_id, user_id=user.id)
    return {"ok": True}


# --- cases -----------------------------------------------------------------


@router.post("/clients/{client_id}/cases", response_model=Case, status_code=status.HTTP_201_CREATED)
def create_case(client_id: str, payload: CaseCreate, store: LocalStore = Depends(get_store)):
    client = _lookup(lambda: tree.find_client(store.clients, client_id))
    case = tree.make_case(
        client,
        subject=payload.subject,
        opponent_name=payload.opponent_name,
        fee_agreement=payload.fee_agreement,
        status=payload.status,
    )
    update_tree(store, lambda clients: tree.add_case(clients, client_id, case))
    return case


@router.patch("/cases/{case_id}", response_model=Case)
def update_case(case_id: str, payload: CaseUpdate, store: LocalStore = Depends(get_store)):
    clients = update_tree(store, lambda c: tree.update_case(c, case_id, **payload.changes()))
    return tree.find_case(clients, case_id)[1]


@router.delete("/cases/{case_id}")
def delete_case(case_id: str, store: LocalStore = Depends(get_store)):
    update_tree(store, lambda clients: tree.delete_case(clients, case_id))
    return {"ok": True}


# --- stages ----------------------------------------------------------------


@router.post("/cases/{case_id}/stages", response_model=Stage, status_code=status.HTTP_201_CREATED)
def create_stage(case_id: str, payload: StageCreate, store: LocalStore = Depends(get_store)):
    stage = tree.make_stage(
        court=payload.court, case_number=payload.case_number, first_session_date=payload.first_session_date
    )
    update_tree(store, lambda clients: tree.add_stage(clients, case_id, stage))
    return stage


@router.patch("/stages/{stage_id}", response_model=Stage)
def update_stage(stage_id: str, payload: StageUpdate, store: LocalStore = Depends(get_store)):
    clients = update_tree(store, lambda c: tree.update_stage(c, stage_id, **payload.changes()))
    return tree.find_stage(clients, stage_id)[2]


@router.delete("/stages/{stage_id}")
def delete_stage(stage_id: str, store: LocalStore = Depends(get_store)):
    update_tree(store, lambda clients: tree.delete_stage(clients, stage_id))
    return {"ok": True}


@router.post("/stages/{stage_id}/decision", response_model=Stage)
def decide_stage(
    stage_id: str,
    payload: DecisionRequest,
    store: LocalStore = Depends(get_store),
    db: DbSession = Depends(get_db),
    user: User = Depends(require_auth),
):
    decision_date = payload.decision_date
    if decision_date is None:
        if not payload.session_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="decision_date or session_id is required")
        loc = _lookup(lambda: tree.find_session(store.clients, payload.session_id))
        if loc.stage.id != stage_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Session does not belong to this stage")
        decision_date = loc.session.date
    clients = update_tree(
        store,
        lambda c: tree.record_decision(
            c,
            stage_id,
            decision_date=decision_date,
            decision_number=payload.decision_number,
            decision_summary=payload.decision_summary,
            decision_notes=payload.decision_notes,
        ),
    )
    log_activity(
        db,
        action="stage_decision",
        entity_type="stage",
        entity_id=stage_id,
        user_id=user.id,
        details={"decision_date": decision_date.isoformat()},
    )
    return tree.find_stage(clients, stage_id)[2]


# --- sessions --------------------------------------------------------------


@router.post("/stages/{stage_id}/sessions", response_model=Session, status_code=status.HTTP_201_CREATED)
def create_session(stage_id: str, payload: SessionCreate, store: LocalStore = Depends(get_store)):
    _, case, stage = _lookup(lambda: tree.find_stage(store.clients, stage_id))
    assignee = payload.assignee if payload.assignee in store.assistants else UNASSIGNED
    session = tree.make_session(case, stage, date=payload.date, assignee=assignee)
    update_tree(store, lambda clients: tree.add_session(clients, stage_id, session))
    return session


@router.patch("/sessions/{session_id}", response_model=Session)
def update_session(session_id: str, payload: SessionUpdate, store: LocalStore = Depends(get_store)):
    changes = payload.changes()
    if "assignee" in changes and changes["assignee"] not in store.assistants:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown assistant")
    clients = update_tree(store, lambda c: tree.update_session(c, session_id, **changes))
    return tree.find_session(clients, session_id).session


@router.delete("/sessions/{session_id}")
def delete_session(session_id: str, store: LocalStore = Depends(get_store)):
    update_tree(store, lambda clients: tree.delete_session(clients, session_id))
    return {"ok": True}
