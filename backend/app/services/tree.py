"""
Copy-on-write operations on the client tree (Client > Case > Stage > Session).

Every function takes the current `list[Client]` and returns a new list; the
input is never modified, and untouched branches are shared. Touched entities
get a fresh `updated_at`, which is what row-level sync compares.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable
from typing import Any, NamedTuple, TypeVar

from pydantic import BaseModel

from app.models.enums import CaseStatus
from app.schemas.office import UNASSIGNED, Case, Client, Session, SessionView, Stage
from app.services.sanitize import CASE_WITHOUT_SUBJECT, UNKNOWN_COURT, UNNAMED_CLIENT, new_id

M = TypeVar("M", bound=BaseModel)

# Outcome of a postponement; frozen once the stage has a decision.
POSTPONEMENT_OUTCOME_FIELDS = frozenset({"is_postponed", "next_session_date", "next_postponement_reason"})
_STRUCTURAL_FIELDS = frozenset({"id", "cases", "stages", "sessions", "updated_at"})


class EntityNotFoundError(LookupError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class StageDecidedError(ValueError):
    pass


class SessionLocation(NamedTuple):
    client: Client
    case: Case
    stage: Stage
    session: Session


def _now() -> dt.datetime:
    return dt.datetime.now().replace(microsecond=0)


def _touch(model: M, **changes: Any) -> M:
    return model.model_copy(update={**changes, "updated_at": _now()})


def _check_fields(model: BaseModel, changes: dict[str, Any]) -> None:
    unknown = set(changes) - (set(type(model).model_fields) - _STRUCTURAL_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update {type(model).__name__} fields: {sorted(unknown)}")


# --- factories -------------------------------------------------------------


def make_client(*, name: str, contact_info: str = "") -> Client:
    return Client(id=new_id("client"), name=name.strip() or UNNAMED_CLIENT, contact_info=contact_info, updated_at=_now())


def make_case(
    client: Client,
    *,
    subject: str,
    opponent_name: str = "",
    fee_agreement: str = "",
    status: CaseStatus = CaseStatus.ACTIVE,
) -> Case:
    return Case(
        id=new_id("case"),
        subject=subject.strip() or CASE_WITHOUT_SUBJECT,
        client_name=client.name,
        opponent_name=opponent_name,
        fee_agreement=fee_agreement,
        status=status,
        updated_at=_now(),
    )


def make_stage(*, court: str, case_number: str = "", first_session_date: dt.datetime | None = None) -> Stage:
    return Stage(
        id=new_id("stage"),
        court=court.strip() or UNKNOWN_COURT,
        case_number=case_number,
        first_session_date=first_session_date,
        updated_at=_now(),
    )


def make_session(case: Case, stage: Stage, *, date: dt.datetime, assignee: str = UNASSIGNED) -> Session:
    """A new hearing on `stage`, copying the denormalized court/case fields."""
    return Session(
        id=new_id("session"),
        court=stage.court,
        case_number=stage.case_number,
        date=date,
        client_name=case.client_name,
        opponent_name=case.opponent_name,
        assignee=assignee,
        updated_at=_now(),
    )


# --- lookups ---------------------------------------------------------------


def find_client(clients: list[Client], client_id: str) -> Client:
    for client in clients:
        if client.id == client_id:
            return client
    raise EntityNotFoundError("client", client_id)


def find_case(clients: list[Client], case_id: str) -> tuple[Client, Case]:
    for client in clients:
        for case in client.cases:
            if case.id == case_id:
                return client, case
    raise EntityNotFoundError("case", case_id)


def find_stage(clients: list[Client], stage_id: str) -> tuple[Client, Case, Stage]:
    for client in clients:
        for case in client.cases:
            for stage in case.stages:
                if stage.id == stage_id:
                    return client, case, stage
    raise EntityNotFoundError("stage", stage_id)


def find_session(clients: list[Client], session_id: str) -> SessionLocation:
    for client in clients:
        for case in client.cases:
            for stage in case.stages:
                for session in stage.sessions:
                    if session.id == session_id:
                        return SessionLocation(client, case, stage, session)
    raise EntityNotFoundError("session", session_id)


def flatten_sessions(clients: list[Client]) -> list[SessionView]:
    """All sessions of all clients, each tagged with its stage, sorted by date."""
    views = [
        SessionView(stage_id=stage.id, stage_decision_date=stage.decision_date, **dict(session))
        for client in clients
        for case in client.cases
        for stage in case.stages
        for session in stage.sessions
    ]
    return sorted(views, key=lambda s: s.date)


# --- tree rewriting --------------------------------------------------------


def _replace_case(clients: list[Client], case_id: str, fn: Callable[[Case], Case]) -> list[Client]:
    client, _ = find_case(clients, case_id)
    return [
        c if c.id != client.id else c.model_copy(update={"cases": [fn(x) if x.id == case_id else x for x in c.cases]})
        for c in clients
    ]


def _replace_stage(clients: list[Client], stage_id: str, fn: Callable[[Stage], Stage]) -> list[Client]:
    _, case, _ = find_stage(clients, stage_id)
    return _replace_case(
        clients,
        case.id,
        lambda cs: cs.model_copy(update={"stages": [fn(st) if st.id == stage_id else st for st in cs.stages]}),
    )


def replace_sessions(
    clients: list[Client], stage_id: str, fn: Callable[[list[Session]], list[Session]]
) -> list[Client]:
    return _replace_stage(clients, stage_id, lambda st: st.model_copy(update={"sessions": fn(st.sessions)}))


# clients


def add_client(clients: list[Client], client: Client) -> list[Client]:
    return [*clients, client]


def update_client(clients: list[Client], client_id: str, **changes: Any) -> list[Client]:
    target = find_client(clients, client_id)
    _check_fields(target, changes)
    return [_touch(c, **changes) if c.id == client_id else c for c in clients]


def delete_client(clients: list[Client], client_id: str) -> list[Client]:
    """Removes the client with all its cases, stages and sessions."""
    find_client(clients, client_id)
    return [c for c in clients if c.id != client_id]


# cases


def add_case(clients: list[Client], client_id: str, case: Case) -> list[Client]:
    find_client(clients, client_id)
    return [c.model_copy(update={"cases": [*c.cases, case]}) if c.id == client_id else c for c in clients]


def update_case(clients: list[Client], case_id: str, **changes: Any) -> list[Client]:
    _, case = find_case(clients, case_id)
    _check_fields(case, changes)
    return _replace_case(clients, case_id, lambda cs: _touch(cs, **changes))


def delete_case(clients: list[Client], case_id: str) -> list[Client]:
    client, _ = find_case(clients, case_id)
    return [
        c.model_copy(update={"cases": [x for x in c.cases if x.id != case_id]}) if c.id == client.id else c
        for c in clients
    ]


# stages


def add_stage(clients: list[Client], case_id: str, stage: Stage) -> list[Client]:
    return _replace_case(clients, case_id, lambda cs: cs.model_copy(update={"stages": [*cs.stages, stage]}))


def update_stage(clients: list[Client], stage_id: str, **changes: Any) -> list[Client]:
    _, _, stage = find_stage(clients, stage_id)
    _check_fields(stage, changes)
    return _replace_stage(clients, stage_id, lambda st: _touch(st, **changes))


def delete_stage(clients: list[Client], stage_id: str) -> list[Client]:
    _, case, _ = find_stage(clients, stage_id)
    return _replace_case(
        clients, case.id, lambda cs: cs.model_copy(update={"stages": [st for st in cs.stages if st.id != stage_id]})
    )


def record_decision(
    clients: list[Client],
    stage_id: str,
    *,
    decision_date: dt.datetime,
    decision_number: str = "",
    decision_summary: str = "",
    decision_notes: str = "",
) -> list[Client]:
    """Marks the stage decided; its sessions can no longer be postponed."""
    return update_stage(
        clients,
        stage_id,
        decision_date=decision_date,
        decision_number=decision_number,
        decision_summary=decision_summary,
        decision_notes=decision_notes,
    )


# sessions


def add_session(clients: list[Client], stage_id: str, session: Session) -> list[Client]:
    return replace_sessions(clients, stage_id, lambda sessions: [*sessions, session])


def update_session(clients: list[Client], session_id: str, **changes: Any) -> list[Client]:
    """
    Inline edit of a session. Any field may change, except the postponement
    outcome once the stage is decided.
    """
    loc = find_session(clients, session_id)
    _check_fields(loc.session, changes)
    if loc.stage.is_decided and POSTPONEMENT_OUTCOME_FIELDS & set(changes):
        raise StageDecidedError("Stage is decided; postponement fields are frozen")
    return replace_sessions(
        clients,
        loc.stage.id,
        lambda sessions: [_touch(s, **changes) if s.id == session_id else s for s in sessions],
    )


def delete_session(clients: list[Client], session_id: str) -> list[Client]:
    loc = find_session(clients, session_id)
    return replace_sessions(clients, loc.stage.id, lambda sessions: [s for s in sessions if s.id != session_id])


# --- assistants ------------------------------------------------------------


def add_assistant(assistants: list[str], name: str) -> list[str]:
    name = name.strip()
    if not name:
        raise ValueError("Assistant name is required")
    if name in assistants:
        return list(assistants)
    # Keep the sentinel last, as the UI lists it.
    named = [a for a in assistants if a != UNASSIGNED]
    return [*named, name, UNASSIGNED]


def remove_assistant(assistants: list[str], name: str) -> list[str]:
    if name == UNASSIGNED:
        raise ValueError("The unassigned entry cannot be removed")
    if name not in assistants:
        raise EntityNotFoundError("assistant", name)
    return [a for a in assistants if a != name]


def rename_assistant(assistants: list[str], old: str, new: str) -> list[str]:
    if old == UNASSIGNED:
        raise ValueError("The unassigned entry cannot be renamed")
    if old not in assistants:
        raise EntityNotFoundError("assistant", old)
    new = new.strip()
    if not new:
        raise ValueError("Assistant name is required")
    if new in assistants:
        return [a for a in assistants if a != old]
    return [new if a == old else a for a in assistants]
