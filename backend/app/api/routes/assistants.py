from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_store
from app.schemas.office import UNASSIGNED
from app.schemas.requests import AssistantIn, AssistantRename
from app.services import tree
from app.services.local_store import LocalStore

router = APIRouter()


def _update(store: LocalStore, fn) -> list[str]:
    try:
        return store.set_assistants(fn).assistants
    except tree.EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _reassign(store: LocalStore, old: str, new: str) -> None:
    """Moves sessions, tasks and appointments from `old` to `new`."""

    def sessions(clients):
        changed = clients
        for s in store.all_sessions:
            if s.assignee == old:
                changed = tree.update_session(changed, s.id, assignee=new)
        return changed

    if any(s.assignee == old for s in store.all_sessions):
        store.set_clients(sessions)
    store.set_admin_tasks(lambda items: [t.model_copy(update={"assignee": new}) if t.assignee == old else t for t in items])
    store.set_appointments(lambda items: [a.model_copy(update={"assignee": new}) if a.assignee == old else a for a in items])


@router.get("", response_model=list[str])
def list_assistants(store: LocalStore = Depends(get_store)):
    return store.assistants


@router.post("", response_model=list[str], status_code=status.HTTP_201_CREATED)
def add_assistant(payload: AssistantIn, store: LocalStore = Depends(get_store)):
    return _update(store, lambda names: tree.add_assistant(names, payload.name))


@router.put("/{name}", response_model=list[str])
def rename_assistant(name: str, payload: AssistantRename, store: LocalStore = Depends(get_store)):
    assistants = _update(store, lambda names: tree.rename_assistant(names, name, payload.new_name))
    _reassign(store, name, payload.new_name.strip())
    return assistants


@router.delete("/{name}", response_model=list[str])
def remove_assistant(name: str, store: LocalStore = Depends(get_store)):
    assistants = _update(store, lambda names: tree.remove_assistant(names, name))
    _reassign(store, name, UNASSIGNED)
    return assistants
