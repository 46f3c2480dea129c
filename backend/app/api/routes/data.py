from __future__ import annotations

import datetime as dt
from typing import Literal

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_store
from app.schemas.office import AppData, SessionView
from app.services import reminders
from app.services.local_store import LocalStore

router = APIRouter()


@router.get("", response_model=AppData)
def get_document(store: LocalStore = Depends(get_store)):
    return store.data


@router.get("/sessions", response_model=list[SessionView])
def list_sessions(
    view: Literal["all", "unpostponed", "upcoming", "daily"] = "all",
    day: dt.date | None = Query(default=None, description="Day for view=daily (default today)"),
    store: LocalStore = Depends(get_store),
):
    sessions = store.all_sessions
    if view == "unpostponed":
        return reminders.unpostponed_sessions(sessions)
    if view == "upcoming":
        return reminders.upcoming_sessions(sessions)
    if view == "daily":
        return reminders.sessions_on(sessions, day or dt.date.today())
    return sessions
