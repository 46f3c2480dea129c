"""Request/response bodies of the office API (snake_case JSON)."""

from __future__ import annotations

import datetime as dt
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

from app.models.enums import CaseStatus, SessionState, SyncStatus
from app.schemas.common import ApiModel, PatchModel
from app.schemas.office import UNASSIGNED, Session
from app.services.sanitize import parse_datetime

# Stored dates are naive (UTC for aware input).
DocDatetime = Annotated[dt.datetime, AfterValidator(parse_datetime)]


class ClientCreate(ApiModel):
    name: str = Field(min_length=1, max_length=200)
    contact_info: str = ""


class ClientUpdate(PatchModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    contact_info: str | None = None


class CaseCreate(ApiModel):
    subject: str = Field(min_length=1)
    opponent_name: str = ""
    fee_agreement: str = ""
    status: CaseStatus = CaseStatus.ACTIVE


class CaseUpdate(PatchModel):
    subject: str | None = None
    client_name: str | None = None
    opponent_name: str | None = None
    fee_agreement: str | None = None
    status: CaseStatus | None = None


class StageCreate(ApiModel):
    court: str = Field(min_length=1)
    case_number: str = ""
    first_session_date: DocDatetime | None = None


class StageUpdate(PatchModel):
    nullable_fields = frozenset({"first_session_date"})

    court: str | None = None
    case_number: str | None = None
    first_session_date: DocDatetime | None = None


class SessionCreate(ApiModel):
    date: DocDatetime
    assignee: str = UNASSIGNED


class SessionUpdate(PatchModel):
    nullable_fields = frozenset({"next_session_date"})

    court: str | None = None
    case_number: str | None = None
    date: DocDatetime | None = None
    client_name: str | None = None
    opponent_name: str | None = None
    assignee: str | None = None
    postponement_reason: str | None = None
    is_postponed: bool | None = None
    next_session_date: DocDatetime | None = None
    next_postponement_reason: str | None = None


class DecisionRequest(ApiModel):
    # Defaults to the date of `session_id` when omitted.
    decision_date: DocDatetime | None = None
    session_id: str | None = None
    decision_number: str = ""
    decision_summary: str = ""
    decision_notes: str = ""


class PostponeIn(ApiModel):
    next_date: DocDatetime | None = None
    reason: str = ""
    confirmed: bool = False
    allow_past: bool = False


class PostponementStateOut(BaseModel):
    session_id: str
    state: SessionState
    can_postpone: bool
    needs_postponement: bool


class PostponeOut(BaseModel):
    state: SessionState
    session: Session
    next_session: Session
    warning: str | None = None


class AssistantIn(ApiModel):
    name: str = Field(min_length=1, max_length=100)


class AssistantRename(ApiModel):
    new_name: str = Field(min_length=1, max_length=100)


class SyncRequest(ApiModel):
    initial_pull: bool = False


class SyncStatusOut(BaseModel):
    status: SyncStatus
    last_error: str | None = None
    is_dirty: bool
    is_busy: bool
    configured: bool
    last_synced_at: dt.datetime | None = None
