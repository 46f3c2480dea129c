"""
Session postponement workflow.

States per session:
- open: not postponed, its stage has no decision.
- postponed: a next date/reason has been recorded.
- decided: the owning stage has a decision date. Terminal.

`transition` validates a postponement request against one session and returns
the updated session plus the follow-up session to create on the same stage.
Validation order:
  1. decided stage  -> hard block
  2. already postponed / past session without override -> not eligible
  3. missing date or reason
  4. next date not strictly after the session date (date only)
  5. weekend or public holiday -> requires explicit confirmation
"""

from __future__ import annotations

import datetime as dt
import enum
import logging
from dataclasses import dataclass

from app.models.enums import SessionState
from app.schemas.office import Client, Session, Stage
from app.services import court_calendar, tree
from app.services.sanitize import new_id

logger = logging.getLogger(__name__)


class RejectionCode(str, enum.Enum):
    STAGE_DECIDED = "stage_decided"
    ALREADY_POSTPONED = "already_postponed"
    PAST_SESSION = "past_session"
    MISSING_DATE = "missing_date"
    MISSING_REASON = "missing_reason"
    DATE_NOT_AFTER_SESSION = "date_not_after_session"


REJECTION_MESSAGES: dict[RejectionCode, str] = {
    RejectionCode.STAGE_DECIDED: "تم الحكم في هذه المرحلة، لا يمكن ترحيل جلساتها.",
    RejectionCode.ALREADY_POSTPONED: "تم ترحيل هذه الجلسة مسبقاً.",
    RejectionCode.PAST_SESSION: "لا يمكن ترحيل جلسة سابقة من هذه الشاشة.",
    RejectionCode.MISSING_DATE: "يرجى إدخال تاريخ الجلسة القادمة.",
    RejectionCode.MISSING_REASON: "يرجى إدخال سبب التأجيل.",
    RejectionCode.DATE_NOT_AFTER_SESSION: "تاريخ الجلسة القادمة يجب أن يكون بعد تاريخ الجلسة الحالية.",
}


class PostponementRejected(ValueError):
    def __init__(self, code: RejectionCode):
        super().__init__(REJECTION_MESSAGES[code])
        self.code = code
        self.message = REJECTION_MESSAGES[code]


class ConfirmationRequired(Exception):
    """The next date is a weekend/holiday; resend with `confirmed=True` to proceed."""

    def __init__(self, warning: str):
        super().__init__(warning)
        self.warning = warning


@dataclass(frozen=True)
class PostponeRequest:
    next_date: dt.datetime | None
    reason: str
    confirmed: bool = False
    # Only the historical backfill views may postpone sessions dated before today.
    allow_past: bool = False


@dataclass(frozen=True)
class PostponementResult:
    state: SessionState
    session: Session
    next_session: Session
    warning: str | None = None


def session_state(session: Session, stage: Stage) -> SessionState:
    if stage.is_decided:
        return SessionState.DECIDED
    if session.is_postponed:
        return SessionState.POSTPONED
    return SessionState.OPEN


def can_show_postponement(
    session: Session, stage: Stage, *, today: dt.date | None = None, allow_past: bool = False
) -> bool:
    """Whether the row offers postponement inputs."""
    if session_state(session, stage) is not SessionState.OPEN:
        return False
    return allow_past or not court_calendar.is_before_today(session.date, today)


def needs_postponement(session: Session, stage: Stage, *, today: dt.date | None = None) -> bool:
    """Open session whose date has passed: still waits for a next date."""
    return session_state(session, stage) is SessionState.OPEN and court_calendar.is_before_today(session.date, today)


def transition(
    session: Session, stage: Stage, request: PostponeRequest, *, today: dt.date | None = None
) -> PostponementResult:
    state = session_state(session, stage)
    if state is SessionState.DECIDED:
        raise PostponementRejected(RejectionCode.STAGE_DECIDED)
    if state is SessionState.POSTPONED:
        raise PostponementRejected(RejectionCode.ALREADY_POSTPONED)
    if not can_show_postponement(session, stage, today=today, allow_past=request.allow_past):
        raise PostponementRejected(RejectionCode.PAST_SESSION)

    if request.next_date is None:
        raise PostponementRejected(RejectionCode.MISSING_DATE)
    reason = (request.reason or "").strip()
    if not reason:
        raise PostponementRejected(RejectionCode.MISSING_REASON)
    if court_calendar.as_date(request.next_date) <= court_calendar.as_date(session.date):
        raise PostponementRejected(RejectionCode.DATE_NOT_AFTER_SESSION)

    warning = court_calendar.non_working_day_warning(request.next_date)
    if warning and not request.confirmed:
        raise ConfirmationRequired(warning)

    now = dt.datetime.now().replace(microsecond=0)
    postponed = session.model_copy(
        update={
            "is_postponed": True,
            "next_session_date": request.next_date,
            "next_postponement_reason": reason,
            "updated_at": now,
        }
    )
    follow_up = session.model_copy(
        update={
            "id": new_id("session"),
            "date": request.next_date,
            "is_postponed": False,
            "postponement_reason": reason,
            "next_postponement_reason": "",
            "next_session_date": None,
            "updated_at": now,
        }
    )
    return PostponementResult(state=SessionState.POSTPONED, session=postponed, next_session=follow_up, warning=warning)


def postpone_session(
    clients: list[Client], session_id: str, request: PostponeRequest, *, today: dt.date | None = None
) -> tuple[list[Client], PostponementResult]:
    """Applies a postponement to the tree: updates the session and appends the follow-up to its stage."""
    loc = tree.find_session(clients, session_id)
    result = transition(loc.session, loc.stage, request, today=today)

    def _apply(sessions: list[Session]) -> list[Session]:
        return [result.session if s.id == session_id else s for s in sessions] + [result.next_session]

    updated = tree.replace_sessions(clients, loc.stage.id, _apply)
    logger.info(
        "session postponed: session=%s stage=%s next_session=%s next_date=%s",
        session_id,
        loc.stage.id,
        result.next_session.id,
        result.next_session.date.date(),
    )
    return updated, result
