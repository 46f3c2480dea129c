from __future__ import annotations

import datetime as dt
import logging

from app.schemas.office import Appointment, Session, SessionView, Stage
from app.services.court_calendar import as_date, is_same_day
from app.services.postponement import needs_postponement

logger = logging.getLogger(__name__)


def _stage_of(view: SessionView) -> Stage:
    # Only the decision date matters for the session state.
    return Stage(id=view.stage_id, court=view.court, case_number=view.case_number, decision_date=view.stage_decision_date)


def unpostponed_sessions(sessions: list[SessionView], today: dt.date | None = None) -> list[SessionView]:
    """Past sessions that were neither postponed nor decided."""
    return [s for s in sessions if needs_postponement(s, _stage_of(s), today=today)]


def sessions_on(sessions: list[SessionView], day: dt.date | dt.datetime) -> list[SessionView]:
    return [s for s in sessions if is_same_day(s.date, day)]


def upcoming_sessions(sessions: list[SessionView], after: dt.date | dt.datetime | None = None) -> list[SessionView]:
    """Sessions strictly after the given day (default today), sorted by date."""
    day = as_date(after) if after is not None else dt.date.today()
    return sorted((s for s in sessions if as_date(s.date) > day), key=lambda s: s.date)


def appointment_start(appointment: Appointment) -> dt.datetime:
    hours, minutes = (int(p) for p in appointment.time.split(":"))
    if hours > 23 or minutes > 59:
        hours, minutes = 0, 0
    return dt.datetime.combine(as_date(appointment.date), dt.time(hours, minutes))


def due_appointment_reminders(appointments: list[Appointment], now: dt.datetime | None = None) -> list[Appointment]:
    """
    Appointments not yet notified whose reminder window has opened and that
    have not started yet.
    """
    now = now or dt.datetime.now()
    due: list[Appointment] = []
    for appointment in appointments:
        if appointment.notified or appointment.reminder_time_in_minutes is None:
            continue
        start = appointment_start(appointment)
        try:
            opens = start - dt.timedelta(minutes=appointment.reminder_time_in_minutes)
        except OverflowError:
            opens = dt.datetime.min
        if opens <= now < start:
            due.append(appointment)
    return due


def describe_session(session: Session) -> str:
    return f"{session.client_name} / {session.opponent_name} - {session.court} ({session.case_number})"
