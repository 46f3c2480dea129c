"""
Office reports computed from the document: financial summary, case status
breakdown, per-client activity and the analytics charts.
"""

from __future__ import annotations

import datetime as dt
import math
from collections import Counter, defaultdict
from collections.abc import Iterable

from app.models.enums import AccountingEntryType, CaseStatus
from app.schemas.office import AccountingEntry, AppData
from app.schemas.reports import (
    AnalyticsReport,
    CaseRow,
    CaseStatusReport,
    ChartPoint,
    ClientActivityReport,
    FinancialReport,
    StatusCount,
    Totals,
)
from app.services.court_calendar import as_date
from app.services.tree import find_client

UNKNOWN_CLIENT = "غير معروف"
OTHERS = "آخرون"
DELETED_CASE = "قضية محذوفة"

STATUS_LABELS = {
    CaseStatus.ACTIVE: "نشطة",
    CaseStatus.CLOSED: "مغلقة",
    CaseStatus.ON_HOLD: "معلقة",
}

TOP_CLIENTS_BY_CASES = 7
TOP_CLIENTS_BY_INCOME = 5
TOP_CASES = 10
MAX_CASE_NAME = 40


def totals(entries: Iterable[AccountingEntry]) -> Totals:
    income = expense = 0.0
    for entry in entries:
        if entry.type is AccountingEntryType.INCOME:
            income += entry.amount
        else:
            expense += entry.amount
    return Totals(income=income, expense=expense, balance=income - expense)


def _newest_first(entries: Iterable[AccountingEntry]) -> list[AccountingEntry]:
    return sorted(entries, key=lambda e: e.date, reverse=True)


def financial_summary(
    doc: AppData,
    start_date: dt.date | None = None,
    end_date: dt.date | None = None,
    client_id: str | None = None,
) -> FinancialReport:
    """Income, expense and balance of the entries dated within [start_date, end_date] (whole days)."""
    if start_date and end_date and end_date < start_date:
        raise ValueError("end_date must be >= start_date")

    def keep(entry: AccountingEntry) -> bool:
        day = as_date(entry.date)
        if start_date and day < start_date:
            return False
        if end_date and day > end_date:
            return False
        return not client_id or entry.client_id == client_id

    entries = [e for e in doc.accounting_entries if keep(e)]
    return FinancialReport(totals=totals(entries), entries=_newest_first(entries))


def case_status_breakdown(doc: AppData, client_id: str | None = None) -> CaseStatusReport:
    rows = [
        CaseRow(
            id=case.id,
            subject=case.subject,
            client_id=client.id,
            client_name=client.name,
            opponent_name=case.opponent_name,
            status=case.status,
        )
        for client in doc.clients
        if not client_id or client.id == client_id
        for case in client.cases
    ]
    # Only statuses that occur, in first-seen order.
    counts = Counter(row.status for row in rows)
    return CaseStatusReport(
        cases=rows,
        breakdown=[StatusCount(status=s, name=STATUS_LABELS[s], value=n) for s, n in counts.items()],
    )


def client_activity(doc: AppData, client_id: str) -> ClientActivityReport:
    """Raises `EntityNotFoundError` for an unknown client."""
    client = find_client(doc.clients, client_id)
    entries = [e for e in doc.accounting_entries if e.client_id == client.id]
    return ClientActivityReport(
        client_id=client.id,
        client_name=client.name,
        cases=client.cases,
        entries=_newest_first(entries),
        totals=totals(entries),
    )


def _ranked(points: Iterable[ChartPoint]) -> list[ChartPoint]:
    return sorted(points, key=lambda p: p.value, reverse=True)


def _income_by(doc: AppData, attr: str) -> dict[str, float]:
    income: dict[str, float] = defaultdict(float)
    for entry in doc.accounting_entries:
        key = getattr(entry, attr)
        if entry.type is AccountingEntryType.INCOME and key:
            income[key] += entry.amount
    return income


def _case_name(client_name: str, subject: str) -> str:
    name = f"{client_name} - {subject}"
    return name[:37] + "..." if len(name) > MAX_CASE_NAME else name


def _duration_days(dates: list[dt.datetime]) -> int:
    # Inclusive day count between the first and the last session, rounded half up.
    return math.floor((max(dates) - min(dates)).total_seconds() / 86400 + 0.5) + 1


def analytics(doc: AppData) -> AnalyticsReport:
    by_cases = _ranked(ChartPoint(name=c.name, value=len(c.cases)) for c in doc.clients if c.cases)

    names = {c.id: c.name for c in doc.clients}
    by_income = _ranked(
        ChartPoint(name=names.get(cid, UNKNOWN_CLIENT), value=v) for cid, v in _income_by(doc, "client_id").items()
    )
    top_clients = by_income[:TOP_CLIENTS_BY_INCOME]
    if len(by_income) > TOP_CLIENTS_BY_INCOME:
        top_clients.append(ChartPoint(name=OTHERS, value=sum(p.value for p in by_income[TOP_CLIENTS_BY_INCOME:])))

    cases = {case.id: case for client in doc.clients for case in client.cases}
    by_case = []
    for case_id, value in _income_by(doc, "case_id").items():
        case = cases.get(case_id)
        name = _case_name(case.client_name, case.subject) if case else DELETED_CASE
        by_case.append(ChartPoint(name=name, value=value))

    durations = []
    for case in cases.values():
        if case.status is not CaseStatus.CLOSED:
            continue
        dates = [session.date for stage in case.stages for session in stage.sessions]
        if len(dates) >= 2:
            durations.append(ChartPoint(name=case.subject, value=_duration_days(dates)))

    return AnalyticsReport(
        top_clients_by_cases=by_cases[:TOP_CLIENTS_BY_CASES],
        top_clients_by_income=top_clients,
        top_cases_by_income=_ranked(by_case)[:TOP_CASES],
        longest_cases=_ranked(durations)[:TOP_CASES],
    )
