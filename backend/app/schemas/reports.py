from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.enums import CaseStatus
from app.schemas.office import AccountingEntry, Case


class ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Totals(ReportModel):
    income: float = 0
    expense: float = 0
    balance: float = 0


class FinancialReport(ReportModel):
    totals: Totals
    entries: list[AccountingEntry]  # newest first


class CaseRow(ReportModel):
    id: str
    subject: str
    client_id: str
    client_name: str
    opponent_name: str
    status: CaseStatus


class StatusCount(ReportModel):
    status: CaseStatus
    name: str  # display label
    value: int


class CaseStatusReport(ReportModel):
    cases: list[CaseRow]
    breakdown: list[StatusCount]


class ClientActivityReport(ReportModel):
    client_id: str
    client_name: str
    cases: list[Case]
    entries: list[AccountingEntry]
    totals: Totals


class ChartPoint(ReportModel):
    name: str
    value: int | float


class AnalyticsReport(ReportModel):
    top_clients_by_cases: list[ChartPoint]
    top_clients_by_income: list[ChartPoint]
    top_cases_by_income: list[ChartPoint]
    longest_cases: list[ChartPoint]  # days
