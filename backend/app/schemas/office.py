"""
Office document: the nested client tree plus the flat collections.

Attributes are snake_case; the stored/exported JSON uses camelCase aliases
(`updated_at` keeps its snake name in both shapes, like the remote rows).
Models are frozen: updates go through `model_copy(update=...)`.
"""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from app.models.enums import AccountingEntryType, CaseStatus, Importance, InvoiceStatus

UNASSIGNED = "بدون تخصيص"


class DocumentModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    updated_at: dt.datetime | None = Field(default=None, alias="updated_at")


class Session(DocumentModel):
    id: str
    court: str
    case_number: str
    date: dt.datetime
    client_name: str
    opponent_name: str
    is_postponed: bool = False
    postponement_reason: str = ""  # why this session exists (reason of the previous postponement)
    next_postponement_reason: str = ""  # why this session was postponed forward
    next_session_date: dt.datetime | None = None
    assignee: str = UNASSIGNED


class Stage(DocumentModel):
    id: str
    court: str
    case_number: str
    first_session_date: dt.datetime | None = None
    sessions: list[Session] = Field(default_factory=list)
    decision_date: dt.datetime | None = None
    decision_number: str = ""
    decision_summary: str = ""
    decision_notes: str = ""

    @property
    def is_decided(self) -> bool:
        return self.decision_date is not None


class Case(DocumentModel):
    id: str
    subject: str
    client_name: str
    opponent_name: str
    fee_agreement: str = ""
    status: CaseStatus = CaseStatus.ACTIVE
    stages: list[Stage] = Field(default_factory=list)


class Client(DocumentModel):
    id: str
    name: str
    contact_info: str = ""
    cases: list[Case] = Field(default_factory=list)


class AdminTask(DocumentModel):
    id: str
    task: str
    due_date: dt.datetime
    completed: bool = False
    importance: Importance = Importance.NORMAL
    assignee: str = UNASSIGNED
    location: str = ""


class Appointment(DocumentModel):
    id: str
    title: str
    time: str = "00:00"
    date: dt.datetime
    importance: Importance = Importance.NORMAL
    notified: bool = False
    reminder_time_in_minutes: int | None = None
    assignee: str = UNASSIGNED


class AccountingEntry(DocumentModel):
    id: str
    type: AccountingEntryType = AccountingEntryType.INCOME
    amount: float = 0
    date: dt.datetime
    description: str = ""
    client_id: str = ""
    case_id: str = ""
    client_name: str = ""


class InvoiceItem(DocumentModel):
    id: str
    description: str = ""
    amount: float = 0


class Invoice(DocumentModel):
    id: str
    client_id: str = ""
    client_name: str = ""
    case_id: str = ""
    case_subject: str = ""
    issue_date: dt.datetime
    due_date: dt.datetime
    items: list[InvoiceItem] = Field(default_factory=list)
    tax_rate: float = 0  # percent
    discount: float = 0
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: str = ""

    @computed_field
    @property
    def subtotal(self) -> float:
        return sum(item.amount for item in self.items)

    @computed_field
    @property
    def tax_amount(self) -> float:
        return self.subtotal * self.tax_rate / 100

    @computed_field
    @property
    def total(self) -> float:
        return self.subtotal + self.tax_amount - self.discount


class AppData(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    clients: list[Client] = Field(default_factory=list)
    admin_tasks: list[AdminTask] = Field(default_factory=list)
    appointments: list[Appointment] = Field(default_factory=list)
    accounting_entries: list[AccountingEntry] = Field(default_factory=list)
    invoices: list[Invoice] = Field(default_factory=list)
    assistants: list[str] = Field(default_factory=lambda: [UNASSIGNED])


class SessionView(Session):
    """A row of the flat all-sessions list: the session plus its stage linkage."""

    stage_id: str
    stage_decision_date: dt.datetime | None = None
