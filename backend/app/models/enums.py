from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"


# Document enums keep the lowercase wire values used in stored/exported JSON.
# The first member of each is the fallback for invalid input.


class CaseStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    ON_HOLD = "on_hold"


class Importance(str, enum.Enum):
    NORMAL = "normal"
    IMPORTANT = "important"
    URGENT = "urgent"


class AccountingEntryType(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class SessionState(str, enum.Enum):
    OPEN = "open"
    POSTPONED = "postponed"
    DECIDED = "decided"


class SyncStatus(str, enum.Enum):
    LOADING = "loading"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"
    UNCONFIGURED = "unconfigured"
    UNINITIALIZED = "uninitialized"


class ChangeSource(str, enum.Enum):
    USER = "user"
    IMPORT = "import"
    SYNC = "sync"


class NotificationType(str, enum.Enum):
    UNPOSTPONED_SESSION = "UNPOSTPONED_SESSION"
    APPOINTMENT_REMINDER = "APPOINTMENT_REMINDER"
