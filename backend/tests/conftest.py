"""Pytest fixtures for CaseDesk tests."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.session import Base

# Ensure all models are loaded for create_all
from app.models import activity_log, backup, notification, storage_item, user  # noqa: F401
from app.services import store_registry
from app.services.local_store import LocalStore
from app.services.storage import DocumentStorage


@pytest.fixture(scope="function")
def session_factory():
    """In-memory SQLite with all tables; one shared connection so every session sees the same data."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(session_factory) -> DocumentStorage:
    return DocumentStorage(session_factory)


@pytest.fixture
def store(storage) -> LocalStore:
    s = LocalStore(storage, "owner-1")
    s.load()
    return s


@pytest.fixture(autouse=True)
def _reset_store_registry():
    yield
    store_registry.clear()


@pytest.fixture
def raw_document() -> dict:
    """A small camelCase document as the browser stored it."""
    return {
        "clients": [
            {
                "id": "client-1",
                "name": "سامر الأحمد",
                "contactInfo": "0999000000",
                "updated_at": "2024-05-01T10:00:00.000Z",
                "cases": [
                    {
                        "id": "case-1",
                        "subject": "دعوى إيجار",
                        "clientName": "سامر الأحمد",
                        "opponentName": "خالد",
                        "feeAgreement": "",
                        "status": "active",
                        "stages": [
                            {
                                "id": "stage-1",
                                "court": "محكمة البداية",
                                "caseNumber": "123/2024",
                                "firstSessionDate": "2024-05-10T00:00:00.000Z",
                                "sessions": [
                                    {
                                        "id": "session-1",
                                        "court": "محكمة البداية",
                                        "caseNumber": "123/2024",
                                        "date": "2024-05-10T00:00:00.000Z",
                                        "clientName": "سامر الأحمد",
                                        "opponentName": "خالد",
                                        "isPostponed": False,
                                        "assignee": "أحمد",
                                    }
                                ],
                            }
                        ],
                    }
                ],
            }
        ],
        "adminTasks": [
            {"id": "task-1", "task": "مراجعة ملف", "dueDate": "2024-05-12T00:00:00Z", "importance": "urgent"}
        ],
        "appointments": [
            {"id": "apt-1", "title": "لقاء موكل", "time": "10:30", "date": "2024-05-11T00:00:00Z"}
        ],
        "accountingEntries": [
            {"id": "acc-1", "type": "income", "amount": 500, "date": "2024-05-02T00:00:00Z", "clientId": "client-1"}
        ],
        "invoices": [
            {
                "id": "inv-1",
                "clientId": "client-1",
                "issueDate": "2024-05-03T00:00:00Z",
                "dueDate": "2024-06-03T00:00:00Z",
                "items": [{"id": "item-1", "description": "أتعاب", "amount": 1000}],
                "taxRate": 10,
                "discount": 50,
            }
        ],
        "assistants": ["أحمد", "فاطمة", "بدون تخصيص"],
    }
