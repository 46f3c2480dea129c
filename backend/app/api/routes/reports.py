from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_store
from app.schemas.reports import AnalyticsReport, CaseStatusReport, ClientActivityReport, FinancialReport
from app.services import reports, tree
from app.services.local_store import LocalStore

router = APIRouter()


@router.get("/financial", response_model=FinancialReport)
def financial(
    start_date: dt.date | None = Query(default=None),
    end_date: dt.date | None = Query(default=None),
    client_id: str | None = Query(default=None),
    store: LocalStore = Depends(get_store),
):
    try:
        return reports.financial_summary(store.data, start_date, end_date, client_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/cases", response_model=CaseStatusReport)
def case_status(client_id: str | None = Query(default=None), store: LocalStore = Depends(get_store)):
    return reports.case_status_breakdown(store.data, client_id)


@router.get("/clients/{client_id}", response_model=ClientActivityReport)
def client_activity(client_id: str, store: LocalStore = Depends(get_store)):
    try:
        return reports.client_activity(store.data, client_id)
    except tree.EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/analytics", response_model=AnalyticsReport)
def analytics(store: LocalStore = Depends(get_store)):
    return reports.analytics(store.data)
