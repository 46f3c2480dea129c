from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session as DbSession

from app.api.deps import get_store, require_auth
from app.db.session import get_db
from app.models.user import User
from app.schemas.requests import PostponeIn, PostponementStateOut, PostponeOut
from app.services import postponement, tree
from app.services.activity_log import log_activity
from app.services.local_store import LocalStore

router = APIRouter()


def _locate(store: LocalStore, session_id: str) -> tree.SessionLocation:
    try:
        return tree.find_session(store.clients, session_id)
    except tree.EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{session_id}/postponement", response_model=PostponementStateOut)
def get_postponement_state(session_id: str, allow_past: bool = False, store: LocalStore = Depends(get_store)):
    loc = _locate(store, session_id)
    return PostponementStateOut(
        session_id=session_id,
        state=postponement.session_state(loc.session, loc.stage),
        can_postpone=postponement.can_show_postponement(loc.session, loc.stage, allow_past=allow_past),
        needs_postponement=postponement.needs_postponement(loc.session, loc.stage),
    )


@router.post("/{session_id}/postpone", response_model=PostponeOut)
def postpone(
    session_id: str,
    payload: PostponeIn,
    store: LocalStore = Depends(get_store),
    db: DbSession = Depends(get_db),
    user: User = Depends(require_auth),
):
    """
    400: the request is invalid for this session (`detail.code` says why).
    409: the next date is a weekend/holiday; resend with `confirmed=true`.
    """
    _locate(store, session_id)
    request = postponement.PostponeRequest(
        next_date=payload.next_date,
        reason=payload.reason,
        confirmed=payload.confirmed,
        allow_past=payload.allow_past,
    )
    outcome: list[postponement.PostponementResult] = []

    def _apply(clients):
        updated, result = postponement.postpone_session(clients, session_id, request)
        outcome.append(result)
        return updated

    try:
        store.set_clients(_apply)
    except postponement.PostponementRejected as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail={"code": e.code.value, "message": e.message}
        )
    except postponement.ConfirmationRequired as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail={"code": "confirmation_required", "message": e.warning}
        )

    result = outcome[0]
    log_activity(
        db,
        action="session_postpone",
        entity_type="session",
        entity_id=session_id,
        user_id=user.id,
        details={"next_session_id": result.next_session.id, "next_date": result.next_session.date.isoformat()},
    )
    return PostponeOut(
        state=result.state, session=result.session, next_session=result.next_session, warning=result.warning
    )
