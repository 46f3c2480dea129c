from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.api.deps import get_optional_user, require_auth
from app.core.config import settings
from app.core.security import create_access_token, create_csrf_token
from app.db.session import get_db
from app.models.user import User
from app.schemas.auth import LoginRequest, UserOut
from app.services.activity_log import log_activity
from app.services.users import authenticate_user

router = APIRouter()


@router.post("/login", response_model=UserOut)
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = authenticate_user(db, payload.username, payload.password)
    token = create_access_token(subject=str(user.id))
    csrf = create_csrf_token()
    # SameSite=None so cookie is sent on cross-origin requests (separate frontend/API hosts).
    samesite = "none" if settings.environment == "production" else "lax"
    response.set_cookie(
        settings.jwt_cookie_name,
        token,
        httponly=True,
        secure=settings.environment == "production",
        samesite=samesite,
        max_age=settings.jwt_expires_minutes * 60,
        path="/",
    )
    # CSRF token cookie (readable by JS, must be echoed in X-CSRF-Token header for unsafe methods in production).
    response.set_cookie(
        settings.csrf_cookie_name,
        csrf,
        httponly=False,
        secure=settings.environment == "production",
        samesite=samesite,
        max_age=settings.jwt_expires_minutes * 60,
        path="/",
    )
    log_activity(db, action="login", entity_type="user", entity_id=str(user.id), user_id=user.id)
    return UserOut(id=user.id, username=user.username, role=user.role.value, csrf_token=csrf)


@router.post("/logout")
def logout(
    response: Response,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_optional_user),
):
    if user is not None:
        log_activity(db, action="logout", entity_type="user", entity_id=str(user.id), user_id=user.id)
    response.delete_cookie(settings.jwt_cookie_name, path="/")
    response.delete_cookie(settings.csrf_cookie_name, path="/")
    return {"ok": True}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(require_auth)):
    return UserOut(id=user.id, username=user.username, role=user.role.value)
