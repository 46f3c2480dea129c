from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import decode_access_token
from app.db.session import get_db
from app.models.user import User
from app.services import store_registry
from app.services.local_store import LocalStore, SyncTracker
from app.services.storage import DocumentStorage
from app.services.sync import SyncService


def _user_from_cookie(request: Request, db: Session) -> User | None:
    token = request.cookies.get(settings.jwt_cookie_name)
    if not token:
        return None
    try:
        payload = decode_access_token(token)
        user_id = int(payload.sub)
    except (JWTError, KeyError, ValueError):
        return None
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        return None
    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    if not request.cookies.get(settings.jwt_cookie_name):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    user = _user_from_cookie(request, db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    return user


def require_auth(user: User = Depends(get_current_user)) -> User:
    return user


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> User | None:
    """
    Best-effort auth: returns User if cookie is present & valid, otherwise None.
    """
    return _user_from_cookie(request, db)


def get_storage() -> DocumentStorage:
    return store_registry.default_storage()


def get_store(user: User = Depends(require_auth), storage: DocumentStorage = Depends(get_storage)) -> LocalStore:
    store, _ = store_registry.get_store(user.owner_id, storage)
    return store


def get_sync_tracker(user: User = Depends(require_auth), storage: DocumentStorage = Depends(get_storage)) -> SyncTracker:
    _, tracker = store_registry.get_store(user.owner_id, storage)
    return tracker


def get_sync_service(user: User = Depends(require_auth), storage: DocumentStorage = Depends(get_storage)) -> SyncService:
    return store_registry.get_sync_service(user.owner_id, user.remote_owner_id, storage)
