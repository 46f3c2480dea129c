from fastapi import APIRouter

from app.api.routes import (
    activity,
    assistants,
    auth,
    backups,
    clients,
    collections,
    data,
    notifications,
    reports,
    sessions,
    sync,
    tasks,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(data.router, prefix="/data", tags=["data"])
api_router.include_router(clients.router, tags=["clients"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(assistants.router, prefix="/assistants", tags=["assistants"])
api_router.include_router(collections.router, prefix="/collections", tags=["collections"])
api_router.include_router(backups.router, prefix="/backups", tags=["backups"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(activity.router, prefix="/activity", tags=["activity"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
