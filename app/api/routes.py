from fastapi import APIRouter

from app.api.v1.auth import router as auth_router
from app.api.v1.dashboard import router as dashboard_router
from app.api.v1.emails import router as emails_router
from app.api.v1.logs import router as logs_router
from app.api.v1.tags import router as tags_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(emails_router, prefix="/emails", tags=["emails"])
api_router.include_router(tags_router, prefix="/tags", tags=["tags"])
api_router.include_router(logs_router, prefix="/logs", tags=["logs"])


@api_router.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    return {"status": "ok"}
