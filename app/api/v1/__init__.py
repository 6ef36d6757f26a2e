"""API routes."""

from fastapi import APIRouter

from app.api.v1 import auth, health
from app.schemas.common import ErrorResponse

ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404)
}

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"], responses=ERROR_RESPONSES)
