"""GET {API_PREFIX}/health: liveness, environment and database reachability."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_app_settings
from app.core.config import Settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> HealthResponse:
    """Report status "ok" with the current environment, DB state and server time."""
    db_status = "connected" if check_db_connected(db) else "disconnected"

    return HealthResponse(
        environment=settings.APP_ENV,
        database=db_status,
        timestamp=datetime.now(UTC),
    )
