"""Shared fixtures for tests: settings, in-memory SQLite sessions, app client."""

from collections.abc import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.database import get_db
from app.models import Base

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"


def make_settings(**overrides: object) -> Settings:
    """Settings isolated from the environment and .env; fast bcrypt, no log files."""
    values: dict[str, object] = {
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": ACCESS_SECRET,
        "JWT_REFRESH_SECRET": REFRESH_SECRET,
        "BCRYPT_ROUNDS": 4,
        "LOG_DIR": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database shared across threads (TestClient runs sync routes in a pool)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_client(settings: Settings, session_factory: sessionmaker) -> TestClient:
    """TestClient for create_app(settings) with get_db bound to session_factory."""
    from app.main import create_app

    app = create_app(settings)

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)
