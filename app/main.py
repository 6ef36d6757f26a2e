"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
import time
from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.deps import optional_auth
from app.api.v1 import router as api_router
from app.core.config import Settings, get_settings
from app.core.errors import AppError
from app.core.logging import configure_logging
from app.core.security import TokenIssuer
from app.schemas.auth import CurrentUser
from app.services.auth import AuthService
from app.services.media import USER_IMAGE_DIR

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


def _error(status_code: int, message: str, **extra: object) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure in the {success: false, message} envelope."""

    @app.exception_handler(AppError)
    async def handle_app_error(_: Request, exc: AppError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        return _error(status.HTTP_400_BAD_REQUEST, "Validation error", errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            message = "Route not found"
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_middleware(app: FastAPI) -> None:
    """Access log: one line per request with status and duration."""

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "%s %s 500 - %.1fms",
                request.method,
                request.url.path,
                (time.perf_counter() - start) * 1000,
            )
            raise
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Process-Time"] = f"{elapsed_ms / 1000:.4f}"
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "%s %s %s - %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application and its long-lived components.

    The token issuer and auth service are constructed here once and exposed
    through app.state to the request dependencies in app.api.deps.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Accounts API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    issuer = TokenIssuer.from_settings(settings)
    app.state.settings = settings
    app.state.token_issuer = issuer
    app.state.auth_service = AuthService(issuer, bcrypt_rounds=settings.BCRYPT_ROUNDS)

    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_middleware(app)
    register_exception_handlers(app)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    # Stored image paths ("images/users/<file>") double as their URL paths.
    images_dir = Path(settings.MEDIA_ROOT) / USER_IMAGE_DIR.parts[0]
    images_dir.mkdir(parents=True, exist_ok=True)
    app.mount(
        f"/{USER_IMAGE_DIR.parts[0]}",
        StaticFiles(directory=str(images_dir)),
        name="images",
    )

    @app.get("/")
    def root(
        user: Annotated[CurrentUser | None, Depends(optional_auth)],
    ) -> dict[str, object]:
        """Root route; minimal payload for discovery. Echoes the caller when a valid token is sent."""
        return {
            "success": True,
            "message": "Accounts API",
            "version": APP_VERSION,
            "docs": "/docs",
            "health": f"{settings.API_PREFIX}/health",
            "user": user.model_dump() if user else None,
        }

    logger.info(
        "Application configured env=%s api_prefix=%s", settings.APP_ENV, settings.API_PREFIX
    )
    return app


app = create_app()
