"""Logging setup: console output plus daily-rotated files under LOG_DIR."""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%SZ"

AUDIT_LOGGER_NAME = "app.audit"

audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = TimedRotatingFileHandler(
        path, when="midnight", backupCount=0, encoding="utf-8", utc=True
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    return handler


def configure_logging(settings: "Settings") -> None:
    """
    Configure root and audit loggers once at startup.

    Console always; when LOG_DIR is set also app.log (everything), error.log
    (ERROR and above) and auth.log (audit events only).
    """
    level = logging.getLevelName(settings.LOG_LEVEL)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stdout,
        force=True,
    )
    for noisy in ("httpx", "httpcore", "multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    if not settings.LOG_DIR:
        return
    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.addHandler(_file_handler(log_dir / "app.log", level))
    root.addHandler(_file_handler(log_dir / "error.log", logging.ERROR))
    # Audit records still propagate to root, so they also land in app.log.
    audit_logger.addHandler(_file_handler(log_dir / "auth.log", logging.INFO))


def audit(action: str, user_id: Any, **fields: Any) -> None:
    """Record an authentication event (login, logout, password change...)."""
    extra = " ".join(f"{k}={v}" for k, v in sorted(fields.items()))
    audit_logger.info(
        "Auth: %s - User: %s%s", action, user_id, f" {extra}" if extra else ""
    )
