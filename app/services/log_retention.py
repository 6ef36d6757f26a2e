"""Log retention: delete log files older than LOG_RETENTION_DAYS."""

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def run_log_retention(settings: "Settings", now: float | None = None) -> int:
    """
    Delete *.log files (including rotated ones like app.log.2025-01-01) in
    LOG_DIR whose modification time is older than LOG_RETENTION_DAYS.

    Returns the number of files deleted. Idempotent: safe to run repeatedly.
    """
    if not settings.LOG_DIR:
        logger.info("File logging is disabled (LOG_DIR empty); skipping.")
        return 0
    log_dir = Path(settings.LOG_DIR)
    if not log_dir.is_dir():
        return 0

    now = time.time() if now is None else now
    cutoff = now - settings.LOG_RETENTION_DAYS * SECONDS_PER_DAY
    deleted_count = 0
    for path in sorted(log_dir.iterdir()):
        if not path.is_file() or ".log" not in path.name:
            continue
        if path.stat().st_mtime < cutoff:
            path.unlink()
            deleted_count += 1
            logger.debug("Deleted old log: %s", path.name)

    if deleted_count > 0:
        logger.info(
            "Log retention run: retention_days=%s, files_deleted=%s",
            settings.LOG_RETENTION_DAYS,
            deleted_count,
        )
    return deleted_count
