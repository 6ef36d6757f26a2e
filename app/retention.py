"""
CLI entrypoint for the log retention job. Run from cron, e.g.:

  python -m app.retention

Or daily: 0 3 * * * cd /path/to/accounts-api && .venv/bin/python -m app.retention
"""

import logging
import sys

from app.core.config import get_settings
from app.services.log_retention import run_log_retention

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Run retention: delete log files older than LOG_RETENTION_DAYS."""
    settings = get_settings()
    try:
        files_deleted = run_log_retention(settings)
        logger.info("Log retention completed: files_deleted=%s", files_deleted)
        return 0
    except Exception as e:
        logger.exception("Log retention job failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
