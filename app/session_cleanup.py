"""
CLI entrypoint for the expired-session cleanup job. Run from cron, e.g.:

  python -m app.session_cleanup

Or daily: 15 3 * * * cd /path/to/digital-growth-api && .venv/bin/python -m app.session_cleanup
"""

import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.session_cleanup import purge_expired_sessions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete refresh tokens older than JWT_REFRESH_EXPIRE_DAYS."""
    settings = get_settings()
    db = SessionLocal()
    try:
        deleted = purge_expired_sessions(db, settings)
        logger.info("Session cleanup completed: sessions_deleted=%s", deleted)
        return 0
    except Exception as e:
        logger.exception("Session cleanup failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
