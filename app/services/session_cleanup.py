"""Session cleanup: delete refresh-token rows whose JWT has already expired."""

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.models import RefreshToken

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def purge_expired_sessions(
    session: Session,
    settings: "Settings",
    now: datetime | None = None,
) -> int:
    """
    Delete stored refresh tokens older than JWT_REFRESH_EXPIRE_DAYS. Those tokens can no
    longer verify, so the rows only take up slots. Idempotent: safe to run repeatedly.

    Returns the number of rows deleted.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)
    deleted_count = (
        session.query(RefreshToken)
        .filter(RefreshToken.created_at < cutoff)
        .delete(synchronize_session=False)
    )
    session.commit()

    if deleted_count > 0:
        logger.info(
            "Session cleanup: cutoff=%s, sessions_deleted=%s",
            cutoff.isoformat(),
            deleted_count,
        )
    return deleted_count
