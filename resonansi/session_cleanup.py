"""
CLI entrypoint for the expired-session cleanup job. Run from cron, e.g.:

  python -m resonansi.session_cleanup

Or hourly: 0 * * * * cd /path/to/resonansi && .venv/bin/python -m resonansi.session_cleanup
"""

import logging
import sys

from resonansi.core.config import get_settings
from resonansi.core.database import build_session_factory
from resonansi.services.sessions import purge_expired_sessions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete session records whose expiry has passed."""
    settings = get_settings()
    db = build_session_factory(settings)()
    try:
        sessions_deleted = purge_expired_sessions(db, settings)
        logger.info("Session cleanup completed: sessions_deleted=%s", sessions_deleted)
        return 0
    except Exception as e:
        logger.exception("Session cleanup failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
