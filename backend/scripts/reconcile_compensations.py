import asyncio
import logging
import sys
from pathlib import Path

"""
Apply unresolved pending compensations.

A fallback-mode cook that loses a stock race credits back the decrements it
already made; credits that fail are stored in `pending_compensations`. This
script restores them and marks them resolved. Safe to run repeatedly.

Run from backend/: `python scripts/reconcile_compensations.py`
"""

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.config import settings
from core.logging_config import configure_logging
from db.database import async_session_maker
from services.compensation import apply_pending_compensations, list_unresolved

logger = logging.getLogger("reconcile_compensations")


async def main() -> None:
    configure_logging(settings.log_level)
    async with async_session_maker() as db:
        pending = await list_unresolved(db)
        if not pending:
            logger.info("No pending compensations.")
            return
        logger.info("Found %s pending compensation(s)", len(pending))
        applied = await apply_pending_compensations(db)
    logger.info("Done. Compensations applied: %s.", applied)


if __name__ == "__main__":
    asyncio.run(main())
