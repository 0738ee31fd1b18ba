"""
Pending compensations.

A fallback cook that loses a race credits back every decrement it already
applied. If one of those credits fails too, the owed quantity is stored here
so `apply_pending_compensations` (see scripts/reconcile_compensations.py) can
restore it later and keep ledger replay exact.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.converters import round4
from db.database import PendingCompensation as PendingCompensationModel, utcnow
from services import ingredient_store

logger = logging.getLogger(__name__)


async def record_pending(
    session_maker: async_sessionmaker,
    *,
    recipe_id: Optional[UUID],
    entries: List[Tuple[UUID, Decimal]],
    error: str,
) -> List[PendingCompensationModel]:
    rows = [
        PendingCompensationModel(
            ingredient_id=ingredient_id,
            quantity=round4(quantity),
            recipe_id=recipe_id,
            error=(error or "")[:500],
        )
        for ingredient_id, quantity in entries
    ]
    try:
        async with session_maker() as db:
            db.add_all(rows)
            await db.commit()
    except Exception:
        # Last resort: the log line is the only record of the owed stock
        logger.exception(
            "Could not persist pending compensations for recipe %s: %s",
            recipe_id,
            [(str(i), str(q)) for i, q in entries],
        )
        return []

    for row in rows:
        logger.error(
            "Ingredient %s is under-credited by %s; pending compensation %s recorded",
            row.ingredient_id, row.quantity, row.id,
        )
    return rows


async def list_unresolved(db: AsyncSession) -> List[PendingCompensationModel]:
    res = await db.execute(
        select(PendingCompensationModel)
        .where(PendingCompensationModel.resolved_at.is_(None))
        .order_by(PendingCompensationModel.created_at.asc())
    )
    return list(res.scalars().all())


async def apply_pending_compensations(db: AsyncSession) -> int:
    """Credit back every unresolved compensation; returns how many were applied."""
    applied = 0
    for row in await list_unresolved(db):
        # increment_back commits on its own; resolve right after it
        await ingredient_store.increment_back(db, row.ingredient_id, row.quantity)
        row.resolved_at = utcnow()
        await db.commit()
        applied += 1
        logger.info("Applied pending compensation %s (+%s to %s)", row.id, row.quantity, row.ingredient_id)
    return applied
