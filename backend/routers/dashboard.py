from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.pagination import parse_boolean, parse_positive_int
from db.database import get_async_session
from services import dashboard

router = APIRouter()


@router.get("/summary", response_model=Dict)
async def dashboard_summary(
    low_stock_limit: Optional[str] = Query(None, alias="lowStockLimit"),
    recent_transactions_limit: Optional[str] = Query(None, alias="recentTransactionsLimit"),
    include_inactive: Optional[str] = Query(None, alias="includeInactive"),
    include_related: Optional[str] = Query(None, alias="includeRelated"),
    db: AsyncSession = Depends(get_async_session),
):
    """Counts, stock value, low-stock widget and recent ledger activity"""
    return await dashboard.summary(
        db,
        include_inactive=parse_boolean(include_inactive) is True,
        low_stock_limit=parse_positive_int(low_stock_limit, dashboard.DEFAULT_LOW_STOCK_LIMIT),
        recent_transactions_limit=parse_positive_int(
            recent_transactions_limit, dashboard.DEFAULT_RECENT_TRANSACTIONS_LIMIT
        ),
        include_related=parse_boolean(include_related) is not False,
    )
