from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.converters import as_float
from db.database import (
    Ingredient as IngredientModel,
    InventoryTransaction as InventoryTransactionModel,
    Recipe as RecipeModel,
)
from services import ledger

DEFAULT_LOW_STOCK_LIMIT = 5
DEFAULT_RECENT_TRANSACTIONS_LIMIT = 8
MAX_LIMIT = 50


async def summary(
    db: AsyncSession,
    *,
    include_inactive: bool = False,
    low_stock_limit: int = DEFAULT_LOW_STOCK_LIMIT,
    recent_transactions_limit: int = DEFAULT_RECENT_TRANSACTIONS_LIMIT,
    include_related: bool = True,
) -> Dict:
    low_stock_limit = min(low_stock_limit, MAX_LIMIT)
    recent_transactions_limit = min(recent_transactions_limit, MAX_LIMIT)

    ingredient_filters = [] if include_inactive else [IngredientModel.is_active.is_(True)]
    recipe_filters = [] if include_inactive else [RecipeModel.is_active.is_(True)]
    is_low = and_(IngredientModel.reorder_level > 0, IngredientModel.stock_quantity < IngredientModel.reorder_level)

    agg = (
        await db.execute(
            select(
                func.count(IngredientModel.id),
                func.coalesce(func.sum(IngredientModel.stock_quantity * IngredientModel.cost_per_unit), 0),
                func.coalesce(func.sum(case((is_low, 1), else_=0)), 0),
            ).where(*ingredient_filters)
        )
    ).one()
    recipe_count = (
        await db.execute(select(func.count()).select_from(RecipeModel).where(*recipe_filters))
    ).scalar_one()

    shortfall = IngredientModel.reorder_level - IngredientModel.stock_quantity
    low_res = await db.execute(
        select(IngredientModel)
        .where(*ingredient_filters, is_low)
        .order_by(shortfall.desc(), IngredientModel.stock_quantity.asc(), IngredientModel.name.asc())
        .limit(low_stock_limit)
    )
    low_stock_items = [
        {
            "id": ing.id,
            "name": ing.name,
            "unit": ing.unit,
            "stockQuantity": as_float(ing.stock_quantity),
            "reorderLevel": as_float(ing.reorder_level),
            "shortfall": as_float(ing.reorder_level - ing.stock_quantity),
            "stockValue": as_float(ing.stock_quantity * ing.cost_per_unit),
            "isActive": bool(ing.is_active),
        }
        for ing in low_res.scalars().all()
    ]

    recent_res = await db.execute(
        select(InventoryTransactionModel)
        .order_by(InventoryTransactionModel.created_at.desc(), InventoryTransactionModel.id)
        .limit(recent_transactions_limit)
    )
    recent_rows = list(recent_res.scalars().all())
    recent = await ledger.attach_related(db, recent_rows) if include_related else [t.to_schema for t in recent_rows]

    return {
        "summary": {
            "ingredientCount": int(agg[0] or 0),
            "recipeCount": int(recipe_count or 0),
            "lowStockCount": int(agg[2] or 0),
            "totalStockValue": as_float(Decimal(str(agg[1] or 0))),
        },
        "lowStockItems": low_stock_items,
        "recentTransactions": recent,
        "meta": {
            "includeInactive": include_inactive,
            "lowStockLimit": low_stock_limit,
            "recentTransactionsLimit": recent_transactions_limit,
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        },
    }
