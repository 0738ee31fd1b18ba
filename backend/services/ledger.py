"""
Transaction Ledger: append-only audit of every stock movement.

Entries are only ever inserted. Replaying `new_stock - previous_stock` of an
ingredient's entries from zero reproduces its current stock.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.converters import round4
from core.pagination import pagination_meta
from db.database import (
    Ingredient as IngredientModel,
    InventoryTransaction as InventoryTransactionModel,
    Recipe as RecipeModel,
)

ALLOWED_SORT_FIELDS = {
    "createdAt": InventoryTransactionModel.created_at,
    "type": InventoryTransactionModel.type,
    "quantity": InventoryTransactionModel.quantity,
    "previousStock": InventoryTransactionModel.previous_stock,
    "newStock": InventoryTransactionModel.new_stock,
    "unitCost": InventoryTransactionModel.unit_cost,
}


def build_entry(
    *,
    ingredient_id: UUID,
    type_: str,
    quantity,
    previous_stock,
    new_stock,
    reason: str = "",
    unit_cost=None,
    reference_type: Optional[str] = None,
    reference_id: Optional[UUID] = None,
) -> InventoryTransactionModel:
    return InventoryTransactionModel(
        ingredient_id=ingredient_id,
        type=type_,
        quantity=round4(quantity),
        previous_stock=round4(previous_stock),
        new_stock=round4(new_stock),
        reason=(reason or "").strip(),
        unit_cost=round4(unit_cost) if unit_cost is not None else None,
        reference_type=reference_type,
        reference_id=reference_id,
    )


def add_entry(db: AsyncSession, **kwargs) -> InventoryTransactionModel:
    """Stage one entry inside the caller's unit of work (committed by the caller)."""
    entry = build_entry(**kwargs)
    db.add(entry)
    return entry


async def append_many(db: AsyncSession, entries: List[InventoryTransactionModel], commit: bool = True):
    """Write a batch of entries in a single flush."""
    if not entries:
        return []
    db.add_all(entries)
    if commit:
        await db.commit()
    else:
        await db.flush()
    return entries


def replay_stock(entries: Iterable[InventoryTransactionModel]) -> Decimal:
    total = Decimal("0")
    for entry in entries:
        total = round4(total + round4(entry.delta))
    return total


async def entries_for_ingredient(db: AsyncSession, ingredient_id: UUID) -> List[InventoryTransactionModel]:
    res = await db.execute(
        select(InventoryTransactionModel)
        .where(InventoryTransactionModel.ingredient_id == ingredient_id)
        .order_by(InventoryTransactionModel.created_at.asc())
    )
    return list(res.scalars().all())


async def list_transactions(
    db: AsyncSession,
    *,
    page: int,
    limit: int,
    ingredient_id: Optional[UUID] = None,
    type_: Optional[str] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[UUID] = None,
    reason: str = "",
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    include_related: bool = True,
) -> Dict:
    filters = []
    if ingredient_id:
        filters.append(InventoryTransactionModel.ingredient_id == ingredient_id)
    if type_:
        filters.append(InventoryTransactionModel.type == type_)
    if reference_type:
        filters.append(InventoryTransactionModel.reference_type == reference_type)
    if reference_id:
        filters.append(InventoryTransactionModel.reference_id == reference_id)
    if reason:
        filters.append(func.lower(InventoryTransactionModel.reason).like(f"%{reason.lower()}%"))
    if date_from:
        filters.append(InventoryTransactionModel.created_at >= date_from)
    if date_to:
        filters.append(InventoryTransactionModel.created_at <= date_to)

    sort_column = ALLOWED_SORT_FIELDS.get(sort_by or "", InventoryTransactionModel.created_at)
    ordering = sort_column.asc() if (sort_order or "").lower() == "asc" else sort_column.desc()

    total = (
        await db.execute(select(func.count()).select_from(InventoryTransactionModel).where(*filters))
    ).scalar_one()
    res = await db.execute(
        select(InventoryTransactionModel)
        .where(*filters)
        .order_by(ordering, InventoryTransactionModel.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = list(res.scalars().all())
    items = await attach_related(db, rows) if include_related else [t.to_schema for t in rows]
    return {
        "items": items,
        "pagination": pagination_meta(page, limit, total),
    }


async def attach_related(db: AsyncSession, rows: List[InventoryTransactionModel]) -> List[Dict]:
    """Serialize entries with their ingredient and (recipe) reference summaries."""
    if not rows:
        return []

    ingredient_ids = list({t.ingredient_id for t in rows})
    recipe_ids = list({t.reference_id for t in rows if t.reference_type == "recipe" and t.reference_id})

    ing_res = await db.execute(select(IngredientModel).where(IngredientModel.id.in_(ingredient_ids)))
    ingredients = {i.id: i for i in ing_res.scalars().all()}
    recipes = {}
    if recipe_ids:
        rec_res = await db.execute(select(RecipeModel).where(RecipeModel.id.in_(recipe_ids)))
        recipes = {r.id: r for r in rec_res.scalars().all()}

    out = []
    for t in rows:
        item = t.to_schema
        ing = ingredients.get(t.ingredient_id)
        item["ingredient"] = (
            {"id": ing.id, "name": ing.name, "unit": ing.unit, "isActive": bool(ing.is_active)} if ing else None
        )
        if t.reference_type:
            recipe = recipes.get(t.reference_id) if t.reference_type == "recipe" else None
            item["reference"] = {
                "type": t.reference_type,
                "id": t.reference_id,
                "name": recipe.name if recipe else None,
                "isActive": bool(recipe.is_active) if recipe else None,
            }
        else:
            item["reference"] = None
        out.append(item)
    return out
