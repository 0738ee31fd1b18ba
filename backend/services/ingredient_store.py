"""
Ingredient Store: data access for ingredient rows.

The cook path only uses `find_many_by_ids`, `conditional_decrement` and
`increment_back`. The remaining functions are
the plain ingredient writes exposed by the ingredients router; each stock
change among them appends exactly one ledger entry.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.converters import format_quantity, round4
from core.pagination import pagination_meta
from core.errors import InactiveResourceError, InsufficientStockError, NotFoundError, ValidationError
from db.database import Ingredient as IngredientModel
from services import ledger

logger = logging.getLogger(__name__)

ALLOWED_SORT_FIELDS = {
    "name": IngredientModel.name,
    "manufacturer": IngredientModel.manufacturer,
    "category": IngredientModel.category,
    "stockQuantity": IngredientModel.stock_quantity,
    "costPerUnit": IngredientModel.cost_per_unit,
    "createdAt": IngredientModel.created_at,
    "updatedAt": IngredientModel.updated_at,
}


async def find_by_id(db: AsyncSession, ingredient_id: UUID) -> Optional[IngredientModel]:
    res = await db.execute(select(IngredientModel).where(IngredientModel.id == ingredient_id))
    return res.scalar_one_or_none()


async def find_active_by_id(db: AsyncSession, ingredient_id: UUID) -> Optional[IngredientModel]:
    res = await db.execute(
        select(IngredientModel).where(IngredientModel.id == ingredient_id, IngredientModel.is_active.is_(True))
    )
    return res.scalar_one_or_none()


async def find_many_by_ids(
    db: AsyncSession, ingredient_ids: Iterable[UUID], for_update: bool = False
) -> List[IngredientModel]:
    ids = list(dict.fromkeys(ingredient_ids))
    if not ids:
        return []
    # Stable lock order keeps concurrent cooks from deadlocking on each other
    stmt = select(IngredientModel).where(IngredientModel.id.in_(ids)).order_by(IngredientModel.id)
    if for_update:
        stmt = stmt.with_for_update()
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def conditional_decrement(
    db: AsyncSession, ingredient_id: UUID, amount: Decimal, expected_unit: str
) -> Optional[Decimal]:
    """
    Decrement stock only if the row is still active, still in `expected_unit`
    and still holds at least `amount`. Returns the new stock, or None when no
    row matched (the caller lost a race).
    """
    amount = round4(amount)
    stmt = (
        update(IngredientModel)
        .where(
            IngredientModel.id == ingredient_id,
            IngredientModel.is_active.is_(True),
            IngredientModel.unit == expected_unit,
            IngredientModel.stock_quantity >= amount,
        )
        .values(stock_quantity=IngredientModel.stock_quantity - amount)
        .returning(IngredientModel.stock_quantity)
        .execution_options(synchronize_session=False)
    )
    row = (await db.execute(stmt)).first()
    await db.commit()
    if row is None:
        return None
    return round4(row[0])


async def increment_back(db: AsyncSession, ingredient_id: UUID, amount: Decimal) -> None:
    """Reverse a decrement made by `conditional_decrement`."""
    stmt = (
        update(IngredientModel)
        .where(IngredientModel.id == ingredient_id)
        .values(stock_quantity=IngredientModel.stock_quantity + round4(amount))
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)
    await db.commit()


async def get_ingredient(db: AsyncSession, ingredient_id: UUID, include_inactive: bool = False) -> IngredientModel:
    lookup = find_by_id if include_inactive else find_active_by_id
    ingredient = await lookup(db, ingredient_id)
    if not ingredient:
        raise NotFoundError("Ingredient not found")
    return ingredient


async def list_ingredients(
    db: AsyncSession,
    *,
    page: int,
    limit: int,
    search: str = "",
    category: str = "",
    low_stock_only: bool = False,
    healthy_stock_only: bool = False,
    include_inactive: bool = False,
    only_inactive: bool = False,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> Dict:
    if low_stock_only and healthy_stock_only:
        raise ValidationError(
            "Invalid ingredient query",
            ["lowStockOnly and healthyStockOnly cannot both be true"],
        )

    filters = []
    if only_inactive:
        filters.append(IngredientModel.is_active.is_(False))
    elif not include_inactive:
        filters.append(IngredientModel.is_active.is_(True))

    if search:
        pattern = f"%{search.lower()}%"
        filters.append(
            or_(
                func.lower(IngredientModel.name).like(pattern),
                func.lower(IngredientModel.manufacturer).like(pattern),
                func.lower(IngredientModel.category).like(pattern),
            )
        )
    if category:
        filters.append(func.lower(IngredientModel.category) == category.lower())

    low_stock = and_(IngredientModel.reorder_level > 0, IngredientModel.stock_quantity < IngredientModel.reorder_level)
    if low_stock_only:
        filters.append(low_stock)
    if healthy_stock_only:
        filters.append(
            or_(IngredientModel.reorder_level <= 0, IngredientModel.stock_quantity >= IngredientModel.reorder_level)
        )

    sort_column = ALLOWED_SORT_FIELDS.get(sort_by or "", IngredientModel.name)
    ordering = sort_column.desc() if (sort_order or "").lower() == "desc" else sort_column.asc()

    total = (await db.execute(select(func.count()).select_from(IngredientModel).where(*filters))).scalar_one()
    res = await db.execute(
        select(IngredientModel)
        .where(*filters)
        .order_by(ordering, IngredientModel.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "items": [ing.to_schema for ing in res.scalars().all()],
        "pagination": pagination_meta(page, limit, total),
    }


async def create_ingredient(db: AsyncSession, data: Dict) -> IngredientModel:
    initial_stock = round4(data.pop("stock_quantity", 0) or 0)
    for field in ("cost_per_unit", "reorder_level"):
        data[field] = round4(data.get(field) or 0)
    ingredient = IngredientModel(stock_quantity=initial_stock, **data)
    db.add(ingredient)
    await db.flush()

    if initial_stock > 0:
        ledger.add_entry(
            db,
            ingredient_id=ingredient.id,
            type_="IN",
            quantity=initial_stock,
            previous_stock=Decimal("0"),
            new_stock=initial_stock,
            reason="Initial stock",
            unit_cost=ingredient.cost_per_unit,
            reference_type="system",
        )

    await db.commit()
    logger.info("Created ingredient %s (%s) with initial stock %s", ingredient.id, ingredient.name, initial_stock)
    return ingredient


async def update_ingredient(db: AsyncSession, ingredient_id: UUID, data: Dict) -> IngredientModel:
    ingredient = await get_ingredient(db, ingredient_id, include_inactive=True)
    for field, value in data.items():
        setattr(ingredient, field, value)
    await db.commit()
    return ingredient


async def archive_ingredient(db: AsyncSession, ingredient_id: UUID) -> tuple[IngredientModel, bool]:
    ingredient = await get_ingredient(db, ingredient_id, include_inactive=True)
    if not ingredient.is_active:
        return ingredient, False
    ingredient.is_active = False
    await db.commit()
    return ingredient, True


async def restore_ingredient(db: AsyncSession, ingredient_id: UUID) -> tuple[IngredientModel, bool]:
    ingredient = await get_ingredient(db, ingredient_id, include_inactive=True)
    if ingredient.is_active:
        return ingredient, False
    ingredient.is_active = True
    await db.commit()
    return ingredient, True


async def adjust_stock(
    db: AsyncSession,
    ingredient_id: UUID,
    *,
    type_: str,
    quantity: Optional[Decimal] = None,
    new_stock_quantity: Optional[Decimal] = None,
    reason: Optional[str] = None,
    unit_cost: Optional[Decimal] = None,
    reference_type: str = "manual",
):
    """Apply a manual IN/OUT/ADJUST movement and append its ledger entry."""
    res = await db.execute(
        select(IngredientModel).where(IngredientModel.id == ingredient_id).with_for_update()
    )
    ingredient = res.scalar_one_or_none()
    if not ingredient:
        raise NotFoundError("Ingredient not found")
    if not ingredient.is_active:
        raise InactiveResourceError("Cannot adjust stock of an inactive ingredient")

    previous = round4(ingredient.stock_quantity)
    if type_ == "IN":
        moved = round4(quantity)
        new_stock = round4(previous + moved)
    elif type_ == "OUT":
        moved = round4(quantity)
        new_stock = round4(previous - moved)
        if new_stock < 0:
            raise InsufficientStockError(
                "Insufficient stock for this adjustment",
                [f"{ingredient.name}: requested {format_quantity(moved)} {ingredient.unit}, "
                 f"available {format_quantity(previous)} {ingredient.unit}"],
            )
    else:
        new_stock = round4(new_stock_quantity)
        moved = round4(abs(new_stock - previous))
        if moved == 0:
            raise ValidationError("Invalid stock adjustment", ["newStockQuantity must differ from current stock"])

    ingredient.stock_quantity = new_stock
    entry = ledger.add_entry(
        db,
        ingredient_id=ingredient.id,
        type_=type_,
        quantity=moved,
        previous_stock=previous,
        new_stock=new_stock,
        reason=reason or f"Manual {type_.lower()}",
        unit_cost=unit_cost if unit_cost is not None else ingredient.cost_per_unit,
        reference_type=reference_type,
    )
    await db.commit()
    logger.info("Adjusted stock of %s: %s %s -> %s", ingredient.id, type_, previous, new_stock)
    return ingredient, entry
