from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, Optional

from core.converters import parse_uuid, round4
from core.pagination import DEFAULT_PAGE, clamp_limit, parse_boolean, parse_positive_int
from db.database import get_async_session
from schemas.ingredient import IngredientCreate, IngredientUpdate
from schemas.inventory import AdjustStockRequest
from core.errors import ValidationError
from services import ingredient_store

router = APIRouter()


@router.get("/", response_model=Dict)
async def list_ingredients(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    low_stock_only: Optional[str] = Query(None, alias="lowStockOnly"),
    healthy_stock_only: Optional[str] = Query(None, alias="healthyStockOnly"),
    include_inactive: Optional[str] = Query(None, alias="includeInactive"),
    only_inactive: Optional[str] = Query(None, alias="onlyInactive"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    db: AsyncSession = Depends(get_async_session),
):
    """List ingredients with pagination, search, stock-health filters and sorting"""
    return await ingredient_store.list_ingredients(
        db,
        page=parse_positive_int(page, DEFAULT_PAGE),
        limit=clamp_limit(limit),
        search=(search or "").strip(),
        category=(category or "").strip(),
        low_stock_only=parse_boolean(low_stock_only) is True,
        healthy_stock_only=parse_boolean(healthy_stock_only) is True,
        include_inactive=parse_boolean(include_inactive) is True,
        only_inactive=parse_boolean(only_inactive) is True,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/{ingredient_id}", response_model=Dict)
async def get_ingredient(
    ingredient_id: str,
    include_inactive: Optional[str] = Query(None, alias="includeInactive"),
    db: AsyncSession = Depends(get_async_session),
):
    """Get an ingredient by ID"""
    ingredient = await ingredient_store.get_ingredient(
        db, parse_uuid(ingredient_id, "ingredient id"), include_inactive=parse_boolean(include_inactive) is True
    )
    return ingredient.to_schema


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_ingredient(payload: IngredientCreate, db: AsyncSession = Depends(get_async_session)):
    """Create an ingredient; initial stock is recorded as an IN transaction"""
    ingredient = await ingredient_store.create_ingredient(db, payload.model_dump())
    return ingredient.to_schema


@router.put("/{ingredient_id}", response_model=Dict)
async def update_ingredient(
    ingredient_id: str,
    payload: IngredientUpdate,
    db: AsyncSession = Depends(get_async_session),
):
    """Update ingredient fields (stock changes go through adjust-stock)"""
    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise ValidationError("Invalid ingredient payload", ["At least one updatable field is required"])
    for field in ("cost_per_unit", "reorder_level"):
        if field in data and data[field] is not None:
            data[field] = round4(data[field])
    ingredient = await ingredient_store.update_ingredient(db, parse_uuid(ingredient_id, "ingredient id"), data)
    return ingredient.to_schema


@router.delete("/{ingredient_id}", response_model=Dict)
async def archive_ingredient(ingredient_id: str, db: AsyncSession = Depends(get_async_session)):
    """Archive (soft delete) an ingredient"""
    ingredient, changed = await ingredient_store.archive_ingredient(db, parse_uuid(ingredient_id, "ingredient id"))
    message = "Ingredient archived" if changed else "Ingredient already inactive"
    return {"message": message, "ingredient": ingredient.to_schema}


@router.patch("/{ingredient_id}/restore", response_model=Dict)
async def restore_ingredient(ingredient_id: str, db: AsyncSession = Depends(get_async_session)):
    """Restore an archived ingredient"""
    ingredient, changed = await ingredient_store.restore_ingredient(db, parse_uuid(ingredient_id, "ingredient id"))
    message = "Ingredient restored" if changed else "Ingredient is already active"
    return {"message": message, "ingredient": ingredient.to_schema}


@router.post("/{ingredient_id}/adjust-stock", response_model=Dict)
async def adjust_stock(
    ingredient_id: str,
    payload: AdjustStockRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Move stock in/out or set it to a counted value; always writes one ledger entry"""
    ingredient, entry = await ingredient_store.adjust_stock(
        db,
        parse_uuid(ingredient_id, "ingredient id"),
        type_=payload.type,
        quantity=round4(payload.quantity) if payload.quantity is not None else None,
        new_stock_quantity=round4(payload.new_stock_quantity) if payload.new_stock_quantity is not None else None,
        reason=payload.reason,
        unit_cost=round4(payload.unit_cost) if payload.unit_cost is not None else None,
        reference_type=payload.reference_type,
    )
    return {"ingredient": ingredient.to_schema, "transaction": entry.to_schema}
