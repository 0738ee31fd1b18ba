from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from typing import Dict, Optional

from core.converters import parse_uuid, round4
from core.errors import ValidationError
from core.pagination import DEFAULT_PAGE, clamp_limit, parse_boolean, parse_positive_int
from db.database import get_async_session, get_session_maker
from schemas.recipe import CookRequest, RecipeCreate, RecipeUpdate
from services import recipe_service
from services.cook_executor import cook_recipe as run_cook

router = APIRouter()


@router.get("/", response_model=Dict)
async def list_recipes(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    search: Optional[str] = None,
    include_inactive: Optional[str] = Query(None, alias="includeInactive"),
    only_inactive: Optional[str] = Query(None, alias="onlyInactive"),
    include_computed: Optional[str] = Query(None, alias="includeComputed"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    db: AsyncSession = Depends(get_async_session),
):
    """List recipes, optionally with cost/margin metrics"""
    return await recipe_service.list_recipes(
        db,
        page=parse_positive_int(page, DEFAULT_PAGE),
        limit=clamp_limit(limit),
        search=(search or "").strip(),
        include_inactive=parse_boolean(include_inactive) is True,
        only_inactive=parse_boolean(only_inactive) is True,
        include_computed=parse_boolean(include_computed) is True,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/{recipe_id}", response_model=Dict)
async def get_recipe(
    recipe_id: str,
    include_inactive: Optional[str] = Query(None, alias="includeInactive"),
    include_computed: Optional[str] = Query(None, alias="includeComputed"),
    db: AsyncSession = Depends(get_async_session),
):
    """Get a recipe with per-line ingredient details and computed metrics"""
    recipe = await recipe_service.load_recipe(
        db, parse_uuid(recipe_id, "recipe id"), include_inactive=parse_boolean(include_inactive) is True
    )
    return await recipe_service.recipe_detail(db, recipe, include_computed=parse_boolean(include_computed) is not False)


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_recipe(payload: RecipeCreate, db: AsyncSession = Depends(get_async_session)):
    """Create a recipe; duplicate ingredient lines with the same unit are merged"""
    data = payload.model_dump(exclude={"ingredients"})
    data["selling_price"] = round4(data["selling_price"])
    recipe = await recipe_service.create_recipe(db, data, payload.ingredients)
    return recipe.to_schema


@router.put("/{recipe_id}", response_model=Dict)
async def update_recipe(recipe_id: str, payload: RecipeUpdate, db: AsyncSession = Depends(get_async_session)):
    """Update a recipe; `ingredients`, when given, replaces all lines"""
    recipe_uuid = parse_uuid(recipe_id, "recipe id")
    data = payload.model_dump(exclude_unset=True, exclude={"ingredients"})
    if not data and payload.ingredients is None:
        raise ValidationError("Invalid recipe payload", ["At least one updatable field is required"])
    if data.get("selling_price") is not None:
        data["selling_price"] = round4(data["selling_price"])
    if "description" in data:
        data["description"] = data["description"] or ""
    recipe = await recipe_service.update_recipe(db, recipe_uuid, data, payload.ingredients)
    return recipe.to_schema


@router.delete("/{recipe_id}", response_model=Dict)
async def archive_recipe(recipe_id: str, db: AsyncSession = Depends(get_async_session)):
    """Archive (soft delete) a recipe"""
    recipe, changed = await recipe_service.set_active(db, parse_uuid(recipe_id, "recipe id"), False)
    return {"message": "Recipe archived" if changed else "Recipe already inactive", "recipe": recipe.to_schema}


@router.patch("/{recipe_id}/restore", response_model=Dict)
async def restore_recipe(recipe_id: str, db: AsyncSession = Depends(get_async_session)):
    """Restore an archived recipe"""
    recipe, changed = await recipe_service.set_active(db, parse_uuid(recipe_id, "recipe id"), True)
    return {"message": "Recipe restored" if changed else "Recipe is already active", "recipe": recipe.to_schema}


@router.post("/{recipe_id}/cook", response_model=Dict)
async def cook_recipe(
    recipe_id: str,
    payload: CookRequest,
    session_maker: async_sessionmaker = Depends(get_session_maker),
):
    """
    Consume ingredient stock for `servings` of a recipe.

    - Validates every line (existence, active, unit, stock) and reports all problems at once.
    - Deducts stock and writes one OUT transaction per ingredient, all-or-nothing.
    - `executionMode` is "transaction" normally, "fallback" when the database
      cannot run multi-statement transactions.
    """
    result = await run_cook(session_maker, parse_uuid(recipe_id, "recipe id"), payload.servings)
    return result.to_schema
