"""
Recipe definitions: line normalization, reference checks and plain CRUD.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.converters import as_float, round4
from core.pagination import pagination_meta
from core.errors import NotFoundError, ValidationError
from db.database import (
    Ingredient as IngredientModel,
    Recipe as RecipeModel,
    RecipeIngredient as RecipeIngredientModel,
)
from services import ingredient_store
from services.metrics import compute_recipe_metrics

logger = logging.getLogger(__name__)

ALLOWED_SORT_FIELDS = {
    "name": RecipeModel.name,
    "sellingPrice": RecipeModel.selling_price,
    "createdAt": RecipeModel.created_at,
    "updatedAt": RecipeModel.updated_at,
}


def normalize_lines(lines, field_name: str = "ingredients") -> List[Dict]:
    """Merge duplicate ingredient+unit lines (summing quantities), reject unit conflicts."""
    details: List[str] = []
    if not lines:
        raise ValidationError("Invalid recipe payload", [f"{field_name} must contain at least one ingredient line"])

    merged: Dict[UUID, Dict] = {}
    for index, line in enumerate(lines):
        existing = merged.get(line.ingredient_id)
        if existing is None:
            merged[line.ingredient_id] = {
                "ingredient_id": line.ingredient_id,
                "quantity": round4(line.quantity),
                "unit": line.unit,
            }
            continue
        if existing["unit"] != line.unit:
            details.append(f"{field_name}[{index}] duplicates ingredient {line.ingredient_id} with a different unit")
            continue
        existing["quantity"] = round4(existing["quantity"] + round4(line.quantity))

    if details:
        raise ValidationError("Invalid recipe payload", details)
    return list(merged.values())


async def validate_ingredient_references(db: AsyncSession, lines: List[Dict]) -> Dict[UUID, IngredientModel]:
    ingredients = await ingredient_store.find_many_by_ids(db, [line["ingredient_id"] for line in lines])
    by_id = {ing.id: ing for ing in ingredients}

    details = []
    for line in lines:
        ingredient = by_id.get(line["ingredient_id"])
        if ingredient is None:
            details.append(f"Ingredient {line['ingredient_id']} does not exist")
        elif not ingredient.is_active:
            details.append(f'Ingredient "{ingredient.name}" is inactive and cannot be used in recipes')
        elif ingredient.unit != line["unit"]:
            details.append(
                f'Unit mismatch for ingredient "{ingredient.name}": expected {ingredient.unit}, got {line["unit"]}'
            )
    if details:
        raise ValidationError("Invalid recipe payload", details)
    return by_id


def _replace_lines(recipe: RecipeModel, lines: List[Dict]) -> None:
    recipe.recipe_ingredients = [
        RecipeIngredientModel(
            ingredient_id=line["ingredient_id"],
            quantity=line["quantity"],
            unit=line["unit"],
            sort_order=position,
        )
        for position, line in enumerate(lines)
    ]


async def load_recipe(db: AsyncSession, recipe_id: UUID, include_inactive: bool = True) -> RecipeModel:
    res = await db.execute(
        select(RecipeModel)
        .options(selectinload(RecipeModel.recipe_ingredients))
        .where(RecipeModel.id == recipe_id)
    )
    recipe = res.scalar_one_or_none()
    if not recipe or (not include_inactive and not recipe.is_active):
        raise NotFoundError("Recipe not found")
    return recipe


async def create_recipe(db: AsyncSession, data: Dict, lines) -> RecipeModel:
    normalized = normalize_lines(lines)
    await validate_ingredient_references(db, normalized)

    recipe = RecipeModel(**data)
    _replace_lines(recipe, normalized)
    db.add(recipe)
    await db.commit()
    logger.info("Created recipe %s (%s) with %s lines", recipe.id, recipe.name, len(normalized))
    return await load_recipe(db, recipe.id)


async def update_recipe(db: AsyncSession, recipe_id: UUID, data: Dict, lines=None) -> RecipeModel:
    normalized = None
    if lines is not None:
        normalized = normalize_lines(lines)
        await validate_ingredient_references(db, normalized)

    recipe = await load_recipe(db, recipe_id)
    for field, value in data.items():
        setattr(recipe, field, value)
    if normalized is not None:
        _replace_lines(recipe, normalized)
    await db.commit()
    return await load_recipe(db, recipe.id)


async def set_active(db: AsyncSession, recipe_id: UUID, active: bool) -> tuple[RecipeModel, bool]:
    recipe = await load_recipe(db, recipe_id)
    if bool(recipe.is_active) == active:
        return recipe, False
    recipe.is_active = active
    await db.commit()
    return recipe, True


async def _ingredient_map(db: AsyncSession, recipes: List[RecipeModel]) -> Dict[UUID, IngredientModel]:
    ids = [ing_id for recipe in recipes for ing_id in recipe.ingredient_ids]
    return {ing.id: ing for ing in await ingredient_store.find_many_by_ids(db, ids)}


async def recipe_detail(db: AsyncSession, recipe: RecipeModel, include_computed: bool = True) -> Dict:
    ingredient_map = await _ingredient_map(db, [recipe])
    details = []
    for line in recipe.recipe_ingredients:
        ingredient = ingredient_map.get(line.ingredient_id)
        cost_per_unit = ingredient.cost_per_unit if ingredient is not None else Decimal("0")
        details.append({
            "ingredientId": line.ingredient_id,
            "ingredientName": ingredient.name if ingredient is not None else "(Missing ingredient)",
            "ingredientUnit": ingredient.unit if ingredient is not None else None,
            "ingredientIsActive": bool(ingredient.is_active) if ingredient is not None else False,
            "quantity": as_float(line.quantity),
            "unit": line.unit,
            "costPerUnit": as_float(cost_per_unit),
            "costContribution": as_float(round4(line.quantity) * round4(cost_per_unit)),
        })

    out = {"recipe": recipe.to_schema, "ingredientDetails": details}
    if include_computed:
        out["computed"] = compute_recipe_metrics(recipe.recipe_ingredients, ingredient_map, recipe.selling_price)
    return out


async def list_recipes(
    db: AsyncSession,
    *,
    page: int,
    limit: int,
    search: str = "",
    include_inactive: bool = False,
    only_inactive: bool = False,
    include_computed: bool = False,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> Dict:
    filters = []
    if only_inactive:
        filters.append(RecipeModel.is_active.is_(False))
    elif not include_inactive:
        filters.append(RecipeModel.is_active.is_(True))
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(or_(func.lower(RecipeModel.name).like(pattern), func.lower(RecipeModel.description).like(pattern)))

    sort_column = ALLOWED_SORT_FIELDS.get(sort_by or "", RecipeModel.name)
    ordering = sort_column.desc() if (sort_order or "").lower() == "desc" else sort_column.asc()

    total = (await db.execute(select(func.count()).select_from(RecipeModel).where(*filters))).scalar_one()
    res = await db.execute(
        select(RecipeModel)
        .options(selectinload(RecipeModel.recipe_ingredients))
        .where(*filters)
        .order_by(ordering, RecipeModel.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    recipes = list(res.scalars().all())

    items = [recipe.to_schema for recipe in recipes]
    if include_computed and recipes:
        ingredient_map = await _ingredient_map(db, recipes)
        for item, recipe in zip(items, recipes):
            item["computed"] = compute_recipe_metrics(recipe.recipe_ingredients, ingredient_map, recipe.selling_price)

    return {
        "items": items,
        "pagination": pagination_meta(page, limit, total),
    }
