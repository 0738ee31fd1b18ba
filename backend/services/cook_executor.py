"""
Cook Executor.

Applies a cook plan against the database. The preferred path runs the whole
cook inside one atomic unit (re-loading and re-planning inside it). When the
backend rejects multi-statement transactions, it falls back to guarded
per-ingredient decrements, compensating already-applied decrements if one of
them loses a race or the ledger write fails. Ledger entries are written only
after every decrement of the invocation is in place.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from core.converters import as_float, round4
from core.errors import (
    ConfigurationError,
    InactiveResourceError,
    NotFoundError,
    StockRaceError,
    is_transaction_unsupported_error,
)
from db.database import (
    InventoryTransaction as InventoryTransactionModel,
    Recipe as RecipeModel,
)
from services import compensation, ingredient_store, ledger
from services.cook_planner import CookPlan, Requirement, build_cook_plan

logger = logging.getLogger(__name__)

EXECUTION_MODE_TRANSACTION = "transaction"
EXECUTION_MODE_FALLBACK = "fallback"


@dataclass
class ConsumptionEntry:
    ingredient_id: UUID
    ingredient_name: str
    unit: str
    required_quantity: Decimal
    previous_stock: Decimal
    new_stock: Decimal
    cost_per_unit: Decimal

    @property
    def to_schema(self):
        return {
            "ingredientId": self.ingredient_id,
            "ingredientName": self.ingredient_name,
            "unit": self.unit,
            "requiredQuantity": as_float(self.required_quantity),
            "previousStock": as_float(self.previous_stock),
            "newStock": as_float(self.new_stock),
            "costPerUnit": as_float(self.cost_per_unit),
        }


@dataclass
class CookResult:
    recipe_id: UUID
    recipe_name: str
    servings: int
    execution_mode: str
    consumption: List[ConsumptionEntry] = field(default_factory=list)
    transactions: List[InventoryTransactionModel] = field(default_factory=list)

    @property
    def to_schema(self):
        return {
            "message": "Recipe cooked successfully",
            "executionMode": self.execution_mode,
            "recipe": {"id": self.recipe_id, "name": self.recipe_name},
            "servings": self.servings,
            "consumption": [entry.to_schema for entry in self.consumption],
            "transactionsCreated": len(self.transactions),
        }


def cook_reason(recipe: RecipeModel, servings: int) -> str:
    return f"Cook: {recipe.name} x {servings}"


def _ledger_entries(recipe: RecipeModel, servings: int, consumption: List[ConsumptionEntry]):
    reason = cook_reason(recipe, servings)
    return [
        ledger.build_entry(
            ingredient_id=entry.ingredient_id,
            type_="OUT",
            quantity=entry.required_quantity,
            previous_stock=entry.previous_stock,
            new_stock=entry.new_stock,
            reason=reason,
            unit_cost=entry.cost_per_unit,
            reference_type="recipe",
            reference_id=recipe.id,
        )
        for entry in consumption
    ]


async def load_cookable_recipe(db: AsyncSession, recipe_id: UUID) -> RecipeModel:
    res = await db.execute(
        select(RecipeModel)
        .options(selectinload(RecipeModel.recipe_ingredients))
        .where(RecipeModel.id == recipe_id)
    )
    recipe = res.scalar_one_or_none()
    if not recipe:
        raise NotFoundError("Recipe not found")
    if not recipe.is_active:
        raise InactiveResourceError("Cannot cook an inactive recipe")
    if not recipe.recipe_ingredients:
        raise ConfigurationError("Recipe has no ingredient lines to cook")
    return recipe


async def plan_cook(db: AsyncSession, recipe: RecipeModel, servings: int, for_update: bool = False) -> CookPlan:
    ingredients = await ingredient_store.find_many_by_ids(db, recipe.ingredient_ids, for_update=for_update)
    plan = build_cook_plan(recipe.recipe_ingredients, ingredients, servings)
    plan.raise_for_errors()
    return plan


class CookExecutor:
    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def cook(self, recipe_id: UUID, servings: int) -> CookResult:
        """
        Cook `servings` of a recipe. Tries the atomic path first; the
        capability check runs on every call because backend topology can
        change between calls.
        """
        try:
            return await self._cook_in_transaction(recipe_id, servings)
        except Exception as e:
            if not is_transaction_unsupported_error(e):
                raise
            logger.warning("Atomic units unavailable (%s); cooking recipe %s in fallback mode", e, recipe_id)
        return await self._cook_with_fallback(recipe_id, servings)

    async def _cook_in_transaction(self, recipe_id: UUID, servings: int) -> CookResult:
        async with self.session_maker() as db:
            async with db.begin():
                # Re-load inside the unit: any earlier snapshot may be stale
                recipe = await load_cookable_recipe(db, recipe_id)
                plan = await plan_cook(db, recipe, servings, for_update=True)

                consumption: List[ConsumptionEntry] = []
                for requirement in plan.requirements:
                    ingredient = requirement.ingredient
                    previous = round4(ingredient.stock_quantity)
                    new_stock = round4(previous - requirement.required_quantity)
                    ingredient.stock_quantity = new_stock
                    consumption.append(_consumption_entry(requirement, previous, new_stock))
                await db.flush()

                transactions = await ledger.append_many(
                    db, _ledger_entries(recipe, servings, consumption), commit=False
                )

            logger.info(
                "Cooked recipe %s x %s in a transaction (%s ingredients)", recipe.id, servings, len(consumption)
            )
            return CookResult(
                recipe_id=recipe.id,
                recipe_name=recipe.name,
                servings=servings,
                execution_mode=EXECUTION_MODE_TRANSACTION,
                consumption=consumption,
                transactions=transactions,
            )

    async def _cook_with_fallback(self, recipe_id: UUID, servings: int) -> CookResult:
        async with self.session_maker() as db:
            recipe = await load_cookable_recipe(db, recipe_id)
            plan = await plan_cook(db, recipe, servings)
            # Free the read snapshot before the guarded writes
            await db.commit()

            applied: List[ConsumptionEntry] = []
            try:
                for requirement in plan.requirements:
                    new_stock = await ingredient_store.conditional_decrement(
                        db, requirement.ingredient_id, requirement.required_quantity, requirement.unit
                    )
                    if new_stock is None:
                        raise StockRaceError(details=[f"{requirement.name}: unable to reserve required quantity"])
                    previous = round4(new_stock + requirement.required_quantity)
                    applied.append(_consumption_entry(requirement, previous, new_stock))
                transactions = await ledger.append_many(db, _ledger_entries(recipe, servings, applied))
            except Exception as e:
                await db.rollback()
                if applied:
                    logger.warning(
                        "Cook of recipe %s failed after %s of %s decrements (%s); compensating",
                        recipe_id, len(applied), len(plan.requirements), e,
                    )
                    await self._compensate(db, recipe_id, applied, e)
                raise

            logger.info("Cooked recipe %s x %s in fallback mode (%s ingredients)", recipe.id, servings, len(applied))
            return CookResult(
                recipe_id=recipe.id,
                recipe_name=recipe.name,
                servings=servings,
                execution_mode=EXECUTION_MODE_FALLBACK,
                consumption=applied,
                transactions=transactions,
            )

    async def _compensate(
        self, db: AsyncSession, recipe_id: UUID, applied: List[ConsumptionEntry], cause: Exception
    ) -> None:
        """Credit back every applied decrement; failures are persisted for later reconciliation."""
        failed: List[ConsumptionEntry] = []
        for entry in applied:
            try:
                await ingredient_store.increment_back(db, entry.ingredient_id, entry.required_quantity)
            except Exception:
                await db.rollback()
                logger.exception("Compensating increment failed for ingredient %s", entry.ingredient_id)
                failed.append(entry)

        if failed:
            await compensation.record_pending(
                self.session_maker,
                recipe_id=recipe_id,
                entries=[(entry.ingredient_id, entry.required_quantity) for entry in failed],
                error=str(cause),
            )


def _consumption_entry(requirement: Requirement, previous: Decimal, new_stock: Decimal) -> ConsumptionEntry:
    return ConsumptionEntry(
        ingredient_id=requirement.ingredient_id,
        ingredient_name=requirement.name,
        unit=requirement.unit,
        required_quantity=requirement.required_quantity,
        previous_stock=previous,
        new_stock=new_stock,
        cost_per_unit=requirement.cost_per_unit,
    )


async def cook_recipe(session_maker: async_sessionmaker, recipe_id: UUID, servings: int) -> CookResult:
    return await CookExecutor(session_maker).cook(recipe_id, servings)
