import asyncio
import logging
import sys
from pathlib import Path

"""
Seed demo data (ingredients with opening stock, recipes) into the DB.

Existing recipes, ingredients and ledger rows are wiped first.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import delete

from core.config import settings
from core.logging_config import configure_logging
from db.database import (
    Ingredient,
    InventoryTransaction,
    PendingCompensation,
    Recipe,
    RecipeIngredient,
    async_session_maker,
    create_db_and_tables,
)
from schemas.recipe import RecipeIngredientInput
from services import ingredient_store, recipe_service

logger = logging.getLogger("seed_demo_data")


# name, manufacturer, category, unit, stock, cost per unit, reorder level
SEED_INGREDIENTS = [
    ("All-purpose flour", "Mill & Co", "Dry goods", "g", 25000, 0.0018, 5000),
    ("Caster sugar", "Sweetline", "Dry goods", "g", 8000, 0.0025, 2000),
    ("Unsalted butter", "Dairy Farm", "Dairy", "g", 1500, 0.011, 2000),
    ("Whole milk", "Dairy Farm", "Dairy", "ml", 6000, 0.0012, 2000),
    ("Free-range eggs", "Henhouse", "Dairy", "pcs", 48, 0.32, 24),
    ("Dark chocolate", "Cacao Works", "Baking", "g", 900, 0.021, 1000),
    ("Vanilla extract", "Cacao Works", "Baking", "ml", 250, 0.09, 50),
    ("Lemons", "Greengrocer", "Produce", "pcs", 0, 0.45, 10),
]

# name, description, selling price, [(ingredient name, quantity per serving, unit)]
SEED_RECIPES = [
    (
        "Pancakes",
        "Fluffy breakfast pancakes",
        4.5,
        [("All-purpose flour", 60, "g"), ("Whole milk", 90, "ml"), ("Free-range eggs", 0.5, "pcs"),
         ("Caster sugar", 8, "g"), ("Unsalted butter", 10, "g")],
    ),
    (
        "Chocolate brownie",
        "Rich brownie square",
        3.75,
        [("Dark chocolate", 40, "g"), ("Unsalted butter", 25, "g"), ("Caster sugar", 30, "g"),
         ("Free-range eggs", 0.5, "pcs"), ("All-purpose flour", 15, "g"), ("Vanilla extract", 1, "ml")],
    ),
    (
        "Lemon drizzle slice",
        "",
        3.25,
        [("All-purpose flour", 35, "g"), ("Caster sugar", 35, "g"), ("Unsalted butter", 30, "g"),
         ("Free-range eggs", 0.5, "pcs"), ("Lemons", 0.25, "pcs")],
    ),
]


async def wipe(db) -> None:
    for model in (PendingCompensation, InventoryTransaction, RecipeIngredient, Recipe, Ingredient):
        await db.execute(delete(model))
    await db.commit()


async def main() -> None:
    configure_logging(settings.log_level)
    await create_db_and_tables()

    async with async_session_maker() as db:
        await wipe(db)

        by_name = {}
        for name, manufacturer, category, unit, stock, cost, reorder in SEED_INGREDIENTS:
            ingredient = await ingredient_store.create_ingredient(
                db,
                {
                    "name": name,
                    "manufacturer": manufacturer,
                    "category": category,
                    "unit": unit,
                    "stock_quantity": stock,
                    "cost_per_unit": cost,
                    "reorder_level": reorder,
                },
            )
            by_name[name] = ingredient

        for name, description, price, lines in SEED_RECIPES:
            await recipe_service.create_recipe(
                db,
                {"name": name, "description": description, "selling_price": price},
                [
                    RecipeIngredientInput(ingredient_id=by_name[ing_name].id, quantity=qty, unit=unit)
                    for ing_name, qty, unit in lines
                ],
            )

    logger.info("Done. Ingredients seeded: %s. Recipes seeded: %s.", len(SEED_INGREDIENTS), len(SEED_RECIPES))


if __name__ == "__main__":
    asyncio.run(main())
