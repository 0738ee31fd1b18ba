from decimal import Decimal
from uuid import UUID

from services import ledger
from db.database import Ingredient


async def test_replay_reproduces_current_stock(client, db, create_ingredient, create_recipe):
    sugar = await create_ingredient(name="Sugar", unit="g", stockQuantity=100.5)
    url = f"/api/ingredients/{sugar['id']}/adjust-stock"
    await client.post(url, json={"type": "IN", "quantity": 20.25})
    await client.post(url, json={"type": "OUT", "quantity": 7.1234})
    await client.post(url, json={"type": "ADJUST", "newStockQuantity": 90})
    recipe = await create_recipe([(sugar, 12.3333)])
    res = await client.post(f"/api/recipes/{recipe['id']}/cook", json={"servings": 3})
    assert res.status_code == 200
    await client.post(url, json={"type": "ADJUST", "newStockQuantity": 60.5})

    ingredient = await db.get(Ingredient, UUID(sugar["id"]))
    entries = await ledger.entries_for_ingredient(db, ingredient.id)

    assert len(entries) == 6
    assert ledger.replay_stock(entries) == Decimal(str(ingredient.stock_quantity)).quantize(Decimal("0.0001"))
    assert ingredient.stock_quantity == Decimal("60.5")


async def test_replay_after_cook_sequence(client, db, create_ingredient, create_recipe):
    eggs = await create_ingredient(name="Eggs", unit="pcs", stockQuantity=20)
    recipe = await create_recipe([(eggs, 2)])
    for servings in (1, 2, 3):
        await client.post(f"/api/recipes/{recipe['id']}/cook", json={"servings": servings})

    entries = await ledger.entries_for_ingredient(db, UUID(eggs["id"]))

    assert [e.type for e in entries].count("OUT") == 3
    assert ledger.replay_stock(entries) == Decimal("8")


def test_build_entry_rounds_every_number():
    entry = ledger.build_entry(
        ingredient_id=None,
        type_="OUT",
        quantity=1.00005,
        previous_stock="3.33335",
        new_stock=Decimal("2.33330"),
        reason="  Spill  ",
        unit_cost=0.123456,
    )

    assert entry.quantity == Decimal("1.0001")
    assert entry.previous_stock == Decimal("3.3334")
    assert entry.new_stock == Decimal("2.3333")
    assert entry.unit_cost == Decimal("0.1235")
    assert entry.reason == "Spill"
    assert entry.reference_type is None
