from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError

from core.errors import StockRaceError, StorageCapabilityError, is_transaction_unsupported_error
from db.database import Ingredient, InventoryTransaction, PendingCompensation
from services import compensation, ingredient_store, ledger
from services.cook_executor import CookExecutor


@pytest.fixture
def no_transactions(monkeypatch):
    """Make the atomic path fail the way a standalone backend does."""
    calls = []

    async def refuse(self, recipe_id, servings):
        calls.append(recipe_id)
        raise OperationalError("BEGIN", {}, Exception("Transaction support is not available"))

    monkeypatch.setattr(CookExecutor, "_cook_in_transaction", refuse)
    return calls


@pytest.fixture
def race_on_call(monkeypatch, session_maker):
    """Drain an ingredient's stock just before the n-th guarded decrement runs."""

    def _arm(n):
        real_decrement = ingredient_store.conditional_decrement
        seen = []

        async def racing_decrement(db, ingredient_id, amount, expected_unit):
            seen.append(ingredient_id)
            if len(seen) == n:
                async with session_maker() as other:
                    await other.execute(
                        update(Ingredient).where(Ingredient.id == ingredient_id).values(stock_quantity=0)
                    )
                    await other.commit()
            return await real_decrement(db, ingredient_id, amount, expected_unit)

        monkeypatch.setattr(ingredient_store, "conditional_decrement", racing_decrement)
        return seen

    return _arm


async def stocks(session_maker, *ids):
    async with session_maker() as db:
        res = await db.execute(select(Ingredient.id, Ingredient.stock_quantity).where(Ingredient.id.in_(ids)))
        return {row[0]: row[1] for row in res.all()}


async def out_entries(session_maker):
    async with session_maker() as db:
        return (
            await db.execute(
                select(func.count()).select_from(InventoryTransaction).where(InventoryTransaction.type == "OUT")
            )
        ).scalar_one()


def test_capability_detection():
    assert is_transaction_unsupported_error(
        Exception("Transaction numbers are only allowed on a replica set member or mongos")
    )
    assert is_transaction_unsupported_error(Exception("this engine does not support transactions"))
    assert not is_transaction_unsupported_error(Exception("connection reset by peer"))
    assert is_transaction_unsupported_error(StorageCapabilityError("standalone node"))
    assert not is_transaction_unsupported_error(StockRaceError())


async def test_fallback_mode_cooks(client, session_maker, no_transactions, create_ingredient, create_recipe):
    eggs = await create_ingredient(name="Eggs", unit="pcs", stockQuantity=20, costPerUnit=0.25)
    flour = await create_ingredient(name="Flour", unit="g", stockQuantity=1000)
    recipe = await create_recipe([(eggs, 2), (flour, 100)], name="Pasta")

    res = await client.post(f"/api/recipes/{recipe['id']}/cook", json={"servings": 3})

    assert res.status_code == 200, res.text
    body = res.json()
    assert body["executionMode"] == "fallback"
    assert body["transactionsCreated"] == 2
    assert [c["newStock"] for c in body["consumption"]] == [14.0, 700.0]
    assert [c["previousStock"] for c in body["consumption"]] == [20.0, 1000.0]
    assert len(no_transactions) == 1

    current = await stocks(session_maker, UUID(eggs["id"]), UUID(flour["id"]))
    assert current[UUID(eggs["id"])] == Decimal("14")
    assert current[UUID(flour["id"])] == Decimal("700")
    assert await out_entries(session_maker) == 2


async def test_capability_is_checked_on_every_call(client, no_transactions, create_ingredient, create_recipe):
    eggs = await create_ingredient(name="Eggs", unit="pcs", stockQuantity=20)
    recipe = await create_recipe([(eggs, 1)])

    for _ in range(2):
        res = await client.post(f"/api/recipes/{recipe['id']}/cook", json={"servings": 1})
        assert res.json()["executionMode"] == "fallback"

    assert len(no_transactions) == 2


async def test_other_atomic_failures_propagate(monkeypatch):
    async def broken(self, recipe_id, servings):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(CookExecutor, "_cook_in_transaction", broken)
    fallback_calls = []

    async def fallback(self, recipe_id, servings):
        fallback_calls.append(recipe_id)

    monkeypatch.setattr(CookExecutor, "_cook_with_fallback", fallback)

    with pytest.raises(RuntimeError):
        await CookExecutor(None).cook(uuid4(), 1)
    assert fallback_calls == []


async def test_race_compensates_applied_decrements(
    client, session_maker, monkeypatch, no_transactions, race_on_call, create_ingredient, create_recipe
):
    eggs = await create_ingredient(name="Eggs", unit="pcs", stockQuantity=20)
    flour = await create_ingredient(name="Flour", unit="g", stockQuantity=1000)
    milk = await create_ingredient(name="Milk", unit="ml", stockQuantity=500)
    recipe = await create_recipe([(eggs, 2), (flour, 100), (milk, 50)])
    before_out = await out_entries(session_maker)

    increments = []
    real_increment = ingredient_store.increment_back

    async def counting_increment(db, ingredient_id, amount):
        increments.append((ingredient_id, amount))
        await real_increment(db, ingredient_id, amount)

    monkeypatch.setattr(ingredient_store, "increment_back", counting_increment)
    race_on_call(2)

    res = await client.post(f"/api/recipes/{recipe['id']}/cook", json={"servings": 1})

    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "INSUFFICIENT_STOCK"
    assert error["message"] == "Stock changed while cooking. Please try again."

    # K = 1 decrement applied before the race, so exactly one credit back
    assert increments == [(UUID(eggs["id"]), Decimal("2.0000"))]
    current = await stocks(session_maker, UUID(eggs["id"]), UUID(milk["id"]))
    assert current[UUID(eggs["id"])] == Decimal("20")
    assert current[UUID(milk["id"])] == Decimal("500")
    assert await out_entries(session_maker) == before_out


async def test_race_on_first_decrement_needs_no_compensation(
    client, session_maker, monkeypatch, no_transactions, race_on_call, create_ingredient, create_recipe
):
    eggs = await create_ingredient(name="Eggs", unit="pcs", stockQuantity=20)
    recipe = await create_recipe([(eggs, 2)])
    increments = []

    async def counting_increment(db, ingredient_id, amount):
        increments.append(ingredient_id)

    monkeypatch.setattr(ingredient_store, "increment_back", counting_increment)
    race_on_call(1)

    res = await client.post(f"/api/recipes/{recipe['id']}/cook", json={"servings": 1})

    assert res.status_code == 400
    assert increments == []


async def test_failed_compensation_is_recorded_and_reconciled(
    client, session_maker, monkeypatch, no_transactions, race_on_call, create_ingredient, create_recipe
):
    eggs = await create_ingredient(name="Eggs", unit="pcs", stockQuantity=20)
    flour = await create_ingredient(name="Flour", unit="g", stockQuantity=1000)
    recipe = await create_recipe([(eggs, 2), (flour, 100)])

    real_increment = ingredient_store.increment_back

    async def failing_increment(db, ingredient_id, amount):
        raise OperationalError("UPDATE", {}, Exception("connection lost"))

    monkeypatch.setattr(ingredient_store, "increment_back", failing_increment)
    race_on_call(2)

    res = await client.post(f"/api/recipes/{recipe['id']}/cook", json={"servings": 1})
    assert res.status_code == 400

    eggs_id = UUID(eggs["id"])
    assert (await stocks(session_maker, eggs_id))[eggs_id] == Decimal("18")

    async with session_maker() as db:
        pending = await compensation.list_unresolved(db)
        assert len(pending) == 1
        assert pending[0].ingredient_id == eggs_id
        assert pending[0].quantity == Decimal("2")
        assert pending[0].recipe_id == UUID(recipe["id"])

    monkeypatch.setattr(ingredient_store, "increment_back", real_increment)
    async with session_maker() as db:
        assert await compensation.apply_pending_compensations(db) == 1
        assert await compensation.apply_pending_compensations(db) == 0

    assert (await stocks(session_maker, eggs_id))[eggs_id] == Decimal("20")
    async with session_maker() as db:
        resolved = (await db.execute(select(PendingCompensation))).scalars().all()
        assert all(row.resolved_at is not None for row in resolved)


async def test_ledger_failure_compensates_every_decrement(
    client, session_maker, monkeypatch, no_transactions, create_ingredient, create_recipe
):
    eggs = await create_ingredient(name="Eggs", unit="pcs", stockQuantity=20)
    flour = await create_ingredient(name="Flour", unit="g", stockQuantity=1000)
    recipe = await create_recipe([(eggs, 2), (flour, 100)])
    before_out = await out_entries(session_maker)

    async def failing_append(db, entries, commit=True):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(ledger, "append_many", failing_append)

    with pytest.raises(OperationalError):
        await CookExecutor(session_maker).cook(UUID(recipe["id"]), 3)

    current = await stocks(session_maker, UUID(eggs["id"]), UUID(flour["id"]))
    assert current[UUID(eggs["id"])] == Decimal("20")
    assert current[UUID(flour["id"])] == Decimal("1000")
    assert await out_entries(session_maker) == before_out
    async with session_maker() as db:
        assert await compensation.list_unresolved(db) == []
