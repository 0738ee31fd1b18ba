from uuid import uuid4


async def test_create_recipe_and_read_metrics(client, create_ingredient, create_recipe):
    flour = await create_ingredient(name="Flour", unit="g", stockQuantity=1000, costPerUnit=0.0018)
    eggs = await create_ingredient(name="Eggs", unit="pcs", stockQuantity=12, costPerUnit=0.32)
    recipe = await create_recipe([(flour, 60), (eggs, 0.5)], name="Pancakes", selling_price=4.5, description="  Fluffy ")

    assert recipe["name"] == "Pancakes"
    assert recipe["description"] == "Fluffy"
    assert recipe["sellingPrice"] == 4.5
    assert [line["ingredientId"] for line in recipe["ingredients"]] == [flour["id"], eggs["id"]]

    res = await client.get(f"/api/recipes/{recipe['id']}")
    assert res.status_code == 200
    body = res.json()
    # 60 x 0.0018 + 0.5 x 0.32
    assert body["computed"] == {"costPerServing": 0.268, "margin": 4.232, "marginPercent": 94.04}
    details = body["ingredientDetails"]
    assert details[0]["ingredientName"] == "Flour"
    assert details[0]["costContribution"] == 0.108
    assert details[1]["costContribution"] == 0.16

    res = await client.get(f"/api/recipes/{recipe['id']}", params={"includeComputed": "false"})
    assert "computed" not in res.json()


async def test_zero_price_has_zero_margin_percent(client, create_ingredient, create_recipe):
    eggs = await create_ingredient(name="Eggs", unit="pcs", costPerUnit=0.5)
    recipe = await create_recipe([(eggs, 2)])

    res = await client.get(f"/api/recipes/{recipe['id']}")

    assert res.json()["computed"] == {"costPerServing": 1.0, "margin": -1.0, "marginPercent": 0.0}


async def test_duplicate_lines_are_merged(client, create_ingredient):
    flour = await create_ingredient(name="Flour", unit="g")
    res = await client.post(
        "/api/recipes/",
        json={
            "name": "Bread",
            "ingredients": [
                {"ingredientId": flour["id"], "quantity": 2, "unit": "g"},
                {"ingredientId": flour["id"], "quantity": 3, "unit": "g"},
            ],
        },
    )

    assert res.status_code == 201
    lines = res.json()["ingredients"]
    assert len(lines) == 1
    assert lines[0]["quantity"] == 5.0


async def test_duplicate_lines_with_different_units_are_rejected(client, create_ingredient):
    flour = await create_ingredient(name="Flour", unit="g")
    res = await client.post(
        "/api/recipes/",
        json={
            "name": "Bread",
            "ingredients": [
                {"ingredientId": flour["id"], "quantity": 2, "unit": "g"},
                {"ingredientId": flour["id"], "quantity": 1, "unit": "kg"},
            ],
        },
    )

    assert res.status_code == 400
    assert res.json()["error"]["details"] == [f"ingredients[1] duplicates ingredient {flour['id']} with a different unit"]


async def test_references_are_validated(client, create_ingredient):
    flour = await create_ingredient(name="Flour", unit="g")
    old = await create_ingredient(name="Old", unit="g")
    await client.delete(f"/api/ingredients/{old['id']}")
    ghost_id = str(uuid4())

    res = await client.post(
        "/api/recipes/",
        json={
            "name": "Broken",
            "ingredients": [
                {"ingredientId": flour["id"], "quantity": 1, "unit": "kg"},
                {"ingredientId": old["id"], "quantity": 1, "unit": "g"},
                {"ingredientId": ghost_id, "quantity": 1, "unit": "g"},
            ],
        },
    )

    assert res.status_code == 400
    assert res.json()["error"]["details"] == [
        'Unit mismatch for ingredient "Flour": expected g, got kg',
        'Ingredient "Old" is inactive and cannot be used in recipes',
        f"Ingredient {ghost_id} does not exist",
    ]


async def test_recipe_needs_lines_and_positive_quantities(client, create_ingredient):
    flour = await create_ingredient(name="Flour", unit="g")

    res = await client.post("/api/recipes/", json={"name": "Nothing", "ingredients": []})
    assert res.status_code == 400

    res = await client.post(
        "/api/recipes/",
        json={"name": "Zero", "ingredients": [{"ingredientId": flour["id"], "quantity": 0, "unit": "g"}]},
    )
    assert res.status_code == 400


async def test_update_replaces_lines(client, create_ingredient, create_recipe):
    flour = await create_ingredient(name="Flour", unit="g")
    sugar = await create_ingredient(name="Sugar", unit="g")
    recipe = await create_recipe([(flour, 100)], name="Cake")

    res = await client.put(
        f"/api/recipes/{recipe['id']}",
        json={"sellingPrice": 12, "ingredients": [{"ingredientId": sugar["id"], "quantity": 50, "unit": "g"}]},
    )

    assert res.status_code == 200, res.text
    body = res.json()
    assert body["name"] == "Cake"
    assert body["sellingPrice"] == 12.0
    assert [(line["ingredientId"], line["quantity"]) for line in body["ingredients"]] == [(sugar["id"], 50.0)]

    res = await client.put(f"/api/recipes/{recipe['id']}", json={})
    assert res.status_code == 400


async def test_archive_restore_and_listing(client, create_ingredient, create_recipe):
    flour = await create_ingredient(name="Flour", unit="g", costPerUnit=0.01)
    bread = await create_recipe([(flour, 100)], name="Bread", selling_price=3)
    await create_recipe([(flour, 50)], name="Apple pie", selling_price=6)

    res = await client.delete(f"/api/recipes/{bread['id']}")
    assert res.json()["message"] == "Recipe archived"
    res = await client.delete(f"/api/recipes/{bread['id']}")
    assert res.json()["message"] == "Recipe already inactive"
    assert (await client.get(f"/api/recipes/{bread['id']}")).status_code == 404

    res = await client.get("/api/recipes/")
    assert [r["name"] for r in res.json()["items"]] == ["Apple pie"]

    res = await client.get("/api/recipes/", params={"includeInactive": "true", "includeComputed": "true"})
    items = res.json()["items"]
    assert [r["name"] for r in items] == ["Apple pie", "Bread"]
    assert items[1]["computed"]["costPerServing"] == 1.0

    res = await client.get("/api/recipes/", params={"onlyInactive": "true"})
    assert [r["name"] for r in res.json()["items"]] == ["Bread"]

    res = await client.patch(f"/api/recipes/{bread['id']}/restore")
    assert res.json()["message"] == "Recipe restored"
    res = await client.patch(f"/api/recipes/{bread['id']}/restore")
    assert res.json()["message"] == "Recipe is already active"

    res = await client.get("/api/recipes/", params={"sortBy": "sellingPrice", "sortOrder": "desc"})
    assert [r["name"] for r in res.json()["items"]] == ["Apple pie", "Bread"]


async def test_update_rejects_null_name_and_price(client, create_ingredient, create_recipe):
    flour = await create_ingredient(name="Flour", unit="g")
    recipe = await create_recipe([(flour, 100)], name="Bread", selling_price=3)

    for body in ({"name": None}, {"sellingPrice": None}):
        res = await client.put(f"/api/recipes/{recipe['id']}", json=body)
        assert res.status_code == 400, body
        assert res.json()["error"]["code"] == "VALIDATION_ERROR"

    res = await client.put(f"/api/recipes/{recipe['id']}", json={"description": None})
    assert res.status_code == 200
    assert res.json()["description"] == ""
    assert res.json()["sellingPrice"] == 3.0
