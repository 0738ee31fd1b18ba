async def test_health(client):
    res = await client.get("/api/health")

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    assert body["service"]
    assert body["uptimeSeconds"] >= 0


async def test_ready(client):
    res = await client.get("/api/ready")

    assert res.status_code == 200
    assert res.json()["dbConnected"] is True


async def test_unknown_route(client):
    res = await client.get("/api/nothing-here")

    assert res.status_code == 404
    assert res.json() == {"error": {"code": "NOT_FOUND", "message": "API route not found"}}


async def test_malformed_json(client):
    res = await client.post(
        "/api/ingredients/", content="{not json", headers={"Content-Type": "application/json"}
    )

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"
