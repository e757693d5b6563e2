import pytest

from conftest import login


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.json() == {"ok": True}


@pytest.mark.asyncio
async def test_guest_token_identifies_user(client):
    r = await client.post("/auth/guest")
    body = r.json()
    assert body["user"]["handle"].startswith("guest_")
    assert body["token"] == body["user"]["id"]

    me = await client.get("/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["user"] == body["user"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "headers,reason",
    [({}, "no token"), ({"Authorization": "Bearer not-a-user"}, "invalid token")],
)
async def test_missing_or_unknown_bearer_is_401(client, headers, reason):
    for method, path in [("GET", "/wallet"), ("GET", "/inventory"), ("GET", "/limits"), ("POST", "/jobs/fishing/claim"), ("GET", "/market/prices")]:
        r = await client.request(method, path, headers=headers)
        assert r.status_code == 401
        assert r.json()["error"] == "unauthenticated"
        assert r.json()["reason"] == reason


@pytest.mark.asyncio
async def test_catch_then_cooldown_then_sell(client, clock):
    auth = await login(client)

    r = await client.post("/jobs/fishing/claim", json={"success": True}, headers=auth)
    assert r.status_code == 200
    assert r.json() == {
        "ok": True,
        "gained": 10,
        "acorns": 10,
        "item": {"item": "fish", "qty": 1},
        "remainingToday": 290,
        "capped": False,
    }

    clock.advance(400)
    r = await client.post("/jobs/fishing/claim", json={"success": True}, headers=auth)
    assert r.status_code == 429
    assert r.json()["error"] == "cooldown"
    assert r.json()["retryInMs"] == 2600
    assert r.json()["retryInSeconds"] == 3

    clock.advance(2600)
    limits = (await client.get("/limits", headers=auth)).json()
    assert limits == {"dailyCap": 300, "awardedToday": 10, "remainingToday": 290}

    r = await client.post("/market/sell", json={"item": "fish", "qty": 1}, headers=auth)
    assert r.status_code == 200
    assert r.json() == {"ok": True, "gained": 10, "acorns": 20, "item": {"item": "fish", "qty": 0}}

    assert (await client.get("/wallet", headers=auth)).json() == {"acorns": 20}
    assert (await client.get("/inventory", headers=auth)).json() == [{"item": "fish", "qty": 0}]


@pytest.mark.asyncio
async def test_failed_catch_gains_nothing(client):
    auth = await login(client)
    for body in ({"success": False}, {}):
        r = await client.post("/jobs/fishing/claim", json=body, headers=auth)
        assert r.status_code == 200
        assert r.json()["gained"] == 0
        assert r.json()["item"] == {"item": "fish", "qty": 0}

    # the failures did not start a cooldown
    r = await client.post("/jobs/fishing/claim", json={"success": True}, headers=auth)
    assert r.json()["gained"] == 10


@pytest.mark.asyncio
@pytest.mark.parametrize("success", ["yes", "true", 1])
async def test_claim_requires_a_real_boolean(client, success):
    auth = await login(client)
    r = await client.post("/jobs/fishing/claim", json={"success": success}, headers=auth)
    assert r.status_code == 400
    assert r.json()["error"] == "bad_params"
    assert (await client.get("/wallet", headers=auth)).json() == {"acorns": 0}
    assert (await client.get("/inventory", headers=auth)).json() == []


@pytest.mark.asyncio
async def test_sell_more_than_owned(client):
    auth = await login(client)
    await client.post("/jobs/fishing/claim", json={"success": True}, headers=auth)

    r = await client.post("/market/sell", json={"item": "fish", "qty": 3}, headers=auth)
    assert r.status_code == 400
    assert r.json()["error"] == "not_enough"
    assert r.json()["have"] == 1
    assert (await client.get("/wallet", headers=auth)).json() == {"acorns": 10}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [{"item": "fish", "qty": 0}, {"item": "fish", "qty": -2}, {"item": "fish", "qty": 1.5}, {"item": "", "qty": 1}, {"qty": 1}],
)
async def test_sell_bad_params(client, body):
    auth = await login(client)
    r = await client.post("/market/sell", json=body, headers=auth)
    assert r.status_code == 400
    assert r.json()["error"] == "bad_params"


@pytest.mark.asyncio
async def test_prices(client):
    auth = await login(client)
    r = await client.get("/market/prices", headers=auth)
    assert r.json() == {"fish": 10, "algae": 3}


@pytest.mark.asyncio
async def test_cap_resets_on_next_utc_day(client, clock):
    auth = await login(client)
    await client.post("/jobs/fishing/claim", json={"success": True}, headers=auth)
    assert (await client.get("/limits", headers=auth)).json()["awardedToday"] == 10

    clock.advance(12 * 60 * 60 * 1000)
    assert (await client.get("/limits", headers=auth)).json() == {
        "dailyCap": 300,
        "awardedToday": 0,
        "remainingToday": 300,
    }
