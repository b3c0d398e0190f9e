from conftest import API

FARE = {"toCity": "Butwal", "branchDelivery": 100, "codBranch": 120, "doorDelivery": 180}


async def test_fare_defaults_to_hub_city(client, admin_headers):
    response = await client.post(f"{API}/fares", json=FARE, headers=admin_headers)

    assert response.status_code == 201
    fare = response.json()
    assert fare["fromCity"] == "Pokhara"
    assert fare["doorDelivery"] == 180


async def test_duplicate_route_conflicts(client, admin_headers):
    await client.post(f"{API}/fares", json=FARE, headers=admin_headers)

    response = await client.post(f"{API}/fares", json={**FARE, "toCity": "butwal"}, headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["message"] == "Fare route already exists"


async def test_fare_list_is_cached_until_a_write(client, admin_headers):
    first = await client.get(f"{API}/fares", headers=admin_headers)
    second = await client.get(f"{API}/fares", headers=admin_headers)

    assert first.headers["X-Cache"] == "MISS"
    assert second.headers["X-Cache"] == "HIT"
    assert second.json() == first.json()

    await client.post(f"{API}/fares", json=FARE, headers=admin_headers)
    third = await client.get(f"{API}/fares", headers=admin_headers)

    assert third.headers["X-Cache"] == "MISS"
    assert third.json()["total"] == 1


async def test_route_lookup(client, seed, customer_headers):
    response = await client.get(
        f"{API}/fares/route", params={"fromCity": "pokhara", "toCity": "KATHMANDU"}, headers=customer_headers
    )
    assert response.status_code == 200
    assert response.json()["codBranch"] == 200

    missing = await client.get(
        f"{API}/fares/route", params={"fromCity": "Pokhara", "toCity": "Jumla"}, headers=customer_headers
    )
    assert missing.status_code == 404


async def test_users_cannot_manage_fares(client, customer_headers):
    response = await client.post(f"{API}/fares", json=FARE, headers=customer_headers)

    assert response.status_code == 403
    assert response.json()["message"] == "Insufficient permissions"


async def test_vendor_crud(client, admin_headers):
    created = await client.post(
        f"{API}/vendors",
        json={"name": "Everest Goods", "email": "everest@example.com", "city": "Pokhara"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    vendor_id = created.json()["id"]

    duplicate = await client.post(
        f"{API}/vendors", json={"name": "Other", "email": "everest@example.com"}, headers=admin_headers
    )
    assert duplicate.status_code == 409

    updated = await client.put(f"{API}/vendors/{vendor_id}", json={"phone": "9800001111"}, headers=admin_headers)
    assert updated.json()["phone"] == "9800001111"
    assert updated.json()["name"] == "Everest Goods"

    listed = await client.get(f"{API}/vendors", params={"search": "everest"}, headers=admin_headers)
    assert listed.json()["total"] == 1

    deleted = await client.delete(f"{API}/vendors/{vendor_id}", headers=admin_headers)
    assert deleted.status_code == 200
    gone = await client.get(f"{API}/vendors/{vendor_id}", headers=admin_headers)
    assert gone.status_code == 404


async def test_manager_cannot_delete_warehouse(client, admin_headers):
    from conftest import bearer, register

    manager = bearer(await register(client, "manager@example.com", "MANAGER"))
    created = await client.post(
        f"{API}/warehouses", json={"name": "Butwal Depot", "city": "Butwal", "capacity": 50}, headers=manager
    )
    assert created.status_code == 201

    forbidden = await client.delete(f"{API}/warehouses/{created.json()['id']}", headers=manager)
    assert forbidden.status_code == 403

    allowed = await client.delete(f"{API}/warehouses/{created.json()['id']}", headers=admin_headers)
    assert allowed.status_code == 200


async def test_fare_filters_match_wildcards_literally(client, seed, admin_headers):
    wildcard = await client.get(f"{API}/fares", params={"toCity": "%"}, headers=admin_headers)
    underscore = await client.get(f"{API}/fares", params={"toCity": "Kath_andu"}, headers=admin_headers)
    partial = await client.get(f"{API}/fares", params={"toCity": "athm"}, headers=admin_headers)

    assert wildcard.json()["total"] == 0
    assert underscore.json()["total"] == 0
    assert partial.json()["total"] == 1
