import pytest

from conftest import API, RecordingEmailService, order_body


async def test_order_is_priced_from_fare_and_defaults_to_pending(client, seed, customer_headers):
    response = await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=customer_headers)

    assert response.status_code == 201, response.text
    order = response.json()
    assert order["totalAmount"] == 5300
    assert order["status"] == "PENDING"
    assert order["fareId"] == str(seed["fare"].id)
    assert order["orderNumber"].startswith("ORD-")


@pytest.mark.parametrize(
    "delivery_type,collect,expected",
    [
        ("BRANCH_DELIVERY", None, 150),
        ("COD_BRANCH", 1000, 1200),
        ("DOOR_DELIVERY", 0, 300),
    ],
)
async def test_total_is_fare_for_type_plus_collect_amount(
    client, seed, customer_headers, delivery_type, collect, expected
):
    body = order_body(seed["vendor"].id, deliveryType=delivery_type, amountToBeCollected=collect)
    response = await client.post(f"{API}/orders", json=body, headers=customer_headers)

    assert response.status_code == 201, response.text
    assert response.json()["totalAmount"] == expected


async def test_destination_matches_case_insensitive_substring(client, seed, customer_headers):
    body = order_body(seed["vendor"].id, deliveryCity="kathmandu")
    response = await client.post(f"{API}/orders", json=body, headers=customer_headers)

    assert response.status_code == 201
    assert response.json()["totalAmount"] == 5300


async def test_missing_fare_is_rejected_and_nothing_persisted(client, seed, customer_headers, admin_headers):
    body = order_body(seed["vendor"].id, deliveryCity="Nowhereville")
    response = await client.post(f"{API}/orders", json=body, headers=customer_headers)

    assert response.status_code == 400
    payload = response.json()
    assert payload["success"] is False
    assert payload["message"] == "No fare found for this route"
    assert payload["error"]["statusCode"] == 400

    listing = await client.get(f"{API}/orders", headers=admin_headers)
    assert listing.json()["total"] == 0


@pytest.mark.parametrize("city", ["%", "Kath_andu", "%mandu"])
async def test_like_wildcards_in_city_do_not_match_a_fare(client, seed, customer_headers, city):
    body = order_body(seed["vendor"].id, deliveryCity=city)
    response = await client.post(f"{API}/orders", json=body, headers=customer_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "No fare found for this route"


async def test_unknown_delivery_type_is_a_business_error(client, seed, customer_headers):
    body = order_body(seed["vendor"].id, deliveryType="DRONE")
    response = await client.post(f"{API}/orders", json=body, headers=customer_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid delivery type"


async def test_unknown_vendor_is_not_found(client, seed, customer_headers):
    body = order_body("00000000-0000-0000-0000-000000000000")
    response = await client.post(f"{API}/orders", json=body, headers=customer_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Vendor not found"


async def test_order_numbers_are_unique(client, seed, customer_headers):
    numbers = set()
    for _ in range(5):
        response = await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=customer_headers)
        numbers.add(response.json()["orderNumber"])
    assert len(numbers) == 5


async def test_idempotent_replay_returns_identical_response(client, seed, customer_headers, admin_headers):
    headers = {**customer_headers, "Idempotency-Key": "order-123"}
    body = order_body(seed["vendor"].id)

    first = await client.post(f"{API}/orders", json=body, headers=headers)
    second = await client.post(f"{API}/orders", json=body, headers=headers)

    assert first.status_code == second.status_code == 201
    assert first.content == second.content
    assert second.headers.get("Idempotent-Replay") == "true"
    assert "Idempotent-Replay" not in first.headers

    listing = await client.get(f"{API}/orders", headers=admin_headers)
    assert listing.json()["total"] == 1


async def test_different_idempotency_keys_create_separate_orders(client, seed, customer_headers, admin_headers):
    body = order_body(seed["vendor"].id)
    await client.post(f"{API}/orders", json=body, headers={**customer_headers, "Idempotency-Key": "a"})
    await client.post(f"{API}/orders", json=body, headers={**customer_headers, "X-Idempotency-Key": "b"})

    listing = await client.get(f"{API}/orders", headers=admin_headers)
    assert listing.json()["total"] == 2


async def test_order_creation_sends_one_confirmation(client, application, seed, customer, customer_headers, email_service):
    response = await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=customer_headers)
    await application.state.event_bus.drain()

    confirmations = email_service.of_kind("order_confirmation")
    assert len(confirmations) == 1
    assert confirmations[0]["user"]["email"] == "customer@example.com"
    assert confirmations[0]["order"]["orderNumber"] == response.json()["orderNumber"]


class TestFailingEmail:
    @pytest.fixture
    def email_service(self):
        return RecordingEmailService(fail=True)

    async def test_order_succeeds_when_confirmation_fails(self, client, application, seed, customer_headers, email_service):
        response = await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=customer_headers)
        await application.state.event_bus.drain()

        assert response.status_code == 201
        assert len(email_service.of_kind("order_confirmation")) == 1


async def test_plain_users_only_see_their_own_orders(client, seed, customer_headers, admin_headers):
    from conftest import bearer, register

    other = bearer(await register(client, "other@example.com"))
    await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=customer_headers)
    await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=other)

    mine = await client.get(f"{API}/orders", headers=customer_headers)
    everything = await client.get(f"{API}/orders", headers=admin_headers)

    assert mine.json()["total"] == 1
    assert everything.json()["total"] == 2


async def test_update_accepts_any_status_and_does_not_reprice(client, seed, customer_headers, admin_headers):
    created = (await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=customer_headers)).json()

    delivered = await client.put(
        f"{API}/orders/{created['id']}", json={"status": "DELIVERED", "deliveryType": "BRANCH_DELIVERY"},
        headers=admin_headers,
    )
    back = await client.put(f"{API}/orders/{created['id']}", json={"status": "PENDING"}, headers=admin_headers)

    assert delivered.status_code == 200
    assert delivered.json()["totalAmount"] == 5300
    assert back.json()["status"] == "PENDING"


async def test_order_detail_includes_relations(client, seed, customer_headers):
    created = (await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=customer_headers)).json()

    response = await client.get(f"{API}/orders/{created['id']}", headers=customer_headers)

    detail = response.json()
    assert detail["vendor"]["name"] == "Himal Traders"
    assert detail["fare"]["doorDelivery"] == 300
    assert detail["user"]["email"] == "customer@example.com"
    assert detail["shipments"] == []


async def test_customers_cannot_update_orders(client, seed, customer_headers):
    created = (await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=customer_headers)).json()

    response = await client.put(f"{API}/orders/{created['id']}", json={"status": "CANCELLED"}, headers=customer_headers)

    assert response.status_code == 403
    assert response.json()["error"]["statusCode"] == 403


async def test_update_rejects_unknown_delivery_type(client, seed, customer_headers, admin_headers):
    created = (await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=customer_headers)).json()

    response = await client.put(f"{API}/orders/{created['id']}", json={"deliveryType": "TELEPORT"}, headers=admin_headers)
    detail = await client.get(f"{API}/orders/{created['id']}", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid delivery type"
    assert detail.json()["deliveryType"] == "DOOR_DELIVERY"


async def test_update_accepts_a_known_delivery_type(client, seed, customer_headers, admin_headers):
    created = (await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=customer_headers)).json()

    response = await client.put(f"{API}/orders/{created['id']}", json={"deliveryType": "COD_BRANCH"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["deliveryType"] == "COD_BRANCH"
