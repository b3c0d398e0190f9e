from datetime import datetime, timezone

from conftest import API, order_body


async def _create_order(client, seed, headers):
    response = await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _create_shipment(client, seed, order_id, headers, **extra):
    response = await client.post(
        f"{API}/shipments",
        json={"orderId": order_id, "warehouseId": str(seed["warehouse"].id), **extra},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_new_shipments_always_start_preparing(client, seed, customer_headers, admin_headers):
    order = await _create_order(client, seed, customer_headers)

    shipment = await _create_shipment(client, seed, order["id"], admin_headers, status="DELIVERED", carrier="Nepal Post")

    assert shipment["status"] == "PREPARING"
    assert shipment["trackingNumber"].startswith("TRK-")
    assert shipment["carrier"] == "Nepal Post"


async def test_status_update_notifies_order_user(
    client, application, seed, customer_headers, admin_headers, email_service
):
    order = await _create_order(client, seed, customer_headers)
    shipment = await _create_shipment(client, seed, order["id"], admin_headers)
    delivered_at = datetime.now(timezone.utc).replace(microsecond=0)

    response = await client.put(
        f"{API}/shipments/{shipment['id']}",
        json={"status": "DELIVERED", "actualDelivery": delivered_at.isoformat()},
        headers=admin_headers,
    )
    await application.state.event_bus.drain()

    assert response.status_code == 200, response.text
    updated = response.json()
    assert updated["status"] == "DELIVERED"
    assert updated["actualDelivery"] is not None

    notifications = email_service.of_kind("shipment_notification")
    assert len(notifications) == 1
    assert notifications[0]["user"]["email"] == "customer@example.com"
    assert notifications[0]["shipment"]["status"] == "DELIVERED"


async def test_shipment_creation_sends_no_email(client, application, seed, customer_headers, admin_headers, email_service):
    order = await _create_order(client, seed, customer_headers)
    await _create_shipment(client, seed, order["id"], admin_headers)
    await application.state.event_bus.drain()

    assert email_service.of_kind("shipment_notification") == []


async def test_track_by_tracking_number(client, seed, customer_headers, admin_headers):
    order = await _create_order(client, seed, customer_headers)
    shipment = await _create_shipment(client, seed, order["id"], admin_headers)

    response = await client.get(f"{API}/shipments/tracking/{shipment['trackingNumber']}", headers=customer_headers)

    assert response.status_code == 200
    tracked = response.json()
    assert tracked["id"] == shipment["id"]
    assert tracked["order"]["orderNumber"] == order["orderNumber"]
    assert tracked["warehouse"]["name"] == "Pokhara Hub"


async def test_unknown_tracking_number_is_not_found(client, customer_headers):
    response = await client.get(f"{API}/shipments/tracking/TRK-0-NOPE", headers=customer_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Shipment not found"


async def test_order_is_checked_before_warehouse(client, admin_headers):
    response = await client.post(
        f"{API}/shipments",
        json={
            "orderId": "00000000-0000-0000-0000-000000000001",
            "warehouseId": "00000000-0000-0000-0000-000000000002",
        },
        headers=admin_headers,
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Order not found"


async def test_missing_warehouse_is_not_found(client, seed, customer_headers, admin_headers):
    order = await _create_order(client, seed, customer_headers)

    response = await client.post(
        f"{API}/shipments",
        json={"orderId": order["id"], "warehouseId": "00000000-0000-0000-0000-000000000002"},
        headers=admin_headers,
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Warehouse not found"


async def test_tracking_numbers_are_unique(client, seed, customer_headers, admin_headers):
    order = await _create_order(client, seed, customer_headers)
    numbers = {
        (await _create_shipment(client, seed, order["id"], admin_headers))["trackingNumber"]
        for _ in range(5)
    }
    assert len(numbers) == 5


async def test_list_filters_by_status(client, seed, customer_headers, admin_headers):
    order = await _create_order(client, seed, customer_headers)
    first = await _create_shipment(client, seed, order["id"], admin_headers)
    await _create_shipment(client, seed, order["id"], admin_headers)
    await client.put(f"{API}/shipments/{first['id']}", json={"status": "IN_TRANSIT"}, headers=admin_headers)

    response = await client.get(f"{API}/shipments", params={"status": "IN_TRANSIT"}, headers=admin_headers)

    page = response.json()
    assert page["total"] == 1
    assert page["items"][0]["id"] == first["id"]
