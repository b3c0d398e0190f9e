from datetime import datetime, timezone

from app.services.dashboard_service import build_empty_series, parse_range
from conftest import API, order_body


def test_range_covers_whole_days():
    now = datetime(2024, 5, 10, 15, 30, tzinfo=timezone.utc)

    start, end, days = parse_range("7d", now=now)

    assert days == 7
    assert start == datetime(2024, 5, 4, tzinfo=timezone.utc)
    series = build_empty_series(start, end)
    assert list(series) == [f"2024-05-{d:02d}" for d in range(4, 11)]
    assert set(series.values()) == {0}


def test_unknown_range_falls_back_to_thirty_days():
    _, _, days = parse_range("1y")
    assert days == 30


async def test_summary_counts_todays_orders(client, seed, customer_headers, admin_headers):
    await client.post(f"{API}/orders", json=order_body(seed["vendor"].id), headers=customer_headers)

    response = await client.get(f"{API}/dashboard/summary", params={"range": "7d"}, headers=admin_headers)

    assert response.status_code == 200
    summary = response.json()
    assert summary["totals"]["ordersTotal"] == 1
    assert summary["totals"]["revenueTotal"] == 5300
    assert summary["ordersByStatus"] == {"PENDING": 1}
    assert summary["topCities"] == [{"city": "Kathmandu", "count": 1}]

    orders_per_day = summary["trends"]["ordersCreatedPerDay"]
    assert len(orders_per_day) == 7
    today = datetime.now(timezone.utc).date().isoformat()
    assert orders_per_day[today] == 1
    assert sum(orders_per_day.values()) == 1
    assert response.headers["X-Cache"] == "MISS"

    again = await client.get(f"{API}/dashboard/summary", params={"range": "7d"}, headers=admin_headers)
    assert again.headers["X-Cache"] == "HIT"


async def test_trends_reject_unknown_metric(client, admin_headers):
    response = await client.get(f"{API}/dashboard/trends", params={"metric": "revenue"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid metric"


async def test_trend_series_is_zero_filled(client, admin_headers):
    response = await client.get(
        f"{API}/dashboard/trends", params={"metric": "delivered", "range": "14d"}, headers=admin_headers
    )

    body = response.json()
    assert body["metric"] == "delivered"
    assert body["range"] == "14d"
    assert len(body["series"]) == 14
    assert sum(body["series"].values()) == 0
