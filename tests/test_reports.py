import asyncio
import csv
import io
import threading
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.core.exceptions import ForbiddenError, ValidationError
from app.database import async_session_factory
from app.models.order import Order
from app.models.shipment import Shipment
from app.models.warehouse import Warehouse
from app.services.report_service import ReportService, csv_escape, csv_line
from conftest import API

ADMIN = {"id": "1", "email": "admin@example.com", "role": "ADMIN"}


async def _insert_shipments(seed, count, warehouse_id=None, created_at=None, status="PREPARING", prefix="T"):
    async with async_session_factory() as session:
        order = Order(
            order_number=f"ORD-{prefix}-1",
            vendor_id=seed["vendor"].id,
            fare_id=seed["fare"].id,
            name="Bulk Receiver",
            delivery_city="Kathmandu",
            delivery_address="New Road",
            contact_number="9800000001",
            delivery_type="DOOR_DELIVERY",
            amount_to_be_collected=Decimal("1000"),
            total_amount=Decimal("1300"),
        )
        session.add(order)
        await session.flush()
        for i in range(count):
            extra = {"created_at": created_at} if created_at else {}
            session.add(Shipment(
                tracking_number=f"TRK-{prefix}-{i}",
                order_id=order.id,
                warehouse_id=warehouse_id or seed["warehouse"].id,
                status=status,
                **extra,
            ))
        await session.commit()


def test_csv_escaping():
    assert csv_escape("plain") == "plain"
    assert csv_escape("a,b") == '"a,b"'
    assert csv_escape('say "hi"') == '"say ""hi"""'
    assert csv_escape("two\nlines") == '"two\nlines"'
    assert csv_escape(None) == ""
    assert csv_escape(Decimal("12.50")) == "12.50"
    assert csv_line(["x", 1, None]) == "x,1,\n"


async def test_large_export_is_paged(seed, tmp_path):
    await _insert_shipments(seed, 4001)
    progress_seen = []

    async def progress(value):
        progress_seen.append(value)

    async with async_session_factory() as session:
        service = ReportService(session, reports_dir=str(tmp_path), page_size=2000)
        result = await service.generate("SHIPMENTS_STATUS", ADMIN, {}, progress=progress)

    assert result["rows"] == 4001
    assert result["fileName"].startswith("shipments_status_")
    with open(result["filePath"], encoding="utf-8") as fh:
        lines = fh.read().splitlines()
    assert len(lines) == 4002
    assert lines[0].startswith("trackingNumber,orderNumber,vendorId,warehouse,status")
    assert progress_seen == sorted(progress_seen)
    assert len(progress_seen) == 3
    assert max(progress_seen) <= 99


async def test_export_writes_pages_off_the_event_loop(seed, tmp_path, monkeypatch):
    await _insert_shipments(seed, 4001)
    loop_thread = threading.get_ident()
    writer_threads = []
    original_to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        def run():
            if getattr(func, "__name__", "") == "write":
                writer_threads.append(threading.get_ident())
            return func(*args, **kwargs)

        return await original_to_thread(run)

    monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)

    async with async_session_factory() as session:
        service = ReportService(session, reports_dir=str(tmp_path), page_size=2000)
        result = await service.generate("SHIPMENTS_STATUS", ADMIN, {})

    assert result["rows"] == 4001
    assert len(writer_threads) == 3
    assert loop_thread not in writer_threads


async def test_report_requires_staff_role(tmp_path):
    async with async_session_factory() as session:
        service = ReportService(session, reports_dir=str(tmp_path))
        with pytest.raises(ForbiddenError):
            await service.generate("ORDERS_SUMMARY", {"role": "USER"}, {})
        with pytest.raises(ValidationError):
            await service.generate("NOT_A_REPORT", ADMIN, {})


async def test_warehouse_utilization_groups_by_day(seed, tmp_path):
    async with async_session_factory() as session:
        annex = Warehouse(name="Annex", address="Chipledhunga", city="Pokhara", capacity=10)
        session.add(annex)
        await session.commit()

    day_one = datetime(2024, 3, 1, 9, tzinfo=timezone.utc)
    day_two = datetime(2024, 3, 2, 9, tzinfo=timezone.utc)
    await _insert_shipments(seed, 2, created_at=day_one, prefix="A")
    await _insert_shipments(seed, 1, created_at=day_two, status="DELIVERED", prefix="B")
    await _insert_shipments(seed, 3, warehouse_id=annex.id, created_at=day_one, status="IN_TRANSIT", prefix="C")

    async with async_session_factory() as session:
        result = await ReportService(session, reports_dir=str(tmp_path)).generate(
            "WAREHOUSE_UTILIZATION", ADMIN, {}
        )

    with open(result["filePath"], encoding="utf-8") as fh:
        rows = list(csv.reader(fh))
    assert rows[0] == ["warehouse", "date", "inboundCount", "outboundCount"]
    assert rows[1:] == [
        ["Annex", "2024-03-01", "3", "3"],
        ["Pokhara Hub", "2024-03-01", "2", "0"],
        ["Pokhara Hub", "2024-03-02", "1", "1"],
    ]


async def test_cod_reconciliation_marks_delivered(seed, tmp_path):
    await _insert_shipments(seed, 1, status="DELIVERED", prefix="D")
    await _insert_shipments(seed, 1, status="IN_TRANSIT", prefix="E")

    async with async_session_factory() as session:
        result = await ReportService(session, reports_dir=str(tmp_path)).generate(
            "COD_RECONCILIATION", ADMIN, {}
        )

    with open(result["filePath"], encoding="utf-8") as fh:
        rows = {row["trackingNumber"]: row for row in csv.DictReader(fh)}
    assert rows["TRK-D-0"]["delivered"] == "YES"
    assert rows["TRK-E-0"]["delivered"] == "NO"
    assert rows["TRK-D-0"]["amountToBeCollected"] == "1000.00"


async def test_export_through_api(client, application, seed, admin_headers):
    await _insert_shipments(seed, 3)

    queued = await client.post(
        f"{API}/reports/export",
        json={"type": "SHIPMENTS_STATUS", "filters": {"status": ["PREPARING"]}},
        headers=admin_headers,
    )
    assert queued.status_code == 202
    job_id = queued.json()["jobId"]

    waiting = await client.get(f"{API}/reports/{job_id}/status", headers=admin_headers)
    assert waiting.json()["state"] == "waiting"
    not_ready = await client.get(f"{API}/reports/{job_id}/download", headers=admin_headers)
    assert not_ready.status_code == 404

    await application.state.report_worker.process_next()

    status = (await client.get(f"{API}/reports/{job_id}/status", headers=admin_headers)).json()
    assert status["state"] == "completed"
    assert status["progress"] == 100
    assert status["result"]["rows"] == 3

    download = await client.get(f"{API}/reports/{job_id}/download", headers=admin_headers)
    assert download.status_code == 200
    assert download.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(download.text)))
    assert len(rows) == 4


async def test_email_delivery_sends_ready_notice(client, application, seed, admin_headers, email_service):
    queued = await client.post(
        f"{API}/reports/export",
        json={"type": "USER_ACTIVITY", "delivery": "email"},
        headers=admin_headers,
    )
    await application.state.report_worker.process_next()

    notices = email_service.of_kind("report_ready")
    assert len(notices) == 1
    assert notices[0]["to"] == "admin@example.com"
    state = await application.state.queues.get("report").get_state(queued.json()["jobId"])
    assert state == "completed"


async def test_export_requires_type(client, admin_headers):
    response = await client.post(f"{API}/reports/export", json={}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Report type is required"


async def test_export_rejects_unknown_type(client, admin_headers):
    response = await client.post(f"{API}/reports/export", json={"type": "SALES"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error"]["details"][0]["field"] == "type"


async def test_export_forbidden_for_users(client, customer_headers):
    response = await client.post(
        f"{API}/reports/export", json={"type": "ORDERS_SUMMARY"}, headers=customer_headers
    )

    assert response.status_code == 403


async def test_unknown_job_status(client, admin_headers):
    response = await client.get(f"{API}/reports/does-not-exist/status", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"state": "unknown", "progress": 0, "result": None, "failedReason": None}
