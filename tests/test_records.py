"""Record API tests."""

import pytest
from httpx import AsyncClient

from mrp_console.adapters.base import RecordNotFoundError

ITEMS_URL = "/api/records/Items"


@pytest.fixture
def items(backend):
    backend.data["Items"] = [
        {"id": f"itm-{n}", "Item Name": f"Widget {n}", "Category": "Finished Good"}
        for n in range(1, 8)
    ]
    return backend.data["Items"]


@pytest.mark.asyncio
async def test_list_records_paginates(client: AsyncClient, items):
    resp = await client.get(ITEMS_URL, params={"page": 2, "page_size": 3})
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_count"] == 7
    assert [r["id"] for r in data["data"]] == ["itm-4", "itm-5", "itm-6"]


@pytest.mark.asyncio
async def test_list_records_search(client: AsyncClient, items):
    resp = await client.get(ITEMS_URL, params={"q": "Widget 7"})
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()["data"]] == ["itm-7"]


@pytest.mark.asyncio
async def test_list_all_and_count(client: AsyncClient, items):
    resp = await client.get(f"{ITEMS_URL}/all")
    assert resp.status_code == 200
    assert len(resp.json()) == 7

    resp = await client.get(f"{ITEMS_URL}/count")
    assert resp.json() == {"table": "Items", "count": 7}


@pytest.mark.asyncio
async def test_table_names_with_spaces(client: AsyncClient, backend):
    backend.data["Bill of Materials"] = [{"id": "bom-1", "BOM Code": "BOM-001"}]
    resp = await client.get("/api/records/Bill of Materials/count")
    assert resp.status_code == 200
    assert resp.json()["count"] == 1


@pytest.mark.asyncio
async def test_unknown_table(client: AsyncClient):
    resp = await client.get("/api/records/Spaceships")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_create_get_update_delete(client: AsyncClient, backend):
    resp = await client.post("/api/records/Suppliers", json={"Supplier Name": "Acme", "Rating": 4})
    assert resp.status_code == 201
    record_id = resp.json()["_id"]

    resp = await client.get(f"/api/records/Suppliers/{record_id}")
    assert resp.status_code == 200
    assert resp.json()["Supplier Name"] == "Acme"

    resp = await client.put(f"/api/records/Suppliers/{record_id}", json={"Rating": 5})
    assert resp.status_code == 200
    assert backend.data["Suppliers"][0]["Rating"] == 5

    resp = await client.delete(f"/api/records/Suppliers/{record_id}")
    assert resp.status_code == 204
    assert backend.data["Suppliers"] == []


@pytest.mark.asyncio
async def test_upstream_error_maps_to_bad_gateway(client: AsyncClient):
    resp = await client.get("/api/records/Customers/missing")
    assert resp.status_code == 502
    assert resp.json()["upstream_status"] == 404


@pytest.mark.asyncio
async def test_dashboard_stats_skip_failing_tables(client: AsyncClient, backend, items):
    backend.data["Customers"] = [{"id": "c1"}, {"id": "c2"}]
    backend.failing.add("Suppliers")

    resp = await client.get("/api/dashboard/stats")
    assert resp.status_code == 200
    stats = resp.json()
    assert stats["Items"] == 7
    assert stats["Customers"] == 2
    assert stats["Purchase Orders"] == 0
    assert "Suppliers" not in stats


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_missing_record_maps_to_not_found(client: AsyncClient, backend, monkeypatch):
    async def no_record(table, record_id):
        raise RecordNotFoundError(table, record_id)

    monkeypatch.setattr(backend, "get_record", no_record)
    resp = await client.get("/api/records/Customers/gone")
    assert resp.status_code == 404
    assert "gone" in resp.json()["error"]
